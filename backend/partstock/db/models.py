from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, ForeignKey, Text, Index, Numeric, JSON,
)
from sqlalchemy.orm import relationship

from partstock.db.database import Base
from partstock.db.enums import (
    InventoryStatus, StockLevel, TransactionType, ReservationStatus,
    AlertUrgency, AlertType, ACTIVE_RESERVATION_STATUSES, RESERVATION_PRIORITY,
)


class Inventory(Base):
    """Stocked part, keyed by its SKU (`item_id`)."""
    __tablename__ = "inventory"
    __table_args__ = (
        Index("ix_inventory_category", "category"),
        Index("ix_inventory_status", "status"),
        Index("ix_inventory_stock_reorder_level", "stock", "reorder_level"),
    )

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(String(64), nullable=False, unique=True, index=True)
    item_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=False)
    stock = Column(Integer, default=0, nullable=False)
    reorder_level = Column(Integer, default=10, nullable=False)
    unit_price = Column(Numeric(10, 2, asdecimal=False), default=0, nullable=False)
    supplier = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)
    status = Column(String(20), default=InventoryStatus.active.value, nullable=False)
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    transactions = relationship("StockTransaction", back_populates="inventory", cascade="all, delete-orphan")
    reservations = relationship("Reservation", back_populates="inventory", cascade="all, delete-orphan")

    @property
    def is_low_stock(self) -> bool:
        """Check if stock is at or below the reorder level."""
        return self.stock <= self.reorder_level

    @property
    def total_value(self) -> float:
        return round((self.stock or 0) * float(self.unit_price or 0), 2)

    def stock_status(self, requested_quantity: int) -> str:
        """Classify whether a request for `requested_quantity` can be filled."""
        if self.stock >= requested_quantity:
            return StockLevel.available.value
        if self.stock > 0:
            return StockLevel.partial.value
        return StockLevel.backorder.value


class StockTransaction(Base):
    """
    Append-only ledger of stock movements.
    Positive quantity for incoming stock, negative for outgoing.
    """
    __tablename__ = "stock_transactions"
    __table_args__ = (
        Index("ix_stock_transactions_item_id", "item_id"),
        Index("ix_stock_transactions_transaction_type", "transaction_type"),
        Index("ix_stock_transactions_reference_number", "reference_number"),
        Index("ix_stock_transactions_created_at", "created_at"),
    )

    id = Column(Integer, primary_key=True)
    item_id = Column(String(64), ForeignKey("inventory.item_id", ondelete="CASCADE"), nullable=False)
    transaction_type = Column(String(20), nullable=False)
    quantity = Column(Integer, nullable=False)
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    reference_number = Column(String(100), nullable=True)  # POS receipt, job order, etc.
    notes = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    inventory = relationship("Inventory", back_populates="transactions")

    @property
    def impact(self) -> str:
        incoming = (TransactionType.procurement.value, TransactionType.return_.value)
        return "positive" if self.transaction_type in incoming else "negative"


class Reservation(Base):
    """Soft hold of stock for a job order."""
    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_status", "status"),
        Index("ix_reservations_job_order_number", "job_order_number"),
        Index("ix_reservations_requested_date", "requested_date"),
        Index("ix_reservations_priority_level_created_at", "priority_level", "created_at"),
        Index("ix_reservations_is_urgent_status", "is_urgent", "status"),
    )

    id = Column(Integer, primary_key=True)
    item_id = Column(String(64), ForeignKey("inventory.item_id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False)
    status = Column(String(20), default=ReservationStatus.pending.value, nullable=False)
    priority_level = Column(Integer, default=RESERVATION_PRIORITY[ReservationStatus.pending.value], nullable=False)
    is_urgent = Column(Boolean, default=False, nullable=False)
    job_order_number = Column(String(100), nullable=True)
    requested_by = Column(String(100), nullable=False)
    approved_by = Column(String(100), nullable=True)
    requested_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    approved_date = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    estimated_completion = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    inventory = relationship("Inventory", back_populates="reservations")

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_RESERVATION_STATUSES

    def is_expired(self, now: datetime = None) -> bool:
        now = now or datetime.utcnow()
        return bool(self.expires_at and self.expires_at < now and self.is_active)

    def set_status(self, status: str) -> None:
        """Move to `status` and keep the queue priority in step with it."""
        self.status = status
        self.priority_level = RESERVATION_PRIORITY[status]


class Alert(Base):
    """Persisted low-stock notification awaiting acknowledgement."""
    __tablename__ = "alerts"
    __table_args__ = (
        Index("ix_alerts_item_id_acknowledged", "item_id", "acknowledged"),
        Index("ix_alerts_urgency_acknowledged", "urgency", "acknowledged"),
        Index("ix_alerts_created_at", "created_at"),
    )

    id = Column(Integer, primary_key=True)
    item_id = Column(String(64), nullable=False)  # Not a FK: alerts outlive deleted items
    item_name = Column(String(255), nullable=False)
    current_stock = Column(Integer, nullable=False)
    reorder_level = Column(Integer, nullable=False)
    category = Column(String(100), nullable=False)
    supplier = Column(String(255), nullable=True)
    urgency = Column(String(20), default=AlertUrgency.medium.value, nullable=False)
    alert_type = Column(String(20), default=AlertType.low_stock.value, nullable=False)
    message = Column(Text, nullable=True)
    acknowledged = Column(Boolean, default=False, nullable=False)
    acknowledged_by = Column(String(100), nullable=True)
    acknowledged_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Report(Base):
    """Generated report with its aggregated payload stored as JSON."""
    __tablename__ = "reports"
    __table_args__ = (
        Index("ix_reports_report_type_report_date", "report_type", "report_date"),
        Index("ix_reports_generated_date", "generated_date"),
    )

    id = Column(Integer, primary_key=True)
    report_type = Column(String(30), nullable=False)
    generated_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    report_date = Column(Date, nullable=False)
    data_summary = Column(JSON, nullable=False)
    forecast_period = Column(Integer, nullable=True)  # days
    forecast_value = Column(Numeric(15, 2, asdecimal=False), nullable=True)
    confidence_level = Column(Numeric(5, 2, asdecimal=False), nullable=True)  # percentage
    generated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Archive(Base):
    """Before/after snapshot of a mutated entity."""
    __tablename__ = "archives"
    __table_args__ = (
        Index("ix_archives_entity_type_entity_id", "entity_type", "entity_id"),
        Index("ix_archives_archived_date", "archived_date"),
        Index("ix_archives_action", "action"),
        Index("ix_archives_reference_number", "reference_number"),
    )

    id = Column(Integer, primary_key=True)
    entity_type = Column(String(20), nullable=False)
    entity_id = Column(Integer, nullable=False)
    action = Column(String(30), nullable=False)
    old_data = Column(JSON, nullable=True)
    new_data = Column(JSON, nullable=True)
    user_id = Column(String(100), nullable=True)  # actor name
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    archived_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
