import enum


class InventoryStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    discontinued = "discontinued"


class StockLevel(str, enum.Enum):
    available = "Available"
    partial = "Partial"
    backorder = "Backorder"


class TransactionType(str, enum.Enum):
    procurement = "procurement"
    sale = "sale"
    reservation = "reservation"
    return_ = "return"
    damage = "damage"
    adjustment = "adjustment"


# Ledger rows that move physical stock (reservation rows are holds only)
PHYSICAL_TRANSACTION_TYPES = [
    TransactionType.procurement.value,
    TransactionType.sale.value,
    TransactionType.return_.value,
    TransactionType.damage.value,
    TransactionType.adjustment.value,
]


class ReservationStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    completed = "completed"
    cancelled = "cancelled"


ACTIVE_RESERVATION_STATUSES = [
    ReservationStatus.pending.value,
    ReservationStatus.approved.value,
]

# Queue position used by the job-order board
RESERVATION_PRIORITY = {
    ReservationStatus.pending.value: 1,
    ReservationStatus.approved.value: 2,
    ReservationStatus.completed.value: 5,
    ReservationStatus.cancelled.value: 6,
    ReservationStatus.rejected.value: 6,
}


class AlertUrgency(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class AlertType(str, enum.Enum):
    low_stock = "low_stock"
    out_of_stock = "out_of_stock"
    expiry = "expiry"
    reorder = "reorder"


class ReportType(str, enum.Enum):
    daily_usage = "daily_usage"
    monthly_procurement = "monthly_procurement"
    low_stock_alert = "low_stock_alert"
    reconciliation = "reconciliation"
    forecast = "forecast"


class ArchiveEntityType(str, enum.Enum):
    inventory = "inventory"
    reservation = "reservation"
    transaction = "transaction"
