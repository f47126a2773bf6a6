from fastapi import HTTPException, status


class ItemNotFound(HTTPException):
    def __init__(self, item_id: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Inventory item {item_id} not found",
        )


class ReservationNotFound(HTTPException):
    def __init__(self, reservation_id: int):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Reservation {reservation_id} not found",
        )


class AlertNotFound(HTTPException):
    def __init__(self, alert_id: int):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Alert {alert_id} not found",
        )


class ReportNotFound(HTTPException):
    def __init__(self, report_id: int):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Report {report_id} not found",
        )


class RecordNotFound(HTTPException):
    def __init__(self, kind: str, record_id: int):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{kind} {record_id} not found",
        )


class DuplicateItem(HTTPException):
    def __init__(self, item_id: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Inventory item {item_id} already exists",
        )


class InsufficientStock(HTTPException):
    def __init__(self, item_id: str, requested: int, available: int):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Insufficient stock for {item_id}. Available: {available}, Requested: {requested}",
        )
        self.item_id = item_id
        self.requested = requested
        self.available = available


class InvalidReservationState(HTTPException):
    def __init__(self, reservation_id: int, current: str, action: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot {action} reservation {reservation_id} in status '{current}'",
        )


class ReservationExpired(HTTPException):
    def __init__(self, reservation_id: int):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Reservation {reservation_id} has expired",
        )


class ItemInUse(HTTPException):
    def __init__(self, item_id: str, active_reservations: int):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot delete {item_id}: {active_reservations} active reservation(s)",
        )


class InvalidReportRequest(HTTPException):
    def __init__(self, message: str):
        super().__init__(
            status_code=422,
            detail=message,
        )
