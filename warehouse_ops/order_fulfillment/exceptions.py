"""
Custom exceptions for Order Fulfillment & warehouse operations.

Every exception carries the HTTP status the API layer answers with.
"""

from typing import Dict, Any


class BusinessException(Exception):
    """Base exception for business logic errors."""

    status_code = 400

    def __init__(self, message: str, code: str = "BUSINESS_ERROR", details: Dict[str, Any] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {'success': False, 'error': self.message, 'code': self.code}
        if self.details:
            payload['details'] = self.details
        return payload


class UnauthenticatedException(BusinessException):
    """Raised when an operation is attempted without an authenticated principal."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, "UNAUTHENTICATED")


class ForbiddenException(BusinessException):
    """Raised when the principal's role does not allow the operation."""

    status_code = 403

    def __init__(self, message: str = "Insufficient permissions", role: str = None):
        super().__init__(message, "FORBIDDEN", {"role": role} if role else None)


class NotFoundException(BusinessException):
    """Raised when a referenced record does not exist."""

    status_code = 404

    def __init__(self, entity_type: str, identifier: Any = None):
        message = f"{entity_type} not found"
        super().__init__(message, "NOT_FOUND", {
            "entity_type": entity_type,
            "identifier": str(identifier) if identifier is not None else None,
        })


class ValidationException(BusinessException):
    """Raised when data validation fails."""

    def __init__(self, message: str, field_errors: Dict[str, Any] = None):
        super().__init__(message, "VALIDATION_ERROR", field_errors or {})


class InvalidStateException(BusinessException):
    """Raised when an entity is in a state that forbids the operation."""

    def __init__(self, entity_type: str, current_status: str, message: str = None):
        message = message or f"{entity_type} is {current_status} and cannot be modified"
        super().__init__(message, "INVALID_STATE", {
            "entity_type": entity_type,
            "current_status": current_status,
        })


class InvalidTransitionException(InvalidStateException):
    """Raised when attempting an invalid workflow transition."""

    def __init__(self, current_status: str, attempted_status: str, entity_type: str = "PickList"):
        message = f"Invalid transition for {entity_type}: cannot move from {current_status} to {attempted_status}"
        super().__init__(entity_type, current_status, message)
        self.code = "INVALID_TRANSITION"
        self.details["attempted_status"] = attempted_status


class NothingToReassignException(BusinessException):
    """Raised when a work unit has no outstanding work left to hand over."""

    def __init__(self, batch_number: str):
        super().__init__(
            f"Nothing to reassign - {batch_number} is complete",
            "NOTHING_TO_REASSIGN",
            {"batch_number": batch_number},
        )


class InventoryUnavailableException(BusinessException):
    """Raised when stock is not available for a pick."""

    def __init__(self, sku: str, requested_qty: int, available_qty: int = 0):
        message = f"Insufficient inventory for SKU {sku}: requested {requested_qty}, available {available_qty}"
        super().__init__(message, "INVENTORY_UNAVAILABLE", {
            "sku": sku,
            "requested_quantity": requested_qty,
            "available_quantity": available_qty,
        })
