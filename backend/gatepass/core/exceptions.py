"""
Custom Exceptions for CampusGate
================================

Services raise these; the API layer maps them to HTTP responses through
the handler registered in ``gatepass.main``.

Usage:
    from gatepass.core.exceptions import PassNotFoundError, InvalidTransitionError

    if not gate_pass:
        raise PassNotFoundError(pass_id)

    if gate_pass.status != PassStatus.APPROVED:
        raise InvalidTransitionError(gate_pass.status.value, "checkout")
"""

from typing import Optional, Any, Dict


class GatePassError(Exception):
    """Base exception for all CampusGate errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authorization Errors
# ============================================

class AuthorizationError(GatePassError):
    """Caller is not allowed to perform this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized", required_role: Optional[str] = None):
        details = {"required_role": required_role} if required_role else {}
        super().__init__(message, code="NOT_AUTHORIZED", details=details)


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(GatePassError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class PassNotFoundError(ResourceNotFoundError):
    """Gate pass not found"""

    def __init__(self, pass_id: str):
        super().__init__("Pass", pass_id)


class NotificationNotFoundError(ResourceNotFoundError):
    """Notification not found"""

    def __init__(self, notification_id: str):
        super().__init__("Notification", notification_id)


class QRCodeNotFoundError(GatePassError):
    """No pass carries the scanned QR token"""

    status_code = 404

    def __init__(self):
        super().__init__("No gate pass matches this QR code", code="QR_CODE_NOT_FOUND")


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(GatePassError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


# ============================================
# Workflow Errors (409-type)
# ============================================

class InvalidTransitionError(GatePassError):
    """Requested action is not allowed from the pass's current status"""

    status_code = 409

    def __init__(self, current_status: str, action: str, message: Optional[str] = None):
        super().__init__(
            message or f"Cannot {action} a pass in status '{current_status}'",
            code="INVALID_TRANSITION",
            details={"current_status": current_status, "action": action}
        )


class OpenPassExistsError(GatePassError):
    """Student already holds a pass that is still open"""

    status_code = 409

    def __init__(self, pass_id: str):
        super().__init__(
            "You already have an open gate pass",
            code="OPEN_PASS_EXISTS",
            details={"pass_id": pass_id}
        )


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: GatePassError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
