# ==========================================================
#                  ACCOUNT EXCEPTIONS
# ==========================================================

class AccountError(Exception):
    """Base account exception; carries the HTTP status it maps to"""
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message=None, status_code=None, errors=None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors or []
        super().__init__(self.message)

    def to_dict(self):
        payload = {"success": False, "message": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationError(AccountError):
    default_message = "Invalid request data"


class ConflictError(AccountError):
    default_message = "Request conflicts with current account state"


class AuthError(AccountError):
    default_message = "Invalid email or password"


class ForbiddenError(AccountError):
    status_code = 403
    default_message = "Action not allowed for this account"


class NotFoundError(AccountError):
    status_code = 404
    default_message = "User not found"


class InsufficientFundsError(AccountError):
    default_message = "Insufficient balance"
