"""
Error Taxonomy

Domain exceptions raised by validators, session policy, ledger operations
and the signup/login/logout flows. The API layer maps each ``code`` to an
HTTP status.
"""

from typing import Dict, List, Optional


class BankingError(Exception):
    """Base class for all demo banking errors"""

    code = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict:
        return {"code": self.code, "message": self.message}


class ValidationFailure(BankingError):
    """
    User-correctable input error.

    ``field`` names the first offending field and ``reasons`` its messages.
    ``errors`` carries every failing field when a whole form was checked.
    """

    code = "validation_failure"

    def __init__(self, field: str, reasons: List[str],
                 errors: Optional[Dict[str, List[str]]] = None):
        self.field = field
        self.reasons = list(reasons)
        self.errors = errors if errors is not None else {field: self.reasons}
        super().__init__(f"{field}: {'; '.join(self.reasons)}")

    def to_dict(self) -> Dict:
        result = super().to_dict()
        result["field"] = self.field
        result["errors"] = self.errors
        return result


class ConflictError(BankingError):
    """Resource already exists (duplicate email, duplicate account type)"""

    code = "conflict"


class UnauthorizedError(BankingError):
    """Bad credentials or missing session. Messages stay generic."""

    code = "unauthorized"

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class NotFoundError(BankingError):
    """Requested resource does not exist or is not visible to the caller"""

    code = "not_found"


class InternalError(BankingError):
    """Store or downstream failure. The message shown to clients is opaque."""

    code = "internal"
