"""Domain errors and their HTTP mapping."""


class BondlyError(Exception):
    """Base error carrying the HTTP status and machine-readable code."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class InvalidInput(BondlyError):
    status_code = 400
    code = "INVALID_INPUT"


class NotFound(BondlyError):
    status_code = 404
    code = "NOT_FOUND"


class AlreadyAnalyzed(BondlyError):
    status_code = 400
    code = "ALREADY_ANALYZED"


class SessionClosed(BondlyError):
    status_code = 400
    code = "SESSION_CLOSED"


class InsufficientResponses(BondlyError):
    status_code = 400
    code = "INSUFFICIENT_RESPONSES"


class MissingRole(BondlyError):
    status_code = 400
    code = "MISSING_ROLE"


class Unauthorized(BondlyError):
    status_code = 401
    code = "UNAUTHORIZED"


class AdviceGenerationError(BondlyError):
    """The generation API failed for a reason other than rate limiting."""

    status_code = 500
    code = "GENERATION_FAILED"


class QuotaExceeded(AdviceGenerationError):
    """Rate limited by the generation API and out of retries."""

    status_code = 429
    code = "QUOTA_EXCEEDED"

    def to_dict(self) -> dict:
        return {**super().to_dict(), "retryable": True}


class PersistenceError(BondlyError):
    status_code = 500
    code = "PERSISTENCE_FAILED"
