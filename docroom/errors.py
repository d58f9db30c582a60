"""Exceptions raised by the service layer."""


class RejectedError(Exception):
    """Raised when a request breaks a business rule.

    Distinct from "not found" (services return ``None`` for that) and from
    store failures, which surface as ``SQLAlchemyError``.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)
