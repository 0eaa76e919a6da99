from typing import Any, Dict, Optional

from marketplace.errors import ErrorCode, RETRYABLE


class Outcome:
    """
    Résultat d'une opération du tunnel: succès (data) ou rejet (error).
    `context` porte de quoi tracer la tentative (order_id, payment_id, ...).
    """

    def __init__(
        self,
        success: bool,
        data: Any = None,
        error: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.success = success
        self.data = data
        self.error = error
        self.context = context or {}

    @classmethod
    def ok(cls, data: Any = None, **context: Any) -> "Outcome":
        return cls(True, data=data, context=context)

    @classmethod
    def fail(cls, error: ErrorCode, **context: Any) -> "Outcome":
        return cls(False, error=error, context=context)

    @property
    def retryable(self) -> bool:
        return self.error in RETRYABLE

    def __repr__(self) -> str:
        if self.success:
            return f"Outcome(ok, context={self.context})"
        return f"Outcome(fail={self.error.value if self.error else None}, context={self.context})"
