"""Domain errors raised by the credit engine.

Every service rolls its session back before raising one of these, so callers
can rely on "error raised" meaning "nothing was written". ``main.py`` maps them
onto HTTP responses through ``status_code`` and ``detail()``.
"""


class CreditEngineError(Exception):
    code = "CREDIT_ENGINE_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def detail(self) -> dict:
        return {"code": self.code, "message": self.message}


class InsufficientCredits(CreditEngineError):
    """The account cannot cover an operation; the caller should offer a top-up."""

    code = "INSUFFICIENT_CREDITS"
    status_code = 402

    def __init__(self, required: int, available: int, message: str | None = None):
        self.required = int(required)
        self.available = int(available)
        super().__init__(
            message
            or f"Insufficient credits: {self.required} required, {self.available} available."
        )

    @property
    def missing(self) -> int:
        return max(0, self.required - self.available)

    def detail(self) -> dict:
        return {
            **super().detail(),
            "required": self.required,
            "available": self.available,
            "missing": self.missing,
        }


class InsufficientFunds(CreditEngineError):
    code = "INSUFFICIENT_FUNDS"
    status_code = 402

    def __init__(self, account_id: int, balance: int, amount: int):
        self.account_id = account_id
        self.balance = int(balance)
        self.amount = int(amount)
        super().__init__(
            f"Account {account_id} balance {self.balance} cannot cover a spend of {abs(self.amount)}."
        )


class InvalidRateConfiguration(CreditEngineError):
    code = "INVALID_RATE_CONFIGURATION"
    status_code = 500


class NotFound(CreditEngineError):
    code = "NOT_FOUND"
    status_code = 404


class ValidationError(CreditEngineError):
    code = "VALIDATION_ERROR"
    status_code = 400


class Conflict(CreditEngineError):
    code = "CONFLICT"
    status_code = 409


class InvalidTransition(CreditEngineError):
    code = "INVALID_TRANSITION"
    status_code = 409


class PermissionDenied(CreditEngineError):
    code = "PERMISSION_DENIED"
    status_code = 403


class EditWindowClosed(CreditEngineError):
    code = "EDIT_WINDOW_CLOSED"
    status_code = 403
