"""Domain errors raised by the ledger rules and the document store.

Each error carries the HTTP status the API answers with; the handlers live in
``app.main``.
"""


class LedgerError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidAmountError(LedgerError):
    pass


class OverpaymentError(LedgerError):
    def __init__(self, amount: int, remaining_amount: int):
        super().__init__(
            f"Payment amount ({amount}) cannot exceed the remaining amount ({remaining_amount})"
        )
        self.amount = amount
        self.remaining_amount = remaining_amount


class InsufficientFundsError(LedgerError):
    def __init__(self, amount: int, available_balance: int):
        super().__init__(
            f"Available balance ({available_balance}) is not enough for {amount}"
        )
        self.amount = amount
        self.available_balance = available_balance


class DeletionBlockedError(LedgerError):
    status_code = 409


class ObligationStateError(LedgerError):
    """The obligation is in a state that does not allow the operation."""

    status_code = 409


class ConcurrentModificationError(LedgerError):
    status_code = 409
