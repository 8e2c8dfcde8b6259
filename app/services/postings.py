"""Balance movements that are not obligation payments: manual entries and transfers.

Like the obligation workflows, these stage every write on the caller's store
transaction, so the entry (or transfer) and the balances it moves are
committed together.
"""
from datetime import datetime, timezone
from app.models.enums import EntryType
from app.models.schemas.account import BankAccount
from app.models.schemas.entry import Entry, EntryCreate
from app.models.schemas.transfer import Transfer, TransferCreate
from app.services.errors import InsufficientFundsError, InvalidAmountError, ObligationStateError
from app.services.fetchers import fetch_or_404


def _debit_allowed(account: BankAccount, amount: int) -> None:
    if account.available_balance < amount:
        raise InsufficientFundsError(amount, account.available_balance)


def post_entry(txn, user: dict, payload: EntryCreate) -> Entry:
    if payload.amount <= 0:
        raise InvalidAmountError("Entry amount must be greater than zero")

    account = BankAccount(**fetch_or_404(txn, "bank_accounts", payload.bank_account_id))
    if payload.category_id is not None:
        fetch_or_404(txn, "categories", payload.category_id)
    if payload.payee_id is not None:
        fetch_or_404(txn, "payees", payload.payee_id)

    if payload.type == EntryType.expense:
        _debit_allowed(account, payload.amount)
        delta = -payload.amount
    else:
        delta = payload.amount

    entry = Entry(
        household_id=account.household_id,
        registered_by_user_id=user["user_id"],
        owner_id=account.owner_id,
        balance_before=account.balance,
        balance_after=account.balance + delta,
        **payload.model_dump(),
    )
    txn.put("bank_accounts", account.model_copy(update={"balance": entry.balance_after,
                                                        "updated_at": entry.created_at}))
    txn.put("entries", entry)
    return entry


def remove_entry(txn, entry_id) -> Entry:
    """Soft-delete a manual entry and take its amount back out of (or into) the account."""
    entry = Entry(**fetch_or_404(txn, "entries", entry_id))
    if entry.is_system_generated:
        raise ObligationStateError(
            f"Entry was generated by a {entry.obligation_type.value} payment; reverse the payment instead"
        )

    account = BankAccount(**fetch_or_404(txn, "bank_accounts", entry.bank_account_id))
    if entry.type == EntryType.income:
        _debit_allowed(account, entry.amount)
        delta = -entry.amount
    else:
        delta = entry.amount

    now = datetime.now(timezone.utc)
    txn.put("bank_accounts", account.model_copy(update={"balance": account.balance + delta, "updated_at": now}))
    txn.delete("entries", entry)
    return entry


def transfer(txn, user: dict, payload: TransferCreate) -> Transfer:
    source = BankAccount(**fetch_or_404(txn, "bank_accounts", payload.from_bank_account_id))
    target = BankAccount(**fetch_or_404(txn, "bank_accounts", payload.to_bank_account_id))
    _debit_allowed(source, payload.amount)

    record = Transfer(
        household_id=source.household_id,
        registered_by_user_id=user["user_id"],
        from_balance_before=source.balance,
        from_balance_after=source.balance - payload.amount,
        to_balance_before=target.balance,
        to_balance_after=target.balance + payload.amount,
        **payload.model_dump(),
    )
    txn.put("bank_accounts", source.model_copy(update={"balance": record.from_balance_after,
                                                       "updated_at": record.transfer_date}))
    txn.put("bank_accounts", target.model_copy(update={"balance": record.to_balance_after,
                                                       "updated_at": record.transfer_date}))
    txn.put("transfers", record)
    return record
