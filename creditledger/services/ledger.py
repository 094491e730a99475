import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from creditledger.core.errors import InsufficientFunds, NotFound, ValidationError
from creditledger.models import CreditAccount, CreditTransaction, CreditTransactionKind

logger = logging.getLogger(__name__)

DESCRIPTION_MAX_LENGTH = 255


@dataclass(frozen=True)
class LedgerAudit:
    account_id: int
    balance: int
    ledger_sum: int
    last_balance_after: int
    entries: int

    @property
    def consistent(self) -> bool:
        return self.balance == self.ledger_sum == self.last_balance_after and self.balance >= 0


def get_or_create_account(db: Session, user_id: int) -> CreditAccount:
    account = db.query(CreditAccount).filter(CreditAccount.user_id == user_id).first()
    if account:
        return account
    account = CreditAccount(user_id=user_id, balance=0)
    db.add(account)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request created it first.
        db.rollback()
        return db.query(CreditAccount).filter(CreditAccount.user_id == user_id).one()
    db.refresh(account)
    return account


def get_account(db: Session, account_id: int) -> CreditAccount:
    account = db.query(CreditAccount).filter(CreditAccount.id == account_id).first()
    if not account:
        raise NotFound("Credit account not found")
    return account


def lock_account(db: Session, account_id: int) -> CreditAccount:
    """Load the account row with a write lock held until the transaction ends."""
    account = (
        db.query(CreditAccount)
        .filter(CreditAccount.id == account_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not account:
        raise NotFound("Credit account not found")
    return account


def _check_sign(kind: CreditTransactionKind, amount: int) -> None:
    if amount == 0:
        raise ValidationError("Ledger amount must be non-zero")
    if kind == CreditTransactionKind.SPEND and amount > 0:
        raise ValidationError("Spend amounts must be negative")
    if kind in (CreditTransactionKind.PURCHASE, CreditTransactionKind.REFUND) and amount < 0:
        raise ValidationError(f"{kind.value.capitalize()} amounts must be positive")


def append(
    db: Session,
    account_id: int,
    kind: CreditTransactionKind,
    amount: int,
    description: str,
    job_id: Optional[int] = None,
    *,
    purchase_id: Optional[int] = None,
    commit: bool = True,
) -> CreditTransaction:
    """Apply ``amount`` to the account and record it in the ledger.

    The balance update and the ledger row are written in the same transaction
    under a row lock on the account. A spend that would take the balance below
    zero raises ``InsufficientFunds``; purchases and refunds never fail on
    balance grounds.

    With ``commit=False`` the caller owns the transaction: the write is only
    flushed, and the caller commits (or rolls back) together with its own
    changes.
    """
    amount = int(amount)
    _check_sign(kind, amount)

    try:
        account = lock_account(db, account_id)
        balance_before = int(account.balance)
        balance_after = balance_before + amount
        if balance_after < 0:
            raise InsufficientFunds(account.id, balance_before, amount)

        account.balance = balance_after
        entry = CreditTransaction(
            account_id=account.id,
            kind=kind,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            description=str(description or "")[:DESCRIPTION_MAX_LENGTH],
            job_id=job_id,
            purchase_id=purchase_id,
        )
        db.add(entry)
        db.flush()
        if commit:
            db.commit()
            db.refresh(entry)
    except Exception:
        if commit:
            db.rollback()
        raise

    logger.info(
        "Ledger append account=%s kind=%s amount=%s balance %s->%s job=%s purchase=%s",
        account_id,
        kind.value,
        amount,
        balance_before,
        balance_after,
        job_id,
        purchase_id,
    )
    return entry


def grant_credits(db: Session, account_id: int, amount: int, description: str) -> CreditTransaction:
    if int(amount) <= 0:
        raise ValidationError("Granted credits must be positive")
    return append(
        db,
        account_id,
        CreditTransactionKind.PURCHASE,
        int(amount),
        f"admin grant: {description}".strip(),
    )


def list_transactions(db: Session, account_id: int, *, limit: int = 50, offset: int = 0) -> list[CreditTransaction]:
    return (
        db.query(CreditTransaction)
        .filter(CreditTransaction.account_id == account_id)
        .order_by(CreditTransaction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def count_transactions(db: Session, account_id: int) -> int:
    return db.query(func.count(CreditTransaction.id)).filter(CreditTransaction.account_id == account_id).scalar() or 0


def verify_account(db: Session, account_id: int) -> LedgerAudit:
    account = get_account(db, account_id)
    ledger_sum, entries = (
        db.query(func.coalesce(func.sum(CreditTransaction.amount), 0), func.count(CreditTransaction.id))
        .filter(CreditTransaction.account_id == account.id)
        .one()
    )
    last = (
        db.query(CreditTransaction)
        .filter(CreditTransaction.account_id == account.id)
        .order_by(CreditTransaction.id.desc())
        .first()
    )
    audit = LedgerAudit(
        account_id=account.id,
        balance=int(account.balance),
        ledger_sum=int(ledger_sum or 0),
        last_balance_after=int(last.balance_after) if last else 0,
        entries=int(entries or 0),
    )
    if not audit.consistent:
        logger.warning(
            "Ledger inconsistency on account %s: balance=%s sum=%s last_after=%s",
            audit.account_id,
            audit.balance,
            audit.ledger_sum,
            audit.last_balance_after,
        )
    return audit
