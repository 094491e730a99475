import enum
from sqlalchemy import Column, Integer, ForeignKey, String, Enum, Index, CheckConstraint
from sqlalchemy.orm import relationship
from creditledger.core.database import Base
from creditledger.models.base import TimestampMixin


class CreditTransactionKind(str, enum.Enum):
    PURCHASE = "purchase"
    SPEND = "spend"
    REFUND = "refund"


class CreditTransaction(Base, TimestampMixin):
    """One append-only ledger row. Never updated or deleted after insert."""

    __tablename__ = "credit_transactions"
    __table_args__ = (
        CheckConstraint("balance_after = balance_before + amount", name="ck_credit_transactions_running_balance"),
        CheckConstraint("balance_after >= 0", name="ck_credit_transactions_balance_after_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("credit_accounts.id"), nullable=False)
    kind = Column(Enum(CreditTransactionKind), nullable=False)
    amount = Column(Integer, nullable=False)
    balance_before = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)
    description = Column(String(255), nullable=False)
    job_id = Column(Integer, ForeignKey("job_postings.id"), nullable=True, index=True)
    purchase_id = Column(Integer, ForeignKey("credit_purchases.id"), nullable=True, index=True)

    account = relationship("CreditAccount", back_populates="transactions")


Index("ix_credit_transactions_account_id_id", CreditTransaction.account_id, CreditTransaction.id)
