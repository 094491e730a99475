from sqlalchemy import Column, Integer, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from creditledger.core.database import Base
from creditledger.models.base import TimestampMixin


class CreditAccount(Base, TimestampMixin):
    __tablename__ = "credit_accounts"
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_credit_accounts_balance_non_negative"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    balance = Column(Integer, default=0, nullable=False)

    user = relationship("User", back_populates="credit_account")
    transactions = relationship(
        "CreditTransaction",
        back_populates="account",
        order_by="CreditTransaction.id",
    )
