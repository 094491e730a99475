import enum
from sqlalchemy import Column, Integer, String, ForeignKey, Enum, Index, DateTime
from sqlalchemy.orm import relationship
from creditledger.core.database import Base
from creditledger.models.base import TimestampMixin


class CommissionStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class DiscountCodeUse(Base, TimestampMixin):
    __tablename__ = "discount_code_uses"

    id = Column(Integer, primary_key=True, index=True)
    code_id = Column(Integer, ForeignKey("discount_codes.id"), nullable=False)
    purchase_id = Column(Integer, ForeignKey("credit_purchases.id"), unique=True, nullable=False)
    original_price = Column(Integer, nullable=False)
    discount_amount = Column(Integer, nullable=False)
    final_price = Column(Integer, nullable=False)
    commission_amount = Column(Integer, nullable=False)
    commission_status = Column(Enum(CommissionStatus), nullable=False, default=CommissionStatus.PENDING)
    payment_due_date = Column(DateTime(timezone=True), nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    proof_url = Column(String(500), nullable=True)

    code = relationship("DiscountCode", back_populates="uses")
    purchase = relationship("CreditPurchase", back_populates="discount_use")


Index("ix_discount_code_uses_code_status", DiscountCodeUse.code_id, DiscountCodeUse.commission_status)
