import enum
from sqlalchemy import Column, Integer, String, ForeignKey, Enum, Index, DateTime
from sqlalchemy.orm import relationship
from creditledger.core.database import Base
from creditledger.models.base import TimestampMixin


class PurchaseStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class CreditPurchase(Base, TimestampMixin):
    __tablename__ = "credit_purchases"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    package_id = Column(Integer, ForeignKey("credit_packages.id"), nullable=False)
    credits = Column(Integer, nullable=False)
    original_price = Column(Integer, nullable=False)
    discount_amount = Column(Integer, nullable=False, default=0)
    final_price = Column(Integer, nullable=False)
    discount_code_id = Column(Integer, ForeignKey("discount_codes.id"), nullable=True)
    status = Column(Enum(PurchaseStatus), nullable=False, default=PurchaseStatus.PENDING)
    payment_reference = Column(String(64), nullable=True, index=True)
    failure_reason = Column(String(255), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    package = relationship("CreditPackage")
    discount_code = relationship("DiscountCode")
    discount_use = relationship("DiscountCodeUse", back_populates="purchase", uselist=False)


Index("ix_credit_purchases_user_status", CreditPurchase.user_id, CreditPurchase.status)
