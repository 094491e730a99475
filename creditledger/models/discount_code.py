from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from creditledger.core.database import Base
from creditledger.models.base import TimestampMixin


class DiscountCode(Base, TimestampMixin):
    __tablename__ = "discount_codes"
    __table_args__ = (
        CheckConstraint("discount_percent BETWEEN 0 AND 100", name="ck_discount_codes_discount_percent"),
        CheckConstraint("commission_percent BETWEEN 0 AND 100", name="ck_discount_codes_commission_percent"),
    )

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    # Stored upper-cased so the unique index is case-insensitive in practice.
    code = Column(String(20), unique=True, nullable=False, index=True)
    discount_percent = Column(Integer, nullable=False, default=10)
    commission_percent = Column(Integer, nullable=False, default=10)
    is_active = Column(Boolean, default=True, nullable=False)

    owner = relationship("User", back_populates="discount_code")
    uses = relationship("DiscountCodeUse", back_populates="code")
