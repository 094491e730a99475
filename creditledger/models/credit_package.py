from sqlalchemy import Column, Integer, String, Boolean, CheckConstraint
from creditledger.core.database import Base
from creditledger.models.base import TimestampMixin


class CreditPackage(Base, TimestampMixin):
    __tablename__ = "credit_packages"
    __table_args__ = (
        CheckConstraint("credits > 0", name="ck_credit_packages_credits_positive"),
        CheckConstraint("price >= 0", name="ck_credit_packages_price_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(64), unique=True, nullable=False)
    credits = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    @property
    def price_per_credit(self) -> int:
        return round(self.price / self.credits) if self.credits else 0
