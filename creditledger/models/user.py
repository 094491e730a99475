import enum
from sqlalchemy import Column, Integer, String, Boolean, Enum, Index
from sqlalchemy.orm import relationship
from creditledger.core.database import Base
from creditledger.models.base import TimestampMixin


class UserRole(str, enum.Enum):
    COMPANY = "company"
    VENDOR = "vendor"
    ADMIN = "admin"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.COMPANY)
    is_active = Column(Boolean, default=True, nullable=False)

    credit_account = relationship("CreditAccount", back_populates="user", uselist=False)
    job_postings = relationship("JobPosting", back_populates="owner")
    discount_code = relationship("DiscountCode", back_populates="owner", uselist=False)


Index("ix_users_role_active", User.role, User.is_active)
