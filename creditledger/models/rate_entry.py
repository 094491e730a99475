import enum
from sqlalchemy import Column, Integer, String, Boolean, Enum, Index, CheckConstraint, func
from creditledger.core.database import Base
from creditledger.models.base import TimestampMixin


class Seniority(str, enum.Enum):
    INTERN = "intern"
    JR = "jr"
    MIDDLE = "middle"
    SR = "sr"
    DIRECTOR = "director"


class WorkMode(str, enum.Enum):
    REMOTE = "remote"
    HYBRID = "hybrid"
    ON_SITE = "on_site"


class RateEntry(Base, TimestampMixin):
    __tablename__ = "rate_entries"
    __table_args__ = (CheckConstraint("credits >= 0", name="ck_rate_entries_credits_non_negative"),)

    id = Column(Integer, primary_key=True, index=True)
    profile = Column(String(100), nullable=False)
    seniority = Column(Enum(Seniority), nullable=False)
    work_mode = Column(Enum(WorkMode), nullable=False)
    # NULL means "any location".
    location = Column(String(120), nullable=True)
    credits = Column(Integer, nullable=False)
    min_salary = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


Index(
    "ix_rate_entries_lookup",
    RateEntry.profile,
    RateEntry.seniority,
    RateEntry.work_mode,
    RateEntry.is_active,
)
# At most one active entry per tuple; COALESCE folds NULL locations together.
Index(
    "uq_rate_entries_active_tuple",
    RateEntry.profile,
    RateEntry.seniority,
    RateEntry.work_mode,
    func.coalesce(RateEntry.location, ""),
    unique=True,
    postgresql_where=RateEntry.is_active.is_(True),
    sqlite_where=RateEntry.is_active.is_(True),
)
