import enum
from sqlalchemy import Column, Integer, String, Text, ForeignKey, Enum, Index, DateTime
from sqlalchemy.orm import relationship
from creditledger.core.database import Base
from creditledger.models.base import TimestampMixin
from creditledger.models.rate_entry import Seniority, WorkMode


class JobStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"


class ClosedReason(str, enum.Enum):
    SUCCESS = "success"
    CANCELLED = "cancelled"


class JobPosting(Base, TimestampMixin):
    __tablename__ = "job_postings"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(120), nullable=True)
    profile = Column(String(100), nullable=False)
    seniority = Column(Enum(Seniority), nullable=False)
    work_mode = Column(Enum(WorkMode), nullable=False)
    salary_min = Column(Integer, nullable=True)
    salary_max = Column(Integer, nullable=True)
    status = Column(Enum(JobStatus), nullable=False, default=JobStatus.DRAFT)
    # Price paid for the current pricing attributes; 0 while in draft.
    credit_cost = Column(Integer, nullable=False, default=0)
    rate_entry_id = Column(Integer, ForeignKey("rate_entries.id"), nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=True)
    editable_until = Column(DateTime(timezone=True), nullable=True)
    closed_reason = Column(Enum(ClosedReason), nullable=True)

    owner = relationship("User", back_populates="job_postings")


Index("ix_job_postings_owner_status", JobPosting.owner_id, JobPosting.status)
Index("ix_job_postings_pricing", JobPosting.profile, JobPosting.seniority, JobPosting.work_mode)
