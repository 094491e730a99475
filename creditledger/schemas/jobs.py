from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from creditledger.models.job_posting import ClosedReason, JobStatus
from creditledger.models.rate_entry import Seniority, WorkMode


class JobPostingCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    profile: str = Field(..., min_length=1, max_length=100)
    seniority: Seniority
    work_mode: WorkMode
    description: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=120)
    salary_min: Optional[int] = Field(default=None, ge=0)
    salary_max: Optional[int] = Field(default=None, ge=0)
    owner_id: Optional[int] = None
    publish_now: bool = False


class JobPostingUpdate(BaseModel):
    # Every field is optional; only the fields actually sent are applied.
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=120)
    profile: Optional[str] = Field(default=None, max_length=100)
    seniority: Optional[Seniority] = None
    work_mode: Optional[WorkMode] = None
    salary_min: Optional[int] = Field(default=None, ge=0)
    salary_max: Optional[int] = Field(default=None, ge=0)


class JobCloseRequest(BaseModel):
    reason: ClosedReason


class JobPostingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    profile: str
    seniority: Seniority
    work_mode: WorkMode
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    status: JobStatus
    credit_cost: int
    rate_entry_id: Optional[int] = None
    published_at: Optional[datetime] = None
    editable_until: Optional[datetime] = None
    closed_reason: Optional[ClosedReason] = None


class CreditChangeOut(BaseModel):
    action: str
    original: int
    new: int
    difference: int
    amount: int
    transaction_id: Optional[int] = None


class JobPublishOut(BaseModel):
    job: JobPostingOut
    credit_cost: int
    matched: Optional[bool] = None
    charged: bool
    new_balance: Optional[int] = None


class JobEditOut(BaseModel):
    job: JobPostingOut
    message: str
    credit_change: Optional[CreditChangeOut] = None
