from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from creditledger.models.rate_entry import Seniority, WorkMode


class PriceRequest(BaseModel):
    profile: str = Field(..., min_length=1, max_length=100)
    seniority: Seniority
    work_mode: WorkMode
    location: Optional[str] = Field(default=None, max_length=120)


class PriceQuoteOut(BaseModel):
    credits: int
    matched: bool
    rate_id: Optional[int] = None
    min_salary: Optional[int] = None
    message: Optional[str] = None


class PricingOptionsOut(BaseModel):
    profiles: list[str]
    seniorities: list[str]
    work_modes: list[str]
    locations: list[str]


class RateEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    profile: str
    seniority: Seniority
    work_mode: WorkMode
    location: Optional[str] = None
    credits: int
    min_salary: Optional[int] = None
    is_active: bool


class RateEntryCreate(BaseModel):
    profile: str = Field(..., min_length=1, max_length=100)
    seniority: Seniority
    work_mode: WorkMode
    location: Optional[str] = Field(default=None, max_length=120)
    credits: int = Field(..., ge=0)
    min_salary: Optional[int] = Field(default=None, ge=0)
    is_active: bool = True


class RateEntryUpdate(BaseModel):
    credits: Optional[int] = Field(default=None, ge=0)
    min_salary: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None
