from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from creditledger.models.discount_code_use import CommissionStatus


class ValidateDiscountRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=40)
    price: int = Field(..., ge=0)


class DiscountQuoteOut(BaseModel):
    valid: bool
    code: Optional[str] = None
    vendor_name: Optional[str] = None
    discount_percent: int = 0
    original_price: int
    discount_amount: int = 0
    final_price: int


class DiscountCodeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    code: str
    discount_percent: int
    commission_percent: int
    is_active: bool


class VendorCodeCreate(BaseModel):
    code: str


class VendorCodeUpdate(BaseModel):
    code: Optional[str] = None
    is_active: Optional[bool] = None


class CommissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code_id: int
    purchase_id: int
    original_price: int
    discount_amount: int
    final_price: int
    commission_amount: int
    commission_status: CommissionStatus
    payment_due_date: datetime
    paid_at: Optional[datetime] = None
    proof_url: Optional[str] = None
    created_at: Optional[datetime] = None


class StatusTotals(BaseModel):
    count: int
    total: int


class CommissionSummary(BaseModel):
    pending: StatusTotals
    paid: StatusTotals
    all: StatusTotals


class CommissionsResponse(BaseModel):
    items: list[CommissionOut]
    summary: CommissionSummary
    total: int
    page: int
    page_size: int


class VendorSalesResponse(BaseModel):
    code: Optional[DiscountCodeOut] = None
    uses: list[CommissionOut]
    summary: CommissionSummary


class MarkCommissionPaidRequest(BaseModel):
    proof_url: Optional[str] = Field(default=None, max_length=500)
