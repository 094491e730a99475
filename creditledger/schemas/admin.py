from typing import Optional

from pydantic import BaseModel, Field


class GrantCreditsRequest(BaseModel):
    user_id: int
    amount: int = Field(..., gt=0)
    description: str = Field(default="manual adjustment", max_length=200)


class LedgerAuditOut(BaseModel):
    account_id: int
    balance: int
    ledger_sum: int
    last_balance_after: int
    entries: int
    consistent: bool


class CreditPackageCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    credits: int = Field(..., gt=0)
    price: int = Field(..., ge=0)
    is_active: bool = True
    sort_order: int = 0


class CreditPackageUpdate(BaseModel):
    credits: Optional[int] = Field(default=None, gt=0)
    price: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class DiscountCodeTermsUpdate(BaseModel):
    discount_percent: Optional[int] = Field(default=None, ge=0, le=100)
    commission_percent: Optional[int] = Field(default=None, ge=0, le=100)
    is_active: Optional[bool] = None


class FailPurchaseRequest(BaseModel):
    reason: str = Field(default="Payment failed", max_length=255)


class CompletePurchaseRequest(BaseModel):
    payment_reference: Optional[str] = Field(default=None, max_length=64)
