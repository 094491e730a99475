from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from creditledger.models.credit_purchase import PurchaseStatus
from creditledger.models.credit_transaction import CreditTransactionKind


class CreditAccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    balance: int


class CreditTransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: Optional[datetime] = None
    kind: CreditTransactionKind
    amount: int
    balance_before: int
    balance_after: int
    description: str
    job_id: Optional[int] = None
    purchase_id: Optional[int] = None


class CreditTransactionsResponse(BaseModel):
    items: list[CreditTransactionOut]
    total: int
    page: int
    page_size: int


class CreditPackageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    credits: int
    price: int
    price_per_credit: int
    is_active: bool
    sort_order: int


class PurchaseRequest(BaseModel):
    package_id: int
    discount_code: Optional[str] = Field(default=None, max_length=20)


class CreditPurchaseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    package_id: int
    credits: int
    original_price: int
    discount_amount: int
    final_price: int
    discount_code_id: Optional[int] = None
    status: PurchaseStatus
    payment_reference: Optional[str] = None
    failure_reason: Optional[str] = None
    paid_at: Optional[datetime] = None


class PurchaseCompletionOut(BaseModel):
    purchase: CreditPurchaseOut
    credits_added: int
    new_balance: int
    commission_id: Optional[int] = None
    already_completed: bool = False
