from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from creditledger.core.database import get_db
from creditledger.dependencies import require_admin
from creditledger.models import CommissionStatus, Seniority, User, WorkMode
from creditledger.schemas.admin import (
    CompletePurchaseRequest,
    CreditPackageCreate,
    CreditPackageUpdate,
    DiscountCodeTermsUpdate,
    FailPurchaseRequest,
    GrantCreditsRequest,
    LedgerAuditOut,
)
from creditledger.schemas.discounts import CommissionOut, CommissionsResponse, DiscountCodeOut, MarkCommissionPaidRequest
from creditledger.schemas.pricing import RateEntryCreate, RateEntryOut, RateEntryUpdate
from creditledger.schemas.credits import CreditPackageOut, CreditPurchaseOut, CreditTransactionOut, PurchaseCompletionOut
from creditledger.services import discounts, pricing, purchases
from creditledger.services.ledger import get_or_create_account, grant_credits, verify_account

router = APIRouter()


def _coerce_commission_status(value: Optional[str]) -> Optional[CommissionStatus]:
    if value is None:
        return None
    raw = value.strip()
    if not raw:
        return None
    for member in CommissionStatus:
        if raw.lower() == member.value.lower() or raw.upper() == member.name:
            return member
    raise HTTPException(status_code=400, detail="Invalid status")


def _check_paging(page: int, page_size: int) -> None:
    if page < 1:
        raise HTTPException(status_code=400, detail="page must be >= 1")
    if page_size < 1 or page_size > 200:
        raise HTTPException(status_code=400, detail="page_size must be between 1 and 200")


# Rate table


@router.get("/rates", response_model=list[RateEntryOut])
def list_rates(
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
    profile: Optional[str] = None,
    seniority: Optional[Seniority] = None,
    work_mode: Optional[WorkMode] = None,
    is_active: Optional[bool] = None,
):
    return pricing.list_rate_entries(
        db,
        profile=profile,
        seniority=seniority,
        work_mode=work_mode,
        is_active=is_active,
    )


@router.post("/rates", response_model=RateEntryOut, status_code=201)
def create_rate(payload: RateEntryCreate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    return pricing.create_rate_entry(db, **payload.model_dump())


@router.patch("/rates/{rate_id}", response_model=RateEntryOut)
def update_rate(rate_id: int, payload: RateEntryUpdate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    return pricing.update_rate_entry(db, rate_id, **payload.model_dump())


@router.post("/rates/{rate_id}/deactivate", response_model=RateEntryOut)
def deactivate_rate(rate_id: int, admin=Depends(require_admin), db: Session = Depends(get_db)):
    return pricing.deactivate_rate_entry(db, rate_id)


# Credit accounts


@router.post("/credits/grant", response_model=CreditTransactionOut)
def grant(payload: GrantCreditsRequest, admin=Depends(require_admin), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.id == payload.user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    account = get_or_create_account(db, user.id)
    return grant_credits(db, account.id, payload.amount, payload.description)


@router.get("/credits/accounts/{account_id}/audit", response_model=LedgerAuditOut)
def audit_account(account_id: int, admin=Depends(require_admin), db: Session = Depends(get_db)):
    audit = verify_account(db, account_id)
    return {
        "account_id": audit.account_id,
        "balance": audit.balance,
        "ledger_sum": audit.ledger_sum,
        "last_balance_after": audit.last_balance_after,
        "entries": audit.entries,
        "consistent": audit.consistent,
    }


# Credit packages and purchases


@router.get("/credit-packages", response_model=list[CreditPackageOut])
def list_credit_packages(admin=Depends(require_admin), db: Session = Depends(get_db)):
    return purchases.list_packages(db, include_inactive=True)


@router.post("/credit-packages", response_model=CreditPackageOut, status_code=201)
def create_credit_package(payload: CreditPackageCreate, admin=Depends(require_admin), db: Session = Depends(get_db)):
    return purchases.create_package(db, **payload.model_dump())


@router.patch("/credit-packages/{package_id}", response_model=CreditPackageOut)
def update_credit_package(
    package_id: int,
    payload: CreditPackageUpdate,
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    return purchases.update_package(db, package_id, **payload.model_dump())


@router.post("/purchases/{purchase_id}/complete", response_model=PurchaseCompletionOut)
def complete_purchase(
    purchase_id: int,
    payload: CompletePurchaseRequest,
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    completion = purchases.complete_purchase(db, purchase_id, payload.payment_reference)
    account = get_or_create_account(db, completion.purchase.user_id)
    return {
        "purchase": completion.purchase,
        "credits_added": 0 if completion.already_completed else completion.purchase.credits,
        "new_balance": account.balance,
        "commission_id": completion.commission.id if completion.commission else None,
        "already_completed": completion.already_completed,
    }


@router.post("/purchases/{purchase_id}/fail", response_model=CreditPurchaseOut)
def fail_purchase(
    purchase_id: int,
    payload: FailPurchaseRequest,
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    return purchases.fail_purchase(db, purchase_id, payload.reason)


# Vendors and commissions


@router.get("/vendors/codes", response_model=list[DiscountCodeOut])
def list_vendor_codes(admin=Depends(require_admin), db: Session = Depends(get_db)):
    return discounts.list_codes(db)


@router.patch("/vendors/codes/{code_id}", response_model=DiscountCodeOut)
def update_vendor_code_terms(
    code_id: int,
    payload: DiscountCodeTermsUpdate,
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    return discounts.set_code_terms(db, code_id, **payload.model_dump())


@router.get("/vendors/commissions", response_model=CommissionsResponse)
def list_commissions(
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
    status: Optional[str] = None,
    vendor_id: Optional[int] = None,
    page: int = 1,
    page_size: int = 20,
):
    _check_paging(page, page_size)
    status_enum = _coerce_commission_status(status)
    items, total = discounts.list_commissions(
        db,
        status=status_enum,
        vendor_id=vendor_id,
        page=page,
        page_size=page_size,
    )
    return {
        "items": items,
        "summary": discounts.commission_summary(db, vendor_id=vendor_id),
        "total": total,
        "page": page,
        "page_size": page_size,
    }


@router.post("/vendors/commissions/{use_id}/paid", response_model=CommissionOut)
def mark_commission_paid(
    use_id: int,
    payload: MarkCommissionPaidRequest,
    admin=Depends(require_admin),
    db: Session = Depends(get_db),
):
    return discounts.mark_commission_paid(db, use_id, payload.proof_url)
