from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from creditledger.core.database import get_db
from creditledger.dependencies import get_current_user, require_role
from creditledger.middlewares.rate_limit import limiter
from creditledger.models import User, UserRole
from creditledger.schemas.credits import (
    CreditAccountOut,
    CreditPackageOut,
    CreditPurchaseOut,
    CreditTransactionsResponse,
    PurchaseRequest,
)
from creditledger.services.ledger import count_transactions, get_or_create_account, list_transactions
from creditledger.services.purchases import list_packages, list_purchases, start_purchase

router = APIRouter()
company_user = require_role(UserRole.COMPANY)


@router.get("/me", response_model=CreditAccountOut)
def get_account(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_or_create_account(db, user.id)


@router.get("/transactions", response_model=CreditTransactionsResponse)
def get_transactions(
    page: int = 1,
    page_size: int = 50,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if page < 1:
        raise HTTPException(status_code=400, detail="page must be >= 1")
    if page_size < 1 or page_size > 200:
        raise HTTPException(status_code=400, detail="page_size must be between 1 and 200")
    account = get_or_create_account(db, user.id)
    items = list_transactions(db, account.id, limit=page_size, offset=(page - 1) * page_size)
    return {
        "items": items,
        "total": count_transactions(db, account.id),
        "page": page,
        "page_size": page_size,
    }


@router.get("/packages", response_model=list[CreditPackageOut])
def get_packages(db: Session = Depends(get_db)):
    return list_packages(db)


@router.get("/purchases", response_model=list[CreditPurchaseOut])
def get_purchases(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return list_purchases(db, user.id)


@router.post("/purchases", response_model=CreditPurchaseOut, status_code=201)
@limiter.limit("10/minute")
def create_purchase(
    request: Request,
    payload: PurchaseRequest,
    user: User = Depends(company_user),
    db: Session = Depends(get_db),
):
    return start_purchase(db, user, payload.package_id, payload.discount_code)
