from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from creditledger.core.database import get_db
from creditledger.dependencies import require_role
from creditledger.models import User, UserRole
from creditledger.schemas.discounts import (
    DiscountCodeOut,
    VendorCodeCreate,
    VendorCodeUpdate,
    VendorSalesResponse,
)
from creditledger.services.discounts import create_vendor_code, get_vendor_code, update_vendor_code, vendor_sales

router = APIRouter()
vendor_user = require_role(UserRole.VENDOR)


@router.get("/my-code", response_model=DiscountCodeOut | None)
def get_my_code(user: User = Depends(vendor_user), db: Session = Depends(get_db)):
    return get_vendor_code(db, user.id)


@router.post("/my-code", response_model=DiscountCodeOut, status_code=201)
def create_my_code(payload: VendorCodeCreate, user: User = Depends(vendor_user), db: Session = Depends(get_db)):
    return create_vendor_code(db, user, payload.code)


@router.put("/my-code", response_model=DiscountCodeOut)
def update_my_code(payload: VendorCodeUpdate, user: User = Depends(vendor_user), db: Session = Depends(get_db)):
    return update_vendor_code(db, user, code=payload.code, is_active=payload.is_active)


@router.get("/my-sales", response_model=VendorSalesResponse)
def get_my_sales(user: User = Depends(vendor_user), db: Session = Depends(get_db)):
    return vendor_sales(db, user)
