from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from creditledger.core.database import get_db
from creditledger.middlewares.rate_limit import limiter
from creditledger.schemas.discounts import DiscountQuoteOut, ValidateDiscountRequest
from creditledger.services.discounts import validate_discount_code

router = APIRouter()


@router.post("/validate", response_model=DiscountQuoteOut)
@limiter.limit("20/minute")
def validate_code(request: Request, payload: ValidateDiscountRequest, db: Session = Depends(get_db)):
    quote = validate_discount_code(db, payload.code, payload.price)
    return {
        "valid": quote.valid,
        "code": quote.code,
        "vendor_name": quote.vendor_name,
        "discount_percent": quote.discount_percent,
        "original_price": quote.original_price,
        "discount_amount": quote.discount_amount,
        "final_price": quote.final_price,
    }
