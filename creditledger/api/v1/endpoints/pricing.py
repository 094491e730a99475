from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from creditledger.core.database import get_db
from creditledger.dependencies import get_current_user
from creditledger.models import User
from creditledger.schemas.pricing import PriceQuoteOut, PriceRequest, PricingOptionsOut
from creditledger.services.pricing import pricing_options, resolve_cost

router = APIRouter()


@router.post("/calculate", response_model=PriceQuoteOut)
def calculate_price(payload: PriceRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    quote = resolve_cost(db, payload.profile, payload.seniority, payload.work_mode, payload.location)
    return {
        "credits": quote.credits,
        "matched": quote.matched,
        "rate_id": quote.rate_id,
        "min_salary": quote.min_salary,
        "message": None if quote.matched else "No configured rate for this combination; default price applied",
    }


@router.get("/options", response_model=PricingOptionsOut)
def get_pricing_options(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return pricing_options(db)
