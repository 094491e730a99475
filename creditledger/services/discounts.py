import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from creditledger.core.config import get_settings
from creditledger.core.errors import Conflict, NotFound, ValidationError
from creditledger.models import (
    CommissionStatus,
    CreditPurchase,
    DiscountCode,
    DiscountCodeUse,
    User,
    UserRole,
)

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"^[A-Za-z0-9]{4,20}$")


@dataclass(frozen=True)
class DiscountQuote:
    valid: bool
    original_price: int
    discount_percent: int = 0
    discount_amount: int = 0
    final_price: int = 0
    code: Optional[str] = None
    vendor_name: Optional[str] = None


def round_half_up(value: Decimal) -> int:
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount: int, percent: int) -> int:
    return round_half_up(Decimal(int(amount)) * Decimal(int(percent)) / Decimal(100))


def normalize_code(code: str) -> str:
    return str(code or "").strip().upper()


def validate_code_format(code: str) -> str:
    normalized = normalize_code(code)
    if not normalized:
        raise ValidationError("Discount code is required")
    if not CODE_PATTERN.match(normalized):
        raise ValidationError("Discount code must be 4-20 letters or digits")
    return normalized


def _validate_percent(name: str, value: int) -> int:
    value = int(value)
    if value < 0 or value > 100:
        raise ValidationError(f"{name} must be between 0 and 100")
    return value


def _validate_price(price: int) -> int:
    price = int(price)
    if price < 0:
        raise ValidationError("price must be >= 0")
    return price


def find_active_code(db: Session, code: str) -> Optional[DiscountCode]:
    return (
        db.query(DiscountCode)
        .filter(DiscountCode.code == normalize_code(code), DiscountCode.is_active.is_(True))
        .first()
    )


def validate_discount_code(db: Session, code: str, price: int) -> DiscountQuote:
    """Price ``price`` with a vendor code.

    Unknown and inactive codes both come back as ``valid=False`` with the
    price unchanged; the caller cannot tell them apart.
    """
    price = _validate_price(price)
    discount_code = find_active_code(db, validate_code_format(code))
    if discount_code is None:
        return DiscountQuote(valid=False, original_price=price, final_price=price)

    discount_amount = percent_of(price, discount_code.discount_percent)
    owner = discount_code.owner
    return DiscountQuote(
        valid=True,
        original_price=price,
        discount_percent=discount_code.discount_percent,
        discount_amount=discount_amount,
        final_price=price - discount_amount,
        code=discount_code.code,
        vendor_name=owner.full_name if owner else None,
    )


def get_vendor_code(db: Session, vendor_id: int) -> Optional[DiscountCode]:
    return db.query(DiscountCode).filter(DiscountCode.owner_id == vendor_id).first()


def _ensure_code_available(db: Session, code: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(DiscountCode).filter(DiscountCode.code == code)
    if exclude_id is not None:
        query = query.filter(DiscountCode.id != exclude_id)
    if query.first() is not None:
        raise Conflict("This discount code is already in use")


def create_vendor_code(db: Session, vendor: User, code: str) -> DiscountCode:
    if vendor.role != UserRole.VENDOR:
        raise ValidationError("Only vendors can own a discount code")
    normalized = validate_code_format(code)
    if get_vendor_code(db, vendor.id) is not None:
        raise Conflict("Vendor already has a discount code")
    _ensure_code_available(db, normalized)

    settings = get_settings()
    discount_code = DiscountCode(
        owner_id=vendor.id,
        code=normalized,
        discount_percent=_validate_percent("discount_percent", settings.vendor_default_discount_percent),
        commission_percent=_validate_percent("commission_percent", settings.vendor_default_commission_percent),
        is_active=True,
    )
    db.add(discount_code)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("This discount code is already in use")
    db.refresh(discount_code)
    logger.info("Vendor %s created discount code %s", vendor.id, discount_code.code)
    return discount_code


def update_vendor_code(
    db: Session,
    vendor: User,
    *,
    code: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> DiscountCode:
    discount_code = get_vendor_code(db, vendor.id)
    if discount_code is None:
        raise NotFound("Vendor has no discount code")
    normalized = None
    if code is not None:
        normalized = validate_code_format(code)
        _ensure_code_available(db, normalized, exclude_id=discount_code.id)

    if normalized is not None:
        discount_code.code = normalized
    if is_active is not None:
        discount_code.is_active = is_active
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("This discount code is already in use")
    db.refresh(discount_code)
    logger.info(
        "Vendor %s updated discount code %s active=%s",
        vendor.id,
        discount_code.code,
        discount_code.is_active,
    )
    return discount_code


def set_code_terms(
    db: Session,
    code_id: int,
    *,
    discount_percent: Optional[int] = None,
    commission_percent: Optional[int] = None,
    is_active: Optional[bool] = None,
) -> DiscountCode:
    discount_code = db.query(DiscountCode).filter(DiscountCode.id == code_id).first()
    if discount_code is None:
        raise NotFound("Discount code not found")
    if discount_percent is not None:
        discount_percent = _validate_percent("discount_percent", discount_percent)
    if commission_percent is not None:
        commission_percent = _validate_percent("commission_percent", commission_percent)

    if discount_percent is not None:
        discount_code.discount_percent = discount_percent
    if commission_percent is not None:
        discount_code.commission_percent = commission_percent
    if is_active is not None:
        discount_code.is_active = is_active
    db.commit()
    db.refresh(discount_code)
    return discount_code


def list_codes(db: Session) -> list[DiscountCode]:
    return db.query(DiscountCode).order_by(DiscountCode.id.asc()).all()


def commission_for(original_price: int, final_price: int, commission_percent: int) -> int:
    base = final_price if get_settings().commission_base == "final_price" else original_price
    return percent_of(base, commission_percent)


def record_commission(
    db: Session,
    code: DiscountCode,
    purchase: CreditPurchase,
    purchase_date: Optional[datetime] = None,
    *,
    commit: bool = True,
) -> DiscountCodeUse:
    """Create the commission owed for ``purchase``; at most one per purchase."""
    existing = db.query(DiscountCodeUse).filter(DiscountCodeUse.purchase_id == purchase.id).first()
    if existing is not None:
        return existing

    settings = get_settings()
    purchase_date = purchase_date or datetime.now(timezone.utc)
    use = DiscountCodeUse(
        code_id=code.id,
        purchase_id=purchase.id,
        original_price=purchase.original_price,
        discount_amount=purchase.discount_amount,
        final_price=purchase.final_price,
        commission_amount=commission_for(purchase.original_price, purchase.final_price, code.commission_percent),
        commission_status=CommissionStatus.PENDING,
        payment_due_date=purchase_date + relativedelta(months=settings.commission_payment_delay_months),
    )
    db.add(use)
    db.flush()
    if commit:
        db.commit()
        db.refresh(use)
    logger.info(
        "Commission recorded: code=%s purchase=%s amount=%s due=%s",
        code.code,
        purchase.id,
        use.commission_amount,
        use.payment_due_date,
    )
    return use


def get_commission(db: Session, use_id: int) -> DiscountCodeUse:
    use = db.query(DiscountCodeUse).filter(DiscountCodeUse.id == use_id).first()
    if use is None:
        raise NotFound("Commission record not found")
    return use


def mark_commission_paid(db: Session, use_id: int, proof_url: Optional[str] = None) -> DiscountCodeUse:
    """Pending -> Paid. Repeating it keeps the original ``paid_at``."""
    try:
        use = (
            db.query(DiscountCodeUse)
            .filter(DiscountCodeUse.id == use_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if use is None:
            raise NotFound("Commission record not found")
        already_paid = use.commission_status == CommissionStatus.PAID
        if not already_paid:
            use.commission_status = CommissionStatus.PAID
            use.paid_at = datetime.now(timezone.utc)
        if proof_url is not None:
            use.proof_url = proof_url.strip() or None
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(use)
    if not already_paid:
        logger.info("Commission %s marked paid (amount=%s)", use.id, use.commission_amount)
    return use


def _commission_query(db: Session, status: Optional[CommissionStatus] = None, vendor_id: Optional[int] = None):
    query = db.query(DiscountCodeUse)
    if vendor_id is not None:
        query = query.join(DiscountCode, DiscountCodeUse.code_id == DiscountCode.id).filter(
            DiscountCode.owner_id == vendor_id
        )
    if status is not None:
        query = query.filter(DiscountCodeUse.commission_status == status)
    return query


def _pending_first():
    # Native enums sort by declaration order on Postgres, so rank explicitly.
    return case((DiscountCodeUse.commission_status == CommissionStatus.PENDING, 0), else_=1)


def list_commissions(
    db: Session,
    *,
    status: Optional[CommissionStatus] = None,
    vendor_id: Optional[int] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[DiscountCodeUse], int]:
    query = _commission_query(db, status, vendor_id)
    total = query.count()
    # Pending first, newest first within each status.
    items = (
        query.order_by(_pending_first(), DiscountCodeUse.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return items, total


def commission_summary(db: Session, vendor_id: Optional[int] = None) -> dict:
    """Totals per status, summed from ``commission_status`` only."""
    summary = {}
    for status in CommissionStatus:
        query = _commission_query(db, status, vendor_id)
        count, total = query.with_entities(
            func.count(DiscountCodeUse.id),
            func.coalesce(func.sum(DiscountCodeUse.commission_amount), 0),
        ).one()
        summary[status.value] = {"count": int(count or 0), "total": int(total or 0)}
    summary["all"] = {
        "count": sum(item["count"] for item in summary.values()),
        "total": sum(item["total"] for item in summary.values()),
    }
    return summary


def vendor_sales(db: Session, vendor: User) -> dict:
    discount_code = get_vendor_code(db, vendor.id)
    if discount_code is None:
        return {"code": None, "uses": [], "summary": commission_summary(db, vendor_id=vendor.id)}
    uses = (
        db.query(DiscountCodeUse)
        .filter(DiscountCodeUse.code_id == discount_code.id)
        .order_by(DiscountCodeUse.id.desc())
        .all()
    )
    return {
        "code": discount_code,
        "uses": uses,
        "summary": commission_summary(db, vendor_id=vendor.id),
    }
