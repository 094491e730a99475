import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from creditledger.core.errors import Conflict, InvalidTransition, NotFound, ValidationError
from creditledger.models import (
    CreditPackage,
    CreditPurchase,
    CreditTransaction,
    CreditTransactionKind,
    DiscountCode,
    DiscountCodeUse,
    PurchaseStatus,
    User,
)
from creditledger.services.discounts import find_active_code, record_commission, validate_discount_code
from creditledger.services.ledger import append, get_or_create_account

logger = logging.getLogger(__name__)


@dataclass
class PurchaseCompletion:
    purchase: CreditPurchase
    transaction: Optional[CreditTransaction]
    commission: Optional[DiscountCodeUse]
    already_completed: bool = False


def list_packages(db: Session, include_inactive: bool = False) -> list[CreditPackage]:
    query = db.query(CreditPackage)
    if not include_inactive:
        query = query.filter(CreditPackage.is_active.is_(True))
    return query.order_by(CreditPackage.sort_order.asc(), CreditPackage.credits.asc()).all()


def get_package(db: Session, package_id: int) -> CreditPackage:
    package = db.query(CreditPackage).filter(CreditPackage.id == package_id).first()
    if not package:
        raise NotFound("Credit package not found")
    return package


def _validate_package_values(credits: Optional[int], price: Optional[int]) -> None:
    if credits is not None and int(credits) <= 0:
        raise ValidationError("credits must be greater than zero")
    if price is not None and int(price) < 0:
        raise ValidationError("price must be >= 0")


def create_package(
    db: Session,
    *,
    name: str,
    credits: int,
    price: int,
    is_active: bool = True,
    sort_order: int = 0,
) -> CreditPackage:
    name = str(name or "").strip()
    if not name:
        raise ValidationError("name is required")
    _validate_package_values(credits, price)
    package = CreditPackage(
        name=name,
        credits=int(credits),
        price=int(price),
        is_active=is_active,
        sort_order=sort_order,
    )
    db.add(package)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("A credit package with this name already exists")
    db.refresh(package)
    return package


def update_package(
    db: Session,
    package_id: int,
    *,
    credits: Optional[int] = None,
    price: Optional[int] = None,
    is_active: Optional[bool] = None,
    sort_order: Optional[int] = None,
) -> CreditPackage:
    package = get_package(db, package_id)
    _validate_package_values(credits, price)
    if credits is not None:
        package.credits = int(credits)
    if price is not None:
        package.price = int(price)
    if is_active is not None:
        package.is_active = is_active
    if sort_order is not None:
        package.sort_order = sort_order
    db.commit()
    db.refresh(package)
    return package


def start_purchase(
    db: Session,
    user: User,
    package_id: int,
    discount_code: Optional[str] = None,
) -> CreditPurchase:
    package = get_package(db, package_id)
    if not package.is_active:
        raise ValidationError("Credit package is not available")

    original_price = int(package.price)
    discount_amount = 0
    final_price = original_price
    code = None
    if discount_code:
        quote = validate_discount_code(db, discount_code, original_price)
        if not quote.valid:
            raise ValidationError("Invalid or inactive discount code")
        code = find_active_code(db, discount_code)
        if code.owner_id == user.id:
            raise ValidationError("You cannot use your own discount code")
        discount_amount = quote.discount_amount
        final_price = quote.final_price

    purchase = CreditPurchase(
        user_id=user.id,
        package_id=package.id,
        credits=package.credits,
        original_price=original_price,
        discount_amount=discount_amount,
        final_price=final_price,
        discount_code_id=code.id if code else None,
        status=PurchaseStatus.PENDING,
    )
    db.add(purchase)
    db.commit()
    db.refresh(purchase)
    logger.info(
        "Purchase %s started by user %s: package=%s price=%s final=%s code=%s",
        purchase.id,
        user.id,
        package.name,
        original_price,
        final_price,
        code.code if code else None,
    )
    return purchase


def get_purchase(db: Session, purchase_id: int) -> CreditPurchase:
    purchase = db.query(CreditPurchase).filter(CreditPurchase.id == purchase_id).first()
    if not purchase:
        raise NotFound("Purchase not found")
    return purchase


def _lock_purchase(db: Session, purchase_id: int) -> CreditPurchase:
    purchase = (
        db.query(CreditPurchase)
        .filter(CreditPurchase.id == purchase_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not purchase:
        raise NotFound("Purchase not found")
    return purchase


def complete_purchase(
    db: Session,
    purchase_id: int,
    payment_reference: Optional[str] = None,
) -> PurchaseCompletion:
    """Confirm payment: credit the account and record any vendor commission.

    Safe to repeat; a purchase that is already paid returns its existing
    ledger entry and commission without writing anything.
    """
    purchase = get_purchase(db, purchase_id)
    account = get_or_create_account(db, purchase.user_id)

    try:
        purchase = _lock_purchase(db, purchase_id)
        if purchase.status == PurchaseStatus.PAID:
            transaction = (
                db.query(CreditTransaction)
                .filter(CreditTransaction.purchase_id == purchase.id)
                .first()
            )
            db.rollback()
            return PurchaseCompletion(purchase, transaction, purchase.discount_use, already_completed=True)
        if purchase.status != PurchaseStatus.PENDING:
            raise InvalidTransition(f"Cannot complete a {purchase.status.value} purchase")

        now = datetime.now(timezone.utc)
        package = purchase.package
        transaction = append(
            db,
            account.id,
            CreditTransactionKind.PURCHASE,
            purchase.credits,
            f"purchase: {purchase.credits} credits ({package.name if package else 'package'})",
            purchase_id=purchase.id,
            commit=False,
        )
        purchase.status = PurchaseStatus.PAID
        purchase.paid_at = now
        if payment_reference:
            purchase.payment_reference = payment_reference[:64]

        commission = None
        if purchase.discount_code_id:
            # The discount was granted at checkout, so the commission is owed
            # even if the code was deactivated since.
            code = db.query(DiscountCode).filter(DiscountCode.id == purchase.discount_code_id).one()
            commission = record_commission(db, code, purchase, now, commit=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(purchase)
    logger.info(
        "Purchase %s completed: %s credits to account %s",
        purchase.id,
        purchase.credits,
        account.id,
    )
    return PurchaseCompletion(purchase, transaction, commission)


def fail_purchase(db: Session, purchase_id: int, reason: str = "") -> CreditPurchase:
    try:
        purchase = _lock_purchase(db, purchase_id)
        if purchase.status != PurchaseStatus.PENDING:
            raise InvalidTransition(f"Cannot fail a {purchase.status.value} purchase")
        purchase.status = PurchaseStatus.FAILED
        purchase.failure_reason = (reason or "Payment failed")[:255]
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(purchase)
    logger.warning("Purchase %s failed: %s", purchase.id, purchase.failure_reason)
    return purchase


def list_purchases(db: Session, user_id: int) -> list[CreditPurchase]:
    return (
        db.query(CreditPurchase)
        .filter(CreditPurchase.user_id == user_id)
        .order_by(CreditPurchase.id.desc())
        .all()
    )
