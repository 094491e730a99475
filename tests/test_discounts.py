from datetime import datetime, timezone

import pytest
from sqlalchemy.dialects import postgresql

from creditledger.core.config import get_settings
from creditledger.core.errors import Conflict, NotFound, ValidationError
from creditledger.models import CommissionStatus, CreditPackage, CreditPurchase, PurchaseStatus, UserRole
from creditledger.services import discounts


@pytest.fixture
def vendor_code(db, make_user):
    vendor = make_user(role=UserRole.VENDOR)
    return discounts.create_vendor_code(db, vendor, "launch10")


def _purchase(db, user, code, price, discount_amount):
    package = db.query(CreditPackage).filter(CreditPackage.name == "Starter").first()
    if package is None:
        package = CreditPackage(name="Starter", credits=10, price=price, is_active=True)
        db.add(package)
        db.commit()
    purchase = CreditPurchase(
        user_id=user.id,
        package_id=package.id,
        credits=10,
        original_price=price,
        discount_amount=discount_amount,
        final_price=price - discount_amount,
        discount_code_id=code.id,
        status=PurchaseStatus.PAID,
    )
    db.add(purchase)
    db.commit()
    return purchase


@pytest.mark.parametrize(
    "price,percent,expected",
    [
        (1000, 10, 100),
        (995, 10, 100),  # 99.5 rounds half up
        (994, 10, 99),
        (15, 10, 2),  # 1.5 rounds half up
        (0, 25, 0),
    ],
)
def test_percent_of_rounds_half_up(price, percent, expected):
    assert discounts.percent_of(price, percent) == expected


def test_code_is_stored_upper_case_with_default_terms(vendor_code):
    assert vendor_code.code == "LAUNCH10"
    assert vendor_code.discount_percent == get_settings().vendor_default_discount_percent
    assert vendor_code.commission_percent == get_settings().vendor_default_commission_percent
    assert vendor_code.is_active is True


@pytest.mark.parametrize("code", ["abc", "x" * 21, "with space", "dash-code", ""])
def test_malformed_codes_are_rejected(db, make_user, code):
    vendor = make_user(role=UserRole.VENDOR)
    with pytest.raises(ValidationError):
        discounts.create_vendor_code(db, vendor, code)


def test_one_code_per_vendor_and_globally_unique(db, make_user, vendor_code):
    with pytest.raises(Conflict):
        discounts.create_vendor_code(db, vendor_code.owner, "SECOND1")
    other = make_user(role=UserRole.VENDOR)
    with pytest.raises(Conflict):
        discounts.create_vendor_code(db, other, "Launch10")


def test_only_vendors_own_codes(db, make_user):
    company = make_user()
    with pytest.raises(ValidationError):
        discounts.create_vendor_code(db, company, "COMPANY1")


def test_validate_applies_discount(db, vendor_code):
    quote = discounts.validate_discount_code(db, "launch10", 995)

    assert quote.valid is True
    assert quote.discount_percent == 10
    assert quote.discount_amount == 100
    assert quote.final_price == 895
    assert quote.final_price + quote.discount_amount == quote.original_price
    assert quote.code == "LAUNCH10"


@pytest.mark.parametrize("price", [0, 1, 7, 99, 995, 12345])
def test_final_price_plus_discount_equals_original(db, vendor_code, price):
    discounts.set_code_terms(db, vendor_code.id, discount_percent=33)
    quote = discounts.validate_discount_code(db, "LAUNCH10", price)
    assert quote.final_price + quote.discount_amount == price


def test_unknown_and_inactive_codes_look_the_same(db, make_user, vendor_code):
    discounts.update_vendor_code(db, vendor_code.owner, is_active=False)

    inactive = discounts.validate_discount_code(db, "LAUNCH10", 1000)
    unknown = discounts.validate_discount_code(db, "NOSUCH99", 1000)

    assert inactive == unknown
    assert unknown.valid is False
    assert unknown.final_price == 1000


def test_record_commission_once_per_purchase(db, make_user, vendor_code):
    buyer = make_user()
    purchase = _purchase(db, buyer, vendor_code, 1000, 100)
    purchase_date = datetime(2026, 1, 31, 12, 0, tzinfo=timezone.utc)

    use = discounts.record_commission(db, vendor_code, purchase, purchase_date)
    again = discounts.record_commission(db, vendor_code, purchase, purchase_date)

    assert again.id == use.id
    assert use.commission_status == CommissionStatus.PENDING
    assert use.commission_amount == 90  # 10% of the final price 900
    assert use.payment_due_date.replace(tzinfo=None) == datetime(2026, 5, 31, 12, 0)


def test_commission_on_original_price_when_configured(db, make_user, vendor_code, monkeypatch):
    monkeypatch.setattr(get_settings(), "commission_base", "original_price")
    buyer = make_user()
    purchase = _purchase(db, buyer, vendor_code, 1000, 100)

    use = discounts.record_commission(db, vendor_code, purchase)

    assert use.commission_amount == 100


def test_mark_paid_is_idempotent(db, make_user, vendor_code):
    buyer = make_user()
    use = discounts.record_commission(db, vendor_code, _purchase(db, buyer, vendor_code, 1000, 100))

    first = discounts.mark_commission_paid(db, use.id, "https://files.example.com/proof.pdf")
    paid_at = first.paid_at
    second = discounts.mark_commission_paid(db, use.id)

    assert second.commission_status == CommissionStatus.PAID
    assert second.paid_at == paid_at
    assert second.proof_url == "https://files.example.com/proof.pdf"
    summary = discounts.commission_summary(db)
    assert summary["paid"] == {"count": 1, "total": 90}
    assert summary["pending"] == {"count": 0, "total": 0}


def test_mark_paid_unknown_record(db):
    with pytest.raises(NotFound):
        discounts.mark_commission_paid(db, 404)


def test_summary_pending_plus_paid_equals_all(db, make_user, vendor_code):
    other_vendor = make_user(role=UserRole.VENDOR)
    other_code = discounts.create_vendor_code(db, other_vendor, "OTHER20")
    buyer = make_user()
    uses = [
        discounts.record_commission(db, vendor_code, _purchase(db, buyer, vendor_code, price, 0))
        for price in (1000, 2500, 333)
    ]
    discounts.record_commission(db, other_code, _purchase(db, buyer, other_code, 5000, 0))
    discounts.mark_commission_paid(db, uses[1].id)
    discounts.mark_commission_paid(db, uses[1].id)

    summary = discounts.commission_summary(db)
    assert summary["pending"]["total"] + summary["paid"]["total"] == summary["all"]["total"]
    assert summary["all"] == {"count": 4, "total": 100 + 250 + 33 + 500}
    assert summary["paid"] == {"count": 1, "total": 250}

    vendor_only = discounts.commission_summary(db, vendor_id=vendor_code.owner_id)
    assert vendor_only["all"]["count"] == 3

    items, total = discounts.list_commissions(db, vendor_id=vendor_code.owner_id)
    assert total == 3
    assert [item.commission_status for item in items] == [
        CommissionStatus.PENDING,
        CommissionStatus.PENDING,
        CommissionStatus.PAID,
    ]


def test_vendor_sales_view(db, make_user, vendor_code):
    buyer = make_user()
    discounts.record_commission(db, vendor_code, _purchase(db, buyer, vendor_code, 1000, 100))

    sales = discounts.vendor_sales(db, vendor_code.owner)

    assert sales["code"].id == vendor_code.id
    assert len(sales["uses"]) == 1
    assert sales["summary"]["pending"] == {"count": 1, "total": 90}


def test_admin_sets_terms(db, vendor_code):
    updated = discounts.set_code_terms(db, vendor_code.id, discount_percent=20, commission_percent=15)
    assert (updated.discount_percent, updated.commission_percent) == (20, 15)
    with pytest.raises(ValidationError):
        discounts.set_code_terms(db, vendor_code.id, commission_percent=101)


def test_pending_first_ranks_by_status_not_enum_order(db, make_user, vendor_code):
    buyer = make_user()
    older = discounts.record_commission(db, vendor_code, _purchase(db, buyer, vendor_code, 1000, 0))
    newer = discounts.record_commission(db, vendor_code, _purchase(db, buyer, vendor_code, 2000, 0))
    discounts.mark_commission_paid(db, newer.id)

    items, _ = discounts.list_commissions(db)
    assert [item.id for item in items] == [older.id, newer.id]

    # Postgres sorts native enums by declaration order, so the key must be a CASE.
    compiled = str(discounts._pending_first().compile(dialect=postgresql.dialect()))
    assert compiled.startswith("CASE WHEN")
