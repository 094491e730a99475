from datetime import datetime, timedelta, timezone

import pytest

from creditledger.core.config import get_settings
from creditledger.core.errors import (
    EditWindowClosed,
    InsufficientCredits,
    InvalidRateConfiguration,
    InvalidTransition,
    PermissionDenied,
    ValidationError,
)
from creditledger.models import (
    ClosedReason,
    CreditTransaction,
    CreditTransactionKind,
    JobPosting,
    JobStatus,
    Seniority,
    UserRole,
    WorkMode,
)
from creditledger.services import postings
from creditledger.services.ledger import get_or_create_account, verify_account
from creditledger.services.postings import PostingChanges


@pytest.fixture
def rates(make_rate):
    return {
        Seniority.JR: make_rate(seniority=Seniority.JR, credits=6),
        Seniority.DIRECTOR: make_rate(seniority=Seniority.DIRECTOR, credits=10),
    }


def _create(db, user, seniority=Seniority.JR, publish_now=False, **overrides):
    fields = {
        "title": "Backend Engineer",
        "profile": "Tech",
        "seniority": seniority,
        "work_mode": WorkMode.REMOTE,
        "salary_min": 2000,
        "salary_max": 4000,
    }
    fields.update(overrides)
    result = postings.create_posting(db, user, publish_now=publish_now, **fields)
    return result.posting if publish_now else result


def _ledger(db, user):
    account = get_or_create_account(db, user.id)
    return (
        db.query(CreditTransaction)
        .filter(CreditTransaction.account_id == account.id)
        .order_by(CreditTransaction.id.asc())
        .all()
    )


def test_create_draft_costs_nothing(db, make_user, rates, balance_of):
    user = make_user(balance=10)

    posting = _create(db, user)

    assert posting.status == JobStatus.DRAFT
    assert posting.credit_cost == 0
    assert balance_of(user) == 10


def test_publish_charges_resolved_cost(db, make_user, rates, balance_of):
    user = make_user(balance=10)
    posting = _create(db, user)

    result = postings.publish(db, posting.id, user)

    assert result.posting.status == JobStatus.ACTIVE
    assert result.posting.credit_cost == 6
    assert result.posting.rate_entry_id == rates[Seniority.JR].id
    assert result.transaction.amount == -6
    assert result.transaction.description == "publish: Backend Engineer"
    assert result.transaction.job_id == posting.id
    assert result.posting.editable_until is not None
    assert balance_of(user) == 4


def test_publish_with_insufficient_credits_changes_nothing(db, make_user, rates, balance_of):
    user = make_user(balance=5)
    posting = _create(db, user)

    with pytest.raises(InsufficientCredits) as exc_info:
        postings.publish(db, posting.id, user)

    assert exc_info.value.required == 6
    assert exc_info.value.available == 5
    assert exc_info.value.missing == 1
    db.expire_all()
    assert db.get(JobPosting, posting.id).status == JobStatus.DRAFT
    assert balance_of(user) == 5


def test_publish_twice_is_rejected(db, make_user, rates):
    user = make_user(balance=20)
    posting = _create(db, user, publish_now=True)

    with pytest.raises(InvalidTransition):
        postings.publish(db, posting.id, user)
    assert len(_ledger(db, user)) == 2


def test_draft_needs_no_rate_when_fallback_disabled(db, make_user, balance_of, monkeypatch):
    monkeypatch.setattr(get_settings(), "pricing_fallback_enabled", False)
    user = make_user(balance=10)

    posting = _create(db, user, profile="Unpriced", salary_min=None, salary_max=None)

    assert posting.status == JobStatus.DRAFT
    assert posting.credit_cost == 0
    with pytest.raises(InvalidRateConfiguration):
        postings.publish(db, posting.id, user)
    db.expire_all()
    assert db.get(JobPosting, posting.id).status == JobStatus.DRAFT
    assert balance_of(user) == 10


def test_publish_unpriced_combination_uses_default(db, make_user, balance_of):
    user = make_user(balance=10)
    posting = _create(db, user, profile="Legal")

    result = postings.publish(db, posting.id, user)

    assert result.quote.matched is False
    assert result.posting.credit_cost == 5
    assert balance_of(user) == 5


def test_admin_owned_posting_is_not_charged(db, make_user, rates):
    admin = make_user(role=UserRole.ADMIN)

    result = postings.create_posting(
        db,
        admin,
        title="Platform Lead",
        profile="Tech",
        seniority=Seniority.JR,
        work_mode=WorkMode.REMOTE,
        publish_now=True,
    )

    assert result.transaction is None
    assert result.posting.status == JobStatus.ACTIVE
    assert result.posting.credit_cost == 6
    assert db.query(CreditTransaction).count() == 0


def test_upgrade_charges_difference(db, make_user, rates, balance_of):
    user = make_user(balance=26)
    posting = _create(db, user, publish_now=True)
    assert balance_of(user) == 20

    result = postings.edit_posting(db, posting.id, PostingChanges({"seniority": Seniority.DIRECTOR}), user)

    assert result.credit_change.action == "charged"
    assert result.credit_change.difference == 4
    assert result.posting.credit_cost == 10
    assert result.posting.seniority == Seniority.DIRECTOR
    assert balance_of(user) == 16
    last = _ledger(db, user)[-1]
    assert last.kind == CreditTransactionKind.SPEND
    assert last.amount == -4
    assert last.description == "edit adjustment: Backend Engineer (jr → director)"
    assert verify_account(db, last.account_id).consistent


def test_adjustment_description_uses_the_edited_title(db, make_user, rates):
    user = make_user(balance=26)
    posting = _create(db, user, title="Old", publish_now=True)

    changes = PostingChanges({"title": "New", "seniority": Seniority.DIRECTOR})
    postings.edit_posting(db, posting.id, changes, user)

    assert _ledger(db, user)[-1].description == "edit adjustment: New (jr → director)"


def test_downgrade_refunds_difference(db, make_user, rates, balance_of):
    user = make_user(balance=20)
    posting = _create(db, user, seniority=Seniority.DIRECTOR, publish_now=True)
    assert balance_of(user) == 10

    result = postings.edit_posting(db, posting.id, PostingChanges({"seniority": Seniority.JR}), user)

    assert result.credit_change.action == "refunded"
    assert result.credit_change.amount == 4
    assert result.posting.credit_cost == 6
    assert balance_of(user) == 14
    last = _ledger(db, user)[-1]
    assert last.kind == CreditTransactionKind.REFUND
    assert last.amount == 4
    assert last.description.startswith("edit refund: Backend Engineer")


def test_upgrade_without_credits_is_all_or_nothing(db, make_user, rates, balance_of):
    user = make_user(balance=8)
    posting = _create(db, user, publish_now=True)
    assert balance_of(user) == 2
    entries_before = len(_ledger(db, user))

    changes = PostingChanges({"seniority": Seniority.DIRECTOR, "title": "Head of Engineering"})
    with pytest.raises(InsufficientCredits) as exc_info:
        postings.edit_posting(db, posting.id, changes, user)

    assert exc_info.value.required == 4
    assert exc_info.value.available == 2
    db.expire_all()
    stored = db.get(JobPosting, posting.id)
    assert stored.seniority == Seniority.JR
    assert stored.title == "Backend Engineer"
    assert stored.credit_cost == 6
    assert balance_of(user) == 2
    assert len(_ledger(db, user)) == entries_before


def test_same_price_edit_writes_no_entry(db, make_user, make_rate, balance_of):
    make_rate(seniority=Seniority.JR, credits=6)
    make_rate(seniority=Seniority.MIDDLE, credits=6)
    user = make_user(balance=10)
    posting = _create(db, user, publish_now=True)
    entries_before = len(_ledger(db, user))

    result = postings.edit_posting(
        db,
        posting.id,
        PostingChanges({"seniority": Seniority.MIDDLE, "title": "Mid Backend"}),
        user,
    )

    assert result.credit_change is None
    assert result.posting.title == "Mid Backend"
    assert result.posting.seniority == Seniority.MIDDLE
    assert len(_ledger(db, user)) == entries_before
    assert balance_of(user) == 4


@pytest.mark.parametrize(
    "changes",
    [
        {"description": "Remote-first team"},
        {"title": "Senior Backend Engineer"},
        {"location": "Lagos"},
        {"seniority": Seniority.JR},
        {"salary_min": 2500},
    ],
)
def test_non_pricing_edits_never_touch_credits(db, make_user, make_rate, rates, balance_of, changes):
    make_rate(seniority=Seniority.JR, credits=9, location="Lagos")
    user = make_user(balance=10)
    posting = _create(db, user, publish_now=True)
    entries_before = len(_ledger(db, user))

    result = postings.edit_posting(db, posting.id, PostingChanges(changes), user)

    assert result.credit_change is None
    assert result.posting.credit_cost == 6
    assert len(_ledger(db, user)) == entries_before
    assert balance_of(user) == 4


def test_draft_edits_never_touch_credits(db, make_user, rates, balance_of):
    user = make_user(balance=10)
    posting = _create(db, user)

    result = postings.edit_posting(db, posting.id, PostingChanges({"seniority": Seniority.DIRECTOR}), user)

    assert result.credit_change is None
    assert result.posting.credit_cost == 0
    assert result.posting.seniority == Seniority.DIRECTOR
    assert balance_of(user) == 10
    # The new attributes are priced at publish time.
    assert postings.publish(db, posting.id, user).posting.credit_cost == 10


@pytest.mark.parametrize("target", ["pause", "close"])
def test_paused_and_closed_edits_never_touch_credits(db, make_user, rates, balance_of, target):
    user = make_user(balance=10)
    posting = _create(db, user, publish_now=True)
    if target == "pause":
        postings.pause(db, posting.id, user)
    else:
        postings.close(db, posting.id, user, ClosedReason.CANCELLED)
    entries_before = len(_ledger(db, user))

    result = postings.edit_posting(db, posting.id, PostingChanges({"seniority": Seniority.DIRECTOR}), user)

    assert result.credit_change is None
    assert result.posting.credit_cost == 6
    assert len(_ledger(db, user)) == entries_before
    assert balance_of(user) == 4


def test_admin_owned_edit_is_waived(db, make_user, rates):
    admin = make_user(role=UserRole.ADMIN)
    posting = _create(db, admin, publish_now=True)

    result = postings.edit_posting(db, posting.id, PostingChanges({"seniority": Seniority.DIRECTOR}), admin)

    assert result.credit_change.action == "waived"
    assert result.credit_change.transaction_id is None
    assert result.posting.credit_cost == 10
    assert db.query(CreditTransaction).count() == 0


def test_admin_editing_company_posting_charges_the_owner(db, make_user, rates, balance_of):
    owner = make_user(balance=20)
    admin = make_user(role=UserRole.ADMIN)
    posting = _create(db, owner, publish_now=True)

    result = postings.edit_posting(db, posting.id, PostingChanges({"seniority": Seniority.DIRECTOR}), admin)

    assert result.credit_change.action == "charged"
    assert balance_of(owner) == 10


def test_other_company_cannot_edit(db, make_user, rates):
    owner = make_user(balance=10)
    other = make_user(balance=10)
    posting = _create(db, owner)

    with pytest.raises(PermissionDenied):
        postings.edit_posting(db, posting.id, PostingChanges({"title": "Mine now"}), other)
    with pytest.raises(PermissionDenied):
        postings.publish(db, posting.id, other)


def test_edit_window_expires(db, make_user, rates):
    user = make_user(balance=10)
    posting = _create(db, user, publish_now=True)
    posting.editable_until = datetime.now(timezone.utc) - timedelta(minutes=1)
    db.commit()

    with pytest.raises(EditWindowClosed):
        postings.edit_posting(db, posting.id, PostingChanges({"title": "Too late"}), user)
    # Status changes remain available after the window.
    assert postings.pause(db, posting.id, user).status == JobStatus.PAUSED


def test_unknown_or_empty_fields_are_rejected(db, make_user, rates):
    user = make_user(balance=10)
    posting = _create(db, user)

    with pytest.raises(ValidationError):
        postings.edit_posting(db, posting.id, PostingChanges({"credit_cost": 0}), user)
    with pytest.raises(ValidationError):
        postings.edit_posting(db, posting.id, PostingChanges({"profile": "  "}), user)
    with pytest.raises(ValidationError):
        postings.edit_posting(db, posting.id, PostingChanges({"salary_min": 5000}), user)


def test_lifecycle_transitions(db, make_user, rates, balance_of):
    user = make_user(balance=10)
    posting = _create(db, user)

    with pytest.raises(InvalidTransition):
        postings.pause(db, posting.id, user)

    postings.publish(db, posting.id, user)
    assert postings.pause(db, posting.id, user).status == JobStatus.PAUSED
    assert postings.resume(db, posting.id, user).status == JobStatus.ACTIVE

    with pytest.raises(ValidationError):
        postings.close(db, posting.id, user, None)
    closed = postings.close(db, posting.id, user, ClosedReason.SUCCESS)
    assert closed.status == JobStatus.CLOSED
    assert closed.closed_reason == ClosedReason.SUCCESS

    with pytest.raises(InvalidTransition):
        postings.resume(db, posting.id, user)
    with pytest.raises(InvalidTransition):
        postings.pause(db, posting.id, user)
    # Only the publish charge was ever written.
    assert balance_of(user) == 4


def test_salary_rules_on_create(db, make_user, make_rate):
    make_rate(seniority=Seniority.SR, credits=8, min_salary=3000)
    user = make_user(balance=10)

    with pytest.raises(ValidationError):
        _create(db, user, seniority=Seniority.SR, salary_min=2500, salary_max=5000)
    with pytest.raises(ValidationError):
        _create(db, user, seniority=Seniority.SR, salary_min=3000, salary_max=14000)
    with pytest.raises(ValidationError):
        _create(db, user, seniority=Seniority.SR, salary_min=6000, salary_max=5000)

    posting = _create(db, user, seniority=Seniority.SR, salary_min=3000, salary_max=13000)
    assert posting.status == JobStatus.DRAFT


def test_changes_from_payload_keep_only_sent_fields():
    from creditledger.schemas.jobs import JobPostingUpdate

    payload = JobPostingUpdate.model_validate({"seniority": "director", "location": None})
    changes = PostingChanges.from_payload(payload)

    assert changes.provided("seniority")
    assert changes.provided("location")
    assert not changes.provided("profile")
    assert not changes.provided("work_mode")
