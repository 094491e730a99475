"""Job posting lifecycle and credit reconciliation.

Every status change goes through this module. Publishing charges the owner's
credit account; editing the pricing fields of an active posting re-prices it
and charges or refunds the difference. Each operation commits once, or rolls
back completely and re-raises.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from creditledger.core.config import get_settings
from creditledger.core.errors import (
    EditWindowClosed,
    InsufficientCredits,
    InvalidTransition,
    NotFound,
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
    User,
    UserRole,
    WorkMode,
)
from creditledger.services.ledger import append, get_or_create_account, lock_account
from creditledger.services.pricing import PriceQuote, normalize_location, normalize_profile, resolve_cost

logger = logging.getLogger(__name__)

PRICING_FIELDS = ("profile", "seniority", "work_mode")
EDITABLE_FIELDS = (
    "title",
    "description",
    "location",
    "profile",
    "seniority",
    "work_mode",
    "salary_min",
    "salary_max",
)
REQUIRED_FIELDS = ("title", "profile", "seniority", "work_mode")
MAX_SALARY_SPREAD = 10000

ALLOWED_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.DRAFT: {JobStatus.ACTIVE},
    JobStatus.ACTIVE: {JobStatus.PAUSED, JobStatus.CLOSED},
    JobStatus.PAUSED: {JobStatus.ACTIVE, JobStatus.CLOSED},
    JobStatus.CLOSED: set(),
}


@dataclass(frozen=True)
class PostingChanges:
    """A partial update: only the keys in ``values`` were sent by the caller.

    Absent and explicitly-sent fields must stay distinguishable, since only a
    *sent and different* pricing field triggers reconciliation.
    """

    values: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload) -> "PostingChanges":
        return cls(dict(payload.model_dump(exclude_unset=True)))

    def provided(self, name: str) -> bool:
        return name in self.values

    def get(self, name: str, default=None):
        return self.values.get(name, default)

    def merged(self, posting: JobPosting, name: str):
        return self.values[name] if name in self.values else getattr(posting, name)

    def changed_pricing_fields(self, posting: JobPosting) -> dict[str, tuple[Any, Any]]:
        changed = {}
        for name in PRICING_FIELDS:
            if self.provided(name) and self.values[name] != getattr(posting, name):
                changed[name] = (getattr(posting, name), self.values[name])
        return changed


@dataclass(frozen=True)
class CreditChange:
    action: str  # charged | refunded | waived
    original: int
    new: int
    difference: int
    transaction_id: Optional[int] = None

    @property
    def amount(self) -> int:
        return abs(self.difference)


@dataclass
class PublishResult:
    posting: JobPosting
    quote: PriceQuote
    transaction: Optional[CreditTransaction] = None
    balance: Optional[int] = None


@dataclass
class EditResult:
    posting: JobPosting
    credit_change: Optional[CreditChange] = None
    quote: Optional[PriceQuote] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    # SQLite hands back naive datetimes even for timezone-aware columns.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _label(value) -> str:
    return getattr(value, "value", value) or ""


def _is_admin(user: User) -> bool:
    return user is not None and user.role == UserRole.ADMIN


def get_posting(db: Session, job_id: int) -> JobPosting:
    posting = db.query(JobPosting).filter(JobPosting.id == job_id).first()
    if not posting:
        raise NotFound("Job posting not found")
    return posting


def _lock_posting(db: Session, job_id: int) -> JobPosting:
    posting = (
        db.query(JobPosting)
        .filter(JobPosting.id == job_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not posting:
        raise NotFound("Job posting not found")
    return posting


def ensure_can_manage(posting: JobPosting, actor: User) -> None:
    if posting.owner_id != actor.id and not _is_admin(actor):
        raise PermissionDenied("You do not have permission to manage this job posting")


def list_postings(db: Session, actor: User, status: Optional[JobStatus] = None) -> list[JobPosting]:
    query = db.query(JobPosting)
    if not _is_admin(actor):
        query = query.filter(JobPosting.owner_id == actor.id)
    if status is not None:
        query = query.filter(JobPosting.status == status)
    return query.order_by(JobPosting.id.desc()).all()


def _validate_salary_range(salary_min: Optional[int], salary_max: Optional[int]) -> None:
    if salary_min is not None and salary_min < 0:
        raise ValidationError("salary_min must be >= 0")
    if salary_max is not None and salary_max < 0:
        raise ValidationError("salary_max must be >= 0")
    if salary_min is not None and salary_max is not None:
        if salary_min > salary_max:
            raise ValidationError("salary_min cannot be greater than salary_max")
        if salary_max - salary_min > MAX_SALARY_SPREAD:
            raise ValidationError(f"Salary range cannot span more than {MAX_SALARY_SPREAD}")


def _owner_of(db: Session, posting: JobPosting) -> User:
    owner = db.query(User).filter(User.id == posting.owner_id).first()
    if not owner:
        raise NotFound("Job posting owner not found")
    return owner


def _charge_publish(db: Session, posting: JobPosting, owner: User, account_id: Optional[int]) -> PublishResult:
    quote = resolve_cost(db, posting.profile, posting.seniority, posting.work_mode, posting.location)
    transaction = None
    balance = None

    # Admin-owned postings are published without charge; the ledger primitive
    # itself never bypasses the balance check.
    if not _is_admin(owner):
        account = lock_account(db, account_id)
        if account.balance < quote.credits:
            raise InsufficientCredits(required=quote.credits, available=account.balance)
        if quote.credits > 0:
            transaction = append(
                db,
                account.id,
                CreditTransactionKind.SPEND,
                -quote.credits,
                f"publish: {posting.title}",
                posting.id,
                commit=False,
            )
        balance = account.balance

    now = _utcnow()
    window = int(get_settings().job_edit_window_hours or 0)
    posting.status = JobStatus.ACTIVE
    posting.credit_cost = quote.credits
    posting.rate_entry_id = quote.rate_id
    posting.published_at = now
    posting.editable_until = now + timedelta(hours=window) if window > 0 else None
    return PublishResult(posting=posting, quote=quote, transaction=transaction, balance=balance)


def create_posting(
    db: Session,
    actor: User,
    *,
    title: str,
    profile: str,
    seniority: Seniority,
    work_mode: WorkMode,
    description: Optional[str] = None,
    location: Optional[str] = None,
    salary_min: Optional[int] = None,
    salary_max: Optional[int] = None,
    owner_id: Optional[int] = None,
    publish_now: bool = False,
) -> PublishResult | JobPosting:
    title = str(title or "").strip()
    profile = normalize_profile(profile)
    if not title:
        raise ValidationError("title is required")
    if not profile:
        raise ValidationError("profile is required")
    _validate_salary_range(salary_min, salary_max)

    if owner_id is not None and owner_id != actor.id and not _is_admin(actor):
        raise PermissionDenied("Only administrators can create postings for another user")
    owner_id = owner_id or actor.id

    # A draft is priced at publish; only look the rate up when it is needed now.
    if publish_now or salary_min is not None:
        quote = resolve_cost(db, profile, seniority, work_mode, location)
        if quote.min_salary and salary_min is not None and salary_min < quote.min_salary:
            raise ValidationError(
                f"salary_min {salary_min} is below the minimum {quote.min_salary} required for this profile"
            )

    owner = db.query(User).filter(User.id == owner_id).first()
    if not owner:
        raise NotFound("Owner not found")
    account = None
    if publish_now and not _is_admin(owner):
        account = get_or_create_account(db, owner.id)

    try:
        posting = JobPosting(
            owner_id=owner.id,
            title=title,
            description=description,
            location=normalize_location(location),
            profile=profile,
            seniority=seniority,
            work_mode=work_mode,
            salary_min=salary_min,
            salary_max=salary_max,
            status=JobStatus.DRAFT,
            credit_cost=0,
        )
        db.add(posting)
        db.flush()
        result = None
        if publish_now:
            result = _charge_publish(db, posting, owner, account.id if account else None)
        db.commit()
    except InsufficientCredits as exc:
        db.rollback()
        logger.warning(
            "Create-and-publish rejected for user %s: required=%s available=%s",
            owner.id,
            exc.required,
            exc.available,
        )
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(posting)
    logger.info("Job posting %s created by user %s status=%s", posting.id, actor.id, posting.status.value)
    if result is None:
        return posting
    return result


def publish(db: Session, job_id: int, actor: User) -> PublishResult:
    """Draft -> Active, charging the owner the resolved price."""
    posting = get_posting(db, job_id)
    ensure_can_manage(posting, actor)
    owner = _owner_of(db, posting)
    account = None if _is_admin(owner) else get_or_create_account(db, owner.id)

    try:
        if account is not None:
            # Account before posting: the same lock order as edit_posting.
            lock_account(db, account.id)
        posting = _lock_posting(db, job_id)
        if posting.status != JobStatus.DRAFT:
            raise InvalidTransition("Only draft postings can be published")
        result = _charge_publish(db, posting, owner, account.id if account else None)
        db.commit()
    except InsufficientCredits as exc:
        db.rollback()
        logger.warning(
            "Publish of job %s rejected: required=%s available=%s",
            job_id,
            exc.required,
            exc.available,
        )
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(posting)
    logger.info(
        "Job %s published: cost=%s matched=%s charged=%s",
        posting.id,
        result.quote.credits,
        result.quote.matched,
        result.transaction is not None,
    )
    return result


def _transition(
    db: Session,
    job_id: int,
    actor: User,
    target: JobStatus,
    closed_reason: Optional[ClosedReason] = None,
) -> JobPosting:
    posting = get_posting(db, job_id)
    ensure_can_manage(posting, actor)
    try:
        posting = _lock_posting(db, job_id)
        if target not in ALLOWED_TRANSITIONS.get(posting.status, set()):
            raise InvalidTransition(f"Cannot move a {posting.status.value} posting to {target.value}")
        posting.status = target
        if target == JobStatus.CLOSED:
            posting.closed_reason = closed_reason
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(posting)
    logger.info("Job %s moved to %s by user %s", posting.id, target.value, actor.id)
    return posting


def pause(db: Session, job_id: int, actor: User) -> JobPosting:
    return _transition(db, job_id, actor, JobStatus.PAUSED)


def resume(db: Session, job_id: int, actor: User) -> JobPosting:
    posting = get_posting(db, job_id)
    if posting.status != JobStatus.PAUSED:
        raise InvalidTransition("Only paused postings can be resumed")
    return _transition(db, job_id, actor, JobStatus.ACTIVE)


def close(db: Session, job_id: int, actor: User, reason: Optional[ClosedReason]) -> JobPosting:
    if reason is None:
        raise ValidationError("A closing reason is required")
    return _transition(db, job_id, actor, JobStatus.CLOSED, closed_reason=reason)


def _validate_changes(changes: PostingChanges) -> PostingChanges:
    unknown = sorted(set(changes.values) - set(EDITABLE_FIELDS))
    if unknown:
        raise ValidationError(f"Fields cannot be edited: {', '.join(unknown)}")

    values = dict(changes.values)
    for name in REQUIRED_FIELDS:
        if name in values and (values[name] is None or str(_label(values[name])).strip() == ""):
            raise ValidationError(f"{name} cannot be empty")
    if "profile" in values:
        values["profile"] = normalize_profile(values["profile"])
    if "title" in values:
        values["title"] = str(values["title"]).strip()
    if "location" in values:
        values["location"] = normalize_location(values["location"])
    return PostingChanges(values)


def edit_posting(db: Session, job_id: int, changes: PostingChanges, actor: User) -> EditResult:
    """Apply a partial edit, re-pricing an active posting when needed.

    Reconciliation runs only when the posting is active and a pricing field
    was sent with a value different from the stored one. The price delta is
    charged (failing the whole edit with ``InsufficientCredits`` when the
    balance cannot cover it) or refunded; an unchanged price writes no ledger
    entry. Non-pricing fields are applied in every branch.
    """
    changes = _validate_changes(changes)
    posting = get_posting(db, job_id)
    ensure_can_manage(posting, actor)

    editable_until = _as_utc(posting.editable_until)
    if changes.values and editable_until is not None and _utcnow() > editable_until:
        raise EditWindowClosed("The edit window for this job posting has expired")

    _validate_salary_range(changes.merged(posting, "salary_min"), changes.merged(posting, "salary_max"))

    owner = _owner_of(db, posting)
    owner_is_admin = _is_admin(owner)
    touches_pricing = any(changes.provided(name) for name in PRICING_FIELDS)
    account = get_or_create_account(db, owner.id) if touches_pricing and not owner_is_admin else None

    credit_change = None
    quote = None
    try:
        if account is not None:
            account = lock_account(db, account.id)
        posting = _lock_posting(db, job_id)
        changed = changes.changed_pricing_fields(posting)

        if posting.status == JobStatus.ACTIVE and changed:
            quote = resolve_cost(
                db,
                changes.merged(posting, "profile"),
                changes.merged(posting, "seniority"),
                changes.merged(posting, "work_mode"),
                changes.merged(posting, "location"),
            )
            old_cost = int(posting.credit_cost or 0)
            difference = quote.credits - old_cost
            title = changes.merged(posting, "title")
            transition = f"{_label(posting.seniority)} → {_label(changes.merged(posting, 'seniority'))}"

            if difference != 0 and owner_is_admin:
                credit_change = CreditChange("waived", old_cost, quote.credits, difference)
            elif difference > 0:
                if account.balance < difference:
                    raise InsufficientCredits(required=difference, available=account.balance)
                entry = append(
                    db,
                    account.id,
                    CreditTransactionKind.SPEND,
                    -difference,
                    f"edit adjustment: {title} ({transition})",
                    posting.id,
                    commit=False,
                )
                credit_change = CreditChange("charged", old_cost, quote.credits, difference, entry.id)
            elif difference < 0:
                entry = append(
                    db,
                    account.id,
                    CreditTransactionKind.REFUND,
                    -difference,
                    f"edit refund: {title} ({transition})",
                    posting.id,
                    commit=False,
                )
                credit_change = CreditChange("refunded", old_cost, quote.credits, difference, entry.id)

            posting.credit_cost = quote.credits
            posting.rate_entry_id = quote.rate_id

        for name, value in changes.values.items():
            setattr(posting, name, value)
        db.commit()
    except InsufficientCredits as exc:
        db.rollback()
        logger.warning(
            "Edit of job %s rejected: upgrade needs %s credits, %s available",
            job_id,
            exc.required,
            exc.available,
        )
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(posting)
    if credit_change is not None:
        logger.info(
            "Job %s re-priced %s->%s (%s %s credits)",
            posting.id,
            credit_change.original,
            credit_change.new,
            credit_change.action,
            credit_change.amount,
        )
    return EditResult(posting=posting, credit_change=credit_change, quote=quote)
