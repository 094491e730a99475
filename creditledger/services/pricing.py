import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from creditledger.core.config import get_settings
from creditledger.core.errors import Conflict, InvalidRateConfiguration, NotFound, ValidationError
from creditledger.models import RateEntry, Seniority, WorkMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceQuote:
    credits: int
    matched: bool
    rate_id: Optional[int] = None
    min_salary: Optional[int] = None


def normalize_profile(profile: str) -> str:
    return " ".join(str(profile or "").split())


def normalize_location(location: Optional[str]) -> Optional[str]:
    text = " ".join(str(location or "").split())
    return text or None


def _active_entries(db: Session, profile: str, seniority: Seniority, work_mode: WorkMode):
    return db.query(RateEntry).filter(
        RateEntry.profile == profile,
        RateEntry.seniority == seniority,
        RateEntry.work_mode == work_mode,
        RateEntry.is_active.is_(True),
    )


def resolve_cost(
    db: Session,
    profile: str,
    seniority: Seniority,
    work_mode: WorkMode,
    location: Optional[str] = None,
) -> PriceQuote:
    """Price a posting from the rate table.

    A location-specific entry outranks the location-agnostic one for the same
    (profile, seniority, work_mode). With no active match the configured
    default is returned with ``matched=False``, or ``InvalidRateConfiguration``
    is raised when the fallback is disabled. Reads only.
    """
    settings = get_settings()
    profile = normalize_profile(profile)
    location = normalize_location(location)

    entry = None
    if profile and seniority and work_mode:
        if location is not None:
            entry = (
                _active_entries(db, profile, seniority, work_mode)
                .filter(RateEntry.location == location)
                .order_by(RateEntry.id.asc())
                .first()
            )
        if entry is None:
            entry = (
                _active_entries(db, profile, seniority, work_mode)
                .filter(RateEntry.location.is_(None))
                .order_by(RateEntry.id.asc())
                .first()
            )

    if entry is not None:
        return PriceQuote(
            credits=int(entry.credits),
            matched=True,
            rate_id=entry.id,
            min_salary=entry.min_salary,
        )

    if not settings.pricing_fallback_enabled:
        raise InvalidRateConfiguration(
            f"No active rate for profile={profile!r} seniority={getattr(seniority, 'value', seniority)} "
            f"work_mode={getattr(work_mode, 'value', work_mode)}"
        )
    return PriceQuote(credits=int(settings.default_job_credits), matched=False)


def list_rate_entries(
    db: Session,
    *,
    profile: Optional[str] = None,
    seniority: Optional[Seniority] = None,
    work_mode: Optional[WorkMode] = None,
    is_active: Optional[bool] = None,
) -> list[RateEntry]:
    query = db.query(RateEntry)
    if profile:
        query = query.filter(RateEntry.profile == normalize_profile(profile))
    if seniority is not None:
        query = query.filter(RateEntry.seniority == seniority)
    if work_mode is not None:
        query = query.filter(RateEntry.work_mode == work_mode)
    if is_active is not None:
        query = query.filter(RateEntry.is_active.is_(is_active))
    return query.order_by(RateEntry.profile, RateEntry.seniority, RateEntry.work_mode, RateEntry.id).all()


def pricing_options(db: Session) -> dict:
    entries = db.query(RateEntry).filter(RateEntry.is_active.is_(True)).all()
    return {
        "profiles": sorted({e.profile for e in entries}),
        "seniorities": [s.value for s in Seniority if any(e.seniority == s for e in entries)],
        "work_modes": [m.value for m in WorkMode if any(e.work_mode == m for e in entries)],
        "locations": sorted({e.location for e in entries if e.location}),
    }


def _ensure_unique_active(db: Session, entry: RateEntry) -> None:
    query = _active_entries(db, entry.profile, entry.seniority, entry.work_mode)
    if entry.location is None:
        query = query.filter(RateEntry.location.is_(None))
    else:
        query = query.filter(RateEntry.location == entry.location)
    if entry.id is not None:
        query = query.filter(RateEntry.id != entry.id)
    if query.first() is not None:
        raise Conflict("An active rate already exists for this profile, seniority, work mode and location")


def _validate_amounts(credits: Optional[int], min_salary: Optional[int]) -> None:
    if credits is not None and int(credits) < 0:
        raise ValidationError("credits must be >= 0")
    if min_salary is not None and int(min_salary) < 0:
        raise ValidationError("min_salary must be >= 0")


def create_rate_entry(
    db: Session,
    *,
    profile: str,
    seniority: Seniority,
    work_mode: WorkMode,
    credits: int,
    location: Optional[str] = None,
    min_salary: Optional[int] = None,
    is_active: bool = True,
) -> RateEntry:
    profile = normalize_profile(profile)
    if not profile:
        raise ValidationError("profile is required")
    _validate_amounts(credits, min_salary)

    entry = RateEntry(
        profile=profile,
        seniority=seniority,
        work_mode=work_mode,
        location=normalize_location(location),
        credits=int(credits),
        min_salary=min_salary,
        is_active=is_active,
    )
    if entry.is_active:
        _ensure_unique_active(db, entry)
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info(
        "Rate entry %s created: %s/%s/%s location=%s credits=%s",
        entry.id,
        entry.profile,
        entry.seniority.value,
        entry.work_mode.value,
        entry.location,
        entry.credits,
    )
    return entry


def get_rate_entry(db: Session, rate_id: int) -> RateEntry:
    entry = db.query(RateEntry).filter(RateEntry.id == rate_id).first()
    if not entry:
        raise NotFound("Rate entry not found")
    return entry


def update_rate_entry(
    db: Session,
    rate_id: int,
    *,
    credits: Optional[int] = None,
    min_salary: Optional[int] = None,
    is_active: Optional[bool] = None,
) -> RateEntry:
    # The lookup tuple is immutable: re-pricing a combination means
    # deactivating the old entry so historical prices stay auditable.
    entry = get_rate_entry(db, rate_id)
    _validate_amounts(credits, min_salary)
    if is_active and not entry.is_active:
        _ensure_unique_active(db, entry)

    if credits is not None:
        entry.credits = int(credits)
    if min_salary is not None:
        entry.min_salary = int(min_salary)
    if is_active is not None:
        entry.is_active = is_active
    db.commit()
    db.refresh(entry)
    logger.info("Rate entry %s updated: credits=%s active=%s", entry.id, entry.credits, entry.is_active)
    return entry


def deactivate_rate_entry(db: Session, rate_id: int) -> RateEntry:
    return update_rate_entry(db, rate_id, is_active=False)
