from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from creditledger.core.database import get_db
from creditledger.dependencies import require_role
from creditledger.models import JobStatus, User, UserRole
from creditledger.schemas.jobs import (
    JobCloseRequest,
    JobEditOut,
    JobPostingCreate,
    JobPostingOut,
    JobPostingUpdate,
    JobPublishOut,
)
from creditledger.services import postings
from creditledger.services.postings import PostingChanges, PublishResult

router = APIRouter()
company_user = require_role(UserRole.COMPANY)


def _publish_response(result: PublishResult) -> dict:
    return {
        "job": result.posting,
        "credit_cost": result.quote.credits,
        "matched": result.quote.matched,
        "charged": result.transaction is not None,
        "new_balance": result.balance,
    }


@router.get("", response_model=list[JobPostingOut])
def list_jobs(status: Optional[JobStatus] = None, user: User = Depends(company_user), db: Session = Depends(get_db)):
    return postings.list_postings(db, user, status)


@router.post("", response_model=JobPublishOut, status_code=201)
def create_job(payload: JobPostingCreate, user: User = Depends(company_user), db: Session = Depends(get_db)):
    result = postings.create_posting(
        db,
        user,
        title=payload.title,
        profile=payload.profile,
        seniority=payload.seniority,
        work_mode=payload.work_mode,
        description=payload.description,
        location=payload.location,
        salary_min=payload.salary_min,
        salary_max=payload.salary_max,
        owner_id=payload.owner_id,
        publish_now=payload.publish_now,
    )
    if isinstance(result, PublishResult):
        return _publish_response(result)
    return {"job": result, "credit_cost": 0, "charged": False}


@router.get("/{job_id}", response_model=JobPostingOut)
def get_job(job_id: int, user: User = Depends(company_user), db: Session = Depends(get_db)):
    posting = postings.get_posting(db, job_id)
    postings.ensure_can_manage(posting, user)
    return posting


@router.post("/{job_id}/publish", response_model=JobPublishOut)
def publish_job(job_id: int, user: User = Depends(company_user), db: Session = Depends(get_db)):
    return _publish_response(postings.publish(db, job_id, user))


@router.patch("/{job_id}", response_model=JobEditOut)
def edit_job(job_id: int, payload: JobPostingUpdate, user: User = Depends(company_user), db: Session = Depends(get_db)):
    result = postings.edit_posting(db, job_id, PostingChanges.from_payload(payload), user)
    change = result.credit_change
    message = "Job posting updated"
    credit_change = None
    if change is not None:
        if change.action == "charged":
            message = f"Job posting updated. {change.amount} additional credits were charged."
        elif change.action == "refunded":
            message = f"Job posting updated. {change.amount} credits were refunded."
        credit_change = {
            "action": change.action,
            "original": change.original,
            "new": change.new,
            "difference": change.difference,
            "amount": change.amount,
            "transaction_id": change.transaction_id,
        }
    return {"job": result.posting, "message": message, "credit_change": credit_change}


@router.post("/{job_id}/pause", response_model=JobPostingOut)
def pause_job(job_id: int, user: User = Depends(company_user), db: Session = Depends(get_db)):
    return postings.pause(db, job_id, user)


@router.post("/{job_id}/resume", response_model=JobPostingOut)
def resume_job(job_id: int, user: User = Depends(company_user), db: Session = Depends(get_db)):
    return postings.resume(db, job_id, user)


@router.post("/{job_id}/close", response_model=JobPostingOut)
def close_job(job_id: int, payload: JobCloseRequest, user: User = Depends(company_user), db: Session = Depends(get_db)):
    return postings.close(db, job_id, user, payload.reason)
