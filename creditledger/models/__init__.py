from creditledger.models.user import User, UserRole
from creditledger.models.credit_account import CreditAccount
from creditledger.models.credit_transaction import CreditTransaction, CreditTransactionKind
from creditledger.models.rate_entry import RateEntry, Seniority, WorkMode
from creditledger.models.job_posting import JobPosting, JobStatus, ClosedReason
from creditledger.models.credit_package import CreditPackage
from creditledger.models.credit_purchase import CreditPurchase, PurchaseStatus
from creditledger.models.discount_code import DiscountCode
from creditledger.models.discount_code_use import DiscountCodeUse, CommissionStatus

__all__ = [
    "User",
    "UserRole",
    "CreditAccount",
    "CreditTransaction",
    "CreditTransactionKind",
    "RateEntry",
    "Seniority",
    "WorkMode",
    "JobPosting",
    "JobStatus",
    "ClosedReason",
    "CreditPackage",
    "CreditPurchase",
    "PurchaseStatus",
    "DiscountCode",
    "DiscountCodeUse",
    "CommissionStatus",
]
