"""Seed the rate table and credit packages for a fresh environment.

Existing active entries are left alone, so the script is safe to re-run.
"""
import logging

from creditledger.core.database import SessionLocal
from creditledger.core.errors import Conflict
from creditledger.core.logging import configure_logging
from creditledger.models import CreditPackage, Seniority, WorkMode
from creditledger.services.pricing import create_rate_entry

logger = logging.getLogger("seed_rates")

SENIORITY_CREDITS = {
    Seniority.INTERN: 3,
    Seniority.JR: 6,
    Seniority.MIDDLE: 8,
    Seniority.SR: 9,
    Seniority.DIRECTOR: 10,
}
# On-site roles are cheaper to list than remote ones.
WORK_MODE_ADJUSTMENT = {
    WorkMode.REMOTE: 0,
    WorkMode.HYBRID: -1,
    WorkMode.ON_SITE: -2,
}
PROFILES = ["Tech", "Design", "Marketing", "Sales", "Operations"]
MIN_SALARIES = {
    Seniority.INTERN: None,
    Seniority.JR: 1200,
    Seniority.MIDDLE: 2000,
    Seniority.SR: 3000,
    Seniority.DIRECTOR: 4500,
}

SAMPLE_PACKAGES = [
    {"name": "Starter", "credits": 10, "price": 300, "sort_order": 1},
    {"name": "Growth", "credits": 50, "price": 1250, "sort_order": 2},
    {"name": "Scale", "credits": 150, "price": 3000, "sort_order": 3},
]


def seed_rates(db) -> int:
    created = 0
    for profile in PROFILES:
        for seniority, base in SENIORITY_CREDITS.items():
            for work_mode, adjustment in WORK_MODE_ADJUSTMENT.items():
                try:
                    create_rate_entry(
                        db,
                        profile=profile,
                        seniority=seniority,
                        work_mode=work_mode,
                        credits=max(1, base + adjustment),
                        min_salary=MIN_SALARIES[seniority],
                    )
                    created += 1
                except Conflict:
                    continue
    return created


def seed_packages(db) -> int:
    created = 0
    for package in SAMPLE_PACKAGES:
        existing = db.query(CreditPackage).filter(CreditPackage.name == package["name"]).first()
        if not existing:
            db.add(CreditPackage(**package))
            created += 1
    db.commit()
    return created


def main():
    configure_logging()
    db = SessionLocal()
    try:
        rates = seed_rates(db)
        packages = seed_packages(db)
        logger.info("Seeded %s rate entries and %s credit packages", rates, packages)
    finally:
        db.close()


if __name__ == "__main__":
    main()
