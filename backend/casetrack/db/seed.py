# backend/casetrack/db/seed.py

"""
Database Seeding Script

Creates the tables, the default administrator profile and a handful of
litigation cases for local development.

    python -m casetrack.db.seed
"""

from datetime import date, timedelta
from typing import List
import random

from sqlalchemy.orm import Session

from casetrack.core.config import settings
from casetrack.core.logger import logger
from casetrack.db.database import Base, SessionLocal, engine
from casetrack.db.models import LitigationCase, Profile, UserRole

# ============================================================================
# Seed Data
# ============================================================================

SAMPLE_PARTIES = [
    "ABC Infra Pvt Ltd vs State of Kerala",
    "Priya Menon vs XYZ Corporation",
    "Company vs Regional Provident Fund Commissioner",
    "Rajesh Kumar vs Company",
    "Company vs Acme Logistics",
]

SAMPLE_FORUMS = [
    "High Court of Kerala",
    "Arbitration Tribunal, Kochi",
    "District Court, Ernakulam",
    "NCLT Chennai",
    "Sole Arbitrator (Retd. Justice)",
]


def create_admin_profile(db: Session) -> Profile:
    """Create (or reuse) the profile for DEFAULT_ADMIN_EMAIL"""
    email = settings.DEFAULT_ADMIN_EMAIL or "admin@casetrack.local"
    profile = db.query(Profile).filter(Profile.email == email).first()
    if profile:
        return profile

    profile = Profile(
        email=email,
        full_name="Administrator",
        role=UserRole.admin,
        is_enabled=True,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    logger.info("Created admin profile: %s", profile.email)
    return profile


def create_sample_cases(db: Session, user: Profile, count: int = 10) -> List[LitigationCase]:
    """Create sample litigation cases"""
    cases = []
    today = date.today()

    for i in range(count):
        start = today - timedelta(days=random.randint(60, 900))
        case = LitigationCase(
            user_id=user.id,
            sr_no=i + 1,
            parties=random.choice(SAMPLE_PARTIES),
            forum=random.choice(SAMPLE_FORUMS),
            particular="Recovery of dues under supply contract",
            start_date=start,
            last_hearing_date=today - timedelta(days=random.randint(1, 45)),
            next_hearing_date=today + timedelta(days=random.randint(1, 90)),
            amount_involved=float(random.randint(1, 200)) * 1_000_000,
            status=random.choice(["Active", "Active", "Closed"]),
        )
        db.add(case)
        cases.append(case)

    db.commit()
    logger.info("Created %s sample litigation cases", len(cases))
    return cases


def seed_database():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        admin = create_admin_profile(db)
        cases = create_sample_cases(db, admin)
        logger.info("Database seeding completed: admin=%s cases=%s", admin.email, len(cases))
    except Exception:
        db.rollback()
        logger.exception("Seeding failed")
        raise
    finally:
        db.close()

# ============================================================================
# CLI Entry Point
# ============================================================================

if __name__ == "__main__":
    seed_database()
