import itertools
import os


def _set_test_env() -> None:
    defaults = {
        "APP_NAME": "Credit Ledger Test",
        "ENVIRONMENT": "test",
        "SECRET_KEY": "test-secret",
        "ACCESS_TOKEN_EXPIRE_MINUTES": "30",
        "AUTO_CREATE_TABLES": "false",
        "DATABASE_URL": "sqlite://",
        "REDIS_URL": "",
        "DEFAULT_JOB_CREDITS": "5",
        "PRICING_FALLBACK_ENABLED": "true",
        "JOB_EDIT_WINDOW_HOURS": "4",
        "COMMISSION_BASE": "final_price",
        "CORS_ORIGINS": "http://localhost:5173,http://localhost:3000",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


_set_test_env()

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from creditledger.core.database import Base, get_db
from creditledger.core.security import create_access_token
from creditledger.main import app
from creditledger.models import Seniority, User, UserRole, WorkMode
from creditledger.services.ledger import get_or_create_account, grant_credits
from creditledger.services.pricing import create_rate_entry


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(role: UserRole = UserRole.COMPANY, balance: int = 0, email: str | None = None) -> User:
        n = next(counter)
        user = User(
            email=email or f"{role.value}{n}@example.com",
            full_name=f"{role.value.title()} {n}",
            role=role,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        if balance:
            account = get_or_create_account(db, user.id)
            grant_credits(db, account.id, balance, "test setup")
        return user

    return _make


@pytest.fixture
def make_rate(db):
    def _make(
        profile: str = "Tech",
        seniority: Seniority = Seniority.JR,
        work_mode: WorkMode = WorkMode.REMOTE,
        credits: int = 6,
        location: str | None = None,
        min_salary: int | None = None,
    ):
        return create_rate_entry(
            db,
            profile=profile,
            seniority=seniority,
            work_mode=work_mode,
            credits=credits,
            location=location,
            min_salary=min_salary,
        )

    return _make


@pytest.fixture
def balance_of(db):
    def _balance(user: User) -> int:
        db.expire_all()
        return get_or_create_account(db, user.id).balance

    return _balance


def _auth_headers(user: User) -> dict:
    token = create_access_token(str(user.id), user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return _auth_headers


@pytest.fixture
def client(session_factory):
    app.dependency_overrides.clear()

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
