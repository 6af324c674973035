import os


def _set_test_env() -> None:
    defaults = {
        "APP_NAME": "AutoBridge Test",
        "ENVIRONMENT": "test",
        "SECRET_KEY": "test-secret",
        "ACCESS_TOKEN_EXPIRE_MINUTES": "30",
        "AUTO_CREATE_TABLES": "false",
        "DATABASE_URL": "sqlite://",
        "PAYSTACK_SECRET_KEY": "sk_test_xxx",
        "PAYSTACK_WEBHOOK_SECRET": "whsec_test_xxx",
        "BID_DEPOSIT_RATE": "0.10",
        "NGN_PER_USD": "1550",
        "REQUIRE_SIGNUP_FEE": "true",
        "CORS_ORIGINS": "http://localhost:3000",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


_set_test_env()

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from autobridge.core.database import Base  # noqa: E402
from autobridge.models import User, UserRole  # noqa: E402
from autobridge.services.wallet import create_wallet  # noqa: E402


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
    created = []

    def _make(*, role=UserRole.USER, signup_fee_paid=True, with_wallet=True):
        n = len(created) + 1
        user = User(
            email=f"user{n}@example.com",
            full_name=f"User {n}",
            role=role,
            is_active=True,
            signup_fee_paid=signup_fee_paid,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        if with_wallet:
            create_wallet(db, user.id)
        created.append(user)
        return user

    return _make
