import os

# Settings are read at import time
os.environ["ENV"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-bytes-for-hs256"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_LEVEL"] = "WARNING"

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from splitledger.core.security import create_access_token
from splitledger.db import build_engine, get_db, init_db
from splitledger.main import app
from splitledger.models import User, Account, AccountType, Category, Currency, TransactionType
from splitledger.services.rate_limit import RateLimiter


@pytest.fixture
def engine(tmp_path):
    # File-backed so that separate sessions get separate connections
    engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed(session_factory):
    """Three users, one account each, and a category per user."""
    with session_factory() as session:
        alice = User(email="alice@example.com", display_name="Alice")
        bob = User(email="bob@example.com", display_name="Bob")
        carol = User(email="carol@example.com", display_name="Carol", preferred_currency=Currency.EUR)
        session.add_all([alice, bob, carol])
        session.flush()

        alice_account = Account(user_id=alice.id, name="Alice wallet", type=AccountType.SELF)
        bob_account = Account(user_id=bob.id, name="Bob wallet", type=AccountType.SELF)
        carol_account = Account(user_id=carol.id, name="Carol wallet", type=AccountType.PARTNER)
        groceries = Category(user_id=alice.id, name="Groceries", type=TransactionType.EXPENSE)
        rent = Category(user_id=bob.id, name="Rent", type=TransactionType.EXPENSE)
        session.add_all([alice_account, bob_account, carol_account, groceries, rent])
        session.commit()

        return SimpleNamespace(
            alice_id=alice.id,
            bob_id=bob.id,
            carol_id=carol.id,
            alice_account_id=alice_account.id,
            bob_account_id=bob_account.id,
            carol_account_id=carol_account.id,
            groceries_id=groceries.id,
            rent_id=rent.id,
        )


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.rate_limiter = RateLimiter(max_requests=100, window_seconds=60)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(seed):
    emails = {
        seed.alice_id: "alice@example.com",
        seed.bob_id: "bob@example.com",
        seed.carol_id: "carol@example.com",
    }

    def _headers(user_id):
        token = create_access_token(str(user_id), emails.get(user_id, "someone@example.com"))
        return {"Authorization": f"Bearer {token}"}

    return _headers
