import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_DELIVERY", "inline")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from accounts_api import models  # noqa: F401  registers tables on Base
from accounts_api.database import Base, get_db
from accounts_api.main import app
from accounts_api.repository import AccountRepository
from accounts_api.schemas import SignupRequest, VerifyEmailRequest
from accounts_api.service import AccountService
from accounts_api.tokens import TokenIssuer

PASSWORD = "Abc123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def repository(db):
    return AccountRepository(db)


@pytest.fixture
def tokens(db):
    return TokenIssuer(db, secret_key="test-secret-key")


@pytest.fixture
def service(repository, tokens):
    return AccountService(repository=repository, tokens=tokens)


@pytest.fixture
def client(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.pop(get_db, None)


def code_from(message: str) -> str:
    return message.split()[-1]


@pytest.fixture
def signed_up(service):
    """Create an unverified account and return its verification code."""
    outcome = service.signup(SignupRequest(username="bob", email="b@x.com", password=PASSWORD))
    assert outcome.ok, outcome.body
    return code_from(outcome.body["message"])


@pytest.fixture
def verified(service, signed_up):
    outcome = service.verify_email(VerifyEmailRequest(email="b@x.com", token=signed_up))
    assert outcome.ok, outcome.body
    return service.repository.find_by_email("b@x.com", include_soft_deleted=True)
