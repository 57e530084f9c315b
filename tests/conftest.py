"""
Pytest fixtures shared by the unit suites.

Settings are read from the environment when ``cio.core.config`` is first
imported, so the test environment is set up before any ``cio`` import.
"""
import os
import tempfile

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-32-chars")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SKIP_DB_INIT", "true")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "cio-test-logs"))
os.environ.setdefault("WEBHOOKY_BEARER_TOKEN", "test-bearer-token")
os.environ.setdefault("CHECKR_API_KEY", "test-checkr-key")
os.environ.setdefault("AIRTABLE_API_KEY", "test-airtable-key")
os.environ.setdefault("CIO_COMPANY_NAME", "Oxide")

from typing import Callable, List  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

import cio.models  # noqa: E402,F401
from cio.models.company import Company  # noqa: E402


@pytest.fixture
def session():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as db:
        yield db
    engine.dispose()


@pytest.fixture
def company(session: Session) -> Company:
    company = Company(
        name="Oxide",
        domain="oxidecomputer.com",
        gsuite_domain="oxidecomputer.com",
        mailchimp_list_id="list123",
        airtable_base_id_cio="appCIO",
        airtable_base_id_customer_leads="appLeads",
        airtable_base_id_finance="appFinance",
        airtable_base_id_travel="appTravel",
        airtable_base_id_misc="appMisc",
        airtable_base_id_hiring="appHiring",
        slack_channel_debug="#debug",
        slack_channel_mailing_lists="#mailing-lists",
    )
    session.add(company)
    session.commit()
    session.refresh(company)
    return company


@pytest.fixture
def other_company(session: Session) -> Company:
    company = Company(name="Acme", domain="acme.test", airtable_base_id_cio="appCIO")
    session.add(company)
    session.commit()
    session.refresh(company)
    return company


class RecordingTransport:
    """Route requests through a handler and keep every request that was sent."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest.fixture
def mock_http():
    """
    Factory for an ``httpx.AsyncClient`` backed by ``httpx.MockTransport``.

    Returns the client and the recorder holding the sent requests.
    """

    def _make(handler: Callable[[httpx.Request], httpx.Response]):
        recorder = RecordingTransport(handler)
        client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        return client, recorder

    return _make
