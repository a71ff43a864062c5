import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SERVICE_ROLE_DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["PRICE_IDS_LITE"] = "price_lite_monthly"
os.environ["PRICE_IDS_STARTER"] = "price_starter_monthly,price_starter_yearly"
os.environ["PRICE_IDS_GROWTH"] = "price_growth_monthly,price_growth_yearly"
os.environ["PRICE_IDS_ENTERPRISE"] = "price_enterprise_monthly"
os.environ["PRICE_ID_GROWTH_SEAT"] = "price_growth_seat"

from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Optional
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from portfolio_manager.main import app
from portfolio_manager.core.models import Base
from portfolio_manager.core.security import create_access_token
from portfolio_manager.database.session import get_admin_db, get_db

# Register every table on Base.metadata
from portfolio_manager.components.invitations.models import PortfolioInvitation  # noqa: F401
from portfolio_manager.components.portfolios.models import Portfolio, PortfolioMembership  # noqa: F401
from portfolio_manager.components.posts.models import OrganizationGrant, Post, Publication
from portfolio_manager.components.subscriptions.models import Subscription
from portfolio_manager.components.users.models import Profile

GROWTH_PRICE = "price_growth_monthly"
STARTER_PRICE = "price_starter_monthly"
SEAT_PRICE = "price_growth_seat"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def client(db):
    """TestClient whose request sessions share the test's database session."""

    def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_admin_db] = override_db
    yield TestClient(app)
    app.dependency_overrides.clear()


class FakeEmailService:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send_email(self, to, template_id, params):
        if self.fail:
            return False, "Brevo API error: 500 - unavailable"
        self.sent.append({"to": to, "template_id": template_id, "params": params})
        return True, None


@pytest.fixture(autouse=True)
def email_outbox(monkeypatch):
    service = FakeEmailService()
    monkeypatch.setattr("portfolio_manager.core.email.email_service", service)
    return service


@pytest.fixture(autouse=True)
def scheduled_reconciliations(monkeypatch):
    scheduled = []

    def fake_schedule(portfolio_id):
        scheduled.append(portfolio_id)
        return "job-id"

    for module in (
        "portfolio_manager.components.invitations.manager",
        "portfolio_manager.components.portfolios.manager",
    ):
        monkeypatch.setattr(f"{module}.schedule_portfolio_reconciliation", fake_schedule)
    return scheduled


@pytest.fixture(autouse=True)
def scheduled_detachments(monkeypatch):
    scheduled = []

    def fake_schedule(user_id):
        scheduled.append(user_id)
        return "job-id"

    monkeypatch.setattr(
        "portfolio_manager.components.portfolios.manager.schedule_collaborator_detach",
        fake_schedule,
    )
    return scheduled


@pytest.fixture
def task_session(monkeypatch, db):
    """Run background tasks against the test session"""

    @contextmanager
    def fake_admin_db_session():
        yield db

    monkeypatch.setattr(
        "portfolio_manager.tasks.portfolio_tasks.admin_db_session", fake_admin_db_session
    )
    return db


@pytest.fixture
def make_profile(db):
    def _make_profile(email: str, first_name: Optional[str] = None, last_name: Optional[str] = None):
        profile = Profile(
            pid=uuid4(), email=email.lower(), first_name=first_name, last_name=last_name
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    return _make_profile


@pytest.fixture
def make_subscription(db):
    def _make_subscription(
        user_id,
        price_id: Optional[str] = GROWTH_PRICE,
        status: str = "active",
        membership_type: Optional[str] = None,
        current_period_end: Optional[datetime] = None,
    ):
        subscription = Subscription(
            user_id=user_id,
            provider="lemonsqueezy",
            status=status,
            price_id=price_id,
            membership_type=membership_type,
            current_period_end=current_period_end,
        )
        db.add(subscription)
        db.commit()
        db.refresh(subscription)
        return subscription

    return _make_subscription


@pytest.fixture
def make_post(db):
    def _make_post(
        user_id,
        publish_target: Optional[str] = None,
        organization_ids: Iterable[Optional[str]] = (),
        portfolio_id=None,
        content: str = "Draft",
    ):
        post = Post(
            user_id=user_id,
            portfolio_id=portfolio_id,
            publish_target=publish_target,
            content=content,
        )
        post.publications = [
            Publication(organization_id=organization_id)
            for organization_id in organization_ids
        ]
        db.add(post)
        db.commit()
        db.refresh(post)
        return post

    return _make_post


@pytest.fixture
def make_grant(db):
    def _make_grant(user_id, organization_id: str):
        grant = OrganizationGrant(user_id=user_id, organization_id=organization_id)
        db.add(grant)
        db.commit()
        return grant

    return _make_grant


@pytest.fixture
def owner(make_profile, make_subscription):
    profile = make_profile("owner@example.com", "Olivia", "Owner")
    make_subscription(profile.pid, GROWTH_PRICE)
    return profile


@pytest.fixture
def portfolio(db, owner):
    from portfolio_manager.components.portfolios.manager import PortfolioManager

    return PortfolioManager(db).create_portfolio_for_owner(owner.pid)


@pytest.fixture
def add_collaborator(db, portfolio, make_profile):
    """Invite and accept a new collaborator into the portfolio"""
    from portfolio_manager.components.invitations.manager import InvitationManager

    def _add_collaborator(email: str):
        profile = make_profile(email)
        manager = InvitationManager(db)
        invitation = manager.create_invitation(portfolio.pid, email, portfolio.owner_id)
        manager.accept_invitation(invitation.token, profile.pid)
        return profile

    return _add_collaborator


def auth_headers(profile) -> dict:
    token = create_access_token({"user_id": str(profile.pid), "email": profile.email})
    return {"Authorization": f"Bearer {token}"}
