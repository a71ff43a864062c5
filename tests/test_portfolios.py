from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from conftest import SEAT_PRICE, STARTER_PRICE
from portfolio_manager.components.portfolios.crud import PortfoliosCRUD
from portfolio_manager.components.portfolios.manager import PortfolioManager, run_best_effort
from portfolio_manager.components.portfolios.models import Portfolio
from portfolio_manager.components.subscriptions.crud import SubscriptionsCRUD
from portfolio_manager.core.enums import MembershipType, Tier
from portfolio_manager.core.exceptions import (
    AlreadyInPortfolioException,
    NotFoundException,
    TierIneligibleException,
    UnauthorizedException,
)
from portfolio_manager.core.utils import utcnow
from portfolio_manager.tasks.portfolio_tasks import detach_removed_collaborator, reconcile_portfolio


def test_growth_owner_gets_portfolio(db, owner, make_post, scheduled_reconciliations):
    post = make_post(owner.pid, publish_target="org-1")

    portfolio = PortfolioManager(db).create_portfolio_for_owner(owner.pid)

    assert portfolio.owner_id == owner.pid
    db.refresh(owner)
    db.refresh(post)
    assert owner.portfolio_id == portfolio.pid
    assert post.portfolio_id == portfolio.pid

    membership = PortfoliosCRUD(db).get_accepted_membership(owner.pid, portfolio.pid)
    assert membership is not None
    assert membership.invited_by == owner.pid

    subscription = SubscriptionsCRUD(db).get_active_subscription(owner.pid)
    assert subscription.membership_type == MembershipType.MEMBERSHIP.value
    assert scheduled_reconciliations == []


def test_create_is_idempotent(db, owner):
    manager = PortfolioManager(db)

    first = manager.create_portfolio_for_owner(owner.pid)
    second = manager.create_portfolio_for_owner(owner.pid)

    assert first.pid == second.pid
    assert db.query(Portfolio).count() == 1
    assert len(PortfoliosCRUD(db).list_accepted_memberships(first.pid)) == 1


def test_create_requires_subscription(db, make_profile):
    user = make_profile("free@example.com")

    with pytest.raises(TierIneligibleException):
        PortfolioManager(db).create_portfolio_for_owner(user.pid)
    assert db.query(Portfolio).count() == 0


def test_create_requires_growth(db, make_profile, make_subscription):
    user = make_profile("starter@example.com")
    make_subscription(user.pid, STARTER_PRICE)

    with pytest.raises(TierIneligibleException):
        PortfolioManager(db).create_portfolio_for_owner(user.pid)


def test_collaborator_cannot_create_own_portfolio(db, add_collaborator):
    collaborator = add_collaborator("member@example.com")

    # The derived growth_member row resolves to GROWTH, membership still blocks it
    assert SubscriptionsCRUD(db).get_user_tier(collaborator.pid) == Tier.GROWTH
    with pytest.raises(AlreadyInPortfolioException):
        PortfolioManager(db).create_portfolio_for_owner(collaborator.pid)


def test_membership_queries(db, portfolio, owner, add_collaborator, make_profile):
    collaborator = add_collaborator("member@example.com")
    outsider = make_profile("outsider@example.com")
    manager = PortfolioManager(db)

    assert manager.is_portfolio_owner(owner.pid, portfolio.pid)
    assert not manager.is_portfolio_owner(collaborator.pid, portfolio.pid)
    assert manager.is_portfolio_member(owner.pid, portfolio.pid)
    assert manager.is_portfolio_member(collaborator.pid, portfolio.pid)
    assert not manager.is_portfolio_member(outsider.pid, portfolio.pid)

    assert manager.get_user_portfolio(owner.pid).pid == portfolio.pid
    assert manager.get_user_portfolio(collaborator.pid).pid == portfolio.pid
    assert manager.get_user_portfolio(outsider.pid) is None
    assert manager.get_portfolio_owner(portfolio.pid) == owner.pid


def test_list_collaborators(db, portfolio, owner, add_collaborator, make_profile):
    add_collaborator("first@example.com")
    add_collaborator("second@example.com")
    outsider = make_profile("outsider@example.com")
    manager = PortfolioManager(db)

    collaborators = manager.list_collaborators(portfolio.pid, requester_id=owner.pid)

    assert len(collaborators) == 3
    assert [c["email"] for c in collaborators if c["is_owner"]] == ["owner@example.com"]
    assert {c["email"] for c in collaborators} == {
        "owner@example.com",
        "first@example.com",
        "second@example.com",
    }

    with pytest.raises(UnauthorizedException):
        manager.list_collaborators(portfolio.pid, requester_id=outsider.pid)


def test_remove_collaborator(db, portfolio, owner, add_collaborator, make_post, scheduled_detachments):
    collaborator = add_collaborator("member@example.com")
    post = make_post(collaborator.pid, portfolio_id=portfolio.pid)

    assert PortfolioManager(db).remove_collaborator(portfolio.pid, collaborator.pid, owner.pid)

    crud = PortfoliosCRUD(db)
    assert crud.get_membership(collaborator.pid) is None
    db.refresh(collaborator)
    db.refresh(post)
    assert collaborator.portfolio_id is None
    assert post.portfolio_id is None
    assert SubscriptionsCRUD(db).get_user_tier(collaborator.pid) == Tier.FREE
    assert scheduled_detachments == []


def test_remove_collaborator_rules(db, portfolio, owner, add_collaborator):
    first = add_collaborator("first@example.com")
    second = add_collaborator("second@example.com")
    manager = PortfolioManager(db)

    with pytest.raises(UnauthorizedException):
        manager.remove_collaborator(portfolio.pid, second.pid, first.pid)

    with pytest.raises(UnauthorizedException):
        manager.remove_collaborator(portfolio.pid, owner.pid, owner.pid)

    manager.remove_collaborator(portfolio.pid, second.pid, owner.pid)
    with pytest.raises(NotFoundException):
        manager.remove_collaborator(portfolio.pid, second.pid, owner.pid)


def test_seat_info(db, portfolio, owner, add_collaborator, make_subscription):
    add_collaborator("first@example.com")
    make_subscription(owner.pid, SEAT_PRICE)
    make_subscription(
        owner.pid, SEAT_PRICE, status="cancelled", current_period_end=utcnow() + timedelta(days=5)
    )
    make_subscription(
        owner.pid, SEAT_PRICE, status="cancelled", current_period_end=utcnow() - timedelta(days=5)
    )

    info = PortfolioManager(db).get_seat_info(portfolio.pid)

    assert info == {
        "base_seats": 3,
        "additional_seats": 2,
        "total_seats": 5,
        "seats_used": 2,
        "seats_remaining": 3,
        "can_invite_more": True,
    }


def test_seat_info_when_full(db, portfolio, add_collaborator):
    add_collaborator("first@example.com")
    add_collaborator("second@example.com")

    info = PortfolioManager(db).get_seat_info(portfolio.pid)

    assert info["seats_used"] == 3
    assert info["seats_remaining"] == 0
    assert info["can_invite_more"] is False


def test_best_effort_step_failure_is_swallowed(db):
    def failing_step():
        raise OperationalError("UPDATE profiles", {}, Exception("database is locked"))

    assert run_best_effort(db, "failing step", failing_step) is False
    assert run_best_effort(db, "working step", lambda: None) is True


def test_concurrent_create_resolves_to_existing_portfolio(db, portfolio, owner, monkeypatch):
    manager = PortfolioManager(db)
    real_get_owned_by = manager.portfolios_crud.get_owned_by
    calls = []

    def stale_get_owned_by(user_id):
        # The first read misses a portfolio committed by a concurrent request
        calls.append(user_id)
        return None if len(calls) == 1 else real_get_owned_by(user_id)

    monkeypatch.setattr(manager.portfolios_crud, "get_owned_by", stale_get_owned_by)
    monkeypatch.setattr(manager.portfolios_crud, "get_membership", lambda user_id: None)

    result = manager.create_portfolio_for_owner(owner.pid)

    assert result.pid == portfolio.pid
    assert len(calls) == 2
    assert db.query(Portfolio).count() == 1


def test_failed_creation_step_is_repaired_by_reconciliation(
    db, task_session, owner, monkeypatch, scheduled_reconciliations
):
    manager = PortfolioManager(db)

    def broken_owner_membership(portfolio):
        raise OperationalError("INSERT INTO portfolio_collaborators", {}, Exception("connection reset"))

    monkeypatch.setattr(manager, "ensure_owner_membership", broken_owner_membership)

    portfolio = manager.create_portfolio_for_owner(owner.pid)

    assert scheduled_reconciliations == [portfolio.pid]
    crud = PortfoliosCRUD(db)
    assert crud.get_accepted_membership(owner.pid, portfolio.pid) is None

    # A retry returns the existing portfolio without repeating the steps
    assert manager.create_portfolio_for_owner(owner.pid).pid == portfolio.pid
    assert crud.get_accepted_membership(owner.pid, portfolio.pid) is None

    reconcile_portfolio(str(portfolio.pid))

    assert crud.get_accepted_membership(owner.pid, portfolio.pid) is not None
    collaborators = PortfolioManager(db).list_collaborators(portfolio.pid)
    assert [c["is_owner"] for c in collaborators] == [True]


def test_failed_removal_step_is_repaired_by_detach(
    db, task_session, portfolio, owner, add_collaborator, make_post, monkeypatch, scheduled_detachments
):
    collaborator = add_collaborator("member@example.com")
    post = make_post(collaborator.pid, portfolio_id=portfolio.pid)
    manager = PortfolioManager(db)

    def broken_delete(user_ids):
        raise OperationalError("DELETE FROM subscriptions", {}, Exception("connection reset"))

    monkeypatch.setattr(manager.subscriptions_crud, "delete_growth_members", broken_delete)

    assert manager.remove_collaborator(portfolio.pid, collaborator.pid, owner.pid)

    assert scheduled_detachments == [collaborator.pid]
    assert PortfoliosCRUD(db).get_membership(collaborator.pid) is None
    assert SubscriptionsCRUD(db).get_user_tier(collaborator.pid) == Tier.GROWTH

    result = detach_removed_collaborator(str(collaborator.pid))

    assert result["detached"] is True
    assert result["subscriptions_deleted"] == 1
    assert SubscriptionsCRUD(db).get_user_tier(collaborator.pid) == Tier.FREE
    db.refresh(collaborator)
    db.refresh(post)
    assert collaborator.portfolio_id is None
    assert post.portfolio_id is None
