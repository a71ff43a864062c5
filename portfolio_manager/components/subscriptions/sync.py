"""
Propagates a portfolio owner's tier to their collaborators.

Collaborators never pay separately: each one gets a derived `growth_member`
subscription row carrying the owner's price id. Downgrading the owner deletes
those rows (the portfolio and its memberships stay), resubscribing recreates
them. Every entry point here is idempotent and safe to re-run.
"""

from typing import Optional
from uuid import UUID as UUIDType
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from portfolio_manager.components.portfolios.crud import PortfoliosCRUD
from portfolio_manager.components.portfolios.manager import PortfolioManager
from portfolio_manager.components.portfolios.models import Portfolio
from portfolio_manager.components.subscriptions.crud import SubscriptionsCRUD
from portfolio_manager.core.enums import Tier
from portfolio_manager.core.exceptions import StorageFailureException, ValidationException
from portfolio_manager.core.log import logger


class TierSynchronizer:
    def __init__(self, db: Session):
        self.db = db
        self.portfolios_crud = PortfoliosCRUD(db)
        self.subscriptions_crud = SubscriptionsCRUD(db)

    def sync_member_tiers(self, portfolio_id: UUIDType, target_tier: Tier) -> int:
        """Apply GROWTH or FREE to every accepted collaborator; returns rows touched"""
        if target_tier not in Tier.sync_targets():
            raise ValidationException(f"Cannot sync collaborators to tier {target_tier}")

        portfolio = self.portfolios_crud.get_by_pid(portfolio_id)
        if not portfolio:
            logger.warning(f"Tier sync skipped, portfolio {portfolio_id} not found")
            return 0

        collaborator_ids = self.portfolios_crud.list_collaborator_ids(portfolio)

        try:
            if target_tier == Tier.GROWTH:
                return self._upgrade_collaborators(portfolio, collaborator_ids)
            return self._downgrade_collaborators(portfolio, collaborator_ids)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Tier sync to {target_tier.value} failed for portfolio {portfolio.pid}: {e}")
            raise StorageFailureException("Failed to sync collaborator tiers")

    def _upgrade_collaborators(self, portfolio: Portfolio, collaborator_ids: list) -> int:
        owner_subscription = self.subscriptions_crud.get_active_subscription(
            portfolio.owner_id
        )
        if not owner_subscription or not owner_subscription.price_id:
            logger.warning(
                f"Tier sync skipped, owner {portfolio.owner_id} has no priced subscription"
            )
            return 0

        for user_id in collaborator_ids:
            self.subscriptions_crud.upsert_growth_member(
                user_id, owner_subscription.price_id
            )

        logger.info(
            f"Synced {len(collaborator_ids)} collaborators of portfolio {portfolio.pid} "
            f"to price {owner_subscription.price_id}"
        )
        return len(collaborator_ids)

    def _downgrade_collaborators(self, portfolio: Portfolio, collaborator_ids: list) -> int:
        deleted = self.subscriptions_crud.delete_growth_members(collaborator_ids)
        logger.info(
            f"Removed {deleted} growth_member subscriptions from portfolio {portfolio.pid}"
        )
        return deleted

    def handle_upgrade(self, user_id: UUIDType) -> Portfolio:
        """Owner reached GROWTH: make sure the portfolio exists, then lift collaborators"""
        portfolio = PortfolioManager(self.db).create_portfolio_for_owner(user_id)
        self.sync_member_tiers(portfolio.pid, Tier.GROWTH)
        return portfolio

    def handle_downgrade(self, user_id: UUIDType) -> Optional[Portfolio]:
        """Owner left GROWTH: collaborators fall back to FREE, structure is kept"""
        portfolio = self.portfolios_crud.get_owned_by(user_id)
        if not portfolio:
            return None

        self.sync_member_tiers(portfolio.pid, Tier.FREE)
        return portfolio

    def handle_resubscribe(self, user_id: UUIDType) -> Optional[Portfolio]:
        portfolio = self.portfolios_crud.get_owned_by(user_id)
        if not portfolio:
            return None

        owner_subscription = self.subscriptions_crud.get_active_subscription(user_id)
        if not owner_subscription or not owner_subscription.price_id:
            return portfolio

        self.sync_member_tiers(portfolio.pid, Tier.GROWTH)
        return portfolio
