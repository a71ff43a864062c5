"""
Portfolio lifecycle: creation for qualifying owners, membership lookups,
collaborator listing / removal and seat accounting.

Runs on the privileged session (see `database.session.get_admin_db`); every
public method that writes re-checks the caller's rights first.
"""

from typing import Any, Callable, Dict, List, Optional
from uuid import UUID as UUIDType
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from portfolio_manager.components.portfolios.crud import PortfoliosCRUD
from portfolio_manager.components.portfolios.models import Portfolio, PortfolioMembership
from portfolio_manager.components.subscriptions.crud import SubscriptionsCRUD
from portfolio_manager.components.subscriptions.tiers import resolve_tier
from portfolio_manager.components.users.crud import ProfilesCRUD
from portfolio_manager.core import config
from portfolio_manager.core.enums import SubscriptionStatus, Tier
from portfolio_manager.core.exceptions import (
    AlreadyExistsException,
    AlreadyInPortfolioException,
    NotFoundException,
    StorageFailureException,
    TierIneligibleException,
    UnauthorizedException,
)
from portfolio_manager.core.log import logger
from portfolio_manager.core.utils import as_utc, utcnow
from portfolio_manager.queues.controller import (
    schedule_collaborator_detach,
    schedule_portfolio_reconciliation,
)


def run_best_effort(db: Session, step: str, func: Callable, *args) -> bool:
    """Run a follow-up write whose failure must not undo the committed primary step"""
    try:
        func(*args)
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Best-effort step '{step}' failed: {e}")
        return False


class PortfolioManager:
    def __init__(self, db: Session):
        self.db = db
        self.portfolios_crud = PortfoliosCRUD(db)
        self.subscriptions_crud = SubscriptionsCRUD(db)
        self.profiles_crud = ProfilesCRUD(db)

    def get_user_portfolio(self, user_id: UUIDType) -> Optional[Portfolio]:
        return self.portfolios_crud.get_for_user(user_id)

    def get_portfolio(self, portfolio_id: UUIDType) -> Portfolio:
        portfolio = self.portfolios_crud.get_by_pid(portfolio_id)
        if not portfolio:
            raise NotFoundException("Portfolio not found")
        return portfolio

    def is_portfolio_owner(self, user_id: UUIDType, portfolio_id: UUIDType) -> bool:
        return self.portfolios_crud.is_owner(user_id, portfolio_id)

    def is_portfolio_member(self, user_id: UUIDType, portfolio_id: UUIDType) -> bool:
        return self.portfolios_crud.is_member(user_id, portfolio_id)

    def get_portfolio_owner(self, portfolio_id: UUIDType) -> Optional[UUIDType]:
        portfolio = self.portfolios_crud.get_by_pid(portfolio_id)
        return portfolio.owner_id if portfolio else None

    def create_portfolio_for_owner(self, user_id: UUIDType) -> Portfolio:
        """
        Create (or return) the portfolio owned by `user_id`.

        Safe to re-run: an existing owned portfolio is returned untouched, so a
        retry after a partial failure simply skips the insert. Steps after the
        insert are best effort; if any fails a reconciliation job is queued,
        since a retry would return early and never repeat them.
        """
        existing = self.portfolios_crud.get_owned_by(user_id)
        if existing:
            return existing

        membership = self.portfolios_crud.get_membership(user_id)
        if membership:
            raise AlreadyInPortfolioException(
                "You are already a collaborator in another portfolio. "
                "Leave it before creating your own."
            )

        subscription = self.subscriptions_crud.get_active_subscription(user_id)
        if not subscription:
            raise TierIneligibleException(
                "An active Growth plan subscription is required to create a portfolio"
            )
        if resolve_tier(subscription.price_id) != Tier.GROWTH:
            raise TierIneligibleException("Portfolio creation requires the Growth plan")

        try:
            portfolio = self.portfolios_crud.create({"owner_id": user_id})
        except IntegrityError:
            # Lost a race against a concurrent create for the same owner
            self.db.rollback()
            existing = self.portfolios_crud.get_owned_by(user_id)
            if existing:
                return existing
            raise AlreadyExistsException("A portfolio already exists for this owner")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating portfolio for {user_id}: {e}")
            raise StorageFailureException("Failed to create portfolio")

        logger.info(f"Created portfolio {portfolio.pid} for owner {user_id}")

        completed = [
            run_best_effort(
                self.db,
                "point owner profile at portfolio",
                self.profiles_crud.set_portfolio,
                user_id,
                portfolio.pid,
            ),
            run_best_effort(
                self.db,
                "move owner posts into portfolio",
                self.portfolios_crud.reparent_posts,
                user_id,
                portfolio.pid,
            ),
            run_best_effort(
                self.db,
                "stamp owner subscription as membership",
                self.subscriptions_crud.mark_as_membership,
                subscription,
            ),
            run_best_effort(
                self.db,
                "add owner membership row",
                self.ensure_owner_membership,
                portfolio,
            ),
        ]

        if not all(completed):
            schedule_portfolio_reconciliation(portfolio.pid)

        self.db.refresh(portfolio)
        return portfolio

    def ensure_owner_membership(self, portfolio: Portfolio) -> PortfolioMembership:
        """The owner holds an accepted row too, so member lists need no special case"""
        membership = self.portfolios_crud.get_accepted_membership(
            portfolio.owner_id, portfolio.pid
        )
        if membership:
            return membership

        return self.portfolios_crud.create_membership(
            portfolio_id=portfolio.pid,
            user_id=portfolio.owner_id,
            invited_by=portfolio.owner_id,
        )

    def list_collaborators(
        self, portfolio_id: UUIDType, requester_id: Optional[UUIDType] = None
    ) -> List[Dict[str, Any]]:
        """Accepted members (owner included) with their profile details"""
        portfolio = self.get_portfolio(portfolio_id)
        if requester_id is not None and not self.is_portfolio_member(
            requester_id, portfolio_id
        ):
            raise UnauthorizedException("You are not a member of this portfolio")

        memberships = self.portfolios_crud.list_accepted_memberships(portfolio_id)
        profiles = {
            profile.pid: profile
            for profile in self.profiles_crud.get_many(
                [membership.user_id for membership in memberships]
            )
        }

        collaborators = []
        for membership in memberships:
            profile = profiles.get(membership.user_id)
            collaborators.append(
                {
                    "membership": membership,
                    "is_owner": membership.user_id == portfolio.owner_id,
                    "email": profile.email if profile else None,
                    "first_name": profile.first_name if profile else None,
                    "last_name": profile.last_name if profile else None,
                }
            )
        return collaborators

    def remove_collaborator(
        self,
        portfolio_id: UUIDType,
        collaborator_id: UUIDType,
        owner_id: UUIDType,
    ) -> bool:
        if not self.is_portfolio_owner(owner_id, portfolio_id):
            raise UnauthorizedException("Only the portfolio owner can remove collaborators")

        if collaborator_id == owner_id:
            raise UnauthorizedException("The portfolio owner cannot be removed")

        membership = self.portfolios_crud.get_accepted_membership(
            collaborator_id, portfolio_id
        )
        if not membership:
            raise NotFoundException("Collaborator not found in this portfolio")

        try:
            self.portfolios_crud.delete_membership(portfolio_id, collaborator_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error removing collaborator {collaborator_id}: {e}")
            raise StorageFailureException("Failed to remove collaborator")

        logger.info(f"Removed collaborator {collaborator_id} from portfolio {portfolio_id}")

        completed = [
            run_best_effort(
                self.db,
                "detach collaborator profile",
                self.profiles_crud.set_portfolio,
                collaborator_id,
                None,
            ),
            run_best_effort(
                self.db,
                "detach collaborator posts",
                self.portfolios_crud.reparent_posts,
                collaborator_id,
                None,
            ),
            run_best_effort(
                self.db,
                "delete growth_member subscription",
                self.subscriptions_crud.delete_growth_members,
                [collaborator_id],
            ),
        ]

        # A removed user is outside the portfolio reconciliation walk
        if not all(completed):
            schedule_collaborator_detach(collaborator_id)

        return True

    def get_seat_info(self, portfolio_id: UUIDType) -> Dict[str, Any]:
        """
        Seat usage for a portfolio.

        The plan includes BASE_PORTFOLIO_SEATS (owner + two collaborators); every
        extra-seat subscription of the owner adds one. Cancelled seat rows still
        count until their billing period ends.
        """
        portfolio = self.get_portfolio(portfolio_id)

        collaborators = len(self.portfolios_crud.list_collaborator_ids(portfolio))
        seats_used = 1 + collaborators

        now = utcnow()
        additional_seats = 0
        for seat in self.subscriptions_crud.list_seat_subscriptions(portfolio.owner_id):
            if seat.status == SubscriptionStatus.ACTIVE.value:
                additional_seats += 1
            elif seat.current_period_end and as_utc(seat.current_period_end) > now:
                additional_seats += 1

        total_seats = config.BASE_PORTFOLIO_SEATS + additional_seats
        seats_remaining = max(0, total_seats - seats_used)

        return {
            "base_seats": config.BASE_PORTFOLIO_SEATS,
            "additional_seats": additional_seats,
            "total_seats": total_seats,
            "seats_used": seats_used,
            "seats_remaining": seats_remaining,
            "can_invite_more": seats_remaining > 0,
        }
