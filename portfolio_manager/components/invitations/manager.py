"""
Portfolio invitations: issue, look up, accept and cancel.

Accepting is the one multi-step transition in the system. The membership row
is the source of truth; once it is committed the remaining steps (invitation
status, profile and post re-parenting, the derived subscription) are best
effort, and a failure among them queues a reconciliation job instead of
undoing the membership.
"""

from typing import List, Optional
from uuid import UUID as UUIDType

import requests
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from portfolio_manager.components.invitations.crud import InvitationsCRUD
from portfolio_manager.components.invitations.models import PortfolioInvitation
from portfolio_manager.components.portfolios.crud import PortfoliosCRUD
from portfolio_manager.components.portfolios.manager import run_best_effort
from portfolio_manager.components.portfolios.models import Portfolio
from portfolio_manager.components.subscriptions.crud import SubscriptionsCRUD
from portfolio_manager.components.subscriptions.tiers import collaborator_sync_tier, resolve_tier
from portfolio_manager.components.users.crud import ProfilesCRUD
from portfolio_manager.core.email import send_portfolio_invitation_email
from portfolio_manager.core.enums import InvitationStatus, Tier
from portfolio_manager.core.exceptions import (
    AlreadyExistsException,
    AlreadyInPortfolioException,
    EmailMismatchException,
    InvalidOrExpiredException,
    NotFoundException,
    StorageFailureException,
    TierIneligibleException,
    UnauthorizedException,
)
from portfolio_manager.core.log import logger
from portfolio_manager.core.utils import as_utc, normalize_email, utcnow
from portfolio_manager.queues.controller import schedule_portfolio_reconciliation


class InvitationManager:
    def __init__(self, db: Session):
        self.db = db
        self.invitations_crud = InvitationsCRUD(db)
        self.portfolios_crud = PortfoliosCRUD(db)
        self.subscriptions_crud = SubscriptionsCRUD(db)
        self.profiles_crud = ProfilesCRUD(db)

    def create_invitation(
        self, portfolio_id: UUIDType, email: str, inviter_id: UUIDType
    ) -> PortfolioInvitation:
        if not self.portfolios_crud.is_owner(inviter_id, portfolio_id):
            raise UnauthorizedException("Only the portfolio owner can create invitations")

        subscription = self.subscriptions_crud.get_active_subscription(inviter_id)
        if not subscription:
            raise TierIneligibleException(
                "Portfolio owner must have an active Growth plan subscription"
            )
        if resolve_tier(subscription.price_id) != Tier.GROWTH:
            raise TierIneligibleException("Portfolio invitations require the Growth plan")

        email = normalize_email(email)

        if self.invitations_crud.get_pending_by_email(portfolio_id, email):
            raise AlreadyExistsException("An invitation already exists for this email")

        existing_user = self.profiles_crud.get_by_email(email)
        if existing_user and self.portfolios_crud.get_accepted_membership(
            existing_user.pid, portfolio_id
        ):
            raise AlreadyExistsException("User is already a collaborator in this portfolio")

        try:
            invitation = self.invitations_crud.create_invitation(
                portfolio_id=portfolio_id,
                email=email,
                invited_by=inviter_id,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating invitation for {email}: {e}")
            raise StorageFailureException("Failed to create invitation")

        logger.info(f"Created invitation {invitation.pid} to portfolio {portfolio_id}")

        # The token stays valid for its full lifetime even if delivery fails
        self._send_invitation_email(invitation, inviter_id)
        return invitation

    def _send_invitation_email(
        self, invitation: PortfolioInvitation, inviter_id: UUIDType
    ) -> bool:
        try:
            inviter = self.profiles_crud.get_by_pid(inviter_id)
            inviter_name = inviter.display_name if inviter else "A team member"
            return send_portfolio_invitation_email(
                invitation.email, invitation.token, inviter_name
            )
        except (SQLAlchemyError, requests.exceptions.RequestException) as e:
            logger.error(f"Error sending invitation email to {invitation.email}: {e}")
            return False

    def get_invitation_by_token(self, token: str) -> Optional[PortfolioInvitation]:
        """Usable (pending, unexpired) invitation for a token, else None"""
        invitation = self.invitations_crud.get_by_token(token)
        if not invitation:
            return None

        if as_utc(invitation.expires_at) < utcnow():
            # Expiry is applied lazily on read
            if invitation.status == InvitationStatus.PENDING.value:
                run_best_effort(
                    self.db,
                    "mark invitation expired",
                    self.invitations_crud.set_status,
                    invitation,
                    InvitationStatus.EXPIRED,
                )
            return None

        if invitation.status != InvitationStatus.PENDING.value:
            return None

        return invitation

    def accept_invitation(self, token: str, user_id: UUIDType) -> bool:
        invitation = self.get_invitation_by_token(token)
        if not invitation:
            raise InvalidOrExpiredException()

        profile = self.profiles_crud.get_by_pid(user_id)
        if not profile or normalize_email(profile.email) != normalize_email(
            invitation.email
        ):
            raise EmailMismatchException()

        self._ensure_not_in_portfolio(user_id, invitation.portfolio_id)

        portfolio_id = invitation.portfolio_id
        invitation_id = invitation.id

        try:
            self.portfolios_crud.create_membership(
                portfolio_id=portfolio_id,
                user_id=user_id,
                invited_by=invitation.invited_by,
            )
        except IntegrityError:
            # A concurrent accept for the same user got there first
            self.db.rollback()
            raise AlreadyInPortfolioException()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating membership for {user_id} in {portfolio_id}: {e}")
            raise StorageFailureException("Failed to accept invitation")

        logger.info(f"User {user_id} joined portfolio {portfolio_id}")

        completed = [
            run_best_effort(
                self.db,
                "mark invitation accepted",
                self._mark_accepted,
                invitation_id,
            ),
            run_best_effort(
                self.db,
                "point collaborator profile at portfolio",
                self.profiles_crud.set_portfolio,
                user_id,
                portfolio_id,
            ),
            # Personal posts stay creator-only; access control enforces that
            run_best_effort(
                self.db,
                "move collaborator posts into portfolio",
                self.portfolios_crud.reparent_posts,
                user_id,
                portfolio_id,
            ),
            run_best_effort(
                self.db,
                "derive growth_member subscription",
                self._derive_member_subscription,
                portfolio_id,
                user_id,
            ),
        ]

        if not all(completed):
            schedule_portfolio_reconciliation(portfolio_id)

        return True

    def _ensure_not_in_portfolio(self, user_id: UUIDType, portfolio_id: UUIDType):
        if self.portfolios_crud.get_owned_by(user_id):
            raise AlreadyInPortfolioException("You already own a portfolio")

        membership = self.portfolios_crud.get_membership(user_id)
        if not membership:
            return

        if membership.portfolio_id == portfolio_id:
            raise AlreadyInPortfolioException(
                "You are already a collaborator in this portfolio"
            )
        raise AlreadyInPortfolioException(
            "You are already a collaborator in another portfolio. "
            "You can only be a collaborator in one portfolio at a time."
        )

    def _mark_accepted(self, invitation_id: int):
        invitation = self.invitations_crud.get_by_id(invitation_id)
        if invitation:
            self.invitations_crud.set_status(invitation, InvitationStatus.ACCEPTED)

    def _derive_member_subscription(self, portfolio_id: UUIDType, user_id: UUIDType):
        portfolio: Optional[Portfolio] = self.portfolios_crud.get_by_pid(portfolio_id)
        if not portfolio:
            return

        owner_subscription = self.subscriptions_crud.get_active_subscription(
            portfolio.owner_id
        )
        if not owner_subscription or not owner_subscription.price_id:
            logger.warning(
                f"Owner {portfolio.owner_id} has no priced subscription to mirror"
            )
            return

        owner_tier = resolve_tier(owner_subscription.price_id)
        if collaborator_sync_tier(owner_tier) != Tier.GROWTH:
            logger.warning(
                f"Owner {portfolio.owner_id} is on {owner_tier.value}, collaborators stay on FREE"
            )
            return

        self.subscriptions_crud.upsert_growth_member(user_id, owner_subscription.price_id)

    def cancel_invitation(
        self, invitation_id: UUIDType, portfolio_id: UUIDType, requester_id: UUIDType
    ) -> PortfolioInvitation:
        if not self.portfolios_crud.is_owner(requester_id, portfolio_id):
            raise UnauthorizedException("Only the portfolio owner can cancel invitations")

        invitation = self.invitations_crud.get_by_pid(invitation_id)
        if (
            not invitation
            or invitation.portfolio_id != portfolio_id
            or invitation.status != InvitationStatus.PENDING.value
        ):
            raise NotFoundException("Invitation not found or cannot be cancelled")

        try:
            return self.invitations_crud.set_status(invitation, InvitationStatus.DECLINED)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error cancelling invitation {invitation_id}: {e}")
            raise StorageFailureException("Failed to cancel invitation")

    def list_pending_invitations(
        self, portfolio_id: UUIDType, requester_id: UUIDType
    ) -> List[PortfolioInvitation]:
        if not self.portfolios_crud.is_owner(requester_id, portfolio_id):
            raise UnauthorizedException("Only the portfolio owner can view invitations")

        self.expire_stale_invitations(portfolio_id)
        return self.invitations_crud.list_pending(portfolio_id)

    def expire_stale_invitations(self, portfolio_id: Optional[UUIDType] = None) -> int:
        try:
            return self.invitations_crud.cleanup_expired_invitations(portfolio_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error expiring invitations: {e}")
            return 0
