from uuid import UUID
import logging

from portfolio_manager.database.session import admin_db_session
from portfolio_manager.components.invitations.crud import InvitationsCRUD
from portfolio_manager.components.portfolios.crud import PortfoliosCRUD
from portfolio_manager.components.portfolios.manager import PortfolioManager, run_best_effort
from portfolio_manager.components.subscriptions.crud import SubscriptionsCRUD
from portfolio_manager.components.subscriptions.sync import TierSynchronizer
from portfolio_manager.components.subscriptions.tiers import collaborator_sync_tier, resolve_tier
from portfolio_manager.components.users.crud import ProfilesCRUD
from portfolio_manager.core.enums import InvitationStatus, MembershipType, Tier

logger = logging.getLogger(__name__)


def reconcile_portfolio(portfolio_id: str) -> dict:
    """
    RQ task that repairs the state best-effort steps may have left behind.

    For every accepted member it re-points the profile and posts at the
    portfolio and closes any invitation still pending for their email, then
    re-applies the tier implied by the owner's current subscription: GROWTH
    while the owner is on a portfolio tier (GROWTH or ENTERPRISE), else FREE.
    """
    with admin_db_session() as db:
        portfolios_crud = PortfoliosCRUD(db)
        portfolio = portfolios_crud.get_by_pid(UUID(str(portfolio_id)))
        if not portfolio:
            logger.error(f"Cannot reconcile missing portfolio {portfolio_id}")
            return {}

        profiles_crud = ProfilesCRUD(db)
        invitations_crud = InvitationsCRUD(db)

        run_best_effort(
            db,
            "add owner membership row",
            PortfolioManager(db).ensure_owner_membership,
            portfolio,
        )

        memberships = portfolios_crud.list_accepted_memberships(portfolio.pid)
        profiles = profiles_crud.get_many([m.user_id for m in memberships])

        for membership in memberships:
            run_best_effort(
                db,
                "point member profile at portfolio",
                profiles_crud.set_portfolio,
                membership.user_id,
                portfolio.pid,
            )
            run_best_effort(
                db,
                "move member posts into portfolio",
                portfolios_crud.reparent_posts,
                membership.user_id,
                portfolio.pid,
            )

        closed = 0
        for invitation in invitations_crud.list_pending_for_emails(
            portfolio.pid, [profile.email for profile in profiles]
        ):
            if run_best_effort(
                db,
                "mark invitation accepted",
                invitations_crud.set_status,
                invitation,
                InvitationStatus.ACCEPTED,
            ):
                closed += 1

        subscriptions_crud = SubscriptionsCRUD(db)
        owner_subscription = subscriptions_crud.get_active_subscription(portfolio.owner_id)
        owner_tier = resolve_tier(owner_subscription.price_id if owner_subscription else None)
        target_tier = collaborator_sync_tier(owner_tier)

        if (
            target_tier == Tier.GROWTH
            and owner_subscription.membership_type != MembershipType.MEMBERSHIP.value
        ):
            run_best_effort(
                db,
                "stamp owner subscription as membership",
                subscriptions_crud.mark_as_membership,
                owner_subscription,
            )

        synced = TierSynchronizer(db).sync_member_tiers(portfolio.pid, target_tier)

        logger.info(
            f"Reconciled portfolio {portfolio.pid}: {len(memberships)} members, "
            f"{closed} invitations closed, {synced} subscriptions synced to {target_tier.value}"
        )
        return {
            "portfolio_id": str(portfolio.pid),
            "members": len(memberships),
            "invitations_closed": closed,
            "tier": target_tier.value,
            "subscriptions_synced": synced,
        }


def expire_invitations() -> int:
    """RQ task: flip every pending invitation past its expiry to expired"""
    with admin_db_session() as db:
        expired = InvitationsCRUD(db).cleanup_expired_invitations()
        logger.info(f"Background task: expired {expired} invitations")
        return expired


def detach_removed_collaborator(user_id: str) -> dict:
    """
    RQ task that finishes a collaborator removal whose follow-up steps failed.

    Clears the profile and post pointers and deletes the derived growth_member
    row. Skipped when the user has since joined or created a portfolio; that
    portfolio's reconciliation owns their rows then.
    """
    with admin_db_session() as db:
        user_id = UUID(str(user_id))
        portfolio = PortfoliosCRUD(db).get_for_user(user_id)
        if portfolio:
            logger.info(f"Collaborator {user_id} now belongs to portfolio {portfolio.pid}, not detaching")
            return {"user_id": str(user_id), "detached": False}

        ProfilesCRUD(db).set_portfolio(user_id, None)
        posts = PortfoliosCRUD(db).reparent_posts(user_id, None)
        deleted = SubscriptionsCRUD(db).delete_growth_members([user_id])

        logger.info(
            f"Detached collaborator {user_id}: {posts} posts cleared, "
            f"{deleted} growth_member subscriptions deleted"
        )
        return {
            "user_id": str(user_id),
            "detached": True,
            "posts_detached": posts,
            "subscriptions_deleted": deleted,
        }
