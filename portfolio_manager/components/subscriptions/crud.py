from typing import Optional, List
from uuid import UUID as UUIDType
from sqlalchemy.orm import Session
from sqlalchemy import and_, or_

from portfolio_manager.components.subscriptions.models import Subscription
from portfolio_manager.components.subscriptions.tiers import resolve_tier
from portfolio_manager.core import config
from portfolio_manager.core.base_crud import BaseCRUD
from portfolio_manager.core.enums import (
    DERIVED_SUBSCRIPTION_PROVIDER,
    MembershipType,
    SubscriptionStatus,
    Tier,
)


class SubscriptionsCRUD(BaseCRUD):
    """CRUD operations for Subscriptions"""

    def __init__(self, db: Session):
        super().__init__(Subscription, db)

    def get_active_subscription(self, user_id: UUIDType) -> Optional[Subscription]:
        """
        Get the user's primary plan.

        A user may hold several rows (main plan, addons, extra seats, legacy rows
        without a membership type). The explicitly stamped main membership wins;
        otherwise any active row that is not an addon or an extra seat.
        """
        membership = (
            self.db.query(Subscription)
            .filter(
                and_(
                    Subscription.user_id == user_id,
                    Subscription.status == SubscriptionStatus.ACTIVE.value,
                    Subscription.membership_type == MembershipType.MEMBERSHIP.value,
                )
            )
            .order_by(Subscription.modified_at.desc(), Subscription.id.desc())
            .first()
        )
        if membership:
            return membership

        query = self.db.query(Subscription).filter(
            and_(
                Subscription.user_id == user_id,
                Subscription.status == SubscriptionStatus.ACTIVE.value,
                or_(
                    Subscription.membership_type.is_(None),
                    Subscription.membership_type != MembershipType.ADDON.value,
                ),
            )
        )

        if config.PRICE_ID_GROWTH_SEAT:
            query = query.filter(
                or_(
                    Subscription.price_id.is_(None),
                    Subscription.price_id != config.PRICE_ID_GROWTH_SEAT,
                )
            )

        return query.order_by(
            Subscription.modified_at.desc(), Subscription.id.desc()
        ).first()

    def get_user_tier(self, user_id: UUIDType) -> Tier:
        subscription = self.get_active_subscription(user_id)
        if not subscription:
            return Tier.FREE
        return resolve_tier(subscription.price_id)

    def mark_as_membership(self, subscription: Subscription) -> Subscription:
        """Stamp a plan as the main membership so addons never shadow it"""
        return self.update(
            subscription, {"membership_type": MembershipType.MEMBERSHIP.value}
        )

    def get_growth_member(self, user_id: UUIDType) -> Optional[Subscription]:
        return (
            self.db.query(Subscription)
            .filter(
                and_(
                    Subscription.user_id == user_id,
                    Subscription.membership_type
                    == MembershipType.GROWTH_MEMBER.value,
                )
            )
            .order_by(Subscription.id.asc())
            .first()
        )

    def list_growth_members(self, user_ids: List[UUIDType]) -> List[Subscription]:
        if not user_ids:
            return []
        return (
            self.db.query(Subscription)
            .filter(
                and_(
                    Subscription.user_id.in_(user_ids),
                    Subscription.membership_type
                    == MembershipType.GROWTH_MEMBER.value,
                )
            )
            .all()
        )

    def upsert_growth_member(self, user_id: UUIDType, price_id: str) -> Subscription:
        """Mirror an owner's plan onto a collaborator (update in place or insert)"""
        existing = self.get_growth_member(user_id)
        if existing:
            return self.update(
                existing,
                {"status": SubscriptionStatus.ACTIVE.value, "price_id": price_id},
            )

        # Derived rows have no external billing ids; the owner's plan pays for them
        return self.create(
            {
                "user_id": user_id,
                "provider": DERIVED_SUBSCRIPTION_PROVIDER,
                "status": SubscriptionStatus.ACTIVE.value,
                "price_id": price_id,
                "membership_type": MembershipType.GROWTH_MEMBER.value,
            }
        )

    def delete_growth_members(self, user_ids: List[UUIDType]) -> int:
        if not user_ids:
            return 0
        deleted = (
            self.db.query(Subscription)
            .filter(
                and_(
                    Subscription.user_id.in_(user_ids),
                    Subscription.membership_type
                    == MembershipType.GROWTH_MEMBER.value,
                )
            )
            .delete()
        )
        self.db.commit()
        return deleted

    def list_seat_subscriptions(self, user_id: UUIDType) -> List[Subscription]:
        """Extra-seat addon rows, including cancelled ones still inside their period"""
        if not config.PRICE_ID_GROWTH_SEAT:
            return []
        statuses = [SubscriptionStatus.ACTIVE.value] + [
            status.value for status in SubscriptionStatus.cancelled_statuses()
        ]
        return (
            self.db.query(Subscription)
            .filter(
                and_(
                    Subscription.user_id == user_id,
                    Subscription.price_id == config.PRICE_ID_GROWTH_SEAT,
                    Subscription.status.in_(statuses),
                )
            )
            .all()
        )
