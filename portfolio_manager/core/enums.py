from enum import Enum


class Tier(str, Enum):
    """Logical subscription tiers"""

    FREE = "FREE"
    LITE = "LITE"
    STARTER = "STARTER"
    GROWTH = "GROWTH"
    ENTERPRISE = "ENTERPRISE"

    @classmethod
    def sync_targets(cls) -> list["Tier"]:
        """Tiers a portfolio can propagate to its collaborators"""
        return [cls.GROWTH, cls.FREE]

    @classmethod
    def portfolio_tiers(cls) -> list["Tier"]:
        """Owner tiers that keep a portfolio active for its collaborators"""
        return [cls.GROWTH, cls.ENTERPRISE]


class MembershipStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class InvitationStatus(str, Enum):
    """Invitation status values"""

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    DECLINED = "declined"


class MembershipType(str, Enum):
    """Subscription row kinds; legacy rows carry no type at all"""

    MEMBERSHIP = "membership"
    ADDON = "addon"
    GROWTH_MEMBER = "growth_member"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELED = "canceled"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @classmethod
    def cancelled_statuses(cls) -> list["SubscriptionStatus"]:
        """Both spellings are sent by the billing provider"""
        return [cls.CANCELED, cls.CANCELLED]


PERSONAL_PUBLISH_TARGET = "personal"
DERIVED_SUBSCRIPTION_PROVIDER = "lemonsqueezy"
