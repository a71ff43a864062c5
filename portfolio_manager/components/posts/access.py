"""
Post visibility inside shared portfolios.

A post is always visible to its creator. Anyone else must be a member of the
post's portfolio, and even then only organisational posts are shared: personal
posts stay creator-only. An organisational post is visible to a member who has
connected at least one of the organisations the post references.

The organisations a post references are the union of its publish target (when
it names an organisation) and the organisation of every publication record.
That set alone decides both questions: empty means personal, otherwise the
member needs a grant for one of its entries.
"""

from typing import Iterable, List, Optional, Set
from uuid import UUID as UUIDType
from sqlalchemy.orm import Session

from portfolio_manager.components.portfolios.crud import PortfoliosCRUD
from portfolio_manager.components.posts.crud import OrganizationGrantsCRUD, PostsCRUD
from portfolio_manager.components.posts.models import Post
from portfolio_manager.core.enums import PERSONAL_PUBLISH_TARGET


def referenced_organization_ids(post) -> Set[str]:
    organization_ids = set()

    if post.publish_target and post.publish_target != PERSONAL_PUBLISH_TARGET:
        organization_ids.add(post.publish_target)

    for publication in post.publications or []:
        if publication.organization_id:
            organization_ids.add(publication.organization_id)

    return organization_ids


def is_organizational(post) -> bool:
    return bool(referenced_organization_ids(post))


def is_personal(post) -> bool:
    return not is_organizational(post)


def _shared_with(post, organization_ids: Set[str]) -> bool:
    """Rules 4 and 5: personal posts are never shared, org posts need a matching grant"""
    referenced = referenced_organization_ids(post)
    if not referenced:
        return False
    return not referenced.isdisjoint(organization_ids)


class PostAccessController:
    """
    `db` is the caller-scoped session used for the requester's own grants;
    `admin_db` reads portfolio membership and other users' posts.
    """

    def __init__(self, db: Session, admin_db: Optional[Session] = None):
        self.db = db
        self.admin_db = admin_db or db
        self.grants_crud = OrganizationGrantsCRUD(self.db)
        self.portfolios_crud = PortfoliosCRUD(self.admin_db)
        self.posts_crud = PostsCRUD(self.admin_db)

    def get_user_organization_ids(self, user_id: UUIDType) -> Set[str]:
        return self.grants_crud.get_organization_ids(user_id)

    def can_access(self, user_id: UUIDType, post) -> bool:
        if post.user_id == user_id:
            return True

        if not post.portfolio_id:
            return False

        if not self.portfolios_crud.is_member(user_id, post.portfolio_id):
            return False

        if is_personal(post):
            return False

        return _shared_with(post, self.get_user_organization_ids(user_id))

    def can_access_post_id(self, user_id: UUIDType, post_id: int) -> bool:
        post = self.posts_crud.get_by_id(post_id)
        if not post:
            return False
        return self.can_access(user_id, post)

    def filter_accessible_posts(self, user_id: UUIDType, posts: Iterable) -> List:
        """Same predicate as `can_access`, with one membership and grant lookup per call"""
        posts = list(posts)

        portfolio = self.portfolios_crud.get_for_user(user_id)
        if not portfolio:
            return [post for post in posts if post.user_id == user_id]

        organization_ids = self.get_user_organization_ids(user_id)

        accessible = []
        for post in posts:
            if post.user_id == user_id:
                accessible.append(post)
            elif post.portfolio_id and post.portfolio_id == portfolio.pid:
                if _shared_with(post, organization_ids):
                    accessible.append(post)
        return accessible

    def get_accessible_posts(self, user_id: UUIDType, portfolio_id: UUIDType) -> List[Post]:
        if not self.portfolios_crud.is_member(user_id, portfolio_id):
            return []

        return self.filter_accessible_posts(
            user_id, self.posts_crud.list_by_portfolio(portfolio_id)
        )

    def get_accessible_organizations(
        self, user_id: UUIDType, portfolio_id: UUIDType
    ) -> List[str]:
        if not self.portfolios_crud.is_member(user_id, portfolio_id):
            return []
        return sorted(self.get_user_organization_ids(user_id))
