from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portfolio_manager.api.posts.request_response import (
    AccessibleOrganizationsResponse,
    PostAccessResponse,
    PostListResponse,
    PostResponse,
)
from portfolio_manager.components.auth.dependencies import get_current_auth, require_portfolio
from portfolio_manager.components.portfolios.models import Portfolio
from portfolio_manager.components.posts.access import (
    PostAccessController,
    referenced_organization_ids,
)
from portfolio_manager.components.posts.models import Post
from portfolio_manager.core.security import AuthContext
from portfolio_manager.database.session import get_admin_db, get_db

router = APIRouter()


def _post_response(post: Post, auth: AuthContext) -> PostResponse:
    return PostResponse(
        id=post.id,
        pid=post.pid,
        user_id=post.user_id,
        portfolio_id=post.portfolio_id,
        publish_target=post.publish_target,
        content=post.content,
        organization_ids=sorted(referenced_organization_ids(post)),
        is_own=post.user_id == auth.user_id,
        created_at=post.created_at,
    )


@router.get("", response_model=PostListResponse)
async def list_posts(
    auth: AuthContext = Depends(get_current_auth),
    db: Session = Depends(get_db),
    admin_db: Session = Depends(get_admin_db),
):
    """Posts visible to the caller: their portfolio's shared posts plus their own"""
    controller = PostAccessController(db, admin_db)

    portfolio = controller.portfolios_crud.get_for_user(auth.user_id)
    candidates = controller.posts_crud.list_feed_candidates(
        auth.user_id, portfolio.pid if portfolio else None
    )
    posts = controller.filter_accessible_posts(auth.user_id, candidates)

    return PostListResponse(posts=[_post_response(post, auth) for post in posts])


@router.get("/organizations", response_model=AccessibleOrganizationsResponse)
async def list_accessible_organizations(
    auth: AuthContext = Depends(get_current_auth),
    portfolio: Portfolio = Depends(require_portfolio),
    db: Session = Depends(get_db),
    admin_db: Session = Depends(get_admin_db),
):
    """Organisations through which the caller sees shared posts"""
    organization_ids = PostAccessController(db, admin_db).get_accessible_organizations(
        auth.user_id, portfolio.pid
    )
    return AccessibleOrganizationsResponse(organization_ids=organization_ids)


@router.get("/{post_id}/access", response_model=PostAccessResponse)
async def check_post_access(
    post_id: int,
    auth: AuthContext = Depends(get_current_auth),
    db: Session = Depends(get_db),
    admin_db: Session = Depends(get_admin_db),
):
    """Whether the caller may see a post"""
    can_access = PostAccessController(db, admin_db).can_access_post_id(
        auth.user_id, post_id
    )
    return PostAccessResponse(post_id=post_id, can_access=can_access)
