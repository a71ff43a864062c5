from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from portfolio_manager.api.portfolios.request_response import (
    CheckTierResponse,
    CollaboratorListResponse,
    CollaboratorResponse,
    PortfolioResponse,
    SeatInfoResponse,
    SuccessResponse,
    SyncTiersRequest,
    SyncTiersResponse,
)
from portfolio_manager.components.auth.dependencies import get_current_auth, require_portfolio
from portfolio_manager.components.portfolios.manager import PortfolioManager
from portfolio_manager.components.portfolios.models import Portfolio
from portfolio_manager.components.subscriptions.sync import TierSynchronizer
from portfolio_manager.components.subscriptions.tiers import resolve_tier, tier_display_name
from portfolio_manager.core.exceptions import UnauthorizedException
from portfolio_manager.core.security import AuthContext
from portfolio_manager.database.session import get_admin_db

router = APIRouter()


def _portfolio_response(portfolio: Portfolio, user_id: UUID) -> PortfolioResponse:
    return PortfolioResponse(
        id=portfolio.pid,
        owner_id=portfolio.owner_id,
        is_owner=portfolio.owner_id == user_id,
        created_at=portfolio.created_at,
        updated_at=portfolio.modified_at,
    )


@router.post("", response_model=PortfolioResponse)
async def create_portfolio(
    auth: AuthContext = Depends(get_current_auth),
    admin_db: Session = Depends(get_admin_db),
):
    """Create the caller's portfolio (Growth plan only, idempotent)"""
    portfolio = PortfolioManager(admin_db).create_portfolio_for_owner(auth.user_id)
    return _portfolio_response(portfolio, auth.user_id)


@router.get("", response_model=PortfolioResponse)
async def get_portfolio(
    auth: AuthContext = Depends(get_current_auth),
    portfolio: Portfolio = Depends(require_portfolio),
):
    """Get the portfolio the caller owns or collaborates in"""
    return _portfolio_response(portfolio, auth.user_id)


@router.get("/check-tier", response_model=CheckTierResponse)
async def check_tier(
    price_id: str = Query(..., min_length=1),
    auth: AuthContext = Depends(get_current_auth),
):
    """Resolve a price id to its tier"""
    tier = resolve_tier(price_id)
    return CheckTierResponse(
        price_id=price_id, tier=tier, display_name=tier_display_name(tier)
    )


@router.get("/collaborators", response_model=CollaboratorListResponse)
async def list_collaborators(
    auth: AuthContext = Depends(get_current_auth),
    portfolio: Portfolio = Depends(require_portfolio),
    admin_db: Session = Depends(get_admin_db),
):
    """List accepted collaborators of the caller's portfolio"""
    collaborators = PortfolioManager(admin_db).list_collaborators(
        portfolio.pid, requester_id=auth.user_id
    )

    return CollaboratorListResponse(
        collaborators=[
            CollaboratorResponse(
                user_id=item["membership"].user_id,
                portfolio_id=item["membership"].portfolio_id,
                invited_by=item["membership"].invited_by,
                status=item["membership"].status,
                is_owner=item["is_owner"],
                invited_at=item["membership"].invited_at,
                accepted_at=item["membership"].accepted_at,
                email=item["email"],
                first_name=item["first_name"],
                last_name=item["last_name"],
            )
            for item in collaborators
        ]
    )


@router.delete("/collaborators/{user_id}", response_model=SuccessResponse)
async def remove_collaborator(
    user_id: UUID,
    auth: AuthContext = Depends(get_current_auth),
    portfolio: Portfolio = Depends(require_portfolio),
    admin_db: Session = Depends(get_admin_db),
):
    """Remove a collaborator (owner only)"""
    PortfolioManager(admin_db).remove_collaborator(portfolio.pid, user_id, auth.user_id)
    return SuccessResponse()


@router.get("/seats", response_model=SeatInfoResponse)
async def get_seats(
    portfolio: Portfolio = Depends(require_portfolio),
    admin_db: Session = Depends(get_admin_db),
):
    """Seat usage for the caller's portfolio"""
    return SeatInfoResponse(**PortfolioManager(admin_db).get_seat_info(portfolio.pid))


@router.post("/sync-tiers", response_model=SyncTiersResponse)
async def sync_tiers(
    request: SyncTiersRequest,
    auth: AuthContext = Depends(get_current_auth),
    portfolio: Portfolio = Depends(require_portfolio),
    admin_db: Session = Depends(get_admin_db),
):
    """Re-apply a tier to every collaborator (owner only)"""
    if portfolio.owner_id != auth.user_id:
        raise UnauthorizedException("Only the portfolio owner can sync collaborator tiers")

    synced = TierSynchronizer(admin_db).sync_member_tiers(portfolio.pid, request.tier)
    return SyncTiersResponse(tier=request.tier, subscriptions_synced=synced)
