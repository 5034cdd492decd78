import logging

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from community.core.config import settings
from community.db.session import get_db
from community.relationship.errors import NotFound
from community.relationship.refs import parse_identity_ref
from community.relationship.status import IdentityPage, list_followers, list_following
from community.relationship.store import get_identity
from community.schemas.follow import FollowListResponse
from community.schemas.user import IdentityProfile, IdentitySummary

log = logging.getLogger(__name__)

router = APIRouter(prefix="/identities", tags=["identities"])


def _page_response(page: IdentityPage) -> FollowListResponse:
    return FollowListResponse(
        identity_id=page.identity_id,
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        count=len(page.items),
        items=[IdentitySummary.model_validate(u) for u in page.items],
    )


@router.get("/{id}", response_model=IdentityProfile)
async def get_profile(
    id: str = Path(..., description="User ID"),
    db: AsyncSession = Depends(get_db),
):
    ref = parse_identity_ref(id)
    user = await get_identity(db, ref)
    if user is None:
        raise NotFound("user", ref)
    return IdentityProfile.model_validate(user)


@router.get("/{id}/followers", response_model=FollowListResponse)
async def get_followers(
    id: str = Path(..., description="User ID"),
    db: AsyncSession = Depends(get_db),
    limit: int = Query(settings.FOLLOW_PAGE_DEFAULT, ge=1, le=settings.FOLLOW_PAGE_MAX, description="Max users to return"),
    offset: int = Query(0, ge=0, description="Number of users to skip"),
):
    page = await list_followers(db, id, limit=limit, offset=offset)
    return _page_response(page)


@router.get("/{id}/following", response_model=FollowListResponse)
async def get_following(
    id: str = Path(..., description="User ID"),
    db: AsyncSession = Depends(get_db),
    limit: int = Query(settings.FOLLOW_PAGE_DEFAULT, ge=1, le=settings.FOLLOW_PAGE_MAX, description="Max users to return"),
    offset: int = Query(0, ge=0, description="Number of users to skip"),
):
    page = await list_following(db, id, limit=limit, offset=offset)
    return _page_response(page)
