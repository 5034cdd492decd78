from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from community.db.models import User
from community.db.session import get_db
from community.relationship.engine import follow, unfollow
from community.relationship.status import get_follow_status
from community.schemas.follow import FollowActionResponse, FollowStatusResponse
from community.utils.auth import get_current_user

router = APIRouter(prefix="/relationships", tags=["relationships"])


@router.post("/{target_id}/follow", response_model=FollowActionResponse)
async def follow_user(
    target_id: str = Path(..., description="ID of the user to follow"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = await follow(db, user.id, target_id)
    return FollowActionResponse(
        message="Successfully followed user",
        target_id=result.target_id,
        target_name=result.target_name,
        following=result.following,
        follower_count=result.follower_count,
        following_count=result.following_count,
    )


@router.post("/{target_id}/unfollow", response_model=FollowActionResponse)
async def unfollow_user(
    target_id: str = Path(..., description="ID of the user to unfollow"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = await unfollow(db, user.id, target_id)
    return FollowActionResponse(
        message="Successfully unfollowed user",
        target_id=result.target_id,
        target_name=result.target_name,
        following=result.following,
        follower_count=result.follower_count,
        following_count=result.following_count,
    )


@router.get("/{target_id}/status", response_model=FollowStatusResponse)
async def follow_status(
    target_id: str = Path(..., description="ID of the user to check"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    status = await get_follow_status(db, user.id, target_id)
    return FollowStatusResponse(
        is_following=status.is_following,
        actor_id=status.actor_id,
        following_count=status.following_count,
        target_id=status.target_id,
        target_name=status.target_name,
        follower_count=status.follower_count,
    )
