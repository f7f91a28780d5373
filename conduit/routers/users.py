from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession
from conduit.database import get_db
from conduit.dependencies import get_current_user_id
from conduit.errors import ForbiddenError
from conduit.schemas import ArticleResponse, UserPatch, UserResponse, UserUpsert
from conduit.services import favorite_service, follow_service, user_service

router = APIRouter(
    prefix="/api/v1/users",
    tags=["users"],
    dependencies=[Depends(get_current_user_id)],
)

@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await user_service.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user

@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpsert,
    current_user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.update_user(db, user_id, current_user_id, data)

@router.patch("/{user_id}", response_model=UserResponse)
async def patch_user(
    user_id: int,
    data: UserPatch,
    current_user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.patch_user(db, user_id, current_user_id, data)

@router.get("/{user_id}/followers", response_model=list[UserResponse])
async def list_followers(user_id: int, db: AsyncSession = Depends(get_db)):
    return await user_service.get_followers(db, user_id)

@router.get("/{user_id}/following", response_model=list[UserResponse])
async def list_following(user_id: int, db: AsyncSession = Depends(get_db)):
    return await user_service.get_following(db, user_id)

@router.get("/{user_id}/favorites", response_model=list[ArticleResponse])
async def list_favorites(user_id: int, db: AsyncSession = Depends(get_db)):
    return await favorite_service.get_favorite_articles(db, user_id)

@router.post("/{user_id}/following/{target_id}", status_code=204)
async def follow_user(
    user_id: int,
    target_id: int,
    current_user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    if user_id != current_user_id:
        raise ForbiddenError("Cannot follow on behalf of another user")
    await follow_service.follow(db, target_id, user_id)
    return Response(status_code=204)

@router.delete("/{user_id}/following/{target_id}", status_code=204)
async def unfollow_user(
    user_id: int,
    target_id: int,
    current_user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    if user_id != current_user_id:
        raise ForbiddenError("Cannot unfollow on behalf of another user")
    await follow_service.unfollow(db, target_id, user_id)
    return Response(status_code=204)
