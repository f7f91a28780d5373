from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from conduit.database import get_db
from conduit.dependencies import get_current_user_id
from conduit.schemas import RefreshRequest, SignInRequest, TokenPair, UserResponse, UserUpsert
from conduit.services import auth_service

router = APIRouter(prefix="/api/v1/authentication", tags=["authentication"])

@router.post("/sign-in", response_model=TokenPair)
async def sign_in(data: SignInRequest, db: AsyncSession = Depends(get_db)):
    return await auth_service.sign_in(db, data.email, data.password)

@router.post("/sign-up", status_code=201, response_model=UserResponse)
async def sign_up(data: UserUpsert, db: AsyncSession = Depends(get_db)):
    user = await auth_service.sign_up(db, data)
    return UserResponse(id=user.id, email=user.email, name=user.full_name)

@router.post("/refresh", response_model=TokenPair)
async def refresh(data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    return await auth_service.refresh(db, data.access_token, data.refresh_token)

@router.post("/logout", status_code=204)
async def logout(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.logout(db, user_id)
    return Response(status_code=204)
