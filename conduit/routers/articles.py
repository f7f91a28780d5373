from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession
from conduit.database import get_db
from conduit.dependencies import PaginationParams, get_current_user_id
from conduit.schemas import ArticleResponse, ArticleUpsert, CommentCreate, CommentResponse, PaginatedResponse
from conduit.services import article_service, comment_service, favorite_service

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])

@router.get("/feed", response_model=PaginatedResponse)
async def get_feed(
    pagination: PaginationParams = Depends(),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.get_feed(db, user_id, pagination.page_index, pagination.page_size)

@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(article_id: int, db: AsyncSession = Depends(get_db)):
    article = await article_service.get_article(db, article_id)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return article

@router.post("", status_code=201, response_model=ArticleResponse)
async def create_article(
    data: ArticleUpsert,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.create_article(db, user_id, data)

@router.put("/{article_id}", response_model=ArticleResponse)
async def update_article(
    article_id: int,
    data: ArticleUpsert,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.update_article(db, article_id, user_id, data)

@router.delete("/{article_id}", status_code=204)
async def delete_article(
    article_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await article_service.delete_article(db, article_id, user_id)
    return Response(status_code=204)

@router.post("/{article_id}/favorite", response_model=ArticleResponse)
async def favorite_article(
    article_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await favorite_service.favorite(db, user_id, article_id)

@router.delete("/{article_id}/favorite", response_model=ArticleResponse)
async def unfavorite_article(
    article_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await favorite_service.unfavorite(db, user_id, article_id)

@router.get("/{article_id}/comments", response_model=list[CommentResponse])
async def list_comments(article_id: int, db: AsyncSession = Depends(get_db)):
    return await comment_service.get_comments(db, article_id)

@router.get("/{article_id}/comments/{comment_id}", response_model=CommentResponse)
async def get_comment(article_id: int, comment_id: int, db: AsyncSession = Depends(get_db)):
    return await comment_service.get_comment(db, article_id, comment_id)

@router.post("/{article_id}/comments", status_code=201, response_model=CommentResponse)
async def add_comment(
    article_id: int,
    data: CommentCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.add_comment(db, article_id, user_id, data)

@router.delete("/{article_id}/comments/{comment_id}", status_code=204)
async def delete_comment(
    article_id: int,
    comment_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await comment_service.delete_comment(db, article_id, comment_id, user_id)
    return Response(status_code=204)
