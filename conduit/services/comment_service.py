"""
Comment service — comments attached to an Article.

Anyone may read comments; adding requires an authenticated user and only
the comment's author may delete it.  Writes invalidate the parent
article's cached detail view.
"""
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from conduit.cache import cache
from conduit.errors import ForbiddenError, NotFoundError
from conduit.models import Article, Comment
from conduit.schemas import CommentCreate
from conduit.services.article_service import isoformat_utc


def _comment_to_dict(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "author_id": comment.author_id,
        "author_name": comment.author.full_name if comment.author else None,
        "article_id": comment.article_id,
        "article_title": comment.article.title if comment.article else None,
        "content": comment.content,
        "publish_date": isoformat_utc(comment.published_at),
    }


async def _require_article(db: AsyncSession, article_id: int) -> Article:
    article = await db.get(Article, article_id)
    if article is None:
        raise NotFoundError("Article not found")
    return article


async def _load_comment(db: AsyncSession, article_id: int, comment_id: int) -> Comment | None:
    q = (
        select(Comment)
        .where(Comment.id == comment_id, Comment.article_id == article_id)
        .options(joinedload(Comment.author), joinedload(Comment.article))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.unique().scalar_one_or_none()


async def get_comments(db: AsyncSession, article_id: int) -> list[dict]:
    await _require_article(db, article_id)
    q = (
        select(Comment)
        .where(Comment.article_id == article_id)
        .options(joinedload(Comment.author), joinedload(Comment.article))
        .order_by(Comment.published_at.asc(), Comment.id.asc())
    )
    result = await db.execute(q)
    return [_comment_to_dict(c) for c in result.unique().scalars().all()]


async def get_comment(db: AsyncSession, article_id: int, comment_id: int) -> dict:
    await _require_article(db, article_id)
    comment = await _load_comment(db, article_id, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    return _comment_to_dict(comment)


async def add_comment(
    db: AsyncSession,
    article_id: int,
    author_id: int,
    data: CommentCreate,
) -> dict:
    await _require_article(db, article_id)
    comment = Comment(
        content=data.content,
        author_id=author_id,
        article_id=article_id,
        published_at=datetime.now(timezone.utc),
    )
    db.add(comment)
    await db.flush()
    await cache.invalidate_article(article_id)
    return _comment_to_dict(await _load_comment(db, article_id, comment.id))


async def delete_comment(db: AsyncSession, article_id: int, comment_id: int, user_id: int) -> None:
    await _require_article(db, article_id)
    comment = await _load_comment(db, article_id, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    if comment.author_id != user_id:
        raise ForbiddenError("Only the author can delete this comment")
    await db.delete(comment)
    await db.flush()
    await cache.invalidate_article(article_id)
