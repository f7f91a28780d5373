"""
Favorite service — the many-to-many user/article favorite relation.

A favorite is a single ``favorites`` row per (user, article) pair.  The
count shown on an article is the live number of those rows, read back
after every mutation, so it cannot drift from the edge set.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from conduit.cache import cache
from conduit.errors import NotFoundError
from conduit.models import Article, Favorite, User
from conduit.services.article_service import article_to_dict, require_article

logger = logging.getLogger(__name__)


async def favorite(db: AsyncSession, user_id: int, article_id: int) -> dict:
    """
    Add the (user, article) edge if absent and return the article.

    An edge inserted by a concurrent request between the check and the
    flush counts as already present.
    """
    await require_article(db, article_id)
    if await db.get(Favorite, (user_id, article_id)) is None:
        db.add(Favorite(user_id=user_id, article_id=article_id))
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            logger.info("User %d already favorited article %d (concurrent insert)", user_id, article_id)
        else:
            await cache.invalidate_article(article_id)
            logger.info("User %d favorited article %d", user_id, article_id)
    return article_to_dict(await require_article(db, article_id))


async def unfavorite(db: AsyncSession, user_id: int, article_id: int) -> dict:
    """Remove the (user, article) edge if present and return the article."""
    await require_article(db, article_id)
    edge = await db.get(Favorite, (user_id, article_id))
    if edge is not None:
        await db.delete(edge)
        await db.flush()
        await cache.invalidate_article(article_id)
        logger.info("User %d unfavorited article %d", user_id, article_id)
    return article_to_dict(await require_article(db, article_id))


async def get_favorite_articles(db: AsyncSession, user_id: int) -> list[dict]:
    """Return every article *user_id* has favorited, most recently updated first."""
    if await db.get(User, user_id) is None:
        raise NotFoundError("User not found")
    q = (
        select(Article)
        .join(Favorite, Favorite.article_id == Article.id)
        .where(Favorite.user_id == user_id)
        .options(joinedload(Article.author))
        .order_by(Article.last_updated.desc(), Article.id.desc())
    )
    result = await db.execute(q)
    return [article_to_dict(a) for a in result.unique().scalars().all()]
