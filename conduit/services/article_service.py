"""
Article service — business logic for the Article aggregate and the feed.

Design notes
------------
- Detail reads go through the cache-aside pattern (Redis, falling back to
  the database).  Every write that changes what a detail view shows
  (edit, delete, favorite, comment) invalidates that article's entry.
- ``favorited_count`` is a ``column_property`` subquery, so it is always
  the live number of favorite rows; reloads use ``populate_existing`` to
  pick up edges written earlier in the same unit of work.
- The feed is never cached: it depends on the reader's follow graph as
  well as on every followed author's writes.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
import math
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from conduit.cache import cache
from conduit.config import settings
from conduit.errors import ForbiddenError, NotFoundError
from conduit.models import Article
from conduit.schemas import ArticleUpsert, PaginatedResponse
from conduit.services.follow_service import get_following_ids


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def isoformat_utc(value: datetime | None) -> str | None:
    if value is None:
        return None
    # SQLite returns naive values for timezone-aware columns; they are UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def article_to_dict(article: Article) -> dict:
    """Serialise an Article (author eagerly loaded) to a plain dict."""
    return {
        "id": article.id,
        "title": article.title,
        "author_id": article.author_id,
        "author_name": article.author.full_name if article.author else None,
        "publish_date": isoformat_utc(article.published_at),
        "last_updated": isoformat_utc(article.last_updated),
        "content": article.content,
        "favorited_count": article.favorited_count or 0,
    }


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

async def load_article(db: AsyncSession, article_id: int) -> Article | None:
    q = (
        select(Article)
        .where(Article.id == article_id)
        .options(joinedload(Article.author))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.unique().scalar_one_or_none()


async def require_article(db: AsyncSession, article_id: int) -> Article:
    article = await load_article(db, article_id)
    if article is None:
        raise NotFoundError("Article not found")
    return article


async def _require_owned_article(db: AsyncSession, article_id: int, user_id: int) -> Article:
    article = await require_article(db, article_id)
    if article.author_id != user_id:
        raise ForbiddenError("Only the author can modify this article")
    return article


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_article(db: AsyncSession, article_id: int) -> dict | None:
    """Return the detail dict for *article_id*, or None when it does not exist."""
    async def load() -> dict | None:
        article = await load_article(db, article_id)
        return article_to_dict(article) if article is not None else None

    return await cache.get_or_load(cache.article_key(article_id), load, ttl=settings.CACHE_TTL_DETAIL)


async def create_article(db: AsyncSession, author_id: int, data: ArticleUpsert) -> dict:
    now = datetime.now(timezone.utc)
    article = Article(
        title=data.title,
        content=data.content,
        author_id=author_id,
        published_at=now,
        last_updated=now,
    )
    db.add(article)
    await db.flush()
    return article_to_dict(await require_article(db, article.id))


async def update_article(
    db: AsyncSession, article_id: int, user_id: int, data: ArticleUpsert
) -> dict:
    article = await _require_owned_article(db, article_id, user_id)
    article.title = data.title
    article.content = data.content
    article.last_updated = datetime.now(timezone.utc)
    await db.flush()
    await cache.invalidate_article(article_id)
    # The flush expires the favorited_count expression; reload it.
    return article_to_dict(await require_article(db, article_id))


async def delete_article(db: AsyncSession, article_id: int, user_id: int) -> None:
    article = await _require_owned_article(db, article_id, user_id)
    await db.delete(article)
    await db.flush()
    await cache.invalidate_article(article_id)


async def get_feed(
    db: AsyncSession,
    user_id: int,
    page_index: int = 1,
    page_size: int = settings.DEFAULT_PAGE_SIZE,
) -> PaginatedResponse:
    """
    Return one page of articles written by the authors *user_id* follows,
    most recently updated first (ties broken by id, newest first).

    ``page_size`` is clamped to ``[1, MAX_PAGE_SIZE]`` and ``page_index``
    values below 1 are treated as page 1.  A user who follows nobody gets
    an empty page.
    """
    page_index = max(page_index, 1)
    page_size = max(1, min(page_size, settings.MAX_PAGE_SIZE))

    author_ids = await get_following_ids(db, user_id)
    if not author_ids:
        return PaginatedResponse(items=[], total=0, page=page_index, page_size=page_size, pages=0)

    count_q = select(func.count()).select_from(Article).where(Article.author_id.in_(author_ids))
    total: int = (await db.execute(count_q)).scalar_one()

    # Pages past the end are empty; the offset never reaches the driver
    # there, however large page_index is.
    offset = (page_index - 1) * page_size
    articles = []
    if offset < total:
        articles_q = (
            select(Article)
            .where(Article.author_id.in_(author_ids))
            .options(joinedload(Article.author))
            .order_by(Article.last_updated.desc(), Article.id.desc())
            .offset(offset)
            .limit(page_size)
        )
        result = await db.execute(articles_q)
        articles = result.unique().scalars().all()

    return PaginatedResponse(
        items=[article_to_dict(a) for a in articles],
        total=total,
        page=page_index,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )
