"""
Follow service — the directed follow graph between users.

Each edge is one ``follows`` row keyed by ``(followed_id, follower_id)``.
``User.followers`` and ``User.following`` are read-only views over those
rows, so inserting or deleting the row is the whole mutation: the edge is
visible from both sides at once or from neither.

Both mutations are idempotent.  Self-follow and self-unfollow are
rejected before touching the store.  After a mutation the views of both
endpoints are expired, so the next graph read within the same unit of
work reloads them.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from conduit.cache import cache
from conduit.errors import InvalidRequestError, NotFoundError
from conduit.models import FollowEdge, User

logger = logging.getLogger(__name__)

FOLLOW_VIEWS = ["followers", "following"]


async def get_user_with_follow_graph(db: AsyncSession, user_id: int) -> User | None:
    """
    Load *user_id* with both follow collections hydrated together.

    Views already loaded in this session are reused; ``follow`` and
    ``unfollow`` expire the views they change.
    """
    q = (
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.followers), selectinload(User.following))
    )
    result = await db.execute(q)
    return result.scalar_one_or_none()


async def get_following_ids(db: AsyncSession, user_id: int) -> list[int]:
    result = await db.execute(
        select(FollowEdge.followed_id).where(FollowEdge.follower_id == user_id)
    )
    return list(result.scalars().all())


async def _require_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _expire_views(db: AsyncSession, *users: User) -> None:
    for user in users:
        db.expire(user, FOLLOW_VIEWS)


async def follow(db: AsyncSession, target_id: int, acting_id: int) -> bool:
    """
    Make *acting_id* follow *target_id*.

    Returns True when a new edge was created, False when it already
    existed (including when a concurrent request inserted it first).
    """
    if target_id == acting_id:
        raise InvalidRequestError("Users cannot follow themselves")
    target = await _require_user(db, target_id)
    actor = await _require_user(db, acting_id)

    if await db.get(FollowEdge, (target_id, acting_id)) is not None:
        return False

    db.add(FollowEdge(followed_id=target_id, follower_id=acting_id))
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        logger.info("User %d already follows user %d (concurrent insert)", acting_id, target_id)
        return False

    _expire_views(db, target, actor)
    await cache.invalidate_profiles(target_id, acting_id)
    logger.info("User %d followed user %d", acting_id, target_id)
    return True


async def unfollow(db: AsyncSession, target_id: int, acting_id: int) -> bool:
    """
    Remove the edge *acting_id* -> *target_id*.

    Returns True when an edge was removed, False when there was none.
    """
    if target_id == acting_id:
        raise InvalidRequestError("Users cannot unfollow themselves")
    target = await _require_user(db, target_id)

    edge = await db.get(FollowEdge, (target_id, acting_id))
    if edge is None:
        return False

    await db.delete(edge)
    await db.flush()
    actor = await db.get(User, acting_id)
    _expire_views(db, *(u for u in (target, actor) if u is not None))
    await cache.invalidate_profiles(target_id, acting_id)
    logger.info("User %d unfollowed user %d", acting_id, target_id)
    return True
