"""
User service — profile reads and updates for the User aggregate.

Profiles carry follower and following counts, so they are always built
from ``get_user_with_follow_graph``, which hydrates both sides of the
follow graph in one go.  Profiles are cached per user id and invalidated
by profile updates and by follow/unfollow on either endpoint.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.cache import cache
from conduit.config import settings
from conduit.errors import ConflictError, ForbiddenError, NotFoundError
from conduit.models import Article, User
from conduit.schemas import UserPatch, UserUpsert
from conduit.security import hash_password
from conduit.services.auth_service import get_user_by_email, normalize_email
from conduit.services.follow_service import get_user_with_follow_graph

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _user_to_dict(user: User) -> dict:
    """Serialise a User without follow counts (list views)."""
    return {
        "id": user.id,
        "email": user.email,
        "name": user.full_name,
        "followers_count": 0,
        "following_count": 0,
    }


def _profile_to_dict(user: User) -> dict:
    """Serialise a User loaded with both follow collections."""
    data = _user_to_dict(user)
    data["followers_count"] = len(user.followers)
    data["following_count"] = len(user.following)
    return data


async def _require_graph(db: AsyncSession, user_id: int) -> User:
    user = await get_user_with_follow_graph(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_user(db: AsyncSession, user_id: int) -> dict | None:
    """Return the profile dict for *user_id*, or None when it does not exist."""
    async def load() -> dict | None:
        user = await get_user_with_follow_graph(db, user_id)
        return _profile_to_dict(user) if user is not None else None

    return await cache.get_or_load(cache.profile_key(user_id), load, ttl=settings.CACHE_TTL_PROFILE)


async def _load_own_user(db: AsyncSession, user_id: int, acting_id: int) -> User:
    if user_id != acting_id:
        raise ForbiddenError("Users may only update their own profile")
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def _apply_changes(db: AsyncSession, user: User, changes: dict) -> dict:
    """
    Write *changes* (any of email, password, first_name, last_name) onto
    *user*.  Taking an email that belongs to someone else is a conflict;
    a new password is re-hashed.
    """
    user_id = user.id
    if "email" in changes:
        holder = await get_user_by_email(db, changes["email"])
        if holder is not None and holder.id != user_id:
            raise ConflictError("A user with this email already exists")
        user.email = normalize_email(changes["email"])
    if "password" in changes:
        user.password_hash = hash_password(changes["password"])
    if "first_name" in changes:
        user.first_name = changes["first_name"]
    if "last_name" in changes:
        user.last_name = changes["last_name"]
    try:
        await db.flush()
    except IntegrityError:
        raise ConflictError("A user with this email already exists")

    await cache.invalidate_profiles(user_id)
    # Cached article details embed the author's name.
    authored = await db.execute(select(Article.id).where(Article.author_id == user_id))
    await cache.invalidate_articles(*authored.scalars().all())
    logger.info("User %d updated %s", user_id, ", ".join(sorted(changes)) or "nothing")
    return _profile_to_dict(await _require_graph(db, user_id))


async def update_user(db: AsyncSession, user_id: int, acting_id: int, data: UserUpsert) -> dict:
    """Replace the whole profile of *user_id*.  Only the user themself may do so."""
    user = await _load_own_user(db, user_id, acting_id)
    return await _apply_changes(db, user, data.model_dump())


async def patch_user(db: AsyncSession, user_id: int, acting_id: int, data: UserPatch) -> dict:
    """Change only the fields present in *data*; the rest keep their stored values."""
    user = await _load_own_user(db, user_id, acting_id)
    return await _apply_changes(db, user, data.model_dump(exclude_unset=True))


async def get_followers(db: AsyncSession, user_id: int) -> list[dict]:
    user = await _require_graph(db, user_id)
    return [_user_to_dict(u) for u in sorted(user.followers, key=lambda u: u.id)]


async def get_following(db: AsyncSession, user_id: int) -> list[dict]:
    user = await _require_graph(db, user_id)
    return [_user_to_dict(u) for u in sorted(user.following, key=lambda u: u.id)]
