"""
Session store — the single refresh-token slot per user.

The slot lives in its own ``refresh_sessions`` table keyed by user id and
is only ever touched through the three functions below, so the rotation
state machine is easy to audit:

    NoSession --open_session--> Active(token, expiry)
    Active    --rotate-------> Active(new_token, expiry)
    Active    --clear--------> NoSession

An absent row is ``NoSession``.  Expiry is compared against wall-clock UTC
when the slot is read; nothing expires it in the background.
"""
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.config import settings
from conduit.models import RefreshSession
from conduit.security import hash_refresh_token, refresh_token_matches


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def get_slot(db: AsyncSession, user_id: int, for_update: bool = False) -> RefreshSession | None:
    q = select(RefreshSession).where(RefreshSession.user_id == user_id)
    if for_update:
        q = q.with_for_update()
    result = await db.execute(q)
    return result.scalar_one_or_none()


async def open_session(db: AsyncSession, user_id: int, refresh_token: str) -> RefreshSession:
    """
    Store *refresh_token* as the user's only valid refresh token,
    overwriting any previous slot and starting a new expiry window.
    """
    token_hash = hash_refresh_token(refresh_token)
    expires_at = datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    slot = await get_slot(db, user_id, for_update=True)
    if slot is None:
        slot = RefreshSession(user_id=user_id, token_hash=token_hash, expires_at=expires_at)
        db.add(slot)
        try:
            await db.flush()
            return slot
        except IntegrityError:
            # A concurrent first sign-in created the row; overwrite it.
            await db.rollback()
            slot = await get_slot(db, user_id, for_update=True)

    slot.token_hash = token_hash
    slot.expires_at = expires_at
    await db.flush()
    return slot


def slot_accepts(slot: RefreshSession | None, refresh_token: str) -> bool:
    """True when *slot* is active, unexpired and holds *refresh_token*."""
    if slot is None or not slot.token_hash:
        return False
    if not refresh_token_matches(refresh_token, slot.token_hash):
        return False
    return _as_utc(slot.expires_at) > datetime.now(timezone.utc)


async def rotate(db: AsyncSession, slot: RefreshSession, new_refresh_token: str) -> None:
    """
    Replace the stored token, keeping the original expiry.

    Sessions have a fixed absolute lifetime counted from sign-in; only a
    new sign-in starts a new window.
    """
    slot.token_hash = hash_refresh_token(new_refresh_token)
    await db.flush()


async def clear(db: AsyncSession, user_id: int) -> None:
    await db.execute(delete(RefreshSession).where(RefreshSession.user_id == user_id))
    await db.flush()
