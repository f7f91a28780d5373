"""
Auth service — sign-up, sign-in, refresh rotation and logout.

Every function takes the request's ``AsyncSession`` and only flushes; the
``get_db`` dependency commits once at the end of the request.

Refresh failures are indistinguishable to the caller: the
specific reason is logged here and a single ``InvalidRequestError`` is
raised, so the endpoint cannot be used as an oracle for which check
failed.
"""
import logging
import secrets

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.errors import ConflictError, InvalidRequestError, InvalidTokenError, UnauthorizedError
from conduit.models import User
from conduit.schemas import TokenPair, UserUpsert
from conduit.security import (
    hash_password,
    issue_access_token,
    issue_refresh_token,
    validate_and_extract_subject,
    verify_password,
)
from conduit.services import session_store

logger = logging.getLogger(__name__)

_UNKNOWN_USER_HASH = hash_password(secrets.token_urlsafe(16))


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def verify_credentials(db: AsyncSession, email: str, password: str) -> User | None:
    """
    Return the user owning *email* when *password* matches its stored
    argon2 hash, otherwise None.  Never raises for bad input.
    """
    if not email or not password:
        return None
    user = await get_user_by_email(db, email)
    if user is None:
        # Unknown emails cost one argon2 verify, like known ones.
        verify_password(_UNKNOWN_USER_HASH, password)
        return None
    if not verify_password(user.password_hash, password):
        return None
    return user


async def sign_up(db: AsyncSession, data: UserUpsert) -> User:
    if await get_user_by_email(db, data.email) is not None:
        raise ConflictError("A user with this email already exists")

    user = User(
        email=normalize_email(data.email),
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race with a concurrent sign-up for the same email.
        raise ConflictError("A user with this email already exists")
    logger.info("User %d signed up", user.id)
    return user


async def _issue_pair(db: AsyncSession, user_id: int) -> TokenPair:
    refresh_token = issue_refresh_token()
    await session_store.open_session(db, user_id, refresh_token)
    return TokenPair(access_token=issue_access_token(user_id), refresh_token=refresh_token)


async def sign_in(db: AsyncSession, email: str, password: str) -> TokenPair:
    """
    Verify credentials and issue a fresh access/refresh pair.

    Any existing refresh slot for the user is overwritten, so signing in
    elsewhere invalidates the previous refresh token.
    """
    user = await verify_credentials(db, email, password)
    if user is None:
        logger.info("Sign-in rejected for %r", normalize_email(email or ""))
        raise UnauthorizedError("Invalid email or password")
    user_id = user.id
    pair = await _issue_pair(db, user_id)
    logger.info("User %d signed in", user_id)
    return pair


async def refresh(db: AsyncSession, access_token: str, refresh_token: str) -> TokenPair:
    """
    Exchange a (possibly expired) access token plus the current refresh
    token for a new pair, rotating the stored refresh slot.
    """
    try:
        user_id = validate_and_extract_subject(access_token)
    except InvalidTokenError as exc:
        logger.warning("Refresh rejected: %s", exc.message)
        raise InvalidRequestError()

    slot = await session_store.get_slot(db, user_id, for_update=True)
    if not session_store.slot_accepts(slot, refresh_token):
        logger.warning(
            "Refresh rejected for user %d: %s",
            user_id,
            "no active session" if slot is None else "token mismatch or expired",
        )
        raise InvalidRequestError()

    new_refresh_token = issue_refresh_token()
    await session_store.rotate(db, slot, new_refresh_token)
    logger.info("Refresh token rotated for user %d", user_id)
    return TokenPair(access_token=issue_access_token(user_id), refresh_token=new_refresh_token)


async def logout(db: AsyncSession, user_id: int) -> None:
    """Clear the authenticated user's refresh slot."""
    user = await db.get(User, user_id)
    if user is None:
        raise InvalidRequestError("User no longer exists")
    await session_store.clear(db, user_id)
    logger.info("User %d logged out", user_id)
