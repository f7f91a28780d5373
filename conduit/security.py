"""
Credential hashing and token primitives.

- Passwords are hashed with argon2id (``argon2-cffi`` defaults).
- Access tokens are HS256 JWTs carrying a single custom ``userId`` claim
  plus the standard ``iat``/``exp``/``iss``/``aud`` fields.
- Refresh tokens are opaque: 256 random bits, base64 encoded.  Only their
  SHA-256 digest is ever persisted.

Decoding always pins the algorithm list to ``HS256`` so ``alg: none`` and
algorithm-confusion tokens are rejected before any claim is read.
"""
import base64
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from conduit.config import settings
from conduit.errors import InvalidTokenError

_PH = PasswordHasher()

SUBJECT_CLAIM = "userId"
REFRESH_TOKEN_BYTES = 32


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def hash_password(plain: str) -> str:
    if not plain:
        raise ValueError("Password must not be empty")
    return _PH.hash(plain)


def verify_password(hash_value: str, plain: str) -> bool:
    if not hash_value or not plain:
        return False
    try:
        return _PH.verify(hash_value, plain)
    except (VerificationError, InvalidHashError):
        return False


# ---------------------------------------------------------------------------
# Token issuing
# ---------------------------------------------------------------------------

def issue_access_token(
    subject_user_id: int,
    secret: str = settings.SECRET_KEY,
    issuer: str = settings.JWT_ISSUER,
    audience: str = settings.JWT_AUDIENCE,
    ttl: timedelta | None = None,
) -> str:
    if ttl is None:
        ttl = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    now = datetime.now(timezone.utc)
    payload = {
        SUBJECT_CLAIM: str(subject_user_id),
        "iss": issuer,
        "aud": audience,
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)


def issue_refresh_token() -> str:
    return base64.b64encode(secrets.token_bytes(REFRESH_TOKEN_BYTES)).decode("ascii")


def hash_refresh_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def refresh_token_matches(token: str, token_hash: str) -> bool:
    """Constant-time comparison of a submitted refresh token with a stored digest."""
    return hmac.compare_digest(hash_refresh_token(token), token_hash)


# ---------------------------------------------------------------------------
# Token validation
# ---------------------------------------------------------------------------

def _subject_from_payload(payload: dict) -> int:
    raw = payload.get(SUBJECT_CLAIM)
    try:
        user_id = int(raw)
    except (TypeError, ValueError):
        raise InvalidTokenError("Token has no usable subject claim")
    if user_id <= 0:
        raise InvalidTokenError("Token has no usable subject claim")
    return user_id


def validate_and_extract_subject(token: str, secret: str = settings.SECRET_KEY) -> int:
    """
    Recover the subject id from a possibly expired access token.

    Used by the refresh flow: the signature and algorithm are mandatory;
    lifetime, issuer and audience are not checked, so an expired access
    token is accepted.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={
                "verify_exp": False,
                "verify_nbf": False,
                "verify_iat": False,
                "verify_aud": False,
                "verify_iss": False,
            },
        )
    except jwt.PyJWTError as exc:
        raise InvalidTokenError(f"Invalid token: {exc}") from exc
    return _subject_from_payload(payload)


def decode_access_token(
    token: str,
    secret: str = settings.SECRET_KEY,
    issuer: str = settings.JWT_ISSUER,
    audience: str = settings.JWT_AUDIENCE,
) -> int:
    """Fully validate an access token for an authenticated call and return its subject id."""
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=issuer,
            audience=audience,
            options={"require": ["exp", "iat", SUBJECT_CLAIM]},
        )
    except jwt.PyJWTError as exc:
        raise InvalidTokenError(f"Invalid token: {exc}") from exc
    return _subject_from_payload(payload)
