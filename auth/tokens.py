"""
auth/tokens.py -- JWT, password hashing, and temporary-password utilities.

Security design decisions:
  JWT: python-jose with HS256. Access tokens are signed with SECRET_KEY and
       carry sub (user id), role, email, dealer_id, and expiry. Refresh tokens
       carry the same claims under REFRESH_SECRET_KEY with a longer expiry.
       A "type" claim stops a refresh token from being replayed as an access
       token even if both secrets were ever configured identically.
       Verification returns None on any failure -- the authorization gate
       treats None exactly like a missing header (401).

  Passwords: bcrypt used directly. Cost factor comes from BCRYPT_ROUNDS. The
       _DUMMY_HASH constant enables timing equalization in authenticate_user()
       so response time does not reveal whether an email is registered.

  Temporary passwords: 10 characters drawn with secrets.choice from an
       alphabet without look-alike glyphs (0/O, 1/l/I) so they can be read
       aloud or copied by hand.

Layer rule: no imports from api/, registry/, or services/. Import from core/
is allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import ROLES, Identity
from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("oilunion.auth")

_settings = get_settings()

_ALGORITHM = "HS256"
_ACCESS = "access"
_REFRESH = "refresh"

_TEMP_PASSWORD_ALPHABET = "abcdefghjkmnpqrstuvwxyzABCDEFGHJKLMNPQRSTUVWXYZ23456789"
_TEMP_PASSWORD_LENGTH = 10

# bcrypt refuses input longer than this many bytes (UTF-8), not characters.
PASSWORD_MAX_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt raises ValueError for input over PASSWORD_MAX_BYTES. Request
    schemas and the create-admin command reject such passwords first.
    """
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares digests in constant time. A malformed stored hash
    raises ValueError inside bcrypt; that is a failed match, not a crash.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("oilunion_timing_dummy")


def generate_temp_password() -> str:
    """Return a short random password a person can type from a printout."""
    return "".join(secrets.choice(_TEMP_PASSWORD_ALPHABET) for _ in range(_TEMP_PASSWORD_LENGTH))


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def _encode(identity: Identity, token_type: str, key: str, duration: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": identity.user_id,
        "role": identity.role,
        "email": identity.email,
        "dealer_id": identity.dealer_id,
        "type": token_type,
        "iat": now,
        "exp": now + timedelta(seconds=duration),
    }
    return jwt.encode(payload, key, algorithm=_ALGORITHM)


def _decode(token: str, token_type: str, key: str) -> Identity | None:
    try:
        payload = jwt.decode(token, key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != token_type:
        return None
    user_id = payload.get("sub")
    role = payload.get("role")
    email = payload.get("email")
    if not isinstance(user_id, str) or role not in ROLES or not isinstance(email, str):
        return None
    return Identity(user_id=user_id, role=role, email=email, dealer_id=payload.get("dealer_id"))


def create_access_token(identity: Identity, expire_seconds: int = 0) -> str:
    """Encode a signed, short-lived access token for the given identity.

    expire_seconds overrides Settings.token_expire_seconds when > 0 (tests
    use this to mint tokens with a known lifetime).
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    return _encode(identity, _ACCESS, _settings.secret_key, duration)


def create_refresh_token(identity: Identity) -> str:
    return _encode(identity, _REFRESH, _settings.refresh_secret_key, _settings.refresh_token_expire_seconds)


def decode_access_token(token: str) -> Identity | None:
    """Verify an access token. Returns the Identity or None on any failure.

    Bad signature, malformed payload, wrong token type, and expiry all look
    the same to the caller.
    """
    return _decode(token, _ACCESS, _settings.secret_key)


def decode_refresh_token(token: str) -> Identity | None:
    return _decode(token, _REFRESH, _settings.refresh_secret_key)


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, email: str, password: str, role: str) -> User | None:
    """Authenticate an email/password login for a specific role.

    Always runs bcrypt whether or not the account exists or has the right
    role, so an attacker cannot enumerate registered emails by timing:
    - Unknown email or wrong role: bcrypt runs against _DUMMY_HASH
    - Wrong password: bcrypt runs against the real hash

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None or user.role != role:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user
