"""
Password hashing, access tokens and the current-user dependencies.
"""
import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sos_mecanicos.config import get_settings
from sos_mecanicos.database import get_db
from sos_mecanicos.errors import MESSAGES, AuthError, PermissionDenied, RateLimited
from sos_mecanicos.models.profile import Profile, RevokedToken, UserRole

logger = logging.getLogger(__name__)

settings = get_settings()

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_v1_prefix}/auth/login")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(profile: Profile, expires_delta: timedelta = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode = {
        "sub": str(profile.id),
        "role": profile.role.value,
        "jti": uuid.uuid4().hex,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        logger.info("Rejected token: %s", exc)
        raise AuthError(MESSAGES["not_authenticated"])
    if payload.get("sub") is None or payload.get("jti") is None:
        raise AuthError(MESSAGES["not_authenticated"])
    return payload


async def get_token_payload(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> dict:
    payload = decode_access_token(token)
    revoked = await db.get(RevokedToken, payload["jti"])
    if revoked is not None:
        raise AuthError(MESSAGES["not_authenticated"])
    return payload


async def get_current_user(
    payload: dict = Depends(get_token_payload),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    result = await db.execute(select(Profile).where(Profile.id == int(payload["sub"])))
    profile = result.scalar_one_or_none()
    if profile is None:
        raise AuthError(MESSAGES["not_authenticated"])
    return profile


async def get_current_active_user(current_user: Profile = Depends(get_current_user)) -> Profile:
    if not current_user.is_active:
        raise PermissionDenied(MESSAGES["inactive_user"])
    return current_user


def require_roles(*roles: UserRole):
    """Dependency factory restricting an endpoint to the given roles."""

    async def dependency(current_user: Profile = Depends(get_current_active_user)) -> Profile:
        if current_user.role not in roles:
            raise PermissionDenied()
        return current_user

    return dependency


class LoginRateLimiter:
    """Sliding window of failed sign-ins per identifier."""

    def __init__(self, max_attempts: int, window_seconds: int):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._attempts: Dict[str, List[float]] = {}

    def _recent(self, identifier: str) -> List[float]:
        now = time.monotonic()
        attempts = [ts for ts in self._attempts.get(identifier, ()) if now - ts < self.window_seconds]
        if attempts:
            self._attempts[identifier] = attempts
        else:
            # identifiers with an empty window are not kept
            self._attempts.pop(identifier, None)
        return attempts

    def check(self, identifier: str) -> None:
        if len(self._recent(identifier)) >= self.max_attempts:
            logger.warning("Too many failed sign-ins for %s", identifier)
            raise RateLimited()

    def record_failure(self, identifier: str) -> None:
        attempts = self._recent(identifier)
        attempts.append(time.monotonic())
        self._attempts[identifier] = attempts

    def reset(self, identifier: str) -> None:
        self._attempts.pop(identifier, None)

    @property
    def tracked(self) -> int:
        """Number of identifiers with failures inside the window."""
        return len(self._attempts)


login_rate_limiter = LoginRateLimiter(settings.login_max_attempts, settings.login_attempt_window_seconds)
