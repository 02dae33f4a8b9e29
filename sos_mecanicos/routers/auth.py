"""
Authentication routes.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sos_mecanicos.auth import (
    create_access_token,
    get_current_active_user,
    get_token_payload,
    hash_password,
    login_rate_limiter,
    verify_password,
)
from sos_mecanicos.config import get_settings
from sos_mecanicos.database import get_db
from sos_mecanicos.errors import MESSAGES, AuthError, Conflict, PermissionDenied, ValidationFailed
from sos_mecanicos.models.profile import Profile, RevokedToken
from sos_mecanicos.schemas.profile import (
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SessionInfo,
    SignUpRequest,
    Token,
    UpdatePasswordRequest,
)
from sos_mecanicos.session import AuthEvent, SessionState, auth_events

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(prefix="/auth", tags=["auth"])


def _issue_token(profile: Profile) -> Token:
    state = SessionState.from_profile(profile)
    return Token(access_token=create_access_token(profile), session=SessionInfo(**state.as_dict()))


@router.post("/signup", response_model=Token, status_code=status.HTTP_201_CREATED)
async def sign_up(data: SignUpRequest, db: AsyncSession = Depends(get_db)):
    """
    Create an account. The role chosen here is permanent.
    """
    email = data.email.lower()
    result = await db.execute(select(Profile).where(Profile.email == email))
    if result.scalar_one_or_none():
        raise Conflict(MESSAGES["already_registered"])

    profile = Profile(
        email=email,
        hashed_password=hash_password(data.password),
        full_name=data.full_name,
        phone=data.phone,
        role=data.role,
    )
    db.add(profile)
    await db.commit()
    await db.refresh(profile)

    auth_events.emit(AuthEvent.SIGNED_UP, SessionState.from_profile(profile))
    return _issue_token(profile)


@router.post("/login", response_model=Token)
async def login(credentials: LoginRequest, db: AsyncSession = Depends(get_db)):
    """
    Exchange email and password for an access token.
    """
    email = credentials.email.lower()
    login_rate_limiter.check(email)

    result = await db.execute(select(Profile).where(Profile.email == email))
    profile = result.scalar_one_or_none()
    if profile is None or not verify_password(credentials.password, profile.hashed_password):
        login_rate_limiter.record_failure(email)
        raise AuthError(MESSAGES["invalid_credentials"])
    if not profile.is_active:
        raise PermissionDenied(MESSAGES["inactive_user"])

    login_rate_limiter.reset(email)
    auth_events.emit(AuthEvent.SIGNED_IN, SessionState.from_profile(profile))
    return _issue_token(profile)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    payload: dict = Depends(get_token_payload),
    current_user: Profile = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Revoke the token used for this call.
    """
    db.add(RevokedToken(jti=payload["jti"]))
    await db.commit()
    auth_events.emit(AuthEvent.SIGNED_OUT, SessionState.from_profile(current_user))
    return None


@router.get("/session", response_model=SessionInfo)
async def get_session(current_user: Profile = Depends(get_current_active_user)):
    """Current session: who is signed in and where their dashboard lives."""
    return SessionState.from_profile(current_user).as_dict()


@router.post("/forgot-password")
async def forgot_password(data: ForgotPasswordRequest, db: AsyncSession = Depends(get_db)):
    """
    Issue a password reset token. The answer is the same whether or not the
    email is registered.
    """
    result = await db.execute(select(Profile).where(Profile.email == data.email.lower()))
    profile = result.scalar_one_or_none()
    if profile is not None:
        profile.reset_token = secrets.token_urlsafe(32)
        profile.reset_token_expiration = datetime.now(timezone.utc) + timedelta(
            minutes=settings.reset_token_expire_minutes
        )
        await db.commit()
        # Delivery by email is handled outside this service
        logger.info(
            "Password reset link for user %s: %s/redefinir-senha?token=%s",
            profile.id, settings.frontend_url, profile.reset_token,
        )
        auth_events.emit(AuthEvent.PASSWORD_RECOVERY, SessionState.from_profile(profile))
    return {"message": MESSAGES["reset_sent"]}


@router.post("/reset-password")
async def reset_password(data: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    """
    Set a new password using a reset token.
    """
    result = await db.execute(select(Profile).where(Profile.reset_token == data.token))
    profile = result.scalar_one_or_none()
    if profile is None or profile.reset_token_expiration is None:
        raise ValidationFailed(MESSAGES["invalid_reset_token"])

    expiration = profile.reset_token_expiration
    if expiration.tzinfo is None:
        # SQLite drops the offset
        expiration = expiration.replace(tzinfo=timezone.utc)
    if expiration < datetime.now(timezone.utc):
        raise ValidationFailed(MESSAGES["invalid_reset_token"])

    profile.hashed_password = hash_password(data.new_password)
    profile.reset_token = None
    profile.reset_token_expiration = None
    await db.commit()
    auth_events.emit(AuthEvent.USER_UPDATED, SessionState.from_profile(profile))
    return {"message": "Senha redefinida com sucesso."}


@router.post("/update-password")
async def update_password(
    data: UpdatePasswordRequest,
    current_user: Profile = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Change the password of the signed-in user.
    """
    if not verify_password(data.current_password, current_user.hashed_password):
        raise AuthError(MESSAGES["wrong_current_password"])
    current_user.hashed_password = hash_password(data.new_password)
    await db.commit()
    auth_events.emit(AuthEvent.USER_UPDATED, SessionState.from_profile(current_user))
    return {"message": "Senha alterada com sucesso."}
