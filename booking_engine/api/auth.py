"""Staff sign-in and restaurant scoping for the dashboard routes"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.config import settings
from booking_engine.database import get_db, utcnow
from booking_engine.models.user import User, UserRole
from booking_engine.schemas.auth import Token, RefreshRequest, UserResponse

router = APIRouter()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

UNAUTHORIZED = {"WWW-Authenticate": "Bearer"}


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def _encode(user: User, token_type: str, lifetime: timedelta, **claims) -> str:
    payload = {
        "sub": str(user.id),
        "type": token_type,
        "exp": datetime.now(timezone.utc) + lifetime,
        **claims,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user: User) -> str:
    """Short-lived token carrying the user's restaurant and role"""
    return _encode(
        user,
        "access",
        timedelta(minutes=settings.access_token_expire_minutes),
        restaurant_id=str(user.restaurant_id) if user.restaurant_id else None,
        role=user.role.value,
    )


def _user_id(token: str, token_type: str) -> Optional[UUID]:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        if payload.get("type") != token_type:
            return None
        return UUID(payload["sub"])
    except (JWTError, KeyError, ValueError):
        return None


async def _issue_tokens(db: AsyncSession, user: User) -> Token:
    """New access token plus a rotated refresh token stored on the user"""
    user.refresh_token = _encode(user, "refresh", timedelta(days=settings.refresh_token_expire_days))
    await db.commit()
    return Token(
        access_token=create_access_token(user),
        refresh_token=user.refresh_token,
        expires_in=settings.access_token_expire_minutes * 60,
    )


async def get_current_active_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    user_id = _user_id(token, "access")
    user = await db.get(User, user_id) if user_id else None
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers=UNAUTHORIZED,
        )
    return user


async def restaurant_staff(
    restaurant_id: UUID,
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Any staff member of the restaurant in the path"""
    if current_user.role != UserRole.SUPER_ADMIN and current_user.restaurant_id != restaurant_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied to this restaurant",
        )
    return current_user


async def restaurant_admin(current_user: User = Depends(restaurant_staff)) -> User:
    """Restaurant admins only; ledger generation is reserved to them"""
    if not current_user.has_permission(UserRole.RESTAURANT_ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )
    return current_user


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(User).where(User.email == form_data.username))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active or not pwd_context.verify(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers=UNAUTHORIZED,
        )

    user.last_login = utcnow()
    return await _issue_tokens(db, user)


@router.post("/refresh", response_model=Token)
async def refresh_token(
    request: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """Refresh tokens are single use: each refresh rotates the stored one"""
    user_id = _user_id(request.refresh_token, "refresh")
    user = await db.get(User, user_id) if user_id else None
    if user is None or user.refresh_token != request.refresh_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )
    return await _issue_tokens(db, user)


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_active_user)):
    return current_user
