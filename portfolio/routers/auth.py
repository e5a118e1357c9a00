"""Authentication router"""
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from datetime import datetime
import logging

from portfolio.config import settings
from portfolio.database import get_db
from portfolio.services.auth import AuthService
from portfolio.exceptions import AuthenticationError
from portfolio.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

# auto_error is off so a missing token goes through AuthenticationError
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False)


# Request/Response Models
class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=settings.PASSWORD_MIN_LENGTH)
    full_name: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    email: str
    full_name: Optional[str]
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse


class RefreshRequest(BaseModel):
    refresh_token: str


class PasswordChangeRequest(BaseModel):
    old_password: str
    new_password: str = Field(..., min_length=settings.PASSWORD_MIN_LENGTH)


def _issue_tokens(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=AuthService.create_access_token(data={"sub": str(user.id)}),
        refresh_token=AuthService.create_refresh_token(data={"sub": str(user.id)}),
        user=UserResponse.model_validate(user),
    )


# Dependencies
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Resolve the portfolio owner from the bearer token"""
    if not token:
        raise AuthenticationError(message="Not authenticated")

    payload = AuthService.decode_token(token)
    if payload.get("type") != "access":
        raise AuthenticationError(message="Invalid token type")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthenticationError(message="Invalid token")

    user = await AuthService(db).get_user_by_id(user_id)

    if not user:
        raise AuthenticationError(message="User not found")

    if not user.is_active:
        raise AuthenticationError(message="Account is disabled")

    return user


# Endpoints
@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """Register a new user"""
    user = await AuthService(db).create_user(
        email=request.email,
        password=request.password,
        full_name=request.full_name
    )
    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db)
):
    """Login and get access token"""
    user = await AuthService(db).authenticate_user(form_data.username, form_data.password)
    logger.info(f"User {user.id} logged in")
    return _issue_tokens(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: RefreshRequest,
    db: AsyncSession = Depends(get_db)
):
    """Exchange a refresh token for a new token pair"""
    payload = AuthService.decode_token(request.refresh_token)
    if payload.get("type") != "refresh":
        raise AuthenticationError(message="Invalid token type")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthenticationError(message="Invalid token")

    user = await AuthService(db).get_user_by_id(user_id)
    if not user or not user.is_active:
        raise AuthenticationError(message="Invalid user")

    return _issue_tokens(user)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current user profile"""
    return UserResponse.model_validate(current_user)


@router.post("/change-password")
async def change_password(
    request: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Change current user password"""
    await AuthService(db).change_password(
        user=current_user,
        old_password=request.old_password,
        new_password=request.new_password
    )
    return {"message": "Password changed successfully"}
