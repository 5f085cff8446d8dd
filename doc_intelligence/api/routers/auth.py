# doc_intelligence/api/routers/auth.py
"""Signup, login and current-user endpoints"""
import logging
from fastapi import APIRouter, Depends, status

from ...core.dependencies import get_storage
from ...core.exceptions import AuthenticationError, ValidationError
from ...core.security import create_access_token, get_current_user, get_password_hash, verify_password
from ...models import (
    AuthResponse, LoginRequest, SignupRequest, UserRecord, UserResponse, UserRole
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth")

@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(request: SignupRequest, storage=Depends(get_storage)):
    email = request.email.strip().lower()
    if await storage.get_user_by_email(email):
        raise ValidationError("Email already registered")

    user = await storage.create_user(UserRecord(
        name=request.name,
        email=email,
        password_hash=get_password_hash(request.password),
        role=request.role or UserRole.USER,
    ))
    logger.info(f"✅ New user registered: {user.email} ({user.role})")
    return AuthResponse(token=create_access_token(user), user=UserResponse.from_record(user))

@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, storage=Depends(get_storage)):
    user = await storage.get_user_by_email(request.email.strip().lower())
    if user is None or not verify_password(request.password, user.password_hash):
        logger.warning(f"❌ Failed login for {request.email}")
        raise AuthenticationError("Invalid email or password")
    return AuthResponse(token=create_access_token(user), user=UserResponse.from_record(user))

@router.get("/user", response_model=UserResponse)
async def current_user(user: UserRecord = Depends(get_current_user)):
    return UserResponse.from_record(user)
