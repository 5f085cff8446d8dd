"""Authentication and Authorization with JWT"""
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from passlib.context import CryptContext
from datetime import datetime, timedelta
import logging

from ..config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, JWT_SECRET_KEY
from ..models import UserRecord
from .dependencies import get_storage

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

security = HTTPBearer(auto_error=False)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)

def create_access_token(user: UserRecord, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token carrying the user id, email and role"""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": user.id,
        "email": user.email,
        "role": user.role,
        "exp": expire,
    }
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)

def verify_token(token: str) -> Optional[str]:
    """Verify and decode a JWT token, returning the user id"""
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None:
            return None
        return user_id
    except JWTError:
        return None

def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

async def resolve_user(token: Optional[str], storage) -> UserRecord:
    """Look up the user behind a bearer token or raise 401"""
    if not token:
        raise _credentials_exception()

    user_id = verify_token(token)
    if not user_id:
        logger.warning(f"❌ Invalid authentication token: {token[:10]}...")
        raise _credentials_exception()

    user = await storage.get_user(user_id)
    if user is None:
        logger.warning(f"❌ Token for unknown user: {user_id}")
        raise _credentials_exception()
    return user

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    storage=Depends(get_storage),
) -> UserRecord:
    """FastAPI dependency resolving the authenticated user"""
    return await resolve_user(credentials.credentials if credentials else None, storage)
