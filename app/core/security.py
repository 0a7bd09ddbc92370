from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

import jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import models
from app.core.schemas import UserRole
from app.core.config import settings
from app.core.database import get_db

db_dep = Annotated[AsyncSession, Depends(get_db)]

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Dashboard sessions log in here; api clients send their raw token instead
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: int, role: str = UserRole.USER.value) -> str:
    expires_at = datetime.now(timezone.utc) + timedelta(
        minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    claims = {"user_id": user_id, "role": role, "exp": expires_at}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[int]:
    """Return the user id inside a valid token, None for anything else."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    # Expired, tampered or not a jwt at all
    except jwt.InvalidTokenError:
        return None
    return payload.get("user_id")


async def authenticate_user(
    username: str, password: str, db: AsyncSession
) -> Optional[models.User]:
    result = await db.execute(select(models.User).where(models.User.username == username))
    user = result.scalars().first()
    if user is None or not verify_password(password, user.password):
        return None
    return user


async def get_current_user(token: Annotated[str, Depends(oauth2_scheme)], db: db_dep):
    user_id = decode_access_token(token)
    user = await db.get(models.User, user_id) if user_id is not None else None

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_token_user(
    db: db_dep, authorization: Annotated[Optional[str], Header()] = None
):
    """Resolve the owner of a raw api token (ShareX style `Authorization: <token>`)."""
    if not authorization:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "no authorization")

    result = await db.execute(
        select(models.User).where(models.User.token == authorization)
    )
    user = result.scalars().first()
    if user is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "authorization incorrect")
    return user


async def validate_admin_role(
    current_user: Annotated[models.User, Depends(get_current_user)],
):
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have enough privileges (Admin only)",
        )
    return current_user
