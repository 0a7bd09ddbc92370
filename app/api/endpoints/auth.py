import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import schemas
from app.core.database import get_db
from app.core.security import authenticate_user, create_access_token

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

db_dep = Annotated[AsyncSession, Depends(get_db)]


@router.post("/login", response_model=schemas.Token)
async def login(credentials: schemas.UserLogin, db: db_dep):
    """Exchange username and password for a dashboard access token."""
    user = await authenticate_user(credentials.username, credentials.password, db)

    if user is None:
        logging.info(f"Failed login for {credentials.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
        )

    return schemas.Token(access_token=create_access_token(user.id, user.role))
