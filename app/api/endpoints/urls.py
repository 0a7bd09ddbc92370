import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import models, schemas
from app.core.config import settings
from app.core.database import get_db
from app.core.security import get_token_user
from app.core.utils import random_chars, random_invisible

logger = logging.getLogger("shorten")

router = APIRouter(tags=["Urls"])

db_dep = Annotated[AsyncSession, Depends(get_db)]


def short_url(request: Request, key: str) -> str:
    scheme = "https" if settings.CORE_HTTPS else "http"
    host = request.headers.get("host", request.url.netloc)
    return f"{scheme}://{host}{settings.URLS_ROUTE}/{key}"


def parse_max_views(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        max_views = int(raw)
    except ValueError:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST, "invalid max views (invalid number)"
        )
    if max_views < 0:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST, "invalid max views (max views < 0)"
        )
    return max_views


@router.post("/api/shorten", response_model=schemas.ShortenResponse)
async def shorten(
    request: Request,
    db: db_dep,
    user: Annotated[models.User, Depends(get_token_user)],
    payload: Optional[schemas.ShortenRequest] = None,
    max_views: Annotated[Optional[str], Header(alias="max-views")] = None,
    zws: Annotated[Optional[str], Header()] = None,
):
    """
    Shorten a url for the user owning the api token in `Authorization`.

    Headers:
        Max-Views: delete the url once it was visited this many times
        Zws: hand out an invisible (zero width) id instead of the random one
    """
    if payload is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "no body")
    if not payload.url:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "no url")

    max_url_views = parse_max_views(max_views)

    if payload.vanity:
        existing = await db.execute(
            select(models.Url).where(models.Url.vanity == payload.vanity)
        )
        if existing.scalars().first():
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "vanity already exists")

    url = models.Url(
        id=random_chars(settings.URLS_LENGTH),
        vanity=payload.vanity,
        destination=payload.url,
        user_id=user.id,
        max_views=max_url_views,
    )
    db.add(url)

    invisible = None
    if zws:
        invisible = models.InvisibleUrl(
            invis=random_invisible(settings.URLS_LENGTH), url_id=url.id
        )
        db.add(invisible)

    try:
        await db.commit()
    except IntegrityError as error:
        await db.rollback()
        if payload.vanity:
            # Another request took the vanity between the check and the insert
            logger.info(f"Vanity {payload.vanity} was taken concurrently: {error}")
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "vanity already exists")
        logger.error(f"Failed to shorten url: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to shorten url"
        )
    except Exception as error:
        await db.rollback()
        logging.error(f"Failed to shorten url: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to shorten url"
        )

    logger.info(
        f"User {user.username} ({user.id}) shortened a url {url.destination} ({url.id})"
    )

    key = payload.vanity or (invisible.invis if invisible else url.id)
    return {"url": short_url(request, key)}


@router.get(settings.URLS_ROUTE + "/{key}")
async def follow(key: str, db: db_dep):
    """Redirect to the destination of a short url (by id, vanity or invisible id)."""
    query = (
        select(models.Url)
        .outerjoin(models.InvisibleUrl)
        .where(
            or_(
                models.Url.id == key,
                models.Url.vanity == key,
                models.InvisibleUrl.invis == key,
            )
        )
    )
    result = await db.execute(query)
    url = result.scalars().first()

    if not url:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Url not found")

    if url.max_views is not None and url.views >= url.max_views:
        await db.delete(url)
        await db.commit()
        logger.info(f"Url {url.id} reached its max views and was deleted")
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Url not found")

    url.views += 1
    await db.commit()

    return RedirectResponse(url.destination, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
