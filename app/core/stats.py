import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.core import models, schemas
from app.core.datasource import Datasource
from app.core.exceptions import AggregationQueryFailure
from app.core.utils import bytes_to_human

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# STATS MODULE
# Purpose: build the usage snapshot shown on the admin dashboard.
# Every number comes from its own query, nothing is cached between calls.
# Concurrent uploads may shift the numbers slightly between queries.
# -----------------------------------------------------------------------------


async def count_images_by_user(db: AsyncSession) -> List[schemas.UserCount]:
    """
    Count stored objects per owner, then look up each owner's username.

    One lookup per distinct owner; the owner set is small.

    Example:
        [UserCount(username="admin", count=12), UserCount(username="bob", count=3)]
    """
    stmt = select(
        models.Image.user_id,
        func.count(models.Image.id).label("image_count"),
    ).group_by(models.Image.user_id)

    result = await db.execute(stmt)
    rows = result.all()

    counts = []
    for row in rows:
        user = await db.get(models.User, row.user_id)
        counts.append(
            schemas.UserCount(
                username=user.username if user else None,
                count=row.image_count,
            )
        )

    return sorted(counts, key=lambda item: item.count, reverse=True)


async def count_images_by_type(db: AsyncSession) -> List[schemas.TypeCount]:
    """Count stored objects per declared mimetype, most common first."""
    stmt = select(
        models.Image.mimetype,
        func.count(models.Image.id).label("image_count"),
    ).group_by(models.Image.mimetype)

    result = await db.execute(stmt)

    counts = [
        schemas.TypeCount(mimetype=row.mimetype, count=row.image_count)
        for row in result.all()
    ]
    return sorted(counts, key=lambda item: item.count, reverse=True)


async def count_users(db: AsyncSession) -> int:
    # Users without any upload count too
    result = await db.execute(select(func.count(models.User.id)))
    return result.scalar_one()


async def count_images(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(models.Image.id)))
    return result.scalar_one()


async def sum_views(db: AsyncSession) -> int:
    # SUM over zero rows is NULL, coalesce keeps it a number
    result = await db.execute(select(func.coalesce(func.sum(models.Image.views), 0)))
    return int(result.scalar_one())


async def compute_usage_report(
    datasource: Datasource, db: AsyncSession
) -> schemas.UsageReport:
    """
    Build the full usage report.

    Args:
        datasource: Storage backend, asked for its own byte accounting
        db: Database session, only read from

    Returns:
        UsageReport with sizes, counts, views and per-user/per-type breakdowns

    Raises:
        AggregationQueryFailure: if any of the queries (or the datasource) fails.
            No partial report is returned.
    """
    try:
        size = await datasource.full_size()
        count_by_user = await count_images_by_user(db)
        users = await count_users(db)
        count = await count_images(db)
        views = await sum_views(db)
        types_count = await count_images_by_type(db)
    except (SQLAlchemyError, OSError) as error:
        logger.error(f"Failed to compute usage report: {error}")
        raise AggregationQueryFailure(str(error)) from error

    return schemas.UsageReport(
        size=bytes_to_human(size),
        size_num=size,
        count=count,
        count_by_user=count_by_user,
        count_users=users,
        views_count=views,
        types_count=types_count,
    )
