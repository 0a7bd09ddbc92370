import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import models, schemas
from app.core.database import get_db
from app.core.datasource import Datasource, get_datasource
from app.core.exceptions import AggregationQueryFailure
from app.core.security import validate_admin_role
from app.core.stats import compute_usage_report

router = APIRouter(prefix="/api/stats", tags=["Stats"])

db_dep = Annotated[AsyncSession, Depends(get_db)]
admin_dep = Annotated[models.User, Depends(validate_admin_role)]
datasource_dep = Annotated[Datasource, Depends(get_datasource)]


@router.get("", response_model=schemas.UsageReport)
async def get_stats(admin: admin_dep, db: db_dep, datasource: datasource_dep):
    """Return the usage snapshot for the admin dashboard."""
    try:
        return await compute_usage_report(datasource, db)
    except AggregationQueryFailure as error:
        logging.error(f"Stats requested by {admin.username} failed: {error}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute statistics",
        )
