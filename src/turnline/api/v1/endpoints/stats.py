"""Admin statistics endpoints."""

from datetime import date

from fastapi import APIRouter, Query

from turnline.api.v1.dependencies import AdminUserDep, StatsServiceDep
from turnline.models import OperatorDailyAggregate
from turnline.schemas.stats import OperatorAggregateResponse, StatsResponse
from turnline.services.stats import StatsReport

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/today", response_model=StatsResponse)
def stats_today(stats: StatsServiceDep, admin: AdminUserDep) -> StatsReport:
    return stats.today()


@router.get("/range", response_model=StatsResponse)
def stats_range(
    stats: StatsServiceDep,
    admin: AdminUserDep,
    date_from: date = Query(..., alias="from"),
    date_to: date = Query(..., alias="to"),
) -> StatsReport:
    """Archived facts in ``from``..``to`` inclusive, plus today's live tickets when covered."""
    return stats.range(date_from, date_to)


@router.get("/operators", response_model=list[OperatorAggregateResponse])
def operator_aggregates(
    stats: StatsServiceDep,
    admin: AdminUserDep,
    date_from: date = Query(..., alias="from"),
    date_to: date = Query(..., alias="to"),
) -> list[OperatorDailyAggregate]:
    return stats.operator_aggregates(date_from, date_to)
