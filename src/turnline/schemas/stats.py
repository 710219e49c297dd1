"""Statistics response schemas."""

from datetime import date

from pydantic import BaseModel, ConfigDict


class StatsSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_tickets: int
    done_count: int
    skipped_count: int
    by_priority_class: dict[str, int]
    avg_wait_to_call_sec: float | None
    avg_call_to_serve_sec: float | None
    avg_serve_to_complete_sec: float | None
    avg_total_lead_time_sec: float | None


class DailyStatsPointResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    service_date: date
    total_tickets: int
    done_count: int
    skipped_count: int
    avg_wait_to_call_sec: float | None
    avg_call_to_serve_sec: float | None
    avg_serve_to_complete_sec: float | None
    avg_total_lead_time_sec: float | None
    is_today: bool


class OperatorStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    operator_id: str
    operator_name: str | None
    served_count: int
    avg_serve_to_complete_sec: float | None
    avg_total_lead_time_sec: float | None


class WindowStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    window_number: int
    served_count: int
    avg_serve_to_complete_sec: float | None
    avg_total_lead_time_sec: float | None


class StatsResponse(BaseModel):
    """Totals, per-day series and rankings for a date range."""

    model_config = ConfigDict(from_attributes=True)

    date_from: date
    date_to: date
    summary: StatsSummaryResponse
    series: list[DailyStatsPointResponse]
    by_operator: list[OperatorStatsResponse]
    by_window: list[WindowStatsResponse]


class OperatorAggregateResponse(BaseModel):
    """Stored per-operator rollup written by the daily rollover."""

    model_config = ConfigDict(from_attributes=True)

    service_date: date
    operator_id: str
    served_count: int
    handled_count: int
    avg_wait_to_call_sec: float | None
    avg_serve_to_complete_sec: float | None
    avg_total_lead_time_sec: float | None
    window_min: int | None
    window_max: int | None
