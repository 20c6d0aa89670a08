"""REST endpoints for pulling buffered log records.

GET    /api/v1/logs   — records past a cursor, filtered by level (newest last)
DELETE /api/v1/logs   — drop every buffered record; sequences keep counting
"""

from fastapi import APIRouter, HTTPException, Query, Response, status

from loggery.publisher import get_publisher
from loggery.records import Level
from loggery.schemas import LogBatch

router = APIRouter(prefix="/logs", tags=["logs"])


def _parse_level(value: str) -> Level:
    try:
        return Level.parse(value)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("", response_model=LogBatch)
async def get_logs(
    min_level: str = Query("TRACE"),
    after: int = Query(0, ge=0),
    limit: int | None = Query(None, ge=1, le=10_000),
) -> LogBatch:
    """Return buffered records with ``sequence > after``; ``cursor`` is the high-water mark."""
    records, high_water = get_publisher().buffer.scan(_parse_level(min_level), after)
    if limit is not None:
        records = records[-limit:]
    return LogBatch.of(records, high_water)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_logs() -> Response:
    get_publisher().buffer.clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
