"""FFLogs error -> HTTP status mapping for route handlers."""

import logging

from fastapi import HTTPException

from kaiseki.fflogs.errors import (
    FFLogsError,
    FFLogsTimeoutError,
    FightSelectionError,
    MasterDataUnavailable,
    RankIndexOutOfRange,
    RankingsBudgetExceeded,
    RankingsNotFound,
    ReportNotFound,
)

logger = logging.getLogger(__name__)


def status_for(exc: FFLogsError) -> int:
    # Budget is a RankingsNotFound subclass, check it first
    if isinstance(exc, FFLogsTimeoutError | RankingsBudgetExceeded):
        return 504
    if isinstance(exc, FightSelectionError | RankIndexOutOfRange):
        return 400
    if isinstance(exc, ReportNotFound | MasterDataUnavailable | RankingsNotFound):
        return 404
    return 502


def http_error(exc: FFLogsError) -> HTTPException:
    status = status_for(exc)
    if status >= 500:
        logger.warning("Upstream failure (%d): %s", status, exc)
    return HTTPException(status_code=status, detail=str(exc))
