"""Rankings lookup across parameter variants under a soft time budget."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace

from kaiseki.fflogs.errors import FFLogsError, RankingsBudgetExceeded, RankingsNotFound
from kaiseki.fflogs.models import RankingsResult
from kaiseki.fflogs.rankings import (
    MIN_API_PAGE_SIZE,
    RankingsParams,
    get_rankings,
    map_difficulty_for_rankings,
)

logger = logging.getLogger(__name__)

DEFAULT_SOFT_LIMIT_MS = 22_000


@dataclass(frozen=True)
class _Try:
    difficulty: int | None
    partition: int | None
    page_size: int

    @property
    def label(self) -> str:
        d = "-" if self.difficulty is None else self.difficulty
        p = "-" if self.partition is None else self.partition
        return f"difficulty={d},size={self.page_size},partition={p}"


def search_variants(params: RankingsParams) -> list[_Try]:
    """Parameter sets to try, most faithful to the request first, without duplicates."""
    size = params.safe_page_size
    mapped = map_difficulty_for_rankings(params.difficulty)
    wide = max(MIN_API_PAGE_SIZE, size)
    candidates = [
        _Try(params.difficulty, params.partition, size),
        _Try(mapped, params.partition, size),
        _Try(mapped, None, size),
        _Try(None, None, size),
        _Try(mapped, 1, wide),
        _Try(None, 1, wide),
    ]
    return list(dict.fromkeys(candidates))


async def search_rankings(
    client,
    params: RankingsParams,
    *,
    soft_limit_ms: int = DEFAULT_SOFT_LIMIT_MS,
    clock: Callable[[], float] = time.monotonic,
) -> RankingsResult:
    """Return the first rankings variant that yields entries.

    The budget is checked before each variant; a variant already in
    flight is not interrupted.
    """
    started = clock()
    requested_size = params.safe_page_size
    attempted: list[str] = []
    last: FFLogsError | None = None

    for variant in search_variants(params):
        elapsed_ms = (clock() - started) * 1000
        if elapsed_ms > soft_limit_ms:
            logger.error(
                "Rankings search for encounter %d exceeded soft limit %dms after %d attempts",
                params.encounter_id, soft_limit_ms, len(attempted),
            )
            raise RankingsBudgetExceeded(
                f"Rankings fetch timed out (soft limit {soft_limit_ms}ms).", attempted
            )

        attempted.append(variant.label)
        try:
            result = await get_rankings(client, replace(
                params,
                difficulty=variant.difficulty,
                partition=variant.partition,
                page_size=variant.page_size,
            ))
        except RankingsNotFound as exc:
            last = exc
            logger.info("Rankings variant %s found nothing: %s", variant.label, exc)
            continue
        except FFLogsError as exc:
            last = exc
            logger.warning("Rankings variant %s failed: %s", variant.label, exc)
            continue

        return result.model_copy(update={
            "difficulty": params.difficulty,
            "resolved_difficulty": variant.difficulty,
            "resolved_partition": variant.partition,
            "page_size": variant.page_size,
            "fallback_applied": (
                variant.difficulty != params.difficulty
                or variant.partition != params.partition
                or variant.page_size != requested_size
            ),
            "attempted": attempted,
        })

    logger.error(
        "Rankings search for encounter %d failed after %d attempts: %s",
        params.encounter_id, len(attempted), last,
    )
    detail = str(last) if last else "Rankings not found"
    raise RankingsNotFound(detail, attempted)
