"""Paginated FFLogs events API fetcher."""

import logging
from dataclasses import dataclass

from kaiseki.fflogs.errors import FFLogsAPIError, ReportNotFound
from kaiseki.fflogs.models import CastEvent
from kaiseki.fflogs.queries import REPORT_EVENTS, REPORT_EVENTS_TRANSLATED
from kaiseki.fflogs.variants import query_with_fallback, translate_variants

logger = logging.getLogger(__name__)

PAGE_LIMIT = 10_000
MAX_PAGES = 200


@dataclass(frozen=True)
class EventsQuery:
    report_code: str
    fight_id: int
    start_time: float
    end_time: float
    data_type: str = "Casts"
    translate: bool = False
    limit: int = PAGE_LIMIT


async def iter_event_pages(
    client,
    params: EventsQuery,
    *,
    max_pages: int = MAX_PAGES,
):
    """Yield raw event pages, following ``nextPageTimestamp`` until exhausted.

    Stops when the server returns no cursor, when the cursor does not
    move forward, or after ``max_pages`` pages.

    Args:
        client: FFLogsClient instance.
        params: Report, fight window and event data type to fetch.
        max_pages: Maximum number of pages to fetch (safety limit).

    Yields:
        Lists of event dicts, one per API page, in page order.
    """
    variants = translate_variants(REPORT_EVENTS_TRANSLATED, REPORT_EVENTS, params.translate)
    current_start = params.start_time
    total_fetched = 0
    page_count = 0

    while True:
        variables = {
            "code": params.report_code,
            "fightIDs": [params.fight_id],
            "startTime": current_start,
            "endTime": params.end_time,
            "limit": params.limit,
            "dataType": params.data_type,
        }
        raw = await query_with_fallback(client, variants, variables)

        report = (raw.get("reportData") or {}).get("report")
        if report is None:
            raise ReportNotFound(params.report_code)
        events_data = report.get("events")
        if events_data is None:
            raise FFLogsAPIError(
                f"events query returned null. report={params.report_code}, "
                f"fightID={params.fight_id}"
            )

        page_events = events_data.get("data") or []
        total_fetched += len(page_events)
        page_count += 1
        yield page_events

        next_page = events_data.get("nextPageTimestamp")
        if not next_page:
            break

        if next_page <= current_start:
            logger.warning(
                "Stuck pagination for %s %s: nextPageTimestamp %s <= current %s, "
                "stopping after %d pages (%d events)",
                params.report_code, params.data_type, next_page, current_start,
                page_count, total_fetched,
            )
            break

        if page_count >= max_pages:
            logger.warning(
                "Max pages (%d) reached for %s %s, stopping with %d events",
                max_pages, params.report_code, params.data_type, total_fetched,
            )
            break

        current_start = next_page
        logger.debug(
            "Events pagination: fetched %d events so far, next page at %s",
            total_fetched, next_page,
        )

    logger.info(
        "Fetched %d %s events for %s fight %d in %d pages",
        total_fetched, params.data_type, params.report_code, params.fight_id, page_count,
    )


async def get_all_events(
    client,
    params: EventsQuery,
    *,
    max_pages: int = MAX_PAGES,
) -> list[CastEvent]:
    """Fetch every event page and return the concatenated events in order."""
    events: list[CastEvent] = []
    async for page in iter_event_pages(client, params, max_pages=max_pages):
        events.extend(CastEvent.model_validate(row) for row in page if isinstance(row, dict))
    return events
