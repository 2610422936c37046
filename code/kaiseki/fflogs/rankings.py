"""Encounter character rankings with payload discovery and difficulty fallback."""

import asyncio
import logging
import math
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from kaiseki.fflogs.errors import FFLogsError, RankIndexOutOfRange, RankingsNotFound
from kaiseki.fflogs.jobs import matches_job
from kaiseki.fflogs.models import Fight, RankingEntry, RankingsResult
from kaiseki.fflogs.payload import (
    extract_rankings_rows,
    parse_json_maybe,
    payload_error,
    pick_boolean,
    pick_number,
    read_path,
    sample_keys,
    to_number,
)
from kaiseki.fflogs.queries import CHARACTER_RANKINGS, CHARACTER_RANKINGS_METRIC_ONLY
from kaiseki.fflogs.report import get_report_fights
from kaiseki.fflogs.variants import compact_variables, message_contains, unknown_argument

logger = logging.getLogger(__name__)

INVALID_DIFFICULTY = "Invalid difficulty setting or size specified"

# Report-side difficulty codes the rankings API knows under another number
DIFFICULTY_REMAP = {100: 4, 101: 5, 102: 6}

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
JOB_FILTER_MAX_PAGES = 4
JOB_FILTER_API_PAGE_SIZE = 50
MIN_API_PAGE_SIZE = 10

# Durations above this are milliseconds
MS_DURATION_THRESHOLD = 10_000

_REPORT_CODE = re.compile(r"^[A-Za-z0-9]{8,}$")
_REPORT_URL = re.compile(r"/reports/([A-Za-z0-9]+)", re.IGNORECASE)

_is_unknown_page = unknown_argument("page")
_is_invalid_difficulty = message_contains(INVALID_DIFFICULTY)


@dataclass(frozen=True)
class RankingsParams:
    encounter_id: int
    metric: str
    difficulty: int | None = None
    page_size: int | None = None
    rank_index: int = 0
    region: str | None = None
    server: str | None = None
    class_name: str | None = None
    spec_name: str | None = None
    partition: int | None = None

    @property
    def job(self) -> str | None:
        return self.class_name or self.spec_name

    @property
    def safe_page_size(self) -> int:
        if self.page_size is None:
            return DEFAULT_PAGE_SIZE
        return max(1, min(MAX_PAGE_SIZE, int(self.page_size)))


def map_difficulty_for_rankings(difficulty: int | None) -> int | None:
    if difficulty is None:
        return None
    return DIFFICULTY_REMAP.get(difficulty, difficulty)


# ---------------------------------------------------------------------------
# Row normalization
# ---------------------------------------------------------------------------


def parse_fight_id(raw: Any) -> int | None:
    if not isinstance(raw, dict):
        return None
    value = None
    for key in ("fightID", "fightId", "fight", "encounterFightID", "encounterFightId"):
        if raw.get(key) is not None:
            value = raw[key]
            break
    if value is None and isinstance(raw.get("report"), dict):
        value = read_path(raw["report"], "fightID")
    n = to_number(value)
    if n is None or not n.is_integer():
        return None
    return int(n)


def _code_from_string(value: str) -> str | None:
    s = value.strip()
    if not s:
        return None
    m = _REPORT_URL.search(s)
    if m:
        return m.group(1)
    if _REPORT_CODE.match(s):
        return s
    return None


def parse_report_code(raw: Any) -> str | None:
    """Find the report code in any of the encodings the rankings API has used."""
    if not isinstance(raw, dict):
        return None

    report = raw.get("report")
    if isinstance(report, dict):
        for key in ("code", "reportCode", "id", "reportID"):
            nested = report.get(key)
            if isinstance(nested, str) and _REPORT_CODE.match(nested.strip()):
                return nested.strip()

    candidates = [
        raw.get("reportCode"),
        raw.get("code"),
        report if isinstance(report, str) else None,
        raw.get("reportURL"),
        raw.get("reportUrl"),
        raw.get("url"),
    ]
    direct = next((c for c in candidates if c is not None), None)
    if isinstance(direct, str):
        return _code_from_string(direct)
    return None


def _to_seconds(value: float | None) -> float | None:
    if value is None:
        return None
    if value > MS_DURATION_THRESHOLD:
        return value / 1000
    return value


def metric_fields(raw: Any) -> dict[str, Any]:
    """Best percent, rDPS, kill flag and fastest clear from the row or its bracketData."""
    bd = parse_json_maybe(raw.get("bracketData")) if isinstance(raw, dict) else None
    amount = pick_number(raw, ["amount"])

    best_percent = pick_number(raw, ["rankPercent", "percentile", "bestPercent"])
    if best_percent is None:
        best_percent = pick_number(
            bd, ["rankPercent", "percentile", "bestPercent", "historicalPercent"]
        )

    highest_rdps = pick_number(raw, ["rDPS", "rdps", "highestRdps", "amount"])
    if highest_rdps is None:
        highest_rdps = pick_number(bd, ["rDPS.max", "rdps.max", "rDPS", "rdps", "max"])
    if highest_rdps is None:
        highest_rdps = amount or 0.0

    kill = pick_boolean(raw, ["kill", "isKill", "success"])
    if kill is None:
        kill = pick_boolean(bd, ["kill", "isKill", "success"])
    if kill is None:
        kill = True

    fastest = pick_number(raw, ["fastest", "fastestSec", "duration"])
    if fastest is None:
        fastest = pick_number(
            bd, ["fastest", "duration.min", "duration.fastest", "minDuration"]
        )

    median_rdps = pick_number(raw, ["medianRdps", "median"])
    if median_rdps is None:
        median_rdps = pick_number(
            bd, ["rDPS.median", "rdps.median", "rDPS.avg", "rdps.avg", "median"]
        )

    return {
        "best_percent": best_percent,
        "highest_rdps": highest_rdps,
        "kill": kill,
        "fastest_sec": _to_seconds(fastest),
        "median_rdps": median_rdps,
    }


def _first_str(*values: Any) -> str | None:
    for v in values:
        if v is None or isinstance(v, dict | list):
            continue
        s = str(v)
        if s:
            return s
    return None


def _build_entry(raw: dict, report_code: str, fight_id: int) -> RankingEntry:
    character = raw.get("character") if isinstance(raw.get("character"), dict) else {}
    server = raw.get("server")
    return RankingEntry(
        rank=int(pick_number(raw, ["rank"]) or 0),
        amount=pick_number(raw, ["amount"]) or 0.0,
        report_code=report_code,
        fight_id=fight_id,
        character_name=_first_str(character.get("name"), raw.get("name"), raw.get("characterName")),
        server_name=_first_str(
            read_path(character, "server.name"),
            server.get("name") if isinstance(server, dict) else server,
            raw.get("serverName"),
        ),
        region=_first_str(
            read_path(character, "server.region.slug"),
            server.get("region") if isinstance(server, dict) else None,
            raw.get("region"),
        ),
        class_name=_first_str(character.get("classID"), raw.get("class"), raw.get("className")),
        spec_name=_first_str(character.get("spec"), raw.get("spec"), raw.get("specName")),
        **metric_fields(raw),
    )


def normalize_ranking(raw: Any) -> RankingEntry | None:
    """Normalize one raw row; None when the report code or fight id is missing.

    Re-normalizing the alias dump of a normalized entry yields an equal entry.
    """
    report_code = parse_report_code(raw)
    fight_id = parse_fight_id(raw)
    if not report_code or fight_id is None:
        return None
    return _build_entry(raw, report_code, fight_id)


# ---------------------------------------------------------------------------
# Unresolved row repair
# ---------------------------------------------------------------------------


def pick_fight_id_from_report(
    fights: list[Fight],
    encounter_id: int,
    start_time: float | None = None,
    duration: float | None = None,
) -> int | None:
    """Infer which fight of a report a ranking row refers to."""
    candidates = [f for f in fights if f.encounter_id == encounter_id]
    pool = candidates or fights
    if not pool:
        return None
    if start_time is None:
        first_kill = next((f for f in pool if f.kill), None)
        return (first_kill or pool[0]).id

    def deviation(f: Fight) -> float:
        dd = 0 if duration is None else abs(f.duration_ms - duration)
        return abs(f.start_time - start_time) + dd

    return min(pool, key=deviation).id


def _raw_number(raw: dict, key: str) -> float | None:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


async def resolve_ranking_rows(client, rows: list, encounter_id: int) -> list[RankingEntry]:
    """Normalize rows, repairing missing fight ids from the reports' fight lists."""
    entries: list[RankingEntry] = []
    unresolved: list[tuple[dict, str]] = []

    for row in rows:
        entry = normalize_ranking(row)
        if entry is not None:
            entries.append(entry)
            continue
        code = parse_report_code(row)
        if code:
            unresolved.append((row, code))

    if not unresolved:
        return entries

    codes = list(dict.fromkeys(code for _, code in unresolved))
    results = await asyncio.gather(
        *(get_report_fights(client, code, translate=False) for code in codes),
        return_exceptions=True,
    )
    fights_by_code: dict[str, list[Fight]] = {}
    for code, result in zip(codes, results):
        if isinstance(result, FFLogsError):
            logger.debug("Ignoring inaccessible report %s: %s", code, result)
            continue
        if isinstance(result, BaseException):
            raise result
        fights_by_code[code] = result.fights

    repaired = 0
    for row, code in unresolved:
        fights = fights_by_code.get(code)
        if fights is None:
            continue
        fight_id = pick_fight_id_from_report(
            fights,
            encounter_id,
            _raw_number(row, "startTime"),
            _raw_number(row, "duration"),
        )
        if fight_id is None:
            continue
        entries.append(_build_entry(row, code, fight_id))
        repaired += 1

    logger.info(
        "Repaired %d/%d ranking rows without fight id from %d reports",
        repaired, len(unresolved), len(codes),
    )
    return entries


# ---------------------------------------------------------------------------
# Filtering and ordering
# ---------------------------------------------------------------------------


def _score(entry: RankingEntry) -> float:
    if entry.highest_rdps is not None and math.isfinite(entry.highest_rdps):
        return entry.highest_rdps
    return entry.amount if math.isfinite(entry.amount) else 0.0


def sort_rankings(entries: list[RankingEntry], job: str | None = None) -> list[RankingEntry]:
    """Filter by job, then sort by rank asc, score desc, best percent desc."""
    filtered = [e for e in entries if matches_job(e, job)]
    return sorted(
        filtered,
        key=lambda e: (
            e.rank,
            -_score(e),
            -(e.best_percent if e.best_percent is not None else -1),
        ),
    )


# ---------------------------------------------------------------------------
# Query attempts and paging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Attempt:
    label: str
    query: str
    variables: dict[str, Any]
    difficulty: int | None
    partition: int | None


def _label(difficulty: int | None, size: int, partition: int | None) -> str:
    d = "-" if difficulty is None else difficulty
    p = "-" if partition is None else partition
    return f"difficulty={d},size={size},partition={p}"


def _build_attempts(params: RankingsParams, api_page_size: int) -> list[_Attempt]:
    base = {"encounterID": params.encounter_id, "metric": params.metric}
    mapped = map_difficulty_for_rankings(params.difficulty)

    specs: list[tuple[int | None, int | None]] = [(params.difficulty, params.partition)]
    if mapped != params.difficulty:
        specs.append((mapped, params.partition))
    specs.append((mapped, None))

    attempts: list[_Attempt] = []
    seen: set[str] = set()
    for difficulty, partition in specs:
        label = _label(difficulty, api_page_size, partition)
        if label in seen:
            continue
        seen.add(label)
        attempts.append(_Attempt(
            label,
            CHARACTER_RANKINGS,
            {**base, "difficulty": difficulty, "size": api_page_size, "partition": partition},
            difficulty,
            partition,
        ))
    attempts.append(_Attempt("metric-only", CHARACTER_RANKINGS_METRIC_ONLY, base, None, None))
    return attempts


def _rankings_payload(data: dict) -> Any:
    encounter = (data.get("worldData") or {}).get("encounter") or {}
    return encounter.get("characterRankings")


async def _collect_pages(
    seed: list,
    fetch_page: Callable[[int], Awaitable[dict]],
    *,
    api_page_size: int,
    max_pages: int,
    target_count: int,
    scan_wide: bool,
) -> list:
    rows = list(seed)
    if len(seed) < api_page_size:
        return rows
    for page in range(2, max_pages + 1):
        try:
            data = await fetch_page(page)
        except FFLogsError as exc:
            if _is_unknown_page(exc):
                logger.info("Rankings API does not accept page, keeping %d rows", len(rows))
                break
            raise
        page_rows = extract_rankings_rows(_rankings_payload(data))
        if not page_rows:
            break
        rows.extend(page_rows)
        if len(page_rows) < api_page_size:
            break
        if not scan_wide and len(rows) >= target_count:
            break
    return rows


async def get_rankings(client, params: RankingsParams) -> RankingsResult:
    """Fetch, normalize, filter and sort encounter rankings.

    Tries the requested difficulty first and falls back through the
    remapped difficulty, the remapped difficulty without partition and
    finally the metric-only query when the API rejects the difficulty.
    """
    page_size = params.safe_page_size
    target_count = max(params.rank_index + 1, page_size)
    scan_wide = bool(params.job)
    if scan_wide:
        api_page_size = max(JOB_FILTER_API_PAGE_SIZE, page_size)
        max_pages = JOB_FILTER_MAX_PAGES
    else:
        api_page_size = max(MIN_API_PAGE_SIZE, page_size)
        max_pages = max(2, math.ceil(target_count / api_page_size) + 1)

    attempts = _build_attempts(params, api_page_size)
    attempted: list[str] = []
    rows: list = []
    used: _Attempt | None = None
    first_payload: Any = None
    detail: str | None = None

    for i, attempt in enumerate(attempts):
        attempted.append(attempt.label)
        variables = compact_variables(attempt.variables)
        try:
            data = await client.query(attempt.query, variables=variables)
        except FFLogsError as exc:
            if _is_invalid_difficulty(exc) and i < len(attempts) - 1:
                logger.info("Rankings attempt %s rejected: %s", attempt.label, exc)
                detail = str(exc)
                continue
            raise

        payload = _rankings_payload(data)
        if i == 0:
            first_payload = payload
        found = extract_rankings_rows(payload)
        if found:
            async def fetch_page(page: int, attempt=attempt) -> dict:
                return await client.query(
                    attempt.query,
                    variables=compact_variables({**attempt.variables, "page": page}),
                )

            rows = await _collect_pages(
                found,
                fetch_page,
                api_page_size=api_page_size,
                max_pages=max_pages,
                target_count=target_count,
                scan_wide=scan_wide,
            )
            used = attempt
            break

        detail = payload_error(payload) or detail
        # Only an invalid-difficulty complaint is worth another variant
        if i == 0 and not (detail and INVALID_DIFFICULTY in detail):
            break

    if not rows:
        reason = f" detail={detail}" if detail else ""
        keys = ", ".join(sample_keys(first_payload)) if first_payload else "null"
        raise RankingsNotFound(
            "Rankings not found for given criteria. "
            f"Check encounter/metric/difficulty/visibility.{reason} payloadKeys=[{keys}]",
            attempted,
        )

    entries = await resolve_ranking_rows(client, rows, params.encounter_id)
    rankings = sort_rankings(entries, params.job)
    if not rankings:
        sample = ",".join(sample_keys(rows[0]))
        if params.job:
            raise RankingsNotFound(
                f"No rankings matched job filter. job={params.job}. sampleKeys=[{sample}]",
                attempted,
            )
        raise RankingsNotFound(
            "No usable ranking entries returned (missing reportCode/fightID). "
            f"sampleKeys=[{sample}]",
            attempted,
        )

    limited = rankings[:page_size]
    if params.rank_index < 0 or params.rank_index >= len(limited):
        raise RankIndexOutOfRange(params.rank_index, len(limited))

    logger.info(
        "Rankings for encounter %d (%s): %d rows, %d usable, via %s",
        params.encounter_id, params.metric, len(rows), len(rankings), used.label,
    )
    return RankingsResult(
        encounter_id=params.encounter_id,
        metric=params.metric,
        difficulty=params.difficulty,
        page_size=page_size,
        rank_index=params.rank_index,
        filters={
            "region": params.region,
            "server": params.server,
            "className": params.class_name,
            "specName": params.spec_name,
            "partition": params.partition,
        },
        rankings=limited,
        resolved_difficulty=used.difficulty,
        resolved_partition=used.partition,
        fallback_applied=used is not attempts[0],
        attempted=attempted,
    )
