"""Resolve ability ids to localized names via XIVAPI.

FFLogs reports often carry ability ids without a usable name (or with
an English name when a Japanese one is wanted). The resolver looks them
up against XIVAPI with a bounded worker pool and keeps every name it
finds in a persistent cache, so repeated analyses of similar fights
rarely touch the network.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from kaiseki.abilities.cache import NameCacheBackend
from kaiseki.abilities.icons import is_valid_icon_url, parse_ability_icon
from kaiseki.fflogs.models import CastEvent, FFLogsBaseModel

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://xivapi.com"
DEFAULT_LANGUAGE = "ja"
DEFAULT_MAX_RETRIES = 2
DEFAULT_TIMEOUT_MS = 2500
DEFAULT_CONCURRENCY = 8
MAX_FAILED_IDS = 20
MAX_ICON_FETCH = 200

EXTRA_SHEETS = ("GeneralAction", "PetAction", "BuddyAction", "CraftAction", "PvPAction")
LOCALIZED_KEYS = ("ja", "en", "de", "fr")

FetchKind = Literal["ok", "notfound", "request", "parse"]


class ResolveStats(FFLogsBaseModel):
    unique_ability_ids: int = 0
    already_known: int = 0
    cache_hit: int = 0
    fetched: int = 0
    resolved: int = 0
    not_resolved: int = 0
    request_failures: int = 0
    parse_failures: int = 0
    failed_ids: list[int] = []
    skipped_due_to_connectivity: bool = False


@dataclass
class ResolveResult:
    resolved: dict[int, str] = field(default_factory=dict)
    icons: dict[int, str] = field(default_factory=dict)
    stats: ResolveStats = field(default_factory=ResolveStats)


@dataclass(frozen=True)
class _Fetch:
    kind: FetchKind
    payload: Any = None


def _is_retryable_status(response: httpx.Response) -> bool:
    return response.status_code == 429 or response.status_code >= 500


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def candidate_ids(raw_id: int) -> list[int]:
    """The id itself plus folded variants for ids that carry a namespace prefix."""
    ids = [raw_id]
    if raw_id >= 1_000_000:
        for folded in (raw_id % 1_000_000, raw_id % 100_000):
            if folded > 0 and folded not in ids:
                ids.append(folded)
    return ids


def _string_name(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, dict):
        for key in LOCALIZED_KEYS:
            nested = value.get(key)
            if isinstance(nested, str) and nested.strip():
                return nested.strip()
    return None


def _get(obj: Any, key: str) -> Any:
    return obj.get(key) if isinstance(obj, dict) else None


def _first_row(obj: Any, key: str) -> Any:
    rows = _get(obj, key)
    return rows[0] if isinstance(rows, list) and rows else None


def parse_ability_name(payload: Any) -> str | None:
    """Pull the name out of any of the response shapes XIVAPI has used."""
    if not isinstance(payload, dict):
        return None
    candidates = (
        payload.get("Name"),
        payload.get("name"),
        _get(payload.get("fields"), "Name"),
        _get(payload.get("Fields"), "Name"),
        _get(payload.get("data"), "Name"),
        _get(payload.get("data"), "name"),
        _get(payload.get("row"), "Name"),
        _get(_get(payload.get("row"), "fields"), "Name"),
        _get(_first_row(payload, "results"), "Name"),
        _get(_first_row(payload, "Results"), "Name"),
    )
    for candidate in candidates:
        name = _string_name(candidate)
        if name:
            return name
    return None


def ability_ids(events: list[CastEvent]) -> list[int]:
    """Distinct positive ability ids in first-seen order."""
    seen: dict[int, None] = {}
    for event in events:
        ability_id = event.ability_id
        if ability_id is not None and ability_id > 0:
            seen.setdefault(ability_id, None)
    return list(seen)


class AbilityNameResolver:
    def __init__(
        self,
        cache: NameCacheBackend,
        *,
        enabled: bool = True,
        base_url: str = DEFAULT_BASE_URL,
        language: str = DEFAULT_LANGUAGE,
        max_retries: int = DEFAULT_MAX_RETRIES,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        concurrency: int = DEFAULT_CONCURRENCY,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._backend = cache
        self._enabled = enabled
        self._base_url = base_url.rstrip("/")
        self._language = language
        self._max_retries = max_retries
        self._timeout = timeout_ms / 1000
        self._concurrency = max(1, concurrency)
        self._http = http_client
        self._cache: dict[int, str] = {}
        self._icons: dict[int, str] = {}
        # resolved this session, not yet written to the backend
        self._unsaved: set[int] = set()

    @classmethod
    def from_settings(
        cls, settings, cache: NameCacheBackend, language: str | None = None
    ) -> "AbilityNameResolver":
        cfg = settings.xivapi
        return cls(
            cache,
            enabled=cfg.enabled,
            base_url=cfg.base_url,
            language=language or cfg.language,
            max_retries=cfg.max_retries,
            timeout_ms=cfg.timeout_ms,
            concurrency=cfg.concurrency,
        )

    async def _load_cache(self, ability_ids: list[int]) -> None:
        missing = [i for i in ability_ids if i not in self._cache]
        if not missing:
            return
        try:
            self._cache.update(await self._backend.load(missing))
        except Exception:
            logger.exception("Failed to load ability name cache")

    async def _persist_cache(self) -> None:
        if not self._unsaved:
            return
        names = {i: self._cache[i] for i in self._unsaved}
        icons = {i: self._icons[i] for i in self._unsaved if i in self._icons}
        try:
            await self._backend.save(names, icons)
        except Exception:
            logger.exception("Failed to persist ability name cache")
            return
        self._unsaved.clear()

    def _action_urls(self, ability_id: int) -> list[tuple[str, dict[str, str]]]:
        lang = self._language
        base = self._base_url
        return [
            (f"{base}/Action/{ability_id}", {"columns": "Name,Icon", "language": lang}),
            (f"{base}/Action/{ability_id}", {"language": lang}),
            (f"{base}/api/sheet/Action/{ability_id}", {"fields": "Name,Icon", "language": lang}),
        ]

    def _sheet_urls(self, sheet: str, ability_id: int) -> list[tuple[str, dict[str, str]]]:
        lang = self._language
        base = self._base_url
        return [
            (f"{base}/api/sheet/{sheet}/{ability_id}", {"fields": "Name,Icon", "language": lang}),
            (f"{base}/{sheet}/{ability_id}", {"columns": "Name,Icon", "language": lang}),
        ]

    async def _get_json(self, http: httpx.AsyncClient, url: str, params: dict) -> _Fetch:
        retrying = AsyncRetrying(
            retry=(
                retry_if_result(_is_retryable_status)
                | retry_if_exception_type(httpx.TransportError)
            ),
            stop=stop_after_attempt(self._max_retries + 1),
            wait=wait_exponential(multiplier=0.25),
            sleep=_sleep,
            retry_error_callback=lambda state: state.outcome.result(),
        )
        try:
            response = await retrying(http.get, url, params=params, timeout=self._timeout)
        except httpx.TransportError as exc:
            logger.debug("XIVAPI request failed for %s: %s", url, exc)
            return _Fetch("request")

        if response.status_code == 404:
            return _Fetch("notfound")
        if not response.is_success:
            return _Fetch("request")
        try:
            return _Fetch("ok", response.json())
        except ValueError:
            return _Fetch("parse")

    async def _resolve_single(
        self, http: httpx.AsyncClient, ability_id: int, stats: ResolveStats
    ) -> tuple[str, str | None] | None:
        for cid in candidate_ids(ability_id):
            urls = self._action_urls(cid)
            for sheet in EXTRA_SHEETS:
                urls.extend(self._sheet_urls(sheet, cid))
            for url, params in urls:
                fetched = await self._get_json(http, url, params)
                if fetched.kind == "request":
                    stats.request_failures += 1
                elif fetched.kind == "parse":
                    stats.parse_failures += 1
                elif fetched.kind == "ok":
                    name = parse_ability_name(fetched.payload)
                    if name:
                        return name, parse_ability_icon(fetched.payload, self._base_url)
        return None

    async def _reachable(self, http: httpx.AsyncClient) -> bool:
        try:
            await http.get(f"{self._base_url}/", timeout=self._timeout)
        except httpx.TransportError as exc:
            logger.warning("XIVAPI unreachable (%s), skipping ability name lookups", exc)
            return False
        return True

    async def _run_workers(
        self,
        http: httpx.AsyncClient,
        ids: list[int],
        result: ResolveResult,
    ) -> None:
        queue: asyncio.Queue[int] = asyncio.Queue()
        for ability_id in ids:
            queue.put_nowait(ability_id)
        stats = result.stats

        async def worker() -> None:
            while True:
                try:
                    ability_id = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                stats.fetched += 1
                found = await self._resolve_single(http, ability_id, stats)
                if found is None:
                    stats.not_resolved += 1
                    if len(stats.failed_ids) < MAX_FAILED_IDS:
                        stats.failed_ids.append(ability_id)
                    continue
                name, icon = found
                self._cache[ability_id] = name
                if icon:
                    self._icons[ability_id] = icon
                    result.icons[ability_id] = icon
                self._unsaved.add(ability_id)
                result.resolved[ability_id] = name
                stats.resolved += 1

        await asyncio.gather(*(worker() for _ in range(min(self._concurrency, len(ids)))))

    async def resolve_missing(
        self,
        events: list[CastEvent],
        already_known: dict[int, str] | None = None,
        include_known: bool = False,
    ) -> ResolveResult:
        """Resolve names for the ability ids in ``events``; never raises on lookup failures.

        Only the ids being resolved are read from the cache backend, and
        only newly fetched names are written back.
        """
        result = ResolveResult()
        if not self._enabled:
            return result

        stats = result.stats
        known = already_known or {}

        all_ids = ability_ids(events)
        wanted = [i for i in all_ids if include_known or i not in known]
        stats.unique_ability_ids = len(all_ids)
        stats.already_known = len(all_ids) - len(wanted)

        try:
            await self._load_cache(wanted)
            pending = []
            for ability_id in wanted:
                cached = self._cache.get(ability_id)
                if cached:
                    result.resolved[ability_id] = cached
                    stats.cache_hit += 1
                else:
                    pending.append(ability_id)
            if not pending:
                return result

            if self._http is not None:
                await self._lookup(self._http, pending, result)
            else:
                async with httpx.AsyncClient(
                    timeout=self._timeout, headers={"Accept": "application/json"}
                ) as http:
                    await self._lookup(http, pending, result)
            return result
        finally:
            await self._persist_cache()
            logger.info(
                "Ability names: %d unique, %d known, %d cached, %d fetched, "
                "%d resolved, %d unresolved",
                stats.unique_ability_ids, stats.already_known, stats.cache_hit,
                stats.fetched, stats.resolved, stats.not_resolved,
            )

    async def _lookup(self, http: httpx.AsyncClient, pending: list[int], result: ResolveResult):
        if not await self._reachable(http):
            result.stats.skipped_due_to_connectivity = True
            result.stats.not_resolved = len(pending)
            result.stats.failed_ids = pending[:MAX_FAILED_IDS]
            return
        await self._run_workers(http, pending, result)


async def fetch_action(
    http: httpx.AsyncClient, base_url: str, ability_id: int, language: str
) -> tuple[str | None, str | None]:
    """``(name, icon_url)`` of one Action row; ``(None, None)`` when no URL answers."""
    base = base_url.rstrip("/")
    urls = (
        (f"{base}/api/sheet/Action/{ability_id}", {"fields": "Name,Icon", "language": language}),
        (f"{base}/Action/{ability_id}", {"language": language}),
    )
    for url, params in urls:
        try:
            response = await http.get(url, params=params)
        except httpx.TransportError as exc:
            logger.debug("XIVAPI request failed for %s: %s", url, exc)
            continue
        if not response.is_success:
            continue
        try:
            payload = response.json()
        except ValueError:
            continue
        return parse_ability_name(payload), parse_ability_icon(payload, base)
    return None, None


async def resolve_ability_icons(
    http: httpx.AsyncClient,
    ids: list[int],
    *,
    base_url: str = DEFAULT_BASE_URL,
    language: str = DEFAULT_LANGUAGE,
    store=None,
    max_fetch: int = MAX_ICON_FETCH,
) -> dict[int, str]:
    """Icon URLs for ``ids``: stored ones first, then up to ``max_fetch`` XIVAPI lookups.

    ``store`` (``SqlAbilityNameCache``) is optional; fetched names and
    icons are written back to it.
    """
    icons: dict[int, str] = {}
    missing = list(ids)
    if store is not None:
        stored = await store.get_icons(ids)
        icons.update({k: v for k, v in stored.items() if is_valid_icon_url(v)})
        missing = [i for i in ids if i not in icons]

    names: dict[int, str] = {}
    fetched: dict[int, str] = {}
    for ability_id in missing[:max_fetch]:
        name, icon = await fetch_action(http, base_url, ability_id, language)
        if name:
            names[ability_id] = name
        if icon:
            fetched[ability_id] = icon

    icons.update(fetched)
    if store is not None and (names or fetched):
        await store.save(names, fetched)
    logger.info(
        "Ability icons: %d requested, %d stored, %d fetched",
        len(ids), len(ids) - len(missing), len(fetched),
    )
    return icons
