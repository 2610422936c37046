"""Helpers for digging values out of loosely shaped JSON payloads.

The character rankings payload is an untyped JSON scalar whose envelope
changes between metrics and game versions, so nothing here assumes a
fixed path.
"""

import json
import math
from collections import deque
from typing import Any

MAX_SEARCH_DEPTH = 8
MAX_SEARCH_NODES = 5_000

ROW_MARKER_KEYS = ("fightID", "fightId", "report")


def read_path(obj: Any, path: str) -> Any:
    """Follow a dotted path, matching keys exactly first, then case-insensitively."""
    cur = obj
    for part in path.split("."):
        if not isinstance(cur, dict):
            return None
        if part in cur:
            cur = cur[part]
            continue
        lowered = part.lower()
        key = next((k for k in cur if isinstance(k, str) and k.lower() == lowered), None)
        if key is None:
            return None
        cur = cur[key]
    return cur


def to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            n = float(value.replace(",", "").strip())
        except ValueError:
            return None
        return n if math.isfinite(n) else None
    return None


def pick_number(obj: Any, paths: list[str]) -> float | None:
    """Return the first finite number found along ``paths`` (numeric strings allowed)."""
    for path in paths:
        n = to_number(read_path(obj, path))
        if n is not None:
            return n
    return None


def pick_boolean(obj: Any, paths: list[str]) -> bool | None:
    for path in paths:
        v = read_path(obj, path)
        if isinstance(v, bool):
            return v
        if isinstance(v, int | float):
            return v != 0
        if isinstance(v, str):
            s = v.strip().lower()
            if s in ("true", "1", "yes"):
                return True
            if s in ("false", "0", "no"):
                return False
    return None


def parse_json_maybe(value: Any) -> Any:
    """Decode ``value`` if it is a JSON string; return None when it does not parse."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return None
    return value


def looks_like_ranking_row(item: Any) -> bool:
    return isinstance(item, dict) and any(k in item for k in ROW_MARKER_KEYS)


def find_rows(
    payload: Any,
    *,
    max_depth: int = MAX_SEARCH_DEPTH,
    max_nodes: int = MAX_SEARCH_NODES,
) -> list:
    """Breadth-first search for the first list that contains ranking-like rows."""
    queue: deque[tuple[Any, int]] = deque([(payload, 0)])
    visited: set[int] = set()
    seen = 0

    while queue and seen < max_nodes:
        node, depth = queue.popleft()
        if not isinstance(node, dict | list) or id(node) in visited:
            continue
        visited.add(id(node))
        seen += 1

        children = node if isinstance(node, list) else list(node.values())
        if isinstance(node, list) and node and any(looks_like_ranking_row(x) for x in node):
            return node
        if depth >= max_depth:
            continue
        for child in children:
            if isinstance(child, list) and child and any(looks_like_ranking_row(x) for x in child):
                return child
            if isinstance(child, dict | list):
                queue.append((child, depth + 1))

    return []


def extract_rankings_rows(payload: Any) -> list:
    """Locate the ranking rows inside a characterRankings payload."""
    payload = parse_json_maybe(payload)
    if not payload:
        return []
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    for key in ("rankings", "data"):
        if isinstance(payload.get(key), list):
            return payload[key]
    return find_rows(payload)


def payload_error(payload: Any) -> str | None:
    """Return an error message embedded in a rankings payload, if any."""
    payload = parse_json_maybe(payload)
    if not isinstance(payload, dict):
        return None
    for key in ("error", "message", "msg"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def sample_keys(value: Any, limit: int = 20) -> list[str]:
    value = parse_json_maybe(value)
    if isinstance(value, dict):
        return [str(k) for k in list(value)[:limit]]
    return []
