"""JSON file backend for the ability name cache (CLI mode)."""

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class NameCacheBackend(Protocol):
    async def load(self, ability_ids: Iterable[int]) -> dict[int, str]: ...

    async def save(self, names: dict[int, str], icons: dict[int, str] | None = None) -> None: ...


def parse_name_map(raw: object) -> dict[int, str]:
    """Turn a ``{"id": "name"}`` JSON object into ``{id: name}``, dropping bad entries."""
    if not isinstance(raw, dict):
        return {}
    out: dict[int, str] = {}
    for key, value in raw.items():
        try:
            ability_id = int(key)
        except (TypeError, ValueError):
            continue
        if isinstance(value, str) and value.strip():
            out[ability_id] = value.strip()
    return out


class JsonFileNameCache:
    """Names only; icons passed to ``save`` are not kept."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[int, str]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable ability cache %s: %s", self._path, exc)
            return {}
        return parse_name_map(raw)

    async def load(self, ability_ids: Iterable[int] | None = None) -> dict[int, str]:
        """Cached names for ``ability_ids``, or every cached name when None."""
        names = self._read()
        if ability_ids is not None:
            wanted = set(ability_ids)
            names = {k: v for k, v in names.items() if k in wanted}
        logger.debug("Loaded %d cached ability names from %s", len(names), self._path)
        return names

    async def save(self, names: dict[int, str], icons: dict[int, str] | None = None) -> None:
        """Merge ``names`` into the file."""
        if not names:
            return
        merged = self._read()
        merged.update(names)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {str(k): v for k, v in sorted(merged.items())}
        self._path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8"
        )
