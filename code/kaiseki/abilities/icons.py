"""Ability icon references from XIVAPI payloads.

XIVAPI v1 answers with a ready ``/i/<folder>/<id>.png`` path, v2 with a
game asset path (``ui/icon/<folder>/<id>.tex``) or an ``/api/asset``
link. Everything is turned into a PNG URL, preferring the legacy
``xivapi.com/i/...`` form.
"""

import re
from typing import Any
from urllib.parse import parse_qs, quote, unquote, urlsplit

LEGACY_ICON_URL = "https://xivapi.com/i/{folder}/{icon}.png"
ASSET_MARKER = "api/asset?path="

_ICON_ASSET = re.compile(r"^ui/icon/(\d{6})/(\d+)(?:_hr\d+)?\.(?:tex|png)$", re.IGNORECASE)
_LEGACY_URL = re.compile(r"^https://xivapi\.com/i/\d{6}/\d+\.png$", re.IGNORECASE)

_OBJECT_KEYS = ("path_hr1", "path_hr2", "path", "Path", "href", "Href", "url", "Url", "icon", "Icon")


def extract_icon_path(value: Any) -> str | None:
    """Icon path from a plain string or from the object form v2 returns."""
    if isinstance(value, str):
        return value.strip() or None
    if not isinstance(value, dict):
        return None
    candidates = [
        v.strip() for v in (value.get(k) for k in _OBJECT_KEYS) if isinstance(v, str) and v.strip()
    ]
    for c in candidates:
        if "ui/icon/" in c:
            return c
    for c in candidates:
        if ASSET_MARKER in c:
            return c
    for c in candidates:
        if c.endswith((".tex", ".png")):
            return c
    return None


def _asset_path(value: str) -> str | None:
    idx = value.find(ASSET_MARKER)
    if idx < 0:
        return None
    raw = value[idx + len(ASSET_MARKER):].split("&", 1)[0]
    return unquote(raw) or None


def legacy_png_url(asset_path: str) -> str | None:
    m = _ICON_ASSET.match(asset_path.lstrip("/"))
    if m is None:
        return None
    return LEGACY_ICON_URL.format(folder=m.group(1), icon=m.group(2))


def asset_url(base_url: str, asset_path: str) -> str:
    return f"{base_url}/api/asset?path={quote(asset_path, safe='')}&format=png"


def _png_url(base_url: str, asset_path: str) -> str:
    return legacy_png_url(asset_path) or asset_url(base_url, asset_path)


def to_icon_url(base_url: str, icon: str | None) -> str | None:
    """Absolute PNG URL for an icon path or URL; None when it is not an icon."""
    if not icon:
        return None
    base_url = base_url.rstrip("/")

    asset = _asset_path(icon)
    if asset and "ui/icon/" in asset:
        return _png_url(base_url, asset)

    if icon.lower().startswith(("http://", "https://")):
        parts = urlsplit(icon)
        origin = f"{parts.scheme}://{parts.netloc}"
        if "/api/asset" in parts.path:
            path = (parse_qs(parts.query).get("path") or [""])[0]
            if "ui/icon/" in path:
                return _png_url(origin, path)
        if icon.lower().endswith(".tex"):
            return _png_url(origin, parts.path.lstrip("/"))
        return icon

    normalized = icon.strip()
    if normalized.lstrip("/").startswith("api/asset"):
        # asset links that do not point at an icon
        return None
    if normalized.lower().endswith(".tex"):
        return _png_url(base_url, normalized.lstrip("/"))
    return f"{base_url}/{normalized.lstrip('/')}"


def is_valid_icon_url(url: Any) -> bool:
    if not isinstance(url, str) or not url:
        return False
    if _LEGACY_URL.match(url):
        return True
    asset = _asset_path(url)
    return asset is not None and "ui/icon/" in asset


def _get(obj: Any, key: str) -> Any:
    return obj.get(key) if isinstance(obj, dict) else None


def parse_ability_icon(payload: Any, base_url: str) -> str | None:
    """Icon URL from any of the response shapes XIVAPI has used."""
    if not isinstance(payload, dict):
        return None
    results = payload.get("Results") or payload.get("results")
    first = results[0] if isinstance(results, list) and results else None
    candidates = (
        payload.get("Icon"),
        payload.get("icon"),
        _get(payload.get("fields"), "Icon"),
        _get(payload.get("Fields"), "Icon"),
        _get(payload.get("data"), "Icon"),
        _get(_get(payload.get("row"), "fields"), "Icon"),
        _get(first, "Icon"),
    )
    for candidate in candidates:
        url = to_icon_url(base_url, extract_icon_path(candidate))
        if url:
            return url
    return None
