import json
import logging
from pathlib import Path

from kaiseki.abilities.cache import parse_name_map

logger = logging.getLogger(__name__)


def load_ability_overrides(path: str | Path) -> dict[int, str]:
    """Read the operator-maintained ``{"<id>": "<name>"}`` file; missing or bad -> {}."""
    path = Path(path)
    if not path.exists():
        return {}
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring invalid ability overrides file %s: %s", path, exc)
        return {}
    if not isinstance(raw, dict):
        logger.warning("Ignoring ability overrides file %s: expected a JSON object", path)
        return {}
    overrides = parse_name_map(raw)
    logger.info("Loaded %d ability name overrides from %s", len(overrides), path)
    return overrides
