"""Ordered query variants with silent downgrade on recognized errors.

FFLogs rejects some arguments depending on the deployment (``translate``
on report queries, ``page`` or ``partition`` on rankings). Callers list
the richest variant first and let the next one take over when the
server complains about a specific argument.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

ErrorPredicate = Callable[[Exception], bool]


def unknown_argument(name: str) -> ErrorPredicate:
    """Match ``Unknown argument "name"`` in either quoting style."""
    needles = (f'Unknown argument "{name}"', f"Unknown argument '{name}'")

    def predicate(exc: Exception) -> bool:
        message = str(exc)
        return any(needle in message for needle in needles)

    return predicate


def message_contains(text: str) -> ErrorPredicate:
    def predicate(exc: Exception) -> bool:
        return text in str(exc)

    return predicate


def never(exc: Exception) -> bool:
    return False


@dataclass(frozen=True)
class QueryVariant:
    name: str
    query: str
    extra_variables: dict[str, Any] = field(default_factory=dict)
    downgrade_on: ErrorPredicate = never


def compact_variables(variables: dict[str, Any]) -> dict[str, Any]:
    """Drop variables whose value is None so the server applies its default."""
    return {k: v for k, v in variables.items() if v is not None}


async def query_with_fallback(
    client,
    variants: Sequence[QueryVariant],
    variables: dict[str, Any],
    attempted: list[str] | None = None,
) -> dict[str, Any]:
    """Run the first variant that the server accepts.

    A failure the variant's ``downgrade_on`` predicate recognizes moves
    on to the next variant; any other failure, or a failure on the last
    variant, propagates. Variant names are appended to ``attempted``.
    """
    if not variants:
        raise ValueError("query_with_fallback needs at least one variant")

    last = len(variants) - 1
    for i, variant in enumerate(variants):
        if attempted is not None:
            attempted.append(variant.name)
        merged = compact_variables({**variables, **variant.extra_variables})
        try:
            return await client.query(variant.query, variables=merged)
        except Exception as exc:
            if i == last or not variant.downgrade_on(exc):
                raise
            logger.info(
                "Query variant %s rejected, falling back to %s: %s",
                variant.name, variants[i + 1].name, exc,
            )
    raise AssertionError("unreachable")


def translate_variants(translated: str, plain: str, translate: bool) -> list[QueryVariant]:
    """Variants for report queries: translated first when requested."""
    plain_variant = QueryVariant("plain", plain)
    if not translate:
        return [plain_variant]
    return [
        QueryVariant(
            "translate",
            translated,
            {"translate": True},
            downgrade_on=unknown_argument("translate"),
        ),
        plain_variant,
    ]
