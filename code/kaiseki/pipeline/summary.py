"""Per-player ability usage summaries."""

from kaiseki.fflogs.models import AbilitySummary, PlayerCastEntry, PlayerSummary


def average_interval(entries: list[PlayerCastEntry]) -> float | None:
    """Mean seconds between consecutive uses; None below two uses."""
    if len(entries) < 2:
        return None
    gaps = [b.t - a.t for a, b in zip(entries, entries[1:])]
    return sum(gaps) / len(gaps)


def summarize_ability(entries: list[PlayerCastEntry], duration_minutes: float) -> AbilitySummary:
    ordered = sorted(entries, key=lambda e: e.t)
    count = len(ordered)
    return AbilitySummary(
        ability=ordered[0].ability,
        ability_id=ordered[0].ability_id,
        count=count,
        first_use=ordered[0].t,
        last_use=ordered[-1].t,
        avg_interval=average_interval(ordered),
        cpm=count / duration_minutes if duration_minutes > 0 else 0,
    )


def build_player_summary(
    casts_by_player: dict[str, list[PlayerCastEntry]],
    duration_ms: float,
) -> list[PlayerSummary]:
    duration_minutes = duration_ms / 1000 / 60
    summaries = []

    for key, entries in casts_by_player.items():
        if not entries:
            continue
        by_ability: dict[int, list[PlayerCastEntry]] = {}
        for entry in entries:
            by_ability.setdefault(entry.ability_id, []).append(entry)

        abilities = sorted(
            (summarize_ability(group, duration_minutes) for group in by_ability.values()),
            key=lambda a: (-a.count, a.ability),
        )
        name, _, _ = key.rpartition("#")
        summaries.append(PlayerSummary(
            player=name or entries[0].source,
            player_id=entries[0].source_id,
            total_casts=len(entries),
            abilities=abilities,
        ))

    return sorted(summaries, key=lambda p: (-p.total_casts, p.player))
