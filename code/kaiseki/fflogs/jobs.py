"""FFXIV job aliases used to filter rankings by job."""

import re

from kaiseki.fflogs.models import RankingEntry

JOB_ALIASES: dict[str, str] = {
    "pld": "paladin",
    "war": "warrior",
    "drk": "darkknight",
    "gnb": "gunbreaker",
    "whm": "whitemage",
    "sch": "scholar",
    "ast": "astrologian",
    "sge": "sage",
    "mnk": "monk",
    "drg": "dragoon",
    "nin": "ninja",
    "sam": "samurai",
    "rpr": "reaper",
    "vpr": "viper",
    "brd": "bard",
    "mch": "machinist",
    "dnc": "dancer",
    "blm": "blackmage",
    "smn": "summoner",
    "rdm": "redmage",
    "pct": "pictomancer",
}

JOB_CLASS_IDS: dict[str, str] = {
    "paladin": "19",
    "warrior": "21",
    "darkknight": "32",
    "gunbreaker": "37",
    "whitemage": "24",
    "scholar": "28",
    "astrologian": "33",
    "sage": "40",
    "monk": "20",
    "dragoon": "22",
    "ninja": "30",
    "samurai": "34",
    "reaper": "39",
    "viper": "41",
    "bard": "23",
    "machinist": "31",
    "dancer": "38",
    "blackmage": "25",
    "summoner": "27",
    "redmage": "35",
    "pictomancer": "42",
}

_CLASS_ID_TO_JOB = {v: k for k, v in JOB_CLASS_IDS.items()}
_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_job(value: str | None) -> str:
    return _NON_ALNUM.sub("", str(value or "").strip().lower())


def canonical_job(job: str | None) -> str:
    """Map ``SGE``, ``Sage`` or ``40`` to ``sage``; unknown input is returned normalized."""
    q = normalize_job(job)
    q = JOB_ALIASES.get(q, q)
    return _CLASS_ID_TO_JOB.get(q, q)


def matches_job(entry: RankingEntry, job: str | None) -> bool:
    q = canonical_job(job)
    if not q:
        return True
    c = normalize_job(entry.class_name)
    s = normalize_job(entry.spec_name)
    if q in (c, s) or (q in c) or (q in s):
        return True
    class_id = JOB_CLASS_IDS.get(q)
    return class_id is not None and c == class_id
