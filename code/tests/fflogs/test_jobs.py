import pytest

from kaiseki.fflogs.jobs import canonical_job, matches_job, normalize_job
from kaiseki.fflogs.models import RankingEntry


def _entry(class_name=None, spec_name=None):
    return RankingEntry(
        report_code="abcdEFGH1234", fight_id=1, class_name=class_name, spec_name=spec_name
    )


def test_normalize_job():
    assert normalize_job(" Dark Knight ") == "darkknight"
    assert normalize_job(None) == ""


@pytest.mark.parametrize("job", ["SGE", "sage", "Sage", "40"])
def test_canonical_job_aliases(job):
    assert canonical_job(job) == "sage"


@pytest.mark.parametrize("job", ["SGE", "sage", "40"])
def test_matches_job_by_class_id(job):
    assert matches_job(_entry(class_name="40"), job)
    assert not matches_job(_entry(class_name="24"), job)


def test_matches_job_by_spec_name():
    assert matches_job(_entry(spec_name="Sage"), "SGE")
    assert matches_job(_entry(class_name="DarkKnight"), "drk")
    assert not matches_job(_entry(spec_name="Scholar"), "SGE")


def test_empty_job_matches_everything():
    assert matches_job(_entry(), None)
    assert matches_job(_entry(class_name="24"), "")
