import json

from kaiseki.fflogs.payload import (
    extract_rankings_rows,
    find_rows,
    parse_json_maybe,
    payload_error,
    pick_boolean,
    pick_number,
    read_path,
    sample_keys,
    to_number,
)


class TestReadPath:
    def test_exact_then_case_insensitive(self):
        obj = {"rDPS": {"Max": 12.5}}
        assert read_path(obj, "rDPS.Max") == 12.5
        assert read_path(obj, "rdps.max") == 12.5

    def test_missing_or_non_dict(self):
        assert read_path({"a": 1}, "a.b") is None
        assert read_path(None, "a") is None


class TestNumbers:
    def test_to_number(self):
        assert to_number(3) == 3.0
        assert to_number("1,234.5") == 1234.5
        assert to_number(True) is None
        assert to_number("abc") is None
        assert to_number(float("nan")) is None

    def test_pick_number_first_finite(self):
        obj = {"a": "x", "b": "42"}
        assert pick_number(obj, ["a", "b"]) == 42.0
        assert pick_number(obj, ["c"]) is None

    def test_pick_boolean(self):
        assert pick_boolean({"kill": "yes"}, ["kill"]) is True
        assert pick_boolean({"kill": 0}, ["kill"]) is False
        assert pick_boolean({"kill": "maybe"}, ["kill"]) is None


def test_parse_json_maybe():
    assert parse_json_maybe('{"a": 1}') == {"a": 1}
    assert parse_json_maybe("not json") is None
    assert parse_json_maybe({"a": 1}) == {"a": 1}


class TestExtractRankingsRows:
    def test_plain_list(self):
        assert extract_rankings_rows([{"fightID": 1}]) == [{"fightID": 1}]

    def test_json_string_with_rankings_key(self):
        payload = json.dumps({"page": 1, "rankings": [{"fightID": 3, "report": {"code": "x"}}]})
        assert extract_rankings_rows(payload) == [{"fightID": 3, "report": {"code": "x"}}]

    def test_data_key(self):
        assert extract_rankings_rows({"data": [{"report": "abc"}]}) == [{"report": "abc"}]

    def test_unknown_envelope_found_by_search(self):
        rows = [{"fightId": 9, "reportCode": "abcdEFGH1234"}]
        payload = {"meta": {"count": 1}, "outer": {"inner": {"entries": rows}}}
        assert extract_rankings_rows(payload) == rows

    def test_nothing_found(self):
        assert extract_rankings_rows({"meta": {"count": 0}}) == []
        assert extract_rankings_rows(None) == []
        assert extract_rankings_rows("garbage") == []


class TestFindRows:
    def test_respects_depth_limit(self):
        deep = {"rows": [{"fightID": 1}]}
        for _ in range(10):
            deep = {"next": deep}
        assert find_rows(deep, max_depth=3) == []
        assert find_rows(deep, max_depth=20) == [{"fightID": 1}]

    def test_handles_cycles(self):
        node: dict = {"name": "loop"}
        node["self"] = node
        assert find_rows(node) == []


def test_payload_error_and_sample_keys():
    payload = json.dumps({"error": "Invalid difficulty setting or size specified", "x": 1})
    assert payload_error(payload) == "Invalid difficulty setting or size specified"
    assert payload_error({"rankings": []}) is None
    assert sample_keys(payload) == ["error", "x"]
    assert sample_keys([1, 2]) == []
