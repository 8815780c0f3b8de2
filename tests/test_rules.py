from feedbell.core.rules import dig, first_match


def test_first_match_takes_first_non_empty() -> None:
    rules = (lambda d: d["a"], lambda d: d["b"], lambda d: d["c"])
    assert first_match(rules, {"a": "", "b": "second", "c": "third"}) == "second"


def test_missing_fields_count_as_no_match() -> None:
    rules = (lambda d: d["x"]["y"], lambda d: d[0], lambda d: d.nope, lambda d: "fallback")
    assert first_match(rules, {"x": None}) == "fallback"


def test_first_match_returns_none_when_nothing_matches() -> None:
    assert first_match((lambda d: d["a"],), {}) is None
    assert first_match((lambda d: d["a"],), None) is None


def test_dig_walks_dicts_and_lists() -> None:
    data = {"a": {"b": [{"c": 1}]}}
    assert dig(data, "a", "b", 0, "c") == 1
    assert dig(data, "a", "b", 5, "c") is None
    assert dig(data, "a", "x", "c") is None
    assert dig(None, "a") is None
