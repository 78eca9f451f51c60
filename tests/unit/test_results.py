"""Unit tests for recompute reports."""

from jobengine.errors import ConfigurationError, WriteFailure
from jobengine.results import DistributionReport, QuotaShortfall


def test_empty_report_is_ok():
    r = DistributionReport()
    assert r.ok
    assert r.mode == "noop"


def test_shortfall_missing():
    assert QuotaShortfall("Doctor", required=3, assigned=1).missing == 2


def test_any_issue_flips_ok():
    assert not DistributionReport(uncoverable=["Art"]).ok
    assert not DistributionReport(shortfalls=[QuotaShortfall("A", 1, 0)]).ok
    assert not DistributionReport(write_failures=[WriteFailure("a", "T", 1)]).ok
    assert not DistributionReport(config_errors=[ConfigurationError("x")]).ok


def test_merge_deduplicates_workers():
    total = DistributionReport(mode="incremental", workers=["a"])
    one = DistributionReport(
        workers=["a", "b"],
        levels={"b": {"Cooking": 1}},
        primaries={"b": "Cooking"},
        ill=["b"],
        write_failures=[WriteFailure("b", "Mining", 2)],
    )
    total.merge(one)
    total.merge(one)
    assert total.workers == ["a", "b"]
    assert total.primaries == {"b": "Cooking"}
    assert total.ill == ["b"]
    assert len(total.write_failures) == 2
    assert total.mode == "incremental"


def test_to_dict_is_plain_data():
    r = DistributionReport(
        tick=7,
        mode="colony",
        workers=["a"],
        levels={"a": {"Cooking": 1}},
        shortfalls=[QuotaShortfall("Doctor", 2, 1)],
        write_failures=[WriteFailure("a", "Mining", 3, reason="locked")],
    )
    d = r.to_dict()
    assert d["tick"] == 7
    assert d["shortfalls"] == [{"task": "Doctor", "required": 2, "assigned": 1}]
    assert "locked" in d["write_failures"][0]
    # copies, not views
    d["levels"]["a"]["Cooking"] = 4
    assert r.levels["a"]["Cooking"] == 1


def test_repr():
    assert "mode='solo'" in repr(DistributionReport(mode="solo"))
