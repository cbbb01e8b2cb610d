from datetime import date

import pytest

from validation_portal.core.errors import ValidationError
from validation_portal.services.analytics import (
    LogWeightedRanking,
    SubmitterSummary,
    ThresholdRanking,
    TimeWindow,
    alert_distribution,
    apply_window,
    best_performer,
    dashboard_summary,
    error_rate,
    get_strategy,
    summarize,
)
from validation_portal.utils.alerts import has_alert, split_alert_codes
from validation_portal.utils.dates import normalize_date, parse_timestamp

TODAY = date(2025, 2, 20)


def _sub(by, day, alert="", status=None):
    return {"submitted_by": by, "submission_date": day, "alert_flag": alert, "validation_status": status}


def _summary(name, total, with_alerts):
    return SubmitterSummary(name=name, total_submissions=total, submissions_with_alerts=with_alerts)


def test_summarize_counts_alerts_and_error_rate():
    [a] = summarize([_sub("A", "2025-01-01", "1"), _sub("A", "2025-01-02", "")])
    assert a.total_submissions == 2
    assert a.submissions_with_alerts == 1
    assert a.error_rate == 50.0


def test_summarize_drops_unknown_submitters_and_orders_by_volume():
    records = [
        _sub("Asha", "2025-02-19"),
        _sub("Juma", "2025-02-19"),
        _sub("Juma", "2025-02-18"),
        _sub("Unknown", "2025-02-18"),
        _sub(None, "2025-02-18"),
        _sub("", "2025-02-18"),
    ]
    assert [s.name for s in summarize(records)] == ["Juma", "Asha"]


def test_only_exact_empty_or_na_flag_is_not_an_alert():
    [a] = summarize([_sub("A", "2025-01-01", "NA"), _sub("A", "2025-01-02", "")])
    assert a.submissions_with_alerts == 0
    assert a.error_rate == 0.0


def test_padded_flags_are_compared_as_stored():
    [a] = summarize([_sub("A", "2025-01-01", " NA "), _sub("A", "2025-01-02", " "), _sub("A", "2025-01-03", "NA")])
    assert a.submissions_with_alerts == 2
    assert alert_distribution([a]) == [(" ", 1), (" NA ", 1)]


def test_daily_trend_merges_date_shapes_and_sorts_ascending():
    [a] = summarize([
        _sub("A", "2025-02-19 08:15:00"),
        _sub("A", "2025-02-18T23:00:00"),
        _sub("A", "2025-02-19T10:00:00"),
        _sub("A", None),
    ])
    assert a.daily_trend == [("2025-02-18", 1), ("2025-02-19", 2)]


def test_alert_frequency_counts_individual_codes():
    [a] = summarize([_sub("A", "2025-02-19", "3, 7"), _sub("A", "2025-02-19", "7 9"), _sub("A", "2025-02-19", "NA")])
    assert a.alert_frequency == [("7", 2), ("3", 1), ("9", 1)]


def test_status_counts_use_exact_status_values():
    [a] = summarize([
        _sub("A", "2025-02-19", status="validation_status_approved"),
        _sub("A", "2025-02-19", status="validation_status_not_approved"),
        _sub("A", "2025-02-19", status="validation_status_on_hold"),
        _sub("A", "2025-02-19", status=None),
    ])
    assert a.validation_status == {"approved": 1, "not_approved": 1, "on_hold": 2}


def test_error_rate_of_nothing_is_zero():
    assert error_rate(0, 0) == 0.0
    assert _summary("A", 0, 0).error_rate == 0.0


def test_seven_day_window_excludes_exactly_seven_days_old():
    window = TimeWindow.parse("7days")
    assert window.contains("2025-02-14T09:00:00", TODAY)
    assert not window.contains("2025-02-13T09:00:00", TODAY)
    assert window.contains("2025-02-20 23:59:00", TODAY)


def test_all_window_still_excludes_undated_records():
    window = TimeWindow.parse("all")
    assert window.contains("1999-01-01", TODAY)
    assert not window.contains(None, TODAY)
    assert not window.contains("", TODAY)


def test_range_window_is_inclusive():
    window = TimeWindow.parse(None, "2025-02-10", "2025-02-12")
    assert window.timeframe == "range"
    assert window.contains("2025-02-10T00:00:00", TODAY)
    assert window.contains("2025-02-12 23:00:00", TODAY)
    assert not window.contains("2025-02-13", TODAY)
    assert not window.contains("garbage", TODAY)


def test_open_ended_range():
    window = TimeWindow.parse(None, date_from="2025-02-15")
    assert window.contains("2030-01-01", TODAY)
    assert not window.contains("2025-02-14", TODAY)


@pytest.mark.parametrize(
    "args",
    [("fortnight", None, None), (None, "2025-13-01", None), (None, "2025-02-12", "2025-02-10")],
)
def test_window_rejects_bad_input(args):
    with pytest.raises(ValidationError):
        TimeWindow.parse(*args)


def test_apply_window_sets_filtered_metrics_and_zero_rate_for_empty():
    summaries = summarize([
        _sub("A", "2025-02-19", "1"),
        _sub("A", "2025-02-19", ""),
        _sub("A", "2025-01-01", "1"),
        _sub("B", "2024-01-01", "1"),
    ])

    a, b = apply_window(summaries, TimeWindow.parse("7days"), today=TODAY)

    assert (a.filtered_total, a.filtered_alerts_count, a.filtered_error_rate) == (2, 1, 50.0)
    assert (b.filtered_total, b.filtered_alerts_count, b.filtered_error_rate) == (0, 0, 0.0)
    # unfiltered figures are kept alongside
    assert a.total_submissions == 3
    assert a.to_dict()["filteredTotal"] == 2


def test_threshold_prefers_lowest_error_rate_among_qualified():
    summaries = [_summary("busy", 40, 10), _summary("clean", 12, 0), _summary("tiny", 3, 0)]
    assert best_performer(summaries).name == "clean"


def test_threshold_tie_goes_to_higher_volume():
    summaries = [_summary("a", 10, 1), _summary("b", 20, 2)]
    assert best_performer(summaries).name == "b"


def test_threshold_is_halved_when_nobody_qualifies():
    summaries = [_summary("six", 6, 3), _summary("five", 5, 0), _summary("two", 2, 0)]
    assert ThresholdRanking(10).pick(summaries).name == "five"


def test_threshold_falls_back_to_most_submissions():
    summaries = [_summary("three", 3, 3), _summary("four", 4, 4)]
    assert ThresholdRanking(10).pick(summaries).name == "four"


def test_threshold_halving_never_drops_below_one():
    summaries = [_summary("zero", 0, 0)]
    assert ThresholdRanking(1).pick(summaries).name == "zero"


def test_best_performer_of_nobody_is_none():
    assert best_performer([]) is None
    assert best_performer([], "log_weighted") is None


def test_log_weighted_rewards_volume():
    summaries = [_summary("perfect_small", 2, 0), _summary("good_large", 200, 10)]
    strategy = get_strategy("log_weighted")
    assert isinstance(strategy, LogWeightedRanking)
    assert strategy.pick(summaries).name == "good_large"
    assert LogWeightedRanking.score(_summary("z", 0, 0)) == 0.0


def test_unknown_strategy_is_rejected():
    with pytest.raises(ValidationError):
        get_strategy("random")


def test_ranking_uses_windowed_figures():
    summaries = summarize(
        [_sub("A", "2025-02-19", "")] * 12
        + [_sub("A", "2024-01-01", "1")] * 100
        + [_sub("B", "2025-02-19", "")] * 11
        + [_sub("B", "2025-02-18", "4")]
    )
    assert best_performer(summaries).name == "B"

    windowed = apply_window(summaries, TimeWindow.parse("30days"), today=TODAY)
    assert best_performer(windowed).name == "A"


def test_alert_distribution_and_dashboard_summary():
    summaries = summarize([_sub("A", "2025-02-19", "3"), _sub("A", "2025-02-19", "3"), _sub("B", "2025-02-19", "5, 6")])
    best = best_performer(summaries)

    assert alert_distribution(summaries) == [("3", 2), ("5, 6", 1)]

    summary = dashboard_summary(summaries, best)
    assert summary["totalEnumerators"] == 2
    assert summary["totalSubmissions"] == 3
    assert summary["totalAlerts"] == 3
    assert summary["overallErrorRate"] == 100.0
    assert summary["bestPerformer"]["name"] == best.name


def test_date_and_alert_helpers():
    assert normalize_date("2025-02-19T08:15:00") == "2025-02-19"
    assert normalize_date("2025-02-19 08:15:00") == "2025-02-19"
    assert normalize_date("  ") is None
    assert parse_timestamp("nonsense") is None
    assert parse_timestamp("2025-02-19T08:00:00Z").tzinfo is None
    assert not has_alert(None)
    assert split_alert_codes("3, 7  9") == ["3", "7", "9"]
    assert split_alert_codes("NA") == []
