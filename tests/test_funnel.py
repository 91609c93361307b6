"""
Tests for the funnel aggregator: distinct-customer counts, previous-row
lookup and churn rates, in both count and funnel-stage orderings.
"""

import pandas as pd
import pytest

from src.analysis.funnel import (
    churn_rate,
    distinct_events,
    funnel_counts,
    funnel_dropoff,
    funnel_stage_inversions,
    previous_counts,
    restrict_to_funnel,
    sort_for_display,
)
from src.etl.cleaning import clean_events


def _counts(rows, dimension=None):
    columns = ([dimension] if dimension else []) + ["event", "event_count"]
    return pd.DataFrame(rows, columns=columns)


# ---------------------------------------------------------------------------
# churn_rate
# ---------------------------------------------------------------------------
def test_churn_rate_rounds_to_two_decimals():
    assert churn_rate(3, 2) == 33.33


def test_churn_rate_rounds_half_up():
    assert churn_rate(32, 31) == 3.13


def test_churn_rate_full_precision():
    assert churn_rate(3, 2, round_to=None) == pytest.approx(100 / 3)


@pytest.mark.parametrize("previous", [None, 0, pd.NA])
def test_churn_rate_is_null_without_previous(previous):
    assert churn_rate(previous, 5) is None


def test_churn_rate_can_be_negative_when_count_grows():
    assert churn_rate(4, 5) == -25.0


# ---------------------------------------------------------------------------
# Counting
# ---------------------------------------------------------------------------
def test_restrict_to_funnel_drops_transactions(sample_events):
    restricted = restrict_to_funnel(sample_events)
    assert "transaction" not in set(restricted["event"])
    assert len(restricted) == len(sample_events) - 1


def test_distinct_events_lists_every_event_name(sample_events):
    assert distinct_events(sample_events)["event"].tolist() == [
        "offer completed",
        "offer received",
        "offer viewed",
        "transaction",
    ]


def test_funnel_counts_use_distinct_customers(sample_events):
    counts = funnel_counts(restrict_to_funnel(sample_events)).set_index("event")["event_count"]
    # customer 1 viewed twice but counts once
    assert counts.to_dict() == {"offer completed": 1, "offer received": 4, "offer viewed": 2}


def test_funnel_counts_skip_null_slice_values():
    events = pd.DataFrame(
        {
            "customer_id": ["1", "2", "3"],
            "event": ["offer received"] * 3,
            "difficulty": [5.0, None, 5.0],
        }
    )
    counts = funnel_counts(events, "difficulty")
    assert counts.to_dict("records") == [
        {"difficulty": 5.0, "event": "offer received", "event_count": 2}
    ]


def test_funnel_counts_on_empty_frame():
    events = pd.DataFrame({"customer_id": pd.Series(dtype=object), "event": pd.Series(dtype=object)})
    counts = funnel_counts(events)
    assert counts.empty
    assert list(counts.columns) == ["event", "event_count"]


def test_funnel_counts_missing_column_raises():
    with pytest.raises(ValueError, match="customer_id"):
        funnel_counts(pd.DataFrame({"event": ["offer received"]}))


# ---------------------------------------------------------------------------
# previous_count / churn
# ---------------------------------------------------------------------------
def test_three_received_two_viewed_gives_one_third_churn(make_events):
    events = make_events(
        [
            ("a", "offer received", "{'offer id': 'A'}"),
            ("b", "offer received", "{'offer id': 'A'}"),
            ("c", "offer received", "{'offer id': 'A'}"),
            ("a", "offer viewed", "{'offer id': 'A'}"),
            ("b", "offer viewed", "{'offer id': 'A'}"),
        ]
    )
    result = funnel_dropoff(clean_events(events))

    assert result["event"].tolist() == ["offer received", "offer viewed"]
    assert pd.isna(result.loc[0, "previous_count"])
    assert pd.isna(result.loc[0, "churn_rate"])
    assert result.loc[1, "previous_count"] == 3
    assert result.loc[1, "churn_rate"] == 33.33


def test_every_non_top_row_matches_churn_formula(sample_events):
    result = funnel_dropoff(sample_events)
    for row in result.iloc[1:].to_dict("records"):
        expected = round((row["previous_count"] - row["event_count"]) * 100 / row["previous_count"], 2)
        assert row["churn_rate"] == pytest.approx(expected)


def test_previous_counts_rank_by_count_within_each_slice():
    counts = _counts(
        [
            ("bogo", "offer received", 10),
            ("bogo", "offer viewed", 8),
            ("bogo", "offer completed", 4),
            ("discount", "offer received", 6),
            ("discount", "offer completed", 5),
        ],
        "offer_type",
    )
    result = previous_counts(counts, "offer_type")
    by_key = result.set_index(["offer_type", "event"])

    assert pd.isna(by_key.loc[("bogo", "offer received"), "previous_count"])
    assert by_key.loc[("bogo", "offer viewed"), "previous_count"] == 10
    assert by_key.loc[("bogo", "offer completed"), "previous_count"] == 8
    assert by_key.loc[("bogo", "offer completed"), "churn_rate"] == 50.0
    # a new slice restarts the chain
    assert pd.isna(by_key.loc[("discount", "offer received"), "previous_count"])
    assert by_key.loc[("discount", "offer completed"), "previous_count"] == 6


def test_count_ordering_follows_volume_not_funnel_stage():
    counts = _counts(
        [
            ("offer received", 10),
            ("offer viewed", 6),
            ("offer completed", 7),
        ]
    )
    result = previous_counts(counts, ordering="count").set_index("event")

    assert result.loc["offer completed", "previous_count"] == 10
    assert result.loc["offer viewed", "previous_count"] == 7
    assert result.loc["offer viewed", "churn_rate"] == 14.29


def test_stage_ordering_follows_funnel_sequence():
    counts = _counts(
        [
            ("offer received", 10),
            ("offer viewed", 6),
            ("offer completed", 7),
        ]
    )
    result = previous_counts(counts, ordering="stage").set_index("event")

    assert result.loc["offer viewed", "previous_count"] == 10
    assert result.loc["offer completed", "previous_count"] == 6
    assert result.loc["offer completed", "churn_rate"] == pytest.approx(-16.67)


def test_count_ties_fall_back_to_stage_order():
    counts = _counts([("offer viewed", 5), ("offer received", 5), ("offer completed", 2)])
    result = sort_for_display(previous_counts(counts))

    assert result["event"].tolist() == ["offer received", "offer viewed", "offer completed"]
    assert result.loc[1, "previous_count"] == 5
    assert result.loc[1, "churn_rate"] == 0.0


def test_unknown_ordering_raises():
    with pytest.raises(ValueError, match="ordering"):
        previous_counts(_counts([("offer received", 1)]), ordering="alphabetical")


def test_previous_count_dtype_is_nullable_integer(sample_events):
    result = funnel_dropoff(sample_events)
    assert str(result["previous_count"].dtype) == "Int64"
    assert result["churn_rate"].dtype == "float64"


# ---------------------------------------------------------------------------
# funnel_dropoff
# ---------------------------------------------------------------------------
def test_funnel_dropoff_overall(sample_events):
    result = funnel_dropoff(sample_events)

    assert result["event"].tolist() == ["offer received", "offer viewed", "offer completed"]
    assert result["event_count"].tolist() == [4, 2, 1]
    assert result["churn_rate"].tolist()[1:] == [50.0, 50.0]


def test_funnel_dropoff_min_value_removes_whole_slices():
    events = pd.DataFrame(
        {
            "customer_id": ["1", "2", "1", "3"],
            "event": ["offer received", "offer received", "offer viewed", "offer received"],
            "difficulty": [5, 5, 5, 0],
        }
    )
    result = funnel_dropoff(events, "difficulty", min_value=5)

    assert set(result["difficulty"]) == {5}
    assert result["event_count"].tolist() == [2, 1]


def test_funnel_dropoff_min_value_needs_dimension(sample_events):
    with pytest.raises(ValueError, match="dimension"):
        funnel_dropoff(sample_events, min_value=5)


def test_funnel_dropoff_display_order_can_differ_from_ranking():
    events = pd.DataFrame(
        {
            "customer_id": ["1", "2", "3", "1", "1", "2"],
            "event": [
                "offer received",
                "offer received",
                "offer received",
                "offer viewed",
                "offer completed",
                "offer completed",
            ],
            "difficulty": [5] * 6,
        }
    )
    result = funnel_dropoff(events, "difficulty", ordering="count", display_order="stage")

    assert result["event"].tolist() == ["offer received", "offer viewed", "offer completed"]
    # lag still ranked by count: viewed (1) follows completed (2)
    assert result.loc[1, "previous_count"] == 2
    assert result.loc[2, "previous_count"] == 3


def test_funnel_dropoff_on_empty_input():
    events = pd.DataFrame(
        {
            "customer_id": pd.Series(dtype=object),
            "event": pd.Series(dtype=object),
        }
    )
    result = funnel_dropoff(events)
    assert result.empty
    assert {"previous_count", "churn_rate"} <= set(result.columns)


# ---------------------------------------------------------------------------
# Inversions and typed rows
# ---------------------------------------------------------------------------
def test_funnel_stage_inversions_flags_disagreeing_slices():
    counts = _counts(
        [
            (5, "offer received", 10),
            (5, "offer viewed", 8),
            (10, "offer received", 10),
            (10, "offer viewed", 3),
            (10, "offer completed", 4),
        ],
        "difficulty",
    )
    result = previous_counts(counts, "difficulty")
    inversions = funnel_stage_inversions(result, "difficulty")

    assert inversions["difficulty"].tolist() == [10]
    assert inversions.loc[0, "count_order"] == "offer received > offer completed > offer viewed"
    assert inversions.loc[0, "stage_order"] == "offer received > offer viewed > offer completed"

