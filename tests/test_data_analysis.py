# tests/test_data_analysis.py
import math

import pandas as pd
import pytest

from core.models import NO_MODE, CategoricalFieldStats, NumericFieldStats
from tools.data_analysis import (
    assess_data_quality,
    compute_field_stats,
    correlation,
    distribution,
    find_anomalies,
    find_patterns,
    find_relationships,
    infer_field_types,
    most_common,
    records_from_frame,
    time_series_views,
    trend,
    variance,
)


class TestFieldTypes:

    def test_kinds(self, incident_records):
        types = infer_field_types(incident_records)

        assert types["opened"].kind == "numeric"
        assert types["priority"].kind == "categorical"
        assert types["date"].kind == "temporal"
        assert types["date"].is_temporal

    def test_text_when_values_are_mostly_distinct(self):
        types = infer_field_types([{"note": "a"}, {"note": "b"}, {"note": "c"}])

        assert types["note"].kind == "text"
        assert types["note"].unique_count == 3

    def test_identifier_matches_words_not_fragments(self):
        dataset = [{"ticket_id": 1, "ticketNumber": 2, "incidentCount": 3, "video": 4, "userID": 5}]
        types = infer_field_types(dataset)

        assert types["ticket_id"].is_identifier
        assert types["ticketNumber"].is_identifier
        assert types["userID"].is_identifier
        assert not types["incidentCount"].is_identifier
        assert not types["video"].is_identifier

    def test_single_word_identifiers(self):
        dataset = [
            {"customerid": 1, "orderid": 10, "uuid": 100, "amount": 5.0},
            {"customerid": 2, "orderid": 11, "uuid": 101, "amount": 7.5},
        ]
        types = infer_field_types(dataset)

        assert types["customerid"].is_identifier
        assert types["orderid"].is_identifier
        assert types["uuid"].is_identifier
        assert not types["amount"].is_identifier

    def test_boolean_flag(self):
        types = infer_field_types([{"flag": 0}, {"flag": 1}, {"flag": 1}, {"count": 2, "flag": 0}])

        assert types["flag"].is_boolean
        assert types["flag"].kind == "numeric"

    def test_python_bools_are_not_numbers(self):
        types = infer_field_types([{"flag": True}, {"flag": False}])

        assert types["flag"].kind != "numeric"
        assert not types["flag"].is_boolean

    def test_non_finite_values_are_not_numeric(self):
        types = infer_field_types([{"x": 1.0}, {"x": math.inf}])

        assert types["x"].kind != "numeric"

    def test_sparsity(self):
        dataset = [{"a": 1, "b": 2}, {"a": 3}, {"a": 5, "b": None}, {"a": 7, "b": float("nan")}]
        types = infer_field_types(dataset)

        assert types["a"].sparsity == 0.0
        assert types["b"].total_count == 1
        assert types["b"].sparsity == pytest.approx(0.75)

    def test_field_without_observations(self):
        types = infer_field_types([{"x": None}, {"x": None}])

        assert types["x"].unique_count == 0
        assert types["x"].total_count == 0
        assert types["x"].sparsity == 1.0

    def test_field_universe_comes_from_first_record(self):
        types = infer_field_types([{"a": 1}, {"a": 2, "b": 3}])

        assert list(types) == ["a"]


class TestFieldStats:

    def test_numeric_summary(self, incident_records):
        types = infer_field_types(incident_records)
        stats = compute_field_stats(incident_records, types)["opened"]

        assert isinstance(stats, NumericFieldStats)
        assert stats.min == 10
        assert stats.max == 20
        assert stats.sum == 90
        assert stats.avg == 15
        assert stats.variance == pytest.approx(70 / 6)

    def test_sum_matches_average_times_count(self, incident_records):
        types = infer_field_types(incident_records)
        stats = compute_field_stats(incident_records, types)

        for name, field_stats in stats.items():
            if isinstance(field_stats, NumericFieldStats):
                assert field_stats.sum == pytest.approx(field_stats.avg * types[name].total_count)
                assert field_stats.variance >= 0

    def test_empty_numeric_field_is_all_zero(self):
        dataset = [{"x": None}, {"x": None}]
        stats = compute_field_stats(dataset, infer_field_types(dataset))["x"]

        assert stats == NumericFieldStats(min=0.0, max=0.0, avg=0.0, sum=0.0, variance=0.0)

    def test_target_filter_limits_numeric_summaries(self, incident_records):
        types = infer_field_types(incident_records)
        stats = compute_field_stats(incident_records, types, ["resolved"])

        assert isinstance(stats["resolved"], NumericFieldStats)
        assert isinstance(stats["opened"], CategoricalFieldStats)
        assert stats["opened"].distribution[10] == 1

    def test_categorical_distribution(self, incident_records):
        types = infer_field_types(incident_records)
        stats = compute_field_stats(incident_records, types)["priority"]

        assert stats.distribution == {"high": 4, "low": 2}
        assert stats.most_common == "high"

    def test_temporal_fields_get_time_series_view(self, incident_records):
        types = infer_field_types(incident_records)
        stats = compute_field_stats(incident_records, types)
        series = time_series_views(incident_records, types, stats)

        assert "date" not in stats
        assert [p.date for p in series["date"]] == [r["date"] for r in incident_records]
        assert series["date"][0].values == incident_records[0]

    def test_mode_tie_goes_to_first_seen_value(self):
        assert most_common(["b", "a", "a", "b"]) == "b"
        assert most_common([]) == NO_MODE

    def test_distribution_keeps_first_seen_order(self):
        counts = distribution([3, 1, 3, "x", 1, 3])

        assert list(counts) == [3, 1, "x"]
        assert counts == {3: 3, 1: 2, "x": 1}
        assert all(type(c) is int for c in counts.values())

    def test_population_variance(self):
        assert variance([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(4.0)
        assert variance([]) == 0.0


class TestCorrelationAndTrend:

    def test_perfect_correlation(self):
        assert correlation([1, 2, 3, 4], [2, 4, 6, 8]) == pytest.approx(1.0)
        assert correlation([1, 2, 3, 4], [8, 6, 4, 2]) == pytest.approx(-1.0)

    def test_symmetric(self):
        x, y = [1, 5, 2, 8, 3], [2, 3, 9, 1, 4]
        assert correlation(x, y) == pytest.approx(correlation(y, x))

    def test_self_correlation(self):
        x = [3.5, 1.0, 7.25, 2.0]
        assert correlation(x, x) == pytest.approx(1.0)

    @pytest.mark.parametrize(
        "x,y",
        [([1], [1]), ([], []), ([1, 2, 3], [1, 2]), ([5, 5, 5], [1, 2, 3])],
    )
    def test_undefined_cases_return_zero(self, x, y):
        assert correlation(x, y) == 0.0

    def test_trend_is_correlation_with_index(self):
        values = [4.0, 1.0, 6.0, 3.0, 9.0]
        assert trend(values) == pytest.approx(correlation(list(range(len(values))), values))
        assert trend([7]) == 0.0


class TestRelationalFindings:

    def test_relationship_emitted_for_linear_pair(self):
        dataset = [{"x": x, "y": y} for x, y in zip([1, 2, 3, 4], [2, 4, 6, 8])]
        rels = find_relationships(dataset, infer_field_types(dataset))

        assert len(rels) == 1
        assert (rels[0].field1, rels[0].field2) == ("x", "y")
        assert rels[0].direction == "positive"
        assert rels[0].strength == pytest.approx(1.0)
        assert rels[0].type == "correlation"

    def test_weak_pairs_are_skipped(self):
        dataset = [{"x": x, "y": y} for x, y in zip([1, 2, 3, 4], [1, -1, -1, 1])]

        assert find_relationships(dataset, infer_field_types(dataset)) == ()

    def test_sparse_rows_are_paired(self):
        dataset = [{"a": 1, "b": None}, {"a": 2, "b": 4}, {"a": 3, "b": 6}, {"a": 4, "b": 8}]
        rels = find_relationships(dataset, infer_field_types(dataset))

        assert len(rels) == 1
        assert rels[0].strength == pytest.approx(1.0)

    @pytest.mark.parametrize("strength,expected", [(0.5, 0), (-0.5, 0), (0.51, 1), (-0.51, 1)])
    def test_correlation_threshold_is_exclusive(self, monkeypatch, strength, expected):
        monkeypatch.setattr("tools.data_analysis.correlation", lambda x, y: strength)
        dataset = [{"x": 1, "y": 2}, {"x": 2, "y": 3}]

        assert len(find_relationships(dataset, infer_field_types(dataset))) == expected

    @pytest.mark.parametrize("strength,expected", [(0.3, 0), (-0.3, 0), (0.31, 1), (-0.31, 1)])
    def test_trend_threshold_is_exclusive(self, monkeypatch, strength, expected):
        monkeypatch.setattr("tools.data_analysis.trend", lambda values: strength)
        dataset = [{"v": 1}, {"v": 2}]

        assert len(find_patterns(dataset, infer_field_types(dataset))) == expected

    def test_patterns(self):
        dataset = [{"up": i, "down": 10 - i * 2} for i in range(5)]
        patterns = {p.field: p for p in find_patterns(dataset, infer_field_types(dataset))}

        assert patterns["up"].direction == "increasing"
        assert patterns["down"].direction == "decreasing"
        assert patterns["down"].strength == pytest.approx(1.0)

    def test_anomalies(self):
        dataset = [{"v": 1}] * 9 + [{"v": 10}]
        stats = compute_field_stats(dataset, infer_field_types(dataset))
        anomalies = find_anomalies(dataset, stats)

        assert len(anomalies) == 1
        assert anomalies[0].record_index == 9
        assert anomalies[0].type == "outlier_high"
        assert anomalies[0].severity == pytest.approx((10 - 7.3) / 7.3)

    def test_threshold_boundary_is_not_flagged(self):
        dataset = [{"v": 9}, {"v": 9.5}, {"v": 3}]
        stats = {"v": NumericFieldStats(min=3, max=9.5, avg=5.0, sum=21.5, variance=4.0)}
        anomalies = find_anomalies(dataset, stats)

        assert [a.value for a in anomalies] == [9.5]

    def test_non_positive_threshold_has_zero_severity(self):
        dataset = [{"v": 1}]
        stats = {"v": NumericFieldStats(min=-5, max=1, avg=-5.0, sum=-5.0, variance=1.0)}

        assert find_anomalies(dataset, stats)[0].severity == 0.0


class TestDataQuality:

    def test_completeness(self):
        dataset = [{"a": 1, "b": None}, {"a": 2, "b": 3}]
        quality = assess_data_quality(dataset, ["a", "b"])

        assert quality.completeness == {"a": 1.0, "b": 0.5}
        assert quality.overall == "good"

    def test_records_from_frame_marks_nan_missing(self):
        df = pd.DataFrame({"a": [1.0, None], "b": ["x", "y"]})
        records = records_from_frame(df)

        assert records[0] == {"a": 1.0, "b": "x"}
        assert records[1]["a"] is None
