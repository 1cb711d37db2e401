import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from core.knowledge import IDENTIFIER_RULE, TEMPORAL_NAME_RULE
from core.models import (
    NO_MODE,
    Anomaly,
    CategoricalFieldStats,
    DataQuality,
    Dataset,
    FieldStats,
    FieldType,
    NumericFieldStats,
    Pattern,
    Relationship,
    Scalar,
    TimeSeriesPoint,
)

logger = logging.getLogger(__name__)

CATEGORICAL_RATIO = 0.5
CORRELATION_THRESHOLD = 0.5
TREND_THRESHOLD = 0.3
ANOMALY_SIGMAS = 2.0

SAMPLE_DATA_CSV = """ticket_id,date,priority,category,opened,resolved,resolution_time
1,2024-01-01,high,network,14,10,5.5
2,2024-01-08,low,hardware,16,12,4.8
3,2024-01-15,medium,network,15,13,5.1
4,2024-01-22,high,software,18,15,4.2
5,2024-01-29,low,network,17,16,4.6
6,2024-02-05,medium,hardware,21,18,3.9
7,2024-02-12,high,software,20,19,4.0
8,2024-02-19,low,network,24,22,3.6
9,2024-02-26,medium,software,23,24,3.4
10,2024-03-04,high,network,45,26,12.5
"""


def _to_native(val):
    if hasattr(val, "item"):
        return val.item()
    return val


def is_missing(value: Any) -> bool:
    """None and float NaN (pandas' missing marker) both count as absent."""
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


def is_number(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return False
    if not isinstance(value, (int, float, np.integer, np.floating)):
        return False
    return math.isfinite(value)


def dataset_fields(dataset: Dataset) -> List[str]:
    """The field universe is the key set of the first record."""
    if not dataset:
        return []
    return [str(k) for k in dataset[0].keys()]


def observed_values(dataset: Dataset, field: str) -> List[Scalar]:
    values = []
    for row in dataset:
        value = row.get(field)
        if not is_missing(value):
            values.append(value)
    return values


def numeric_values(dataset: Dataset, field: str) -> List[float]:
    return [float(v) for v in observed_values(dataset, field) if is_number(v)]


def records_from_frame(df: pd.DataFrame) -> List[Dict[str, Scalar]]:
    """Convert a DataFrame to records, with NaN cells read as absent."""
    return [
        {str(k): (None if pd.isna(v) else _to_native(v)) for k, v in row.items()}
        for row in df.to_dict(orient="records")
    ]


# ---------------------------------------------------------------------------
# Field typing
# ---------------------------------------------------------------------------


def _field_type(name: str, values: List[Scalar], dataset_size: int) -> FieldType:
    unique = set(values)
    numeric = all(is_number(v) for v in values)
    boolean = len(unique) <= 2 and all(is_number(v) and v in (0, 1) for v in unique)
    categorical = not numeric and len(unique) < len(values) * CATEGORICAL_RATIO
    temporal = TEMPORAL_NAME_RULE.matches(name)

    if numeric:
        kind = "numeric"
    elif categorical:
        kind = "categorical"
    elif temporal:
        kind = "temporal"
    else:
        kind = "text"

    return FieldType(
        kind=kind,
        is_identifier=IDENTIFIER_RULE.matches(name),
        is_boolean=boolean,
        is_temporal=temporal,
        unique_count=len(unique),
        total_count=len(values),
        sparsity=(dataset_size - len(values)) / dataset_size if dataset_size else 1.0,
    )


def infer_field_types(dataset: Dataset) -> Dict[str, FieldType]:
    field_types = {}
    for name in dataset_fields(dataset):
        field_types[name] = _field_type(name, observed_values(dataset, name), len(dataset))
    logger.debug("Inferred types for %d fields over %d records", len(field_types), len(dataset))
    return field_types


# ---------------------------------------------------------------------------
# Descriptive statistics
# ---------------------------------------------------------------------------


def variance(values: Sequence[float]) -> float:
    """Population variance (mean of squared deviations)."""
    if len(values) == 0:
        return 0.0
    return float(np.var(np.asarray(values, dtype=float)))


def _numeric_stats(values: List[float]) -> NumericFieldStats:
    if not values:
        return NumericFieldStats(min=0.0, max=0.0, avg=0.0, sum=0.0, variance=0.0)
    arr = np.asarray(values, dtype=float)
    total = float(arr.sum())
    return NumericFieldStats(
        min=float(arr.min()),
        max=float(arr.max()),
        avg=total / arr.size,
        sum=total,
        variance=variance(arr),
    )


def _value_counts(values: Iterable[Scalar]) -> pd.Series:
    # sort=False keeps first-seen order, which idxmax relies on for ties.
    return pd.Series(list(values), dtype=object).value_counts(sort=False)


def distribution(values: Iterable[Scalar]) -> Dict[Scalar, int]:
    return {value: int(count) for value, count in _value_counts(values).items()}


def most_common(values: Sequence[Scalar]) -> Scalar:
    """Mode of ``values``; on a tie the value seen first in dataset order wins."""
    counts = _value_counts(values)
    if counts.empty:
        return NO_MODE
    return counts.idxmax()


def _categorical_stats(values: List[Scalar]) -> CategoricalFieldStats:
    return CategoricalFieldStats(distribution=distribution(values), most_common=most_common(values))


def compute_time_series(dataset: Dataset, field: str) -> Tuple[TimeSeriesPoint, ...]:
    return tuple(TimeSeriesPoint(date=row.get(field), values=dict(row)) for row in dataset)


def compute_field_stats(
    dataset: Dataset,
    field_types: Mapping[str, FieldType],
    target_fields: Optional[Sequence[str]] = None,
) -> Dict[str, FieldStats]:
    """Numeric summaries for selected numeric fields, distributions for the rest.

    Temporal-named fields that are not selected numeric fields get no entry;
    their per-row view comes from :func:`compute_time_series`.
    """
    targets = list(target_fields or [])
    stats: Dict[str, FieldStats] = {}
    for name, ftype in field_types.items():
        selected = not targets or name in targets
        if ftype.kind == "numeric" and selected:
            stats[name] = _numeric_stats(numeric_values(dataset, name))
        elif ftype.is_temporal:
            continue
        else:
            stats[name] = _categorical_stats(observed_values(dataset, name))
    return stats


def time_series_views(
    dataset: Dataset,
    field_types: Mapping[str, FieldType],
    field_stats: Mapping[str, FieldStats],
) -> Dict[str, Tuple[TimeSeriesPoint, ...]]:
    return {
        name: compute_time_series(dataset, name)
        for name, ftype in field_types.items()
        if ftype.is_temporal and name not in field_stats
    }


# ---------------------------------------------------------------------------
# Relational analysis
# ---------------------------------------------------------------------------


def correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation; 0 when undefined (short, unequal or constant input)."""
    if len(x) != len(y) or len(x) < 2:
        return 0.0
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    dx = x_arr - x_arr.mean()
    dy = y_arr - y_arr.mean()
    denominator = math.sqrt(float((dx * dx).sum()) * float((dy * dy).sum()))
    if denominator == 0:
        return 0.0
    return float(np.clip((dx * dy).sum() / denominator, -1.0, 1.0))


def trend(values: Sequence[float]) -> float:
    if len(values) < 2:
        return 0.0
    return correlation(list(range(len(values))), values)


def _paired_values(dataset: Dataset, field1: str, field2: str) -> Tuple[List[float], List[float]]:
    xs, ys = [], []
    for row in dataset:
        a, b = row.get(field1), row.get(field2)
        if is_number(a) and is_number(b):
            xs.append(float(a))
            ys.append(float(b))
    return xs, ys


def _numeric_fields(field_types: Mapping[str, FieldType]) -> List[str]:
    return [name for name, ftype in field_types.items() if ftype.kind == "numeric"]


def find_relationships(dataset: Dataset, field_types: Mapping[str, FieldType]) -> Tuple[Relationship, ...]:
    fields = _numeric_fields(field_types)
    found = []
    for i, field1 in enumerate(fields):
        for field2 in fields[i + 1 :]:
            xs, ys = _paired_values(dataset, field1, field2)
            corr = correlation(xs, ys)
            if abs(corr) > CORRELATION_THRESHOLD:
                found.append(
                    Relationship(
                        field1=field1,
                        field2=field2,
                        strength=corr,
                        direction="positive" if corr > 0 else "negative",
                    )
                )
    return tuple(found)


def find_patterns(dataset: Dataset, field_types: Mapping[str, FieldType]) -> Tuple[Pattern, ...]:
    found = []
    for name in _numeric_fields(field_types):
        strength = trend(numeric_values(dataset, name))
        if abs(strength) > TREND_THRESHOLD:
            found.append(
                Pattern(
                    field=name,
                    direction="increasing" if strength > 0 else "decreasing",
                    strength=abs(strength),
                )
            )
    return tuple(found)


def anomaly_threshold(stats: NumericFieldStats) -> float:
    return stats.avg + ANOMALY_SIGMAS * math.sqrt(stats.variance)


def find_anomalies(dataset: Dataset, field_stats: Mapping[str, FieldStats]) -> Tuple[Anomaly, ...]:
    found = []
    for name, stats in field_stats.items():
        if not isinstance(stats, NumericFieldStats):
            continue
        threshold = anomaly_threshold(stats)
        for index, row in enumerate(dataset):
            value = row.get(name)
            if is_number(value) and value > threshold:
                found.append(
                    Anomaly(
                        field=name,
                        record_index=index,
                        value=value,
                        severity=(value - threshold) / threshold if threshold > 0 else 0.0,
                    )
                )
    return tuple(found)


def assess_data_quality(dataset: Dataset, fields: Sequence[str]) -> DataQuality:
    size = len(dataset)
    completeness = {
        name: (len(observed_values(dataset, name)) / size if size else 0.0) for name in fields
    }
    return DataQuality(completeness=completeness)
