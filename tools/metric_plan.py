"""Plan-driven metric computation.

A plan maps a focus area ("total", "trend", ...) to the metrics to compute
for it. Each metric name is dispatched through ``METRIC_HANDLERS``; names
without a handler are reported as unsupported under the field instead of
failing the run.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from core.models import (
    AnalysisPlan,
    Dataset,
    Depth,
    FieldStats,
    FieldType,
    FocusAreaPlan,
    NumericFieldStats,
    Scalar,
)
from tools.data_analysis import is_missing

logger = logging.getLogger(__name__)

RATIO_KEY = "performance_ratio"
NO_PLAN_ERROR = "Unsupported focus areas: no analysis plan available"
# pandas resolves these against the clock; they carry no date of their own.
RELATIVE_DATE_WORDS = ("now", "today")


@dataclass
class _PlanRun:
    dataset: Dataset
    field_stats: Mapping[str, FieldStats]
    analysis_fields: List[str]
    metrics: Dict[str, Any]

    def numeric_stats(self, field: str) -> Optional[NumericFieldStats]:
        stats = self.field_stats.get(field)
        return stats if isinstance(stats, NumericFieldStats) else None


def _coerce_focus_plan(raw: Any) -> Optional[FocusAreaPlan]:
    if isinstance(raw, FocusAreaPlan):
        return raw
    if not isinstance(raw, Mapping):
        return None
    metrics = raw.get("metrics")
    if isinstance(metrics, str) or not isinstance(metrics, (list, tuple)) or not metrics:
        return None
    if not all(isinstance(m, str) for m in metrics):
        return None
    date_field = raw.get("dateField", raw.get("date_field"))
    if date_field is not None and not isinstance(date_field, str):
        return None
    return FocusAreaPlan(metrics=tuple(metrics), date_field=date_field or None)


def normalize_plan(raw: Any) -> Tuple[AnalysisPlan, List[str]]:
    """Split a caller-supplied plan into usable entries and rejected focus areas."""
    if not isinstance(raw, Mapping):
        if raw is not None:
            logger.warning("Ignoring analysis plan of type %s", type(raw).__name__)
        return {}, []
    plan: AnalysisPlan = {}
    rejected: List[str] = []
    for area, entry in raw.items():
        focus_plan = _coerce_focus_plan(entry)
        if focus_plan is None:
            rejected.append(str(area))
        else:
            plan[str(area)] = focus_plan
    if rejected:
        logger.warning("Dropped malformed plan entries: %s", ", ".join(rejected))
    return plan, rejected


def resolve_analysis_fields(
    field_stats: Mapping[str, FieldStats], target_fields: Optional[Sequence[str]]
) -> List[str]:
    if target_fields:
        return list(dict.fromkeys(target_fields))
    return [name for name, stats in field_stats.items() if isinstance(stats, NumericFieldStats)]


def _date_sort_key(value: Scalar) -> int:
    if is_missing(value):
        return 0
    if isinstance(value, str) and value.strip().lower() in RELATIVE_DATE_WORDS:
        return 0
    try:
        ts = pd.to_datetime(value, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return 0
    if pd.isna(ts):
        return 0
    return int(ts.value)


def time_ordered_series(dataset: Dataset, field: str, date_field: str) -> List[Dict[str, Scalar]]:
    """Project ``{date, value}`` pairs sorted by date; the dataset itself is not reordered."""
    ordered = sorted(dataset, key=lambda row: _date_sort_key(row.get(date_field)))
    return [{"date": row.get(date_field), "value": row.get(field)} for row in ordered]


def _metric_sum(run: _PlanRun, field: str, metric: str, focus: FocusAreaPlan) -> None:
    run.metrics[field]["total"] = run.numeric_stats(field).sum


def _metric_avg(run: _PlanRun, field: str, metric: str, focus: FocusAreaPlan) -> None:
    run.metrics[field]["average"] = run.numeric_stats(field).avg


def _metric_time_series(run: _PlanRun, field: str, metric: str, focus: FocusAreaPlan) -> None:
    if not focus.date_field:
        run.metrics[field][metric] = {"error": "time_series requires a dateField"}
        return
    run.metrics[field]["trend"] = time_ordered_series(run.dataset, field, focus.date_field)


def _metric_ratio(run: _PlanRun, field: str, metric: str, focus: FocusAreaPlan) -> None:
    # Shared across fields and focus areas: always the first two analysis fields.
    if len(run.analysis_fields) < 2:
        return
    numerator = run.numeric_stats(run.analysis_fields[0])
    denominator = run.numeric_stats(run.analysis_fields[1])
    if numerator is None or denominator is None or not numerator.sum or not denominator.sum:
        run.metrics[RATIO_KEY] = 0.0
        return
    run.metrics[RATIO_KEY] = numerator.sum / denominator.sum


def _metric_unsupported(run: _PlanRun, field: str, metric: str, focus: FocusAreaPlan) -> None:
    run.metrics[field][metric] = {"error": f"Unsupported metric: {metric}"}


MetricHandler = Callable[[_PlanRun, str, str, FocusAreaPlan], None]

METRIC_HANDLERS: Dict[str, MetricHandler] = {
    "sum": _metric_sum,
    "avg": _metric_avg,
    "time_series": _metric_time_series,
    "ratio": _metric_ratio,
}


def execute_plan(
    dataset: Dataset,
    plan: Any,
    field_types: Mapping[str, FieldType],
    field_stats: Mapping[str, FieldStats],
    target_fields: Optional[Sequence[str]] = None,
    depth: Depth = "detailed",
) -> Dict[str, Any]:
    focus_plans, rejected = normalize_plan(plan)
    analysis_fields = resolve_analysis_fields(field_stats, target_fields)
    run = _PlanRun(dataset=dataset, field_stats=field_stats, analysis_fields=analysis_fields, metrics={})

    for area in rejected:
        run.metrics[area] = {"error": f"Unsupported focus area: {area}"}

    if not focus_plans:
        for field in analysis_fields:
            run.metrics[field] = {"error": NO_PLAN_ERROR}
        return run.metrics

    for area, focus in focus_plans.items():
        for field in analysis_fields:
            ftype = field_types.get(field)
            if ftype is None or ftype.kind != "numeric" or run.numeric_stats(field) is None:
                run.metrics[field] = {"error": f"Field {field} is missing or non-numeric"}
                continue
            run.metrics.setdefault(field, {})
            for metric in focus.metrics:
                if depth == "basic" and metric == "time_series":
                    continue
                METRIC_HANDLERS.get(metric, _metric_unsupported)(run, field, metric, focus)

    logger.debug("Executed %d focus areas over %d fields", len(focus_plans), len(analysis_fields))
    return run.metrics
