import logging
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Union

from core.models import AnalysisError, Dataset, Depth, Findings
from tools.business_context import classify_business_context
from tools.data_analysis import (
    assess_data_quality,
    compute_field_stats,
    dataset_fields,
    find_anomalies,
    find_patterns,
    find_relationships,
    infer_field_types,
    time_series_views,
)
from tools.metric_plan import execute_plan

logger = logging.getLogger(__name__)

DEPTHS = ("basic", "detailed")


def is_valid_dataset(dataset: Any) -> bool:
    if isinstance(dataset, (str, bytes)) or not isinstance(dataset, Sequence) or not dataset:
        return False
    return all(isinstance(row, Mapping) for row in dataset)


def analyze(
    dataset: Dataset,
    plan: Any,
    target_fields: Optional[Sequence[str]] = None,
    depth: Depth = "detailed",
) -> Union[Findings, AnalysisError]:
    """Run the full analysis pass over ``dataset`` following ``plan``."""
    if not is_valid_dataset(dataset):
        return AnalysisError("Invalid or empty data source")
    if depth not in DEPTHS:
        logger.warning("Unknown analysis depth %r, using 'detailed'", depth)
        depth = "detailed"
    if isinstance(target_fields, str):
        target_fields = [target_fields]

    fields = dataset_fields(dataset)
    field_types = infer_field_types(dataset)
    field_stats = compute_field_stats(dataset, field_types, target_fields)

    findings = Findings(
        field_types=MappingProxyType(field_types),
        field_stats=MappingProxyType(field_stats),
        metrics=MappingProxyType(execute_plan(dataset, plan, field_types, field_stats, target_fields, depth)),
        time_series=time_series_views(dataset, field_types, field_stats),
        relationships=find_relationships(dataset, field_types),
        patterns=find_patterns(dataset, field_types),
        anomalies=find_anomalies(dataset, field_stats),
        data_quality=assess_data_quality(dataset, fields),
        business_context=classify_business_context(fields, field_types),
    )
    logger.info(
        "Analyzed %d records: %d relationships, %d patterns, %d anomalies",
        len(dataset),
        len(findings.relationships),
        len(findings.patterns),
        len(findings.anomalies),
    )
    return findings
