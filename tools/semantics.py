"""Business-meaning inference for field names.

Name rules come first (see ``core.knowledge.SEMANTIC_RULES``); when none
match, the shape of the field's values decides between a sequential,
categorical or plain measurement reading.
"""

import logging
from typing import Dict, List, Sequence, Union

import pandas as pd

from core.knowledge import SEMANTIC_RULES, SHAPE_MEANINGS
from core.models import AnalysisError, Dataset, Scalar, SemanticMeaning
from tools.data_analysis import CATEGORICAL_RATIO, observed_values

logger = logging.getLogger(__name__)

SEQUENCE_TOLERANCE = 0.1


def is_sequential(values: Sequence[Scalar]) -> bool:
    """True when consecutive differences all sit within 10% of their mean."""
    if len(values) < 2:
        return False
    numbers = pd.to_numeric(pd.Series(list(values), dtype=object), errors="coerce").dropna().astype(float)
    if len(numbers) < 2:
        return False
    diffs = numbers.diff().dropna().to_numpy(dtype=float)
    mean_diff = float(diffs.mean())
    if mean_diff == 0:
        return False
    return bool((abs(diffs - mean_diff) < abs(mean_diff) * SEQUENCE_TOLERANCE).all())


def _shape_purpose(values: List[Scalar]) -> str:
    if is_sequential(values):
        return "sequential/temporal"
    if values and len(set(values)) < len(values) * CATEGORICAL_RATIO:
        return "categorical_grouping"
    return "measurement/metric"


def infer_field_meaning(field_name: str, dataset: Dataset) -> SemanticMeaning:
    for rule in SEMANTIC_RULES:
        if rule.rule.matches(field_name):
            return SemanticMeaning(
                field_name=field_name,
                inferred_purpose=rule.purpose,
                business_role=rule.business_role,
                visualization_suitability=rule.visualization_suitability,
            )

    purpose = _shape_purpose(observed_values(dataset, field_name))
    role, suitability = SHAPE_MEANINGS[purpose]
    return SemanticMeaning(
        field_name=field_name,
        inferred_purpose=purpose,
        business_role=role,
        visualization_suitability=suitability,
    )


def infer_field_meanings(
    field_names: Sequence[str], dataset: Dataset
) -> Union[Dict[str, SemanticMeaning], AnalysisError]:
    if isinstance(field_names, str) or not field_names:
        return AnalysisError("Invalid or empty fields array")
    meanings = {name: infer_field_meaning(name, dataset or []) for name in field_names}
    logger.debug("Inferred meanings for %d fields", len(meanings))
    return meanings
