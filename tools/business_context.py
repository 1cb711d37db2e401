from typing import Mapping, Sequence

from core.knowledge import DOMAIN_RULES, UNKNOWN_DOMAIN
from core.models import BusinessContext, FieldType


def classify_domain(field_names: Sequence[str]) -> str:
    joined = " ".join(field_names)
    for rule in DOMAIN_RULES:
        if rule.matches(joined):
            return rule.label
    return UNKNOWN_DOMAIN


def classify_business_context(
    field_names: Sequence[str], field_types: Mapping[str, FieldType]
) -> BusinessContext:
    identifiers, metrics, categories = [], [], []
    for name in field_names:
        ftype = field_types.get(name)
        if ftype is None:
            continue
        if ftype.is_identifier:
            identifiers.append(name)
        elif ftype.kind == "numeric":
            metrics.append(name)
        elif ftype.kind == "categorical":
            categories.append(name)

    return BusinessContext(
        domain=classify_domain(field_names),
        primary_metrics=tuple(metrics),
        identifiers=tuple(identifiers),
        categories=tuple(categories),
    )
