import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

from core.models import FocusAreaPlan

_TOKEN_RE = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|\d+")


def name_tokens(name: str) -> List[str]:
    """Split ``ticketId`` / ``ticket_id`` / ``TicketID`` into lower-case words."""
    return [tok.lower() for tok in _TOKEN_RE.findall(name)]


@dataclass(frozen=True)
class KeywordRule:
    """Matches a field name by substring keywords, name suffixes and/or whole-word tokens."""

    label: str
    keywords: Tuple[str, ...] = ()
    tokens: Tuple[str, ...] = ()
    suffixes: Tuple[str, ...] = ()

    def matches(self, name: str) -> bool:
        lowered = name.lower()
        if any(k in lowered for k in self.keywords):
            return True
        if any(lowered.endswith(s) for s in self.suffixes):
            return True
        return bool(self.tokens) and any(t in self.tokens for t in name_tokens(name))


@dataclass(frozen=True)
class SemanticRule:
    rule: KeywordRule
    business_role: str
    visualization_suitability: Tuple[str, ...]

    @property
    def purpose(self) -> str:
        return self.rule.label


# "id" is matched as a word or a name suffix ("customerid", "uuid") so that
# names such as "incidentCount" are not read as identifiers.
IDENTIFIER_RULE = KeywordRule("identifier", keywords=("number",), tokens=("id",), suffixes=("id",))
TEMPORAL_NAME_RULE = KeywordRule("temporal", keywords=("date", "time"))

# Evaluated top to bottom, first match wins.
SEMANTIC_RULES: Tuple[SemanticRule, ...] = (
    SemanticRule(IDENTIFIER_RULE, "tracking/reference", ("axis", "grouping")),
    SemanticRule(
        KeywordRule("error_metric", keywords=("error", "failed", "issue", "defect")),
        "quality_indicator",
        ("y-axis", "rate", "pie", "gauge"),
    ),
    SemanticRule(
        KeywordRule("incident_metric", keywords=("incident", "ticket", "case", "resolved")),
        "incident_tracking",
        ("y-axis", "count", "bar", "kpi_card"),
    ),
    SemanticRule(
        KeywordRule("percentage_metric", keywords=("rate", "percent", "ratio")),
        "ratio_indicator",
        ("pie", "gauge", "donut"),
    ),
    SemanticRule(
        KeywordRule("performance_metric", keywords=("resolved", "time", "count", "efficiency")),
        "efficiency_indicator",
        ("bar", "kpi_card", "line"),
    ),
    SemanticRule(
        KeywordRule("priority_metric", keywords=("priority", "severity", "urgency")),
        "prioritization",
        ("grouping", "bar", "heatmap"),
    ),
    SemanticRule(
        KeywordRule("temporal", keywords=("date", "time", "timestamp")),
        "time_tracking",
        ("x-axis", "timeline", "line", "area"),
    ),
)

# Value-shape fallbacks, used when no name rule matches.
SHAPE_MEANINGS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "sequential/temporal": ("progression_tracking", ("x-axis", "timeline", "line")),
    "categorical_grouping": ("classification", ("grouping", "filtering", "pie")),
    "measurement/metric": ("quantitative_indicator", ("y-axis", "size", "bar")),
}

DOMAIN_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule("incident_management", keywords=("ticket", "incident", "resolved")),
    KeywordRule("sales_analytics", keywords=("sales", "revenue")),
    KeywordRule("customer_analytics", keywords=("user", "customer")),
)
UNKNOWN_DOMAIN = "unknown"

# Plans used when no external planner is configured.
DEFAULT_FOCUS_PLANS: Dict[str, FocusAreaPlan] = {
    "total": FocusAreaPlan(metrics=("sum",)),
    "trend": FocusAreaPlan(metrics=("time_series",), date_field="date"),
    "performance": FocusAreaPlan(metrics=("avg", "sum", "ratio")),
}
