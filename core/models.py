from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple, Union

Scalar = Union[int, float, str, None]
Record = Mapping[str, Scalar]
Dataset = Sequence[Record]

FieldKind = Literal["numeric", "categorical", "temporal", "text"]
Depth = Literal["basic", "detailed"]

NO_MODE = "none"


@dataclass(frozen=True)
class AnalysisError:
    error: str

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.error}


@dataclass(frozen=True)
class FieldType:
    kind: FieldKind
    is_identifier: bool
    is_boolean: bool
    is_temporal: bool
    unique_count: int
    total_count: int
    sparsity: float


@dataclass(frozen=True)
class NumericFieldStats:
    min: float
    max: float
    avg: float
    sum: float
    variance: float


@dataclass(frozen=True)
class CategoricalFieldStats:
    distribution: Dict[Any, int]
    most_common: Any = NO_MODE


FieldStats = Union[NumericFieldStats, CategoricalFieldStats]


@dataclass(frozen=True)
class TimeSeriesPoint:
    date: Scalar
    values: Dict[str, Scalar]


@dataclass(frozen=True)
class Relationship:
    field1: str
    field2: str
    strength: float
    direction: Literal["positive", "negative"]
    type: str = "correlation"


@dataclass(frozen=True)
class Pattern:
    field: str
    direction: Literal["increasing", "decreasing"]
    strength: float
    type: str = "trend"


@dataclass(frozen=True)
class Anomaly:
    field: str
    record_index: int
    value: float
    severity: float
    type: str = "outlier_high"


@dataclass(frozen=True)
class DataQuality:
    completeness: Dict[str, float]
    overall: str = "good"


@dataclass(frozen=True)
class BusinessContext:
    domain: str
    primary_metrics: Tuple[str, ...] = ()
    identifiers: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SemanticMeaning:
    field_name: str
    inferred_purpose: str
    business_role: str
    visualization_suitability: Tuple[str, ...]


@dataclass(frozen=True)
class FocusAreaPlan:
    metrics: Tuple[str, ...]
    date_field: Optional[str] = None


AnalysisPlan = Dict[str, FocusAreaPlan]


@dataclass(frozen=True)
class Findings:
    """Result of one analysis pass. Built fresh per call and never mutated."""

    field_types: Mapping[str, FieldType]
    field_stats: Mapping[str, FieldStats]
    metrics: Mapping[str, Any]
    time_series: Dict[str, Tuple[TimeSeriesPoint, ...]]
    relationships: Tuple[Relationship, ...]
    patterns: Tuple[Pattern, ...]
    anomalies: Tuple[Anomaly, ...]
    data_quality: DataQuality
    business_context: BusinessContext

    def to_dict(self) -> Dict[str, Any]:
        # asdict cannot copy read-only mapping views.
        plain = replace(
            self,
            field_types=dict(self.field_types),
            field_stats=dict(self.field_stats),
            metrics=dict(self.metrics),
        )
        return asdict(plain)


@dataclass(frozen=True)
class KeyFinding:
    type: str
    description: str
    value: Optional[float] = None
    data: Optional[List[Dict[str, Scalar]]] = None


@dataclass
class Insight:
    key_findings: List[KeyFinding] = field(default_factory=list)
    business_implications: List[str] = field(default_factory=list)
    recommended_actions: List[str] = field(default_factory=list)
