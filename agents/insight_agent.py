import json
from typing import Any, Dict, Mapping, Optional, Union

from google import genai

from core.config import AnalysisSettings
from core.models import AnalysisError, Findings, Insight, KeyFinding
from tools.data_analysis import is_number, trend


def _trend_word(strength: float) -> str:
    if strength > 0:
        return "increasing"
    if strength < 0:
        return "decreasing"
    return "stable"


def extract_insights(user_intent: str, metrics: Optional[Mapping[str, Any]]) -> Union[Insight, AnalysisError]:
    """Turn computed metrics into key findings for the recommendation step."""
    if not user_intent or not isinstance(metrics, Mapping):
        return AnalysisError("Invalid user intent or data findings")

    insight = Insight()
    for field, entry in metrics.items():
        if isinstance(entry, Mapping) and entry.get("total"):
            insight.key_findings.append(
                KeyFinding(
                    type="aggregation",
                    description=f"Total count of {field}: {entry['total']}",
                    value=entry["total"],
                )
            )

    for field, entry in metrics.items():
        if not isinstance(entry, Mapping) or not isinstance(entry.get("trend"), list):
            continue
        series = entry["trend"]
        values = [point["value"] for point in series if is_number(point.get("value"))]
        strength = trend(values) if len(values) > 1 else 0.0
        insight.key_findings.append(
            KeyFinding(
                type="trend",
                description=f"Trend for {field} is {_trend_word(strength)}",
                data=list(series),
            )
        )

    subject = next(iter(metrics), "resolved tickets")
    insight.business_implications.append(f"The trend in {subject} indicates operational efficiency changes.")
    insight.recommended_actions.append(f"Monitor {subject} closely to identify bottlenecks.")
    return insight


def natural_message(insight: Insight) -> str:
    message = "Analysis complete."
    if insight.key_findings:
        message += " " + "; ".join(f.description for f in insight.key_findings) + "."
    return message + " Recommended visualizations tailored to your query."


def _flatten(obj: Any) -> Any:
    if hasattr(obj, "__dict__"):
        return {key: _flatten(value) for key, value in obj.__dict__.items()}
    if isinstance(obj, (list, tuple)):
        return [_flatten(item) for item in obj]
    if isinstance(obj, Mapping):
        return {str(key): _flatten(value) for key, value in obj.items()}
    return obj


def _prune_findings(findings: Findings, max_fields: int = 15, max_points: int = 30) -> Dict[str, Any]:
    fields = list(findings.field_types)[:max_fields]
    metrics = {}
    for key, entry in findings.metrics.items():
        if isinstance(entry, dict) and isinstance(entry.get("trend"), list):
            entry = {**entry, "trend": entry["trend"][:max_points]}
        metrics[key] = entry

    return {
        "field_types": {k: _flatten(findings.field_types[k]) for k in fields},
        "field_stats": {k: _flatten(findings.field_stats[k]) for k in fields if k in findings.field_stats},
        "metrics": _flatten(metrics),
        "relationships": _flatten(findings.relationships),
        "patterns": _flatten(findings.patterns),
        "anomalies": _flatten(findings.anomalies[:max_points]),
        "data_quality": _flatten(findings.data_quality),
        "business_context": _flatten(findings.business_context),
    }


def generate_insights(
    client: genai.Client,
    findings: Findings,
    user_intent: str,
    settings: Optional[AnalysisSettings] = None,
) -> str:
    settings = settings or AnalysisSettings.from_env()
    context = _prune_findings(findings)
    prompt = f"""
You are the InsightAgent, an expert in operational data analytics.
You are provided with the structured findings of an automated analysis.
Do not request raw data. Use the provided statistics, trends, and correlations.

User Intent: {user_intent}

Findings:
{json.dumps(context, indent=2, default=str)}

Task:
1. Explain the computed metrics that answer the user's intent.
2. Interpret the trend patterns and correlations in business terms.
3. Call out anomalies and data quality gaps worth investigating.

Output:
A short list of key findings, business implications and recommended actions.
"""
    response = client.models.generate_content(
        model=settings.model,
        contents=prompt,
    )
    return response.text or "No insights generated."
