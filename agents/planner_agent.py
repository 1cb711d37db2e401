import asyncio
import json
import logging
from typing import Any, Dict, Mapping, Optional, Sequence

from google import genai

from agents.base import AgentResult
from core.config import AnalysisSettings
from core.knowledge import DEFAULT_FOCUS_PLANS
from core.models import AnalysisError, Dataset, FieldType, Findings
from tools.data_analysis import infer_field_types
from tools.findings import analyze, is_valid_dataset
from tools.metric_plan import METRIC_HANDLERS

logger = logging.getLogger(__name__)


def field_metadata(field_types: Mapping[str, FieldType]) -> Dict[str, Dict[str, Any]]:
    return {
        name: {
            "type": ftype.kind,
            "isIdentifier": ftype.is_identifier,
            "isTemporal": ftype.is_temporal,
            "uniqueCount": ftype.unique_count,
            "sparsity": round(ftype.sparsity, 3),
        }
        for name, ftype in field_types.items()
    }


def build_default_plan(focus_areas: Sequence[str]) -> Dict[str, Any]:
    """Built-in plan; unknown focus areas map to None and are reported as unsupported."""
    return {area: DEFAULT_FOCUS_PLANS.get(str(area).lower()) for area in focus_areas}


def parse_plan_response(text: Optional[str]) -> Dict[str, Any]:
    if not text:
        logger.warning("Planner returned an empty response")
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("Planner returned invalid JSON: %s", exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Planner returned %s instead of an object", type(data).__name__)
        return {}
    return data


async def get_analysis_plan(
    client: genai.Client,
    focus_areas: Sequence[str],
    user_prompt: str,
    metadata: Mapping[str, Any],
    settings: Optional[AnalysisSettings] = None,
) -> Dict[str, Any]:
    """Ask Gemini for a focus-area plan. Any failure yields an empty plan."""
    settings = settings or AnalysisSettings.from_env()
    prompt = f"""
You are the PlannerAgent for a tabular data analysis engine.
Map each focus area to the metrics that answer the user's request.

User Request: {user_prompt}
Focus Areas: {json.dumps(list(focus_areas))}
Available Metrics: {json.dumps(sorted(METRIC_HANDLERS))}
Field Metadata:
{json.dumps(dict(metadata), indent=2)}

Output:
A JSON object keyed by focus area. Each value is
{{"metrics": [<metric names>], "dateField": <temporal field name or null>}}.
Only use temporal fields from the metadata as dateField.
"""
    try:
        response = await asyncio.wait_for(
            client.aio.models.generate_content(
                model=settings.model,
                contents=prompt,
                config=genai.types.GenerateContentConfig(
                    response_mime_type="application/json",
                ),
            ),
            timeout=settings.planner_timeout,
        )
    except asyncio.TimeoutError:
        logger.warning("Planner timed out after %.1fs", settings.planner_timeout)
        return {}
    except Exception as exc:
        logger.warning("Planner call failed: %s", exc)
        return {}
    return parse_plan_response(response.text)


async def plan_and_analyze(
    dataset: Dataset,
    focus_areas: Sequence[str],
    user_prompt: str = "",
    target_fields: Optional[Sequence[str]] = None,
    depth: str = "detailed",
    client: Optional[genai.Client] = None,
    settings: Optional[AnalysisSettings] = None,
) -> AgentResult:
    if not is_valid_dataset(dataset):
        error = AnalysisError("Invalid or empty data source")
        return AgentResult(name="PlannerAgent", status="error", message=error.error, payload=error)

    if client is None:
        plan = build_default_plan(focus_areas)
    else:
        metadata = field_metadata(infer_field_types(dataset))
        plan = await get_analysis_plan(client, focus_areas, user_prompt, metadata, settings)

    findings = analyze(dataset, plan, target_fields, depth)
    if isinstance(findings, AnalysisError):
        return AgentResult(name="PlannerAgent", status="error", message=findings.error, payload=findings)
    return AgentResult(
        name="PlannerAgent",
        status="success",
        message=_summary_message(findings, len(dataset)),
        payload=findings,
    )


def _summary_message(findings: Findings, n_records: int) -> str:
    return f"Analysis complete for {len(findings.field_types)} fields across {n_records} records."
