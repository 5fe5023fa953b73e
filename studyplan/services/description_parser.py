"""Parse a free-text plan description into per-subject session counts."""

import logging
import re
from datetime import date, timedelta

import pydantic
from pydantic import BaseModel, Field

from studyplan.config import get_settings
from studyplan.errors import ValidationError
from studyplan.services.text_generation import TextGenerator
from studyplan.services.work_units import SubjectSessions

logger = logging.getLogger(__name__)
settings = get_settings()

_FENCE_RE = re.compile(r"```(?:json)?")
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)

UNPARSEABLE_REPLY = (
    "I couldn't understand that plan. Try adding more detail, for example: "
    '"Physics exam in 3 weeks, kinematics 5 sessions, dynamics 8 sessions".'
)
UNAVAILABLE_REPLY = "The planning assistant is unavailable right now. Please try again."


class ParsedPlanDescription(BaseModel):
    """Structured plan request, from the text generator or supplied directly."""

    reply: str = ""
    exam_date: date | None = None
    plan_title: str = Field("Study Plan", min_length=1, max_length=255)
    subjects: list[SubjectSessions] = Field(default_factory=list)
    include_review: bool = False


def _system_prompt(today: date, existing_subjects: list[str], current_goal: str | None) -> str:
    in_14 = today + timedelta(days=14)
    in_21 = today + timedelta(days=21)
    in_30 = today + timedelta(days=settings.description_default_horizon_days)
    return f"""You are an expert study planner. Analyze the description and output a complete structured plan.

TODAY: {today.isoformat()}
EXISTING SUBJECTS: {", ".join(existing_subjects) or "none"}
CURRENT GOAL: {current_goal or "none"}

RELATIVE DATE CONVERSIONS (use these exact dates):
- "in 2 weeks" = {in_14.isoformat()}
- "in 3 weeks" = {in_21.isoformat()}
- "in a month" = {in_30.isoformat()}

Respond ONLY with valid compact JSON (no markdown fences):
{{
  "reply": "<2-sentence motivational reply in the student's language>",
  "exam_date": "yyyy-MM-dd",
  "plan_title": "<short concise plan name>",
  "subjects": [
    {{
      "name": "<subject name>",
      "sessions": <number>,
      "duration_minutes": <45-120>,
      "is_weak": <true if the student mentioned weakness>,
      "title_prefix": "<very short label, e.g. 'Kinematics'>"
    }}
  ],
  "include_review": <true if the exam is less than 3 weeks away OR any is_weak = true>
}}

RULES:
- Parse ALL subjects and session counts mentioned
- For weak subjects: duration_minutes += 15, is_weak = true
- If no exam date is given, use {in_30.isoformat()}
- Respond in the SAME language as the student"""


def extract_plan(raw: str) -> ParsedPlanDescription:
    """
    Pull the JSON object out of a model response and validate it.

    Code fences and any text around the object are ignored. Raises
    ValidationError when there is no usable object or no subjects.
    """
    match = _OBJECT_RE.search(_FENCE_RE.sub("", raw).strip())
    if match is None:
        raise ValidationError(UNPARSEABLE_REPLY)
    try:
        parsed = ParsedPlanDescription.model_validate_json(match.group(0))
    except pydantic.ValidationError as e:
        logger.warning("Plan description response failed validation: %s", e.errors())
        raise ValidationError(UNPARSEABLE_REPLY) from e
    if not parsed.subjects:
        raise ValidationError(UNPARSEABLE_REPLY)
    return parsed


async def parse_plan_description(
    generator: TextGenerator,
    description: str,
    *,
    today: date,
    existing_subjects: list[str] | None = None,
    current_goal: str | None = None,
) -> ParsedPlanDescription:
    """
    Ask the text generator to structure ``description``.

    Raises GenerationUnavailable when the call fails, ValidationError when the
    answer cannot be used.
    """
    raw = await generator.generate(
        [
            {"role": "system", "content": _system_prompt(today, existing_subjects or [], current_goal)},
            {"role": "user", "content": description},
        ],
        max_tokens=settings.description_parse_max_tokens,
        temperature=0.3,
        timeout=settings.description_parse_timeout_seconds,
    )
    return extract_plan(raw)
