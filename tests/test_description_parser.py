"""Structuring free-text plan descriptions."""

from datetime import date

import pytest

from studyplan.errors import GenerationUnavailable, ValidationError
from studyplan.services.description_parser import UNPARSEABLE_REPLY, extract_plan, parse_plan_description

PLAN_JSON = (
    '{"reply": "You can do this.", "exam_date": "2026-03-23", "plan_title": "Physics final",'
    ' "subjects": [{"name": "Physics", "sessions": 5, "duration_minutes": 75, "is_weak": true,'
    ' "title_prefix": "Dynamics"}], "include_review": true}'
)


class TestExtractPlan:
    def test_plain_json(self):
        parsed = extract_plan(PLAN_JSON)

        assert parsed.exam_date == date(2026, 3, 23)
        assert parsed.plan_title == "Physics final"
        assert parsed.include_review is True
        subject = parsed.subjects[0]
        assert (subject.name, subject.sessions, subject.duration_minutes) == ("Physics", 5, 75)
        assert subject.is_weak
        assert subject.label == "Dynamics"

    def test_code_fence_and_surrounding_text(self):
        parsed = extract_plan(f"Here is your plan:\n```json\n{PLAN_JSON}\n```\nGood luck!")
        assert parsed.reply == "You can do this."

    def test_missing_fields_take_defaults(self):
        parsed = extract_plan('{"subjects": [{"name": "Chemistry", "sessions": 2}]}')
        assert parsed.plan_title == "Study Plan"
        assert parsed.exam_date is None
        assert parsed.subjects[0].duration_minutes == 60

    @pytest.mark.parametrize(
        "raw",
        [
            "Sorry, I can't help with that.",
            '{"subjects": []}',
            '{"subjects": [{"name": "Physics"}]}',
            '{"subjects": [{"name": "Physics", "sessions": "many"}]}',
            "{not json}",
        ],
    )
    def test_unusable_answers(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            extract_plan(raw)
        assert exc_info.value.message == UNPARSEABLE_REPLY


class TestParsePlanDescription:
    async def test_prompt_carries_context(self, make_generator):
        generator = make_generator(PLAN_JSON)
        today = date(2026, 3, 2)

        parsed = await parse_plan_description(
            generator,
            "Physics final in 3 weeks, 5 sessions of dynamics, I'm weak at it",
            today=today,
            existing_subjects=["Physics", "Math"],
            current_goal="Physics final (2026-03-23)",
        )

        assert parsed.subjects[0].name == "Physics"
        system, user_turn = generator.calls[0]
        assert system["role"] == "system"
        assert "TODAY: 2026-03-02" in system["content"]
        assert '"in 3 weeks" = 2026-03-23' in system["content"]
        assert "EXISTING SUBJECTS: Physics, Math" in system["content"]
        assert user_turn == {
            "role": "user",
            "content": "Physics final in 3 weeks, 5 sessions of dynamics, I'm weak at it",
        }

    async def test_generator_failure_propagates(self, offline_generator):
        with pytest.raises(GenerationUnavailable):
            await parse_plan_description(offline_generator, "Math in 2 weeks", today=date(2026, 3, 2))
