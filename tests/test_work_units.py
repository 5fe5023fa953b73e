"""Work unit generation from curriculum gaps and session counts."""

from uuid import uuid4

import pytest
from pydantic import TypeAdapter

from studyplan.services.curriculum import CurriculumIndex, ObjectiveSnapshot
from studyplan.services.work_units import (
    CurriculumSource,
    DescriptionSource,
    SubjectSessions,
    UnitAction,
    WorkSource,
    build_work_units,
    interleave,
    next_action,
)

PHYSICS = uuid4()
MATH = uuid4()


def objective(title, subject_id=PHYSICS, subject_name="Physics", **flags):
    return ObjectiveSnapshot(
        id=uuid4(),
        subject_id=subject_id,
        subject_name=subject_name,
        title=title,
        **flags,
    )


class TestNextAction:
    def test_steps_in_order(self):
        assert next_action(objective("A")) == UnitAction.STUDY
        assert next_action(objective("A", studied=True)) == UnitAction.REVIEW
        assert next_action(objective("A", studied=True, reviewed=True)) == UnitAction.SOLVE
        assert next_action(objective("A", studied=True, reviewed=True, solved=True)) is None

    def test_review_requires_study_first(self):
        # Reviewed without studied still asks for study
        assert next_action(objective("A", reviewed=True, solved=True)) == UnitAction.STUDY


class TestCurriculumUnits:
    def test_one_objective_per_stage(self):
        index = CurriculumIndex(
            objectives=[
                objective("Kinematics"),
                objective("Dynamics", studied=True),
                objective("Energy", studied=True, reviewed=True),
            ]
        )
        units = build_work_units(CurriculumSource(index=index))

        assert [(u.action, u.duration_minutes, u.priority) for u in units] == [
            (UnitAction.STUDY, 60, 3),
            (UnitAction.REVIEW, 45, 2),
            (UnitAction.SOLVE, 45, 1),
        ]
        assert [u.title for u in units] == [
            "Study: Kinematics",
            "Review: Dynamics",
            "Solve: Energy",
        ]

    def test_finished_objectives_emit_nothing(self):
        index = CurriculumIndex(
            objectives=[objective("Done", studied=True, reviewed=True, solved=True)]
        )
        assert build_work_units(CurriculumSource(index=index)) == []

    def test_all_study_before_any_review(self):
        index = CurriculumIndex(
            objectives=[
                objective("Dynamics", studied=True),
                objective("Algebra", subject_id=MATH, subject_name="math"),
                objective("Kinematics"),
                objective("Geometry", subject_id=MATH, subject_name="math", studied=True),
            ]
        )
        units = build_work_units(CurriculumSource(index=index))

        # Phase first, then subject name ignoring case, curriculum order kept within
        assert [u.title for u in units] == [
            "Study: Algebra",
            "Study: Kinematics",
            "Review: Geometry",
            "Review: Dynamics",
        ]

    def test_subject_scope(self):
        index = CurriculumIndex(
            objectives=[
                objective("Kinematics"),
                objective("Algebra", subject_id=MATH, subject_name="Math"),
            ]
        )
        units = build_work_units(CurriculumSource(index=index, subject_scope={MATH}))
        assert [u.subject_id for u in units] == [MATH]

    def test_empty_scope_means_every_subject(self):
        index = CurriculumIndex(
            objectives=[
                objective("Kinematics"),
                objective("Algebra", subject_id=MATH, subject_name="Math"),
            ]
        )
        assert len(build_work_units(CurriculumSource(index=index, subject_scope=set()))) == 2

    def test_empty_curriculum(self):
        assert build_work_units(CurriculumSource(index=CurriculumIndex())) == []


class TestDescriptionUnits:
    def test_math_physics_interleave(self):
        source = DescriptionSource(
            subjects=[
                SubjectSessions(name="Math", sessions=4),
                SubjectSessions(name="Physics", sessions=3, is_weak=True),
            ],
            include_review=True,
        )
        units = build_work_units(source)

        assert [u.title for u in units] == [
            "Math — Session 1",
            "Physics — Session 1",
            "Math — Session 2",
            "Physics — Session 2",
            "Math — Session 3",
            "Physics — Session 3",
            "Math — Session 4",
            "Physics — Review 1",
        ]
        review = units[-1]
        assert review.action == UnitAction.REVIEW
        assert review.duration_minutes == 36
        assert review.priority == 1
        assert units[0].priority == 2

    def test_no_review_without_request(self):
        source = DescriptionSource(
            subjects=[SubjectSessions(name="Physics", sessions=3, is_weak=True)],
        )
        assert all(u.action == UnitAction.SESSION for u in build_work_units(source))

    def test_no_review_for_strong_subject(self):
        source = DescriptionSource(
            subjects=[SubjectSessions(name="Math", sessions=6)],
            include_review=True,
        )
        assert len(build_work_units(source)) == 6

    def test_at_least_one_review(self):
        source = DescriptionSource(
            subjects=[SubjectSessions(name="Chem", sessions=2, duration_minutes=45, is_weak=True)],
            include_review=True,
        )
        units = build_work_units(source)
        assert [u.title for u in units][-1] == "Chem — Review 1"
        assert units[-1].duration_minutes == 27

    def test_title_prefix(self):
        source = DescriptionSource(
            subjects=[SubjectSessions(name="Physics", sessions=1, title_prefix="Kinematics")],
        )
        unit = build_work_units(source)[0]
        assert unit.title == "Kinematics — Session 1"
        assert unit.subject_name == "Physics"

    def test_equal_counts_alternate_strictly(self):
        source = DescriptionSource(
            subjects=[
                SubjectSessions(name="A", sessions=5),
                SubjectSessions(name="B", sessions=5),
            ],
        )
        names = [u.subject_name for u in build_work_units(source)]
        assert names == ["A", "B"] * 5


class TestInterleave:
    def test_preserves_queue_order(self):
        merged = interleave([[1, 2, 3], ["a"], [10, 20]])
        assert merged == [1, "a", 10, 2, 20, 3]

    def test_empty(self):
        assert interleave([]) == []
        assert interleave([[], []]) == []


def test_source_is_selected_by_mode():
    source = TypeAdapter(WorkSource).validate_python(
        {"mode": "description", "subjects": [{"name": "Math", "sessions": 2}]}
    )
    assert isinstance(source, DescriptionSource)
    assert len(build_work_units(source)) == 2


def test_negative_sessions_rejected():
    with pytest.raises(ValueError):
        SubjectSessions(name="Math", sessions=-1)
