from __future__ import annotations

from datetime import date, time

import pytest

from academy_dashboard.core.enums import TransferScope
from academy_dashboard.core.exceptions import NotFoundError, ValidationError
from academy_dashboard.transfers.factory import MoveScopeFactory
from academy_dashboard.transfers.model import MoveCommand
from academy_dashboard.transfers.scopes.same_group import SameGroupScope
from academy_dashboard.transfers.scopes.this_day import ThisDayScope


def test_factory_picks_strategy_by_scope():
    factory = MoveScopeFactory()

    assert isinstance(factory.for_scope(TransferScope.THIS_DAY), ThisDayScope)
    assert isinstance(factory.for_scope(TransferScope.SAME_GROUP), SameGroupScope)


def test_this_day_creates_target_without_source_assignment(academy):
    class_id = academy.school_class("Art")
    a = academy.block(class_id, 1, time(10, 0), time(11, 0))
    b = academy.block(class_id, 2, time(10, 0), time(11, 0))
    student = academy.student("Eun")

    plan = ThisDayScope().plan(
        MoveCommand(1, student, date(2026, 3, 9), a, b, TransferScope.THIS_DAY),
        assignments=academy.assignments,
        schedules=academy.schedules,
    )

    assert plan.end_ids == []
    assert [(c.schedule_id, c.group_key) for c in plan.creates] == [(b, None)]


def test_same_group_leaves_unmatched_weekdays(academy):
    src = academy.school_class("Art A")
    dst = academy.school_class("Art B")
    mon = academy.block(src, 1, time(10, 0), time(11, 0))
    fri = academy.block(src, 5, time(10, 0), time(11, 0))
    dst_mon = academy.block(dst, 1, time(10, 0), time(11, 0))
    academy.block(dst, 5, time(12, 0), time(13, 0))
    student = academy.student("Eun")
    on_mon = academy.assignments.add(student_id=student, schedule_id=mon, start_date=date(2026, 1, 5), group_key="g")
    academy.assignments.add(student_id=student, schedule_id=fri, start_date=date(2026, 1, 5), group_key="g")
    academy.assignments.add(student_id=student, schedule_id=fri, start_date=date(2026, 1, 5), group_key="other")

    plan = SameGroupScope().plan(
        MoveCommand(1, student, date(2026, 3, 9), mon, dst_mon, TransferScope.SAME_GROUP, "g"),
        assignments=academy.assignments,
        schedules=academy.schedules,
    )

    # Friday target starts at another hour, so the Friday block stays
    assert plan.end_ids == [on_mon]
    assert [c.schedule_id for c in plan.creates] == [dst_mon]


def test_same_group_plan_requires_key(academy):
    with pytest.raises(ValidationError):
        SameGroupScope().plan(
            MoveCommand(1, 1, date(2026, 3, 9), 1, 2, TransferScope.SAME_GROUP),
            assignments=academy.assignments,
            schedules=academy.schedules,
        )


def test_this_day_rejects_missing_target(academy):
    class_id = academy.school_class("Art")
    a = academy.block(class_id, 1, time(10, 0), time(11, 0))

    with pytest.raises(NotFoundError):
        ThisDayScope().plan(
            MoveCommand(1, academy.student("Eun"), date(2026, 3, 9), a, 999, TransferScope.THIS_DAY),
            assignments=academy.assignments,
            schedules=academy.schedules,
        )


def test_same_group_skips_target_student_already_attends(academy):
    src = academy.school_class("Art A")
    dst = academy.school_class("Art B")
    mon = academy.block(src, 1, time(10, 0), time(11, 0))
    wed = academy.block(src, 3, time(10, 0), time(11, 0))
    dst_mon = academy.block(dst, 1, time(10, 0), time(11, 0))
    dst_wed = academy.block(dst, 3, time(10, 0), time(11, 0))
    student = academy.student("Eun")
    on_mon = academy.assignments.add(student_id=student, schedule_id=mon, start_date=date(2026, 1, 5), group_key="g")
    on_wed = academy.assignments.add(student_id=student, schedule_id=wed, start_date=date(2026, 1, 5), group_key="g")
    academy.assignments.add(student_id=student, schedule_id=dst_mon, start_date=date(2026, 2, 2), group_key="x")

    plan = SameGroupScope().plan(
        MoveCommand(1, student, date(2026, 3, 9), mon, dst_mon, TransferScope.SAME_GROUP, "g"),
        assignments=academy.assignments,
        schedules=academy.schedules,
    )

    assert sorted(plan.end_ids) == sorted([on_mon, on_wed])
    assert [c.schedule_id for c in plan.creates] == [dst_wed]
