from __future__ import annotations

from datetime import date, time

import pytest

from academy_dashboard.core.constants import FEATURE_MAKEUP_SYSTEM
from academy_dashboard.core.enums import AttendanceStatus, MakeupStatus, SessionType
from academy_dashboard.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from academy_dashboard.feeds.model import FeedValueInput, SaveFeedPayload
from academy_dashboard.feeds.service import FEED_SAVE_FAILED, default_needs_makeup

DAY = date(2026, 3, 10)


@pytest.fixture()
def room(academy, owner, teacher):
    class_id = academy.school_class("Phonics", teacher=teacher)
    block = academy.block(class_id, 2, time(16, 0), time(17, 0))
    students = {}
    for name in ("Seoyeon", "Doyun"):
        students[name] = academy.student(name, code=name[:2].upper())
        academy.assignments.add(student_id=students[name], schedule_id=block, start_date=date(2026, 3, 2))
    academy.features.enabled.add((owner.tenant_id, FEATURE_MAKEUP_SYSTEM))
    return {"class_id": class_id, **students}


def _payload(room, student="Seoyeon", *, key, status=AttendanceStatus.PRESENT, **extra) -> SaveFeedPayload:
    return SaveFeedPayload(
        class_id=room["class_id"],
        student_id=room[student],
        feed_date=extra.pop("feed_date", DAY),
        attendance_status=status,
        idempotency_key=key,
        **extra,
    )


def test_payload_from_dict_parses_values():
    payload = SaveFeedPayload.from_dict(
        {
            "class_id": "3",
            "student_id": 7,
            "feed_date": "2026-03-10",
            "attendance_status": "late",
            "idempotency_key": " k-1 ",
            "feed_values": [{"set_id": 2, "option_id": 5, "score": 90}],
            "exam_scores": [{"set_id": 4, "score": 77.5}],
            "makeup_ticket_id": "",
        }
    )

    assert payload.class_id == 3
    assert payload.attendance_status == AttendanceStatus.LATE
    assert payload.session_type == SessionType.REGULAR
    assert payload.idempotency_key == "k-1"
    assert payload.exam_scores == [FeedValueInput(set_id=4, option_id=None, score=77.5)]
    assert payload.makeup_ticket_id is None


@pytest.mark.parametrize(
    "field,value",
    [
        ("attendance_status", "sleeping"),
        ("feed_date", "10/03/2026"),
        ("idempotency_key", "  "),
        ("session_type", "bonus"),
        ("class_id", 0),
    ],
)
def test_payload_from_dict_rejects(field, value):
    data = {
        "class_id": 1,
        "student_id": 1,
        "feed_date": "2026-03-10",
        "attendance_status": "present",
        "idempotency_key": "k",
    }
    data[field] = value
    with pytest.raises(ValidationError):
        SaveFeedPayload.from_dict(data)


def test_default_makeup_by_reason():
    assert default_needs_makeup("sick") is True
    assert default_needs_makeup("family") is False
    assert default_needs_makeup("made-up reason") is False
    assert default_needs_makeup(None) is False


def test_save_then_resave_updates_same_feed(academy, teacher, room):
    first = academy.feed_service.save_feed(
        teacher,
        _payload(room, key="a", progress_text="Unit 3", feed_values=[FeedValueInput(set_id=1, option_id=2, score=80)]),
    )
    second = academy.feed_service.save_feed(teacher, _payload(room, key="b", status=AttendanceStatus.LATE))

    assert first.success and not first.cached
    assert second.feed_id == first.feed_id
    feed = academy.feeds.rows[first.feed_id]
    assert feed.attendance_status == AttendanceStatus.LATE
    assert feed.is_counted_in_stats
    assert academy.feeds.values[first.feed_id] == []


def test_idempotency_key_replays_stored_result(academy, teacher, room):
    first = academy.feed_service.save_feed(teacher, _payload(room, key="same"))
    replay = academy.feed_service.save_feed(
        teacher, _payload(room, key="same", status=AttendanceStatus.ABSENT, absence_reason="sick")
    )

    assert replay.cached
    assert replay.feed_id == first.feed_id
    assert academy.feeds.rows[first.feed_id].attendance_status == AttendanceStatus.PRESENT
    assert academy.tickets.rows == {}


def test_absent_feed_drops_values_and_opens_ticket(academy, teacher, room):
    result = academy.feed_service.save_feed(
        teacher,
        _payload(
            room,
            key="abs",
            status=AttendanceStatus.ABSENT,
            absence_reason="sick",
            absence_reason_detail="fever",
            feed_values=[FeedValueInput(set_id=1, option_id=2)],
        ),
    )

    feed = academy.feeds.rows[result.feed_id]
    assert feed.needs_makeup and feed.absence_reason_detail == "fever"
    assert academy.feeds.values[result.feed_id] == []
    (ticket,) = academy.tickets.rows.values()
    assert ticket.status == MakeupStatus.PENDING
    assert ticket.feed_id == result.feed_id
    assert ticket.absence_reason == "sick"


def test_explicit_needs_makeup_overrides_reason(academy, teacher, room):
    academy.feed_service.save_feed(
        teacher,
        _payload(room, key="x", status=AttendanceStatus.ABSENT, absence_reason="family", needs_makeup=True),
    )

    assert len(academy.tickets.rows) == 1


def test_switching_to_present_cancels_then_absent_reopens(academy, teacher, room):
    absent = _payload(room, key="1", status=AttendanceStatus.ABSENT, absence_reason="sick")
    feed_id = academy.feed_service.save_feed(teacher, absent).feed_id
    (ticket_id,) = academy.tickets.rows

    academy.feed_service.save_feed(teacher, _payload(room, key="2", absence_reason="sick"))
    assert academy.tickets.rows[ticket_id].status == MakeupStatus.CANCELLED
    assert academy.feeds.rows[feed_id].absence_reason is None

    academy.feed_service.save_feed(
        teacher, _payload(room, key="3", status=AttendanceStatus.ABSENT, absence_reason="school_event")
    )
    assert list(academy.tickets.rows) == [ticket_id]
    assert academy.tickets.rows[ticket_id].status == MakeupStatus.PENDING
    assert academy.tickets.rows[ticket_id].absence_reason == "school_event"


def test_no_ticket_without_makeup_feature(academy, owner, teacher, room):
    academy.features.enabled.clear()

    academy.feed_service.save_feed(
        teacher, _payload(room, key="k", status=AttendanceStatus.ABSENT, absence_reason="sick")
    )

    assert academy.tickets.rows == {}


def test_makeup_feed_completes_ticket(academy, teacher, room):
    academy.feed_service.save_feed(
        teacher, _payload(room, key="abs", status=AttendanceStatus.ABSENT, absence_reason="sick")
    )
    (ticket_id,) = academy.tickets.rows

    makeup_day = date(2026, 3, 14)
    result = academy.feed_service.save_feed(
        teacher,
        _payload(
            room,
            key="mk",
            feed_date=makeup_day,
            session_type=SessionType.MAKEUP,
            makeup_ticket_id=ticket_id,
            progress_text="Caught up on Unit 3",
        ),
    )

    feed = academy.feeds.rows[result.feed_id]
    assert feed.is_makeup and not feed.is_counted_in_stats
    assert feed.makeup_ticket_id == ticket_id
    ticket = academy.tickets.rows[ticket_id]
    assert ticket.status == MakeupStatus.COMPLETED
    assert ticket.makeup_date == makeup_day
    assert ticket.completed_by == teacher.user_id

    again = academy.feed_service.save_feed(
        teacher,
        _payload(room, key="mk2", feed_date=makeup_day, session_type=SessionType.MAKEUP, makeup_ticket_id=ticket_id),
    )
    assert again.feed_id == result.feed_id


def test_makeup_feed_guards(academy, teacher, room):
    academy.feed_service.save_feed(
        teacher, _payload(room, key="abs", status=AttendanceStatus.ABSENT, absence_reason="sick")
    )
    (ticket_id,) = academy.tickets.rows

    with pytest.raises(ValidationError):
        academy.feed_service.save_feed(teacher, _payload(room, key="m1", session_type=SessionType.MAKEUP))
    with pytest.raises(ValidationError):
        academy.feed_service.save_feed(
            teacher,
            _payload(room, "Doyun", key="m2", session_type=SessionType.MAKEUP, makeup_ticket_id=ticket_id),
        )
    with pytest.raises(NotFoundError):
        academy.feed_service.save_feed(
            teacher, _payload(room, key="m3", session_type=SessionType.MAKEUP, makeup_ticket_id=999)
        )

    academy.tickets.set_cancelled(teacher.tenant_id, ticket_id)
    with pytest.raises(ConflictError):
        academy.feed_service.save_feed(
            teacher, _payload(room, key="m4", session_type=SessionType.MAKEUP, makeup_ticket_id=ticket_id)
        )


def test_teacher_cannot_write_other_class(academy, other_teacher, room):
    with pytest.raises(AuthorizationError):
        academy.feed_service.save_feed(other_teacher, _payload(room, key="k"))


def test_replayed_key_still_checks_class_access(academy, teacher, other_teacher, room):
    academy.feed_service.save_feed(teacher, _payload(room, key="shared"))

    with pytest.raises(AuthorizationError):
        academy.feed_service.save_feed(other_teacher, _payload(room, key="shared"))


def test_save_all_reports_per_student(academy, teacher, room):
    bad = SaveFeedPayload(
        class_id=room["class_id"],
        student_id=room["Doyun"],
        feed_date=DAY,
        attendance_status=AttendanceStatus.PRESENT,
        idempotency_key="bad",
        session_type=SessionType.MAKEUP,
    )

    result = academy.feed_service.save_all_feeds(teacher, [_payload(room, key="ok"), bad])

    assert not result.success
    assert [(r.student_id, r.success) for r in result.results] == [(room["Seoyeon"], True), (room["Doyun"], False)]
    assert result.results[1].error


def test_save_all_keeps_going_after_database_error(academy, teacher, room, monkeypatch):
    real_save = academy.feeds.save

    def flaky_save(tenant_id, write, *, feed_id, values):
        if write.student_id == room["Seoyeon"]:
            raise RuntimeError("deadlock found when trying to get lock")
        return real_save(tenant_id, write, feed_id=feed_id, values=values)

    monkeypatch.setattr(academy.feeds, "save", flaky_save)

    result = academy.feed_service.save_all_feeds(
        teacher, [_payload(room, key="s1"), _payload(room, "Doyun", key="s2")]
    )

    assert not result.success
    assert [(r.student_id, r.success) for r in result.results] == [(room["Seoyeon"], False), (room["Doyun"], True)]
    assert result.results[0].error == FEED_SAVE_FAILED
    assert [f.student_id for f in academy.feeds.rows.values()] == [room["Doyun"]]


def test_saved_feeds_split_exam_scores(academy, teacher, room):
    academy.feed_service.save_feed(
        teacher,
        _payload(
            room,
            key="k",
            feed_values=[FeedValueInput(set_id=1, option_id=2, score=90)],
            exam_scores=[FeedValueInput(set_id=9, option_id=None, score=85)],
        ),
    )

    (saved,) = academy.feed_service.get_saved_feeds(teacher, class_id=room["class_id"], feed_date=DAY)
    assert saved.feed_values == [FeedValueInput(set_id=1, option_id=2, score=90)]
    assert saved.exam_scores == [FeedValueInput(set_id=9, option_id=None, score=85)]


def test_class_students_and_previous_progress(academy, teacher, room):
    academy.feed(class_id=room["class_id"], student_id=room["Doyun"], feed_date=date(2026, 3, 3), progress_text="p.10")
    academy.feed(class_id=room["class_id"], student_id=room["Doyun"], feed_date=date(2026, 3, 5), progress_text="p.14")

    students = academy.feed_service.get_class_students(teacher, class_id=room["class_id"])
    assert [s.name for s in students] == ["Doyun", "Seoyeon"]

    progress = academy.feed_service.get_previous_progress(teacher, class_id=room["class_id"], before=DAY)
    assert progress == {room["Doyun"]: "p.14"}


def test_teacher_classes(academy, owner, teacher, other_teacher, room):
    assert [c.name for c in academy.feed_service.get_teacher_classes(teacher)] == ["Phonics"]
    assert academy.feed_service.get_teacher_classes(other_teacher) == []
    assert len(academy.feed_service.get_teacher_classes(owner)) == 1


def test_option_sets_empty_without_config(academy, teacher):
    result = academy.feed_service.get_feed_option_sets(teacher)

    assert result.sets == [] and result.options == {}
