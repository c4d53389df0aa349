from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from academy_dashboard.attendance.model import MakeupTicket
from academy_dashboard.attendance.service import MakeupService
from academy_dashboard.classes.model import Homeroom, SchoolClass, Student
from academy_dashboard.classes.service import ClassService
from academy_dashboard.core.enums import (
    AttendanceStatus,
    ClassChangeStatus,
    MakeupStatus,
    ReportCategory,
    ReportStatus,
    Role,
    SessionType,
    TransferStatus,
)
from academy_dashboard.core.exceptions import ConflictError
from academy_dashboard.feed_settings.model import FeedConfig, FeedPresetSummary, Option, OptionSet
from academy_dashboard.feed_settings.service import FeedSettingsService
from academy_dashboard.feeds.model import FeedValue, StudentFeed
from academy_dashboard.feeds.service import FeedService
from academy_dashboard.reports.model import EDITABLE_FIELDS, MonthlyReport, WeeklyReportSettings
from academy_dashboard.reports.service import MonthlyReportService
from academy_dashboard.reports.weekly_service import WeeklyReportService
from academy_dashboard.timetable.model import Schedule, ScheduleAssignment
from academy_dashboard.timetable.service import TimetableService
from academy_dashboard.transfers.model import ClassChangeRequest, TransferRequest
from academy_dashboard.transfers.service import TransferService
from academy_dashboard.users.model import ActorContext, Profile
from academy_dashboard.users.service import AuthService, UserService

TENANT = 1


class IdSequence:
    def __init__(self):
        self._next = 0

    def __call__(self) -> int:
        self._next += 1
        return self._next


# ---------------------------------------------------------------- users


class InMemoryProfiles:
    def __init__(self):
        self.by_id: dict[int, Profile] = {}

    def add(self, profile: Profile) -> Profile:
        self.by_id[profile.profile_id] = profile
        return profile

    def get_by_id(self, profile_id):
        return self.by_id.get(profile_id)

    def get_by_username(self, username):
        return next((p for p in self.by_id.values() if p.username == username), None)

    def list_by_role(self, tenant_id, role):
        found = [p for p in self.by_id.values() if p.tenant_id == tenant_id and p.role == role and p.is_active]
        return sorted(found, key=lambda p: p.name)


class InMemoryFeatures:
    def __init__(self):
        self.enabled: set[tuple[int, str]] = set()

    def is_enabled(self, tenant_id, feature_key, *, at):
        return (tenant_id, feature_key) in self.enabled


# -------------------------------------------------------------- classes


class InMemoryClasses:
    def __init__(self, profiles: InMemoryProfiles, ids: IdSequence):
        self._profiles = profiles
        self._ids = ids
        self.rows: dict[int, SchoolClass] = {}
        self.links: list[list] = []  # [class_id, teacher_id, is_active]

    def create(self, *, tenant_id, name, color):
        class_id = self._ids()
        self.rows[class_id] = SchoolClass(class_id=class_id, tenant_id=tenant_id, name=name, color=color)
        return class_id

    def get(self, tenant_id, class_id):
        cls = self.rows.get(class_id)
        return cls if cls and cls.tenant_id == tenant_id else None

    def list_all(self, tenant_id, *, class_ids=None):
        found = [
            c for c in self.rows.values() if c.tenant_id == tenant_id and (class_ids is None or c.class_id in class_ids)
        ]
        return sorted(found, key=lambda c: c.name)

    def homerooms(self, tenant_id, class_ids):
        out = {}
        for class_id, teacher_id, is_active in self.links:
            if not is_active or class_id not in class_ids or class_id in out:
                continue
            teacher = self._profiles.get_by_id(teacher_id)
            out[class_id] = Homeroom(
                class_id=class_id,
                teacher_id=teacher_id,
                teacher_name=teacher.label if teacher else "",
                teacher_color=teacher.calendar_color if teacher else None,
            )
        return out

    def teacher_class_ids(self, tenant_id, teacher_id):
        return [c for c, t, active in self.links if t == teacher_id and active]

    def link_teacher(self, *, tenant_id, class_id, teacher_id):
        for link in self.links:
            if link[0] == class_id and link[1] == teacher_id:
                link[2] = True
                return
        self.links.append([class_id, teacher_id, True])

    def unlink_teacher(self, *, tenant_id, class_id, teacher_id):
        for link in self.links:
            if link[0] == class_id and link[1] == teacher_id and link[2]:
                link[2] = False
                return True
        return False


class InMemoryStudents:
    def __init__(self, ids: IdSequence):
        self._ids = ids
        self.rows: dict[int, Student] = {}

    def create(self, *, tenant_id, name, display_code, school):
        student_id = self._ids()
        self.rows[student_id] = Student(
            student_id=student_id, tenant_id=tenant_id, name=name, display_code=display_code, school=school
        )
        return student_id

    def get(self, tenant_id, student_id):
        s = self.rows.get(student_id)
        return s if s and s.tenant_id == tenant_id else None

    def get_many(self, tenant_id, student_ids):
        return sorted(
            (s for s in self.rows.values() if s.student_id in student_ids and s.tenant_id == tenant_id),
            key=lambda s: s.name,
        )

    def list_all(self, tenant_id):
        return sorted((s for s in self.rows.values() if s.tenant_id == tenant_id), key=lambda s: s.name)

    def search(self, tenant_id, query, *, limit):
        q = query.lower()
        found = [
            s
            for s in self.list_all(tenant_id)
            if q in s.name.lower() or q in (s.school or "").lower() or q in (s.display_code or "").lower()
        ]
        return found[:limit]


# ------------------------------------------------------------ timetable


class InMemorySchedules:
    def __init__(self, ids: IdSequence):
        self._ids = ids
        self.rows: dict[int, Schedule] = {}

    def get(self, tenant_id, schedule_id):
        s = self.rows.get(schedule_id)
        return s if s and s.is_active and s.tenant_id == tenant_id else None

    def list_active(self, tenant_id, *, class_ids=None):
        found = [
            s
            for s in self.rows.values()
            if s.is_active and s.tenant_id == tenant_id and (class_ids is None or s.class_id in class_ids)
        ]
        return sorted(found, key=lambda s: (s.day_of_week, s.start_time))

    def create(self, *, tenant_id, class_id, day_of_week, start_time, end_time):
        for s in self.list_active(tenant_id, class_ids=[class_id]):
            if s.day_of_week == day_of_week and s.start_time == start_time:
                raise ConflictError("The class already has a block at that time")
        schedule_id = self._ids()
        self.rows[schedule_id] = Schedule(
            schedule_id=schedule_id,
            tenant_id=tenant_id,
            class_id=class_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
        )
        return schedule_id

    def soft_delete(self, tenant_id, schedule_id, *, at):
        s = self.get(tenant_id, schedule_id)
        if not s:
            return False
        self.rows[schedule_id] = replace(s, is_active=False)
        return True


class InMemoryAssignments:
    def __init__(self, schedules: InMemorySchedules, ids: IdSequence):
        self._schedules = schedules
        self._ids = ids
        self.rows: dict[int, ScheduleAssignment] = {}

    def add(self, *, student_id, schedule_id, start_date, group_key=None, end_date=None, tenant_id=TENANT):
        assignment_id = self._ids()
        self.rows[assignment_id] = ScheduleAssignment(
            assignment_id=assignment_id,
            tenant_id=tenant_id,
            student_id=student_id,
            schedule_id=schedule_id,
            start_date=start_date,
            group_key=group_key,
            end_date=end_date,
        )
        return assignment_id

    def active(self):
        return [a for a in self.rows.values() if a.is_active]

    def count_active(self, tenant_id, schedule_ids):
        out: dict[int, int] = {}
        for a in self.active():
            if a.schedule_id in schedule_ids:
                out[a.schedule_id] = out.get(a.schedule_id, 0) + 1
        return out

    def list_active_for_schedule(self, tenant_id, schedule_id):
        return [a for a in self.active() if a.schedule_id == schedule_id]

    def student_ids_for_class(self, tenant_id, class_id):
        block_ids = {s.schedule_id for s in self._schedules.list_active(tenant_id, class_ids=[class_id])}
        return sorted({a.student_id for a in self.active() if a.schedule_id in block_ids})

    def list_for_student(self, tenant_id, student_id, *, schedule_ids=None, active_only=True):
        return [
            a
            for a in self.rows.values()
            if a.student_id == student_id
            and (schedule_ids is None or a.schedule_id in schedule_ids)
            and (a.is_active or not active_only)
        ]

    def create_many(self, *, tenant_id, student_id, schedule_ids, group_key, start_date):
        for schedule_id in schedule_ids:
            self.add(
                student_id=student_id,
                schedule_id=schedule_id,
                start_date=start_date,
                group_key=group_key,
                tenant_id=tenant_id,
            )
        return len(schedule_ids)

    def end_many(self, tenant_id, assignment_ids, *, end_date):
        ended = 0
        for assignment_id in assignment_ids:
            a = self.rows.get(assignment_id)
            if a and a.is_active:
                self.rows[assignment_id] = replace(a, end_date=end_date)
                ended += 1
        return ended

    def reactivate(self, assignment_ids):
        for assignment_id in assignment_ids:
            self.rows[assignment_id] = replace(self.rows[assignment_id], end_date=None)


# ------------------------------------------------------------ transfers


class InMemoryTransferRequests:
    def __init__(self, ids: IdSequence):
        self._ids = ids
        self.rows: dict[int, TransferRequest] = {}

    def create(self, **kwargs):
        for r in self.rows.values():
            if (
                r.status == TransferStatus.PENDING
                and r.student_id == kwargs["student_id"]
                and r.from_schedule_id == kwargs["from_schedule_id"]
                and r.to_schedule_id == kwargs["to_schedule_id"]
                and r.effective_date == kwargs["effective_date"]
            ):
                raise ConflictError("The same move is already pending")
        request_id = self._ids()
        self.rows[request_id] = TransferRequest(request_id=request_id, created_at=datetime(2026, 3, 1, 9, 0), **kwargs)
        return request_id

    def get(self, tenant_id, request_id):
        return self.rows.get(request_id)

    def list_pending_view(self, tenant_id):
        return [
            {
                "id": r.request_id,
                "student_id": r.student_id,
                "effective_date": r.effective_date,
                "scope": r.scope.value,
                "status": r.status.value,
                "from_start_time": None,
                "to_start_time": None,
                "created_at": r.created_at,
            }
            for r in self.rows.values()
            if r.status == TransferStatus.PENDING
        ]

    def close(self, tenant_id, request_id, *, status, reviewed_by=None, reviewed_at=None, review_note=None):
        r = self.rows.get(request_id)
        if not r or r.status != TransferStatus.PENDING:
            return False
        self.rows[request_id] = replace(
            r, status=status, reviewed_by=reviewed_by, reviewed_at=reviewed_at, review_note=review_note
        )
        return True


class InMemoryClassChanges:
    def __init__(self, ids: IdSequence):
        self._ids = ids
        self.rows: dict[int, ClassChangeRequest] = {}

    def create(self, *, tenant_id, student_id, message, requested_by):
        request_id = self._ids()
        self.rows[request_id] = ClassChangeRequest(
            request_id=request_id,
            tenant_id=tenant_id,
            student_id=student_id,
            message=message,
            requested_by=requested_by,
        )
        return request_id

    def get(self, tenant_id, request_id):
        return self.rows.get(request_id)

    def list_pending_view(self, tenant_id):
        return [
            {"id": r.request_id, "student_id": r.student_id, "message": r.message, "created_at": r.created_at}
            for r in self.rows.values()
            if r.status == ClassChangeStatus.PENDING
        ]

    def mark_done(self, tenant_id, request_id, *, at):
        r = self.rows.get(request_id)
        if not r or r.status != ClassChangeStatus.PENDING:
            return False
        self.rows[request_id] = replace(r, status=ClassChangeStatus.DONE, done_at=at)
        return True


class InMemoryMoveApplier:
    """Applies a plan all-or-nothing like the MySQL transaction does."""

    def __init__(self, assignments: InMemoryAssignments, requests: InMemoryTransferRequests):
        self._assignments = assignments
        self._requests = requests
        self.plans = []

    def apply(self, tenant_id, plan, *, approval=None):
        if approval:
            request = self._requests.rows.get(approval.request_id)
            if not request or request.status != TransferStatus.PENDING:
                raise ConflictError("The request was already processed")
        self.plans.append(plan)
        self._assignments.end_many(tenant_id, plan.end_ids, end_date=plan.end_date)
        self._assignments.reactivate(plan.reactivate_ids)
        for c in plan.creates:
            self._assignments.add(
                student_id=c.student_id,
                schedule_id=c.schedule_id,
                start_date=c.start_date,
                group_key=c.group_key,
                tenant_id=tenant_id,
            )
        if approval:
            self._requests.close(
                tenant_id,
                approval.request_id,
                status=TransferStatus.APPROVED,
                reviewed_by=approval.reviewed_by,
                reviewed_at=approval.reviewed_at,
            )
        return len(plan.creates) + len(plan.reactivate_ids)


# ---------------------------------------------------------------- feeds


class InMemoryFeeds:
    def __init__(self, ids: IdSequence):
        self._ids = ids
        self.rows: dict[int, StudentFeed] = {}
        self.values: dict[int, list[FeedValue]] = {}

    def add(self, feed: StudentFeed, values=()):
        self.rows[feed.feed_id] = feed
        self.values[feed.feed_id] = list(values)
        return feed.feed_id

    def find_regular(self, tenant_id, *, class_id, student_id, feed_date):
        return next(
            (
                f
                for f in self.rows.values()
                if f.class_id == class_id
                and f.student_id == student_id
                and f.feed_date == feed_date
                and f.session_type == SessionType.REGULAR
            ),
            None,
        )

    def find_by_ticket(self, tenant_id, ticket_id):
        return next((f for f in self.rows.values() if f.makeup_ticket_id == ticket_id), None)

    def save(self, tenant_id, write, *, feed_id, values):
        if feed_id is None:
            feed_id = self._ids()
        self.rows[feed_id] = StudentFeed(
            feed_id=feed_id,
            tenant_id=tenant_id,
            class_id=write.class_id,
            student_id=write.student_id,
            feed_date=write.feed_date,
            session_type=write.session_type,
            attendance_status=write.attendance_status,
            absence_reason=write.absence_reason,
            absence_reason_detail=write.absence_reason_detail,
            notify_parent=write.notify_parent,
            needs_makeup=write.needs_makeup,
            is_makeup=write.is_makeup,
            progress_text=write.progress_text,
            memo_values=dict(write.memo_values),
            is_counted_in_stats=write.is_counted_in_stats,
            makeup_ticket_id=write.makeup_ticket_id,
        )
        self.values[feed_id] = [
            FeedValue(feed_id=feed_id, set_id=v.set_id, option_id=v.option_id, score=v.score) for v in values
        ]
        return feed_id

    def list_for_class_date(self, tenant_id, class_id, feed_date):
        return [f for f in self.rows.values() if f.class_id == class_id and f.feed_date == feed_date]

    def list_for_student_range(self, tenant_id, student_id, start, end):
        found = [f for f in self.rows.values() if f.student_id == student_id and start <= f.feed_date <= end]
        return sorted(found, key=lambda f: (f.feed_date, f.feed_id))

    def list_values(self, tenant_id, feed_ids):
        return [v for feed_id in feed_ids for v in self.values.get(feed_id, [])]

    def latest_progress(self, tenant_id, student_ids, *, before):
        out = {}
        for f in sorted(self.rows.values(), key=lambda f: (f.feed_date, f.feed_id), reverse=True):
            if f.student_id in student_ids and f.feed_date < before and f.progress_text:
                out.setdefault(f.student_id, f.progress_text)
        return out


class InMemoryIdempotency:
    def __init__(self):
        self.rows: dict[tuple[int, str], tuple[dict, datetime]] = {}

    def get(self, tenant_id, key, *, now):
        found = self.rows.get((tenant_id, key))
        if not found or found[1] <= now:
            return None
        return found[0]

    def put(self, tenant_id, key, response, *, expires_at):
        self.rows[(tenant_id, key)] = (response, expires_at)


# ---------------------------------------------------------- feed settings


class InMemoryFeedSettings:
    def __init__(self, ids: IdSequence):
        self._ids = ids
        self.configs: dict[int, FeedConfig] = {}
        self.sets: dict[int, OptionSet] = {}
        self.deleted_sets: set[int] = set()
        self.options: dict[int, Option] = {}

    def get_active_config(self, tenant_id):
        return next((c for c in self.configs.values() if c.tenant_id == tenant_id and c.is_active), None)

    def get_config(self, tenant_id, config_id):
        return self.configs.get(config_id)

    def create_config(self, *, tenant_id, config_name, applied_at):
        config_id = self._ids()
        self.configs[config_id] = FeedConfig(
            config_id=config_id, tenant_id=tenant_id, config_name=config_name, applied_at=applied_at
        )
        return self.configs[config_id]

    def list_sets(self, tenant_id, config_id, *, active_only=False):
        return [
            s
            for s in self.sets.values()
            if s.config_id == config_id and s.set_id not in self.deleted_sets and (s.is_active or not active_only)
        ]

    def get_set(self, tenant_id, set_id):
        return None if set_id in self.deleted_sets else self.sets.get(set_id)

    def create_set(self, *, tenant_id, config_id, new_set):
        set_id = self._ids()
        self.sets[set_id] = OptionSet(
            set_id=set_id,
            tenant_id=tenant_id,
            config_id=config_id,
            name=new_set.name,
            set_key=new_set.set_key,
            is_scored=new_set.is_scored,
            score_step=new_set.score_step,
            default_report_category=new_set.report_category,
        )
        for order, o in enumerate(new_set.options):
            self.create_option(
                tenant_id=tenant_id,
                set_id=set_id,
                label=o.label,
                score=o.score,
                display_order=order,
                category=o.report_category or new_set.report_category,
            )
        return set_id

    def _update_set(self, set_id, **changes):
        if set_id not in self.sets or set_id in self.deleted_sets:
            return False
        self.sets[set_id] = replace(self.sets[set_id], **changes)
        return True

    def rename_set(self, tenant_id, set_id, name):
        return self._update_set(set_id, name=name)

    def set_set_active(self, tenant_id, set_id, is_active):
        return self._update_set(set_id, is_active=is_active)

    def change_set_category(self, tenant_id, set_id, category):
        for o in list(self.options.values()):
            if o.set_id == set_id:
                self.options[o.option_id] = replace(o, report_category=category)
        return self._update_set(set_id, default_report_category=category)

    def set_weekly_stats(self, tenant_id, set_id, *, is_in_weekly_stats, stats_category):
        return self._update_set(set_id, is_in_weekly_stats=is_in_weekly_stats, stats_category=stats_category)

    def soft_delete_set(self, tenant_id, set_id, *, at):
        if set_id not in self.sets or set_id in self.deleted_sets:
            return False
        self.deleted_sets.add(set_id)
        for o in list(self.options.values()):
            if o.set_id == set_id:
                self.options[o.option_id] = replace(o, is_active=False)
        return True

    def archive_sets(self, tenant_id, config_id, *, at):
        live = [s.set_id for s in self.list_sets(tenant_id, config_id)]
        for set_id in live:
            self.soft_delete_set(tenant_id, set_id, at=at)
        return len(live)

    def replace_sets(self, tenant_id, config_id, new_sets, *, at):
        self.archive_sets(tenant_id, config_id, at=at)
        return [self.create_set(tenant_id=tenant_id, config_id=config_id, new_set=s) for s in new_sets]

    def list_sets_by_ids(self, tenant_id, set_ids):
        return [
            replace(self.sets[i], is_archived=True) if i in self.deleted_sets else self.sets[i]
            for i in sorted(set_ids)
            if i in self.sets
        ]

    def list_options(self, tenant_id, set_ids, *, active_only=True):
        return [o for o in self.options.values() if o.set_id in set_ids and (o.is_active or not active_only)]

    def get_option(self, tenant_id, option_id):
        return self.options.get(option_id)

    def create_option(self, *, tenant_id, set_id, label, score, display_order, category):
        option_id = self._ids()
        self.options[option_id] = Option(
            option_id=option_id,
            tenant_id=tenant_id,
            set_id=set_id,
            label=label,
            score=score,
            display_order=display_order,
            report_category=category,
        )
        return option_id

    def update_option(self, tenant_id, option_id, *, label, score):
        self.options[option_id] = replace(self.options[option_id], label=label, score=score)
        return True

    def deactivate_option(self, tenant_id, option_id):
        self.options[option_id] = replace(self.options[option_id], is_active=False)
        return True

    def update_option_order(self, tenant_id, updates):
        for u in updates:
            self.options[u.option_id] = replace(self.options[u.option_id], display_order=u.display_order)
        return len(updates)


class InMemoryFeedPresets:
    def __init__(self, ids: IdSequence):
        self._ids = ids
        self.rows: dict[int, tuple[str, list]] = {}

    def create(self, *, tenant_id, name, created_by, sets):
        if any(n == name for n, _ in self.rows.values()):
            raise ConflictError("A preset with that name already exists")
        preset_id = self._ids()
        self.rows[preset_id] = (name, list(sets))
        return preset_id

    def list_summaries(self, tenant_id):
        return [
            FeedPresetSummary(
                preset_id=preset_id,
                name=name,
                set_count=len(sets),
                option_count=sum(len(s.options) for s in sets),
            )
            for preset_id, (name, sets) in sorted(self.rows.items(), reverse=True)
        ]

    def load_sets(self, tenant_id, preset_id):
        found = self.rows.get(preset_id)
        return list(found[1]) if found else None

    def delete(self, tenant_id, preset_id):
        return self.rows.pop(preset_id, None) is not None


# ----------------------------------------------------------- attendance


class InMemoryTickets:
    def __init__(self, ids: IdSequence, students: InMemoryStudents, classes: InMemoryClasses):
        self._ids = ids
        self._students = students
        self._classes = classes
        self.rows: dict[int, MakeupTicket] = {}

    def get(self, tenant_id, ticket_id):
        return self.rows.get(ticket_id)

    def get_by_feed(self, tenant_id, feed_id):
        found = [t for t in self.rows.values() if t.feed_id == feed_id]
        return max(found, key=lambda t: t.ticket_id) if found else None

    def create(self, *, tenant_id, student_id, class_id, feed_id, absence_date, absence_reason):
        ticket_id = self._ids()
        self.rows[ticket_id] = MakeupTicket(
            ticket_id=ticket_id,
            tenant_id=tenant_id,
            student_id=student_id,
            class_id=class_id,
            absence_date=absence_date,
            feed_id=feed_id,
            absence_reason=absence_reason,
        )
        return ticket_id

    def set_pending(self, tenant_id, ticket_id, *, absence_reason=None):
        t = self.rows[ticket_id]
        self.rows[ticket_id] = replace(
            t,
            status=MakeupStatus.PENDING,
            absence_reason=absence_reason or t.absence_reason,
            completed_at=None,
            completed_by=None,
            completion_note=None,
            makeup_date=None,
            makeup_class_id=None,
        )
        return True

    def set_cancelled(self, tenant_id, ticket_id):
        self.rows[ticket_id] = replace(self.rows[ticket_id], status=MakeupStatus.CANCELLED)
        return True

    def set_completed(
        self, tenant_id, ticket_id, *, completed_by, completed_at, note=None, makeup_date=None, makeup_class_id=None
    ):
        self.rows[ticket_id] = replace(
            self.rows[ticket_id],
            status=MakeupStatus.COMPLETED,
            completed_by=completed_by,
            completed_at=completed_at,
            completion_note=note,
            makeup_date=makeup_date,
            makeup_class_id=makeup_class_id,
        )
        return True

    def list_view(self, tenant_id, *, status=None, class_ids=None, start=None, end=None):
        rows = []
        for t in sorted(self.rows.values(), key=lambda t: (t.absence_date, t.ticket_id)):
            if status is not None and t.status != status:
                continue
            if class_ids is not None and t.class_id not in class_ids:
                continue
            if (start and t.absence_date < start) or (end and t.absence_date > end):
                continue
            student = self._students.rows.get(t.student_id)
            cls = self._classes.rows.get(t.class_id)
            rows.append(
                {
                    "id": t.ticket_id,
                    "student_id": t.student_id,
                    "student_name": student.name if student else None,
                    "display_code": student.display_code if student else None,
                    "class_id": t.class_id,
                    "class_name": cls.name if cls else None,
                    "absence_date": t.absence_date,
                    "absence_reason": t.absence_reason,
                    "status": t.status.value,
                    "makeup_date": t.makeup_date,
                    "completed_at": t.completed_at,
                    "completed_by": t.completed_by,
                    "completion_note": t.completion_note,
                }
            )
        return rows


class InMemoryAbsences:
    def __init__(self, feeds: InMemoryFeeds, students: InMemoryStudents, classes: InMemoryClasses):
        self._feeds = feeds
        self._students = students
        self._classes = classes

    def _absent(self):
        return [
            f
            for f in self._feeds.rows.values()
            if f.attendance_status == AttendanceStatus.ABSENT and f.session_type == SessionType.REGULAR
        ]

    def list_absent_rows(self, tenant_id, start, end, *, class_ids=None):
        rows = []
        for f in sorted(self._absent(), key=lambda f: (f.feed_date, f.feed_id), reverse=True):
            if not (start <= f.feed_date <= end) or (class_ids is not None and f.class_id not in class_ids):
                continue
            student = self._students.rows.get(f.student_id)
            cls = self._classes.rows.get(f.class_id)
            rows.append(
                {
                    "feed_id": f.feed_id,
                    "student_id": f.student_id,
                    "class_id": f.class_id,
                    "feed_date": f.feed_date,
                    "absence_reason": f.absence_reason,
                    "needs_makeup": f.needs_makeup,
                    "student_name": student.name if student else None,
                    "class_name": cls.name if cls else None,
                }
            )
        return rows

    def absence_dates(self, tenant_id, student_ids, start, end):
        return [
            (f.student_id, f.feed_date)
            for f in self._absent()
            if f.student_id in student_ids and start <= f.feed_date <= end
        ]


# -------------------------------------------------------------- reports


class InMemoryReports:
    def __init__(self, ids: IdSequence, students: InMemoryStudents):
        self._ids = ids
        self._students = students
        self.rows: dict[int, MonthlyReport] = {}
        self.deleted: set[int] = set()

    def create(self, *, tenant_id, student_id, report_year, report_month, template_type, summaries, created_by):
        if self.find_live(tenant_id, student_id, report_year, report_month):
            raise ConflictError("A report for this month already exists")
        report_id = self._ids()
        self.rows[report_id] = MonthlyReport(
            report_id=report_id,
            tenant_id=tenant_id,
            student_id=student_id,
            report_year=report_year,
            report_month=report_month,
            template_type=template_type,
            status=ReportStatus.DRAFT,
            created_by=created_by,
            **summaries,
        )
        return report_id

    def get(self, tenant_id, report_id):
        return None if report_id in self.deleted else self.rows.get(report_id)

    def find_live(self, tenant_id, student_id, year, month):
        return next(
            (
                r
                for r in self.rows.values()
                if r.report_id not in self.deleted
                and r.student_id == student_id
                and r.report_year == year
                and r.report_month == month
            ),
            None,
        )

    def list_view(self, tenant_id, report_filter):
        rows = []
        for r in self.rows.values():
            if r.report_id in self.deleted:
                continue
            if report_filter.year is not None and r.report_year != report_filter.year:
                continue
            if report_filter.month is not None and r.report_month != report_filter.month:
                continue
            if report_filter.student_id is not None and r.student_id != report_filter.student_id:
                continue
            if report_filter.status is not None and r.status != report_filter.status:
                continue
            student = self._students.rows.get(r.student_id)
            rows.append(
                {
                    "id": r.report_id,
                    "student_id": r.student_id,
                    "student_name": student.name if student else None,
                    "report_year": r.report_year,
                    "report_month": r.report_month,
                    "template_type": r.template_type,
                    "status": r.status.value,
                    "sent_at": r.sent_at,
                    "sent_method": r.sent_method.value if r.sent_method else None,
                }
            )
        return rows

    def update_fields(self, tenant_id, report_id, fields):
        changes = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
        if "status" in changes:
            changes["status"] = ReportStatus(changes["status"])
        self.rows[report_id] = replace(self.rows[report_id], **changes)

    def update_status(self, tenant_id, report_id, *, status, sent_at=None, sent_method=None):
        r = self.rows[report_id]
        self.rows[report_id] = replace(
            r, status=status, sent_at=sent_at or r.sent_at, sent_method=sent_method or r.sent_method
        )

    def soft_delete(self, tenant_id, report_id, *, at):
        if report_id not in self.rows or report_id in self.deleted:
            return False
        self.deleted.add(report_id)
        return True


class InMemoryReportSettings:
    def __init__(self):
        self.template_types: dict[int, int] = {}
        self.weekly: dict[int, WeeklyReportSettings] = {}

    def get_template_type(self, tenant_id):
        return self.template_types.get(tenant_id)

    def get_weekly_settings(self, tenant_id):
        return self.weekly.get(tenant_id, WeeklyReportSettings())


# -------------------------------------------------------------- academy


class Academy:
    """Every in-memory repository wired into the real services."""

    def __init__(self):
        ids = IdSequence()
        self.profiles = InMemoryProfiles()
        self.features = InMemoryFeatures()
        self.classes = InMemoryClasses(self.profiles, ids)
        self.students = InMemoryStudents(ids)
        self.schedules = InMemorySchedules(ids)
        self.assignments = InMemoryAssignments(self.schedules, ids)
        self.requests = InMemoryTransferRequests(ids)
        self.class_changes = InMemoryClassChanges(ids)
        self.applier = InMemoryMoveApplier(self.assignments, self.requests)
        self.feeds = InMemoryFeeds(ids)
        self.idempotency = InMemoryIdempotency()
        self.settings = InMemoryFeedSettings(ids)
        self.presets = InMemoryFeedPresets(ids)
        self.tickets = InMemoryTickets(ids, self.students, self.classes)
        self.absences = InMemoryAbsences(self.feeds, self.students, self.classes)
        self.reports = InMemoryReports(ids, self.students)
        self.report_settings = InMemoryReportSettings()
        self._ids = ids

        self.auth_service = AuthService(self.profiles)
        self.user_service = UserService(self.profiles)
        self.class_service = ClassService(
            self.classes, self.students, self.profiles, self.schedules, self.assignments
        )
        self.timetable_service = TimetableService(
            self.schedules, self.assignments, self.classes, self.students, self.profiles
        )
        self.transfer_service = TransferService(
            self.requests,
            self.class_changes,
            self.applier,
            self.schedules,
            self.assignments,
            self.classes,
            self.students,
        )
        self.makeup_service = MakeupService(
            self.tickets, self.absences, self.classes, self.students, self.assignments
        )
        self.feed_service = FeedService(
            self.feeds,
            self.idempotency,
            self.settings,
            self.classes,
            self.students,
            self.assignments,
            self.features,
            self.makeup_service,
            idempotency_ttl_hours=24,
        )
        self.feed_settings_service = FeedSettingsService(self.settings, self.presets)
        self.report_service = MonthlyReportService(
            self.reports,
            self.report_settings,
            self.feeds,
            self.settings,
            self.classes,
            self.students,
            self.assignments,
            self.features,
        )
        self.weekly_report_service = WeeklyReportService(
            self.report_settings,
            self.feeds,
            self.settings,
            self.classes,
            self.students,
            self.assignments,
        )

    # seeding helpers

    def profile(self, role: Role, name: str, *, password: str = "pw", color: Optional[str] = None) -> ActorContext:
        profile_id = self._ids()
        self.profiles.add(
            Profile(
                profile_id=profile_id,
                tenant_id=TENANT,
                username=name.lower().replace(" ", "."),
                password_hash=generate_password_hash(password),
                role=role,
                name=name,
                calendar_color=color,
            )
        )
        return ActorContext(user_id=profile_id, tenant_id=TENANT, role=role)

    def school_class(self, name: str, *, teacher: Optional[ActorContext] = None, color: str = "#10B981") -> int:
        class_id = self.classes.create(tenant_id=TENANT, name=name, color=color)
        if teacher is not None:
            self.classes.link_teacher(tenant_id=TENANT, class_id=class_id, teacher_id=teacher.user_id)
        return class_id

    def block(self, class_id: int, day: int, start, end) -> int:
        return self.schedules.create(
            tenant_id=TENANT, class_id=class_id, day_of_week=day, start_time=start, end_time=end
        )

    def student(self, name: str, *, code: Optional[str] = None, school: Optional[str] = None) -> int:
        return self.students.create(tenant_id=TENANT, name=name, display_code=code, school=school)

    def option_set(
        self,
        config_id: int,
        name: str,
        *,
        is_scored: bool = True,
        weekly: bool = True,
        stats_category: Optional[str] = None,
    ) -> int:
        set_id = self._ids()
        self.settings.sets[set_id] = OptionSet(
            set_id=set_id,
            tenant_id=TENANT,
            config_id=config_id,
            name=name,
            set_key=name.lower(),
            is_scored=is_scored,
            is_in_weekly_stats=weekly,
            stats_category=stats_category,
            default_report_category=ReportCategory.STUDY,
        )
        return set_id

    def feed(
        self,
        *,
        class_id: int,
        student_id: int,
        feed_date: date,
        status: AttendanceStatus = AttendanceStatus.PRESENT,
        progress_text: Optional[str] = None,
        counted: bool = True,
        values=(),
    ) -> int:
        feed_id = self._ids()
        return self.feeds.add(
            StudentFeed(
                feed_id=feed_id,
                tenant_id=TENANT,
                class_id=class_id,
                student_id=student_id,
                feed_date=feed_date,
                session_type=SessionType.REGULAR if counted else SessionType.MAKEUP,
                attendance_status=status,
                progress_text=progress_text,
                is_counted_in_stats=counted,
                is_makeup=not counted,
            ),
            [FeedValue(feed_id=feed_id, set_id=s, option_id=o, score=sc) for s, o, sc in values],
        )


@pytest.fixture()
def academy() -> Academy:
    return Academy()


@pytest.fixture()
def owner(academy) -> ActorContext:
    return academy.profile(Role.OWNER, "Director Kim", color="#F59E0B")


@pytest.fixture()
def teacher(academy) -> ActorContext:
    return academy.profile(Role.TEACHER, "Teacher Lee", color="#6366F1")


@pytest.fixture()
def other_teacher(academy) -> ActorContext:
    return academy.profile(Role.TEACHER, "Teacher Park", color="#EF4444")
