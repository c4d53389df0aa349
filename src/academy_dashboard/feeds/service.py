from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Mapping, Optional, Sequence

from ..attendance.service import MakeupService
from ..classes.model import SchoolClass
from ..classes.repository import ClassRepository, StudentRepository
from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_IDEMPOTENCY_TTL_HOURS, DEFAULT_MAKEUP_BY_REASON, FEATURE_MAKEUP_SYSTEM
from ..core.enums import AttendanceStatus, SessionType
from ..core.exceptions import AuthorizationError, DomainError, NotFoundError, ValidationError
from ..feed_settings.model import OptionSetsWithOptions
from ..feed_settings.repository import FeedSettingsRepository
from ..timetable.repository import AssignmentRepository
from ..users.feature_repository import FeatureRepository
from ..users.model import ActorContext
from .model import (
    ClassStudent,
    FeedValueInput,
    FeedWrite,
    SaveAllResult,
    SavedFeed,
    SaveFeedPayload,
    SaveFeedResult,
    StudentSaveResult,
)
from .repository import FeedRepository, IdempotencyRepository

logger = logging.getLogger(__name__)

FEED_SAVE_FAILED = "Could not save the feed, please try again"


def default_needs_makeup(absence_reason: Optional[str]) -> bool:
    """Unknown or missing reasons owe no makeup."""
    return DEFAULT_MAKEUP_BY_REASON.get(absence_reason or "", False)


class FeedService:
    """Use case: teachers write daily feeds for the students of a class."""

    def __init__(
        self,
        feeds: FeedRepository,
        idempotency: IdempotencyRepository,
        settings: FeedSettingsRepository,
        classes: ClassRepository,
        students: StudentRepository,
        assignments: AssignmentRepository,
        features: FeatureRepository,
        makeup: MakeupService,
        *,
        idempotency_ttl_hours: int = DEFAULT_IDEMPOTENCY_TTL_HOURS,
    ):
        self._feeds = feeds
        self._idempotency = idempotency
        self._settings = settings
        self._classes = classes
        self._students = students
        self._assignments = assignments
        self._features = features
        self._makeup = makeup
        self._ttl = timedelta(hours=idempotency_ttl_hours)

    def _require_class_access(self, actor: ActorContext, class_id: int) -> SchoolClass:
        cls = self._classes.get(actor.tenant_id, class_id)
        if not cls:
            raise NotFoundError("Class not found")
        if not actor.is_owner and class_id not in self._classes.teacher_class_ids(actor.tenant_id, actor.user_id):
            raise AuthorizationError("You can only write feeds for your own classes")
        return cls

    def get_teacher_classes(self, actor: ActorContext) -> Sequence[SchoolClass]:
        if actor.is_owner:
            return self._classes.list_all(actor.tenant_id)
        class_ids = self._classes.teacher_class_ids(actor.tenant_id, actor.user_id)
        if not class_ids:
            return []
        return self._classes.list_all(actor.tenant_id, class_ids=class_ids)

    def get_class_students(self, actor: ActorContext, *, class_id: int) -> list[ClassStudent]:
        self._require_class_access(actor, class_id)
        student_ids = self._assignments.student_ids_for_class(actor.tenant_id, class_id)
        students = self._students.get_many(actor.tenant_id, student_ids) if student_ids else []
        return sorted(
            (
                ClassStudent(id=s.student_id, name=s.name, display_code=s.display_code or "", class_id=class_id)
                for s in students
                if s.is_active
            ),
            key=lambda s: s.name,
        )

    def get_feed_option_sets(self, actor: ActorContext) -> OptionSetsWithOptions:
        config = self._settings.get_active_config(actor.tenant_id)
        if not config:
            return OptionSetsWithOptions()
        sets = list(self._settings.list_sets(actor.tenant_id, config.config_id, active_only=True))
        options: dict[int, list] = {s.set_id: [] for s in sets}
        for o in self._settings.list_options(actor.tenant_id, list(options), active_only=True):
            options.setdefault(o.set_id, []).append(o)
        for opts in options.values():
            opts.sort(key=lambda o: (o.display_order, o.option_id))
        return OptionSetsWithOptions(sets=sets, options=options)

    def save_feed(self, actor: ActorContext, payload: SaveFeedPayload) -> SaveFeedResult:
        self._require_class_access(actor, payload.class_id)
        cached = self._idempotency.get(actor.tenant_id, payload.idempotency_key, now=now_local())
        if cached is not None:
            logger.info("Feed save replayed for key %s", payload.idempotency_key)
            return SaveFeedResult(success=bool(cached.get("success")), feed_id=cached.get("feed_id"), cached=True)

        if payload.session_type == SessionType.MAKEUP:
            feed_id = self._save_makeup_feed(actor, payload)
        else:
            feed_id = self._save_regular_feed(actor, payload)

        result = SaveFeedResult(success=True, feed_id=feed_id)
        self._idempotency.put(
            actor.tenant_id,
            payload.idempotency_key,
            {"success": True, "feed_id": feed_id},
            expires_at=now_local() + self._ttl,
        )
        return result

    def _values_for(self, payload: SaveFeedPayload) -> list[FeedValueInput]:
        if payload.attendance_status == AttendanceStatus.ABSENT:
            return []
        return list(payload.feed_values) + list(payload.exam_scores)

    def _needs_makeup(self, payload: SaveFeedPayload) -> bool:
        if payload.attendance_status != AttendanceStatus.ABSENT:
            return False
        if payload.needs_makeup is not None:
            return payload.needs_makeup
        return default_needs_makeup(payload.absence_reason)

    def _write_for(self, actor: ActorContext, payload: SaveFeedPayload, *, is_makeup: bool) -> FeedWrite:
        absent = payload.attendance_status == AttendanceStatus.ABSENT
        return FeedWrite(
            class_id=payload.class_id,
            student_id=payload.student_id,
            feed_date=payload.feed_date,
            session_type=payload.session_type,
            attendance_status=payload.attendance_status,
            absence_reason=payload.absence_reason if absent else None,
            absence_reason_detail=payload.absence_reason_detail if absent else None,
            notify_parent=payload.notify_parent,
            needs_makeup=False if is_makeup else self._needs_makeup(payload),
            is_makeup=is_makeup,
            progress_text=payload.progress_text,
            memo_values=dict(payload.memo_values),
            is_counted_in_stats=not is_makeup,
            makeup_ticket_id=payload.makeup_ticket_id if is_makeup else None,
            created_by=actor.user_id,
        )

    def _save_regular_feed(self, actor: ActorContext, payload: SaveFeedPayload) -> int:
        existing = self._feeds.find_regular(
            actor.tenant_id,
            class_id=payload.class_id,
            student_id=payload.student_id,
            feed_date=payload.feed_date,
        )
        write = self._write_for(actor, payload, is_makeup=False)
        feed_id = self._feeds.save(
            actor.tenant_id,
            write,
            feed_id=existing.feed_id if existing else None,
            values=self._values_for(payload),
        )
        logger.info(
            "Feed %s %s for student %s on %s",
            feed_id,
            "updated" if existing else "created",
            payload.student_id,
            payload.feed_date,
        )

        if self._features.is_enabled(actor.tenant_id, FEATURE_MAKEUP_SYSTEM, at=now_local()):
            self._makeup.sync_makeup_ticket(
                tenant_id=actor.tenant_id,
                feed_id=feed_id,
                student_id=payload.student_id,
                class_id=payload.class_id,
                feed_date=payload.feed_date,
                attendance_status=payload.attendance_status,
                needs_makeup=write.needs_makeup,
                absence_reason=write.absence_reason,
            )
        return feed_id

    def _save_makeup_feed(self, actor: ActorContext, payload: SaveFeedPayload) -> int:
        if payload.makeup_ticket_id is None:
            raise ValidationError("A makeup feed needs its makeup ticket")
        self._makeup.require_open_ticket(actor, ticket_id=payload.makeup_ticket_id, student_id=payload.student_id)

        existing = self._feeds.find_by_ticket(actor.tenant_id, payload.makeup_ticket_id)
        feed_id = self._feeds.save(
            actor.tenant_id,
            self._write_for(actor, payload, is_makeup=True),
            feed_id=existing.feed_id if existing else None,
            values=self._values_for(payload),
        )
        self._makeup.complete_from_feed(
            actor,
            ticket_id=payload.makeup_ticket_id,
            makeup_date=payload.feed_date,
            makeup_class_id=payload.class_id,
        )
        logger.info("Makeup feed %s saved for ticket %s", feed_id, payload.makeup_ticket_id)
        return feed_id

    def save_all_feeds(self, actor: ActorContext, payloads: Sequence[SaveFeedPayload]) -> SaveAllResult:
        results = []
        for p in payloads:
            try:
                self.save_feed(actor, p)
                results.append(StudentSaveResult(student_id=p.student_id, success=True))
            except DomainError as e:
                logger.warning("Feed for student %s not saved: %s", p.student_id, e)
                results.append(StudentSaveResult(student_id=p.student_id, success=False, error=str(e)))
            except Exception:
                logger.exception("Feed for student %s failed to save", p.student_id)
                results.append(StudentSaveResult(student_id=p.student_id, success=False, error=FEED_SAVE_FAILED))
        return SaveAllResult(success=all(r.success for r in results), results=results)

    def get_saved_feeds(self, actor: ActorContext, *, class_id: int, feed_date: date) -> list[SavedFeed]:
        self._require_class_access(actor, class_id)
        feeds = self._feeds.list_for_class_date(actor.tenant_id, class_id, feed_date)
        values_by_feed: dict[int, list] = {}
        for v in self._feeds.list_values(actor.tenant_id, [f.feed_id for f in feeds]):
            values_by_feed.setdefault(v.feed_id, []).append(v)

        saved = []
        for f in feeds:
            values = values_by_feed.get(f.feed_id, [])
            saved.append(
                SavedFeed(
                    id=f.feed_id,
                    student_id=f.student_id,
                    attendance_status=f.attendance_status,
                    absence_reason=f.absence_reason,
                    absence_reason_detail=f.absence_reason_detail,
                    notify_parent=f.notify_parent,
                    is_makeup=f.is_makeup,
                    progress_text=f.progress_text,
                    memo_values=f.memo_values,
                    feed_values=[
                        FeedValueInput(set_id=v.set_id, option_id=v.option_id, score=v.score)
                        for v in values
                        if v.option_id is not None
                    ],
                    exam_scores=[
                        FeedValueInput(set_id=v.set_id, option_id=None, score=v.score)
                        for v in values
                        if v.option_id is None
                    ],
                )
            )
        return saved

    def get_previous_progress(
        self,
        actor: ActorContext,
        *,
        class_id: int,
        before: date,
        student_ids: Optional[Sequence[int]] = None,
    ) -> Mapping[int, str]:
        self._require_class_access(actor, class_id)
        if student_ids is None:
            student_ids = self._assignments.student_ids_for_class(actor.tenant_id, class_id)
        return self._feeds.latest_progress(actor.tenant_id, list(student_ids), before=before)

