from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Sequence

from ..classes.model import SchoolClass
from ..classes.service import ClassService, require_manager
from ..common.datetime_utils import day_bounds, now_local, week_start
from ..common.validators import require_positive_int
from ..core.constants import DEFAULT_HISTORY_LIMIT, MAX_HISTORY_LIMIT, STAFF_HISTORY_LIMIT
from ..core.enums import (
    OUT_OF_ROOM_STATUSES,
    QUOTA_STATUSES,
    Destination,
    PassAction,
    PassStatus,
    Role,
)
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..freezes.service import FreezeService
from ..realtime.events import PASSES_TABLE, ChangeAction, ChangeFeed
from ..settings.model import OrganizationSettings
from ..settings.service import SettingsService
from .admission import AdmissionDecision, AdmissionPolicy, QuotaSummary, estimated_wait_minutes, fifo_order, queue_position
from .model import Pass
from .repository import PassRepository
from .state_machine import plan_transition
from .timing import timing_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PassOutcome:
    hall_pass: Pass
    decision: Optional[AdmissionDecision] = None

    @property
    def warnings(self) -> tuple[str, ...]:
        return self.decision.warnings if self.decision else ()


@dataclass(frozen=True)
class ClearResult:
    class_id: int
    returned: int
    denied: int

    @property
    def changed(self) -> int:
        return self.returned + self.denied


def parse_destination(value) -> Destination:
    try:
        return Destination(value)
    except ValueError:
        raise ValidationError("Unknown destination")


class PassService:
    """Use cases of the pass lifecycle for students and staff."""

    def __init__(
        self,
        passes: PassRepository,
        classes: ClassService,
        settings: SettingsService,
        freezes: FreezeService,
        *,
        feed: Optional[ChangeFeed] = None,
    ):
        self._passes = passes
        self._classes = classes
        self._settings = settings
        self._freezes = freezes
        self._feed = feed

    # -------- helpers --------
    def _publish(self, action: ChangeAction, hall_pass: Pass) -> None:
        if self._feed is not None:
            self._feed.publish(
                PASSES_TABLE,
                action,
                {
                    "pass_id": hall_pass.pass_id,
                    "class_id": hall_pass.class_id,
                    "student_id": hall_pass.student_id,
                    "status": hall_pass.status.value,
                },
            )

    def _get(self, pass_id: int) -> Pass:
        hall_pass = self._passes.get(int(pass_id))
        if not hall_pass:
            raise NotFoundError("Pass not found")
        return hall_pass

    def _policy(self, school_class: SchoolClass) -> AdmissionPolicy:
        settings = self._settings.get(school_class.organization_id)
        return AdmissionPolicy(settings, max_concurrent=school_class.effective_max_concurrent(settings))

    def _used_restroom_passes(self, student_id: int, now: datetime) -> int:
        return self._passes.count_for_student(
            student_id=int(student_id),
            destination=Destination.RESTROOM,
            statuses=QUOTA_STATUSES,
            since=week_start(now),
            until=now,
        )

    def _active_restroom_count(self, class_id: int) -> int:
        return self._passes.count_in_class(
            class_id=int(class_id),
            destination=Destination.RESTROOM,
            statuses=OUT_OF_ROOM_STATUSES,
        )

    def _apply(self, hall_pass: Pass, transition) -> Pass:
        ok = self._passes.update_status(
            pass_id=hall_pass.pass_id,
            from_status=transition.from_status,
            to_status=transition.to_status,
            fields=transition.fields,
        )
        if not ok:
            raise ConflictError("This pass was already updated by someone else, refresh and try again")

        updated = self._get(hall_pass.pass_id)
        logger.info(
            "Pass %s %s -> %s (%s)",
            hall_pass.pass_id,
            transition.from_status.value,
            transition.to_status.value,
            transition.action.value,
        )
        self._publish(ChangeAction.UPDATE, updated)
        return updated

    # -------- student actions --------
    def request_pass(
        self,
        *,
        current_role: Role,
        student_id: int,
        class_id: int,
        destination,
        now: Optional[datetime] = None,
    ) -> PassOutcome:
        now = now or now_local()
        if current_role != Role.STUDENT:
            raise AuthorizationError("Only students can request passes")

        destination = parse_destination(destination)
        school_class = self._classes.get(class_id)
        if not self._classes.is_enrolled(class_id=school_class.class_id, student_id=int(student_id)):
            raise AuthorizationError("You are not enrolled in this class")

        self._freezes.ensure_request_allowed(class_id=school_class.class_id, destination=destination, now=now)

        if self._passes.get_open_for_student(int(student_id)):
            raise ValidationError("You already have an active pass")

        decision = self._policy(school_class).for_student_request(
            destination,
            used_passes=self._used_restroom_passes(student_id, now),
            active_count=self._active_restroom_count(school_class.class_id) if destination == Destination.RESTROOM else 0,
        )

        pass_id = self._passes.create(
            student_id=int(student_id),
            class_id=school_class.class_id,
            destination=destination,
            status=decision.status,
            requested_at=now,
        )
        if pass_id <= 0:
            raise ValidationError("You already have an active pass")

        hall_pass = self._get(pass_id)
        logger.info("Student %s requested pass %s (%s) in class %s", student_id, pass_id, destination.value, class_id)
        self._publish(ChangeAction.INSERT, hall_pass)
        return PassOutcome(hall_pass=hall_pass, decision=decision)

    def check_in(self, *, current_role: Role, student_id: int, pass_id: int, now: Optional[datetime] = None) -> Pass:
        """Student reports heading back; a teacher still has to confirm the return."""
        now = now or now_local()
        if current_role != Role.STUDENT:
            raise AuthorizationError("Only students can check back in")

        hall_pass = self._get(pass_id)
        if hall_pass.student_id != int(student_id):
            raise AuthorizationError("This is not your pass")

        transition = plan_transition(hall_pass, PassAction.CHECK_IN, actor_id=student_id, now=now)
        return self._apply(hall_pass, transition)

    # -------- staff actions --------
    def _managed_pass(
        self, *, current_role: Role, actor_id: int, pass_id: int, organization_id: Optional[int]
    ) -> tuple[Pass, SchoolClass]:
        hall_pass = self._get(pass_id)
        school_class = self._classes.get(hall_pass.class_id)
        require_manager(school_class, current_role=current_role, actor_id=actor_id, organization_id=organization_id)
        return hall_pass, school_class

    def approve(
        self,
        *,
        current_role: Role,
        actor_id: int,
        pass_id: int,
        organization_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> PassOutcome:
        now = now or now_local()
        hall_pass, school_class = self._managed_pass(
            current_role=current_role, actor_id=actor_id, pass_id=pass_id, organization_id=organization_id
        )
        policy = self._policy(school_class)

        # Counted before the write: the pending pass itself is never included.
        decision = policy.for_approval(
            hall_pass.destination,
            used_passes=self._used_restroom_passes(hall_pass.student_id, now),
            active_count=(
                self._active_restroom_count(school_class.class_id)
                if hall_pass.destination == Destination.RESTROOM
                else 0
            ),
        )
        transition = plan_transition(
            hall_pass,
            PassAction.APPROVE,
            actor_id=actor_id,
            now=now,
            expected_minutes=policy.settings.expected_minutes(hall_pass.destination),
            is_quota_override=decision.is_quota_override,
        )
        updated = self._apply(hall_pass, transition)
        for warning in decision.warnings:
            logger.info("Pass %s approved by %s with warning: %s", pass_id, actor_id, warning)
        return PassOutcome(hall_pass=updated, decision=decision)

    def deny(
        self,
        *,
        current_role: Role,
        actor_id: int,
        pass_id: int,
        organization_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Pass:
        now = now or now_local()
        hall_pass, _ = self._managed_pass(
            current_role=current_role, actor_id=actor_id, pass_id=pass_id, organization_id=organization_id
        )
        transition = plan_transition(hall_pass, PassAction.DENY, actor_id=actor_id, now=now)
        return self._apply(hall_pass, transition)

    def confirm_return(
        self,
        *,
        current_role: Role,
        actor_id: int,
        pass_id: int,
        organization_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Pass:
        now = now or now_local()
        hall_pass, _ = self._managed_pass(
            current_role=current_role, actor_id=actor_id, pass_id=pass_id, organization_id=organization_id
        )
        transition = plan_transition(hall_pass, PassAction.CONFIRM_RETURN, actor_id=actor_id, now=now)
        return self._apply(hall_pass, transition)

    def quick_pass(
        self,
        *,
        current_role: Role,
        actor_id: int,
        class_id: int,
        student_id: int,
        destination,
        organization_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> PassOutcome:
        """Teacher sends a student out directly; skips the queue and the capacity check."""
        now = now or now_local()
        destination = parse_destination(destination)
        school_class = self._classes.get_managed(
            current_role=current_role, actor_id=actor_id, class_id=class_id, organization_id=organization_id
        )

        if not self._classes.is_enrolled(class_id=school_class.class_id, student_id=int(student_id)):
            raise ValidationError("Student is not enrolled in this class")
        if self._passes.get_open_for_student(int(student_id)):
            raise ValidationError("Student already has an active pass")

        policy = self._policy(school_class)
        decision = policy.for_quick_pass(destination, used_passes=self._used_restroom_passes(student_id, now))
        expected = plan_transition(
            Pass(
                pass_id=0,
                student_id=int(student_id),
                class_id=school_class.class_id,
                destination=destination,
                status=PassStatus.PENDING,
                requested_at=now,
            ),
            PassAction.APPROVE,
            actor_id=actor_id,
            now=now,
            expected_minutes=policy.settings.expected_minutes(destination),
            is_quota_override=decision.is_quota_override,
        )

        pass_id = self._passes.create(
            student_id=int(student_id),
            class_id=school_class.class_id,
            destination=destination,
            status=decision.status,
            requested_at=now,
            approved_at=expected.fields["approved_at"],
            approved_by=expected.fields["approved_by"],
            expected_return_at=expected.fields["expected_return_at"],
            is_quota_override=decision.is_quota_override,
        )
        if pass_id <= 0:
            raise ValidationError("Student already has an active pass")

        hall_pass = self._get(pass_id)
        logger.info(
            "Quick pass %s for student %s (%s) by %s%s",
            pass_id,
            student_id,
            destination.value,
            actor_id,
            " [quota override]" if decision.is_quota_override else "",
        )
        self._publish(ChangeAction.INSERT, hall_pass)
        return PassOutcome(hall_pass=hall_pass, decision=decision)

    def auto_clear_class(
        self,
        *,
        current_role: Role,
        actor_id: int,
        class_id: int,
        organization_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ClearResult:
        """Manual "clear queue" by the teacher; same sweep as the period-end job."""
        self._classes.get_managed(
            current_role=current_role, actor_id=actor_id, class_id=class_id, organization_id=organization_id
        )
        return self.sweep_class(class_id, now=now)

    def sweep_class(self, class_id: int, *, now: Optional[datetime] = None) -> ClearResult:
        """Bulk close every open pass of a class (period end). Running it twice changes nothing."""
        now = now or now_local()
        returned, denied = self._passes.clear_class(class_id=int(class_id), now=now)
        result = ClearResult(class_id=int(class_id), returned=returned, denied=denied)
        if result.changed:
            logger.info("Cleared class %s: %d returned, %d denied", class_id, returned, denied)
            if self._feed is not None:
                self._feed.publish(PASSES_TABLE, ChangeAction.UPDATE, {"class_id": int(class_id)})
        return result

    # -------- read models --------
    def weekly_quota(self, *, student_id: int, organization_id: int, now: Optional[datetime] = None) -> QuotaSummary:
        now = now or now_local()
        policy = AdmissionPolicy(self._settings.get(organization_id))
        return policy.quota(self._used_restroom_passes(student_id, now))

    def queue_position(
        self, *, current_role: Role, actor_id: int, pass_id: int, organization_id: Optional[int] = None
    ) -> Optional[dict]:
        hall_pass = self._get(pass_id)
        if current_role == Role.STUDENT and hall_pass.student_id != int(actor_id):
            raise AuthorizationError("This is not your pass")
        if hall_pass.status != PassStatus.PENDING or hall_pass.destination != Destination.RESTROOM:
            return None

        school_class = self._classes.get(hall_pass.class_id)
        if current_role != Role.STUDENT:
            require_manager(school_class, current_role=current_role, actor_id=actor_id, organization_id=organization_id)

        pending = self._passes.list_in_class(
            class_id=school_class.class_id,
            statuses=[PassStatus.PENDING],
            destination=Destination.RESTROOM,
        )
        position = queue_position(pending, hall_pass.pass_id)
        if position is None:
            return None

        capacity = self._policy(school_class).capacity(self._active_restroom_count(school_class.class_id))
        return {
            "pass_id": hall_pass.pass_id,
            "position": position,
            "queue_length": len(pending),
            "active_count": capacity.active_count,
            "max_concurrent": capacity.max_concurrent,
            "estimated_wait_minutes": estimated_wait_minutes(position, capacity.max_concurrent),
        }

    def teacher_board(
        self,
        *,
        current_role: Role,
        actor_id: int,
        class_id: int,
        organization_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        now = now or now_local()
        school_class = self._classes.get_managed(
            current_role=current_role, actor_id=actor_id, class_id=class_id, organization_id=organization_id
        )
        return self.board_for_class(school_class, now=now)

    def board_for_class(self, school_class: SchoolClass, *, now: datetime) -> dict:
        settings = self._settings.get(school_class.organization_id)
        policy = AdmissionPolicy(settings, max_concurrent=school_class.effective_max_concurrent(settings))

        pending = fifo_order(self._passes.list_in_class(class_id=school_class.class_id, statuses=[PassStatus.PENDING]))
        active = fifo_order(self._passes.list_in_class(class_id=school_class.class_id, statuses=OUT_OF_ROOM_STATUSES))
        restroom_out = sum(1 for p in active if p.destination == Destination.RESTROOM)
        capacity = policy.capacity(restroom_out)

        pending_rows = []
        restroom_position = 0
        for p in pending:
            row = self.to_view(p)
            quota_exceeded = False
            if p.destination == Destination.RESTROOM:
                restroom_position += 1
                row["queue_position"] = restroom_position
                quota_exceeded = policy.quota(self._used_restroom_passes(p.student_id, now)).is_exceeded
            row["quota_exceeded"] = quota_exceeded
            pending_rows.append(row)

        active_rows = []
        for p in active:
            row = self.to_view(p)
            row["timing"] = timing_for(p, now=now, settings=settings).as_dict()
            active_rows.append(row)

        return {
            "class_id": school_class.class_id,
            "class_name": school_class.name,
            "pending": pending_rows,
            "active": active_rows,
            "restroom_capacity": {
                "active_count": capacity.active_count,
                "max_concurrent": capacity.max_concurrent,
                "is_full": capacity.is_full,
            },
            "freeze": FreezeService.to_view(self._freezes.get_active(school_class.class_id, now=now), now),
        }

    def active_pass_for_student(self, *, student_id: int, organization_id: int, now: Optional[datetime] = None) -> Optional[dict]:
        now = now or now_local()
        hall_pass = self._passes.get_open_for_student(int(student_id))
        if not hall_pass:
            return None

        row = self.to_view(hall_pass)
        if hall_pass.status in OUT_OF_ROOM_STATUSES:
            settings: OrganizationSettings = self._settings.get(organization_id)
            row["timing"] = timing_for(hall_pass, now=now, settings=settings).as_dict()
        return row

    def history_for_student(self, *, student_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[dict]:
        limit = min(require_positive_int(limit, "Limit"), MAX_HISTORY_LIMIT)
        return [self.to_view(p) for p in self._passes.list_for_student(student_id=int(student_id), limit=limit)]

    # -------- staff views --------
    def class_roster(
        self,
        *,
        current_role: Role,
        actor_id: int,
        class_id: int,
        organization_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        """Enrolled students with their weekly restroom count and any open pass."""
        now = now or now_local()
        school_class = self._classes.get_managed(
            current_role=current_role, actor_id=actor_id, class_id=class_id, organization_id=organization_id
        )
        policy = self._policy(school_class)

        students = []
        for student in self._classes.list_students(school_class.class_id):
            quota = policy.quota(self._used_restroom_passes(student.student_id, now))
            open_pass = self._passes.get_open_for_student(student.student_id)
            students.append(
                {
                    "student_id": student.student_id,
                    "full_name": student.full_name,
                    "used_passes": quota.used_passes,
                    "weekly_limit": quota.weekly_limit,
                    "is_exceeded": quota.is_exceeded,
                    "open_pass": self.to_view(open_pass) if open_pass else None,
                }
            )
        return {"class_id": school_class.class_id, "class_name": school_class.name, "students": students}

    def student_history(
        self,
        *,
        current_role: Role,
        actor_id: int,
        class_id: int,
        student_id: int,
        organization_id: Optional[int] = None,
        limit: int = STAFF_HISTORY_LIMIT,
    ) -> Sequence[dict]:
        """Recent passes of one student, for staff managing a class the student is in."""
        school_class = self._classes.get_managed(
            current_role=current_role, actor_id=actor_id, class_id=class_id, organization_id=organization_id
        )
        if not self._classes.is_enrolled(class_id=school_class.class_id, student_id=int(student_id)):
            raise NotFoundError("Student is not enrolled in this class")
        return self.history_for_student(student_id=student_id, limit=limit)

    def hallway(self, *, current_role: Role, organization_id: int, now: Optional[datetime] = None) -> Sequence[dict]:
        """Every student currently out of a room, across the organization."""
        now = now or now_local()
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can view the hallway")

        settings = self._settings.get(organization_id)
        out = self._passes.list_for_organization(
            organization_id=int(organization_id),
            statuses=OUT_OF_ROOM_STATUSES,
            limit=MAX_HISTORY_LIMIT,
        )
        rows = []
        for p in fifo_order(out):
            row = self.to_view(p)
            row["timing"] = timing_for(p, now=now, settings=settings).as_dict()
            rows.append(row)
        return rows

    def pass_log(
        self,
        *,
        current_role: Role,
        organization_id: int,
        status=None,
        on_date: Optional[date] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
        offset: int = 0,
    ) -> Sequence[dict]:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only admins can view the pass log")

        statuses = None
        if status:
            try:
                statuses = [PassStatus(status)]
            except ValueError:
                raise ValidationError("Unknown pass status")

        since = until = None
        if on_date is not None:
            since, until = day_bounds(on_date)

        rows = self._passes.list_for_organization(
            organization_id=int(organization_id),
            statuses=statuses,
            since=since,
            until=until,
            limit=min(require_positive_int(limit, "Limit"), MAX_HISTORY_LIMIT),
            offset=max(0, int(offset)),
        )
        return [self.to_view(p) for p in rows]

    @staticmethod
    def to_view(p: Pass) -> dict:
        def _iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "pass_id": p.pass_id,
            "student_id": p.student_id,
            "student_name": p.student_name or "Unknown",
            "class_id": p.class_id,
            "class_name": p.class_name,
            "destination": p.destination.value,
            "status": p.status.value,
            "requested_at": _iso(p.requested_at),
            "approved_at": _iso(p.approved_at),
            "denied_at": _iso(p.denied_at),
            "returned_at": _iso(p.returned_at),
            "expected_return_at": _iso(p.expected_return_at),
            "approved_by": p.approved_by,
            "denied_by": p.denied_by,
            "confirmed_by": p.confirmed_by,
            "is_quota_override": p.is_quota_override,
            "is_open": p.is_open,
        }
