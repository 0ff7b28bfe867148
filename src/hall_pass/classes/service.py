from __future__ import annotations

import logging
import secrets
from typing import Optional, Sequence

from ..common.validators import optional_positive_int, require_non_empty, require_positive_int
from ..core.constants import JOIN_CODE_ALPHABET, JOIN_CODE_LENGTH, JOIN_CODE_MAX_ATTEMPTS
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from .model import RosterStudent, SchoolClass
from .repository import ClassRepository

logger = logging.getLogger(__name__)


def generate_join_code(length: int = JOIN_CODE_LENGTH) -> str:
    """Random join code without look-alike characters (no I, O, 0, 1)."""
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(length))


def require_manager(
    school_class: SchoolClass,
    *,
    current_role: Role,
    actor_id: int,
    organization_id: Optional[int] = None,
) -> None:
    """Admins manage the classes of their own organization; teachers only the classes they own.

    An admin without ``organization_id`` is refused.
    """
    if organization_id is not None and int(school_class.organization_id) != int(organization_id):
        raise AuthorizationError("You do not manage this class")
    if current_role == Role.ADMIN and organization_id is not None:
        return
    if current_role == Role.TEACHER and int(school_class.teacher_id) == int(actor_id):
        return
    raise AuthorizationError("You do not manage this class")


class ClassService:
    def __init__(self, classes: ClassRepository, *, code_generator=generate_join_code):
        self._classes = classes
        self._code_generator = code_generator

    def get(self, class_id: int) -> SchoolClass:
        school_class = self._classes.get_by_id(int(class_id))
        if not school_class:
            raise NotFoundError("Class not found")
        return school_class

    def get_managed(
        self, *, current_role: Role, actor_id: int, class_id: int, organization_id: Optional[int] = None
    ) -> SchoolClass:
        school_class = self.get(class_id)
        require_manager(school_class, current_role=current_role, actor_id=actor_id, organization_id=organization_id)
        return school_class

    def create_class(
        self,
        *,
        current_role: Role,
        teacher_id: int,
        organization_id: int,
        name: str,
        period_order,
    ) -> SchoolClass:
        if not current_role.is_staff:
            raise AuthorizationError("Only teachers can create classes")

        name = require_non_empty(name, "Class name")
        period = require_positive_int(period_order, "Period")

        for _ in range(JOIN_CODE_MAX_ATTEMPTS):
            code = self._code_generator()
            if not self._classes.get_by_join_code(code):
                break
        else:
            raise ValidationError("Could not generate a unique join code, please try again")

        class_id = self._classes.create(
            organization_id=int(organization_id),
            teacher_id=int(teacher_id),
            name=name,
            period_order=period,
            join_code=code,
        )
        logger.info("Teacher %s created class %s (%s) with code %s", teacher_id, class_id, name, code)
        return self.get(class_id)

    def join_by_code(self, *, current_role: Role, student_id: int, organization_id: int, join_code: str) -> SchoolClass:
        if current_role != Role.STUDENT:
            raise AuthorizationError("Only students can join classes")

        code = require_non_empty(join_code, "Join code").upper()
        school_class = self._classes.get_by_join_code(code)
        # A code from another school reads the same as an unknown one.
        if not school_class or school_class.organization_id != int(organization_id):
            raise NotFoundError("Invalid join code")

        if self._classes.is_enrolled(class_id=school_class.class_id, student_id=int(student_id)):
            raise ValidationError("You are already enrolled in this class")

        self._classes.enroll(class_id=school_class.class_id, student_id=int(student_id))
        logger.info("Student %s joined class %s", student_id, school_class.class_id)
        return school_class

    def update_class_settings(
        self,
        *,
        current_role: Role,
        actor_id: int,
        class_id: int,
        organization_id: Optional[int] = None,
        max_concurrent_bathroom=None,
        is_queue_autonomous: Optional[bool] = None,
    ) -> SchoolClass:
        """``max_concurrent_bathroom=None`` falls back to the school cap.

        ``is_queue_autonomous=None`` keeps the stored flag.
        """
        current = self.get_managed(
            current_role=current_role, actor_id=actor_id, class_id=class_id, organization_id=organization_id
        )
        if is_queue_autonomous is None:
            is_queue_autonomous = current.is_queue_autonomous
        self._classes.update_settings(
            class_id=int(class_id),
            max_concurrent_bathroom=optional_positive_int(max_concurrent_bathroom, "Max concurrent restroom passes"),
            is_queue_autonomous=bool(is_queue_autonomous),
        )
        return self.get(class_id)

    def set_auto_clear(
        self, *, current_role: Role, actor_id: int, class_id: int, enabled: bool, organization_id: Optional[int] = None
    ) -> SchoolClass:
        self.get_managed(current_role=current_role, actor_id=actor_id, class_id=class_id, organization_id=organization_id)
        self._classes.set_auto_clear(class_id=int(class_id), enabled=bool(enabled))
        logger.info("Auto-clear %s for class %s", "enabled" if enabled else "disabled", class_id)
        return self.get(class_id)

    def set_auto_clear_all(self, *, current_role: Role, teacher_id: int, enabled: bool) -> int:
        if current_role != Role.TEACHER:
            raise AuthorizationError("Only teachers can toggle auto-clear for their classes")
        return self._classes.set_auto_clear_for_teacher(teacher_id=int(teacher_id), enabled=bool(enabled))

    def list_for_teacher(self, teacher_id: int) -> Sequence[SchoolClass]:
        return self._classes.list_for_teacher(int(teacher_id))

    def list_for_student(self, student_id: int) -> Sequence[SchoolClass]:
        return self._classes.list_for_student(int(student_id))

    def is_enrolled(self, *, class_id: int, student_id: int) -> bool:
        return self._classes.is_enrolled(class_id=int(class_id), student_id=int(student_id))

    def list_students(self, class_id: int) -> Sequence[RosterStudent]:
        return self._classes.list_students(int(class_id))
