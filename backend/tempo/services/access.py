"""Access rules — who may read or write which practice records.

Every route resolves ownership through the same chain:

    segment → session → student → teacher

A student owns their sessions (and the segments inside them); the student's
teacher supervises them. The predicates here are pure: they never touch the
database and never raise. Routes turn a ``False`` into a 403 via the
``require_*`` helpers at the bottom of this module.
"""

import enum

from fastapi import HTTPException

from tempo.models.user import UserRole


class Action(str, enum.Enum):
    READ = "read"                          # view, analyze, stream, delete
    OWNER_WRITE = "owner_write"            # start/end session, add segments
    SUPERVISOR_WRITE = "supervisor_write"  # teacher feedback


def _is_owning_student(caller, session) -> bool:
    return caller.role == UserRole.STUDENT.value and caller.id == session.student_id


def _is_supervising_teacher(caller, owner) -> bool:
    return (
        caller.role == UserRole.TEACHER.value
        and owner.teacher_id is not None
        and caller.id == owner.teacher_id
    )


def can_access_session(caller, session, owner, action: Action = Action.READ) -> bool:
    """Decide whether ``caller`` may perform ``action`` on ``session``.

    Args:
        caller:  authenticated identity with ``id`` and ``role``.
        session: the practice session (only ``student_id`` is read).
        owner:   the student owning the session (only ``teacher_id`` is read).
        action:  READ grants either path; OWNER_WRITE only the student path;
                 SUPERVISOR_WRITE only the teacher path.
    """
    if action == Action.OWNER_WRITE:
        return _is_owning_student(caller, session)
    if action == Action.SUPERVISOR_WRITE:
        return _is_supervising_teacher(caller, owner)
    return _is_owning_student(caller, session) or _is_supervising_teacher(caller, owner)


def can_access_segment(caller, segment, session, owner, action: Action = Action.READ) -> bool:
    """Segments carry no student reference; resolve through the parent session."""
    if segment.session_id != session.id:
        return False
    return can_access_session(caller, session, owner, action)


def can_manage_student(caller, student) -> bool:
    """Roster operations (delete, stats, streak lookup) are teacher-only."""
    return (
        caller.role == UserRole.TEACHER.value
        and student.teacher_id is not None
        and student.teacher_id == caller.id
    )


# ── Route helpers ────────────────────────────────────────────────────────────

def require_session_access(caller, session, action: Action = Action.READ, detail: str = "Not authorized for this session"):
    if not can_access_session(caller, session, session.student, action):
        raise HTTPException(status_code=403, detail=detail)


def require_segment_access(caller, segment, action: Action = Action.READ, detail: str = "Not authorized for this segment"):
    session = segment.session
    if not can_access_segment(caller, segment, session, session.student, action):
        raise HTTPException(status_code=403, detail=detail)


def require_student_management(caller, student, detail: str = "Student not found or not yours"):
    if not can_manage_student(caller, student):
        raise HTTPException(status_code=403, detail=detail)
