"""Application lifecycle states and transition rules.

The state of an application is one of four variants. Transition functions
take the current variant and return the next one, or raise when the move is
illegal. Database columns are written only by `apply_state`, which derives
every decision column from the variant, so the timestamp invariants hold by
construction:

- approved_at and rejected_at are never both set
- rejection_reason is set only together with rejected_at
- deletion_scheduled_at is set iff the state is Approved or Rejected

Approved and Rejected are not strictly terminal: a shelter may flip between
them (revoking an approval needs step-up re-authentication, handled by the
service). Ignored has no way out.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Union

from src.errors import InvalidState, ValidationError
from src.models.enums import ApplicationStatus

if TYPE_CHECKING:
    from src.models.application import Application


@dataclass(frozen=True)
class Pending:
    status = ApplicationStatus.PENDING


@dataclass(frozen=True)
class Approved:
    at: datetime
    status = ApplicationStatus.APPROVED


@dataclass(frozen=True)
class Rejected:
    at: datetime
    reason: str
    status = ApplicationStatus.REJECTED


@dataclass(frozen=True)
class Ignored:
    status = ApplicationStatus.IGNORED


ApplicationState = Union[Pending, Approved, Rejected, Ignored]

# Legal moves: {current: {allowed next statuses}}
ALLOWED_TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.PENDING: frozenset({
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.IGNORED,
    }),
    ApplicationStatus.APPROVED: frozenset({ApplicationStatus.REJECTED}),
    ApplicationStatus.REJECTED: frozenset({ApplicationStatus.APPROVED}),
    ApplicationStatus.IGNORED: frozenset(),
}


def can_transition(current: ApplicationState, target: ApplicationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current.status]


def _check(current: ApplicationState, target: ApplicationStatus) -> None:
    if current.status == target:
        msg = f"Application is already {target.value}"
        raise InvalidState(msg)
    if not can_transition(current, target):
        msg = f"Cannot move an application from {current.status.value} to {target.value}"
        raise InvalidState(msg)


# ── Transitions ──────────────────────────────────────────────────────


def approve(current: ApplicationState, now: datetime) -> Approved:
    """pending | rejected → approved."""
    _check(current, ApplicationStatus.APPROVED)
    return Approved(at=now)


def reject(current: ApplicationState, now: datetime, reason: str) -> Rejected:
    """pending | approved → rejected. A non-blank reason is required."""
    reason = (reason or "").strip()
    if not reason:
        msg = "Please provide a reason for rejection"
        raise ValidationError(msg)
    _check(current, ApplicationStatus.REJECTED)
    return Rejected(at=now, reason=reason)


def ignore(current: ApplicationState) -> Ignored:
    """pending → ignored."""
    _check(current, ApplicationStatus.IGNORED)
    return Ignored()


def ensure_withdrawable(current: ApplicationState) -> None:
    """Adopters may delete an application only while it is pending."""
    if isinstance(current, Pending):
        return
    if isinstance(current, (Approved, Rejected)):
        msg = f"{current.status.value.capitalize()} applications cannot be deleted"
    else:
        msg = f"Cannot delete an application that is {current.status.value}"
    raise InvalidState(msg)


def requires_step_up(current: ApplicationState, target: ApplicationState) -> bool:
    """Revoking an approval is sensitive and needs the shelter's password."""
    return isinstance(current, Approved) and isinstance(target, Rejected)


# ── Row mapping ──────────────────────────────────────────────────────


def state_of(application: Application) -> ApplicationState:
    """Read the variant back from a row."""
    status = ApplicationStatus(application.status)
    if status is ApplicationStatus.APPROVED:
        return Approved(at=application.approved_at or application.updated_at)
    if status is ApplicationStatus.REJECTED:
        return Rejected(
            at=application.rejected_at or application.updated_at,
            reason=application.rejection_reason or "",
        )
    if status is ApplicationStatus.IGNORED:
        return Ignored()
    return Pending()


def apply_state(application: Application, state: ApplicationState, retention: timedelta) -> None:
    """Write a variant onto a row, replacing every decision column."""
    application.status = state.status.value
    application.approved_at = None
    application.rejected_at = None
    application.rejection_reason = None
    application.deletion_scheduled_at = None

    if isinstance(state, Approved):
        application.approved_at = state.at
        application.deletion_scheduled_at = state.at + retention
    elif isinstance(state, Rejected):
        application.rejected_at = state.at
        application.rejection_reason = state.reason
        application.deletion_scheduled_at = state.at + retention
