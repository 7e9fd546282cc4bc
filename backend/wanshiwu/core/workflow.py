"""
Status lifecycles for requests and applications.

Both lifecycles are closed enumerations with a static adjacency table. The
services consult these tables before writing anything, so an illegal
(current, target) pair is rejected instead of silently stored.
"""
from typing import Dict, FrozenSet

from wanshiwu.core.constants import ApplicationStatus, RequestStatus
from wanshiwu.core.exceptions import InvalidStatusTransition

REQUEST_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.OPEN, RequestStatus.CANCELLED}),
    RequestStatus.OPEN: frozenset({RequestStatus.PUBLISHED, RequestStatus.CANCELLED}),
    RequestStatus.PUBLISHED: frozenset({RequestStatus.MATCHED}),
    RequestStatus.MATCHED: frozenset({RequestStatus.IN_PROGRESS}),
    RequestStatus.IN_PROGRESS: frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED}),
    RequestStatus.COMPLETED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}

APPLICATION_TRANSITIONS: Dict[ApplicationStatus, FrozenSet[ApplicationStatus]] = {
    ApplicationStatus.PENDING: frozenset({ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}),
    ApplicationStatus.APPROVED: frozenset({ApplicationStatus.REJECTED, ApplicationStatus.COMPLETED}),
    ApplicationStatus.REJECTED: frozenset({ApplicationStatus.APPROVED}),
    ApplicationStatus.COMPLETED: frozenset(),
}

# parent request states from which approving an application advances it to matched
MATCHABLE_REQUEST_STATUSES = frozenset({RequestStatus.PUBLISHED, RequestStatus.OPEN})


def can_transition_request(current: RequestStatus, target: RequestStatus) -> bool:
    return target in REQUEST_TRANSITIONS.get(current, frozenset())


def can_transition_application(current: ApplicationStatus, target: ApplicationStatus) -> bool:
    return target in APPLICATION_TRANSITIONS.get(current, frozenset())


def ensure_request_transition(current: RequestStatus, target: RequestStatus) -> None:
    if not can_transition_request(current, target):
        raise InvalidStatusTransition(current.value, target.value)


def ensure_application_transition(current: ApplicationStatus, target: ApplicationStatus) -> None:
    if not can_transition_application(current, target):
        raise InvalidStatusTransition(current.value, target.value)


def is_terminal_request(status: RequestStatus) -> bool:
    return not REQUEST_TRANSITIONS[status]


def is_terminal_application(status: ApplicationStatus) -> bool:
    return not APPLICATION_TRANSITIONS[status]


def cascade_application_status(request_target: RequestStatus):
    """Status every *approved* sibling application moves to when the request
    enters ``request_target``; ``None`` when the request move has no cascade."""
    if request_target == RequestStatus.COMPLETED:
        return ApplicationStatus.COMPLETED
    if request_target == RequestStatus.CANCELLED:
        return ApplicationStatus.REJECTED
    return None
