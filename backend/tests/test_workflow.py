import pytest

from wanshiwu.core.constants import RequestStatus, ApplicationStatus
from wanshiwu.core.exceptions import InvalidStatusTransition
from wanshiwu.core.workflow import (
    can_transition_request,
    can_transition_application,
    ensure_request_transition,
    ensure_application_transition,
    is_terminal_request,
    is_terminal_application,
    cascade_application_status,
)


def test_request_happy_path_is_allowed():
    path = [
        RequestStatus.PENDING,
        RequestStatus.OPEN,
        RequestStatus.PUBLISHED,
        RequestStatus.MATCHED,
        RequestStatus.IN_PROGRESS,
        RequestStatus.COMPLETED,
    ]
    for current, target in zip(path, path[1:]):
        assert can_transition_request(current, target)


def test_request_cannot_skip_states():
    assert not can_transition_request(RequestStatus.PENDING, RequestStatus.PUBLISHED)
    assert not can_transition_request(RequestStatus.OPEN, RequestStatus.MATCHED)
    assert not can_transition_request(RequestStatus.MATCHED, RequestStatus.COMPLETED)


def test_request_cancellation_points():
    assert can_transition_request(RequestStatus.PENDING, RequestStatus.CANCELLED)
    assert can_transition_request(RequestStatus.OPEN, RequestStatus.CANCELLED)
    assert can_transition_request(RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED)
    assert not can_transition_request(RequestStatus.PUBLISHED, RequestStatus.CANCELLED)
    assert not can_transition_request(RequestStatus.MATCHED, RequestStatus.CANCELLED)


def test_terminal_request_states():
    assert is_terminal_request(RequestStatus.COMPLETED)
    assert is_terminal_request(RequestStatus.CANCELLED)
    assert not is_terminal_request(RequestStatus.IN_PROGRESS)
    assert not can_transition_request(RequestStatus.COMPLETED, RequestStatus.PENDING)


def test_ensure_request_transition_raises_with_details():
    with pytest.raises(InvalidStatusTransition) as exc_info:
        ensure_request_transition(RequestStatus.PENDING, RequestStatus.COMPLETED)
    assert exc_info.value.status_code == 400
    assert exc_info.value.error_code == "INVALID_TRANSITION"
    assert exc_info.value.error_details == {"current": "pending", "target": "completed"}


def test_application_transitions():
    assert can_transition_application(ApplicationStatus.PENDING, ApplicationStatus.APPROVED)
    assert can_transition_application(ApplicationStatus.PENDING, ApplicationStatus.REJECTED)
    assert can_transition_application(ApplicationStatus.APPROVED, ApplicationStatus.COMPLETED)
    assert can_transition_application(ApplicationStatus.REJECTED, ApplicationStatus.APPROVED)
    assert not can_transition_application(ApplicationStatus.PENDING, ApplicationStatus.COMPLETED)
    assert is_terminal_application(ApplicationStatus.COMPLETED)

    with pytest.raises(InvalidStatusTransition):
        ensure_application_transition(ApplicationStatus.COMPLETED, ApplicationStatus.APPROVED)


def test_cascade_targets():
    assert cascade_application_status(RequestStatus.COMPLETED) == ApplicationStatus.COMPLETED
    assert cascade_application_status(RequestStatus.CANCELLED) == ApplicationStatus.REJECTED
    assert cascade_application_status(RequestStatus.IN_PROGRESS) is None
    assert cascade_application_status(RequestStatus.MATCHED) is None
