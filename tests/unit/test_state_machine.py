# tests/unit/test_state_machine.py

import pytest

from cinebook.domain.state_machine import BookingStateMachine, BookingStatus
from cinebook.domain.exceptions import InvalidStateTransitionError


# ---------------------
# VALID TRANSITIONS
# ---------------------

def test_valid_happy_path():
    assert BookingStateMachine.can_transition(
        BookingStatus.PENDING,
        BookingStatus.CONFIRMED,
    )

    assert BookingStateMachine.can_transition(
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
    )


def test_pending_can_be_cancelled_or_expired():
    assert BookingStateMachine.get_allowed_transitions(BookingStatus.PENDING) == {
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
        BookingStatus.EXPIRED,
    }


# ---------------------
# INVALID TRANSITIONS
# ---------------------

@pytest.mark.parametrize(
    "from_status, to_status",
    [
        (BookingStatus.CONFIRMED, BookingStatus.PENDING),
        (BookingStatus.EXPIRED, BookingStatus.CONFIRMED),
        (BookingStatus.CANCELLED, BookingStatus.CONFIRMED),
        (BookingStatus.CONFIRMED, BookingStatus.EXPIRED),
    ],
)
def test_forbidden_transitions(from_status, to_status):
    assert not BookingStateMachine.can_transition(from_status, to_status)

    with pytest.raises(InvalidStateTransitionError):
        BookingStateMachine.validate_transition(from_status, to_status)


def test_terminal_state_cancelled():
    assert BookingStateMachine.is_terminal(BookingStatus.CANCELLED)

    with pytest.raises(InvalidStateTransitionError):
        BookingStateMachine.validate_transition(
            BookingStatus.CANCELLED,
            BookingStatus.CONFIRMED,
        )


def test_terminal_state_expired():
    assert BookingStateMachine.is_terminal(BookingStatus.EXPIRED)
    assert not BookingStateMachine.is_terminal(BookingStatus.CONFIRMED)


def test_allowed_transitions_is_a_copy():
    allowed = BookingStateMachine.get_allowed_transitions(BookingStatus.CONFIRMED)
    allowed.add(BookingStatus.PENDING)

    assert not BookingStateMachine.can_transition(
        BookingStatus.CONFIRMED,
        BookingStatus.PENDING,
    )


def test_invalid_type_guard():
    with pytest.raises(TypeError):
        BookingStateMachine.validate_transition(
            "pending",  # invalid type
            BookingStatus.CONFIRMED,
        )
