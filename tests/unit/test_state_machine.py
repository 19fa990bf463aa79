"""
Unit tests for the booking status transition table.
"""
import itertools

import pytest

from app.schemas.schemas import BookingStatusEnum as S, RoleEnum
from app.services.booking_state import (
    ALLOWED_TRANSITIONS, TERMINAL_STATES, allowed_transitions, is_valid_transition,
)

EXPECTED = {
    (S.pending, RoleEnum.worker): {S.confirmed, S.rejected},
    (S.pending, RoleEnum.customer): {S.cancelled},
    (S.confirmed, RoleEnum.worker): {S.in_progress, S.cancelled},
    (S.confirmed, RoleEnum.customer): {S.cancelled},
    (S.in_progress, RoleEnum.worker): {S.completed, S.cancelled},
    (S.in_progress, RoleEnum.customer): {S.cancelled},
}


class TestBookingStateMachine:
    @pytest.mark.parametrize(
        "current,role,requested",
        list(itertools.product(list(S), list(RoleEnum), list(S))),
    )
    def test_full_grid(self, current, role, requested):
        expected = requested in EXPECTED.get((current, role), set())
        assert is_valid_transition(current, requested, role) is expected

    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(S)

    def test_terminal_states(self):
        assert TERMINAL_STATES == {S.completed, S.cancelled, S.rejected}

    @pytest.mark.parametrize("terminal", [S.completed, S.cancelled, S.rejected])
    def test_terminal_has_no_exit_for_any_role(self, terminal):
        for role in RoleEnum:
            assert allowed_transitions(terminal, role) == ()

    def test_accepts_plain_strings(self):
        assert is_valid_transition("pending", "confirmed", "worker")
        assert not is_valid_transition("pending", "confirmed", "customer")

    def test_worker_cannot_skip_in_progress(self):
        assert not is_valid_transition(S.confirmed, S.completed, RoleEnum.worker)

    def test_no_backward_motion(self):
        order = [S.pending, S.confirmed, S.in_progress, S.completed]
        for later, earlier in itertools.combinations(reversed(order), 2):
            for role in RoleEnum:
                assert not is_valid_transition(later, earlier, role)
