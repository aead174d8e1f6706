import pytest
from core.exceptions import AuthorizationError, ConflictError, ValidationError
from models.orders import OrderStatus as S
from services.order_policy import (OrderPolicy, TRANSITIONS, ROLE_TARGETS, TERMINAL_STATUSES,
VALID_STATUSES)

LIFECYCLE = [S.PENDING, S.ACCEPTED, S.PREPARING, S.READY, S.PICKED_UP, S.OUT_FOR_DELIVERY, S.DELIVERED]


def rank(status):
    # rejected sits right after accepted: only pending/accepted lead to it
    if status == S.REJECTED:
        return LIFECYCLE.index(S.ACCEPTED) + 0.5
    return LIFECYCLE.index(status)


def test_vocabulary():
    assert VALID_STATUSES == {
        "pending", "accepted", "preparing", "ready", "rejected",
        "picked_up", "out_for_delivery", "delivered"
    }


@pytest.mark.parametrize("key", sorted(TRANSITIONS, key=lambda k: (k[0], rank(k[1]))))
def test_transitions_only_move_forward(key):
    role, current = key
    for target in TRANSITIONS[key]:
        assert rank(target) > rank(current)


def test_terminal_statuses_have_no_transitions():
    for (role, current) in TRANSITIONS:
        assert current not in TERMINAL_STATUSES


@pytest.mark.parametrize("current", list(S))
@pytest.mark.parametrize("target", sorted(ROLE_TARGETS["rider"]))
def test_restaurant_can_never_set_rider_statuses(current, target):
    with pytest.raises(AuthorizationError):
        OrderPolicy.check_transition("restaurant", current, target.value)


@pytest.mark.parametrize("current", list(S))
@pytest.mark.parametrize("target", sorted(ROLE_TARGETS["restaurant"]))
def test_rider_can_never_set_kitchen_statuses(current, target):
    with pytest.raises(AuthorizationError):
        OrderPolicy.check_transition("rider", current, target.value)


@pytest.mark.parametrize("role", ["customer", "admin"])
def test_other_roles_cannot_change_status(role):
    with pytest.raises(AuthorizationError):
        OrderPolicy.check_transition(role, S.PENDING, "accepted")


@pytest.mark.parametrize("target", ["cooking", "", "DELIVERED", "on_the_way"])
def test_unknown_status_is_a_validation_error(target):
    with pytest.raises(ValidationError):
        OrderPolicy.check_transition("restaurant", S.PENDING, target)


@pytest.mark.parametrize("role, current, target", [
    ("restaurant", S.PENDING, "accepted"),
    ("restaurant", S.PENDING, "rejected"),
    ("restaurant", S.PENDING, "ready"),
    ("restaurant", S.ACCEPTED, "preparing"),
    ("restaurant", S.PREPARING, "ready"),
    ("rider", S.READY, "picked_up"),
    ("rider", S.PICKED_UP, "out_for_delivery"),
    ("rider", S.OUT_FOR_DELIVERY, "delivered"),
    ("rider", S.READY, "delivered"),
])
def test_allowed_transitions(role, current, target):
    assert OrderPolicy.check_transition(role, current, target) == S(target)


@pytest.mark.parametrize("role, current, target", [
    ("restaurant", S.READY, "preparing"),
    ("restaurant", S.PREPARING, "accepted"),
    ("restaurant", S.PREPARING, "rejected"),
    ("restaurant", S.REJECTED, "accepted"),
    ("restaurant", S.DELIVERED, "ready"),
    ("restaurant", S.PICKED_UP, "ready"),
    ("rider", S.DELIVERED, "delivered"),
    ("rider", S.DELIVERED, "picked_up"),
    ("rider", S.OUT_FOR_DELIVERY, "picked_up"),
    ("rider", S.PENDING, "picked_up"),
    ("rider", S.REJECTED, "delivered"),
])
def test_forbidden_transitions_conflict(role, current, target):
    with pytest.raises(ConflictError):
        OrderPolicy.check_transition(role, current, target)


def test_nothing_leaves_a_terminal_status():
    for terminal in TERMINAL_STATUSES:
        for role, targets in ROLE_TARGETS.items():
            assert OrderPolicy.allowed_targets(role, terminal) == frozenset()
            for target in targets:
                with pytest.raises(ConflictError):
                    OrderPolicy.check_transition(role, terminal, target.value)
