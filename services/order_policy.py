"""
Who may move an order to which status.

Every status change goes through ``OrderPolicy.check_transition``. The rules
live in one table, ``TRANSITIONS``, keyed by (role, current status). Targets
are always later in the lifecycle than the current status, so an order never
moves backward, and ``rejected`` / ``delivered`` have no entries at all.

    pending -> accepted | rejected -> preparing -> ready
            -> picked_up -> out_for_delivery -> delivered

A role may skip its own intermediate steps (a restaurant can mark a pending
order ready, the assigned rider can go from ready straight to delivered).
"""

from typing import Dict, FrozenSet, Tuple
from core.exceptions import AuthorizationError, ConflictError, ValidationError
from models.orders import OrderStatus

S = OrderStatus

VALID_STATUSES: FrozenSet[str] = frozenset(s.value for s in OrderStatus)

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({S.REJECTED, S.DELIVERED})

# Statuses a role may ever set, whatever the order's current state
ROLE_TARGETS: Dict[str, FrozenSet[OrderStatus]] = {
    "restaurant": frozenset({S.ACCEPTED, S.PREPARING, S.READY, S.REJECTED}),
    "rider": frozenset({S.PICKED_UP, S.OUT_FOR_DELIVERY, S.DELIVERED}),
}

TRANSITIONS: Dict[Tuple[str, OrderStatus], FrozenSet[OrderStatus]] = {
    ("restaurant", S.PENDING): frozenset({S.ACCEPTED, S.PREPARING, S.READY, S.REJECTED}),
    ("restaurant", S.ACCEPTED): frozenset({S.PREPARING, S.READY, S.REJECTED}),
    ("restaurant", S.PREPARING): frozenset({S.READY}),
    ("rider", S.READY): frozenset({S.PICKED_UP, S.OUT_FOR_DELIVERY, S.DELIVERED}),
    ("rider", S.PICKED_UP): frozenset({S.OUT_FOR_DELIVERY, S.DELIVERED}),
    ("rider", S.OUT_FOR_DELIVERY): frozenset({S.DELIVERED}),
}

# Statuses in which an order is on its way with a rider
ACTIVE_DELIVERY_STATUSES: Tuple[OrderStatus, ...] = (S.READY, S.PICKED_UP, S.OUT_FOR_DELIVERY)


class OrderPolicy:

    @staticmethod
    def parse_status(value: str) -> OrderStatus:
        if value not in VALID_STATUSES:
            raise ValidationError("Invalid status value.")
        return OrderStatus(value)

    @staticmethod
    def allowed_targets(role: str, current: OrderStatus) -> FrozenSet[OrderStatus]:
        return TRANSITIONS.get((role, OrderStatus(current)), frozenset())

    @staticmethod
    def check_role_target(role: str, target: str) -> OrderStatus:
        """
        Raises:
            ValidationError: ``target`` is not a known status
            AuthorizationError: the role may never set ``target``
        """
        new_status = OrderPolicy.parse_status(target)

        role_targets = ROLE_TARGETS.get(role)
        if role_targets is None:
            raise AuthorizationError("Forbidden: User role not authorized to update order status.")

        if new_status not in role_targets:
            raise AuthorizationError(f"{role.capitalize()}s cannot set status to '{new_status.value}'.")

        return new_status

    @staticmethod
    def check_transition(role: str, current: OrderStatus, target: str) -> OrderStatus:
        """
        Validates a status change requested by ``role``.

        Ownership of the order is checked by the caller; this only looks at
        the status vocabulary and the lifecycle.

        Returns:
            The target as an OrderStatus

        Raises:
            ValidationError: ``target`` is not a known status
            AuthorizationError: the role may never set ``target``
            ConflictError: ``target`` is not reachable from ``current``
        """
        new_status = OrderPolicy.check_role_target(role, target)

        current = OrderStatus(current)
        if new_status not in OrderPolicy.allowed_targets(role, current):
            raise ConflictError(
                f"Cannot change order status from '{current.value}' to '{new_status.value}'."
            )

        return new_status
