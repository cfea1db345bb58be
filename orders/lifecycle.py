"""
Order status transitions.

Plain functions over status values so the rules can be checked without
touching the database.
"""
from .exceptions import InvalidStatusTransition
from .models import Order

Status = Order.Status

TRANSITIONS = {
    Status.PENDING: {Status.CONFIRMED, Status.CANCELLED},
    Status.CONFIRMED: {Status.PREPARING, Status.CANCELLED},
    Status.PREPARING: {Status.READY_FOR_PICKUP, Status.CANCELLED},
    Status.READY_FOR_PICKUP: {Status.OUT_FOR_DELIVERY, Status.CANCELLED},
    Status.OUT_FOR_DELIVERY: {Status.DELIVERED, Status.CANCELLED},
    Status.DELIVERED: set(),
    Status.CANCELLED: set(),
    Status.REFUNDED: set(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)

# Who may move an order into a given status
STORE_DRIVEN = frozenset({Status.CONFIRMED, Status.PREPARING, Status.READY_FOR_PICKUP, Status.CANCELLED})
DELIVERY_DRIVEN = frozenset({Status.OUT_FOR_DELIVERY, Status.DELIVERED})

CANCELLABLE_STATUSES = frozenset({Status.PENDING, Status.CONFIRMED, Status.PREPARING})
ACTIVE_DELIVERY_STATUSES = frozenset({Status.READY_FOR_PICKUP, Status.OUT_FOR_DELIVERY})


def allowed_transitions(current):
    return TRANSITIONS.get(current, set())


def can_transition(current, target):
    return target in allowed_transitions(current)


def is_terminal(status):
    return status in TERMINAL_STATUSES


def check_transition(current, target):
    if not can_transition(current, target):
        raise InvalidStatusTransition(current, target)


def may_drive(user, order, target):
    """Whether ``user`` is allowed to move ``order`` into ``target``."""
    if user.is_admin:
        return True
    if target in STORE_DRIVEN and order.store.owner_id == user.id:
        return True
    if target in DELIVERY_DRIVEN and order.delivery_partner_id == user.id:
        return True
    return False
