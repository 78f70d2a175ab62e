"""Central authorization policy for order actions.

A single table maps ``(role, status)`` to the set of actions that role may
perform on an order in that status. The aggregate and every service
function consult it through ``authorize``; no call site checks roles or
statuses on its own.

Graph:
    {PENDING, FOLLOW_UP} --start_processing--> SHOPPING
    SHOPPING --mark_ready--> READY_FOR_SHIPPING
    READY_FOR_SHIPPING --mark_shipped--> DELIVERY
    DELIVERY --mark_delivered--> DELIVERED
    {any non-terminal} --cancel--> CANCELLED

Item editing (recording shopping results) is allowed while the order is
SHOPPING or READY_FOR_SHIPPING, and rescheduling delivery while it is not
terminal; neither changes status.

Reading orders is open to staff roles. A customer may read a single order
placed for their own household.
"""

from enum import Enum

from ordering.context import Role
from ordering.errors import OperationNotPermitted
from ordering.order.status import ACTIVE_STATUSES, OrderStatus


class OrderAction(Enum):
    START_PROCESSING = "start_processing"
    MARK_READY = "mark_ready"
    MARK_SHIPPED = "mark_shipped"
    MARK_DELIVERED = "mark_delivered"
    CANCEL = "cancel"
    EDIT_ITEMS = "edit_items"
    UPDATE_DELIVERY = "update_delivery"


# action -> (legal source statuses, target status or None when status is unchanged)
_ACTION_GRAPH: dict[OrderAction, tuple[frozenset[OrderStatus], OrderStatus | None]] = {
    OrderAction.START_PROCESSING: (
        frozenset({OrderStatus.PENDING, OrderStatus.FOLLOW_UP}),
        OrderStatus.SHOPPING,
    ),
    OrderAction.MARK_READY: (frozenset({OrderStatus.SHOPPING}), OrderStatus.READY_FOR_SHIPPING),
    OrderAction.MARK_SHIPPED: (frozenset({OrderStatus.READY_FOR_SHIPPING}), OrderStatus.DELIVERY),
    OrderAction.MARK_DELIVERED: (frozenset({OrderStatus.DELIVERY}), OrderStatus.DELIVERED),
    OrderAction.CANCEL: (ACTIVE_STATUSES, OrderStatus.CANCELLED),
    OrderAction.EDIT_ITEMS: (
        frozenset({OrderStatus.SHOPPING, OrderStatus.READY_FOR_SHIPPING}),
        None,
    ),
    OrderAction.UPDATE_DELIVERY: (ACTIVE_STATUSES, None),
}

_ACTION_ROLES: dict[OrderAction, frozenset[Role]] = {
    OrderAction.START_PROCESSING: frozenset({Role.PICKER, Role.VENDOR}),
    OrderAction.MARK_READY: frozenset({Role.VENDOR, Role.ADMIN}),
    OrderAction.MARK_SHIPPED: frozenset({Role.VENDOR, Role.ADMIN}),
    OrderAction.MARK_DELIVERED: frozenset({Role.VENDOR, Role.ADMIN}),
    OrderAction.CANCEL: frozenset({Role.VENDOR, Role.ADMIN}),
    OrderAction.EDIT_ITEMS: frozenset({Role.PICKER, Role.VENDOR, Role.ADMIN}),
    OrderAction.UPDATE_DELIVERY: frozenset({Role.VENDOR, Role.ADMIN}),
}


def _build_policy() -> dict[tuple[Role, OrderStatus], frozenset[OrderAction]]:
    table = {}
    for role in Role:
        for status in OrderStatus:
            table[(role, status)] = frozenset(
                action
                for action, (sources, _) in _ACTION_GRAPH.items()
                if status in sources and role in _ACTION_ROLES[action]
            )
    return table


POLICY = _build_policy()


def allowed_actions(role: Role | str, status: OrderStatus | str) -> frozenset[OrderAction]:
    """Actions ``role`` may perform on an order currently in ``status``."""
    return POLICY[(Role(role), OrderStatus(status))]


def target_status(action: OrderAction) -> OrderStatus | None:
    return _ACTION_GRAPH[action][1]


def authorize(role: Role | str, status: OrderStatus | str, action: OrderAction) -> OrderStatus | None:
    """Raise ``OperationNotPermitted`` unless the action is allowed.

    Returns the status the order moves to (``None`` for non-transitions).
    """
    role = Role(role)
    status = OrderStatus(status)
    if action in POLICY[(role, status)]:
        return target_status(action)

    sources, _ = _ACTION_GRAPH[action]
    if status not in sources:
        raise OperationNotPermitted(
            f"Cannot {action.value} an order in status {status.value}",
            action=action.value,
            status=status.value,
            role=role.value,
        )
    raise OperationNotPermitted(
        f"Role {role.value} may not {action.value}",
        action=action.value,
        status=status.value,
        role=role.value,
    )


READER_ROLES = frozenset({Role.PICKER, Role.VENDOR, Role.ADMIN})


def authorize_read(role: Role | str, household_id: str | None = None, order_household_id: str | None = None) -> None:
    """Raise ``OperationNotPermitted`` unless the caller may read the order.

    Without ``order_household_id`` the check is for listing, which only
    staff roles may do.
    """
    role = Role(role)
    if role in READER_ROLES:
        return
    if order_household_id and household_id and str(order_household_id) == str(household_id):
        return
    raise OperationNotPermitted(f"Role {role.value} may not read orders", action="read", role=role.value)
