"""Order status state machine.

Pure validation, no I/O.  ``pending`` is the only initial state;
``delivered`` and ``cancelled`` are terminal.  Any non-terminal status may
move to any valid status, including skipping stages: the only guard is
that terminal orders are frozen.
"""

from __future__ import annotations

from typing import Any

from modules.orders.constants import OrderStatus
from modules.orders.exceptions import InvalidTransition

VALID_STATUSES: frozenset[str] = frozenset(OrderStatus.values)

_INVALID_STATUS_REASON = "invalid status: must be one of [{}]".format(
    ", ".join(OrderStatus.values)
)

_TERMINAL_REASONS: dict[str, str] = {
    OrderStatus.CANCELLED: "cannot change status of a cancelled order",
    OrderStatus.DELIVERED: "cannot change status of a delivered order",
}


def is_valid(status: Any) -> bool:
    """Return ``True`` if *status* is one of the five order statuses."""
    return isinstance(status, str) and status in VALID_STATUSES


def transition_error(current: str, new_status: Any) -> str | None:
    """Return the reason a transition is rejected, or ``None`` if allowed."""
    if not is_valid(new_status):
        return _INVALID_STATUS_REASON
    return _TERMINAL_REASONS.get(current)


def validate_transition(current: str, new_status: Any) -> None:
    """Validate moving an order from *current* to *new_status*.

    Raises:
        InvalidTransition: with a human-readable ``reason``.
    """
    reason = transition_error(current, new_status)
    if reason is not None:
        raise InvalidTransition(reason, current=current, requested=new_status)
