from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from .models import SubResourceState

logger = logging.getLogger(__name__)

READY_STATES = ("ACTIVE",)
REMOVED_STATES = ("DELETED",)


def is_ready(
    expected_count: int,
    states: Iterable[SubResourceState],
    *,
    ready_states: Sequence[str] = READY_STATES,
    removed_states: Sequence[str] = REMOVED_STATES,
) -> bool:
    """
    All-or-nothing readiness over the members of a pool.

    Removed members are ignored, ready members are counted. The first member
    that is neither stops the scan and the pool is not ready, whatever
    position it was reported at. Otherwise the pool is ready only when the
    ready count equals `expected_count` exactly; more members than expected
    (a scale-down still in flight) is not ready either.
    """
    ready = 0
    for state in states:
        lifecycle = str(state.lifecycle_state).upper()
        if lifecycle in removed_states:
            continue
        if lifecycle in ready_states:
            ready += 1
            continue

        logger.debug(
            "Node %s state: %s (%s)",
            state.id,
            lifecycle,
            state.lifecycle_detail or "",
        )
        return False

    return ready == expected_count


def expected_node_count(node_pool: Any) -> int:
    """
    Number of nodes a node pool should have.

    Pools placed per subnet carry `quantity_per_subnet`; pools using
    placement configs carry `node_config_details.size` instead.
    """
    subnet_ids = getattr(node_pool, "subnet_ids", None) or []
    per_subnet = getattr(node_pool, "quantity_per_subnet", None)
    if subnet_ids and per_subnet:
        return len(subnet_ids) * per_subnet

    details = getattr(node_pool, "node_config_details", None)
    size = getattr(details, "size", None)
    return size or 0
