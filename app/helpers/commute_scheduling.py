"""Pure helpers for scheduling and aggregating commute legs.

Legs of a plan form a small dependency graph: most are independent, a few wait
for the leg they connect from. These functions decide the dispatch order, work
out the departure offset of a connecting leg and reduce finished legs into a
``CommuteResult``.
"""

from datetime import datetime, timedelta

from app.helpers.errors import PlanConfigurationError
from app.helpers.time_formatting import parse_clock
from app.schemas.commute import LegDescriptor, LegOperation
from app.schemas.travel import CommuteResult, Leg

# Operations that accept a departure_time_offset and so can follow another leg
OFFSET_OPERATIONS = frozenset({LegOperation.NEXT_TRAIN, LegOperation.NEXT_TUBE})


def dispatch_order(descriptors: list[LegDescriptor]) -> list[LegDescriptor]:
    """
    Order descriptors so every leg comes after the leg it depends on.

    Independent legs keep their planned order. Uses Kahn's algorithm.

    Raises:
        PlanConfigurationError: On unknown or cyclic dependencies, or a
            dependent leg whose operation cannot take a departure offset

    Example:
        >>> plan = [
        ...     LegDescriptor(
        ...         order=0,
        ...         operation="next_tube",
        ...         parameters={"line": "northern", "start_id": "940GZZLUCHX", "end_id": "940GZZLUEUS"},
        ...         depends_on=1,
        ...     ),
        ...     LegDescriptor(order=1, operation="next_train", parameters={"start_id": "CTN", "end_id": "CHX"}),
        ... ]
        >>> [d.order for d in dispatch_order(plan)]
        [1, 0]
    """
    by_order = {descriptor.order: descriptor for descriptor in descriptors}
    for descriptor in descriptors:
        if descriptor.depends_on is None:
            continue
        if descriptor.depends_on not in by_order:
            msg = f"Leg {descriptor.order} depends on unknown leg {descriptor.depends_on}"
            raise PlanConfigurationError(msg)
        if descriptor.operation not in OFFSET_OPERATIONS:
            msg = f"Leg {descriptor.order} ({descriptor.operation}) cannot depend on another leg"
            raise PlanConfigurationError(msg)

    remaining = sorted(descriptors, key=lambda d: d.order)
    scheduled: list[LegDescriptor] = []
    done: set[int] = set()
    while remaining:
        ready = [d for d in remaining if d.depends_on is None or d.depends_on in done]
        if not ready:
            msg = f"Cyclic leg dependencies between legs {[d.order for d in remaining]}"
            raise PlanConfigurationError(msg)
        scheduled.extend(ready)
        done.update(d.order for d in ready)
        remaining = [d for d in remaining if d.order not in done]
    return scheduled


def departure_offset_after(prerequisite: Leg, buffer_minutes: int, now: datetime) -> timedelta | None:
    """
    Offset from ``now`` at which a connecting leg should depart.

    That is the prerequisite's arrival time plus ``buffer_minutes``, never
    negative.

    Returns:
        The offset, or None when the prerequisite has no usable arrival time
        (for example a degraded train leg)
    """
    arrival = parse_clock(prerequisite.arrival_time, now)
    if arrival is None:
        return None
    offset = arrival + timedelta(minutes=buffer_minutes) - now
    return max(offset, timedelta(0))


def aggregate_legs(legs: list[Leg]) -> CommuteResult:
    """Sort legs by planned order and OR their disruption flags."""
    ordered = sorted(legs, key=lambda leg: leg.order if leg.order is not None else -1)
    return CommuteResult(
        any_disruptions=any(leg.disruption for leg in ordered),
        legs=ordered,
    )
