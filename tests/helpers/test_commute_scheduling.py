"""Tests for commute dispatch ordering, connection offsets and aggregation."""

from datetime import datetime, timedelta

import pytest
from app.helpers.commute_scheduling import aggregate_legs, departure_offset_after, dispatch_order
from app.helpers.errors import PlanConfigurationError
from app.helpers.leg_normalizers import degraded_train_leg
from app.schemas.commute import LegDescriptor, LegOperation
from app.schemas.travel import Leg, TransportMode


def descriptor(order: int, operation: LegOperation, depends_on: int | None = None) -> LegDescriptor:
    parameters = {name: "X" for name in operation.required_parameters}
    return LegDescriptor(order=order, operation=operation, parameters=parameters, depends_on=depends_on)


class TestDispatchOrder:
    """Tests for dispatch_order."""

    def test_independent_legs_keep_planned_order(self) -> None:
        plan = [
            descriptor(2, LegOperation.TUBE_STATUS),
            descriptor(0, LegOperation.NEXT_BUS),
            descriptor(1, LegOperation.BUS_STATUS),
        ]
        assert [d.order for d in dispatch_order(plan)] == [0, 1, 2]

    def test_dependent_leg_follows_prerequisite(self) -> None:
        plan = [
            descriptor(0, LegOperation.NEXT_TUBE, depends_on=1),
            descriptor(1, LegOperation.NEXT_TRAIN),
            descriptor(2, LegOperation.TUBE_STATUS),
        ]
        orders = [d.order for d in dispatch_order(plan)]
        assert orders.index(1) < orders.index(0)
        assert sorted(orders) == [0, 1, 2]

    def test_chain_of_dependencies(self) -> None:
        plan = [
            descriptor(0, LegOperation.NEXT_TRAIN),
            descriptor(1, LegOperation.NEXT_TUBE, depends_on=0),
            descriptor(2, LegOperation.NEXT_TRAIN, depends_on=1),
        ]
        assert [d.order for d in dispatch_order(plan)] == [0, 1, 2]

    def test_unknown_dependency_rejected(self) -> None:
        with pytest.raises(PlanConfigurationError, match="unknown leg 7"):
            dispatch_order([descriptor(0, LegOperation.NEXT_TUBE, depends_on=7)])

    def test_cycle_rejected(self) -> None:
        plan = [
            descriptor(0, LegOperation.NEXT_TUBE, depends_on=1),
            descriptor(1, LegOperation.NEXT_TRAIN, depends_on=0),
        ]
        with pytest.raises(PlanConfigurationError, match="Cyclic"):
            dispatch_order(plan)

    def test_operation_without_offset_cannot_depend(self) -> None:
        plan = [
            descriptor(0, LegOperation.NEXT_TRAIN),
            descriptor(1, LegOperation.TUBE_STATUS, depends_on=0),
        ]
        with pytest.raises(PlanConfigurationError, match="cannot depend"):
            dispatch_order(plan)


class TestDepartureOffsetAfter:
    """Tests for departure_offset_after."""

    def test_arrival_plus_buffer(self, fixed_now: datetime) -> None:
        """Test a train arriving 08:36 with a 5 minute change departs 41 minutes from 08:00."""
        train = Leg(mode=TransportMode.TRAIN, line="Southeastern", arrival_time="08:36")
        assert departure_offset_after(train, 5, fixed_now) == timedelta(minutes=41)

    def test_never_negative(self, fixed_now: datetime) -> None:
        train = Leg(mode=TransportMode.TRAIN, line="Southeastern", arrival_time="07:50")
        assert departure_offset_after(train, 5, fixed_now) == timedelta(0)

    def test_degraded_prerequisite_has_no_offset(self, fixed_now: datetime) -> None:
        assert departure_offset_after(degraded_train_leg(), 5, fixed_now) is None


class TestAggregateLegs:
    """Tests for aggregate_legs."""

    def test_sorted_by_order(self) -> None:
        legs = [
            Leg(mode=TransportMode.TUBE, line="jubilee", order=2),
            Leg(mode=TransportMode.BUS, line="486", order=0),
            Leg(mode=TransportMode.TRAIN, line="Southeastern", order=1),
        ]
        result = aggregate_legs(legs)
        assert [leg.order for leg in result.legs] == [0, 1, 2]

    @pytest.mark.parametrize(
        ("flags", "expected"),
        [
            ([False, False, False], False),
            ([False, True, False], True),
            ([True, True, True], True),
        ],
    )
    def test_any_disruptions_is_or_of_legs(self, flags: list[bool], expected: bool) -> None:
        legs = [Leg(mode=TransportMode.TUBE, line="x", order=i, disruption=flag) for i, flag in enumerate(flags)]
        assert aggregate_legs(legs).any_disruptions is expected

    def test_empty(self) -> None:
        result = aggregate_legs([])
        assert result.legs == []
        assert result.any_disruptions is False
