"""Pydantic schemas for per-user commute plans."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, RootModel, field_validator, model_validator

from app.schemas.travel import TransportMode


class LegOperation(StrEnum):
    """Which leg lookup a descriptor dispatches to."""

    TUBE_STATUS = "tube_status"
    NEXT_TUBE = "next_tube"
    BUS_STATUS = "bus_status"
    NEXT_BUS = "next_bus"
    NEXT_TRAIN = "next_train"
    TRAIN_DEPARTURES = "train_departures"

    @property
    def mode(self) -> TransportMode:
        """Transport mode of the legs this operation produces."""
        if self in (LegOperation.TUBE_STATUS, LegOperation.NEXT_TUBE):
            return TransportMode.TUBE
        if self in (LegOperation.BUS_STATUS, LegOperation.NEXT_BUS):
            return TransportMode.BUS
        return TransportMode.TRAIN

    @property
    def required_parameters(self) -> frozenset[str]:
        """Keyword arguments the leg lookup cannot run without."""
        return OPERATION_PARAMETERS[self][0]

    @property
    def accepted_parameters(self) -> frozenset[str]:
        """Every keyword argument the leg lookup accepts."""
        required, optional = OPERATION_PARAMETERS[self]
        return required | optional


# Keyword arguments of each leg lookup as (required, optional)
OPERATION_PARAMETERS: dict[LegOperation, tuple[frozenset[str], frozenset[str]]] = {
    LegOperation.TUBE_STATUS: (frozenset({"line"}), frozenset()),
    LegOperation.NEXT_TUBE: (frozenset({"line", "start_id", "end_id"}), frozenset({"departure_time_offset"})),
    LegOperation.BUS_STATUS: (frozenset({"route"}), frozenset()),
    LegOperation.NEXT_BUS: (frozenset({"route"}), frozenset({"at_home"})),
    LegOperation.NEXT_TRAIN: (
        frozenset({"start_id", "end_id"}),
        frozenset({"departure_time_offset", "disruption_override"}),
    ),
    LegOperation.TRAIN_DEPARTURES: (frozenset({"destination"}), frozenset()),
}


class LegDescriptor(BaseModel):
    """
    One planned leg fetch.

    ``parameters`` are passed to the leg lookup as keyword arguments. A
    descriptor with ``depends_on`` is only dispatched once the leg with that
    order has resolved; its departure offset is then the prerequisite's
    arrival time plus ``connection_buffer_minutes``.
    """

    order: int = Field(ge=0)
    operation: LegOperation
    parameters: dict[str, Any] = Field(default_factory=dict)
    depends_on: int | None = None
    connection_buffer_minutes: int = Field(default=0, ge=0)

    @property
    def mode(self) -> TransportMode:
        return self.operation.mode

    @model_validator(mode="after")
    def check_not_self_dependent(self) -> "LegDescriptor":
        """Reject a descriptor that depends on itself."""
        if self.depends_on == self.order:
            msg = f"Leg {self.order} cannot depend on itself"
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def check_parameters(self) -> "LegDescriptor":
        """Reject parameters the operation does not take, or lacks."""
        unknown = set(self.parameters) - self.operation.accepted_parameters
        if unknown:
            msg = f"Leg {self.order} ({self.operation}) does not accept parameters: {sorted(unknown)}"
            raise ValueError(msg)
        missing = self.operation.required_parameters - set(self.parameters)
        if missing:
            msg = f"Leg {self.order} ({self.operation}) is missing parameters: {sorted(missing)}"
            raise ValueError(msg)
        return self


class UserCommutePlan(BaseModel):
    """Descriptors for one user, depending on whether they are inside the home geofence."""

    at_home: list[LegDescriptor] = Field(default_factory=list)
    away: list[LegDescriptor] = Field(default_factory=list)

    @field_validator("at_home", "away", mode="after")
    @classmethod
    def check_unique_order(cls, v: list[LegDescriptor]) -> list[LegDescriptor]:
        """Ensure order values are unique within a plan."""
        orders = [descriptor.order for descriptor in v]
        if len(orders) != len(set(orders)):
            msg = f"Duplicate leg order in commute plan: {orders}"
            raise ValueError(msg)
        return v

    def select(self, *, at_home: bool) -> list[LegDescriptor]:
        """Return the descriptors for the given location."""
        return self.at_home if at_home else self.away


class CommutePlans(RootModel[dict[str, UserCommutePlan]]):
    """Lookup table of commute plans keyed by upper-cased user identity."""

    @field_validator("root", mode="after")
    @classmethod
    def normalize_user_keys(cls, v: dict[str, UserCommutePlan]) -> dict[str, UserCommutePlan]:
        """Upper-case user keys so lookups are case insensitive."""
        return {user.strip().upper(): plan for user, plan in v.items()}

    def for_user(self, user: str) -> UserCommutePlan | None:
        """Return the plan for ``user`` (case insensitive), or None if unknown."""
        return self.root.get(user.strip().upper())
