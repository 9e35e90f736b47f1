"""Pydantic schemas for normalized travel data and API responses."""

from enum import StrEnum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

NOT_AVAILABLE = "N/A"

T = TypeVar("T")


class TransportMode(StrEnum):
    """Transport modes a leg can describe."""

    TUBE = "tube"
    BUS = "bus"
    TRAIN = "train"
    WALKING = "walking"
    OTHER = "other"


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys for home-automation clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==================== Response Schemas ====================


class Leg(CamelModel):
    """
    One normalized segment of a commute.

    Tube legs only carry disruption information. Bus legs add the next two
    arrival times, train legs add departure/arrival times, duration and status.
    ``order`` is assigned by the commute planner, never by a normalizer.
    """

    mode: TransportMode
    line: str
    disruption: bool = False
    disruption_detail: str | None = None
    destination: str | None = None
    departure_time: str | None = None
    arrival_time: str | None = None
    duration: str | None = None
    status: str | None = None
    first_time: str | None = None
    second_time: str | None = None
    second_status: str | None = None
    order: int | None = None
    degraded: bool = False
    error: str | None = None


class CommuteResult(CamelModel):
    """Ordered legs of a commute and the OR of their disruption flags."""

    any_disruptions: bool = False
    legs: list[Leg] = Field(default_factory=list)


class JourneyPlan(CamelModel):
    """First journey returned by the TfL journey planner."""

    start: str
    end: str
    departure_time: str | None = None
    arrival_time: str | None = None
    duration: str | None = None
    any_disruptions: bool = False
    legs: list[Leg] = Field(default_factory=list)


class TravelResponse(BaseModel, Generic[T]):
    """Envelope every travel endpoint responds with."""

    success: bool
    data: T | None = None
    message: str | None = None
