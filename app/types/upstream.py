"""Type definitions for raw upstream API payloads.

Only the keys the normalizers read are listed. Payloads are plain JSON, so
every TypedDict is ``total=False`` and readers use ``.get()``.
"""

from typing import TypedDict

# ==================== TfL Unified API ====================


class TflDisruption(TypedDict, total=False):
    """Record from /Line/{id}/Disruption."""

    name: str
    category: str
    description: str
    summary: str


class TflLineStatus(TypedDict, total=False):
    """Entry of lineStatuses in /Line/{id}/Status."""

    statusSeverity: int
    statusSeverityDescription: str
    reason: str


class TflLine(TypedDict, total=False):
    """Record from /Line/{id}/Status?detail=true."""

    id: str
    name: str
    disruptions: list[TflDisruption]
    lineStatuses: list[TflLineStatus]


class TflArrival(TypedDict, total=False):
    """Prediction from /StopPoint/{id}/Arrivals."""

    lineId: str
    lineName: str
    destinationName: str
    timeToStation: int


class TflRouteOption(TypedDict, total=False):
    name: str


class TflJourneyMode(TypedDict, total=False):
    id: str
    name: str


class TflInstruction(TypedDict, total=False):
    summary: str
    detailed: str


class TflJourneyLeg(TypedDict, total=False):
    """Leg of a journey from /Journey/JourneyResults."""

    duration: int
    departureTime: str
    arrivalTime: str
    isDisrupted: bool
    disruptions: list[TflDisruption]
    mode: TflJourneyMode
    routeOptions: list[TflRouteOption]
    instruction: TflInstruction


class TflJourney(TypedDict, total=False):
    startDateTime: str
    arrivalDateTime: str
    duration: int
    legs: list[TflJourneyLeg]


class TflJourneyResults(TypedDict, total=False):
    journeys: list[TflJourney]


# ==================== TransportAPI ====================


class TrainServiceTimetableRef(TypedDict, total=False):
    id: str


class TrainDeparture(TypedDict, total=False):
    """Entry of departures.all in /train/station/{code}/live.json."""

    platform: str | None
    operator_name: str
    destination_name: str
    status: str
    aimed_departure_time: str | None
    expected_departure_time: str | None
    best_departure_estimate_mins: int | None
    aimed_arrival_time: str | None
    expected_arrival_time: str | None
    best_arrival_estimate_mins: int | None
    service_timetable: TrainServiceTimetableRef


class TrainDepartures(TypedDict, total=False):
    all: list[TrainDeparture]


class TrainDepartureBoard(TypedDict, total=False):
    station_code: str
    departures: TrainDepartures


class TimetableStop(TypedDict, total=False):
    """Calling point in a service timetable."""

    station_code: str
    station_name: str
    aimed_arrival_time: str | None
    expected_arrival_time: str | None


class ServiceTimetable(TypedDict, total=False):
    stops: list[TimetableStop]
