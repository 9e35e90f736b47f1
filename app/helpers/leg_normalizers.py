"""Pure functions reducing raw upstream payloads to canonical ``Leg`` records.

No I/O happens here: the services fetch, these functions shape. Each takes the
already-decoded JSON (``None`` meaning the upstream returned no data) plus any
context it needs such as the current time.

Disruption is always a strict bool with an optional human-readable
``disruption_detail``. Single legs never get an ``order`` here (the commute
planner assigns it); only journey plans number their own steps.
"""

from datetime import datetime, timedelta

from app.helpers.time_formatting import (
    clock_time_after,
    format_duration,
    iso_to_clock,
    minutes_between,
    parse_clock,
)
from app.schemas.travel import NOT_AVAILABLE, JourneyPlan, Leg, TransportMode
from app.types.upstream import (
    ServiceTimetable,
    TflArrival,
    TflDisruption,
    TflJourney,
    TflJourneyLeg,
    TflLine,
    TrainDeparture,
    TrainDepartureBoard,
)

# Status strings TransportAPI uses for trains that will not run
CANCELLED_STATUSES = frozenset({"cancelled", "it is currently off route", "off route"})
CANCELLED_LABEL = "Cancelled"

TFL_NO_DATA = "No data was returned from the call to the TfL API"
TRAIN_NO_DATA = "No train departure data was returned from the call to the TransportAPI API"

JOURNEY_MODES: dict[str, TransportMode] = {
    "tube": TransportMode.TUBE,
    "bus": TransportMode.BUS,
    "national-rail": TransportMode.TRAIN,
    "overground": TransportMode.TRAIN,
    "elizabeth-line": TransportMode.TRAIN,
    "dlr": TransportMode.TRAIN,
    "walking": TransportMode.WALKING,
}


def _first_description(disruptions: list[TflDisruption] | None) -> str | None:
    if not disruptions:
        return None
    first = disruptions[0]
    return first.get("description") or first.get("summary")


# ==================== Tube / bus status ====================


def normalize_tube_disruptions(line: str, records: list[TflDisruption] | None) -> Leg:
    """
    Tube leg from /Line/{line}/Disruption.

    A non-empty record set means the line is disrupted: the first record's
    description becomes the detail and its name the canonical line name.
    Otherwise the input line name is echoed back undisrupted.
    """
    if not records:
        return Leg(mode=TransportMode.TUBE, line=line)

    first = records[0]
    return Leg(
        mode=TransportMode.TUBE,
        line=first.get("name") or line,
        disruption=True,
        disruption_detail=_first_description(records),
    )


def normalize_line_status(
    line: str,
    records: list[TflLine] | None,
    mode: TransportMode = TransportMode.BUS,
) -> Leg:
    """
    Leg from /Line/{line}/Status?detail=true.

    Only a non-empty ``disruptions`` collection marks the line disrupted; the
    reason of the first non-good line status is used as detail when the
    disruption records carry no description.
    """
    if not records:
        return Leg(mode=mode, line=line)

    record = records[0]
    name = record.get("name") or line
    disruptions = record.get("disruptions")
    if not disruptions:
        return Leg(mode=mode, line=name)

    detail = _first_description(disruptions)
    if detail is None:
        detail = next(
            (status.get("reason") for status in record.get("lineStatuses") or [] if status.get("reason")),
            None,
        )
    return Leg(mode=mode, line=name, disruption=True, disruption_detail=detail)


# ==================== Bus arrivals ====================


def normalize_bus_arrivals(
    route: str,
    arrivals: list[TflArrival] | None,
    status_leg: Leg,
    now: datetime,
) -> Leg:
    """
    Bus leg with the next two arrivals of ``route`` at a stop.

    Arrivals are filtered to the route and sorted by seconds-to-arrival. When
    nothing usable comes back the leg is degraded: both times are "N/A" and
    ``error`` explains why, while the route's status disruption still applies.
    """
    matching = sorted(
        (arrival for arrival in arrivals or [] if str(arrival.get("lineId", "")).lower() == route.lower()),
        key=lambda arrival: arrival.get("timeToStation", 0),
    )

    if not matching:
        return Leg(
            mode=TransportMode.BUS,
            line=route,
            destination="",
            first_time=NOT_AVAILABLE,
            second_time=NOT_AVAILABLE,
            disruption=status_leg.disruption,
            disruption_detail=status_leg.disruption_detail,
            degraded=True,
            error=TFL_NO_DATA if not arrivals else f"No arrivals were predicted for route {route}",
        )

    first = matching[0]
    second_time = NOT_AVAILABLE
    if len(matching) > 1:
        second_time = clock_time_after(matching[1].get("timeToStation", 0), now)

    return Leg(
        mode=TransportMode.BUS,
        line=first.get("lineName") or route,
        destination=first.get("destinationName", ""),
        first_time=clock_time_after(first.get("timeToStation", 0), now),
        second_time=second_time,
        disruption=status_leg.disruption,
        disruption_detail=status_leg.disruption_detail,
    )


# ==================== Trains ====================


def classify_train_status(status: str | None) -> tuple[bool, str]:
    """
    Map a TransportAPI status to (disrupted, label).

    Examples:
        >>> classify_train_status("CANCELLED")
        (True, 'Cancelled')
        >>> classify_train_status("It is currently off route")
        (True, 'Cancelled')
        >>> classify_train_status("ON TIME")
        (False, 'on time')
    """
    normalized = (status or "").strip().lower()
    if normalized in CANCELLED_STATUSES:
        return True, CANCELLED_LABEL
    return False, normalized


def is_cancelled(departure: TrainDeparture) -> bool:
    return classify_train_status(departure.get("status"))[0]


def degraded_train_leg(error: str = TRAIN_NO_DATA) -> Leg:
    """Synthetic train leg used when no trains remain; always disrupted."""
    return Leg(
        mode=TransportMode.TRAIN,
        line=NOT_AVAILABLE,
        destination=NOT_AVAILABLE,
        departure_time=NOT_AVAILABLE,
        arrival_time=NOT_AVAILABLE,
        duration=NOT_AVAILABLE,
        status=NOT_AVAILABLE,
        first_time=NOT_AVAILABLE,
        second_time=NOT_AVAILABLE,
        disruption=True,
        degraded=True,
        error=error,
    )


def board_departures(board: TrainDepartureBoard | None) -> list[TrainDeparture]:
    """Departures listed on a live board, tolerating missing keys."""
    if not board:
        return []
    return list((board.get("departures") or {}).get("all") or [])


def _estimate_mins(departure: TrainDeparture, key: str) -> float:
    value = departure.get(key)  # type: ignore[misc]
    return value if isinstance(value, int | float) else float("inf")


def normalize_train_board(
    departures: list[TrainDeparture],
    platform: str | None,
    now: datetime,
) -> Leg:
    """
    Train leg for the fixed home board: next two trains from ``platform``.

    Trains are ranked by best arrival estimate. A cancelled or off-route train
    among the two shown marks the leg disrupted and is labelled "Cancelled".
    """
    candidates = [d for d in departures if platform is None or d.get("platform") == platform]
    if not candidates:
        return degraded_train_leg()

    ranked = sorted(candidates, key=lambda d: _estimate_mins(d, "best_arrival_estimate_mins"))
    first = ranked[0]
    first_disrupted, first_status = classify_train_status(first.get("status"))

    leg = Leg(
        mode=TransportMode.TRAIN,
        line=first.get("operator_name") or NOT_AVAILABLE,
        destination=first.get("destination_name", ""),
        first_time=clock_time_after((first.get("best_arrival_estimate_mins") or 0) * 60, now),
        status=first_status,
        second_time=NOT_AVAILABLE,
        disruption=first_disrupted,
    )
    if len(ranked) > 1:
        second = ranked[1]
        second_disrupted, second_status = classify_train_status(second.get("status"))
        leg.second_time = clock_time_after((second.get("best_arrival_estimate_mins") or 0) * 60, now)
        leg.second_status = second_status
        leg.disruption = leg.disruption or second_disrupted
    return leg


def _departure_moment(departure: TrainDeparture, now: datetime) -> datetime | None:
    moment = parse_clock(departure.get("expected_departure_time") or departure.get("aimed_departure_time"), now)
    if moment is None and isinstance(departure.get("best_departure_estimate_mins"), int):
        moment = now + timedelta(minutes=departure["best_departure_estimate_mins"])  # type: ignore[operator]
    return moment


def rank_train_departures(
    departures: list[TrainDeparture],
    now: datetime,
    *,
    disruption_override: bool = False,
) -> list[TrainDeparture]:
    """
    Sort departures by departure time, earliest first.

    With ``disruption_override`` cancelled and off-route trains are dropped
    before ranking. Departures without a usable time sort last.
    """
    candidates = [d for d in departures if not (disruption_override and is_cancelled(d))]

    def sort_key(departure: TrainDeparture) -> tuple[bool, datetime]:
        moment = _departure_moment(departure, now)
        return (moment is None, moment or now)

    return sorted(candidates, key=sort_key)


def timetable_arrival(timetable: ServiceTimetable | None, end_id: str) -> str | None:
    """Expected (or else aimed) arrival time at ``end_id`` in a service timetable."""
    if not timetable:
        return None
    for stop in timetable.get("stops") or []:
        if str(stop.get("station_code", "")).upper() == end_id.upper():
            return stop.get("expected_arrival_time") or stop.get("aimed_arrival_time")
    return None


def normalize_train_departure(
    departure: TrainDeparture,
    end_id: str,
    timetable: ServiceTimetable | None,
) -> Leg:
    """
    Train leg for one departure of the parameterized query.

    Arrival time comes from the train's service timetable (the calling point
    matching ``end_id``); duration is departure to arrival. Either is "N/A"
    when the timetable does not list the destination.
    """
    disrupted, status = classify_train_status(departure.get("status"))
    departure_time = departure.get("expected_departure_time") or departure.get("aimed_departure_time")
    arrival_time = timetable_arrival(timetable, end_id)
    minutes = minutes_between(departure_time, arrival_time)

    return Leg(
        mode=TransportMode.TRAIN,
        line=departure.get("operator_name") or NOT_AVAILABLE,
        destination=departure.get("destination_name", ""),
        departure_time=departure_time or NOT_AVAILABLE,
        arrival_time=arrival_time or NOT_AVAILABLE,
        duration=format_duration(minutes) if minutes is not None else NOT_AVAILABLE,
        status=status,
        disruption=disrupted,
    )


# ==================== Journey planner ====================


def normalize_journey_leg(journey_leg: TflJourneyLeg) -> Leg:
    """Leg from one step of a TfL journey."""
    mode_id = (journey_leg.get("mode") or {}).get("id", "")
    route_options = journey_leg.get("routeOptions") or []
    line = next((option["name"] for option in route_options if option.get("name")), None)
    if line is None:
        line = (journey_leg.get("instruction") or {}).get("summary") or mode_id or NOT_AVAILABLE
    disruptions = journey_leg.get("disruptions")
    duration = journey_leg.get("duration")

    return Leg(
        mode=JOURNEY_MODES.get(mode_id, TransportMode.OTHER),
        line=line,
        disruption=bool(journey_leg.get("isDisrupted")) or bool(disruptions),
        disruption_detail=_first_description(disruptions),
        departure_time=iso_to_clock(journey_leg.get("departureTime")),
        arrival_time=iso_to_clock(journey_leg.get("arrivalTime")),
        duration=format_duration(duration) if isinstance(duration, int) else None,
    )


def normalize_journey(start: str, end: str, journey: TflJourney) -> JourneyPlan:
    """Journey plan from the first journey in /Journey/JourneyResults."""
    legs = [normalize_journey_leg(journey_leg) for journey_leg in journey.get("legs") or []]
    for index, leg in enumerate(legs):
        leg.order = index
    duration = journey.get("duration")
    return JourneyPlan(
        start=start,
        end=end,
        departure_time=iso_to_clock(journey.get("startDateTime")),
        arrival_time=iso_to_clock(journey.get("arrivalDateTime")),
        duration=format_duration(duration) if isinstance(duration, int) else None,
        any_disruptions=any(leg.disruption for leg in legs),
        legs=legs,
    )


def normalize_tube_journey(status_leg: Leg, journey: TflJourney) -> Leg:
    """
    Tube leg combining line status with the timings of a planned journey.

    The leg is disrupted if the line status is, or if any step of the journey
    reports a disruption.
    """
    journey_legs = [normalize_journey_leg(journey_leg) for journey_leg in journey.get("legs") or []]
    journey_detail = next((leg.disruption_detail for leg in journey_legs if leg.disruption_detail), None)
    duration = journey.get("duration")

    return Leg(
        mode=TransportMode.TUBE,
        line=status_leg.line,
        disruption=status_leg.disruption or any(leg.disruption for leg in journey_legs),
        disruption_detail=status_leg.disruption_detail or journey_detail,
        departure_time=iso_to_clock(journey.get("startDateTime")),
        arrival_time=iso_to_clock(journey.get("arrivalDateTime")),
        duration=format_duration(duration) if isinstance(duration, int) else None,
    )
