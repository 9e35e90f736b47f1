"""API endpoints for tube, bus and train legs and composed commutes.

Every endpoint answers with the ``TravelResponse`` envelope. Domain errors raised
by the services are turned into error envelopes by the handlers in app.main.
"""

from collections.abc import Callable
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from app.core.auth import verify_app_key
from app.core.config import settings
from app.core.http_client import get_clock, get_commute_plans, get_transport_client
from app.helpers.params import parse_flag
from app.helpers.time_formatting import parse_departure_offset
from app.schemas.commute import CommutePlans
from app.schemas.travel import CommuteResult, JourneyPlan, Leg, TravelResponse
from app.services.commute_service import CommuteService
from app.services.tfl_service import TfLService
from app.services.train_service import TrainService
from app.services.transport_client import TransportClient

router = APIRouter(prefix="/travel", tags=["travel"], dependencies=[Depends(verify_app_key)])


# ==================== Tube and Bus ====================


@router.get("/tubestatus", response_model=TravelResponse[Leg], response_model_by_alias=True)
async def get_tube_status(
    line: str | None = Query(None, description="TfL tube line id (e.g., 'northern')"),
    client: TransportClient = Depends(get_transport_client),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> TravelResponse[Leg]:
    """
    Get disruption status for a tube line.

    Raises:
        MissingParameterError: 400 if line is missing
        UpstreamFetchError: 503 if TfL is unavailable
    """
    leg = await TfLService(client, settings, clock).tube_status(line)
    return TravelResponse[Leg](success=True, data=leg)


@router.get("/busstatus", response_model=TravelResponse[Leg], response_model_by_alias=True)
async def get_bus_status(
    route: str | None = Query(None, description="Bus route number (e.g., '486')"),
    client: TransportClient = Depends(get_transport_client),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> TravelResponse[Leg]:
    """Get line status for a bus route."""
    leg = await TfLService(client, settings, clock).bus_status(route)
    return TravelResponse[Leg](success=True, data=leg)


@router.get("/nextbus", response_model=TravelResponse[Leg], response_model_by_alias=True)
async def get_next_bus(
    route: str | None = Query(None, description="Supported bus route number"),
    at_home: str | None = Query(None, alias="atHome", description="'false' to use the return stop"),
    client: TransportClient = Depends(get_transport_client),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> TravelResponse[Leg]:
    """
    Get the next two arrivals of a bus route at its configured stop.

    Raises:
        MissingParameterError: 400 if route is missing
        UnsupportedValueError: 400 if the route has no configured stop points
        UpstreamFetchError: 503 if TfL is unavailable
    """
    leg = await TfLService(client, settings, clock).next_bus(route, at_home=parse_flag(at_home, default=True))
    return TravelResponse[Leg](success=True, data=leg)


@router.get("/nexttube", response_model=TravelResponse[Leg], response_model_by_alias=True)
async def get_next_tube(
    line: str | None = Query(None, description="TfL tube line id"),
    start_id: str | None = Query(None, alias="startID", description="Origin NaPTAN id"),
    end_id: str | None = Query(None, alias="endID", description="Destination NaPTAN id"),
    departure_time_offset: str | None = Query(
        None,
        alias="departureTimeOffSet",
        description="Depart this long from now: minutes, 'HH:MM' or 'PTHH:MM:SS'",
    ),
    client: TransportClient = Depends(get_transport_client),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> TravelResponse[Leg]:
    """Get the next tube journey between two stations, with line status."""
    leg = await TfLService(client, settings, clock).next_tube(
        line,
        start_id,
        end_id,
        parse_departure_offset(departure_time_offset),
    )
    return TravelResponse[Leg](success=True, data=leg)


@router.get("/planjourney", response_model=TravelResponse[JourneyPlan], response_model_by_alias=True)
async def plan_journey(
    start_id: str | None = Query(None, alias="startID", description="Origin (NaPTAN id, postcode or 'lat,long')"),
    end_id: str | None = Query(None, alias="endID", description="Destination in the same forms"),
    departure_time_offset: str | None = Query(None, alias="departureTimeOffSet"),
    client: TransportClient = Depends(get_transport_client),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> TravelResponse[JourneyPlan]:
    """
    Plan a journey with the TfL journey planner.

    Raises:
        MissingParameterError: 400 if startID or endID is missing
        NoDataError: 404 if the planner finds no journeys
        UpstreamFetchError: 503 if TfL is unavailable
    """
    plan = await TfLService(client, settings, clock).plan_journey(
        start_id,
        end_id,
        parse_departure_offset(departure_time_offset),
    )
    return TravelResponse[JourneyPlan](success=True, data=plan)


# ==================== Trains ====================


@router.get("/nexttrain", response_model=TravelResponse[list[Leg]], response_model_by_alias=True)
async def get_next_train(
    start_id: str | None = Query(None, alias="startID", description="CRS code of the departure station"),
    end_id: str | None = Query(None, alias="endID", description="CRS code the train must call at"),
    departure_time_offset: str | None = Query(None, alias="departureTimeOffSet"),
    disruption_override: str | None = Query(
        None,
        alias="disruptionOverride",
        description="'true' to leave cancelled trains out",
    ),
    destination: str | None = Query(None, description="Supported destination of the home station board"),
    client: TransportClient = Depends(get_transport_client),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> TravelResponse[list[Leg]]:
    """
    Get upcoming trains.

    With ``startID``/``endID`` every train calling at ``endID`` is returned,
    earliest departure first. With only ``destination`` the home station board
    is read and a single leg with the next two departures is returned.

    Raises:
        MissingParameterError: 400 if neither form is complete
        UnsupportedValueError: 400 if destination is not configured
        NoDataError: 404 if the home station board is empty
        UpstreamFetchError: 503 if TransportAPI is unavailable
    """
    train_service = TrainService(client, settings, clock)
    if destination and not (start_id or end_id):
        legs = [await train_service.train_departures(destination)]
    else:
        legs = await train_service.next_trains(
            start_id,
            end_id,
            parse_departure_offset(departure_time_offset),
            disruption_override=parse_flag(disruption_override, default=False),
        )
    return TravelResponse[list[Leg]](success=True, data=legs)


# ==================== Commute ====================


@router.get("/getcommute", response_model=TravelResponse[CommuteResult], response_model_by_alias=True)
async def get_commute(
    user: str | None = Query(None, description="Commute plan owner (case insensitive)"),
    lat: str | None = Query(None, description="Caller latitude"),
    long: str | None = Query(None, description="Caller longitude"),
    client: TransportClient = Depends(get_transport_client),
    clock: Callable[[], datetime] = Depends(get_clock),
    plans: CommutePlans = Depends(get_commute_plans),
) -> TravelResponse[CommuteResult]:
    """
    Compose a user's commute.

    The caller is at home when no coordinates are given or when they fall
    inside the home geofence; the matching plan's legs are fetched
    concurrently and returned in planned order.

    Raises:
        MissingParameterError: 400 if user or one of lat/long is missing
        UnsupportedValueError: 400 if the user has no commute plan
        UpstreamFetchError: 503 if any leg's upstream call fails
    """
    commute_service = CommuteService(
        TfLService(client, settings, clock),
        TrainService(client, settings, clock),
        plans,
        settings,
        clock,
    )
    result = await commute_service.get_commute(user, lat, long)
    return TravelResponse[CommuteResult](success=True, data=result)
