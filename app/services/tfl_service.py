"""TfL service for tube, bus and journey-planner legs."""

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta
from urllib.parse import quote

import structlog

from app.core.config import Settings
from app.helpers.errors import NoDataError, UnsupportedValueError
from app.helpers.leg_normalizers import (
    normalize_bus_arrivals,
    normalize_journey,
    normalize_line_status,
    normalize_tube_disruptions,
    normalize_tube_journey,
)
from app.helpers.params import require_param
from app.helpers.time_formatting import now_in
from app.schemas.travel import JourneyPlan, Leg, TransportMode
from app.services.transport_client import TFL_PROVIDER, TransportClient
from app.types.upstream import TflJourney, TflJourneyResults

logger = structlog.get_logger(__name__)


class TfLService:
    """Service producing normalized legs from the TfL Unified API."""

    def __init__(
        self,
        client: TransportClient,
        settings: Settings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize the TfL service.

        Args:
            client: Upstream transport client
            settings: Application settings (bus stop points, timezone)
            clock: Returns the current time; defaults to now in settings.TIMEZONE
        """
        self.client = client
        self.settings = settings
        self.clock = clock or (lambda: now_in(settings.TIMEZONE))

    async def tube_status(self, line: str | None) -> Leg:
        """
        Get disruption status for a tube line.

        Args:
            line: TfL line id or name (e.g. "northern")

        Returns:
            Tube leg; disrupted when TfL lists any disruption for the line

        Raises:
            MissingParameterError: If line is empty
            UpstreamFetchError: If TfL cannot be reached
        """
        line = require_param(line, "line")
        records = await self.client.fetch_tfl(f"/Line/{quote(line, safe='')}/Disruption")
        leg = normalize_tube_disruptions(line, records)
        logger.info("tube_status_fetched", line=leg.line, disruption=leg.disruption)
        return leg

    async def bus_status(self, route: str | None) -> Leg:
        """
        Get line status for a bus route.

        Raises:
            MissingParameterError: If route is empty
            UpstreamFetchError: If TfL cannot be reached
        """
        route = require_param(route, "route")
        records = await self.client.fetch_tfl(f"/Line/{quote(route, safe='')}/Status", detail="true")
        leg = normalize_line_status(route, records, TransportMode.BUS)
        logger.info("bus_status_fetched", route=route, disruption=leg.disruption)
        return leg

    def resolve_stop_point(self, route: str, *, at_home: bool) -> str:
        """
        Stop point to read arrivals from for ``route``.

        Raises:
            UnsupportedValueError: If the route has no configured stop points
        """
        stop_points = self.settings.BUS_STOP_POINTS.get(route)
        if stop_points is None:
            logger.info("bus_route_not_supported", route=route)
            msg = f"Bus route {route} is not currently supported"
            raise UnsupportedValueError(msg)
        return stop_points.at_home if at_home else stop_points.away

    async def next_bus(self, route: str | None, *, at_home: bool = True) -> Leg:
        """
        Get the next two arrivals of a supported bus route.

        The route's line status and the stop's arrival board are fetched
        concurrently. Unsupported routes are rejected before any request.

        Args:
            route: Bus route number (e.g. "486")
            at_home: Use the outbound (home) stop rather than the return stop

        Returns:
            Bus leg; degraded with "N/A" times if no arrivals are predicted

        Raises:
            MissingParameterError: If route is empty
            UnsupportedValueError: If the route is not configured
            UpstreamFetchError: If TfL cannot be reached
        """
        route = require_param(route, "route")
        stop_point = self.resolve_stop_point(route, at_home=at_home)

        status_leg, arrivals = await asyncio.gather(
            self.bus_status(route),
            self.client.fetch_tfl(f"/StopPoint/{stop_point}/Arrivals", mode="bus", line=route),
        )
        leg = normalize_bus_arrivals(route, arrivals, status_leg, self.clock())
        if leg.degraded:
            logger.warning("next_bus_degraded", route=route, stop_point=stop_point, error=leg.error)
        else:
            logger.info("next_bus_fetched", route=route, stop_point=stop_point, first_time=leg.first_time)
        return leg

    async def _fetch_first_journey(
        self,
        start_id: str,
        end_id: str,
        departure_time_offset: timedelta | None,
        mode: str | None = None,
    ) -> TflJourney:
        """
        First journey the TfL planner returns between two stops.

        Raises:
            NoDataError: If the planner returns no journeys
        """
        params: dict[str, str] = {}
        if mode:
            params["mode"] = mode
        if departure_time_offset is not None:
            departing = self.clock() + departure_time_offset
            params |= {"date": departing.strftime("%Y%m%d"), "time": departing.strftime("%H%M"), "timeIs": "Departing"}

        results: TflJourneyResults | None = await self.client.fetch_tfl(
            f"/Journey/JourneyResults/{quote(start_id, safe=',')}/to/{quote(end_id, safe=',')}",
            **params,
        )
        journeys = (results or {}).get("journeys") or []
        if not journeys:
            logger.warning("journey_no_results", start_id=start_id, end_id=end_id, mode=mode)
            raise NoDataError(TFL_PROVIDER)
        return journeys[0]

    async def next_tube(
        self,
        line: str | None,
        start_id: str | None,
        end_id: str | None,
        departure_time_offset: timedelta | None = None,
    ) -> Leg:
        """
        Get the next tube journey between two stations along with line status.

        Args:
            line: Tube line id (status is reported for this line)
            start_id: Origin NaPTAN id (e.g. "940GZZLUCHX")
            end_id: Destination NaPTAN id
            departure_time_offset: Depart this long after now (default: now)

        Returns:
            Tube leg with departure/arrival times and duration

        Raises:
            MissingParameterError: If any of line, start_id or end_id is empty
            NoDataError: If the journey planner finds nothing
            UpstreamFetchError: If TfL cannot be reached
        """
        line = require_param(line, "line")
        start_id = require_param(start_id, "startID")
        end_id = require_param(end_id, "endID")

        status_leg, journey = await asyncio.gather(
            self.tube_status(line),
            self._fetch_first_journey(start_id, end_id, departure_time_offset, mode="tube"),
        )
        leg = normalize_tube_journey(status_leg, journey)
        logger.info(
            "next_tube_fetched",
            line=leg.line,
            start_id=start_id,
            end_id=end_id,
            departure_time=leg.departure_time,
            disruption=leg.disruption,
        )
        return leg

    async def plan_journey(
        self,
        start_id: str | None,
        end_id: str | None,
        departure_time_offset: timedelta | None = None,
    ) -> JourneyPlan:
        """
        Plan a multi-modal journey with the TfL journey planner.

        Journey planning has no degraded form: no journeys is an error.

        Args:
            start_id: Origin (NaPTAN id, postcode or "lat,long")
            end_id: Destination in the same forms
            departure_time_offset: Depart this long after now (default: now)

        Raises:
            MissingParameterError: If start_id or end_id is empty
            NoDataError: If the planner returns no journeys
            UpstreamFetchError: If TfL cannot be reached
        """
        start_id = require_param(start_id, "startID")
        end_id = require_param(end_id, "endID")

        journey = await self._fetch_first_journey(start_id, end_id, departure_time_offset)
        plan = normalize_journey(start_id, end_id, journey)
        logger.info(
            "journey_planned",
            start_id=start_id,
            end_id=end_id,
            legs=len(plan.legs),
            any_disruptions=plan.any_disruptions,
        )
        return plan
