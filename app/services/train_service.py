"""Train service for TransportAPI live departure boards."""

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta

import structlog

from app.core.config import Settings
from app.helpers.errors import NoDataError, UnsupportedValueError
from app.helpers.leg_normalizers import (
    board_departures,
    degraded_train_leg,
    normalize_train_board,
    normalize_train_departure,
    rank_train_departures,
)
from app.helpers.params import require_param
from app.helpers.time_formatting import format_transport_api_offset, now_in
from app.schemas.travel import Leg
from app.services.transport_client import TRANSPORT_API_PROVIDER, TransportClient
from app.types.upstream import ServiceTimetable, TrainDeparture, TrainDepartureBoard

logger = structlog.get_logger(__name__)

# Passenger services only; darwin=false keeps TransportAPI's own estimates
BOARD_PARAMS = {"darwin": "false", "train_status": "passenger"}


class TrainService:
    """Service producing normalized train legs from TransportAPI."""

    def __init__(
        self,
        client: TransportClient,
        settings: Settings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize the train service.

        Args:
            client: Upstream transport client
            settings: Application settings (home station, platform, destinations)
            clock: Returns the current time; defaults to now in settings.TIMEZONE
        """
        self.client = client
        self.settings = settings
        self.clock = clock or (lambda: now_in(settings.TIMEZONE))

    async def train_departures(self, destination: str | None) -> Leg:
        """
        Next two trains from the home station towards a supported destination.

        Args:
            destination: CRS code of the destination (e.g. "CHX")

        Returns:
            Train leg with first/second times; degraded and disrupted if no
            trains are listed on the configured platform

        Raises:
            MissingParameterError: If destination is empty
            UnsupportedValueError: If the destination is not configured
            NoDataError: If TransportAPI returns an empty body
            UpstreamFetchError: If TransportAPI cannot be reached
        """
        destination = require_param(destination, "destination").upper()
        if destination not in self.settings.TRAIN_DESTINATIONS:
            logger.info("train_destination_not_supported", destination=destination)
            msg = f"Train route {destination} is not currently supported"
            raise UnsupportedValueError(msg)

        board: TrainDepartureBoard | None = await self.client.fetch_transport_api(
            f"/train/station/{self.settings.HOME_STATION}/live.json",
            destination=destination,
            **BOARD_PARAMS,
        )
        if board is None:
            logger.error("train_board_no_data", station=self.settings.HOME_STATION, destination=destination)
            raise NoDataError(TRANSPORT_API_PROVIDER)

        leg = normalize_train_board(board_departures(board), self.settings.TRAIN_PLATFORM, self.clock())
        logger.info(
            "train_departures_fetched",
            station=self.settings.HOME_STATION,
            destination=destination,
            first_time=leg.first_time,
            disruption=leg.disruption,
        )
        return leg

    async def _fetch_timetable(self, departure: TrainDeparture) -> ServiceTimetable | None:
        """Follow a departure's service timetable link, if it has one."""
        url = (departure.get("service_timetable") or {}).get("id")
        if not url:
            return None
        return await self.client.fetch_transport_api_url(url)

    async def next_trains(
        self,
        start_id: str | None,
        end_id: str | None,
        departure_time_offset: timedelta | None = None,
        *,
        disruption_override: bool = False,
        limit: int | None = None,
    ) -> list[Leg]:
        """
        Trains from one station calling at another, earliest departure first.

        Each departure's service timetable is fetched (concurrently) to find
        the arrival time at ``end_id`` and the journey duration.

        Args:
            start_id: CRS code of the departure station
            end_id: CRS code of the station the train must call at
            departure_time_offset: Only trains departing this long after now
            disruption_override: Drop cancelled trains before ranking
            limit: Keep only this many of the earliest trains; timetables are
                fetched for those alone

        Returns:
            Train legs, or a single degraded disrupted leg if no trains remain

        Raises:
            MissingParameterError: If start_id or end_id is empty
            UpstreamFetchError: If TransportAPI cannot be reached
        """
        start_id = require_param(start_id, "startID").upper()
        end_id = require_param(end_id, "endID").upper()

        params = {"calling_at": end_id, **BOARD_PARAMS}
        if departure_time_offset is not None:
            params["from_offset"] = format_transport_api_offset(departure_time_offset)

        board: TrainDepartureBoard | None = await self.client.fetch_transport_api(
            f"/train/station/{start_id}/live.json",
            **params,
        )
        departures = rank_train_departures(
            board_departures(board),
            self.clock(),
            disruption_override=disruption_override,
        )
        if limit is not None:
            departures = departures[:limit]
        if not departures:
            logger.warning(
                "next_trains_none_remaining",
                start_id=start_id,
                end_id=end_id,
                disruption_override=disruption_override,
            )
            return [degraded_train_leg()]

        timetables = await asyncio.gather(*(self._fetch_timetable(departure) for departure in departures))
        legs = [
            normalize_train_departure(departure, end_id, timetable)
            for departure, timetable in zip(departures, timetables, strict=True)
        ]
        logger.info(
            "next_trains_fetched",
            start_id=start_id,
            end_id=end_id,
            count=len(legs),
            disrupted=sum(leg.disruption for leg in legs),
        )
        return legs

    async def next_train(
        self,
        start_id: str | None,
        end_id: str | None,
        departure_time_offset: timedelta | None = None,
        *,
        disruption_override: bool = False,
    ) -> Leg:
        """Earliest train of next_trains(), as a single commute leg."""
        legs = await self.next_trains(
            start_id,
            end_id,
            departure_time_offset,
            disruption_override=disruption_override,
            limit=1,
        )
        return legs[0]
