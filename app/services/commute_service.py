"""Commute service composing several transport legs for a named user."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any

import structlog

from app.core.config import Settings
from app.core.telemetry import service_span
from app.helpers.commute_scheduling import aggregate_legs, departure_offset_after, dispatch_order
from app.helpers.errors import MissingParameterError, UnsupportedValueError
from app.helpers.geofence import classify_location, parse_coordinate
from app.helpers.params import require_param
from app.helpers.time_formatting import now_in, parse_departure_offset
from app.schemas.commute import CommutePlans, LegDescriptor, LegOperation, UserCommutePlan
from app.schemas.travel import CommuteResult, Leg
from app.services.tfl_service import TfLService
from app.services.train_service import TrainService

logger = structlog.get_logger(__name__)

LegFetcher = Callable[..., Awaitable[Leg]]


class CommuteService:
    """
    Service assembling a user's commute from their plan.

    A request moves through: resolve user, resolve location (home geofence),
    select plan, dispatch legs, aggregate. Independent legs are fetched
    concurrently; a leg with ``depends_on`` waits for its prerequisite and
    departs after its arrival plus a buffer. Results are returned in planned
    order regardless of which fetch finished first.
    """

    def __init__(
        self,
        tfl_service: TfLService,
        train_service: TrainService,
        plans: CommutePlans,
        settings: Settings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize the commute service.

        Args:
            tfl_service: Tube and bus legs
            train_service: Train legs
            plans: Commute plan table keyed by user
            settings: Application settings (geofences, timezone)
            clock: Returns the current time; defaults to now in settings.TIMEZONE
        """
        self.plans = plans
        self.settings = settings
        self.clock = clock or (lambda: now_in(settings.TIMEZONE))
        self.fetchers: dict[LegOperation, LegFetcher] = {
            LegOperation.TUBE_STATUS: tfl_service.tube_status,
            LegOperation.NEXT_TUBE: tfl_service.next_tube,
            LegOperation.BUS_STATUS: tfl_service.bus_status,
            LegOperation.NEXT_BUS: tfl_service.next_bus,
            LegOperation.NEXT_TRAIN: train_service.next_train,
            LegOperation.TRAIN_DEPARTURES: train_service.train_departures,
        }

    def resolve_user(self, user: str | None) -> UserCommutePlan:
        """
        Look up the plan for ``user``.

        Raises:
            MissingParameterError: If user is empty
            UnsupportedValueError: If the user has no plan
        """
        user = require_param(user, "user")
        plan = self.plans.for_user(user)
        if plan is None:
            logger.info("commute_user_not_supported", user=user)
            msg = f"User {user} is not supported"
            raise UnsupportedValueError(msg)
        return plan

    def resolve_location(self, lat: str | float | None, long: str | float | None) -> bool:
        """
        Decide whether the caller is at home.

        No coordinates means at home. When coordinates are given they are
        classified against every configured geofence and the caller is at
        home when inside the home one.

        Raises:
            MissingParameterError: If only one of lat/long is given
            InvalidParameterError: If a coordinate is not a number in range
        """
        lat_missing = lat is None or lat == ""
        long_missing = long is None or long == ""
        if lat_missing and long_missing:
            return True
        if lat_missing:
            raise MissingParameterError("lat")
        if long_missing:
            raise MissingParameterError("long")

        membership = classify_location(
            parse_coordinate(lat, "lat"),
            parse_coordinate(long, "long"),
            self.settings.GEOFENCES,
        )
        logger.debug("commute_location_classified", regions=membership)
        if self.settings.HOME_GEOFENCE not in membership:
            logger.warning("home_geofence_not_configured", name=self.settings.HOME_GEOFENCE)
            return True
        return membership[self.settings.HOME_GEOFENCE]

    async def get_commute(
        self,
        user: str | None,
        lat: str | float | None = None,
        long: str | float | None = None,
    ) -> CommuteResult:
        """
        Build the commute for ``user`` at the given location.

        Args:
            user: User identity (case insensitive)
            lat: Latitude, number or numeric string
            long: Longitude, number or numeric string

        Returns:
            Legs ordered by plan order and the OR of their disruption flags.
            A user without a plan for this location gets an empty result.

        Raises:
            MissingParameterError: If user is empty or only one coordinate is given
            UnsupportedValueError: If the user is unknown (no upstream call is made)
            TravelError: The first leg failure; no partial commute is returned
        """
        plan = self.resolve_user(user)
        at_home = self.resolve_location(lat, long)
        descriptors = plan.select(at_home=at_home)
        logger.info("commute_plan_selected", user=user, at_home=at_home, legs=len(descriptors))

        if not descriptors:
            return CommuteResult()

        with service_span("commute.compose", "commute-service", legs=len(descriptors), at_home=at_home) as span:
            legs = await self.dispatch_legs(descriptors, at_home=at_home)
            result = aggregate_legs(legs)
            span.set_attribute("commute.any_disruptions", result.any_disruptions)

        logger.info("commute_composed", user=user, legs=len(result.legs), any_disruptions=result.any_disruptions)
        return result

    async def dispatch_legs(self, descriptors: list[LegDescriptor], *, at_home: bool) -> list[Leg]:
        """
        Fetch every leg of a plan, honouring dependencies.

        All dispatched fetches run to completion; if any failed, the failure of
        the lowest-ordered leg is raised.
        """
        tasks: dict[int, asyncio.Task[Leg]] = {}
        for descriptor in dispatch_order(descriptors):
            tasks[descriptor.order] = asyncio.create_task(self._run_leg(descriptor, tasks, at_home=at_home))

        results = await asyncio.gather(*tasks.values(), return_exceptions=True)
        by_order = dict(zip(tasks.keys(), results, strict=True))
        for order in sorted(by_order):
            outcome = by_order[order]
            if isinstance(outcome, BaseException):
                logger.error("commute_leg_failed", order=order, error=str(outcome))
                raise outcome
        return [leg for leg in results if isinstance(leg, Leg)]

    async def _run_leg(
        self,
        descriptor: LegDescriptor,
        tasks: dict[int, asyncio.Task[Leg]],
        *,
        at_home: bool,
    ) -> Leg:
        params: dict[str, Any] = dict(descriptor.parameters)
        if descriptor.operation is LegOperation.NEXT_BUS:
            params.setdefault("at_home", at_home)
        if "departure_time_offset" in params and not isinstance(params["departure_time_offset"], timedelta):
            params["departure_time_offset"] = parse_departure_offset(params["departure_time_offset"])

        if descriptor.depends_on is not None:
            prerequisite = await tasks[descriptor.depends_on]
            offset = departure_offset_after(prerequisite, descriptor.connection_buffer_minutes, self.clock())
            if offset is None:
                logger.warning(
                    "connecting_leg_without_arrival",
                    order=descriptor.order,
                    depends_on=descriptor.depends_on,
                )
            else:
                params["departure_time_offset"] = offset

        logger.debug(
            "commute_leg_dispatched",
            order=descriptor.order,
            mode=descriptor.mode,
            operation=descriptor.operation,
        )
        leg = await self.fetchers[descriptor.operation](**params)
        return leg.model_copy(update={"order": descriptor.order})
