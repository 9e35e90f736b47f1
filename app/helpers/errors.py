"""Domain exceptions raised by the travel services.

Services raise these and never build HTTP responses themselves. The exception
handlers registered in app.main translate each one into the response envelope,
using the ``status_code`` and ``public_message`` carried on the class.
"""

from fastapi import status


class TravelError(Exception):
    """Base exception for travel lookups."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    @property
    def public_message(self) -> str:
        """Message that is safe to show to API callers."""
        return str(self)


class MissingParameterError(TravelError):
    """Raised when a required parameter is absent or empty."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, parameter: str) -> None:
        self.parameter = parameter
        super().__init__(f"Missing param: {parameter}")


class InvalidParameterError(TravelError):
    """Raised when a parameter is present but cannot be parsed."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, parameter: str, value: object) -> None:
        self.parameter = parameter
        self.value = value
        super().__init__(f"Invalid param: {parameter}={value!r}")


class UnsupportedValueError(TravelError):
    """
    Raised for well-formed values the service does not know about.

    For example an unrecognised bus route or commute user. These are rejected
    before any upstream request is made.
    """

    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamFetchError(TravelError):
    """
    Raised when an upstream transport API cannot be reached or errors.

    The underlying cause is logged where it happens; callers only ever see the
    generic public message.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, provider: str, detail: str) -> None:
        self.provider = provider
        self.detail = detail
        super().__init__(f"{provider} request failed: {detail}")

    @property
    def public_message(self) -> str:
        return "There was a problem fetching transport data"


class NoDataError(TravelError):
    """Raised when an upstream call succeeds but returns nothing usable and no degraded result exists."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(f"No data was returned from the call to the {provider} API")


class PlanConfigurationError(TravelError):
    """Raised when a commute plan table is inconsistent (unknown or cyclic dependencies)."""

    @property
    def public_message(self) -> str:
        return "Commute plan is misconfigured"
