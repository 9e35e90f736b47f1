"""Pure helpers for validating request parameters inside the services."""

from app.helpers.errors import MissingParameterError


def require_param(value: str | None, name: str) -> str:
    """
    Return ``value`` stripped, or raise if it is missing or blank.

    Examples:
        >>> require_param(" 486 ", "route")
        '486'
        >>> require_param("", "route")
        Traceback (most recent call last):
        ...
        app.helpers.errors.MissingParameterError: Missing param: route
    """
    if value is None or not str(value).strip():
        raise MissingParameterError(name)
    return str(value).strip()


def parse_flag(value: str | bool | None, *, default: bool) -> bool:
    """
    Parse a "true"/"false" query flag, falling back to ``default`` for anything else.

    Examples:
        >>> parse_flag("false", default=True)
        False
        >>> parse_flag("TRUE", default=False)
        True
        >>> parse_flag("maybe", default=True)
        True
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized == "true":
        return True
    if normalized == "false":
        return False
    return default
