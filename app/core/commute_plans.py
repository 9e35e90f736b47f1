"""Built-in commute plan table and loader for plan files."""

import json
from pathlib import Path

import structlog
from pydantic import ValidationError

from app.helpers.errors import PlanConfigurationError
from app.schemas.commute import CommutePlans

logger = structlog.get_logger(__name__)

# Station codes: CTN Charlton, CHX Charing Cross, CST Cannon Street (CRS);
# 940GZZLU* are TfL NaPTAN ids used by the journey planner.
DEFAULT_COMMUTE_PLANS: dict[str, dict[str, list[dict[str, object]]]] = {
    "FRAN": {
        "at_home": [
            {"order": 0, "operation": "train_departures", "parameters": {"destination": "CHX"}},
            {"order": 1, "operation": "next_bus", "parameters": {"route": "9"}},
            {"order": 2, "operation": "train_departures", "parameters": {"destination": "CST"}},
            {"order": 3, "operation": "tube_status", "parameters": {"line": "district"}},
        ],
        "away": [],
    },
    "JP": {
        "at_home": [
            {"order": 0, "operation": "next_train", "parameters": {"start_id": "CTN", "end_id": "CHX"}},
            {
                "order": 1,
                "operation": "next_tube",
                "parameters": {"line": "northern", "start_id": "940GZZLUCHX", "end_id": "940GZZLUEUS"},
                "depends_on": 0,
                "connection_buffer_minutes": 5,
            },
            {"order": 2, "operation": "next_bus", "parameters": {"route": "486"}},
            {"order": 3, "operation": "tube_status", "parameters": {"line": "jubilee"}},
            {"order": 4, "operation": "tube_status", "parameters": {"line": "northern"}},
        ],
        "away": [
            {"order": 0, "operation": "next_bus", "parameters": {"route": "486"}},
            {"order": 1, "operation": "next_bus", "parameters": {"route": "161"}},
        ],
    },
}


def load_commute_plans(path: str | None = None) -> CommutePlans:
    """
    Load the commute plan table.

    Args:
        path: Optional JSON file with the same shape as DEFAULT_COMMUTE_PLANS.
              When omitted the built-in table is used.

    Returns:
        Validated commute plans

    Raises:
        PlanConfigurationError: If the file cannot be read or fails validation
    """
    if path is None:
        return CommutePlans.model_validate(DEFAULT_COMMUTE_PLANS)

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        plans = CommutePlans.model_validate(raw)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error("commute_plans_load_failed", path=path, error=str(e))
        msg = f"Unable to load commute plans from {path}: {e}"
        raise PlanConfigurationError(msg) from e

    logger.info("commute_plans_loaded", path=path, users=sorted(plans.root))
    return plans
