"""Mapping from Strava activity payloads to collection fields."""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping

DEFAULT_FIELD_MAP: Dict[str, str] = {
    "name": "name",
    "sport_type": "sport_type",
    "start_date": "start_date",
    "distance": "distance",
    "moving_time": "moving_time",
    "elapsed_time": "elapsed_time",
    "total_elevation_gain": "total_elevation_gain",
}


class ActivityMapper:
    """Project a Strava activity onto the activity collection's schema.

    The raw payload always goes to ``data`` as compact JSON, which is what the
    ``"id":<activity id>`` lookup matches against.
    """

    def __init__(self, field_map: Mapping[str, str] | None = None) -> None:
        self._field_map = dict(field_map or DEFAULT_FIELD_MAP)

    def to_item(self, activity: Mapping[str, Any]) -> Dict[str, Any]:
        item = {
            field: activity.get(source) for field, source in self._field_map.items()
        }
        item["data"] = json.dumps(activity, separators=(",", ":"))
        return item


__all__ = ["ActivityMapper", "DEFAULT_FIELD_MAP"]
