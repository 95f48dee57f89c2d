import math
from typing import Any, Dict, Optional, Tuple

INTERACTION_TYPES = (
    "view",
    "like",
    "comment",
    "share",
    "play",
    "pause",
    "complete",
)

REQUIRED_FIELDS = [
    "username",
    "session_id",
    "video_id",
    "interaction_type",
]


def _is_nonempty_str(x: Any) -> bool:
    return isinstance(x, str) and len(x.strip()) > 0


def _is_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def validate_interaction(payload: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """Checks an interaction posted by the player before it is recorded."""
    for f in REQUIRED_FIELDS:
        if f not in payload:
            return False, f"missing {f}"

    for f in ("username", "session_id", "video_id"):
        if not _is_nonempty_str(payload.get(f)):
            return False, f"{f} must be non-empty string"

    if payload.get("interaction_type") not in INTERACTION_TYPES:
        return False, "invalid interaction_type"

    caption = payload.get("video_caption")
    if caption is not None and not isinstance(caption, str):
        return False, "video_caption must be string"

    duration = payload.get("watch_duration")
    if duration is not None and (not _is_number(duration) or not math.isfinite(duration) or duration < 0):
        return False, "watch_duration must be a finite non-negative number"

    device = payload.get("device_info")
    if device is not None:
        if not isinstance(device, dict):
            return False, "device_info must be an object"
        for f in ("screen_width", "screen_height"):
            if device.get(f) is not None and not _is_number(device.get(f)):
                return False, f"device_info.{f} must be a number"

    location = payload.get("location")
    if location is not None and not isinstance(location, dict):
        return False, "location must be an object"

    return True, None


def parse_interaction_dict(payload: Dict[str, Any]) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    ok, err = validate_interaction(payload)
    if not ok:
        return None, err
    return payload, None


def normalize_device_info(device: Optional[Dict[str, Any]], user_agent: str = "") -> Dict[str, Any]:
    device = device or {}
    return {
        "user_agent": device.get("user_agent") or user_agent,
        "platform": device.get("platform") or "",
        "screen_width": device.get("screen_width") or 0,
        "screen_height": device.get("screen_height") or 0,
    }
