import logging
import math
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from toptop_analytics.schema import normalize_device_info
from toptop_analytics.utils import epoch_ms, iso_timestamp, now_utc

logger = logging.getLogger(__name__)


def generate_id(now: datetime) -> str:
    return f"interaction_{epoch_ms(now)}_{uuid.uuid4().hex[:9]}"


def build_interaction(
    username: str,
    session_id: str,
    video_id: str,
    video_caption: str,
    interaction_type: str,
    watch_duration: Optional[float] = None,
    device_info: Optional[Dict[str, Any]] = None,
    location: Optional[Dict[str, Any]] = None,
    referrer: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    if watch_duration is not None:
        if isinstance(watch_duration, bool) or not isinstance(watch_duration, (int, float)):
            raise TypeError(f"watch_duration must be a number, got {watch_duration!r}")
        if not math.isfinite(watch_duration) or watch_duration < 0:
            raise ValueError(f"watch_duration must be finite and non-negative, got {watch_duration!r}")

    now = now or now_utc()
    event = {
        "id": generate_id(now),
        "username": username,
        "session_id": session_id,
        "video_id": video_id,
        "video_caption": video_caption,
        "interaction_type": interaction_type,
        "timestamp": iso_timestamp(now),
        "device_info": normalize_device_info(device_info),
    }
    if watch_duration is not None:
        event["watch_duration"] = watch_duration
    if location:
        event["location"] = location
    if referrer:
        event["referrer"] = referrer
    return event


def record_interaction(store, username, session_id, video_id, video_caption, interaction_type,
                       watch_duration=None, device_info=None, location=None, referrer=None,
                       now=None) -> Optional[Dict[str, Any]]:
    """
    Builds an interaction event and appends it to the store.

    Fire-and-forget: a failure is logged and never reaches the player.
    Returns the stored event, or None when nothing was saved.
    """
    try:
        event = build_interaction(
            username, session_id, video_id, video_caption, interaction_type,
            watch_duration=watch_duration,
            device_info=device_info,
            location=location,
            referrer=referrer,
            now=now,
        )
    except (TypeError, ValueError, AttributeError) as e:
        logger.error("Could not build interaction for video=%s: %s", video_id, e)
        return None

    if not store.append(event):
        return None

    logger.debug(
        "Interaction tracked: %s user=%s vid=%s duration=%s",
        interaction_type, username, video_id, watch_duration,
    )
    return event
