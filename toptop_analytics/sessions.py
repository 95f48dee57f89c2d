from datetime import datetime, timezone
from typing import Any, Dict, List

from toptop_analytics.utils import parse_timestamp

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def _new_session(ev: Dict[str, Any]) -> Dict[str, Any]:
    # device/location come from the first event seen for the session
    return {
        "session_id": ev.get("session_id"),
        "username": ev.get("username"),
        "start_time": ev.get("timestamp"),
        "last_activity": ev.get("timestamp"),
        "_start": None,
        "_last": None,
        "videos_watched": [],
        "total_watch_time": 0,
        "interactions": 0,
        "device_info": ev.get("device_info"),
        "location": ev.get("location"),
    }


def reconstruct_sessions(events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Groups the log by session_id into session summaries, most recent
    activity first.

    Timestamps that can't be parsed still count as interactions but don't
    move the activity window.
    """
    by_session: Dict[Any, Dict[str, Any]] = {}

    for ev in events:
        sid = ev.get("session_id")
        session = by_session.get(sid)
        if session is None:
            session = _new_session(ev)
            by_session[sid] = session

        ts = parse_timestamp(ev.get("timestamp"))
        if ts is not None:
            if session["_start"] is None or ts < session["_start"]:
                session["_start"] = ts
                session["start_time"] = ev.get("timestamp")
            if session["_last"] is None or ts > session["_last"]:
                session["_last"] = ts
                session["last_activity"] = ev.get("timestamp")

        vid = ev.get("video_id")
        if ev.get("interaction_type") == "view" and vid not in session["videos_watched"]:
            session["videos_watched"].append(vid)

        session["total_watch_time"] += ev.get("watch_duration") or 0
        session["interactions"] += 1

    ordered = sorted(
        by_session.values(),
        key=lambda s: s["_last"] or _EARLIEST,
        reverse=True,
    )

    result = []
    for s in ordered:
        result.append({
            "session_id": s["session_id"],
            "username": s["username"],
            "start_time": s["start_time"],
            "last_activity": s["last_activity"],
            "videos_watched": s["videos_watched"],
            "videos_watched_count": len(s["videos_watched"]),
            "total_watch_time": s["total_watch_time"],
            "interactions": s["interactions"],
            "device_info": s["device_info"],
            "location": s["location"],
        })
    return result
