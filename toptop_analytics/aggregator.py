from typing import Any, Dict, List, Optional

from toptop_analytics.utils import parse_timestamp, safe_ratio

TOP_COUNTRIES_LIMIT = 5


def _duration(ev: Dict[str, Any]) -> float:
    return ev.get("watch_duration") or 0


def _empty_video_stats(video_id: str, caption: str) -> Dict[str, Any]:
    return {
        "video_id": video_id,
        "caption": caption,
        "views": 0,
        "view_sessions": set(),
        "likes": 0,
        "comments": 0,
        "shares": 0,
        "completions": 0,
        "view_watch_time": 0,
        "device_breakdown": {"mobile": 0, "desktop": 0, "tablet": 0},
        "views_by_hour": {},
        "countries": {},
    }


def _device_class(platform: str) -> str:
    platform = (platform or "").lower()
    if "ipad" in platform or "tablet" in platform:
        return "tablet"
    if "ios" in platform or "android" in platform or "iphone" in platform:
        return "mobile"
    return "desktop"


def _accumulate_video(stats: Dict[str, Any], ev: Dict[str, Any]) -> None:
    etype = ev.get("interaction_type")

    if etype == "view":
        stats["views"] += 1
        stats["view_sessions"].add(ev.get("session_id"))
        stats["view_watch_time"] += _duration(ev)
        ts = parse_timestamp(ev.get("timestamp"))
        if ts is not None:
            hour = f"{ts.hour:02d}"
            stats["views_by_hour"][hour] = stats["views_by_hour"].get(hour, 0) + 1
    elif etype == "like":
        stats["likes"] += 1
    elif etype == "comment":
        stats["comments"] += 1
    elif etype == "share":
        stats["shares"] += 1
    elif etype == "complete":
        stats["completions"] += 1

    device = ev.get("device_info") or {}
    stats["device_breakdown"][_device_class(device.get("platform"))] += 1

    country = (ev.get("location") or {}).get("country")
    if country:
        stats["countries"][country] = stats["countries"].get(country, 0) + 1


def _finalize_video(stats: Dict[str, Any]) -> Dict[str, Any]:
    views = stats["views"]
    engaged = stats["likes"] + stats["comments"] + stats["shares"]
    countries = sorted(stats["countries"].items(), key=lambda kv: kv[1], reverse=True)

    return {
        "video_id": stats["video_id"],
        "caption": stats["caption"],
        "views": views,
        "unique_views": len(stats["view_sessions"]),
        "likes": stats["likes"],
        "comments": stats["comments"],
        "shares": stats["shares"],
        "completions": stats["completions"],
        "engagement_rate": safe_ratio(engaged, views, 100),
        "total_watch_time": stats["view_watch_time"],
        "average_watch_time": safe_ratio(stats["view_watch_time"], views),
        "completion_rate": safe_ratio(stats["completions"], views, 100),
        "device_breakdown": stats["device_breakdown"],
        "views_by_hour": dict(sorted(stats["views_by_hour"].items())),
        "top_countries": [
            {"country": c, "views": n} for c, n in countries[:TOP_COUNTRIES_LIMIT]
        ],
    }


def all_video_metrics(events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Per-video rollups, one per distinct video_id, in first-seen order."""
    by_video: Dict[Any, Dict[str, Any]] = {}
    for ev in events:
        vid = ev.get("video_id")
        stats = by_video.get(vid)
        if stats is None:
            # first caption seen for an id wins
            stats = _empty_video_stats(vid, ev.get("video_caption", ""))
            by_video[vid] = stats
        _accumulate_video(stats, ev)
    return [_finalize_video(stats) for stats in by_video.values()]


def video_metrics(events: List[Dict[str, Any]], video_id: str) -> Dict[str, Any]:
    stats = None
    for ev in events:
        if ev.get("video_id") != video_id:
            continue
        if stats is None:
            stats = _empty_video_stats(video_id, ev.get("video_caption", ""))
        _accumulate_video(stats, ev)
    if stats is None:
        stats = _empty_video_stats(video_id, "")
    return _finalize_video(stats)


def top_videos(metrics: List[Dict[str, Any]], limit: int = 10) -> List[Dict[str, Any]]:
    # sorted() is stable, so equal view counts keep first-seen order
    return sorted(metrics, key=lambda m: m["views"], reverse=True)[:limit]


def user_activity(events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    by_user: Dict[Any, Dict[str, Any]] = {}
    for ev in events:
        name = ev.get("username")
        stats = by_user.get(name)
        if stats is None:
            stats = {
                "username": name,
                "session_id": ev.get("session_id"),
                "interactions": 0,
                "videos_watched": set(),
                "total_watch_time": 0,
            }
            by_user[name] = stats

        stats["interactions"] += 1
        if ev.get("interaction_type") == "view":
            stats["videos_watched"].add(ev.get("video_id"))
        stats["total_watch_time"] += _duration(ev)

    return [
        {
            "username": s["username"],
            "session_id": s["session_id"],
            "interactions": s["interactions"],
            "videos_watched": len(s["videos_watched"]),
            "total_watch_time": s["total_watch_time"],
        }
        for s in by_user.values()
    ]


def summarize(events: List[Dict[str, Any]], top_n: int = 10) -> Dict[str, Any]:
    counts = {"view": 0, "like": 0, "comment": 0, "share": 0}
    users = set()
    sessions = set()
    total_watch_time = 0

    for ev in events:
        etype = ev.get("interaction_type")
        if etype in counts:
            counts[etype] += 1
        users.add(ev.get("username"))
        sessions.add(ev.get("session_id"))
        total_watch_time += _duration(ev)

    return {
        "total_views": counts["view"],
        "total_likes": counts["like"],
        "total_comments": counts["comment"],
        "total_shares": counts["share"],
        "total_interactions": len(events),
        "total_users": len(users),
        "total_sessions": len(sessions),
        "total_watch_time": total_watch_time,
        "average_watch_time": safe_ratio(total_watch_time, counts["view"]),
        "top_videos": top_videos(all_video_metrics(events), top_n),
        "user_activity": user_activity(events),
    }


def interactions_by_user(events: List[Dict[str, Any]], username: str) -> List[Dict[str, Any]]:
    return [ev for ev in events if ev.get("username") == username]


def interactions_by_video(events: List[Dict[str, Any]], video_id: str) -> List[Dict[str, Any]]:
    return [ev for ev in events if ev.get("video_id") == video_id]


def recent_interactions(events: List[Dict[str, Any]], limit: Optional[int] = 50) -> List[Dict[str, Any]]:
    """Newest first; the log is in append order."""
    if limit is None:
        return list(reversed(events))
    if limit <= 0:
        return []
    return list(reversed(events[-limit:]))
