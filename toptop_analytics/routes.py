import logging

from flask import current_app, jsonify, request

from toptop_analytics import config
from toptop_analytics.aggregator import (
    all_video_metrics,
    interactions_by_user,
    interactions_by_video,
    recent_interactions,
    summarize,
    video_metrics,
)
from toptop_analytics.exporter import build_export, dumps_export, export_filename
from toptop_analytics.schema import parse_interaction_dict
from toptop_analytics.sessions import reconstruct_sessions
from toptop_analytics.tracker import record_interaction
from toptop_analytics.utils import now_utc

logger = logging.getLogger(__name__)


def _store():
    return current_app.extensions["event_log"]


def register_routes(app):
    @app.after_request
    def add_cors_headers(resp):
        resp.headers["Access-Control-Allow-Origin"] = "*"
        resp.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, OPTIONS"
        resp.headers["Access-Control-Allow-Headers"] = "content-type"
        return resp

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({
            "ok": True,
            "backend": _store().backend,
            "log_status": _store().snapshot().status
        }), 200

    @app.route("/interactions", methods=["OPTIONS"])
    def interactions_options():
        return ("", 204)

    @app.route("/interactions", methods=["POST"])
    def post_interactions():
        try:
            payload = request.get_json(force=True)
        except Exception:
            return jsonify({"ok": False, "error": "Invalid JSON"}), 400

        if isinstance(payload, dict) and "events" in payload and isinstance(payload["events"], list):
            incoming = payload["events"]
        else:
            incoming = [payload]

        user_agent = request.headers.get("User-Agent", "")
        accepted = 0
        rejected = 0
        errors = []

        logger.info("/interactions called: events=%d", len(incoming))

        for idx, ev in enumerate(incoming):
            if not isinstance(ev, dict):
                rejected += 1
                errors.append({"index": idx, "error": "event is not an object"})
                logger.info("Rejected idx=%d: not an object", idx)
                continue

            parsed, err = parse_interaction_dict(ev)
            if parsed is None:
                rejected += 1
                errors.append({"index": idx, "error": err or "invalid event"})
                logger.info("Rejected idx=%d: %s type=%s", idx, err, ev.get("interaction_type"))
                continue

            device_info = dict(parsed.get("device_info") or {})
            device_info.setdefault("user_agent", user_agent)

            stored = record_interaction(
                _store(),
                parsed["username"],
                parsed["session_id"],
                parsed["video_id"],
                parsed.get("video_caption", ""),
                parsed["interaction_type"],
                watch_duration=parsed.get("watch_duration"),
                device_info=device_info,
                location=parsed.get("location"),
                referrer=parsed.get("referrer"),
            )
            if stored is None:
                rejected += 1
                errors.append({"index": idx, "error": "not stored"})
                continue

            logger.info(
                "Accepted idx=%d: %s vid=%s user=%s duration=%s",
                idx, parsed["interaction_type"], parsed["video_id"],
                parsed["username"], parsed.get("watch_duration"),
            )
            accepted += 1

        return jsonify({
            "ok": True,
            "accepted": accepted,
            "rejected": rejected,
            "errors": errors[:10]
        }), 200

    @app.route("/interactions", methods=["GET"])
    def get_interactions():
        events = _store().read_all()

        username = request.args.get("username")
        video_id = request.args.get("video_id")
        if username:
            events = interactions_by_user(events, username)
        if video_id:
            events = interactions_by_video(events, video_id)

        limit = request.args.get("limit", default=config.RECENT_INTERACTIONS_LIMIT, type=int)
        return jsonify({"interactions": recent_interactions(events, limit)}), 200

    @app.route("/interactions", methods=["DELETE"])
    def clear_interactions():
        if request.args.get("confirm", "").lower() != "true":
            return jsonify({"ok": False, "error": "confirm=true is required to clear analytics data"}), 400
        if not _store().clear():
            return jsonify({"ok": False, "error": "Clearing analytics data failed"}), 500
        return jsonify({"ok": True}), 200

    @app.route("/summary", methods=["GET"])
    def get_summary():
        snap = _store().snapshot()
        return jsonify({
            "summary": summarize(snap.events, config.TOP_VIDEOS_LIMIT),
            "log_status": snap.status
        }), 200

    @app.route("/sessions", methods=["GET"])
    def get_sessions():
        snap = _store().snapshot()
        return jsonify({
            "sessions": reconstruct_sessions(snap.events),
            "log_status": snap.status
        }), 200

    @app.route("/videos/metrics", methods=["GET"])
    def get_all_video_metrics():
        return jsonify({"videos": all_video_metrics(_store().read_all())}), 200

    @app.route("/videos/<video_id>/metrics", methods=["GET"])
    def get_video_metrics(video_id):
        return jsonify(video_metrics(_store().read_all(), video_id)), 200

    @app.route("/export", methods=["GET"])
    def export():
        now = now_utc()
        events = _store().read_all()
        body = dumps_export(build_export(events, summarize(events, config.TOP_VIDEOS_LIMIT), now=now))
        resp = current_app.response_class(body, mimetype="application/json")
        resp.headers["Content-Disposition"] = f'attachment; filename="{export_filename(now)}"'
        return resp
