import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from toptop_analytics.aggregator import summarize
from toptop_analytics.utils import epoch_ms, iso_timestamp, now_utc


def build_export(events: List[Dict[str, Any]], summary: Optional[Dict[str, Any]] = None,
                 now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or now_utc()
    return {
        "summary": summary if summary is not None else summarize(events),
        "interactions": events,
        "exported_at": iso_timestamp(now),
    }


def export_filename(now: Optional[datetime] = None) -> str:
    now = now or now_utc()
    return f"toptop-analytics-{epoch_ms(now)}.json"


def dumps_export(export: Dict[str, Any]) -> str:
    return json.dumps(export, ensure_ascii=False, indent=2)


def parse_export(text: str) -> Dict[str, Any]:
    doc = json.loads(text)
    if not isinstance(doc, dict):
        raise ValueError("export document must be a JSON object")
    for f in ("summary", "interactions", "exported_at"):
        if f not in doc:
            raise ValueError(f"export document missing {f}")
    return doc
