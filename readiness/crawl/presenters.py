# readiness/crawl/presenters.py
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..audit.report import confidence_class


def truncate(text: Optional[str], max_length: int) -> str:
    text = text or ""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def _percent(confidence: Any) -> int:
    try:
        return round(float(confidence or 0) * 100)
    except (TypeError, ValueError):
        return 0


def _crawl_date(raw: Optional[str]) -> str:
    if not raw:
        return datetime.now().strftime("%Y-%m-%d %H:%M")
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return raw


def group_questions(questions: List[Dict[str, Any]]) -> "OrderedDict[str, List[Dict[str, Any]]]":
    """Group by question type in first-seen order; untyped questions go under General."""
    groups: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()
    for q in questions:
        groups.setdefault(q.get("type") or "General", []).append(q)
    return groups


def build_results_view(site_id: str, results: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    summary = results.get("summary") or {}
    pages_data = results.get("pages") or {}
    entities = (results.get("entities") or {}).get("entities") or []
    relations = (results.get("relations") or {}).get("relations") or []
    questions_data = results.get("questions") or {}
    questions = questions_data.get("questions") or []

    status = summary.get("status") or "COMPLETED"
    return {
        "site": {
            "domain": summary.get("domain") or site_id,
            "url": summary.get("rootUrl") or "--",
            "crawl_date": _crawl_date(summary.get("crawlDate")),
            "status": status,
            "status_class": "status-" + status.lower(),
        },
        "stats": {
            "total_pages": (pages_data.get("pagination") or {}).get("total") or 0,
            "total_entities": summary.get("totalEntities") or 0,
            "total_relations": summary.get("totalRelations") or 0,
            "total_questions": questions_data.get("total") or 0,
            "max_depth_reached": summary.get("maxDepthReached") or "--",
            "duration": summary.get("duration") or "--",
        },
        "top_entities": summary.get("mostConnectedEntities") or [],
        "entity_types": summary.get("entityCountByType") or [],
        "pages": [
            {
                "url": p.get("url") or "--",
                "url_short": truncate(p.get("url") or "--", 60),
                "title": truncate(p.get("title") or "Untitled", 50),
                "depth": p.get("depth") if p.get("depth") is not None else "--",
                "entity_count": p.get("entityCount") or 0,
                "status": p.get("status") or "SUCCESS",
            }
            for p in pages_data.get("pages") or []
        ],
        "entities": [
            {
                "name": e.get("name") or "--",
                "type": e.get("type") or "--",
                "confidence": _percent(e.get("confidence")),
                "confidence_class": confidence_class(e.get("confidence") or 0),
                "mentions": e.get("mentions") or 0,
                "relationship_count": e.get("relationshipCount") or 0,
            }
            for e in entities
        ],
        "relations": [
            {
                "source": r.get("sourceEntity") or "--",
                "type": r.get("type") or "--",
                "target": r.get("targetEntity") or "--",
                "confidence": _percent(r.get("confidence")),
                "confidence_class": confidence_class(r.get("confidence") or 0),
            }
            for r in relations
        ],
        "question_groups": group_questions(questions),
    }
