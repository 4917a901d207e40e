# readiness/audit/report.py
"""
Turns the audit service payload into the view data the report template
renders. Everything here is tolerant of missing keys: the service adds and
drops fields over time and the report must still render.
"""
import math
from typing import Any, Dict, List, Optional

SCORE_RING_RADIUS = 85

AI_BREAKDOWN = [
    ("Structured Data", "structuredDataPresence", 30),
    ("Service Clarity", "serviceClarity", 25),
    ("Machine Intent", "machineReadableIntent", 25),
    ("Content Quality", "contentQuality", 20),
]
SEO_BREAKDOWN = [
    ("Metadata", "metadataQuality", 30),
    ("Page Structure", "pageStructure", 30),
    ("Technical SEO", "technicalSEO", 20),
]
GEO_BREAKDOWN = [
    ("Answer-Friendliness", "answerFriendliness", 30),
    ("Entity Clarity", "entityClarity", 30),
    ("Agent Formatting", "agentFriendlyFormatting", 20),
    ("Ambiguity Reduction", "ambiguityReduction", 20),
]

INSIGHTS = [
    ("Service Clarity", "serviceClarity", "blue", "\U0001F3AF"),
    ("Entity Clarity", "entityClarity", "purple", "\U0001F3E2"),
    ("Content Consistency", "contentConsistency", "green", "✓"),
    ("Answer-Friendliness", "answerFriendliness", "orange", "\U0001F4AC"),
]

SEVERITY = {
    "High": ("error", "\U0001F534"),
    "Medium": ("warning", "\U0001F7E1"),
}
DIFFICULTY = {"Easy": "success", "Medium": "warning"}


def _num(value: Any, default: float = 0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def score_class(score: Any) -> str:
    s = _num(score)
    if s >= 90:
        return "score-excellent"
    if s >= 75:
        return "score-good"
    if s >= 50:
        return "score-fair"
    return "score-poor"


def score_bg_class(score: Any) -> str:
    return "card-" + score_class(score)


def confidence_class(confidence: Any) -> str:
    c = _num(confidence)
    if c >= 0.8:
        return "confidence-high"
    if c >= 0.5:
        return "confidence-medium"
    return "confidence-low"


def breakdown_rows(breakdown: Optional[Dict[str, Any]], layout) -> List[Dict[str, Any]]:
    rows = []
    for label, key, maximum in layout:
        value = _num((breakdown or {}).get(key))
        rows.append({
            "label": label,
            "value": round(value),
            "max": maximum,
            "percent": max(0.0, min(100.0, value / maximum * 100)),
        })
    return rows


def _score_card(block: Optional[Dict[str, Any]], layout, color: str) -> Optional[Dict[str, Any]]:
    if not block:
        return None
    return {
        "score": block.get("score", 0),
        "level": block.get("level", ""),
        "level_class": score_class(block.get("score")),
        "interpretation": block.get("interpretation") or "",
        "breakdown": breakdown_rows(block.get("breakdown"), layout) if block.get("breakdown") else [],
        "color": color,
    }


def _schema_view(schema: Dict[str, Any]) -> Dict[str, Any]:
    view: Dict[str, Any] = {
        "overall_score": schema.get("overallScore") or "--",
        "present_types": schema.get("presentTypes") or [],
        "missing_types": schema.get("missingCriticalTypes") or [],
        "services_check": None,
        "assessments": [],
        "improvements": schema.get("topImprovements") or [],
    }

    can_list = schema.get("canAIListServices")
    if can_list:
        answer = can_list.get("answer")
        klass, icon, text = {
            "yes": ("success", "✓", "Yes"),
            "partially": ("warning", "⚠", "Partially"),
        }.get(answer, ("error", "✗", "No"))
        view["services_check"] = {
            "class": klass,
            "icon": icon,
            "answer": text,
            "confidence": can_list.get("confidence"),
            "reasoning": can_list.get("reasoning") or "",
        }

    org = schema.get("organizationClarity")
    if org:
        view["assessments"].append({
            "title": "Organization",
            "subtitle": "Who is your business?",
            "score": org.get("score", 0),
            "checks": [
                ("Business name", bool(org.get("nameFound"))),
                ("Description", bool(org.get("descriptionFound"))),
                ("Website URL", bool(org.get("urlFound"))),
                ("Logo", bool(org.get("logoFound"))),
                ("Contact info", bool(org.get("contactFound"))),
            ],
        })

    svc = schema.get("serviceClarity")
    if svc:
        view["assessments"].append({
            "title": "Services",
            "subtitle": "What does your business do?",
            "score": svc.get("score", 0),
            "checks": [
                ("Service schema", bool(svc.get("hasServiceSchema"))),
                ("Offer schema", bool(svc.get("hasOfferSchema"))),
                ("Offer catalog", bool(svc.get("hasOfferCatalog"))),
            ],
            "services_in_schema": svc.get("servicesInSchema") or 0,
        })

    ic = schema.get("identityConsistency")
    if ic:
        view["assessments"].append({
            "title": "Consistency",
            "subtitle": "Is your identity consistent?",
            "score": ic.get("score", 0),
            "schema_name": ic.get("schemaName"),
            "h1_text": ic.get("h1Text"),
            "is_consistent": bool(ic.get("isConsistent")),
            "checks": [],
        })

    for a in view["assessments"]:
        a["score_class"] = score_class(a["score"])
    return view


def recommendation_view(rec: Dict[str, Any]) -> Dict[str, Any]:
    severity_class, severity_icon = SEVERITY.get(rec.get("severity"), ("info", "\U0001F7E2"))
    current = _num(rec.get("currentScore"))
    gained = _num(rec.get("pointsGained"))
    maximum = _num(rec.get("maxScore"))
    category = rec.get("category") or []
    if isinstance(category, str):
        category = [category]
    return {
        "title": rec.get("title") or "",
        "severity": rec.get("severity") or "",
        "severity_class": severity_class,
        "severity_icon": severity_icon,
        "categories": category,
        "impact": rec.get("impact") or "",
        "difficulty": rec.get("difficulty") or "",
        "difficulty_class": DIFFICULTY.get(rec.get("difficulty"), "error"),
        "difficulty_explanation": rec.get("difficultyExplanation") or "",
        "what_to_do": rec.get("whatToDo") or "",
        "points_gained": rec.get("pointsGained", 0),
        "current_score": rec.get("currentScore", 0),
        "max_score": rec.get("maxScore", 0),
        "potential": _fmt_number(min(current + gained, maximum)),
    }


def _fmt_number(value: float):
    return int(value) if float(value).is_integer() else value


def build_report_view(result: Dict[str, Any]) -> Dict[str, Any]:
    scores = result.get("scores") or {}
    overall = scores.get("overall") or {}
    overall_score = _num(overall.get("score"))
    circumference = 2 * math.pi * SCORE_RING_RADIUS

    llm = result.get("llmAnalysis")
    insights = None
    if llm:
        insights = [
            {
                "title": title,
                "color": color,
                "icon": icon,
                "score": (llm.get(key) or {}).get("score") or "--",
                "reasoning": (llm.get(key) or {}).get("reasoning") or "",
            }
            for title, key, color, icon in INSIGHTS
        ]

    return {
        "url": result.get("url", ""),
        "load_time": result.get("loadTime"),
        "overall": {
            "score": _fmt_number(overall_score),
            "level": overall.get("level") or "unknown",
            "class": score_class(overall_score),
            "bg_class": score_bg_class(overall_score),
            "circumference": circumference,
            "offset": circumference * (1 - overall_score / 100),
        },
        "ai": _score_card(scores.get("aiReadiness"), AI_BREAKDOWN, "blue"),
        "seo": _score_card(scores.get("seo"), SEO_BREAKDOWN, "green"),
        "geo": _score_card(scores.get("geo"), GEO_BREAKDOWN, "purple"),
        "insights": insights,
        "schema": _schema_view(result["schemaAudit"]) if result.get("schemaAudit") else None,
        "recommendations": [recommendation_view(r) for r in result.get("recommendations") or []],
    }
