import os
import tempfile
from pathlib import Path

# readiness.main builds a module-level app on import; keep its files out of the repo
_SCRATCH = Path(tempfile.mkdtemp(prefix="readiness-tests-"))
os.environ.setdefault("DATA_DIR", str(_SCRATCH / "data"))
os.environ.setdefault("UPLOAD_DIR", str(_SCRATCH / "uploads" / "images"))

import pytest  # noqa: E402
from PIL import Image  # noqa: E402

from readiness.audit.paginator import CapturedSection  # noqa: E402
from readiness.config import Settings  # noqa: E402

ADMIN_PASSWORD = "correct-horse"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATA_DIR=tmp_path / "data",
        UPLOAD_DIR=tmp_path / "uploads" / "images",
        DEFAULT_ADMIN_USERNAME="admin",
        DEFAULT_ADMIN_PASSWORD=ADMIN_PASSWORD,
        BLOG_CACHE_SECONDS=0,
        CRAWL_POLL_INTERVAL=0.05,
        SSE_HEARTBEAT_SECONDS=0.5,
        REPORT_LOGO_PATH=tmp_path / "missing-logo.png",
        REPORT_WHITE_LOGO_PATH=tmp_path / "missing-white-logo.png",
    )


def make_section(name, height_mm, rows=None, atomic=None, width_mm=194.0):
    """A captured section whose raster has ``rows`` pixel rows for ``height_mm``."""
    rows = rows or max(1, int(round(height_mm * 4)))
    image = Image.new("RGB", (40, rows), (200, 220, 240))
    return CapturedSection(
        name=name,
        image=image,
        width=width_mm,
        height=height_mm,
        is_atomic=(name == "recommendation") if atomic is None else atomic,
    )


@pytest.fixture
def audit_result():
    return {
        "url": "https://example.com",
        "loadTime": 812,
        "scores": {
            "overall": {"score": 72, "level": "Good"},
            "aiReadiness": {
                "score": 64,
                "level": "Fair",
                "interpretation": "Machines can partly understand this site.",
                "breakdown": {
                    "structuredDataPresence": 15,
                    "serviceClarity": 20,
                    "machineReadableIntent": 12,
                    "contentQuality": 17,
                },
            },
            "seo": {"score": 81, "level": "Good", "breakdown": {"metadataQuality": 25}},
            "geo": {"score": 55, "level": "Fair"},
        },
        "llmAnalysis": {
            "serviceClarity": {"score": 7, "reasoning": "Services are listed on the home page."},
            "entityClarity": {"score": 6, "reasoning": "The business name is consistent."},
        },
        "schemaAudit": {
            "overallScore": 40,
            "presentTypes": ["Organization"],
            "missingCriticalTypes": ["Service", "LocalBusiness"],
            "canAIListServices": {"answer": "partially", "confidence": "medium", "reasoning": "Only one offer."},
            "organizationClarity": {"score": 60, "nameFound": True, "urlFound": True},
            "serviceClarity": {"score": 20, "hasServiceSchema": False, "servicesInSchema": 0},
            "identityConsistency": {"score": 90, "schemaName": "Example", "h1Text": "Example", "isConsistent": True},
            "topImprovements": ["Add Service schema"],
        },
        "recommendations": [
            {
                "title": "Add Service schema",
                "severity": "High",
                "category": ["Schema"],
                "impact": "AI can list what you sell",
                "difficulty": "Easy",
                "whatToDo": "Describe each service with Service markup.",
                "pointsGained": 10,
                "currentScore": 64,
                "maxScore": 100,
            },
            {
                "title": "Write a clearer H1",
                "severity": "Low",
                "category": "Content",
                "difficulty": "Hard",
                "pointsGained": 50,
                "currentScore": 64,
                "maxScore": 100,
            },
        ],
    }


@pytest.fixture
def section():
    return make_section
