# readiness/services/schema_service.py
"""
JSON-LD structured data for the public pages.

Every graph starts with the same Organization and WebSite nodes; page-level
nodes reference them by @id. Keys whose value is None are dropped before
serialization.
"""
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..config import Settings
from ..models import BlogPost, Category

SCHEMA_CONTEXT = "https://schema.org"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ") if value else None


def _drop_none(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _drop_none(v) for k, v in obj.items() if v is not None}
    if isinstance(obj, list):
        return [_drop_none(v) for v in obj]
    return obj


def _dumps(graph: List[Dict[str, Any]]) -> str:
    return json.dumps(_drop_none({"@context": SCHEMA_CONTEXT, "@graph": graph}), indent=2, ensure_ascii=False)


class SchemaService:
    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def site_url(self) -> str:
        return self.settings.SITE_URL

    def _organization(self, with_logo: bool = False) -> Dict[str, Any]:
        org = {
            "@type": "Organization",
            "@id": f"{self.site_url}/#organization",
            "name": self.settings.ORGANIZATION_NAME,
            "url": self.site_url,
        }
        if with_logo:
            org["logo"] = {"@type": "ImageObject", "url": f"{self.site_url}/assets/images/NewLogoWhite 2.png"}
        return org

    def _website(self) -> Dict[str, Any]:
        return {
            "@type": "WebSite",
            "@id": f"{self.site_url}/#website",
            "url": self.site_url,
            "name": self.settings.SITE_NAME,
            "publisher": {"@id": f"{self.site_url}/#organization"},
        }

    def _breadcrumbs(self, page_url: str, trail: List[tuple]) -> Dict[str, Any]:
        return {
            "@type": "BreadcrumbList",
            "@id": f"{page_url}#breadcrumb",
            "itemListElement": [
                {"@type": "ListItem", "position": i, "name": name, "item": item}
                for i, (name, item) in enumerate(trail, start=1)
            ],
        }

    def _item_list(self, posts: List[BlogPost], page_url: str) -> Dict[str, Any]:
        return {
            "@type": "ItemList",
            "mainEntityOfPage": {"@id": f"{page_url}#webpage"},
            "numberOfItems": len(posts),
            "itemListElement": [
                {
                    "@type": "ListItem",
                    "position": i,
                    "url": f"{self.site_url}/insights/{p.slug}.html",
                    "name": p.title,
                }
                for i, p in enumerate(posts, start=1)
            ],
        }

    def _absolute(self, url: str) -> Optional[str]:
        if not url:
            return None
        return url if url.startswith("http") else f"{self.site_url}{url}"

    def generate_article_schema(self, post: BlogPost, full_url: str) -> str:
        published = _iso(post.published_at)
        modified = _iso(post.updated_at or post.published_at)
        graph = [
            self._organization(with_logo=True),
            self._website(),
            {
                "@type": "WebPage",
                "@id": f"{full_url}#webpage",
                "url": full_url,
                "name": post.get_meta_title(),
                "isPartOf": {"@id": f"{self.site_url}/#website"},
                "datePublished": published,
                "dateModified": modified,
            },
            {
                "@type": "Article",
                "@id": f"{full_url}#article",
                "isPartOf": {"@id": f"{full_url}#webpage"},
                "headline": post.title,
                "description": post.get_meta_description(),
                "datePublished": published,
                "dateModified": modified,
                "author": {"@type": "Organization", "@id": f"{self.site_url}/#organization"},
                "publisher": {"@id": f"{self.site_url}/#organization"},
                "mainEntityOfPage": {"@id": f"{full_url}#webpage"},
                "image": self._absolute(post.featured_image),
                "articleSection": post.category,
                "keywords": ", ".join(post.tags) if post.tags else None,
            },
            self._breadcrumbs(full_url, [
                ("Home", self.site_url),
                ("Insights", f"{self.site_url}/insights/"),
                (post.title, full_url),
            ]),
        ]
        return _dumps(graph)

    def generate_blog_list_schema(self, posts: List[BlogPost], page_url: str, page_title: str) -> str:
        graph = [
            self._organization(),
            self._website(),
            {
                "@type": "CollectionPage",
                "@id": f"{page_url}#webpage",
                "url": page_url,
                "name": page_title,
                "isPartOf": {"@id": f"{self.site_url}/#website"},
                "description": self.settings.SITE_DESCRIPTION,
            },
            self._item_list(posts, page_url),
            self._breadcrumbs(page_url, [("Home", self.site_url), ("Insights", page_url)]),
        ]
        return _dumps(graph)

    def generate_category_schema(self, category: Category, posts: List[BlogPost], page_url: str) -> str:
        graph = [
            self._organization(),
            self._website(),
            {
                "@type": "CollectionPage",
                "@id": f"{page_url}#webpage",
                "url": page_url,
                "name": f"{category.name} - {self.settings.SITE_NAME}",
                "isPartOf": {"@id": f"{self.site_url}/#website"},
                "description": category.description,
            },
            self._item_list(posts, page_url),
            self._breadcrumbs(page_url, [
                ("Home", self.site_url),
                ("Insights", f"{self.site_url}/insights/"),
                (category.name, page_url),
            ]),
        ]
        return _dumps(graph)

    def generate_home_schema(self) -> str:
        site = self.site_url
        services = [
            ("Free AI Readiness Audit",
             "Comprehensive analysis of your website's AI readiness, SEO fundamentals, schema markup, and GEO signals."),
            ("Schema Implementation",
             "Professional implementation of Organization, Service, Product, and other critical schema types."),
            ("AI Readiness Optimization",
             "Full optimization to make your business discoverable by AI systems like ChatGPT and Google AI."),
        ]
        faqs = [
            ("What is AI Readiness?",
             "AI Readiness refers to how well your online presence can be understood by AI systems like ChatGPT, "
             "Google's AI Overview, and voice assistants. A machine-readable business has structured data that "
             "clearly tells AI what you do, what you offer, and how to recommend you."),
            ("Why does AI Readiness matter for my business?",
             "AI systems are increasingly how people discover businesses. When someone asks ChatGPT or Google AI "
             "for recommendations, these systems look for businesses with clear, structured information. Without "
             "AI Readiness, your business may be invisible to these new discovery channels."),
            ("What does the free audit check?",
             "Our free audit analyzes four key areas: AI Readiness signals (can machines understand your business), "
             "Schema markup (structured data implementation), SEO fundamentals (technical health), and GEO signals "
             "(Generative Engine Optimization). You receive a detailed report with specific recommendations."),
            ("What is schema markup?",
             "Schema markup is structured data added to your website that helps search engines and AI systems "
             "understand your content. Think of it like a nutrition label for your website - it provides "
             "machine-readable facts about your business, services, products, and more using the Schema.org "
             "vocabulary."),
        ]
        graph = [
            {
                "@type": "Organization",
                "@id": f"{site}/#organization",
                "name": "AI Readiness Platform",
                "url": site,
                "description": "We help businesses become machine-readable through AI Readiness audits, "
                               "SEO optimization, and structured data implementation.",
                "knowsAbout": [
                    "AI Readiness", "Search Engine Optimization", "Generative Engine Optimization",
                    "Schema.org Markup", "Structured Data", "JSON-LD", "Machine Learning Discoverability",
                ],
                "hasOfferCatalog": {
                    "@type": "OfferCatalog",
                    "name": "AI Readiness Services",
                    "itemListElement": [
                        {"@type": "Offer", "itemOffered": {"@type": "Service", "name": n, "description": d}}
                        for n, d in services
                    ],
                },
            },
            {
                "@type": "WebSite",
                "@id": f"{site}/#website",
                "url": site,
                "name": "AI Readiness Platform",
                "description": "Free AI Readiness audits and education for business owners",
                "publisher": {"@id": f"{site}/#organization"},
            },
            {
                "@type": "WebPage",
                "@id": f"{site}/#webpage",
                "url": site,
                "name": "AI Readiness Platform - Make Your Business Machine-Readable",
                "isPartOf": {"@id": f"{site}/#website"},
                "about": {"@id": f"{site}/#organization"},
                "description": "Free AI Readiness audit for your website. Discover if AI systems can find, "
                               "understand, and recommend your business.",
            },
            {
                "@type": "FAQPage",
                "mainEntity": [
                    {"@type": "Question", "name": q, "acceptedAnswer": {"@type": "Answer", "text": a}}
                    for q, a in faqs
                ],
            },
        ]
        return _dumps(graph)
