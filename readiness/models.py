import re
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def generate_slug(text: str) -> str:
    if not text:
        return ""
    slug = text.lower()
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^a-z0-9\-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def _truncate(text: str, max_length: int) -> str:
    return text[: max_length - 3] + "..." if len(text) > max_length else text


class StoredModel(BaseModel):
    """Records persisted as camelCase JSON, as the data files have always been."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class BlogPost(StoredModel):
    id: str = Field(default_factory=_new_id)
    title: str = ""
    slug: str = ""
    content: str = ""
    excerpt: str = ""
    featured_image: str = ""
    featured_image_alt: str = ""
    meta_title: str = ""
    meta_description: str = ""
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    author: str = "Interon"
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    is_published: bool = False
    is_featured: bool = False
    view_count: int = 0

    def get_meta_title(self) -> str:
        return self.meta_title or self.title

    def get_meta_description(self) -> str:
        if self.meta_description:
            return self.meta_description
        return _truncate(self.excerpt, 160)

    def get_excerpt(self, max_length: int = 200) -> str:
        if self.excerpt:
            return _truncate(self.excerpt, max_length)
        text = BeautifulSoup(self.content or "", "html.parser").get_text(" ")
        text = re.sub(r"\s+", " ", text).strip()
        return _truncate(text, max_length)

    @property
    def sort_date(self) -> datetime:
        return self.published_at or self.created_at


class BlogPostListItem(StoredModel):
    id: str
    title: str
    slug: str
    excerpt: str
    featured_image: str = ""
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    published_at: Optional[datetime] = None
    is_published: bool = False
    is_featured: bool = False

    @classmethod
    def from_post(cls, post: BlogPost) -> "BlogPostListItem":
        return cls(
            id=post.id,
            title=post.title,
            slug=post.slug,
            excerpt=post.get_excerpt(),
            featured_image=post.featured_image,
            category=post.category,
            tags=list(post.tags),
            published_at=post.published_at,
            is_published=post.is_published,
            is_featured=post.is_featured,
        )


class Category(StoredModel):
    id: str = Field(default_factory=_new_id)
    name: str = ""
    slug: str = ""
    description: str = ""
    sort_order: int = 0


def default_categories() -> List[Category]:
    return [
        Category(id="ai-readiness", name="AI Readiness", slug="ai-readiness",
                 description="Understanding and improving your business's AI discoverability", sort_order=1),
        Category(id="schema-markup", name="Schema Markup", slug="schema-markup",
                 description="Implementing structured data for better machine understanding", sort_order=2),
        Category(id="seo", name="SEO", slug="seo",
                 description="Search engine optimization strategies and best practices", sort_order=3),
        Category(id="geo", name="GEO", slug="geo",
                 description="Generative Engine Optimization for AI-powered search", sort_order=4),
        Category(id="case-studies", name="Case Studies", slug="case-studies",
                 description="Real-world examples and success stories", sort_order=5),
    ]


class AdminUser(StoredModel):
    id: str = Field(default_factory=_new_id)
    username: str = ""
    password_hash: str = ""
    role: str = "Administrator"
    created_at: datetime = Field(default_factory=utcnow)
    last_login_at: Optional[datetime] = None
    failed_login_attempts: int = 0
    locked_until: Optional[datetime] = None
    is_active: bool = True

    def is_locked(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return self.locked_until is not None and self.locked_until > now

    def __repr__(self):
        return f"<AdminUser(id={self.id}, username='{self.username}', role='{self.role}')>"


class BlogStats(BaseModel):
    total_posts: int = 0
    published_posts: int = 0
    draft_posts: int = 0
    total_views: int = 0
    posts_by_category: Dict[str, int] = Field(default_factory=dict)
