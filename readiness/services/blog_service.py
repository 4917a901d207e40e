# readiness/services/blog_service.py
import logging
from collections import Counter
from pathlib import Path
from typing import List, Optional

from ..models import (
    BlogPost,
    BlogPostListItem,
    BlogStats,
    Category,
    default_categories,
    generate_slug,
    utcnow,
)
from .storage import JsonListFile

logger = logging.getLogger(__name__)


def ensure_unique_slug(slug: str, posts: List[BlogPost], current_id: str) -> str:
    base_slug = slug
    counter = 1
    taken = {p.slug.lower() for p in posts if p.id != current_id}
    while slug.lower() in taken:
        slug = f"{base_slug}-{counter}"
        counter += 1
    return slug


class BlogService:
    """Posts and categories stored as two flat JSON files in the data directory."""

    def __init__(self, data_dir: Path, cache_seconds: float = 300, clock=None):
        data_dir = Path(data_dir)
        kwargs = {"clock": clock} if clock else {}
        self.posts = JsonListFile(data_dir / "posts.json", BlogPost, cache_seconds, **kwargs)
        self.categories = JsonListFile(
            data_dir / "categories.json", Category, cache_seconds,
            default_factory=default_categories, **kwargs,
        )

    # ── Posts ────────────────────────────────────────────────────────────────
    def get_all_posts(self, include_unpublished: bool = False) -> List[BlogPost]:
        posts = self.posts.load()
        if not include_unpublished:
            posts = [p for p in posts if p.is_published]
        return sorted(posts, key=lambda p: p.sort_date, reverse=True)

    def get_post_list(self, include_unpublished: bool = False) -> List[BlogPostListItem]:
        return [BlogPostListItem.from_post(p) for p in self.get_all_posts(include_unpublished)]

    def get_post_by_id(self, post_id: str) -> Optional[BlogPost]:
        return next((p for p in self.posts.load() if p.id == post_id), None)

    def get_post_by_slug(self, slug: str) -> Optional[BlogPost]:
        slug = slug.lower()
        return next(
            (p for p in self.posts.load() if p.slug.lower() == slug and p.is_published),
            None,
        )

    def get_posts_by_category(self, category_slug: str, include_unpublished: bool = False) -> List[BlogPost]:
        category_slug = category_slug.lower()
        return [
            p for p in self.get_all_posts(include_unpublished)
            if p.category and p.category.lower() == category_slug
        ]

    def get_posts_by_tag(self, tag: str, include_unpublished: bool = False) -> List[BlogPost]:
        tag = tag.lower()
        return [
            p for p in self.get_all_posts(include_unpublished)
            if any(t.lower() == tag for t in p.tags)
        ]

    def get_featured_posts(self, count: int = 3) -> List[BlogPost]:
        return [p for p in self.get_all_posts() if p.is_featured][:count]

    def get_recent_posts(self, count: int = 5) -> List[BlogPost]:
        return self.get_all_posts()[:count]

    def create_post(self, post: BlogPost) -> BlogPost:
        posts = self.posts.load()

        if not post.slug:
            post.slug = generate_slug(post.title)
        post.slug = ensure_unique_slug(post.slug, posts, post.id)

        post.created_at = utcnow()
        if post.is_published and post.published_at is None:
            post.published_at = utcnow()

        posts.append(post)
        self.posts.save(posts)

        logger.info("Created blog post: %s (%s)", post.title, post.id)
        return post

    def update_post(self, post: BlogPost) -> Optional[BlogPost]:
        posts = self.posts.load()
        index = next((i for i, p in enumerate(posts) if p.id == post.id), None)
        if index is None:
            return None
        existing = posts[index]

        if not post.slug:
            post.slug = generate_slug(post.title)
        post.slug = ensure_unique_slug(post.slug, posts, post.id)

        post.created_at = existing.created_at
        post.updated_at = utcnow()

        if post.is_published and not existing.is_published:
            post.published_at = utcnow()
        elif post.is_published:
            post.published_at = existing.published_at
        else:
            post.published_at = None

        posts[index] = post
        self.posts.save(posts)

        logger.info("Updated blog post: %s (%s)", post.title, post.id)
        return post

    def delete_post(self, post_id: str) -> bool:
        posts = self.posts.load()
        post = next((p for p in posts if p.id == post_id), None)
        if post is None:
            return False

        self.posts.save([p for p in posts if p.id != post_id])
        logger.info("Deleted blog post: %s (%s)", post.title, post.id)
        return True

    def increment_view_count(self, post_id: str) -> None:
        posts = self.posts.load()
        for p in posts:
            if p.id == post_id:
                p.view_count += 1
                self.posts.save(posts)
                return

    # ── Categories ───────────────────────────────────────────────────────────
    def get_all_categories(self) -> List[Category]:
        return self.categories.load()

    def get_category_by_slug(self, slug: str) -> Optional[Category]:
        slug = (slug or "").lower()
        return next((c for c in self.categories.load() if c.slug.lower() == slug), None)

    # ── Statistics ───────────────────────────────────────────────────────────
    def get_stats(self) -> BlogStats:
        posts = self.posts.load()
        published = sum(1 for p in posts if p.is_published)
        return BlogStats(
            total_posts=len(posts),
            published_posts=published,
            draft_posts=len(posts) - published,
            total_views=sum(p.view_count for p in posts),
            posts_by_category=dict(Counter(p.category for p in posts if p.category)),
        )
