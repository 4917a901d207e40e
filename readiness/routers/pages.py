# readiness/routers/pages.py
import math
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse

from ..dependencies import get_blog, get_schema, render
from ..services.blog_service import BlogService
from ..services.schema_service import SchemaService

router = APIRouter(tags=["Pages"])

PAGE_SIZE = 12
FEATURED_COUNT = 2
RELATED_COUNT = 3


def build_insights_listing(blog: BlogService, category: Optional[str], page: int = 1) -> Dict[str, Any]:
    """Posts for one page of /insights/, with the featured split and page clamping."""
    categories = blog.get_all_categories()
    current_page = max(1, page)
    featured = []
    category_name = category_description = None

    if category:
        posts = blog.get_posts_by_category(category)
        cat = next((c for c in categories if c.slug.lower() == category.lower()), None)
        category_name = cat.name if cat else category
        category_description = cat.description if cat else None
    else:
        posts = blog.get_all_posts()
        featured = [p for p in posts if p.is_featured][:FEATURED_COUNT]
        if featured:
            posts = [p for p in posts if not p.is_featured]

    total_pages = math.ceil(len(posts) / PAGE_SIZE)
    current_page = min(current_page, max(1, total_pages))
    start = (current_page - 1) * PAGE_SIZE

    return {
        "categories": categories,
        "current_category": category,
        "category_name": category_name,
        "category_description": category_description,
        "featured_posts": featured,
        "all_posts": posts,
        "posts": posts[start:start + PAGE_SIZE],
        "current_page": current_page,
        "total_pages": total_pages,
    }


def related_posts(blog: BlogService, post, count: int = RELATED_COUNT):
    related = []
    if post.category:
        related = [p for p in blog.get_posts_by_category(post.category) if p.id != post.id][:count]
    if len(related) < count:
        seen = {p.id for p in related} | {post.id}
        related += [p for p in blog.get_recent_posts(5) if p.id not in seen][: count - len(related)]
    return related


@router.get("/", response_class=HTMLResponse)
async def home(request: Request, schema: SchemaService = Depends(get_schema)):
    return render(request, "index.html", schema_json=schema.generate_home_schema())


@router.get("/insights/", response_class=HTMLResponse)
async def insights_index(
    request: Request,
    category: Optional[str] = None,
    page: int = Query(1),
    blog: BlogService = Depends(get_blog),
    schema: SchemaService = Depends(get_schema),
):
    listing = build_insights_listing(blog, category, page)
    settings = request.app.state.settings
    page_url = f"{settings.SITE_URL}/insights/"

    schema_json = ""
    if category:
        cat = blog.get_category_by_slug(category)
        if cat:
            schema_json = schema.generate_category_schema(cat, listing["all_posts"], f"{page_url}?category={category}")
    else:
        schema_json = schema.generate_blog_list_schema(
            listing["all_posts"], page_url, f"Insights - {settings.SITE_NAME}"
        )

    return render(request, "insights/index.html", schema_json=schema_json, **listing)


@router.get("/insights/{slug}", response_class=HTMLResponse)
async def insights_post(
    request: Request,
    slug: str,
    blog: BlogService = Depends(get_blog),
    schema: SchemaService = Depends(get_schema),
):
    if slug.lower().endswith(".html"):
        slug = slug[:-5]

    post = blog.get_post_by_slug(slug)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")

    blog.increment_view_count(post.id)

    category_name = None
    if post.category:
        cat = blog.get_category_by_slug(post.category)
        category_name = cat.name if cat else post.category

    full_url = f"{request.app.state.settings.SITE_URL}/insights/{post.slug}/"
    return render(
        request,
        "insights/post.html",
        post=post,
        category_name=category_name,
        related_posts=related_posts(blog, post),
        schema_json=schema.generate_article_schema(post, full_url),
    )
