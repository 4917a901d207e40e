# readiness/routers/admin.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from ..auth.tokens import create_session_token
from ..dependencies import current_admin, get_blog, get_images, get_users, render, require_admin
from ..errors import DuplicateUserError
from ..models import BlogPost, utcnow
from ..services.blog_service import BlogService
from ..services.image_service import ImageService
from ..services.user_service import MIN_PASSWORD_LENGTH, UserAuthenticationService
from ..utils.urls import is_local_path

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

DASHBOARD = "/admin/"


def parse_tags(raw: str) -> List[str]:
    return [t.strip() for t in (raw or "").split(",") if t.strip()]


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


# ─────────────────────────────────────────────────────────────────────────────
# Login / logout
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, returnUrl: Optional[str] = None):
    if current_admin(request):
        return _redirect(DASHBOARD)
    return render(request, "admin/login.html", username="", error=None, return_url=returnUrl)


@router.post("/login", response_class=HTMLResponse)
async def login(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    returnUrl: Optional[str] = Form(None),
    users: UserAuthenticationService = Depends(get_users),
):
    def page(error: str):
        return render(request, "admin/login.html", username=username, error=error, return_url=returnUrl)

    if not username:
        return page("Username is required")
    if not password:
        return page("Password is required")

    user = users.validate_user(username, password)
    if user is None:
        locked = users.get_user_by_username(username)
        if locked is not None and locked.is_locked():
            minutes = int((locked.locked_until - utcnow()).total_seconds() // 60)
            return page(
                "Account is locked due to too many failed login attempts. "
                f"Please try again in {minutes} minutes."
            )
        return page("Invalid username or password")

    settings = request.app.state.settings
    target = returnUrl if returnUrl and is_local_path(returnUrl) else DASHBOARD
    response = _redirect(target)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=create_session_token(user, settings),
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.SESSION_EXPIRE_DAYS * 24 * 3600,
    )
    logger.info("User %s logged in successfully", user.username)
    return response


@router.api_route("/logout", methods=["GET", "POST"])
async def logout(request: Request):
    response = _redirect("/admin/login")
    response.delete_cookie(request.app.state.settings.SESSION_COOKIE_NAME)
    return response


# ─────────────────────────────────────────────────────────────────────────────
# Dashboard & posts
# ─────────────────────────────────────────────────────────────────────────────

@router.get("/", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    admin: dict = Depends(require_admin),
    blog: BlogService = Depends(get_blog),
):
    return render(
        request,
        "admin/dashboard.html",
        stats=blog.get_stats(),
        recent_posts=blog.get_all_posts(include_unpublished=True)[:5],
    )


@router.get("/posts", response_class=HTMLResponse)
async def posts_index(
    request: Request,
    status: Optional[str] = None,
    category: Optional[str] = None,
    message: Optional[str] = None,
    admin: dict = Depends(require_admin),
    blog: BlogService = Depends(get_blog),
):
    posts = blog.get_all_posts(include_unpublished=True)
    if status:
        want_published = status == "published"
        posts = [p for p in posts if p.is_published == want_published]
    if category:
        posts = [p for p in posts if p.category.lower() == category.lower()]

    return render(
        request,
        "admin/posts/index.html",
        posts=posts,
        categories=blog.get_all_categories(),
        status_filter=status,
        category_filter=category,
        message=message,
    )


def _post_from_form(
    title: str,
    slug: str,
    content: str,
    excerpt: str,
    category: str,
    tags: str,
    featured_image: str,
    featured_image_alt: str,
    meta_title: str,
    meta_description: str,
    author: str,
    is_published: bool,
    is_featured: bool,
) -> BlogPost:
    post = BlogPost(
        title=title.strip(),
        slug=slug.strip(),
        content=content,
        excerpt=excerpt.strip(),
        category=category,
        tags=parse_tags(tags),
        featured_image=featured_image.strip(),
        featured_image_alt=featured_image_alt.strip(),
        meta_title=meta_title.strip(),
        meta_description=meta_description.strip(),
        is_published=is_published,
        is_featured=is_featured,
    )
    if author.strip():
        post.author = author.strip()
    return post


async def _attach_upload(post: BlogPost, upload: Optional[UploadFile], images: ImageService) -> Optional[str]:
    """Store an uploaded featured image on the post; returns an error message on failure."""
    if upload is None or not upload.filename:
        return None
    result = images.upload_image(upload.filename, await upload.read())
    if not result.success:
        return result.error
    post.featured_image = result.url
    return None


def _editor(request: Request, blog: BlogService, template: str, post: BlogPost, error: Optional[str] = None,
            status_code: int = 200):
    return render(
        request,
        template,
        status_code=status_code,
        post=post,
        tags_string=", ".join(post.tags),
        categories=blog.get_all_categories(),
        error=error,
    )


@router.get("/posts/create", response_class=HTMLResponse)
async def create_post_page(
    request: Request,
    admin: dict = Depends(require_admin),
    blog: BlogService = Depends(get_blog),
):
    return _editor(request, blog, "admin/posts/create.html", BlogPost())


@router.post("/posts/create", response_class=HTMLResponse)
async def create_post(
    request: Request,
    title: str = Form(""),
    slug: str = Form(""),
    content: str = Form(""),
    excerpt: str = Form(""),
    category: str = Form(""),
    tags: str = Form(""),
    featured_image: str = Form(""),
    featured_image_alt: str = Form(""),
    meta_title: str = Form(""),
    meta_description: str = Form(""),
    author: str = Form(""),
    is_published: bool = Form(False),
    is_featured: bool = Form(False),
    featured_image_file: Optional[UploadFile] = File(None),
    admin: dict = Depends(require_admin),
    blog: BlogService = Depends(get_blog),
    images: ImageService = Depends(get_images),
):
    post = _post_from_form(title, slug, content, excerpt, category, tags, featured_image, featured_image_alt,
                           meta_title, meta_description, author, is_published, is_featured)
    if not post.title:
        return _editor(request, blog, "admin/posts/create.html", post, "Title is required.", 400)

    error = await _attach_upload(post, featured_image_file, images)
    if error:
        return _editor(request, blog, "admin/posts/create.html", post, error, 400)

    try:
        blog.create_post(post)
    except OSError as e:
        return _editor(request, blog, "admin/posts/create.html", post, f"Error creating post: {e}", 500)
    return _redirect("/admin/posts?message=Post+created+successfully!")


@router.get("/posts/{post_id}/edit", response_class=HTMLResponse)
async def edit_post_page(
    request: Request,
    post_id: str,
    admin: dict = Depends(require_admin),
    blog: BlogService = Depends(get_blog),
):
    post = blog.get_post_by_id(post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return _editor(request, blog, "admin/posts/edit.html", post)


@router.post("/posts/{post_id}/edit", response_class=HTMLResponse)
async def edit_post(
    request: Request,
    post_id: str,
    title: str = Form(""),
    slug: str = Form(""),
    content: str = Form(""),
    excerpt: str = Form(""),
    category: str = Form(""),
    tags: str = Form(""),
    featured_image: str = Form(""),
    featured_image_alt: str = Form(""),
    meta_title: str = Form(""),
    meta_description: str = Form(""),
    author: str = Form(""),
    is_published: bool = Form(False),
    is_featured: bool = Form(False),
    featured_image_file: Optional[UploadFile] = File(None),
    admin: dict = Depends(require_admin),
    blog: BlogService = Depends(get_blog),
    images: ImageService = Depends(get_images),
):
    existing = blog.get_post_by_id(post_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Post not found")

    post = _post_from_form(title, slug, content, excerpt, category, tags, featured_image, featured_image_alt,
                           meta_title, meta_description, author, is_published, is_featured)
    post.id = post_id
    post.view_count = existing.view_count
    if not post.title:
        return _editor(request, blog, "admin/posts/edit.html", post, "Title is required.", 400)

    error = await _attach_upload(post, featured_image_file, images)
    if error:
        return _editor(request, blog, "admin/posts/edit.html", post, error, 400)

    try:
        updated = blog.update_post(post)
    except OSError as e:
        return _editor(request, blog, "admin/posts/edit.html", post, f"Error updating post: {e}", 500)
    if updated is None:
        return _editor(request, blog, "admin/posts/edit.html", post, "Post not found.", 404)
    return _redirect("/admin/posts?message=Post+updated+successfully!")


@router.post("/posts/{post_id}/delete")
async def delete_post(
    post_id: str,
    admin: dict = Depends(require_admin),
    blog: BlogService = Depends(get_blog),
):
    ok = blog.delete_post(post_id)
    message = "Post+deleted+successfully." if ok else "Failed+to+delete+post."
    return _redirect(f"/admin/posts?message={message}")


# ─────────────────────────────────────────────────────────────────────────────
# Users
# ─────────────────────────────────────────────────────────────────────────────

def _users_page(request: Request, users: UserAuthenticationService, error: Optional[str] = None,
                success: Optional[str] = None, status_code: int = 200):
    return render(
        request,
        "admin/users.html",
        status_code=status_code,
        users=users.get_all_admin_users(),
        error=error,
        success=success,
    )


@router.get("/users", response_class=HTMLResponse)
async def users_page(
    request: Request,
    admin: dict = Depends(require_admin),
    users: UserAuthenticationService = Depends(get_users),
):
    return _users_page(request, users)


@router.post("/users/create", response_class=HTMLResponse)
async def create_user(
    request: Request,
    new_username: str = Form(""),
    new_password: str = Form(""),
    admin: dict = Depends(require_admin),
    users: UserAuthenticationService = Depends(get_users),
):
    if not new_username.strip() or not new_password.strip():
        return _users_page(request, users, error="Username and password are required", status_code=400)
    if len(new_password) < MIN_PASSWORD_LENGTH:
        return _users_page(request, users, error="Password must be at least 8 characters long", status_code=400)

    try:
        users.create_user(new_username.strip(), new_password)
    except DuplicateUserError as e:
        logger.error("Error creating user: %s", e.message)
        return _users_page(request, users, error=e.message, status_code=400)

    logger.info("New user created: %s", new_username)
    return _users_page(request, users, success=f"User '{new_username.strip()}' created successfully")


@router.post("/users/change-password", response_class=HTMLResponse)
async def change_password(
    request: Request,
    current_password: str = Form(""),
    new_password: str = Form(""),
    admin: dict = Depends(require_admin),
    users: UserAuthenticationService = Depends(get_users),
):
    username = admin.get("name")
    if not username:
        return _users_page(request, users, error="User not found", status_code=400)
    if not current_password.strip() or not new_password.strip():
        return _users_page(request, users, error="Current password and new password are required", status_code=400)
    if len(new_password) < MIN_PASSWORD_LENGTH:
        return _users_page(request, users, error="New password must be at least 8 characters long", status_code=400)

    if not users.change_password(username, current_password, new_password):
        return _users_page(request, users, error="Current password is incorrect", status_code=400)
    return _users_page(request, users, success="Password changed successfully")


# ─────────────────────────────────────────────────────────────────────────────
# Editor image upload API
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/api/upload-image")
async def upload_image(
    file: Optional[UploadFile] = File(None),
    admin: dict = Depends(require_admin),
    images: ImageService = Depends(get_images),
):
    if file is None or not file.filename:
        return JSONResponse({"error": "No file provided"})

    result = images.upload_image(file.filename, await file.read())
    if result.success:
        return JSONResponse({"location": result.url})
    return JSONResponse({"error": result.error})
