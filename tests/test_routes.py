import time
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.testclient import TestClient

from readiness.audit.client import AuditClient
from readiness.crawl.client import CrawlClient
from readiness.main import create_app
from readiness.models import BlogPost

ADMIN_PASSWORD = "correct-horse"


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def login(client, username="admin", password=ADMIN_PASSWORD, return_url=""):
    return client.post(
        "/admin/login",
        data={"username": username, "password": password, "returnUrl": return_url},
        follow_redirects=False,
    )


# ── public pages ────────────────────────────────────────────────────────────

def test_healthz(client):
    assert client.get("/healthz").json()["ok"] is True


def test_home_page_carries_structured_data(client):
    resp = client.get("/")

    assert resp.status_code == 200
    assert 'application/ld+json' in resp.text
    assert "FAQPage" in resp.text


def test_insights_listing_and_post(app, client):
    post = app.state.blog.create_post(BlogPost(title="Machine Readable", category="seo", is_published=True,
                                               content="<p>Body text</p>"))
    app.state.blog.create_post(BlogPost(title="Hidden draft"))

    listing = client.get("/insights/")
    assert listing.status_code == 200
    assert "Machine Readable" in listing.text
    assert "Hidden draft" not in listing.text
    assert "CollectionPage" in listing.text

    page = client.get(f"/insights/{post.slug}.html")
    assert page.status_code == 200
    assert "Body text" in page.text
    assert f"/insights/{post.slug}/" in page.text
    assert app.state.blog.get_post_by_id(post.id).view_count == 1

    assert client.get("/insights/?category=seo").status_code == 200


def test_unknown_post_renders_not_found_page(client):
    resp = client.get("/insights/does-not-exist")

    assert resp.status_code == 404
    assert "text/html" in resp.headers["content-type"]


def test_not_found_as_json(client):
    resp = client.get("/audit/missing", headers={"Accept": "application/json"})

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Audit not found or expired. Please run a new audit."


# ── admin ───────────────────────────────────────────────────────────────────

def test_admin_requires_login(client):
    resp = client.get("/admin/posts?status=draft", follow_redirects=False)

    assert resp.status_code == 303
    location = urlparse(resp.headers["location"])
    assert location.path == "/admin/login"
    assert parse_qs(location.query)["returnUrl"] == ["/admin/posts?status=draft"]


def test_login_flow(client, settings):
    resp = login(client, return_url="/admin/posts")

    assert resp.status_code == 303
    assert resp.headers["location"] == "/admin/posts"
    assert settings.SESSION_COOKIE_NAME in resp.cookies
    assert client.get("/admin/").status_code == 200

    out = client.get("/admin/logout", follow_redirects=False)
    assert out.headers["location"] == "/admin/login"


def test_login_ignores_external_return_url(client):
    resp = login(client, return_url="https://evil.example.com/")

    assert resp.headers["location"] == "/admin/"


@pytest.mark.parametrize("username,password,message", [
    ("", "x", "Username is required"),
    ("admin", "", "Password is required"),
    ("admin", "wrong-password", "Invalid username or password"),
])
def test_login_errors(client, username, password, message):
    resp = login(client, username, password)

    assert resp.status_code == 200
    assert message in resp.text


def test_locked_account_message(client):
    for _ in range(5):
        login(client, password="wrong-password")

    resp = login(client)

    assert "Account is locked due to too many failed login attempts" in resp.text


def test_admin_post_lifecycle(app, client):
    login(client)

    resp = client.post(
        "/admin/posts/create",
        data={"title": "Fresh Post", "content": "<p>Hi</p>", "category": "seo", "tags": "ai, schema ,",
              "is_published": "true"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"].startswith("/admin/posts?message=")

    post = app.state.blog.get_post_by_slug("fresh-post")
    assert post.tags == ["ai", "schema"]
    assert post.is_published and not post.is_featured

    assert client.get(f"/admin/posts/{post.id}/edit").status_code == 200
    resp = client.post(
        f"/admin/posts/{post.id}/edit",
        data={"title": "Fresh Post", "slug": "fresh-post", "content": "<p>Edited</p>"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    edited = app.state.blog.get_post_by_id(post.id)
    assert edited.content == "<p>Edited</p>"
    assert not edited.is_published

    listing = client.get("/admin/posts?status=draft")
    assert "Fresh Post" in listing.text

    client.post(f"/admin/posts/{post.id}/delete", follow_redirects=False)
    assert app.state.blog.get_post_by_id(post.id) is None


def test_create_post_requires_title(client):
    login(client)

    resp = client.post("/admin/posts/create", data={"title": "  "})

    assert resp.status_code == 400
    assert "Title is required." in resp.text


def test_create_post_with_uploaded_image(app, client):
    login(client)

    resp = client.post(
        "/admin/posts/create",
        data={"title": "With Image"},
        files={"featured_image_file": ("cover.png", b"\x89PNG data", "image/png")},
        follow_redirects=False,
    )

    assert resp.status_code == 303
    post = app.state.blog.get_all_posts(include_unpublished=True)[0]
    assert post.featured_image.startswith("/uploads/images/")
    assert client.get(post.featured_image).content == b"\x89PNG data"


def test_editor_image_upload_api(client):
    login(client)

    ok = client.post("/admin/api/upload-image", files={"file": ("a.webp", b"RIFF", "image/webp")})
    bad = client.post("/admin/api/upload-image", files={"file": ("a.txt", b"text", "text/plain")})

    assert ok.json()["location"].startswith("/uploads/images/")
    assert "Invalid file type" in bad.json()["error"]


def test_user_management(app, client):
    login(client)

    created = client.post("/admin/users/create", data={"new_username": "editor", "new_password": "editor-pass"})
    assert "created successfully" in created.text
    assert app.state.users.get_user_by_username("editor") is not None

    short = client.post("/admin/users/create", data={"new_username": "x", "new_password": "short"})
    assert short.status_code == 400

    dup = client.post("/admin/users/create", data={"new_username": "EDITOR", "new_password": "editor-pass"})
    assert dup.status_code == 400

    changed = client.post("/admin/users/change-password",
                          data={"current_password": ADMIN_PASSWORD, "new_password": "brand-new-pass"})
    assert "Password changed successfully" in changed.text
    assert app.state.users.validate_user("admin", "brand-new-pass") is not None


# ── audit ───────────────────────────────────────────────────────────────────

@pytest.fixture
def audit_service(app, audit_result):
    answers = {"payload": {"success": True, "data": audit_result}, "status": 200}

    def handler(request):
        return httpx.Response(answers["status"], json=answers["payload"])

    app.state.audit_client = AuditClient("https://audit.test", client=httpx.AsyncClient(
        transport=httpx.MockTransport(handler)))
    return answers


def test_audit_flow(app, client, audit_service):
    resp = client.post("/audit", data={"url": "example.com"}, follow_redirects=False)

    assert resp.status_code == 303
    audit_id = resp.headers["location"].rsplit("/", 1)[-1]

    page = client.get(f"/audit/{audit_id}")
    assert page.status_code == 200
    assert 'id="report-content"' in page.text
    assert "Add Service schema" in page.text

    exported = client.get(f"/audit/{audit_id}/export.json")
    assert exported.json()["url"] == "https://example.com"
    assert 'filename="ai-readiness-report-example.com.json"' in exported.headers["content-disposition"]


def test_audit_rejects_empty_url(client, audit_service):
    resp = client.post("/audit", data={"url": "  "})

    assert resp.status_code == 400
    assert "Please enter a website URL." in resp.text


def test_audit_service_error_is_shown(client, audit_service):
    audit_service.update(status=500, payload={"success": False, "error": "Site unreachable"})

    resp = client.post("/audit", data={"url": "example.com"})

    assert resp.status_code == 502
    assert "Site unreachable" in resp.text


def test_audit_pdf_export(app, client, audit_service, section):
    async def fake_capture(html, settings, geometry, stylesheet):
        assert 'data-pdf-section="recommendation"' in html
        return [section("overview", 80), section("recommendation", 40)]

    app.state.exporter.capture = fake_capture
    audit_id = client.post("/audit", data={"url": "example.com"}, follow_redirects=False).headers["location"]

    resp = client.get(f"{audit_id}/export.pdf")

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")
    assert "ai-readiness-report-example.com-" in resp.headers["content-disposition"]


def test_audit_pdf_export_without_sections(app, client, audit_service):
    from readiness.errors import ExportAbortedError

    async def empty_capture(*args):
        raise ExportAbortedError("No sections to export. Please run an audit first.")

    app.state.exporter.capture = empty_capture
    audit_id = client.post("/audit", data={"url": "example.com"}, follow_redirects=False).headers["location"]

    resp = client.get(f"{audit_id}/export.pdf", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == f"{audit_id}?exportError=no-sections"

    page = client.get(f"{audit_id}/export.pdf")
    assert page.status_code == 200
    assert 'id="export-error"' in page.text
    assert "No sections to export. Please run an audit first." in page.text
    assert "Export PDF" in page.text

    api = client.get(f"{audit_id}/export.pdf", headers={"Accept": "application/json"})
    assert api.status_code == 422
    assert api.json()["error"] == "No sections to export. Please run an audit first."


def test_audit_pdf_export_while_one_is_running(app, client, audit_service):
    location = client.post("/audit", data={"url": "example.com"}, follow_redirects=False).headers["location"]
    audit_id = location.rsplit("/", 1)[-1]

    with app.state.exporter.guard(audit_id):
        page = client.get(f"{location}/export.pdf")
        api = client.get(f"{location}/export.pdf", headers={"Accept": "application/json"})

    assert page.status_code == 200
    assert "A PDF for this report is already being generated." in page.text
    assert api.status_code == 409


def test_audit_results_ignore_unknown_export_error(client, audit_service):
    location = client.post("/audit", data={"url": "example.com"}, follow_redirects=False).headers["location"]

    page = client.get(f"{location}?exportError=%3Cscript%3E")

    assert page.status_code == 200
    assert 'id="export-error"' not in page.text


# ── knowledge graph ─────────────────────────────────────────────────────────

@pytest.fixture
def crawl_service(app):
    state = {"status": {"status": "IN_PROGRESS", "pagesProcessed": 4, "maxPages": 10}}

    def handler(request):
        path = request.url.path
        if path == "/api/crawl/start":
            return httpx.Response(200, json={"jobId": "job-9", "siteId": "site-9"})
        if path == "/api/crawl/job-9/status":
            return httpx.Response(200, json=state["status"])
        if path == "/api/graph/build":
            return httpx.Response(200, json={})
        if path == "/api/graph/summary":
            return httpx.Response(200, json={"domain": "example.com", "status": "COMPLETED"})
        if path == "/api/graph/entities":
            return httpx.Response(200, json={"entities": [{"name": "Acme Widgets", "type": "Organization",
                                                           "confidence": 0.9}]})
        return httpx.Response(200, json={})

    app.state.crawl_client = CrawlClient("https://crawl.test", client=httpx.AsyncClient(
        transport=httpx.MockTransport(handler)))
    return state


def start_crawl(client, **data):
    form = {"url": "example.com", "maxDepth": "2", "maxPages": "10"}
    form.update(data)
    return client.post("/knowledge-graph/start", data=form, follow_redirects=False)


def wait_for(client, session_id, predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        state = client.get(f"/knowledge-graph/{session_id}/status").json()
        if predicate(state):
            return state
        time.sleep(0.02)
    raise AssertionError("crawl session did not reach the expected state")


def test_crawl_form(client):
    resp = client.get("/knowledge-graph")

    assert resp.status_code == 200
    assert 'name="maxDepth"' in resp.text


def test_crawl_validation_error(client, crawl_service):
    resp = start_crawl(client, maxPages="5000")

    assert resp.status_code == 400
    assert "Max pages must be between 1 and 1000" in resp.text


def test_crawl_runs_to_results(app, client, crawl_service):
    resp = start_crawl(client)
    assert resp.status_code == 303
    session_id = resp.headers["location"].rsplit("/", 1)[-1]

    state = wait_for(client, session_id, lambda s: s["status"] == "IN_PROGRESS")
    assert state["progress"] == 40
    assert state["siteId"] == "site-9"

    crawl_service["status"] = {"status": "COMPLETED", "pagesProcessed": 10, "maxPages": 10}
    wait_for(client, session_id, lambda s: s["finished"])

    page = client.get(f"/knowledge-graph/{session_id}")
    assert page.status_code == 200
    assert "Acme Widgets" in page.text

    export = client.get(f"/knowledge-graph/{session_id}/export/entities.csv", follow_redirects=False)
    assert export.status_code == 307
    assert export.headers["location"] == "https://crawl.test/api/report/site-9/export/entities.csv"
    assert client.get(f"/knowledge-graph/{session_id}/export/nope", follow_redirects=False).status_code == 400


def test_crawl_events_stream_ends_when_finished(app, client, crawl_service):
    crawl_service["status"] = {"status": "FAILED", "errorMessage": "Blocked by robots.txt"}
    session_id = start_crawl(client).headers["location"].rsplit("/", 1)[-1]
    wait_for(client, session_id, lambda s: s["finished"])

    with client.stream("GET", f"/knowledge-graph/{session_id}/events") as resp:
        assert resp.headers["content-type"].startswith("text/event-stream")
        body = "".join(resp.iter_text())

    assert '"status":"ERROR"' in body
    assert "Blocked by robots.txt" in body


def test_crawl_stop_forgets_session(app, client, crawl_service):
    session_id = start_crawl(client).headers["location"].rsplit("/", 1)[-1]

    resp = client.post(f"/knowledge-graph/{session_id}/stop", follow_redirects=False)

    assert resp.status_code == 303
    assert resp.headers["location"] == "/knowledge-graph"
    assert client.get(f"/knowledge-graph/{session_id}/status").status_code == 404
