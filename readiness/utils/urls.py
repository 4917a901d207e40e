from urllib.parse import urlparse

from ..errors import ValidationError


def normalize_target_url(raw: str) -> str:
    """Trim, default the scheme to https:// and reject anything without a host."""
    url = (raw or "").strip()
    if not url:
        raise ValidationError("Please enter a website URL.")

    if not url.startswith(("http://", "https://")):
        url = "https://" + url

    parsed = urlparse(url)
    if not parsed.hostname or any(ch.isspace() for ch in url):
        raise ValidationError("Please enter a valid URL (e.g., https://example.com)")
    return url


def hostname_of(url: str) -> str:
    return urlparse(url).hostname or ""


def is_local_path(target: str) -> bool:
    """True for same-site paths like /admin/ (no scheme, no host, no //)."""
    if not target or not target.startswith("/") or target.startswith("//"):
        return False
    parsed = urlparse(target)
    return not parsed.scheme and not parsed.netloc and "\\" not in target
