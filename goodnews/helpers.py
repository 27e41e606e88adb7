import re
from datetime import datetime, timezone
from urllib.parse import urlparse

from bleach import clean, linkify
from flask import redirect, request, url_for
from markdown import markdown


def _utcnow_naive() -> datetime:
    """Return current UTC time as a naive datetime (no tzinfo)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def markdown_render(content: str) -> str:
    """Render user content as sanitized HTML (minimal subset).
    - Render with Python-Markdown (no tables or admonitions).
    - Sanitize with Bleach allowing basic inline formatting, links, lists,
      headings, code (inline/pre) and blockquotes.
    - Auto-link bare URLs and force a safe rel on every anchor.
    """
    try:
        html = markdown(content or "", output_format="html5")
        allowed_tags = {
            "p",
            "br",
            "em",
            "strong",
            "code",
            "pre",
            "blockquote",
            "a",
            "ul",
            "ol",
            "li",
            "h1",
            "h2",
            "h3",
            "h4",
            "h5",
            "h6",
        }
        allowed_attrs = {
            "a": ["href", "title", "rel", "target"],
            "ol": ["start"],
        }
        allowed_protocols = ["http", "https", "mailto"]
        safe = clean(
            html,
            tags=allowed_tags,
            attributes=allowed_attrs,
            protocols=allowed_protocols,
            strip=True,
        )
        safe = linkify(safe)

        def _add_rel(m):
            tag_open = m.group(0)
            if " rel=" in tag_open:
                return tag_open
            return tag_open[:-1] + ' rel="nofollow noopener noreferrer">'

        return re.sub(r"<a\b(?![^>]*\brel=)[^>]*>", _add_rel, safe)
    except Exception:
        # Fallback: escape everything via bleach
        return clean(str(content or ""), strip=True)


def redirect_back(default_endpoint: str = "ui.feed"):
    """Redirect to the referring page when it belongs to this host."""
    ref = request.referrer
    if ref:
        parsed = urlparse(ref)
        if not parsed.netloc or parsed.netloc == request.host:
            return redirect(ref)
    return redirect(url_for(default_endpoint))
