"""Page content as text, cleaned HTML or an outline, sized to a token budget."""

from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup, Comment

from .constants import SNAPSHOT_TOKEN_BUDGET
from .errors import PageUnavailableError
from .locator import locate

import logging
logger = logging.getLogger(__name__)


MODES = ("text", "html", "outline")

STRIP_TAGS = ["script", "style", "noscript", "template", "meta", "link"]

_ELEMENT_HTML_JS = "return arguments[0].outerHTML;"


def approx_token_count(text: str) -> int:
    # ~4 chars per token
    return max(0, len(text) // 4)


def clean_html(html: str) -> str:
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup.find_all(STRIP_TAGS):
        tag.extract()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    return str(soup)


def _css_path(el) -> str:
    parts = []
    cur = el
    while cur is not None and cur.name and cur.name != "[document]":
        idp = f"#{cur.get('id')}" if cur.has_attr("id") else ""
        cls = "." + ".".join(cur.get("class", [])) if cur.has_attr("class") else ""
        parts.append(f"{cur.name}{idp}{cls}")
        cur = cur.parent
    return " > ".join(reversed(parts))


def extract_outline(html: str, max_items: int = 64) -> Dict[str, List[Dict[str, Any]]]:
    """Headings in document order, plus the clickable/fillable controls a caller might target."""
    soup = BeautifulSoup(html or "", "html.parser")
    headings = []
    for el in soup.find_all(["h1", "h2", "h3", "h4"]):
        text = el.get_text(" ", strip=True)
        headings.append({
            "level": int(el.name[1]),
            "text": text,
            "word_count": len(text.split()),
            "css_path": _css_path(el),
        })
        if len(headings) >= max_items:
            break

    controls = []
    for el in soup.find_all(["button", "a", "input", "select", "textarea"]):
        if el.name == "input" and (el.get("type") or "").lower() == "hidden":
            continue
        entry = {"tag": el.name, "text": el.get_text(" ", strip=True)[:80]}
        for attr in ("id", "name", "type", "aria-label", "placeholder", "href"):
            if el.has_attr(attr):
                entry[attr] = el.get(attr)
        controls.append(entry)
        if len(controls) >= max_items:
            break
    return {"headings": headings, "controls": controls}


def _fit(value: str, token_budget: Optional[int], offset: int):
    if offset and offset > 0:
        value = value[offset:]
    capped = False
    if token_budget:
        char_budget = token_budget * 4
        if len(value) > char_budget:
            value = value[:char_budget]
            capped = True
    return value, capped


def page_content(
    page,
    mode: str = "text",
    selector: Optional[str] = None,
    token_budget: Optional[int] = SNAPSHOT_TOKEN_BUDGET,
    offset: int = 0,
) -> Dict[str, Any]:
    """
    Render the page, or the element ``selector`` resolves to, as ``mode``.

    ``offset`` skips that many characters of the cleaned text or HTML so a
    caller can page through content larger than ``token_budget``.

    Raises:
        PageUnavailableError: No page.
        ValueError: Unknown mode.
        ElementNotFound: ``selector`` given and nothing matched.
    """
    if page is None:
        raise PageUnavailableError()
    mode = (mode or "text").lower()
    if mode not in MODES:
        raise ValueError(f"mode must be one of {MODES}, got {mode!r}")

    used_selector = None
    if selector:
        found = locate(page, selector)
        used_selector = found.used_selector
        raw = page.evaluate(_ELEMENT_HTML_JS, found.element) or ""
    else:
        raw = page.page_source()

    cleaned = clean_html(raw)
    result: Dict[str, Any] = {
        "url": page.url,
        "title": page.title,
        "mode": mode,
        "hard_capped": False,
    }
    if used_selector:
        result["selector"] = used_selector

    if mode == "outline":
        outline = extract_outline(cleaned)
        result["outline"] = outline
        result["approx_tokens"] = approx_token_count(
            " ".join(h["text"] for h in outline["headings"])
            + " ".join(c["text"] for c in outline["controls"])
        )
        return result

    if mode == "html":
        body = cleaned
    else:
        body = BeautifulSoup(cleaned, "html.parser").get_text("\n", strip=True)

    body, capped = _fit(body, token_budget, offset)
    result[mode] = body
    result["hard_capped"] = capped
    result["offset"] = offset or 0
    result["approx_tokens"] = approx_token_count(body)
    return result


__all__ = ["MODES", "approx_token_count", "clean_html", "extract_outline", "page_content"]
