"""
Resilient element locator.

``locate`` tries the selector as given and then a fixed, ordered list of
fallback strategies. Each strategy turns the primary selector into candidate
selectors (pure string work); every candidate is queried against the live page,
and the first usable element wins. Nothing is cached and nothing is retried:
an ElementNotFound is terminal for the call.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..errors import ElementNotFound, PageUnavailableError
from .selectors import (
    Compound,
    detect_selector_type,
    explicit_text,
    parse_compound,
    selector_keywords,
    split_compounds,
    target_tag,
    text_xpaths,
)

import logging
logger = logging.getLogger(__name__)


Candidate = Tuple[str, str]  # (selector, selector_type)


@dataclass(frozen=True)
class Strategy:
    name: str
    candidates: Callable[[str], List[Candidate]]
    description: str = ""


@dataclass
class LocatorResult:
    element: Any
    used_selector: str
    selector_type: str
    strategy: str
    match_index: int = 0
    attempts: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def healed(self) -> bool:
        return self.strategy != "primary"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "found": True,
            "usedSelector": self.used_selector,
            "selectorType": self.selector_type,
            "strategy": self.strategy,
            "matchIndex": self.match_index,
        }


# ----------------------------------------------------------------------------
# Candidate generators
# ----------------------------------------------------------------------------

def text_candidates(selector: str) -> List[Candidate]:
    text = explicit_text(selector)
    if text:
        texts = [text]
    else:
        words = selector_keywords(selector)
        if not words:
            return []
        texts = [" ".join(words)]
        if len(words) > 1:
            texts += [w for w in words if len(w) >= 3]
    out: List[Candidate] = []
    for t in texts:
        out += [(xp, "xpath") for xp in text_xpaths(t)]
    return out


def _relaxed_css(selector: str) -> List[str]:
    compounds = split_compounds(selector)
    if not compounds:
        return []
    last: Compound = parse_compound(compounds[-1])
    bare = {last.tag or "", "*"}

    out = []
    if len(compounds) > 1:
        out.append(compounds[-1])
    out.append(last.render(id=False, pseudos=False))
    out.append(last.render(id=False, attrs=[], pseudos=False))
    for c in last.classes:
        out.append(last.render(id=False, classes=[c], attrs=[], pseudos=False))
    for a in last.attrs:
        out.append(last.render(id=False, classes=[], attrs=[a], pseudos=False))
    if last.tag:
        for c in last.classes:
            out.append(f".{c}")
    return [s for s in out if s and s not in bare and s != selector]


def _relaxed_xpath(selector: str) -> List[str]:
    # //form[@id='x']//button[@type='submit'][@name='go'] -> //button[@type='submit'], //button[@name='go']
    steps = [s for s in selector.split("//") if s]
    if not steps:
        return []
    last = steps[-1].split("/")[-1]
    head = last.split("[", 1)[0]
    preds = []
    depth, buf = 0, ""
    for ch in last[len(head):]:
        if ch == "[":
            depth += 1
            if depth == 1:
                buf = ""
                continue
        elif ch == "]":
            depth -= 1
            if depth == 0:
                preds.append(buf)
                continue
        buf += ch
    out = []
    if preds and (len(steps) > 1 or last != steps[-1]):
        out.append(f"//{last}")
    out += [f"//{head}[{p}]" for p in preds] if len(preds) > 1 else []
    return [s for s in out if s != selector]


def relaxed_candidates(selector: str) -> List[Candidate]:
    if explicit_text(selector):
        return []
    kind = detect_selector_type(selector)
    if kind == "xpath":
        return [(s, "xpath") for s in _relaxed_xpath(selector)]
    return [(s, "css") for s in _relaxed_css(selector)]


FUZZY_ATTRS = ("aria-label", "placeholder", "title", "name", "data-testid", "id", "value", "role")


def attribute_candidates(selector: str) -> List[Candidate]:
    return [
        (f'[{attr}*="{word}" i]', "css")
        for word in selector_keywords(selector)
        for attr in FUZZY_ATTRS
    ]


ROLE_SELECTORS: Dict[str, Tuple[str, ...]] = {
    "button": ("button", '[role="button"]', 'input[type="submit"]', 'input[type="button"]'),
    "a": ("a[href]", '[role="link"]'),
    "input": ('input:not([type="hidden"])', "textarea", '[role="textbox"]', '[contenteditable="true"]'),
    "select": ("select", '[role="listbox"]', '[role="combobox"]'),
    "textarea": ("textarea", '[contenteditable="true"]', '[role="textbox"]'),
}


def role_candidates(selector: str) -> List[Candidate]:
    tag = target_tag(selector)
    return [(s, "css") for s in ROLE_SELECTORS.get(tag or "", ())]


STRATEGIES: Tuple[Strategy, ...] = (
    Strategy("text-match", text_candidates, "visible text taken from the selector"),
    Strategy("relaxed-structure", relaxed_candidates, "selector with ancestors, id and pseudo-classes dropped"),
    Strategy("attribute-fuzzy", attribute_candidates, "aria-label, placeholder, title, name, id or role containing selector keywords"),
    Strategy("role-based", role_candidates, "any visible element of the targeted kind"),
)


# ----------------------------------------------------------------------------
# Locate
# ----------------------------------------------------------------------------

def _dedupe(candidates: Iterable[Candidate]) -> List[Candidate]:
    seen, out = set(), []
    for c in candidates:
        if c not in seen:
            seen.add(c)
            out.append(c)
    return out


def _try_candidates(page, strategy: str, candidates: List[Candidate]):
    record: Dict[str, Any] = {"strategy": strategy, "candidates": [], "found": False}
    for sel, sel_type in candidates:
        entry: Dict[str, Any] = {"selector": sel, "selectorType": sel_type, "matched": 0, "usable": 0}
        try:
            elements = page.query(sel, sel_type)
        except Exception as e:
            entry["error"] = f"{e.__class__.__name__}: {str(e).splitlines()[0] if str(e) else ''}".rstrip(": ")
            record["candidates"].append(entry)
            continue
        entry["matched"] = len(elements)
        usable = [(i, el) for i, el in enumerate(elements) if page.is_usable(el)]
        entry["usable"] = len(usable)
        record["candidates"].append(entry)
        if usable:
            idx, el = usable[0]
            record["found"] = True
            return record, (el, sel, sel_type, idx)
    return record, None


def locate(page, selector: str, strategies: Tuple[Strategy, ...] = STRATEGIES) -> LocatorResult:
    """
    Resolve one usable element for ``selector``.

    Raises:
        PageUnavailableError: If ``page`` is None.
        ValueError: If ``selector`` is empty.
        ElementNotFound: If the primary selector and every strategy came back empty.
    """
    if page is None:
        raise PageUnavailableError()
    selector = (selector or "").strip()
    if not selector:
        raise ValueError("selector must be a non-empty string")

    primary, hit = _try_candidates(page, "primary", [(selector, detect_selector_type(selector))])
    if hit:
        el, sel, sel_type, idx = hit
        return LocatorResult(el, sel, sel_type, "primary", idx, [primary])

    diagnostics: List[Dict[str, Any]] = []
    for strategy in strategies:
        try:
            candidates = _dedupe(strategy.candidates(selector))
        except Exception as e:
            logger.debug("Strategy %s could not derive candidates", strategy.name, exc_info=True)
            diagnostics.append({"strategy": strategy.name, "candidates": [], "found": False, "error": str(e)})
            continue
        record, hit = _try_candidates(page, strategy.name, candidates)
        diagnostics.append(record)
        if hit:
            el, sel, sel_type, idx = hit
            logger.info("Selector %r healed via %s: %s", selector, strategy.name, sel)
            return LocatorResult(el, sel, sel_type, strategy.name, idx, [primary] + diagnostics)

    raise ElementNotFound(selector, primary=primary, diagnostics=diagnostics)


def fallback_summary(err: ElementNotFound) -> str:
    """Human-readable account of everything locate() tried."""
    lines = [f"Element not found: {err.selector!r}"]
    descriptions = {s.name: s.description for s in STRATEGIES}
    attempts = ([err.primary] if err.primary else []) + err.diagnostics
    for attempt in attempts:
        cands = attempt.get("candidates") or []
        matched = sum(c.get("matched", 0) for c in cands)
        errors = [c for c in cands if c.get("error")]
        line = f"  - {attempt.get('strategy')}: {len(cands)} candidate(s), {matched} match(es), none usable"
        if not cands:
            line = f"  - {attempt.get('strategy')}: no candidates derived from the selector"
        if errors:
            line += f", {len(errors)} query error(s)"
        described = descriptions.get(attempt.get("strategy"))
        if described:
            line += f" [{described}]"
        lines.append(line)
    lines.append(
        "Suggestions: inspect the page with get_content, prefer visible text "
        "(text=...) or a stable attribute such as aria-label or name."
    )
    return "\n".join(lines)


__all__ = [
    "Strategy",
    "LocatorResult",
    "STRATEGIES",
    "ROLE_SELECTORS",
    "FUZZY_ATTRS",
    "text_candidates",
    "relaxed_candidates",
    "attribute_candidates",
    "role_candidates",
    "locate",
    "fallback_summary",
]
