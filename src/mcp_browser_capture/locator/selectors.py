"""
Selector parsing helpers for the element locator.

Everything here is pure string work: no page access. The locator turns a
primary selector into fallback candidates with these functions and then
queries the live page for each candidate.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


_EXPLICIT_TEXT_PATS = [
    re.compile(r"""^\s*text\s*[=:]\s*(["']?)(?P<text>.+?)\1\s*$""", re.I | re.S),
    re.compile(r""":has-text\(\s*(["']?)(?P<text>.+?)\1\s*\)""", re.I),
    re.compile(r""":contains\(\s*(["']?)(?P<text>.+?)\1\s*\)""", re.I),
    re.compile(r"""text\(\)\s*=\s*(["'])(?P<text>.+?)\1"""),
    re.compile(r"""contains\(\s*(?:text\(\)|\.|normalize-space\(\s*(?:text\(\)|\.)?\s*\))\s*,\s*(["'])(?P<text>.+?)\1\s*\)"""),
    re.compile(r"""normalize-space\(\s*(?:text\(\)|\.)?\s*\)\s*=\s*(["'])(?P<text>.+?)\1"""),
]

# Tokens that describe widgets in general rather than the specific element
NOISE_WORDS = frozenset({
    "btn", "button", "input", "field", "wrapper", "container", "icon", "primary",
    "secondary", "main", "el", "elem", "element", "item", "link", "box", "form",
    "control", "ctrl", "label", "text", "lg", "sm", "md", "xs", "xl", "col", "row",
    "js", "the", "and", "div", "span", "inner", "outer", "default", "active",
})

KEYWORD_ATTRS = (
    "id", "name", "aria-label", "placeholder", "title", "data-testid", "data-test",
    "data-qa", "value", "for", "alt",
)

INTERACTIVE_TAGS = ("button", "a", "input", "select", "textarea")

_TAG_HINTS = (
    ("button", ("btn", "button", "submit")),
    ("a", ("link", "href", "anchor")),
    ("textarea", ("textarea", "comment", "message")),
    ("select", ("select", "dropdown", "combobox")),
    ("input", ("input", "field", "search", "email", "password", "username", "textbox")),
)

_UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_LOWER = "abcdefghijklmnopqrstuvwxyz"


@dataclass
class Compound:
    """One compound selector such as ``button#go.primary[type="submit"]:hover``."""

    tag: Optional[str] = None
    id: Optional[str] = None
    classes: List[str] = field(default_factory=list)
    attrs: List[Tuple[str, str]] = field(default_factory=list)  # (name, raw "[...]" text)
    pseudos: List[str] = field(default_factory=list)

    def render(self, *, tag=True, id=True, classes=None, attrs=None, pseudos=True) -> str:
        out = (self.tag or "") if tag else ""
        if id and self.id:
            out += f"#{self.id}"
        for c in (self.classes if classes is None else classes):
            out += f".{c}"
        for _, raw in (self.attrs if attrs is None else attrs):
            out += raw
        if pseudos:
            out += "".join(self.pseudos)
        return out


def detect_selector_type(selector: str) -> str:
    s = (selector or "").lstrip()
    if s.startswith(("/", "(", "./")):
        return "xpath"
    return "css"


def explicit_text(selector: str) -> Optional[str]:
    """Return the text an explicit text selector asks for, if it is one."""
    for pat in _EXPLICIT_TEXT_PATS:
        m = pat.search(selector or "")
        if m:
            text = " ".join(m.group("text").split())
            if text:
                return text
    return None


def split_compounds(css: str) -> List[str]:
    """Split a CSS selector on its top-level combinators."""
    parts, buf, depth, quote = [], [], 0, None
    for ch in (css or "").strip():
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in "\"'":
            quote = ch
        elif ch in "[(":
            depth += 1
        elif ch in "])":
            depth = max(0, depth - 1)
        elif depth == 0 and (ch.isspace() or ch in ">+~"):
            if buf:
                parts.append("".join(buf))
                buf = []
            continue
        buf.append(ch)
    if buf:
        parts.append("".join(buf))
    return parts


_COMPOUND_TOKEN = re.compile(
    r"""
    (?P<tag>^[a-zA-Z][a-zA-Z0-9-]*|^\*)
  | \#(?P<id>[\w-]+)
  | \.(?P<cls>[\w-]+)
  | (?P<attr>\[\s*(?P<attr_name>[\w:-]+)[^\]]*\])
  | (?P<pseudo>::?[\w-]+(?:\((?:[^()]|\([^()]*\))*\))?)
    """,
    re.X,
)


def parse_compound(compound: str) -> Compound:
    out = Compound()
    for m in _COMPOUND_TOKEN.finditer(compound or ""):
        if m.group("tag"):
            out.tag = None if m.group("tag") == "*" else m.group("tag").lower()
        elif m.group("id"):
            out.id = m.group("id")
        elif m.group("cls"):
            out.classes.append(m.group("cls"))
        elif m.group("attr"):
            out.attrs.append((m.group("attr_name").lower(), m.group("attr")))
        elif m.group("pseudo"):
            out.pseudos.append(m.group("pseudo"))
    return out


def _attr_value(raw: str) -> Optional[str]:
    m = re.search(r"""[~|^$*]?=\s*(["']?)(.*?)\1(?:\s+[iIsS])?\s*\]$""", raw)
    return m.group(2) if m else None


def split_words(value: str) -> List[str]:
    """``submitOrder-btn_2`` -> ``['submit', 'order', 'btn', '2']``"""
    value = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", value or "")
    return [w.lower() for w in re.split(r"[^A-Za-z0-9]+", value) if w]


def _raw_words(selector: str) -> List[str]:
    text = explicit_text(selector)
    if text:
        return split_words(text)

    words: List[str] = []
    if detect_selector_type(selector) == "xpath":
        for m in re.finditer(r"""@([\w-]+)\s*(?:=|,)\s*(["'])(.*?)\2""", selector):
            if m.group(1).lower() in KEYWORD_ATTRS or m.group(1).lower() == "class":
                words += split_words(m.group(3))
        return words

    compounds = split_compounds(selector)
    if not compounds:
        return words
    last = parse_compound(compounds[-1])
    if last.id:
        words += split_words(last.id)
    for c in last.classes:
        words += split_words(c)
    for name, raw in last.attrs:
        if name in KEYWORD_ATTRS:
            words += split_words(_attr_value(raw) or "")
    return words


def selector_keywords(selector: str) -> List[str]:
    """
    Meaningful lowercase words the selector implies, in order of appearance.

    Noise words, single characters and pure numbers are dropped.
    """
    seen, out = set(), []
    for w in _raw_words(selector):
        if len(w) < 2 or w.isdigit() or w in NOISE_WORDS or w in seen:
            continue
        seen.add(w)
        out.append(w)
    return out


def target_tag(selector: str) -> Optional[str]:
    """Best guess at which interactive tag the selector was aiming at."""
    if detect_selector_type(selector) == "xpath":
        steps = re.findall(r"/+([a-zA-Z][\w-]*)", selector or "")
        if steps and steps[-1].lower() in INTERACTIVE_TAGS:
            return steps[-1].lower()
    elif not explicit_text(selector):
        compounds = split_compounds(selector)
        if compounds:
            tag = parse_compound(compounds[-1]).tag
            if tag in INTERACTIVE_TAGS:
                return tag

    words = set(_raw_words(selector))
    for tag, hints in _TAG_HINTS:
        if words.intersection(hints):
            return tag
    return None


def xpath_literal(value: str) -> str:
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{p}'" for p in parts) + ")"


def lowered(expr: str) -> str:
    return f"normalize-space(translate({expr}, '{_UPPER}', '{_LOWER}'))"


INTERACTIVE_PREDICATE = (
    "self::button or self::a or self::input or self::select or self::textarea "
    "or self::label or self::option or self::summary "
    "or @role='button' or @role='link' or @role='tab' or @role='menuitem' or @onclick"
)


def text_xpaths(text: str) -> List[str]:
    """XPath candidates for an element showing ``text``, strictest first."""
    lit = xpath_literal(" ".join(text.lower().split()))
    return [
        f"//*[{INTERACTIVE_PREDICATE}][{lowered('.')}={lit}]",
        f"//input[@type='submit' or @type='button' or @type='reset'][{lowered('@value')}={lit}]",
        f"//*[{INTERACTIVE_PREDICATE}][contains({lowered('.')}, {lit})]",
        f"//*[text()[contains({lowered('.')}, {lit})]]",
    ]


__all__ = [
    "Compound",
    "NOISE_WORDS",
    "KEYWORD_ATTRS",
    "INTERACTIVE_TAGS",
    "detect_selector_type",
    "explicit_text",
    "split_compounds",
    "parse_compound",
    "split_words",
    "selector_keywords",
    "target_tag",
    "xpath_literal",
    "lowered",
    "text_xpaths",
]
