"""
selectolax helpers shared by the extractor stages.
"""

from __future__ import annotations

import re
from typing import Iterable, Iterator, List, Optional

from selectolax.lexbor import LexborHTMLParser, LexborNode

_WHITESPACE = re.compile(r"\s+")


def clean_text(value: Optional[str]) -> Optional[str]:
    """Drop NUL characters, collapse whitespace, strip. Empty becomes None."""
    if value is None:
        return None
    cleaned = _WHITESPACE.sub(" ", value.replace("\x00", "")).strip()
    return cleaned or None


def node_text(node: Optional[LexborNode]) -> Optional[str]:
    if node is None:
        return None
    return clean_text(node.text(deep=True, separator=" "))


def meta_key(node: LexborNode) -> Optional[str]:
    """The lower-cased ``property`` or ``name`` of a meta tag."""
    attrs = node.attributes
    key = attrs.get("property") or attrs.get("name")
    if not key:
        return None
    return key.strip().lower()


def meta_value(node: LexborNode) -> Optional[str]:
    attrs = node.attributes
    return clean_text(attrs.get("content")) or clean_text(attrs.get("value"))


def iter_meta(document: LexborHTMLParser, keys: Iterable[str]) -> Iterator[LexborNode]:
    """Meta tags whose property or name is one of ``keys``, in document order."""
    wanted = {key.lower() for key in keys}
    for node in document.css("meta"):
        if meta_key(node) in wanted:
            yield node


def meta_content(document: LexborHTMLParser, *keys: str) -> Optional[str]:
    """First non-empty content of a meta tag matching any of ``keys``."""
    for node in iter_meta(document, keys):
        value = meta_value(node)
        if value is not None:
            return value
    return None


def meta_contents(document: LexborHTMLParser, *keys: str) -> List[str]:
    """All distinct non-empty contents of meta tags matching ``keys``."""
    seen = set()
    values: List[str] = []
    for node in iter_meta(document, keys):
        value = meta_value(node)
        if value is not None and value not in seen:
            seen.add(value)
            values.append(value)
    return values


def attr(node: LexborNode, name: str) -> Optional[str]:
    value = node.attributes.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def rel_tokens(node: LexborNode) -> List[str]:
    rel = node.attributes.get("rel") or ""
    return [token for token in rel.lower().split() if token]
