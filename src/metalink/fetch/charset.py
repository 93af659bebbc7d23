"""
Body charset detection and decoding.

Priority: UTF-8 BOM, then the Content-Type ``charset`` parameter, then a
``<meta>`` scan of the first 4096 bytes, then UTF-8 with replacement.
Only UTF-8 and Latin-1 (with its common aliases) are decoded natively;
other declared charsets fall through to the next step.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Optional

from metalink.models.enums import CharsetSource

UTF8_BOM = b"\xef\xbb\xbf"
META_SNIFF_BYTES = 4096

_META_CHARSET = re.compile(r"""<meta[^>]*charset\s*=\s*["']?\s*([a-z0-9_\-]+)""")
_GENERIC_CHARSET = re.compile(r"""charset\s*=\s*["']?\s*([a-z0-9_\-]+)""")

_ALIASES = {
    "utf-8": "utf-8",
    "utf8": "utf-8",
    "latin1": "latin1",
    "iso-8859-1": "latin1",
    "iso8859-1": "latin1",
    "windows-1252": "latin1",
}


@dataclass(frozen=True)
class DecodedBody:
    text: str
    charset: Optional[str]
    source: CharsetSource


def normalize_charset(value: Optional[str]) -> Optional[str]:
    """Map a declared charset onto ``utf-8`` or ``latin1``; None otherwise."""
    if value is None:
        return None
    return _ALIASES.get(value.strip().lower())


def charset_from_content_type(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    lowered = content_type.lower()
    index = lowered.find("charset=")
    if index < 0:
        return None
    value = lowered[index + len("charset=") :].split(";", 1)[0].strip().strip("\"'")
    return value or None


def charset_from_meta(body: bytes) -> Optional[str]:
    """Supported charset from a meta tag, else from any ``charset=`` token in the leading bytes."""
    # Latin-1 maps every byte to one code point, so multi-byte sequences
    # cannot break the scan before the real charset is known.
    head = body[:META_SNIFF_BYTES].decode("latin1").lower()
    for pattern in (_META_CHARSET, _GENERIC_CHARSET):
        match = pattern.search(head)
        charset = normalize_charset(match.group(1)) if match else None
        if charset is not None:
            return charset
    return None


def _decode(body: bytes, charset: str) -> str:
    return body.decode(charset, errors="replace")


def decode_body(body: bytes, headers: Mapping[str, str]) -> DecodedBody:
    if body.startswith(UTF8_BOM):
        return DecodedBody(_decode(body[len(UTF8_BOM) :], "utf-8"), "utf-8", CharsetSource.BOM)

    header_charset = normalize_charset(charset_from_content_type(headers.get("content-type")))
    if header_charset is not None:
        return DecodedBody(_decode(body, header_charset), header_charset, CharsetSource.HEADER)

    meta_charset = charset_from_meta(body)
    if meta_charset is not None:
        return DecodedBody(_decode(body, meta_charset), meta_charset, CharsetSource.META)

    return DecodedBody(_decode(body, "utf-8"), "utf-8", CharsetSource.FALLBACK)


def is_probably_text(content_type: Optional[str]) -> bool:
    if content_type is None:
        return True
    lowered = content_type.lower()
    return lowered.startswith("text/") or "html" in lowered or "xml" in lowered or "json" in lowered


def looks_like_html(content_type: Optional[str]) -> bool:
    if content_type is None:
        return True
    lowered = content_type.lower()
    return "text/html" in lowered or "application/xhtml" in lowered or "html" in lowered
