"""
Error and warning values attached to extraction results.

Nothing in the request path raises these; they are collected on the result so
callers can decide what to retry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ._json import as_int, as_str, drop_none
from .enums import MetaLinkErrorCode, MetaLinkWarningCode

_RETRYABLE = frozenset({MetaLinkErrorCode.NETWORK, MetaLinkErrorCode.TIMEOUT, MetaLinkErrorCode.HTTP_STATUS})


@dataclass(frozen=True)
class MetaLinkError:
    code: MetaLinkErrorCode
    message: str
    url: Optional[str] = None
    status_code: Optional[int] = None
    cause: Optional[BaseException] = field(default=None, compare=False)

    @property
    def is_retryable(self) -> bool:
        return self.code in _RETRYABLE

    def to_json(self) -> Dict[str, Any]:
        return drop_none(
            {
                "code": self.code.value,
                "message": self.message,
                "uri": self.url,
                "statusCode": self.status_code,
                "cause": repr(self.cause) if self.cause is not None else None,
            }
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> MetaLinkError:
        try:
            code = MetaLinkErrorCode(data.get("code"))
        except ValueError:
            code = MetaLinkErrorCode.UNKNOWN
        return cls(
            code=code,
            message=as_str(data.get("message")) or "",
            url=as_str(data.get("uri")),
            status_code=as_int(data.get("statusCode")),
        )

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


@dataclass(frozen=True)
class MetaLinkWarning:
    code: MetaLinkWarningCode
    message: str
    url: Optional[str] = None
    cause: Optional[BaseException] = field(default=None, compare=False)

    def to_json(self) -> Dict[str, Any]:
        return drop_none(
            {
                "code": self.code.value,
                "message": self.message,
                "uri": self.url,
                "cause": repr(self.cause) if self.cause is not None else None,
            }
        )

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> MetaLinkWarning:
        code = MetaLinkWarningCode(data.get("code"))
        return cls(code=code, message=as_str(data.get("message")) or "", url=as_str(data.get("uri")))

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"
