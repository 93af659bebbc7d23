"""
MetaLinkClient: the public entry point tying fetching, extraction and caching
together.

A client owns an HTTP fetcher and a cache store unless they are injected.
Every request returns an ``ExtractionResult``; network, HTTP and cache
failures are reported on the result, never raised.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

import structlog

from metalink.cache.keys import build_for_string
from metalink.cache.memory import MemoryCacheStore
from metalink.cache.store import CacheEntry, CacheReadResult, CacheStore, CacheWriteResult, now_ms
from metalink.config.config import CacheOptions, ExtractOptions, FetchOptions, MetaLinkClientOptions
from metalink.exceptions import ClosedError, TooManyRedirectsError
from metalink.extract.pipeline import ExtractPipeline
from metalink.fetch.html_fetcher import HtmlFetchResult, HtmlSnippetFetcher
from metalink.fetch.http_fetcher import HttpFetcher
from metalink.fetch.protocols import Fetcher
from metalink.fetch.redirect_resolver import RedirectResolver
from metalink.models.diagnostics import ExtractionDiagnostics, FetchDiagnostics
from metalink.models.enums import CachePayloadKind, CharsetSource, MetaLinkErrorCode, MetaLinkWarningCode
from metalink.models.errors import MetaLinkError, MetaLinkWarning
from metalink.models.link_metadata import LinkMetadata
from metalink.models.result import ExtractionResult, UrlOptimizationResult
from metalink.observability.metrics import METRICS
from metalink.utils.urls import normalize_for_cache_key, normalize_for_request, parse_loose

logger = structlog.get_logger(__name__)

BLANK_URL = "about:blank"
CLOSED_MESSAGE = "MetaLinkClient is closed."


def _flag(value: bool, name: str) -> str:
    return f"{name}{1 if value else 0}"


def fetch_signature(options: FetchOptions) -> str:
    headers = "&".join(f"{k}={v}" for k, v in sorted((k.lower(), v) for k, v in options.headers.items()))
    return ",".join(
        [
            f"t{int(options.timeout * 1000)}",
            f"ua={options.user_agent or ''}",
            _flag(options.follow_redirects, "fr"),
            f"mr{options.max_redirects}",
            f"mb{options.max_bytes}",
            _flag(options.stop_after_head, "sh"),
            f"px={options.proxy_url or ''}",
            f"h={headers}",
        ]
    )


def extract_signature(options: ExtractOptions) -> str:
    return ",".join(
        [
            _flag(options.extract_open_graph, "og"),
            _flag(options.extract_twitter_card, "tw"),
            _flag(options.extract_standard_meta, "sm"),
            _flag(options.extract_link_rels, "lr"),
            _flag(options.extract_json_ld, "jl"),
            _flag(options.enable_oembed, "oe"),
            _flag(options.enable_manifest, "wm"),
            _flag(options.include_raw_metadata, "raw"),
            f"img{options.max_images}",
            f"ico{options.max_icons}",
            f"vid{options.max_videos}",
            f"aud{options.max_audios}",
        ]
    )


def cache_signature(
    cache_key_url: str,
    fetch_options: FetchOptions,
    extract_options: ExtractOptions,
    cache_options: CacheOptions,
) -> str:
    """Everything that can change a result goes into the key."""
    return "|".join(
        [
            cache_key_url,
            cache_options.payload_kind.value,
            fetch_signature(fetch_options),
            extract_signature(extract_options),
        ]
    )


def is_html_content_type(content_type: Optional[str]) -> bool:
    if content_type is None:
        return True
    lowered = content_type.lower()
    return "text/html" in lowered or "application/xhtml" in lowered


def _failed_result(
    error: MetaLinkError,
    original_url: str = BLANK_URL,
    resolved_url: str = BLANK_URL,
    total_time: float = 0.0,
    fetch: Optional[FetchDiagnostics] = None,
    warnings: Optional[List[MetaLinkWarning]] = None,
) -> ExtractionResult:
    return ExtractionResult(
        metadata=LinkMetadata.empty(original_url, resolved_url),
        diagnostics=ExtractionDiagnostics(cache_hit=False, total_time=total_time, fetch=fetch),
        warnings=list(warnings or []),
        errors=[error],
    )


class MetaLinkClient:
    """
    Extracts link metadata for URLs.

    Example:
        async with MetaLinkClient() as client:
            result = await client.extract("https://example.com")
            print(result.metadata.title)

    Fetchers and cache stores passed in are caller-owned and never closed
    here. The cache store defaults to an in-memory LRU when caching is
    enabled in ``options``.
    """

    def __init__(
        self,
        options: Optional[MetaLinkClientOptions] = None,
        fetcher: Optional[Fetcher] = None,
        cache_store: Optional[CacheStore] = None,
        pipeline: Optional[ExtractPipeline] = None,
    ) -> None:
        self.options = options or MetaLinkClientOptions()

        self.fetcher: Fetcher = fetcher or HttpFetcher()
        self._owns_fetcher = fetcher is None

        if cache_store is None and self.options.cache.enabled:
            cache_store = MemoryCacheStore(default_ttl=self.options.cache.ttl)
            self._owns_cache_store = True
        else:
            self._owns_cache_store = False
        self.cache_store = cache_store

        self.pipeline = pipeline or ExtractPipeline()
        self.html_fetcher = HtmlSnippetFetcher(self.fetcher)
        self.redirect_resolver = RedirectResolver(self.fetcher)

        self._closed = False
        self.logger = logger.bind(component="MetaLinkClient")

    @property
    def closed(self) -> bool:
        return self._closed

    async def extract(
        self,
        url: str,
        fetch_options: Optional[FetchOptions] = None,
        extract_options: Optional[ExtractOptions] = None,
        cache_options: Optional[CacheOptions] = None,
        skip_cache: bool = False,
    ) -> ExtractionResult:
        """
        Fetch ``url`` and extract its metadata.

        Raises:
            ValueError: if ``url`` is blank.
        """
        start_time = time.perf_counter()
        trimmed = url.strip()
        if not trimmed:
            raise ValueError("URL must not be empty")

        if self._closed:
            METRICS["extractions"].labels(outcome="closed").inc()
            return _failed_result(MetaLinkError(MetaLinkErrorCode.UNKNOWN, CLOSED_MESSAGE, cause=ClosedError(CLOSED_MESSAGE)))

        original_url = parse_loose(trimmed)
        if original_url is None:
            METRICS["extractions"].labels(outcome="invalid_url").inc()
            return _failed_result(
                MetaLinkError(
                    MetaLinkErrorCode.INVALID_URL,
                    f'Could not parse URL: "{url}"',
                    cause=ValueError("Invalid URL"),
                ),
                total_time=time.perf_counter() - start_time,
            )

        with structlog.contextvars.bound_contextvars(request_url=original_url):
            result = await self._extract(
                original_url,
                fetch_options or self.options.fetch,
                extract_options or self.options.extract,
                cache_options or self.options.cache,
                skip_cache,
                start_time,
            )

        if result.diagnostics.cache_hit:
            outcome = "cache_hit"
        else:
            outcome = "success" if result.is_success else "error"
        METRICS["extractions"].labels(outcome=outcome).inc()
        return result

    async def _extract(
        self,
        original_url: str,
        fetch_options: FetchOptions,
        extract_options: ExtractOptions,
        cache_options: CacheOptions,
        skip_cache: bool,
        start_time: float,
    ) -> ExtractionResult:
        warnings: List[MetaLinkWarning] = []
        request_url = normalize_for_request(original_url)
        cache_key_url = normalize_for_cache_key(original_url)
        cache_key = build_for_string(cache_signature(cache_key_url, fetch_options, extract_options, cache_options))

        store = self.cache_store
        cache_enabled = not skip_cache and cache_options.enabled and store is not None
        if skip_cache and cache_options.enabled and store is not None:
            warnings.append(
                MetaLinkWarning(MetaLinkWarningCode.CACHE_BYPASSED, "Cache was bypassed for this request.", original_url)
            )

        if cache_enabled:
            assert store is not None
            cached = await self._read_cache(store, cache_key, cache_key_url, original_url, cache_options, warnings)
            if cached is not None:
                return ExtractionResult(
                    metadata=cached.metadata,
                    diagnostics=ExtractionDiagnostics(
                        cache_hit=True,
                        total_time=time.perf_counter() - start_time,
                        fetch=cached.diagnostics.fetch,
                        field_provenance=cached.diagnostics.field_provenance,
                    ),
                    raw=cached.raw,
                    warnings=warnings + cached.warnings,
                    errors=cached.errors,
                )

        page = await self.html_fetcher.fetch(request_url, fetch_options)
        METRICS["fetch_duration"].observe(page.duration)
        fetch_diagnostics = FetchDiagnostics(
            requested_url=request_url,
            final_url=page.final_url,
            status_code=page.status_code,
            redirects=page.redirects,
            bytes_read=len(page.body_bytes),
            truncated=page.truncated,
            detected_charset=page.detected_charset,
            charset_source=page.charset_source,
            duration=page.duration,
        )

        if page.truncated:
            warnings.append(
                MetaLinkWarning(
                    MetaLinkWarningCode.TRUNCATED_HTML,
                    "HTML response was truncated to the configured max_bytes limit.",
                    page.final_url,
                )
            )
        if page.charset_source in (CharsetSource.FALLBACK, CharsetSource.UNKNOWN):
            warnings.append(
                MetaLinkWarning(
                    MetaLinkWarningCode.CHARSET_FALLBACK,
                    "Character set detection used fallback or unknown.",
                    page.final_url,
                )
            )

        def failed(error: MetaLinkError) -> ExtractionResult:
            return _failed_result(
                error,
                original_url,
                page.final_url,
                time.perf_counter() - start_time,
                fetch_diagnostics,
                warnings,
            )

        if page.error is not None:
            return failed(self._fetch_error(page, warnings))

        if not is_html_content_type(page.content_type):
            content_type = page.content_type or "(unknown)"
            warnings.append(
                MetaLinkWarning(
                    MetaLinkWarningCode.NON_HTML_RESPONSE,
                    f"Response content-type is not HTML: {content_type}",
                    page.final_url,
                )
            )
            return failed(
                MetaLinkError(
                    MetaLinkErrorCode.NON_HTML_CONTENT,
                    f"Non-HTML content-type: {content_type}",
                    page.final_url,
                    page.status_code,
                )
            )

        if page.status_code is not None and not 200 <= page.status_code < 300:
            return failed(
                MetaLinkError(
                    MetaLinkErrorCode.HTTP_STATUS,
                    f"HTTP status {page.status_code} for {page.final_url}",
                    page.final_url,
                    page.status_code,
                )
            )

        try:
            output = await self.pipeline.run(page, self.fetcher, fetch_options, extract_options)
        except Exception as e:
            self.logger.error("Extraction pipeline failed", url=page.final_url, error=str(e), exc_info=True)
            return failed(
                MetaLinkError(
                    MetaLinkErrorCode.PARSE,
                    "HTML metadata extraction pipeline failed.",
                    page.final_url,
                    page.status_code,
                    cause=e,
                )
            )

        warnings.extend(output.warnings)
        errors = list(output.errors)
        metadata = output.metadata
        if metadata.original_url != original_url:
            metadata = replace(metadata, original_url=original_url)
        diagnostics = ExtractionDiagnostics(
            cache_hit=False,
            total_time=time.perf_counter() - start_time,
            fetch=fetch_diagnostics,
            field_provenance=output.field_provenance,
        )
        result = ExtractionResult(
            metadata=metadata, diagnostics=diagnostics, raw=output.raw, warnings=warnings, errors=errors
        )

        if cache_enabled and not errors:
            assert store is not None
            entry = CacheEntry.create(cache_options.payload_kind, self._cache_payload(result, cache_options), cache_options.ttl_ms)
            write = await self._write_cache(store, cache_key, entry)
            if not write.ok:
                warnings.append(
                    MetaLinkWarning(
                        MetaLinkWarningCode.CACHE_WRITE_FAILED,
                        "Cache write failed; continuing without cached value.",
                        cache_key_url,
                        cause=write.error,
                    )
                )

        return result

    def _fetch_error(self, page: HtmlFetchResult, warnings: List[MetaLinkWarning]) -> MetaLinkError:
        error = page.error
        if isinstance(error, asyncio.TimeoutError):
            return MetaLinkError(
                MetaLinkErrorCode.TIMEOUT, "Request timed out.", page.final_url, page.status_code, cause=error
            )
        if isinstance(error, TooManyRedirectsError):
            warnings.append(
                MetaLinkWarning(MetaLinkWarningCode.REDIRECTED_TOO_MUCH, str(error), page.final_url, cause=error)
            )
        return MetaLinkError(
            MetaLinkErrorCode.NETWORK, "Network request failed.", page.final_url, page.status_code, cause=error
        )

    async def _read_cache(
        self,
        store: CacheStore,
        cache_key: str,
        cache_key_url: str,
        original_url: str,
        cache_options: CacheOptions,
        warnings: List[MetaLinkWarning],
    ) -> Optional[ExtractionResult]:
        try:
            read = await store.read(cache_key)
        except Exception as e:
            read = CacheReadResult(error=e)

        if read.is_error:
            METRICS["cache_lookups"].labels(result="error").inc()
            self.logger.warning("Cache read failed", key=cache_key, error=str(read.error))
            warnings.append(
                MetaLinkWarning(
                    MetaLinkWarningCode.CACHE_READ_FAILED,
                    "Cache read failed; proceeding without cache.",
                    cache_key_url,
                    cause=read.error,
                )
            )
            return None

        entry = read.entry
        if entry is None:
            METRICS["cache_lookups"].labels(result="miss").inc()
            return None

        stored_expiry = entry.created_at_ms + entry.ttl_ms
        configured_ttl = cache_options.ttl_ms
        expiry = stored_expiry
        if configured_ttl > 0:
            expiry = min(stored_expiry, entry.created_at_ms + configured_ttl)

        if now_ms() > expiry:
            METRICS["cache_lookups"].labels(result="miss").inc()
            await self._delete_quietly(store, cache_key)
            return None

        if entry.kind != cache_options.payload_kind:
            METRICS["cache_lookups"].labels(result="miss").inc()
            await self._delete_quietly(store, cache_key)
            return None

        try:
            cached = self._result_from_entry(entry, original_url)
        except (ValueError, TypeError, KeyError) as e:
            METRICS["cache_lookups"].labels(result="miss").inc()
            self.logger.warning("Failed to decode cached entry; treating as cache miss", key=cache_key, error=str(e))
            await self._delete_quietly(store, cache_key)
            return None

        METRICS["cache_lookups"].labels(result="hit").inc()
        return cached

    @staticmethod
    def _result_from_entry(entry: CacheEntry, original_url: str) -> ExtractionResult:
        if entry.kind is CachePayloadKind.LINK_METADATA:
            metadata = LinkMetadata.from_json(entry.payload)
            return ExtractionResult(metadata=metadata).with_original_url(original_url)
        return ExtractionResult.from_json(entry.payload).with_original_url(original_url)

    @staticmethod
    def _cache_payload(result: ExtractionResult, cache_options: CacheOptions) -> Dict[str, Any]:
        if cache_options.payload_kind is CachePayloadKind.LINK_METADATA:
            return result.metadata.to_json()
        return result.to_json()

    async def _write_cache(self, store: CacheStore, key: str, entry: CacheEntry) -> CacheWriteResult:
        try:
            write = await store.write(key, entry)
        except Exception as e:
            write = CacheWriteResult(ok=False, error=e)
        if not write.ok:
            self.logger.warning("Cache write failed", key=key, error=str(write.error))
        return write

    async def _delete_quietly(self, store: CacheStore, key: str) -> None:
        try:
            await store.delete(key)
        except Exception as e:
            self.logger.debug("Cache delete failed", key=key, error=str(e))

    async def extract_batch(
        self,
        urls: Sequence[str],
        concurrency: int = 4,
        fetch_options: Optional[FetchOptions] = None,
        extract_options: Optional[ExtractOptions] = None,
        cache_options: Optional[CacheOptions] = None,
        skip_cache: bool = False,
    ) -> List[ExtractionResult]:
        """
        Extract many URLs with at most ``concurrency`` in flight.

        Results are returned in input order. Invalid inputs become
        ``invalidUrl`` results instead of raising.
        """
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if not urls:
            return []
        if self._closed:
            closed = _failed_result(MetaLinkError(MetaLinkErrorCode.UNKNOWN, CLOSED_MESSAGE))
            return [closed for _ in urls]

        results: List[Optional[ExtractionResult]] = [None] * len(urls)
        next_index = 0

        async def extract_one(url: str) -> ExtractionResult:
            try:
                return await self.extract(url, fetch_options, extract_options, cache_options, skip_cache)
            except ValueError as e:
                self.logger.warning("Batch extract input rejected", url=url, error=str(e))
                return _failed_result(
                    MetaLinkError(MetaLinkErrorCode.INVALID_URL, str(e) or f'Invalid URL input: "{url}"', cause=e)
                )
            except Exception as e:
                self.logger.error("Unexpected batch extract failure", url=url, error=str(e), exc_info=True)
                return _failed_result(
                    MetaLinkError(MetaLinkErrorCode.UNKNOWN, "Unexpected failure during extract_batch().", cause=e)
                )

        async def worker() -> None:
            nonlocal next_index
            # Index claims never span an await.
            while next_index < len(urls):
                index = next_index
                next_index += 1
                results[index] = await extract_one(urls[index])

        await asyncio.gather(*(worker() for _ in range(min(concurrency, len(urls)))))
        return [result for result in results if result is not None]

    async def optimize_url(self, url: str, fetch_options: Optional[FetchOptions] = None) -> UrlOptimizationResult:
        """
        Follow ``url``'s redirect chain without downloading bodies.

        Raises:
            ValueError: if ``url`` is blank.
        """
        start_time = time.perf_counter()
        trimmed = url.strip()
        if not trimmed:
            raise ValueError("URL must not be empty")

        if self._closed:
            return UrlOptimizationResult(
                original_url=BLANK_URL, final_url=BLANK_URL, error=ClosedError(CLOSED_MESSAGE)
            )

        original_url = parse_loose(trimmed)
        if original_url is None:
            return UrlOptimizationResult(
                original_url=BLANK_URL,
                final_url=BLANK_URL,
                duration=time.perf_counter() - start_time,
                error=ValueError(f'Invalid URL: "{url}"'),
            )

        resolved = await self.redirect_resolver.resolve(normalize_for_request(original_url), fetch_options or self.options.fetch)
        return UrlOptimizationResult(
            original_url=original_url,
            final_url=resolved.final_url,
            redirects=resolved.redirects,
            status_code=resolved.status_code,
            duration=time.perf_counter() - start_time,
            error=resolved.error,
        )

    async def close(self) -> None:
        """Close owned resources. Idempotent; failures are logged and ignored."""
        if self._closed:
            return
        self._closed = True

        if self._owns_fetcher:
            try:
                await self.fetcher.close()
            except Exception as e:
                self.logger.warning("Fetcher close failed", error=str(e))

        if self._owns_cache_store and self.cache_store is not None:
            try:
                await self.cache_store.close()
            except Exception as e:
                self.logger.warning("Cache store close failed", error=str(e))

    async def __aenter__(self) -> MetaLinkClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
