"""HTTP access for package indexes and dist archives.

Index documents are fetched with retries and kept in a short-lived memory
cache, since one run may consult the same repository several times.
Archives are streamed straight to disk and never cached.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, NamedTuple, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

Response = Tuple[int, Dict[str, str], str]


class _CacheEntry(NamedTuple):
    response: Response
    stored_at: float


_index_cache: Dict[str, _CacheEntry] = {}


def _cache_key(url: str, headers: Optional[Dict[str, str]]) -> str:
    if not headers:
        return url
    return url + "|" + "|".join(f"{k}={v}" for k, v in sorted(headers.items()))


def _cached(key: str) -> Optional[Response]:
    entry = _index_cache.get(key)
    if entry is None:
        return None
    if time.time() - entry.stored_at >= Constants.HTTP_CACHE_TTL_SEC:
        del _index_cache[key]
        return None
    return entry.response


def _store(key: str, response: Response) -> None:
    now = time.time()
    for stale in [k for k, e in _index_cache.items() if now - e.stored_at >= Constants.HTTP_CACHE_TTL_SEC]:
        del _index_cache[stale]
    _index_cache[key] = _CacheEntry(response, now)


def clear_cache() -> None:
    """Forget every cached index response."""
    _index_cache.clear()


def _request_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = {"User-Agent": Constants.USER_AGENT}
    merged.update(headers or {})
    return merged


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Response:
    """GET url, retrying connection failures and timeouts.

    Responses below 500 are cached for HTTP_CACHE_TTL_SEC seconds.

    Returns:
        (status_code, headers, text). The status is 0 when no attempt got a
        response; text then describes the last failure.
    """
    key = _cache_key(url, headers)
    target = safe_url(url)
    hit = _cached(key)
    if hit is not None:
        if is_debug_enabled(logger):
            logger.debug(
                "Index cache hit",
                extra=extra_context(event="cache_hit", component="http_client", action="GET", target=target)
            )
        return hit

    failure = "no attempt made"
    for attempt in range(1, Constants.HTTP_RETRY_MAX + 1):
        with Timer() as timer:
            try:
                res = requests.get(url, timeout=Constants.REQUEST_TIMEOUT,
                                   headers=_request_headers(headers), **kwargs)
            except requests.Timeout:
                res, failure = None, "timeout"
            except requests.RequestException as exc:
                res, failure = None, str(exc)

        if res is not None:
            result: Response = (res.status_code, dict(res.headers), res.text)
            if res.status_code < 500:
                _store(key, result)
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action="GET",
                        status_code=res.status_code,
                        duration_ms=timer.duration_ms(),
                        target=target,
                    )
                )
            return result

        logger.debug("GET %s failed on attempt %d/%d: %s", target, attempt, Constants.HTTP_RETRY_MAX, failure)

    return 0, {}, f"GET {target} failed after {Constants.HTTP_RETRY_MAX} attempts: {failure}"


def get_json(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """GET url and decode a JSON body.

    The document is None unless the status is 200 and the body parses.
    """
    status_code, response_headers, text = robust_get(url, headers=headers, **kwargs)
    if status_code != 200 or not text:
        return status_code, response_headers, None
    try:
        document = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed JSON from %s", safe_url(url))
        document = None
    return status_code, response_headers, document


def download_file(url: str, target_path: str, *, chunk_size: int = 65536) -> None:
    """Stream the archive at url into target_path.

    Raises:
        requests.RequestException: On connection errors or non-2xx responses.
    """
    with Timer() as timer:
        with requests.get(url, stream=True, timeout=Constants.REQUEST_TIMEOUT,
                          headers=_request_headers(None)) as res:
            res.raise_for_status()
            with open(target_path, "wb") as fh:
                for chunk in res.iter_content(chunk_size=chunk_size):
                    fh.write(chunk)
    if is_debug_enabled(logger):
        logger.debug(
            "Archive downloaded",
            extra=extra_context(
                event="archive_download",
                component="http_client",
                action="GET",
                duration_ms=timer.duration_ms(),
                target=safe_url(url),
            )
        )
