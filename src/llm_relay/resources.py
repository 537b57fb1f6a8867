"""Read ``file://`` resources for the ``resources/read`` method."""

from __future__ import annotations

import asyncio
import base64
import logging
import mimetypes
from pathlib import Path
from typing import Any, Optional
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

from llm_relay.cache import Cache
from llm_relay.errors import MalformedResourceError

__all__ = ["read_resource", "resource_path", "looks_binary"]

logger = logging.getLogger(__name__)

TEXT_FALLBACK_MIME = "text/plain"
BINARY_FALLBACK_MIME = "application/octet-stream"
_SNIFF_BYTES = 8192


def resource_path(uri: str) -> Path:
    """Map a ``file://`` URI to a local path.

    Raises:
        MalformedResourceError: For any other scheme.
    """
    parsed = urlparse(uri)
    if parsed.scheme != "file":
        raise MalformedResourceError("Unsupported URI protocol. Only file:// is supported.")
    if parsed.netloc not in ("", "localhost"):
        raise MalformedResourceError(f"Remote file hosts are not supported: {parsed.netloc}")
    return Path(url2pathname(unquote(parsed.path))).resolve()


def looks_binary(data: bytes) -> bool:
    """NUL bytes or invalid UTF-8 in the leading chunk mean binary."""
    head = data[:_SNIFF_BYTES]
    if b"\x00" in head:
        return True
    try:
        data.decode("utf-8")
    except UnicodeDecodeError:
        return True
    return False


async def read_resource(
    uri: str,
    *,
    cache: Optional[Cache] = None,
    log: Optional[logging.Logger] = None,
) -> dict[str, Any]:
    """Read one resource and return its content entry.

    Text files come back as ``{uri, mimeType, text}``; anything else as
    ``{uri, mimeType, blob}`` with base64 content.

    Raises:
        MalformedResourceError: Unsupported scheme or unreadable file.
    """
    log = log or logger
    if cache is not None:
        cached = cache.get(uri)
        if cached is not None:
            return dict(cached)

    path = resource_path(uri)
    try:
        data = await asyncio.to_thread(path.read_bytes)
    except OSError as exc:
        log.error("Failed to read resource %s: %s", uri, exc)
        raise MalformedResourceError(f"Failed to read resource: {exc}") from exc

    guessed, _ = mimetypes.guess_type(path.name)
    if looks_binary(data):
        content = {
            "uri": uri,
            "mimeType": guessed or BINARY_FALLBACK_MIME,
            "blob": base64.b64encode(data).decode("ascii"),
        }
    else:
        content = {
            "uri": uri,
            "mimeType": guessed or TEXT_FALLBACK_MIME,
            "text": data.decode("utf-8"),
        }
    log.info("Read resource from URI: %s (%d bytes)", uri, len(data))

    if cache is not None:
        cache.set(uri, content)
    return dict(content)
