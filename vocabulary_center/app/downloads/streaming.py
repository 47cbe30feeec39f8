"""Streaming retrieval of stored assets over HTTP."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional

import httpx

from ...errors import UpstreamFailure

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 5
CHUNK_SIZE = 64 * 1024


@dataclass
class StreamedAsset:
    """An open upstream response; iterate ``chunks`` to read and release it."""

    content_length: Optional[str]
    chunks: Iterator[bytes]


class AssetStreamer:
    def __init__(self, *, timeout: float = 10.0, client: Optional[httpx.Client] = None) -> None:
        self._client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            headers={"User-Agent": "vocabulary-center-downloader"},
        )

    def open(self, url: str) -> StreamedAsset:
        try:
            request = self._client.build_request("GET", url, headers={"Accept-Encoding": "identity"})
            response = self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            logger.warning("Asset fetch failed for %s: %s", url, exc)
            raise UpstreamFailure("Failed to fetch PDF from storage") from exc

        if response.status_code != 200:
            response.close()
            logger.warning("Asset store answered %s for %s", response.status_code, url)
            raise UpstreamFailure(
                "Failed to fetch PDF from storage",
                detail={"status": response.status_code},
            )
        # Chunks are decoded, so an encoded upstream length would not match them.
        encoding = response.headers.get("content-encoding", "identity").strip().lower()
        content_length = response.headers.get("content-length") if encoding == "identity" else None
        return StreamedAsset(
            content_length=content_length,
            chunks=self._iterate(response),
        )

    @staticmethod
    def _iterate(response: httpx.Response) -> Iterator[bytes]:
        try:
            for chunk in response.iter_bytes(CHUNK_SIZE):
                yield chunk
        finally:
            response.close()


__all__ = ["AssetStreamer", "MAX_REDIRECTS", "StreamedAsset"]
