"""Detect and repair broken clothing item image references."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import requests

from memory.record_store import RecordStore
from tools.observability import instrument_operation

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE_URI = "placeholder://clothing-item"
NEEDS_REUPLOAD_TAG = "needs-reupload"
_BROKEN_STATUS_CODES = {404, 410}


class ImageStatus(str, Enum):
    OK = "ok"
    BROKEN = "broken"
    UNKNOWN = "unknown"


class ImageIntegrityChecker:
    """Check image URIs and swap definitively broken ones for a placeholder.

    Only references that are known to be gone (HTTP 404/410, a missing local
    file or an empty URI) are repaired. Network errors and unexpected statuses
    are treated as unknown and left alone so that an offline device never
    rewrites a healthy closet.
    """

    def __init__(self, store: RecordStore, timeout_seconds: float = 5.0, session: requests.Session | None = None) -> None:
        self.store = store
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def check_uri(self, uri: Optional[str]) -> ImageStatus:
        if not uri or not uri.strip():
            return ImageStatus.BROKEN
        uri = uri.strip()
        if uri == PLACEHOLDER_IMAGE_URI:
            return ImageStatus.OK

        parsed = urlparse(uri)
        scheme = parsed.scheme.lower()
        if scheme in {"http", "https"}:
            return self._check_http(uri)
        if scheme == "data":
            _, _, payload = uri.partition(",")
            return ImageStatus.OK if payload.strip() else ImageStatus.BROKEN
        if scheme == "file":
            return self._check_path(Path(unquote(parsed.path)))
        if scheme == "" or len(scheme) == 1:
            # bare paths, including Windows drive letters
            return self._check_path(Path(uri))
        logger.debug("Unsupported image scheme", extra={"scheme": scheme})
        return ImageStatus.UNKNOWN

    @staticmethod
    def _check_path(path: Path) -> ImageStatus:
        try:
            return ImageStatus.OK if path.is_file() else ImageStatus.BROKEN
        except OSError:
            return ImageStatus.UNKNOWN

    def _check_http(self, uri: str) -> ImageStatus:
        try:
            response = self.session.head(uri, timeout=self.timeout_seconds, allow_redirects=True)
            if response.status_code == 405:
                response = self.session.get(uri, timeout=self.timeout_seconds, stream=True)
                response.close()
        except requests.RequestException as exc:
            logger.info("Image check failed; leaving reference untouched", extra={"error": str(exc)})
            return ImageStatus.UNKNOWN

        if response.status_code in _BROKEN_STATUS_CODES:
            return ImageStatus.BROKEN
        if 200 <= response.status_code < 400:
            return ImageStatus.OK
        return ImageStatus.UNKNOWN

    @instrument_operation("cleanup_broken_images")
    def cleanup_broken_images(self) -> int:
        """Repair every definitively broken image and return how many items changed.

        Every image is checked before anything is written; each repair then re-reads the
        item so wears logged while probing are kept.
        """

        broken = [
            (item.id, item.image_uri)
            for item in self.store.get_clothing_items()
            if self.check_uri(item.image_uri) is ImageStatus.BROKEN
        ]
        fixed = 0
        for item_id, checked_uri in broken:
            repaired = self.store.repair_image(
                item_id, PLACEHOLDER_IMAGE_URI, NEEDS_REUPLOAD_TAG, expected_uri=checked_uri
            )
            if repaired is not None:
                fixed += 1
        if fixed:
            logger.warning("Replaced %s broken image reference(s)", fixed)
        return fixed


__all__ = ["ImageIntegrityChecker", "ImageStatus", "PLACEHOLDER_IMAGE_URI", "NEEDS_REUPLOAD_TAG"]
