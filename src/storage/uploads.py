"""Upload service — turns raw attachment payloads into hosted references.

The mobile client sends images and files either as already-hosted URLs or
as base64 ``data:`` URIs. The API layer resolves every attachment through
this service before a discussion entry or content item is persisted, so
the engagement core only ever stores references.

Local filesystem backed. In production this would be replaced with an
S3-compatible backend behind the same interface.
"""

import base64
import binascii
import hashlib
import logging
import mimetypes
from pathlib import Path

from src.engagements.errors import UpstreamUnavailable, ValidationFailed

logger = logging.getLogger(__name__)

_RESOLVED_PREFIXES = ("http://", "https://")


class UploadService:
    def __init__(self, storage_root: str, base_url: str) -> None:
        self._root = Path(storage_root)
        self._base_url = base_url.rstrip("/")

    @staticmethod
    def _compute_sha256(content: bytes) -> str:
        return hashlib.sha256(content).hexdigest()

    def store(self, content: bytes, *, folder: str, mime_type: str = "") -> str:
        """Store content and return its reference URL.

        Content-addressed: identical payloads map to the same reference.

        Raises:
            ValidationFailed: If content is empty.
            UpstreamUnavailable: If the storage backend cannot be written.
        """
        if len(content) == 0:
            msg = "Attachment content must not be empty."
            raise ValidationFailed(msg)

        extension = (mimetypes.guess_extension(mime_type) or "") if mime_type else ""
        key = f"{folder}/{self._compute_sha256(content)[:32]}{extension}"
        path = self._root / key
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if not path.exists():
                path.write_bytes(content)
        except OSError as exc:
            raise UpstreamUnavailable("upload storage", str(exc)) from exc

        logger.info("Stored attachment %s (%d bytes)", key, len(content))
        return f"{self._base_url}/{key}"

    @staticmethod
    def _decode(ref: str) -> tuple[bytes, str] | None:
        """Decode a data: URI to (content, mime type). None for hosted URLs."""
        if ref.startswith(_RESOLVED_PREFIXES):
            return None
        if not ref.startswith("data:"):
            raise ValidationFailed("Attachment must be an http(s) URL or a data: URI.")

        header, _, payload = ref.partition(",")
        if not header.endswith(";base64"):
            raise ValidationFailed("data: attachments must be base64 encoded.")
        mime_type = header[len("data:"):-len(";base64")]
        try:
            content = base64.b64decode(payload, validate=True)
        except binascii.Error as exc:
            raise ValidationFailed("Attachment is not valid base64.") from exc
        if len(content) == 0:
            raise ValidationFailed("Attachment content must not be empty.")
        return content, mime_type

    def resolve(self, ref: str, *, folder: str) -> str:
        """Return a hosted reference for ref, uploading data: URIs first."""
        decoded = self._decode(ref)
        if decoded is None:
            return ref
        content, mime_type = decoded
        return self.store(content, folder=folder, mime_type=mime_type)

    def resolve_all(self, refs: list[str], *, folder: str) -> list[str]:
        [resolved] = self.resolve_groups([refs], folder=folder)
        return resolved

    def resolve_groups(self, groups: list[list[str]], *, folder: str) -> list[list[str]]:
        """Resolve several attachment lists as one batch.

        Every reference is decoded before anything is stored, so one bad
        reference leaves nothing behind in storage.
        """
        decoded = [[(ref, self._decode(ref)) for ref in refs] for refs in groups]
        return [
            [
                ref if payload is None
                else self.store(payload[0], folder=folder, mime_type=payload[1])
                for ref, payload in group
            ]
            for group in decoded
        ]
