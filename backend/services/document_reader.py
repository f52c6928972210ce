"""Raw document -> text.

Uploaded bytes are kept in a ``DocumentStore`` under an opaque reference
so a queued task only carries the reference in its payload. References
that are not in the store are treated as filesystem paths.
"""

import io
import logging
from pathlib import Path
from uuid import uuid4

import pdfplumber

from services.errors import DocumentReadError

logger = logging.getLogger(__name__)

SUPPORTED_TYPES = frozenset({"pdf", "txt"})
_TYPE_ALIASES = {"text": "txt", "text/plain": "txt", "application/pdf": "pdf"}


def normalize_file_type(file_type: str | None, filename: str | None = None) -> str:
    """Map a file type, MIME type or filename extension onto a supported type."""
    candidate = (file_type or "").strip().lower()
    if not candidate and filename and "." in filename:
        candidate = filename.rsplit(".", 1)[1].lower()
    return _TYPE_ALIASES.get(candidate, candidate)


def extract_text(pdf_bytes: bytes) -> str:
    """Extract all text from a PDF file."""
    with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
        pages = [page.extract_text() or "" for page in pdf.pages]
    return "\n".join(pages).strip()


def decode_text(content: bytes) -> str:
    return content.decode("utf-8", errors="replace").replace("\r\n", "\n").strip()


class DocumentStore:
    """In-process blob store for uploaded documents."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}

    def put(self, content: bytes) -> str:
        ref = f"mem://{uuid4().hex}"
        self._blobs[ref] = content
        return ref

    def get(self, ref: str) -> bytes | None:
        return self._blobs.get(ref)

    def delete(self, ref: str) -> bool:
        return self._blobs.pop(ref, None) is not None

    def __len__(self) -> int:
        return len(self._blobs)


class DocumentReader:
    def __init__(self, store: DocumentStore | None = None) -> None:
        self.store = store if store is not None else DocumentStore()

    def _load(self, source_ref: str) -> bytes:
        content = self.store.get(source_ref)
        if content is not None:
            return content
        path = Path(source_ref)
        try:
            return path.read_bytes()
        except OSError as e:
            raise DocumentReadError(f"Cannot read document {source_ref}: {e}") from e

    def read(self, source_ref: str, file_type: str) -> str:
        """Return the document's text; raises DocumentReadError."""
        kind = normalize_file_type(file_type, source_ref)
        if kind not in SUPPORTED_TYPES:
            raise DocumentReadError(f"Unsupported file type: {file_type or 'unknown'}")

        content = self._load(source_ref)
        if kind == "pdf":
            try:
                text = extract_text(content)
            except Exception as e:
                raise DocumentReadError(f"Could not parse PDF file: {e}") from e
        else:
            text = decode_text(content)

        if not text.strip():
            raise DocumentReadError("No text could be extracted from document")
        logger.debug("Read %d chars from %s (%s)", len(text), source_ref, kind)
        return text
