"""
File-type sniffing for uploaded documents.

libmagic's verdict on the content wins over the declared media type, which
wins over the file extension. Browsers and mail clients routinely send
application/octet-stream or a wrong extension, so the content is the most
reliable signal.
"""

import logging
import zipfile
from enum import Enum
from io import BytesIO
from typing import Optional

import magic

from resume_ingest.core.config import ParserSettings
from resume_ingest.core.schemas import UploadedDocument


logger = logging.getLogger(__name__)


class DocumentKind(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    TEXT = "text"
    RTF = "rtf"
    LEGACY_DOC = "legacy_doc"
    IMAGE = "image"
    UNKNOWN = "unknown"


MAGIC_SAMPLE_SIZE = 8192
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# libmagic reports a .docx as any of these depending on entry order in the archive
ZIP_MEDIA_TYPES = {
    "application/zip",
    "application/x-zip-compressed",
    DOCX_MEDIA_TYPE,
}
OLE2_MEDIA_PREFIXES = (
    "application/msword",
    "application/cdfv2",
    "application/x-ole-storage",
    "application/vnd.ms-office",
    "application/vnd.ms-word",
)

MEDIA_TYPE_KINDS = {
    "application/pdf": DocumentKind.PDF,
    DOCX_MEDIA_TYPE: DocumentKind.DOCX,
    "application/msword": DocumentKind.LEGACY_DOC,
    "text/plain": DocumentKind.TEXT,
    "text/markdown": DocumentKind.TEXT,
    "text/rtf": DocumentKind.RTF,
    "application/rtf": DocumentKind.RTF,
}

EXTENSION_KINDS = {
    ".pdf": DocumentKind.PDF,
    ".docx": DocumentKind.DOCX,
    ".doc": DocumentKind.LEGACY_DOC,
    ".txt": DocumentKind.TEXT,
    ".text": DocumentKind.TEXT,
    ".md": DocumentKind.TEXT,
    ".markdown": DocumentKind.TEXT,
    ".rtf": DocumentKind.RTF,
    ".png": DocumentKind.IMAGE,
    ".jpg": DocumentKind.IMAGE,
    ".jpeg": DocumentKind.IMAGE,
    ".gif": DocumentKind.IMAGE,
    ".bmp": DocumentKind.IMAGE,
    ".tif": DocumentKind.IMAGE,
    ".tiff": DocumentKind.IMAGE,
    ".webp": DocumentKind.IMAGE,
}


def _is_docx_package(content: bytes) -> bool:
    try:
        with zipfile.ZipFile(BytesIO(content)) as zf:
            return any(name.startswith("word/") for name in zf.namelist())
    except zipfile.BadZipFile:
        return False


def detect_media_type(content: bytes) -> str:
    """Ask libmagic for the MIME type of the first few KB."""
    mime = magic.Magic(mime=True)
    return (mime.from_buffer(content[:MAGIC_SAMPLE_SIZE]) or "").lower()


def kind_for_media_type(media_type: str, content: bytes = b"") -> Optional[DocumentKind]:
    """
    Map a libmagic MIME type to a DocumentKind.

    Plain text yields None: libmagic calls every readable file text/plain, so
    the declared type and extension decide between text flavours.
    """
    if media_type in ZIP_MEDIA_TYPES:
        return DocumentKind.DOCX if _is_docx_package(content) else None
    if media_type == "application/pdf":
        return DocumentKind.PDF
    if media_type in ("text/rtf", "application/rtf"):
        return DocumentKind.RTF
    if media_type.startswith(OLE2_MEDIA_PREFIXES):
        return DocumentKind.LEGACY_DOC
    if media_type.startswith("image/"):
        return DocumentKind.IMAGE
    return None


def sniff_magic(content: bytes) -> Optional[DocumentKind]:
    """Identify a document by its content, or None if nothing conclusive matches."""
    # Some generators put a few junk bytes before the PDF header
    if b"%PDF-" in content[:1024]:
        return DocumentKind.PDF
    media_type = detect_media_type(content)
    kind = kind_for_media_type(media_type, content)
    logger.debug("libmagic says %s -> %s", media_type, kind.value if kind else None)
    return kind


def _base_media_type(media_type: str) -> str:
    return (media_type or "").split(";")[0].strip().lower()


def sniff_document(document: UploadedDocument) -> DocumentKind:
    kind = sniff_magic(document.content)
    if kind is not None:
        return kind

    media_type = _base_media_type(document.media_type)
    if media_type in MEDIA_TYPE_KINDS:
        return MEDIA_TYPE_KINDS[media_type]
    if media_type.startswith("image/"):
        return DocumentKind.IMAGE
    if media_type.startswith("text/"):
        return DocumentKind.TEXT

    kind = EXTENSION_KINDS.get(document.extension)
    if kind is not None:
        return kind

    if looks_like_text(document.content):
        logger.debug("No type signal for %r, content looks like text", document.file_name)
        return DocumentKind.TEXT
    return DocumentKind.UNKNOWN


def looks_like_text(content: bytes, sample_size: int = 4096) -> bool:
    """Heuristic: no NUL bytes and mostly printable characters in the first few KB."""
    sample = content[:sample_size]
    if not sample or b"\x00" in sample:
        return False
    try:
        decoded = sample.decode("utf-8")
    except UnicodeDecodeError:
        decoded = sample.decode("cp1252", errors="replace")
    printable = sum(1 for c in decoded if c.isprintable() or c in "\r\n\t")
    return printable / len(decoded) >= 0.95


def is_allowed(document: UploadedDocument, settings: ParserSettings) -> bool:
    """
    Allow-list check on extension and declared media type.

    An empty declared media type is allowed through optimistically; routing
    then relies on the sniffed content alone.
    """
    media_type = _base_media_type(document.media_type)
    if not media_type:
        return True

    allowed_types = {m.lower() for m in settings.allowed_media_types}
    allowed_exts = {e.lower() for e in settings.allowed_extensions}
    if media_type in allowed_types:
        return True
    # Generic upload types are judged by the extension instead
    if media_type == "application/octet-stream" and document.extension in allowed_exts:
        logger.debug("Generic media type for %s, accepted by extension", document.file_name)
        return True
    return False
