"""
Raw-bytes decoder for plain text, Markdown, RTF, and best-effort legacy .doc.
"""

import logging
import re
from typing import Tuple

logger = logging.getLogger(__name__)


ENCODING_CASCADE = ("utf-8-sig", "cp1252", "latin-1")

RTF_DESTINATIONS = re.compile(
    r"\{(?:\\\*)?\\(?:fonttbl|colortbl|stylesheet|info|pict|header|footer|generator|listtable|listoverridetable|themedata|datastore|latentstyles)[^{}]*(?:\{[^{}]*\}[^{}]*)*\}",
    re.DOTALL,
)
RTF_HEX_ESCAPE = re.compile(r"\\'([0-9a-fA-F]{2})")
RTF_UNICODE_ESCAPE = re.compile(r"\\u(-?\d+)\??")
RTF_PARAGRAPH = re.compile(r"\\(?:par|line|row|sect|page)\b ?")
RTF_TAB = re.compile(r"\\(?:tab|cell)\b ?")
RTF_CONTROL_WORD = re.compile(r"\\[a-zA-Z]+-?\d* ?")
RTF_CONTROL_SYMBOL = re.compile(r"\\[^a-zA-Z]")


def _decode_bytes(content: bytes) -> Tuple[str, str]:
    """Return (text, encoding) using a BOM-aware cascade. latin-1 never fails."""
    if content.startswith((b"\xff\xfe", b"\xfe\xff")):
        try:
            return content.decode("utf-16"), "utf-16"
        except UnicodeDecodeError:
            logger.debug("UTF-16 BOM present but decode failed, continuing cascade")

    for encoding in ENCODING_CASCADE:
        try:
            return content.decode(encoding), encoding
        except UnicodeDecodeError:
            continue
    return content.decode("latin-1", errors="replace"), "latin-1"


def strip_rtf(rtf: str) -> str:
    """
    Reduce RTF markup to plain text.

    Good enough for the word-processor exports résumés arrive as: destinations
    like font and color tables are removed wholesale, paragraph controls become
    newlines, escapes are decoded, and remaining control words and braces go.
    """
    text = RTF_DESTINATIONS.sub("", rtf)
    text = RTF_UNICODE_ESCAPE.sub(lambda m: chr(int(m.group(1)) % 65536), text)
    text = RTF_HEX_ESCAPE.sub(lambda m: bytes([int(m.group(1), 16)]).decode("cp1252", errors="replace"), text)
    text = RTF_PARAGRAPH.sub("\n", text)
    text = RTF_TAB.sub("\t", text)
    text = text.replace("\\{", "\x00LB").replace("\\}", "\x00RB").replace("\\\\", "\x00BS")
    text = RTF_CONTROL_WORD.sub("", text)
    text = RTF_CONTROL_SYMBOL.sub("", text)
    text = text.replace("{", "").replace("}", "")
    text = text.replace("\x00LB", "{").replace("\x00RB", "}").replace("\x00BS", "\\")
    lines = [ln.strip() for ln in text.splitlines()]
    return "\n".join(lines).strip()


def _printable_runs(text: str, min_len: int = 4) -> str:
    # Legacy binary .doc: keep only runs of readable characters
    runs = re.findall(r"[A-Za-z0-9@.,:;()'&%+/#\- \t\n]{" + str(min_len) + ",}", text)
    lines = [re.sub(r"[ \t]+", " ", r).strip() for r in runs]
    return "\n".join(ln for ln in lines if len(ln) >= min_len)


def decode_text(content: bytes, *, rtf: bool = False, binary: bool = False) -> str:
    """
    Decode raw upload bytes into plain text.

    Args:
        content: raw bytes
        rtf: strip RTF markup after decoding
        binary: the bytes are a binary word-processor file; keep printable runs only
    """
    text, encoding = _decode_bytes(content)
    logger.debug("Decoded %d bytes as %s", len(content), encoding)

    if rtf or text.lstrip().startswith("{\\rtf"):
        text = strip_rtf(text)
    elif binary:
        text = _printable_runs(text)

    text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\x00", "")
    return text.strip()
