from io import BytesIO
from typing import Iterator, List

from docx import Document
from docx.table import Table
from docx.text.paragraph import Paragraph


def _iter_block_items(doc) -> Iterator[object]:
    """Yield paragraphs and tables in document order."""
    body = doc.element.body
    for child in body.iterchildren():
        tag = child.tag.rsplit("}", 1)[-1]
        if tag == "p":
            yield Paragraph(child, doc)
        elif tag == "tbl":
            yield Table(child, doc)


def _table_lines(table: Table) -> List[str]:
    out: List[str] = []
    for row in table.rows:
        seen = set()
        cells = []
        for cell in row.cells:
            # Merged cells repeat the same element across the row
            if id(cell._tc) in seen:
                continue
            seen.add(id(cell._tc))
            t = (cell.text or "").strip()
            if t:
                cells.append(t)
        # One line per cell; two-column résumé layouts put whole sections in cells
        for c in cells:
            out.extend(ln.strip() for ln in c.splitlines() if ln.strip())
    return out


def extract_docx_lines(docx_bytes: bytes) -> List[str]:
    """
    Deterministically extract non-empty text lines from a DOCX, paragraphs
    and table cells in document order.
    """
    doc = Document(BytesIO(docx_bytes))
    out: List[str] = []
    for block in _iter_block_items(doc):
        if isinstance(block, Paragraph):
            t = (block.text or "").strip()
            if t:
                out.append(t)
        else:
            out.extend(_table_lines(block))
    return out


def extract_docx_text(docx_bytes: bytes) -> str:
    return "\n".join(extract_docx_lines(docx_bytes))


def extract_docx_images(docx_bytes: bytes) -> List[bytes]:
    """Return the blobs of images embedded in the main document, for OCR."""
    doc = Document(BytesIO(docx_bytes))
    images: List[bytes] = []
    for rel in doc.part.rels.values():
        if "image" not in rel.reltype or rel.is_external:
            continue
        images.append(rel.target_part.blob)
    return images
