from __future__ import annotations

from io import BytesIO

from pypdf import PdfReader
from pypdf.errors import PyPdfError


class PdfTextError(RuntimeError):
    pass


def extract_pdf_text(body: bytes) -> str:
    try:
        reader = PdfReader(BytesIO(body))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, KeyError, TypeError) as e:
        raise PdfTextError(f"Could not read PDF text: {e}") from e
    text = "\n".join(pages)
    return text.replace("\u202f", " ").replace("\xa0", " ")
