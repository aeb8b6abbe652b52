import io
from pathlib import Path

from pdfminer.high_level import extract_text as pdf_extract
from docx import Document

from app.utils.exceptions import ExceptionContext, ExtractionFailure
from app.utils.logging_config import get_logger, log_function_call
from app.utils.utils import truncate

logger = get_logger(__name__)

TEXT_SUFFIXES = {".txt", ".md", ".text"}


def read_txt(content: bytes) -> str:
    return content.decode("utf-8", errors="ignore")


def read_docx(content: bytes) -> str:
    doc = Document(io.BytesIO(content))
    return "\n".join([p.text for p in doc.paragraphs])


def read_pdf(content: bytes) -> str:
    try:
        return pdf_extract(io.BytesIO(content))
    except Exception as e:
        logger.debug(f"pdfminer failed ({e}), falling back to unstructured")
        # fallback to unstructured
        from unstructured.partition.auto import partition
        elems = partition(file=io.BytesIO(content))
        return "\n".join([e.text for e in elems if hasattr(e, "text") and e.text])


@log_function_call
def extract_text(content: bytes, filename: str, max_chars: int = 2000) -> str:
    """Convert an uploaded document to plain text, truncated to max_chars."""
    ext = Path(filename or "").suffix.lower()

    with ExceptionContext("extract_text", logger, wrap_as=ExtractionFailure, document=filename):
        if ext in TEXT_SUFFIXES:
            text = read_txt(content)
        elif ext == ".docx":
            text = read_docx(content)
        else:
            # uploads are PDFs unless they say otherwise
            text = read_pdf(content)

    text = (text or "").strip()
    if not text:
        raise ExtractionFailure(f"No text could be extracted from {filename}", filename=filename)
    return truncate(text, max_chars)
