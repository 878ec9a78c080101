"""Text extraction from boleto PDFs.

PyPDF2 decodes the document and reports each text run through its
``visitor_text`` hook. Runs are joined with single spaces per page, and
pages are joined with newlines in page order. When PyPDF2 yields too
little text and pdfplumber is installed, the words pdfplumber finds are
joined the same way and the longer of the two results is kept.

Scanned boletos carry no text layer at all. For those the caller can
hand the bytes to an OCRProvider; ``TesseractOCRProvider`` rasterizes
pages with pdf2image and reads them with pytesseract.
"""

import asyncio
import shutil
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Optional, Protocol, Union

import structlog
from PyPDF2 import PdfReader

from .config import ExtractionConfig
from .exceptions import ConfigurationError, ExtractionError

try:
    import pdfplumber
    HAS_PDFPLUMBER = True
except ImportError:
    HAS_PDFPLUMBER = False

try:
    from pdf2image import convert_from_bytes
except ImportError:
    convert_from_bytes = None

try:
    import pytesseract
except ImportError:
    pytesseract = None

logger = structlog.get_logger()

PdfSource = Union[bytes, bytearray, str, Path]


class ExtractionMethod(str, Enum):
    """How the text of a document was obtained."""

    PYPDF2 = "pypdf2"
    PDFPLUMBER = "pdfplumber"
    OCR = "ocr"
    TEXT = "text"


@dataclass
class ExtractedDocument:
    """Text extracted from a document, with provenance."""

    text: str
    page_count: int = 0
    method: ExtractionMethod = ExtractionMethod.PYPDF2
    source: Optional[str] = None

    @property
    def char_count(self) -> int:
        """Number of non-blank characters."""
        return len(self.text.strip())


def read_pdf_bytes(source: PdfSource) -> tuple[bytes, Optional[str]]:
    """Return the document bytes and a printable source name."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source), None
    path = Path(source)
    try:
        return path.read_bytes(), str(path)
    except OSError as e:
        raise ExtractionError(
            f"Failed to read file: {e}",
            source=str(path),
            document_type="boleto",
            recoverable=False,
        ) from e


def join_runs(runs: list[Optional[str]]) -> str:
    """Join text runs with single spaces, skipping empty ones.

    PyPDF2 reports line breaks as part of the runs; whitespace inside a
    run is collapsed so that newlines only separate pages.
    """
    return " ".join(
        " ".join(run.split()) for run in runs if isinstance(run, str) and run.strip()
    )


class PDFTextExtractor:
    """Extracts the text layer of a PDF document.

    Example:
        extractor = PDFTextExtractor()
        document = extractor.extract(Path("boleto.pdf"))
        print(document.text)
    """

    def __init__(self, config: Optional[ExtractionConfig] = None):
        self.config = config or ExtractionConfig()

    def extract(self, source: PdfSource) -> ExtractedDocument:
        """Extract the text of every page, in page order.

        Raises:
            ExtractionError: If the document cannot be decoded at all.
        """
        data, name = read_pdf_bytes(source)
        logger.info("extracting_pdf_text", source=name, size=len(data))

        try:
            reader = PdfReader(BytesIO(data))
            pages = list(reader.pages)
        except Exception as e:
            raise ExtractionError(
                f"Failed to read PDF: {e}",
                source=name,
                document_type="boleto",
                recoverable=False,
            ) from e

        page_texts = [
            self._pypdf2_page_text(page, page_num)
            for page_num, page in enumerate(pages, start=1)
        ]
        document = ExtractedDocument(
            text="\n".join(page_texts),
            page_count=len(pages),
            method=ExtractionMethod.PYPDF2,
            source=name,
        )

        if (
            HAS_PDFPLUMBER
            and self.config.use_pdfplumber_fallback
            and pages
            and document.char_count < self.config.min_text_length
        ):
            logger.info(
                "pypdf2_fallback_pdfplumber",
                source=name,
                pypdf2_chars=document.char_count,
            )
            fallback = self._extract_with_pdfplumber(data, name)
            if fallback is not None and fallback.char_count > document.char_count:
                document = fallback

        logger.info(
            "pdf_text_extracted",
            source=name,
            pages=document.page_count,
            chars=document.char_count,
            method=document.method.value,
        )
        return document

    def extract_text(self, source: PdfSource) -> str:
        """Extract the document text only."""
        return self.extract(source).text

    async def extract_async(self, source: PdfSource) -> ExtractedDocument:
        """Extract in a worker thread so the event loop keeps running."""
        return await asyncio.to_thread(self.extract, source)

    def _pypdf2_page_text(self, page, page_num: int) -> str:
        runs: list[Optional[str]] = []

        def visit(text, cm, tm, font_dict, font_size):
            runs.append(text)

        try:
            page.extract_text(visitor_text=visit)
        except Exception as e:
            logger.warning("page_extraction_failed", page=page_num, error=str(e))
            return ""
        return join_runs(runs)

    def _extract_with_pdfplumber(
        self, data: bytes, name: Optional[str]
    ) -> Optional[ExtractedDocument]:
        try:
            with pdfplumber.open(BytesIO(data)) as pdf:
                page_texts = []
                for page_num, page in enumerate(pdf.pages, start=1):
                    try:
                        words = page.extract_words()
                    except Exception as e:
                        logger.warning("pdfplumber_page_failed", page=page_num, error=str(e))
                        words = []
                    page_texts.append(join_runs([word.get("text") for word in words]))
                return ExtractedDocument(
                    text="\n".join(page_texts),
                    page_count=len(pdf.pages),
                    method=ExtractionMethod.PDFPLUMBER,
                    source=name,
                )
        except Exception as e:
            logger.warning("pdfplumber_fallback_failed", source=name, error=str(e))
            return None


# =============================================================================
# OCR
# =============================================================================


class OCRProvider(Protocol):
    """Anything able to read text out of PDF bytes."""

    def extract_text(self, data: bytes) -> str:
        ...


def missing_ocr_dependencies() -> list[str]:
    """Names of the OCR dependencies that are not available."""
    missing = []
    if convert_from_bytes is None:
        missing.append("pdf2image")
    if pytesseract is None:
        missing.append("pytesseract")
    if shutil.which("tesseract") is None:
        missing.append("tesseract-ocr")
    if shutil.which("pdftoppm") is None:
        missing.append("poppler-utils (pdftoppm)")
    return missing


class TesseractOCRProvider:
    """OCR through pdf2image and pytesseract."""

    def __init__(self, config: Optional[ExtractionConfig] = None):
        self.config = config or ExtractionConfig()

    def extract_text(self, data: bytes) -> str:
        """Rasterize every page and OCR it; pages are joined with newlines.

        Raises:
            ConfigurationError: If an OCR dependency is missing.
            ExtractionError: If rasterization or recognition fails.
        """
        missing = missing_ocr_dependencies()
        if missing:
            raise ConfigurationError(
                "OCR is not available, install: " + ", ".join(missing),
                config_key="QUALIVIDA_EXTRACTION_OCR_ENABLED",
                expected="pdf2image, pytesseract and tesseract installed",
                actual=missing,
            )

        try:
            images = convert_from_bytes(data, dpi=self.config.ocr_dpi)
            page_texts = [
                pytesseract.image_to_string(
                    image,
                    lang=self.config.ocr_language,
                    config=self.config.tesseract_config or "",
                )
                or ""
                for image in images
            ]
        except Exception as e:
            raise ExtractionError(
                f"OCR failed: {e}",
                document_type="boleto",
                recoverable=False,
            ) from e

        text = "\n".join(page_texts)
        logger.info("ocr_text_extracted", pages=len(images), chars=len(text.strip()))
        return text
