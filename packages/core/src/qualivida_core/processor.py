"""Boleto processing pipeline.

Runs text extraction, field parsing and resident matching for one or
more documents:

    processor = BoletoProcessor()
    result = processor.process_sync(Path("boleto.pdf"), roster)

Decode is the only step that waits on anything, so ``process`` is a
coroutine and the blocking PDF work happens in a worker thread. When the
text layer is shorter than ``min_text_length`` and OCR is enabled, the
document is read again through the OCR provider.

An unreadable document never raises out of ``process``: it comes back as
an invalid MatchResult with confidence 0 and a "failed to process
document" error.
"""

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .boleto_parser import BoletoFieldParser
from .config import QualividaConfig
from .exceptions import ExtractionError, QualividaError, ValidationError
from .models import MatchResult, Resident
from .resident_matcher import ResidentMatcher
from .text_extractor import (
    ExtractedDocument,
    ExtractionMethod,
    OCRProvider,
    PDFTextExtractor,
    TesseractOCRProvider,
    read_pdf_bytes,
)

logger = structlog.get_logger()

PROCESSING_ERROR = "failed to process document"


@dataclass(frozen=True)
class TextSource:
    """Text that was already decoded elsewhere (OCR app, pasted text)."""

    text: str
    name: Optional[str] = None


# A plain str is always a file path; decoded text goes in a TextSource.
DocumentSource = Union[bytes, bytearray, str, Path, TextSource]


def failed_result(message: str = PROCESSING_ERROR) -> MatchResult:
    """The result reported for a document that could not be processed."""
    return MatchResult(is_valid=False, confidence=0, errors=[message])


def validate_document(source: Union[str, Path], max_size_bytes: int) -> Path:
    """Check that a path points to a PDF of acceptable size.

    Raises:
        ValidationError: If the file is missing, not a PDF or too large.
    """
    path = Path(source)
    if not path.is_file():
        raise ValidationError(
            f"PDF file not found: {path}",
            field="source",
            value=str(path),
            constraint="Must be an existing file",
        )
    if path.suffix.lower() != ".pdf":
        raise ValidationError(
            f"File must be a PDF: {path}",
            field="source",
            value=str(path),
            constraint="Extension must be .pdf",
        )
    size = path.stat().st_size
    if size > max_size_bytes:
        raise ValidationError(
            f"PDF file is too large: {size} bytes",
            field="source",
            value=size,
            constraint=f"At most {max_size_bytes} bytes",
        )
    return path


_roster_adapter = TypeAdapter(list[Resident])


def parse_roster(data: Any) -> list[Resident]:
    """Build residents from decoded JSON.

    Accepts a list of resident objects or an object with a ``residents``
    list, as exported by the condominium app.
    """
    if isinstance(data, dict) and "residents" in data:
        data = data["residents"]
    try:
        return _roster_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid resident roster",
            field="residents",
            constraint="List of objects with at least name and unit",
            details={"errors": e.errors(include_url=False, include_input=False)},
        ) from e


def load_roster(path: Union[str, Path]) -> list[Resident]:
    """Load the resident roster from a JSON file."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ValidationError(
            f"Cannot read roster file: {e}",
            field="roster",
            value=str(path),
        ) from e
    residents = parse_roster(data)
    logger.info("roster_loaded", path=str(path), residents=len(residents))
    return residents


class BoletoProcessor:
    """Extract, parse and match boletos against a roster."""

    def __init__(
        self,
        config: Optional[QualividaConfig] = None,
        *,
        extractor: Optional[PDFTextExtractor] = None,
        parser: Optional[BoletoFieldParser] = None,
        matcher: Optional[ResidentMatcher] = None,
        ocr_provider: Optional[OCRProvider] = None,
    ):
        self.config = config or QualividaConfig()
        self.extractor = extractor or PDFTextExtractor(self.config.extraction)
        self.parser = parser or BoletoFieldParser()
        self.matcher = matcher or ResidentMatcher(config=self.config.matching)
        if ocr_provider is None and self.config.extraction.ocr_enabled:
            ocr_provider = TesseractOCRProvider(self.config.extraction)
        self.ocr_provider = ocr_provider

    async def load_text(self, source: DocumentSource) -> ExtractedDocument:
        """Get the text of a document, falling back to OCR on short text.

        Raises:
            ValidationError: If a file source fails the document checks.
            ExtractionError: If the document cannot be decoded.
        """
        if isinstance(source, TextSource):
            return ExtractedDocument(
                text=source.text,
                method=ExtractionMethod.TEXT,
                source=source.name,
            )

        max_size = self.config.extraction.max_file_size_bytes
        if not isinstance(source, (bytes, bytearray)):
            validate_document(source, max_size)
        data, name = read_pdf_bytes(source)
        if len(data) > max_size:
            raise ValidationError(
                f"PDF file is too large: {len(data)} bytes",
                field="source",
                value=len(data),
                constraint=f"At most {max_size} bytes",
            )

        document = await self.extractor.extract_async(data)
        document.source = name

        if document.char_count < self.config.extraction.min_text_length:
            document = await self._ocr_fallback(data, document)
        return document

    async def _ocr_fallback(
        self, data: bytes, document: ExtractedDocument
    ) -> ExtractedDocument:
        if self.ocr_provider is None:
            logger.info(
                "short_text_without_ocr",
                source=document.source,
                chars=document.char_count,
            )
            return document

        logger.info("short_text_trying_ocr", source=document.source, chars=document.char_count)
        try:
            text = await asyncio.to_thread(self.ocr_provider.extract_text, data)
        except QualividaError as e:
            logger.warning("ocr_fallback_failed", source=document.source, error=str(e))
            return document

        ocr_document = ExtractedDocument(
            text=text,
            page_count=document.page_count,
            method=ExtractionMethod.OCR,
            source=document.source,
        )
        if ocr_document.char_count > document.char_count:
            return ocr_document
        return document

    async def process(
        self, source: DocumentSource, roster: Sequence[Resident]
    ) -> MatchResult:
        """Process one document against the roster.

        ``source`` is PDF bytes, a path (``str`` or ``Path``) or a
        ``TextSource`` holding text decoded elsewhere. A ``str`` is never
        read as boleto text.

        Raises:
            ValidationError: If a file source fails the document checks.
        """
        try:
            document = await self.load_text(source)
        except ExtractionError as e:
            logger.error(
                "boleto_processing_failed",
                source=e.source,
                error=str(e),
                details=e.details,
            )
            return failed_result()

        fields = self.parser.parse(document.text)
        result = self.matcher.match(fields, roster)
        logger.info(
            "boleto_processed",
            source=document.source,
            method=document.method.value,
            is_valid=result.is_valid,
            confidence=result.confidence,
        )
        return result

    def process_sync(
        self, source: DocumentSource, roster: Sequence[Resident]
    ) -> MatchResult:
        """Blocking variant of ``process``."""
        return asyncio.run(self.process(source, roster))

    async def process_many(
        self, sources: Sequence[DocumentSource], roster: Sequence[Resident]
    ) -> list[MatchResult]:
        """Process several documents; results keep the order of ``sources``.

        A document that fails validation is reported in its own result and
        does not affect the others.
        """
        return list(
            await asyncio.gather(*(self._process_isolated(s, roster) for s in sources))
        )

    async def _process_isolated(
        self, source: DocumentSource, roster: Sequence[Resident]
    ) -> MatchResult:
        try:
            return await self.process(source, roster)
        except ValidationError as e:
            logger.warning("boleto_rejected", error=str(e), details=e.details)
            return failed_result(str(e))


def process_boleto(
    source: DocumentSource,
    roster: Sequence[Resident],
    config: Optional[QualividaConfig] = None,
) -> MatchResult:
    """Process a single boleto with a default processor."""
    return BoletoProcessor(config).process_sync(source, roster)
