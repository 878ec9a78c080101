"""Custom exceptions for the Qualivida boleto pipeline.

Only a handful of conditions are raised as exceptions. Field misses and
"no resident found" outcomes are regular data on ``MatchResult``; the
classes below cover decode failures, bad caller input and broken
configuration. All of them inherit from QualividaError.

Example:
    try:
        text = extractor.extract_text(data)
    except ExtractionError as e:
        if e.recoverable:
            text = ocr_provider.extract_text(data)
        else:
            raise
    except QualividaError as e:
        logger.error("boleto_processing_failed", error=str(e))
"""

from typing import Any, Optional


class QualividaError(Exception):
    """Base exception for all Qualivida errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
        recoverable: Whether the error is potentially recoverable.

    Example:
        >>> raise QualividaError("Something went wrong", details={"code": 500})
        QualividaError: Something went wrong
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize QualividaError.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context about the error.
            recoverable: Whether the error is potentially recoverable through
                retry or an alternative extraction path. Defaults to False.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation of the error."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable!r})"
        )


class ExtractionError(QualividaError):
    """Error raised when text cannot be obtained from a document.

    Raised for unreadable or corrupt PDFs and for OCR failures. This is
    the one fatal condition of the pipeline; ``BoletoProcessor`` turns it
    into a failed ``MatchResult`` instead of letting it reach the caller.

    Attributes:
        source: The document or source that failed extraction.
        field: The specific field that failed to extract (if applicable).
        document_type: Type of document being processed (if known).

    Example:
        >>> raise ExtractionError(
        ...     "Failed to read PDF",
        ...     source="boleto_03-005.pdf",
        ...     document_type="boleto",
        ...     recoverable=False,
        ... )
        ExtractionError: Failed to read PDF
    """

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        field: Optional[str] = None,
        document_type: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize ExtractionError.

        Args:
            message: Human-readable error description.
            source: The document path or identifier being processed.
            field: The specific field that failed extraction.
            document_type: Type of document (e.g., "boleto").
            details: Optional dictionary with additional context.
            recoverable: Whether another extraction path (OCR) may succeed.
                Defaults to True.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.source = source
        self.field = field
        self.document_type = document_type

        if source:
            self.details["source"] = source
        if field:
            self.details["field"] = field
        if document_type:
            self.details["document_type"] = document_type


class ValidationError(QualividaError):
    """Error raised when caller-supplied data fails validation.

    Covers document checks done before decoding (missing file, wrong
    extension, oversized upload), rosters that cannot be loaded and
    boletos that cannot be built from an incomplete match.

    Attributes:
        field: The field that failed validation.
        value: The invalid value (if safe to include).
        constraint: The validation constraint that was violated.

    Example:
        >>> raise ValidationError(
        ...     "Boleto has no due date",
        ...     field="due_date",
        ...     constraint="Required to build a boleto",
        ... )
        ValidationError: Boleto has no due date
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        constraint: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize ValidationError.

        Args:
            message: Human-readable error description.
            field: The name of the field that failed validation.
            value: The invalid value (avoid including a full CPF).
            constraint: Description of the validation rule violated.
            details: Optional dictionary with additional context.
            recoverable: Whether the error can be fixed by user correction.
                Defaults to True.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.field = field
        self.value = value
        self.constraint = constraint

        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = value
        if constraint:
            self.details["constraint"] = constraint


class ConfigurationError(QualividaError):
    """Error raised when configuration is invalid or cannot be honoured.

    Raised, for example, when OCR is enabled but pdf2image, pytesseract
    or the tesseract binary are missing.

    Attributes:
        config_key: The configuration key that is problematic.
        expected: Description of the expected value or format.
        actual: The actual value found (if any).

    Example:
        >>> raise ConfigurationError(
        ...     "OCR is enabled but pytesseract is not installed",
        ...     config_key="QUALIVIDA_EXTRACTION_OCR_ENABLED",
        ...     expected="pytesseract installed",
        ... )
        ConfigurationError: OCR is enabled but pytesseract is not installed
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Human-readable error description.
            config_key: The name of the configuration key that is problematic.
            expected: Description of what value was expected.
            actual: The actual value found (avoid including secrets).
            details: Optional dictionary with additional context.
            recoverable: Whether the error can be fixed at runtime.
                Defaults to False.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.config_key = config_key
        self.expected = expected
        self.actual = actual

        if config_key:
            self.details["config_key"] = config_key
        if expected:
            self.details["expected"] = expected
        if actual is not None:
            self.details["actual"] = actual


__all__ = [
    "QualividaError",
    "ExtractionError",
    "ValidationError",
    "ConfigurationError",
]
