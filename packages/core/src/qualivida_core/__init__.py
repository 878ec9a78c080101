"""Qualivida Core - boleto field extraction and resident matching."""

__version__ = "0.1.0"

from .boleto_builder import build_boleto, find_duplicate
from .boleto_parser import BoletoFieldParser, extract_boleto_fields
from .config import ExtractionConfig, MatchingConfig, QualividaConfig
from .exceptions import (
    ConfigurationError,
    ExtractionError,
    QualividaError,
    ValidationError,
)
from .models import Boleto, BoletoFields, BoletoStatus, MatchResult, Resident
from .processor import BoletoProcessor, TextSource, load_roster, process_boleto
from .resident_matcher import ResidentMatcher, match_resident
from .text_extractor import PDFTextExtractor, TesseractOCRProvider

__all__ = [
    "Boleto",
    "BoletoFieldParser",
    "BoletoFields",
    "BoletoProcessor",
    "BoletoStatus",
    "ConfigurationError",
    "ExtractionConfig",
    "ExtractionError",
    "MatchResult",
    "MatchingConfig",
    "PDFTextExtractor",
    "QualividaConfig",
    "QualividaError",
    "Resident",
    "ResidentMatcher",
    "TesseractOCRProvider",
    "TextSource",
    "ValidationError",
    "build_boleto",
    "extract_boleto_fields",
    "find_duplicate",
    "load_roster",
    "match_resident",
    "process_boleto",
]
