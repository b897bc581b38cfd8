"""
Ingestion module - Turns uploaded files into stored records.

This module is responsible for:
1. Extracting text from PDF and plain-text files
2. Splitting text into sections by document type
3. Pairing exam questions with solutions
4. Persisting the results with per-item error reporting
"""

from .document_processor import DocumentProcessor
from .orchestrator import (
    IngestionOrchestrator,
    IngestionResult,
    IngestionStage,
    UploadedFile,
    UploadRequest,
)
from .pdf_parser import PDFParser, extract_text
from .segmenter import SEGMENTATION_RULES, Segmenter, SegmentationRule

__all__ = [
    "DocumentProcessor",
    "IngestionOrchestrator",
    "IngestionResult",
    "IngestionStage",
    "UploadedFile",
    "UploadRequest",
    "PDFParser",
    "extract_text",
    "Segmenter",
    "SegmentationRule",
    "SEGMENTATION_RULES",
]
