"""
Tutor Store - Educational documents and exam problems, searchable by meaning.

This package provides:
- PDF and text extraction with type-specific section detection
- Exam question/solution pairing
- Embedding generation using sentence-transformers
- Vector storage in an embedded ChromaDB or a remote Tutor Store server
- Batch ingestion with per-item error reporting
- CLI and HTTP interfaces
"""

__version__ = "0.1.0"
