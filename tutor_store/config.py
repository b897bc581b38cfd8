"""
Configuration settings for the Tutor Store.

This file centralizes all configuration so you can easily adjust parameters.
Every value can be overridden with a TUTOR_STORE_* environment variable
(or a .env file), which is how the server and CLI pick a backend without
code changes.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Base directory (where this project lives)
BASE_DIR = Path(__file__).parent.parent


class Settings(BaseSettings):
    """Environment overrides, e.g. TUTOR_STORE_BACKEND=remote."""

    data_dir: Path = BASE_DIR / "data"
    chroma_db_dir: Path | None = Field(default=None, description="Defaults to <data_dir>/chroma_db")
    upload_dir: Path | None = Field(default=None, description="Defaults to <data_dir>/uploads")

    embedding_model: str = "all-MiniLM-L6-v2"
    embedding_dimension: int = Field(default=384, gt=0)

    backend: str = Field(default="local", description="Vector store backend: 'local' or 'remote'")
    collection: str = "tutor_documents"
    remote_url: str = "http://localhost:8000"
    remote_timeout: float = Field(default=10.0, gt=0)
    query_limit: int = Field(default=5, ge=1)

    lines_per_page: int = Field(default=40, ge=1)
    max_pages: int = Field(default=0, ge=0)
    parse_time_budget: float = Field(default=0.0, ge=0)

    ingest_workers: int = Field(default=4, ge=1)

    host: str = "127.0.0.1"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_prefix="TUTOR_STORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Data storage directory
DATA_DIR = settings.data_dir

# ChromaDB storage location for the local backend
CHROMA_DB_DIR = settings.chroma_db_dir or DATA_DIR / "chroma_db"

# Uploaded files are staged here while an ingestion runs, then removed
UPLOAD_DIR = settings.upload_dir or DATA_DIR / "uploads"

# =============================================================================
# EMBEDDING CONFIGURATION
# =============================================================================

# all-MiniLM-L6-v2 creates 384-dimensional vectors.
# Changing the model means re-ingesting: stored vectors must match the
# dimension declared here.
EMBEDDING_MODEL = settings.embedding_model

EMBEDDING_DIMENSION = settings.embedding_dimension

# =============================================================================
# VECTOR STORE CONFIGURATION
# =============================================================================

# "local"  - embedded ChromaDB collection on disk
# "remote" - HTTP calls to a running tutor_store server
VECTOR_STORE_BACKEND = settings.backend

# One collection holds documents, sections and exam problems
COLLECTION_NAME = settings.collection

# Base URL of the tutor_store HTTP API (remote backend only)
REMOTE_STORE_URL = settings.remote_url

# Seconds before a remote call is abandoned
REMOTE_TIMEOUT = settings.remote_timeout

# Results returned by a query when the caller gives no limit
DEFAULT_QUERY_LIMIT = settings.query_limit

# =============================================================================
# DOCUMENT PROCESSING CONFIGURATION
# =============================================================================

# Page numbers for sections are estimated from line position.
# 40 lines is a typical printed exam/notes page.
LINES_PER_PAGE = settings.lines_per_page

# Optional bounds on a single parse; 0 means unbounded
MAX_PAGES = settings.max_pages
PARSE_TIME_BUDGET = settings.parse_time_budget

SUPPORTED_MIME_TYPES = ("application/pdf", "text/plain", "text/markdown")

# =============================================================================
# INGESTION CONFIGURATION
# =============================================================================

# Items of one upload persisted in parallel (1 = sequential)
INGEST_WORKERS = settings.ingest_workers

# =============================================================================
# SERVER CONFIGURATION
# =============================================================================

SERVER_HOST = settings.host
SERVER_PORT = settings.port
