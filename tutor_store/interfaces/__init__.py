"""
Interfaces module - User-facing interfaces for the Tutor Store.

This module provides:
1. CLI interface for command-line administration
2. HTTP API using FastAPI (also the server side of the remote backend)
"""
