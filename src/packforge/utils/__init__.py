"""
Shared utilities for the ingestion pipeline.

- file_io.py: JSON/Markdown reading and writing, workspace content tree paths
- logging_config.py: Structured JSON logging and per-stage timing
- hashing.py: Short content hashes used for chunk and pack ids
"""

__all__ = [
    "file_io",
    "logging_config",
    "hashing",
]
