"""
Ingestion-to-draft-pack pipeline for German practice content

This package turns raw source text (plain text, PDF, URL) into draft practice
packs: segmentation, signal extraction, pack planning, templated prompt
generation, quality gates and run reports.

**Version**: 0.1.0
**Key Dependencies**: pydantic, python-dotenv, docling (optional, PDF/URL)
"""

__version__ = "0.1.0"
__author__ = "Packforge"

__all__ = [
    "__version__",
    "__author__",
]
