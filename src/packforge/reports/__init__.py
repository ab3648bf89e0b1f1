"""Ingestion run reports."""

from packforge.reports.ingest_report import generate_report, render_markdown, write_report

__all__ = ["generate_report", "render_markdown", "write_report"]
