"""Redmine wiki export package."""

from src.wiki_export.domain.models import ExportSummary, IndexSummary, LinkRewriteSummary
from src.wiki_export.export import create_indexes, fix_links, run_export, run_export_async

__all__ = [
    "create_indexes",
    "ExportSummary",
    "fix_links",
    "IndexSummary",
    "LinkRewriteSummary",
    "run_export",
    "run_export_async",
]
