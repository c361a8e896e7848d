"""Domain models and deterministic rules for the wiki export."""

from src.wiki_export.domain.models import (
    Attachment,
    ExportSummary,
    FetchOutcome,
    IndexSummary,
    LinkRewriteSummary,
    Project,
    WikiPage,
    WikiPageRef,
)
from src.wiki_export.domain.rules import (
    encode_uri_component,
    index_candidates,
    is_portable_filename,
    page_filename,
    project_name_variations,
    underscore_spaces,
)

__all__ = [
    "Attachment",
    "encode_uri_component",
    "ExportSummary",
    "FetchOutcome",
    "index_candidates",
    "IndexSummary",
    "is_portable_filename",
    "LinkRewriteSummary",
    "page_filename",
    "Project",
    "project_name_variations",
    "underscore_spaces",
    "WikiPage",
    "WikiPageRef",
]
