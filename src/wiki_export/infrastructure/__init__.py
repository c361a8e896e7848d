"""Infrastructure adapters for the wiki export."""

from src.wiki_export.infrastructure.fs_sink import MarkdownFileSink
from src.wiki_export.infrastructure.metadata_store import ProjectMetadataStore
from src.wiki_export.infrastructure.redmine_client import RedmineClient
from src.wiki_export.infrastructure.retry import RetryPolicy
from src.wiki_export.infrastructure.throttle import Throttle

__all__ = ["MarkdownFileSink", "ProjectMetadataStore", "RedmineClient", "RetryPolicy", "Throttle"]
