from __future__ import annotations
import asyncio
from pathlib import Path

import aiohttp

from src.config.settings import ExportSettings
from src.wiki_export.application.workflows.create_indexes import IndexBuilder
from src.wiki_export.application.workflows.export_wiki import ExportWikiWorkflow, ExportWorkflowConfig
from src.wiki_export.application.workflows.fix_links import LinkRewriter
from src.wiki_export.domain.models import ExportSummary, IndexSummary, LinkRewriteSummary
from src.wiki_export.infrastructure.fs_sink import MarkdownFileSink
from src.wiki_export.infrastructure.metadata_store import ProjectMetadataStore
from src.wiki_export.infrastructure.redmine_client import RedmineClient
from src.wiki_export.infrastructure.retry import RetryPolicy
from src.wiki_export.infrastructure.throttle import DEFAULT_MIN_INTERVAL_SECONDS, Throttle


async def run_export_async(
    settings: ExportSettings,
    *,
    min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS,
    max_retries: int = 5,
    base_delay: float = 5.0,
    show_progress: bool = True,
) -> ExportSummary:
    if not settings.redmine_url:
        raise ValueError("redmine_url is required to export")

    output_path = Path(settings.output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    client = RedmineClient(
        base_url=settings.redmine_url,
        auth=aiohttp.BasicAuth(settings.user, settings.password) if settings.has_credentials else None,
        throttle=Throttle(min_interval=min_interval),
        retry_policy=RetryPolicy(max_retries=max_retries, base_delay=base_delay),
    )
    workflow = ExportWikiWorkflow(
        client=client,
        sink=MarkdownFileSink(output_path),
        metadata_store=ProjectMetadataStore(output_path),
        config=ExportWorkflowConfig(insecure=settings.insecure, show_progress=show_progress),
    )
    return await workflow.run()


def run_export(
    settings: ExportSettings,
    *,
    min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS,
    max_retries: int = 5,
    base_delay: float = 5.0,
    show_progress: bool = True,
) -> ExportSummary:
    return asyncio.run(
        run_export_async(
            settings,
            min_interval=min_interval,
            max_retries=max_retries,
            base_delay=base_delay,
            show_progress=show_progress,
        )
    )


def fix_links(output_dir: str | Path, redmine_url: str) -> LinkRewriteSummary:
    return LinkRewriter(output_dir, redmine_url).run()


def create_indexes(output_dir: str | Path) -> IndexSummary:
    return IndexBuilder(output_dir).run()
