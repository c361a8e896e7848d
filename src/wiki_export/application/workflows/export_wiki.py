import asyncio
from dataclasses import dataclass

import aiohttp
from tqdm import tqdm
from src.config.logger_config import logger

from src.wiki_export.domain.models import ExportSummary, Project, WikiPageRef
from src.wiki_export.infrastructure.fs_sink import MarkdownFileSink
from src.wiki_export.infrastructure.metadata_store import ProjectMetadataStore
from src.wiki_export.infrastructure.redmine_client import RedmineClient


@dataclass(frozen=True)
class ExportWorkflowConfig:
    insecure: bool = False
    connector_limit: int = 0
    connector_limit_per_host: int = 10
    connector_ttl_dns_cache: int = 300
    show_progress: bool = True


@dataclass(frozen=True)
class _PageResult:
    exported: bool
    attachments_exported: int = 0
    attachments_failed: int = 0


class ExportWikiWorkflow:
    def __init__(
        self,
        client: RedmineClient,
        sink: MarkdownFileSink,
        metadata_store: ProjectMetadataStore,
        config: ExportWorkflowConfig | None = None,
    ) -> None:
        self.client = client
        self.sink = sink
        self.metadata_store = metadata_store
        self.config = config or ExportWorkflowConfig()
        self._progress: tqdm | None = None

    async def run(self) -> ExportSummary:
        connector = aiohttp.TCPConnector(
            limit=self.config.connector_limit,
            limit_per_host=self.config.connector_limit_per_host,
            ttl_dns_cache=self.config.connector_ttl_dns_cache,
            ssl=not self.config.insecure,
        )
        if self.config.insecure:
            logger.warning("Insecure mode: TLS certificates are not verified.")

        async with aiohttp.ClientSession(connector=connector) as session:
            with tqdm(
                total=None,
                desc="Discovery projects",
                unit=" project",
                leave=True,
                disable=not self.config.show_progress,
            ) as discovery_progress:

                def _on_discovery_progress(phase: str, increment: int) -> None:
                    if increment > 0:
                        discovery_progress.update(increment)

                projects = await self.client.fetch_projects(
                    session,
                    progress_callback=_on_discovery_progress,
                )

            # Later passes read the project set from here, so it lands before any wiki request.
            self.metadata_store.write(projects)

            with tqdm(
                total=0,
                desc="Export pages",
                unit=" page",
                leave=True,
                disable=not self.config.show_progress,
            ) as progress:
                self._progress = progress
                try:
                    per_project = await asyncio.gather(
                        *(self._export_project(session, project) for project in projects)
                    )
                finally:
                    self._progress = None

        pages_listed = sum(listed for listed, _ in per_project)
        page_results = [result for _, results in per_project for result in results]
        summary = ExportSummary(
            projects_total=len(projects),
            pages_listed=pages_listed,
            pages_exported=sum(1 for r in page_results if r.exported),
            pages_failed=sum(1 for r in page_results if not r.exported),
            attachments_exported=sum(r.attachments_exported for r in page_results),
            attachments_failed=sum(r.attachments_failed for r in page_results),
        )
        logger.info(
            "Export complete. Projects: {}, pages: {}/{}, attachments: {} ({} failed)",
            summary.projects_total,
            summary.pages_exported,
            summary.pages_listed,
            summary.attachments_exported,
            summary.attachments_failed,
        )
        return summary

    async def _export_project(
        self,
        session: aiohttp.ClientSession,
        project: Project,
    ) -> tuple[int, list[_PageResult]]:
        refs = await self.client.fetch_wiki_index(session, project)
        if not refs:
            return 0, []

        logger.info("{} wiki pages found for project {}", len(refs), project.identifier)
        if self._progress is not None:
            self._progress.total += len(refs)
            self._progress.refresh()
        results = await asyncio.gather(*(self._export_page(session, project, ref) for ref in refs))
        return len(refs), list(results)

    async def _export_page(
        self,
        session: aiohttp.ClientSession,
        project: Project,
        ref: WikiPageRef,
    ) -> _PageResult:
        try:
            page = await self.client.fetch_wiki_page(session, project, ref.title)
            if page is None:
                return _PageResult(exported=False)

            self.sink.write_page(project, page)
            logger.info("Saved page: {}/{}", project.identifier, page.title)
            if not page.attachments:
                return _PageResult(exported=True)

            contents = await asyncio.gather(
                *(self.client.fetch_attachment(session, attachment) for attachment in page.attachments)
            )
            exported = 0
            failed = 0
            for attachment, content in zip(page.attachments, contents):
                if content is None:
                    failed += 1
                    continue
                self.sink.write_attachment(project, attachment, content)
                exported += 1
            return _PageResult(exported=True, attachments_exported=exported, attachments_failed=failed)
        finally:
            if self._progress is not None:
                self._progress.update(1)
