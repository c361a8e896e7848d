import asyncio
import json
from typing import Any, Callable

import aiohttp

from src.config.logger_config import logger
from src.wiki_export.domain.models import Attachment, FetchOutcome, Project, WikiPage, WikiPageRef
from src.wiki_export.domain.rules import (
    PROJECTS_PER_PAGE,
    attachment_download_path,
    projects_list_path,
    wiki_index_path,
    wiki_page_path,
)
from src.wiki_export.infrastructure.retry import RetryPolicy
from src.wiki_export.infrastructure.throttle import Throttle

DiscoveryProgressCallback = Callable[[str, int], None]

AUTH_FAILED_MESSAGE = (
    "Authentication failed: Invalid username or password (HTTP 401). "
    "Please check your config.json credentials."
)


class RedmineClient:
    def __init__(
        self,
        base_url: str,
        auth: aiohttp.BasicAuth | None = None,
        throttle: Throttle | None = None,
        retry_policy: RetryPolicy | None = None,
        request_timeout: float = 60,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth = auth
        self.throttle = throttle or Throttle()
        self.retry_policy = retry_policy or RetryPolicy()
        self.request_timeout = request_timeout

    async def fetch_projects(
        self,
        session: aiohttp.ClientSession,
        progress_callback: DiscoveryProgressCallback | None = None,
    ) -> list[Project]:
        projects: list[Project] = []
        page = 0
        while True:
            batch = await self.fetch_project_list_page(session, page * PROJECTS_PER_PAGE)
            for project in batch:
                if not project.identifier:
                    # Would otherwise be written straight into the output root.
                    logger.warning("Skipping project without identifier: {!r}", project.name)
                    continue
                projects.append(project)
            if progress_callback is not None:
                progress_callback("discovery_projects", len(batch))
            if len(batch) < PROJECTS_PER_PAGE:
                break
            page += 1

        logger.info("{} projects found.", len(projects))
        return projects

    async def fetch_project_list_page(
        self,
        session: aiohttp.ClientSession,
        offset: int,
    ) -> list[Project]:
        logger.info("Requesting projects list (offset={})...", offset)
        data = await self._fetch_json(
            session,
            projects_list_path(offset),
            context=f"projects offset={offset}",
        )
        if data is None:
            return []
        return [Project.from_api(item) for item in data.get("projects") or []]

    async def fetch_wiki_index(
        self,
        session: aiohttp.ClientSession,
        project: Project,
    ) -> list[WikiPageRef]:
        data = await self._fetch_json(
            session,
            wiki_index_path(project.identifier),
            context=f"[{project.identifier}]",
        )
        if data is None:
            return []
        return [
            WikiPageRef(title=str(item["title"]))
            for item in data.get("wiki_pages") or []
            if item.get("title")
        ]

    async def fetch_wiki_page(
        self,
        session: aiohttp.ClientSession,
        project: Project,
        title: str,
    ) -> WikiPage | None:
        path = wiki_page_path(project.identifier, title)
        logger.info("Requesting {}...", path)
        data = await self._fetch_json(
            session,
            path,
            context=f"[{project.identifier}][{title}]",
        )
        if data is None:
            return None
        payload = data.get("wiki_page")
        if not isinstance(payload, dict):
            logger.warning("[{}][{}] Response carries no wiki_page.", project.identifier, title)
            return None
        return WikiPage.from_api(payload)

    async def fetch_attachment(
        self,
        session: aiohttp.ClientSession,
        attachment: Attachment,
    ) -> bytes | None:
        if not attachment.id:
            return None

        outcome = await self._get(session, attachment_download_path(attachment.id), binary=True)
        if outcome.error is not None:
            logger.error("Failed to download attachment {} ({}): {}", attachment.id, attachment.filename, outcome.error)
            return None
        if outcome.status != 200:
            logger.error(
                "Unexpected HTTP status {} for attachment {} ({}).",
                outcome.status,
                attachment.id,
                attachment.filename,
            )
            return None
        return outcome.body if isinstance(outcome.body, bytes) else None

    async def _fetch_json(
        self,
        session: aiohttp.ClientSession,
        path: str,
        *,
        context: str,
    ) -> dict[str, Any] | None:
        outcome = await self._get(session, path)
        body = outcome.body
        if outcome.error is not None:
            logger.error("{} Request failed: {}", context, outcome.error)
            return None
        if outcome.status == 401:
            logger.error("{} {}", context, AUTH_FAILED_MESSAGE)
            if body:
                logger.error("Response body: {}", body)
            return None
        if outcome.status != 200:
            logger.error("{} Unexpected HTTP status: {}", context, outcome.status)
            if body:
                logger.error("Response body: {}", body)
            return None
        if not body:
            logger.error("{} No response body received from server.", context)
            return None

        try:
            data = json.loads(body)
        except (json.JSONDecodeError, ValueError) as exc:
            logger.error("{} Cannot parse JSON response ({}): {}", context, exc, body)
            return None
        if not isinstance(data, dict):
            logger.error("{} Unexpected JSON payload: {}", context, body)
            return None
        return data

    async def _get(
        self,
        session: aiohttp.ClientSession,
        path: str,
        *,
        binary: bool = False,
    ) -> FetchOutcome:
        url = f"{self.base_url}{path}"
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)

        async def attempt() -> FetchOutcome:
            try:
                async with session.get(url, auth=self.auth, timeout=timeout) as resp:
                    body = await resp.read() if binary else await resp.text()
                    return FetchOutcome(status=resp.status, body=body)
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
                return FetchOutcome(error=exc)

        return await self.retry_policy.run(lambda: self.throttle.submit(attempt))
