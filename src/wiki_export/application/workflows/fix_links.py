"""Rewrite Redmine links in exported markdown so the tree browses offline.

Three shapes are rewritten, in this order:

1. wiki cross references: ``[[Page Name]]`` and ``[[project:Page Name]]``;
2. absolute wiki links: ``[text](<server>/projects/<project>/wiki/<page>#anchor)``;
3. absolute attachment links: ``[text](<server>/attachments/download/<id>/<file>)``,
   resolved against the local ``attachments/`` folder first and then against
   every sibling project's folder.

Only links pointing at the configured server are touched.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote

from src.config.logger_config import logger
from src.wiki_export.domain.models import LinkRewriteSummary
from src.wiki_export.domain.rules import ATTACHMENTS_DIRNAME, encode_uri_component, underscore_spaces

WIKI_REFERENCE_PATTERN = re.compile(r"\[\[([^\]]+)\]\]")


@dataclass
class _FileStats:
    wiki_links: int = 0
    absolute_wiki_links: int = 0
    attachment_links: int = 0
    attachments_missing: int = 0


class LinkRewriter:
    def __init__(self, output_dir: str | Path, redmine_url: str) -> None:
        self.output_dir = Path(output_dir)
        self.redmine_url = redmine_url.rstrip("/")
        escaped_url = re.escape(self.redmine_url)
        self.wiki_link_pattern = re.compile(
            rf"(\[.*?\])\({escaped_url}/projects/([^/]+)/wiki/([^)#?]+)(#[^)]+)?\)"
        )
        self.attachment_link_pattern = re.compile(
            rf"(!?\[.*?\])\({escaped_url}/attachments/(?:download/)?(\d+)/([^)]+)\)"
        )

    def run(self) -> LinkRewriteSummary:
        files_scanned = 0
        files_changed = 0
        totals = _FileStats()
        for file_path in self._iter_markdown_files(self.output_dir):
            files_scanned += 1
            changed, stats = self.rewrite_file(file_path)
            files_changed += int(changed)
            totals.wiki_links += stats.wiki_links
            totals.absolute_wiki_links += stats.absolute_wiki_links
            totals.attachment_links += stats.attachment_links
            totals.attachments_missing += stats.attachments_missing

        logger.info("Markdown links updated in {}/{} files.", files_changed, files_scanned)
        return LinkRewriteSummary(
            files_scanned=files_scanned,
            files_changed=files_changed,
            wiki_links=totals.wiki_links,
            absolute_wiki_links=totals.absolute_wiki_links,
            attachment_links=totals.attachment_links,
            attachments_missing=totals.attachments_missing,
        )

    def rewrite_file(self, file_path: Path) -> tuple[bool, _FileStats]:
        try:
            with file_path.open("r", encoding="utf-8", newline="") as f:
                content = f.read()
        except UnicodeDecodeError as exc:
            logger.warning("Skipping {}: not valid UTF-8 ({})", file_path, exc)
            return False, _FileStats()
        rewritten, stats = self.rewrite_text(content, file_path)
        if rewritten == content:
            return False, stats
        with file_path.open("w", encoding="utf-8", newline="") as f:
            f.write(rewritten)
        return True, stats

    def rewrite_text(self, content: str, file_path: Path) -> tuple[str, _FileStats]:
        stats = _FileStats()
        project_dir = file_path.parent
        current_project = project_dir.name

        def _wiki_reference(match: re.Match) -> str:
            stats.wiki_links += 1
            return convert_wiki_reference(match.group(1))

        def _wiki_link(match: re.Match) -> str:
            text, link_project, page, anchor = match.groups()
            stats.absolute_wiki_links += 1
            if link_project == current_project:
                rel = f"{page}.md"
            else:
                rel = f"../{link_project}/{page}.md"
            return f"{text}({rel}{anchor or ''})"

        def _attachment_link(match: re.Match) -> str:
            text, _attachment_id, filename = match.groups()
            target = self.resolve_attachment(project_dir, unquote(filename))
            if target is None:
                stats.attachments_missing += 1
                logger.warning(
                    "Attachment not found: {} (referenced in {})",
                    unquote(filename),
                    file_path,
                )
                return match.group(0)
            stats.attachment_links += 1
            return f"{text}({target})"

        content = WIKI_REFERENCE_PATTERN.sub(_wiki_reference, content)
        content = self.wiki_link_pattern.sub(_wiki_link, content)
        content = self.attachment_link_pattern.sub(_attachment_link, content)
        return content, stats

    def resolve_attachment(self, project_dir: Path, filename: str) -> str | None:
        """Relative link to ``filename``: this project's attachments, else the first sibling that has it."""
        encoded = encode_uri_component(filename)
        if (project_dir / ATTACHMENTS_DIRNAME / filename).exists():
            return f"{ATTACHMENTS_DIRNAME}/{encoded}"

        parent_dir = project_dir.parent
        for entry in sorted(os.listdir(parent_dir)):
            candidate_dir = parent_dir / entry
            if not candidate_dir.is_dir():
                continue
            if (candidate_dir / ATTACHMENTS_DIRNAME / filename).exists():
                return f"../{entry}/{ATTACHMENTS_DIRNAME}/{encoded}"
        return None

    @classmethod
    def _iter_markdown_files(cls, directory: Path):
        for entry in sorted(os.listdir(directory)):
            full_path = directory / entry
            if full_path.is_dir():
                yield from cls._iter_markdown_files(full_path)
            elif entry.endswith(".md"):
                yield full_path


def convert_wiki_reference(reference: str) -> str:
    if ":" in reference:
        project, page = reference.split(":", 1)
        return f"[{page}](../{project}/{underscore_spaces(page)}.md)"
    return f"[{reference}]({underscore_spaces(reference)}.md)"
