from pathlib import Path

from src.config.logger_config import logger
from src.wiki_export.domain.models import Attachment, Project, WikiPage
from src.wiki_export.domain.rules import ATTACHMENTS_DIRNAME, is_portable_filename, page_filename


class MarkdownFileSink:
    """Writes pages and attachments under ``<output_dir>/<project>/`` without renaming them."""

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def project_dir(self, project: Project) -> Path:
        path = self.output_dir / project.identifier
        path.mkdir(exist_ok=True)
        return path

    def attachments_dir(self, project: Project) -> Path:
        path = self.project_dir(project) / ATTACHMENTS_DIRNAME
        path.mkdir(exist_ok=True)
        return path

    def write_page(self, project: Project, page: WikiPage) -> Path:
        filename = page_filename(page.title)
        if not is_portable_filename(filename):
            logger.warning("[{}] Page title {!r} is not a portable filename.", project.identifier, page.title)
        file_path = self.project_dir(project) / filename
        with file_path.open("w", encoding="utf-8", newline="") as f:
            f.write(page.text)
        return file_path

    def write_attachment(self, project: Project, attachment: Attachment, content: bytes) -> Path:
        if not is_portable_filename(attachment.filename):
            logger.warning(
                "[{}] Attachment name {!r} is not a portable filename.",
                project.identifier,
                attachment.filename,
            )
        file_path = self.attachments_dir(project) / attachment.filename
        file_path.write_bytes(content)
        return file_path
