import json
from pathlib import Path
from typing import Sequence

from src.config.logger_config import logger
from src.wiki_export.domain.models import Project
from src.wiki_export.domain.rules import METADATA_FILENAME


class ProjectMetadataStore:
    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)
        self.file_path = self.output_dir / METADATA_FILENAME

    def write(self, projects: Sequence[Project]) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        with self.file_path.open("w", encoding="utf-8") as f:
            json.dump([p.to_dict() for p in projects], f, ensure_ascii=False, indent=2)
        logger.info("Project metadata saved to {}", self.file_path.name)
        return self.file_path

    def load_names(self) -> dict[str, str]:
        try:
            payload = json.loads(self.file_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Could not load {} ({}), using identifiers as names", self.file_path.name, exc)
            return {}

        names: dict[str, str] = {}
        for item in payload if isinstance(payload, list) else []:
            if not isinstance(item, dict):
                continue
            identifier = str(item.get("identifier") or "")
            if identifier:
                names[identifier] = str(item.get("name") or identifier)
        logger.info("Loaded metadata for {} projects", len(names))
        return names
