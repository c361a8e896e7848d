import locale
import os
import unicodedata
from dataclasses import dataclass
from pathlib import Path

from src.config.logger_config import logger
from src.wiki_export.domain.models import IndexSummary
from src.wiki_export.domain.rules import INDEX_FILENAME, index_candidates, project_name_variations
from src.wiki_export.infrastructure.metadata_store import ProjectMetadataStore

MAIN_INDEX_HEADER = (
    "# Redmine Wiki Export\n\n"
    "This site contains exported wiki pages from Redmine.\n\n"
    "## Projects\n\n"
)


@dataclass(frozen=True)
class ProjectEntry:
    id: str
    name: str


def list_markdown_files(directory: Path) -> list[str]:
    return sorted(
        entry
        for entry in os.listdir(directory)
        if entry.endswith(".md") and (directory / entry).is_file()
    )


def find_index_candidate(files: list[str], project_name: str) -> str | None:
    """Pick the page most likely to be the project's home page, or None when there are no pages."""
    candidates = index_candidates(project_name)

    for candidate in candidates:
        if candidate in files:
            return candidate

    candidates_lower = {c.lower() for c in candidates}
    for file in files:
        if file.lower() in candidates_lower:
            return file

    name_variations = project_name_variations(project_name)
    for file in files:
        stem = file.lower().removesuffix(".md")
        for variation in name_variations:
            if stem == variation or variation in stem:
                return file

    return files[0] if files else None


def build_page_list(project_name: str, files: list[str]) -> str:
    lines = [f"# {project_name}\n\n## Pages\n\n"]
    for file in files:
        lines.append(f"- [{file.removesuffix('.md')}]({file})\n")
    return "".join(lines)


def use_user_collation() -> None:
    """Switch LC_COLLATE to the user's locale; the "C" locale stays when that one is unavailable."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as exc:
        logger.warning("Cannot use the user locale for sorting, keeping \"C\": {}", exc)


def _base_letters(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text.casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def collation_key(name: str) -> tuple[str, str, str]:
    # Accents only break ties, so "Émile" files under E even in the "C" locale.
    return _base_letters(name), locale.strxfrm(name.casefold()), name


class IndexBuilder:
    def __init__(self, output_dir: str | Path, metadata_store: ProjectMetadataStore | None = None) -> None:
        self.output_dir = Path(output_dir)
        self.metadata_store = metadata_store or ProjectMetadataStore(self.output_dir)

    def run(self) -> IndexSummary:
        logger.info("Creating index files...")
        names = self.metadata_store.load_names()
        entries: list[ProjectEntry] = []
        outcomes = {"copied": 0, "already_present": 0, "generated": 0}

        for project_id in self._project_dirs():
            project_name = names.get(project_id) or project_id
            outcome = self.build_project_index(self.output_dir / project_id, project_name)
            outcomes[outcome] += 1
            entries.append(ProjectEntry(id=project_id, name=project_name))

        main_index_path = self.build_main_index(entries)
        logger.info("Index creation complete!")
        return IndexSummary(
            projects_total=len(entries),
            copied=outcomes["copied"],
            already_present=outcomes["already_present"],
            generated=outcomes["generated"],
            main_index_path=main_index_path,
        )

    def build_project_index(self, project_dir: Path, project_name: str) -> str:
        index_path = project_dir / INDEX_FILENAME
        files = list_markdown_files(project_dir)
        candidate = find_index_candidate(files, project_name)

        if candidate == INDEX_FILENAME:
            logger.info("Index.md already exists for {}", project_dir.name)
            return "already_present"

        if candidate is not None:
            index_path.write_bytes((project_dir / candidate).read_bytes())
            logger.info("Created Index.md for {} (using {})", project_dir.name, candidate)
            return "copied"

        index_path.write_text(build_page_list(project_name, files), encoding="utf-8")
        logger.info("Created basic Index.md for {} (no wiki page found)", project_dir.name)
        return "generated"

    def build_main_index(self, entries: list[ProjectEntry]) -> Path:
        lines = [MAIN_INDEX_HEADER]
        for entry in sorted(entries, key=lambda e: collation_key(e.name)):
            lines.append(f"- [{entry.name}]({entry.id}/{INDEX_FILENAME})\n")

        main_index_path = self.output_dir / INDEX_FILENAME
        main_index_path.write_text("".join(lines), encoding="utf-8")
        logger.info("Created main Index.md with {} projects", len(entries))
        return main_index_path

    def _project_dirs(self) -> list[str]:
        return sorted(entry for entry in os.listdir(self.output_dir) if (self.output_dir / entry).is_dir())
