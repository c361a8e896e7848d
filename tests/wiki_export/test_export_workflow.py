import json
import unittest
from pathlib import Path

from src.wiki_export.application.workflows.export_wiki import ExportWikiWorkflow, ExportWorkflowConfig
from src.wiki_export.domain.models import Attachment, Project, WikiPage, WikiPageRef
from src.wiki_export.infrastructure.fs_sink import MarkdownFileSink
from src.wiki_export.infrastructure.metadata_store import ProjectMetadataStore
from tests.utils.tempdir import managed_temp_dir


class FakeRedmineClient:
    def __init__(
        self,
        projects: list[Project],
        index: dict[str, list[str]],
        pages: dict[tuple[str, str], WikiPage | None],
        attachments: dict[int, bytes | None] | None = None,
        metadata_path: Path | None = None,
    ) -> None:
        self.projects = projects
        self.index = index
        self.pages = pages
        self.attachments = attachments or {}
        self.metadata_path = metadata_path
        self.metadata_seen_before_index: list[bool] = []
        self.page_calls: list[tuple[str, str]] = []
        self.attachment_calls: list[int | None] = []

    async def fetch_projects(self, _session, progress_callback=None):
        if progress_callback is not None:
            progress_callback("discovery_projects", len(self.projects))
        return list(self.projects)

    async def fetch_wiki_index(self, _session, project: Project):
        if self.metadata_path is not None:
            self.metadata_seen_before_index.append(self.metadata_path.exists())
        return [WikiPageRef(title=t) for t in self.index.get(project.identifier, [])]

    async def fetch_wiki_page(self, _session, project: Project, title: str):
        self.page_calls.append((project.identifier, title))
        return self.pages.get((project.identifier, title))

    async def fetch_attachment(self, _session, attachment: Attachment):
        self.attachment_calls.append(attachment.id)
        if not attachment.id:
            return None
        return self.attachments.get(attachment.id)


def make_workflow(tmp: Path, client: FakeRedmineClient) -> ExportWikiWorkflow:
    return ExportWikiWorkflow(
        client=client,
        sink=MarkdownFileSink(tmp),
        metadata_store=ProjectMetadataStore(tmp),
        config=ExportWorkflowConfig(show_progress=False),
    )


class ExportWorkflowTests(unittest.IsolatedAsyncioTestCase):
    async def test_exports_pages_attachments_and_metadata(self):
        with managed_temp_dir("export_workflow") as tmp:
            projects = [
                Project(identifier="docs", name="Documentation"),
                Project(identifier="ops", name="Operations"),
            ]
            client = FakeRedmineClient(
                projects=projects,
                index={"docs": ["Wiki", "Install"], "ops": ["Runbook"]},
                pages={
                    ("docs", "Wiki"): WikiPage(
                        title="Wiki",
                        text="Welcome",
                        attachments=(Attachment(id=1, filename="logo.png"),),
                    ),
                    ("docs", "Install"): WikiPage(title="Install", text="Steps"),
                    ("ops", "Runbook"): WikiPage(
                        title="Runbook",
                        text="Pager",
                        attachments=(
                            Attachment(id=2, filename="graph.svg"),
                            Attachment(id=3, filename="missing.bin"),
                        ),
                    ),
                },
                attachments={1: b"logo", 2: b"<svg/>", 3: None},
                metadata_path=tmp / "projects-metadata.json",
            )

            summary = await make_workflow(tmp, client).run()

            self.assertEqual(summary.projects_total, 2)
            self.assertEqual(summary.pages_listed, 3)
            self.assertEqual(summary.pages_exported, 3)
            self.assertEqual(summary.pages_failed, 0)
            self.assertEqual(summary.attachments_exported, 2)
            self.assertEqual(summary.attachments_failed, 1)

            self.assertEqual((tmp / "docs" / "Wiki.md").read_text(encoding="utf-8"), "Welcome")
            self.assertEqual((tmp / "docs" / "Install.md").read_text(encoding="utf-8"), "Steps")
            self.assertEqual((tmp / "docs" / "attachments" / "logo.png").read_bytes(), b"logo")
            self.assertEqual((tmp / "ops" / "attachments" / "graph.svg").read_bytes(), b"<svg/>")
            self.assertFalse((tmp / "ops" / "attachments" / "missing.bin").exists())

            metadata = json.loads((tmp / "projects-metadata.json").read_text(encoding="utf-8"))
            self.assertEqual(
                metadata,
                [
                    {"identifier": "docs", "name": "Documentation"},
                    {"identifier": "ops", "name": "Operations"},
                ],
            )
            self.assertEqual(client.metadata_seen_before_index, [True, True])

    async def test_missing_page_is_skipped_and_counted(self):
        with managed_temp_dir("export_workflow_missing") as tmp:
            client = FakeRedmineClient(
                projects=[Project(identifier="docs", name="Docs")],
                index={"docs": ["Gone", "Here"]},
                pages={("docs", "Here"): WikiPage(title="Here", text="ok")},
            )

            summary = await make_workflow(tmp, client).run()

            self.assertEqual(summary.pages_listed, 2)
            self.assertEqual(summary.pages_exported, 1)
            self.assertEqual(summary.pages_failed, 1)
            self.assertFalse((tmp / "docs" / "Gone.md").exists())
            self.assertTrue((tmp / "docs" / "Here.md").exists())

    async def test_project_without_wiki_creates_no_directory(self):
        with managed_temp_dir("export_workflow_no_wiki") as tmp:
            client = FakeRedmineClient(
                projects=[Project(identifier="empty", name="Empty")],
                index={},
                pages={},
            )

            summary = await make_workflow(tmp, client).run()

            self.assertEqual(summary.pages_listed, 0)
            self.assertFalse((tmp / "empty").exists())
            self.assertTrue((tmp / "projects-metadata.json").exists())

    async def test_attachment_without_id_is_not_written(self):
        with managed_temp_dir("export_workflow_no_id") as tmp:
            client = FakeRedmineClient(
                projects=[Project(identifier="docs", name="Docs")],
                index={"docs": ["Wiki"]},
                pages={
                    ("docs", "Wiki"): WikiPage(
                        title="Wiki",
                        text="x",
                        attachments=(Attachment(id=None, filename="ghost.png"),),
                    )
                },
            )

            summary = await make_workflow(tmp, client).run()

            self.assertEqual(summary.attachments_exported, 0)
            self.assertEqual(summary.attachments_failed, 1)
            self.assertFalse((tmp / "docs" / "attachments" / "ghost.png").exists())

    async def test_filesystem_error_aborts_run(self):
        with managed_temp_dir("export_workflow_fs_error") as tmp:
            client = FakeRedmineClient(
                projects=[Project(identifier="docs", name="Docs")],
                index={"docs": ["A/B"]},
                pages={("docs", "A/B"): WikiPage(title="A/B", text="x")},
            )

            with self.assertRaises(FileNotFoundError):
                await make_workflow(tmp, client).run()


if __name__ == "__main__":
    unittest.main()
