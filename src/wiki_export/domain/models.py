from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class Project:
    identifier: str
    name: str

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Project":
        identifier = str(payload.get("identifier") or "")
        return cls(identifier=identifier, name=str(payload.get("name") or identifier))

    def to_dict(self) -> dict[str, str]:
        return {"identifier": self.identifier, "name": self.name}


@dataclass(frozen=True)
class WikiPageRef:
    title: str


@dataclass(frozen=True)
class Attachment:
    id: int | None
    filename: str
    filesize: int | None = None
    content_type: str | None = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Attachment":
        raw_id = payload.get("id")
        return cls(
            id=int(raw_id) if raw_id else None,
            filename=str(payload.get("filename") or ""),
            filesize=payload.get("filesize"),
            content_type=payload.get("content_type"),
        )


@dataclass(frozen=True)
class WikiPage:
    title: str
    text: str
    attachments: tuple[Attachment, ...] = field(default_factory=tuple)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "WikiPage":
        return cls(
            title=str(payload.get("title") or ""),
            text=str(payload.get("text") or ""),
            attachments=tuple(
                Attachment.from_api(item) for item in payload.get("attachments") or []
            ),
        )


@dataclass(frozen=True)
class FetchOutcome:
    """Raw result of one HTTP attempt: exactly what the server (or socket) gave back."""

    error: BaseException | None = None
    status: int | None = None
    body: str | bytes | None = None


@dataclass(frozen=True)
class ExportSummary:
    projects_total: int
    pages_listed: int
    pages_exported: int
    pages_failed: int
    attachments_exported: int
    attachments_failed: int


@dataclass(frozen=True)
class LinkRewriteSummary:
    files_scanned: int
    files_changed: int
    wiki_links: int
    absolute_wiki_links: int
    attachment_links: int
    attachments_missing: int


@dataclass(frozen=True)
class IndexSummary:
    projects_total: int
    copied: int
    already_present: int
    generated: int
    main_index_path: Path
