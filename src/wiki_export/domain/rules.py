import re
from urllib.parse import quote

from pathvalidate import is_valid_filename

PROJECTS_PER_PAGE = 25
TRANSIENT_STATUS_CODES = frozenset({429, 503})
INDEX_FILENAME = "Index.md"
METADATA_FILENAME = "projects-metadata.json"
ATTACHMENTS_DIRNAME = "attachments"

_WHITESPACE = re.compile(r"\s+")
# Characters encodeURIComponent leaves untouched besides alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def underscore_spaces(name: str) -> str:
    return _WHITESPACE.sub("_", name)


def page_filename(title: str) -> str:
    return f"{title}.md"


def is_portable_filename(name: str) -> bool:
    """Page titles and attachment names are written unsanitized; this only reports risky ones."""
    return bool(name) and is_valid_filename(name)


def projects_list_path(offset: int) -> str:
    return f"/projects.json?offset={offset}"


def wiki_index_path(project_id: str) -> str:
    return f"/projects/{project_id}/wiki/index.json"


def wiki_page_path(project_id: str, title: str) -> str:
    return f"/projects/{project_id}/wiki/{encode_uri_component(title)}.json?include=attachments"


def attachment_download_path(attachment_id: int) -> str:
    return f"/attachments/download/{attachment_id}"


def index_candidates(project_name: str) -> list[str]:
    return [
        "Wiki.md",
        INDEX_FILENAME,
        f"{project_name}.md",
        f"{_WHITESPACE.sub('_', project_name)}.md",
        f"{_WHITESPACE.sub('-', project_name)}.md",
        f"{_WHITESPACE.sub('', project_name)}.md",
    ]


def project_name_variations(project_name: str) -> list[str]:
    lowered = project_name.lower()
    return [
        _WHITESPACE.sub("", lowered),
        _WHITESPACE.sub("_", lowered),
        _WHITESPACE.sub("-", lowered),
    ]
