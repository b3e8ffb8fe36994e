"""Document domain models."""
import base64
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any

LANGUAGE_BY_EXTENSION = {
    ".cs": "csharp",
    ".js": "javascript",
    ".ts": "typescript",
    ".py": "python",
    ".java": "java",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".h": "cpp",
    ".hpp": "cpp",
    ".c": "c",
    ".go": "go",
    ".rs": "rust",
    ".php": "php",
    ".rb": "ruby",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
    ".html": "html",
    ".htm": "html",
    ".css": "css",
    ".scss": "css",
    ".sass": "css",
    ".sql": "sql",
    ".md": "markdown",
    ".json": "json",
    ".xml": "xml",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".sh": "bash",
    ".ps1": "powershell",
    ".dockerfile": "dockerfile",
    ".r": "r",
    ".m": "matlab",
    ".pl": "perl",
    ".lua": "lua",
    ".dart": "dart",
    ".elm": "elm",
    ".ex": "elixir",
    ".exs": "elixir",
    ".clj": "clojure",
    ".cljs": "clojure",
    ".fs": "fsharp",
    ".fsx": "fsharp",
    ".vb": "visualbasic",
}


def file_name_of(file_path: str) -> str:
    return PurePosixPath(file_path.replace("\\", "/")).name


def file_extension_of(file_path: str) -> str:
    return PurePosixPath(file_path.replace("\\", "/")).suffix


def detect_language(file_path: str) -> str:
    """Map a file path to a language identifier ("text" if unknown)."""
    return LANGUAGE_BY_EXTENSION.get(file_extension_of(file_path).lower(), "text")


def make_document_id(repository_id: str, file_path: str) -> str:
    """Deterministic, key-safe id for a file within a repository."""
    raw = f"{repository_id}:{file_path}".encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


@dataclass(frozen=True, order=True)
class SymbolToken:
    """Code symbol found in a file, e.g. ("class", "Repository")."""
    symbol_type: str
    name: str

    def __str__(self) -> str:
        return f"{self.symbol_type}:{self.name}"


@dataclass(frozen=True)
class DocumentMetadata:
    """Repository-derived metadata attached to a document."""
    repository_name: str = ""
    repository_owner: str = ""
    repository_url: str = ""
    code_symbols: tuple[str, ...] = ()
    custom_fields: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SearchableDocument:
    """A repository file as stored in the search index."""
    document_id: str
    repository_id: str
    file_path: str
    file_name: str
    file_extension: str
    language: str
    content: str
    content_vector: tuple[float, ...]
    line_count: int
    size_in_bytes: int
    last_modified: datetime
    branch_name: str
    document_type: str = "File"
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)

    @classmethod
    def create(
        cls,
        repository_id: str,
        file_path: str,
        content: str,
        content_vector: list[float] | tuple[float, ...],
        branch_name: str,
        metadata: DocumentMetadata,
        document_type: str = "File",
        last_modified: datetime | None = None,
    ) -> "SearchableDocument":
        """Build a document, deriving name, extension, language and sizes.

        Args:
            repository_id: Owning repository id.
            file_path: Path of the file within the repository.
            content: Preprocessed content.
            content_vector: Embedding of the content.
            branch_name: Branch the file was read from.
            metadata: Repository metadata and code symbols.
            document_type: Document kind.
            last_modified: Modification time (defaults to now, UTC).

        Returns:
            New document.
        """
        return cls(
            document_id=make_document_id(repository_id, file_path),
            repository_id=repository_id,
            file_path=file_path,
            file_name=file_name_of(file_path),
            file_extension=file_extension_of(file_path),
            language=detect_language(file_path),
            content=content,
            content_vector=tuple(float(v) for v in content_vector),
            line_count=len(content.split("\n")),
            size_in_bytes=len(content.encode("utf-8")),
            last_modified=last_modified or datetime.now(timezone.utc),
            branch_name=branch_name,
            document_type=document_type,
            metadata=metadata,
        )

    def has_valid_vector(self, dimensions: int) -> bool:
        return len(self.content_vector) == dimensions

    def to_index_document(self) -> dict[str, Any]:
        """Flatten into the field map stored by the search index."""
        return {
            "document_id": self.document_id,
            "repository_id": self.repository_id,
            "file_path": self.file_path,
            "file_name": self.file_name,
            "file_extension": self.file_extension,
            "language": self.language,
            "content": self.content,
            "content_vector": list(self.content_vector),
            "line_count": self.line_count,
            "size_bytes": self.size_in_bytes,
            "last_modified": self.last_modified.isoformat(),
            "branch_name": self.branch_name,
            "repository_name": self.metadata.repository_name,
            "repository_owner": self.metadata.repository_owner,
            "repository_url": self.metadata.repository_url,
            "code_symbols": list(self.metadata.code_symbols),
        }

    @classmethod
    def from_index_document(cls, data: dict[str, Any]) -> "SearchableDocument":
        """Rebuild a document from an index field map.

        Missing fields fall back to empty values, since search responses may
        omit the vector or other unselected fields.
        """
        last_modified = data.get("last_modified")
        if isinstance(last_modified, str):
            last_modified = datetime.fromisoformat(last_modified.replace("Z", "+00:00"))
        elif not isinstance(last_modified, datetime):
            last_modified = datetime.fromtimestamp(0, timezone.utc)

        file_path = data.get("file_path", "")
        return cls(
            document_id=data.get("document_id", ""),
            repository_id=data.get("repository_id", ""),
            file_path=file_path,
            file_name=data.get("file_name") or file_name_of(file_path),
            file_extension=data.get("file_extension") or file_extension_of(file_path),
            language=data.get("language") or detect_language(file_path),
            content=data.get("content", ""),
            content_vector=tuple(data.get("content_vector") or ()),
            line_count=int(data.get("line_count") or 0),
            size_in_bytes=int(data.get("size_bytes") or 0),
            last_modified=last_modified,
            branch_name=data.get("branch_name", ""),
            metadata=DocumentMetadata(
                repository_name=data.get("repository_name", ""),
                repository_owner=data.get("repository_owner", ""),
                repository_url=data.get("repository_url", ""),
                code_symbols=tuple(data.get("code_symbols") or ()),
            ),
        )
