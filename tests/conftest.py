"""
Pytest configuration and shared fakes for repository search tests.
"""

import hashlib
from datetime import datetime, timezone
from typing import Optional

import pytest

from repo_search.core.models.document import DocumentMetadata, SearchableDocument
from repo_search.core.models.repository import Repository
from repo_search.core.services.content_preprocessor import ContentPreprocessor
from repo_search.core.services.file_processor import FileProcessor
from repo_search.core.services.indexing_service import IndexingService
from repo_search.core.services.symbol_extractor import SymbolExtractor
from repo_search.infrastructure.search.memory_index import InMemoryDocumentIndex

DIMENSIONS = 8

EXTENSIONS = [".cs", ".py", ".js", ".ts", ".go", ".md", ".json", ".txt"]
IGNORED_DIRECTORIES = [".git", "node_modules", "bin", "obj", "build"]


def hash_vector(text: str, dimensions: int = DIMENSIONS) -> list[float]:
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [b / 255.0 for b in digest[:dimensions]]


class FakeEmbedder:
    """Deterministic embedder: fixed vectors by text, else a hash of the text."""

    def __init__(self, dimensions: int = DIMENSIONS, vectors: Optional[dict] = None):
        self._dimensions = dimensions
        self.vectors = vectors or {}
        self.calls: list[str] = []
        self.error: Optional[Exception] = None

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def generate_embedding(self, text: str) -> Optional[list[float]]:
        if not text or not text.strip():
            return None
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        if text in self.vectors:
            return list(self.vectors[text])
        return hash_vector(text, self._dimensions)

    async def generate_embeddings(self, texts: list[str]) -> list[list[float]]:
        return [await self.generate_embedding(t) for t in texts if t and t.strip()]

    async def validate(self) -> bool:
        return True


class FakeContentProvider:
    """Serves a fixed file map; listed paths raise on content fetch."""

    def __init__(self, files: dict[str, str], failing: tuple[str, ...] = ()):
        self.files = files
        self.failing = set(failing)
        self.tree_error: Optional[Exception] = None
        self.content_requests: list[str] = []

    async def get_file_tree(
        self, owner: str, repo: str, branch: str, recursive: bool = True
    ) -> list[str]:
        if self.tree_error is not None:
            raise self.tree_error
        return list(self.files)

    async def get_file_content(
        self, owner: str, repo: str, path: str, branch: str
    ) -> Optional[str]:
        self.content_requests.append(path)
        if path in self.failing:
            raise ConnectionError(f"cannot fetch {path}")
        return self.files.get(path)


class FakeRepositoryStore:
    def __init__(self, *repositories: Repository):
        self._repositories = {r.id: r for r in repositories}

    async def get_by_id(self, repository_id: str) -> Optional[Repository]:
        return self._repositories.get(repository_id)


def make_document(
    file_path: str,
    content: str,
    repository_id: str = "repo-1",
    vector: Optional[list[float]] = None,
    symbols: tuple[str, ...] = (),
    last_modified: Optional[datetime] = None,
    repository_name: str = "sample",
) -> SearchableDocument:
    return SearchableDocument.create(
        repository_id=repository_id,
        file_path=file_path,
        content=content,
        content_vector=vector if vector is not None else hash_vector(content),
        branch_name="main",
        metadata=DocumentMetadata(
            repository_name=repository_name,
            repository_owner="acme",
            code_symbols=symbols,
        ),
        last_modified=last_modified,
    )


@pytest.fixture
def repository():
    return Repository(
        id="repo-1",
        name="sample",
        owner="acme",
        clone_url="https://github.com/acme/sample.git",
        description="Sample repository",
        default_branch="main",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        updated_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def preprocessor():
    return ContentPreprocessor(EXTENSIONS, IGNORED_DIRECTORIES, max_content_length=32768)


@pytest.fixture
def file_processor(embedder, preprocessor):
    return FileProcessor(embedder, preprocessor, SymbolExtractor(), max_concurrency=3)


@pytest.fixture
def memory_index(embedder):
    return InMemoryDocumentIndex(dimensions=DIMENSIONS, embedder=embedder)


@pytest.fixture
def sample_files():
    csharp = "\n".join(
        ["namespace Acme.Sample", "{", "    public class OrderService", "    {"]
        + [f"        // line {i}" for i in range(44)]
        + ["    }", "}"]
    )
    python = "\n".join(
        ["import os", "", "class Greeter:", "    def greet(self, name):", "        return name"]
        + [f"# filler {i}" for i in range(15)]
    )
    return {
        "src/a.cs": csharp,
        "src/b.py": python,
        "assets/binary.bin": "\x00\x01\x02\x03" * 50,
    }


@pytest.fixture
def content_provider(sample_files):
    return FakeContentProvider(dict(sample_files))


@pytest.fixture
def indexing_service(memory_index, file_processor, content_provider, repository, preprocessor):
    return IndexingService(
        document_index=memory_index,
        file_processor=file_processor,
        content_provider=content_provider,
        repository_store=FakeRepositoryStore(repository),
        preprocessor=preprocessor,
        max_concurrency=3,
        content_fetch_concurrency=2,
    )
