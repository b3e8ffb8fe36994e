import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from repo_search.core.models.search import SearchFilter, SearchQuery, SearchType
from repo_search.core.models.status import IndexingStatus
from repo_search.infrastructure.search.memory_index import InMemoryDocumentIndex

from conftest import DIMENSIONS, FakeEmbedder, make_document

ONE_HOT_X = [1.0] + [0.0] * (DIMENSIONS - 1)
ONE_HOT_Y = [0.0, 1.0] + [0.0] * (DIMENSIONS - 2)


def index_with(*documents, embedder=None):
    index = InMemoryDocumentIndex(dimensions=DIMENSIONS, embedder=embedder)
    assert asyncio.run(index.index_documents(list(documents))) is True
    return index


def search(index, query):
    return asyncio.run(index.search(query))


@pytest.fixture
def documents():
    return [
        make_document(
            "src/orders.py",
            "class OrderService:\n    def place_orders(self):\n        pass",
            vector=ONE_HOT_X,
            symbols=("class:OrderService", "method:place_orders"),
        ),
        make_document("src/strings.py", "def pad(text):\n    return text", vector=ONE_HOT_Y),
        make_document(
            "web/app.ts",
            "export function renderOrders() {}",
            repository_id="repo-2",
            vector=ONE_HOT_Y,
            repository_name="web",
        ),
    ]


def test_keyword_search_ranks_by_weighted_fields(documents):
    index = index_with(*documents)

    results = search(index, SearchQuery.create("orders", SearchType.KEYWORD))

    assert [r.document.file_path for r in results.results] == ["src/orders.py"]
    assert results.total_count == 1
    assert results.results[0].score > 0


def test_match_all_keyword_query_returns_everything(documents):
    index = index_with(*documents)

    results = search(index, SearchQuery.create("*", SearchType.KEYWORD))

    assert results.total_count == 3


def test_semantic_search_orders_by_cosine(documents):
    embedder = FakeEmbedder(vectors={"ordering code": ONE_HOT_X})
    index = index_with(*documents, embedder=embedder)

    results = search(index, SearchQuery.create("ordering code", SearchType.SEMANTIC))

    assert results.results[0].document.file_path == "src/orders.py"
    assert results.results[0].score == pytest.approx(1.0)
    assert results.total_count == 3


def test_hybrid_search_fuses_rankings(documents):
    embedder = FakeEmbedder(vectors={"pad text": ONE_HOT_X})
    index = index_with(*documents, embedder=embedder)

    results = search(index, SearchQuery.create("pad text", SearchType.HYBRID))

    paths = [r.document.file_path for r in results.results]
    # strings.py wins on keywords, orders.py on vectors; both appear.
    assert set(paths[:2]) == {"src/strings.py", "src/orders.py"}
    assert all(0 < r.score < 1 for r in results.results)


def test_semantic_without_embedder_degrades_to_keyword(documents):
    index = index_with(*documents)

    results = search(index, SearchQuery.create("orders", SearchType.SEMANTIC))

    assert [r.document.file_path for r in results.results] == ["src/orders.py"]


def test_filters(documents):
    index = index_with(*documents)
    base = SearchQuery.create("*", SearchType.KEYWORD)

    by_language = search(index, base.with_filters(SearchFilter.equal("language", "typescript")))
    assert [r.document.file_path for r in by_language.results] == ["web/app.ts"]

    not_repo = search(index, base.with_filters(SearchFilter.not_equal("repository_id", "repo-1")))
    assert [r.document.repository_id for r in not_repo.results] == ["repo-2"]

    by_symbol = search(
        index, base.with_filters(SearchFilter.contains("code_symbols", "OrderService"))
    )
    assert [r.document.file_path for r in by_symbol.results] == ["src/orders.py"]

    long_files = search(index, base.with_filters(SearchFilter.greater_than("line_count", 1)))
    assert {r.document.file_path for r in long_files.results} == {"src/orders.py", "src/strings.py"}

    combined = search(
        index,
        base.with_filters(
            SearchFilter.equal("repository_id", "repo-1"),
            SearchFilter.less_than("line_count", 3),
        ),
    )
    assert [r.document.file_path for r in combined.results] == ["src/strings.py"]


def test_unsupported_operator_raises(documents):
    index = index_with(*documents)
    query = SearchQuery.create("x").with_filters(SearchFilter("file_name", "like", "x"))

    with pytest.raises(ValueError):
        search(index, query)


def test_search_repository_restricts_results(documents):
    index = index_with(*documents)

    results = asyncio.run(
        index.search_repository("repo-2", SearchQuery.create("*", SearchType.KEYWORD))
    )

    assert [r.document.repository_id for r in results.results] == ["repo-2"]


def test_paging_and_facets(documents):
    index = index_with(*documents)

    results = search(index, SearchQuery.create("*", SearchType.KEYWORD).with_paging(top=1, skip=1))

    assert results.total_count == 3
    assert len(results.results) == 1
    languages = {f.value: f.count for f in results.facets["language"]}
    assert languages == {"python": 2, "typescript": 1}
    repositories = {f.value: f.count for f in results.facets["repository_name"]}
    assert repositories == {"sample": 2, "web": 1}


def test_highlights_mark_terms(documents):
    index = index_with(*documents)

    results = search(index, SearchQuery.create("pad", SearchType.KEYWORD))

    assert any("<em>pad</em>" in h for h in results.results[0].highlights)


def test_recent_documents_rank_higher():
    now = datetime.now(timezone.utc)
    old = make_document("a/config.py", "config loader", last_modified=now - timedelta(days=60))
    recent = make_document("b/config.py", "config loader", last_modified=now)
    index = index_with(old, recent)

    results = search(index, SearchQuery.create("config", SearchType.KEYWORD))

    assert [r.document.file_path for r in results.results] == ["b/config.py", "a/config.py"]


def test_invalid_vectors_are_rejected():
    good = make_document("a.py", "x = 1")
    bad = make_document("b.py", "y = 2", vector=[1.0, 2.0])
    index = InMemoryDocumentIndex(dimensions=DIMENSIONS)

    assert asyncio.run(index.index_documents([good, bad])) is False
    assert asyncio.run(index.get_document(good.document_id)) == good
    assert asyncio.run(index.get_document(bad.document_id)) is None


def test_upsert_replaces_by_id():
    index = index_with(make_document("a.py", "x = 1"))
    asyncio.run(index.index_document(make_document("a.py", "x = 2")))

    assert len(index) == 1


def test_repository_status_and_removal(documents):
    index = index_with(*documents)

    status = asyncio.run(index.get_index_status("repo-1"))
    assert status.status == IndexingStatus.COMPLETED
    assert status.documents_indexed == 2

    assert asyncio.run(index.delete_repository_documents("repo-1")) is True
    assert asyncio.run(index.get_index_status("repo-1")).status == IndexingStatus.NOT_STARTED
    assert len(index) == 1

    # Removing a repository with nothing indexed still succeeds.
    assert asyncio.run(index.delete_repository_documents("missing")) is True
