#!/usr/bin/env python3
"""
Smoke test for search over an indexed copy of this project.

Run after indexing the repository (repo-search index <repo_id>):
  python scripts/smoke_search.py --repo <repo_id>

Options:
  --repo             Repository id to search in (default: all repositories)
  --top              Results per query
  --type             Search type: hybrid, semantic or keyword
  --print-results    Print every returned file path
"""

import argparse
import asyncio
import sys

from repo_search.config.settings import settings
from repo_search.container import configure_container, container
from repo_search.core.models.search import SearchQuery, SearchType
from repo_search.core.protocols.document_index import DocumentIndexProtocol


TESTS = [
    {
        "q": "exponential backoff with jitter for transient failures",
        "expect_any": ["retry.py"],
        "expect_none": ["cli.py"],
    },
    {
        "q": "sliding window rate limit semaphore",
        "expect_any": ["rate_limiter.py"],
    },
    {
        "q": "regex timeout extracting code symbols",
        "expect_any": ["symbol_extractor.py"],
    },
    {
        "q": "reciprocal rank fusion freshness scoring profile",
        "expect_any": ["scoring.py", "memory_index.py"],
    },
    {
        "q": "OData filter search.ismatch",
        "expect_any": ["filters.py"],
        "expect_none": ["rate_limiter.py"],
    },
    {
        "q": "binary control characters truncate header",
        "expect_any": ["content_preprocessor.py"],
    },
    {
        "q": "repository already being indexed estimated completion",
        "expect_any": ["indexing_service.py"],
    },
]


def check_expectations(paths: list[str], test: dict) -> list[str]:
    errors = []
    joined = "\n".join(paths).lower()

    expect_any = test.get("expect_any") or []
    expect_none = test.get("expect_none") or []

    if expect_any and not any(x.lower() in joined for x in expect_any):
        errors.append(f"missing any of: {expect_any}")

    for token in expect_none:
        if token.lower() in joined:
            errors.append(f"should not contain: {token}")

    return errors


async def run(args) -> int:
    configure_container(settings)
    index = container.resolve(DocumentIndexProtocol)

    failures = 0
    try:
        for idx, test in enumerate(TESTS, start=1):
            q = test["q"]
            print(f"\nQ{idx}: {q}")

            query = SearchQuery.create(q, SearchType(args.type)).with_paging(args.top)
            if args.repo:
                results = await index.search_repository(args.repo, query)
            else:
                results = await index.search(query)

            paths = [r.document.file_path for r in results.results]
            if args.print_results:
                for r in results.results:
                    print(f"  {r.score:.4f}  {r.document.file_path}")

            errors = check_expectations(paths, test)
            if errors:
                failures += 1
                print("FAIL:", "; ".join(errors))
            else:
                print("OK")
    finally:
        await container.aclose()

    if failures:
        print(f"\nFAILED: {failures} test(s) failed")
        return 1
    print("\nALL OK")
    return 0


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--repo")
    parser.add_argument("--top", type=int, default=5)
    parser.add_argument(
        "--type", choices=[t.value for t in SearchType], default=SearchType.HYBRID.value
    )
    parser.add_argument("--print-results", action="store_true")
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
