import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from repo_search.config.settings import settings
from repo_search.container import configure_container, container
from repo_search.core.models.search import SearchFilter, SearchQuery, SearchType
from repo_search.core.models.status import IndexingStatus
from repo_search.core.protocols.document_index import DocumentIndexProtocol
from repo_search.core.protocols.embedder import EmbedderProtocol
from repo_search.core.services.indexing_service import IndexingService

logger = logging.getLogger(__name__)


def parse_filter(raw: str) -> SearchFilter:
    """Parse "field:op:value", e.g. "language:eq:python"."""
    parts = raw.split(":", 2)
    if len(parts) != 3 or not all(parts[:2]):
        raise argparse.ArgumentTypeError(f"Filter must look like field:op:value, got '{raw}'")
    field, operator, value = parts
    return SearchFilter(field=field, operator=operator, value=value)


def _print(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


async def cmd_create_index(args) -> int:
    ok = await container.resolve(DocumentIndexProtocol).create_index()
    _print({"created": ok})
    return 0 if ok else 1


async def cmd_delete_index(args) -> int:
    ok = await container.resolve(DocumentIndexProtocol).delete_index()
    _print({"deleted": ok})
    return 0 if ok else 1


async def cmd_validate(args) -> int:
    ok = await container.resolve(EmbedderProtocol).validate()
    _print({"embedding_service": "ok" if ok else "unavailable"})
    return 0 if ok else 1


async def cmd_index(args) -> int:
    service = container.resolve(IndexingService)
    status = await service.index_repository(args.repo_id, force_reindex=args.force)
    _print(status.to_dict())
    return 1 if status.status == IndexingStatus.ERROR else 0


async def cmd_refresh(args) -> int:
    service = container.resolve(IndexingService)
    status = await service.refresh_repository_index(args.repo_id)
    _print(status.to_dict())
    return 1 if status.status == IndexingStatus.ERROR else 0


async def cmd_remove(args) -> int:
    ok = await container.resolve(IndexingService).remove_repository_from_index(args.repo_id)
    _print({"removed": ok})
    return 0 if ok else 1


async def cmd_status(args) -> int:
    status = await container.resolve(IndexingService).get_indexing_status(args.repo_id)
    _print(status.to_dict())
    return 0


async def cmd_search(args) -> int:
    index = container.resolve(DocumentIndexProtocol)
    query = (
        SearchQuery.create(args.query, SearchType(args.type))
        .with_filters(*args.filter)
        .with_paging(args.top, args.skip)
    )

    try:
        if args.repo:
            results = await index.search_repository(args.repo, query)
        else:
            results = await index.search(query)
    except ValueError as e:
        logger.error(str(e))
        return 2

    _print(results.to_dict())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-search", description="Repository indexing and hybrid search"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("create-index", help="Create or update the search index").set_defaults(
        handler=cmd_create_index
    )
    commands.add_parser("delete-index", help="Delete the search index").set_defaults(
        handler=cmd_delete_index
    )
    commands.add_parser("validate", help="Check the embedding service").set_defaults(
        handler=cmd_validate
    )

    index = commands.add_parser("index", help="Index a repository")
    index.add_argument("repo_id")
    index.add_argument("--force", action="store_true", help="Delete existing documents first")
    index.set_defaults(handler=cmd_index)

    for name, handler, help_text in (
        ("refresh", cmd_refresh, "Reindex a repository"),
        ("remove", cmd_remove, "Remove a repository from the index"),
        ("status", cmd_status, "Show indexing status"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("repo_id")
        sub.set_defaults(handler=handler)

    search = commands.add_parser("search", help="Search indexed documents")
    search.add_argument("query")
    search.add_argument("--repo", help="Restrict to one repository id")
    search.add_argument(
        "--type", choices=[t.value for t in SearchType], default=SearchType.HYBRID.value
    )
    search.add_argument("--top", type=int, default=10)
    search.add_argument("--skip", type=int, default=0)
    search.add_argument(
        "--filter",
        type=parse_filter,
        action="append",
        default=[],
        help="field:op:value with op one of eq, ne, gt, lt, contains",
    )
    search.set_defaults(handler=cmd_search)

    return parser


async def run(args) -> int:
    configure_container(settings)
    try:
        return await args.handler(args)
    finally:
        await container.aclose()


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
