"""Indexing service - repository indexing workflow."""

import asyncio
import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..models.repository import Repository
from ..models.status import IndexingStatus, IndexStatus
from ..protocols.content_provider import ContentProviderProtocol
from ..protocols.document_index import DocumentIndexProtocol
from ..protocols.repository_store import RepositoryStoreProtocol
from .content_preprocessor import ContentPreprocessor
from .file_processor import FileProcessor
from .status_tracker import IndexStatusTracker

logger = logging.getLogger(__name__)

DEFAULT_ESTIMATE = timedelta(minutes=10)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IndexingService:
    """Service for indexing repositories into the document index."""

    def __init__(
        self,
        document_index: DocumentIndexProtocol,
        file_processor: FileProcessor,
        content_provider: ContentProviderProtocol,
        repository_store: RepositoryStoreProtocol,
        preprocessor: ContentPreprocessor,
        max_concurrency: int = 5,
        content_fetch_concurrency: int = 10,
        enable_incremental_indexing: bool = True,
        status_tracker: Optional[IndexStatusTracker] = None,
    ):
        """Initialize indexing service.

        Args:
            document_index: Search index receiving documents.
            file_processor: Turns file contents into documents.
            content_provider: Source of file trees and file contents.
            repository_store: Repository metadata lookup.
            preprocessor: Decides which paths are worth fetching.
            max_concurrency: Files per processing chunk.
            content_fetch_concurrency: Simultaneous file content fetches.
            enable_incremental_indexing: Incremental refresh flag.
            status_tracker: Shared status map (a new one if omitted).
        """
        self._document_index = document_index
        self._file_processor = file_processor
        self._content_provider = content_provider
        self._repository_store = repository_store
        self._preprocessor = preprocessor
        self._max_concurrency = max(1, max_concurrency)
        self._content_fetch_concurrency = max(1, content_fetch_concurrency)
        self._enable_incremental_indexing = enable_incremental_indexing
        self._tracker = status_tracker or IndexStatusTracker()

    async def index_repository(
        self, repository_id: str, force_reindex: bool = False
    ) -> IndexStatus:
        """Index every indexable file of a repository.

        Only one run per repository is active at a time; a request made while
        a run is in progress returns that run's status unchanged.

        Args:
            repository_id: Repository to index.
            force_reindex: Delete existing documents first.

        Returns:
            Final status of the run (or the active run's status).

        Raises:
            asyncio.CancelledError: If the run is cancelled.
        """
        logger.info(
            f"Starting repository indexing for {repository_id}, force_reindex: {force_reindex}"
        )

        status = IndexStatus(
            status=IndexingStatus.IN_PROGRESS,
            estimated_completion=_utcnow() + DEFAULT_ESTIMATE,
        )
        active = self._tracker.try_begin(repository_id, status)
        if active is not None:
            logger.warning(f"Repository {repository_id} is already being indexed")
            return active

        try:
            repository = await self._repository_store.get_by_id(repository_id)
            if repository is None:
                logger.error(f"Repository {repository_id} not found")
                status = IndexStatus.error("Repository not found")
            else:
                status = await self._run_workflow(repository, force_reindex, status)
        except asyncio.CancelledError:
            logger.info(f"Repository indexing cancelled for {repository_id}")
            self._tracker.set(
                repository_id,
                IndexStatus(status=IndexingStatus.CANCELLED, error_message="Indexing cancelled"),
            )
            raise
        except Exception as e:
            logger.error(f"Error indexing repository {repository_id}: {e}")
            status = IndexStatus.error(str(e))

        self._tracker.set(repository_id, status)
        logger.info(
            f"Repository indexing finished for {repository_id} with status "
            f"{status.status.value}, {status.documents_indexed} documents"
        )
        return status

    async def refresh_repository_index(self, repository_id: str) -> IndexStatus:
        """Bring a repository's documents up to date.

        There is no change tracking yet, so a refresh is always a full reindex.
        """
        if not self._enable_incremental_indexing:
            logger.info("Incremental indexing disabled, performing full reindex")
        else:
            logger.info(f"Refreshing {repository_id} with a full reindex")
        return await self.index_repository(repository_id, force_reindex=True)

    async def remove_repository_from_index(self, repository_id: str) -> bool:
        """Delete every document of a repository and forget its status."""
        try:
            logger.info(f"Removing repository {repository_id} from search index")
            self._tracker.set(repository_id, IndexStatus(status=IndexingStatus.IN_PROGRESS))

            success = await self._document_index.delete_repository_documents(repository_id)
            if success:
                self._tracker.remove(repository_id)

            logger.info(
                f"Repository {repository_id} removal "
                f"{'completed successfully' if success else 'failed'}"
            )
            if not success:
                self._tracker.set(
                    repository_id, IndexStatus.error("Failed to remove repository documents")
                )
            return success
        except Exception as e:
            logger.error(f"Error removing repository {repository_id} from index: {e}")
            self._tracker.set(repository_id, IndexStatus.error(str(e)))
            return False

    async def get_indexing_status(self, repository_id: str) -> IndexStatus:
        """Live status of an active or finished run, else the index's view."""
        status = self._tracker.get(repository_id)
        if status is not None:
            return status

        try:
            return await self._document_index.get_index_status(repository_id)
        except Exception as e:
            logger.error(f"Error getting index status for repository {repository_id}: {e}")
            return IndexStatus.error("Error retrieving status")

    async def _run_workflow(
        self, repository: Repository, force_reindex: bool, status: IndexStatus
    ) -> IndexStatus:
        started_at = _utcnow()
        branch = repository.default_branch

        if force_reindex:
            logger.info(
                f"Force reindex requested, removing existing documents for {repository.id}"
            )
            await self._document_index.delete_repository_documents(repository.id)

        logger.debug(f"Fetching repository tree for {repository.owner}/{repository.name}")
        file_tree = await self._content_provider.get_file_tree(
            repository.owner, repository.name, branch, recursive=True
        )

        indexable = [p for p in file_tree if self._preprocessor.is_indexable_path(p)]
        status = replace(status, total_documents=len(indexable))
        self._tracker.set(repository.id, status)
        logger.info(
            f"Found {len(indexable)} indexable files out of {len(file_tree)} total files"
        )

        documents = []
        total_batches = math.ceil(len(indexable) / self._max_concurrency)

        for batch_number, offset in enumerate(
            range(0, len(indexable), self._max_concurrency), 1
        ):
            batch = indexable[offset : offset + self._max_concurrency]
            logger.debug(
                f"Processing batch {batch_number}/{total_batches} ({len(batch)} files)"
            )

            contents = await self._fetch_contents(repository, batch)
            batch_documents = await self._file_processor.process_files(
                repository, contents, branch
            )
            documents.extend(batch_documents)

            status = replace(
                status,
                documents_indexed=len(documents),
                estimated_completion=self._estimate_completion(
                    batch_number, total_batches, started_at
                ),
            )
            self._tracker.set(repository.id, status)
            logger.debug(
                f"Batch {batch_number} completed: {len(batch_documents)} documents, "
                f"total {len(documents)}/{status.total_documents}"
            )

        if documents:
            logger.info(f"Indexing {len(documents)} documents for {repository.id}")
            if not await self._document_index.index_documents(documents):
                logger.error(f"Failed to index documents for repository {repository.id}")
                return replace(
                    status,
                    status=IndexingStatus.ERROR,
                    error_message="Failed to index documents in search index",
                    estimated_completion=None,
                )

        return replace(
            status,
            status=IndexingStatus.COMPLETED,
            last_indexed=_utcnow(),
            estimated_completion=None,
        )

    async def _fetch_contents(
        self, repository: Repository, paths: list[str]
    ) -> dict[str, str]:
        """Fetch file contents concurrently; failed or empty files are left out."""
        semaphore = asyncio.Semaphore(self._content_fetch_concurrency)

        async def fetch(path: str) -> tuple[str, Optional[str]]:
            async with semaphore:
                try:
                    content = await self._content_provider.get_file_content(
                        repository.owner, repository.name, path, repository.default_branch
                    )
                except Exception as e:
                    logger.warning(f"Failed to get content for file {path}: {e}")
                    return path, None
                return path, content

        fetched = await asyncio.gather(*(fetch(p) for p in paths))
        return {path: content for path, content in fetched if content}

    @staticmethod
    def _estimate_completion(
        processed_batches: int, total_batches: int, started_at: datetime
    ) -> datetime:
        now = _utcnow()
        if processed_batches <= 0:
            return now + DEFAULT_ESTIMATE

        per_batch = (now - started_at) / processed_batches
        return now + per_batch * (total_batches - processed_batches)
