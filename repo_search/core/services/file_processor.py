"""File processor - turns repository files into searchable documents."""

import asyncio
import logging
from typing import Optional

from ..models.document import DocumentMetadata, SearchableDocument, detect_language
from ..models.repository import Repository
from ..protocols.embedder import EmbedderProtocol
from .content_preprocessor import ContentPreprocessor
from .symbol_extractor import SymbolExtractor

logger = logging.getLogger(__name__)


class FileProcessor:
    """Preprocesses, embeds and annotates repository files."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        preprocessor: ContentPreprocessor,
        symbol_extractor: SymbolExtractor,
        max_concurrency: int = 5,
        extract_symbols: bool = True,
    ):
        """Initialize file processor.

        Args:
            embedder: Embedding service.
            preprocessor: Content preprocessor.
            symbol_extractor: Code symbol extractor.
            max_concurrency: Files processed at once in a batch.
            extract_symbols: Whether to extract code symbols.
        """
        self._embedder = embedder
        self._preprocessor = preprocessor
        self._symbol_extractor = symbol_extractor
        self._max_concurrency = max_concurrency
        self._extract_symbols = extract_symbols

    async def process_file(
        self,
        repository: Repository,
        file_path: str,
        content: str,
        branch_name: str,
    ) -> Optional[SearchableDocument]:
        """Create a searchable document for one file.

        Args:
            repository: Repository containing the file.
            file_path: Path of the file within the repository.
            content: Raw file content.
            branch_name: Branch the file was read from.

        Returns:
            Document ready for indexing, or None if the file is skipped.
        """
        try:
            logger.debug(f"Processing file {file_path} from repository {repository.name}")

            if not self._preprocessor.is_indexable(file_path, content):
                logger.debug(f"Skipping non-indexable file: {file_path}")
                return None

            processed = self._preprocessor.preprocess(content, file_path)
            if not processed:
                logger.debug(f"Skipping empty file: {file_path}")
                return None

            embedding = await self._embed(processed, file_path)
            if embedding is None:
                logger.warning(f"Failed to generate embedding for file: {file_path}")
                return None

            if len(embedding) != self._embedder.dimensions:
                logger.warning(
                    f"Embedding for {file_path} has {len(embedding)} dimensions, "
                    f"expected {self._embedder.dimensions}"
                )
                return None

            code_symbols: list[str] = []
            if self._extract_symbols:
                tokens = self._symbol_extractor.extract(content, detect_language(file_path))
                code_symbols = [str(t) for t in tokens]

            document = SearchableDocument.create(
                repository_id=repository.id,
                file_path=file_path,
                content=processed,
                content_vector=embedding,
                branch_name=branch_name,
                metadata=self._build_metadata(repository, code_symbols),
            )

            logger.debug(
                f"Processed {file_path}: {len(code_symbols)} symbols, "
                f"{len(processed)} chars"
            )
            return document

        except asyncio.CancelledError:
            logger.info(f"File processing cancelled for: {file_path}")
            raise
        except Exception as e:
            logger.error(f"Error processing file {file_path} from {repository.name}: {e}")
            return None

    async def process_files(
        self,
        repository: Repository,
        files: dict[str, str],
        branch_name: str,
    ) -> list[SearchableDocument]:
        """Process many files concurrently.

        Args:
            repository: Repository containing the files.
            files: Mapping of file path to raw content.
            branch_name: Branch the files were read from.

        Returns:
            Successfully produced documents, in completion-independent order.
        """
        if not files:
            logger.warning("No files provided for batch processing")
            return []

        logger.info(f"Processing {len(files)} files from repository {repository.name}")

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def process_one(path: str, text: str) -> Optional[SearchableDocument]:
            async with semaphore:
                return await self.process_file(repository, path, text, branch_name)

        indexable = {
            path: text
            for path, text in files.items()
            if self._preprocessor.is_indexable(path, text)
        }
        filtered = len(files) - len(indexable)

        try:
            results = await asyncio.gather(
                *(process_one(path, text) for path, text in indexable.items())
            )
        except Exception as e:
            logger.error(f"Error during batch processing for {repository.name}: {e}")
            return []

        documents = [doc for doc in results if doc is not None]
        logger.info(
            f"Batch processing completed: {len(documents)}/{len(indexable)} files succeeded, "
            f"{len(indexable) - len(documents)} failed, {filtered} filtered out"
        )
        return documents

    async def _embed(self, text: str, file_path: str) -> Optional[list[float]]:
        try:
            return await self._embedder.generate_embedding(text)
        except Exception as e:
            logger.error(f"Embedding failed for {file_path} ({len(text)} chars): {e}")
            return None

    @staticmethod
    def _build_metadata(repository: Repository, code_symbols: list[str]) -> DocumentMetadata:
        return DocumentMetadata(
            repository_name=repository.name,
            repository_owner=repository.owner,
            repository_url=repository.clone_url,
            code_symbols=tuple(code_symbols),
            custom_fields={
                "repository_description": repository.description or "",
                "is_private": str(repository.is_private),
                "default_branch": repository.default_branch,
                "created_at": repository.created_at.isoformat(),
                "updated_at": repository.updated_at.isoformat(),
            },
        )
