import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from .config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEARCH_BACKENDS = ("azure", "memory")


@dataclass
class Container:
    _factories: dict[type, Callable[[], Any]] = field(default_factory=dict)
    _singletons: dict[type, Any] = field(default_factory=dict)
    _singleton_flags: set[type] = field(default_factory=set)

    def register(
        self, interface: type[T], factory: Callable[[], T], singleton: bool = False
    ) -> None:
        """Register factory for interface.

        Args:
            interface: Interface type.
            factory: Factory function.
            singleton: Whether to cache instance.
        """
        self._factories[interface] = factory
        if singleton:
            self._singleton_flags.add(interface)
        self._singletons.pop(interface, None)

    def resolve(self, interface: type[T]) -> T:
        if interface in self._singletons:
            return self._singletons[interface]

        if interface not in self._factories:
            raise KeyError(f"No factory registered for {interface}")

        instance = self._factories[interface]()

        if interface in self._singleton_flags:
            self._singletons[interface] = instance

        return instance

    async def aclose(self) -> None:
        """Close singletons holding network clients."""
        for instance in self._singletons.values():
            close = getattr(instance, "aclose", None)
            if close is not None:
                await close()

    def reset(self) -> None:
        """Reset singletons (for testing)."""
        self._singletons.clear()


container = Container()


def configure_container(settings: Settings) -> Container:
    """Configure container with all dependencies.

    Args:
        settings: Application settings.

    Returns:
        Configured container.

    Raises:
        ValueError: If the search backend is unknown.
    """
    from .core.protocols.content_provider import ContentProviderProtocol
    from .core.protocols.document_index import DocumentIndexProtocol
    from .core.protocols.embedder import EmbedderProtocol
    from .core.protocols.repository_store import RepositoryStoreProtocol
    from .core.services.content_preprocessor import ContentPreprocessor
    from .core.services.file_processor import FileProcessor
    from .core.services.indexing_service import IndexingService
    from .core.services.status_tracker import IndexStatusTracker
    from .core.services.symbol_extractor import SymbolExtractor
    from .infrastructure.embeddings.openai_embedder import OpenAIEmbedder
    from .infrastructure.github.content_provider import GitHubContentProvider
    from .infrastructure.repositories.json_store import JsonRepositoryStore
    from .infrastructure.search.azure_search_index import AzureSearchIndex
    from .infrastructure.search.memory_index import InMemoryDocumentIndex

    if settings.search_backend not in SEARCH_BACKENDS:
        raise ValueError(
            f"Unknown search backend '{settings.search_backend}', "
            f"expected one of {', '.join(SEARCH_BACKENDS)}"
        )

    container.register(
        EmbedderProtocol,
        lambda: OpenAIEmbedder(
            base_url=settings.embedding_base_url,
            api_key=settings.embedding_api_key,
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
            max_batch_size=settings.embedding_max_batch_size,
            retry_attempts=settings.embedding_retry_attempts,
            retry_base_delay=settings.embedding_retry_base_delay,
            rate_limit_protection=settings.embedding_rate_limit_protection,
            timeout=settings.embedding_timeout,
        ),
        singleton=True,
    )

    if settings.search_backend == "memory":
        container.register(
            DocumentIndexProtocol,
            lambda: InMemoryDocumentIndex(
                dimensions=settings.embedding_dimensions,
                embedder=container.resolve(EmbedderProtocol),
            ),
            singleton=True,
        )
    else:
        container.register(
            DocumentIndexProtocol,
            lambda: AzureSearchIndex(
                service_url=settings.search_service_url,
                api_key=settings.search_api_key,
                index_name=settings.search_index_name,
                dimensions=settings.embedding_dimensions,
                api_version=settings.search_api_version,
                max_batch_size=settings.search_max_batch_size,
                timeout=settings.search_request_timeout,
                embedder=container.resolve(EmbedderProtocol),
                detailed_logging=settings.search_detailed_logging,
            ),
            singleton=True,
        )

    container.register(
        ContentProviderProtocol,
        lambda: GitHubContentProvider(
            api_url=settings.github_api_url,
            token=settings.github_token,
            timeout=settings.github_timeout,
        ),
        singleton=True,
    )

    container.register(
        RepositoryStoreProtocol,
        lambda: JsonRepositoryStore(settings.repositories_path),
        singleton=True,
    )

    container.register(
        ContentPreprocessor,
        lambda: ContentPreprocessor(
            indexable_extensions=settings.indexable_file_extensions,
            ignored_directories=settings.ignored_directories,
            max_content_length=settings.max_file_content_length,
        ),
        singleton=True,
    )

    container.register(SymbolExtractor, SymbolExtractor, singleton=True)
    container.register(IndexStatusTracker, IndexStatusTracker, singleton=True)

    container.register(
        FileProcessor,
        lambda: FileProcessor(
            embedder=container.resolve(EmbedderProtocol),
            preprocessor=container.resolve(ContentPreprocessor),
            symbol_extractor=container.resolve(SymbolExtractor),
            max_concurrency=settings.max_concurrent_indexing_operations,
            extract_symbols=settings.extract_code_symbols,
        ),
        singleton=True,
    )

    container.register(
        IndexingService,
        lambda: IndexingService(
            document_index=container.resolve(DocumentIndexProtocol),
            file_processor=container.resolve(FileProcessor),
            content_provider=container.resolve(ContentProviderProtocol),
            repository_store=container.resolve(RepositoryStoreProtocol),
            preprocessor=container.resolve(ContentPreprocessor),
            max_concurrency=settings.max_concurrent_indexing_operations,
            content_fetch_concurrency=settings.content_fetch_concurrency,
            enable_incremental_indexing=settings.enable_incremental_indexing,
            status_tracker=container.resolve(IndexStatusTracker),
        ),
        singleton=True,
    )

    logger.info(f"Container configured with {settings.search_backend} search backend")
    return container
