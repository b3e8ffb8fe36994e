"""Core business services."""
from .content_preprocessor import ContentPreprocessor
from .file_processor import FileProcessor
from .indexing_service import IndexingService
from .status_tracker import IndexStatusTracker
from .symbol_extractor import SymbolExtractor

__all__ = [
    "ContentPreprocessor",
    "FileProcessor",
    "IndexingService",
    "IndexStatusTracker",
    "SymbolExtractor",
]
