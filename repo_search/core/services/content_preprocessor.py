"""Content preprocessor - indexability checks and content normalization."""

import logging
import re
import unicodedata
from typing import Iterable

from ..models.document import detect_language, file_extension_of, file_name_of

logger = logging.getLogger(__name__)

BINARY_CONTROL_RATIO = 0.3
TRUNCATION_KEEP_RATIO = 0.9

_ALLOWED_CONTROL_CHARS = {"\r", "\n", "\t"}
_PATH_SPLIT_RE = re.compile(r"[/\\]")


class ContentPreprocessor:
    """Decides which files are indexable and prepares their content."""

    def __init__(
        self,
        indexable_extensions: Iterable[str],
        ignored_directories: Iterable[str],
        max_content_length: int = 32768,
    ):
        """Initialize preprocessor.

        Args:
            indexable_extensions: Allowed file extensions, with leading dot.
            ignored_directories: Directory names excluded anywhere in a path.
            max_content_length: Maximum characters kept from a file.
        """
        self._extensions = {e.lower() for e in indexable_extensions}
        self._ignored_directories = {d.lower() for d in ignored_directories}
        self._max_content_length = max_content_length

    def is_indexable_path(self, file_path: str) -> bool:
        """Check extension allow-list and ignored directories."""
        if file_extension_of(file_path).lower() not in self._extensions:
            return False

        parts = _PATH_SPLIT_RE.split(file_path)
        return not any(part.lower() in self._ignored_directories for part in parts)

    def is_indexable(self, file_path: str, content: str) -> bool:
        """Check path rules and reject binary content."""
        if not self.is_indexable_path(file_path):
            return False

        if len(content) > self._max_content_length:
            logger.debug(
                f"File {file_path} too large ({len(content)} chars), "
                f"truncating to {self._max_content_length}"
            )

        return not self.is_binary(content)

    @staticmethod
    def is_binary(content: str) -> bool:
        """True if more than 30% of characters are control characters.

        CR, LF and TAB do not count as control characters here.
        """
        if not content:
            return False

        control_count = sum(
            1
            for c in content
            if c not in _ALLOWED_CONTROL_CHARS and unicodedata.category(c) == "Cc"
        )
        return control_count > len(content) * BINARY_CONTROL_RATIO

    def truncate(self, content: str) -> str:
        """Cut content to the max length, at a line boundary when cheap."""
        if len(content) <= self._max_content_length:
            return content

        content = content[: self._max_content_length]
        last_newline = content.rfind("\n")
        if last_newline > len(content) * TRUNCATION_KEEP_RATIO:
            content = content[:last_newline]
        return content

    @staticmethod
    def build_header(file_path: str) -> str:
        language = detect_language(file_path)
        return f"File: {file_name_of(file_path)} (Language: {language})\nPath: {file_path}"

    def preprocess(self, content: str, file_path: str) -> str:
        """Prepare file content for embedding and storage.

        Args:
            content: Raw file content.
            file_path: Path of the file within the repository.

        Returns:
            Header plus truncated, newline-normalized body; empty string for
            blank content.
        """
        if not content or not content.strip():
            return ""

        content = self.truncate(content)
        content = content.replace("\r\n", "\n").replace("\r", "\n")

        return f"{self.build_header(file_path)}\n\n{content}"
