"""Symbol extractor - regex-based code symbol discovery."""

import logging
from collections import Counter
from dataclasses import dataclass

import regex

from ..models.document import SymbolToken

logger = logging.getLogger(__name__)

MATCH_TIMEOUT_SECONDS = 5.0
MIN_SYMBOL_LENGTH = 2
MAX_SYMBOL_LENGTH = 100
MIN_IDENTIFIER_OCCURRENCES = 2

COMMON_KEYWORDS = frozenset({
    "if", "else", "for", "while", "do", "switch", "case", "break", "continue", "return",
    "public", "private", "protected", "static", "final", "abstract", "virtual", "override",
    "class", "interface", "struct", "enum", "namespace", "using", "import", "from",
    "function", "var", "let", "const", "def", "async", "await", "try", "catch", "finally",
    "true", "false", "null", "undefined", "void", "int", "string", "bool", "double", "float",
    "this", "self", "super", "new", "delete", "typeof", "instanceof", "in", "of",
})

_IDENTIFIER_RE = regex.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_GENERIC_IDENTIFIER_RE = regex.compile(r"\b([A-Za-z_][A-Za-z0-9_]{2,})\b")


@dataclass(frozen=True)
class SymbolPattern:
    """Compiled pattern whose first group captures a symbol name."""
    symbol_type: str
    pattern: regex.Pattern

    @classmethod
    def of(cls, symbol_type: str, pattern: str, flags: int = regex.MULTILINE) -> "SymbolPattern":
        return cls(symbol_type, regex.compile(pattern, flags))


LANGUAGE_PATTERNS: dict[str, tuple[SymbolPattern, ...]] = {
    "csharp": (
        SymbolPattern.of("class", r"(?:public|private|internal|protected)?\s*(?:static|abstract|sealed)?\s*class\s+(\w+)"),
        SymbolPattern.of("interface", r"(?:public|private|internal|protected)?\s*interface\s+(\w+)"),
        SymbolPattern.of("method", r"(?:public|private|internal|protected)?\s*(?:static|virtual|override|abstract)?\s*(?:\w+\s+)*(\w+)\s*\([^)]*\)\s*(?:\{|;)"),
        SymbolPattern.of("property", r"(?:public|private|internal|protected)?\s*(?:static)?\s*\w+\s+(\w+)\s*\{\s*get"),
        SymbolPattern.of("enum", r"(?:public|private|internal|protected)?\s*enum\s+(\w+)"),
        SymbolPattern.of("struct", r"(?:public|private|internal|protected)?\s*struct\s+(\w+)"),
        SymbolPattern.of("namespace", r"namespace\s+([\w.]+)"),
    ),
    "javascript": (
        SymbolPattern.of("function", r"function\s+(\w+)\s*\("),
        SymbolPattern.of("arrow_function", r"(?:const|let|var)\s+(\w+)\s*=\s*\([^)]*\)\s*=>"),
        SymbolPattern.of("class", r"class\s+(\w+)"),
        SymbolPattern.of("method", r"(\w+)\s*\([^)]*\)\s*\{"),
        SymbolPattern.of("export_function", r"export\s+(?:function\s+)?(\w+)"),
        SymbolPattern.of("async_function", r"async\s+function\s+(\w+)"),
    ),
    "typescript": (
        SymbolPattern.of("function", r"function\s+(\w+)\s*\("),
        SymbolPattern.of("arrow_function", r"(?:const|let|var)\s+(\w+)\s*=\s*\([^)]*\)\s*=>"),
        SymbolPattern.of("class", r"class\s+(\w+)"),
        SymbolPattern.of("interface", r"interface\s+(\w+)"),
        SymbolPattern.of("type", r"type\s+(\w+)"),
        SymbolPattern.of("method", r"(\w+)\s*\([^)]*\)\s*:\s*\w+\s*\{"),
        SymbolPattern.of("export_function", r"export\s+(?:function\s+)?(\w+)"),
        SymbolPattern.of("enum", r"enum\s+(\w+)"),
    ),
    "python": (
        SymbolPattern.of("function", r"def\s+(\w+)\s*\("),
        SymbolPattern.of("class", r"class\s+(\w+)"),
        SymbolPattern.of("async_function", r"async\s+def\s+(\w+)"),
        SymbolPattern.of("method", r"^\s+def\s+(\w+)\s*\("),
        SymbolPattern.of("staticmethod", r"@staticmethod\s+def\s+(\w+)", regex.MULTILINE | regex.DOTALL),
        SymbolPattern.of("classmethod", r"@classmethod\s+def\s+(\w+)", regex.MULTILINE | regex.DOTALL),
    ),
    "java": (
        SymbolPattern.of("class", r"(?:public|private|protected)?\s*class\s+(\w+)"),
        SymbolPattern.of("interface", r"(?:public|private|protected)?\s*interface\s+(\w+)"),
        SymbolPattern.of("method", r"(?:public|private|protected)?\s*(?:static)?\s*\w+\s+(\w+)\s*\([^)]*\)\s*\{"),
        SymbolPattern.of("enum", r"(?:public|private|protected)?\s*enum\s+(\w+)"),
        SymbolPattern.of("package", r"package\s+([\w.]+)"),
    ),
    "go": (
        SymbolPattern.of("function", r"func\s+(\w+)\s*\("),
        SymbolPattern.of("method", r"func\s+\([^)]+\)\s+(\w+)\s*\("),
        SymbolPattern.of("type", r"type\s+(\w+)\s+(?:struct|interface)"),
        SymbolPattern.of("package", r"package\s+(\w+)"),
        SymbolPattern.of("const", r"const\s+(\w+)"),
        SymbolPattern.of("var", r"var\s+(\w+)"),
    ),
    "rust": (
        SymbolPattern.of("function", r"fn\s+(\w+)\s*\("),
        SymbolPattern.of("struct", r"struct\s+(\w+)"),
        SymbolPattern.of("enum", r"enum\s+(\w+)"),
        SymbolPattern.of("trait", r"trait\s+(\w+)"),
        SymbolPattern.of("impl", r"impl.*?for\s+(\w+)"),
        SymbolPattern.of("mod", r"mod\s+(\w+)"),
    ),
    "cpp": (
        SymbolPattern.of("function", r"(?:\w+\s+)*(\w+)\s*\([^)]*\)\s*\{"),
        SymbolPattern.of("class", r"class\s+(\w+)"),
        SymbolPattern.of("struct", r"struct\s+(\w+)"),
        SymbolPattern.of("namespace", r"namespace\s+(\w+)"),
        SymbolPattern.of("enum", r"enum\s+(?:class\s+)?(\w+)"),
    ),
}

COMMON_PATTERNS: tuple[SymbolPattern, ...] = (
    SymbolPattern.of("comment_todo", r"(?://|#)\s*(?:TODO|FIXME|HACK|NOTE):?\s*(\w+)"),
    SymbolPattern.of("import", r"^\s*(?:import|from|using)\s+([\w.]+)"),
    SymbolPattern.of("include", r"#include\s*[<\"]([\w./]+)[>\"]"),
)


def is_valid_symbol_name(name: str) -> bool:
    """Length in [2, 100], identifier-shaped, not a common keyword."""
    if not name or not MIN_SYMBOL_LENGTH <= len(name) <= MAX_SYMBOL_LENGTH:
        return False
    if name.lower() in COMMON_KEYWORDS:
        return False
    return _IDENTIFIER_RE.match(name) is not None


def _last_segment(raw: str) -> str:
    """Reduce a qualified name or include path to its final identifier."""
    name = raw.strip().strip("\"'<>")
    name = name.rsplit("/", 1)[-1]
    if name.endswith((".h", ".hpp", ".hh")):
        name = name.rsplit(".", 1)[0]
    return name.rsplit(".", 1)[-1]


class SymbolExtractor:
    """Extracts typed code symbols from source text."""

    def __init__(self, match_timeout: float = MATCH_TIMEOUT_SECONDS):
        self._match_timeout = match_timeout

    @staticmethod
    def is_language_supported(language: str) -> bool:
        return (language or "").lower() in LANGUAGE_PATTERNS

    @staticmethod
    def supported_languages() -> list[str]:
        return list(LANGUAGE_PATTERNS)

    def extract(self, content: str, language: str) -> list[SymbolToken]:
        """Extract symbols from source code.

        Args:
            content: Source text.
            language: Language identifier, e.g. "python".

        Returns:
            Sorted, de-duplicated symbol tokens.
        """
        if not content or not content.strip():
            return []

        normalized = (language or "").lower()
        symbols: set[SymbolToken] = set()

        patterns = LANGUAGE_PATTERNS.get(normalized)
        for pattern in (patterns or ()) + COMMON_PATTERNS:
            self._extract_with_pattern(content, pattern, symbols)

        if patterns is None:
            self._extract_identifiers(content, symbols)

        result = sorted(symbols)
        logger.debug(
            f"Extracted {len(result)} symbols from {language} code ({len(content)} characters)"
        )
        return result

    def _extract_with_pattern(
        self, content: str, pattern: SymbolPattern, symbols: set[SymbolToken]
    ) -> None:
        try:
            for match in pattern.pattern.finditer(content, timeout=self._match_timeout):
                name = _last_segment(match.group(1))
                if is_valid_symbol_name(name):
                    symbols.add(SymbolToken(pattern.symbol_type, name))
        except TimeoutError:
            logger.warning(
                f"Regex timeout extracting {pattern.symbol_type} symbols "
                f"with pattern: {pattern.pattern.pattern}"
            )

    def _extract_identifiers(self, content: str, symbols: set[SymbolToken]) -> None:
        """Keep identifiers that occur at least twice."""
        counts: Counter[str] = Counter()
        try:
            for match in _GENERIC_IDENTIFIER_RE.finditer(content, timeout=self._match_timeout):
                identifier = match.group(1)
                if is_valid_symbol_name(identifier):
                    counts[identifier] += 1
        except TimeoutError:
            logger.warning("Regex timeout extracting basic identifiers")
            return

        for identifier, count in counts.items():
            if count >= MIN_IDENTIFIER_OCCURRENCES:
                symbols.add(SymbolToken("identifier", identifier))
