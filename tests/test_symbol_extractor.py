from repo_search.core.models.document import SymbolToken
from repo_search.core.services.symbol_extractor import (
    SymbolExtractor,
    is_valid_symbol_name,
)

PYTHON_SOURCE = """
import os.path
from collections import OrderedDict

class Greeter:
    def greet(self, name):
        return name

    @staticmethod
    def build():
        pass

async def fetch_all():
    # TODO refactor this loop
    pass
"""

CSHARP_SOURCE = """
using System.Collections.Generic;

namespace Acme.Orders
{
    public interface IOrderRepository { }

    public enum OrderState { Open, Closed }

    public class OrderService
    {
        public int Count { get; set; }

        public void PlaceOrder(string id)
        {
        }
    }
}
"""


def test_python_symbols():
    symbols = SymbolExtractor().extract(PYTHON_SOURCE, "python")

    assert SymbolToken("class", "Greeter") in symbols
    assert SymbolToken("function", "greet") in symbols
    assert SymbolToken("method", "greet") in symbols
    assert SymbolToken("async_function", "fetch_all") in symbols
    assert SymbolToken("staticmethod", "build") in symbols
    assert SymbolToken("comment_todo", "refactor") in symbols


def test_qualified_imports_keep_last_segment():
    symbols = SymbolExtractor().extract(PYTHON_SOURCE, "python")

    imports = {s.name for s in symbols if s.symbol_type == "import"}
    assert "path" in imports
    assert "collections" in imports


def test_include_keeps_file_stem():
    source = '#include <sys/types.h>\n#include "net/socket.hpp"\nint main() {\n}\n'
    symbols = SymbolExtractor().extract(source, "cpp")

    includes = {s.name for s in symbols if s.symbol_type == "include"}
    assert includes == {"types", "socket"}


def test_csharp_symbols():
    symbols = SymbolExtractor().extract(CSHARP_SOURCE, "csharp")

    assert SymbolToken("class", "OrderService") in symbols
    assert SymbolToken("interface", "IOrderRepository") in symbols
    assert SymbolToken("enum", "OrderState") in symbols
    assert SymbolToken("property", "Count") in symbols
    assert SymbolToken("method", "PlaceOrder") in symbols
    assert SymbolToken("namespace", "Orders") in symbols
    assert SymbolToken("import", "Generic") in symbols


def test_language_lookup_is_case_insensitive():
    extractor = SymbolExtractor()

    assert extractor.extract("class Widget:\n    pass\n", "Python") == extractor.extract(
        "class Widget:\n    pass\n", "python"
    )
    assert extractor.is_language_supported("CSharp")
    assert not extractor.is_language_supported("cobol")
    assert "rust" in extractor.supported_languages()


def test_result_is_sorted_and_unique():
    source = "class Alpha:\n    pass\n\nclass Alpha:\n    pass\n\nclass Beta:\n    pass\n"
    symbols = SymbolExtractor().extract(source, "python")

    assert symbols == sorted(set(symbols))
    assert [s for s in symbols if s.symbol_type == "class"] == [
        SymbolToken("class", "Alpha"),
        SymbolToken("class", "Beta"),
    ]


def test_every_symbol_name_is_valid():
    symbols = SymbolExtractor().extract(PYTHON_SOURCE + CSHARP_SOURCE, "csharp")

    assert symbols
    assert all(is_valid_symbol_name(s.name) for s in symbols)


def test_keywords_are_rejected():
    assert not is_valid_symbol_name("return")
    assert not is_valid_symbol_name("If")
    assert not is_valid_symbol_name("x")
    assert not is_valid_symbol_name("a" * 101)
    assert not is_valid_symbol_name("9lives")
    assert is_valid_symbol_name("parse_config")


def test_unknown_language_uses_repeated_identifiers():
    source = "widget_count = 1\nwidget_count += 2\nonce_only = 3\n"
    symbols = SymbolExtractor().extract(source, "cobol")

    identifiers = {s.name for s in symbols if s.symbol_type == "identifier"}
    assert "widget_count" in identifiers
    assert "once_only" not in identifiers


def test_known_language_skips_identifier_fallback():
    source = "widget_count = 1\nwidget_count += 2\n"
    symbols = SymbolExtractor().extract(source, "python")

    assert not [s for s in symbols if s.symbol_type == "identifier"]


def test_blank_content_yields_nothing():
    assert SymbolExtractor().extract("", "python") == []
    assert SymbolExtractor().extract("   \n\t", "go") == []


def test_token_string_form():
    assert str(SymbolToken("class", "Greeter")) == "class:Greeter"


def test_match_timeout_drops_pattern_matches(caplog):
    extractor = SymbolExtractor(match_timeout=1e-6)
    content = "class Widget:\n    def render(self):\n        return self\n" * 20000

    with caplog.at_level("WARNING", logger="repo_search.core.services.symbol_extractor"):
        symbols = extractor.extract(content, "python")

    assert isinstance(symbols, list)
    assert any("Regex timeout extracting" in r.getMessage() for r in caplog.records)


def test_identifier_fallback_timeout(caplog):
    extractor = SymbolExtractor(match_timeout=1e-6)
    content = "widget = make_widget(widget_factory)\n" * 60000

    with caplog.at_level("WARNING", logger="repo_search.core.services.symbol_extractor"):
        symbols = extractor.extract(content, "cobol")

    assert isinstance(symbols, list)
    assert not any(s.symbol_type == "identifier" for s in symbols)
    assert any(
        "Regex timeout extracting basic identifiers" in r.getMessage() for r in caplog.records
    )
