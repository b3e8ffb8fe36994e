import pytest

from repo_search.core.services.content_preprocessor import ContentPreprocessor

from conftest import EXTENSIONS, IGNORED_DIRECTORIES


@pytest.fixture
def small_preprocessor():
    return ContentPreprocessor(EXTENSIONS, IGNORED_DIRECTORIES, max_content_length=100)


@pytest.mark.parametrize(
    "path, expected",
    [
        ("src/app.py", True),
        ("src/App.CS", True),
        ("README.md", True),
        ("assets/logo.png", False),
        ("Makefile", False),
        ("node_modules/lib/index.js", False),
        ("src\\bin\\Debug\\tool.cs", False),
        ("web/Node_Modules/x.ts", False),
        ("src/binder/map.py", True),
    ],
)
def test_is_indexable_path(preprocessor, path, expected):
    assert preprocessor.is_indexable_path(path) is expected


def test_binary_heuristic():
    assert ContentPreprocessor.is_binary("\x00\x01\x02abc") is True
    assert ContentPreprocessor.is_binary("line one\r\nline two\tTabbed\n") is False
    assert ContentPreprocessor.is_binary("") is False
    # 3 control characters out of 10 is exactly 30%, not more.
    assert ContentPreprocessor.is_binary("\x00\x01\x02abcdefg") is False


def test_is_indexable_rejects_binary_content(preprocessor):
    assert preprocessor.is_indexable("src/data.json", "\x00" * 40) is False
    assert preprocessor.is_indexable("src/data.json", '{"a": 1}') is True


def test_oversized_content_is_still_indexable(small_preprocessor):
    assert small_preprocessor.is_indexable("src/big.py", "x = 1\n" * 500) is True


def test_preprocess_adds_header_and_normalizes_newlines(preprocessor):
    result = preprocessor.preprocess("a = 1\r\nb = 2\rc = 3\n", "pkg/mod.py")

    assert result == (
        "File: mod.py (Language: python)\nPath: pkg/mod.py\n\na = 1\nb = 2\nc = 3\n"
    )


def test_preprocess_blank_content(preprocessor):
    assert preprocessor.preprocess("", "a.py") == ""
    assert preprocessor.preprocess(" \n\t ", "a.py") == ""


def test_truncate_cuts_at_late_newline(small_preprocessor):
    content = "x" * 95 + "\n" + "y" * 50
    truncated = small_preprocessor.truncate(content)

    assert truncated == "x" * 95


def test_truncate_keeps_hard_cut_when_newline_is_early(small_preprocessor):
    content = "x" * 10 + "\n" + "y" * 200
    truncated = small_preprocessor.truncate(content)

    assert len(truncated) == 100
    assert truncated.startswith("x" * 10 + "\n")


def test_short_content_is_not_truncated(small_preprocessor):
    assert small_preprocessor.truncate("short\n") == "short\n"
