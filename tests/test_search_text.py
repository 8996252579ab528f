from __future__ import annotations

from socialapp.utils.search_text import (
    build_search_text,
    escape_like,
    query_tokens,
    sanitize_query,
    to_tsquery,
    tokenize,
)


def test_search_text_is_padded_lowercase_tokens() -> None:
    assert build_search_text("Hello, World! GM") == " hello world gm "
    assert build_search_text("   ") == ""
    assert build_search_text(None) == ""


def test_sanitize_strips_query_syntax_and_collapses_whitespace() -> None:
    assert sanitize_query('  "gm" : frens & (web3) | !rug  ') == "gm frens web3 rug"
    assert sanitize_query("it's") == "it s"


def test_query_tokens_lowercase_and_drop_punctuation() -> None:
    assert query_tokens('Hello: "World"') == ["hello", "world"]
    assert query_tokens('"":&|!()') == []
    assert tokenize("foo-bar") == ["foo", "bar"]


def test_tsquery_requires_all_terms_and_prefixes_the_last() -> None:
    assert to_tsquery(["solana", "summer"]) == "solana & summer:*"
    assert to_tsquery(["gm"]) == "gm:*"
    assert to_tsquery([]) == ""


def test_escape_like_escapes_wildcards() -> None:
    assert escape_like("a_b%c") == "a\\_b\\%c"
