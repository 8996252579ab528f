# utils/search_text.py
import re

_WORD_RE = re.compile(r"\w+")
# Characters with a meaning in to_tsquery syntax
_QUERY_SYNTAX_RE = re.compile(r"""['":&|!()]""")


def tokenize(text: str | None) -> list[str]:
    return _WORD_RE.findall((text or "").lower())


def build_search_text(content: str | None) -> str:
    """Searchable form of a post body: lower-cased word tokens, space delimited.

    Padded with a space on both sides so every token (including the first
    and last) can be matched as `% token %`.
    """
    tokens = tokenize(content)
    if not tokens:
        return ""
    return f" {' '.join(tokens)} "


def sanitize_query(query: str | None) -> str:
    cleaned = _QUERY_SYNTAX_RE.sub(" ", query or "")
    return " ".join(cleaned.split())


def query_tokens(query: str | None) -> list[str]:
    return tokenize(sanitize_query(query))


def to_tsquery(tokens: list[str]) -> str:
    """All tokens required, the last one as a prefix: `a & b & c:*`."""
    if not tokens:
        return ""
    return " & ".join([*tokens[:-1], f"{tokens[-1]}:*"])


def escape_like(token: str) -> str:
    return token.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
