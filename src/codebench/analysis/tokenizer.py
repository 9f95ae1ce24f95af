# src/codebench/analysis/tokenizer.py
from __future__ import annotations

import re

# Order matters: comments are matched (and dropped) before operators.
_TOKEN_RE = re.compile(
    r"""
    (?P<comment>//[^\n]*|\#[^\n]*|/\*.*?\*/)
    |(?P<string>"(?:\\.|[^"\\\n])*"|'(?:\\.|[^'\\\n])*')
    |(?P<number>\d+(?:\.\d+)?)
    |(?P<ident>[A-Za-z_][A-Za-z0-9_]*)
    |(?P<op>==|!=|<=|>=|&&|\|\||->|=>|\+\+|--|[-+*/%=<>!&|^~?:])
    |(?P<punct>[()\[\]{};,.])
    """,
    re.VERBOSE | re.DOTALL,
)


def tokenize_code(code: str) -> list[str]:
    """Splits source text into identifiers, literals, operators and punctuation.

    Comments and whitespace are dropped. The tokenizer is language-agnostic and
    good enough for overlap scoring and branch counting; it is not a parser.
    """
    if not code:
        return []
    tokens: list[str] = []
    for m in _TOKEN_RE.finditer(code):
        if m.lastgroup == "comment":
            continue
        tokens.append(m.group(0))
    return tokens


_SUBWORD_RE = re.compile(r"[A-Z]?[a-z]+|[A-Z]+(?![a-z])|\d+")

STOPWORDS = frozenset({"a", "an", "the", "to", "of", "in", "on", "for", "and", "or", "with", "that", "this", "is", "it"})


def word_set(text: str) -> set[str]:
    """Returns lower-cased words of a text for overlap scoring.

    Identifiers are also split into sub-words (`sort_array`, `sortArray` both
    yield `sort` and `array`). Stopwords and single characters are dropped.
    """
    words: set[str] = set()
    for tok in tokenize_code(text):
        if not (tok[:1].isalpha() or tok[:1] == "_"):
            continue
        words.add(tok.lower())
        words.update(w.lower() for w in _SUBWORD_RE.findall(tok))
    return {w for w in words if len(w) > 1 and w not in STOPWORDS}
