"""Query normalization for lexical retrieval.

Turns a raw query (natural language or partial code) into the character
trigrams a trigram-tokenized full-text index matches on.
"""

import re
from collections.abc import Iterable

from nltk.stem.porter import PorterStemmer

WHITESPACE_PATTERN = re.compile(r"\s+")
# Word-class tokens start with a letter or underscore; numbers and punctuation are dropped
WORD_PATTERN = re.compile(r"[^\W\d]\w*")

TRIGRAM_SIZE = 3
LEXICAL_OPERATOR = " OR "

STOP_WORDS = frozenset(
    """
    a about above after again against all am an and any are as at be because been
    before being below between both but by can could did do does doing down during
    each few for from further had has have having he her here hers herself him
    himself his how i if in into is it its itself just me more most my myself no
    nor not now of off on once only or other our ours ourselves out over own same
    she should so some such than that the their theirs them themselves then there
    these they this those through to too under until up very was we were what when
    where which while who whom why will with would you your yours yourself
    yourselves
    """.split()
)

_stemmer = PorterStemmer()


def _unique(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered = []
    for item in items:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered


def character_ngrams(text: str, size: int = TRIGRAM_SIZE) -> list[str]:
    """All contiguous character windows of ``size`` over ``text``, first-seen order."""
    if len(text) < size:
        return []
    return _unique(text[i : i + size] for i in range(len(text) - size + 1))


def normalize_query(query: str) -> list[str]:
    """Normalize a raw query into lexical trigrams.

    Collapses whitespace, keeps word tokens, drops stop words, stems what is
    left, deduplicates the stems and returns the character trigrams of the
    space-joined stems.

    Args:
        query: Raw query text.

    Returns:
        Trigram strings. Empty when the query carries no lexical signal.
    """
    text = WHITESPACE_PATTERN.sub(" ", query).strip()
    if not text:
        return []

    tokens = [token for token in WORD_PATTERN.findall(text) if token.lower() not in STOP_WORDS]
    stems = _unique(_stemmer.stem(token) for token in tokens)

    return character_ngrams(" ".join(stems))


def build_lexical_query(trigrams: Iterable[str]) -> str:
    """Join trigrams into a disjunctive full-text query."""
    return LEXICAL_OPERATOR.join(trigrams)
