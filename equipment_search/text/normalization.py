"""
Text normalization shared by the lexical index, the domain classifier and
the semantic adapters.

Two flavours:
- simple_tokenize: lowercase, accent-free, alphanumeric tokens (index space)
- normalize_equip: aggressive equipment normalization (7 cv -> 7hp, plurals)
"""

import re
import unicodedata

UNIT_EQUIV = {
    "cv": "hp",
    "hp": "hp",
    "kva": "kva",
    "kw": "kw",
    "v": "v",
    "volts": "v",
    "hz": "hz",
}

_NUM_UNIT = re.compile(r"(\d+[.,]?\d*)\s*(kva|kw|hp|cv|v|hz)\b")
_PARENS = re.compile(r"[()\[\]{}]")
_NON_ALNUM = re.compile(r"[^a-z0-9]")
_NON_ALNUM_SPACE = re.compile(r"[^a-z0-9.,\s]")
_MULTI_SPACE = re.compile(r"\s+")


def strip_accents(text: str) -> str:
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def default_preprocess(text: str) -> str:
    """Trim, lowercase and collapse whitespace."""
    if not text:
        return ""
    return " ".join(text.strip().lower().split())


def simple_tokenize(text: str) -> list[str]:
    prep = default_preprocess(strip_accents(text))
    return _NON_ALNUM.sub(" ", prep).split()


def char_ngrams(text: str, min_n: int, max_n: int) -> list[str]:
    """Character n-grams inside word boundaries, each word padded with spaces."""
    grams: list[str] = []
    for word in default_preprocess(strip_accents(text)).split():
        padded = f" {word} "
        for n in range(min_n, max_n + 1):
            for i in range(len(padded) - n + 1):
                grams.append(padded[i : i + n])
    return grams


def word_ngrams(text: str, min_n: int, max_n: int) -> list[str]:
    tokens = simple_tokenize(text)
    grams: list[str] = []
    for n in range(min_n, max_n + 1):
        for i in range(len(tokens) - n + 1):
            grams.append(" ".join(tokens[i : i + n]))
    return grams


def _singularize_pt(token: str) -> str:
    # Regular Portuguese plurals only: vassouras -> vassoura, motores -> motor
    if len(token) <= 3 or token.isdigit():
        return token
    if token.endswith("es") and len(token) > 4:
        return token[:-2]
    if token.endswith("s"):
        return token[:-1]
    return token


def _join_unit(match: re.Match) -> str:
    number = match.group(1).replace(",", ".")
    unit = match.group(2)
    return f"{number}{UNIT_EQUIV.get(unit, unit)}"


def normalize_equip(text: str) -> str:
    """
    Aggressive normalization for equipment descriptions.

    lowercase + accents removed, punctuation dropped, number and unit
    joined (7 cv -> 7hp), unit aliases unified, light singularization.
    """
    if not text:
        return ""

    t = strip_accents(text.lower())
    t = _PARENS.sub(" ", t)
    t = _NON_ALNUM_SPACE.sub(" ", t)
    t = _NUM_UNIT.sub(_join_unit, t)
    # Separators left over from numbers that were not followed by a unit
    t = re.sub(r"(?<!\d)[.,]|[.,](?!\d)", " ", t)
    t = _MULTI_SPACE.sub(" ", t).strip()

    tokens = []
    for tok in t.split(" "):
        if not tok:
            continue
        if tok in UNIT_EQUIV:
            tokens.append(UNIT_EQUIV[tok])
        else:
            tokens.append(_singularize_pt(tok))
    return " ".join(tokens)
