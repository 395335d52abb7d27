"""
Lexical retrieval over character and word n-gram TF-IDF spaces.

score(d) = w_char * cos_char(q, d) + w_word * cos_word(q, d) + w_overlap * overlap(q, d)

Weights depend on query length (single token: 0.75/0.15/0.10,
otherwise 0.60/0.25/0.15). Two multiplicative penalties follow:
- anchor penalty: documents containing none of the query's anchor tokens
  (multi-token queries only)
- head-token penalty: documents missing the first meaningful query token
  (exact match for multi-token queries, prefix/substring match with a
  quarter of the penalty for single-token queries)

IDF is smoothed: idf(t) = ln((N + 1) / (df(t) + 1)) + 1
"""

import math
from collections import Counter
from typing import Callable, Sequence

from equipment_search.config.settings import settings
from equipment_search.corpus.models import CorpusDocument
from equipment_search.errors import IndexBuildError
from equipment_search.logger import get_logger
from equipment_search.retrieval.models import LexicalHit
from equipment_search.text.normalization import (
    char_ngrams,
    simple_tokenize,
    strip_accents,
    word_ngrams,
)

logger = get_logger(__name__)

CHAR_NGRAM_RANGE = (3, 5)
WORD_NGRAM_RANGE = (1, 2)

SINGLE_TOKEN_WEIGHTS = (0.75, 0.15, 0.10)
MULTI_TOKEN_WEIGHTS = (0.60, 0.25, 0.15)

MAX_ANCHORS = 5
# Always the strongest anchor when present in the query
PROMOTED_ANCHOR = "mop"
SINGLE_TOKEN_HEAD_PENALTY_FACTOR = 0.25

Postings = dict[str, list[tuple[int, float]]]
SparseVector = dict[str, float]


def _l2_normalize(vec: SparseVector) -> SparseVector:
    norm = math.sqrt(sum(w * w for w in vec.values()))
    if norm == 0:
        return vec
    return {term: w / norm for term, w in vec.items()}


def _common_prefix_len(a: str, b: str) -> int:
    i = 0
    for ca, cb in zip(a, b):
        if ca != cb:
            break
        i += 1
    return i


class _Space:
    """One TF-IDF vector space stored as inverted postings."""

    def __init__(self, grams: Callable[[str], list[str]], idf: dict[str, float], postings: Postings):
        self.grams = grams
        self.idf = idf
        self.postings = postings

    @classmethod
    def build(cls, texts: Sequence[str], grams: Callable[[str], list[str]]) -> "_Space":
        n_docs = len(texts)
        term_counts = [Counter(grams(t)) for t in texts]

        df: Counter = Counter()
        for counts in term_counts:
            df.update(counts.keys())
        idf = {term: math.log((n_docs + 1) / (freq + 1)) + 1.0 for term, freq in df.items()}

        postings: Postings = {}
        for doc_index, counts in enumerate(term_counts):
            vec = _l2_normalize({term: c * idf[term] for term, c in counts.items()})
            for term, weight in vec.items():
                postings.setdefault(term, []).append((doc_index, weight))
        return cls(grams, idf, postings)

    def query_vector(self, text: str) -> SparseVector:
        # Out-of-vocabulary n-grams carry no weight
        counts = Counter(g for g in self.grams(text) if g in self.idf)
        return _l2_normalize({term: c * self.idf[term] for term, c in counts.items()})

    def cosine_all(self, text: str, n_docs: int) -> list[float]:
        sims = [0.0] * n_docs
        for term, q_weight in self.query_vector(text).items():
            for doc_index, d_weight in self.postings[term]:
                sims[doc_index] += q_weight * d_weight
        return sims


class LexicalIndex:
    """
    Read-only n-gram index built once from the whole corpus.

    Searching never mutates the index, so one instance can serve any number
    of concurrent readers. A corpus change means building a new index.
    """

    def __init__(
        self,
        doc_ids: list[str],
        char_space: _Space,
        word_space: _Space,
        tokens_per_doc: list[frozenset[str]],
        anchor_penalty: float,
        anchor_min_len: int,
        head_token_penalty: float,
    ):
        self.doc_ids = doc_ids
        self._char = char_space
        self._word = word_space
        self._tokens_per_doc = tokens_per_doc
        # Single-token entries of the word vocabulary weight anchors
        self._token_idf = {t: v for t, v in word_space.idf.items() if " " not in t}
        self.anchor_penalty = anchor_penalty
        self.anchor_min_len = anchor_min_len
        self.head_token_penalty = head_token_penalty

    @classmethod
    def build(
        cls,
        documents: Sequence[CorpusDocument],
        anchor_penalty: float | None = None,
        anchor_min_len: int | None = None,
        head_token_penalty: float | None = None,
    ) -> "LexicalIndex":
        if not documents:
            raise IndexBuildError("Cannot build a lexical index from an empty corpus")

        texts = [doc.text or doc.raw_text for doc in documents]
        char_space = _Space.build(texts, lambda t: char_ngrams(t, *CHAR_NGRAM_RANGE))
        word_space = _Space.build(texts, lambda t: word_ngrams(t, *WORD_NGRAM_RANGE))

        index = cls(
            doc_ids=[doc.id for doc in documents],
            char_space=char_space,
            word_space=word_space,
            tokens_per_doc=[frozenset(simple_tokenize(t)) for t in texts],
            anchor_penalty=settings.anchor_penalty if anchor_penalty is None else anchor_penalty,
            anchor_min_len=settings.anchor_min_len if anchor_min_len is None else anchor_min_len,
            head_token_penalty=(
                settings.head_token_penalty if head_token_penalty is None else head_token_penalty
            ),
        )
        logger.info(
            "lexical_index_built",
            documents=len(documents),
            char_terms=len(char_space.idf),
            word_terms=len(word_space.idf),
        )
        return index

    def __len__(self) -> int:
        return len(self.doc_ids)

    def idf(self, token: str) -> float | None:
        return self._token_idf.get(token)

    def anchor_tokens(self, query: str) -> list[str]:
        """Up to five rarest query tokens, the promoted domain term first."""
        tokens = [t for t in simple_tokenize(query) if len(t) >= self.anchor_min_len]
        tokens = list(dict.fromkeys(tokens))
        tokens.sort(key=lambda t: self._token_idf.get(t, 0.0), reverse=True)

        if PROMOTED_ANCHOR in tokens:
            tokens.remove(PROMOTED_ANCHOR)
            tokens.insert(0, PROMOTED_ANCHOR)

        return tokens[:MAX_ANCHORS]

    def head_token(self, query: str) -> str | None:
        for t in simple_tokenize(query):
            if len(t) >= self.anchor_min_len and not t.isdigit():
                return t
        return None

    def overlap_scores(self, anchors: list[str]) -> list[float]:
        if not anchors:
            return [0.0] * len(self)

        weights = {t: self._token_idf.get(t, 1.0) for t in anchors}
        total = sum(weights.values()) or 1.0
        return [
            sum(w for t, w in weights.items() if t in doc_tokens) / total
            for doc_tokens in self._tokens_per_doc
        ]

    def _has_head_prefix(self, head: str, doc_tokens: frozenset[str]) -> bool:
        for t in doc_tokens:
            if len(t) < self.anchor_min_len:
                continue
            if t in head or head in t or _common_prefix_len(head, t) >= self.anchor_min_len:
                return True
        return False

    def score_all(self, query: str) -> list[float]:
        """Final lexical score for every document, in insertion order."""
        q = strip_accents(query)
        q_tokens = simple_tokenize(q)
        if not q_tokens:
            return [0.0] * len(self)

        n_docs = len(self)
        sims_char = self._char.cosine_all(q, n_docs)
        sims_word = self._word.cosine_all(q, n_docs)
        anchors = self.anchor_tokens(q)
        overlap = self.overlap_scores(anchors)

        single_token = len(q_tokens) <= 1
        w_char, w_word, w_overlap = SINGLE_TOKEN_WEIGHTS if single_token else MULTI_TOKEN_WEIGHTS

        scores = [
            w_char * sc + w_word * sw + w_overlap * ov
            for sc, sw, ov in zip(sims_char, sims_word, overlap)
        ]

        if anchors and not single_token:
            keep = 1.0 - self.anchor_penalty
            for i, doc_tokens in enumerate(self._tokens_per_doc):
                if not any(a in doc_tokens for a in anchors):
                    scores[i] *= keep

        head = self.head_token(q)
        if head:
            if single_token:
                penalty = max(0.0, min(1.0, self.head_token_penalty * SINGLE_TOKEN_HEAD_PENALTY_FACTOR))
                for i, doc_tokens in enumerate(self._tokens_per_doc):
                    if not self._has_head_prefix(head, doc_tokens):
                        scores[i] *= 1.0 - penalty
            else:
                for i, doc_tokens in enumerate(self._tokens_per_doc):
                    if head not in doc_tokens:
                        scores[i] *= 1.0 - self.head_token_penalty

        return scores

    def search(self, query: str, top_k: int = 10, min_score: float = 0.0) -> list[LexicalHit]:
        """
        Top-k documents by lexical score.

        Only documents scoring above min_score are returned; ties keep corpus
        insertion order. An empty query yields no hits.
        """
        scores = self.score_all(query)
        # sorted() is stable: equal scores stay in insertion order
        ranked = sorted(range(len(scores)), key=lambda i: scores[i], reverse=True)
        hits = [
            LexicalHit(doc_index=i, doc_id=self.doc_ids[i], score=scores[i])
            for i in ranked
            if scores[i] > min_score
        ]
        return hits[:top_k]
