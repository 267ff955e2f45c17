"""
Analyzed Sentence
Read-only view of one sentence as produced by a spaCy pipeline, exposing the
vocabularies pattern rules need for fast rejection.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import FrozenSet, Iterable, List, Optional, Union

from spacy.tokens import Doc, Span

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyzedSentence:
    """
    A single sentence with its spaCy analysis.

    Attributes:
        doc: spaCy Doc holding only this sentence
        index: Position of the sentence in its source text
        immunized: Token indices that must not be part of any reported match
    """
    doc: Doc
    index: int = 0
    immunized: FrozenSet[int] = frozenset()
    token_set: FrozenSet[str] = field(init=False, repr=False, compare=False)
    lemma_set: FrozenSet[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        # Frozen dataclass: derived sets are assigned once here.
        object.__setattr__(self, 'token_set', frozenset(token.lower_ for token in self.doc))
        object.__setattr__(self, 'lemma_set', frozenset(
            token.lemma_.lower() for token in self.doc if token.lemma_
        ))

    @classmethod
    def from_span(cls, span: Union[Doc, Span], index: int = 0) -> 'AnalyzedSentence':
        doc = span.as_doc() if isinstance(span, Span) else span
        return cls(doc=doc, index=index)

    @property
    def text(self) -> str:
        # Trailing whitespace belongs between sentences; offsets into the text are unaffected.
        return self.doc.text.rstrip()

    def with_immunized(self, indices: Iterable[int]) -> 'AnalyzedSentence':
        """Return a copy with the given token indices immunized in addition to existing ones."""
        return replace(self, immunized=self.immunized | frozenset(indices))

    def is_immunized(self, start: int, end: int) -> bool:
        """True if any token in ``[start, end)`` is immunized."""
        return any(i in self.immunized for i in range(start, end))

    def __str__(self) -> str:
        return self.text


class SentenceAnalyzer:
    """Splits text into ``AnalyzedSentence`` objects using a spaCy pipeline."""

    def __init__(self, nlp=None, model_name: Optional[str] = None):
        if nlp is None:
            import spacy
            from config import Config

            model_name = model_name or Config.SPACY_MODEL
            logger.info(f"Loading spaCy model '{model_name}' for sentence analysis")
            nlp = spacy.load(model_name)
        self.nlp = nlp

    def analyze(self, text: str) -> List[AnalyzedSentence]:
        doc = self.nlp(text)
        if not doc.has_annotation("SENT_START"):
            # Pipelines without a parser or sentencizer yield the whole text as one sentence.
            return [AnalyzedSentence.from_span(doc, 0)]
        return [AnalyzedSentence.from_span(sent, i) for i, sent in enumerate(doc.sents)]
