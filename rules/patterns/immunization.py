"""
Immunization of sentences before pattern matching.

An anti-pattern is a token sequence describing a correct usage that looks like
an error. Tokens covered by an anti-pattern match are immunized: no rule
match may include them.
"""

import logging
from typing import Callable, Sequence

from .analyzed_sentence import AnalyzedSentence
from .pattern_token import PatternToken
from .spacy_patterns import MatcherCache

logger = logging.getLogger(__name__)

# A transform applied to every sentence before it reaches a matching strategy.
Immunizer = Callable[[AnalyzedSentence], AnalyzedSentence]


class AntiPatternImmunizer:
    """Immunizes tokens matched by any of a rule's anti-patterns."""

    def __init__(self, antipatterns: Sequence[Sequence[PatternToken]]):
        self.antipatterns = tuple(tuple(antipattern) for antipattern in antipatterns if antipattern)
        self._cache = MatcherCache(
            "ANTIPATTERN",
            [[token.to_matcher_spec() for token in antipattern] for antipattern in self.antipatterns],
        )

    def __bool__(self) -> bool:
        return bool(self.antipatterns)

    def __call__(self, sentence: AnalyzedSentence) -> AnalyzedSentence:
        if not self.antipatterns:
            return sentence
        matcher = self._cache.get(sentence.doc.vocab)
        indices = set()
        for _, start, end in matcher(sentence.doc):
            indices.update(range(start, end))
        if not indices:
            return sentence
        logger.debug(f"Immunized tokens {sorted(indices)} in sentence: '{sentence.text}'")
        return sentence.with_immunized(indices)
