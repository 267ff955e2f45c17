"""
Per-vocabulary cache of compiled spaCy Matchers.

Token specs are fixed when a rule is built, but a ``Matcher`` is bound to a
``Vocab`` and can only be compiled once a sentence arrives.
"""

import threading
from collections import OrderedDict
from typing import Any, Dict, List, Sequence

from spacy.matcher import Matcher

TokenSpec = Dict[str, Any]

# Pipelines whose compiled matchers are kept per rule; older ones are evicted.
MAX_CACHED_VOCABS = 4


class MatcherCache:
    """Thread-safe lazy ``Matcher`` per vocab for a fixed set of patterns."""

    def __init__(self, key: str, patterns: Sequence[List[TokenSpec]], max_vocabs: int = MAX_CACHED_VOCABS):
        self.key = key
        self.patterns = [list(p) for p in patterns if p]
        self.max_vocabs = max_vocabs
        # Keyed by id(vocab); a cached Matcher holds its vocab, so the id stays valid while cached.
        self._matchers: 'OrderedDict[int, Matcher]' = OrderedDict()
        self._lock = threading.Lock()

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def __len__(self) -> int:
        return len(self._matchers)

    def get(self, vocab) -> Matcher:
        with self._lock:
            matcher = self._matchers.get(id(vocab))
            if matcher is not None:
                self._matchers.move_to_end(id(vocab))
                return matcher
            matcher = Matcher(vocab)
            matcher.add(self.key, self.patterns)
            self._matchers[id(vocab)] = matcher
            while len(self._matchers) > self.max_vocabs:
                self._matchers.popitem(last=False)
        return matcher
