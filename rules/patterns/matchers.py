"""
Matching strategies for pattern rules.

``TokenPatternMatcher`` runs a rule's token sequence through a spaCy Matcher;
``RegexPatternMatcher`` runs a rule's regular expression over the sentence
text. Both take the rule they serve and return ``RuleMatch`` objects.
"""

import logging
import re
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from .analyzed_sentence import AnalyzedSentence
from .phrase_groups import group_offsets
from .rule_match import RuleMatch, extract_suggestions

logger = logging.getLogger(__name__)

MESSAGE_REFERENCE = re.compile(r"\\(\d+)")


class RuleMatcher(ABC):
    """A strategy that finds the matches of one rule in one sentence."""

    def __init__(self, rule):
        self.rule = rule

    @abstractmethod
    def match(self, sentence: AnalyzedSentence) -> List[RuleMatch]:
        pass

    def _build_match(self, sentence: AnalyzedSentence, char_span: Tuple[int, int],
                     token_span: Tuple[int, int], reference) -> RuleMatch:
        """Format the rule's messages for one match; ``reference`` maps a 1-based index to text."""
        def expand(template: str) -> str:
            return MESSAGE_REFERENCE.sub(lambda m: reference(int(m.group(1))), template)

        message, suggestions = extract_suggestions(expand(self.rule.message))
        short_message, _ = extract_suggestions(expand(self.rule.short_message))
        if self.rule.suggestions_out_msg:
            _, extra = extract_suggestions(expand(self.rule.suggestions_out_msg))
            suggestions.extend(s for s in extra if s not in suggestions)

        return RuleMatch(
            rule_id=self.rule.id,
            sub_id=self.rule.sub_id,
            message=message,
            short_message=short_message,
            suggestions=suggestions,
            sentence=sentence.text,
            sentence_index=sentence.index,
            span=char_span,
            token_span=token_span,
        )


class TokenPatternMatcher(RuleMatcher):
    """
    Matches a token pattern with spaCy's ``Matcher``.

    Logical elements (a phrase counts as one) drive the mark corrections and
    ``\\N`` message references. With ``uses_grouping`` False every element is a
    single token and the group offsets are never consulted.
    """

    def __init__(self, rule, uses_grouping: bool):
        super().__init__(rule)
        self.uses_grouping = uses_grouping
        self.tokens = rule.pattern.tokens
        if uses_grouping:
            self._offsets = group_offsets(rule.phrase_group_sizes)
        else:
            self._offsets = None

    def _unit_bounds(self, unit: int) -> Tuple[int, int]:
        """Flattened pattern token range ``[start, end)`` of a logical element."""
        if self._offsets is None:
            return unit, unit + 1
        return self._offsets[unit], self._offsets[unit + 1]

    def _unit_count(self) -> int:
        if self._offsets is None:
            return len(self.tokens)
        return len(self._offsets) - 1

    def match(self, sentence: AnalyzedSentence) -> List[RuleMatch]:
        if not self.tokens:
            return []
        doc = sentence.doc
        matcher = self.rule.pattern.matchers.get(doc.vocab)

        candidates = []
        for _, start, end, alignments in matcher(doc, with_alignments=True):
            aligned: Dict[int, List[int]] = defaultdict(list)
            for offset, pattern_index in enumerate(alignments):
                aligned[pattern_index].append(start + offset)
            if end <= start or not self._references_hold(doc, aligned):
                continue
            # Immunized tokens cannot take part in a match, so they never win an overlap.
            if sentence.is_immunized(*self._marked_tokens(aligned, start, end)):
                logger.debug(f"Match of rule {self.rule.id} on immunized tokens skipped")
                continue
            candidates.append((start, end, aligned))

        results: List[RuleMatch] = []
        for start, end, aligned in self._longest_first(candidates):
            token_start, token_end = self._marked_tokens(aligned, start, end)
            char_span = (doc[token_start].idx, doc[token_end - 1].idx + len(doc[token_end - 1]))
            results.append(self._build_match(
                sentence, char_span, (token_start, token_end),
                lambda n: self._unit_text(doc, aligned, n - 1),
            ))
        return results

    @staticmethod
    def _longest_first(candidates):
        """Drop overlapping candidates, preferring longer then earlier ones; result is in text order."""
        taken = set()
        kept = []
        for start, end, aligned in sorted(candidates, key=lambda c: (c[0] - c[1], c[0])):
            if any(i in taken for i in range(start, end)):
                continue
            taken.update(range(start, end))
            kept.append((start, end, aligned))
        return sorted(kept, key=lambda c: c[0])

    def _references_hold(self, doc, aligned: Dict[int, List[int]]) -> bool:
        for index, token in enumerate(self.tokens):
            if not token.is_reference_element or index not in aligned:
                continue
            own = self._text(doc, aligned[index], token.case_sensitive)
            target = self._text(doc, aligned.get(token.reference_index, []), token.case_sensitive)
            if (own == target) == token.negation:
                return False
        return True

    def _marked_tokens(self, aligned: Dict[int, List[int]], start: int, end: int) -> Tuple[int, int]:
        units = self._unit_count()
        first_unit = self.rule.start_position_correction
        last_unit = units - self.rule.end_position_correction
        if first_unit >= last_unit:
            return start, end
        flat_from = self._unit_bounds(first_unit)[0]
        flat_to = self._unit_bounds(last_unit - 1)[1]
        positions = [p for index in range(flat_from, flat_to) for p in aligned.get(index, [])]
        if not positions:
            return start, end
        return min(positions), max(positions) + 1

    def _unit_text(self, doc, aligned: Dict[int, List[int]], unit: int) -> str:
        if unit < 0 or unit >= self._unit_count():
            return ""
        flat_from, flat_to = self._unit_bounds(unit)
        positions = [p for index in range(flat_from, flat_to) for p in aligned.get(index, [])]
        return " ".join(doc[p].text for p in positions)

    @staticmethod
    def _text(doc, positions: Sequence[int], case_sensitive: bool) -> str:
        text = " ".join(doc[p].text for p in positions)
        return text if case_sensitive else text.lower()


class RegexPatternMatcher(RuleMatcher):
    """Matches a regular expression over the raw sentence text."""

    def match(self, sentence: AnalyzedSentence) -> List[RuleMatch]:
        pattern = self.rule.pattern
        results: List[RuleMatch] = []

        for found in pattern.regex.finditer(sentence.text):
            start, end = found.span(pattern.mark)
            if start < 0 or start == end:
                continue
            token_span = self._token_span(sentence, start, end)
            if token_span and sentence.is_immunized(*token_span):
                logger.debug(f"Match of rule {self.rule.id} on immunized tokens skipped")
                continue
            results.append(self._build_match(
                sentence, (start, end), token_span or (0, 0),
                lambda n, found=found: self._group_text(found, n),
            ))
        return results

    @staticmethod
    def _token_span(sentence: AnalyzedSentence, start: int, end: int) -> Optional[Tuple[int, int]]:
        span = sentence.doc.char_span(start, end, alignment_mode="expand")
        if span is None:
            return None
        return span.start, span.end

    @staticmethod
    def _group_text(found: re.Match, group: int) -> str:
        if group > (found.re.groups or 0):
            return ""
        return found.group(group) or ""
