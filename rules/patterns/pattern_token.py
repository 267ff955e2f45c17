"""
Pattern Token
One constraint in a pattern rule: a literal word, a lemma, or a regular
expression, with negation, occurrence bounds and optional phrase membership.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

# Maximum occurrence value meaning "no upper bound".
UNBOUNDED = -1


@dataclass(frozen=True)
class PatternToken:
    """
    A single element of a pattern rule.

    Attributes:
        string: Literal word, lemma or regular expression. Empty matches any token; a negated token needs one.
        negation: Match any token that does NOT satisfy the constraint.
        regex: Treat ``string`` as a regular expression.
        inflected: Compare against the lemma instead of the surface form.
        case_sensitive: Compare case-sensitively.
        min_occurrence: Minimum number of consecutive tokens (0 makes it optional).
        max_occurrence: Maximum number of consecutive tokens, ``UNBOUNDED`` for no limit.
        phrase_name: Name of the phrase this token was expanded from, empty if none.
        reference_index: Flattened index of an earlier token whose matched text this
            token must repeat (a back-reference), ``None`` if not a reference.
    """
    string: str = ""
    negation: bool = False
    regex: bool = False
    inflected: bool = False
    case_sensitive: bool = False
    min_occurrence: int = 1
    max_occurrence: int = 1
    phrase_name: str = ""
    reference_index: Optional[int] = None

    def __post_init__(self):
        if self.min_occurrence < 0:
            raise ValueError(f"min_occurrence must be >= 0, got {self.min_occurrence}")
        if self.max_occurrence != UNBOUNDED and self.max_occurrence < max(self.min_occurrence, 1):
            raise ValueError(
                f"max_occurrence {self.max_occurrence} is smaller than min_occurrence {self.min_occurrence}"
            )
        if self.negation and not self.string and not self.is_reference_element:
            raise ValueError("a negated token needs a string or a reference")

    @property
    def is_part_of_phrase(self) -> bool:
        return bool(self.phrase_name)

    @property
    def is_reference_element(self) -> bool:
        return self.reference_index is not None

    def __str__(self) -> str:
        if self.is_reference_element:
            text = f"\\{self.reference_index + 1}"
        else:
            text = self.string
        if self.inflected:
            text = f"{text}/INFL"
        if self.regex:
            text = f"{text}/RE"
        if self.negation:
            text = f"!{text}"
        if (self.min_occurrence, self.max_occurrence) != (1, 1):
            upper = "*" if self.max_occurrence == UNBOUNDED else str(self.max_occurrence)
            text = f"{text}{{{self.min_occurrence},{upper}}}"
        return text

    # === spaCy MATCHER SUPPORT ===

    def to_matcher_spec(self) -> Dict[str, Any]:
        """
        Translate this token into a spaCy ``Matcher`` token pattern.

        Back-references become wildcards here; the token matcher checks them
        against the aligned tokens after matching.
        """
        spec: Dict[str, Any] = {}
        if self.string and not self.is_reference_element:
            spec = self._constraint_spec()
        op = self._occurrence_op()
        if op:
            spec['OP'] = op
        return spec

    def _constraint_spec(self) -> Dict[str, Any]:
        attr = 'LEMMA' if self.inflected else 'TEXT'
        flags = '' if self.case_sensitive else '(?i)'

        if self.regex:
            body = self.string
        elif not self.inflected and not self.case_sensitive:
            # Plain lowercase comparison is cheaper than a regex.
            key = 'NOT_IN' if self.negation else 'IN'
            return {'LOWER': {key: [self.string.lower()]}}
        else:
            body = re.escape(self.string)

        if self.negation:
            return {attr: {'REGEX': f"{flags}^(?!(?:{body})$)"}}
        return {attr: {'REGEX': f"{flags}^(?:{body})$"}}

    def _occurrence_op(self) -> Optional[str]:
        low, high = self.min_occurrence, self.max_occurrence
        if (low, high) == (1, 1):
            return None
        if (low, high) == (0, 1):
            return '?'
        if (low, high) == (0, UNBOUNDED):
            return '*'
        if (low, high) == (1, UNBOUNDED):
            return '+'
        if high == UNBOUNDED:
            return f"{{{low},}}"
        if low == high:
            return f"{{{low}}}"
        return f"{{{low},{high}}}"
