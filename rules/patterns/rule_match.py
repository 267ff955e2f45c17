"""
Rule Match
A single issue reported by a pattern rule for one sentence.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

SUGGESTION_TAG = re.compile(r"<suggestion>(.*?)</suggestion>", re.DOTALL)


def extract_suggestions(message: str) -> Tuple[str, List[str]]:
    """
    Split ``<suggestion>`` markup out of a rule message.

    Returns:
        Tuple of (display message with suggestions quoted, list of suggestions)
    """
    suggestions = [s.strip() for s in SUGGESTION_TAG.findall(message)]
    display = SUGGESTION_TAG.sub(lambda m: f"'{m.group(1).strip()}'", message)
    return display, suggestions


@dataclass(frozen=True)
class RuleMatch:
    """
    Attributes:
        span: Character offsets of the flagged text, relative to the sentence
        token_span: Token offsets of the flagged text, relative to the sentence
    """
    rule_id: str
    message: str
    sentence: str
    span: Tuple[int, int]
    token_span: Tuple[int, int]
    sub_id: Optional[str] = None
    short_message: str = ""
    suggestions: List[str] = field(default_factory=list)
    sentence_index: int = 0

    @property
    def flagged_text(self) -> str:
        return self.sentence[self.span[0]:self.span[1]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rule_id': self.rule_id,
            'sub_id': self.sub_id,
            'message': self.message,
            'short_message': self.short_message,
            'suggestions': list(self.suggestions),
            'sentence': self.sentence,
            'sentence_index': self.sentence_index,
            'span': self.span,
            'flagged_text': self.flagged_text,
        }
