"""
Pattern Rule Exceptions
Error taxonomy shared by pattern rule construction, loading and matching.
"""

from typing import Optional


class PatternRuleError(Exception):
    """Base class for all pattern rule errors."""


class RuleConfigurationError(PatternRuleError):
    """
    A rule definition is unusable: no pattern at dispatch time, conflicting
    pattern variants, or a malformed definition file. Never recoverable.
    """


class SentenceAnalysisIOError(PatternRuleError, OSError):
    """
    An I/O failure while matching a sentence. Callers may retry or skip the
    sentence; the original error is chained as ``__cause__``.
    """

    def __init__(self, sentence_text: str):
        super().__init__(f"Error analyzing sentence: '{sentence_text}'")
        self.sentence_text = sentence_text


class SentenceMatchError(PatternRuleError, RuntimeError):
    """
    Any other failure from a matching strategy. Not recoverable, but the
    class name of the original failure is kept in ``original_type``.
    """

    def __init__(self, sentence_text: str, original_type: Optional[str] = None):
        super().__init__(f"Error analyzing sentence: '{sentence_text}'")
        self.sentence_text = sentence_text
        self.original_type = original_type
