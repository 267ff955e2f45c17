"""
Pattern Rule Checker
Runs a set of pattern rules over text and reports errors in the standard rule format.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Sequence

from ..base_rule import BaseRule
from .analyzed_sentence import AnalyzedSentence, SentenceAnalyzer
from .exceptions import SentenceAnalysisIOError
from .pattern_rule import PatternRule
from .rule_loader import load_rules
from .rule_match import RuleMatch

logger = logging.getLogger(__name__)


class PatternRuleChecker(BaseRule):
    """
    Applies declarative pattern rules to each sentence of a text.

    Each rule's fast-reject check runs before full matching; it can be turned
    off to compare results with and without the shortcut.
    Rules are only read while checking, so one checker can serve several
    threads; the skip counter is updated under a lock.
    """

    def __init__(self, rules: Optional[Sequence[PatternRule]] = None,
                 enable_fast_reject: Optional[bool] = None, severity: Optional[str] = None):
        super().__init__()
        from config import Config

        settings = Config.get_pattern_rules_config()
        self.rules: List[PatternRule] = list(rules) if rules is not None else load_rules(settings['rules_file'])
        self.enable_fast_reject = settings['enable_fast_reject'] if enable_fast_reject is None else enable_fast_reject
        self.severity = severity or settings['default_severity']
        self.skipped_by_fast_reject = 0
        self._counter_lock = threading.Lock()

    def _get_rule_type(self) -> str:
        return 'pattern_rules'

    def check_sentence(self, sentence: AnalyzedSentence) -> List[RuleMatch]:
        """
        Match every rule against one sentence.

        Sentences failing with an I/O error for a rule are logged and skipped for
        that rule; any other failure propagates.
        """
        matches: List[RuleMatch] = []
        for rule in self.rules:
            if self.enable_fast_reject and rule.can_be_ignored_for(sentence):
                with self._counter_lock:
                    self.skipped_by_fast_reject += 1
                continue
            try:
                matches.extend(rule.match(sentence))
            except SentenceAnalysisIOError as e:
                logger.warning(f"Rule {rule.rule_id} skipped: {e}")
        return matches

    def analyze(self, text: str, sentences: List[str], nlp=None, context=None) -> List[Dict[str, Any]]:
        # Skip analysis for code blocks, listings, and literal blocks
        if self._is_code_block(context):
            return []
        if nlp is None:
            logger.debug("Pattern rules need a spaCy pipeline; nothing analyzed")
            return []

        errors = []
        for sentence in SentenceAnalyzer(nlp).analyze(text):
            for match in self.check_sentence(sentence):
                if self._is_excepted(match.flagged_text):
                    continue
                errors.append(self._create_error(
                    sentence=match.sentence,
                    sentence_index=match.sentence_index,
                    message=match.message,
                    suggestions=match.suggestions,
                    severity=self.severity,
                    rule_id=match.rule_id,
                    sub_id=match.sub_id,
                    short_message=match.short_message,
                    span=match.span,
                    flagged_text=match.flagged_text,
                ))
        return errors
