"""
Pattern Rules

Declarative token and regex rules for style and grammar checking:

1. PatternRule - immutable rule record with fast-reject sets and phrase-group accounting
2. Matchers - spaCy token-pattern and regex matching strategies
3. Rule loader - YAML rule definitions import/export
4. PatternRuleChecker - runs a rule set in the standard rule ``analyze()`` contract

Usage:
    from rules.patterns import PatternRule, PatternToken, AnalyzedSentence

    rule = PatternRule("THE_THE", "en", [PatternToken("the"), PatternToken("the")],
                       "Repeated article", "Remove one 'the'.", "")
    if not rule.can_be_ignored_for(sentence):
        matches = rule.match(sentence)
"""

from .analyzed_sentence import AnalyzedSentence, SentenceAnalyzer
from .exceptions import (
    PatternRuleError,
    RuleConfigurationError,
    SentenceAnalysisIOError,
    SentenceMatchError,
)
from .immunization import AntiPatternImmunizer, Immunizer
from .matchers import RegexPatternMatcher, RuleMatcher, TokenPatternMatcher
from .pattern_rule import PatternRule, PatternRuleId, RegexPattern, TokenPattern
from .pattern_rule_checker import PatternRuleChecker
from .pattern_token import UNBOUNDED, PatternToken
from .rule_loader import PatternRuleYamlCreator, load_rules, load_rules_from_string
from .rule_match import RuleMatch

__all__ = [
    'AnalyzedSentence',
    'SentenceAnalyzer',
    'PatternRuleError',
    'RuleConfigurationError',
    'SentenceAnalysisIOError',
    'SentenceMatchError',
    'AntiPatternImmunizer',
    'Immunizer',
    'RuleMatcher',
    'TokenPatternMatcher',
    'RegexPatternMatcher',
    'PatternRule',
    'PatternRuleId',
    'TokenPattern',
    'RegexPattern',
    'PatternRuleChecker',
    'PatternToken',
    'UNBOUNDED',
    'PatternRuleYamlCreator',
    'load_rules',
    'load_rules_from_string',
    'RuleMatch',
]
