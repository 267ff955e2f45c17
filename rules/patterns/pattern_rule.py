"""
Pattern Rule
A rule that describes a language error as a pattern of words, lemmas or a
regular expression, together with the messages shown when it matches.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Pattern, Sequence, Tuple, Union

from .analyzed_sentence import AnalyzedSentence
from .exceptions import RuleConfigurationError, SentenceAnalysisIOError, SentenceMatchError
from .fast_reject import build_fast_reject_set, sentence_can_be_ignored
from .immunization import AntiPatternImmunizer, Immunizer
from .matchers import RegexPatternMatcher, RuleMatcher, TokenPatternMatcher
from .pattern_token import PatternToken
from .phrase_groups import compile_phrase_groups
from .rule_match import RuleMatch
from .spacy_patterns import MatcherCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatternRuleId:
    id: str
    sub_id: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.id}[{self.sub_id}]" if self.sub_id else self.id


@dataclass(frozen=True)
class TokenPattern:
    """Pattern variant: an ordered sequence of pattern tokens."""
    tokens: Tuple[PatternToken, ...]
    matchers: MatcherCache = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        for index, token in enumerate(self.tokens):
            if token.is_reference_element and not 0 <= token.reference_index < index:
                raise RuleConfigurationError(
                    f"Token {index} refers to token {token.reference_index}, "
                    f"which does not precede it"
                )
        object.__setattr__(self, 'matchers', MatcherCache(
            "PATTERN", [[token.to_matcher_spec() for token in self.tokens]]
        ))


@dataclass(frozen=True)
class RegexPattern:
    """Pattern variant: a compiled regular expression and the group to flag."""
    regex: Pattern
    mark: int = 0

    def __post_init__(self):
        if not 0 <= self.mark <= self.regex.groups:
            raise RuleConfigurationError(
                f"Regex mark group {self.mark} does not exist in /{self.regex.pattern}/"
            )


PatternSpec = Union[TokenPattern, RegexPattern]


def _require(value: Optional[str], name: str) -> str:
    if value is None:
        raise ValueError(f"{name} must not be None")
    return value


class PatternRule:
    """
    An immutable pattern rule.

    Phrase-group sizes and fast-reject sets are derived once from the token
    sequence at construction. The only mutable state is the disjunctive-set
    membership flag, which exists for rule testing and never affects matching.
    """

    token_matcher_class = TokenPatternMatcher
    regex_matcher_class = RegexPatternMatcher

    def __init__(self, rule_id: str, language: str,
                 pattern_tokens: Optional[Sequence[PatternToken]], description: str,
                 message: str, short_message: str, suggestions_out_msg: str = "",
                 is_member_of_disjunctive_set: bool = False, *,
                 sub_id: Optional[str] = None,
                 regex: Union[str, Pattern, None] = None,
                 regex_mark: int = 0,
                 antipatterns: Sequence[Sequence[PatternToken]] = (),
                 start_position_correction: int = 0,
                 end_position_correction: int = 0,
                 immunizer: Optional[Immunizer] = None):
        """
        Args:
            rule_id: Stable id of the rule, used in configuration
            language: Language code the rule applies to
            pattern_tokens: Token sequence, or None for a regex or pattern-less rule
            description: Name of the rule shown to users
            message: Message shown for a match; may hold ``<suggestion>`` tags and ``\\N`` references
            short_message: Compact message, e.g. for a context menu
            suggestions_out_msg: Message whose suggestions are appended to the match
            is_member_of_disjunctive_set: Rule is one alternative of an expanded phrase reference
            regex: Regular expression variant, mutually exclusive with ``pattern_tokens``
            regex_mark: Group of ``regex`` that is flagged
            antipatterns: Token sequences whose matches immunize tokens
            start_position_correction: Logical elements dropped from the start of the flagged span
            end_position_correction: Logical elements dropped from the end of the flagged span
            immunizer: Transform applied to the sentence before matching; defaults to the anti-patterns
        """
        self.id = rule_id
        self.sub_id = sub_id
        self.language = language
        self.description = description
        self.message = _require(message, "message")
        self.short_message = _require(short_message, "short_message")
        self.suggestions_out_msg = _require(suggestions_out_msg, "suggestions_out_msg")
        self.start_position_correction = start_position_correction
        self.end_position_correction = end_position_correction
        self._is_member_of_disjunctive_set = is_member_of_disjunctive_set

        if pattern_tokens is not None and regex is not None:
            raise RuleConfigurationError(f"Rule {rule_id} sets both pattern tokens and a regex")

        self.pattern: Optional[PatternSpec] = None
        if pattern_tokens is not None:
            self.pattern = TokenPattern(tuple(pattern_tokens))
        elif regex is not None:
            try:
                compiled = regex if isinstance(regex, re.Pattern) else re.compile(regex)
            except re.error as e:
                raise RuleConfigurationError(f"Rule {rule_id} has an invalid regex: {e}") from e
            self.pattern = RegexPattern(compiled, regex_mark)

        tokens = self.pattern_tokens
        self.phrase_group_sizes, self.uses_grouping = compile_phrase_groups(tokens)
        self.simple_rule_tokens: FrozenSet[str] = build_fast_reject_set(tokens, inflected=False)
        self.inflected_rule_tokens: FrozenSet[str] = build_fast_reject_set(tokens, inflected=True)

        self.antipatterns = AntiPatternImmunizer(antipatterns)
        self.immunizer: Immunizer = immunizer if immunizer is not None else self.antipatterns

    @classmethod
    def from_regex(cls, rule_id: str, language: str, regex: Union[str, Pattern], description: str,
                   message: str, short_message: str = "", suggestions_out_msg: str = "",
                   mark: int = 0, **kwargs) -> 'PatternRule':
        return cls(rule_id, language, None, description, message, short_message,
                   suggestions_out_msg, regex=regex, regex_mark=mark, **kwargs)

    @property
    def rule_id(self) -> PatternRuleId:
        return PatternRuleId(self.id, self.sub_id)

    @property
    def pattern_tokens(self) -> Tuple[PatternToken, ...]:
        if isinstance(self.pattern, TokenPattern):
            return self.pattern.tokens
        return ()

    @property
    def regex(self) -> Optional[Pattern]:
        if isinstance(self.pattern, RegexPattern):
            return self.pattern.regex
        return None

    # === DISJUNCTIVE SET MEMBERSHIP (rule testing only) ===

    @property
    def is_member_of_disjunctive_set(self) -> bool:
        """Whether the rule may legitimately not match, as one alternative of an expanded phrase reference."""
        return self._is_member_of_disjunctive_set

    def clear_disjunctive_membership(self) -> None:
        self._is_member_of_disjunctive_set = False

    # === MATCHING ===

    def can_be_ignored_for(self, sentence: AnalyzedSentence) -> bool:
        """
        Fast check whether this rule can never match the sentence.

        Only a performance shortcut: a False result does not mean the rule matches.
        """
        return sentence_can_be_ignored(self.simple_rule_tokens, self.inflected_rule_tokens,
                                       sentence.token_set, sentence.lemma_set)

    def _create_matcher(self) -> RuleMatcher:
        if isinstance(self.pattern, TokenPattern):
            return self.token_matcher_class(self, self.uses_grouping)
        if isinstance(self.pattern, RegexPattern):
            return self.regex_matcher_class(self)
        logger.error(f"Rule {self.rule_id} has no pattern to match")
        raise RuleConfigurationError(f"Neither pattern tokens nor regex set for rule {self.id}")

    def match(self, sentence: AnalyzedSentence) -> List[RuleMatch]:
        """
        Find all matches of this rule in an analyzed sentence.

        Raises:
            RuleConfigurationError: The rule has neither tokens nor a regex
            SentenceAnalysisIOError: The matching strategy hit an I/O failure
            SentenceMatchError: The matching strategy failed for any other reason
        """
        matcher = self._create_matcher()
        try:
            return matcher.match(self.immunizer(sentence))
        except OSError as e:
            raise SentenceAnalysisIOError(sentence.text) from e
        except Exception as e:
            raise SentenceMatchError(sentence.text, type(e).__name__) from e

    # === EXPORT ===

    def to_pattern_string(self) -> str:
        """Return the pattern as a string, joining each token's string form."""
        return ", ".join(str(token) for token in self.pattern_tokens)

    def to_yaml(self) -> str:
        """Return the rule as a YAML rule definition."""
        from .rule_loader import PatternRuleYamlCreator
        return PatternRuleYamlCreator().to_yaml(self)

    def __repr__(self) -> str:
        return f"PatternRule({self.rule_id}, {self.language!r})"
