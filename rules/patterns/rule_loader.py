"""
YAML Rule Definitions

Loads pattern rules from YAML definition files and writes rules back to the
same format. A definition file looks like::

    language: en
    phrases:
      greeting:
        - [hello]
        - [good, morning]
    rules:
      - id: DOUBLE_THE
        description: Repeated article
        message: Remove the second <suggestion>\\1</suggestion>.
        pattern:
          - the
          - {reference: 1}
      - id: SAY_GREETING
        rules:
          - message: Say hello properly.
            pattern: [{phraseref: greeting}, there]
          - message: Use "Hi".
            regex: '\\bhey\\b'

A phrase with several alternatives expands into one rule per alternative, each
marked as a member of a disjunctive set.
"""

import itertools
import logging
import os
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

from .exceptions import RuleConfigurationError
from .pattern_token import UNBOUNDED, PatternToken
from .phrase_groups import compile_phrase_groups, group_offsets

logger = logging.getLogger(__name__)

RULE_KEYS = {
    'id', 'description', 'message', 'short_message', 'suggestions_out_msg', 'pattern',
    'regex', 'regex_mark', 'antipatterns', 'mark', 'rules',
}

TOKEN_KEYS = {
    'string', 'negation', 'regex', 'inflected', 'case_sensitive', 'min', 'max',
    'phrase', 'reference', 'phraseref',
}


def load_rules(path: Optional[str] = None, language: Optional[str] = None) -> List['PatternRule']:
    """
    Load all pattern rules from a YAML definition file.

    Args:
        path: Definition file; defaults to ``Config.PATTERN_RULES_FILE``
        language: Overrides the file's ``language`` key

    Returns:
        List of PatternRule objects, empty if the file does not exist
    """
    if path is None:
        from config import Config
        path = Config.PATTERN_RULES_FILE

    if not os.path.exists(path):
        logger.warning(f"Pattern rule file {path} not found. No pattern rules loaded.")
        return []

    with open(path, 'r', encoding='utf-8') as f:
        rules = load_rules_from_string(f.read(), language=language, source=path)
    logger.info(f"Loaded {len(rules)} pattern rules from {path}")
    return rules


def load_rules_from_string(text: str, language: Optional[str] = None,
                           source: str = "<string>") -> List['PatternRule']:
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        logger.error(f"Error parsing pattern rules in {source}: {e}")
        raise RuleConfigurationError(f"Malformed YAML in {source}") from e

    if not isinstance(data, dict):
        raise RuleConfigurationError(f"{source}: top level must be a mapping")

    return RuleDefinitionParser(data, language=language, source=source).parse()


class RuleDefinitionParser:
    """Turns one parsed YAML document into PatternRule objects."""

    def __init__(self, data: Dict[str, Any], language: Optional[str] = None, source: str = "<string>"):
        self.source = source
        self.language = language or data.get('language', 'en')
        self.rules_data = data.get('rules') or []
        phrases = data.get('phrases') or {}
        if not isinstance(phrases, dict):
            raise RuleConfigurationError(f"{source}: 'phrases' must be a mapping")
        self.phrases: Dict[str, List[List[Any]]] = phrases

    def parse(self) -> List['PatternRule']:
        rules: List['PatternRule'] = []
        for definition in self.rules_data:
            if not isinstance(definition, dict) or 'id' not in definition:
                raise RuleConfigurationError(f"{self.source}: every rule needs an 'id'")
            group = definition.get('rules')
            if group is None:
                rules.extend(self._build(definition, definition['id'], None))
                continue
            # Rule group: members inherit the group's keys and get numbered sub-ids.
            for number, member in enumerate(group, start=1):
                merged = {k: v for k, v in definition.items() if k != 'rules'}
                merged.update(member)
                rules.extend(self._build(merged, definition['id'], str(number)))
        return rules

    def _build(self, definition: Dict[str, Any], rule_id: str, sub_id: Optional[str]) -> List['PatternRule']:
        from .pattern_rule import PatternRule

        unknown = set(definition) - RULE_KEYS
        if unknown:
            raise RuleConfigurationError(f"{self.source}: rule {rule_id} has unknown keys {sorted(unknown)}")
        if 'message' not in definition:
            raise RuleConfigurationError(f"{self.source}: rule {rule_id} has no message")

        mark = definition.get('mark') or {}
        common = dict(
            description=definition.get('description', ''),
            message=definition['message'],
            short_message=definition.get('short_message', ''),
            suggestions_out_msg=definition.get('suggestions_out_msg', ''),
            sub_id=sub_id,
            antipatterns=[self._plain_tokens(ap, rule_id) for ap in definition.get('antipatterns') or []],
            start_position_correction=int(mark.get('from', 0)),
            end_position_correction=int(mark.get('to', 0)),
        )

        if 'regex' in definition and 'pattern' in definition:
            raise RuleConfigurationError(f"{self.source}: rule {rule_id} sets both 'pattern' and 'regex'")
        if 'regex' in definition:
            return [PatternRule(rule_id, self.language, None, regex=definition['regex'],
                                regex_mark=int(definition.get('regex_mark', 0)), **common)]

        pattern = definition.get('pattern')
        if pattern is None:
            logger.warning(f"{self.source}: rule {rule_id} defines neither a pattern nor a regex")
            return [PatternRule(rule_id, self.language, None, **common)]

        alternatives = self._expand(pattern, rule_id)
        disjunctive = len(alternatives) > 1
        return [
            PatternRule(rule_id, self.language, tokens, is_member_of_disjunctive_set=disjunctive, **common)
            for tokens in alternatives
        ]

    # === TOKEN EXPANSION ===

    def _expand(self, pattern: Sequence[Any], rule_id: str) -> List[List[PatternToken]]:
        """Expand phrase references into one flattened token list per combination of alternatives."""
        choices: List[List[List[Tuple[Dict[str, Any], str]]]] = []
        for element in pattern:
            element = self._as_mapping(element, rule_id)
            if 'phraseref' in element:
                name = element['phraseref']
                if name not in self.phrases:
                    raise RuleConfigurationError(f"{self.source}: rule {rule_id} refers to unknown phrase '{name}'")
                choices.append([
                    [(self._as_mapping(t, rule_id), name) for t in alternative]
                    for alternative in self.phrases[name]
                ])
            else:
                choices.append([[(element, element.get('phrase', ''))]])

        expanded = []
        for combination in itertools.product(*choices):
            flat = [(spec, phrase) for unit in combination for spec, phrase in unit]
            # Logical elements follow phrase names exactly as the rule will compile them.
            sizes, _ = compile_phrase_groups([PatternToken(phrase_name=phrase) for _, phrase in flat])
            offsets = group_offsets(sizes)
            expanded.append([self._token(spec, rule_id, phrase, offsets) for spec, phrase in flat])
        return expanded

    def _plain_tokens(self, elements: Sequence[Any], rule_id: str) -> List[PatternToken]:
        tokens = [self._as_mapping(e, rule_id) for e in elements]
        return [self._token(spec, rule_id, spec.get('phrase', ''), None) for spec in tokens]

    def _as_mapping(self, element: Any, rule_id: str) -> Dict[str, Any]:
        if isinstance(element, str):
            return {'string': element}
        if not isinstance(element, dict):
            raise RuleConfigurationError(f"{self.source}: rule {rule_id} has an invalid token {element!r}")
        unknown = set(element) - TOKEN_KEYS
        if unknown:
            raise RuleConfigurationError(f"{self.source}: rule {rule_id} token has unknown keys {sorted(unknown)}")
        return element

    def _token(self, spec: Dict[str, Any], rule_id: str, phrase: str,
               offsets: Optional[Sequence[int]]) -> PatternToken:
        reference = spec.get('reference')
        reference_index = None
        if reference is not None:
            # References count logical elements, 1-based; a phrase is one element.
            if offsets is None or not 1 <= int(reference) < len(offsets):
                raise RuleConfigurationError(f"{self.source}: rule {rule_id} has invalid reference {reference}")
            reference_index = offsets[int(reference) - 1]

        max_occurrence = spec.get('max', 1 if spec.get('min', 1) <= 1 else spec.get('min'))
        try:
            return PatternToken(
                string=str(spec.get('string', '')),
                negation=bool(spec.get('negation', False)),
                regex=bool(spec.get('regex', False)),
                inflected=bool(spec.get('inflected', False)),
                case_sensitive=bool(spec.get('case_sensitive', False)),
                min_occurrence=int(spec.get('min', 1)),
                max_occurrence=UNBOUNDED if max_occurrence in ('*', None) else int(max_occurrence),
                phrase_name=phrase,
                reference_index=reference_index,
            )
        except ValueError as e:
            raise RuleConfigurationError(f"{self.source}: rule {rule_id}: {e}") from e


class PatternRuleYamlCreator:
    """Writes a PatternRule back as a YAML rule definition."""

    def to_definition(self, rule) -> Dict[str, Any]:
        definition: Dict[str, Any] = {'id': rule.id}
        if rule.description:
            definition['description'] = rule.description
        definition['message'] = rule.message
        if rule.short_message:
            definition['short_message'] = rule.short_message
        if rule.suggestions_out_msg:
            definition['suggestions_out_msg'] = rule.suggestions_out_msg

        if rule.regex is not None:
            definition['regex'] = rule.regex.pattern
            if rule.pattern.mark:
                definition['regex_mark'] = rule.pattern.mark
        elif rule.pattern_tokens:
            offsets = group_offsets(rule.phrase_group_sizes)
            definition['pattern'] = [self._token(t, offsets) for t in rule.pattern_tokens]

        if rule.antipatterns:
            definition['antipatterns'] = [
                [self._token(t, None) for t in antipattern] for antipattern in rule.antipatterns.antipatterns
            ]
        if rule.start_position_correction or rule.end_position_correction:
            definition['mark'] = {'from': rule.start_position_correction, 'to': rule.end_position_correction}
        return definition

    def to_yaml(self, rule) -> str:
        document = {'language': rule.language, 'rules': [self.to_definition(rule)]}
        return yaml.safe_dump(document, sort_keys=False, allow_unicode=True)

    def _token(self, token: PatternToken, offsets: Optional[Sequence[int]]) -> Any:
        spec: Dict[str, Any] = {}
        if token.string:
            spec['string'] = token.string
        for key in ('negation', 'regex', 'inflected', 'case_sensitive'):
            if getattr(token, key):
                spec[key] = True
        if token.min_occurrence != 1:
            spec['min'] = token.min_occurrence
        if token.max_occurrence != 1:
            spec['max'] = '*' if token.max_occurrence == UNBOUNDED else token.max_occurrence
        if token.phrase_name:
            spec['phrase'] = token.phrase_name
        if token.is_reference_element and offsets is not None:
            spec['reference'] = max(i for i, start in enumerate(offsets[:-1]) if start <= token.reference_index) + 1
        if list(spec) == ['string']:
            return token.string
        return spec
