"""
Unit tests for PatternRuleChecker.

Uses a blank English pipeline with a sentencizer, so only surface-form rules
can match; lemma-based rules are covered by the matcher tests.
"""

import logging
import textwrap
from concurrent.futures import ThreadPoolExecutor

import pytest
import spacy

from rules.patterns import (
    AnalyzedSentence,
    PatternRule,
    PatternRuleChecker,
    PatternToken,
    RuleMatcher,
    load_rules_from_string,
)

RULES = textwrap.dedent("""
    rules:
      - id: PLEASE
        description: Unneeded please
        message: Remove <suggestion>please</suggestion> from instructions.
        pattern:
          - please
          - {string: '(click|select)', regex: true}
        mark: {from: 0, to: 1}
      - id: IN_ORDER_TO
        message: Use <suggestion>to</suggestion>.
        pattern: [in, order, to]
      - id: PRODUCT_NAME
        message: Check the product name.
        pattern: [openshift]
""")


class BrokenDiskMatcher(RuleMatcher):

    def __init__(self, rule, uses_grouping=False):
        super().__init__(rule)

    def match(self, sentence):
        raise OSError("disk unavailable")


class BrokenDiskRule(PatternRule):
    token_matcher_class = BrokenDiskMatcher


@pytest.fixture(scope="module")
def nlp():
    pipeline = spacy.blank("en")
    pipeline.add_pipe("sentencizer")
    return pipeline


@pytest.fixture
def rules():
    return load_rules_from_string(RULES)


@pytest.mark.unit
class TestPatternRuleChecker:

    def test_reports_errors_in_standard_format(self, nlp, rules):
        checker = PatternRuleChecker(rules)
        text = "It works. Please click Save."

        errors = checker.analyze(text, [], nlp=nlp)

        assert len(errors) == 1
        error = errors[0]
        assert error['type'] == 'pattern_rules'
        assert error['rule_id'] == 'PLEASE'
        assert error['message'] == "Remove 'please' from instructions."
        assert error['suggestions'] == ['please']
        assert error['sentence'] == "Please click Save."
        assert error['sentence_index'] == 1
        assert error['flagged_text'] == "Please"
        assert error['span'] == [0, 6]
        assert error['severity'] == 'medium'

    def test_fast_reject_skips_rules_without_changing_results(self, nlp, rules):
        text = "Please click Save."
        with_filter = PatternRuleChecker(rules, enable_fast_reject=True)
        without_filter = PatternRuleChecker(rules, enable_fast_reject=False)

        assert with_filter.analyze(text, [], nlp=nlp) == without_filter.analyze(text, [], nlp=nlp)
        assert with_filter.skipped_by_fast_reject == 2
        assert without_filter.skipped_by_fast_reject == 0

    def test_skip_count_is_exact_across_threads(self, nlp, rules):
        checker = PatternRuleChecker(rules, enable_fast_reject=True)
        sentence = AnalyzedSentence(nlp("Please click Save."))

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: checker.check_sentence(sentence), range(200)))

        assert checker.skipped_by_fast_reject == 400
        assert all(len(matches) == 1 for matches in results)

    def test_excepted_terms_are_not_reported(self, nlp, rules):
        checker = PatternRuleChecker(rules)

        assert checker.analyze("Install OpenShift now.", [], nlp=nlp) == []

    def test_code_blocks_are_skipped(self, nlp, rules):
        checker = PatternRuleChecker(rules)

        assert checker.analyze("Please click Save.", [], nlp=nlp, context={'block_type': 'listing'}) == []

    def test_without_pipeline_nothing_is_analyzed(self, rules):
        assert PatternRuleChecker(rules).analyze("Please click Save.", []) == []

    def test_severity_override(self, nlp, rules):
        checker = PatternRuleChecker(rules, severity='high')

        errors = checker.analyze("We did it in order to win.", [], nlp=nlp)

        assert [e['severity'] for e in errors] == ['high']
        assert errors[0]['flagged_text'] == "in order to"

    def test_io_failures_are_logged_and_skipped(self, nlp, caplog):
        broken = BrokenDiskRule("BROKEN", "en", [PatternToken("save")], "d", "m", "")
        working = PatternRule("WORKING", "en", [PatternToken("save")], "d", "Found save.", "")
        checker = PatternRuleChecker([broken, working])

        with caplog.at_level(logging.WARNING):
            errors = checker.analyze("Click save.", [], nlp=nlp)

        assert [e['rule_id'] for e in errors] == ['WORKING']
        assert "BROKEN" in caplog.text
        assert "Error analyzing sentence: 'Click save.'" in caplog.text
