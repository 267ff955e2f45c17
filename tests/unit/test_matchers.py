"""
Unit tests for the token-pattern and regex matching strategies.

Sentences are built by hand on a blank spaCy pipeline so lemmas are explicit
and no statistical model is needed.
"""

import pytest
import spacy
from spacy.tokens import Doc

from rules.patterns import AnalyzedSentence, PatternRule, PatternToken, UNBOUNDED
from rules.patterns.spacy_patterns import MatcherCache

nlp = spacy.blank("en")


def make_sentence(words, lemmas=None, spaces=None):
    return AnalyzedSentence(Doc(nlp.vocab, words=words, spaces=spaces, lemmas=lemmas))


def make_rule(tokens, message="Check this.", **kwargs):
    return PatternRule("TEST_RULE", "en", tokens, "Test rule", message, "", **kwargs)


def flagged(matches):
    return [m.flagged_text for m in matches]


@pytest.mark.unit
class TestTokenPatternMatcher:

    def test_literal_tokens_match_case_insensitively(self):
        rule = make_rule([PatternToken("the"), PatternToken("quick")])

        matches = rule.match(make_sentence(["The", "quick", "fox"]))

        assert flagged(matches) == ["The quick"]
        assert matches[0].span == (0, 9)
        assert matches[0].token_span == (0, 2)

    def test_case_sensitive_token(self):
        rule = make_rule([PatternToken("Linux", case_sensitive=True)])

        assert flagged(rule.match(make_sentence(["Linux", "and", "linux"]))) == ["Linux"]

    def test_inflected_token_matches_lemma(self):
        rule = make_rule([PatternToken("utilize", inflected=True)])
        sentence = make_sentence(["We", "utilized", "it"], lemmas=["we", "utilize", "it"])

        assert flagged(rule.match(sentence)) == ["utilized"]

    def test_regex_token(self):
        rule = make_rule([PatternToken("colou?r", regex=True)])

        assert flagged(rule.match(make_sentence(["Pick", "a", "colour"]))) == ["colour"]

    def test_negated_token(self):
        rule = make_rule([PatternToken("an"), PatternToken("hour", negation=True)])

        assert flagged(rule.match(make_sentence(["an", "apple"]))) == ["an apple"]
        assert rule.match(make_sentence(["an", "hour"])) == []

    def test_optional_token_prefers_longest_match(self):
        rule = make_rule([PatternToken("very", min_occurrence=0), PatternToken("unique")])

        assert flagged(rule.match(make_sentence(["a", "very", "unique", "idea"]))) == ["very unique"]
        assert flagged(rule.match(make_sentence(["a", "unique", "idea"]))) == ["unique"]

    def test_repeated_token(self):
        rule = make_rule([PatternToken("very", max_occurrence=UNBOUNDED), PatternToken("good")])

        assert flagged(rule.match(make_sentence(["very", "very", "good"]))) == ["very very good"]

    def test_back_reference(self):
        rule = make_rule(
            [PatternToken("[a-z]+", regex=True), PatternToken(reference_index=0)],
            message="Remove the repeated <suggestion>\\1</suggestion>.",
        )

        matches = rule.match(make_sentence(["the", "the", "cat"]))

        assert flagged(matches) == ["the the"]
        assert matches[0].message == "Remove the repeated 'the'."
        assert matches[0].suggestions == ["the"]
        assert rule.match(make_sentence(["the", "cat"])) == []

    def test_negated_back_reference(self):
        rule = make_rule([PatternToken("[a-z]+", regex=True), PatternToken(reference_index=0, negation=True)])

        assert flagged(rule.match(make_sentence(["the", "the"]))) == []
        assert flagged(rule.match(make_sentence(["the", "cat"]))) == ["the cat"]

    def test_multiple_matches_in_order(self):
        rule = make_rule([PatternToken("please")])

        matches = rule.match(make_sentence(["please", "click", "and", "please", "wait"]))

        assert [m.token_span for m in matches] == [(0, 1), (3, 4)]

    def test_match_carries_rule_identity(self):
        rule = PatternRule("R", "en", [PatternToken("x")], "d", "Long message.", "Short.", sub_id="3")

        match = rule.match(make_sentence(["x"]))[0]

        assert (match.rule_id, match.sub_id) == ("R", "3")
        assert match.short_message == "Short."
        assert match.sentence == "x"

    def test_sentence_text_drops_trailing_whitespace(self):
        rule = make_rule([PatternToken("fox")])
        sentence = make_sentence(["the", "quick", "fox"], spaces=[True, True, True])

        match = rule.match(sentence)[0]

        assert sentence.text == "the quick fox"
        assert match.sentence == "the quick fox"
        assert match.span == (10, 13)
        assert match.flagged_text == "fox"


@pytest.mark.unit
class TestPhraseGroupAccounting:

    def phrase_rule(self, **kwargs):
        tokens = [PatternToken(w, phrase_name="P") for w in ("make", "a", "decision")] + [PatternToken("now")]
        return make_rule(tokens, **kwargs)

    def test_message_reference_counts_phrase_as_one_element(self):
        rule = self.phrase_rule(message="Replace '\\1' with <suggestion>decide</suggestion>; keep '\\2'.")

        match = rule.match(make_sentence(["make", "a", "decision", "now"]))[0]

        assert match.message == "Replace 'make a decision' with 'decide'; keep 'now'."
        assert match.suggestions == ["decide"]

    def test_flat_rule_references_single_tokens(self):
        rule = make_rule(
            [PatternToken("make"), PatternToken("a"), PatternToken("decision"), PatternToken("now")],
            message="'\\1' then '\\2'",
        )

        match = rule.match(make_sentence(["make", "a", "decision", "now"]))[0]

        assert match.message == "'make' then 'a'"

    def test_end_correction_skips_logical_elements(self):
        rule = self.phrase_rule(end_position_correction=1)

        match = rule.match(make_sentence(["make", "a", "decision", "now"]))[0]

        assert match.flagged_text == "make a decision"
        assert match.token_span == (0, 3)

    def test_start_correction_skips_whole_phrase(self):
        rule = self.phrase_rule(start_position_correction=1)

        match = rule.match(make_sentence(["make", "a", "decision", "now"]))[0]

        assert match.flagged_text == "now"

    def test_unknown_reference_expands_to_empty(self):
        rule = self.phrase_rule(message="[\\5]")

        assert rule.match(make_sentence(["make", "a", "decision", "now"]))[0].message == "[]"


@pytest.mark.unit
class TestImmunization:

    def test_antipattern_suppresses_match(self):
        rule = make_rule([PatternToken("please")], antipatterns=[[PatternToken("please"), PatternToken("note")]])

        assert rule.match(make_sentence(["please", "note", "this"])) == []
        assert flagged(rule.match(make_sentence(["please", "click", "save"]))) == ["please"]

    def test_antipattern_only_covers_its_tokens(self):
        rule = make_rule([PatternToken("please")], antipatterns=[[PatternToken("please"), PatternToken("note")]])

        matches = rule.match(make_sentence(["please", "note", "and", "please", "click"]))

        assert [m.token_span for m in matches] == [(3, 4)]

    def test_immunized_longer_match_does_not_hide_shorter_one(self):
        rule = make_rule(
            [PatternToken("very", min_occurrence=0), PatternToken("good")],
            antipatterns=[[PatternToken("very")]],
        )

        matches = rule.match(make_sentence(["very", "good"]))

        assert [m.token_span for m in matches] == [(1, 2)]
        assert flagged(matches) == ["good"]

    def test_custom_immunizer(self):
        rule = make_rule([PatternToken("please")], immunizer=lambda s: s.with_immunized(range(len(s.doc))))

        assert rule.match(make_sentence(["please", "click"])) == []


@pytest.mark.unit
class TestRegexPatternMatcher:

    def test_marked_group_is_flagged(self):
        rule = PatternRule.from_regex("SPACES", "en", r"\S( {2,})\S", "d", "Use one space.", mark=1)
        sentence = make_sentence(["a", " ", "b"], spaces=[True, False, False])

        matches = rule.match(sentence)

        assert sentence.text == "a  b"
        assert [m.span for m in matches] == [(1, 3)]
        assert matches[0].message == "Use one space."

    def test_group_reference_in_message(self):
        rule = PatternRule.from_regex(
            "SPELLING", "en", r"\b(utilis)e\b", "d", "Use <suggestion>\\1ze</suggestion> instead.",
        )

        matches = rule.match(make_sentence(["Please", "utilise", "it"]))

        assert flagged(matches) == ["utilise"]
        assert matches[0].suggestions == ["utilisze"]
        assert matches[0].token_span == (1, 2)

    def test_no_match(self):
        rule = PatternRule.from_regex("RX", "en", r"\bfoo\b", "d", "m")

        assert rule.match(make_sentence(["bar", "baz"])) == []

    def test_immunized_tokens_are_not_flagged(self):
        rule = PatternRule.from_regex(
            "RX", "en", r"\bplease\b", "d", "m",
            antipatterns=[[PatternToken("please"), PatternToken("note")]],
        )

        assert rule.match(make_sentence(["please", "note"])) == []
        assert len(rule.match(make_sentence(["please", "click"]))) == 1


@pytest.mark.unit
class TestPatternTokenMatcherSpec:

    def test_plain_token(self):
        assert PatternToken("The").to_matcher_spec() == {"LOWER": {"IN": ["the"]}}

    def test_negated_plain_token(self):
        assert PatternToken("the", negation=True).to_matcher_spec() == {"LOWER": {"NOT_IN": ["the"]}}

    def test_inflected_token(self):
        assert PatternToken("be", inflected=True).to_matcher_spec() == {"LEMMA": {"REGEX": "(?i)^(?:be)$"}}

    def test_occurrence_operators(self):
        assert PatternToken("x", min_occurrence=0).to_matcher_spec()["OP"] == "?"
        assert PatternToken("x", max_occurrence=UNBOUNDED).to_matcher_spec()["OP"] == "+"
        assert PatternToken("x", min_occurrence=0, max_occurrence=UNBOUNDED).to_matcher_spec()["OP"] == "*"
        assert PatternToken("x", min_occurrence=2, max_occurrence=3).to_matcher_spec()["OP"] == "{2,3}"
        assert PatternToken("x", min_occurrence=2, max_occurrence=2).to_matcher_spec()["OP"] == "{2}"
        assert PatternToken("x", min_occurrence=2, max_occurrence=UNBOUNDED).to_matcher_spec()["OP"] == "{2,}"

    def test_reference_is_wildcard(self):
        assert PatternToken(reference_index=0).to_matcher_spec() == {}

    def test_invalid_occurrence_bounds(self):
        with pytest.raises(ValueError):
            PatternToken("x", min_occurrence=3, max_occurrence=2)
        with pytest.raises(ValueError):
            PatternToken("x", min_occurrence=-1)

    def test_negated_empty_token_is_rejected(self):
        with pytest.raises(ValueError, match="negated token"):
            PatternToken("", negation=True)

    def test_negated_reference_needs_no_string(self):
        assert PatternToken(reference_index=0, negation=True).to_matcher_spec() == {}


@pytest.mark.unit
class TestMatcherCache:

    def test_matcher_is_reused_for_same_vocab(self):
        cache = MatcherCache("PATTERN", [[{"LOWER": "x"}]])

        assert cache.get(nlp.vocab) is cache.get(nlp.vocab)
        assert len(cache) == 1

    def test_old_vocabs_are_evicted(self):
        cache = MatcherCache("PATTERN", [[{"LOWER": "x"}]], max_vocabs=2)
        pipelines = [spacy.blank("en") for _ in range(3)]

        first = cache.get(pipelines[0].vocab)
        for pipeline in pipelines[1:]:
            cache.get(pipeline.vocab)

        assert len(cache) == 2
        assert cache.get(pipelines[0].vocab) is not first
