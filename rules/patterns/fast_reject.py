"""
Fast-reject filters for pattern rules.

A rule whose mandatory literal tokens do not all occur in a sentence can never
match it. The sets built here let callers skip full matching for such
sentences. Only provably required strings are collected, so a rejection is
always safe; a non-rejection proves nothing.
"""

from typing import AbstractSet, FrozenSet, Sequence

from .pattern_token import PatternToken


def is_mandatory_literal(token: PatternToken) -> bool:
    """True if every match of the rule must contain this token's string verbatim (ignoring case)."""
    return (not token.negation
            and not token.regex
            and not token.is_reference_element
            and token.min_occurrence > 0
            and bool(token.string))


def build_fast_reject_set(tokens: Sequence[PatternToken], inflected: bool) -> FrozenSet[str]:
    """
    Collect lowercase strings a sentence must contain for the rule to match.

    Args:
        tokens: Pattern tokens of the rule
        inflected: Build the lemma set (True) or the surface-form set (False)

    Returns:
        Frozen set of lowercase literal strings
    """
    return frozenset(
        token.string.lower()
        for token in tokens
        if token.inflected == inflected and is_mandatory_literal(token)
    )


def sentence_can_be_ignored(plain_tokens: AbstractSet[str], inflected_tokens: AbstractSet[str],
                            sentence_tokens: AbstractSet[str], sentence_lemmas: AbstractSet[str]) -> bool:
    """
    Check whether a rule with the given fast-reject sets can be skipped.

    Returns:
        True if a non-empty fast-reject set is not fully contained in the
        corresponding sentence vocabulary.
    """
    if plain_tokens and not plain_tokens <= sentence_tokens:
        return True
    if inflected_tokens and not inflected_tokens <= sentence_lemmas:
        return True
    return False
