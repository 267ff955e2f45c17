"""
Phrase-group accounting for pattern rules.

Tokens expanded from a phrase count as a single logical element when a
match is marked, skipped, or referenced from a message. This module turns the
flattened token list into the size of each logical element.
"""

from typing import List, Sequence, Tuple

from .pattern_token import PatternToken


def compile_phrase_groups(tokens: Sequence[PatternToken]) -> Tuple[Tuple[int, ...], bool]:
    """
    Compute logical element sizes for a flattened token sequence.

    A standalone token is one element of size 1. A maximal run of consecutive
    tokens sharing one phrase name is one element whose size is the run length.

    Args:
        tokens: Pattern tokens in rule order

    Returns:
        Tuple of (group sizes, uses_grouping). ``uses_grouping`` is False when
        no phrase-tagged token exists, so every size is 1.
    """
    sizes: List[int] = []
    pending_name = ""
    pending_count = 0
    uses_grouping = False

    for token in tokens:
        if not token.is_part_of_phrase:
            if pending_count:
                sizes.append(pending_count)
                pending_count = 0
            pending_name = ""
            sizes.append(1)
            continue

        uses_grouping = True
        if pending_count and token.phrase_name != pending_name:
            sizes.append(pending_count)
            pending_count = 0
        pending_name = token.phrase_name
        pending_count += 1

    if pending_count:
        sizes.append(pending_count)

    return tuple(sizes), uses_grouping


def group_offsets(sizes: Sequence[int]) -> Tuple[int, ...]:
    """Flattened start index of each logical element, plus the total length at the end."""
    offsets = [0]
    for size in sizes:
        offsets.append(offsets[-1] + size)
    return tuple(offsets)
