"""Typed-answer checking: exact match after case and whitespace folding."""

import re

_WHITESPACE = re.compile(r'\s+')


def normalize(text: str) -> str:
    """Lower-case, trim, and collapse each whitespace run to a single space."""
    return _WHITESPACE.sub(' ', text.lower().strip())


def is_correct(user_answer: str, expected_answer: str) -> bool:
    # An empty submission only matches an empty expected answer.
    return normalize(user_answer) == normalize(expected_answer)
