"""
Selector builders and text matching.

Semantic queries (role, label, placeholder, text, title, test id) are turned
into the selector-engine syntax Playwright parses itself. Text predicates
used by filters and assertions are evaluated here.
"""

import json
import re

TextMatcher = str | re.Pattern


def _escape_text(text: TextMatcher, exact: bool) -> str:
    if isinstance(text, re.Pattern):
        return _regex_source(text)
    return json.dumps(text) + ("s" if exact else "i")


def _regex_source(pattern: re.Pattern) -> str:
    flags = ""
    if pattern.flags & re.IGNORECASE:
        flags += "i"
    if pattern.flags & re.DOTALL:
        flags += "s"
    if pattern.flags & re.MULTILINE:
        flags += "m"
    return f"/{pattern.pattern}/{flags}"


def role_selector(role: str, name: TextMatcher | None = None, exact: bool = False) -> str:
    selector = f"internal:role={role}"
    if name is not None:
        selector += f"[name={_escape_text(name, exact)}]"
    return selector


def label_selector(text: TextMatcher, exact: bool = False) -> str:
    return f"internal:label={_escape_text(text, exact)}"


def text_selector(text: TextMatcher, exact: bool = False) -> str:
    return f"internal:text={_escape_text(text, exact)}"


def placeholder_selector(text: TextMatcher, exact: bool = False) -> str:
    return f"internal:attr=[placeholder={_escape_text(text, exact)}]"


def title_selector(text: TextMatcher, exact: bool = False) -> str:
    return f"internal:attr=[title={_escape_text(text, exact)}]"


def data_testid_selector(test_id: str) -> str:
    return f"internal:testid=[data-testid={json.dumps(test_id)}s]"


def normalize_whitespace(text: str | None) -> str:
    return " ".join((text or "").split())


def contains_text(actual: str | None, expected: TextMatcher) -> bool:
    """has_text semantics: case-insensitive substring, or regex search."""
    if isinstance(expected, re.Pattern):
        return expected.search(actual or "") is not None
    return normalize_whitespace(expected).lower() in normalize_whitespace(actual).lower()


def text_matches(
    actual: str | None,
    expected: TextMatcher,
    *,
    substring: bool = False,
    ignore_case: bool = False,
) -> bool:
    """
    Assertion text semantics.

    Strings compare after whitespace normalisation, either whole
    (to_have_text) or as a substring (to_contain_text). Patterns are searched.
    """
    if isinstance(expected, re.Pattern):
        if ignore_case and not expected.flags & re.IGNORECASE:
            expected = re.compile(expected.pattern, expected.flags | re.IGNORECASE)
        return expected.search(actual or "") is not None

    left = normalize_whitespace(actual)
    right = normalize_whitespace(expected)
    if ignore_case:
        left, right = left.lower(), right.lower()
    return right in left if substring else left == right


def describe_text(value: TextMatcher) -> str:
    if isinstance(value, re.Pattern):
        return _regex_source(value)
    return repr(value)
