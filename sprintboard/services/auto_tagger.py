"""
Keyword-based task classification.
Maps a task's title and description to labels using a fixed rule table.
Everything here is pure: no I/O, no state, identical output for identical input.
"""
from __future__ import annotations

import re
from collections.abc import Iterable

_WORD_RE = re.compile(r"[a-z0-9]+")

# (label, keywords). Order only fixes the order of the returned list.
TAG_RULES: tuple[tuple[str, frozenset[str]], ...] = (
    ("ui", frozenset({"ui", "ux", "design", "interface", "responsive", "layout", "styling"})),
    ("bug", frozenset({"bug", "bugs", "fix", "fixes", "error", "errors", "issue", "issues", "broken", "crash"})),
    ("backend", frozenset({"backend", "api", "server", "database", "endpoint", "endpoints", "service", "services", "migration"})),
    ("frontend", frozenset({"frontend", "component", "components", "react", "page", "pages", "css", "html"})),
    ("feature", frozenset({"feature", "features", "implement", "add", "new", "create", "introduce"})),
    ("docs", frozenset({"docs", "documentation", "readme", "document", "guide"})),
    ("testing", frozenset({"test", "tests", "testing", "coverage", "qa", "e2e"})),
    ("security", frozenset({"security", "auth", "authentication", "permission", "permissions", "vulnerability", "xss", "csrf", "encryption"})),
    ("performance", frozenset({"performance", "optimize", "optimise", "speed", "slow", "cache", "caching", "latency"})),
    ("refactor", frozenset({"refactor", "refactoring", "cleanup", "restructure", "simplify"})),
)


def tag(title: str, description: str | None = None) -> list[str]:
    """
    Return the labels whose keywords occur as whole words in title + description.

    >>> tag("Fix login bug")
    ['bug']
    >>> tag("Implement new API endpoint", "backend service")
    ['backend', 'feature']
    """
    text = f"{title} {description or ''}".lower()
    words = set(_WORD_RE.findall(text))
    return [label for label, keywords in TAG_RULES if not words.isdisjoint(keywords)]


def merge_tags(manual: Iterable[str], automatic: Iterable[str]) -> list[str]:
    """Union of both tag lists, manual tags first, duplicates collapsed."""
    merged: list[str] = []
    for value in (*manual, *automatic):
        if value not in merged:
            merged.append(value)
    return merged


def apply_tags(manual: Iterable[str], title: str, description: str | None) -> list[str]:
    """Manual tags extended with the auto-tagger's labels for this text."""
    return merge_tags(manual, tag(title, description))
