"""
Substitution strategies.

A Substitution turns one textual column value into its replaced form.
SearchReplace builds one from the configured search/replace specs when a run
starts; callers can pass their own strategy to execute() instead.

Spec combinations:
- literal search, literal replace: plain str.replace
- pattern search, literal replace: regex match, replacement used verbatim
- literal search, pattern replace: escaped search, replacement is a template (\\g<0>)
- pattern search, pattern replace: re.sub with a replacement template
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from searchreplace.errors import ConfigurationError


@dataclass(frozen=True)
class SearchSpec:
    """What to look for."""
    term: str
    is_pattern: bool = False


@dataclass(frozen=True)
class ReplaceSpec:
    """What to put in its place."""
    term: str
    is_pattern: bool = False


class Substitution(ABC):
    """Abstract base class for substitution strategies."""

    @abstractmethod
    def apply(self, value: str) -> str:
        """Return value with every match replaced."""
        pass


class LiteralSubstitution(Substitution):
    """Plain substring replacement."""

    def __init__(self, search: str, replace: str):
        self.search = search
        self.replace = replace

    def apply(self, value: str) -> str:
        return value.replace(self.search, self.replace)


class PatternSubstitution(Substitution):
    """Regular expression replacement."""

    def __init__(self, pattern: "re.Pattern[str]", replace: str, template: bool = True):
        self.pattern = pattern
        self.replace = replace
        self.template = template

    def apply(self, value: str) -> str:
        if self.template:
            return self.pattern.sub(self.replace, value)
        return self.pattern.sub(lambda _match: self.replace, value)


def build_substitution(search: SearchSpec, replace: ReplaceSpec) -> Substitution:
    """
    Build the strategy matching a search/replace spec pair.

    Raises:
        ConfigurationError: If the search term is empty or a pattern does not compile
    """
    if not search.term:
        raise ConfigurationError("Search term cannot be empty")

    if not search.is_pattern and not replace.is_pattern:
        return LiteralSubstitution(search.term, replace.term)

    source = search.term if search.is_pattern else re.escape(search.term)
    try:
        pattern = re.compile(source)
    except re.error as e:
        raise ConfigurationError(f"Invalid search pattern {search.term!r}: {e}") from e

    if replace.is_pattern:
        # Surface bad group references before any row is touched
        try:
            _check_template(pattern, replace.term)
        except (re.error, IndexError) as e:
            raise ConfigurationError(f"Invalid replacement template {replace.term!r}: {e}") from e
    return PatternSubstitution(pattern, replace.term, template=replace.is_pattern)


def _check_template(pattern: "re.Pattern[str]", template: str) -> None:
    # Expand against an empty match with the same group layout
    by_index = {index: name for name, index in pattern.groupindex.items()}
    groups = "".join(
        f"(?P<{by_index[i]}>)" if i in by_index else "()"
        for i in range(1, pattern.groups + 1)
    )
    re.compile(groups).match("").expand(template)
