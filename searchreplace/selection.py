"""
Table selection algebra.

resolved = (include_all ? all_tables : []) + included, minus excluded

- Duplicates collapse, first-seen order wins (all tables first, then
  explicit includes in the order they were added)
- Excluded names always win, however a name entered the candidate list
"""

from dataclasses import dataclass, field
from typing import Iterable, Sequence


def _unique(names: Iterable[str]) -> tuple[str, ...]:
    """Deduplicate preserving first-seen order."""
    return tuple(dict.fromkeys(names))


@dataclass(frozen=True)
class TableSelection:
    """
    Immutable table include/exclude rules.

    Attributes:
        include_all: Start from every table the gateway lists
        included: Explicitly included table names (ordered, unique)
        excluded: Table names that are never processed
    """
    include_all: bool = False
    included: tuple[str, ...] = ()
    excluded: frozenset[str] = field(default_factory=frozenset)

    def with_include_all(self, include_all: bool) -> "TableSelection":
        return TableSelection(include_all, self.included, self.excluded)

    def with_included(self, names: Iterable[str], override: bool = False) -> "TableSelection":
        base = () if override else self.included
        return TableSelection(self.include_all, _unique([*base, *names]), self.excluded)

    def with_excluded(self, names: Iterable[str], override: bool = False) -> "TableSelection":
        base = frozenset() if override else self.excluded
        return TableSelection(self.include_all, self.included, base | frozenset(names))

    def cleared(self) -> "TableSelection":
        """Drop includes and excludes, keep the include-all flag."""
        return TableSelection(self.include_all)

    @property
    def is_empty(self) -> bool:
        """True when nothing could ever be selected."""
        return not self.include_all and not self.included

    def resolve(self, all_tables: Sequence[str] = ()) -> list[str]:
        """
        Apply the selection to the gateway's table list.

        Args:
            all_tables: Tables reported by the gateway (only used when include_all)

        Returns:
            Ordered, deduplicated table names
        """
        candidates = list(all_tables) if self.include_all else []
        candidates.extend(self.included)
        return [name for name in _unique(candidates) if name not in self.excluded]
