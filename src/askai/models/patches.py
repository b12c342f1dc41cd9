"""Edit block and patch result models."""

from dataclasses import dataclass, field
from typing import List, Tuple


LineRange = Tuple[int, int]


@dataclass(frozen=True)
class PatchMarkers:
    """Delimiters framing one SEARCH/REPLACE block."""

    search_start: str
    divider: str
    replace_end: str


@dataclass(frozen=True)
class EditBlock:
    search_text: str
    replace_text: str


@dataclass
class PatchResult:
    document: str
    changed_ranges: List[LineRange] = field(default_factory=list)
    skipped_blocks: int = 0

    def updated_lines(self) -> List[List[int]]:
        return [[start, end] for start, end in self.changed_ranges]
