"""
Apply SEARCH/REPLACE edit blocks from an AI response to an HTML document.

A response may contain any number of blocks framed by three markers::

    <search start>
    text to find
    <divider>
    replacement text
    <replace end>

Blocks are applied in response order, each against the output of the
previous one. An empty search text inserts the replacement at the top of the
document. A search text that does not occur in the document is skipped with a
warning.
"""

from typing import Iterator, List, Optional, Tuple

import structlog

from ..models.patches import EditBlock, LineRange, PatchMarkers, PatchResult


logger = structlog.get_logger(__name__)

DEFAULT_MARKERS = PatchMarkers(
    search_start="<<<<<<< SEARCH",
    divider="=======",
    replace_end=">>>>>>> REPLACE",
)


def _line_count(text: str) -> int:
    return text.count("\n") + 1


def _strip_replacement(text: str) -> str:
    # Only the line break ending the divider line is dropped at the front;
    # leading indentation belongs to the replacement.
    if text.startswith("\r\n"):
        text = text[2:]
    elif text.startswith("\n"):
        text = text[1:]
    return text.rstrip()


def iter_edit_blocks(response_text: str, markers: PatchMarkers = DEFAULT_MARKERS) -> Iterator[EditBlock]:
    """Yield edit blocks in order, stopping at the first incomplete block."""
    position = 0
    while True:
        search_start = response_text.find(markers.search_start, position)
        if search_start == -1:
            return
        divider = response_text.find(markers.divider, search_start + len(markers.search_start))
        if divider == -1:
            return
        replace_end = response_text.find(markers.replace_end, divider + len(markers.divider))
        if replace_end == -1:
            return

        yield EditBlock(
            search_text=response_text[search_start + len(markers.search_start):divider].strip(),
            replace_text=_strip_replacement(response_text[divider + len(markers.divider):replace_end]),
        )
        position = replace_end + len(markers.replace_end)


def parse_edit_blocks(response_text: str, markers: PatchMarkers = DEFAULT_MARKERS) -> List[EditBlock]:
    return list(iter_edit_blocks(response_text, markers))


def apply_block(document: str, block: EditBlock) -> Optional[Tuple[str, LineRange]]:
    """Apply one block; return ``(new_document, (start, end))`` or None on a miss."""
    if not block.search_text:
        updated = f"{block.replace_text}\n{document}"
        return updated, (1, _line_count(block.replace_text))

    index = document.find(block.search_text)
    if index == -1:
        return None

    start_line = document.count("\n", 0, index) + 1
    end_line = start_line + _line_count(block.replace_text) - 1
    updated = document[:index] + block.replace_text + document[index + len(block.search_text):]
    return updated, (start_line, end_line)


def apply_patches(
    document: str,
    response_text: str,
    markers: PatchMarkers = DEFAULT_MARKERS,
) -> PatchResult:
    """Apply every edit block in ``response_text`` to ``document``."""
    ranges: List[LineRange] = []
    skipped = 0
    for block in iter_edit_blocks(response_text, markers):
        outcome = apply_block(document, block)
        if outcome is None:
            skipped += 1
            logger.warning("SEARCH block not found in document, skipping", block=block.search_text[:200])
            continue
        document, changed = outcome
        ranges.append(changed)

    return PatchResult(document=document, changed_ranges=ranges, skipped_blocks=skipped)
