"""Chapter interval operations used while stitching clips together.

All functions are pure: they never modify the chapters they receive and
always return a new list.
"""

import math
from typing import Iterable, List

from mp3joiner.chapter import Chapter, TimeWindow


def clip_to_window(chapters: Iterable[Chapter], window: TimeWindow) -> List[Chapter]:
    """Select the chapters overlapping ``window`` and clamp them to it.

    A chapter overlaps when it ends after the window starts and starts before
    the window ends; a chapter that only touches a window boundary is
    dropped. Window bounds are converted to each chapter's ticks rounding
    inward, so every returned chapter lies within the window. A chapter whose
    overlap shrinks to zero ticks is dropped; chapters that were already
    zero-length are kept.

    Args:
        chapters: Chapters in source-file time
        window: A resolved (not open-ended) window in seconds

    Returns:
        Clamped chapters, stably sorted by their new start
    """
    if window.is_open:
        raise ValueError("window must be resolved against the file length before clipping")

    result = []
    for chapter in chapters:
        if not (chapter.end_seconds > window.start and chapter.start_seconds < window.end):
            continue

        start = max(chapter.start, math.ceil(chapter.to_ticks(window.start)))
        end = min(chapter.end, math.floor(chapter.to_ticks(window.end)))
        if start > end or (start == end and chapter.start < chapter.end):
            # Overlap shorter than a single tick of this time-base
            continue
        result.append(chapter.with_bounds(start, end))

    result.sort(key=lambda chapter: chapter.start_seconds)
    return result


def merge_adjacent_same_title(chapters: Iterable[Chapter]) -> List[Chapter]:
    """Collapse neighbouring chapters that carry the same title.

    The list is scanned from the back: whenever a chapter has the same title
    as its predecessor, the predecessor is extended over it and the chapter
    is dropped. The extended predecessor is compared again on the next step,
    so a run of any length ends up as a single chapter.

    Args:
        chapters: Chapters on one timeline; re-sorted by start here

    Returns:
        Chapters where no two neighbours share a title
    """
    merged = sorted(chapters, key=lambda chapter: chapter.start_seconds)

    for i in range(len(merged) - 1, 0, -1):
        current = merged[i]
        previous = merged[i - 1]
        if current.title != previous.title:
            continue

        end = _end_in_time_base_of(previous, current)
        merged[i - 1] = previous.with_bounds(previous.start, max(previous.end, end))
        del merged[i]

    return merged


def shift_chapters(chapters: Iterable[Chapter], offset_seconds: float) -> List[Chapter]:
    """Move chapters along the timeline by ``offset_seconds``.

    The offset is rounded to whole ticks of each chapter's own time-base.
    """
    shifted = []
    for chapter in chapters:
        delta = round(chapter.to_ticks(offset_seconds))
        shifted.append(chapter.with_bounds(chapter.start + delta, chapter.end + delta))
    return shifted


def _end_in_time_base_of(target: Chapter, chapter: Chapter) -> int:
    """Express ``chapter.end`` in ticks of ``target``'s time-base."""
    if chapter.time_base == target.time_base:
        return chapter.end
    return round(target.to_ticks(chapter.end_seconds))
