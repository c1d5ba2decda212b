from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)

HARD_MAX = 1900
TARGET_CHUNK_SIZE = 1600
SPLIT_TRIGGER = 1900
MIN_READABLE_CHUNK = 350
TAIL_MERGE_BELOW = 280
MERGE_SEPARATOR = "\n\n"

EMPTY_DOCUMENT_NOTICE = "No response generated."
OMITTED_CODE_NOTICE = (
    "```text\n[Code block omitted: it exceeded the message size limit. "
    "Ask for a shorter snippet.]\n```"
)
DEFAULT_BANNER_TEMPLATE = "**Response ({index}/{total})**"

CODE_BLOCK_PATTERN = re.compile(r"```[\s\S]*?```")
# Private-use delimiters keep placeholders distinct from any literal text in a reply.
PLACEHOLDER_PATTERN = re.compile(r"(\ue000CODE_BLOCK_\d+\ue001)")
_HEADING_LINE_PATTERN = re.compile(r"^#{1,6}\s")
_PARAGRAPH_BREAK_PATTERN = re.compile(r"\n\s*\n")
_SENTENCE_BREAK_PATTERN = re.compile(r"(?<=[.!?])\s+(?=[A-Z0-9#*`_\ue000-])")
_WORD_BREAK_PATTERN = re.compile(r"\s+")


@dataclass(frozen=True)
class PackOptions:
    min_chunks: int = 1
    max_chunks: int = 3
    preserve_sections: bool = False
    add_page_banner: bool = True
    hard_max: int = HARD_MAX
    target_size: int = TARGET_CHUNK_SIZE
    split_trigger: int = SPLIT_TRIGGER
    min_readable: int = MIN_READABLE_CHUNK
    tail_merge_below: int = TAIL_MERGE_BELOW
    banner_template: str = DEFAULT_BANNER_TEMPLATE

    def validate(self) -> None:
        if self.min_chunks < 1:
            raise ValueError("min_chunks must be >= 1")
        if self.max_chunks < self.min_chunks:
            raise ValueError("max_chunks must be >= min_chunks")
        if self.hard_max <= 0 or self.target_size <= 0:
            raise ValueError("hard_max and target_size must be positive")
        if self.target_size > self.hard_max:
            raise ValueError("target_size must be <= hard_max")
        if self.banner_reserve() >= self.hard_max // 2:
            raise ValueError("banner_template is too long for hard_max")

    def banner_reserve(self) -> int:
        if not self.add_page_banner:
            return 0
        return len(self.banner_template.format(index=999, total=999)) + len(MERGE_SEPARATOR)

    def ceiling(self) -> int:
        """Largest chunk body that still fits `hard_max` once a banner is added."""
        return self.hard_max - self.banner_reserve()


@dataclass(frozen=True)
class SectionLayout:
    """Fixed numbered sections that each become one transport unit.

    `heading_pattern` must be MULTILINE and expose `number` and `title` groups.
    """

    count: int
    heading_pattern: Pattern[str]
    default_titles: Tuple[str, ...]
    heading_format: str = "## Chunk {number}/{count}: {title}"

    def heading(self, number: int, title: str = "") -> str:
        title = title.strip() or self.default_titles[number - 1]
        return self.heading_format.format(number=number, count=self.count, title=title)


@dataclass(frozen=True)
class BoundaryStrategy:
    name: str
    split: Callable[[str], List[str]]
    separator: str


class ProtectedText:
    """Text with fenced code blocks swapped for single-token placeholders."""

    def __init__(self, text: str) -> None:
        self.placeholders: Dict[str, str] = {}

        def _swap(match: "re.Match[str]") -> str:
            token = f"\ue000CODE_BLOCK_{len(self.placeholders)}\ue001"
            self.placeholders[token] = match.group(0)
            return token

        self.text = CODE_BLOCK_PATTERN.sub(_swap, text)

    def restore(self, text: str) -> str:
        return PLACEHOLDER_PATTERN.sub(lambda match: self.placeholders.get(match.group(0), match.group(0)), text)


def _clean(parts: List[str]) -> List[str]:
    return [part.strip() for part in parts if part and part.strip()]


def split_by_headings(text: str) -> List[str]:
    sections: List[str] = []
    current: List[str] = []
    for line in text.split("\n"):
        if _HEADING_LINE_PATTERN.match(line) and "\n".join(current).strip():
            sections.append("\n".join(current))
            current = [line]
        else:
            current.append(line)
    if current:
        sections.append("\n".join(current))
    return _clean(sections)


def split_by_paragraphs(text: str) -> List[str]:
    return _clean(_PARAGRAPH_BREAK_PATTERN.split(text))


def split_by_lines(text: str) -> List[str]:
    return _clean(text.split("\n"))


def split_by_sentences(text: str) -> List[str]:
    return _clean(_SENTENCE_BREAK_PATTERN.split(text))


def split_by_words(text: str) -> List[str]:
    return _clean(_WORD_BREAK_PATTERN.split(text))


BOUNDARY_STRATEGIES: Tuple[BoundaryStrategy, ...] = (
    BoundaryStrategy("heading", split_by_headings, "\n\n"),
    BoundaryStrategy("paragraph", split_by_paragraphs, "\n\n"),
    BoundaryStrategy("line", split_by_lines, "\n"),
    BoundaryStrategy("sentence", split_by_sentences, " "),
    BoundaryStrategy("word", split_by_words, " "),
)
# Only these are used to form the first-level segments of a document.
_SEGMENT_LEVELS = ("heading", "paragraph")


def raw_slices(text: str, limit: int) -> List[str]:
    if limit <= 0:
        raise ValueError("limit must be positive")
    return [text[idx: idx + limit] for idx in range(0, len(text), limit)]


def segment_text(text: str) -> Tuple[List[str], int]:
    """Split at the coarsest boundary that yields more than one segment.

    Returns the segments and the index of the strategy that produced them.
    """
    for level, strategy in enumerate(BOUNDARY_STRATEGIES):
        if strategy.name not in _SEGMENT_LEVELS:
            break
        segments = strategy.split(text)
        if len(segments) > 1:
            return segments, level
    return [text.strip()], len(_SEGMENT_LEVELS) - 1


def _split_oversized(text: str, limit: int, start_level: int) -> List[str]:
    for level in range(start_level, len(BOUNDARY_STRATEGIES)):
        strategy = BOUNDARY_STRATEGIES[level]
        pieces = strategy.split(text)
        if len(pieces) > 1:
            return pack_segments(pieces, limit, strategy.separator, level + 1)
    return raw_slices(text, limit)


def pack_segments(
    segments: List[str],
    limit: int,
    separator: str = "\n\n",
    next_level: int = 1,
) -> List[str]:
    """Greedy packing; oversized segments are re-split with finer boundaries."""
    chunks: List[str] = []
    current = ""
    for segment in segments:
        candidate = f"{current}{separator}{segment}" if current else segment
        if len(candidate) <= limit:
            current = candidate
            continue
        if current:
            chunks.append(current)
            current = ""
        if len(segment) <= limit:
            current = segment
            continue
        pieces = _split_oversized(segment, limit, next_level)
        chunks.extend(pieces[:-1])
        current = pieces[-1] if pieces else ""
    if current:
        chunks.append(current)
    return chunks


def _substitute_oversized_blocks(text: str, ceiling: int) -> str:
    def _replace(match: "re.Match[str]") -> str:
        block = match.group(0)
        if len(block) <= ceiling:
            return block
        logger.warning(
            f"[Packer] Code block of {len(block)} chars exceeds the {ceiling} char limit; "
            "replaced with an omission notice"
        )
        return OMITTED_CODE_NOTICE

    return CODE_BLOCK_PATTERN.sub(_replace, text)


def enforce_hard_limit(chunks: List[str], ceiling: int) -> List[str]:
    """Re-split chunks over `ceiling` at code-block boundaries.

    A single code block that cannot fit is replaced by a visible notice.
    """
    safe: List[str] = []
    for chunk in chunks:
        if len(chunk) <= ceiling:
            safe.append(chunk)
            continue
        protected = ProtectedText(chunk)
        parts = _clean(PLACEHOLDER_PATTERN.split(protected.text))
        current = ""
        for part in parts:
            restored = _substitute_oversized_blocks(protected.restore(part), ceiling)
            pieces = [restored] if len(restored) <= ceiling else _split_oversized(restored, ceiling, 1)
            for piece in pieces:
                candidate = f"{current}{MERGE_SEPARATOR}{piece}" if current else piece
                if len(candidate) <= ceiling:
                    current = candidate
                else:
                    if current:
                        safe.append(current)
                    current = piece
        if current:
            safe.append(current)
    return safe


def _balanced_split(parts: List[str], separator: str, target: int) -> List[str]:
    parts = _clean(parts)
    if len(parts) < 2:
        return []
    index = 1
    size = len(parts[0])
    while index < len(parts) - 1 and size + len(separator) + len(parts[index]) < target:
        size += len(separator) + len(parts[index])
        index += 1
    left = separator.join(parts[:index]).strip()
    right = separator.join(parts[index:]).strip()
    return [left, right] if left and right else []


def split_in_half(chunk: str) -> List[str]:
    """Split one chunk into two balanced halves without cutting a code block."""
    protected = ProtectedText(chunk)
    text = protected.text
    target = max(120, len(text) // 2)
    for splitter, separator in (
        (split_by_paragraphs, "\n\n"),
        (split_by_sentences, " "),
        (split_by_lines, "\n"),
    ):
        halves = _balanced_split(splitter(text), separator, target)
        if len(halves) == 2:
            return [protected.restore(half).strip() for half in halves]

    if protected.placeholders:
        return [chunk]
    midpoint = len(text) // 2
    cut = text.rfind(" ", 0, midpoint)
    if cut <= 0:
        cut = text.find(" ", midpoint)
    if cut <= 0:
        cut = midpoint
    left, right = text[:cut].strip(), text[cut:].strip()
    if not left or not right:
        return [chunk]
    return [left, right]


def ensure_min_chunks(chunks: List[str], min_chunks: int) -> List[str]:
    expanded = list(chunks)
    unsplittable: set[str] = set()
    while len(expanded) < min_chunks:
        candidates = [
            (len(chunk), idx)
            for idx, chunk in enumerate(expanded)
            if len(chunk) >= 2 and chunk not in unsplittable
        ]
        if not candidates:
            break
        _, largest = max(candidates)
        halves = split_in_half(expanded[largest])
        if len(halves) < 2:
            unsplittable.add(expanded[largest])
            continue
        expanded[largest: largest + 1] = halves
    return expanded


def merge_for_readability(chunks: List[str], options: PackOptions, ceiling: int) -> List[str]:
    merged = list(chunks)

    def _combined(idx: int) -> int:
        return len(merged[idx]) + len(MERGE_SEPARATOR) + len(merged[idx + 1])

    def _merge(idx: int) -> None:
        merged[idx: idx + 2] = [f"{merged[idx]}{MERGE_SEPARATOR}{merged[idx + 1]}".strip()]

    changed = True
    while changed and len(merged) > options.min_chunks:
        changed = False
        for idx in range(len(merged) - 1):
            if len(merged[idx]) < options.min_readable and _combined(idx) <= ceiling:
                _merge(idx)
                changed = True
                break

    while len(merged) > max(options.max_chunks, options.min_chunks):
        legal = [(_combined(idx), idx) for idx in range(len(merged) - 1) if _combined(idx) <= ceiling]
        if not legal:
            break
        _merge(min(legal)[1])

    if len(merged) > max(1, options.min_chunks):
        last = len(merged) - 1
        if len(merged[last]) < options.tail_merge_below and _combined(last - 1) <= ceiling:
            _merge(last - 1)

    return merged


def pack_sections(text: str, layout: SectionLayout, ceiling: int) -> Optional[List[str]]:
    """One chunk per numbered section, or None when the layout does not apply."""
    masked = CODE_BLOCK_PATTERN.sub(lambda match: " " * len(match.group(0)), text)
    headings = list(layout.heading_pattern.finditer(masked))
    numbers = [int(match.group("number")) for match in headings]
    if sorted(numbers) != list(range(1, layout.count + 1)):
        return None

    sections: Dict[int, str] = {}
    for idx, match in enumerate(headings):
        end = headings[idx + 1].start() if idx + 1 < len(headings) else len(text)
        number = int(match.group("number"))
        heading = layout.heading(number, text[match.start("title"):match.end("title")])
        body = text[match.end():end].strip()
        sections[number] = f"{heading}\n\n{body}".strip() if body else heading

    preamble = text[: headings[0].start()].strip()
    chunks = [sections[number] for number in range(1, layout.count + 1)]
    if preamble:
        chunks[0] = f"{preamble}{MERGE_SEPARATOR}{chunks[0]}"

    chunks = [_substitute_oversized_blocks(chunk, ceiling) for chunk in chunks]
    oversized = [idx + 1 for idx, chunk in enumerate(chunks) if len(chunk) > ceiling]
    if oversized:
        logger.info(
            f"[Packer] Sections {oversized} exceed {ceiling} chars; using generic packing instead"
        )
        return None
    return chunks


def add_banners(chunks: List[str], template: str = DEFAULT_BANNER_TEMPLATE) -> List[str]:
    total = len(chunks)
    if total <= 1:
        return chunks
    return [
        f"{template.format(index=idx + 1, total=total)}{MERGE_SEPARATOR}{chunk}"
        for idx, chunk in enumerate(chunks)
    ]


def pack(
    document: str,
    options: Optional[PackOptions] = None,
    layout: Optional[SectionLayout] = None,
) -> List[str]:
    """Split a document into ordered chunks that each fit the transport limit."""
    options = options or PackOptions()
    options.validate()
    text = (document or "").strip()
    if not text:
        return [EMPTY_DOCUMENT_NOTICE]

    ceiling = options.ceiling()
    if options.preserve_sections and layout is not None:
        sectioned = pack_sections(text, layout, ceiling)
        if sectioned is not None:
            logger.info(f"[Packer] Structural layout: {len(sectioned)} section chunks")
            return add_banners(sectioned, options.banner_template) if options.add_page_banner else sectioned

    if len(text) <= min(options.split_trigger, options.hard_max) and options.min_chunks <= 1:
        return [text]

    protected = ProtectedText(text)
    segments, level = segment_text(protected.text)
    separator = BOUNDARY_STRATEGIES[level].separator
    packed = pack_segments(segments, min(options.target_size, ceiling), separator, level + 1)
    restored = _clean([protected.restore(chunk) for chunk in packed])

    chunks = enforce_hard_limit(restored, ceiling)
    chunks = ensure_min_chunks(chunks, options.min_chunks)
    chunks = merge_for_readability(chunks, options, ceiling)
    chunks = _clean(chunks) or [EMPTY_DOCUMENT_NOTICE]
    logger.info(
        f"[Packer] Packed {len(text)} chars into {len(chunks)} chunks "
        f"(min={options.min_chunks}, max={options.max_chunks}, ceiling={ceiling})"
    )
    return add_banners(chunks, options.banner_template) if options.add_page_banner else chunks


__all__ = [
    "HARD_MAX",
    "TARGET_CHUNK_SIZE",
    "SPLIT_TRIGGER",
    "EMPTY_DOCUMENT_NOTICE",
    "OMITTED_CODE_NOTICE",
    "PackOptions",
    "SectionLayout",
    "BoundaryStrategy",
    "BOUNDARY_STRATEGIES",
    "ProtectedText",
    "split_by_headings",
    "split_by_paragraphs",
    "split_by_lines",
    "split_by_sentences",
    "split_by_words",
    "raw_slices",
    "segment_text",
    "pack_segments",
    "enforce_hard_limit",
    "split_in_half",
    "ensure_min_chunks",
    "merge_for_readability",
    "pack_sections",
    "add_banners",
    "pack",
]
