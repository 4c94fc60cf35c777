"""
Leaks output tokenizer.

Classifies each non-blank line of a `leaks` report into a token and
extracts its fields: count and human-readable size, ownership depth,
retaining field name and offset, type name and address, instance size.

Extraction never raises. A field that cannot be parsed falls back to
0, an empty string or None.
"""

import re
from typing import Optional

from leaks_logging import get_logger
from leaks_types import (
    LeakKind,
    LeaksToken,
    HeaderToken,
    SummaryToken,
    RootEntryToken,
    ChildEntryToken,
    TotalLineToken,
    StackFrameToken,
    UnknownToken,
)

logger = get_logger("tokenizer")

ROOT_LEAK_MARKER = "ROOT LEAK:"
ROOT_CYCLE_MARKER = "ROOT CYCLE:"
TOTAL_MARKER = "<< TOTAL >>"
OWNERSHIP_ARROW = "-->"
POINTER_PREFIX = "0x"
HEADER_PREFIXES = ("Process ",)

# Every 3 leading spaces is one level of the ownership chain
SPACES_PER_LEVEL = 3

_BYTE_COUNT_PATTERN = re.compile(r"\[\s*\d+\s*\]")
_ADDRESS_PATTERN = re.compile(r"(?<!\S)0x[0-9A-Fa-f]+")
_TOKEN_PATTERN = re.compile(r"\S+")
_LINE_BREAK_PATTERN = re.compile(r"\r\n|\r|\n")


def tokenize(output: str) -> list[LeaksToken]:
    """
    Split a raw `leaks` report into tokens, one per non-blank line.

    Args:
        output: Complete stdout of the `leaks` tool.

    Returns:
        Tokens in line order. Blank lines produce nothing.

    Example:
        >>> tokens = tokenize("32 (3.66K) ROOT LEAK: <ToolbarMiddleware 0x1049065c0> [432]")
        >>> tokens[0].type_name
        'ToolbarMiddleware'
    """

    tokens = []

    # Only \n, \r\n and \r end a line
    for line in _LINE_BREAK_PATTERN.split(output):
        trimmed = line.strip()
        if not trimmed:
            continue
        tokens.append(_classify_line(line, trimmed))

    logger.debug("Tokenized %d non-blank lines", len(tokens))

    return tokens


def _classify_line(line: str, trimmed: str) -> LeaksToken:
    """Pick the token kind for one line. First matching rule wins."""

    if ROOT_LEAK_MARKER in trimmed:
        return _parse_root_entry(line, trimmed, ROOT_LEAK_MARKER, LeakKind.ROOT_LEAK)

    if ROOT_CYCLE_MARKER in trimmed:
        return _parse_root_entry(line, trimmed, ROOT_CYCLE_MARKER, LeakKind.ROOT_CYCLE)

    if TOTAL_MARKER in trimmed:
        count, human_size = parse_count_and_size(trimmed)
        return TotalLineToken(raw_line=line, count=count, human_size=human_size)

    if OWNERSHIP_ARROW in trimmed:
        return _parse_named_child(line, trimmed)

    if _looks_like_bare_child(trimmed):
        return _parse_bare_child(line, trimmed)

    if trimmed.startswith(HEADER_PREFIXES):
        return HeaderToken(raw_line=line, process_info=trimmed)

    if ":" in trimmed:
        key, _, value = trimmed.partition(":")
        return SummaryToken(raw_line=line, key=key.strip(), value=value.strip())

    # Older frame format, e.g. "1   MyApp   0x1000abcd SomeFunction + 42"
    if trimmed[0].isdigit():
        return StackFrameToken(raw_line=line, frame=trimmed)

    return UnknownToken(raw_line=line)


# =============================================================================
# LINE PARSERS
# =============================================================================

def _parse_root_entry(line: str, trimmed: str, marker: str, leak_kind: LeakKind) -> RootEntryToken:
    count, human_size = parse_count_and_size(trimmed)

    # Type name is searched after the marker so the size parenthesis is skipped
    remainder = trimmed[trimmed.index(marker) + len(marker):]
    type_name, address = _extract_type_and_address(remainder)

    return RootEntryToken(
        raw_line=line,
        count=count,
        human_size=human_size,
        leak_kind=leak_kind,
        type_name=type_name,
        address=address,
        instance_size_bytes=parse_instance_size(trimmed),
    )


def _parse_named_child(line: str, trimmed: str) -> ChildEntryToken:
    """
    Parse a child line that names its retaining field.

    Handles:
        13 (1.42K) windowManager --> <MockWindowManager 0x600000c6cc90> [48]
        2 (176 bytes) fileManager + 16 --> <Swift closure context 0x600001759600> [64]
        1 (112 bytes)  + 8 --> <Swift closure context 0x600002962ca0> [112]
    """

    count, human_size = parse_count_and_size(trimmed)
    arrow_pos = trimmed.index(OWNERSHIP_ARROW)

    field_name, field_offset = "", None
    size_span = _find_size_span(trimmed)
    if size_span is not None and size_span[1] < arrow_pos:
        field_name, field_offset = split_field_name(trimmed[size_span[1] + 1:arrow_pos])

    type_name, address = _extract_type_and_address(trimmed[arrow_pos + len(OWNERSHIP_ARROW):])

    return ChildEntryToken(
        raw_line=line,
        depth=compute_depth(line),
        count=count or 0,
        human_size=human_size,
        field_name=field_name,
        field_offset=field_offset,
        type_name=type_name,
        address=address,
        instance_size_bytes=parse_instance_size(trimmed),
    )


def _parse_bare_child(line: str, trimmed: str) -> ChildEntryToken:
    """Parse an anonymous child, e.g. '1 (32 bytes) 0x600000231380 [32]'."""

    count, human_size = parse_count_and_size(trimmed)

    size_span = _find_size_span(trimmed)
    remainder = trimmed[size_span[1] + 1:] if size_span is not None else trimmed

    if "<" in remainder:
        type_name, address = _extract_type_and_address(remainder)
    else:
        type_name, address = "", find_address(remainder)

    return ChildEntryToken(
        raw_line=line,
        depth=compute_depth(line),
        count=count or 0,
        human_size=human_size,
        field_name="",
        field_offset=None,
        type_name=type_name,
        address=address,
        instance_size_bytes=parse_instance_size(trimmed),
    )


def _looks_like_bare_child(trimmed: str) -> bool:
    if not trimmed[0].isdigit() or OWNERSHIP_ARROW in trimmed:
        return False

    if _find_size_span(trimmed) is None:
        return False

    return bool(_BYTE_COUNT_PATTERN.search(trimmed)) and bool(_ADDRESS_PATTERN.search(trimmed))


# =============================================================================
# FIELD EXTRACTORS
# =============================================================================

def parse_count_and_size(text: str) -> tuple[Optional[int], str]:
    """
    Extract the leading instance count and the parenthesized human size.

    Args:
        text: Trimmed line, e.g. "32 (3.66K) ROOT LEAK: ...".

    Returns:
        (count, human_size). count is None when the first token is not an
        integer, human_size is "" when no balanced parenthesis is found.
    """

    count = None
    parts = text.split(None, 1)
    if parts:
        try:
            count = int(parts[0])
        except ValueError:
            count = None

    human_size = ""
    size_span = _find_size_span(text)
    if size_span is not None:
        human_size = text[size_span[0] + 1:size_span[1]].strip()

    return count, human_size


def compute_depth(line: str) -> int:
    """Ownership-chain depth of an untrimmed line: leading spaces // 3."""
    leading_spaces = len(line) - len(line.lstrip(" "))
    return leading_spaces // SPACES_PER_LEVEL


def split_field_name(text: str) -> tuple[str, Optional[int]]:
    """
    Split the text between the size and the arrow into field name and offset.

    Args:
        text: e.g. "windowManager", "fileManager + 16" or " + 8".

    Returns:
        (field_name, field_offset). The offset is None when there is no '+'
        or the token after it is not an integer.
    """

    text = text.strip()
    if not text:
        return "", None

    if "+" not in text:
        return text, None

    name, _, rest = text.partition("+")
    offset_parts = rest.split()

    field_offset = None
    if offset_parts:
        try:
            field_offset = int(offset_parts[0])
        except ValueError:
            field_offset = None

    return name.strip(), field_offset


def match_angle_brackets(text: str) -> Optional[str]:
    """
    Return the content of the first outermost <...> span in text.

    Nesting is tracked with a depth counter so that generic type names
    such as "Swift._DictionaryStorage<Foundation.UUID, Client.AppWindowInfo>"
    are not cut at their first '>'.

    Args:
        text: Any string.

    Returns:
        Text between the matching brackets, or None if there is no '<'
        or the brackets never balance.
    """

    start = text.find("<")
    if start == -1:
        return None

    end = _find_closing(text, start, "<", ">")
    if end is None:
        return None

    return text[start + 1:end]


def split_type_and_address(inner: str) -> tuple[str, str]:
    """
    Separate the type name from the trailing pointer inside a <...> span.

    The address is the last whitespace-delimited token starting with "0x";
    the type name is everything before it. Without such a token the whole
    text is the type name and the address is empty.
    """

    for match in reversed(list(_TOKEN_PATTERN.finditer(inner))):
        if match.group().startswith(POINTER_PREFIX):
            return inner[:match.start()].strip(), match.group()

    return inner.strip(), ""


def parse_instance_size(text: str) -> int:
    """Integer inside the last [...] pair of the line, 0 if absent or invalid."""

    open_pos = text.rfind("[")
    if open_pos == -1:
        return 0

    close_pos = text.find("]", open_pos)
    if close_pos == -1:
        return 0

    try:
        return int(text[open_pos + 1:close_pos].strip())
    except ValueError:
        return 0


def find_address(text: str) -> str:
    """First pointer-style token in text, or "" when there is none."""
    match = _ADDRESS_PATTERN.search(text)
    return match.group() if match else ""


def _extract_type_and_address(text: str) -> tuple[str, str]:
    inner = match_angle_brackets(text)
    if inner is None:
        return "", ""
    return split_type_and_address(inner)


def _find_size_span(text: str) -> Optional[tuple[int, int]]:
    """Positions of the first '(' and its matching ')'."""

    start = text.find("(")
    if start == -1:
        return None

    end = _find_closing(text, start, "(", ")")
    if end is None:
        return None

    return start, end


def _find_closing(text: str, start: int, opening: str, closing: str) -> Optional[int]:
    """
    Walk from an opening bracket and return the index of its match.

    Args:
        text: String to scan.
        start: Index of the opening bracket.
        opening: Opening character, e.g. '<'.
        closing: Closing character, e.g. '>'.

    Returns:
        Index of the closing bracket that brings depth back to 0, or None.
    """

    depth = 0

    for index in range(start, len(text)):
        char = text[index]
        if char == opening:
            depth += 1
        elif char == closing:
            depth -= 1
            if depth == 0:
                return index

    return None
