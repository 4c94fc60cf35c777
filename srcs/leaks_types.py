"""
Type definitions for Leakscope

Central repository for the token variants, leak records and JSON shapes
used across the project. Parsed values are frozen dataclasses; the JSON
projection is described with TypedDict structures.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TypedDict, Optional, Union


class InvalidInvocationParamsError(ValueError):
    """Raised when invocation parameters do not name exactly one process."""

    pass


class LeakKind(Enum):
    """Kind of root entry, valued by its JSON name."""
    ROOT_LEAK = "ROOT_LEAK"
    ROOT_CYCLE = "ROOT_CYCLE"


class LeakFilter(Enum):
    """Which leak kinds to keep in a report."""
    ALL = "all"
    LEAKS = "leaks"
    CYCLES = "cycles"


class OutputFormat(Enum):
    """How the CLI prints a report."""
    RAW = "raw"
    JSON = "json"
    JSON_PRETTY = "json_pretty"


# =============================================================================
# TOKENS
# =============================================================================

@dataclass(frozen=True)
class HeaderToken:
    """Process header line, e.g. 'Process 35988: 875 leaks for ...'."""
    raw_line: str
    process_info: str


@dataclass(frozen=True)
class SummaryToken:
    """'key: value' metadata line."""
    raw_line: str
    key: str
    value: str


@dataclass(frozen=True)
class RootEntryToken:
    """ROOT LEAK / ROOT CYCLE line opening a new record."""
    raw_line: str
    count: Optional[int]
    human_size: str
    leak_kind: LeakKind
    type_name: str
    address: str
    instance_size_bytes: int


@dataclass(frozen=True)
class ChildEntryToken:
    """Object reachable from the current root, named or anonymous."""
    raw_line: str
    depth: int
    count: int
    human_size: str
    field_name: str
    field_offset: Optional[int]
    type_name: str
    address: str
    instance_size_bytes: int


@dataclass(frozen=True)
class TotalLineToken:
    """'<< TOTAL >>' line."""
    raw_line: str
    count: Optional[int]
    human_size: str


@dataclass(frozen=True)
class StackFrameToken:
    """Digit-leading line of the older frame format."""
    raw_line: str
    frame: str


@dataclass(frozen=True)
class UnknownToken:
    raw_line: str


LeaksToken = Union[
    HeaderToken,
    SummaryToken,
    RootEntryToken,
    ChildEntryToken,
    TotalLineToken,
    StackFrameToken,
    UnknownToken,
]


# =============================================================================
# RECORDS
# =============================================================================

@dataclass(frozen=True)
class ChildInfo:
    """Child of a root leak or cycle, without depth and address."""
    count: int
    size_human_readable: str
    field_name: str
    type_name: str
    instance_size_bytes: int


@dataclass(frozen=True)
class LeakRecord:
    """One root leak or root cycle with its ownership chain."""
    leak_kind: LeakKind
    root_count: int
    root_size_human_readable: str
    root_type_name: str
    root_instance_size_bytes: int
    children: tuple[ChildInfo, ...] = ()
    raw_lines: tuple[str, ...] = ()
    test_name: Optional[str] = None


@dataclass(frozen=True)
class LeaksInvocationParams:
    """
    Parameters the `leaks` tool was invoked with.

    Exactly one of pid or process_name must be set.

    Raises:
        InvalidInvocationParamsError: If both or neither are given.
    """
    pid: Optional[int] = None
    process_name: Optional[str] = None
    device_id: str = "booted"
    exclude_symbols: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        given = [value for value in (self.pid, self.process_name) if value is not None]
        if len(given) != 1:
            raise InvalidInvocationParamsError(
                "Exactly one of pid or process_name must be provided "
                f"(got pid={self.pid}, process_name={self.process_name})"
            )

    def __str__(self) -> str:
        if self.pid is not None:
            return f"pid={self.pid}"
        return f"processName={self.process_name}"


@dataclass(frozen=True)
class LeaksRawResult:
    """Output captured from one `leaks` invocation."""
    params: LeaksInvocationParams
    raw_output: str
    exit_code: int = 0
    stderr: str = ""
    invocation_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# =============================================================================
# JSON SHAPES
# =============================================================================

class ChildJson(TypedDict):
    """Serialized ChildInfo."""
    count: int
    sizeHumanReadable: str
    fieldName: str
    typeName: str
    instanceSizeBytes: int


class LeakJson(TypedDict):
    """Serialized LeakRecord."""
    leakType: str
    rootCount: int
    rootSizeHumanReadable: str
    rootTypeName: str
    rootInstanceSizeBytes: int
    children: list[ChildJson]
    testName: Optional[str]
    rawLines: list[str]


class ParamsJson(TypedDict):
    """Serialized LeaksInvocationParams."""
    pid: Optional[int]
    processName: Optional[str]
    deviceId: str
    excludeSymbols: list[str]


class ReportJson(TypedDict):
    """Top-level serialized report."""
    params: ParamsJson
    invocationTime: str
    leaks: list[LeakJson]
    summary: dict[str, str]
    rawOutput: str
