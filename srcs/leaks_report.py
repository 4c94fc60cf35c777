"""
Leaks report module.

Immutable result of one parse: ordered leak records, the summary map and
the invocation they came from. Filtering returns a new report and
serialization is a pure projection to JSON.
"""

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType

from leaks_types import (
    LeakFilter,
    LeakKind,
    LeakRecord,
    ChildInfo,
    LeaksInvocationParams,
    ChildJson,
    LeakJson,
    ParamsJson,
    ReportJson,
)


@dataclass(frozen=True)
class LeaksReport:
    """Structured representation of one full `leaks` report."""
    params: LeaksInvocationParams
    invocation_time: datetime
    leaks: tuple[LeakRecord, ...] = ()
    summary: Mapping[str, str] = field(default_factory=dict)
    raw_output: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "leaks", tuple(self.leaks))
        if not isinstance(self.summary, MappingProxyType):
            object.__setattr__(self, "summary", MappingProxyType(dict(self.summary)))

    # =========================================================================
    # FILTERING
    # =========================================================================

    def filter_to_cycles(self) -> "LeaksReport":
        """New report keeping only ROOT CYCLE records, in original order."""
        return self._with_leaks(leak for leak in self.leaks if leak.leak_kind is LeakKind.ROOT_CYCLE)

    def filter_to_leaks(self) -> "LeaksReport":
        """New report keeping only ROOT LEAK records, in original order."""
        return self._with_leaks(leak for leak in self.leaks if leak.leak_kind is LeakKind.ROOT_LEAK)

    def apply_filter(self, leak_filter: LeakFilter) -> "LeaksReport":
        if leak_filter is LeakFilter.LEAKS:
            return self.filter_to_leaks()
        if leak_filter is LeakFilter.CYCLES:
            return self.filter_to_cycles()
        return self

    def root_leaks_only(self) -> tuple[LeakRecord, ...]:
        return tuple(leak for leak in self.leaks if leak.leak_kind is LeakKind.ROOT_LEAK)

    def root_cycles_only(self) -> tuple[LeakRecord, ...]:
        return tuple(leak for leak in self.leaks if leak.leak_kind is LeakKind.ROOT_CYCLE)

    def _with_leaks(self, leaks: Iterable[LeakRecord]) -> "LeaksReport":
        return replace(self, leaks=tuple(leaks))

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_dict(self) -> ReportJson:
        """
        Project the report onto plain JSON-compatible data.

        Key order is fixed: params, invocationTime, leaks, summary, rawOutput.
        The summary keeps its insertion order.
        """

        return {
            "params": _params_to_dict(self.params),
            "invocationTime": self.invocation_time.isoformat(),
            "leaks": [_leak_to_dict(leak) for leak in self.leaks],
            "summary": dict(self.summary),
            "rawOutput": self.raw_output,
        }

    def serialize_compact(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    def serialize_pretty(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    def to_raw_text(self) -> str:
        """
        Rebuild a `leaks`-like text from the kept records.

        Summary lines come first as "key: value", then each record's raw
        lines, every block followed by a blank line.
        """

        lines = [f"{key}: {value}" for key, value in self.summary.items()]
        if lines:
            lines.append("")

        for leak in self.leaks:
            lines.extend(leak.raw_lines)
            lines.append("")

        return "\n".join(lines) + "\n" if lines else ""


def _params_to_dict(params: LeaksInvocationParams) -> ParamsJson:
    return {
        "pid": params.pid,
        "processName": params.process_name,
        "deviceId": params.device_id,
        "excludeSymbols": list(params.exclude_symbols),
    }


def _leak_to_dict(leak: LeakRecord) -> LeakJson:
    return {
        "leakType": leak.leak_kind.value,
        "rootCount": leak.root_count,
        "rootSizeHumanReadable": leak.root_size_human_readable,
        "rootTypeName": leak.root_type_name,
        "rootInstanceSizeBytes": leak.root_instance_size_bytes,
        "children": [_child_to_dict(child) for child in leak.children],
        "testName": leak.test_name,
        "rawLines": list(leak.raw_lines),
    }


def _child_to_dict(child: ChildInfo) -> ChildJson:
    return {
        "count": child.count,
        "sizeHumanReadable": child.size_human_readable,
        "fieldName": child.field_name,
        "typeName": child.type_name,
        "instanceSizeBytes": child.instance_size_bytes,
    }
