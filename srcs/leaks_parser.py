"""
Leaks report parser module.

Rebuilds root leaks and root cycles from the token stream of a `leaks`
report. One forward pass, one open record at a time: a root entry opens
a record, following child lines join it, and any header, summary or
TOTAL line closes it.
"""

from typing import Optional

from leaks_logging import get_logger
from leaks_report import LeaksReport
from leaks_tokenizer import tokenize
from leaks_types import (
    ChildInfo,
    LeakRecord,
    LeaksRawResult,
    LeaksToken,
    HeaderToken,
    SummaryToken,
    RootEntryToken,
    ChildEntryToken,
    TotalLineToken,
)

logger = get_logger("parser")


class _OpenRecord:
    """Root entry, children and raw lines gathered for the record being built."""

    def __init__(self, raw_lines: Optional[list[str]] = None):
        self.root: Optional[RootEntryToken] = None
        self.children: list[ChildInfo] = []
        self.raw_lines: list[str] = list(raw_lines or [])


def parse_leaks_report(raw_result: LeaksRawResult, test_name: Optional[str] = None) -> LeaksReport:
    """
    Parse the output of one `leaks` invocation into a structured report.

    Args:
        raw_result: Captured output and the parameters it was produced with.
        test_name: Optional identifier (e.g. an XCTest case name) attached
                   to every record of this report.

    Returns:
        Report with records in text order. Malformed input never raises;
        an empty leaks tuple is the only "nothing found" signal.

    Example:
        >>> params = LeaksInvocationParams(process_name="Client")
        >>> raw = LeaksRawResult(params=params, raw_output="32 (3.66K) ROOT LEAK: <Foo 0x1> [8]")
        >>> parse_leaks_report(raw).leaks[0].root_type_name
        'Foo'
    """

    tokens = tokenize(raw_result.raw_output)
    return build_leaks_report(tokens, raw_result, test_name)


def build_leaks_report(tokens: list[LeaksToken],
                       raw_result: LeaksRawResult,
                       test_name: Optional[str] = None) -> LeaksReport:
    """
    Group already tokenized lines into leak records and a summary map.

    Args:
        tokens: Output of tokenize(), in line order.
        raw_result: Source of params, invocation time and raw text.
        test_name: Identifier attached to every produced record.

    Returns:
        The assembled report.
    """

    leaks: list[LeakRecord] = []
    summary: dict[str, str] = {}
    current: Optional[_OpenRecord] = None

    for token in tokens:

        if isinstance(token, HeaderToken):
            _flush_record(current, leaks, test_name)
            # Header text is kept so it shows up in the next record's raw lines
            current = _OpenRecord([token.raw_line])

        elif isinstance(token, SummaryToken):
            _flush_record(current, leaks, test_name)
            current = None
            summary[token.key] = token.value

        elif isinstance(token, TotalLineToken):
            _flush_record(current, leaks, test_name)
            current = None

        elif isinstance(token, RootEntryToken):
            preamble: list[str] = []
            if current is not None:
                if current.root is None:
                    preamble = current.raw_lines
                else:
                    _flush_record(current, leaks, test_name)

            current = _OpenRecord(preamble + [token.raw_line])
            current.root = token

        elif isinstance(token, ChildEntryToken):
            if current is None or current.root is None:
                logger.debug("Dropped child line without a root entry: %s", token.raw_line.strip())
                continue

            current.children.append(ChildInfo(
                count=token.count,
                size_human_readable=token.human_size,
                field_name=token.field_name,
                type_name=token.type_name,
                instance_size_bytes=token.instance_size_bytes,
            ))
            current.raw_lines.append(token.raw_line)

        # Stack frames and unknown lines only extend the audit trail
        elif current is not None:
            current.raw_lines.append(token.raw_line)

    _flush_record(current, leaks, test_name)

    logger.debug("Built %d leak record(s), %d summary entries", len(leaks), len(summary))

    return LeaksReport(
        params=raw_result.params,
        invocation_time=raw_result.invocation_time,
        leaks=tuple(leaks),
        summary=summary,
        raw_output=raw_result.raw_output,
    )


def _flush_record(record: Optional[_OpenRecord], leaks: list[LeakRecord], test_name: Optional[str]) -> None:
    """
    Emit the open record if it has a parsed count and a type name.

    Header preambles, root lines without a type name and other fragments
    are discarded here without error.
    """

    if record is None or record.root is None:
        return

    root = record.root
    if root.count is None or not root.type_name:
        logger.debug("Discarded root entry without count or type name: %s", root.raw_line.strip())
        return

    leaks.append(LeakRecord(
        leak_kind=root.leak_kind,
        root_count=root.count,
        root_size_human_readable=root.human_size,
        root_type_name=root.type_name,
        root_instance_size_bytes=root.instance_size_bytes,
        children=tuple(record.children),
        raw_lines=tuple(record.raw_lines),
        test_name=test_name,
    ))
