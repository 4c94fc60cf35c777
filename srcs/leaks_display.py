"""
Display Module for Leakscope

Formats and displays parsed leak reports in the terminal with rich.
Values coming from the `leaks` output are wrapped in Text so that
brackets in type names are never read as markup. Raw text bypasses rich.
"""

import sys
from collections import Counter
from typing import Optional, TextIO

from rich import box
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from leaks_colors import (
    GREEN, DARK_GREEN, LIGHT_YELLOW, DARK_YELLOW, GRAY, LEAK_KIND_STYLES
)
from leaks_report import LeaksReport
from leaks_types import LeakRecord

TOP_TYPES_LIMIT = 10


def display_summary(report: LeaksReport, console: Optional[Console] = None) -> None:
    """
    Display leak counts, process information and the most frequent root types.

    Args:
        report: Report to summarize (already filtered if needed).
        console: Target console, stdout by default.
    """

    console = console or Console()

    console.print()
    console.print(Text("• Leak Summary", style=GREEN))
    console.print(_build_counts_table(report))

    if report.summary:
        console.print(Text("• Process info", style=GREEN))
        console.print(_build_process_info_table(report))

    if report.leaks:
        console.print(Text("• Leak types found", style=GREEN))
        console.print(_build_top_types_table(report))


def display_leaks(report: LeaksReport, console: Optional[Console] = None) -> None:
    """
    Display every record as a panel with its ownership chain.

    Args:
        report: Report whose records are shown, in order.
        console: Target console, stdout by default.
    """

    console = console or Console()

    if not report.leaks:
        console.print(Text("No leaks found.", style=GREEN))
        return

    total = len(report.leaks)
    for leak_number, leak in enumerate(report.leaks, 1):
        console.print(_build_leak_panel(leak, leak_number, total))


def display_raw(report: LeaksReport, file: Optional[TextIO] = None) -> None:
    """
    Write the summary lines and raw lines of each kept record, unstyled.

    Tabs and control characters from the `leaks` output are written
    unchanged.
    """
    file = file or sys.stdout
    file.write(report.to_raw_text())


def _build_counts_table(report: LeaksReport) -> Table:
    """
    Builds the counts table (total entries, root leaks, root cycles).

    Args:
        report: Report to count.

    Returns:
        Two-column table, labels left and counts right-aligned.
    """

    table = Table(show_header=False, box=box.SIMPLE, border_style=LIGHT_YELLOW)
    table.add_column(style=LIGHT_YELLOW)
    table.add_column(justify="right", style=DARK_YELLOW)

    table.add_row("Total entries", str(len(report.leaks)))
    table.add_row("Root leaks", str(len(report.root_leaks_only())))
    table.add_row("Root cycles", str(len(report.root_cycles_only())))

    return table


def _build_process_info_table(report: LeaksReport) -> Table:
    table = Table(show_header=False, box=box.SIMPLE)
    table.add_column(style=LIGHT_YELLOW)
    table.add_column()

    for key, value in report.summary.items():
        table.add_row(Text(key), Text(value))

    return table


def _build_top_types_table(report: LeaksReport) -> Table:
    """Root type names by number of records, most frequent first."""

    table = Table(box=box.SIMPLE, header_style=DARK_GREEN)
    table.add_column("Type")
    table.add_column("Records", justify="right", style=DARK_YELLOW)

    # most_common keeps first-seen order between equal counts
    type_counts = Counter(leak.root_type_name for leak in report.leaks)
    for type_name, count in type_counts.most_common(TOP_TYPES_LIMIT):
        table.add_row(Text(type_name), str(count))

    return table


def _build_leak_panel(leak: LeakRecord, leak_number: int, total: int) -> Panel:
    """
    Builds the panel of one record: root line, optional test name, children.

    Args:
        leak: Record to render.
        leak_number: Position of the record, starting at 1.
        total: Number of records in the report.

    Returns:
        Panel titled "Leak n / total".
    """

    kind_style = LEAK_KIND_STYLES[leak.leak_kind]

    root_line = Text.assemble(
        (leak.leak_kind.value, kind_style),
        "  ",
        (leak.root_type_name, "bold"),
        (f"  {leak.root_count} ({leak.root_size_human_readable})"
         f"  [{leak.root_instance_size_bytes} bytes]", LIGHT_YELLOW),
    )

    parts = [root_line]
    if leak.test_name:
        parts.append(Text(f"Test: {leak.test_name}", style=GRAY))

    if leak.children:
        parts.append(_build_children_table(leak))
    else:
        parts.append(Text("No children", style=GRAY))

    return Panel(
        Group(*parts),
        title=f"Leak {leak_number} / {total}",
        title_align="left",
        border_style=kind_style,
    )


def _build_children_table(leak: LeakRecord) -> Table:
    table = Table(box=box.SIMPLE, header_style=DARK_GREEN)
    table.add_column("Count", justify="right")
    table.add_column("Size")
    table.add_column("Field")
    table.add_column("Type")
    table.add_column("Bytes", justify="right")

    for child in leak.children:
        table.add_row(
            str(child.count),
            Text(child.size_human_readable),
            Text(child.field_name or "-", style=GRAY if not child.field_name else ""),
            Text(child.type_name or "-", style=GRAY if not child.type_name else ""),
            str(child.instance_size_bytes),
        )

    return table
