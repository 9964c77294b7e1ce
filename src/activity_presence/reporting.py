"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from typing import Mapping

from .formatting import format_duration
from .models import ActivityResult


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, totals: Mapping[str, float]) -> None:
        self.totals = dict(totals)

    def print_session_summary(self) -> None:
        if not self.totals:
            print("No activity recorded this session.")
            return

        total = sum(self.totals.values())
        print("Session summary")
        print("-" * 40)
        print(f"Tracked time: {format_duration(total * 1000)}")
        print()
        print("By category:")
        for category, seconds in aggregate_by_category(self.totals):
            print(f"  {category:<30} {format_duration(seconds * 1000)}")


def aggregate_by_category(totals: Mapping[str, float]) -> list[tuple[str, float]]:
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)


def describe_result(result: ActivityResult) -> str:
    lines = [
        f"Category: {result.category}",
        f"Icon:     {result.icon_key}",
        f"Details:  {result.details}",
        f"State:    {result.state}",
    ]
    if result.identity:
        lines.append(f"Identity: {result.identity}")
    if not result.matched:
        lines.append("(no rule matched; generic fallback)")
    return "\n".join(lines)
