"""Parse `apt list` output into package records."""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterable

from apt_exporter.core.models import PackageRecord

# <name>/<suite>[,<suite>...] <version> <architecture> [...]
LISTING_LINE = re.compile(r"^([^ ]+)/([^ ]+) [^ ]+ ([^ ]+)")


def unique(items: Iterable[str]) -> tuple[str, ...]:
    """Deduplicate items keeping the order of first appearance."""
    return tuple(dict.fromkeys(items))


def parse_line(line: str) -> PackageRecord | None:
    """Parse a single listing line.

    Args:
        line: One line of `apt list` output.

    Returns:
        A PackageRecord, or None if the line is not a package entry.
    """
    match = LISTING_LINE.match(line)
    if match is None:
        return None

    name, suite_list, architecture = match.groups()
    suites = unique(s for s in suite_list.split(",") if s)
    if not suites:
        return None

    return PackageRecord(name=name, suites=suites, architecture=architecture)


def parse_apt_output(raw: bytes | str) -> list[PackageRecord]:
    """Convert raw `apt list` output into package records.

    Header lines, blank lines and anything else that is not a package entry
    are skipped.

    Args:
        raw: The command's stdout.

    Returns:
        Records in output order. Empty if nothing matched.
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    records: list[PackageRecord] = []

    for line in text.splitlines():
        record = parse_line(line)
        if record is not None:
            records.append(record)

    return records


def count_by_labels(records: Iterable[PackageRecord]) -> Counter[tuple[str, str]]:
    """Count (record, suite) pairs by architecture and suite."""
    counts: Counter[tuple[str, str]] = Counter()
    for record in records:
        for suite in record.suites:
            counts[(record.architecture, suite)] += 1

    return counts
