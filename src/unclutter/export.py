"""CSV and JSONL reports for sitemap crawls."""

from __future__ import annotations

import csv
import io
import json
from typing import IO

from unclutter.sitemap import CrawlRecord

FIELDNAMES = ["url", "status", "path", "title", "word_count", "error"]


def record_to_row(record: CrawlRecord) -> dict:
    """Flatten a CrawlRecord into a CSV-friendly dict."""
    row = record.to_dict()
    row["path"] = row["path"] or ""
    return {key: row[key] for key in FIELDNAMES}


def records_to_csv(
    rows: list[dict],
    output: IO[str] | None = None,
) -> str | None:
    """Write flattened record rows as CSV.

    Args:
        rows: List of dicts from record_to_row().
        output: Optional writable stream. If None, returns CSV as string.

    Returns:
        CSV string if output is None, otherwise None (written to stream).
    """
    if not rows:
        return "" if output is None else None

    target = io.StringIO() if output is None else output
    writer = csv.DictWriter(target, fieldnames=list(rows[0].keys()))
    writer.writeheader()
    writer.writerows(rows)
    return target.getvalue() if output is None else None


def record_to_jsonl_line(record: CrawlRecord) -> str:
    """Serialize a CrawlRecord as one compact JSON line (no trailing newline)."""
    return json.dumps(record.to_dict(), separators=(",", ":"), ensure_ascii=False)


def write_report(records: list[CrawlRecord], output: IO[str], fmt: str = "csv") -> None:
    """Write a crawl report as CSV or JSONL."""
    if fmt == "jsonl":
        for record in records:
            output.write(record_to_jsonl_line(record) + "\n")
    else:
        records_to_csv([record_to_row(r) for r in records], output=output)
