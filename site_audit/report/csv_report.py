"""site_audit.report.csv_report: SEO issues as a spreadsheet-friendly CSV."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, Union

from site_audit.seo_issues import SeoIssue

COLUMNS = (
    ("url", "URL"),
    ("title", "Title"),
    ("metaDescription", "Meta Description"),
    ("h1", "H1"),
    ("canonical", "Canonical"),
    ("statusCode", "Status Code"),
    ("depth", "Depth"),
    ("issueCount", "Issue Count"),
    ("issues", "Issues"),
)


def write_issues_csv(issues: Iterable[SeoIssue], output_path: Union[str, Path]) -> Path:
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow([title for _, title in COLUMNS])
        for issue in issues:
            row = issue.to_dict()
            writer.writerow([row[key] for key, _ in COLUMNS])
    return output
