"""site_audit.report: writers for stage artifacts (JSON, CSV, URL lists, HTML)."""

from __future__ import annotations

from site_audit.report.csv_report import write_issues_csv
from site_audit.report.html_report import render_html
from site_audit.report.json_report import write_json, write_url_list

__all__ = ["write_json", "write_url_list", "write_issues_csv", "render_html"]
