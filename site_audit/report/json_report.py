# site_audit/report/json_report.py

"""
Запись JSON-отчётов и списков URL для стадий SiteAudit.
"""
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping


def write_json(data: Mapping[str, Any], output_path: Path | str, *, timestamp: bool = True) -> Path:
    """
    Сохраняет отчёт стадии в формате JSON по указанному пути.

    :param data: словарь отчёта (обычно результат ``to_dict()``)
    :param output_path: путь к JSON-файлу
    :param timestamp: добавить поле ``timestamp`` первым ключом
    :return: Path сохранённого файла

    Пример:
    ```python
    from site_audit.report.json_report import write_json
    report_path = write_json(link_report.to_dict(), 'output/broken-links.json')
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    payload = dict(data)
    if timestamp:
        payload = {"timestamp": datetime.now(timezone.utc).isoformat(), **payload}

    with output.open('w', encoding='utf-8') as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)

    return output


def write_url_list(urls: Iterable[str], output_path: Path | str) -> Path:
    """Сохраняет список URL, по одному на строку."""
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text("\n".join(urls), encoding="utf-8")
    return output
