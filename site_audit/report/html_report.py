"""site_audit.report.html_report: Генерация HTML-сводки аудита с помощью Jinja2."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
TEMPLATE_NAME = "report.html.j2"


def render_html(
    summary: Mapping[str, Any],
    output_path: Union[Path, str],
    template_dir: Optional[Union[Path, str]] = None,
) -> Path:
    """Рендерит HTML-сводку прогона из шаблона и сохраняет её по указанному пути.

    Args:
        summary: результат ``AuditPipeline.summary()`` (run id, сводки стадий, артефакты).
        output_path: путь к итоговому HTML-файлу.
        template_dir: директория с Jinja2-шаблонами; по умолчанию встроенная.

    Returns:
        Path до сохранённого HTML-файла.

    Пример:
    ```python
    from site_audit.report.html_report import render_html
    html_path = render_html(pipeline.summary(), 'output/report.html')
    ```
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(template_dir or DEFAULT_TEMPLATE_DIR)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    template = env.get_template(TEMPLATE_NAME)

    html_content = template.render(
        run_id=summary.get("runId", ""),
        stages=summary.get("stages", {}),
        artifacts=summary.get("artifacts", {}),
    )
    output_path.write_text(html_content, encoding="utf-8")

    return output_path
