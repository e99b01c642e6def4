# === FILE: site_audit/config.py ===
"""
Модуль для загрузки и валидации конфигурации SiteAudit.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
    model_validator,
)


class AuditConfig(BaseModel):
    """Конфигурация для одного запуска аудита."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    start_url: Optional[HttpUrl] = Field(None, description="Стартовый URL обхода.")
    max_pages: int = Field(1000, ge=1, description="Жесткий лимит по числу страниц.")
    max_depth: Optional[int] = Field(None, ge=0, description="Максимальная глубина обхода (None = без ограничения).")
    crawl_concurrency: int = Field(10, ge=1, description="Число одновременно загружаемых страниц.")
    link_concurrency: int = Field(10, ge=1, description="Число одновременных проверок ссылок.")
    request_timeout: float = Field(10.0, gt=0, description="Таймаут проверки одной ссылки (секунд).")
    page_timeout: float = Field(30.0, gt=0, description="Таймаут загрузки одной страницы (секунд).")
    user_agent: str = Field("SiteAuditBot/1.0", min_length=1, description="Заголовок User-Agent.")
    verify_ssl: bool = Field(True, description="Проверять TLS-сертификаты.")
    sitemap_url: Optional[HttpUrl] = Field(None, description="URL sitemap.xml для сверки.")
    lighthouse_sample: int = Field(10, ge=0, description="Сколько URL отдавать аудитору.")
    auditor: Literal["lighthouse", "pagespeed"] = Field("lighthouse", description="Реализация аудитора страниц.")
    lighthouse_binary: str = Field("lighthouse", min_length=1, description="Путь к CLI lighthouse.")
    pagespeed_api_key: Optional[str] = Field(None, description="Ключ PageSpeed Insights API.")
    output_dir: Path = Field(Path("output"), description="Каталог для отчётов.")

    @field_validator("user_agent", mode="before")
    def _strip_user_agent(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @model_validator(mode="before")
    @classmethod
    def _pagespeed_key_from_env(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("auditor") == "pagespeed" and not data.get("pagespeed_api_key"):
            key = os.environ.get("PAGESPEED_API_KEY")
            if key:
                data = {**data, "pagespeed_api_key": key}
        return data


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> AuditConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект AuditConfig.
    Без явного пути берёт configs/default.yaml, а если его нет, значения по умолчанию.
    При отсутствии явно указанного файла бросает FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return AuditConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    try:
        return AuditConfig(**data)
    except ValidationError:
        raise


def override(config: AuditConfig, **changes: Any) -> AuditConfig:
    """Returns a validated copy of *config* with non-None *changes* applied."""
    update = {k: v for k, v in changes.items() if v is not None}
    if not update:
        return config
    return AuditConfig(**{**config.model_dump(mode="json"), **update})
