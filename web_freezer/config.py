# === FILE: web_freezer/config.py ===
"""
Модуль для загрузки и валидации конфигурации архиватора WebFreezer.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Literal, Optional, Union
from urllib.parse import urlsplit

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from web_freezer.crawler.fetcher import is_private_host

MAX_URL_LENGTH = 2048
DEFAULT_USER_AGENT = "WebFreezer/1.0 (Website Archiver)"
MB = 1024 * 1024


class UrlValidationError(ValueError):
    """Стартовый URL отклонён до начала обхода."""


def validate_start_url(url: Any) -> str:
    """Проверяет стартовый URL и возвращает его без пробелов по краям.

    Отклоняет пустые и слишком длинные строки, схемы кроме http/https,
    URL без хоста, URL с учётными данными и приватные/служебные хосты.
    """
    if not url or not isinstance(url, str):
        raise UrlValidationError("URL is required")
    url = url.strip()
    if len(url) > MAX_URL_LENGTH:
        raise UrlValidationError(f"URL is too long (max {MAX_URL_LENGTH} characters)")
    try:
        parts = urlsplit(url)
        parts.port
    except ValueError as exc:
        raise UrlValidationError("Invalid URL format") from exc
    if not parts.scheme or not parts.netloc:
        raise UrlValidationError("Invalid URL format")
    if parts.scheme.lower() not in ("http", "https"):
        raise UrlValidationError("Only HTTP and HTTPS URLs are allowed")
    hostname = (parts.hostname or "").lower()
    if not hostname:
        raise UrlValidationError("URL must include a hostname")
    if parts.username or parts.password:
        raise UrlValidationError("URLs with credentials are not allowed")
    if is_private_host(hostname):
        raise UrlValidationError("Private/internal hosts are not allowed")
    return url


class CrawlConfig(BaseModel):
    """Конфигурация одного задания архивации."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    start_url: str = Field(..., description="Стартовый URL сайта.")
    discovery_method: Literal["sitemap", "link_discovery"] = Field(
        "sitemap", description="Способ поиска страниц: sitemap или обход ссылок."
    )
    max_pages: int = Field(100, ge=1, description="Жесткий лимит по числу страниц.")
    max_depth: int = Field(3, ge=0, description="Максимальная глубина обхода ссылок.")
    same_origin_only: bool = Field(True, description="Обходить только страницы своего origin.")

    timeout: float = Field(10.0, gt=0, description="Таймаут на один запрос (секунд).")
    user_agent: str = Field(DEFAULT_USER_AGENT, min_length=1, description="Заголовок User-Agent.")
    concurrency: int = Field(6, ge=1, description="Размер пакета параллельных загрузок.")
    max_file_size: int = Field(10 * MB, ge=1, description="Лимит размера одного файла (байт).")
    max_total_size: int = Field(100 * MB, ge=1, description="Лимит общего объёма архива (байт).")
    max_files: Optional[int] = Field(
        None, ge=1, description="Лимит числа файлов на этапе ассетов (по умолчанию 3 * max_pages)."
    )
    max_redirects: int = Field(5, ge=0, description="Максимум переходов по редиректам.")

    @field_validator("start_url", mode="before")
    def _check_start_url(cls, v: Any) -> str:
        return validate_start_url(v)

    @model_validator(mode="after")
    def _check_sizes(self) -> CrawlConfig:
        if self.max_file_size > self.max_total_size:
            raise ValueError("max_file_size must not exceed max_total_size")
        return self

    @property
    def file_limit(self) -> int:
        """Итоговый лимит файлов для этапа загрузки ассетов."""
        return self.max_files if self.max_files is not None else self.max_pages * 3


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


def read_config_file(path: Union[str, Path, None]) -> dict[str, Any]:
    """
    Читает YAML или JSON и возвращает «сырые» настройки без проверки.
    При отсутствии файла бросает FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _read_yaml(path_obj)
    if suffix == ".json":
        return _read_json(path_obj)
    raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")


def load_config(path: Union[str, Path, None], **overrides: Any) -> CrawlConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект CrawlConfig.
    Значения из *overrides* (кроме None) имеют приоритет над файлом.
    """
    data = read_config_file(path)
    data.update({k: v for k, v in overrides.items() if v is not None})
    return CrawlConfig(**data)


__all__ = [
    "CrawlConfig",
    "UrlValidationError",
    "load_config",
    "read_config_file",
    "validate_start_url",
]
