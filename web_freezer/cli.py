#!/usr/bin/env python3
# === FILE: web_freezer/cli.py ===
"""
Точка входа для запуска архиватора WebFreezer через командную строку.

Команды:
  archive URL   Обойти сайт и сохранить офлайн-архив (ZIP)
  config        Показать итоговую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)

Команда archive опции:
  --output, -o PATH   Куда сохранить ZIP-архив
  --method METHOD     sitemap | link_discovery
  --max-pages INT     Лимит страниц (override max_pages)
  --max-depth INT     Глубина обхода ссылок (override max_depth)

Дополнительно:
  --version, -v       Показать версию WebFreezer

Пример:
  web_freezer archive https://example.com -o example.zip --max-pages 50
"""
import json
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from web_freezer import __version__
from web_freezer.config import CrawlConfig, read_config_file
from web_freezer.engine import Engine
from web_freezer.logger import init_logging

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def _build_config(settings: dict, **overrides) -> CrawlConfig:
    data = dict(settings)
    data.update({k: v for k, v in overrides.items() if v is not None})
    return CrawlConfig(**data)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='WebFreezer, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON (default: configs/default.yaml).'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stdout, если не указан)'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file):
    """Группа команд WebFreezer CLI."""
    init_logging(level=log_level, log_file=str(log_file) if log_file else None)
    try:
        settings = read_config_file(config_path)
    except FileNotFoundError:
        if config_path is not None:
            raise
        # без default.yaml работаем на значениях по умолчанию
        settings = {}
    except (TypeError, ValueError) as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['settings'] = settings


@cli.command('archive', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option(
    '--output', '-o', 'output',
    required=True,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Куда сохранить ZIP-архив'
)
@click.option(
    '--method', 'method',
    default=None,
    type=click.Choice(['sitemap', 'link_discovery']),
    help='Способ поиска страниц'
)
@click.option('--max-pages', 'max_pages', type=int, default=None, help='Лимит страниц')
@click.option('--max-depth', 'max_depth', type=int, default=None, help='Глубина обхода ссылок')
@click.pass_context
def archive(ctx, url, output, method, max_pages, max_depth):
    """Обойти сайт и сохранить офлайн-архив."""
    try:
        cfg = _build_config(
            ctx.obj['settings'],
            start_url=url,
            discovery_method=method,
            max_pages=max_pages,
            max_depth=max_depth,
        )
    except (ValidationError, ValueError) as e:
        print_error(f'Некорректные параметры: {e}')

    click.echo(f'Archiving {cfg.start_url}')
    try:
        result = Engine(cfg).run()
    except Exception as e:
        print_error(f'Ошибка при архивации: {e}')

    try:
        saved = result.save(output)
    except OSError as e:
        print_error(f'Ошибка при сохранении архива: {e}')
    manifest = result.manifest
    click.echo(
        f'Archive: {saved} ({manifest.pages} pages, {manifest.assets} assets, '
        f'{manifest.total_size_mb} MB, {manifest.crawl_method})'
    )


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.option('--url', 'url', default=None, help='Стартовый URL, если его нет в конфиге')
@click.pass_context
def show_config(ctx, url):
    """Показать итоговую конфигурацию в JSON."""
    settings = ctx.obj['settings']
    if url is None and 'start_url' not in settings:
        print_error('start_url не задан: укажите --url или start_url в конфиге')
    try:
        cfg = _build_config(settings, start_url=url)
    except (ValidationError, ValueError) as e:
        print_error(f'Некорректная конфигурация: {e}')
    click.echo(json.dumps(cfg.model_dump(), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    cli()
