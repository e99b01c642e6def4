# === FILE: site_audit/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска SiteAudit через командную строку.

Команды:
  audit         Полный конвейер: crawl → links → seo → lighthouse → sitemap
  crawl         Обойти сайт и сохранить список URL и данные страниц
  check-links   Проверить список URL на битые ссылки и редиректы
  seo           Найти SEO-проблемы в данных страниц
  lighthouse    Прогнать Lighthouse по выборке URL
  sitemap-diff  Сравнить sitemap с результатами обхода
  config        Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --output-dir DIR    Каталог для отчётов (override output_dir)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Стадии связываются явно: каждая команда пишет manifest-<run_id>.json, и
--manifest PATH передаёт артефакты прошлого прогона следующей команде.

Пример:
  site-audit audit https://example.com --max-pages 500 --sample 20 --sitemap https://example.com/sitemap.xml
  site-audit check-links --manifest output/manifest-2026-10-19T11-37-02-123Z.json
"""
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

import click

from site_audit import __version__
from site_audit.config import AuditConfig, load_config, override
from site_audit.context import RunContext
from site_audit.engine import AuditPipeline
from site_audit.events import EventBus, LoggingProgressRenderer
from site_audit.logger import DEFAULT_FORMAT, init_logging
from site_audit.report.html_report import render_html
from site_audit.seo_issues import load_pages
from site_audit.utils import read_url_list

CONTEXT_SETTINGS = dict(help_option_names=["--help", "-h"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def _context(ctx: click.Context, manifest: Optional[Path] = None) -> RunContext:
    cfg: AuditConfig = ctx.obj['config']
    events = EventBus()
    events.subscribe(LoggingProgressRenderer())
    if manifest is not None:
        try:
            return RunContext.from_manifest(manifest, events=events)
        except (FileNotFoundError, ValueError) as e:
            print_error(f'Ошибка чтения манифеста: {e}')
    return RunContext.create(cfg.output_dir, events=events)


def _input_path(run: RunContext, explicit: Optional[Path], artifact: str) -> Path:
    if explicit is not None:
        return explicit
    if run.has(artifact):
        return run.artifact(artifact)
    print_error(f'Не указан входной файл и в манифесте нет артефакта "{artifact}"')


def _read_urls(path: Path) -> List[str]:
    try:
        return read_url_list(path)
    except FileNotFoundError as e:
        print_error(str(e))


def _execute(cfg: AuditConfig, run: RunContext, stage):
    """Runs ``stage(pipeline)`` inside a pipeline session, then writes the manifest."""

    async def _runner():
        async with AuditPipeline(cfg, run) as pipeline:
            outcome = await stage(pipeline)
            return outcome, pipeline.summary()

    try:
        outcome, summary = asyncio.run(_runner())
    except Exception as e:
        if run.artifacts:
            click.echo(f'Manifest: {run.write_manifest()}', err=True)
        print_error(f'Ошибка выполнения: {e}')
    manifest = run.write_manifest()
    click.echo(json.dumps(summary, ensure_ascii=False, indent=2))
    click.echo(f'Manifest: {manifest}')
    return outcome


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteAudit, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--output-dir', '-o', 'output_dir',
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help='Каталог для отчётов (override output_dir)'
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
@click.option(
    '--log-format', 'log_format',
    default=DEFAULT_FORMAT,
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, output_dir, log_level, log_file, log_format):
    """SiteAudit: технический SEO-аудит сайта."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = override(load_config(config_path), output_dir=output_dir)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.argument('start_url')
@click.option('--max-pages', '-m', type=click.IntRange(min=1), default=None, help='Макс. число страниц (override max_pages)')
@click.option('--max-depth', type=click.IntRange(min=0), default=None, help='Макс. глубина обхода')
@click.option('--concurrency', type=click.IntRange(min=1), default=None, help='Число параллельных загрузок страниц')
@click.pass_context
def crawl(ctx, start_url, max_pages, max_depth, concurrency):
    """Обойти сайт начиная с START_URL."""
    try:
        cfg = override(ctx.obj['config'], start_url=start_url, max_pages=max_pages,
                       max_depth=max_depth, crawl_concurrency=concurrency)
    except Exception as e:
        print_error(f'Неверные параметры: {e}')
    run = _context(ctx)
    _execute(cfg, run, lambda p: p.crawl())


@cli.command('check-links', context_settings=CONTEXT_SETTINGS)
@click.argument('urls_file', required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option('--concurrency', type=click.IntRange(min=1), default=None, help='Число одновременных проверок')
@click.option('--manifest', type=click.Path(dir_okay=False, path_type=Path), default=None, help='Манифест прошлого прогона')
@click.pass_context
def check_links(ctx, urls_file, concurrency, manifest):
    """Проверить ссылки из URLS_FILE (по одной на строку)."""
    cfg = override(ctx.obj['config'], link_concurrency=concurrency)
    run = _context(ctx, manifest)
    urls = _read_urls(_input_path(run, urls_file, 'urls'))
    _execute(cfg, run, lambda p: p.check_links(urls))


@cli.command('seo', context_settings=CONTEXT_SETTINGS)
@click.argument('pages_file', required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option('--manifest', type=click.Path(dir_okay=False, path_type=Path), default=None, help='Манифест прошлого прогона')
@click.pass_context
def seo(ctx, pages_file, manifest):
    """Найти SEO-проблемы в PAGES_FILE (JSON с данными страниц)."""
    cfg = ctx.obj['config']
    run = _context(ctx, manifest)
    try:
        pages = load_pages(_input_path(run, pages_file, 'pages'))
    except (FileNotFoundError, ValueError, TypeError, KeyError) as e:
        print_error(f'Ошибка чтения страниц: {e}')

    async def _stage(pipeline):
        return pipeline.analyze_seo(pages)

    _execute(cfg, run, _stage)


@cli.command('lighthouse', context_settings=CONTEXT_SETTINGS)
@click.argument('urls_file', required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option('--sample', '-s', type=click.IntRange(min=0), default=None, help='Сколько URL проверить')
@click.option('--manifest', type=click.Path(dir_okay=False, path_type=Path), default=None, help='Манифест прошлого прогона')
@click.pass_context
def lighthouse(ctx, urls_file, sample, manifest):
    """Прогнать аудитор страниц по первым --sample URL из URLS_FILE."""
    cfg = ctx.obj['config']
    run = _context(ctx, manifest)
    urls = _read_urls(_input_path(run, urls_file, 'urls'))
    _execute(cfg, run, lambda p: p.audit_pages(urls, sample))


@cli.command('sitemap-diff', context_settings=CONTEXT_SETTINGS)
@click.argument('sitemap_url')
@click.argument('urls_file', required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option('--manifest', type=click.Path(dir_okay=False, path_type=Path), default=None, help='Манифест прошлого прогона')
@click.pass_context
def sitemap_diff(ctx, sitemap_url, urls_file, manifest):
    """Сравнить SITEMAP_URL с обойдёнными URL из URLS_FILE."""
    cfg = ctx.obj['config']
    run = _context(ctx, manifest)
    urls = _read_urls(_input_path(run, urls_file, 'urls'))
    _execute(cfg, run, lambda p: p.diff_sitemap(sitemap_url, urls))


@cli.command('audit', context_settings=CONTEXT_SETTINGS)
@click.argument('start_url', required=False)
@click.option('--max-pages', '-m', type=click.IntRange(min=1), default=None, help='Макс. число страниц')
@click.option('--sample', '-s', type=click.IntRange(min=0), default=None, help='Размер выборки для Lighthouse')
@click.option('--sitemap', 'sitemap_url', default=None, help='URL sitemap для сравнения')
@click.option('--skip-crawl', is_flag=True, help='Не обходить сайт, взять URL из --manifest')
@click.option('--skip-links', is_flag=True, help='Пропустить проверку ссылок')
@click.option('--skip-seo', is_flag=True, help='Пропустить анализ SEO-полей')
@click.option('--skip-lighthouse', is_flag=True, help='Пропустить Lighthouse')
@click.option('--skip-sitemap', is_flag=True, help='Пропустить сравнение с sitemap')
@click.option('--manifest', type=click.Path(dir_okay=False, path_type=Path), default=None, help='Манифест прошлого прогона')
@click.option('--html', 'html_output', type=click.Path(dir_okay=False, path_type=Path), default=None, help='Сохранить HTML-сводку в файл')
@click.pass_context
def audit(ctx, start_url, max_pages, sample, sitemap_url, skip_crawl, skip_links, skip_seo,
          skip_lighthouse, skip_sitemap, manifest, html_output):
    """Полный аудит сайта START_URL."""
    if skip_crawl and manifest is None:
        print_error('--skip-crawl требует --manifest с артефактами прошлого обхода')
    if not skip_crawl and not start_url and ctx.obj['config'].start_url is None:
        print_error('Не указан START_URL')
    try:
        cfg = override(ctx.obj['config'], start_url=start_url, max_pages=max_pages, lighthouse_sample=sample)
    except Exception as e:
        print_error(f'Неверные параметры: {e}')
    run = _context(ctx, manifest)

    async def _stage(pipeline):
        return await pipeline.run(
            sitemap_url=sitemap_url,
            skip_crawl=skip_crawl,
            skip_links=skip_links,
            skip_seo=skip_seo,
            skip_lighthouse=skip_lighthouse,
            skip_sitemap=skip_sitemap,
        )

    summary = _execute(cfg, run, _stage)
    if html_output:
        try:
            saved_html = render_html(summary, html_output)
            click.echo(f'HTML report: {saved_html}')
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
