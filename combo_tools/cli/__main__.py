from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from dotenv import load_dotenv

from combo_tools.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from combo_tools.export.serializer import to_csv, to_script_block
from combo_tools.logging.error_log import ErrorLogBuffer
from combo_tools.logging.init import APP_LOGGER_NAME, log_summary, set_debug, setup_logging
from combo_tools.models.combo_row import Row
from combo_tools.models.config_models import ComboConfig
from combo_tools.models.results import Err, ParseError, ValidationError
from combo_tools.parsing import FormatHint
from combo_tools.services.catalog import CatalogClient, resolve_metadata
from combo_tools.services.crosssell import CrossSellClient, extract_skus_from_csv, fetch_crosssell
from combo_tools.services.importer import import_text
from combo_tools.services.scraper import scrape
from combo_tools.services.sheets import SheetsGateway, pull_rows, push_rows
from combo_tools.services.suggest import PositionSuggester, suggest_positions_for_row
from combo_tools.services.summary import collect_stats, render_summary_line

"""CLI entrypoint.

Commands:
- import: parse a CSV / HTML / JS file, backfill metadata, export
- sheets pull|push: sync rows with the configured Google Sheet
- crosssell: list crosssell links for the SKUs in a CSV
- scrape: read image and dot positions from combo-guide pages
- suggest: AI position suggestion for one row's dots

Exit codes: 0 success, 1 fatal (config, parse, validation), 2 partial
(upstream failures absorbed into a degraded result).
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

logger = logging.getLogger(APP_LOGGER_NAME)


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its values win over the existing environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="combo_tools", description="Product combo data tools")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    sub = p.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Import combo data and export it")
    imp.add_argument("file", type=Path)
    imp.add_argument("--format", choices=[h.value for h in FormatHint], default=FormatHint.AUTO.value)
    imp.add_argument("--out-csv", type=Path)
    imp.add_argument("--out-html", type=Path)
    imp.add_argument("--no-resolve", action="store_true", help="Skip catalog lookups")

    sheets = sub.add_parser("sheets", help="Google Sheets sync")
    sheets_sub = sheets.add_subparsers(dest="sheets_command", required=True)
    pull = sheets_sub.add_parser("pull")
    pull.add_argument("--out-csv", type=Path)
    push = sheets_sub.add_parser("push")
    push.add_argument("file", type=Path)
    push.add_argument("--no-resolve", action="store_true")

    cs = sub.add_parser("crosssell", help="Fetch crosssell links")
    cs.add_argument("file", type=Path)
    cs.add_argument("--token", help="Bearer token (defaults to CROSSSELL_TOKEN)")

    sc = sub.add_parser("scrape", help="Scrape combo-guide pages")
    sc.add_argument("urls", nargs="+")

    sg = sub.add_parser("suggest", help="Suggest dot positions for one row")
    sg.add_argument("file", type=Path)
    sg.add_argument("--index", type=int, required=True)
    return p.parse_args(argv)


def _read_text(path: Path) -> str:
    if not path.exists():
        raise ValidationError(f"file not found: {path}")
    return path.read_text(encoding="utf-8-sig")


def _dot_urls(cfg: ComboConfig, rows: list[Row], error_log: ErrorLogBuffer) -> dict[str, str]:
    lookup = resolve_metadata(
        CatalogClient(cfg), (d.sku for r in rows for d in r.visible_dots), error_log
    )
    return lookup.sku_to_url


def _finish_rows(rows: list[Row]) -> None:
    log_summary(render_summary_line(collect_stats(rows))[len("SUMMARY "):])


def _cmd_import(args: argparse.Namespace, cfg: ComboConfig, error_log: ErrorLogBuffer) -> int:
    text = _read_text(args.file)
    rows = import_text(
        text, cfg, hint=FormatHint(args.format), resolve=not args.no_resolve, error_log=error_log
    )
    if args.out_csv:
        args.out_csv.write_text(to_csv(rows), encoding="utf-8")
        logger.info(f"wrote {args.out_csv}")
    if args.out_html:
        dot_urls = {} if args.no_resolve else _dot_urls(cfg, rows, error_log)
        args.out_html.write_text(to_script_block(rows, dot_urls), encoding="utf-8")
        logger.info(f"wrote {args.out_html}")
    if not args.out_csv and not args.out_html:
        sys.stdout.write(to_csv(rows) + "\n")
    _finish_rows(rows)
    return EXIT_SUCCESS


def _cmd_sheets(args: argparse.Namespace, cfg: ComboConfig, error_log: ErrorLogBuffer) -> int:
    gateway = SheetsGateway(cfg.google_sheets)
    if args.sheets_command == "pull":
        result = pull_rows(gateway, cfg, error_log=error_log)
        if isinstance(result, Err):
            logger.error(f"sheets: {result.error.message}")
            error_log.record_upstream(result.error, target=cfg.google_sheets.sheet_name or "-")
            return EXIT_PARTIAL_FAILURE
        rows = result.value
        if args.out_csv:
            args.out_csv.write_text(to_csv(rows), encoding="utf-8")
            logger.info(f"wrote {args.out_csv}")
        else:
            sys.stdout.write(to_csv(rows) + "\n")
        _finish_rows(rows)
        return EXIT_SUCCESS

    rows = import_text(_read_text(args.file), cfg, resolve=not args.no_resolve, error_log=error_log)
    result = push_rows(gateway, rows)
    if isinstance(result, Err):
        logger.error(f"sheets: {result.error.message}")
        error_log.record_upstream(result.error, target=cfg.google_sheets.sheet_name or "-")
        return EXIT_PARTIAL_FAILURE
    _finish_rows(rows)
    return EXIT_SUCCESS


def _cmd_crosssell(args: argparse.Namespace, cfg: ComboConfig, error_log: ErrorLogBuffer) -> int:
    if not cfg.crosssell.endpoint:
        raise ValidationError("crosssell endpoint is not configured (END_POINT)")
    skus = extract_skus_from_csv(_read_text(args.file))
    if not skus:
        raise ValidationError("no valid SKUs found in the CSV")
    token = args.token or cfg.crosssell.token or ""
    report = fetch_crosssell(CrossSellClient(cfg.crosssell), skus, token, error_log)
    sys.stdout.write(json.dumps([asdict(i) for i in report.items], ensure_ascii=False, indent=2) + "\n")
    log_summary(f"skus={len(skus)} links={len(report.items)} failed={len(report.errors)}")
    return EXIT_SUCCESS


def _cmd_scrape(args: argparse.Namespace, cfg: ComboConfig, error_log: ErrorLogBuffer) -> int:
    results = scrape(args.urls, cfg.scrape)
    sys.stdout.write(json.dumps([asdict(r) for r in results], ensure_ascii=False, indent=2) + "\n")
    empty = sum(1 for r in results if r.image is None)
    log_summary(f"pages={len(results)} found={len(results) - empty} empty={empty}")
    return EXIT_SUCCESS


def _cmd_suggest(args: argparse.Namespace, cfg: ComboConfig, error_log: ErrorLogBuffer) -> int:
    rows = import_text(_read_text(args.file), cfg, error_log=error_log)
    if not 0 <= args.index < len(rows):
        raise IndexError(f"row index out of range: {args.index} (rows={len(rows)})")
    row = rows[args.index]
    lookup = resolve_metadata(CatalogClient(cfg), (d.sku for d in row.visible_dots), error_log)
    result = suggest_positions_for_row(PositionSuggester(cfg.ai), row, lookup.sku_to_image)
    if isinstance(result, Err):
        logger.error(f"suggest: {result.error.message}")
        error_log.record_upstream(result.error, target=row.product_sku)
        return EXIT_PARTIAL_FAILURE
    batch = result.value.batch
    sys.stdout.write(to_csv([result.value.row]) + "\n")
    log_summary(f"dots={len(batch.suggestions)} found={batch.found_count} failed={batch.fail_count}")
    if batch.rate_limit is not None:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS


COMMANDS = {
    "import": _cmd_import,
    "sheets": _cmd_sheets,
    "crosssell": _cmd_crosssell,
    "scrape": _cmd_scrape,
    "suggest": _cmd_suggest,
}


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] must not fall back to sys.argv (pytest args)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    error_log = ErrorLogBuffer()
    try:
        code = COMMANDS[args.command](args, cfg, error_log)
    except (ParseError, ValidationError, ValueError, IndexError) as e:
        logger.error(f"{args.command}: {e}")
        code = EXIT_FATAL

    if len(error_log) and code == EXIT_SUCCESS:
        code = EXIT_PARTIAL_FAILURE
    path = error_log.flush()
    if path is not None:
        logger.info(f"error log: {path}")
    return code


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
