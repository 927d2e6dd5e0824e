"""CLI entrypoint for the V16 beacon feed."""

from __future__ import annotations

import argparse
import functools
import json
import logging
import sys
import time
from pathlib import Path

from v16_beacons.common.config_loader import load_config, resolve_cache_path
from v16_beacons.common.constants import COMMANDS, EXIT_HARD_FAIL, EXIT_SUCCESS
from v16_beacons.common.errors import PipelineError
from v16_beacons.common.fs import write_json
from v16_beacons.common.http import RetryConfig
from v16_beacons.common.ids import generate_run_id
from v16_beacons.common.logging import build_logger, close_logger, log_event
from v16_beacons.common.time_utils import local_timestamp_iso
from v16_beacons.harvest.feed_cache import FeedCache, FileCacheStore
from v16_beacons.harvest.fetcher import fetch_feed
from v16_beacons.harvest.runner import STATUS_OK, serve_feed
from v16_beacons.pipeline.reports import build_error_payload, build_success_payload
from v16_beacons.pipeline.run import options_from_config, run_pipeline


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--all", dest="include_all", action="store_true", help="return every in-region record unfiltered")
    parser.add_argument("--debug", dest="want_stats", action="store_true", help="prepend pipeline stats to items")
    parser.add_argument("--input", default=None, help="local DATEX2 XML file for the parse command")
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--retries", type=int, default=1, help="total upstream attempts per request")
    parser.add_argument("--interval", type=float, default=None, help="poll interval override in seconds")
    parser.add_argument("--max-iterations", type=int, default=None)
    args = parser.parse_args(argv)
    if args.command == "parse" and not args.input:
        parser.error("parse requires --input")
    if args.retries < 1:
        parser.error("--retries must be at least 1")
    return args


def build_feed_cache(cfg: dict, data_dir: Path, logger: logging.Logger) -> FeedCache:
    return FeedCache(
        FileCacheStore(resolve_cache_path(cfg, data_dir)),
        url=cfg["feed"]["url"],
        ttl_seconds=cfg["cache"]["ttl_seconds"],
        timeout=float(cfg["feed"]["timeout_seconds"]),
        fetcher=functools.partial(fetch_feed, user_agent=cfg["feed"]["user_agent"]),
        logger=logger,
    )


def emit_payload(payload: dict, output_path: Path | None) -> None:
    if output_path is not None:
        write_json(output_path, payload)
    sys.stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")
    sys.stdout.flush()


def run_parse(args: argparse.Namespace, cfg: dict) -> tuple[int, dict]:
    try:
        body = Path(args.input).read_bytes()
        result = run_pipeline(body, include_all=args.include_all, **options_from_config(cfg))
    except OSError as exc:
        return EXIT_HARD_FAIL, build_error_payload(f"Cannot read {args.input}: {exc}")
    except PipelineError as exc:
        return EXIT_HARD_FAIL, build_error_payload(str(exc))
    payload = build_success_payload(
        result,
        source_label=cfg["feed"]["source_label"],
        want_stats=args.want_stats,
        generated_at=local_timestamp_iso(cfg["output"]["timezone"]),
        cache_age_seconds=None,
    )
    return EXIT_SUCCESS, payload


def run_fetch(args: argparse.Namespace, cfg: dict, cache: FeedCache, logger: logging.Logger) -> tuple[int, dict]:
    status, payload = serve_feed(
        cache,
        cfg,
        include_all=args.include_all,
        want_stats=args.want_stats,
        retry_config=RetryConfig(max_attempts=args.retries),
        logger=logger,
    )
    return (EXIT_SUCCESS if status == STATUS_OK else EXIT_HARD_FAIL), payload


def run_poll(
    args: argparse.Namespace,
    cfg: dict,
    cache: FeedCache,
    logger: logging.Logger,
    output_path: Path,
    sleep=time.sleep,
) -> int:
    interval = args.interval if args.interval is not None else float(cfg["poll"]["interval_seconds"])
    exit_code = EXIT_SUCCESS
    iteration = 0
    while args.max_iterations is None or iteration < args.max_iterations:
        if iteration:
            sleep(interval)
        iteration += 1
        exit_code, payload = run_fetch(args, cfg, cache, logger)
        emit_payload(payload, output_path if exit_code == EXIT_SUCCESS else None)
    return exit_code


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id(args.command)
    data_dir = Path(args.data_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    try:
        cfg = load_config(Path(args.config_dir), overlay_config_dir=overlay_config_dir)
        output_path = data_dir / "out" / cfg["output"]["filename"]
        log_event(logger, "command start", run_id=run_id, stage=args.command, event="COMMAND_START", status="ok")

        if args.command == "parse":
            exit_code, payload = run_parse(args, cfg)
            emit_payload(payload, output_path if exit_code == EXIT_SUCCESS else None)
        else:
            cache = build_feed_cache(cfg, data_dir, logger)
            if args.command == "fetch":
                exit_code, payload = run_fetch(args, cfg, cache, logger)
                emit_payload(payload, output_path if exit_code == EXIT_SUCCESS else None)
            else:
                exit_code = run_poll(args, cfg, cache, logger, output_path)

        log_event(
            logger,
            "command end",
            run_id=run_id,
            stage=args.command,
            event="COMMAND_END",
            status="ok" if exit_code == EXIT_SUCCESS else "error",
        )
        return exit_code
    finally:
        close_logger(logger)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError as exc:
        emit_payload(build_error_payload(str(exc)), None)
        return EXIT_HARD_FAIL
    except Exception as exc:
        emit_payload(build_error_payload(f"Unexpected failure: {exc}"), None)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
