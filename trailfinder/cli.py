"""CLI entrypoint for the trailfinder data pipeline and trail queries."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Mapping

from trailfinder.common.config_loader import AppConfig, DataLayout, load_config
from trailfinder.common.constants import (
    EXIT_HARD_FAIL,
    EXIT_INVALID_INPUT,
    EXIT_NOT_FOUND,
    EXIT_PARTIAL,
    EXIT_SUCCESS,
    OFFLINE_STAGES,
    QUERIES,
    STAGES,
)
from trailfinder.common.errors import (
    InvalidSearchInput,
    PipelineError,
    PostcodeNotFound,
    SearchError,
    TrailNotFound,
)
from trailfinder.common.http import HttpClient
from trailfinder.common.logging import build_logger, log_event
from trailfinder.common.time_utils import generate_run_id
from trailfinder.harvest.overpass_harvest import run_overpass_harvest
from trailfinder.pipeline.enrich import EnrichmentClient, run_enrich
from trailfinder.pipeline.indexes import write_indexes
from trailfinder.pipeline.normalise_trails import run_normalise_trails
from trailfinder.pipeline.preprocess_postcodes import run_preprocess_postcodes
from trailfinder.pipeline.reports import write_run_summary, write_stage_report
from trailfinder.pipeline.stats import write_stats
from trailfinder.search.geocoder import PostcodeGeocoder
from trailfinder.search.service import find_nearby_trails, find_trails_near_postcode, parse_search_params
from trailfinder.search.store import TrailStore


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=[*STAGES, "all", *QUERIES])
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--strict", action="store_true")
    parser.add_argument("--csv", default=None, help="postcode CSV, overrides paths.postcodes_csv")
    parser.add_argument("--annotate-postcodes", action="store_true")
    parser.add_argument("--postcode", default=None)
    parser.add_argument("--slug", default=None)
    parser.add_argument("--distance", default=None)
    parser.add_argument("--limit", default=None)
    return parser.parse_args(argv)


def execute_stage(
    stage: str,
    args: argparse.Namespace,
    config: AppConfig,
    layout: DataLayout,
    run_id: str,
    logger: logging.Logger,
    environ: Mapping[str, str],
) -> dict:
    store = TrailStore(layout.trails, logger=logger)

    if stage == "harvest":
        return run_overpass_harvest(config.harvest, layout.raw_routes, run_id, logger=logger)
    if stage == "preprocess-postcodes":
        csv_path = Path(args.csv) if args.csv else layout.postcodes_csv
        return run_preprocess_postcodes(
            csv_path,
            layout.postcodes_by_code,
            layout.postcodes_by_district,
            columns=config.postcodes.columns,
            progress_every=config.postcodes.progress_every,
            logger=logger,
        )
    if stage == "normalise":
        postcodes = None
        if args.annotate_postcodes:
            geocoder = PostcodeGeocoder(layout.postcodes_by_code, layout.postcodes_by_district, logger=logger)
            postcodes = list(geocoder.iter_district_entries())
        return run_normalise_trails(layout.raw_routes, store, config.normalise, postcodes=postcodes, logger=logger)
    if stage == "indexes":
        corpus = store.load_all()
        return {**write_indexes(corpus.trails, layout.indexes), "malformed": corpus.malformed}
    if stage == "stats":
        corpus = store.load_all()
        return write_stats(corpus.trails, layout.stats_file)
    if stage == "enrich":
        with HttpClient(logger=logger) as http_client:
            client = EnrichmentClient(config.enrich, environ.get(config.enrich.api_key_env, ""), http_client)
            return run_enrich(store, client, config.enrich, layout.enrichment_usage, logger=logger)
    raise ValueError(f"Unknown stage: {stage}")


def run_stages(args: argparse.Namespace, config: AppConfig, layout: DataLayout, environ: Mapping[str, str]) -> int:
    run_id = args.run_id or generate_run_id()
    data_dir = Path(args.data_dir)
    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    stages = list(OFFLINE_STAGES) if args.command == "all" else [args.command]

    failed: list[str] = []
    for stage in stages:
        log_event(logger, "stage start", run_id=run_id, stage=stage, event="STAGE_START", status="ok")
        try:
            counts = execute_stage(stage, args, config, layout, run_id, logger, environ)
        except PipelineError as exc:
            failed.append(stage)
            log_event(
                logger,
                f"stage {stage} failed: {exc}",
                level=logging.ERROR,
                run_id=run_id,
                stage=stage,
                event="STAGE_FAIL",
                status="error",
                error_code=exc.error_code,
            )
            if exc.error_code == "CONFIG_ERROR" or args.strict:
                return EXIT_HARD_FAIL
            continue
        except Exception:
            failed.append(stage)
            logger.exception(
                f"unexpected failure in stage {stage}",
                extra={
                    "run_id": run_id,
                    "stage": stage,
                    "event": "STAGE_FAIL",
                    "status": "error",
                    "error_code": "UNEXPECTED_ERROR",
                },
            )
            if args.strict:
                return EXIT_HARD_FAIL
            continue
        write_stage_report(layout.reports, stage, run_id, counts)
        log_event(logger, "stage end", run_id=run_id, stage=stage, event="STAGE_END", status="ok")

    write_run_summary(layout.reports, run_id, stages, failed)
    if failed:
        return EXIT_PARTIAL if len(failed) < len(stages) else EXIT_HARD_FAIL
    return EXIT_SUCCESS


def run_query(args: argparse.Namespace, config: AppConfig, layout: DataLayout) -> dict:
    logger = build_logger(args.run_id or "query", level=args.log_level)
    geocoder = PostcodeGeocoder(layout.postcodes_by_code, layout.postcodes_by_district, logger=logger)
    store = TrailStore(layout.trails, logger=logger)

    if args.command == "lookup":
        record = geocoder.resolve(args.postcode)
        if record is None:
            raise PostcodeNotFound(f"Postcode not found or not in use: {args.postcode}")
        return record.to_dict()

    if args.command == "near-postcode":
        distance, limit = parse_search_params(
            args.distance,
            args.limit,
            default_distance_km=config.search.default_max_distance_km,
            default_limit=config.search.default_limit,
        )
        return find_trails_near_postcode(geocoder, store, args.postcode, distance, limit, logger=logger)

    if args.command == "nearby":
        if not args.slug:
            raise InvalidSearchInput("--slug is required")
        distance, limit = parse_search_params(
            args.distance,
            args.limit,
            default_distance_km=config.search.nearby_max_distance_km,
            default_limit=config.search.nearby_limit,
        )
        return {"slug": args.slug, "results": find_nearby_trails(store, args.slug, distance, limit, logger=logger)}

    raise ValueError(f"Unknown query: {args.command}")


def _exit_code_for(exc: SearchError) -> int:
    if isinstance(exc, (PostcodeNotFound, TrailNotFound)):
        return EXIT_NOT_FOUND
    if isinstance(exc, InvalidSearchInput):
        return EXIT_INVALID_INPUT
    return EXIT_HARD_FAIL


def run_command(args: argparse.Namespace, environ: Mapping[str, str] | None = None) -> int:
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    config = load_config(config_dir, overlay_config_dir=overlay_config_dir)
    layout = config.paths.resolve(Path(args.data_dir))

    if args.command not in QUERIES:
        return run_stages(args, config, layout, os.environ if environ is None else environ)

    try:
        payload = run_query(args, config, layout)
    except SearchError as exc:
        print(
            json.dumps({"error": str(exc), "error_code": exc.error_code, "status": exc.http_status}),
            file=sys.stdout,
        )
        return _exit_code_for(exc)
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError as exc:
        print(f"{exc.error_code}: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL
    except Exception as exc:
        print(f"UNEXPECTED_ERROR: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
