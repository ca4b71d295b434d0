from __future__ import annotations

import argparse
import time
from typing import List, Optional

import httpx
from dotenv import find_dotenv, load_dotenv

from . import __version__
from .client import ResilientClient
from .config import Settings, load_settings
from .discovery import load_collections
from .errors import AuthError, ConfigError, RetriesExhaustedError
from .log import LogConfig, get_logger, setup_logging
from .raindrops import aggregate_raindrops
from .retry import RetryPolicy
from .writer_csv import write_collections_csv, write_raindrops_csv

log = get_logger(__name__)


def main(argv: List[str] | None = None) -> int:
    p = argparse.ArgumentParser(
        prog="dropmap",
        description="Export Raindrop.io collections and bookmarks to CSV with full collection paths.",
    )
    p.add_argument("-V", "--version", action="version", version=f"dropmap {__version__}")
    p.add_argument("--config", default=None, help="YAML config file (optional). Env vars and .env override defaults.")
    p.add_argument("--out-dir", default=None, help="Directory for the CSV outputs (default: current directory).")
    p.add_argument("--jobs", type=int, default=None, help="Parallel collection exports (default: 1, sequential).")
    p.add_argument("--log-level", default=None, help="DEBUG/INFO/WARN/ERROR (overrides env/config).")
    p.add_argument("--no-color", action="store_true", help="Disable colored logging.")

    args = p.parse_args(argv)
    load_dotenv(find_dotenv(usecwd=True))
    cfg = load_settings(args.config)
    if args.out_dir:
        cfg.out_dir = args.out_dir
    if args.jobs is not None:
        cfg.fetch_jobs = args.jobs
    if args.log_level:
        cfg.log_level = args.log_level
    if args.no_color:
        cfg.no_color = True
    setup_logging(LogConfig(level=cfg.log_level, no_color=cfg.no_color))

    log.info("Raindrop.io Collection Mapper %s", __version__)
    try:
        token = cfg.require_token()
    except ConfigError as e:
        log.error("%s", e)
        return 1

    with build_client(cfg, token) as client:
        return run_export(cfg, client)


def build_client(cfg: Settings, token: str, *, transport: Optional[httpx.BaseTransport] = None) -> ResilientClient:
    policy = RetryPolicy(
        max_retries=cfg.max_retries,
        base_delay_s=cfg.retry_delay_s,
        rate_limit_cooldown_s=cfg.rate_limit_cooldown_s,
        request_delay_s=cfg.request_delay_s,
    )
    return ResilientClient(cfg.api_base, token, policy=policy, timeout_s=cfg.timeout_s, transport=transport)


def run_export(cfg: Settings, client: ResilientClient) -> int:
    t0 = time.time()
    try:
        cs = load_collections(client)
        write_collections_csv(cfg.collections_path, cs.resolved)

        result = aggregate_raindrops(client, cs.resolved, jobs=cfg.fetch_jobs)
        write_raindrops_csv(cfg.raindrops_path, result.records)
    except AuthError as e:
        log.error("Fatal error: %s", e)
        return 1
    except RetriesExhaustedError as e:
        log.error("Fatal error: %s", e)
        _log_response_body(getattr(e.last_error, "body", ""))
        return 1
    except httpx.HTTPStatusError as e:
        log.error("Fatal error: %s", e)
        _log_response_body(e.response.text)
        return 1
    except Exception as e:
        log.exception("Fatal error: %s", e)
        return 1

    if result.failed:
        log.warning("Collections skipped after errors: %s", ", ".join(str(f.collection_id) for f in result.failed))
    log.info("Done in %d ms.", int((time.time() - t0) * 1000))
    return 0


def _log_response_body(body: str) -> None:
    if body:
        log.error("API response: %s", body)
