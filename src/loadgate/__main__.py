"""
Command-line entry point: `python -m loadgate` (or the `loadgate` script).

Flags override the LOADGATE_* environment variables, which may also come
from a dotenv file (`.env` in the working directory by default).
"""

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from dotenv import load_dotenv

from loadgate._config import ConfigurationError, LoadGateConfig
from loadgate._load_test import LoadTest
from loadgate._utils import save_json_file

logger = logging.getLogger("loadgate")

EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="loadgate",
        description="Send N identical POST requests under a concurrency ceiling and a rate limit.",
    )
    parser.add_argument("--total-requests", type=int, help="Number of requests to issue (LOADGATE_TOTAL_REQUESTS)")
    parser.add_argument("--concurrency", type=int, help="Maximum requests in flight (LOADGATE_CONCURRENT_REQUESTS)")
    parser.add_argument("--rps", type=float, help="Maximum request starts per second (LOADGATE_REQUESTS_PER_SECOND)")
    parser.add_argument("--workers", type=int, help="Worker thread-pool size (LOADGATE_MAX_WORKERS)")
    parser.add_argument("--url", help="Target URL (LOADGATE_API_URL)")
    parser.add_argument("--body", help="JSON request body (LOADGATE_JSON_BODY)")
    parser.add_argument("--client-id", help="X-Client-Id header (LOADGATE_CLIENT_ID)")
    parser.add_argument("--client-secret", help="X-Client-Secret header (LOADGATE_CLIENT_SECRET)")
    parser.add_argument("--timeout", type=float, help="Per-request timeout in seconds (LOADGATE_REQUEST_TIMEOUT)")
    parser.add_argument("--output", type=Path, help="Also write the summary as JSON to this file")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Dotenv file read before configuration; variables already set win (default: .env)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--explain", action="store_true", help="Print the resolved configuration before running")
    return parser


def config_from_args(args: argparse.Namespace) -> LoadGateConfig:
    return LoadGateConfig.from_env(
        load={
            "total_requests": args.total_requests,
            "max_concurrent": args.concurrency,
            "requests_per_second": args.rps,
            "max_workers": args.workers,
        },
        target={
            "url": args.url,
            "json_body": args.body,
            "client_id": args.client_id,
            "client_secret": args.client_secret,
            "request_timeout": args.timeout,
        },
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)-7s %(threadName)-12s %(message)s",
    )

    if args.env_file.is_file():
        load_dotenv(args.env_file, override=False)
        logger.info(f"Loaded environment variables from {args.env_file}")

    try:
        config = config_from_args(args)
        if args.explain:
            config.explain()
        load_test = LoadTest(config)
    except ConfigurationError as e:
        print(f"loadgate: configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    with load_test:
        summary = load_test.run()

    if args.output is not None:
        save_json_file(summary.to_dict(), args.output)
        logger.info(f"Summary written to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
