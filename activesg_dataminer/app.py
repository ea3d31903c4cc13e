import argparse
import datetime
import logging
import sys
from typing import List, Optional

from .config import ConfigLoader
from .errors import DataMinerError, UsageError
from .models import AppConfig, Credentials
from .normalizer import normalize_pages
from .output import format_records, write_record_files
from .service import SlotDataService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="activesg-dataminer",
        description="ActiveSG Slot Dataminer: print gym slot availability as JSON.",
    )
    parser.add_argument("-u", "--username", required=True, help="username")
    parser.add_argument("-p", "--password", required=True, help="users password")
    parser.add_argument(
        "-s", "--is-soa",
        action="store_true",
        help="output data in struct of array (one JSON object per gym per line)",
    )
    return parser


def _configure_logging(level: str):
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
        force=True,
    )


def _credentials(args: argparse.Namespace) -> Credentials:
    if not args.username.strip() or not args.password:
        raise UsageError("username and password must not be empty")
    return Credentials(username=args.username, password=args.password)


def run(credentials: Credentials, config: AppConfig, is_soa: bool = False) -> str:
    started_at = datetime.datetime.now(datetime.timezone.utc)
    logging.info(f"Slot dataminer started at {started_at.isoformat()}")

    # 1. Log in once; the session is handed to every query
    service = SlotDataService(config)
    session = service.login(credentials)

    # 2. Fetch and normalize every gym's pages
    try:
        payloads = service.fetch_all(session)
    finally:
        session.http.close()
    records = normalize_pages(payloads)

    # 3. Optionally keep a per-gym copy on disk
    if config.output_dir:
        write_record_files(records, config.output_dir, is_soa)

    logging.info(f"Slot dataminer finished with {len(records)} gym(s).")
    return format_records(records, is_soa)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging("INFO")

    try:
        credentials = _credentials(args)
        config = ConfigLoader().load()
        _configure_logging(config.log_level)
        output = run(credentials, config, args.is_soa)
    except DataMinerError as e:
        logging.error(f"error: {e}")
        return e.exit_code

    sys.stdout.write(output + "\n")
    return 0
