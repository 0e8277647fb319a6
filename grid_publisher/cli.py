"""Command line entry point: ``update-grid``.

Examples
--------
Publish a grid stored in a JSON file::

    $ update-grid --file grid.json

Publish the built-in example grid and read it back afterwards::

    $ update-grid --example --verify

Show the encoded URI and calldata without signing anything::

    $ update-grid --file grid.json --dry-run

Print the grid currently stored on the profile::

    $ update-grid --fetch
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import PublisherConfig
from .errors import ConfirmationTimeout, GridPublisherError
from .logging_utils import configure_logging
from .metrics import render_metrics
from .models import EXAMPLE_GRID
from .publisher import fetch_grid, prepare_publication, publish_grid

logger = logging.getLogger(__name__)

ENV_HELP = """\
Environment variables:
  UP_PRIVATE_KEY  - Controller private key
  UP_ADDRESS      - Universal Profile address
  KEY_MANAGER     - Key Manager address
  RPC_URL         - LUKSO RPC endpoint
  CHAIN_ID        - Expected chain id (optional)
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="update-grid",
        description="Publish an LSP28 grid to a Universal Profile through its Key Manager.",
        epilog=ENV_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--file", type=Path, help="Load the grid from a JSON file")
    mode.add_argument("--example", action="store_true", help="Use the built-in example grid")
    mode.add_argument("--fetch", action="store_true", help="Print the grid currently stored on the profile")
    parser.add_argument("--config", type=Path, help="YAML or JSON file with publisher settings")
    parser.add_argument("--dry-run", action="store_true", help="Print the URI and calldata without submitting")
    parser.add_argument("--verify", action="store_true", help="Read the slot back after confirmation")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("--log-file", help="Append JSON-lines audit logs to this file")
    parser.add_argument("--metrics-file", type=Path, help="Write Prometheus metrics to this file on exit")
    return parser


def load_document(path: Path) -> Dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise GridPublisherError(f"Unable to read grid file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise GridPublisherError(f"Grid file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise GridPublisherError(f"Grid file {path} must contain a JSON object")
    return data


def _load_config(args: argparse.Namespace) -> PublisherConfig:
    if args.config:
        return PublisherConfig.load(args.config)
    return PublisherConfig.from_env()


def _dry_run(document: Any) -> int:
    publication = prepare_publication(document)
    print(f"Data key:       0x{publication.slot.hex()}")
    print(f"VerifiableURI:  {publication.uri.render()}")
    print(f"URI length:     {len(publication.uri.to_bytes())}")
    print(f"setData call:   0x{publication.inner_call.hex()}")
    print(f"execute call:   0x{publication.outer_call.hex()}")
    return 0


def _run(args: argparse.Namespace) -> int:
    if args.fetch:
        grid = fetch_grid(_load_config(args))
        if grid is None:
            print("No grid stored on this profile.")
        else:
            print(json.dumps(grid.to_payload(), indent=2, ensure_ascii=False))
        return 0

    document: Any = EXAMPLE_GRID if args.example else load_document(args.file)
    if args.dry_run:
        return _dry_run(document)

    config = _load_config(args)
    try:
        receipt = asyncio.run(publish_grid(document, config, verify=args.verify))
    except ConfirmationTimeout as exc:
        print(
            f"Transaction {exc.transaction_id} was broadcast but not confirmed; it may still be included.",
            file=sys.stderr,
        )
        return 1
    print(f"Transaction: {receipt.transaction_id}")
    print(f"Confirmed in block: {receipt.confirmation_block}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not (args.file or args.example or args.fetch):
        parser.print_help()
        return 1

    try:
        configure_logging(args.log_file, level=args.log_level)
    except ValueError as exc:
        parser.error(str(exc))
    try:
        return _run(args)
    except GridPublisherError as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        if args.metrics_file:
            args.metrics_file.write_bytes(render_metrics())


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
