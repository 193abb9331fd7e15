from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from app.db.session import SessionLocal
from app.services.shipment_refresh_service import ShipmentRefreshService


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Refresh tracking for live containers (or the ones given)."
    )
    parser.add_argument(
        "containers",
        nargs="*",
        help="Container numbers to refresh. Default: every live container in the store.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log at INFO level.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    db = SessionLocal()
    try:
        service = ShipmentRefreshService(db)
        summary = service.refresh_all(args.containers or None)
    finally:
        db.close()

    for result in summary.results:
        line = f"{result.container_no}\t{result.outcome}\tmatched={result.matched}\tupdated={result.updated}"
        if result.error:
            line += f"\terror={result.error}"
        print(line)
    if summary.stopped_reason:
        print(f"Stopped early: {summary.stopped_reason}")

    print(
        "Refreshed", summary.count("refreshed"),
        "failed", summary.count("failed"),
        "skipped", summary.count("skipped"),
    )
    return 1 if summary.count("failed") or summary.stopped_reason else 0


if __name__ == "__main__":
    raise SystemExit(main())
