"""Show the pending ledger record for one card, if any."""

import argparse
import json
import time
from dataclasses import asdict

from skyfox.common.config import settings
from skyfox.services.payment_gateway.backends import build_ledger
from skyfox.services.payment_gateway.fingerprint import fingerprint


def main() -> None:
    """CLI entrypoint for lock inspection against the configured ledger."""

    parser = argparse.ArgumentParser(description="Look up the pending transaction lock for a card.")
    parser.add_argument("card_number")
    parser.add_argument("cvv")
    parser.add_argument("--release", action="store_true", help="delete the record if one is found")
    args = parser.parse_args()

    ledger = build_ledger(settings)
    record = ledger.find_by_fingerprint(fingerprint(args.card_number, args.cvv))
    if record is None:
        print(json.dumps({"found": False}))
        return
    now = int(time.time())
    print(json.dumps({"found": True, "stale": record.is_stale(now), **asdict(record)}, indent=2))
    if args.release:
        ledger.delete(record.transaction_id)
        print(json.dumps({"released": record.transaction_id}))


if __name__ == "__main__":
    main()
