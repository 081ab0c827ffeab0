"""One-way card fingerprint used as the ledger lock key."""

import hashlib


def fingerprint(card_number: str, cvv: str) -> str:
    """Return the hex SHA-256 digest of card number and CVV.

    The raw PAN never reaches the ledger; only this digest does.
    """

    data = f"{card_number}:{cvv}".encode("utf-8")
    return hashlib.sha256(data).hexdigest()
