"""Transaction hash generator for ledger events.

Every mutating ledger call gets one hash; all events it writes share it,
the way logs emitted by one transaction share a tx hash.
"""

import secrets


def new_tx_hash() -> str:
    """Return a 0x-prefixed 32-byte random hex string."""
    return "0x" + secrets.token_hex(32)
