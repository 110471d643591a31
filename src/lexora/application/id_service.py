"""Service for generating stable, sortable card IDs."""

from ulid import ULID


def generate_card_id() -> str:
    """
    Generate a card ID using ULID.

    ULIDs sort by creation time, so ordering by id gives a deterministic
    tie-break for cards due at the same instant.
    """
    return f"card_{ULID()}"
