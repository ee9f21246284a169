"""
Wire codec for the durable entry table.

The table is stored as a JSON array of [key, entry] pairs in table order
and rewritten wholesale on every mutation.
"""

import json
from typing import Dict, List, Tuple

from pydantic import TypeAdapter, ValidationError

from ..exceptions import DeserializationError
from ..models.cache_entry import CacheEntry

_pairs_adapter = TypeAdapter(List[Tuple[str, CacheEntry]])


def encode_table(entries: Dict[str, CacheEntry]) -> str:
    return json.dumps([[key, entry.to_wire()] for key, entry in entries.items()])


def decode_pairs(raw) -> List[Tuple[str, CacheEntry]]:
    """Validate already-parsed [key, entry] pairs."""
    try:
        return _pairs_adapter.validate_python(raw)
    except ValidationError as e:
        raise DeserializationError(f"Invalid entry pairs: {e.error_count()} validation error(s)") from e


def decode_table(blob: str) -> Dict[str, CacheEntry]:
    """
    Parse a durable blob back into an ordered entry table.

    Args:
        blob: JSON produced by encode_table

    Returns:
        Dict of key -> CacheEntry in stored order

    Raises:
        DeserializationError: If the blob is not valid JSON or any pair
            fails validation
    """
    try:
        raw = json.loads(blob)
    except (TypeError, ValueError) as e:
        raise DeserializationError(f"Malformed cache blob: {e}") from e
    return dict(decode_pairs(raw))
