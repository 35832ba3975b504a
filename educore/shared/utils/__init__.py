"""Shared utilities (UTC datetimes, identifier generators)."""

from educore.shared.utils.datetime import utc_now, utc_now_iso
from educore.shared.utils.generators import generate_cuid, generate_temp_id, is_temp_id

__all__ = [
    "generate_cuid",
    "generate_temp_id",
    "is_temp_id",
    "utc_now",
    "utc_now_iso",
]
