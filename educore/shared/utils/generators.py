"""ID and value generators (e.g. CUID, temporary entity ids)."""

from cuid2 import cuid_wrapper

from educore.core.constants import TEMP_ID_PREFIX

cuid_generator = cuid_wrapper()


def generate_cuid() -> str:
    """Generate a collision-resistant unique identifier (CUID2).

    Returns:
        A new CUID string.
    """
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result


def generate_temp_id() -> str:
    """Return a client-side placeholder id for an entity not yet created on the server."""
    return f"{TEMP_ID_PREFIX}{generate_cuid()}"


def is_temp_id(value: str) -> bool:
    """Return True if value was produced by generate_temp_id."""
    return value.startswith(TEMP_ID_PREFIX)
