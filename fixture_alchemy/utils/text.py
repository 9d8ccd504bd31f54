"""General utility functions."""

import secrets
import string
from functools import lru_cache

__all__ = (
    "random_string",
    "singularize",
)

_ALPHABET = string.ascii_lowercase + string.digits


def random_string(length: int = 16) -> str:
    """Generate a random identifier-safe string.

    Only lowercase letters and digits are used, so the result survives identifier case
    folding on every supported database.

    Args:
        length (int, optional): number of characters. Defaults to 16.

    Returns:
        str: the random string
    """
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


@lru_cache(maxsize=100)
def singularize(name: str) -> str:
    """Strip a single trailing ``s`` from a plural table name.

    Args:
        name (str): The name to convert.

    Returns:
        str: The converted name.
    """
    if len(name) > 1 and name.endswith("s"):
        return name[:-1]
    return name
