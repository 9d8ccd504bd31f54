from typing import Any

from msgspec.json import Decoder

__all__ = ("decode_json",)

decoder = Decoder()


def decode_json(data: "str | bytes") -> Any:
    """Decode a JSON document into builtin Python types."""
    return decoder.decode(data)
