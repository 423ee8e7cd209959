from typing import Any

import msgspec

__all__ = ("decode_json", "encode_json")

_encoder = msgspec.json.Encoder()
_decoder = msgspec.json.Decoder()


def _type_to_string(value: Any) -> Any:
    """Fallback used for values msgspec cannot encode natively."""
    return str(value)


def encode_json(data: Any) -> str:
    try:
        return _encoder.encode(data).decode("utf-8")
    except TypeError:
        return msgspec.json.encode(data, enc_hook=_type_to_string).decode("utf-8")


def decode_json(data: "str | bytes") -> Any:
    return _decoder.decode(data)
