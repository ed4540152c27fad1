# polyline.py
# Decoder for Google-style encoded polylines.
# ORS encodes at precision 5 (1e5), Valhalla at precision 6 (1e6).

from typing import List

import polyline

from .models import Coord


def decode_polyline(encoded: str, precision: int = 5) -> List[Coord]:
    """
    Decode an encoded polyline into coordinates.

    Args:
        encoded:   Polyline string.
        precision: Number of decimal places used by the encoder (5 or 6).

    Returns:
        List of Coord in the encoded order.

    Raises:
        ValueError: Malformed or truncated input.
    """
    for pos, ch in enumerate(encoded):
        if not 63 <= ord(ch) <= 126:
            raise ValueError(f"Invalid polyline character at position {pos}.")
    try:
        return [Coord(lat, lon) for lat, lon in polyline.decode(encoded, precision)]
    except IndexError:
        raise ValueError("Truncated polyline string.")
