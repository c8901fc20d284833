"""Rounding shared by the metrics modules."""

import math


def round_half_up(value: float, ndigits: int = 0) -> float:
    """
    Round with ties going up (towards positive infinity).

    ``round_half_up(2.5) == 3`` and ``round_half_up(-2.5) == -2``, unlike
    the built-in ``round`` which sends ties to the even neighbour. Returns
    an int when ``ndigits`` is 0.
    """
    if ndigits == 0:
        return math.floor(value + 0.5)
    scale = 10 ** ndigits
    return math.floor(value * scale + 0.5) / scale
