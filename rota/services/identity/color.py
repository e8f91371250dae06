"""
Display color derivation for rota identities.

The same name always yields the same color on every client, so claims stay
visually consistent without any server coordination. Collisions between
different names are expected; this is a display aid only.
"""

SATURATION_PERCENT = 70
LIGHTNESS_PERCENT = 50


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _code_units(text: str):
    # Browser clients hash UTF-16 code units; keep astral characters compatible
    encoded = text.encode("utf-16-le")
    for i in range(0, len(encoded), 2):
        yield encoded[i] | (encoded[i + 1] << 8)


def name_hash(name: str) -> int:
    """Fold the name left to right with hash = code + ((hash << 5) - hash)."""
    acc = 0
    for code in _code_units(name):
        # The shift works on the 32-bit signed value of the accumulator
        acc = code + (_to_int32(_to_int32(acc) << 5) - acc)
    return acc


def hue_for(name: str) -> int:
    """Hue in [0, 360)."""
    return name_hash(name) % 360


def color_for(name: str) -> str:
    """CSS hsl() color for a display name."""
    return f"hsl({hue_for(name)}, {SATURATION_PERCENT}%, {LIGHTNESS_PERCENT}%)"
