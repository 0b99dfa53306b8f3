import math


def to_int(value: object) -> int | None:
    """Coerce a value to an integer if possible.

    Numeric strings such as ``"1500"`` or ``"1500.0"`` are accepted; anything
    else (``"?"``, ``""``, ``None``, NaN) yields None.

    Args:
        value: Value to coerce.

    Returns:
        Integer value or None.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = float(text)
        except ValueError:
            return None
        return int(parsed) if math.isfinite(parsed) else None
    return None
