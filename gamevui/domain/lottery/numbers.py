from __future__ import annotations

_UNITS = ["không", "một", "hai", "ba", "bốn", "năm", "sáu", "bảy", "tám", "chín"]
_TENS = ["", "mười", "hai mươi", "ba mươi", "bốn mươi", "năm mươi",
         "sáu mươi", "bảy mươi", "tám mươi", "chín mươi"]


def read_number_vi(num: int) -> str:
    """
    Spoken Vietnamese for 0..99, the way a lô tô caller reads it:
    21 -> "hai mươi mốt", 24 -> "hai mươi tư", 15 -> "mười lăm".
    """
    if num < 0 or num > 99:
        raise ValueError(f"num out of range: {num}")
    if num <= 9:
        return _UNITS[num]

    tens, unit = divmod(num, 10)
    text = _TENS[tens]
    if unit == 0:
        return text
    if unit == 1:
        return f"{text} mốt" if tens > 1 else f"{text} một"
    if unit == 4:
        return f"{text} tư" if tens > 1 else f"{text} bốn"
    if unit == 5:
        return f"{text} lăm"
    return f"{text} {_UNITS[unit]}"
