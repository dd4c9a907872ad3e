"""Text to MFD character codes.

The MFD font matches ASCII over the printable range; anything outside it is
shown as ``REPLACEMENT``.
"""

from __future__ import annotations

from .protocol import MAX_CHARACTERS_PER_LINE

FIRST_PRINTABLE = 0x20
LAST_PRINTABLE = 0x7E
REPLACEMENT = ord("?")


def encode(text: str, limit: int | None = MAX_CHARACTERS_PER_LINE) -> bytes:
    codes = bytearray()
    for char in text:
        code = ord(char)
        if FIRST_PRINTABLE <= code <= LAST_PRINTABLE:
            codes.append(code)
        else:
            codes.append(REPLACEMENT)
    if limit is not None:
        return bytes(codes[:limit])
    return bytes(codes)


def parse_hex_codes(tokens: list[str]) -> bytes:
    """Parse ``["41", "0x42", ...]`` into raw character codes."""
    codes = bytearray()
    for token in tokens:
        try:
            code = int(token, 16)
        except ValueError:
            raise ValueError(f"Invalid character code: {token!r}") from None
        if code < 0 or code > 0xFF:
            raise ValueError(f"Character code out of range: {token!r}")
        codes.append(code)
    return bytes(codes)
