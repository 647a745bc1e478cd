# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""RFC 2047 header encoding and base64 body wrapping.

Header values that contain non-ASCII text are turned into one or more
``=?UTF-8?b?...?=`` encoded-words. RFC 2047 limits an encoded-word to 75
characters, so long values are split into several words which are placed on
continuation lines (line separator followed by a single space).

Display names use ``=?utf-8?q?...?=`` words instead (see :func:`q_encode`).

Plain ASCII values are left untouched apart from a hard wrap every 60
characters.

Example:
    >>> encode("Subject", "\\n")
    'Subject'
    >>> encode("äöü", "\\r\\n")
    '=?UTF-8?b?w6TDtsO8?='
"""

from __future__ import annotations

import base64

CHARSET = "UTF-8"
WORD_PREFIX = f"=?{CHARSET}?b?"
WORD_SUFFIX = "?="

MAX_ENCODED_WORD_LEN = 75
# Room left for base64 text once the delimiters are accounted for.
MAX_CONTENT_LEN = MAX_ENCODED_WORD_LEN - len(WORD_PREFIX) - len(WORD_SUFFIX)
# Raw bytes that fit in MAX_CONTENT_LEN base64 characters.
MAX_BASE64_LEN = MAX_CONTENT_LEN // 4 * 3

HEADER_WRAP_LEN = 60
BASE64_LINE_LEN = 76
BASE64_WRAP_GUARD = 60


def needs_encoding(text: str) -> bool:
    """Return True if ``text`` holds control characters or non-ASCII."""
    return any((ch < " " or ch > "~") and ch != "\t" for ch in text)


def _to_bytes(text: str) -> bytes:
    # Undecodable bytes from file names come back as lone surrogates.
    return text.encode("utf-8", errors="surrogateescape")


def _word(chunk: bytes, prefix: str = WORD_PREFIX) -> str:
    return prefix + base64.b64encode(chunk).decode("ascii") + WORD_SUFFIX


def b_encode(text: str, charset: str = CHARSET) -> str:
    """Encode ``text`` as space separated RFC 2047 B encoded-words.

    Text that does not need encoding is returned unchanged. Multi-byte
    characters are never split across two words.
    """
    if not needs_encoding(text):
        return text

    prefix = f"=?{charset}?b?"
    raw = _to_bytes(text)
    if len(base64.b64encode(raw)) <= MAX_CONTENT_LEN:
        return _word(raw, prefix)

    words: list[str] = []
    chunk = bytearray()
    for ch in text:
        encoded = _to_bytes(ch)
        if chunk and len(chunk) + len(encoded) > MAX_BASE64_LEN:
            words.append(_word(bytes(chunk), prefix))
            chunk.clear()
        chunk += encoded
    words.append(_word(bytes(chunk), prefix))
    return " ".join(words)


def _q_chars(data: bytes) -> str:
    out = []
    for b in data:
        if b == 0x20:
            out.append("_")
        elif 0x21 <= b <= 0x7E and b not in b"=?_":
            out.append(chr(b))
        else:
            out.append(f"={b:02X}")
    return "".join(out)


def q_encode(text: str, charset: str = "utf-8") -> str:
    """Encode ``text`` as space separated RFC 2047 Q encoded-words.

    Used for display names. Same word limit as :func:`b_encode`.
    """
    if not needs_encoding(text):
        return text

    prefix = f"=?{charset}?q?"
    words: list[str] = []
    current = ""
    for ch in text:
        encoded = _q_chars(_to_bytes(ch))
        if current and len(current) + len(encoded) > MAX_CONTENT_LEN:
            words.append(prefix + current + WORD_SUFFIX)
            current = ""
        current += encoded
    words.append(prefix + current + WORD_SUFFIX)
    return " ".join(words)


def encode(raw: str, line_separator: str) -> str:
    """Encode a header value, folding it with ``line_separator``.

    Args:
        raw: The unencoded header value.
        line_separator: ``"\\n"`` or ``"\\r\\n"``.

    Returns:
        The header value ready to be written after ``Name: ``.
    """
    continuation = line_separator + " "
    encoded = b_encode(raw)

    if encoded != raw:
        return encoded.replace(" ", continuation)

    parts: list[str] = []
    while len(encoded) > HEADER_WRAP_LEN:
        parts.append(encoded[:HEADER_WRAP_LEN])
        encoded = encoded[HEADER_WRAP_LEN:]
    parts.append(encoded)
    return continuation.join(parts)


def wrap_base64(data: bytes, line_separator: bytes) -> bytes:
    """Base64 encode ``data`` into lines of 76 octets.

    The last line never carries a trailing separator.
    """
    encoded = base64.b64encode(data)
    lines: list[bytes] = []
    while len(encoded) > BASE64_WRAP_GUARD:
        lines.append(encoded[:BASE64_LINE_LEN])
        encoded = encoded[BASE64_LINE_LEN:]
    if encoded or not lines:
        lines.append(encoded)
    return line_separator.join(lines)
