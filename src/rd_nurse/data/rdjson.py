"""Lenient reader for the JSON dialect used by ``.rdlevel`` files.

The level editor writes JSON that the standard library rejects: trailing
commas, missing commas between entries, and literal newlines inside strings.
This reader accepts all of those. It never raises on malformed input;
a container that cannot be read decodes to ``None``.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

_WHITESPACE = frozenset("\t\n\r ")
_WORD_BREAK = _WHITESPACE | frozenset('{}[]:,"')
_NUMBER_START = frozenset("0123456789-")
_ESCAPES = {'"': '"', "/": "/", "\\": "\\", "b": "\b", "f": "\f", "n": "\n", "r": "\r", "t": "\t"}

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

# Token kinds
LEFT_BRACE = "{"
RIGHT_BRACE = "}"
LEFT_BRACKET = "["
RIGHT_BRACKET = "]"
COLON = ":"
COMMA = ","
STRING = "string"
NUMBER = "number"
TRUE = "true"
FALSE = "false"
NULL = "null"
UNKNOWN = "unknown"


def _parse_long(word: str) -> int:
    try:
        value = int(word)
    except ValueError:
        return 0
    return value if _INT64_MIN <= value <= _INT64_MAX else 0


def _parse_double(word: str) -> float:
    try:
        return float(word)
    except ValueError:
        return 0.0


class RDJsonParser:
    """Single-pass recursive reader over a level text."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def _peek(self) -> str:
        return self._text[self._pos] if self._pos < len(self._text) else ""

    def _read(self) -> str:
        c = self._peek()
        if c:
            self._pos += 1
        return c

    def _skip_whitespace(self) -> None:
        while self._peek() in _WHITESPACE:
            self._pos += 1

    def _get_word(self) -> str:
        start = self._pos
        while self._peek() and self._peek() not in _WORD_BREAK:
            self._pos += 1
        return self._text[start:self._pos]

    def _get_token(self) -> str | None:
        """Classify the next token.

        Closing brackets and commas are consumed here; openers, colons and
        scalars are left for the caller to read.
        """
        self._skip_whitespace()
        c = self._peek()
        if not c:
            return None
        if c in (RIGHT_BRACE, RIGHT_BRACKET, COMMA):
            self._read()
            return c
        if c in (LEFT_BRACE, LEFT_BRACKET, COLON):
            return c
        if c == '"':
            return STRING
        if c in _NUMBER_START:
            return NUMBER
        word = self._get_word()
        if word in (TRUE, FALSE, NULL):
            return word
        return UNKNOWN

    def parse_value(self) -> Any:
        return self._parse_by_token(self._get_token())

    def _parse_by_token(self, token: str | None) -> Any:
        if token == LEFT_BRACE:
            return self.parse_object()
        if token == LEFT_BRACKET:
            return self.parse_array()
        if token == STRING:
            return self.parse_string()
        if token == NUMBER:
            return self.parse_number()
        if token == TRUE:
            return True
        if token == FALSE:
            return False
        return None

    def parse_object(self) -> dict[str, Any] | None:
        value: dict[str, Any] = {}
        self._read()
        while True:
            token = self._get_token()
            if token is None or token == UNKNOWN:
                return None
            if token == RIGHT_BRACE:
                return value
            if token == COMMA:
                continue
            key = self.parse_string()
            if self._get_token() != COLON:
                return None
            self._read()
            value[key] = self.parse_value()

    def parse_array(self) -> list[Any] | None:
        value: list[Any] = []
        self._read()
        while True:
            token = self._get_token()
            if token is None or token == UNKNOWN:
                return None
            if token == RIGHT_BRACKET:
                return value
            if token == COLON:
                self._read()
                continue
            if token == COMMA:
                continue
            value.append(self._parse_by_token(token))

    def parse_string(self) -> str:
        self._read()
        chars: list[str] = []
        while True:
            c = self._read()
            if c in ("", '"'):
                break
            if c != "\\":
                chars.append(c)
                continue
            c = self._read()
            if not c:
                break
            if c == "u":
                code = "".join(self._read() for _ in range(4))
                try:
                    chars.append(chr(int(code, 16)))
                except ValueError:
                    logger.debug("Dropping malformed unicode escape \\u%s", code)
            elif c in _ESCAPES:
                chars.append(_ESCAPES[c])
        return "".join(chars)

    def parse_number(self) -> int | float:
        word = self._get_word()
        return _parse_double(word) if "." in word else _parse_long(word)


def loads(text: str) -> Any:
    """Decode a level text. A leading byte-order mark is ignored."""
    if text.startswith("\ufeff"):
        text = text[1:]
    return RDJsonParser(text).parse_value()
