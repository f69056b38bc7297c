"""Minimal streaming JSON writer with call-site controlled key order.

The stdlib ``json`` module serialises whole objects; bundle reports need
field order and escaping that are fixed by the writer itself so that two
reports with equal content always produce byte-identical output.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class TextSink(Protocol):
    def write(self, text: str, /) -> object: ...


class JsonWriterError(RuntimeError):
    """Raised when calls arrive in an order that cannot produce valid JSON."""


class _Container(Enum):
    OBJECT = "object"
    ARRAY = "array"


@dataclass
class _Frame:
    container: _Container
    first: bool = True
    expecting_value: bool = False


_HEX = "0123456789abcdef"
_SIMPLE_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def _unicode_escape(code: int) -> str:
    return "\\u" + "".join(_HEX[(code >> shift) & 0xF] for shift in (12, 8, 4, 0))


def escape_json_string(value: str) -> str:
    """Return *value* as a quoted JSON string literal.

    Quotes, backslashes, control characters below U+0020 and lone
    surrogates are escaped, so the result always encodes as UTF-8.
    Everything else is emitted verbatim.
    """
    out = ['"']
    for ch in value:
        escaped = _SIMPLE_ESCAPES.get(ch)
        if escaped is not None:
            out.append(escaped)
        elif ord(ch) <= 0x1F or 0xD800 <= ord(ch) <= 0xDFFF:
            out.append(_unicode_escape(ord(ch)))
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


class JsonWriter:
    """Streams JSON tokens to *out*.

    Usage::

        writer = JsonWriter(buffer)
        writer.begin_object()
        writer.name("id").value("abc")
        writer.end_object()
    """

    def __init__(self, out: TextSink) -> None:
        self._out = out
        self._stack: list[_Frame] = []

    def begin_object(self) -> JsonWriter:
        self._before_value()
        self._out.write("{")
        self._stack.append(_Frame(_Container.OBJECT))
        return self

    def end_object(self) -> JsonWriter:
        frame = self._expect(_Container.OBJECT)
        if frame.expecting_value:
            raise JsonWriterError("Object field name without value")
        self._stack.pop()
        self._out.write("}")
        return self

    def begin_array(self) -> JsonWriter:
        self._before_value()
        self._out.write("[")
        self._stack.append(_Frame(_Container.ARRAY))
        return self

    def end_array(self) -> JsonWriter:
        self._expect(_Container.ARRAY)
        self._stack.pop()
        self._out.write("]")
        return self

    def name(self, name: str) -> JsonWriter:
        frame = self._expect(_Container.OBJECT)
        if frame.expecting_value:
            raise JsonWriterError("Previous field missing a value")
        if not frame.first:
            self._out.write(",")
        frame.first = False
        frame.expecting_value = True
        self._out.write(escape_json_string(name))
        self._out.write(":")
        return self

    def value(self, value: str | bool | int | float | None) -> JsonWriter:
        if value is None:
            return self.null_value()
        self._before_value()
        # bool before int: bool is an int subclass.
        if isinstance(value, bool):
            self._out.write("true" if value else "false")
        elif isinstance(value, (int, float)):
            self._out.write(repr(value))
        else:
            self._out.write(escape_json_string(value))
        return self

    def null_value(self) -> JsonWriter:
        self._before_value()
        self._out.write("null")
        return self

    def string_array(self, items: tuple[str, ...] | list[str]) -> JsonWriter:
        self.begin_array()
        for item in items:
            self.value(item)
        return self.end_array()

    @property
    def complete(self) -> bool:
        """True once every opened object and array has been closed."""
        return not self._stack

    def _before_value(self) -> None:
        if not self._stack:
            return
        frame = self._stack[-1]
        if frame.container is _Container.ARRAY:
            if not frame.first:
                self._out.write(",")
            frame.first = False
        else:
            if not frame.expecting_value:
                raise JsonWriterError("Object value without field name")
            frame.expecting_value = False

    def _expect(self, container: _Container) -> _Frame:
        if not self._stack or self._stack[-1].container is not container:
            raise JsonWriterError("JSON write stack mismatch")
        return self._stack[-1]
