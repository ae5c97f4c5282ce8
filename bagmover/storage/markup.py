"""Streaming XML writer and pull reader for "stanza of named values" documents.

Document shape::

    <?xml version="1.0" encoding="utf-8"?>
    <metadata>
      <value name="title" language="en">Some title</value>
      ...
    </metadata>
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Iterator
from xml.sax.saxutils import XMLGenerator, escape
from xml.sax.xmlreader import AttributesImpl

log = logging.getLogger(__name__)

ENCODING = 'utf-8'
VALUE_ELEMENT = 'value'
NAME_ATTR = 'name'
_READ_CHUNK = 16384
_TEXT_ENTITIES = {'\r': '&#13;'}
# complement of the XML 1.0 Char production
_INVALID_CHARS = re.compile('[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]')


class MarkupError(OSError):
    """Malformed markup in a metadata document."""


@dataclass
class MarkupValue:
    name: str | None = None
    attrs: dict[str, str] = field(default_factory=dict)
    text: str = ''

    def add_attr(self, key: str, value: str | None) -> None:
        if value is None:
            return
        if key == NAME_ATTR:
            self.name = value
        else:
            self.attrs[key] = value


def _local_name(tag: str) -> str:
    return tag.rsplit('}', 1)[-1]


def _check_chars(text: str, where: str) -> None:
    bad = _INVALID_CHARS.search(text)
    if bad is not None:
        raise MarkupError(f'{where}: character {bad.group()!r} cannot be written as XML')


class MarkupWriter:
    """Serialize stanzas of values to a binary sink.

    The sink only needs a ``write(bytes)`` method; a :class:`DigestStream`
    works. Stanza balance is not checked.
    """

    def __init__(self, out: BinaryIO) -> None:
        self._out = out
        self._gen = XMLGenerator(out, encoding=ENCODING, short_empty_elements=False)
        self._gen.startDocument()
        self._stanzas: list[str] = []

    def __enter__(self) -> MarkupWriter:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def start_stanza(self, name: str) -> None:
        self._stanzas.append(name)
        self._gen.startElement(name, AttributesImpl({}))

    def end_stanza(self) -> None:
        self._gen.endElement(self._stanzas.pop())

    def write_value(self, name_or_value: str | MarkupValue | None, text: str | None = None) -> None:
        if isinstance(name_or_value, MarkupValue):
            self._write_markup_value(name_or_value)
            return
        if name_or_value is None or text is None:
            return
        self._emit({NAME_ATTR: name_or_value}, text)

    def _write_markup_value(self, value: MarkupValue) -> None:
        attrs: dict[str, str] = {}
        if value.name is not None:
            attrs[NAME_ATTR] = value.name
        for key, val in value.attrs.items():
            if val is not None:
                attrs[key] = val
        self._emit(attrs, value.text)

    def _emit(self, attrs: dict[str, str], text: str | None) -> None:
        for key, val in attrs.items():
            _check_chars(val, f'attribute {key!r}')
        if text:
            _check_chars(text, f'value {attrs.get(NAME_ATTR)!r}')
        self._gen.startElement(VALUE_ELEMENT, AttributesImpl(attrs))
        if text:
            # XMLGenerator leaves \r raw, and parsers normalise it to \n
            self._gen.ignorableWhitespace(escape(text, _TEXT_ENTITIES))
        self._gen.endElement(VALUE_ELEMENT)

    def close(self) -> None:
        self._gen.endDocument()
        self._out.close()


class MarkupReader:
    """Pull cursor over a stanza-of-values document.

    Events are produced incrementally from the source stream, and each
    element is detached from its parent once it has been consumed, so large
    documents are never held in memory as a whole.

    After a :class:`MarkupError` the reader is unusable; every later call
    raises the same error.
    """

    def __init__(self, source: str | Path | BinaryIO) -> None:
        if isinstance(source, (str, Path)):
            self._in = open(source, 'rb')  # noqa: SIM115
        else:
            self._in = source
        self._parser = ET.XMLPullParser(events=('start', 'end'))
        self._events = self._iter_events()
        self._error: MarkupError | None = None

    def __enter__(self) -> MarkupReader:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _iter_events(self) -> Iterator[tuple[str, ET.Element]]:
        open_elements: list[ET.Element] = []
        try:
            while True:
                for event, elem in self._parser.read_events():
                    if event == 'start':
                        open_elements.append(elem)
                        yield event, elem
                        continue
                    open_elements.pop()
                    yield event, elem
                    if open_elements:
                        open_elements[-1].remove(elem)
                chunk = self._in.read(_READ_CHUNK)
                if not chunk:
                    self._parser.close()
                    yield from self._parser.read_events()
                    return
                self._parser.feed(chunk)
        except ET.ParseError as exc:
            self._error = MarkupError(f'malformed markup: {exc}')
            raise self._error from exc

    def _pull(self) -> Iterator[tuple[str, ET.Element]]:
        if self._error is not None:
            raise self._error
        return self._events

    def find_stanza(self, name: str) -> bool:
        for event, elem in self._pull():
            if event == 'start' and _local_name(elem.tag) == name:
                return True
        return False

    def next_value(self) -> MarkupValue | None:
        """Return the next value in the current stanza, or None at its end."""
        value: MarkupValue | None = None
        for event, elem in self._pull():
            if event == 'start':
                value = MarkupValue()
                for key, val in elem.attrib.items():
                    value.add_attr(_local_name(key), val)
            else:
                if value is not None:
                    value.text = elem.text or ''
                elem.clear()
                return value
        return value

    def values(self) -> Iterator[MarkupValue]:
        while (value := self.next_value()) is not None:
            yield value

    def close(self) -> None:
        self._events.close()
        self._in.close()
