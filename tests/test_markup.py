"""Tests for MarkupWriter and MarkupReader."""

import io

import pytest

from bagmover.storage.digest import DigestStream
from bagmover.storage.markup import MarkupError, MarkupReader, MarkupValue, MarkupWriter


class _KeepOpen(io.BytesIO):
    """BytesIO whose contents survive close()."""

    def close(self):
        self.final = self.getvalue()
        super().close()


def write_doc(build) -> bytes:
    out = _KeepOpen()
    writer = MarkupWriter(out)
    build(writer)
    writer.close()
    return out.final


def read_stanza(data: bytes, stanza: str = 'metadata') -> list[MarkupValue]:
    with MarkupReader(io.BytesIO(data)) as reader:
        assert reader.find_stanza(stanza)
        return list(reader.values())


class TestMarkupWriter:
    def test_document_shape(self):
        def build(w):
            w.start_stanza('metadata')
            w.write_value('name', 'Research')
            w.end_stanza()

        doc = write_doc(build).decode('utf-8')
        assert doc.startswith('<?xml version="1.0" encoding="utf-8"?>')
        assert '<metadata><value name="name">Research</value></metadata>' in doc

    def test_absent_arguments_are_skipped(self):
        def build(w):
            w.start_stanza('metadata')
            w.write_value('description', None)
            w.write_value(None, 'text')
            w.end_stanza()

        doc = write_doc(build).decode('utf-8')
        assert '<value' not in doc

    def test_text_is_escaped(self):
        def build(w):
            w.start_stanza('metadata')
            w.write_value('title', 'A & B <c>')
            w.end_stanza()

        doc = write_doc(build).decode('utf-8')
        assert 'A &amp; B &lt;c&gt;' in doc

    def test_value_attributes(self):
        value = MarkupValue(name='title', attrs={'schema': 'dc', 'language': 'en'}, text='T')

        def build(w):
            w.start_stanza('metadata')
            w.write_value(value)
            w.end_stanza()

        doc = write_doc(build).decode('utf-8')
        assert 'name="title"' in doc
        assert 'schema="dc"' in doc
        assert 'language="en"' in doc

    def test_nested_stanzas_close_in_order(self):
        def build(w):
            w.start_stanza('outer')
            w.start_stanza('inner')
            w.end_stanza()
            w.end_stanza()

        doc = write_doc(build).decode('utf-8')
        assert '<outer><inner></inner></outer>' in doc

    def test_close_closes_destination(self, tmp_path):
        sink = DigestStream(tmp_path / 'metadata.xml', 'data/metadata.xml')
        writer = MarkupWriter(sink)
        writer.start_stanza('metadata')
        writer.end_stanza()
        writer.close()
        assert sink.closed
        assert sink.bytes_written == (tmp_path / 'metadata.xml').stat().st_size


class TestMarkupValue:
    def test_name_attribute_is_extracted(self):
        value = MarkupValue()
        value.add_attr('name', 'title')
        value.add_attr('schema', 'dc')
        assert value.name == 'title'
        assert value.attrs == {'schema': 'dc'}

    def test_none_attribute_ignored(self):
        value = MarkupValue()
        value.add_attr('qualifier', None)
        assert value.attrs == {}


class TestMarkupReader:
    def test_round_trip(self):
        values = [
            MarkupValue(name='title', attrs={'schema': 'dc', 'element': 'title'}, text='On <Quarks> & "more"'),
            MarkupValue(name='abstract', attrs={'lang': 'fr'}, text='Été\nligne deux'),
            MarkupValue(name='empty', attrs={}, text=''),
        ]

        def build(w):
            w.start_stanza('metadata')
            for v in values:
                w.write_value(v)
            w.end_stanza()

        assert read_stanza(write_doc(build)) == values

    def test_values_without_name(self):
        def build(w):
            w.start_stanza('metadata')
            w.write_value(MarkupValue(attrs={'schema': 'dc'}, text='x'))
            w.end_stanza()

        [value] = read_stanza(write_doc(build))
        assert value.name is None
        assert value.attrs == {'schema': 'dc'}

    def test_next_value_returns_none_at_stanza_end(self):
        data = b'<doc><metadata><value name="a">1</value></metadata><other/></doc>'
        reader = MarkupReader(io.BytesIO(data))
        assert reader.find_stanza('metadata')
        assert reader.next_value().text == '1'
        assert reader.next_value() is None
        reader.close()

    def test_find_stanza_skips_other_content(self):
        data = (
            b'<?xml version="1.0"?><root><header><value name="x">skip</value></header>'
            b'<metadata><value name="y">keep</value></metadata></root>'
        )
        [value] = read_stanza(data)
        assert value.name == 'y'
        assert value.text == 'keep'

    def test_find_stanza_missing_returns_false(self):
        reader = MarkupReader(io.BytesIO(b'<root><a/><b/></root>'))
        assert reader.find_stanza('metadata') is False
        reader.close()

    def test_empty_stanza(self):
        assert read_stanza(b'<metadata></metadata>') == []

    def test_large_document_streams(self):
        def build(w):
            w.start_stanza('metadata')
            for i in range(2000):
                w.write_value(f'field{i}', 'x' * 50)
            w.end_stanza()

        values = read_stanza(write_doc(build))
        assert len(values) == 2000
        assert values[-1].name == 'field1999'
        assert values[-1].text == 'x' * 50

    def test_reads_from_path(self, tmp_path):
        path = tmp_path / 'metadata.xml'
        path.write_bytes(b'<metadata><value name="n">v</value></metadata>')
        with MarkupReader(path) as reader:
            assert reader.find_stanza('metadata')
            assert reader.next_value() == MarkupValue(name='n', attrs={}, text='v')

    def test_malformed_markup_raises_markup_error(self):
        reader = MarkupReader(io.BytesIO(b'<metadata><value name="a">1</valu></metadata>'))
        assert reader.find_stanza('metadata')
        with pytest.raises(MarkupError):
            reader.next_value()

    def test_truncated_document_raises_os_error(self):
        reader = MarkupReader(io.BytesIO(b'<root><metadata><value'))
        with pytest.raises(OSError):
            reader.find_stanza('missing')

    def test_error_is_sticky(self):
        reader = MarkupReader(io.BytesIO(b'<metadata><value name="a">1</valu></metadata>'))
        assert reader.find_stanza('metadata')
        with pytest.raises(MarkupError) as first:
            reader.next_value()
        with pytest.raises(MarkupError) as again:
            reader.next_value()
        assert again.value is first.value
        with pytest.raises(MarkupError):
            reader.find_stanza('metadata')
        reader.close()

    def test_consumed_values_are_released(self):
        def build(w):
            w.start_stanza('metadata')
            for i in range(5):
                w.write_value(f'field{i}', str(i))
            w.end_stanza()

        reader = MarkupReader(io.BytesIO(write_doc(build)))
        stanzas = []
        events = reader._events

        def watch():
            for event, elem in events:
                if event == 'start' and elem.tag == 'metadata':
                    stanzas.append(elem)
                yield event, elem

        reader._events = watch()
        assert reader.find_stanza('metadata')
        for _ in range(3):
            reader.next_value()
        assert len(stanzas[0]) <= 1
        assert [v.text for v in reader.values()] == ['3', '4']
        assert len(stanzas[0]) == 0
        reader.close()


class TestMarkupCharacters:
    def test_carriage_returns_survive(self):
        values = [MarkupValue(name='notes', attrs={'note': 'a\rb'}, text='line1\r\nline2\rend')]

        def build(w):
            w.start_stanza('metadata')
            w.write_value(values[0])
            w.end_stanza()

        data = write_doc(build)
        assert b'&#13;' in data
        assert read_stanza(data) == values

    def test_control_character_in_text_rejected(self):
        writer = MarkupWriter(_KeepOpen())
        writer.start_stanza('metadata')
        with pytest.raises(MarkupError, match='bell'):
            writer.write_value('bell', 'ring\x07')

    def test_control_character_in_attribute_rejected(self):
        writer = MarkupWriter(_KeepOpen())
        writer.start_stanza('metadata')
        with pytest.raises(MarkupError):
            writer.write_value(MarkupValue(name='x', attrs={'lang': 'e\x00n'}, text='ok'))

    def test_tabs_and_astral_characters_allowed(self):
        def build(w):
            w.start_stanza('metadata')
            w.write_value('t', 'a\tb \U0001F600')
            w.end_stanza()

        [value] = read_stanza(write_doc(build))
        assert value.text == 'a\tb \U0001F600'
