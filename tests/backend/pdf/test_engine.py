"""Tests for structural PDF operations."""

import pytest

from docops.pdf import InvalidPageOrder, MalformedDocument, NoValidPages, PdfStructuralEngine


@pytest.fixture
def engine():
    return PdfStructuralEngine()


class TestMerge:
    """Test merge."""

    def test_concatenates_in_input_order(self, engine, make_pdf, page_texts):
        first = make_pdf(2)
        second = make_pdf(3)

        result = engine.merge([second, first])

        assert result.page_count == 5
        assert page_texts(result.data) == ["Page 1", "Page 2", "Page 3", "Page 1", "Page 2"]
        assert result.byte_size == len(result.data)

    def test_inputs_are_not_modified(self, engine, make_pdf):
        first = make_pdf(2)
        snapshot = bytes(first)

        engine.merge([first, first])

        assert first == snapshot

    def test_malformed_input_reports_index(self, engine, make_pdf):
        with pytest.raises(MalformedDocument) as exc:
            engine.merge([make_pdf(1), b"not a pdf"])
        assert exc.value.details["input"] == 1

    def test_empty_input_rejected(self, engine, make_pdf):
        with pytest.raises(MalformedDocument):
            engine.merge([make_pdf(1), b""])

    def test_no_inputs(self, engine):
        with pytest.raises(NoValidPages):
            engine.merge([])


class TestSplit:
    """Test split."""

    def test_one_output_per_group(self, engine, make_pdf, page_texts):
        source = make_pdf(10)

        parts = engine.split(source, ["1-3", "5", "7-10"])

        assert [part.source_expression for part in parts] == ["1-3", "5", "7-10"]
        assert [part.page_count for part in parts] == [3, 1, 4]
        assert page_texts(parts[1].data) == ["Page 5"]
        assert all(part.byte_size == len(part.data) for part in parts)

    def test_pages_follow_document_order(self, engine, make_pdf, page_texts):
        parts = engine.split(make_pdf(6), ["5,1-3"])

        assert page_texts(parts[0].data) == ["Page 1", "Page 2", "Page 3", "Page 5"]

    def test_empty_groups_are_omitted(self, engine, make_pdf):
        parts = engine.split(make_pdf(5), ["99", "2-3", "abc"])

        assert len(parts) == 1
        assert parts[0].source_expression == "2-3"

    def test_all_groups_empty(self, engine, make_pdf):
        with pytest.raises(NoValidPages):
            engine.split(make_pdf(5), ["99"])

    def test_no_groups(self, engine, make_pdf):
        with pytest.raises(NoValidPages):
            engine.split(make_pdf(5), [])

    def test_full_range_split_then_merge_keeps_page_count(self, engine, make_pdf):
        source = make_pdf(3)

        parts = engine.split(source, ["1-3"])
        merged = engine.merge([parts[0].data])

        assert merged.page_count == 3

    def test_malformed_source(self, engine):
        with pytest.raises(MalformedDocument):
            engine.split(b"%PDF-garbage", ["1"])


class TestReorder:
    """Test reorder."""

    def test_preserves_caller_order(self, engine, make_pdf, page_texts):
        result = engine.reorder(make_pdf(4), [3, 1, 2, 4])

        assert page_texts(result.data) == ["Page 3", "Page 1", "Page 2", "Page 4"]

    def test_duplicates_are_honored(self, engine, make_pdf, page_texts):
        result = engine.reorder(make_pdf(3), [2, 2, 1])

        assert result.page_count == 3
        assert page_texts(result.data) == ["Page 2", "Page 2", "Page 1"]

    def test_out_of_range_entries_dropped(self, engine, make_pdf, page_texts):
        result = engine.reorder(make_pdf(3), [0, 3, 9, -1, 1])

        assert page_texts(result.data) == ["Page 3", "Page 1"]

    def test_nothing_in_range(self, engine, make_pdf):
        with pytest.raises(InvalidPageOrder):
            engine.reorder(make_pdf(3), [0, 4, 5])

    def test_empty_order(self, engine, make_pdf):
        with pytest.raises(InvalidPageOrder):
            engine.reorder(make_pdf(3), [])


class TestInfo:
    """Test info."""

    def test_reads_metadata(self, engine, make_pdf):
        data = make_pdf(2, title="Quarterly Report", author="Finance")

        info = engine.info(data)

        assert info.page_count == 2
        assert info.title == "Quarterly Report"
        assert info.author == "Finance"
        assert info.byte_size == len(data)

    def test_missing_metadata_is_none(self, engine, make_pdf):
        info = engine.info(make_pdf(1))

        assert info.title is None
        assert info.author is None

    def test_malformed(self, engine):
        with pytest.raises(MalformedDocument):
            engine.info(b"hello")
