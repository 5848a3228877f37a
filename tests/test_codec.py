"""Tests for htstracks.core.codec module."""

import json

import numpy as np
import pytest

from conftest import COUNTS, REGION, STARTS, STRANDS, WINDOW, packed_ints
from htstracks.core.codec import (
    BinaryCodec,
    Operation,
    ServiceRequest,
    TextCodec,
    WireCodec,
)
from htstracks.core.errors import MalformedResponse, TruncatedStream
from htstracks.core.models import GenomicRegion, SampleRef, Strand


SAMPLE = SampleRef("S1", "hg19")


def text_body(doc):
    return json.dumps(doc).encode("utf-8")


class TestRequests:
    """Test request paths and parameters for each codec."""

    def test_text_starts_path(self):
        request = TextCodec().build_request(Operation.STARTS, SAMPLE, REGION, WINDOW)
        assert request.path == ("starts", "S1", "hg19", "chr1", "1000", "1100")
        assert request.params == {}

    def test_text_counts_params(self):
        request = TextCodec().build_request(Operation.COUNTS, SAMPLE, REGION, WINDOW)
        assert request.path == ("counts",)
        assert request.params == {
            "id": "S1", "g": "hg19", "chr": "chr1", "s": 1000, "e": 1100, "bw": 25,
        }

    def test_text_metadata_requests(self):
        codec = TextCodec()
        assert codec.build_request(Operation.MAPPED, SAMPLE, window=100, genome="mm10").params == {
            "id": "S1", "g": "mm10", "bw": 100,
        }
        assert codec.build_request(Operation.GENOME, SAMPLE).path == ("genome", "S1")
        assert codec.build_request(Operation.TYPE, SAMPLE).params == {"id": "S1"}
        assert codec.build_request(Operation.LENGTH, SAMPLE).path == ("length", "S1")

    def test_mapped_defaults_to_sample_genome(self):
        request = TextCodec().build_request(Operation.MAPPED, SAMPLE, window=1)
        assert request.params["g"] == "hg19"

    def test_binary_suffix(self):
        codec = BinaryCodec()
        starts = codec.build_request(Operation.STARTS, SAMPLE, REGION, WINDOW)
        strands = codec.build_request(Operation.STRANDS, SAMPLE, REGION, WINDOW)
        counts = codec.build_request(Operation.COUNTS, SAMPLE, REGION, WINDOW)

        assert starts.path[-1] == "b"
        assert strands.path == ("strands", "S1", "hg19", "chr1", "1000", "1100", "b")
        assert counts.path == ("counts", "S1", "hg19", "chr1", "1000", "1100", "25", "b")

    def test_binary_metadata_uses_text_framing(self):
        for operation in (Operation.GENOME, Operation.TYPE, Operation.LENGTH):
            assert BinaryCodec().build_request(operation, SAMPLE) == TextCodec().build_request(operation, SAMPLE)

    def test_counts_require_valid_window(self):
        with pytest.raises(ValueError):
            TextCodec().build_request(Operation.COUNTS, SAMPLE, REGION, 0)

    def test_region_required(self):
        with pytest.raises(ValueError, match="requires a region"):
            TextCodec().build_request(Operation.STARTS, SAMPLE)

    def test_url_join(self):
        request = ServiceRequest(("genome", "S1"))
        assert request.url("http://host/api/") == "http://host/api/genome/S1"


class TestCodecEquivalence:
    """Both framings of the same fixture payload decode to identical results."""

    def test_starts(self):
        text = TextCodec().decode_starts(text_body([{"s": STARTS}]))
        binary = BinaryCodec().decode_starts(packed_ints(STARTS))
        np.testing.assert_array_equal(text, binary)
        assert text.dtype == binary.dtype
        assert text.tolist() == STARTS

    def test_strands(self):
        text = TextCodec().decode_strands(text_body([{"s": STRANDS}]))
        binary = BinaryCodec().decode_strands("".join(STRANDS).encode("ascii"))
        assert text == binary
        assert [s.value for s in text] == STRANDS

    def test_counts(self):
        text = TextCodec().decode_counts(text_body([{"c": COUNTS}]), REGION, WINDOW)
        binary = BinaryCodec().decode_counts(packed_ints(COUNTS), REGION, WINDOW)
        np.testing.assert_array_equal(text, binary)
        assert len(text) == 4

    def test_empty_region(self):
        region = GenomicRegion("chr1", 500, 500)
        assert len(TextCodec().decode_counts(text_body([{"c": []}]), region, 10)) == 0
        assert len(BinaryCodec().decode_counts(b"", region, 10)) == 0

    def test_negative_and_large_values(self):
        values = [0, -1, 2 ** 31 - 1, -(2 ** 31)]
        text = TextCodec().decode_starts(text_body([{"s": values}]))
        binary = BinaryCodec().decode_starts(packed_ints(values))
        np.testing.assert_array_equal(text, binary)


class TestTextCodecErrors:
    """Test MalformedResponse conditions of the text codec."""

    @pytest.mark.parametrize("body", [
        b"[]",
        b"{}",
        b"[{}]",
        b"[{\"x\": [1, 2]}]",
        b"[{\"s\": 5}]",
        b"[{\"s\": [1, \"two\"]}]",
        b"[{\"s\": [1.5]}]",
        b"not json",
        b"",
    ])
    def test_bad_starts(self, body):
        with pytest.raises(MalformedResponse):
            TextCodec().decode_starts(body)

    def test_counts_wrong_arity(self):
        with pytest.raises(MalformedResponse, match="Expected 4 bins"):
            TextCodec().decode_counts(text_body([{"c": [1, 2, 3]}]), REGION, WINDOW)

    def test_values_beyond_int64(self):
        with pytest.raises(MalformedResponse, match="int64"):
            TextCodec().decode_starts(text_body([{"s": [1, 2 ** 70]}]))
        with pytest.raises(MalformedResponse, match="int64"):
            TextCodec().decode_counts(text_body([{"c": [0, 0, 0, 2 ** 64]}]), REGION, WINDOW)

    def test_genome_missing(self):
        with pytest.raises(MalformedResponse):
            TextCodec().decode_genome(text_body([{"name": "hg19"}]))

    def test_mapped(self):
        assert TextCodec().decode_mapped(text_body([12345])) == 12345
        with pytest.raises(MalformedResponse):
            TextCodec().decode_mapped(text_body([]))
        with pytest.raises(MalformedResponse):
            TextCodec().decode_mapped(text_body(["12345"]))

    def test_capability(self):
        probe = TextCodec().decode_capability(text_body([{"type": "bvt", "length": 50}]))
        assert probe.kind == "bvt"
        assert probe.read_length == 50

        probe = TextCodec().decode_capability(text_body([{"type": "brt"}]))
        assert probe.read_length is None

    def test_capability_requires_type_field(self):
        # A bare string element is not a classification payload
        with pytest.raises(MalformedResponse):
            TextCodec().decode_capability(text_body(["brt"]))

    def test_read_length(self):
        assert TextCodec().decode_read_length(text_body([{"length": 76}])) == 76


class TestBinaryCodecErrors:
    """Test TruncatedStream and arity checks of the binary codec."""

    @pytest.mark.parametrize("length", [1, 2, 3, 5, 7])
    def test_truncated_ints(self, length):
        with pytest.raises(TruncatedStream) as exc_info:
            BinaryCodec().decode_starts(bytes(length))
        assert exc_info.value.expected_width == 4
        assert exc_info.value.byte_length == length

    def test_truncated_counts(self):
        with pytest.raises(TruncatedStream):
            BinaryCodec().decode_counts(packed_ints(COUNTS)[:-1], REGION, WINDOW)

    def test_counts_wrong_arity(self):
        with pytest.raises(MalformedResponse):
            BinaryCodec().decode_counts(packed_ints([1, 2]), REGION, WINDOW)

    def test_strand_codes(self):
        strands = BinaryCodec().decode_strands(b"-+x.-")
        assert strands == [Strand.MINUS, Strand.PLUS, Strand.PLUS, Strand.PLUS, Strand.MINUS]


class TestWireCodec:
    """Test codec selection."""

    def test_create_by_name(self):
        assert isinstance(WireCodec.create("binary"), BinaryCodec)
        assert type(WireCodec.create("text")) is TextCodec
        assert type(WireCodec.create("TEXT")) is TextCodec

    def test_create_by_variant(self):
        assert isinstance(WireCodec.create(WireCodec.BINARY), BinaryCodec)

    def test_create_passes_instances_through(self):
        codec = BinaryCodec()
        assert WireCodec.create(codec) is codec

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown codec"):
            WireCodec.create("xml")
