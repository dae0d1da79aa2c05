"""Tests for layer data decoding (csv, base64, compression, xml)."""

import base64
import zlib

import numpy as np
import pytest

from tmx_reader.errors import (
    LayerSizeMismatchError,
    MalformedEncodingError,
    UnsupportedCompressionError,
    UnsupportedEncodingError,
)
from tmx_reader.layer_data import TileRegion, decode_layer_data
from tmx_reader.tile_index import EMPTY_TOKEN_GID


class TestCsv:

    def test_simple(self):
        values = decode_layer_data('csv', None, "1,2,3,4", 4)
        assert list(values) == [1, 2, 3, 4]
        assert values.dtype == np.uint32

    def test_newlines_and_whitespace_ignored(self):
        text = "\n  1,2,\n  3,4\n"
        assert list(decode_layer_data('csv', None, text, 4)) == [1, 2, 3, 4]

    def test_empty_token_is_sentinel_not_error(self):
        values = decode_layer_data('csv', None, "1,2,,4", 4)
        assert len(values) == 4
        assert values[2] == EMPTY_TOKEN_GID
        assert values[2] != 0

    def test_non_numeric_token_is_lenient(self):
        values = decode_layer_data('csv', None, "1,x,3", 3)
        assert values[1] == EMPTY_TOKEN_GID

    def test_strict_mode_rejects_empty_token(self):
        with pytest.raises(MalformedEncodingError):
            decode_layer_data('csv', None, "1,2,,4", 4, lenient=False)

    def test_trailing_comma_does_not_add_a_cell(self):
        assert list(decode_layer_data('csv', None, "1,2,3,\n", 3)) == [1, 2, 3]

    def test_trailing_hole_is_a_cell(self):
        """2x2 layer ending in a hole: the empty last token is the fourth cell."""
        values = decode_layer_data('csv', None, "1,2,3,", 4)
        assert list(values) == [1, 2, 3, EMPTY_TOKEN_GID]

    def test_trailing_hole_strict(self):
        with pytest.raises(MalformedEncodingError):
            decode_layer_data('csv', None, "1,2,3,", 4, lenient=False)

    def test_flags_are_kept_in_raw_values(self):
        values = decode_layer_data('csv', None, "2147483649,0", 2)
        assert values[0] == 0x80000001

    def test_value_too_large(self):
        with pytest.raises(MalformedEncodingError):
            decode_layer_data('csv', None, "4294967296", 1)

    def test_bytes_payload(self):
        assert list(decode_layer_data('csv', None, b"5,6", 2)) == [5, 6]


class TestBase64:

    @pytest.mark.parametrize("compression", [None, 'none', '', 'zlib', 'gzip', 'zstd'])
    def test_2x2_fixture(self, b64, compression):
        payload = b64([1, 2, 3, 4], None if compression in ('none', '') else compression)
        values = decode_layer_data('base64', compression, payload, 4)
        assert list(values) == [1, 2, 3, 4]

    def test_whitespace_in_payload(self, b64):
        payload = b64([1, 2, 3, 4], 'zlib')
        wrapped = "\n   " + payload[:6] + "\n   " + payload[6:] + "\n"
        assert list(decode_layer_data('base64', 'zlib', wrapped, 4)) == [1, 2, 3, 4]

    def test_flags_survive(self, b64):
        values = decode_layer_data('base64', 'gzip', b64([0xC0000003], 'gzip'), 1)
        assert values[0] == 0xC0000003

    def test_zlib_header_is_not_validated(self):
        data = bytearray(zlib.compress(b'\x01\x00\x00\x00'))
        data[0:2] = b'\x00\x00'
        payload = base64.b64encode(bytes(data)).decode('ascii')
        assert list(decode_layer_data('base64', 'zlib', payload, 1)) == [1]

    def test_trailing_partial_group_dropped(self):
        payload = base64.b64encode(b'\x07\x00\x00\x00\x09\x00').decode('ascii')
        assert list(decode_layer_data('base64', None, payload, 1)) == [7]

    def test_invalid_base64(self):
        with pytest.raises(MalformedEncodingError):
            decode_layer_data('base64', None, "!!!not base64!!!", 1)

    def test_truncated_zlib_stream(self, b64):
        raw = base64.b64decode(b64(list(range(64)), 'zlib'))
        payload = base64.b64encode(raw[:len(raw) // 2]).decode('ascii')
        with pytest.raises(MalformedEncodingError):
            decode_layer_data('base64', 'zlib', payload, 64)

    def test_corrupt_gzip_stream(self):
        payload = base64.b64encode(b'not a gzip stream').decode('ascii')
        with pytest.raises(MalformedEncodingError):
            decode_layer_data('base64', 'gzip', payload, 1)

    def test_unsupported_compression(self, b64):
        with pytest.raises(UnsupportedCompressionError) as excinfo:
            decode_layer_data('base64', 'lzma', b64([1]), 1)
        assert excinfo.value.compression == 'lzma'

    @pytest.mark.parametrize("encoding,payload", [
        ('csv', "1,2"),
        (None, ['1', '2']),
    ])
    def test_unknown_compression_rejected_for_any_encoding(self, encoding, payload):
        with pytest.raises(UnsupportedCompressionError):
            decode_layer_data(encoding, 'lzma', payload, 2)

    @pytest.mark.parametrize("compression", [None, '', 'none'])
    def test_no_compression_names_accepted_for_csv(self, compression):
        assert list(decode_layer_data('csv', compression, "1,2", 2)) == [1, 2]


class TestXmlTiles:

    def test_gid_attributes(self):
        assert list(decode_layer_data(None, None, ['1', None, '3'], 3)) == [1, 0, 3]

    def test_text_payload_rejected(self):
        with pytest.raises(MalformedEncodingError):
            decode_layer_data(None, None, "1,2", 2)


class TestSizeValidation:

    def test_3x3_with_8_cells(self):
        with pytest.raises(LayerSizeMismatchError) as excinfo:
            decode_layer_data('csv', None, "1,2,3,4,5,6,7,8", 9)
        assert excinfo.value.expected == 9
        assert excinfo.value.actual == 8

    def test_too_many_cells(self, b64):
        with pytest.raises(LayerSizeMismatchError):
            decode_layer_data('base64', 'zlib', b64([1, 2, 3], 'zlib'), 2)

    def test_unknown_encoding(self):
        with pytest.raises(UnsupportedEncodingError):
            decode_layer_data('json', None, "[]", 0)

    def test_result_is_read_only(self):
        values = decode_layer_data('csv', None, "1,2", 2)
        with pytest.raises(ValueError):
            values[0] = 5


class TestTileRegion:

    def test_row_major_layout(self):
        region = TileRegion.from_payload(3, 2, 'csv', None, "1,2,3,4,5,6")
        assert region.raw.shape == (2, 3)
        assert region.cell(0, 0).gid == 1
        assert region.cell(2, 0).gid == 3
        assert region.cell(0, 1).gid == 4

    def test_outside_is_empty(self):
        region = TileRegion.from_payload(2, 2, 'csv', None, "1,2,3,4")
        assert region.cell(5, 5).is_empty
        assert region.cell(-1, 0).is_empty

    def test_gids_and_flip_bits(self):
        region = TileRegion.from_payload(2, 1, 'csv', None, "2147483650,3")
        assert region.gids.tolist() == [[2, 3]]
        assert region.flip_bits.tolist() == [[4, 0]]

    def test_iteration_skips_empty_cells(self):
        region = TileRegion.from_payload(2, 2, 'csv', None, "0,7,,9")
        assert [(x, y, c.gid) for x, y, c in region] == [(1, 0, 7), (1, 1, 9)]
