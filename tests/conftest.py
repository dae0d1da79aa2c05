"""Shared helpers for building encoded layer payloads."""

import base64
import gzip
import struct
import zlib

import pytest
import zstandard


def pack_cells(values):
    """Raw little-endian uint32 bytes for a list of cell values."""
    return struct.pack('<%dI' % len(values), *values)


def encode_base64(values, compression=None):
    """Encode cell values the way Tiled writes base64 layer data."""
    data = pack_cells(values)
    if compression == 'zlib':
        data = zlib.compress(data)
    elif compression == 'gzip':
        data = gzip.compress(data)
    elif compression == 'zstd':
        data = zstandard.ZstdCompressor().compress(data)
    return base64.b64encode(data).decode('ascii')


@pytest.fixture
def b64():
    return encode_base64
