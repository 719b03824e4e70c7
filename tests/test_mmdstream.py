import io
import os
import struct
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from mmdstream import (Encoding, FileReadStream, InvalidEncodingError,
                       InvalidFormatError, TruncatedInputError)

UTF8 = Encoding('utf-8')
UTF16 = Encoding('utf-16-le')


def _stream(data: bytes) -> FileReadStream:
    return FileReadStream(io.BytesIO(data))


def test_typed_reads_are_little_endian_and_packed():
    data = struct.pack('<ihHBbf', -2, -3, 0xBEEF, 0xFE, -1, 1.5) + struct.pack('<3f', 1.0, 2.0, 3.0)
    fs = _stream(data)
    assert fs.readInt() == -2
    assert fs.readShort() == -3
    assert fs.readUnsignedShort() == 0xBEEF
    assert fs.readByte() == 0xFE
    assert fs.readSignedByte() == -1
    assert fs.readFloat() == 1.5
    assert fs.readVector(3) == (1.0, 2.0, 3.0)
    assert fs.current_pos() == len(data)


def test_read_struct_array():
    fmt = struct.Struct('<If')
    fs = _stream(fmt.pack(3, 0.5) + fmt.pack(1, 0.25))
    assert fs.readStructArray(fmt, 2) == [(3, 0.5), (1, 0.25)]
    assert fs.readStructArray(fmt, 0) == []


def test_short_read_raises_truncated():
    fs = _stream(b'\x01\x02\x03')
    with pytest.raises(TruncatedInputError):
        fs.readInt()


def test_short_struct_array_raises_truncated():
    fmt = struct.Struct('<If')
    fs = _stream(fmt.pack(3, 0.5) + b'\x00\x00')
    with pytest.raises(TruncatedInputError):
        fs.readStructArray(fmt, 2)


def test_closed_source_surfaces_as_truncation():
    f = io.BytesIO(b'\x00' * 8)
    fs = FileReadStream(f)
    f.close()
    with pytest.raises(TruncatedInputError):
        fs.readInt()


def test_caller_file_object_is_left_open():
    f = io.BytesIO(b'\x00' * 4)
    with FileReadStream(f) as fs:
        fs.readInt()
    assert not f.closed


def test_path_source_is_opened_and_closed(tmp_path):
    p = tmp_path / "data.bin"
    p.write_bytes(struct.pack('<i', 42))
    with FileReadStream(str(p)) as fs:
        assert fs.path() == str(p)
        assert fs.readInt() == 42


def test_read_utf8_text():
    raw = 'ミク'.encode('utf-8')
    fs = _stream(struct.pack('<i', len(raw)) + raw)
    assert fs.readStr(UTF8) == 'ミク'


def test_read_utf16_text():
    raw = '初音ミク'.encode('utf-16-le')
    fs = _stream(struct.pack('<i', len(raw)) + raw + b'tail')
    assert fs.readStr(UTF16) == '初音ミク'
    assert fs.readBytes(4) == b'tail'


def test_read_utf16_surrogate_pair():
    raw = '\U0001F600'.encode('utf-16-le')
    fs = _stream(struct.pack('<i', len(raw)) + raw)
    assert fs.readStr(UTF16) == '\U0001F600'


def test_zero_length_text_is_empty():
    assert _stream(struct.pack('<i', 0)).readStr(UTF16) == ''
    assert _stream(struct.pack('<i', 0)).readStr(UTF8) == ''


def test_odd_length_utf16_pads_last_unit_and_consumes_only_length():
    fs = _stream(struct.pack('<i', 3) + b'A\x00B' + b'\x07')
    assert fs.readStr(UTF16) == 'AB'
    assert fs.readByte() == 7


def test_unpaired_surrogate_raises_invalid_encoding():
    fs = _stream(struct.pack('<i', 4) + b'\x00\xd8A\x00')
    with pytest.raises(InvalidEncodingError):
        fs.readStr(UTF16)


def test_invalid_utf8_passes_through():
    fs = _stream(struct.pack('<i', 4) + b'a\xff\xfeb' + b'\x07')
    text = fs.readStr(UTF8)
    assert text == 'a\udcff\udcfeb'
    assert text.encode('utf-8', 'surrogateescape') == b'a\xff\xfeb'
    assert fs.readByte() == 7


def test_negative_text_length_is_invalid_format():
    fs = _stream(struct.pack('<i', -1))
    with pytest.raises(InvalidFormatError):
        fs.readStr(UTF8)


def test_truncated_text_body():
    fs = _stream(struct.pack('<i', 10) + b'abc')
    with pytest.raises(TruncatedInputError):
        fs.readStr(UTF8)


def test_encoding_flag_lookup():
    assert Encoding(0).charset == 'utf-16-le'
    assert Encoding(1).charset == 'utf-8'
    with pytest.raises(InvalidFormatError):
        Encoding(2)


@pytest.mark.parametrize("size, data, expected", [
    (1, b'\xff', -1),
    (1, b'\x7f', 127),
    (2, b'\x00\x80', -32768),
    (2, b'\xff\xff', -1),
    (4, b'\xff\xff\xff\xff', -1),
    (4, struct.pack('<i', 70000), 70000),
])
def test_signed_index(size, data, expected):
    assert _stream(data).readIndex(size, signed=True) == expected


@pytest.mark.parametrize("size, data, expected", [
    (1, b'\xff', 255),
    (2, b'\xff\xff', 65535),
    (2, b'\x00\x80', 32768),
    # 4 byte vertex indices stay signed
    (4, b'\xff\xff\xff\xff', -1),
    (4, struct.pack('<i', 70000), 70000),
])
def test_vertex_index(size, data, expected):
    assert _stream(data).readIndex(size, signed=False) == expected


@pytest.mark.parametrize("size", [0, 3, 8])
def test_invalid_index_width(size):
    with pytest.raises(InvalidFormatError):
        _stream(b'\x00' * 8).readIndex(size)
