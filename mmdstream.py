# -*- coding: utf-8 -*-
# Copyright 2014 MMD Tools authors
# This file is part of MMD Tools.

# Changes:
# - Split the read stream out of pypmx so the VMD reader can share it.
# - Streams accept an open binary file object as well as a path.
# - Short reads raise TruncatedInputError instead of struct.error.
# - Text and index reads take the encoding / width explicitly.
from __future__ import annotations

import os
import struct
from typing import BinaryIO, List, Optional, Tuple, Union

Source = Union[str, os.PathLike, BinaryIO]


##################################################################################
class MMDError(Exception):
    pass
class TruncatedInputError(MMDError):
    pass
class InvalidFormatError(MMDError):
    pass
class InvalidEncodingError(MMDError):
    pass

# Not faults: the source is simply not a file this reader understands.
class FormatMismatchError(Exception):
    pass
class UnsupportedVersionError(Exception):
    pass


class Encoding:
    _MAP = [
        (0, 'utf-16-le'),
        (1, 'utf-8'),
        ]

    def __init__(self, arg):
        self.index = 0
        self.charset = ''
        t = None
        if isinstance(arg, str):
            t = list(filter(lambda x: x[1]==arg, self._MAP))
            if len(t) == 0:
                raise InvalidFormatError('invalid charset %s'%arg)
        elif isinstance(arg, int):
            t = list(filter(lambda x: x[0]==arg, self._MAP))
            if len(t) == 0:
                raise InvalidFormatError('invalid text encoding %d'%arg)
        else:
            raise ValueError('invalid argument type')
        t = t[0]
        self.index = t[0]
        self.charset  = t[1]

    def __repr__(self):
        return '<Encoding charset %s>'%self.charset


_INT = struct.Struct('<i')
_UINT = struct.Struct('<I')
_SHORT = struct.Struct('<h')
_USHORT = struct.Struct('<H')
_BYTE = struct.Struct('<B')
_SBYTE = struct.Struct('<b')
_FLOAT = struct.Struct('<f')

_SIGNED_INDEX = {1: _SBYTE, 2: _SHORT, 4: _INT}
# Vertex indices are unsigned for 1 and 2 bytes but signed for 4 bytes.
_VERTEX_INDEX = {1: _BYTE, 2: _USHORT, 4: _INT}


class FileReadStream:
    """
    Sequential little-endian reader over a binary file.

    The stream owns the file only when it was opened from a path. A file
    object passed in by the caller is left open on close().
    """
    def __init__(self, source: Source):
        if isinstance(source, (str, os.PathLike)):
            self.__path = os.fspath(source)
            self.__fin = open(self.__path, 'rb')
            self.__owns_file = True
        else:
            self.__path = getattr(source, 'name', '')
            if not isinstance(self.__path, str):
                self.__path = ''
            self.__fin = source
            self.__owns_file = False
        self.__pos = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def path(self):
        return self.__path

    def close(self):
        if self.__fin is not None:
            if self.__owns_file:
                self.__fin.close()
            self.__fin = None

    def current_pos(self):
        return self.__pos

    # READ methods for raw data
    def readBytes(self, length: int) -> bytes:
        if length < 0:
            raise InvalidFormatError('negative read length %d at offset %d'%(length, self.__pos))
        if self.__fin is None:
            raise TruncatedInputError('read from a closed stream')
        try:
            data = self.__fin.read(length)
        except (OSError, ValueError) as e: # source closed or invalidated by the caller
            raise TruncatedInputError('source became unreadable at offset %d: %s'%(self.__pos, e)) from e
        if data is None:
            data = b''
        if len(data) != length:
            raise TruncatedInputError('expected %d bytes at offset %d, got %d'%(length, self.__pos, len(data)))
        self.__pos += length
        return data

    def readStruct(self, fmt: struct.Struct) -> Tuple:
        return fmt.unpack(self.readBytes(fmt.size))

    def readStructArray(self, fmt: struct.Struct, count: int) -> List[Tuple]:
        if count == 0:
            return []
        return list(fmt.iter_unpack(self.readBytes(fmt.size * count)))

    # READ methods for general types
    def readInt(self):
        v, = self.readStruct(_INT)
        return v

    def readUnsignedInt(self):
        v, = self.readStruct(_UINT)
        return v

    def readShort(self):
        v, = self.readStruct(_SHORT)
        return v

    def readUnsignedShort(self):
        v, = self.readStruct(_USHORT)
        return v

    def readFloat(self):
        v, = self.readStruct(_FLOAT)
        return v

    def readVector(self, size):
        return struct.unpack('<'+'f'*size, self.readBytes(4*size))

    def readByte(self):
        v, = self.readStruct(_BYTE)
        return v

    def readSignedByte(self):
        v, = self.readStruct(_SBYTE)
        return v

    # READ methods for length-prefixed text
    def readStr(self, encoding: Encoding) -> str:
        length = self.readInt()
        if length < 0:
            raise InvalidFormatError('invalid text length %d at offset %d'%(length, self.__pos - 4))
        buf = self.readBytes(length)
        if encoding.index == 1:
            # UTF-8 text is passed through; invalid bytes survive as lone surrogates
            return str(buf, encoding.charset, 'surrogateescape')
        if length % 2:
            buf += b'\x00' # pad the last code unit
        try:
            return str(buf, encoding.charset)
        except UnicodeDecodeError as e:
            raise InvalidEncodingError('invalid %s text at offset %d: %s'%(encoding.charset, self.__pos - length, e)) from e

    # READ methods for indexes
    def readIndex(self, size: int, signed: bool = True) -> int:
        typedict = _SIGNED_INDEX if signed else _VERTEX_INDEX
        fmt: Optional[struct.Struct] = typedict.get(size)
        if fmt is None:
            raise InvalidFormatError('invalid index size %s'%str(size))
        v, = self.readStruct(fmt)
        return v
