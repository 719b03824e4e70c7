# -*- coding: utf-8 -*-
# Copyright 2014 MMD Tools authors
# This file is part of MMD Tools.

# Changes:
# - Read-only VMD loader built on the PMX read stream.
# - Keyframes are read as packed fixed size records and sorted by frame index per track.
# - Name tags are kept as raw bytes, decoded names are derived from them.
from __future__ import annotations

import logging
import struct
from typing import List, Optional

from mmdstream import FileReadStream, FormatMismatchError, Source

NAME_CHARSET = 'cp932'


def _decode_tag(raw: bytes) -> str:
    """Decode a NUL terminated Shift_JIS name tag."""
    return raw.split(b'\x00', 1)[0].decode(NAME_CHARSET, errors='replace')


class Header:
    SIGN_LENGTH = 30
    SIGN_V1 = b'Vocaloid Motion Data file'
    SIGN_V2 = b'Vocaloid Motion Data 0002'
    MODEL_NAME_LENGTH = {1: 10, 2: 20}

    def __init__(self):
        self.sign = b''
        self.version = 0

    def load(self, fs: FileReadStream):
        self.sign = fs.readBytes(self.SIGN_LENGTH)
        ident = self.sign.split(b'\x00', 1)[0]
        if ident == self.SIGN_V1:
            self.version = 1
        elif ident == self.SIGN_V2:
            self.version = 2
        else:
            raise FormatMismatchError('File signature is invalid: %r'%ident)

    @property
    def model_name_length(self) -> int:
        return self.MODEL_NAME_LENGTH[self.version]

    def __repr__(self):
        return '<Header version %d>'%self.version


class BoneKeyframe:
    STRUCT = struct.Struct('<15sI3f4f64s')
    __slots__ = ("name_tag", "frame_index", "location", "rotation", "interpolation")

    def __init__(self, name_tag=b'', frame_index=0, location=(0.0, 0.0, 0.0), rotation=(0.0, 0.0, 0.0, 1.0), interpolation=b''):
        self.name_tag: bytes = name_tag
        self.frame_index: int = frame_index
        self.location = location
        self.rotation = rotation # quaternion (x, y, z, w)
        self.interpolation: bytes = interpolation # 64 bytes of bezier control points

    @classmethod
    def from_record(cls, rec) -> BoneKeyframe:
        return cls(rec[0], rec[1], rec[2:5], rec[5:9], rec[9])

    @property
    def name(self) -> str:
        return _decode_tag(self.name_tag)

    def __repr__(self):
        return '<BoneKeyframe bone %s, frame %d, location %s, rotation %s>'%(
            self.name, self.frame_index, str(self.location), str(self.rotation))


class MorphKeyframe:
    STRUCT = struct.Struct('<15sIf')
    __slots__ = ("name_tag", "frame_index", "weight")

    def __init__(self, name_tag=b'', frame_index=0, weight=0.0):
        self.name_tag: bytes = name_tag
        self.frame_index: int = frame_index
        self.weight: float = weight

    @classmethod
    def from_record(cls, rec) -> MorphKeyframe:
        return cls(rec[0], rec[1], rec[2])

    @property
    def name(self) -> str:
        return _decode_tag(self.name_tag)

    def __repr__(self):
        return '<MorphKeyframe morph %s, frame %d, weight %s>'%(self.name, self.frame_index, self.weight)


class CameraKeyframe:
    STRUCT = struct.Struct('<If3f3f24sIB')
    __slots__ = ("frame_index", "distance", "location", "rotation", "interpolation", "view_angle", "perspective")

    def __init__(self, frame_index=0, distance=0.0, location=(0.0, 0.0, 0.0), rotation=(0.0, 0.0, 0.0), interpolation=b'', view_angle=30, perspective=0):
        self.frame_index: int = frame_index
        self.distance: float = distance # stored negated
        self.location = location
        self.rotation = rotation # euler angles in radians
        self.interpolation: bytes = interpolation # 24 bytes
        self.view_angle: int = view_angle # degrees
        self.perspective: int = perspective

    @classmethod
    def from_record(cls, rec) -> CameraKeyframe:
        return cls(rec[0], rec[1], rec[2:5], rec[5:8], rec[8], rec[9], rec[10])

    def __repr__(self):
        return '<CameraKeyframe frame %d, distance %s, location %s, rotation %s, view_angle %d>'%(
            self.frame_index, self.distance, str(self.location), str(self.rotation), self.view_angle)


class LightKeyframe:
    STRUCT = struct.Struct('<I3f3f')
    __slots__ = ("frame_index", "color", "location")

    def __init__(self, frame_index=0, color=(0.0, 0.0, 0.0), location=(0.0, 0.0, 0.0)):
        self.frame_index: int = frame_index
        self.color = color
        self.location = location

    @classmethod
    def from_record(cls, rec) -> LightKeyframe:
        return cls(rec[0], rec[1:4], rec[4:7])

    def __repr__(self):
        return '<LightKeyframe frame %d, color %s, location %s>'%(self.frame_index, str(self.color), str(self.location))


def _read_track(fs: FileReadStream, keyframe_class) -> list:
    num = fs.readUnsignedInt()
    keyframes = [keyframe_class.from_record(rec) for rec in fs.readStructArray(keyframe_class.STRUCT, num)]
    keyframes.sort(key=lambda k: k.frame_index) # stable, equal frames keep file order
    return keyframes


################################################################################
# Motion Root Class
################################################################################
class Motion:
    def __init__(self):
        self.filepath = ""
        self.version = 0
        self.model_name_bytes = b''

        self.bone_keyframes: List[BoneKeyframe] = []
        self.morph_keyframes: List[MorphKeyframe] = []
        self.camera_keyframes: List[CameraKeyframe] = []
        self.light_keyframes: List[LightKeyframe] = []

    @property
    def model_name(self) -> str:
        """Model name field decoded as is, padding included."""
        return self.model_name_bytes.decode(NAME_CHARSET, errors='replace')

    def load(self, fs: FileReadStream, header: Header):
        logging.debug("======== Loading Motion ========")

        self.filepath = fs.path()
        self.version = header.version
        self.model_name_bytes = fs.readBytes(header.model_name_length)

        self.bone_keyframes = _read_track(fs, BoneKeyframe)
        logging.debug(f"Loaded {len(self.bone_keyframes)} bone keyframes")

        self.morph_keyframes = _read_track(fs, MorphKeyframe)
        logging.debug(f"Loaded {len(self.morph_keyframes)} morph keyframes")

        self.camera_keyframes = _read_track(fs, CameraKeyframe)
        logging.debug(f"Loaded {len(self.camera_keyframes)} camera keyframes")

        self.light_keyframes = _read_track(fs, LightKeyframe)
        logging.debug(f"Loaded {len(self.light_keyframes)} light keyframes")

    def __repr__(self):
        return '<Motion version %d, model %r, bones %d, morphs %d, cameras %d, lights %d>'%(
            self.version,
            self.model_name,
            len(self.bone_keyframes),
            len(self.morph_keyframes),
            len(self.camera_keyframes),
            len(self.light_keyframes),
            )


def load(source: Source) -> Optional[Motion]:
    """
    Load a VMD motion from a path or an open binary file object.
    Returns None when the source is not a VMD file.
    """
    with FileReadStream(source) as fs:
        header = Header()
        try:
            header.load(fs)
        except FormatMismatchError as e:
            logging.info(f"Not a VMD file: {e}")
            return None
        motion = Motion()
        motion.load(fs, header)
        return motion
