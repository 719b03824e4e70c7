# -*- coding: utf-8 -*-
# Copyright 2014 MMD Tools authors
# This file is part of MMD Tools.

# Changes:
# - Read-only PMX 2.0 loader. Decoding stops after the morph section.
# - Elements keep the raw indices stored in the file (vertex, texture, bone, material, morph, rigid body).
# - Faces are kept as the flat vertex index list, materials keep their face count.
# - Character name, comment and material name keep only the secondary (global) copy.
# - Bone local coordinate axes are turned into a rotation matrix.
# - Morphs cover every PMX 2.0 type, including Flip and Impulse.
# - Signature or version mismatch makes load() return None instead of raising.
from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Tuple, Type

import numpy as np

from mmdstream import (Encoding, FileReadStream, FormatMismatchError,
                       InvalidFormatError, Source, UnsupportedVersionError)

##################################################################################
# Basic container classes
class TextureList(list):
    """
    A list of texture paths with special handling.
        - [out of range index] returns None instead of raising (-1 means "no texture").
    Otherwise behaves like a normal list.
    """
    def __getitem__(self, index):
        if isinstance(index, slice):
            return TextureList(super().__getitem__(index))
        if index < 0 or index >= len(self):
            return None
        return super().__getitem__(index)

##################################################################################
class PMXReadStream(FileReadStream):
    """FileReadStream bound to a PMX header, which decides text encoding and index widths."""
    def __init__(self, source: Source, pmx_header=None):
        FileReadStream.__init__(self, source)
        self.__header: Optional[Header] = pmx_header

    def header(self):
        if self.__header is None:
            raise RuntimeError('PMX header has not been read yet.')
        return self.__header

    def setHeader(self, pmx_header):
        self.__header = pmx_header

    def readStr(self, encoding: Optional[Encoding] = None) -> str:
        return FileReadStream.readStr(self, encoding or self.header().encoding)

    # READ methods for indexes
    def readVertexIndex(self):
        return self.readIndex(self.header().vertex_index_size, signed=False)

    def readBoneIndex(self):
        return self.readIndex(self.header().bone_index_size)

    def readTextureIndex(self):
        return self.readIndex(self.header().texture_index_size)

    def readMorphIndex(self):
        return self.readIndex(self.header().morph_index_size)

    def readRigidIndex(self):
        return self.readIndex(self.header().rigid_index_size)

    def readMaterialIndex(self):
        return self.readIndex(self.header().material_index_size)


def _read_count(fs: FileReadStream, what: str) -> int:
    num = fs.readInt()
    if num < 0:
        raise InvalidFormatError(f'negative {what} count {num} at offset {fs.current_pos() - 4}')
    return num


class Header:
    PMX_SIGN = b'PMX '
    VERSION = 2.0
    def __init__(self):
        self.sign = self.PMX_SIGN
        self.version = 0.0
        self.globals_count = 8

        self.encoding = Encoding('utf-16-le')
        self.additional_uvs = 0

        self.vertex_index_size = 1
        self.texture_index_size = 1
        self.material_index_size = 1
        self.bone_index_size = 1
        self.morph_index_size = 1
        self.rigid_index_size = 1

    def load(self, fs: FileReadStream):
        self.sign = fs.readBytes(4)
        if self.sign != self.PMX_SIGN:
            raise FormatMismatchError('File signature is invalid: %r'%self.sign)
        self.version = fs.readFloat()
        if self.version != self.VERSION:
            raise UnsupportedVersionError('unsupported PMX version: %.1f'%self.version)

        # Only the byte count of the globals block is stored, the eight entries below are fixed.
        self.globals_count = fs.readByte()
        self.encoding = Encoding(fs.readByte())
        self.additional_uvs = fs.readByte()
        self.vertex_index_size = fs.readByte()
        self.texture_index_size = fs.readByte()
        self.material_index_size = fs.readByte()
        self.bone_index_size = fs.readByte()
        self.morph_index_size = fs.readByte()
        self.rigid_index_size = fs.readByte()

    def __repr__(self):
        return '<Header encoding %s, uvs %d, vtx %d, tex %d, mat %d, bone %d, morph %d, rigid %d>'%(
            str(self.encoding),
            self.additional_uvs,
            self.vertex_index_size,
            self.texture_index_size,
            self.material_index_size,
            self.bone_index_size,
            self.morph_index_size,
            self.rigid_index_size,
            )


################################################################################
# Model Root Class
################################################################################
class Model:
    def __init__(self):
        self.filepath = ""
        self.header: Optional[Header] = None
        self.version = 0.0

        # Secondary (global) copies only, the local ones are skipped while loading
        self.name = ""
        self.comment = ""

        self.vertices: List[Vertex] = []
        self.faces: List[int] = [] # flat vertex index list, 3 entries per triangle
        self.textures: TextureList = TextureList()
        self.materials: List[Material] = []
        self.bones: List[Bone] = []
        self.morphs: List[Morph] = []

        # Additional UVs count
        self.additional_uvs: int = 0

    ################################################################################
    def load(self, fs: PMXReadStream):
        if self.header is not None:
            raise ValueError(f"Model already loaded from {self.filepath}. Please create a new Model instance to load another file.")

        logging.debug("======== Loading Model ========")

        self.filepath = fs.path()
        self.header = fs.header()
        self.version = self.header.version
        self.additional_uvs = self.header.additional_uvs

        fs.readStr() # local character name
        self.name = fs.readStr()

        fs.readStr() # local comment
        self.comment = fs.readStr()

        ########################################
        # Load Vertices
        num_vertices = _read_count(fs, "vertex")
        for i in range(num_vertices):
            v = Vertex()
            v.load(fs)
            self.vertices.append(v)
        logging.debug(f"Loaded {len(self.vertices)} vertices")

        ########################################
        # Load Faces
        num_faces = _read_count(fs, "face index")
        self.faces = [fs.readVertexIndex() for i in range(num_faces)]
        logging.debug(f"Loaded {len(self.faces) // 3} faces")

        ########################################
        # Load Textures
        num_textures = _read_count(fs, "texture")
        for i in range(num_textures):
            self.textures.append(fs.readStr())
        logging.debug(f"Loaded {len(self.textures)} textures")

        ########################################
        # Load Materials
        num_materials = _read_count(fs, "material")
        for i in range(num_materials):
            m = Material()
            m.load(fs)
            self.materials.append(m)
        logging.debug(f"Loaded {len(self.materials)} materials")

        ########################################
        # Load Bones
        num_bones = _read_count(fs, "bone")
        for i in range(num_bones):
            b = Bone()
            b.load(fs)
            self.bones.append(b)
        logging.debug(f"Loaded {len(self.bones)} bones")

        ########################################
        # Load Morphs
        num_morph = _read_count(fs, "morph")
        for i in range(num_morph):
            self.morphs.append(Morph.create(fs))
        logging.debug(f"Loaded {len(self.morphs)} morphs")

        # Display groups, rigid bodies and joints follow in the file but are not read.
        return

    def __repr__(self):
        return '<Model name %s, comment %s, vertices %d, faces %d, materials %d, bones %d, morphs %d>'%(
            self.name,
            self.comment,
            len(self.vertices),
            len(self.faces) // 3,
            len(self.materials),
            len(self.bones),
            len(self.morphs),
            )

    ################################################################################
    # Helper functions for reading model elements
    ################################################################################
    def triangles(self) -> List[Tuple[int, int, int]]:
        """Group the flat face index list into vertex index triples. A trailing partial triple is dropped."""
        faces = self.faces
        return [(faces[i], faces[i+1], faces[i+2]) for i in range(0, len(faces) - 2, 3)]

    def material_faces(self) -> Iterator[Tuple[Material, List[int]]]:
        """Yield each material with the face index entries it paints, in file order."""
        segment_start = 0
        for mat in self.materials:
            segment_end = segment_start + max(mat.face_count, 0)
            yield mat, self.faces[segment_start:segment_end]
            segment_start = segment_end

    def texture_path(self, index: int) -> Optional[str]:
        """Texture path for a material's texture index, None for -1 or any out of range index."""
        return self.textures[index]


class Vertex:
    __slots__ = ("co","normal","uv","additional_uvs","weight","edge_scale")

    def __init__(self):
        self.co = (0.0, 0.0, 0.0)
        self.normal = (0.0, 0.0, 0.0)
        self.uv = (0.0, 0.0)
        self.additional_uvs = []
        self.weight: BoneWeight = BoneWeight()
        self.edge_scale = 1.0

    def __repr__(self):
        return '<Vertex co %s, normal %s, uv %s, additional_uvs %s, weight %s, edge_scale %s>'%(
            str(self.co),
            str(self.normal),
            str(self.uv),
            str(self.additional_uvs),
            str(self.weight),
            str(self.edge_scale),
            )

    def load(self, fs: PMXReadStream):
        self.co = fs.readVector(3)
        self.normal = fs.readVector(3)
        self.uv = fs.readVector(2)
        # One float per declared additional UV channel
        self.additional_uvs = list(fs.readVector(fs.header().additional_uvs))
        self.weight = BoneWeight()
        self.weight.load(fs)
        self.edge_scale = fs.readFloat()


class BoneWeightSDEF:
    __slots__ = ("c", "r0", "r1")
    def __init__(self, c=None, r0=None, r1=None):
        self.c = c
        self.r0 = r0
        self.r1 = r1

class BoneWeight:
    """
    Up to four (bone index, weight) pairs. Unused slots hold bone -1 and weight 0.0.
    Weights are stored as read, they are not normalized.
    """
    __slots__ = ("bones", "weights", "type", "sdef")
    BDEF1 = 0
    BDEF2 = 1
    BDEF4 = 2
    SDEF  = 3
    QDEF  = 4

    def __init__(self):
        self.bones: List[int] = [-1, -1, -1, -1]
        self.weights: List[float] = [0.0, 0.0, 0.0, 0.0]
        self.type = self.BDEF1
        self.sdef: Optional[BoneWeightSDEF] = None

    def __repr__(self):
        return '<BoneWeight type %d, bones %s, weights %s>'%(self.type, str(self.bones), str(self.weights))

    def load(self, fs: PMXReadStream):
        self.type = fs.readByte()

        if self.type == self.BDEF1:
            self.bones[0] = fs.readBoneIndex()
            self.weights[0] = 1.0
        elif self.type == self.BDEF2:
            self.bones[0] = fs.readBoneIndex()
            self.bones[1] = fs.readBoneIndex()
            w = fs.readFloat()
            self.weights[0] = w
            self.weights[1] = 1.0 - w
        elif self.type in (self.BDEF4, self.QDEF):
            for i in range(4):
                self.bones[i] = fs.readBoneIndex()
            self.weights = list(fs.readVector(4))
        elif self.type == self.SDEF:
            self.bones[0] = fs.readBoneIndex()
            self.bones[1] = fs.readBoneIndex()
            w = fs.readFloat()
            self.weights[0] = w
            self.weights[1] = 1.0 - w
            self.sdef = BoneWeightSDEF(fs.readVector(3), fs.readVector(3), fs.readVector(3))
        else:
            raise InvalidFormatError('invalid weight type %s at offset %d'%(str(self.type), fs.current_pos() - 1))

    def pairs(self) -> List[Tuple[int, float]]:
        """(bone index, weight) pairs for the slots that reference a bone."""
        return [(b, w) for b, w in zip(self.bones, self.weights) if b != -1]


class Material:
    SPHERE_MODE_OFF = 0
    SPHERE_MODE_MULT = 1
    SPHERE_MODE_ADD = 2
    SPHERE_MODE_SUBTEX = 3

    # Drawing mode bits
    DRAW_NO_CULL = 0x01
    DRAW_GROUND_SHADOW = 0x02
    DRAW_SHADOW = 0x04
    DRAW_RECEIVE_SHADOW = 0x08
    DRAW_EDGE = 0x10
    DRAW_VERTEX_COLOR = 0x20
    DRAW_POINT = 0x40
    DRAW_LINE = 0x80

    def __init__(self):
        self.name = "" # secondary (global) name

        self.diffuse = (1.0, 1.0, 1.0, 1.0)
        self.specular = (0.0, 0.0, 0.0)
        self.shininess = 0.0
        self.ambient = (0.0, 0.0, 0.0)

        self.drawing_mode = 0
        self.is_double_sided = False
        self.enabled_drop_shadow = False
        self.enabled_self_shadow_map = False
        self.enabled_self_shadow = False
        self.enabled_toon_edge = False
        self.enabled_vertex_color = False
        self.enabled_point_drawing = False
        self.enabled_line_drawing = False

        self.edge_color = (0.0, 0.0, 0.0, 1.0)
        self.edge_size = 1.0

        self.texture_index = -1
        self.sphere_texture_index = -1
        self.sphere_texture_mode = self.SPHERE_MODE_OFF
        self.toon_flag = 0
        self.toon_texture_index = -1 # texture index, or shared toon number when toon_flag != 0

        self.comment = ''

        # Number of face index entries painted by this material
        self.face_count = 0

    def __repr__(self):
        return '<Material name %s, diffuse %s, specular %s, shininess %.2f, ambient %s, texture %d, sphere_texture %d, toon_texture %d, face_count %d>'%(
            self.name,
            str(self.diffuse),
            str(self.specular),
            self.shininess,
            str(self.ambient),
            self.texture_index,
            self.sphere_texture_index,
            self.toon_texture_index,
            self.face_count,
        )

    @property
    def is_shared_toon_texture(self) -> bool:
        return self.toon_flag != 0

    def load(self, fs: PMXReadStream):
        fs.readStr() # local name
        self.name = fs.readStr()

        self.diffuse = fs.readVector(4)
        self.specular = fs.readVector(3)
        self.shininess = fs.readFloat()
        self.ambient = fs.readVector(3)

        flags = fs.readByte()
        self.drawing_mode = flags
        self.is_double_sided = bool(flags & self.DRAW_NO_CULL)
        self.enabled_drop_shadow = bool(flags & self.DRAW_GROUND_SHADOW)
        self.enabled_self_shadow_map = bool(flags & self.DRAW_SHADOW)
        self.enabled_self_shadow = bool(flags & self.DRAW_RECEIVE_SHADOW)
        self.enabled_toon_edge = bool(flags & self.DRAW_EDGE)
        self.enabled_vertex_color = bool(flags & self.DRAW_VERTEX_COLOR)
        self.enabled_point_drawing = bool(flags & self.DRAW_POINT)
        self.enabled_line_drawing = bool(flags & self.DRAW_LINE)

        self.edge_color = fs.readVector(4)
        self.edge_size = fs.readFloat()

        self.texture_index = fs.readTextureIndex()
        self.sphere_texture_index = fs.readTextureIndex()
        self.sphere_texture_mode = fs.readSignedByte()

        self.toon_flag = fs.readSignedByte()
        if self.toon_flag == 0:
            self.toon_texture_index = fs.readTextureIndex()
        else:
            self.toon_texture_index = fs.readSignedByte()

        self.comment = fs.readStr()
        self.face_count = fs.readInt()


def _normalize(v: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(v)
    if norm > 1e-12:
        return v / norm
    return v

class Coordinate: # Used by Bone.localCoordinate
    def __init__(self, xAxis, zAxis):
        self.x_axis = xAxis
        self.z_axis = zAxis

    def basis(self) -> np.ndarray:
        """Orthonormal right-handed basis, rows are the x, y and z axes."""
        x = _normalize(np.asarray(self.x_axis, dtype=np.float64))
        z = _normalize(np.asarray(self.z_axis, dtype=np.float64))
        y = np.cross(z, x)
        z = np.cross(x, y)
        y = _normalize(y)
        z = _normalize(z)
        return np.array([x, y, z])


class Bone:
    FLAG_INDEXED_TAIL = 0x0001
    FLAG_ROTATABLE = 0x0002
    FLAG_TRANSLATABLE = 0x0004
    FLAG_VISIBLE = 0x0008
    FLAG_ENABLED = 0x0010
    FLAG_IK = 0x0020
    FLAG_INHERIT_ROTATION = 0x0100
    FLAG_INHERIT_TRANSLATION = 0x0200
    FLAG_FIXED_AXIS = 0x0400
    FLAG_LOCAL_COORDINATE = 0x0800
    FLAG_PHYSICS_AFTER_DEFORM = 0x1000
    FLAG_EXTERNAL_PARENT = 0x2000

    def __init__(self):
        self.name = ""
        self.name_e = ""

        self.location = (0.0, 0.0, 0.0)
        self.parent_index = -1 # -1 is a root bone
        self.transform_order = 0 # layer
        self.flags = 0

        # vector3 or bone for display connection
        self.displayConnectionType = 0 # 0: Vector, 1: Bone
        self.displayConnectionBoneIndex: int = -1
        self.displayConnectionVector: Optional[Tuple[float, float, float]] = None

        self.isRotatable = False
        self.isMovable = False
        self.isVisible = False
        self.isControllable = False

        self.isIK = False

        self.hasAdditionalRotate = False
        self.hasAdditionalLocation = False

        self.additionalTransformBoneIndex: int = -1
        self.additionalTransformInfluence: float = 0.0

        self.fixed_axis = None # None or Vector3

        self.localCoordinate: Optional[Coordinate] = None # None or Coordinate object
        self.rotation: np.ndarray = np.identity(3)

        self.transAfterPhys = False

        self.externalTransKey: Optional[int] = None

        self.ik_target_index: int = -1
        self.loopCount = 0
        self.rotationConstraint = 0.0

        self.ik_links: List[IKLink] = []

    def __repr__(self):
        return '<Bone name %s, name_e %s, parent %d>'%(
            self.name,
            self.name_e,
            self.parent_index)

    def load(self, fs: PMXReadStream):
        self.name = fs.readStr()
        self.name_e = fs.readStr()

        self.location = fs.readVector(3)
        self.parent_index = fs.readBoneIndex()
        self.transform_order = fs.readInt()

        # The optional blocks below are read in file order, do not reorder.
        flags = fs.readUnsignedShort()
        self.flags = flags
        if flags & self.FLAG_INDEXED_TAIL: # displayConnection is a Bone
            self.displayConnectionType = 1
            self.displayConnectionBoneIndex = fs.readBoneIndex()
        else:
            self.displayConnectionType = 0
            self.displayConnectionVector = fs.readVector(3)

        self.isRotatable    = ((flags & self.FLAG_ROTATABLE) != 0)
        self.isMovable      = ((flags & self.FLAG_TRANSLATABLE) != 0)
        self.isVisible      = ((flags & self.FLAG_VISIBLE) != 0)
        self.isControllable = ((flags & self.FLAG_ENABLED) != 0)

        self.isIK           = ((flags & self.FLAG_IK) != 0)

        self.hasAdditionalRotate = ((flags & self.FLAG_INHERIT_ROTATION) != 0)
        self.hasAdditionalLocation = ((flags & self.FLAG_INHERIT_TRANSLATION) != 0)
        if self.hasAdditionalRotate or self.hasAdditionalLocation:
            self.additionalTransformBoneIndex = fs.readBoneIndex()
            self.additionalTransformInfluence = fs.readFloat()

        if flags & self.FLAG_FIXED_AXIS:
            self.fixed_axis = fs.readVector(3)
        else:
            self.fixed_axis = None

        if flags & self.FLAG_LOCAL_COORDINATE:
            xaxis = fs.readVector(3)
            zaxis = fs.readVector(3)
            self.localCoordinate = Coordinate(xaxis, zaxis)
            self.rotation = self.localCoordinate.basis()
        else:
            self.localCoordinate = None
            self.rotation = np.identity(3)

        self.transAfterPhys = ((flags & self.FLAG_PHYSICS_AFTER_DEFORM) != 0)

        if flags & self.FLAG_EXTERNAL_PARENT:
            self.externalTransKey = fs.readBoneIndex()
        else:
            self.externalTransKey = None

        if self.isIK:
            self.ik_target_index = fs.readBoneIndex()
            self.loopCount = fs.readInt()
            self.rotationConstraint = fs.readFloat()

            iklink_num = _read_count(fs, "IK link")
            self.ik_links = []
            for i in range(iklink_num):
                link = IKLink()
                link.load(fs)
                self.ik_links.append(link)


class IKLink:
    def __init__(self):
        self.target_index = -1
        self.maximumAngle = None
        self.minimumAngle = None

    def __repr__(self):
        return '<IKLink target %d, limited %s>'%(self.target_index, self.minimumAngle is not None)

    def load(self, fs: PMXReadStream):
        self.target_index = fs.readBoneIndex()
        flag = fs.readByte()
        if flag == 1:
            self.minimumAngle = fs.readVector(3)
            self.maximumAngle = fs.readVector(3)
        else:
            self.minimumAngle = None
            self.maximumAngle = None


################################################################################
# Morphs: one subclass per morph type, each owning a list of its own offset type
################################################################################
class GroupMorphOffset:
    __slots__ = ("morph_index", "factor")
    def __init__(self):
        self.morph_index = -1
        self.factor: float = 0.0

    def __repr__(self):
        return '<GroupMorphOffset morph %d, factor %s>'%(self.morph_index, self.factor)

    def load(self, fs: PMXReadStream):
        self.morph_index = fs.readMorphIndex()
        self.factor = fs.readFloat()

class VertexMorphOffset:
    __slots__ = ("vertex_index", "offset")
    def __init__(self):
        self.vertex_index = -1
        self.offset = (0.0, 0.0, 0.0)

    def __repr__(self):
        return '<VertexMorphOffset vertex %d, offset %s>'%(self.vertex_index, str(self.offset))

    def load(self, fs: PMXReadStream):
        self.vertex_index = fs.readVertexIndex()
        self.offset = fs.readVector(3)

class BoneMorphOffset:
    __slots__ = ("bone_index", "location_offset", "rotation_offset")
    def __init__(self):
        self.bone_index = -1
        self.location_offset = (0.0, 0.0, 0.0)
        self.rotation_offset = (0.0, 0.0, 0.0, 1.0)

    def __repr__(self):
        return '<BoneMorphOffset bone %d, location_offset %s, rotation_offset %s>'%(
            self.bone_index,
            str(self.location_offset),
            str(self.rotation_offset),
            )

    def load(self, fs: PMXReadStream):
        self.bone_index = fs.readBoneIndex()
        self.location_offset = fs.readVector(3)
        self.rotation_offset = fs.readVector(4)

class UVMorphOffset:
    __slots__ = ("vertex_index", "offset")
    def __init__(self):
        self.vertex_index = -1
        self.offset = (0.0, 0.0, 0.0, 0.0)

    def __repr__(self):
        return '<UVMorphOffset vertex %d, offset %s>'%(self.vertex_index, str(self.offset))

    def load(self, fs: PMXReadStream):
        self.vertex_index = fs.readVertexIndex()
        self.offset = fs.readVector(4)

class MaterialMorphOffset:
    TYPE_MULT = 0
    TYPE_ADD = 1

    def __init__(self):
        self.material_index = -1 # -1 targets every material
        self.offset_type = self.TYPE_MULT
        self.diffuse_offset = (0.0, 0.0, 0.0, 0.0)
        self.specular_offset = (0.0, 0.0, 0.0)
        self.shininess_offset = 0.0
        self.ambient_offset = (0.0, 0.0, 0.0)
        self.edge_color_offset = (0.0, 0.0, 0.0, 0.0)
        self.edge_size_offset = 0.0
        self.texture_factor = (0.0, 0.0, 0.0, 0.0)
        self.sphere_texture_factor = (0.0, 0.0, 0.0, 0.0)
        self.toon_texture_factor = (0.0, 0.0, 0.0, 0.0)

    def __repr__(self):
        return '<MaterialMorphOffset material %d, type %d>'%(self.material_index, self.offset_type)

    def load(self, fs: PMXReadStream):
        self.material_index = fs.readMaterialIndex()
        self.offset_type = fs.readSignedByte()
        self.diffuse_offset = fs.readVector(4)
        self.specular_offset = fs.readVector(3)
        self.shininess_offset = fs.readFloat()
        self.ambient_offset = fs.readVector(3)
        self.edge_color_offset = fs.readVector(4)
        self.edge_size_offset = fs.readFloat()
        self.texture_factor = fs.readVector(4)
        self.sphere_texture_factor = fs.readVector(4)
        self.toon_texture_factor = fs.readVector(4)

class ImpulseMorphOffset:
    __slots__ = ("rigid_index", "is_local", "velocity", "torque")
    def __init__(self):
        self.rigid_index = -1
        self.is_local = False
        self.velocity = (0.0, 0.0, 0.0)
        self.torque = (0.0, 0.0, 0.0)

    def __repr__(self):
        return '<ImpulseMorphOffset rigid %d, local %s, velocity %s, torque %s>'%(
            self.rigid_index, self.is_local, str(self.velocity), str(self.torque))

    def load(self, fs: PMXReadStream):
        self.rigid_index = fs.readRigidIndex()
        self.is_local = fs.readByte() != 0
        self.velocity = fs.readVector(3)
        self.torque = fs.readVector(3)


class Morph:
    CATEGORY_SYSTEM = 0
    CATEGORY_EYEBROW = 1
    CATEGORY_EYE = 2
    CATEGORY_MOUTH = 3
    CATEGORY_OTHER = 4

    TYPE_GROUP = 0
    TYPE_VERTEX = 1
    TYPE_BONE = 2
    TYPE_UV = 3
    TYPE_UVA1 = 4
    TYPE_UVA2 = 5
    TYPE_UVA3 = 6
    TYPE_UVA4 = 7
    TYPE_MATERIAL = 8
    TYPE_FLIP = 9
    TYPE_IMPULSE = 10

    OFFSET_CLASS: Type = None

    def __init__(self, name: str, name_e: str, category: int, type_index: int):
        self.offsets: list = []
        self.name: str = name
        self.name_e: str = name_e
        self.category: int = category
        self.type_index: int = type_index

    def __repr__(self):
        return '<%s name %s, name_e %s, offsets %d>'%(self.__class__.__name__, self.name, self.name_e, len(self.offsets))

    @property
    def count(self) -> int:
        return len(self.offsets)

    @staticmethod
    def create(fs: PMXReadStream) -> Morph:
        name = fs.readStr()
        name_e = fs.readStr()
        category = fs.readSignedByte()
        typeIndex = fs.readSignedByte()
        cls = _CLASSES.get(typeIndex)
        if cls is None:
            raise InvalidFormatError('invalid morph type %d in morph %r'%(typeIndex, name))
        ret = cls(name, name_e, category, typeIndex)
        ret.load(fs)
        return ret

    def load(self, fs: PMXReadStream):
        num = _read_count(fs, "morph offset")
        self.offsets = []
        for i in range(num):
            t = self.OFFSET_CLASS()
            t.load(fs)
            self.offsets.append(t)

class GroupMorph(Morph):
    OFFSET_CLASS = GroupMorphOffset

class FlipMorph(Morph):
    OFFSET_CLASS = GroupMorphOffset

class VertexMorph(Morph):
    OFFSET_CLASS = VertexMorphOffset

class BoneMorph(Morph):
    OFFSET_CLASS = BoneMorphOffset

class UVMorph(Morph):
    OFFSET_CLASS = UVMorphOffset

    @property
    def uv_index(self) -> int:
        """0 for the base UV, 1..4 for the additional UV channels."""
        return self.type_index - Morph.TYPE_UV

class MaterialMorph(Morph):
    OFFSET_CLASS = MaterialMorphOffset

class ImpulseMorph(Morph):
    OFFSET_CLASS = ImpulseMorphOffset

_CLASSES = {
    Morph.TYPE_GROUP: GroupMorph,
    Morph.TYPE_VERTEX: VertexMorph,
    Morph.TYPE_BONE: BoneMorph,
    Morph.TYPE_UV: UVMorph,
    Morph.TYPE_UVA1: UVMorph,
    Morph.TYPE_UVA2: UVMorph,
    Morph.TYPE_UVA3: UVMorph,
    Morph.TYPE_UVA4: UVMorph,
    Morph.TYPE_MATERIAL: MaterialMorph,
    Morph.TYPE_FLIP: FlipMorph,
    Morph.TYPE_IMPULSE: ImpulseMorph,
    }


def load(source: Source) -> Optional[Model]:
    """
    Load a PMX 2.0 model from a path or an open binary file object.
    Returns None when the source is not a PMX file or has another version.
    """
    with PMXReadStream(source) as fs:
        header = Header()
        try:
            header.load(fs)
        except (FormatMismatchError, UnsupportedVersionError) as e:
            logging.info(f"Not a supported PMX file: {e}")
            return None
        fs.setHeader(header)
        logging.debug(f"PMX header: {header}")
        model = Model()
        model.load(fs)
        return model
