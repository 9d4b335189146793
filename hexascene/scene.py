"""Hierarchical scenes of transforms with attached drawables, cameras and lights."""

from __future__ import annotations

import dataclasses
import enum
import logging
import math
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, ClassVar, Optional

import numpy as np

from .chunks import read_chunk
from .linalg import infinite_perspective, pad_mat4, quat_inverse, quat_to_mat3

logger = logging.getLogger(__name__)

GL_TRIANGLES = 0x0004
GL_TEXTURE_2D = 0x0DE1
TEXTURE_COUNT = 4

_NO_PARENT = 0xFFFFFFFF
_DEGREES_TO_RADIANS = 3.1415926 / 180.0

_HIERARCHY_FORMAT = "<3I3f4f3f"
_MESH_FORMAT = "<3I"
_CAMERA_FORMAT = "<I4s3f"
_LIGHT_FORMAT = "<Ic3B3f"


class SceneFormatError(ValueError):
    """Raised when a scene file holds inconsistent data."""


@dataclass(eq=False)
class Transform:
    """A position, rotation (w, x, y, z) and scale, optionally relative to a parent."""

    name: str = ""
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0, 0.0]))
    scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    parent: Optional["Transform"] = None

    def make_local_to_parent(self) -> np.ndarray:
        """3x4 matrix: scale, then rotate, then translate."""
        rot = quat_to_mat3(self.rotation)
        out = np.empty((3, 4))
        out[:, :3] = rot * np.asarray(self.scale, dtype=float)
        out[:, 3] = self.position
        return out

    def make_parent_to_local(self) -> np.ndarray:
        """3x4 inverse of make_local_to_parent; zero scale gives a degenerate matrix."""
        inv_scale = np.array([0.0 if s == 0.0 else 1.0 / s for s in self.scale])
        inv_rot = quat_to_mat3(quat_inverse(self.rotation)) * inv_scale[:, None]
        out = np.empty((3, 4))
        out[:, :3] = inv_rot
        out[:, 3] = inv_rot @ -np.asarray(self.position, dtype=float)
        return out

    def make_local_to_world(self) -> np.ndarray:
        if self.parent is None:
            return self.make_local_to_parent()
        return self.parent.make_local_to_world() @ pad_mat4(self.make_local_to_parent())

    def make_world_to_local(self) -> np.ndarray:
        if self.parent is None:
            return self.make_parent_to_local()
        return self.make_parent_to_local() @ pad_mat4(self.parent.make_world_to_local())


def _default_textures() -> list:
    return [(0, GL_TEXTURE_2D) for _ in range(TEXTURE_COUNT)]


@dataclass
class Pipeline:
    """Everything needed to draw one drawable; uniform locations are None when unused."""

    program: int = 0
    vao: int = 0
    type: int = GL_TRIANGLES
    start: int = 0
    count: int = 0
    object_to_clip_mat4: Optional[int] = None
    object_to_light_mat4x3: Optional[int] = None
    normal_to_light_mat3: Optional[int] = None
    set_uniforms: Optional[Callable[[], None]] = None
    textures: list = field(default_factory=_default_textures)


def _require_transform(obj) -> None:
    if obj.transform is None:
        raise ValueError(f"{type(obj).__name__} requires a transform")


@dataclass(eq=False)
class Drawable:
    transform: Transform
    pipeline: Pipeline = field(default_factory=Pipeline)

    def __post_init__(self) -> None:
        _require_transform(self)


@dataclass(eq=False)
class Camera:
    """Perspective camera looking along its transform's -z axis."""

    transform: Transform
    fovy: float = math.radians(60.0)
    aspect: float = 1.0
    near: float = 0.01

    def __post_init__(self) -> None:
        _require_transform(self)

    def make_projection(self) -> np.ndarray:
        return infinite_perspective(self.fovy, self.aspect, self.near)


class LightType(str, enum.Enum):
    POINT = "p"
    HEMISPHERE = "h"
    SPOT = "s"
    DIRECTIONAL = "d"


@dataclass(eq=False)
class Light:
    """Light attached to a transform; directional kinds point along -z."""

    transform: Transform
    type: LightType = LightType.POINT
    energy: np.ndarray = field(default_factory=lambda: np.ones(3))
    spot_fov: float = math.radians(45.0)

    def __post_init__(self) -> None:
        _require_transform(self)


OnDrawable = Callable[["Scene", Transform, str], None]
ExtraChunkHandler = Callable[["Scene", object, bytes, list], None]


def _name_slice(names: bytes, begin: int, end: int) -> Optional[str]:
    if begin <= end <= len(names):
        return names[begin:end].decode("utf-8", errors="replace")
    return None


class Scene:
    """Transforms plus the drawables, cameras and lights attached to them."""

    # Extra chunks read after the standard ones, in order: (magic, format or None, handler).
    # A format of None reads the chunk as raw bytes.
    extra_chunks: ClassVar[tuple] = ()

    def __init__(self) -> None:
        self.transforms: list[Transform] = []
        self.drawables: list[Drawable] = []
        self.cameras: list[Camera] = []
        self.lights: list[Light] = []

    @classmethod
    def from_file(cls, filename, on_drawable: Optional[OnDrawable] = None) -> "Scene":
        scene = cls()
        scene.load(filename, on_drawable)
        return scene

    def load(self, filename, on_drawable: Optional[OnDrawable] = None) -> None:
        """Add the contents of a scene file; ``on_drawable`` is called per mesh entry."""
        with open(filename, "rb") as stream:
            names = read_chunk(stream, "str0")
            hierarchy = read_chunk(stream, "xfh0", _HIERARCHY_FORMAT)
            meshes = read_chunk(stream, "msh0", _MESH_FORMAT)
            cameras = read_chunk(stream, "cam0", _CAMERA_FORMAT)
            lights = read_chunk(stream, "lmp0", _LIGHT_FORMAT)

            loaded: list[Transform] = []
            for parent, name_begin, name_end, *values in hierarchy:
                transform = Transform()
                self.transforms.append(transform)
                if parent != _NO_PARENT:
                    if parent >= len(loaded):
                        raise SceneFormatError(
                            f"scene file '{filename}' did not contain transforms in topological-sort order."
                        )
                    transform.parent = loaded[parent]
                name = _name_slice(names, name_begin, name_end)
                if name is None:
                    raise SceneFormatError(
                        f"scene file '{filename}' contains hierarchy entry with invalid name indices"
                    )
                transform.name = name
                transform.position = np.array(values[0:3], dtype=float)
                qx, qy, qz, qw = values[3:7]
                transform.rotation = np.array([qw, qx, qy, qz], dtype=float)
                transform.scale = np.array(values[7:10], dtype=float)
                loaded.append(transform)

            for index, name_begin, name_end in meshes:
                if index >= len(loaded):
                    raise SceneFormatError(
                        f"scene file '{filename}' contains mesh entry with invalid transform index ({index})"
                    )
                name = _name_slice(names, name_begin, name_end)
                if name is None:
                    raise SceneFormatError(
                        f"scene file '{filename}' contains mesh entry with invalid name indices"
                    )
                if on_drawable is not None:
                    on_drawable(self, loaded[index], name)

            for index, kind, data, clip_near, _clip_far in cameras:
                if index >= len(loaded):
                    raise SceneFormatError(
                        f"scene file '{filename}' contains camera entry with invalid transform index ({index})"
                    )
                if kind != b"pers":
                    logger.info(
                        "Ignoring non-perspective camera (%s) stored in file.",
                        kind.decode("latin-1"),
                    )
                    continue
                # far plane is ignored: projections use an infinite far plane
                self.cameras.append(
                    Camera(loaded[index], fovy=data * _DEGREES_TO_RADIANS, near=clip_near)
                )

            for index, kind, r, g, b, energy, _distance, fov in lights:
                if index >= len(loaded):
                    raise SceneFormatError(
                        f"scene file '{filename}' contains lamp entry with invalid transform index ({index})"
                    )
                try:
                    light_type = LightType(kind.decode("latin-1"))
                except ValueError:
                    logger.info(
                        "Ignoring unrecognized lamp type (%s) stored in file.",
                        kind.decode("latin-1"),
                    )
                    continue
                self.lights.append(
                    Light(
                        loaded[index],
                        type=light_type,
                        energy=np.array([r, g, b], dtype=float) / 255.0 * energy,
                        spot_fov=fov * _DEGREES_TO_RADIANS,
                    )
                )

            self.load_extra(stream, names, loaded)

            if stream.read(1):
                logger.warning("trailing data in scene file '%s'", filename)

    def load_extra(self, stream: BinaryIO, names: bytes, transforms: list) -> None:
        """Read each chunk listed in ``extra_chunks`` and pass its records to the handler."""
        for magic, fmt, handler in self.extra_chunks:
            if fmt is None:
                records = read_chunk(stream, magic)
            else:
                records = read_chunk(stream, magic, fmt)
            handler(self, records, names, transforms)

    def set(self, other: "Scene") -> dict:
        """Make this scene a copy of ``other``; return the old-to-new transform map."""
        source_transforms = list(other.transforms)
        source_drawables = list(other.drawables)
        source_cameras = list(other.cameras)
        source_lights = list(other.lights)

        mapping: dict = {None: None}
        self.transforms = []
        for t in source_transforms:
            copy = Transform(
                name=t.name,
                position=np.array(t.position, dtype=float),
                rotation=np.array(t.rotation, dtype=float),
                scale=np.array(t.scale, dtype=float),
                parent=t.parent,
            )
            mapping[t] = copy
            self.transforms.append(copy)
        for t in self.transforms:
            t.parent = mapping[t.parent]

        self.drawables = [
            Drawable(
                mapping[d.transform],
                dataclasses.replace(d.pipeline, textures=list(d.pipeline.textures)),
            )
            for d in source_drawables
        ]
        self.cameras = [dataclasses.replace(c, transform=mapping[c.transform]) for c in source_cameras]
        self.lights = [
            dataclasses.replace(l, transform=mapping[l.transform], energy=np.array(l.energy, dtype=float))
            for l in source_lights
        ]
        return mapping

    def copy(self) -> "Scene":
        other = type(self)()
        other.set(self)
        return other