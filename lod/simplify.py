"""Triangle-budget mesh decimation on numpy arrays.

The decimator never moves vertices: it removes whole triangles and then
compacts the vertex buffer, so every per-vertex channel (UVs, skin
weights, blend shape deltas) survives untouched on the kept vertices.
"""
from dataclasses import dataclass, field, replace
from typing import Dict, Optional

import numpy as np

# Quality at or above this keeps the source geometry as-is.
FULL_QUALITY = 0.99


class SimplificationError(RuntimeError):
    """One level of one mesh could not be produced."""


def _as_array(values, dtype, width):
    if values is None:
        return None
    return np.asarray(values, dtype=dtype).reshape(-1, width)


@dataclass
class MeshGeometry:
    name: str
    vertices: np.ndarray
    triangles: np.ndarray
    normals: Optional[np.ndarray] = None
    tangents: Optional[np.ndarray] = None
    uvs: Dict[int, np.ndarray] = field(default_factory=dict)
    bone_weights: Optional[np.ndarray] = None
    bone_indices: Optional[np.ndarray] = None
    blend_shapes: Dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self):
        self.vertices = _as_array(self.vertices, np.float32, 3)
        self.triangles = _as_array(self.triangles, np.uint32, 3)
        self.normals = _as_array(self.normals, np.float32, 3)
        self.tangents = _as_array(self.tangents, np.float32, 4)
        self.uvs = {int(k): _as_array(v, np.float32, 2) for k, v in self.uvs.items()}
        self.bone_weights = _as_array(self.bone_weights, np.float32, 4)
        self.bone_indices = _as_array(self.bone_indices, np.int32, 4)
        self.blend_shapes = {k: _as_array(v, np.float32, 3) for k, v in self.blend_shapes.items()}

        count = len(self.vertices)
        if len(self.triangles) and int(self.triangles.max()) >= count:
            raise ValueError(f"Mesh '{self.name}' references vertices beyond its {count} vertices")
        for label, channel in self._vertex_channels():
            if len(channel) != count:
                raise ValueError(f"Mesh '{self.name}' channel '{label}' has {len(channel)} entries for {count} vertices")

    def _vertex_channels(self):
        for label in ("normals", "tangents", "bone_weights", "bone_indices"):
            channel = getattr(self, label)
            if channel is not None:
                yield label, channel
        for index, channel in self.uvs.items():
            yield f"uv{index}", channel
        for shape, channel in self.blend_shapes.items():
            yield f"blend:{shape}", channel

    @property
    def triangle_count(self):
        return len(self.triangles)

    @property
    def vertex_count(self):
        return len(self.vertices)

    @property
    def skinned(self):
        return self.bone_weights is not None

    @classmethod
    def from_flat(cls, name, vertices, indices, normals=None, **channels):
        """Builds a mesh from flat float/index lists (the extraction JSON layout)."""
        if normals is not None and len(normals) == 0:
            normals = None
        return cls(name=name, vertices=vertices, triangles=indices, normals=normals, **channels)


def triangle_areas(vertices, triangles):
    corners = vertices.astype(np.float64)[triangles]
    cross = np.cross(corners[:, 1] - corners[:, 0], corners[:, 2] - corners[:, 0])
    return 0.5 * np.linalg.norm(cross, axis=1)


def recalculate_normals(vertices, triangles):
    """Area-weighted vertex normals."""
    corners = vertices.astype(np.float64)[triangles]
    face_normals = np.cross(corners[:, 1] - corners[:, 0], corners[:, 2] - corners[:, 0])

    normals = np.zeros((len(vertices), 3), dtype=np.float64)
    for corner in range(3):
        np.add.at(normals, triangles[:, corner], face_normals)

    lengths = np.linalg.norm(normals, axis=1, keepdims=True)
    lengths[lengths == 0] = 1.0
    return (normals / lengths).astype(np.float32)


def recalculate_tangents(vertices, triangles, normals, uv):
    """Per-vertex tangents with handedness in w, from UV channel 0."""
    v = vertices.astype(np.float64)
    t = uv.astype(np.float64)
    i0, i1, i2 = triangles[:, 0], triangles[:, 1], triangles[:, 2]

    e1, e2 = v[i1] - v[i0], v[i2] - v[i0]
    d1, d2 = t[i1] - t[i0], t[i2] - t[i0]
    det = d1[:, 0] * d2[:, 1] - d2[:, 0] * d1[:, 1]
    r = np.where(np.abs(det) > 1e-12, 1.0 / np.where(det == 0, 1.0, det), 0.0)[:, None]

    sdir = (e1 * d2[:, 1:2] - e2 * d1[:, 1:2]) * r
    tdir = (e2 * d1[:, 0:1] - e1 * d2[:, 0:1]) * r

    tan1 = np.zeros_like(v)
    tan2 = np.zeros_like(v)
    for index in (i0, i1, i2):
        np.add.at(tan1, index, sdir)
        np.add.at(tan2, index, tdir)

    n = normals.astype(np.float64)
    tangent = tan1 - n * np.sum(n * tan1, axis=1, keepdims=True)
    lengths = np.linalg.norm(tangent, axis=1, keepdims=True)
    lengths[lengths == 0] = 1.0
    tangent /= lengths

    handedness = np.where(np.sum(np.cross(n, tangent) * tan2, axis=1) < 0.0, -1.0, 1.0)
    return np.hstack([tangent, handedness[:, None]]).astype(np.float32)


def _collapsed_triangles(vertices, triangles, max_error):
    """Triangles with two corners inside one tolerance cell of the bounding box."""
    v = vertices.astype(np.float64)
    diagonal = float(np.linalg.norm(v.max(axis=0) - v.min(axis=0)))
    cell = max_error * diagonal
    if cell <= 0:
        return np.zeros(len(triangles), dtype=bool)

    cells = np.floor((v - v.min(axis=0)) / cell).astype(np.int64)[triangles]
    return (
        np.all(cells[:, 0] == cells[:, 1], axis=1)
        | np.all(cells[:, 1] == cells[:, 2], axis=1)
        | np.all(cells[:, 0] == cells[:, 2], axis=1)
    )


def decimate(mesh: MeshGeometry, quality, preserve_uvs=True, preserve_normals=True,
             max_error=0.01, name=None) -> MeshGeometry:
    """Keeps roughly ``quality`` of the source triangles.

    Triangles that collapse below the error tolerance go first, then the
    smallest by area; ties break on the original triangle order, so the
    same (mesh, quality) always yields the same result.
    """
    source_count = mesh.triangle_count
    if source_count == 0:
        raise SimplificationError(f"Mesh '{mesh.name}' has no triangles")
    if not 0.0 < quality <= 1.0:
        raise SimplificationError(f"Quality {quality} is outside (0, 1]")
    if quality >= FULL_QUALITY:
        return mesh

    target = max(int(source_count * quality), 1)

    areas = triangle_areas(mesh.vertices, mesh.triangles)
    collapsed = _collapsed_triangles(mesh.vertices, mesh.triangles, max_error)
    order = np.lexsort((np.arange(source_count), areas, ~collapsed))
    keep = np.sort(order[source_count - target:])

    kept = mesh.triangles[keep]
    used, remap = np.unique(kept, return_inverse=True)
    triangles = remap.reshape(-1, 3).astype(np.uint32)
    vertices = mesh.vertices[used]

    if len(triangles) == 0:
        raise SimplificationError(f"Mesh '{mesh.name}' has zero triangles after reduction")

    def pick(channel):
        return None if channel is None else channel[used]

    uvs = {k: v[used] for k, v in mesh.uvs.items() if preserve_uvs or k == 0}

    if preserve_normals and mesh.normals is not None:
        normals = mesh.normals[used]
    else:
        normals = recalculate_normals(vertices, triangles)

    tangents = None
    if mesh.tangents is not None:
        if preserve_normals or 0 not in uvs:
            tangents = mesh.tangents[used]
        else:
            tangents = recalculate_tangents(vertices, triangles, normals, uvs[0])

    return replace(
        mesh,
        name=name or mesh.name,
        vertices=vertices,
        triangles=triangles,
        normals=normals,
        tangents=tangents,
        uvs=uvs,
        bone_weights=pick(mesh.bone_weights),
        bone_indices=pick(mesh.bone_indices),
        # deltas follow their vertices; shapes themselves are not simplified
        blend_shapes={k: v[used] for k, v in mesh.blend_shapes.items()},
    )
