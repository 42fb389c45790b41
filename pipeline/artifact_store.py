"""Artifact store: where artifacts, their import settings and mesh data live.

The filesystem layout mirrors the editor's:

    Art/Weapons/T_Rifle_Albedo.png
    Art/Weapons/T_Rifle_Albedo.png.import.json   import settings sidecar
    Art/Props/SM_Crate.fbx
    Art/Props/SM_Crate.fbx.mesh.json             extracted mesh data
    Art/Props/SM_Crate.fbx.lod.json              generated LOD group
"""
import json
import logging
import os
import wave
from dataclasses import asdict, fields

from PIL import Image

from governance.models import (
    SETTINGS_TYPES, ArtifactKind, ArtifactNotFoundError, ArtifactRef, ArtifactUnreadableError,
    AudioInfo, CompositeInfo, MeshInfo, TextureInfo,
)
from lod.generator import LODGroup, LODLevel, LODRenderer, RenderableModel, SourceRenderer
from lod.simplify import MeshGeometry

logger = logging.getLogger(__name__)

SETTINGS_SUFFIX = ".import.json"
MESH_SUFFIX = ".mesh.json"
LOD_SUFFIX = ".lod.json"
SIDECAR_SUFFIXES = (SETTINGS_SUFFIX, MESH_SUFFIX, LOD_SUFFIX, ".meta")


class ArtifactStore:
    """Base store: change subscribers plus the read/write surface the core uses."""

    def __init__(self):
        self._listeners = []

    def subscribe(self, callback):
        self._listeners.append(callback)

    def notify_changed(self, paths):
        for callback in list(self._listeners):
            callback(list(paths))

    def list_paths(self):
        raise NotImplementedError

    def load(self, path) -> ArtifactRef:
        raise NotImplementedError

    def write_import_settings(self, path, settings):
        raise NotImplementedError

    def load_model(self, path) -> RenderableModel:
        raise NotImplementedError

    def save_lod_group(self, path, group):
        raise NotImplementedError


def _read_json(path):
    with open(path, "r") as f:
        return json.load(f)


def _read_json_object(path):
    """Reads a JSON object, raising ArtifactUnreadableError for anything else."""
    try:
        data = _read_json(path)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ArtifactUnreadableError(f"{os.path.basename(path)} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ArtifactUnreadableError(f"{os.path.basename(path)} does not hold a JSON object")
    return data


def _mesh_entries(data, path):
    meshes = data.get("meshes", [])
    if not isinstance(meshes, list) or not all(isinstance(m, dict) for m in meshes):
        raise ArtifactUnreadableError(f"{os.path.basename(path)} has a malformed 'meshes' list")
    return meshes


def _sidecar_content(sidecar, full, **converters):
    """Content info recorded in the sidecar, or None when any field is missing."""
    content = (sidecar or {}).get("content")
    if not isinstance(content, dict) or any(key not in content for key in converters):
        return None
    try:
        return {key: convert(content[key]) for key, convert in converters.items()}
    except (TypeError, ValueError) as e:
        raise ArtifactUnreadableError(f"Recorded content of {os.path.basename(full)} is malformed: {e}") from e


def _write_json(path, data):
    with open(path, "w") as f:
        json.dump(data, f, indent=4)


def _settings_from_dict(settings_type, data):
    known = {f.name for f in fields(settings_type)}
    return settings_type(**{k: v for k, v in data.items() if k in known})


def _geometry_to_dict(geometry):
    data = {
        "name": geometry.name,
        "vertices": geometry.vertices.reshape(-1).tolist(),
        "indices": geometry.triangles.reshape(-1).tolist(),
        "uvs": {str(k): v.reshape(-1).tolist() for k, v in geometry.uvs.items()},
    }
    if geometry.normals is not None:
        data["normals"] = geometry.normals.reshape(-1).tolist()
    if geometry.tangents is not None:
        data["tangents"] = geometry.tangents.reshape(-1).tolist()
    if geometry.bone_weights is not None:
        data["bone_weights"] = geometry.bone_weights.reshape(-1).tolist()
        data["bone_indices"] = geometry.bone_indices.reshape(-1).tolist()
    if geometry.blend_shapes:
        data["blend_shapes"] = {k: v.reshape(-1).tolist() for k, v in geometry.blend_shapes.items()}
    return data


def _geometry_from_dict(data):
    return MeshGeometry.from_flat(
        data.get("name", ""),
        data["vertices"],
        data["indices"],
        normals=data.get("normals"),
        tangents=data.get("tangents"),
        uvs=data.get("uvs") or {},
        bone_weights=data.get("bone_weights"),
        bone_indices=data.get("bone_indices"),
        blend_shapes=data.get("blend_shapes") or {},
    )


class FileArtifactStore(ArtifactStore):
    def __init__(self, root):
        super().__init__()
        self.root = os.path.abspath(root)

    def _abs(self, path):
        return os.path.join(self.root, *path.replace("\\", "/").split("/"))

    def list_paths(self):
        paths = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for filename in sorted(filenames):
                if filename.startswith(".") or filename.endswith(SIDECAR_SUFFIXES):
                    continue
                full = os.path.join(dirpath, filename)
                paths.append(os.path.relpath(full, self.root).replace(os.sep, "/"))
        return sorted(paths)

    def exists(self, path):
        return os.path.isfile(self._abs(path))

    # ── Artifacts ──

    def load(self, path) -> ArtifactRef:
        full = self._abs(path)
        if not os.path.isfile(full):
            raise ArtifactNotFoundError(f"No artifact at {path}")

        kind = ArtifactRef.from_path(path).kind
        sidecar = self._read_sidecar(full)
        settings = None
        settings_type = SETTINGS_TYPES.get(kind)
        if settings_type is not None and sidecar is not None:
            stored = sidecar.get("settings", {})
            if isinstance(stored, dict):
                settings = _settings_from_dict(settings_type, stored)
            else:
                logger.warning("Ignoring malformed import settings of %s", path)

        content = self.CONTENT_READERS[kind](self, full, sidecar)
        return ArtifactRef.from_path(
            path,
            size_bytes=os.path.getsize(full),
            import_settings=settings,
            content=content,
        )

    def _read_sidecar(self, full):
        sidecar_path = full + SETTINGS_SUFFIX
        if not os.path.exists(sidecar_path):
            return None
        try:
            return _read_json_object(sidecar_path)
        except ArtifactUnreadableError as e:
            logger.warning("Ignoring unreadable import settings %s: %s", sidecar_path, e)
            return None

    def _read_texture(self, full, sidecar):
        try:
            with Image.open(full) as img:
                width, height = img.size
            return TextureInfo(width=width, height=height)
        except OSError:
            content = _sidecar_content(sidecar, full, width=int, height=int)
            if content is not None:
                return TextureInfo(**content)
            logger.debug("Could not read image dimensions of %s", full)
            return None

    def _read_audio(self, full, sidecar):
        if full.lower().endswith(".wav"):
            try:
                with wave.open(full, "rb") as clip:
                    rate = clip.getframerate()
                    return AudioInfo(length_seconds=clip.getnframes() / float(rate), frequency=rate)
            except (wave.Error, EOFError, OSError, ZeroDivisionError):
                logger.debug("Could not read WAV header of %s", full)

        content = _sidecar_content(sidecar, full, length_seconds=float, frequency=int)
        return AudioInfo(**content) if content is not None else None

    def _read_mesh(self, full, sidecar):
        mesh_path = full + MESH_SUFFIX
        if not os.path.exists(mesh_path):
            return None
        data = _read_json_object(mesh_path)
        meshes = _mesh_entries(data, mesh_path)
        try:
            triangles = sum(int(m.get("tris", len(m.get("indices", [])) // 3)) for m in meshes)
        except (TypeError, ValueError) as e:
            raise ArtifactUnreadableError(f"{os.path.basename(mesh_path)} has malformed triangle data: {e}") from e
        return MeshInfo(
            triangle_count=triangles,
            renderer_count=len(meshes),
            has_lod_group=os.path.exists(full + LOD_SUFFIX),
            skinned=bool(data.get("bones")) or any(m.get("bone_weights") for m in meshes),
        )

    def _read_composite(self, full, sidecar):
        try:
            data = _read_json(full)
        except (json.JSONDecodeError, UnicodeDecodeError):
            # not a JSON prefab: references unknown
            return None
        if not isinstance(data, dict) or not isinstance(data.get("references", []), list):
            raise ArtifactUnreadableError(f"{os.path.basename(full)} is not a prefab object")
        try:
            nested = int(data.get("nested_instances", 0))
        except (TypeError, ValueError) as e:
            raise ArtifactUnreadableError(f"{os.path.basename(full)} has a malformed instance count: {e}") from e
        references = tuple(
            ref if isinstance(ref, str) and ref and self.exists(ref) else None
            for ref in data.get("references", [])
        )
        return CompositeInfo(references=references, nested_instances=nested)

    def _read_nothing(self, full, sidecar):
        return None

    CONTENT_READERS = {
        ArtifactKind.TEXTURE: _read_texture,
        ArtifactKind.MESH: _read_mesh,
        ArtifactKind.AUDIO: _read_audio,
        ArtifactKind.COMPOSITE: _read_composite,
        ArtifactKind.OTHER: _read_nothing,
    }

    def write_import_settings(self, path, settings):
        """Persists new import settings and announces the artifact as changed."""
        full = self._abs(path)
        if not os.path.isfile(full):
            raise ArtifactNotFoundError(f"No artifact at {path}")

        sidecar = self._read_sidecar(full) or {}
        sidecar["settings"] = asdict(settings)
        _write_json(full + SETTINGS_SUFFIX, sidecar)
        self.notify_changed([path])

    # ── Models ──

    def load_model(self, path) -> RenderableModel:
        full = self._abs(path)
        mesh_path = full + MESH_SUFFIX
        if not os.path.exists(mesh_path):
            raise ArtifactNotFoundError(f"No extracted mesh data for {path}")

        data = _read_json_object(mesh_path)
        bones = tuple(data.get("bones", []))
        renderers = []
        for mesh in _mesh_entries(data, mesh_path):
            geometry = None
            if mesh.get("vertices") and mesh.get("indices"):
                try:
                    geometry = _geometry_from_dict(mesh)
                except (TypeError, ValueError) as e:
                    logger.warning("Mesh %s in %s is malformed: %s", mesh.get("name"), path, e)
            skinned = bool(mesh.get("bone_weights"))
            renderers.append(SourceRenderer(
                name=mesh.get("name", ""),
                geometry=geometry,
                readable=geometry is not None,
                materials=tuple(mesh.get("materials", [])),
                bones=bones if skinned else (),
                root_bone=(data.get("root_bone") or (bones[0] if bones else None)) if skinned else None,
                parent_bone=mesh.get("parent_bone", ""),
            ))

        model = RenderableModel(path=path, renderers=renderers)
        if os.path.exists(full + LOD_SUFFIX):
            model.lod_group = self._read_lod_group(full + LOD_SUFFIX)
        return model

    def _read_lod_group(self, lod_path):
        data = _read_json_object(lod_path)
        try:
            levels = tuple(
                LODLevel(
                    index=level["index"],
                    threshold=level["threshold"],
                    quality=level["quality"],
                    renderers=tuple(
                        LODRenderer(
                            name=r["name"],
                            source=r["source"],
                            geometry=_geometry_from_dict(r["geometry"]),
                            materials=tuple(r.get("materials", [])),
                            bones=tuple(r.get("bones", [])),
                            root_bone=r.get("root_bone"),
                        )
                        for r in level["renderers"]
                    ),
                )
                for level in data["levels"]
            )
            return LODGroup(
                name=data["name"],
                levels=levels,
                cross_fade=data.get("cross_fade", False),
                cross_fade_seconds=data.get("cross_fade_seconds", 0.5),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ArtifactUnreadableError(f"{os.path.basename(lod_path)} is malformed: {e}") from e

    def save_lod_group(self, path, group: LODGroup):
        data = {
            "name": group.name,
            "cross_fade": group.cross_fade,
            "cross_fade_seconds": group.cross_fade_seconds,
            "levels": [
                {
                    "index": level.index,
                    "threshold": level.threshold,
                    "quality": level.quality,
                    "renderers": [
                        {
                            "name": r.name,
                            "source": r.source,
                            "materials": list(r.materials),
                            "bones": list(r.bones),
                            "root_bone": r.root_bone,
                            "geometry": _geometry_to_dict(r.geometry),
                        }
                        for r in level.renderers
                    ],
                }
                for level in group.levels
            ],
        }
        _write_json(self._abs(path) + LOD_SUFFIX, data)
