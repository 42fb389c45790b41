import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
import contextlib
import io
import json
import shutil
import tempfile
import unittest
import wave
from unittest import mock

from PIL import Image

from governance.models import (
    ArtifactNotFoundError, ArtifactUnreadableError, AudioInfo, InvalidArgumentError, MeshSettings, TextureInfo,
    TextureSettings,
)
from lod.generator import FailureReason
from pipeline.artifact_store import FileArtifactStore
from pipeline.ci import EXIT_INVALID, main
from pipeline.config import PipelineConfig
from pipeline.service import PipelineService
from tests.test_lod import grid_mesh


class ContentTree:
    """Builds a small content tree on disk, the way an editor export lays it out."""

    def __init__(self, root):
        self.root = root

    def path(self, relative):
        full = os.path.join(self.root, *relative.split("/"))
        os.makedirs(os.path.dirname(full), exist_ok=True)
        return full

    def image(self, relative, size=(256, 256), settings=None):
        Image.new("RGB", size, (128, 64, 32)).save(self.path(relative))
        if settings is not None:
            self.json(relative + ".import.json", {"settings": settings})

    def wav(self, relative, seconds=0.5, rate=22050):
        with wave.open(self.path(relative), "wb") as clip:
            clip.setnchannels(1)
            clip.setsampwidth(2)
            clip.setframerate(rate)
            clip.writeframes(b"\x00\x00" * int(seconds * rate))

    def mesh(self, relative, size=10):
        with open(self.path(relative), "wb") as f:
            f.write(b"FBX")
        geometry = grid_mesh(name=relative.rsplit("/", 1)[-1].split(".")[0], size=size)
        self.json(relative + ".mesh.json", {
            "filename": relative.rsplit("/", 1)[-1],
            "tris": geometry.triangle_count,
            "meshes": [{
                "name": geometry.name,
                "parent_bone": "",
                "tris": geometry.triangle_count,
                "vertices": geometry.vertices.reshape(-1).tolist(),
                "normals": geometry.normals.reshape(-1).tolist(),
                "indices": geometry.triangles.reshape(-1).tolist(),
                "uvs": {"0": geometry.uvs[0].reshape(-1).tolist()},
            }],
            "armature_name": "",
            "bones": [],
        })

    def text(self, relative, content):
        with open(self.path(relative), "w") as f:
            f.write(content)

    def json(self, relative, data):
        with open(self.path(relative), "w") as f:
            json.dump(data, f)


class StoreTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.tree = ContentTree(self.tmp)
        self.store = FileArtifactStore(self.tmp)

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)


class TestFileArtifactStore(StoreTestCase):
    def test_list_paths_skips_sidecars_and_hidden_files(self):
        self.tree.image("Art/T_Rock_Albedo.png", settings={"srgb": True})
        self.tree.mesh("Art/Props/SM_Crate.fbx")
        self.tree.json(".cache/state.json", {})
        self.tree.json("Art/.hidden.json", {})

        self.assertEqual(self.store.list_paths(), ["Art/Props/SM_Crate.fbx", "Art/T_Rock_Albedo.png"])

    def test_texture_dimensions_and_settings(self):
        self.tree.image("Art/T_Rock_Normal.png", size=(512, 256), settings={"texture_type": "normal_map", "srgb": False})

        artifact = self.store.load("Art/T_Rock_Normal.png")

        self.assertEqual(artifact.content, TextureInfo(512, 256))
        self.assertEqual(artifact.import_settings, TextureSettings(texture_type="normal_map", srgb=False))
        self.assertEqual(artifact.size_bytes, os.path.getsize(os.path.join(self.tmp, "Art", "T_Rock_Normal.png")))

    def test_unreadable_image_falls_back_to_sidecar(self):
        with open(self.tree.path("Art/T_Rock_Albedo.png"), "wb") as f:
            f.write(b"not an image")
        self.tree.json("Art/T_Rock_Albedo.png.import.json", {"settings": {}, "content": {"width": 64, "height": 32}})

        self.assertEqual(self.store.load("Art/T_Rock_Albedo.png").content, TextureInfo(64, 32))

    def test_wav_header(self):
        self.tree.wav("Audio/SFX/AUD_SFX_Weapon_Shot.wav", seconds=0.5, rate=22050)
        artifact = self.store.load("Audio/SFX/AUD_SFX_Weapon_Shot.wav")
        self.assertEqual(artifact.content, AudioInfo(length_seconds=0.5, frequency=22050))
        self.assertIsNone(artifact.import_settings)

    def test_composite_references(self):
        self.tree.image("Art/T_Crate_Albedo.png")
        self.tree.json("Prefabs/PF_Crate.prefab", {
            "references": ["Art/T_Crate_Albedo.png", "Art/T_Gone_Albedo.png"],
            "nested_instances": 2,
        })

        info = self.store.load("Prefabs/PF_Crate.prefab").content

        self.assertEqual(info.references, ("Art/T_Crate_Albedo.png", None))
        self.assertEqual(info.missing_references, 1)
        self.assertEqual(info.nested_instances, 2)

    def test_mesh_info(self):
        self.tree.mesh("Art/Props/SM_Crate.fbx")
        info = self.store.load("Art/Props/SM_Crate.fbx").content
        self.assertEqual(info.triangle_count, 200)
        self.assertEqual(info.renderer_count, 1)
        self.assertFalse(info.has_lod_group)

    def test_corrupt_data_files_are_unreadable(self):
        self.tree.text("Art/Props/SM_Crate.fbx", "FBX")
        self.tree.text("Art/Props/SM_Crate.fbx.mesh.json", "{not json")
        self.tree.mesh("Art/Props/SM_Barrel.fbx")
        self.tree.json("Art/Props/SM_Barrel.fbx.mesh.json", {"meshes": {"name": "Barrel"}})
        self.tree.json("Prefabs/PF_Crate.prefab", ["Art/T_Crate_Albedo.png"])

        for path in ("Art/Props/SM_Crate.fbx", "Art/Props/SM_Barrel.fbx", "Prefabs/PF_Crate.prefab"):
            with self.assertRaises(ArtifactUnreadableError, msg=path):
                self.store.load(path)
        with self.assertRaises(ArtifactUnreadableError):
            self.store.load_model("Art/Props/SM_Crate.fbx")

    def test_malformed_sidecar_is_ignored(self):
        self.tree.image("Art/T_Rock_Albedo.png")
        self.tree.json("Art/T_Rock_Albedo.png.import.json", ["srgb"])

        with self.assertLogs("pipeline.artifact_store", level="WARNING"):
            artifact = self.store.load("Art/T_Rock_Albedo.png")

        self.assertIsNone(artifact.import_settings)
        self.assertEqual(artifact.content, TextureInfo(256, 256))

        self.tree.json("Art/T_Rock_Albedo.png.import.json", {"settings": "srgb"})
        with self.assertLogs("pipeline.artifact_store", level="WARNING"):
            self.assertIsNone(self.store.load("Art/T_Rock_Albedo.png").import_settings)

    def test_missing_artifact(self):
        with self.assertRaises(ArtifactNotFoundError):
            self.store.load("Art/T_Gone_Albedo.png")
        with self.assertRaises(ArtifactNotFoundError):
            self.store.load_model("Art/Props/SM_Gone.fbx")

    def test_write_import_settings_notifies(self):
        self.tree.image("Art/T_Rock_Albedo.png")
        changed = []
        self.store.subscribe(changed.extend)

        self.store.write_import_settings("Art/T_Rock_Albedo.png", TextureSettings(max_size=1024))

        self.assertEqual(changed, ["Art/T_Rock_Albedo.png"])
        self.assertEqual(self.store.load("Art/T_Rock_Albedo.png").import_settings.max_size, 1024)


class TestPipelineService(StoreTestCase):
    def setUp(self):
        super().setUp()
        self.service = PipelineService(self.store)

    def test_validate_all_on_disk(self):
        self.tree.image("Art/Weapons/T_Weapon_Rifle_Albedo.png")
        self.tree.image("Loose/weapon_rifle.png")

        report = self.service.validate_all(headless=True)

        self.assertEqual(report.failed, 1)
        self.assertEqual(report.exit_code, 1)
        self.assertIn("Suggested name: T_weapon_rifle.png", report.result_for("Loose/weapon_rifle.png").suggestions)

    def test_auto_fix_writes_sidecar(self):
        self.tree.image("Art/T_Rock_Normal.png", settings={})

        report = self.service.validate(["Art/T_Rock_Normal.png"], auto_fix=True)

        self.assertEqual(report.results[0].fixable, ())
        with open(os.path.join(self.tmp, "Art", "T_Rock_Normal.png.import.json")) as f:
            self.assertEqual(json.load(f)["settings"]["texture_type"], "normal_map")

    def test_apply_preset(self):
        self.tree.mesh("Art/Props/SM_Crate.fbx")
        settings = self.service.apply_preset("Art/Props/SM_Crate.fbx", "static_mesh")
        self.assertIsInstance(settings, MeshSettings)
        self.assertTrue(self.store.load("Art/Props/SM_Crate.fbx").import_settings.generate_secondary_uv)

        with self.assertRaises(InvalidArgumentError):
            self.service.apply_preset("Art/Props/SM_Crate.fbx", "sfx")
        with self.assertRaises(InvalidArgumentError):
            self.service.apply_preset("Art/Props/SM_Crate.fbx", "nonexistent")
        with self.assertRaises(InvalidArgumentError):
            self.service.apply_preset("", "static_mesh")

    def test_corrupt_mesh_data_fails_only_that_artifact(self):
        self.tree.text("Art/Props/SM_Crate.fbx", "FBX")
        self.tree.text("Art/Props/SM_Crate.fbx.mesh.json", "{not json")
        self.tree.image("Art/T_Rock_Albedo.png")

        report = self.service.validate_all(headless=True)

        self.assertEqual(len(report.results), 2)
        crate = report.result_for("Art/Props/SM_Crate.fbx")
        self.assertFalse(crate.valid)
        self.assertIn("could not be read", crate.errors[0])
        self.assertTrue(report.result_for("Art/T_Rock_Albedo.png").valid)
        self.assertEqual(report.exit_code, 1)

    def test_applied_preset_is_kept_on_disk(self):
        self.tree.image("Art/T_Rock_Normal.png", settings={"texture_type": "normal_map", "srgb": False})

        settings = self.service.apply_preset("Art/T_Rock_Normal.png", "texture")

        self.assertEqual(settings.texture_type, "default")
        self.assertEqual(self.store.load("Art/T_Rock_Normal.png").import_settings.texture_type, "default")

    def test_generate_lod_persists_group(self):
        self.tree.mesh("Art/Props/SM_Crate.fbx")

        group = self.service.generate_lod("Art/Props/SM_Crate.fbx")

        self.assertTrue(group.ok)
        model = self.store.load_model("Art/Props/SM_Crate.fbx")
        self.assertEqual(model.lod_group.thresholds, (0.5, 0.2, 0.05))
        self.assertEqual([level.triangle_count for level in model.lod_group.levels], [200, 60, 20])
        self.assertTrue(self.store.load("Art/Props/SM_Crate.fbx").content.has_lod_group)

    def test_generate_lod_for_missing_mesh(self):
        result = self.service.generate_lod("Art/Props/SM_Gone.fbx")
        self.assertFalse(result.ok)
        self.assertEqual(result.reason, FailureReason.NOT_FOUND)

    def test_generate_lod_for_corrupt_mesh(self):
        self.tree.text("Art/Props/SM_Crate.fbx", "FBX")
        self.tree.text("Art/Props/SM_Crate.fbx.mesh.json", "{not json")
        result = self.service.generate_lod("Art/Props/SM_Crate.fbx")
        self.assertFalse(result.ok)
        self.assertEqual(result.reason, FailureReason.NOT_FOUND)

    def test_generate_lods_skips_existing(self):
        self.tree.mesh("Art/Props/SM_A.fbx")
        self.tree.mesh("Art/Props/SM_B.fbx")
        self.service.generate_lod("Art/Props/SM_A.fbx")

        results = self.service.generate_lods(["Art/Props/SM_A.fbx", "Art/Props/SM_B.fbx", "Art/Props/SM_C.fbx"])

        self.assertEqual([path for path, _ in results], ["Art/Props/SM_B.fbx", "Art/Props/SM_C.fbx"])
        self.assertTrue(results[0][1].ok)
        self.assertEqual(results[1][1].reason, FailureReason.NOT_FOUND)

    def test_analyze(self):
        self.tree.mesh("Art/Props/SM_Crate.fbx", size=20)
        report = self.service.analyze("Art/Props/SM_Crate.fbx")
        self.assertEqual(report[0].triangles, 800)
        self.assertEqual(report[0].recommended_levels, 2)


class TestConfig(unittest.TestCase):
    def test_env_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            env_path = os.path.join(tmp, ".env")
            with open(env_path, "w") as f:
                f.write("ASSET_ROOT=/content\n")
                f.write("ASSET_EXEMPT_LOCATIONS=Plugins/, ThirdParty/\n")
                f.write("ASSET_LOG_LEVEL=debug\n")

            with mock.patch.dict(os.environ, {}, clear=True):
                config = PipelineConfig.from_env(env_path)

        self.assertEqual(config.root, "/content")
        self.assertEqual(config.exempt_locations, ("Plugins/", "ThirdParty/"))
        self.assertEqual(config.log_level, "DEBUG")
        self.assertIsNone(config.rules_path)


class TestCommandLine(StoreTestCase):
    def run_cli(self, *argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = main(["--root", self.tmp, *argv])
        return code, out.getvalue()

    def test_validate_exit_codes(self):
        self.tree.image("Art/T_Rock_Albedo.png")
        self.tree.image("Loose/rock.png")

        code, output = self.run_cli("validate")
        self.assertEqual(code, 1)
        self.assertIn("RESULT: FAILED", output)

        code, _ = self.run_cli("validate", "--interactive")
        self.assertEqual(code, 0)

        code, output = self.run_cli("validate", "Art/T_Rock_Albedo.png")
        self.assertEqual(code, 0)
        self.assertIn("RESULT: PASSED", output)

    def test_validate_json(self):
        self.tree.image("Loose/rock.png")
        code, output = self.run_cli("validate", "--json")
        report = json.loads(output)
        self.assertEqual(code, 1)
        self.assertEqual(report["failed"], 1)
        self.assertEqual(report["outcome"], "failure")
        self.assertEqual(report["perArtifact"][0]["path"], "Loose/rock.png")

    def test_lod_and_analyze(self):
        self.tree.mesh("Art/Props/SM_Crate.fbx")
        code, output = self.run_cli("lod", "Art/Props/SM_Crate.fbx", "--profile", "weapon")
        self.assertEqual(code, 0)
        self.assertIn("Generated 2 LOD levels", output)

        code, output = self.run_cli("analyze", "Art/Props/SM_Crate.fbx")
        self.assertEqual(code, 0)
        self.assertIn("200 triangles", output)

    def test_lod_failure(self):
        self.tree.mesh("Art/Props/SM_Pebble.fbx", size=5)
        code, output = self.run_cli("lod", "Art/Props/SM_Pebble.fbx")
        self.assertEqual(code, 1)
        self.assertIn("LOD generation failed", output)

    def test_invalid_invocations(self):
        code, output = self.run_cli("preset", "Art/T_Gone_Albedo.png", "normal_map")
        self.assertEqual(code, EXIT_INVALID)
        self.assertIn("FATAL", output)

        self.tree.mesh("Art/Props/SM_Crate.fbx")
        code, _ = self.run_cli("lod", "Art/Props/SM_Crate.fbx", "--profile", "vehicle")
        self.assertEqual(code, EXIT_INVALID)

    def test_docs_output(self):
        target = os.path.join(self.tmp, "NamingConventions.md")
        code, _ = self.run_cli("docs", "--output", target)
        self.assertEqual(code, 0)
        with open(target) as f:
            self.assertTrue(f.read().startswith("# Naming Conventions Reference"))


if __name__ == "__main__":
    unittest.main(verbosity=2)
