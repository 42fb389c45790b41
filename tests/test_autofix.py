import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
import unittest

from governance import Validator
from governance.autofix import AutoFixer
from governance.catalog import load_catalog
from governance.models import AudioSettings, InvalidArgumentError, TextureSettings
from governance.presets import PRESETS, normal_map_settings, plan_fix
from tests.fakes import InMemoryArtifactStore


class TestAutoFixer(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryArtifactStore()
        self.fixer = AutoFixer(self.store)
        self.validator = Validator(load_catalog())

    def test_normal_map_settings_are_applied(self):
        artifact = self.store.add("Art/T_Rock_Normal.png", import_settings=TextureSettings())
        result = self.validator.validate(artifact)

        fixed = self.fixer.try_auto_fix(artifact, result)

        self.assertEqual(fixed.import_settings.texture_type, "normal_map")
        self.assertFalse(fixed.import_settings.srgb)
        self.assertEqual(self.store.writes, ["Art/T_Rock_Normal.png"])
        self.assertEqual(self.store.load("Art/T_Rock_Normal.png").import_settings, fixed.import_settings)
        self.assertEqual(self.validator.validate(fixed).fixable, ())

    def test_audio_location_presets(self):
        sfx = self.store.add("Audio/SFX/AUD_SFX_Weapon_Shot.wav",
                             import_settings=AudioSettings(load_type="streaming"))
        fixed = self.fixer.try_auto_fix(sfx, self.validator.validate(sfx))
        self.assertEqual(fixed.import_settings.load_type, "compressed_in_memory")
        self.assertTrue(fixed.import_settings.force_mono)

        music = self.store.add("Audio/Music/AUD_MUS_Theme_Main.ogg", import_settings=AudioSettings())
        fixed = self.fixer.try_auto_fix(music, self.validator.validate(music))
        self.assertEqual(fixed.import_settings.load_type, "streaming")
        self.assertFalse(fixed.import_settings.preload)

    def test_nothing_to_fix_returns_same_artifact(self):
        artifact = self.store.add("Loose/rock.png", import_settings=TextureSettings())
        result = self.validator.validate(artifact)
        self.assertFalse(result.valid)

        self.assertIs(self.fixer.try_auto_fix(artifact, result), artifact)
        self.assertEqual(self.store.writes, [])

    def test_invalid_arguments(self):
        artifact = self.store.add("Art/T_Rock_Normal.png", import_settings=TextureSettings())
        with self.assertRaises(InvalidArgumentError):
            self.fixer.try_auto_fix(artifact, None)
        with self.assertRaises(InvalidArgumentError):
            self.fixer.try_auto_fix(None, self.validator.validate(artifact))


class TestPresets(unittest.TestCase):
    def test_presets_keep_unrelated_fields(self):
        current = TextureSettings(max_size=512)
        updated = normal_map_settings(current)
        self.assertEqual(updated.max_size, 512)
        self.assertEqual(updated.standalone_format, "BC5")

    def test_every_preset_matches_its_settings_type(self):
        for name, (settings_type, preset) in PRESETS.items():
            self.assertIsInstance(preset(settings_type()), settings_type, name)

    def test_no_plan_without_settings(self):
        store = InMemoryArtifactStore()
        self.assertIsNone(plan_fix(store.add("Art/T_Rock_Normal.png")))

    def test_voice_is_only_fixed_when_streaming(self):
        store = InMemoryArtifactStore()
        voice = store.add("Audio/Voice/AUD_VOX_Hero_Hello.wav", import_settings=AudioSettings())
        self.assertIsNone(plan_fix(voice))
        streaming = store.add("Audio/Voice/AUD_VOX_Hero_Bye.wav",
                              import_settings=AudioSettings(load_type="streaming"))
        self.assertEqual(plan_fix(streaming).fix_id, "voice")


if __name__ == "__main__":
    unittest.main(verbosity=2)
