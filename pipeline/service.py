import logging

from governance.batch import DEFAULT_EXEMPT_LOCATIONS, BatchRunner, RunOptions
from governance.catalog import load_catalog
from governance.docs import generate_markdown
from governance.models import ArtifactNotFoundError, InvalidArgumentError
from governance.presets import PRESETS
from lod.generator import FailureReason, LODEngine, LODFailure, analyze
from lod.profile import load_lod_settings
from pipeline.artifact_store import FileArtifactStore
from pipeline.config import PipelineConfig

logger = logging.getLogger(__name__)


class PipelineService:
    """Entry points for change notifications and explicit requests.

    Catalog, LOD settings and store are handed in once and shared
    read-only by every run.
    """

    def __init__(self, store, catalog=None, lod_settings=None, exempt_locations=DEFAULT_EXEMPT_LOCATIONS,
                 lod_engine=None):
        self.store = store
        self.catalog = catalog or load_catalog()
        self.lod_settings = lod_settings or load_lod_settings()
        self.runner = BatchRunner(self.catalog, store, exempt_locations)
        self.lod_engine = lod_engine or LODEngine(self.lod_settings)
        self._pending = []
        self._draining = False
        self._preset_writes = set()
        store.subscribe(self.on_artifacts_changed)

    @classmethod
    def from_config(cls, config: PipelineConfig = None):
        config = config or PipelineConfig.from_env()
        return cls(
            FileArtifactStore(config.root),
            catalog=load_catalog(config.rules_path),
            lod_settings=load_lod_settings(config.lod_settings_path),
            exempt_locations=config.exempt_locations,
        )

    # ── Validation ──

    def on_artifacts_changed(self, paths):
        """Store callback: validates and auto-fixes exactly the changed paths.

        A notification raised by a fix inside a running batch is dropped for
        paths that batch already handled; anything else is queued and run
        after the current batch finishes. Paths written by an explicit preset
        are not re-validated by that write.
        """
        paths = [p for p in paths if p not in self._preset_writes]
        if not paths:
            return None
        if self.runner.active:
            fresh = [p for p in paths if not self.runner.is_processing(p)]
            self._pending.extend(p for p in fresh if p not in self._pending)
            return None

        self._pending.extend(p for p in paths if p not in self._pending)
        if self._draining:
            return None
        reports = self._drain()
        # the first batch is the one for the paths this call announced
        return reports[0] if reports else None

    def _drain(self):
        reports = []
        self._draining = True
        try:
            while self._pending:
                batch, self._pending = self._pending, []
                reports.append(self.runner.run(batch, RunOptions(auto_fix=True, headless=False)))
        finally:
            self._draining = False
        return reports

    def validate(self, paths, auto_fix=False, headless=False, cancel=None):
        report = self.runner.run(paths, RunOptions(auto_fix=auto_fix, headless=headless), cancel)
        if not self._draining:
            self._drain()
        return report

    def validate_all(self, auto_fix=False, headless=False, cancel=None):
        return self.validate(self.store.list_paths(), auto_fix, headless, cancel)

    def apply_preset(self, path, preset_name):
        """Applies a named canonical preset to one artifact's import settings."""
        if not path:
            raise InvalidArgumentError("Artifact path cannot be null or empty.")
        try:
            settings_type, preset = PRESETS[preset_name]
        except KeyError:
            raise InvalidArgumentError(f"Unknown preset: {preset_name}") from None

        artifact = self.store.load(path)
        current = artifact.import_settings
        if current is None:
            current = settings_type()
        elif not isinstance(current, settings_type):
            raise InvalidArgumentError(f"Preset '{preset_name}' does not apply to {artifact.kind.value} artifacts")
        settings = preset(current)
        self._preset_writes.add(path)
        try:
            self.store.write_import_settings(path, settings)
        finally:
            self._preset_writes.discard(path)
        logger.info("Applied %s preset to %s", preset_name, path)
        return settings

    def naming_documentation(self):
        return generate_markdown(self.catalog)

    # ── Levels of detail ──

    def generate_lod(self, path, profile=None):
        if not path:
            raise InvalidArgumentError("Artifact path cannot be null or empty.")
        try:
            model = self.store.load_model(path)
        except ArtifactNotFoundError as e:
            logger.error("Cannot generate LODs: %s", e)
            return LODFailure(path, FailureReason.NOT_FOUND, str(e))

        result = self.lod_engine.generate(model, profile)
        if result.ok:
            self.store.save_lod_group(path, result)
        return result

    def generate_lods(self, paths, profile=None, regenerate=False):
        models = []
        failures = []
        for path in paths:
            try:
                models.append(self.store.load_model(path))
            except ArtifactNotFoundError as e:
                failures.append((path, LODFailure(path, FailureReason.NOT_FOUND, str(e))))

        results = self.lod_engine.generate_many(models, profile, regenerate)
        for path, result in results:
            if result.ok:
                self.store.save_lod_group(path, result)
        return sorted(results + failures, key=lambda item: item[0])

    def analyze(self, path):
        return analyze(self.store.load_model(path))
