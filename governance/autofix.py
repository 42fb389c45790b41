import logging
from dataclasses import replace

from governance.models import ArtifactRef, InvalidArgumentError, ValidationResult
from governance.presets import plan_fix

logger = logging.getLogger(__name__)


class AutoFixer:
    """Applies canonical import presets to artifacts with a lossless fix.

    Only import configuration is touched. Naming and location problems are
    reported but never fixed here, since other artifacts may reference the
    path.
    """

    def __init__(self, store):
        self.store = store

    def try_auto_fix(self, artifact: ArtifactRef, result: ValidationResult) -> ArtifactRef:
        if artifact is None or not artifact.path:
            raise InvalidArgumentError("Artifact path cannot be null or empty.")
        if result is None:
            raise InvalidArgumentError("Validation result cannot be null.")

        fix = plan_fix(artifact)
        if fix is None:
            return artifact

        settings = fix.apply(artifact.import_settings)
        # Writing the settings makes the store report the artifact as changed.
        self.store.write_import_settings(artifact.path, settings)
        logger.info("Auto-fixed %s for: %s", fix.description, artifact.file_name)
        return replace(artifact, import_settings=settings)
