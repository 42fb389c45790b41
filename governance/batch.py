import logging
from dataclasses import dataclass

from governance import Validator
from governance.autofix import AutoFixer
from governance.models import (
    ArtifactNotFoundError, BatchReport, InvalidArgumentError, Outcome, ResultBuilder,
)

logger = logging.getLogger(__name__)

DEFAULT_EXEMPT_LOCATIONS = ("Plugins/", "Editor/", "Scripts/", "ArtPipeline/Documentation/")
NON_GOVERNED_EXTENSIONS = (".cs", ".shader", ".compute", ".meta")

# Re-validations allowed after a fix, per artifact per run.
MAX_FIX_PASSES = 1


@dataclass(frozen=True)
class RunOptions:
    auto_fix: bool = False
    headless: bool = False


class CancellationToken:
    """Checked once per artifact; a cancelled run returns an incomplete report."""

    def __init__(self):
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def is_cancelled(self):
        return self._cancelled


class BatchRunner:
    def __init__(self, catalog, store, exempt_locations=DEFAULT_EXEMPT_LOCATIONS, fixer=None):
        self.validator = Validator(catalog)
        self.store = store
        self.exempt_locations = tuple(exempt_locations)
        self.fixer = fixer or AutoFixer(store)
        self._processed = set()
        self._active = False

    @property
    def active(self):
        return self._active

    def is_processing(self, path):
        """True while a run is in progress and has already handled this path."""
        return self._active and path in self._processed

    def should_skip(self, path):
        normalized = path.replace("\\", "/")
        if normalized.lower().endswith(NON_GOVERNED_EXTENSIONS):
            return True
        padded = "/" + normalized
        return any("/" + location in padded for location in self.exempt_locations)

    def run(self, paths, options: RunOptions = RunOptions(), cancel: CancellationToken = None) -> BatchReport:
        if paths is None:
            raise InvalidArgumentError("Artifact set cannot be null.")
        if any(not path for path in paths):
            raise InvalidArgumentError("Artifact paths cannot be null or empty.")

        results = []
        skipped = []
        complete = True

        self._processed = set()
        self._active = True
        try:
            for path in sorted(set(paths)):
                if cancel is not None and cancel.is_cancelled:
                    logger.warning("Validation cancelled; %d artifacts processed", len(results))
                    complete = False
                    break

                if self.should_skip(path):
                    skipped.append(path)
                    continue

                results.append(self._process(path, options))
        finally:
            self._active = False
            self._processed = set()

        failed = any(not r.valid for r in results)
        outcome = Outcome.FAILURE if options.headless and failed else Outcome.SUCCESS
        report = BatchReport(
            results=tuple(results),
            outcome=outcome,
            complete=complete,
            skipped=tuple(skipped),
        )
        _log_report(report)
        return report

    def _process(self, path, options):
        try:
            artifact = self.store.load(path)
        except ArtifactNotFoundError as e:
            # includes ArtifactUnreadableError: corrupt data fails this artifact only
            logger.warning("Could not read %s: %s", path, e)
            self._processed.add(path)
            result = ResultBuilder(path=path)
            result.error(f"Artifact could not be read: {e}")
            return result.build()

        result = self.validator.validate(artifact)

        if options.auto_fix and path not in self._processed and (not result.valid or result.fixable):
            # Mark before writing: the fix re-announces this path as changed.
            self._processed.add(path)
            for _ in range(MAX_FIX_PASSES):
                fixed = self.fixer.try_auto_fix(artifact, result)
                if fixed is artifact:
                    break
                artifact = fixed
                result = self.validator.validate(artifact)

        self._processed.add(path)
        logger.debug("%s: %s", path, result.summary())
        return result


def _log_report(report):
    logger.info("=== ASSET VALIDATION COMPLETE ===")
    logger.info("Passed: %d", report.passed)
    logger.info("Failed: %d", report.failed)
    logger.info("Total Validated: %d", len(report.results))

    failures = [r for r in report.results if not r.valid]
    if failures:
        logger.error("=== VALIDATION FAILURES (%d) ===", len(failures))
        for failure in failures:
            logger.error("%s: %s", failure.path, failure.summary())
            for error in failure.errors[:3]:
                logger.error("   - %s", error)

    warned = [r for r in report.results if r.warnings]
    if warned:
        logger.warning("=== VALIDATION WARNINGS (%d) ===", len(warned))
        for result in warned[:10]:
            logger.warning("%s: %d warnings", result.path, len(result.warnings))
