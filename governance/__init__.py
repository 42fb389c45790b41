from governance.catalog import RuleCatalog, load_catalog
from governance.models import ArtifactRef, InvalidArgumentError, ResultBuilder, ValidationResult
from governance.rules import content, file_size, import_settings, location, naming, prefix_rules, references


class Validator:
    def __init__(self, catalog: RuleCatalog = None, registry_path=None):
        self.catalog = catalog or load_catalog(registry_path)

    def validate(self, artifact: ArtifactRef) -> ValidationResult:
        """Runs every check against one artifact.

        Checks are independent: each one appends to the same result and
        none of them short-circuits another.
        """
        if artifact is None or not artifact.path:
            raise InvalidArgumentError("Artifact path cannot be null or empty.")

        catalog = self.catalog
        result = ResultBuilder(path=artifact.path)

        # 1. Naming (returns the matched prefix rule, if any)
        rule = naming.check(artifact, catalog, result)

        # 2. Prefix-specific structure
        prefix_rules.check(artifact, rule, catalog, result)

        # 3. Location, only once a prefix is known
        location.check(artifact, rule, catalog, result)

        # 4. Size
        file_size.check(artifact, catalog, result)

        # 5. Import configuration and loaded content
        import_settings.check(artifact, catalog, result)
        content.check(artifact, catalog, result)

        # 6. Reference integrity
        references.check(artifact, catalog, result)

        return result.build()


def validate(artifact: ArtifactRef, catalog: RuleCatalog) -> ValidationResult:
    return Validator(catalog).validate(artifact)
