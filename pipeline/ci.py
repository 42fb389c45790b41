"""
Headless runner for CI and batch jobs.

Usage:
    python -m pipeline validate [paths...] [--auto-fix] [--interactive] [--json]
    python -m pipeline lod <path> [--profile character|environment|weapon]
    python -m pipeline analyze <path>
    python -m pipeline preset <path> <preset>
    python -m pipeline docs [--output NamingConventions.md]

Exit codes:
    0 = All checks passed
    1 = One or more artifacts failed (or LOD generation failed)
    2 = Invalid invocation
"""
import argparse
import json
import logging
import sys

from governance.catalog import CatalogError
from governance.models import ArtifactNotFoundError, InvalidArgumentError, Outcome
from governance.presets import PRESETS
from lod.profile import ProfileError
from pipeline.config import PipelineConfig
from pipeline.service import PipelineService

EXIT_INVALID = 2


def print_report(report):
    print("\n" + "=" * 60)
    print("  VALIDATION RESULTS")
    print("=" * 60 + "\n")

    for result in report.results:
        if result.valid:
            print(f"  ✅ PASS [{result.path}]: {result.summary()}")
        else:
            print(f"  ❌ FAIL [{result.path}]: {result.summary()}")
            for error in result.errors:
                print(f"     - {error}")
        for warning in result.warnings:
            print(f"     ⚠ {warning}")
        for suggestion in result.suggestions:
            print(f"     Fix: {suggestion}")

    print(f"\n{'=' * 60}")
    total = len(report.results)
    if not report.complete:
        print("  RUN CANCELLED - report is incomplete")
    if report.failed == 0:
        print(f"  RESULT: PASSED ({report.passed} of {total} artifacts passed, {report.warned} with warnings)")
    else:
        print(f"  RESULT: FAILED ({report.failed} of {total} artifacts failed)")
    print("=" * 60 + "\n")


def cmd_validate(service, args):
    if args.paths:
        report = service.validate(args.paths, auto_fix=args.auto_fix, headless=not args.interactive)
    else:
        report = service.validate_all(auto_fix=args.auto_fix, headless=not args.interactive)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report)
    return report.exit_code


def cmd_lod(service, args):
    profile = service.lod_settings.profile(args.profile) if args.profile else None
    result = service.generate_lod(args.path, profile)
    if not result.ok:
        print(f"❌ LOD generation failed for {args.path}: {result.message}")
        for warning in result.warnings:
            print(f"   ⚠ {warning}")
        return Outcome.FAILURE.value

    print(f"✅ Generated {len(result.levels)} LOD levels for {args.path}")
    for level in result.levels:
        print(f"   LOD{level.index}: threshold {level.threshold:.2f}, {level.triangle_count:,} triangles")
    for warning in result.warnings:
        print(f"   ⚠ {warning}")
    return Outcome.SUCCESS.value


def cmd_analyze(service, args):
    for entry in service.analyze(args.path):
        print(f"{entry.name}: {entry.triangles} triangles, {entry.vertices} vertices"
              f" - Recommended LODs: {entry.recommended_levels}")
    return Outcome.SUCCESS.value


def cmd_preset(service, args):
    service.apply_preset(args.path, args.preset)
    print(f"Applied {args.preset} preset to {args.path}")
    return Outcome.SUCCESS.value


def cmd_docs(service, args):
    markdown = service.naming_documentation()
    if args.output:
        with open(args.output, "w") as f:
            f.write(markdown)
        print(f"Naming documentation written to {args.output}")
    else:
        print(markdown)
    return Outcome.SUCCESS.value


def build_parser():
    parser = argparse.ArgumentParser(prog="pipeline", description="Asset governance and LOD tools")
    parser.add_argument("--root", help="Content tree root (overrides ASSET_ROOT)")
    parser.add_argument("--env", help="Path to a .env file")
    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="Validate artifacts (all when no paths are given)")
    validate.add_argument("paths", nargs="*")
    validate.add_argument("--auto-fix", action="store_true", help="Apply canonical import presets")
    validate.add_argument("--interactive", action="store_true", help="Report only, always exit 0")
    validate.add_argument("--json", action="store_true", help="Print the machine-readable report")
    validate.set_defaults(handler=cmd_validate)

    lod = sub.add_parser("lod", help="Generate levels of detail for a mesh")
    lod.add_argument("path")
    lod.add_argument("--profile", help="Named LOD profile")
    lod.set_defaults(handler=cmd_lod)

    analyze = sub.add_parser("analyze", help="Report mesh complexity")
    analyze.add_argument("path")
    analyze.set_defaults(handler=cmd_analyze)

    preset = sub.add_parser("preset", help="Apply a canonical import preset")
    preset.add_argument("path")
    preset.add_argument("preset", choices=sorted(PRESETS))
    preset.set_defaults(handler=cmd_preset)

    docs = sub.add_parser("docs", help="Generate naming convention documentation")
    docs.add_argument("--output")
    docs.set_defaults(handler=cmd_docs)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = PipelineConfig.from_env(args.env)
    if args.root:
        config = PipelineConfig(
            root=args.root,
            rules_path=config.rules_path,
            lod_settings_path=config.lod_settings_path,
            exempt_locations=config.exempt_locations,
            log_level=config.log_level,
        )

    logging.basicConfig(level=config.log_level, format="%(levelname)s %(name)s: %(message)s")

    try:
        service = PipelineService.from_config(config)
        return args.handler(service, args)
    except (InvalidArgumentError, CatalogError, ProfileError, ArtifactNotFoundError) as e:
        print(f"❌ FATAL: {e}")
        return EXIT_INVALID


if __name__ == "__main__":
    sys.exit(main())
