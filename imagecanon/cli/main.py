"""imagecanon CLI - Command-line interface for image canonicalization.

This module provides the main CLI entrypoint, allowing users to list the
images of K8s manifests and rewrite them in canonical form.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from imagecanon.core.config import as_bool, get_config_value
from imagecanon.core.errors import PatchApplyError
from imagecanon.k8s.artifact import K8sArtifact

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main CLI entrypoint for imagecanon."""
    parser = argparse.ArgumentParser(
        prog="imagecanon",
        description="imagecanon - canonical container images for K8s manifests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List the images of a manifest as JSON
  imagecanon extract deployment.yaml

  # Rewrite every image to its fully-qualified form
  imagecanon mutate deployment.yaml --out canonical/

  # Fail when any container image could not be parsed
  imagecanon mutate deployment.yaml --out canonical/ --strict

Note:
  Defaults are read from config.json when present, e.g.
  {"extraction": {"strict": true}, "output": {"indent": 2}}
"""
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    extract_parser = subparsers.add_parser(
        "extract",
        help="Print the images of a K8s manifest as JSON"
    )
    extract_parser.add_argument(
        "input",
        help="Path to input manifest (YAML, may hold several documents)"
    )

    mutate_parser = subparsers.add_parser(
        "mutate",
        help="Rewrite the images of a K8s manifest in canonical form"
    )
    mutate_parser.add_argument(
        "input",
        help="Path to input manifest (YAML, may hold several documents)"
    )
    mutate_parser.add_argument(
        "--out",
        required=True,
        help="Output directory for the canonicalized manifest"
    )
    mutate_parser.add_argument(
        "--output-filename",
        help="Output filename (default: preserves input filename). Example: canonical.yaml"
    )

    for sub in (extract_parser, mutate_parser):
        sub.add_argument(
            "--strict",
            action="store_true",
            default=None,
            help="Exit with an error when any image fails to parse "
                 "(default: from config.json or off)"
        )
        sub.add_argument(
            "-v", "--verbose",
            action="store_true",
            help="Verbose output"
        )

    args = parser.parse_args(argv)

    if getattr(args, "verbose", False):
        logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
    else:
        logging.basicConfig(level=logging.WARNING, format='%(levelname)s: %(message)s')

    if args.command == "extract":
        return cmd_extract(args)
    elif args.command == "mutate":
        return cmd_mutate(args)
    else:
        parser.print_help()
        return 1


def _strict(args) -> bool:
    if args.strict is not None:
        return args.strict
    return as_bool(get_config_value(["extraction", "strict"], default=False))


def cmd_extract(args):
    """Handle extract command."""
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    try:
        indent = int(get_config_value(["output", "indent"], default=2))
        artifact = K8sArtifact.from_file(str(input_path))
        results = artifact.extract_images()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.exception("Extraction failed")
        return 1

    print(json.dumps([r.to_serializable() for r in results], indent=indent))

    failed = [r for r in results if r.error is not None]
    if failed and _strict(args):
        print(f"Error: {len(failed)} document(s) have images that could not be parsed",
              file=sys.stderr)
        return 1
    return 0


def cmd_mutate(args):
    """Handle mutate command."""
    input_path = Path(args.input)
    output_dir = Path(args.out)

    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    print(f"Canonicalizing: {input_path}")

    try:
        artifact = K8sArtifact.from_file(str(input_path))
        canonical, results = artifact.canonicalize_images()
    except PatchApplyError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.exception("Canonicalization failed")
        return 1

    total = sum(len(r.inventory.all_images()) for r in results)
    print(f"Images rewritten: {total}")

    failed = [r for r in results if r.error is not None]
    for r in failed:
        for err in r.error.errors:
            print(f"  - {r.kind or 'document'} {r.name}: {err}")

    if failed and _strict(args):
        print(f"\n❌ {len(failed)} document(s) have images that could not be parsed")
        return 1

    output_filename = getattr(args, "output_filename", None)
    canonical.write_to_dir(str(output_dir), output_filename=output_filename)
    print(f"\n✅ Wrote canonical manifest to: {output_dir}/{output_filename or input_path.name}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
