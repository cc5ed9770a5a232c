"""CLI entrypoints for vsixgen commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .collector import package_paths
from .logging import configure_logging
from .manifest import ManifestReadError
from .orchestrator import Orchestrator, PackageCollisionError, PackageOptions
from .package import TARGET_PLATFORMS
from .pm import PACKAGE_MANAGERS


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the extension project (defaults to current directory).",
    )


def _add_collect_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--ignore-file",
        default=None,
        help="Ignore file to use instead of .vscodeignore.",
    )
    parser.add_argument(
        "--readme",
        default=None,
        help="README file to include as the extension details (defaults to README.md).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vsixgen",
        description="Validate and package VS Code extensions into .vsix archives.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only report warnings and errors.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write debug logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    package_parser = subparsers.add_parser(
        "package",
        help="Build a .vsix archive for an extension project.",
    )
    _add_verbose_option(package_parser, suppress_default=True)
    _add_path_argument(package_parser)
    _add_collect_options(package_parser)
    package_parser.add_argument(
        "-o",
        "--out",
        default=None,
        help="Output file, relative to the project (defaults to <name>-<version>.vsix).",
    )
    package_parser.add_argument(
        "-t",
        "--target",
        choices=TARGET_PLATFORMS,
        default=None,
        help="Target platform for a platform-specific package.",
    )
    package_parser.add_argument(
        "--pre-release",
        action="store_true",
        default=None,
        help="Mark the package as a pre-release.",
    )
    package_parser.add_argument(
        "--skip-scripts",
        action="store_true",
        default=None,
        help="Do not run the vscode:prepublish script.",
    )
    package_parser.add_argument(
        "--package-manager",
        choices=("auto",) + PACKAGE_MANAGERS,
        default=None,
        help="Package manager used to run scripts (defaults to auto-detection).",
    )
    package_parser.add_argument(
        "--no-write",
        action="store_true",
        help="Assemble the package without writing the archive.",
    )
    package_parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Overwrite an existing archive.",
    )

    validate_parser = subparsers.add_parser(
        "validate",
        help="Check package.json for publishing problems.",
    )
    _add_verbose_option(validate_parser, suppress_default=True)
    _add_path_argument(validate_parser)

    ls_parser = subparsers.add_parser(
        "ls",
        help="List the files that would be packaged.",
    )
    _add_verbose_option(ls_parser, suppress_default=True)
    _add_path_argument(ls_parser)
    _add_collect_options(ls_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for vsixgen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file) if args.log_file else None
    configure_logging(verbose=bool(args.verbose), quiet=bool(args.quiet), log_file=log_file)

    orchestrator = Orchestrator()

    if args.command == "package":
        options = PackageOptions(
            cwd=args.path,
            package_path=args.out,
            ignore_file=args.ignore_file,
            readme=args.readme,
            target=args.target,
            pre_release=args.pre_release,
            skip_scripts=args.skip_scripts,
            package_manager=args.package_manager,
            write=not args.no_write,
            force_write=bool(args.force),
        )
        try:
            result = orchestrator.create_vsix(options)
        except (ManifestReadError, PackageCollisionError) as exc:
            parser.exit(1, f"{exc}\n")
        if not result.ok:
            lines = "\n".join(f"  - {error}" for error in result.errors)
            parser.exit(1, f"vsixgen package failed:\n{lines}\n")
        if result.written and result.vsix_path is not None:
            print(f"Packaged {_relativize(result.vsix_path)} ({len(result.files)} files)")
        else:
            print(f"Package assembled with {len(result.files)} files (not written)")
    elif args.command == "validate":
        try:
            diagnostics = orchestrator.validate(args.path)
        except ManifestReadError as exc:
            parser.exit(1, f"{exc}\n")
        if diagnostics:
            lines = "\n".join(f"  - [{diagnostic.type}] {diagnostic}" for diagnostic in diagnostics)
            parser.exit(1, f"package.json has {len(diagnostics)} problem(s):\n{lines}\n")
        print("package.json is valid")
    elif args.command == "ls":
        options = PackageOptions(
            cwd=args.path,
            ignore_file=args.ignore_file,
            readme=args.readme,
        )
        for path in package_paths(orchestrator.list_files(options)):
            print(path)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
