"""Entry point for clipdeck - handles CLI arg parsing."""

import argparse
import logging
import sys

from clipdeck import __version__

USAGE = "Usage: clipdeck <path-to-project.json | project-name>"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="clipdeck",
        description="Validate a video editor project file",
    )
    parser.add_argument(
        "project",
        nargs="?",
        help="Path to a project.json file, or the name of a project in the projects directory",
    )
    parser.add_argument(
        "--projects-dir", "-p",
        type=str,
        default=None,
        help="Directory holding named projects (default: ~/.config/video-editor/projects)",
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to a YAML editor configuration file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    if not args.project:
        print(USAGE, file=sys.stderr)
        return 1

    from clipdeck.app import run_validate
    from clipdeck.config import Settings

    settings = Settings.load()
    if args.config:
        from clipdeck.yaml_config import apply_config_to_settings, load_editor_config

        try:
            settings = apply_config_to_settings(load_editor_config(args.config), settings)
        except (FileNotFoundError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Precedence: CLI --projects-dir > YAML projects_dir > saved settings
    projects_dir = args.projects_dir or settings.resolved_projects_dir

    return run_validate(args.project, projects_dir)


if __name__ == "__main__":
    sys.exit(main())
