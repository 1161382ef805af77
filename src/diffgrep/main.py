"""Main CLI entry point for Diff Grep."""

import argparse
import logging
import sys
from contextlib import contextmanager
from typing import Iterator, List, Optional, TextIO

from .classify import classify
from .config import ColorMode, GrepConfig
from .dedup import dedup
from .errors import DiffGrepError
from .logging_utils import configure_logging
from .pattern import PatternFilter
from .render import LineRenderer, use_color
from .resolver import ReferenceResolver
from .settings import get_default_color_mode, get_root_branches
from .vcs import GitRepository

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="diffgrep",
        description="Search the lines added since a base commit, skipping moved lines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Base commit:
  By default the base is the merge-base of HEAD and the root branch (main or
  master). On the root branch itself, the base is the first commit.

Examples:
  diffgrep TODO
  diffgrep --parent develop 'print\\('
  diffgrep --base v1.2.0 --color always FIXME | less -R
        """,
    )

    parser.add_argument(
        "pattern",
        help="Regular expression to search for",
    )
    parser.add_argument(
        "-p",
        "--parent",
        dest="parent_branch",
        help="Parent branch to diff against (default: main or master)",
    )
    parser.add_argument(
        "-b",
        "--base",
        dest="base_ref",
        help="Explicit commit or ref to diff against (excludes --parent)",
    )
    parser.add_argument(
        "--color",
        choices=[mode.value for mode in ColorMode],
        default=get_default_color_mode(),
        help="When to color output (default: auto)",
    )
    parser.add_argument(
        "-i",
        "--ignore-case",
        action="store_true",
        help="Match the pattern case-insensitively",
    )
    parser.add_argument(
        "--committed",
        action="store_true",
        help="Compare against HEAD instead of the working tree",
    )
    parser.add_argument(
        "-C",
        "--repo",
        default=".",
        help="Run as if started in this directory",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Print debug logging to stderr",
    )

    return parser


def create_config(args: argparse.Namespace) -> GrepConfig:
    """Create configuration from command line arguments."""
    return GrepConfig(
        pattern=args.pattern,
        parent_branch=args.parent_branch,
        base_ref=args.base_ref,
        color_mode=ColorMode(args.color),
        ignore_case=args.ignore_case,
        repo_path=args.repo,
        root_branches=get_root_branches(),
        include_workdir=not args.committed,
    )


@contextmanager
def stage(name: str) -> Iterator[None]:
    """Tag errors raised inside the block with the pipeline stage."""
    logger.debug("Stage started", extra={"stage": name})
    try:
        yield
    except DiffGrepError as e:
        e.details.setdefault("stage", name)
        raise
    logger.debug("Stage finished", extra={"stage": name})


def run(config: GrepConfig, stream: Optional[TextIO] = None) -> int:
    """Search the diff described by ``config`` and write matches to ``stream``.

    Nothing is written unless every stage succeeds. Returns the number of lines
    written.
    """
    stream = stream or sys.stdout
    logger.debug("Starting run", extra={"config": config.to_log_dict()})
    renderer = LineRenderer(color=use_color(config.color_mode, stream))

    with stage("compiling pattern"):
        pattern_filter = PatternFilter(config.pattern, ignore_case=config.ignore_case)

    with GitRepository(config.repo_path) as repo:
        with stage("resolving base commit"):
            resolver = ReferenceResolver(repo, config.root_branches)
            base = resolver.resolve_base(
                base_ref=config.base_ref, parent_branch=config.parent_branch
            )
            new_tree = None if config.include_workdir else repo.tree_of(repo.head())

        with stage("processing diff"):
            events = repo.diff(base.tree, new_tree, config.diff_options)
            survivors = dedup(pattern_filter.filter(classify(events)))

    with stage("writing output"):
        for line in survivors:
            stream.write(renderer.render(line) + "\n")
        stream.flush()

    logger.info("Run complete", extra={"base": base.commit, "matches": len(survivors)})
    return len(survivors)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging("DEBUG" if args.debug else None)

    try:
        config = create_config(args)
        run(config)
        return 0

    except DiffGrepError as e:
        stage_name = e.details.get("stage")
        prefix = f"error: {stage_name}: " if stage_name else "error: "
        print(f"{prefix}{e.message}", file=sys.stderr)
        return 1

    except Exception as e:
        logger.debug("Unhandled exception", exc_info=True)
        print(f"internal error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
