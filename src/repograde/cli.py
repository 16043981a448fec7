"""CLI entry point — ``repograde analyze``, ``evaluate`` and ``show``."""

from __future__ import annotations

# Phase 1: Singleton logging — before any transitive litellm imports
from repograde.logging_config import setup_logging

setup_logging()

import argparse  # noqa: E402
import asyncio  # noqa: E402
import json  # noqa: E402
import sys  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Any  # noqa: E402

from repograde import __version__  # noqa: E402
from repograde.config import Settings  # noqa: E402
from repograde.logging_config import (  # noqa: E402
    cleanup_third_party_handlers,
    set_root_level,
)
from repograde.resilience.errors import RepogradeError  # noqa: E402

# Phase 2: Clear litellm's duplicate handlers after all imports
cleanup_third_party_handlers()


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"repograde {__version__}")
        return

    if getattr(args, "verbose", False):
        set_root_level("DEBUG")

    if args.command == "analyze":
        _run_analyze(args)
    elif args.command == "evaluate":
        _run_evaluate(args)
    elif args.command == "show":
        _run_show(args)
    else:
        parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="repograde",
        description=(
            "Grounded code review, architecture report and "
            "interview questions for a source repository."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    sub = parser.add_subparsers(dest="command")

    analyze = sub.add_parser("analyze", help="Analyze a repository")
    analyze.add_argument(
        "repo_path",
        type=str,
        help="Path to local repository",
    )
    analyze.add_argument(
        "--analysis-id",
        default=None,
        help="Reuse an analysis id (default: random)",
    )
    analyze.add_argument(
        "--stages",
        "-s",
        type=str,
        default=None,
        help=(
            "Comma-separated stage names "
            "(default: review,intelligence,questions)"
        ),
    )
    _add_db_argument(analyze)
    analyze.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )

    evaluate = sub.add_parser(
        "evaluate",
        help="Score an answer to a generated interview question",
    )
    evaluate.add_argument("analysis_id", help="Analysis id")
    evaluate.add_argument("question_id", help="Question id, e.g. Q001")
    evaluate.add_argument(
        "--answer",
        "-a",
        required=True,
        help="Candidate answer text ('-' reads stdin)",
    )
    _add_db_argument(evaluate)

    show = sub.add_parser("show", help="Print a stored artifact as JSON")
    show.add_argument("analysis_id", help="Analysis id")
    show.add_argument(
        "kind",
        nargs="?",
        default=None,
        help="Artifact kind (omit to list stored kinds)",
    )
    _add_db_argument(show)

    return parser


def _add_db_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--db",
        default=None,
        help="Database path override (default: from settings)",
    )


def _database_url(settings: Settings, db: str | None) -> str:
    return f"sqlite:///{db}" if db else settings.database_url


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _run_analyze(args: argparse.Namespace) -> None:
    """Execute the analyze command."""
    from repograde.logger import AnalysisLogger
    from repograde.services.analysis_service import (
        parse_stage_names,
        run_analysis,
    )
    from repograde.services.storage import open_store

    repo_path = Path(args.repo_path).resolve()
    if not repo_path.is_dir():
        _fail(f"{repo_path} is not a directory")

    try:
        stages = parse_stage_names(
            args.stages.split(",") if args.stages else None
        )
    except ValueError as exc:
        _fail(str(exc))
        return

    settings = Settings()
    analysis_logger = AnalysisLogger(settings.log_dir, settings.log_level)

    async def _go() -> dict[str, Any]:
        async with open_store(
            settings, _database_url(settings, args.db)
        ) as store:
            result = await run_analysis(
                repo_path,
                store,
                settings,
                stages=stages,
                analysis_id=args.analysis_id,
                analysis_logger=analysis_logger,
            )
        return result.to_dict()

    summary = asyncio.run(_go())
    _print_json(summary)
    if not summary["ok"]:
        sys.exit(1)


def _run_evaluate(args: argparse.Namespace) -> None:
    """Execute the evaluate command."""
    from repograde.llm import LLMClient
    from repograde.services.storage import open_store
    from repograde.stages import evaluate_answer

    answer = sys.stdin.read() if args.answer == "-" else args.answer
    if not answer.strip():
        _fail("answer is empty")

    settings = Settings()

    async def _go() -> dict[str, Any]:
        async with open_store(
            settings, _database_url(settings, args.db)
        ) as store:
            evaluation = await evaluate_answer(
                store,
                LLMClient(settings),
                args.analysis_id,
                args.question_id,
                answer,
            )
        return evaluation.model_dump(mode="json")

    try:
        _print_json(asyncio.run(_go()))
    except RepogradeError as exc:
        _fail(str(exc))


def _run_show(args: argparse.Namespace) -> None:
    """Execute the show command."""
    from repograde.services.analysis_service import get_artifact
    from repograde.services.storage import open_store

    settings = Settings()

    async def _go() -> Any:
        async with open_store(
            settings, _database_url(settings, args.db)
        ) as store:
            if args.kind is None:
                return await store.list_kinds(args.analysis_id)
            return await get_artifact(store, args.analysis_id, args.kind)

    try:
        _print_json(asyncio.run(_go()))
    except RepogradeError as exc:
        _fail(str(exc))


if __name__ == "__main__":
    main()
