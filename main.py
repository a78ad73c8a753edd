"""Developer command line for the course assessment engine."""

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load .env before config reads the environment
load_dotenv()

import config
from utils.logger import setup_logger
from utils.error_handler import APIError, BaseAssessmentException, MalformedInput
from api_clients import close_clients
from core.aggregation import compute_course_score
from core.deadlines import compute_deadline_window
from core.grader import Grader
from core.integrity import IntegrityFlags
from core.repo_scorer import score_repository
from core.similarity import PeerSubmission, check_similarity
import ui.cli as cli

logger = setup_logger()


def _read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8", errors="replace")


def _read_peers(paths: List[str]) -> List[PeerSubmission]:
    return [PeerSubmission(id=p, text=_read_text(p)) for p in paths]


def _parse_instant(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an ISO-8601 date/time: {value!r}") from e


def cmd_score_repo(args: argparse.Namespace) -> int:
    result = score_repository(args.url, args.keywords)
    cli.display_repo_score(result, args.url)
    return 0 if result.breakdown.repo_exists else 1


def cmd_similarity(args: argparse.Namespace) -> int:
    result = check_similarity(_read_text(args.file), _read_peers(args.peers))
    cli.display_similarity(result)
    return 0


def cmd_deadline(args: argparse.Namespace) -> int:
    window = compute_deadline_window(args.available_at, args.deadline)
    cli.display_deadline_window(window, args.at)
    return 0


def cmd_course_score(args: argparse.Namespace) -> int:
    exams = list(args.exams or [])
    if len(exams) > config.EXAM_SLOTS:
        raise MalformedInput(f"At most {config.EXAM_SLOTS} exam scores are allowed, got {len(exams)}")
    result = compute_course_score(args.lab, args.quiz, *exams)
    cli.display_course_score(result)
    return 0


def cmd_grade_lab(args: argparse.Namespace) -> int:
    flags = IntegrityFlags(
        large_pastes=args.pastes,
        tab_switches=args.tab_switches,
        rapid_bursts=args.bursts,
    )
    grader = Grader()
    peers = _read_peers(args.peers)
    if args.repo:
        result = grader.grade_repository_lab(args.repo, args.keywords, peers, flags, content=_read_text(args.file) if args.file else "")
    else:
        if not args.file:
            raise MalformedInput("A sandbox lab needs the submitted code file")
        result = grader.grade_sandbox_lab(_read_text(args.file), peers, flags, base_score=args.base_score)
    cli.display_lab_grade(result)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="assess", description=__doc__)
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("score-repo", help="Score a public GitHub repository against the lab rubric")
    p.add_argument("url")
    p.add_argument("-k", "--keywords", nargs="*", default=[], help="Lab relevance keywords")
    p.set_defaults(func=cmd_score_repo)

    p = sub.add_parser("similarity", help="Compare a file against peer submissions")
    p.add_argument("file")
    p.add_argument("peers", nargs="*")
    p.set_defaults(func=cmd_similarity)

    p = sub.add_parser("deadline", help="Show the grace window for a deadline")
    p.add_argument("--available-at", type=_parse_instant, default=None)
    p.add_argument("--deadline", type=_parse_instant, default=None)
    p.add_argument("--at", type=_parse_instant, default=None, help="Classify a submission at this instant")
    p.set_defaults(func=cmd_deadline)

    p = sub.add_parser("course-score", help="Weighted course score from lab, quiz and exam averages")
    p.add_argument("--lab", type=float, default=None)
    p.add_argument("--quiz", type=float, default=None)
    p.add_argument("--exams", type=float, nargs="*", default=[], help="Up to four exam scores in slot order")
    p.set_defaults(func=cmd_course_score)

    p = sub.add_parser("grade-lab", help="Grade a sandbox or repository lab submission")
    p.add_argument("file", nargs="?", default=None, help="Submitted code")
    p.add_argument("--repo", default=None, help="Repository URL (repository-mode lab)")
    p.add_argument("-k", "--keywords", nargs="*", default=[])
    p.add_argument("--peers", nargs="*", default=[], help="Peer submission files")
    p.add_argument("--pastes", type=int, default=0)
    p.add_argument("--tab-switches", type=int, default=0)
    p.add_argument("--bursts", type=int, default=0)
    p.add_argument("--base-score", type=float, default=None)
    p.set_defaults(func=cmd_grade_lab)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Parses arguments, runs one command and returns the exit status."""
    args = build_parser().parse_args(argv)
    logger.info(f"Running command: {args.command}")
    try:
        return args.func(args)
    except MalformedInput as e:
        logger.error(f"Invalid input: {e}", exc_info=config.DEBUG)
        cli.display_error(f"Invalid input: {e}")
    except APIError as e:
        logger.error(f"Hosting API error: {e}", exc_info=config.DEBUG)
        cli.display_error(f"API Error ({e.service or 'Unknown'}): {e}")
    except OSError as e:
        logger.error(f"File error: {e}", exc_info=config.DEBUG)
        cli.display_error(f"Could not read input: {e}")
    except KeyboardInterrupt:
        logger.info("Operation interrupted by user (Ctrl+C).")
        cli.display_warning("Operation interrupted.")
    except BaseAssessmentException as e:
        logger.error(f"Assessment error: {e}", exc_info=config.DEBUG)
        cli.display_error(str(e))
    finally:
        close_clients()
    return 1


if __name__ == "__main__":
    sys.exit(main())
