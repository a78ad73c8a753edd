"""Scores a lab repository hosted on GitHub.

Scoring runs in two steps: ``fetch_snapshot`` performs every hosting API read
(existence check, root listing, up to a few code directories, up to a few
source files, README and manifest), then ``score_snapshot`` applies the pure
rubric in ``core.repo_rubric``. Only the existence check is fatal; any other
failed read leaves that part of the snapshot empty and records an error. A
root listing without a manifest is recorded as an error too.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import config
from utils.logger import get_logger
from utils.error_handler import APIError, UpstreamUnavailable
from services.github_api import GitHubService, RepoEntry
from core.repo_rubric import (
    RepoScoreBreakdown,
    RepoScoreResult,
    SourceFile,
    code_directories,
    find_readme,
    is_source_file,
    parse_manifest,
    score_code_quality,
    score_dependencies,
    score_existence,
    score_file_structure,
    score_readme_presence,
    score_readme_quality,
    score_relevant_files,
    summarize_feedback,
)

logger = get_logger()

_GITHUB_URL = re.compile(r"github\.com/([^/]+)/([^/\s?#]+)")

INVALID_URL_ERROR = "Invalid GitHub URL format"
INVALID_URL_FEEDBACK = "Could not parse GitHub URL. Use format: https://github.com/owner/repo"
NOT_FOUND_ERROR = "Repository not found or is private"
NOT_FOUND_FEEDBACK = "Repository not found or is private. Make sure the repo is public."


@dataclass(frozen=True)
class RepoSnapshot:
    """Everything the rubric needs, fetched once."""
    owner: str
    repo: str
    root_entries: Tuple[RepoEntry, ...] = ()
    readme_content: str = ""
    source_entries: Tuple[RepoEntry, ...] = ()
    source_files: Tuple[SourceFile, ...] = ()
    manifest_text: Optional[str] = None
    errors: Tuple[str, ...] = field(default_factory=tuple)


def parse_github_url(url: str) -> Optional[Tuple[str, str]]:
    """Extracts ``(owner, repo)`` from a GitHub URL, or None if it is not one.

    >>> parse_github_url("https://github.com/octo/hello.git")
    ('octo', 'hello')
    """
    if not url:
        return None
    match = _GITHUB_URL.search(url)
    if not match:
        return None
    owner, repo = match.group(1), match.group(2)
    if repo.endswith(".git"):
        repo = repo[:-4]
    if not owner or not repo:
        return None
    return owner, repo


def _describe(error: APIError) -> str:
    return error.args[0] if error.args else str(error)


def fetch_snapshot(service: GitHubService, owner: str, repo: str) -> RepoSnapshot:
    """Reads the parts of a repository the rubric looks at.

    Raises:
        APIError: If the repository does not exist or is private.
        UpstreamUnavailable: If the existence check cannot reach the API.
    """
    service.get_repository(owner, repo)
    errors: List[str] = []

    root_listed = True
    try:
        root = service.list_directory(owner, repo)
    except APIError as e:
        logger.warning(f"Root listing of {owner}/{repo} failed: {e}")
        errors.append(f"Could not list repository contents: {_describe(e)}")
        root = []
        root_listed = False

    readme_content = ""
    readme = find_readme(root)
    if readme:
        try:
            readme_content = service.get_file_content(owner, repo, readme.path)
        except APIError as e:
            logger.warning(f"README download from {owner}/{repo} failed: {e}")
            errors.append(f"Could not read {readme.name}: {_describe(e)}")

    source_entries = [e for e in root if is_source_file(e)]
    for directory in code_directories(root):
        try:
            listing = service.list_directory(owner, repo, directory.path)
        except APIError as e:
            logger.warning(f"Listing {owner}/{repo}:/{directory.path} failed: {e}")
            errors.append(f"Could not list {directory.path}/: {_describe(e)}")
            continue
        source_entries.extend(e for e in listing if is_source_file(e))

    source_files = []
    for entry in source_entries[:config.MAX_CODE_FILES]:
        try:
            content = service.get_file_content(owner, repo, entry.path)
        except APIError as e:
            logger.warning(f"Download of {owner}/{repo}:/{entry.path} failed: {e}")
            errors.append(f"Could not read {entry.path}: {_describe(e)}")
            continue
        if content:
            source_files.append(SourceFile(path=entry.path, content=content))

    manifest_text = None
    if any(e.is_file and e.name == config.MANIFEST_FILE for e in root):
        try:
            manifest_text = service.get_file_content(owner, repo, config.MANIFEST_FILE)
        except APIError as e:
            logger.warning(f"Manifest download from {owner}/{repo} failed: {e}")
            errors.append(f"Could not read {config.MANIFEST_FILE}: {_describe(e)}")
    elif root_listed:
        errors.append(f"No {config.MANIFEST_FILE} found")

    return RepoSnapshot(
        owner=owner,
        repo=repo,
        root_entries=tuple(root),
        readme_content=readme_content or "",
        source_entries=tuple(source_entries),
        source_files=tuple(source_files),
        manifest_text=manifest_text,
        errors=tuple(errors),
    )


def score_snapshot(snapshot: RepoSnapshot, keywords: Sequence[str] = ()) -> RepoScoreResult:
    """Applies the rubric to a fetched snapshot. Pure; never raises."""
    errors = list(snapshot.errors)

    manifest = None
    if snapshot.manifest_text:
        manifest, manifest_error = parse_manifest(snapshot.manifest_text)
        if manifest_error:
            errors.append(manifest_error)

    criteria = {
        "repo_exists": score_existence(True),
        "readme_present": score_readme_presence(snapshot.root_entries),
        "readme_quality": score_readme_quality(snapshot.readme_content),
        "relevant_files": score_relevant_files(snapshot.source_entries, keywords),
        "code_quality": score_code_quality(snapshot.source_files),
        "file_structure": score_file_structure(snapshot.root_entries),
        "dependencies": score_dependencies(manifest, keywords),
    }
    breakdown = RepoScoreBreakdown(**{name: c.score for name, c in criteria.items()})

    result = RepoScoreResult(
        score=breakdown.total,
        feedback=". ".join(summarize_feedback(breakdown)),
        breakdown=breakdown,
        errors=errors,
        details={name: c.feedback for name, c in criteria.items()},
        source_text="\n".join(f.content for f in snapshot.source_files),
    )
    logger.info(f"Scored {snapshot.owner}/{snapshot.repo}: {result.score}/100")
    return result


def score_repository(
    url: str,
    keywords: Optional[Sequence[str]] = None,
    service: Optional[GitHubService] = None,
) -> RepoScoreResult:
    """Scores a public GitHub repository against the 100-point rubric.

    Args:
        url: Repository URL, e.g. ``https://github.com/owner/repo``.
        keywords: Lab relevance keywords matched against file paths and
            manifest dependencies.
        service: GitHub API wrapper. A default one is built when omitted.

    Returns:
        A RepoScoreResult. An invalid URL or a missing/private/unreachable
        repository yields an all-zero breakdown with a single error string.
    """
    keywords = list(keywords or [])
    parsed = parse_github_url(url)
    if parsed is None:
        logger.info(f"Rejected repository URL: {url!r}")
        return RepoScoreResult(
            score=0,
            feedback=INVALID_URL_FEEDBACK,
            breakdown=RepoScoreBreakdown(),
            errors=[INVALID_URL_ERROR],
        )

    owner, repo = parsed
    service = service or GitHubService()
    try:
        snapshot = fetch_snapshot(service, owner, repo)
    except UpstreamUnavailable as e:
        return RepoScoreResult(
            score=0,
            feedback=f"{_describe(e)}. Try again later.",
            breakdown=RepoScoreBreakdown(),
            errors=[_describe(e)],
        )
    except APIError as e:
        logger.info(f"Repository {owner}/{repo} unavailable: {e}")
        return RepoScoreResult(
            score=0,
            feedback=NOT_FOUND_FEEDBACK,
            breakdown=RepoScoreBreakdown(),
            errors=[NOT_FOUND_ERROR],
        )

    return score_snapshot(snapshot, keywords)
