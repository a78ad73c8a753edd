"""Heuristic rubric for externally hosted lab repositories.

Each criterion is a pure function over already-fetched data that returns a
capped integer and its own feedback fragments. Nothing here performs I/O.

Criterion caps: existence 10, readme present 10, readme quality 10, relevant
files 20, code quality 20, file structure 15, dependencies 15 (total 100).
"""

import json
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import config
from services.github_api import RepoEntry


@dataclass(frozen=True)
class CriterionScore:
    score: int
    feedback: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SourceFile:
    path: str
    content: str


@dataclass(frozen=True)
class RepoScoreBreakdown:
    repo_exists: int = 0
    readme_present: int = 0
    readme_quality: int = 0
    relevant_files: int = 0
    code_quality: int = 0
    file_structure: int = 0
    dependencies: int = 0

    @property
    def total(self) -> int:
        return sum(asdict(self).values())

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class RepoScoreResult:
    score: int
    feedback: str
    breakdown: RepoScoreBreakdown
    errors: List[str] = field(default_factory=list)
    # Feedback fragments per criterion, keyed like the breakdown fields
    details: Dict[str, List[str]] = field(default_factory=dict)
    # Concatenated text of the sampled source files, for similarity checks
    source_text: str = ""


# --- README ---

_HEADING = re.compile(r"^#{1,3}\s+", re.MULTILINE)
_CODE_FENCE = re.compile(r"```[\s\S]*?```")
_LINK_OR_IMAGE = re.compile(r"!?\[.*?\]\(.*?\)")
_PARAGRAPH_BREAK = re.compile(r"\n\n+")

# --- Code ---

_COMMENT = re.compile(r"//|/\*|\*/|#\s|<!--")
_DEFINITION = re.compile(
    r"function\s+\w+|const\s+\w+\s*=\s*(\(|async)|def\s+\w+|class\s+\w+|export\s+(default\s+)?function"
)
_ERROR_HANDLING = re.compile(r"try\s*\{|try\s*:|catch\s*\(|\.catch\(|except\s|except:|rescue\s|if\s*\(.*err")
_IMPORT = re.compile(r"^(import|from|require|use|using)\s", re.MULTILINE)


def score_existence(exists: bool) -> CriterionScore:
    if exists:
        return CriterionScore(10, ["Repository found and accessible"])
    return CriterionScore(0, ["Repository not found or is private"])


def find_readme(entries: Sequence[RepoEntry]) -> Optional[RepoEntry]:
    return next((e for e in entries if e.is_file and e.name.lower().startswith("readme")), None)


def score_readme_presence(entries: Sequence[RepoEntry]) -> CriterionScore:
    if find_readme(entries):
        return CriterionScore(10, ["README present"])
    return CriterionScore(0, ["Missing README.md"])


def score_readme_quality(content: str) -> CriterionScore:
    if not content:
        return CriterionScore(0, [])
    score = 0
    feedback = []

    length = len(content)
    if length > 500:
        score += 3
        feedback.append("Good README length")
    elif length > 200:
        score += 2
        feedback.append("Decent README length")
    elif length > 50:
        score += 1
        feedback.append("README is short")
    else:
        feedback.append("README is very short")

    headings = len(_HEADING.findall(content))
    if headings >= 3:
        score += 2
        feedback.append("Well-organized with headings")
    elif headings >= 1:
        score += 1
        feedback.append("Has some headings")

    if _CODE_FENCE.search(content):
        score += 2
        feedback.append("Includes code examples")

    paragraphs = [p for p in _PARAGRAPH_BREAK.split(content) if len(p.strip()) > 30]
    if len(paragraphs) >= 2:
        score += 2
        feedback.append("Good explanatory content")
    elif paragraphs:
        score += 1

    if _LINK_OR_IMAGE.search(content):
        score += 1
        feedback.append("Includes links/images")

    return CriterionScore(min(score, 10), feedback)


def is_source_file(entry: RepoEntry) -> bool:
    return entry.is_file and any(entry.name.endswith(ext) for ext in config.SOURCE_EXTENSIONS)


def code_directories(entries: Sequence[RepoEntry]) -> List[RepoEntry]:
    """Root directories worth listing for source files, at most MAX_CODE_DIRECTORIES."""
    dirs = [e for e in entries if e.is_dir and e.name.lower() in config.CODE_DIRECTORIES]
    return dirs[:config.MAX_CODE_DIRECTORIES]


def score_relevant_files(source_files: Sequence[RepoEntry], keywords: Sequence[str]) -> CriterionScore:
    if not source_files:
        return CriterionScore(0, ["No source files found"])

    score = min(len(source_files) * 2, 10)
    feedback = [f"{len(source_files)} source file(s) found"]
    lowered = [k.lower() for k in keywords if k]
    if lowered:
        matched = [
            f for f in source_files
            if any(k in f.name.lower() or k in f.path.lower() for k in lowered)
        ]
        score += min(len(matched) * 2, 10)
        if matched:
            feedback.append(f"{len(matched)} file(s) match the lab keywords")
        else:
            feedback.append("No files match the lab keywords")
    else:
        score += 5

    return CriterionScore(min(score, 20), feedback)


def score_code_quality(files: Sequence[SourceFile]) -> CriterionScore:
    """Presence, not frequency, of common code-quality markers across the sampled files."""
    if not files:
        return CriterionScore(0, [])

    total_lines = sum(len(f.content.split("\n")) for f in files)
    has_imports = any(_IMPORT.search(f.content) for f in files)
    has_definitions = any(_DEFINITION.search(f.content) for f in files)
    has_comments = any(_COMMENT.search(f.content) for f in files)
    has_error_handling = any(_ERROR_HANDLING.search(f.content) for f in files)

    score = 0
    feedback = []
    if has_imports:
        score += 4
        feedback.append("Uses imports/modules")
    if has_definitions:
        score += 5
        feedback.append("Has function definitions")
    if has_comments:
        score += 4
        feedback.append("Code has comments")
    if has_error_handling:
        score += 4
        feedback.append("Includes error handling")
    if total_lines > 50:
        score += 3
        feedback.append("Substantial codebase")
    elif total_lines > 20:
        score += 1

    return CriterionScore(min(score, 20), feedback)


def score_file_structure(entries: Sequence[RepoEntry]) -> CriterionScore:
    score = 0
    feedback = []
    file_count = sum(1 for e in entries if e.is_file)
    dir_count = sum(1 for e in entries if e.is_dir)

    if file_count >= 5:
        score += 5
        feedback.append(f"{file_count} files found")
    elif file_count >= 3:
        score += 3
        feedback.append(f"{file_count} files found")
    elif file_count >= 1:
        score += 1

    if dir_count >= 2:
        score += 5
        feedback.append("Well-organized with folders")
    elif dir_count >= 1:
        score += 3
        feedback.append("Has folder structure")

    names = [e.name.lower() for e in entries]
    if any(n.startswith(("index.", "app.", "main.")) for n in names):
        score += 3
        feedback.append("Has entry point file")
    if ".gitignore" in names:
        score += 2
        feedback.append("Has .gitignore")

    return CriterionScore(min(score, 15), feedback)


def parse_manifest(text: str) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """Parses a package manifest. Returns ``(manifest, None)`` or ``(None, error)``."""
    try:
        data = json.loads(text)
    except ValueError:
        return None, f"Could not parse {config.MANIFEST_FILE}"
    if not isinstance(data, dict):
        return None, f"{config.MANIFEST_FILE} is not a JSON object"
    return data, None


def score_dependencies(manifest: Optional[Dict[str, Any]], keywords: Sequence[str]) -> CriterionScore:
    if manifest is None:
        return CriterionScore(0, [f"No {config.MANIFEST_FILE} found"])

    deps: Dict[str, Any] = {}
    for section in ("dependencies", "devDependencies"):
        value = manifest.get(section)
        if isinstance(value, dict):
            deps.update(value)
    names = list(deps)

    score = 0
    feedback = []
    if names:
        score += 5
        feedback.append(f"{len(names)} dependencies")

    scripts = manifest.get("scripts")
    if isinstance(scripts, dict) and scripts:
        score += 3
        feedback.append("Has npm scripts")

    lowered = [k.lower() for k in keywords if k]
    relevant = [d for d in names if any(k in d.lower() or d.lower() in k for k in lowered)]
    if relevant:
        score += 5
        feedback.append(f"Relevant packages: {', '.join(relevant[:3])}")

    if manifest.get("name"):
        score += 1
    if manifest.get("description"):
        score += 1

    return CriterionScore(min(score, 15), feedback)


def summarize_feedback(breakdown: RepoScoreBreakdown) -> List[str]:
    """Ordered overall feedback lines for a finished breakdown."""
    parts = []
    if breakdown.repo_exists == 10:
        parts.append("Repository found and accessible")
    if breakdown.readme_present == 10:
        parts.append("README present")
    else:
        parts.append("Missing README.md")
    if breakdown.code_quality >= 15:
        parts.append("Good code quality")
    elif breakdown.code_quality >= 8:
        parts.append("Decent code structure")
    if breakdown.file_structure >= 10:
        parts.append("Well-organized project")
    if breakdown.dependencies >= 10:
        parts.append("Good dependency management")
    parts.append(f"Total score: {breakdown.total}/100")
    return parts
