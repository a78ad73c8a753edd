"""Core logic for grading lab submissions.

A lab is graded from three signals: the base score (the repository rubric
total, or completion credit for sandbox labs), textual similarity against
the other submissions of the same lab, and the behavioral integrity counters
recorded while the student worked. Either a similarity flag or too many
integrity signals marks the submission for review and applies the penalty.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

import config
from utils.logger import get_logger
from utils.error_handler import ConfigError
from services.github_api import GitHubService
from core.answer_key import round_half_up
from core.certificates import ViolationRecord, build_plagiarism_violation
from core.integrity import IntegrityFlags, IntegritySummary, aggregate_integrity_signals
from core.repo_rubric import RepoScoreResult
from core.repo_scorer import score_repository
from core.similarity import PeerSubmission, SimilarityResult, check_similarity

logger = get_logger()

MODE_SANDBOX = "sandbox"
MODE_REPOSITORY = "repository"

IntegrityInput = Union[IntegrityFlags, Mapping[str, Any], None]


@dataclass(frozen=True)
class LabPolicy:
    """Per-lab grading settings."""
    integrity_threshold: int = config.INTEGRITY_FLAG_THRESHOLD
    penalty_factor: float = config.LAB_PENALTY_FACTOR
    max_points: int = config.LAB_DEFAULT_MAX_POINTS
    sandbox_base_score: float = config.SANDBOX_BASE_SCORE

    def __post_init__(self):
        if not 0 <= self.penalty_factor <= 1:
            raise ConfigError(f"Lab penalty factor must be between 0 and 1, got {self.penalty_factor}")
        if self.max_points <= 0:
            raise ConfigError(f"Lab max points must be positive, got {self.max_points}")


@dataclass(frozen=True)
class LabGradeResult:
    scaled_grade: float
    base_score: float
    cheat_flagged: bool
    feedback: str
    cheat_reasons: List[str] = field(default_factory=list)
    similarity: Optional[SimilarityResult] = None
    integrity: Optional[IntegritySummary] = None
    repo_score: Optional[RepoScoreResult] = None
    mode: str = MODE_SANDBOX

    @property
    def needs_review(self) -> bool:
        return self.cheat_flagged

    def plagiarism_violation(
        self,
        existing_violations: Iterable[ViolationRecord],
        student_id: str,
        course_id: str,
    ) -> Optional[ViolationRecord]:
        """The plagiarism violation to record for this submission, or None when similarity was not flagged."""
        if self.similarity is None or not self.similarity.flagged:
            return None
        return build_plagiarism_violation(existing_violations, student_id, course_id, self.similarity)


def _as_flags(integrity: IntegrityInput) -> IntegrityFlags:
    if isinstance(integrity, IntegrityFlags):
        return integrity
    return IntegrityFlags.from_payload(integrity)


def _similarity_reason(result: SimilarityResult) -> str:
    if result.matched_source_ids:
        return f"High similarity ({result.score:g}%) with {len(result.matched_source_ids)} other submission(s)"
    return f"High similarity ({result.score:g}%) with other submissions"


def grade_lab_submission(
    content: str,
    peer_pool: Sequence[PeerSubmission],
    integrity_counters: IntegrityInput,
    repo_score: Optional[RepoScoreResult] = None,
    base_score: Optional[float] = None,
    policy: Optional[LabPolicy] = None,
) -> LabGradeResult:
    """Combines similarity, integrity and an optional repository score.

    Args:
        content: Submitted code (for repository labs, the sampled source text).
        peer_pool: Snapshot of other students' submissions for the same lab.
        integrity_counters: IntegrityFlags, or the raw counter payload sent
            by the editor. None means no signals were recorded.
        repo_score: Repository rubric result for repository-mode labs. Its
            total becomes the base score.
        base_score: Explicit base score (0-100) for sandbox labs. Defaults
            to full completion credit.
        policy: Threshold, penalty and maximum points. Defaults from config.

    Returns:
        A LabGradeResult. Nothing is persisted here.
    """
    policy = policy or LabPolicy()
    if repo_score is not None:
        mode = MODE_REPOSITORY
        base = float(repo_score.score)
    else:
        mode = MODE_SANDBOX
        base = float(policy.sandbox_base_score if base_score is None else base_score)
    base = min(100.0, max(0.0, base))

    similarity_result = check_similarity(content, peer_pool)
    integrity = aggregate_integrity_signals(_as_flags(integrity_counters), policy.integrity_threshold)
    cheat_flagged = similarity_result.flagged or integrity.should_flag

    cheat_reasons: List[str] = []
    if similarity_result.flagged:
        cheat_reasons.append(_similarity_reason(similarity_result))
    if integrity.should_flag:
        cheat_reasons.extend(integrity.reasons)

    effective = base * policy.penalty_factor if cheat_flagged else base
    scaled = round(effective / 100 * policy.max_points, 2)

    lines: List[str] = []
    if repo_score is not None and repo_score.feedback:
        lines.append(repo_score.feedback)
    lines.append(f"Similarity check: {similarity_result.score:g}%")
    if cheat_flagged:
        lines.append("Integrity review required:")
        lines.extend(f"- {reason}" for reason in cheat_reasons)
        reduction = round_half_up((1 - policy.penalty_factor) * 100)
        lines.append(f"Score reduced by {reduction}% pending instructor review.")
        logger.warning(f"Lab submission flagged for review: {'; '.join(cheat_reasons)}")

    logger.debug(f"Lab graded ({mode}): base={base} scaled={scaled} flagged={cheat_flagged}")
    return LabGradeResult(
        scaled_grade=scaled,
        base_score=base,
        cheat_flagged=cheat_flagged,
        feedback="\n".join(lines),
        cheat_reasons=cheat_reasons,
        similarity=similarity_result,
        integrity=integrity,
        repo_score=repo_score,
        mode=mode,
    )


class Grader:
    """Orchestrates lab grading for both submission modes."""

    def __init__(self, github_service: Optional[GitHubService] = None, policy: Optional[LabPolicy] = None):
        """Initializes the Grader.

        Args:
            github_service: GitHub API wrapper for repository labs. Built
                lazily on the first repository lab when omitted.
            policy: Lab policy applied to every submission graded here.
        """
        self._github_service = github_service
        self.policy = policy or LabPolicy()
        logger.info(f"Grader initialized (penalty factor {self.policy.penalty_factor}, max points {self.policy.max_points})")

    @property
    def github_service(self) -> GitHubService:
        if self._github_service is None:
            self._github_service = GitHubService()
        return self._github_service

    def grade_repository_lab(
        self,
        url: str,
        keywords: Sequence[str] = (),
        peer_pool: Sequence[PeerSubmission] = (),
        integrity: IntegrityInput = None,
        content: str = "",
    ) -> LabGradeResult:
        """Scores a repository URL and grades it as a repository-mode lab.

        The text compared for similarity is ``content`` when given, otherwise
        the source files sampled while scoring. Peers should hold the same
        kind of text.
        """
        logger.info(f"Grading repository lab submission: {url}")
        repo_result = score_repository(url, keywords, service=self.github_service)
        if repo_result.errors:
            logger.warning(f"Repository scoring for {url} reported: {'; '.join(repo_result.errors)}")
        return grade_lab_submission(
            content or repo_result.source_text,
            peer_pool,
            integrity,
            repo_score=repo_result,
            policy=self.policy,
        )

    def grade_sandbox_lab(
        self,
        code: str,
        peer_pool: Sequence[PeerSubmission] = (),
        integrity: IntegrityInput = None,
        base_score: Optional[float] = None,
    ) -> LabGradeResult:
        logger.info(f"Grading sandbox lab submission ({len(code)} chars, {len(peer_pool)} peer(s))")
        return grade_lab_submission(code, peer_pool, integrity, base_score=base_score, policy=self.policy)
