"""Pairwise textual similarity between a submission and its peer pool.

Similarity is edit-distance based and quadratic in text length per pair.
That is fine for single lab files compared within one assignment; it is not
meant for bulk scanning of large corpora.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

import config
from utils.logger import get_logger

logger = get_logger()

# Whichever comment opens first wins, so "/*" inside a line comment is inert and vice versa
_COMMENT = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)
_BLOCK_START = re.compile(r"^(function|class|const|let|var|async)")
_SHORT_VARIABLE = re.compile(r"var\s+(x|y|z|a|b|c|tmp|temp|t|v)\s*=", re.IGNORECASE)
_OPERATOR = re.compile(r"[+\-*/%=<>!&|]")


@dataclass(frozen=True)
class PeerSubmission:
    id: str
    text: str


@dataclass(frozen=True)
class SimilarityResult:
    score: float
    flagged: bool
    matched_source_ids: List[str] = field(default_factory=list)
    document_similarity: float = 0.0
    max_block_similarity: float = 0.0


def normalize_code(code: str) -> str:
    """Strips comments and blank lines, trims each line and lower-cases the text."""
    code = _COMMENT.sub("", code)
    lines = []
    for line in code.split("\n"):
        line = line.strip()
        if line:
            lines.append(line)
    return "\n".join(lines).lower()


def extract_code_blocks(normalized: str) -> List[str]:
    """Splits normalized code into coarse blocks.

    A new block starts on a declaration-like line or on any line holding a
    brace or parenthesis; other lines are appended to the current block.
    """
    blocks: List[str] = []
    current = ""
    for line in normalized.split("\n"):
        if _BLOCK_START.match(line) or "{" in line or "(" in line:
            if current:
                blocks.append(current)
            current = line
        else:
            current = f"{current}\n{line}" if current else line
    if current:
        blocks.append(current)
    return [b for b in blocks if len(b) > config.MIN_BLOCK_LENGTH]


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance (insert, delete, substitute all cost 1)."""
    if a == b:
        return 0
    # Common prefix and suffix never change the distance
    start = 0
    limit = min(len(a), len(b))
    while start < limit and a[start] == b[start]:
        start += 1
    end_a, end_b = len(a), len(b)
    while end_a > start and end_b > start and a[end_a - 1] == b[end_b - 1]:
        end_a -= 1
        end_b -= 1
    a, b = a[start:end_a], b[start:end_b]
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(
                current[j - 1] + 1,
                previous[j] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Percentage similarity: (maxLen - distance) / maxLen * 100. Two empty strings are 100."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 100.0
    return (max_len - edit_distance(a, b)) / max_len * 100


def check_similarity(submission_text: str, peers: Sequence[PeerSubmission]) -> SimilarityResult:
    """Compares a submission with the other submissions of the same assignment.

    The score is the larger of the whole-document similarity against all peer
    texts joined together and the best block-level match above the block
    threshold. Any peer with such a block match is listed as a matched source.

    Args:
        submission_text: The submitted code.
        peers: Snapshot of the peer pool, the author's own submissions excluded.
    """
    normalized = normalize_code(submission_text)
    if not peers or not normalized:
        logger.debug("Similarity check skipped: empty submission or empty peer pool.")
        return SimilarityResult(score=0.0, flagged=False)

    blocks = extract_code_blocks(normalized)
    max_block = 0.0
    matched: List[str] = []
    normalized_peers = []

    for peer in peers:
        peer_normalized = normalize_code(peer.text)
        normalized_peers.append(peer_normalized)
        peer_blocks = extract_code_blocks(peer_normalized)
        for block in blocks:
            for peer_block in peer_blocks:
                score = similarity(block, peer_block)
                if score > config.BLOCK_MATCH_THRESHOLD:
                    max_block = max(max_block, score)
                    if peer.id not in matched:
                        matched.append(peer.id)

    document = similarity(normalized, "\n".join(normalized_peers))
    final = max(document, max_block)
    flagged = final > config.SIMILARITY_FLAG_THRESHOLD
    if flagged:
        logger.info(f"Similarity flag raised: {final:.2f}% (matched {len(matched)} peer(s))")

    return SimilarityResult(
        score=round(final, 2),
        flagged=flagged,
        matched_source_ids=matched,
        document_similarity=round(document, 2),
        max_block_similarity=round(max_block, 2),
    )


def detect_suspicious_patterns(code: str) -> List[str]:
    """Heuristic style markers that often accompany copied code."""
    if not code.strip():
        return []
    patterns: List[str] = []

    if _SHORT_VARIABLE.search(code):
        patterns.append("suspicious_variable_names")

    # Operator density per blank-line separated block; a block far from the mean stands out
    blocks = code.split("\n\n")
    if len(blocks) > 1:
        ratios = []
        for block in blocks:
            chars = len(re.sub(r"\s", "", block))
            operators = len(_OPERATOR.findall(block))
            ratios.append(operators / (chars or 1))
        avg_ratio = sum(ratios) / len(ratios)
        if any(abs(r - avg_ratio) > avg_ratio * 0.5 for r in ratios):
            patterns.append("inconsistent_complexity")

    indents = [len(line) - len(line.lstrip()) for line in code.split("\n")]
    mean_indent = sum(indents) / len(indents)
    variance = sum((i - mean_indent) ** 2 for i in indents) / len(indents)
    if variance == 0:
        patterns.append("suspiciously_perfect_formatting")

    return patterns


def violation_severity(score: float) -> str:
    if score > 90:
        return "critical"
    if score > 80:
        return "severe"
    return "warning"


def peers_from_pairs(pairs: Iterable[tuple]) -> List[PeerSubmission]:
    """Builds a peer pool from ``(id, text)`` pairs."""
    return [PeerSubmission(id=str(peer_id), text=text or "") for peer_id, text in pairs]
