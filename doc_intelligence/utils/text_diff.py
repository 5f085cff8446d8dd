"""Line level document diff used when semantic comparison is unavailable"""
import re
from typing import List, Set

from ..models import DifferenceType, RiskImpact, VersionDifference

_CLAUSE_SPLIT = re.compile(r"(?=\d+\.\s+[A-Za-z])")
_CLAUSE_HEADING = re.compile(r"^(\d+\.\s*[A-Za-z\s]+)")
_NUMBERED_PREFIX = re.compile(r"^(\d+\.\s*\w+)")


def _shorten(text: str, limit: int) -> str:
    return text[:limit] + "…" if len(text) > limit else text


def describe_line_change(old_line: str, new_line: str) -> str:
    """Describe the differing middle part of two similar lines"""
    a = old_line.strip()
    b = new_line.strip()
    if a == b:
        return "No change"

    start = 0
    while start < len(a) and start < len(b) and a[start] == b[start]:
        start += 1
    end_a, end_b = len(a), len(b)
    while end_a > start and end_b > start and a[end_a - 1] == b[end_b - 1]:
        end_a -= 1
        end_b -= 1

    old_part = a[start:end_a].strip()
    new_part = b[start:end_b].strip()
    if not old_part and new_part:
        return f'Added: "{_shorten(new_part, 80)}"'
    if old_part and not new_part:
        return f'Removed: "{_shorten(old_part, 80)}"'
    if old_part and new_part:
        return f'"{_shorten(old_part, 60)}" → "{_shorten(new_part, 60)}"'
    return "Text changed"


def to_lines(text: str) -> List[str]:
    """Newline split when there are 3+ lines, else numbered clause split"""
    by_newline = [line.strip() for line in text.split("\n") if line.strip()]
    if len(by_newline) >= 3:
        return by_newline
    by_clause = [part.strip() for part in _CLAUSE_SPLIT.split(text) if len(part.strip()) > 10]
    if len(by_clause) >= 2:
        return by_clause
    if by_newline:
        return by_newline
    return [text.strip()] if text.strip() else []


def find_matching_line(line: str, candidates: List[str], used: Set[int]) -> int:
    key = line[:40]
    numbered = _NUMBERED_PREFIX.match(line)
    for i, other in enumerate(candidates):
        if i in used:
            continue
        if other == line or other[:40] == key:
            return i
        if numbered and other.startswith(numbered.group(1)):
            return i
        if len(line) > 15 and len(other) > 15 and (line[:20] in other or other[:20] in line):
            return i
    return -1


def _clause_label(line: str, index: int) -> str:
    match = _CLAUSE_HEADING.match(line)
    return (match.group(1) if match else f"Line {index + 1}").strip()


def simple_text_diff(text1: str, text2: str) -> List[VersionDifference]:
    lines1 = to_lines(text1 or "")
    lines2 = to_lines(text2 or "")
    used: Set[int] = set()
    diffs: List[VersionDifference] = []

    for i, line1 in enumerate(lines1):
        j = find_matching_line(line1, lines2, used)
        if j == -1:
            diffs.append(VersionDifference(
                id=f"diff_{i}",
                type=DifferenceType.DELETION.value,
                description=f"{_clause_label(line1, i)} - removed in new version",
                original_text=line1[:500],
                risk_impact=RiskImpact.NONE.value,
            ))
            continue

        used.add(j)
        line2 = lines2[j]
        if line1 != line2:
            diffs.append(VersionDifference(
                id=f"diff_{i}",
                type=DifferenceType.MODIFICATION.value,
                description=f"{_clause_label(line1, i)} - {describe_line_change(line1, line2)}",
                original_text=line1[:500],
                new_text=line2[:500],
                risk_impact=RiskImpact.NONE.value,
            ))

    for j, line2 in enumerate(lines2):
        if j in used:
            continue
        diffs.append(VersionDifference(
            id=f"diff_added_{j}",
            type=DifferenceType.ADDITION.value,
            description=f"{_clause_label(line2, j)} - added in new version",
            new_text=line2[:500],
            risk_impact=RiskImpact.NONE.value,
        ))

    old, new = (text1 or "").strip(), (text2 or "").strip()
    if not diffs and old != new:
        diffs.append(VersionDifference(
            id="diff_general",
            type=DifferenceType.MODIFICATION.value,
            description=f"Document length changed ({len(old)} vs {len(new)} characters).",
            risk_impact=RiskImpact.NONE.value,
        ))
    return diffs
