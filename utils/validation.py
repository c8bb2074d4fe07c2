"""Validation helpers for widget layouts and saved items.

Provides:
- ValidationIssue / ValidationResult for collecting problems
- Permutation checking for widget reorder requests
- Item-name validation applied before a save
"""

from typing import Any, Dict, Iterable, List, Optional


class ValidationIssue:
    """A single problem found during a check."""

    def __init__(self, check_name: str, severity: str, detail: str,
                 sample: Optional[Any] = None, count: int = 1):
        """Initialize a validation issue.

        Args:
            check_name: Name of the check that found this issue
            severity: Issue severity ('error', 'warning', 'info')
            detail: Human-readable description of the issue
            sample: Example value that triggered the issue
            count: Number of affected entries
        """
        self.check_name = check_name
        self.severity = severity
        self.detail = detail
        self.sample = sample
        self.count = count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "check": self.check_name,
            "severity": self.severity,
            "detail": self.detail,
            "sample": self.sample,
            "count": self.count,
        }

    def __repr__(self) -> str:
        return (f"ValidationIssue(check={self.check_name}, severity={self.severity}, "
                f"count={self.count})")


class ValidationResult:
    """Collects the issues produced by one or more checks."""

    def __init__(self):
        self.issues: List[ValidationIssue] = []

    def add_issue(self, check_name: str, severity: str, detail: str,
                  sample: Optional[Any] = None, count: int = 1) -> None:
        self.issues.append(ValidationIssue(check_name, severity, detail, sample, count))

    def get_issues_by_severity(self, severity: str) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == severity]

    def error_count(self) -> int:
        return len(self.get_issues_by_severity("error"))

    def is_valid(self) -> bool:
        """True when no error-level issue was recorded."""
        return self.error_count() == 0

    def summary_text(self) -> str:
        """One line per issue, suitable for an exception message."""
        return "; ".join(i.detail for i in self.issues)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.is_valid(),
            "issues": [i.to_dict() for i in self.issues],
        }


def check_reorder_permutation(existing_ids: Iterable[str],
                              proposed_ids: Iterable[str]) -> ValidationResult:
    """Check that *proposed_ids* is a permutation of *existing_ids*.

    Reports duplicated ids, ids that do not exist, and existing ids that were
    left out of the proposal.

    Args:
        existing_ids: Ids currently in the widget layout
        proposed_ids: Ids in the requested new order

    Returns:
        ValidationResult with one error issue per kind of mismatch
    """
    existing = list(existing_ids)
    proposed = list(proposed_ids)
    result = ValidationResult()

    seen: set[str] = set()
    duplicates: list[str] = []
    for wid in proposed:
        if wid in seen and wid not in duplicates:
            duplicates.append(wid)
        seen.add(wid)
    if duplicates:
        result.add_issue("reorder_duplicates", "error",
                         f"duplicate widget ids: {', '.join(duplicates)}",
                         sample=duplicates[0], count=len(duplicates))

    existing_set = set(existing)
    unknown = [wid for wid in proposed if wid not in existing_set]
    if unknown:
        result.add_issue("reorder_unknown", "error",
                         f"unknown widget ids: {', '.join(unknown)}",
                         sample=unknown[0], count=len(unknown))

    missing = [wid for wid in existing if wid not in seen]
    if missing:
        result.add_issue("reorder_missing", "error",
                         f"missing widget ids: {', '.join(missing)}",
                         sample=missing[0], count=len(missing))
    return result


def is_valid_item_name(name: Any) -> bool:
    """A saved item name must be a non-blank string."""
    return isinstance(name, str) and bool(name.strip())
