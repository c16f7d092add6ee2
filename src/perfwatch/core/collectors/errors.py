"""Error and performance-issue tracker.

Errors are grouped by a fingerprint derived from the first line of their
stack trace, or from the message when there is no stack.
"""

import base64
import logging
import re
import time
import uuid
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Any

from perfwatch.adapters.storage.ring_buffer import BoundedBuffer
from perfwatch.core.clock import Clock, now_ms
from perfwatch.core.logs import log_exception
from perfwatch.core.models import (
    ErrorLevel,
    ErrorReport,
    IssueType,
    PerformanceIssue,
    Severity,
)

logger = logging.getLogger(__name__)

DEFAULT_ERROR_CAPACITY = 100
DEFAULT_ISSUE_CAPACITY = 50
RECENT_WINDOW_MS = 60 * 60 * 1000
ERROR_RATE_WINDOW_MS = 5 * 60 * 1000
ERROR_RATE_LIMIT = 10
TOP_ERRORS = 5

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


@dataclass(frozen=True)
class TopError:
    fingerprint: str
    count: int
    message: str
    last_seen: int


@dataclass(frozen=True)
class ErrorStats:
    total_errors: int
    errors_by_level: dict[str, int]
    errors_by_fingerprint: dict[str, int]
    recent_errors: int
    top_errors: list[TopError] = field(default_factory=list)


@dataclass(frozen=True)
class IssueStats:
    total: int
    by_type: dict[str, int]
    by_severity: dict[str, int]
    recent: int


def compute_fingerprint(message: str, stack: str | None = None) -> str:
    """Derive a short grouping key from the first stack line or the message."""
    key = stack.split("\n", 1)[0] if stack else message
    encoded = base64.b64encode(key.encode("utf-8")).decode("ascii")
    return _NON_ALNUM.sub("", encoded)[:16]


class ErrorTracker:
    """Keeps recent errors and performance issues in two bounded buffers.

    Args:
        error_capacity: Number of errors kept.
        issue_capacity: Number of performance issues kept.
        enabled: When False, capture calls are ignored.
        clock: Epoch-seconds clock for timestamps and recency windows.
    """

    def __init__(
        self,
        error_capacity: int = DEFAULT_ERROR_CAPACITY,
        issue_capacity: int = DEFAULT_ISSUE_CAPACITY,
        enabled: bool = True,
        clock: Clock = time.time,
    ) -> None:
        self._errors: BoundedBuffer[ErrorReport] = BoundedBuffer(error_capacity)
        self._issues: BoundedBuffer[PerformanceIssue] = BoundedBuffer(issue_capacity)
        self._clock = clock
        self.enabled = enabled

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled

    def capture_error(
        self,
        message: str,
        stack: str | None = None,
        url: str = "",
        level: ErrorLevel = "error",
        context: dict[str, Any] | None = None,
        user_id: str | None = None,
        user_agent: str = "",
    ) -> ErrorReport | None:
        """Capture an error raised in this process.

        Never raises. Returns the stored report, or None when tracking is
        disabled or the capture itself failed.
        """
        if not self.enabled:
            return None
        try:
            timestamp = now_ms(self._clock)
            report = ErrorReport(
                id=f"{timestamp}-{uuid.uuid4().hex[:9]}",
                message=message,
                url=url,
                user_agent=user_agent,
                timestamp_ms=timestamp,
                level=level,
                fingerprint=compute_fingerprint(message, stack),
                stack=stack,
                user_id=user_id,
                context=dict(context or {}),
            )
            self._errors.append(report)
            logger.debug("Error captured", extra={"fingerprint": report.fingerprint})
            return report
        except Exception:
            log_exception("Failed to capture error")
            return None

    def record_error(self, report: ErrorReport) -> None:
        """Store an error report submitted by a client.

        Client reports without a fingerprint get one computed here.
        """
        if not self.enabled:
            return
        try:
            if not report.fingerprint:
                report = replace(
                    report,
                    fingerprint=compute_fingerprint(report.message, report.stack),
                )
            self._errors.append(report)
            if report.level == "error":
                logger.error(
                    "Client error reported: %s",
                    report.message,
                    extra={"url": report.url, "fingerprint": report.fingerprint},
                )
            self._check_error_rate()
        except Exception:
            log_exception("Failed to record error report")

    def _check_error_rate(self) -> None:
        cutoff = now_ms(self._clock) - ERROR_RATE_WINDOW_MS
        recent = sum(1 for e in self._errors.items() if e.timestamp_ms > cutoff)
        if recent > ERROR_RATE_LIMIT:
            logger.warning(
                "High error rate detected: %d errors in the last 5 minutes",
                recent,
                extra={"recent_errors": recent},
            )

    def capture_performance_issue(
        self,
        type: IssueType,
        severity: Severity,
        description: str,
        metrics: dict[str, float],
        url: str | None = None,
        timestamp_ms: int | None = None,
    ) -> PerformanceIssue | None:
        """Store a performance issue; critical ones are logged as errors."""
        if not self.enabled:
            return None
        try:
            issue = PerformanceIssue(
                type=type,
                severity=severity,
                description=description,
                metrics=dict(metrics),
                timestamp_ms=(
                    timestamp_ms if timestamp_ms is not None else now_ms(self._clock)
                ),
                url=url,
            )
            self._issues.append(issue)
            fields = {"issue_type": type, "severity": severity}
            if severity == "critical":
                logger.error(
                    "Critical performance issue: %s", description, extra=fields
                )
            elif severity == "high":
                logger.warning("Performance issue reported: %s", description, extra=fields)
            return issue
        except Exception:
            log_exception("Failed to capture performance issue")
            return None

    def get_errors(
        self,
        level: ErrorLevel | None = None,
        fingerprint: str | None = None,
        limit: int | None = None,
    ) -> list[ErrorReport]:
        """Return errors newest first, optionally filtered."""

        def keep(error: ErrorReport) -> bool:
            if level is not None and error.level != level:
                return False
            return fingerprint is None or error.fingerprint == fingerprint

        errors = self._errors.snapshot(keep)
        errors.sort(key=lambda e: e.timestamp_ms, reverse=True)
        return errors[: max(limit, 0)] if limit is not None else errors

    def get_performance_issues(
        self,
        type: IssueType | None = None,
        severity: Severity | None = None,
        limit: int | None = None,
    ) -> list[PerformanceIssue]:
        """Return issues newest first, optionally filtered."""

        def keep(issue: PerformanceIssue) -> bool:
            if type is not None and issue.type != type:
                return False
            return severity is None or issue.severity == severity

        issues = self._issues.snapshot(keep)
        issues.sort(key=lambda i: i.timestamp_ms, reverse=True)
        return issues[: max(limit, 0)] if limit is not None else issues

    def get_error_stats(self) -> ErrorStats:
        """Counts by level and fingerprint plus errors of the last hour."""
        errors = self._errors.items()
        cutoff = now_ms(self._clock) - RECENT_WINDOW_MS
        by_level = Counter(e.level for e in errors)
        by_fingerprint = Counter(e.fingerprint for e in errors if e.fingerprint)

        top: list[TopError] = []
        for fp, count in by_fingerprint.most_common(TOP_ERRORS):
            group = [e for e in errors if e.fingerprint == fp]
            top.append(
                TopError(
                    fingerprint=fp,
                    count=count,
                    message=group[0].message,
                    last_seen=max(e.timestamp_ms for e in group),
                )
            )

        return ErrorStats(
            total_errors=len(errors),
            errors_by_level=dict(by_level),
            errors_by_fingerprint=dict(by_fingerprint),
            recent_errors=sum(1 for e in errors if e.timestamp_ms > cutoff),
            top_errors=top,
        )

    def get_issue_stats(self) -> IssueStats:
        issues = self._issues.items()
        cutoff = now_ms(self._clock) - RECENT_WINDOW_MS
        return IssueStats(
            total=len(issues),
            by_type=dict(Counter(i.type for i in issues)),
            by_severity=dict(Counter(i.severity for i in issues)),
            recent=sum(1 for i in issues if i.timestamp_ms > cutoff),
        )

    def clear(self) -> None:
        """Empty both the error and the issue buffers."""
        self._errors.clear()
        self._issues.clear()
