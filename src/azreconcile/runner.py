"""Serial driver for one reconcile pass.

Tasks run one at a time in dependency order of their kinds. A failure is
recorded and everything that references the failed resource is skipped;
unrelated resources still reconcile. The pass never retries, the next
pass picks up from whatever state this one left behind.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .errors import ReconcileError
from .tasks import DeltaOutcome, Task, TaskKey, run_task

if TYPE_CHECKING:
    from .cloud import AzureCloud

logger = logging.getLogger(__name__)

# Referenced resources come before the resources referencing them
KIND_ORDER: tuple[str, ...] = (
    "DNSZone",
    "ApplicationSecurityGroup",
    "NetworkSecurityGroup",
    "SecurityGroupRule",
    "RecordSet",
)

CHANGE_OUTCOMES = frozenset(
    {
        DeltaOutcome.CREATED,
        DeltaOutcome.UPDATED,
        DeltaOutcome.WOULD_CREATE,
        DeltaOutcome.WOULD_UPDATE,
    }
)


@dataclass
class TaskResult:
    """Outcome of reconciling one resource."""

    key: TaskKey
    outcome: DeltaOutcome | None = None
    error: Exception | None = None
    # Key of the failed dependency when the task was not attempted
    skipped_because: TaskKey | None = None

    @property
    def success(self) -> bool:
        return self.error is None and self.skipped_because is None


@dataclass
class ReconcileResult:
    """Result of a single reconcile pass."""

    dry_run: bool = False
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    results: list[TaskResult] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def success(self) -> bool:
        return all(r.success for r in self.results)

    @property
    def changes(self) -> list[TaskResult]:
        return [r for r in self.results if r.outcome in CHANGE_OUTCOMES]

    @property
    def failed(self) -> list[TaskResult]:
        return [r for r in self.results if r.error is not None]

    @property
    def skipped(self) -> list[TaskResult]:
        return [r for r in self.results if r.skipped_because is not None]


def order_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Sort tasks by kind, keeping declaration order within a kind."""
    return sorted(tasks, key=lambda t: KIND_ORDER.index(t.KIND))


def reconcile(tasks: Iterable[Task], cloud: AzureCloud, dry_run: bool = False) -> ReconcileResult:
    """Run one pass over ``tasks``."""
    result = ReconcileResult(dry_run=dry_run)
    failed: set[TaskKey] = set()

    for task in order_tasks(tasks):
        kind, name = task.key
        blocked_by = next((k for k in task.depends_on() if k in failed), None)
        if blocked_by is not None:
            logger.warning(
                "Skipping resource, dependency failed",
                extra={"kind": kind, "resource": name, "dependency": "/".join(blocked_by)},
            )
            failed.add(task.key)
            result.results.append(TaskResult(key=task.key, skipped_because=blocked_by))
            continue

        try:
            outcome = run_task(task, cloud, dry_run=dry_run)
        except ReconcileError as e:
            logger.error(
                "Reconcile failed",
                extra={
                    "kind": kind,
                    "resource": name,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            failed.add(task.key)
            result.results.append(TaskResult(key=task.key, error=e))
            continue

        if outcome is not DeltaOutcome.UNCHANGED:
            logger.info(
                "Resource reconciled",
                extra={"kind": kind, "resource": name, "outcome": outcome.value},
            )
        result.results.append(TaskResult(key=task.key, outcome=outcome))

    result.end_time = datetime.now(UTC)
    logger.info(
        "Reconcile pass completed",
        extra={
            "dry_run": dry_run,
            "resources": len(result.results),
            "changes": len(result.changes),
            "failed": len(result.failed),
            "skipped": len(result.skipped),
            "duration_seconds": result.duration_seconds,
        },
    )
    return result
