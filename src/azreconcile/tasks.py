"""Reconciliation triad shared by every resource kind.

Each kind is a dataclass whose fields all default to None, meaning
"absent". A reconciliation step for one resource is:

    actual  = desired.find(cloud)                 # None when not created yet
    changes = build_changes(actual, desired)
    Kind.check_changes(actual, desired, changes)  # reject illegal transitions
    Kind.render(cloud, actual, desired, changes)  # idempotent create-or-update

run_task() strings those together. Nothing is persisted between passes;
every pass recomputes actual state from scratch.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, fields
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from .errors import (
    ApplyError,
    BackendError,
    CannotChangeFieldError,
    DiscoveryError,
    RequiredFieldError,
)

if TYPE_CHECKING:
    from .cloud import AzureCloud

logger = logging.getLogger(__name__)

TaskKey = tuple[str, str]


class DeltaOutcome(str, Enum):
    """What a reconciliation step did (or would do in dry-run)."""

    CREATED = "Created"
    UPDATED = "Updated"
    UNCHANGED = "Unchanged"
    WOULD_CREATE = "WouldCreate"
    WOULD_UPDATE = "WouldUpdate"


@dataclass
class Task(ABC):
    """A reconciled resource.

    Subclasses declare their fields with None defaults. Fields declared with
    ``compare=False`` (discovered ids, the shared flag) are carried but never
    diffed.
    """

    KIND: ClassVar[str] = ""
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("name",)
    IMMUTABLE_FIELDS: ClassVar[tuple[str, ...]] = ("name",)
    # Kinds whose desired tags receive the cluster tags before discovery
    HAS_CLUSTER_TAGS: ClassVar[bool] = False

    @property
    def key(self) -> TaskKey:
        return (self.KIND, getattr(self, "name", None) or "")

    def depends_on(self) -> list[TaskKey]:
        """Keys of the resources this one references."""
        return []

    @abstractmethod
    def find(self, cloud: AzureCloud) -> Task | None:
        """Discover the actual resource matching this one's name.

        Raises:
            DiscoveryError: If listing the backend fails.
        """

    @classmethod
    def check_changes(cls, actual: Task | None, desired: Task, changes: Task) -> None:
        """Reject changes that are not allowed.

        Raises:
            RequiredFieldError: On create, if a required field is absent.
            CannotChangeFieldError: On update, if an immutable field changes.
        """
        if actual is None:
            for name in cls.REQUIRED_FIELDS:
                if getattr(desired, name) is None:
                    raise RequiredFieldError(name)
            return

        for name in cls.IMMUTABLE_FIELDS:
            if getattr(changes, name) is not None:
                raise CannotChangeFieldError(name)

    @classmethod
    @abstractmethod
    def render(
        cls, cloud: AzureCloud, actual: Task | None, desired: Task, changes: Task
    ) -> None:
        """Create or update the resource from ``desired``.

        Raises:
            ApplyError: If the backend call fails.
        """


def _differs(field_name: str, actual_value: Any, desired_value: Any) -> bool:
    if field_name == "tags":
        # Tags set outside this tool are kept, so only missing or
        # different desired tags count as a change
        return not desired_value.items() <= (actual_value or {}).items()
    return actual_value != desired_value


def build_changes(actual: Task | None, desired: Task) -> Task:
    """Diff actual against desired.

    Returns a task of the same kind with a field set wherever ``desired``
    has a value that ``actual`` lacks or disagrees with.
    """
    changes = type(desired)()
    for f in fields(desired):
        if not f.compare:
            continue
        desired_value = getattr(desired, f.name)
        if desired_value is None:
            continue
        actual_value = getattr(actual, f.name) if actual is not None else None
        if _differs(f.name, actual_value, desired_value):
            setattr(changes, f.name, desired_value)
    return changes


def has_changes(changes: Task) -> bool:
    return any(getattr(changes, f.name) is not None for f in fields(changes) if f.compare)


def merge_tags(
    actual_tags: dict[str, str] | None, desired_tags: dict[str, str] | None
) -> dict[str, str]:
    """Additive tag merge: desired wins on conflicts, nothing is removed."""
    merged = dict(actual_tags or {})
    merged.update(desired_tags or {})
    return merged


@contextmanager
def discovery(kind: str, name: str | None) -> Iterator[None]:
    """Report backend failures inside the block as DiscoveryError."""
    try:
        yield
    except BackendError as e:
        raise DiscoveryError(f"Discovering {kind} {name!r} failed: {e}") from e


@contextmanager
def applying(kind: str, name: str | None) -> Iterator[None]:
    """Report backend failures inside the block as ApplyError."""
    try:
        yield
    except BackendError as e:
        raise ApplyError(f"Applying {kind} {name!r} failed: {e}") from e


def run_task(task: Task, cloud: AzureCloud, dry_run: bool = False) -> DeltaOutcome:
    """Run one find / check_changes / render step for ``task``.

    Raises:
        DiscoveryError: If discovery fails.
        ChangeValidationError: If the computed change is not allowed.
        ApplyError: If rendering fails.
    """
    if task.HAS_CLUSTER_TAGS and cloud.config.cluster_tags:
        tags = getattr(task, "tags", None)
        if tags is None:
            tags = {}
            setattr(task, "tags", tags)
        cloud.add_cluster_tags(tags)

    actual = task.find(cloud)
    changes = build_changes(actual, task)

    if actual is not None and not has_changes(changes):
        logger.debug("No changes", extra={"kind": task.KIND, "resource": task.key[1]})
        return DeltaOutcome.UNCHANGED

    type(task).check_changes(actual, task, changes)

    if dry_run:
        outcome = DeltaOutcome.WOULD_CREATE if actual is None else DeltaOutcome.WOULD_UPDATE
        logger.info(
            "Dry run, change not applied",
            extra={"kind": task.KIND, "resource": task.key[1], "outcome": outcome.value},
        )
        return outcome

    type(task).render(cloud, actual, task, changes)
    return DeltaOutcome.CREATED if actual is None else DeltaOutcome.UPDATED
