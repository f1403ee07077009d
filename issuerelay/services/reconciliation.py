"""Field reconciliation: which changed fields to push to the other tracker, and how"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from issuerelay.services.loop_prevention import (
    GITHUB,
    JIRA,
    ControlMarkers,
    prefix_title,
    strip_native_key,
)

logger = logging.getLogger(__name__)

# Snapshot value for the single modeled terminal state (GitHub "closed", Jira done status).
TERMINAL_STATUS = "done"


@dataclass(frozen=True)
class SyncPolicy:
    """Per-field switches; title and terminal status always propagate."""

    descriptions: bool = True
    labels: bool = True
    assignees: bool = True
    attachments: bool = False
    comments: bool = True


class SyncDirection(str, enum.Enum):
    """Sync direction enumeration"""

    GITHUB_TO_JIRA = "github_to_jira"
    JIRA_TO_GITHUB = "jira_to_github"

    @property
    def source_system(self) -> str:
        return GITHUB if self is SyncDirection.GITHUB_TO_JIRA else JIRA


@dataclass
class Reconciliation:
    """Sparse update for the target tracker plus non-fatal problems found on the way.

    ``update`` keys: ``title``, ``body``, ``labels``, ``assignee`` (``None`` means
    unassign), ``previous_assignee`` and ``close``.
    """

    update: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.update


class FieldReconciler:
    def __init__(self, policy: SyncPolicy, markers: ControlMarkers, resolver=None):
        self.policy = policy
        self.markers = markers
        self.resolver = resolver

    def normalize_labels(self, labels: Optional[Iterable[str]]) -> set:
        return set(self.markers.strip_control_labels(labels or []))

    def is_mirrored(self, *label_sets: Optional[Iterable[str]]) -> bool:
        """True when an issue carries a control label, i.e. the relay created it."""
        controls = self.markers.control_labels
        return any(controls.intersection(labels or []) for labels in label_sets)

    def target_labels(
        self, labels: Optional[Iterable[str]], source_system: str, *, source_is_mirror: bool = False
    ) -> List[str]:
        """Labels as written to the other side, controls stripped.

        The target keeps the control label it was created with. When the source
        is native the target is the relay's copy and gets ``source_system``'s
        origin label; when the source is itself a copy the target is the native
        issue and gets none.
        """
        names = sorted(self.normalize_labels(labels))
        if source_is_mirror:
            return names
        return names + [self.markers.origin_label(source_system)]

    def _target_title(self, title: Optional[str], direction: SyncDirection, native_key: Optional[str]) -> str:
        if direction is SyncDirection.GITHUB_TO_JIRA:
            return strip_native_key(title, native_key)
        if not native_key:
            raise ValueError("native_key is required to format a GitHub title")
        return prefix_title(native_key, title)

    def _resolve(self, identifier: Optional[str], direction: SyncDirection) -> Optional[str]:
        if not identifier or self.resolver is None:
            return None
        if direction is SyncDirection.GITHUB_TO_JIRA:
            return self.resolver.to_jira(identifier)
        return self.resolver.to_github(identifier)

    def reconcile(
        self,
        previous: Dict[str, Any],
        current: Dict[str, Any],
        *,
        direction: SyncDirection,
        native_key: Optional[str] = None,
    ) -> Reconciliation:
        """Compare two sparse snapshots; only keys present in ``current`` are considered."""
        result = Reconciliation()
        update = result.update

        if "title" in current:
            new_title = self._target_title(current.get("title"), direction, native_key)
            old_title = (
                self._target_title(previous.get("title"), direction, native_key)
                if previous.get("title") is not None
                else None
            )
            if new_title != old_title:
                update["title"] = new_title

        if self.policy.descriptions and "body" in current:
            if (current.get("body") or "") != (previous.get("body") or ""):
                update["body"] = current.get("body") or ""

        if self.policy.labels and "labels" in current:
            if self.normalize_labels(current.get("labels")) != self.normalize_labels(previous.get("labels")):
                update["labels"] = self.target_labels(
                    current.get("labels"),
                    direction.source_system,
                    source_is_mirror=self.is_mirrored(previous.get("labels"), current.get("labels")),
                )

        if self.policy.assignees and "assignee" in current:
            new_assignee = current.get("assignee")
            old_assignee = previous.get("assignee")
            if new_assignee != old_assignee:
                if new_assignee is None:
                    update["assignee"] = None
                else:
                    resolved = self._resolve(new_assignee, direction)
                    if resolved:
                        update["assignee"] = resolved
                    else:
                        msg = f"assignee '{new_assignee}' has no mapping; assignment not synced"
                        logger.warning(msg)
                        result.warnings.append(msg)
                if "assignee" in update and old_assignee:
                    previous_resolved = self._resolve(old_assignee, direction)
                    if previous_resolved:
                        update["previous_assignee"] = previous_resolved

        if "status" in current:
            if current.get("status") == TERMINAL_STATUS and previous.get("status") != TERMINAL_STATUS:
                update["close"] = True

        return result
