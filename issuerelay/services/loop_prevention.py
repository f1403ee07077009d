"""Tagging of everything the relay writes, and recognition of its echoes.

Every issue the relay creates carries the origin system's control label, every
comment it writes ends with the origin's control suffix, and mirrored GitHub
titles start with the Jira key (``"PROJ-7 - Fix crash"``). Inbound events that
carry these markers were caused by the relay itself and must not be synced
back.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

GITHUB = "github"
JIRA = "jira"

NATIVE_KEY_RE = re.compile(r"^[A-Z]+-[0-9]+")
_TITLE_PREFIX_RE = re.compile(r"^[A-Z]+-[0-9]+\s+-\s+")


@dataclass(frozen=True)
class ControlMarkers:
    label_from_github: str = "source:github"
    label_from_jira: str = "source:jira"
    comment_from_github: str = "comment from github"
    comment_from_jira: str = "comment from jira"

    def origin_label(self, system: str) -> str:
        """Label stamped on issues created from an event of ``system``."""
        return self.label_from_github if system == GITHUB else self.label_from_jira

    def opposite_label(self, system: str) -> str:
        return self.label_from_jira if system == GITHUB else self.label_from_github

    def comment_suffix(self, system: str) -> str:
        return self.comment_from_github if system == GITHUB else self.comment_from_jira

    @property
    def control_labels(self) -> frozenset:
        return frozenset((self.label_from_github, self.label_from_jira))

    def is_echo_issue(self, labels: Iterable[str], source_system: str) -> bool:
        """True when a freshly opened issue was created by the relay from the other side."""
        return self.opposite_label(source_system) in set(labels or [])

    def is_sync_comment(self, body: Optional[str]) -> bool:
        if not body:
            return False
        return self.comment_from_github in body or self.comment_from_jira in body

    def tag_comment(self, body: Optional[str], system: str) -> str:
        """Append the origin suffix for a comment that came from ``system``."""
        return f"{body or ''}\n\n{self.comment_suffix(system)}"

    def strip_control_labels(self, labels: Iterable[str]) -> List[str]:
        controls = self.control_labels
        return [label for label in (labels or []) if label and label not in controls]


def extract_native_key(title: Optional[str]) -> Optional[str]:
    """Return the leading Jira key of a title, e.g. ``"PROJ-7 - Fix"`` -> ``"PROJ-7"``."""
    if not title:
        return None
    m = NATIVE_KEY_RE.match(title.strip())
    return m.group(0) if m else None


def title_key(title: Optional[str], project: Optional[str]) -> Optional[str]:
    """Key of a ``"KEY - title"`` prefix whose project is ``project``.

    Titles such as ``"HTTP-2 support"`` or ``"UTF-8 - decoding"`` only look like
    keys, so without a configured project nothing is trusted.
    """
    if not title or not project:
        return None
    m = re.match(rf"^({re.escape(project)}-[0-9]+)\s+-\s+", title.strip())
    return m.group(1) if m else None


def strip_native_key(title: Optional[str], key: Optional[str] = None) -> str:
    """Drop a leading ``"KEY - "`` prefix; titles without one are returned as-is.

    With ``key`` given, only that exact prefix is removed.
    """
    text = (title or "").strip()
    if key:
        return re.sub(rf"^{re.escape(key)}\s+-\s+", "", text, count=1)
    return _TITLE_PREFIX_RE.sub("", text, count=1)


def prefix_title(key: str, title: Optional[str]) -> str:
    """Format a mirrored title as ``"KEY - title"`` without ever doubling the prefix."""
    text = (title or "").strip()
    if extract_native_key(text) == key and _TITLE_PREFIX_RE.match(text):
        return text
    return f"{key} - {text}"
