"""
Detection policy: confidence threshold plus the category groups the user
has switched on.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Iterable, Optional

MIN_THRESHOLD = 0.1
MAX_THRESHOLD = 0.95
DEFAULT_THRESHOLD = 0.65
THRESHOLD_STEP = 0.05

GROUP_PERSON = "person"
GROUP_VEHICLE = "vehicle"
GROUP_OTHER = "other"

# Raw detector categories grouped under a single user-facing toggle.
# Anything not listed here falls into GROUP_OTHER.
CATEGORY_GROUPS: Dict[str, FrozenSet[str]] = {
    GROUP_PERSON: frozenset({"person"}),
    GROUP_VEHICLE: frozenset({"car", "truck", "bus", "bicycle", "motorcycle"}),
}

ALL_GROUPS: FrozenSet[str] = frozenset({GROUP_PERSON, GROUP_VEHICLE, GROUP_OTHER})


class PolicyError(ValueError):
    """Raised when a policy update is out of range or names an unknown group."""


def group_for_category(category: str) -> str:
    """Map a raw detector category to its policy group."""
    for group, members in CATEGORY_GROUPS.items():
        if category in members:
            return group
    return GROUP_OTHER


@dataclass(frozen=True)
class DetectionPolicy:
    """
    User-configurable detection policy.

    Instances are immutable; updates produce a new policy so a reader always
    sees a consistent threshold/group pair.

    Attributes:
        confidence_threshold: Minimum score a detection needs to be surfaced
            by the detector (0.1 - 0.95).
        enabled_groups: Category groups currently switched on.
    """
    confidence_threshold: float = DEFAULT_THRESHOLD
    enabled_groups: FrozenSet[str] = field(default_factory=lambda: ALL_GROUPS)

    def __post_init__(self) -> None:
        if not MIN_THRESHOLD <= self.confidence_threshold <= MAX_THRESHOLD:
            raise PolicyError(
                f"confidence_threshold must be between {MIN_THRESHOLD} and "
                f"{MAX_THRESHOLD}, got {self.confidence_threshold}"
            )
        unknown = set(self.enabled_groups) - ALL_GROUPS
        if unknown:
            raise PolicyError(f"Unknown category groups: {', '.join(sorted(unknown))}")
        object.__setattr__(self, "enabled_groups", frozenset(self.enabled_groups))

    def is_enabled(self, group: str) -> bool:
        return group in self.enabled_groups

    def allows(self, category: str) -> bool:
        """True if the category's group is enabled."""
        return group_for_category(category) in self.enabled_groups

    def with_threshold(self, threshold: float) -> "DetectionPolicy":
        return replace(self, confidence_threshold=float(threshold))

    def with_group(self, group: str, enabled: bool) -> "DetectionPolicy":
        if group not in ALL_GROUPS:
            raise PolicyError(f"Unknown category group: {group}")
        groups = set(self.enabled_groups)
        if enabled:
            groups.add(group)
        else:
            groups.discard(group)
        return replace(self, enabled_groups=frozenset(groups))

    def updated(
        self,
        confidence_threshold: Optional[float] = None,
        groups: Optional[Dict[str, bool]] = None,
    ) -> "DetectionPolicy":
        """Apply a partial update (threshold and/or group toggles)."""
        policy = self
        if confidence_threshold is not None:
            policy = policy.with_threshold(confidence_threshold)
        for group, enabled in (groups or {}).items():
            policy = policy.with_group(group, bool(enabled))
        return policy

    @classmethod
    def from_dict(cls, d: Dict) -> "DetectionPolicy":
        enabled: Iterable[str] = d.get("enabled_groups", sorted(ALL_GROUPS))
        return cls(
            confidence_threshold=float(d.get("confidence_threshold", DEFAULT_THRESHOLD)),
            enabled_groups=frozenset(enabled),
        )

    def to_dict(self) -> Dict:
        return {
            "confidence_threshold": self.confidence_threshold,
            "enabled_groups": sorted(self.enabled_groups),
        }
