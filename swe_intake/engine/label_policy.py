"""
Label-based trigger policy.

Four labels start a run. They span two independent choices: whether the
generated plan is accepted automatically, and whether the run uses the
escalated ("max") models. Every other label is inert.

    label               auto_accept   escalated_model
    open-swe            no            no
    open-swe-auto       yes           no
    open-swe-max        no            yes
    open-swe-max-auto   yes           yes
"""

from dataclasses import dataclass
from enum import Enum

OPEN_SWE_LABEL = "open-swe"
OPEN_SWE_AUTO_LABEL = "open-swe-auto"
OPEN_SWE_MAX_LABEL = "open-swe-max"
OPEN_SWE_MAX_AUTO_LABEL = "open-swe-max-auto"


class TriggerIntent(str, Enum):
    """How the planner should treat the plan it proposes."""

    AUTO_ACCEPT = "auto_accept"
    MANUAL_APPROVAL = "manual_approval"


@dataclass(frozen=True)
class LabelIntent:
    """Classification of one label."""

    label: str | None
    is_trigger: bool = False
    auto_accept: bool = False
    escalated_model: bool = False

    @property
    def trigger_intent(self) -> TriggerIntent | None:
        """Approval mode for trigger labels; None for inert labels."""
        if not self.is_trigger:
            return None
        return TriggerIntent.AUTO_ACCEPT if self.auto_accept else TriggerIntent.MANUAL_APPROVAL


def all_trigger_labels() -> list[str]:
    return [OPEN_SWE_LABEL, OPEN_SWE_AUTO_LABEL, OPEN_SWE_MAX_LABEL, OPEN_SWE_MAX_AUTO_LABEL]


def is_trigger_label(label: str | None) -> bool:
    return label in all_trigger_labels()


def is_auto_accept_label(label: str | None) -> bool:
    return label in (OPEN_SWE_AUTO_LABEL, OPEN_SWE_MAX_AUTO_LABEL)


def is_max_label(label: str | None) -> bool:
    return label in (OPEN_SWE_MAX_LABEL, OPEN_SWE_MAX_AUTO_LABEL)


def classify_label(label: str | None) -> LabelIntent:
    """Classify a label name. Unknown or missing labels are inert."""
    if not is_trigger_label(label):
        return LabelIntent(label=label)
    return LabelIntent(
        label=label,
        is_trigger=True,
        auto_accept=is_auto_accept_label(label),
        escalated_model=is_max_label(label),
    )
