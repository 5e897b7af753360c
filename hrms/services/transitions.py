"""Status vocabularies and allowed-transition tables for each entity."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from hrms.utils.errors import ConflictError, ValidationError

CANDIDATE_STATUSES = ("Pending", "Active", "Inactive", "Scheduled", "Ongoing", "Selected", "Rejected")
CANDIDATE_INITIAL_STATUS = "Pending"
CANDIDATE_PROMOTED_STATUS = "Selected"
_CANDIDATE_TARGETS = frozenset({"Scheduled", "Ongoing", "Selected", "Rejected"})

EMPLOYEE_STATUSES = ("Selected", "Ongoing", "Scheduled", "Rejected")
EMPLOYEE_INITIAL_STATUS = "Selected"

LEAVE_STATUSES = ("Pending", "Approved", "Rejected")
LEAVE_INITIAL_STATUS = "Pending"

ATTENDANCE_STATUSES = ("Present", "Absent")
EMPLOYMENT_TYPES = ("Full-time", "Part-time", "Contract", "Internship")
LEAVE_TYPES = (
    "Sick Leave",
    "Casual Leave",
    "Annual Leave",
    "Maternity Leave",
    "Paternity Leave",
    "Emergency Leave",
)


@dataclass(frozen=True)
class StatusMachine:
    entity: str
    statuses: tuple[str, ...]
    transitions: Mapping[str, frozenset[str]]

    def __post_init__(self) -> None:
        known = set(self.statuses)
        for current, allowed in self.transitions.items():
            unknown = ({current} | set(allowed)) - known
            if unknown:
                raise ValueError(f"{self.entity} transitions use unknown statuses: {sorted(unknown)}")

    def targets(self) -> frozenset[str]:
        out: set[str] = set()
        for allowed in self.transitions.values():
            out |= allowed
        return frozenset(out)

    def validate(self, status: str) -> str:
        """Reject values that are never a legal target for this entity."""
        value = str(status or "").strip()
        if value not in self.targets():
            raise ValidationError(
                "Invalid status value", details={"entity": self.entity, "allowed": sorted(self.targets())}
            )
        return value

    def can_transition(self, current: str, target: str) -> bool:
        if current not in self.statuses:
            return False
        return target in self.transitions.get(current, frozenset())

    def require_transition(self, current: str, target: str) -> str:
        target = self.validate(target)
        if not self.can_transition(current, target):
            raise ConflictError(
                f"Cannot change {self.entity} status from {current} to {target}",
                details={"from": current, "to": target},
            )
        return target


# No ordering is enforced among the interview stages; any state may move to any target.
CANDIDATE_MACHINE = StatusMachine(
    entity="candidate",
    statuses=CANDIDATE_STATUSES,
    transitions={s: _CANDIDATE_TARGETS for s in CANDIDATE_STATUSES},
)

EMPLOYEE_MACHINE = StatusMachine(
    entity="employee",
    statuses=EMPLOYEE_STATUSES,
    transitions={s: frozenset(EMPLOYEE_STATUSES) for s in EMPLOYEE_STATUSES},
)

# Approved and Rejected are terminal.
LEAVE_MACHINE = StatusMachine(
    entity="leave",
    statuses=LEAVE_STATUSES,
    transitions={
        "Pending": frozenset({"Approved", "Rejected"}),
        "Approved": frozenset(),
        "Rejected": frozenset(),
    },
)


def canonical_leave_type(value: str) -> str | None:
    """``"Sick"``/``"sick leave"``/``"Sick Leave"`` -> ``"Sick Leave"``; unknown -> None."""
    v = " ".join(str(value or "").split()).lower()
    if not v:
        return None
    if not v.endswith(" leave"):
        v = f"{v} leave"
    for leave_type in LEAVE_TYPES:
        if leave_type.lower() == v:
            return leave_type
    return None
