"""
Status state machines for client requests and job applications.

Both entities use the same mechanism: a fixed table of allowed edges, a set of
terminal statuses, and a set of statuses only the system may move into.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from fulfillment.shared import InvalidTransitionError, ValidationError

ENTITY_REQUEST = "request"
ENTITY_APPLICATION = "application"


@dataclass(frozen=True)
class StatusMachine:
    """
    Declared statuses and edges of one entity type.

    Statuses never named as a source have no outgoing edges and are terminal.
    """

    entity_type: str
    initial: str
    edges: dict[str, frozenset[str]]
    terminal: frozenset[str]
    system_only: frozenset[str] = frozenset()

    @property
    def statuses(self) -> frozenset[str]:
        names = set(self.edges)
        for targets in self.edges.values():
            names.update(targets)
        return frozenset(names)

    def is_known(self, status: str) -> bool:
        return status in self.statuses

    def is_terminal(self, status: str) -> bool:
        return status in self.terminal

    def allowed_targets(self, status: str, include_system: bool = False) -> list[str]:
        """Statuses reachable in one step, sorted; system-only ones hidden by default."""
        targets = self.edges.get(status, frozenset())
        if not include_system:
            targets = targets - self.system_only
        return sorted(targets)

    def can_transition(self, current: str, target: str, include_system: bool = False) -> bool:
        if target in self.system_only and not include_system:
            return False
        return target in self.edges.get(current, frozenset())

    def validate_transition(self, current: str, target: str) -> None:
        """
        Check a caller-requested status change.

        Raises:
            ValidationError: If target is not a status of this machine
            InvalidTransitionError: If the edge is not declared or is system-only
        """
        if not self.is_known(target):
            raise ValidationError(
                f"Unknown {self.entity_type} status '{target}'. "
                f"Must be one of: {', '.join(sorted(self.statuses))}"
            )
        if target in self.system_only:
            raise InvalidTransitionError(
                f"Status '{target}' can only be reached by the system",
                entity_type=self.entity_type,
                from_status=current,
                to_status=target,
            )
        if not self.can_transition(current, target):
            raise InvalidTransitionError(
                f"Cannot move {self.entity_type} from '{current}' to '{target}'",
                entity_type=self.entity_type,
                from_status=current,
                to_status=target,
                allowed=self.allowed_targets(current),
            )

    def path_to(self, current: str, target: str) -> list[str]:
        """
        Shortest chain of declared edges from current to target, system edges included.

        Returns the statuses after current, in order; empty when already there.

        Raises:
            InvalidTransitionError: If target is unreachable from current
        """
        if current == target:
            return []

        previous: dict[str, str] = {}
        queue = deque([current])
        seen = {current}
        while queue:
            status = queue.popleft()
            for nxt in sorted(self.edges.get(status, frozenset())):
                if nxt in seen:
                    continue
                previous[nxt] = status
                if nxt == target:
                    path = [nxt]
                    while path[-1] in previous and previous[path[-1]] != current:
                        path.append(previous[path[-1]])
                    return list(reversed(path))
                seen.add(nxt)
                queue.append(nxt)

        raise InvalidTransitionError(
            f"No path from '{current}' to '{target}' for {self.entity_type}",
            entity_type=self.entity_type,
            from_status=current,
            to_status=target,
        )


REQUEST_MACHINE = StatusMachine(
    entity_type=ENTITY_REQUEST,
    initial="new",
    edges={
        "new": frozenset({"processing", "rejected"}),
        "processing": frozenset({"assigned", "on_hold", "rejected"}),
        "assigned": frozenset({"converted", "cancelled"}),
        "on_hold": frozenset({"processing", "rejected"}),
    },
    terminal=frozenset({"converted", "rejected", "cancelled"}),
    system_only=frozenset({"converted"}),
)

APPLICATION_MACHINE = StatusMachine(
    entity_type=ENTITY_APPLICATION,
    initial="pending",
    edges={
        "pending": frozenset({"under_review", "rejected"}),
        "under_review": frozenset({"interview_scheduled", "approved", "rejected"}),
        "interview_scheduled": frozenset({"approved", "rejected"}),
        "approved": frozenset({"onboarding"}),
        "onboarding": frozenset({"active"}),
    },
    terminal=frozenset({"rejected", "active"}),
)

MACHINES: dict[str, StatusMachine] = {
    ENTITY_REQUEST: REQUEST_MACHINE,
    ENTITY_APPLICATION: APPLICATION_MACHINE,
}


def get_machine(entity_type: str) -> StatusMachine:
    """
    Raises:
        ValidationError: If entity_type is not request or application
    """
    machine = MACHINES.get(entity_type)
    if machine is None:
        raise ValidationError(
            f"Invalid entity type '{entity_type}'. Must be one of: {', '.join(sorted(MACHINES))}"
        )
    return machine
