"""Operation kind → substage lookup.

A remote workflow walks through an ordered list of substages; each
monitoring step only owns part of that sequence.  ``SubstageResolver``
maps an ``OperationKind`` to the substage ordinal that marks the end of
that operation's scope of work, so progress can be reported relative to
it.

The table is injected at construction; the controller and the poll
loop never hard-code an operation catalogue.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from types import MappingProxyType

from remote_task_monitor.core.exceptions import UnsupportedOperationKind
from remote_task_monitor.models.entity import OperationKind


class RemoveDeploymentSubStage(enum.IntEnum):
    """Substages of the remote deployment removal workflow, in order."""

    REMOVE_FROM_API_FE = 0
    DEPROVISION_HOSTS = 1


#: Substage names in workflow order, as reported by the remote task document.
REMOVE_DEPLOYMENT_SUBSTAGE_NAMES: tuple[str, ...] = tuple(RemoveDeploymentSubStage.__members__)


#: Substage table of the deployment delete status step.
REMOVE_DEPLOYMENT_SUBSTAGES: Mapping[OperationKind, int] = MappingProxyType(
    {
        OperationKind.PERFORM_DELETE_DEPLOYMENT: RemoveDeploymentSubStage.REMOVE_FROM_API_FE,
        OperationKind.DEPROVISION_HOSTS: RemoveDeploymentSubStage.DEPROVISION_HOSTS,
    }
)


class SubstageResolver:
    """Pure lookup of the target substage for an operation kind."""

    def __init__(self, table: Mapping[OperationKind, int]) -> None:
        self._table: dict[OperationKind, int] = {}
        for kind, ordinal in table.items():
            self.register(kind, ordinal)

    def register(self, kind: OperationKind, ordinal: int) -> None:
        """Add or replace the substage of *kind*.

        Raises:
            ValueError: If *ordinal* is negative.
        """
        if ordinal < 0:
            msg = f"Substage ordinal for {kind} must be >= 0, got {ordinal}"
            raise ValueError(msg)
        self._table[kind] = int(ordinal)

    def resolve(self, kind: OperationKind) -> int:
        """Return the target substage ordinal of *kind*.

        Raises:
            UnsupportedOperationKind: If *kind* is not registered.
        """
        ordinal = self._table.get(kind)
        if ordinal is None:
            raise UnsupportedOperationKind(kind)
        return ordinal

    def kinds(self) -> list[OperationKind]:
        """Return the registered operation kinds."""
        return list(self._table)
