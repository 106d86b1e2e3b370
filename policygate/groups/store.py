"""In-memory group store — accepted state plus the admission path.

The store is the resolver handed to :class:`GroupSpecValidator`. Admissions
are serialised by a re-entrant lock, so every validation reads a consistent
snapshot and a parent and a would-be-nested child can never both slip past
the depth check.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional

import networkx as nx

from policygate.errors import ValidationError
from policygate.groups.graph import add_group, remove_group
from policygate.groups.validator import GroupSpecValidator
from policygate.models import ClusterGroup, GroupSpec

logger = logging.getLogger("policygate.store")


class InMemoryGroupStore:
    """Thread-safe map of accepted ClusterGroups keyed by name."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._groups: dict[str, ClusterGroup] = {}
        self._graph = nx.DiGraph()
        self._validator = GroupSpecValidator(self)

    @classmethod
    def from_groups(cls, groups: Iterable[ClusterGroup]) -> "InMemoryGroupStore":
        """Admit *groups* in order; the first rejection propagates."""
        store = cls()
        for group in groups:
            store.admit(group)
        return store

    # --- resolver -----------------------------------------------------------

    def get(self, name: str) -> Optional[GroupSpec]:
        with self._lock:
            group = self._groups.get(name)
            return group.spec if group is not None else None

    def parents_of(self, name: str) -> list[str]:
        with self._lock:
            if name not in self._graph:
                return []
            return sorted(self._graph.predecessors(name))

    # --- accepted state -----------------------------------------------------

    def get_group(self, name: str) -> Optional[ClusterGroup]:
        with self._lock:
            return self._groups.get(name)

    def list_groups(self) -> list[ClusterGroup]:
        with self._lock:
            return [self._groups[name] for name in sorted(self._groups)]

    def graph(self) -> nx.DiGraph:
        """Copy of the reference graph."""
        with self._lock:
            return self._graph.copy()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._groups

    def __len__(self) -> int:
        with self._lock:
            return len(self._groups)

    # --- admission ----------------------------------------------------------

    def admit(self, group: ClusterGroup) -> ClusterGroup:
        """Validate *group* against current state and accept it.

        Raises the validator's error unchanged on rejection; state is left
        untouched in that case.
        """
        with self._lock:
            try:
                self._validator.validate_group(group)
            except ValidationError as exc:
                logger.info("Rejected group %s: %s", group.name, exc)
                raise
            previous = self._groups.get(group.name)
            self._groups[group.name] = group
            add_group(self._graph, group)
            logger.info(
                "%s group %s", "Updated" if previous is not None else "Accepted", group.name,
            )
            return group

    def delete(self, name: str) -> bool:
        """Remove *name*. Parents are not revalidated until their next admission."""
        with self._lock:
            if self._groups.pop(name, None) is None:
                return False
            remove_group(self._graph, name)
            parents = self.parents_of(name)
            if parents:
                logger.warning(
                    "Deleted group %s is still referenced by %s", name, ", ".join(parents),
                )
            return True

    def revalidate(self) -> dict[str, Optional[ValidationError]]:
        """Re-run validation for every accepted group against current state."""
        with self._lock:
            results: dict[str, Optional[ValidationError]] = {}
            for group in self.list_groups():
                try:
                    self._validator.validate_group(group)
                    results[group.name] = None
                except ValidationError as exc:
                    results[group.name] = exc
            return results
