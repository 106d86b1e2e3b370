"""Group reference graph — who lists whom in ``childGroups``.

Nodes:  group names. ``accepted=True`` for stored groups, ``False`` for names
        that are only referenced (dangling after a deletion).
Edges:  parent → child.

Usage::

    from policygate.groups.graph import build_reference_graph, audit_graph
    G = build_reference_graph(store.list())
    report = audit_graph(G)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

import networkx as nx
from pydantic import BaseModel, Field

from policygate import config
from policygate.models import ClusterGroup
from policygate.tools.utils import write_json

logger = logging.getLogger("policygate.graph")


class GraphAudit(BaseModel):
    """Structural health of the accepted group set."""
    group_count: int = 0
    reference_count: int = 0
    max_depth: int = 0
    dangling: list[tuple[str, str]] = Field(default_factory=list)
    too_deep: list[str] = Field(default_factory=list)
    cycles: list[list[str]] = Field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return not (self.dangling or self.too_deep or self.cycles)


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------

def add_group(graph: nx.DiGraph, group: ClusterGroup) -> None:
    """Insert or replace *group* and its outgoing references."""
    name = group.name
    previous: list[str] = []
    if name in graph:
        previous = list(graph.successors(name))
        graph.remove_edges_from([(name, child) for child in previous])
    graph.add_node(name, accepted=True, selection=_selection_kind(group))
    for child in group.spec.child_groups:
        if child not in graph:
            graph.add_node(child, accepted=False, selection="")
        graph.add_edge(name, child)
    _prune_dangling(graph, previous)


def remove_group(graph: nx.DiGraph, name: str) -> None:
    """Drop *name*; keep it as a dangling node while others still reference it."""
    if name not in graph:
        return
    children = list(graph.successors(name))
    graph.remove_edges_from([(name, child) for child in children])
    if graph.in_degree(name):
        graph.nodes[name].update(accepted=False, selection="")
    else:
        graph.remove_node(name)
    _prune_dangling(graph, children)


def _prune_dangling(graph: nx.DiGraph, names: Iterable[str]) -> None:
    """Drop unaccepted nodes among *names* that nothing references any more."""
    for child in names:
        if child not in graph:
            continue
        if not graph.nodes[child].get("accepted") and not graph.in_degree(child):
            graph.remove_node(child)


def build_reference_graph(groups: Iterable[ClusterGroup]) -> nx.DiGraph:
    G = nx.DiGraph()
    for group in groups:
        add_group(G, group)
    return G


def _selection_kind(group: ClusterGroup) -> str:
    fields = group.spec.populated_fields()
    return ",".join(fields) if fields else "empty"


# ---------------------------------------------------------------------------
# Analysis helpers
# ---------------------------------------------------------------------------

def group_depths(graph: nx.DiGraph) -> dict[str, int]:
    """Nesting depth per accepted group: a leaf is 1, its parent 2, ...

    Only defined for acyclic graphs.
    """
    depths: dict[str, int] = {}
    for node in reversed(list(nx.topological_sort(graph))):
        below = [depths[s] for s in graph.successors(node)]
        depths[node] = 1 + max(below, default=0)
    return {n: d for n, d in depths.items() if graph.nodes[n].get("accepted")}


def audit_graph(graph: nx.DiGraph) -> GraphAudit:
    accepted = [n for n, data in graph.nodes(data=True) if data.get("accepted")]
    dangling = sorted(
        (parent, child) for parent, child in graph.edges()
        if not graph.nodes[child].get("accepted")
    )
    cycles = [sorted(c) for c in nx.simple_cycles(graph)]
    max_depth = 0
    too_deep: list[str] = []
    if not cycles:
        depths = group_depths(graph)
        max_depth = max(depths.values(), default=0)
        too_deep = sorted(n for n, d in depths.items() if d > config.MAX_GROUP_NESTING_DEPTH)
    report = GraphAudit(
        group_count=len(accepted),
        reference_count=graph.number_of_edges(),
        max_depth=max_depth,
        dangling=dangling,
        too_deep=too_deep,
        cycles=sorted(cycles),
    )
    logger.info(
        "Audited %d group(s): depth %d, %d dangling, %d cycle(s)",
        report.group_count, report.max_depth, len(report.dangling), len(report.cycles),
    )
    return report


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def save_graph(graph: nx.DiGraph, path: str | Path) -> Path:
    """Serialise graph to JSON via ``node_link_data``."""
    data: dict[str, Any] = nx.node_link_data(graph)
    return write_json(data, path)


def load_graph(path: str | Path) -> nx.DiGraph:
    """Load graph from JSON file."""
    with open(path) as fh:
        data = json.load(fh)
    return nx.node_link_graph(data, directed=True)
