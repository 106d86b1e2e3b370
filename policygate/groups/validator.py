"""Admission checks for ClusterGroup specs.

Checks run in a fixed order so a spec is always rejected for its most basic
problem first:

  1. exclusivity  — at most one selection family is populated
  2. content      — CIDRs, label selectors and service references are well formed
  3. existence    — every child group is already accepted
  4. depth        — children are leaves, and a child never gains children

Only steps 3 and 4 consult the resolver. Resolver errors other than "not
found" propagate to the caller untouched.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Protocol, Sequence

from policygate import config
from policygate.errors import (
    ChildGroupNotFound,
    DuplicateChildGroup,
    InvalidCIDR,
    InvalidIPBlock,
    InvalidLabelSelector,
    InvalidServiceReference,
    NestedGroupExceedsDepth,
)
from policygate.models import (
    ChildGroupsSelection,
    ClusterGroup,
    GroupSpec,
    IPBlock,
    IPBlockSelection,
    LabelSelector,
    SelectorOperator,
    SelectorSelection,
    Selection,
    ServiceReferenceSelection,
)
from policygate.tools.netutils import cidr_contains, parse_cidr

logger = logging.getLogger("policygate.groups")

_LABEL_NAME_RE = re.compile(r"^([A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?)$")
_DNS_SUBDOMAIN_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$")


class GroupResolver(Protocol):
    """Read-only view over accepted groups."""

    def get(self, name: str) -> Optional[GroupSpec]:
        """Return the accepted spec for *name*, or ``None`` if there is none."""

    def parents_of(self, name: str) -> list[str]:
        """Names of accepted groups listing *name* in their childGroups."""


class GroupSpecValidator:
    """Validates candidate group specs against a resolver snapshot."""

    def __init__(self, resolver: GroupResolver) -> None:
        self.resolver = resolver

    def validate_group(self, group: ClusterGroup) -> Selection:
        return self.validate(group.spec, name=group.name)

    def validate(self, spec: GroupSpec, name: Optional[str] = None) -> Selection:
        """Validate *spec*; return its parsed selection.

        *name* is the candidate's own name. Without it the self-reference and
        parent-side depth checks are skipped.
        """
        selection = spec.selection()
        validate_selection_content(selection)
        if isinstance(selection, ChildGroupsSelection):
            children = self._resolve_children(selection.child_groups)
            self._check_depth(name, children)
        logger.debug("Group %s passed validation (%s)", name or "<unnamed>", selection.kind)
        return selection

    def _resolve_children(self, names: Sequence[str]) -> dict[str, GroupSpec]:
        children: dict[str, GroupSpec] = {}
        for child in names:
            spec = self.resolver.get(child)
            if spec is None:
                raise ChildGroupNotFound(child)
            children[child] = spec
        return children

    def _check_depth(self, name: Optional[str], children: dict[str, GroupSpec]) -> None:
        if name is not None and name in children:
            raise NestedGroupExceedsDepth(
                f"group {name} cannot include itself as a childGroup",
                field="childGroups",
                value=name,
            )
        for child, spec in children.items():
            if spec.has_children:
                raise NestedGroupExceedsDepth(
                    f"cannot include {child} as a childGroup as it has childGroups "
                    f"itself; max nesting level is {config.MAX_GROUP_NESTING_DEPTH}",
                    field="childGroups",
                    value=child,
                )
        if name is None:
            return
        parents = [p for p in self.resolver.parents_of(name) if p != name]
        if parents:
            raise NestedGroupExceedsDepth(
                f"cannot set childGroups for {name} as it is a childGroup of "
                f"{parents[0]}; max nesting level is {config.MAX_GROUP_NESTING_DEPTH}",
                field="childGroups",
                value=parents[0],
            )


# ---------------------------------------------------------------------------
# Content checks (no resolver needed)
# ---------------------------------------------------------------------------

def validate_selection_content(selection: Selection) -> None:
    if isinstance(selection, IPBlockSelection):
        for where, block in selection.blocks():
            validate_ip_block(block, where)
    elif isinstance(selection, SelectorSelection):
        if selection.pod_selector is not None:
            validate_label_selector(selection.pod_selector, "podSelector")
        if selection.namespace_selector is not None:
            validate_label_selector(selection.namespace_selector, "namespaceSelector")
    elif isinstance(selection, ServiceReferenceSelection):
        ref = selection.service_reference
        if not ref.namespace or not ref.name:
            raise InvalidServiceReference(
                "serviceReference requires both namespace and name",
                field="serviceReference",
                value=f"{ref.namespace}/{ref.name}",
            )
    elif isinstance(selection, ChildGroupsSelection):
        seen: set[str] = set()
        for child in selection.child_groups:
            if child in seen:
                raise DuplicateChildGroup(
                    f"childGroup {child} is listed more than once",
                    field="childGroups",
                    value=child,
                )
            seen.add(child)


def validate_ip_block(block: IPBlock, where: str = "ipBlock") -> None:
    try:
        network = parse_cidr(block.cidr)
    except ValueError:
        raise InvalidCIDR(
            f"ipBlock CIDR {block.cidr} is invalid", field=f"{where}.cidr", value=block.cidr,
        ) from None
    for index, literal in enumerate(block.except_):
        field = f"{where}.except[{index}]"
        try:
            excepted = parse_cidr(literal)
        except ValueError:
            raise InvalidCIDR(
                f"ipBlock except CIDR {literal} is invalid",
                field=field, value=literal, index=index,
            ) from None
        # except entries must be proper subnets of cidr
        if excepted == network or not cidr_contains(network, excepted):
            raise InvalidIPBlock(
                f"ipBlock except CIDR {literal} is not strictly within {block.cidr}",
                field=field,
                value=literal,
            )


def validate_label_selector(selector: LabelSelector, field: str) -> None:
    for key, value in selector.match_labels.items():
        _check_label_key(key, f"{field}.matchLabels")
        if value and not _is_label_value(value):
            raise InvalidLabelSelector(
                f"invalid label value {value!r} for key {key!r}",
                field=f"{field}.matchLabels",
                value=value,
            )
    for index, req in enumerate(selector.match_expressions):
        where = f"{field}.matchExpressions[{index}]"
        _check_label_key(req.key, where)
        try:
            op = SelectorOperator(req.operator)
        except ValueError:
            raise InvalidLabelSelector(
                f"{req.operator!r} is not a valid label selector operator",
                field=where,
                value=req.operator,
            ) from None
        if op in (SelectorOperator.In, SelectorOperator.NotIn) and not req.values:
            raise InvalidLabelSelector(
                f"values must be non-empty when operator is {op.value}",
                field=where, value=req.key,
            )
        if op in (SelectorOperator.Exists, SelectorOperator.DoesNotExist) and req.values:
            raise InvalidLabelSelector(
                f"values must be empty when operator is {op.value}",
                field=where, value=req.key,
            )
        for value in req.values:
            if value and not _is_label_value(value):
                raise InvalidLabelSelector(
                    f"invalid label value {value!r}", field=where, value=value,
                )


def _check_label_key(key: str, field: str) -> None:
    prefix, sep, name = key.rpartition("/")
    ok = bool(name) and len(name) <= 63 and _LABEL_NAME_RE.match(name) is not None
    if sep:
        ok = ok and 0 < len(prefix) <= 253 and _DNS_SUBDOMAIN_RE.match(prefix) is not None
    if not ok:
        raise InvalidLabelSelector(f"invalid label key {key!r}", field=field, value=key)


def _is_label_value(value: str) -> bool:
    return len(value) <= 63 and _LABEL_NAME_RE.match(value) is not None
