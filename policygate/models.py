"""Shared Pydantic models for policygate.

Every validator and store imports from here to keep AgentConfig, GroupSpec
and the selection variants defined once. Wire names (camelCase) are kept as
aliases so manifests and config files load unchanged; Python code uses the
snake_case attributes.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from policygate import config
from policygate.errors import ConflictingSelectors


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TLSVersion(str, Enum):
    """Minimum TLS protocol versions accepted by ``tlsMinVersion``."""
    VersionTLS10 = "VersionTLS10"
    VersionTLS11 = "VersionTLS11"
    VersionTLS12 = "VersionTLS12"
    VersionTLS13 = "VersionTLS13"


class TrafficEncapMode(str, Enum):
    """Data-plane transport strategy of the agent."""
    encap = "encap"
    noEncap = "noEncap"
    hybrid = "hybrid"
    networkPolicyOnly = "networkPolicyOnly"

    @property
    def supports_egress(self) -> bool:
        """Egress SNAT relies on tunnels, so only encap mode can carry it."""
        return self is TrafficEncapMode.encap


class SelectorOperator(str, Enum):
    In = "In"
    NotIn = "NotIn"
    Exists = "Exists"
    DoesNotExist = "DoesNotExist"


# ---------------------------------------------------------------------------
# Agent configuration
# ---------------------------------------------------------------------------

class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


class EgressConfig(_Record):
    """Egress section of the agent config; bounds are checked by AgentOptions."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    max_egress_ips_per_node: int = Field(
        default=0,
        alias="maxEgressIPsPerNode",
        description="0 means the built-in ceiling",
    )
    except_cidrs: list[Any] = Field(default_factory=list, alias="exceptCIDRs")

    @property
    def effective_max_egress_ips(self) -> int:
        return self.max_egress_ips_per_node or config.MAX_EGRESS_IPS_PER_NODE


class AgentConfig(_Record):
    """Startup configuration of a node agent (subset relevant to validation)."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    tls_min_version: str = Field(default="", alias="tlsMinVersion")
    tls_cipher_suites: str = Field(default="", alias="tlsCipherSuites")
    egress: EgressConfig = Field(default_factory=EgressConfig)
    feature_gates: dict[str, bool] = Field(default_factory=dict, alias="featureGates")
    traffic_encap_mode: TrafficEncapMode = Field(
        default=TrafficEncapMode(config.DEFAULT_TRAFFIC_ENCAP_MODE),
        alias="trafficEncapMode",
    )


# ---------------------------------------------------------------------------
# Group building blocks
# ---------------------------------------------------------------------------

class LabelSelectorRequirement(_Record):
    key: str
    operator: str
    values: list[str] = Field(default_factory=list)


class LabelSelector(_Record):
    """Label predicate; an empty selector matches everything."""
    match_labels: dict[str, str] = Field(default_factory=dict, alias="matchLabels")
    match_expressions: list[LabelSelectorRequirement] = Field(
        default_factory=list, alias="matchExpressions",
    )


class IPBlock(_Record):
    cidr: str
    except_: list[str] = Field(default_factory=list, alias="except")


class ServiceReference(_Record):
    namespace: str = ""
    name: str = ""


# ---------------------------------------------------------------------------
# Selection variants (what a GroupSpec actually selects)
# ---------------------------------------------------------------------------

class SelectorSelection(_Record):
    kind: Literal["selector"] = "selector"
    pod_selector: Optional[LabelSelector] = None
    namespace_selector: Optional[LabelSelector] = None


class IPBlockSelection(_Record):
    kind: Literal["ipBlock"] = "ipBlock"
    ip_block: Optional[IPBlock] = None
    ip_blocks: tuple[IPBlock, ...] = ()

    def blocks(self) -> list[tuple[str, IPBlock]]:
        """Each block with the wire path it came from."""
        pairs = [("ipBlock", self.ip_block)] if self.ip_block is not None else []
        pairs += [(f"ipBlocks[{i}]", block) for i, block in enumerate(self.ip_blocks)]
        return pairs


class ServiceReferenceSelection(_Record):
    kind: Literal["serviceReference"] = "serviceReference"
    service_reference: ServiceReference


class ChildGroupsSelection(_Record):
    kind: Literal["childGroups"] = "childGroups"
    child_groups: tuple[str, ...]


class EmptySelection(_Record):
    kind: Literal["empty"] = "empty"


Selection = Union[
    SelectorSelection,
    IPBlockSelection,
    ServiceReferenceSelection,
    ChildGroupsSelection,
    EmptySelection,
]

# (wire name, attribute, family) in the order conflicts are reported.
SELECTION_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("childGroups", "child_groups", "childGroups"),
    ("ipBlock", "ip_block", "ipBlock"),
    ("ipBlocks", "ip_blocks", "ipBlock"),
    ("serviceReference", "service_reference", "serviceReference"),
    ("podSelector", "pod_selector", "selector"),
    ("namespaceSelector", "namespace_selector", "selector"),
)


# ---------------------------------------------------------------------------
# GroupSpec / ClusterGroup
# ---------------------------------------------------------------------------

class GroupSpec(_Record):
    """Wire shape of a group: optional, mutually exclusive selection mechanisms.

    ``ipBlock`` and ``ipBlocks`` are one family; stored v1beta1 objects only
    carry the list form.
    """
    pod_selector: Optional[LabelSelector] = Field(default=None, alias="podSelector")
    namespace_selector: Optional[LabelSelector] = Field(
        default=None, alias="namespaceSelector",
    )
    ip_block: Optional[IPBlock] = Field(default=None, alias="ipBlock")
    ip_blocks: list[IPBlock] = Field(default_factory=list, alias="ipBlocks")
    service_reference: Optional[ServiceReference] = Field(
        default=None, alias="serviceReference",
    )
    child_groups: list[str] = Field(default_factory=list, alias="childGroups")

    def populated_fields(self) -> list[str]:
        """Wire names of the populated mechanisms, in reporting order."""
        populated = []
        for wire, attr, _ in SELECTION_FIELDS:
            value = getattr(self, attr)
            # An empty selector {} still selects; an empty list does not.
            if isinstance(value, list):
                if value:
                    populated.append(wire)
            elif value is not None:
                populated.append(wire)
        return populated

    @property
    def has_children(self) -> bool:
        return bool(self.child_groups)

    def selection(self) -> Selection:
        """Parse the spec into exactly one selection variant.

        Raises
        ------
        ConflictingSelectors
            If mechanisms from two different families are populated.
        """
        populated = self.populated_fields()
        if populated:
            first = populated[0]
            for other in populated[1:]:
                if family_of(other) != family_of(first):
                    raise ConflictingSelectors(first, other)

        if self.child_groups:
            return ChildGroupsSelection(child_groups=tuple(self.child_groups))
        if self.ip_block is not None or self.ip_blocks:
            return IPBlockSelection(ip_block=self.ip_block, ip_blocks=tuple(self.ip_blocks))
        if self.service_reference is not None:
            return ServiceReferenceSelection(service_reference=self.service_reference)
        if self.pod_selector is not None or self.namespace_selector is not None:
            return SelectorSelection(
                pod_selector=self.pod_selector,
                namespace_selector=self.namespace_selector,
            )
        return EmptySelection()


def family_of(wire_name: str) -> str:
    """Return the exclusivity family of a GroupSpec wire field."""
    for wire, _, family in SELECTION_FIELDS:
        if wire == wire_name:
            return family
    raise KeyError(wire_name)


class ObjectMeta(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    labels: dict[str, str] = Field(default_factory=dict)


class ClusterGroup(BaseModel):
    """A named group object as stored by the control plane."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    api_version: str = Field(
        default=f"{config.GROUP_API_GROUP}/{config.GROUP_API_VERSION}",
        alias="apiVersion",
    )
    kind: str = "ClusterGroup"
    metadata: ObjectMeta
    spec: GroupSpec = Field(default_factory=GroupSpec)

    @property
    def name(self) -> str:
        return self.metadata.name

    @classmethod
    def build(cls, name: str, **spec_fields) -> "ClusterGroup":
        """Shorthand used by callers that construct groups in code."""
        return cls(metadata=ObjectMeta(name=name), spec=GroupSpec(**spec_fields))

    def to_manifest(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
