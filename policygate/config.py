"""policygate configuration — constants, defaults, API coordinates.

All tunables live here so validators stay free of magic numbers.
Override at runtime via environment variables or CLI flags.
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Agent limits
# ---------------------------------------------------------------------------

# Egress IPs are assigned per node from a fixed pool of packet marks.
MAX_EGRESS_IPS_PER_NODE: int = 255

DEFAULT_TRAFFIC_ENCAP_MODE: str = "encap"

# Comma separated "Name=bool" list applied on top of the registry defaults.
DEFAULT_FEATURE_GATES: str = os.getenv("POLICYGATE_FEATURE_GATES", "")

# ---------------------------------------------------------------------------
# Group limits
# ---------------------------------------------------------------------------

# A parent may reference children, children may not reference anything.
MAX_GROUP_NESTING_DEPTH: int = 2

# ---------------------------------------------------------------------------
# Kubernetes API coordinates for ClusterGroup objects
# ---------------------------------------------------------------------------

GROUP_API_GROUP: str = os.getenv("POLICYGATE_GROUP_API_GROUP", "crd.antrea.io")
GROUP_API_VERSION: str = os.getenv("POLICYGATE_GROUP_API_VERSION", "v1beta1")
GROUP_PLURAL: str = "clustergroups"

DEFAULT_KUBECONFIG: str = os.getenv(
    "POLICYGATE_KUBECONFIG", os.path.expanduser("~/.kube/config")
)

# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------

YAML_SUFFIXES: tuple[str, ...] = (".yaml", ".yml", ".conf")
