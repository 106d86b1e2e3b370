"""Agent startup options — validation of the agent config record.

Usage::

    from policygate.agent.options import AgentOptions
    opts = AgentOptions(agent_config, FeatureGates.parse("Egress=true"))
    opts.validate()
    if opts.enable_egress:
        ...

``validate`` stops at the first failing check and raises it; the bootstrap
that called it is expected to abort.
"""

from __future__ import annotations

import logging
from typing import Optional

from policygate import config
from policygate.agent.tls import (
    INSECURE_CIPHER_SUITES,
    CipherSuite,
    parse_cipher_suites,
    parse_tls_min_version,
)
from policygate.errors import EgressLimitExceeded, InvalidCIDR, InvalidEgressConfig
from policygate.features import EGRESS, FeatureGates
from policygate.models import AgentConfig, TLSVersion, TrafficEncapMode
from policygate.tools.netutils import parse_cidr

logger = logging.getLogger("policygate.agent")


class AgentOptions:
    """Holds one agent config plus the flags derived while validating it."""

    def __init__(
        self,
        agent_config: AgentConfig,
        feature_gates: Optional[FeatureGates] = None,
    ) -> None:
        self.config = agent_config
        self.feature_gates = feature_gates or FeatureGates()
        self.enable_egress = False
        self.tls_min_version: Optional[TLSVersion] = None
        self.tls_cipher_suites: list[CipherSuite] = []

    def validate(self, encap_mode: Optional[TrafficEncapMode] = None) -> None:
        """Run every check in order; raise the first failure."""
        if encap_mode is None:
            encap_mode = self.config.traffic_encap_mode
        self.validate_feature_gates()
        self.validate_tls_options()
        self.validate_egress_config(encap_mode)

    def validate_feature_gates(self) -> None:
        if self.config.feature_gates:
            self.feature_gates = self.feature_gates.with_overrides(self.config.feature_gates)

    def validate_tls_options(self) -> None:
        self.tls_min_version = parse_tls_min_version(self.config.tls_min_version)
        self.tls_cipher_suites = parse_cipher_suites(self.config.tls_cipher_suites)
        insecure = [s.value for s in self.tls_cipher_suites if s in INSECURE_CIPHER_SUITES]
        if insecure:
            logger.warning("Insecure TLS cipher suites configured: %s", ", ".join(insecure))

    def validate_egress_config(self, encap_mode: TrafficEncapMode) -> None:
        if not self.feature_gates.enabled(EGRESS):
            return
        if not TrafficEncapMode(encap_mode).supports_egress:
            logger.info(
                "The %s feature gate is enabled, but it won't work because it is "
                "only applicable to the %s mode",
                EGRESS, TrafficEncapMode.encap.value,
            )
            return

        egress = self.config.egress
        if egress.max_egress_ips_per_node < 0:
            raise InvalidEgressConfig(
                "maxEgressIPsPerNode cannot be negative",
                field="egress.maxEgressIPsPerNode",
                value=egress.max_egress_ips_per_node,
            )
        if egress.max_egress_ips_per_node > config.MAX_EGRESS_IPS_PER_NODE:
            raise EgressLimitExceeded(
                egress.max_egress_ips_per_node, config.MAX_EGRESS_IPS_PER_NODE,
            )
        for index, cidr in enumerate(egress.except_cidrs):
            try:
                parse_cidr(cidr)
            except ValueError:
                raise InvalidCIDR(
                    f"Egress Except CIDR {cidr} is invalid",
                    field=f"egress.exceptCIDRs[{index}]",
                    value=cidr,
                    index=index,
                ) from None
        self.enable_egress = True
