"""
Tests for agent/options.py - agent startup config validation.

Feature gates and encap mode are passed in explicitly, no agent required.
"""

import pytest

from policygate.agent.options import AgentOptions
from policygate.agent.tls import CipherSuite
from policygate.errors import (
    EgressLimitExceeded,
    InvalidCIDR,
    InvalidEgressConfig,
    InvalidFeatureGate,
    InvalidTLSCipherSuite,
    InvalidTLSMinVersion,
)
from policygate.features import FeatureGates
from policygate.models import AgentConfig, EgressConfig, TLSVersion, TrafficEncapMode


def _egress_options(egress: EgressConfig, egress_enabled: bool = True) -> AgentOptions:
    gates = FeatureGates({"Egress": egress_enabled})
    return AgentOptions(AgentConfig(egress=egress), gates)


# ---------------------------------------------------------------------------
# TLS options
# ---------------------------------------------------------------------------

def test_tls_empty_input_is_valid():
    """Test that empty TLS settings mean 'use defaults'."""
    opts = AgentOptions(AgentConfig(tls_cipher_suites="", tls_min_version=""))
    opts.validate_tls_options()

    assert opts.tls_min_version is None
    assert opts.tls_cipher_suites == []


def test_tls_invalid_min_version():
    """Test that an unknown TLSMinVersion is rejected."""
    opts = AgentOptions(AgentConfig(tls_min_version="foo"))

    with pytest.raises(InvalidTLSMinVersion, match="invalid TLSMinVersion") as exc_info:
        opts.validate_tls_options()

    assert exc_info.value.kind == "InvalidTLSMinVersion"
    assert exc_info.value.value == "foo"


def test_tls_min_version_is_case_sensitive():
    """Test that near-miss spellings of a version are not accepted."""
    opts = AgentOptions(AgentConfig(tls_min_version="versiontls12"))

    with pytest.raises(InvalidTLSMinVersion):
        opts.validate_tls_options()


def test_tls_invalid_cipher_suite_names_offender():
    """Test that one unknown cipher suite rejects the whole list."""
    opts = AgentOptions(AgentConfig(
        tls_cipher_suites="TLS_ECDHE_RSA_WITH_CHACHA20_POLY1305, foo",
        tls_min_version="VersionTLS10",
    ))

    with pytest.raises(InvalidTLSCipherSuite, match="invalid TLSCipherSuites") as exc_info:
        opts.validate_tls_options()

    assert exc_info.value.value == "foo"


def test_tls_valid_input():
    """Test that known suites and version pass, whitespace is ignored."""
    opts = AgentOptions(AgentConfig(
        tls_cipher_suites="TLS_ECDHE_RSA_WITH_CHACHA20_POLY1305, TLS_RSA_WITH_AES_128_GCM_SHA256",
        tls_min_version="VersionTLS12",
    ))
    opts.validate_tls_options()

    assert opts.tls_min_version is TLSVersion.VersionTLS12
    assert opts.tls_cipher_suites == [
        CipherSuite.TLS_ECDHE_RSA_WITH_CHACHA20_POLY1305,
        CipherSuite.TLS_RSA_WITH_AES_128_GCM_SHA256,
    ]


def test_tls_cipher_order_and_spacing_do_not_matter():
    """Test that every valid suite is accepted in any order and spacing."""
    names = [suite.value for suite in CipherSuite]
    forward = AgentOptions(AgentConfig(tls_cipher_suites=",".join(names)))
    backward = AgentOptions(AgentConfig(tls_cipher_suites=" ,  ".join(reversed(names))))

    forward.validate_tls_options()
    backward.validate_tls_options()

    assert set(forward.tls_cipher_suites) == set(backward.tls_cipher_suites) == set(CipherSuite)


def test_tls_every_version_accepted():
    """Test that each member of the version enumeration is accepted."""
    for version in TLSVersion:
        opts = AgentOptions(AgentConfig(tls_min_version=version.value))
        opts.validate_tls_options()
        assert opts.tls_min_version is version


# ---------------------------------------------------------------------------
# Egress
# ---------------------------------------------------------------------------

def test_egress_enabled():
    """Test that a well-formed config in encap mode enables Egress."""
    opts = _egress_options(EgressConfig())

    opts.validate_egress_config(TrafficEncapMode.encap)

    assert opts.enable_egress is True


def test_egress_unsupported_encap_mode():
    """Test that noEncap mode silently leaves Egress disabled."""
    opts = _egress_options(EgressConfig())

    opts.validate_egress_config(TrafficEncapMode.noEncap)

    assert opts.enable_egress is False


def test_egress_too_large_max_egress_ips_per_node():
    """Test that maxEgressIPsPerNode above the ceiling is rejected."""
    opts = _egress_options(EgressConfig(max_egress_ips_per_node=300))

    with pytest.raises(EgressLimitExceeded, match="maxEgressIPsPerNode cannot be greater than 255"):
        opts.validate_egress_config(TrafficEncapMode.encap)

    assert opts.enable_egress is False


def test_egress_max_at_ceiling_is_valid():
    """Test that exactly the ceiling is accepted."""
    opts = _egress_options(EgressConfig(max_egress_ips_per_node=255))

    opts.validate_egress_config(TrafficEncapMode.encap)

    assert opts.enable_egress is True


def test_egress_invalid_except_cidr():
    """Test that a malformed except CIDR is rejected with its position."""
    opts = _egress_options(EgressConfig(except_cidrs=["10.0.0.0/8", "1.1.1.300/32"]))

    with pytest.raises(InvalidCIDR, match="Egress Except CIDR 1.1.1.300/32 is invalid") as exc_info:
        opts.validate_egress_config(TrafficEncapMode.encap)

    assert exc_info.value.index == 1
    assert exc_info.value.value == "1.1.1.300/32"
    assert opts.enable_egress is False


def test_egress_negative_max_egress_ips_per_node():
    """Test that a negative limit is rejected once Egress is active."""
    opts = _egress_options(EgressConfig(max_egress_ips_per_node=-1))

    with pytest.raises(InvalidEgressConfig, match="cannot be negative"):
        opts.validate_egress_config(TrafficEncapMode.encap)

    assert opts.enable_egress is False


def test_egress_unknown_keys_ignored_with_gate_disabled():
    """Test that an unrecognised egress key never blocks a disabled gate."""
    cfg = AgentConfig.model_validate({
        "egress": {"exceptCIDRs": [42], "snatFullyRandomPorts": True},
    })
    opts = AgentOptions(cfg, FeatureGates({"Egress": False}))

    opts.validate()

    assert opts.enable_egress is False


def test_egress_except_cidr_requires_prefix():
    """Test that a bare address is not a CIDR."""
    opts = _egress_options(EgressConfig(except_cidrs=["10.0.0.1"]))

    with pytest.raises(InvalidCIDR):
        opts.validate_egress_config(TrafficEncapMode.encap)


def test_egress_except_cidrs_ipv4_and_ipv6():
    """Test that both address families and host bits are accepted."""
    opts = _egress_options(EgressConfig(except_cidrs=["10.0.0.1/24", "fd00:10::/64"]))

    opts.validate_egress_config(TrafficEncapMode.encap)

    assert opts.enable_egress is True


def test_egress_feature_disabled_skips_validation():
    """Test that a disabled gate ignores even malformed sub-fields."""
    opts = _egress_options(
        EgressConfig(max_egress_ips_per_node=300, except_cidrs=["not-a-cidr"]),
        egress_enabled=False,
    )

    opts.validate_egress_config(TrafficEncapMode.encap)

    assert opts.enable_egress is False


def test_egress_unsupported_mode_skips_validation():
    """Test that non-encap modes ignore malformed sub-fields."""
    for mode in (TrafficEncapMode.noEncap, TrafficEncapMode.hybrid, TrafficEncapMode.networkPolicyOnly):
        opts = _egress_options(EgressConfig(max_egress_ips_per_node=300, except_cidrs=["1.1.1.300/32"]))

        opts.validate_egress_config(mode)

        assert opts.enable_egress is False


# ---------------------------------------------------------------------------
# Full validate()
# ---------------------------------------------------------------------------

def test_validate_uses_config_encap_mode():
    """Test that validate() falls back to the mode in the config."""
    cfg = AgentConfig.model_validate({"trafficEncapMode": "noEncap"})
    opts = AgentOptions(cfg)

    opts.validate()

    assert opts.enable_egress is False


def test_validate_explicit_mode_overrides_config():
    """Test that an explicit encap mode wins over the config value."""
    cfg = AgentConfig.model_validate({"trafficEncapMode": "noEncap"})
    opts = AgentOptions(cfg)

    opts.validate(TrafficEncapMode.encap)

    assert opts.enable_egress is True


def test_validate_reports_tls_before_egress():
    """Test that the first failing check is the one raised."""
    cfg = AgentConfig(tls_min_version="foo", egress=EgressConfig(max_egress_ips_per_node=300))
    opts = AgentOptions(cfg)

    with pytest.raises(InvalidTLSMinVersion):
        opts.validate()

    assert opts.enable_egress is False


def test_validate_config_feature_gates_override():
    """Test that featureGates from the config file are applied."""
    cfg = AgentConfig.model_validate({
        "featureGates": {"Egress": False},
        "egress": {"maxEgressIPsPerNode": 300},
    })
    opts = AgentOptions(cfg)

    opts.validate()

    assert opts.enable_egress is False
    assert opts.feature_gates.enabled("Egress") is False


def test_validate_unknown_feature_gate_in_config():
    """Test that an unknown gate in the config file is rejected."""
    cfg = AgentConfig.model_validate({"featureGates": {"NoSuchFeature": True}})

    with pytest.raises(InvalidFeatureGate):
        AgentOptions(cfg).validate()


def test_tls_insecure_suite_logs_warning(caplog):
    """Test that insecure but known suites are accepted with a warning."""
    opts = AgentOptions(AgentConfig(tls_cipher_suites="TLS_RSA_WITH_RC4_128_SHA"))

    with caplog.at_level("WARNING", logger="policygate.agent"):
        opts.validate_tls_options()

    assert opts.tls_cipher_suites == [CipherSuite.TLS_RSA_WITH_RC4_128_SHA]
    assert "TLS_RSA_WITH_RC4_128_SHA" in caplog.text
