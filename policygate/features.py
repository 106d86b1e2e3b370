"""Feature-gate registry.

A closed set of named boolean switches with defaults. Callers build a
:class:`FeatureGates` instance (from the agent config, a ``--feature-gates``
string, or both) and pass it explicitly into the validators, so validation
never reads global state.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from policygate.errors import InvalidFeatureGate

logger = logging.getLogger("policygate.features")

EGRESS = "Egress"

# name -> default
KNOWN_FEATURES: dict[str, bool] = {
    "AntreaPolicy": True,
    "AntreaProxy": True,
    EGRESS: True,
    "FlowExporter": False,
    "Multicast": False,
    "NodePortLocal": True,
    "ServiceExternalIP": False,
    "Traceflow": True,
}


class FeatureGates:
    """Immutable view of feature switches, defaults merged with overrides."""

    def __init__(self, overrides: Optional[Mapping[str, bool]] = None) -> None:
        self._enabled = dict(KNOWN_FEATURES)
        for name, value in (overrides or {}).items():
            if name not in KNOWN_FEATURES:
                raise InvalidFeatureGate(
                    f"unrecognized feature gate: {name}",
                    field="featureGates",
                    value=name,
                )
            self._enabled[name] = bool(value)

    @classmethod
    def parse(cls, spec: str) -> "FeatureGates":
        """Build gates from a ``"Egress=true,Multicast=false"`` string."""
        return cls(parse_overrides(spec))

    def with_overrides(self, overrides: Mapping[str, bool]) -> "FeatureGates":
        merged = self.overrides()
        merged.update(overrides)
        return FeatureGates(merged)

    def enabled(self, name: str) -> bool:
        try:
            return self._enabled[name]
        except KeyError:
            raise InvalidFeatureGate(
                f"unrecognized feature gate: {name}", field="featureGates", value=name,
            ) from None

    def overrides(self) -> dict[str, bool]:
        """Only the switches that differ from their defaults."""
        return {
            name: value for name, value in self._enabled.items()
            if KNOWN_FEATURES[name] != value
        }

    def as_dict(self) -> dict[str, bool]:
        return dict(self._enabled)

    def __repr__(self) -> str:
        return f"FeatureGates({self.overrides()!r})"


def parse_overrides(spec: str) -> dict[str, bool]:
    """Parse ``Name=bool`` pairs separated by commas; blanks are skipped."""
    overrides: dict[str, bool] = {}
    for item in spec.split(","):
        item = item.strip()
        if not item:
            continue
        name, sep, raw = item.partition("=")
        name, raw = name.strip(), raw.strip().lower()
        if not sep or raw not in ("true", "false"):
            raise InvalidFeatureGate(
                f"invalid feature gate value {item!r}, expected Name=true|false",
                field="featureGates",
                value=item,
            )
        overrides[name] = raw == "true"
    logger.debug("Parsed feature gate overrides: %s", overrides)
    return overrides
