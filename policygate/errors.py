"""Error taxonomy for policygate.

Every rejection is a :class:`ValidationError` subclass carrying a ``kind``
tag plus the offending ``field`` and ``value`` so callers can build a precise
message (process exit at agent startup, admission denial for groups).
Validation errors are deterministic and never retried.
"""

from __future__ import annotations

from typing import Any, Optional


class PolicyGateError(Exception):
    """Base class for every error raised by policygate."""


class ConfigLoadError(PolicyGateError):
    """A config or manifest file could not be read or did not match its schema."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"failed to load {path}: {reason}")


class ValidationError(PolicyGateError, ValueError):
    """A candidate object was rejected."""

    kind: str = "ValidationError"

    def __init__(
        self,
        message: str,
        *,
        field: str = "",
        value: Any = None,
    ) -> None:
        self.message = message
        self.field = field
        self.value = value
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "field": self.field,
            "value": self.value,
            "message": self.message,
        }


# ---------------------------------------------------------------------------
# Agent options
# ---------------------------------------------------------------------------

class InvalidTLSMinVersion(ValidationError):
    kind = "InvalidTLSMinVersion"


class InvalidTLSCipherSuite(ValidationError):
    kind = "InvalidTLSCipherSuite"


class InvalidEgressConfig(ValidationError):
    kind = "InvalidEgressConfig"


class EgressLimitExceeded(ValidationError):
    kind = "EgressLimitExceeded"

    def __init__(self, value: int, limit: int) -> None:
        self.limit = limit
        super().__init__(
            f"maxEgressIPsPerNode cannot be greater than {limit}",
            field="egress.maxEgressIPsPerNode",
            value=value,
        )


class InvalidCIDR(ValidationError):
    kind = "InvalidCIDR"

    def __init__(
        self,
        message: str,
        *,
        field: str,
        value: str,
        index: Optional[int] = None,
    ) -> None:
        self.index = index
        super().__init__(message, field=field, value=value)


class InvalidFeatureGate(ValidationError):
    kind = "InvalidFeatureGate"


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------

class ConflictingSelectors(ValidationError):
    kind = "ConflictingSelectors"

    def __init__(self, first: str, second: str) -> None:
        self.fields = (first, second)
        super().__init__(
            f"{first} and {second} cannot be set together; at most one of "
            f"podSelector/namespaceSelector, ipBlock/ipBlocks, serviceReference or "
            f"childGroups can be set",
            field=first,
            value=[first, second],
        )


class ChildGroupNotFound(ValidationError):
    kind = "ChildGroupNotFound"

    def __init__(self, child: str) -> None:
        super().__init__(
            f"childGroup {child} does not exist",
            field="childGroups",
            value=child,
        )


class NestedGroupExceedsDepth(ValidationError):
    kind = "NestedGroupExceedsDepth"


class InvalidIPBlock(ValidationError):
    kind = "InvalidIPBlock"


class InvalidLabelSelector(ValidationError):
    kind = "InvalidLabelSelector"


class InvalidServiceReference(ValidationError):
    kind = "InvalidServiceReference"


class DuplicateChildGroup(ValidationError):
    kind = "DuplicateChildGroup"
