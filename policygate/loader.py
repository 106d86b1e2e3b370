"""Load agent configs and group manifests from disk into typed records."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pydantic
import yaml

from policygate.errors import ConfigLoadError
from policygate.models import AgentConfig, ClusterGroup
from policygate.tools.utils import read_documents

logger = logging.getLogger("policygate.loader")

MANIFEST_SUFFIXES = (".yaml", ".yml", ".json")


def _read(path: str | Path) -> list[Any]:
    try:
        return read_documents(path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigLoadError(str(path), str(exc)) from exc


def load_agent_config(path: str | Path) -> AgentConfig:
    """Read a single agent config document."""
    docs = _read(path)
    if len(docs) != 1 or not isinstance(docs[0], dict):
        raise ConfigLoadError(str(path), "expected exactly one mapping document")
    try:
        return AgentConfig.model_validate(docs[0])
    except pydantic.ValidationError as exc:
        raise ConfigLoadError(str(path), str(exc)) from exc


def load_groups(path: str | Path) -> list[ClusterGroup]:
    """Read ClusterGroup manifests from a file or every manifest in a directory.

    Directory entries are read in name order so admission order is stable.
    """
    p = Path(path)
    if p.is_dir():
        groups: list[ClusterGroup] = []
        for child in sorted(p.iterdir()):
            if child.suffix.lower() in MANIFEST_SUFFIXES:
                groups.extend(load_groups(child))
        return groups

    groups = []
    for doc in _read(p):
        if not isinstance(doc, dict):
            raise ConfigLoadError(str(p), "manifest document is not a mapping")
        if doc.get("kind", "ClusterGroup") != "ClusterGroup":
            logger.debug("Skipping %s document in %s", doc.get("kind"), p)
            continue
        try:
            groups.append(ClusterGroup.model_validate(doc))
        except pydantic.ValidationError as exc:
            raise ConfigLoadError(str(p), str(exc)) from exc
    return groups
