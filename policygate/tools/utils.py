"""Small shared utilities for policygate.

Helpers for console output and JSON / YAML document I/O.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console

from policygate import config

logger = logging.getLogger("policygate")

# ---------------------------------------------------------------------------
# Rich console
# ---------------------------------------------------------------------------

console = Console(stderr=True)


def rprint(msg: str, *, style: str = "") -> None:
    """Print with Rich styling; long paths are never wrapped mid-line."""
    console.print(msg, style=style, soft_wrap=True)


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------

def write_json(data: Any, path: str | Path) -> Path:
    """Write *data* as pretty-printed JSON and return the resolved path."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2, default=str)
    return p


def read_json(path: str | Path) -> Any:
    """Read JSON from *path* and return the parsed object."""
    with open(path, encoding="utf-8") as fh:
        return json.load(fh)


# ---------------------------------------------------------------------------
# YAML / JSON documents
# ---------------------------------------------------------------------------

def read_documents(path: str | Path) -> list[Any]:
    """Read every document in *path*.

    YAML files may hold several ``---`` separated documents; JSON files hold
    one document, or a list which is flattened. Empty documents are dropped.
    """
    p = Path(path)
    if p.suffix.lower() in config.YAML_SUFFIXES:
        with open(p, encoding="utf-8") as fh:
            docs = [doc for doc in yaml.safe_load_all(fh) if doc is not None]
    else:
        data = read_json(p)
        docs = data if isinstance(data, list) else [data]
    logger.debug("Read %d document(s) from %s", len(docs), p)
    return docs
