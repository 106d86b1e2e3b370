"""policygate CLI — validate agent configs and ClusterGroup manifests.

Usage::

    python -m policygate.main agent antrea-agent.conf --feature-gates Egress=true
    python -m policygate.main group cg-parent.yaml --store groups/
    python -m policygate.main group cg-parent.yaml --cluster --kubeconfig ~/.kube/config
    python -m policygate.main audit groups/ --graph-out graph.json
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from policygate import config
from policygate.errors import PolicyGateError, ValidationError
from policygate.tools.utils import console, rprint

# ---------------------------------------------------------------------------
# Typer application
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="policygate",
    help="policygate — admission checks for agent configs and ClusterGroups",
    add_completion=False,
)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _setup_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fail(exc: PolicyGateError) -> typer.Exit:
    kind = exc.kind if isinstance(exc, ValidationError) else type(exc).__name__
    rprint(f"[bold red]✘ {kind}:[/bold red] {escape(str(exc))}")
    return typer.Exit(code=1)


# ---------------------------------------------------------------------------
# agent — validate an agent config file
# ---------------------------------------------------------------------------

@app.command()
def agent(
    config_path: Path = typer.Argument(..., help="Agent config file (YAML or JSON)."),
    feature_gates: str = typer.Option(
        config.DEFAULT_FEATURE_GATES,
        "--feature-gates",
        help="Comma separated Name=true|false overrides, applied before the file's own.",
    ),
    encap_mode: Optional[str] = typer.Option(
        None,
        "--encap-mode",
        help="Override the traffic encapsulation mode from the file.",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable DEBUG logging."),
) -> None:
    """Validate an agent config the way the agent does at startup."""
    _setup_logging(debug)
    from policygate.agent.options import AgentOptions
    from policygate.features import FeatureGates
    from policygate.loader import load_agent_config
    from policygate.models import TrafficEncapMode

    mode: Optional[TrafficEncapMode] = None
    if encap_mode:
        try:
            mode = TrafficEncapMode(encap_mode)
        except ValueError:
            allowed = ", ".join(m.value for m in TrafficEncapMode)
            rprint(f"[bold red]✘ unknown encap mode {escape(encap_mode)}[/bold red] (one of {allowed})")
            raise typer.Exit(code=1)

    try:
        agent_config = load_agent_config(config_path)
        opts = AgentOptions(agent_config, FeatureGates.parse(feature_gates))
        opts.validate(mode)
    except PolicyGateError as exc:
        raise _fail(exc)

    rprint(f"[bold green]✔ {config_path} is valid[/bold green]")
    rprint(
        f"  TLS min version: {opts.tls_min_version.value if opts.tls_min_version else 'default'}  "
        f"Cipher suites: {len(opts.tls_cipher_suites) or 'default'}  "
        f"Egress: {'enabled' if opts.enable_egress else 'disabled'}",
        style="dim",
    )
    if opts.enable_egress:
        rprint(
            f"  Max Egress IPs per node: {agent_config.egress.effective_max_egress_ips}",
            style="dim",
        )


# ---------------------------------------------------------------------------
# group — admit ClusterGroup manifests
# ---------------------------------------------------------------------------

@app.command()
def group(
    manifests: list[Path] = typer.Argument(..., help="ClusterGroup manifest file(s)."),
    store: Optional[Path] = typer.Option(
        None,
        "--store",
        help="File or directory of already accepted groups to seed the store with.",
    ),
    cluster: bool = typer.Option(
        False,
        "--cluster",
        help="Resolve child groups against a live cluster instead (read only).",
    ),
    kubeconfig: str = typer.Option(config.DEFAULT_KUBECONFIG, "--kubeconfig", "-k"),
    debug: bool = typer.Option(False, "--debug", help="Enable DEBUG logging."),
) -> None:
    """Admit group manifests in order; exit 1 if any is rejected."""
    _setup_logging(debug)
    from policygate.groups.store import InMemoryGroupStore
    from policygate.groups.validator import GroupSpecValidator
    from policygate.loader import load_groups

    try:
        candidates = [g for path in manifests for g in load_groups(path)]
        if cluster:
            from policygate.groups.k8s_store import KubernetesGroupResolver

            validator = GroupSpecValidator(KubernetesGroupResolver.from_kubeconfig(kubeconfig))
            admit = validator.validate_group
        else:
            seed = load_groups(store) if store is not None else []
            admit = InMemoryGroupStore.from_groups(seed).admit
    except PolicyGateError as exc:
        raise _fail(exc)

    rejected = 0
    for candidate in candidates:
        try:
            admit(candidate)
        except ValidationError as exc:
            rejected += 1
            rprint(f"  [red]✘ {candidate.name}[/red] {exc.kind}: {escape(str(exc))}")
            continue
        rprint(f"  [green]✔ {candidate.name}[/green]")

    rprint(f"\n  {len(candidates) - rejected} accepted, {rejected} rejected")
    if rejected:
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# audit — reference graph health of a stored group set
# ---------------------------------------------------------------------------

@app.command()
def audit(
    source: Path = typer.Argument(..., help="File or directory of ClusterGroup manifests."),
    graph_out: Optional[Path] = typer.Option(
        None, "--graph-out", help="Write the reference graph as JSON.",
    ),
) -> None:
    """Report dangling references, nesting depth and cycles without admitting."""
    _setup_logging(debug=False)
    from policygate.groups.graph import audit_graph, build_reference_graph, save_graph
    from policygate.loader import load_groups

    try:
        groups = load_groups(source)
    except PolicyGateError as exc:
        raise _fail(exc)

    graph = build_reference_graph(groups)
    report = audit_graph(graph)
    if graph_out is not None:
        rprint(f"  Graph saved to {save_graph(graph, graph_out)}", style="dim")

    table = Table(title=f"{report.group_count} group(s), {report.reference_count} reference(s)")
    table.add_column("Check")
    table.add_column("Result")
    table.add_row("max nesting depth", f"{report.max_depth} (limit {config.MAX_GROUP_NESTING_DEPTH})")
    table.add_row("too deep", ", ".join(report.too_deep) or "-")
    table.add_row("dangling", ", ".join(f"{p} → {c}" for p, c in report.dangling) or "-")
    table.add_row("cycles", "; ".join(" → ".join(c) for c in report.cycles) or "-")
    console.print(table)

    if not report.healthy:
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
