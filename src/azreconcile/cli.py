"""Azure reconcile CLI (azrec).

Usage:
    azrec plan topology.yaml        # Show what a pass would change
    azrec apply topology.yaml       # Run a reconcile pass
    azrec dns zones                 # List public and private zones
    azrec dns records example.com   # List the record sets of a zone

Configuration is read from the environment (AZURE_SUBSCRIPTION_ID,
AZURE_RESOURCEGROUP_NAME, AZURE_LOCATION, ...).
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from .cloud import AzureCloud
from .config import Config, ConfigurationError
from .credentials import CredentialError
from .errors import BackendError
from .main import build_cloud, setup_logging
from .runner import CHANGE_OUTCOMES, ReconcileResult, reconcile
from .topology import TopologyLoadError, load_topology

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def load_config() -> Config:
    try:
        return Config.from_env()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


def connect(config: Config) -> AzureCloud:
    try:
        return build_cloud(config)
    except CredentialError as e:
        raise click.ClickException(str(e)) from e


def echo_result(result: ReconcileResult) -> None:
    """Print one line per resource that changed, failed or was skipped."""
    for task_result in result.results:
        kind, name = task_result.key
        if task_result.error is not None:
            click.secho(f"FAILED   {kind} {name}: {task_result.error}", fg="red")
        elif task_result.skipped_because is not None:
            dependency = "/".join(task_result.skipped_because)
            click.secho(f"SKIPPED  {kind} {name} (dependency {dependency} failed)", fg="yellow")
        elif task_result.outcome in CHANGE_OUTCOMES:
            click.echo(f"{task_result.outcome.value:<8} {kind} {name}")

    click.echo(
        f"\n{len(result.results)} resources, {len(result.changes)} changes, "
        f"{len(result.failed)} failed, {len(result.skipped)} skipped"
    )


def run_pass(topology_path: Path, dry_run: bool) -> None:
    config = load_config()
    try:
        topology = load_topology(topology_path)
    except TopologyLoadError as e:
        raise click.ClickException(str(e)) from e

    cloud = connect(config)
    result = reconcile(
        topology.to_tasks(config.resource_group_name),
        cloud,
        dry_run=dry_run or config.dry_run,
    )
    echo_result(result)
    if not result.success:
        sys.exit(1)


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version="0.1.0", prog_name="azrec")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Level of the JSON log written to stderr",
)
def cli(log_level: str) -> None:
    """Reconcile Azure DNS zones, records and network security groups."""
    setup_logging(getattr(logging, log_level.upper()), stream=sys.stderr)


@cli.command()
@click.argument("topology", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def plan(topology: Path) -> None:
    """Show the changes a pass over TOPOLOGY would make, without applying them."""
    run_pass(topology, dry_run=True)


@cli.command()
@click.argument("topology", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def apply(topology: Path) -> None:
    """Reconcile the resources declared in TOPOLOGY."""
    run_pass(topology, dry_run=False)


# =============================================================================
# DNS Commands
# =============================================================================


@cli.group()
def dns() -> None:
    """Inspect DNS zones and record sets."""
    pass


@dns.command()
@click.option("--resource-group", "-g", help="Resource group (default: AZURE_RESOURCEGROUP_NAME)")
def zones(resource_group: str | None) -> None:
    """List public and private zones."""
    cloud = connect(load_config())
    try:
        found = cloud.dns().zones(resource_group).list()
    except BackendError as e:
        raise click.ClickException(str(e)) from e

    for zone in found:
        click.echo(f"{zone.name}\t{zone.kind.value}\t{zone.id or ''}")


@dns.command()
@click.argument("zone")
@click.option("--resource-group", "-g", help="Resource group (default: AZURE_RESOURCEGROUP_NAME)")
def records(zone: str, resource_group: str | None) -> None:
    """List the record sets of ZONE."""
    cloud = connect(load_config())
    try:
        found = cloud.dns().zones(resource_group).get(zone)
        if found is None:
            raise click.ClickException(f"Zone not found: {zone}")
        rrsets = found.resource_record_sets().list()
    except BackendError as e:
        raise click.ClickException(str(e)) from e

    for rrset in rrsets:
        click.echo(f"{rrset.name}\t{rrset.type.value}\t{rrset.ttl}\t{','.join(rrset.rrdatas)}")


if __name__ == "__main__":
    cli()
