"""
Command-Line Interface for the credential proof orchestrator

Runs the driver-licence / subscription demo scenarios against the mock
engine or a proof server, and lists the supported proof systems.
"""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from vcp_orchestrator import __version__
from vcp_orchestrator.credential_protocol import (
    EngineConfig,
    KnownUnimplemented,
    OrchestratorError,
    ProofWarningError,
    get_proof_engine,
)
from vcp_orchestrator.credential_protocol.config import ENGINE_REGISTRY
from vcp_orchestrator.credential_protocol.variants import VARIANTS, variant_names
from vcp_orchestrator.scenarios import SCENARIOS, build_session, run_scenario


@click.group()
@click.version_option(version=__version__)
def main():
    """
    Credential Proof Orchestrator

    Drives issuance, accumulator management, proof creation and verification
    of selective-disclosure credentials against a proof engine.

    ⚠️  The mock engine provides no cryptographic security.
    """
    pass


def _outcome_row(outcome):
    revealed = ", ".join(
        f"{label}{list(idxs)}"
        for label, idxs in sorted(outcome.artifact.data_for_verifier.revealed_indices().items())
    )
    report = outcome.report
    if report.decryption is None:
        decryption = "-"
    elif isinstance(report.decryption, KnownUnimplemented):
        decryption = f"[yellow]unimplemented ({report.decryption.variant})[/yellow]"
    else:
        decryption = "[green]verified[/green]"
    return (
        outcome.name,
        revealed or "-",
        str(len(report.result.decrypt_responses)),
        decryption,
    )


@main.command()
@click.option(
    '--scenario',
    type=click.Choice(['all'] + sorted(SCENARIOS), case_sensitive=False),
    default='all',
    help='Scenario to run (default: all)'
)
@click.option(
    '--variant',
    type=click.Choice(list(variant_names())),
    help='Proof system (default: VCP_ZKP_LIB or DNC)'
)
@click.option(
    '--engine',
    type=click.Choice(sorted(ENGINE_REGISTRY)),
    help='Proof engine (default: VCP_PROOF_ENGINE or mock)'
)
@click.option(
    '--endpoint',
    type=str,
    help='Proof server base URL for the http engine'
)
@click.option(
    '--config',
    'config_path',
    type=click.Path(exists=True, dir_okay=False),
    help='YAML file with engine settings'
)
@click.option(
    '--blinded',
    is_flag=True,
    help='Issue credentials through the blind signing flow'
)
@click.option(
    '--output',
    type=click.Path(file_okay=False),
    help='Directory to write CBOR proof artifacts to'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Enable verbose output'
)
def demo(scenario, variant, engine, endpoint, config_path, blinded, output, verbose):
    """
    Issue the demo credentials and prove/verify each scenario.

    Examples:

        # All scenarios on the mock engine
        vcp-orchestrator demo

        # Verifiable encryption on a local proof server
        vcp-orchestrator demo --engine http --scenario encryption --variant AC2C_BBS
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    console = Console()

    try:
        base = EngineConfig.from_yaml(config_path) if config_path else None
        config = EngineConfig.from_env(base).with_overrides(
            engine=engine, zkp_lib=variant, endpoint=endpoint
        )
        click.echo("\n" + "=" * 70)
        click.echo(click.style("Credential Proof Demo", fg="cyan", bold=True))
        click.echo("=" * 70)

        names = sorted(SCENARIOS) if scenario == 'all' else [scenario]
        with get_proof_engine(config) as proof_engine:
            click.echo(f"Engine: {proof_engine.engine_name} ({proof_engine.variant.name})")
            session = build_session(proof_engine, blinded=blinded)
            click.echo(click.style(
                f"✓ Issued {', '.join(sorted(session.credentials))}"
                f"{' (blinded)' if blinded else ''}",
                fg="green",
            ))

            table = Table(title="Scenarios")
            table.add_column("Scenario", style="cyan")
            table.add_column("Revealed")
            table.add_column("Decrypted")
            table.add_column("Decryption check")
            for name in names:
                outcome = run_scenario(session, name)
                table.add_row(*_outcome_row(outcome))
                if output:
                    out_dir = Path(output)
                    out_dir.mkdir(parents=True, exist_ok=True)
                    (out_dir / f"{name}.cbor").write_bytes(outcome.artifact.serialize())
            console.print(table)

        click.echo(click.style("\n✓ All scenarios verified", fg="green"))

    except ProofWarningError as e:
        click.echo(click.style(f"\n✗ {e.operation} returned warnings:", fg="red"), err=True)
        for warning in e.warnings:
            click.echo(f"  • {warning}", err=True)
        sys.exit(1)
    except OrchestratorError as e:
        click.echo(click.style(f"\n✗ Error: {e}", fg="red"), err=True)
        sys.exit(1)


@main.command()
def variants():
    """List supported proof systems."""
    table = Table(title="Proof systems")
    table.add_column("Name", style="cyan")
    table.add_column("zkpLib")
    table.add_column("Decryption check")
    table.add_column("Description")
    for name in variant_names():
        v = VARIANTS[name]
        table.add_row(
            v.name,
            v.zkp_lib,
            "yes" if v.supports_verify_decryption else "no",
            v.description,
        )
    Console().print(table)


@main.command()
def version():
    """Show version information."""
    click.echo(f"\nCredential Proof Orchestrator v{__version__}")
    click.echo("The mock engine is for tests and demos only.\n")


if __name__ == "__main__":
    main()
