"""
merkledrop CLI - off-line tooling for Merkle-committed distributions.

Main entry point for all CLI commands.
"""

import logging
import sys
from pathlib import Path

import click

from merkledrop.core.config import load_config
from merkledrop.utils.logger import setup_logging


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--env-file", default=None, help="Load MERKLEDROP_* settings from this .env file")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, env_file):
    """merkledrop - Merkle-committed reward distribution"""
    config = load_config(env_file)
    if debug:
        config.log_level = logging.DEBUG
    config.ensure_dirs()
    setup_logging(level=config.log_level, log_file=config.log_file)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# =============================================================================
# Generator Commands
# =============================================================================


@cli.command("generate")
@click.argument("rewards", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--out", "out_path", default=None, type=click.Path(dir_okay=False, path_type=Path),
              help="Artifact path (default: distribution.json)")
@click.pass_context
def generate(ctx, rewards, out_path):
    """Build the Merkle root and proofs for a CSV/JSON reward list"""
    from merkledrop.core.commitment import RewardGenerator, load_rewards
    from merkledrop.core.errors import AirdropError

    out_path = out_path or Path(ctx.obj["config"].artifact_name)

    try:
        entries = load_rewards(rewards)
        distribution = RewardGenerator(entries).process()
    except (ValueError, AirdropError) as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    distribution.save(out_path)

    click.echo(f"✓ Merkle root: {distribution.root}")
    click.echo(f"  Entries: {len(distribution.claims)}")
    click.echo(f"  Total amount: {distribution.total_amount}")
    click.echo(f"  Saved to: {out_path}")


@cli.command("proof")
@click.argument("artifact", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("address")
def proof(artifact, address):
    """Show the claims and proofs of one recipient"""
    from merkledrop.core.commitment import Distribution

    distribution = Distribution.load(artifact)
    try:
        claims = distribution.proofs_for(address)
    except ValueError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    if not claims:
        click.echo(f"No claims for {address}")
        sys.exit(1)

    for claim in claims:
        click.echo(f"Claim #{claim.index}")
        click.echo(f"  reward_id: {claim.reward_id}")
        click.echo(f"  amount: {claim.amount}")
        click.echo(f"  leaf: {claim.leaf}")
        click.echo("  proof:")
        for sibling in claim.proof:
            click.echo(f"    {sibling}")


@cli.command("verify-proof")
@click.argument("artifact", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("index", type=int)
def verify_proof_cmd(artifact, index):
    """Re-verify one stored claim against the artifact's root"""
    from merkledrop.core.commitment import Distribution

    distribution = Distribution.load(artifact)
    if not 0 <= index < len(distribution.claims):
        click.echo(f"❌ Claim index {index} out of range", err=True)
        sys.exit(1)

    if distribution.verify_claim(index):
        click.echo(f"✅ Claim #{index} verifies against {distribution.root}")
    else:
        click.echo(f"❌ Claim #{index} does NOT verify against {distribution.root}")
        sys.exit(1)


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
@click.option("--recipients", default=4, type=click.IntRange(min=1), help="Number of generated recipients")
@click.pass_context
def demo(ctx, recipients):
    """Run an end-to-end campaign against an in-memory treasury"""
    from merkledrop.crypto import generate_keypair, bytes_to_hex
    from merkledrop.core import Airdrop, AirdropError, InMemoryAssetLedger, NATIVE_ASSET
    from merkledrop.core.commitment import RewardEntry, RewardGenerator

    click.echo("=" * 60)
    click.echo("  MERKLEDROP - DEMO")
    click.echo("=" * 60)
    click.echo()

    admin = generate_keypair().address_bytes
    users = [generate_keypair().address_bytes for _ in range(recipients)]
    entries = [RewardEntry(recipient=user, amount=(i + 1) * 100) for i, user in enumerate(users)]

    click.echo("🌳 Committing reward list...")
    distribution = RewardGenerator(entries).process()
    click.echo(f"  ✓ Root: {distribution.root}")
    click.echo(f"  ✓ {len(entries)} entries, total {distribution.total_amount}")
    click.echo()

    treasury = InMemoryAssetLedger()
    treasury.deposit(NATIVE_ASSET, int(distribution.total_amount))
    airdrop = Airdrop.from_config(ctx.obj["config"], treasury, owner=admin)
    campaign_id = airdrop.create_campaign(admin, NATIVE_ASSET, 0, distribution.root)
    click.echo(f"🏁 Campaign {campaign_id} created")
    click.echo()

    click.echo("💸 Redeeming...")
    for claim in distribution.claims:
        receipt = airdrop.redeem(campaign_id, claim.recipient, int(claim.amount), claim.proof)
        click.echo(f"  ✓ {bytes_to_hex(receipt.recipient)[:12]}... received {receipt.amount}")

    click.echo()
    click.echo("🔁 Replaying first claim...")
    first = distribution.claims[0]
    try:
        airdrop.redeem(campaign_id, first.recipient, int(first.amount), first.proof)
    except AirdropError as e:
        click.echo(f"  ✓ Rejected: {e.code}")

    click.echo()
    click.echo("📊 Final Statistics:")
    click.echo(f"  Distributor: {airdrop.stats()}")
    click.echo(f"  Treasury: {treasury.stats()}")
    click.echo()
    click.echo("✅ Demo complete!")


if __name__ == "__main__":
    cli()
