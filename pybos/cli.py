"""CLI interface for pybos."""

import logging
from pathlib import Path
from typing import Any, Optional

import click
from rich.progress import Progress, SpinnerColumn, TextColumn

from .api import SocialDbClient
from .config import config
from .exceptions import (
    BosConfigError,
    BosDepositPolicyError,
    BosError,
    BosLocalError,
    BosRpcError,
    BosSubmitError,
)
from .output import OutputFormatter
from .sync import (
    DeployEngine,
    DeployResult,
    ExportSubmitter,
    RemoteComponentClient,
    SignerKey,
    SyncAction,
    download_components,
    load_local_records,
)
from .sync.comparator import ComponentComparator, render_code_diff
from .utils import format_near_amount, is_valid_component_name, widget_key

logger = logging.getLogger(__name__)


def _remote(ctx: Any) -> RemoteComponentClient:
    """Build the remote client for the selected network."""
    network = config.get_network(ctx.obj.get("network"), ctx.obj.get("rpc_url"))
    rpc = SocialDbClient(rpc_url=network.rpc_url)
    ctx.call_on_close(rpc.close)
    logger.debug(f"Using network {network.name} ({network.rpc_url})")
    return RemoteComponentClient(
        rpc=rpc,
        network_name=network.name,
        social_contracts=config.social_contracts,
    )


def _report_error(out: OutputFormatter, error: BosError) -> None:
    """Print an error with a category matching its origin."""
    if isinstance(error, BosDepositPolicyError):
        out.error(f"Permission error: {error}")
    elif isinstance(error, BosRpcError):
        out.error(f"RPC error: {error}")
    elif isinstance(error, BosLocalError):
        out.error(f"Local components error: {error}")
    elif isinstance(error, BosSubmitError):
        if error.status is not None:
            out.error(f"Transaction status: {error.status}")
        out.error(str(error))
    else:
        out.error(str(error))


def _report_export(
    out: OutputFormatter, result: DeployResult, verb: str, export_path: Path
) -> None:
    """Print the components in an exported, still unsigned transaction."""
    out.success(
        f"Transaction {verb} <{len(result.exported)}> components was "
        f"exported to {export_path}:"
    )
    for name in result.exported:
        out.print(f" * {name}")
    out.info(f"Attached deposit: {format_near_amount(result.deposit)}")


@click.group()
@click.option(
    "--network",
    "-n",
    envvar="BOS_NETWORK",
    help="Network name (mainnet, testnet or one from the config file)",
)
@click.option("--rpc-url", envvar="BOS_RPC_URL", help="Override the RPC endpoint")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pybos")
@click.pass_context
def main(
    ctx: Any,
    network: Optional[str],
    rpc_url: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """pybos - Download, diff, deploy and delete BOS components on SocialDB."""
    ctx.ensure_object(dict)
    ctx.obj["network"] = network
    ctx.obj["rpc_url"] = rpc_url
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pybos").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        config.validate()
    except BosConfigError as e:
        ctx.obj["out"].error(f"Configuration error: {e}")
        ctx.exit(1)


@main.command()
@click.argument("account_id")
@click.option(
    "--dest",
    "-d",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Destination directory (default: ./src)",
)
@click.pass_context
def download(ctx: Any, account_id: str, dest: Optional[Path]) -> None:
    """Download components from an account."""
    out: OutputFormatter = ctx.obj["out"]
    dest = dest or config.source_dir

    try:
        remote = _remote(ctx)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            disable=out.quiet or out.json_output,
        ) as progress:
            progress.add_task(f"Downloading components of {account_id}...", total=None)
            paths = download_components(remote, account_id, dest)
    except BosError as e:
        _report_error(out, e)
        ctx.exit(1)

    if out.json_output:
        out.output_json(paths)
        return
    if not paths:
        out.info(f"There are currently no components in the account <{account_id}>.")
        return
    out.success(
        f"Components for account <{account_id}> were downloaded into "
        f"<{dest}> successfully"
    )


@main.command(name="ls")
@click.argument("account_id")
@click.pass_context
def list_remote(ctx: Any, account_id: str) -> None:
    """List remote components with the block height of their last change."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        heights = _remote(ctx).fetch_block_heights(account_id)
    except BosError as e:
        _report_error(out, e)
        ctx.exit(1)

    if not heights and not out.json_output:
        out.info(f"There are currently no components in the account <{account_id}>.")
        return
    rows = [
        {
            "name": name,
            "block_height": heights[name],
            "path": widget_key(account_id, name),
        }
        for name in sorted(heights)
    ]
    out.output_table(rows, ["name", "block_height", "path"], title=account_id)


@main.command()
@click.argument("account_id")
@click.option(
    "--src",
    "-s",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Local component directory (default: ./src)",
)
@click.pass_context
def diff(ctx: Any, account_id: str, src: Optional[Path]) -> None:
    """Show differences between local components and an account."""
    out: OutputFormatter = ctx.obj["out"]
    src = src or config.source_dir

    try:
        local = load_local_records(src)
        remote_components = _remote(ctx).fetch_records(account_id, local.keys())
    except BosError as e:
        _report_error(out, e)
        ctx.exit(1)

    decisions = ComponentComparator().compare(local, remote_components)

    if out.json_output:
        out.output_json({d.name: d.action.value for d in decisions})
        return

    for decision in decisions:
        if decision.action is SyncAction.UNCHANGED:
            out.info(f"Component <{decision.name}> has not changed")
            continue
        out.print(f"Component <{decision.name}>: {decision.reason}")
        old_code = decision.remote.code if decision.remote is not None else ""
        if decision.code_changed:
            out.print_diff(
                render_code_diff(decision.name, old_code, decision.local.code)
            )
        if decision.metadata_changed:
            old = decision.remote.metadata if decision.remote is not None else None
            out.print(f"  remote metadata: {old.to_dict() if old else None}")
            out.print(f"  local metadata:  {decision.local.metadata.to_dict()}")

    changed = sum(1 for d in decisions if d.action.needs_write)
    out.info(f"{changed} of {len(decisions)} component(s) differ from <{account_id}>")


@main.command()
@click.argument("account_id")
@click.option("--signer", required=True, help="Signer account ID")
@click.option(
    "--public-key",
    required=True,
    help="Public key the transaction will be signed with (ed25519:...)",
)
@click.option(
    "--src",
    "-s",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Local component directory (default: ./src)",
)
@click.option(
    "--export",
    "export_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the unsigned transaction to this JSON file for signing",
)
@click.option("--dry-run", is_flag=True, help="Show what would be deployed")
@click.pass_context
def deploy(
    ctx: Any,
    account_id: str,
    signer: str,
    public_key: str,
    src: Optional[Path],
    export_path: Optional[Path],
    dry_run: bool,
) -> None:
    """Deploy components whose code or metadata has changed."""
    out: OutputFormatter = ctx.obj["out"]
    src = src or config.source_dir

    if not dry_run and export_path is None:
        out.error("Either --export FILE or --dry-run is required")
        ctx.exit(1)

    try:
        engine = DeployEngine(
            remote=_remote(ctx),
            submitter=ExportSubmitter(export_path) if export_path else None,
            output=out,
            minimal_deposit=config.minimal_deposit,
            new_account_deposit=config.new_account_deposit,
            gas=config.set_gas,
        )
        result = engine.deploy(
            src,
            account_id,
            SignerKey(account_id=signer, public_key=public_key),
            dry_run=dry_run,
        )
    except BosError as e:
        _report_error(out, e)
        ctx.exit(1)

    if out.json_output:
        out.output_json(result.to_dict())
        return
    if not result.has_changes:
        return

    changed = [d.name for d in result.decisions if d.action.needs_write]
    if dry_run:
        out.info(f"Would deploy {len(changed)} component(s) to <{account_id}>:")
        for name in changed:
            out.print(f" * {name}")
        out.info(f"Deposit: {format_near_amount(result.deposit)}")
        return

    _report_export(out, result, "deploying", export_path)


@main.command()
@click.argument("account_id")
@click.argument("names", nargs=-1, required=True)
@click.option("--signer", required=True, help="Signer account ID")
@click.option(
    "--public-key",
    required=True,
    help="Public key the transaction will be signed with (ed25519:...)",
)
@click.option(
    "--export",
    "export_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the unsigned transaction to this JSON file for signing",
)
@click.option("--dry-run", is_flag=True, help="Show what would be deleted")
@click.pass_context
def delete(
    ctx: Any,
    account_id: str,
    names: tuple[str, ...],
    signer: str,
    public_key: str,
    export_path: Optional[Path],
    dry_run: bool,
) -> None:
    """Delete components NAMES from an account."""
    out: OutputFormatter = ctx.obj["out"]

    if not dry_run and export_path is None:
        out.error("Either --export FILE or --dry-run is required")
        ctx.exit(1)
    invalid = [name for name in names if not is_valid_component_name(name)]
    if invalid:
        out.error(f"Invalid component name(s): {', '.join(map(repr, invalid))}")
        ctx.exit(1)

    try:
        engine = DeployEngine(
            remote=_remote(ctx),
            submitter=ExportSubmitter(export_path) if export_path else None,
            output=out,
            minimal_deposit=config.minimal_deposit,
            new_account_deposit=config.new_account_deposit,
            gas=config.set_gas,
        )
        result = engine.delete(
            account_id,
            names,
            SignerKey(account_id=signer, public_key=public_key),
            dry_run=dry_run,
        )
    except BosError as e:
        _report_error(out, e)
        ctx.exit(1)

    if out.json_output:
        out.output_json(result.to_dict())
        return
    if not result.has_changes:
        return

    if dry_run:
        out.info(f"Deposit: {format_near_amount(result.deposit)}")
        return

    _report_export(out, result, "deleting", export_path)


if __name__ == "__main__":
    main()
