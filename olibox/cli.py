"""Command line interface for the OLI Box console.

Commands:
    oli-box status                              Device DID, payment address, use case
    oli-box did create                          Create the device DID
    oli-box did reset --yes                     Destroy the device identity
    oli-box claim show [--mode M]               Stored device claim contents
    oli-box claim submit --ctype ID --field K=V Build and register a device claim
    oli-box attestation status [--ctype ID]     Attestation status per CType
    oli-box attestation watch --ctype ID        Poll until the CType is decided
    oli-box use-case show|list|register|deregister
"""

import asyncio
import json
from typing import Any, Coroutine, List, NoReturn, Optional

import typer

from olibox import __version__
from olibox.api.client import get_api_client
from olibox.api.models import ClaimMode
from olibox.attestation import AttestationTracker, TieBreak
from olibox.bootstrap import IdentityBootstrapCoordinator
from olibox.core.config import ATTESTATION_TIE_BREAK, POLL_INTERVAL_SECONDS
from olibox.core.exceptions import OliBoxError
from olibox.core.logging import configure_logging
from olibox.issuance import IssuanceClient
from olibox.kilt.ctype import get_ctype_registry
from olibox.use_case import UseCaseService

# Exit codes
EXIT_FAILURE = 1
EXIT_USAGE = 2

app = typer.Typer(
    name="oli-box",
    help="Operate an OLI box: identities, claims, attestations and use cases.",
    no_args_is_help=True,
)
did_app = typer.Typer(name="did", help="Device DID management.", no_args_is_help=True)
claim_app = typer.Typer(name="claim", help="Device claims.", no_args_is_help=True)
attestation_app = typer.Typer(name="attestation", help="Attestation status.", no_args_is_help=True)
use_case_app = typer.Typer(name="use-case", help="Use case registration.", no_args_is_help=True)

app.add_typer(did_app)
app.add_typer(claim_app)
app.add_typer(attestation_app)
app.add_typer(use_case_app)


def output(data: Any) -> None:
    """Write ``data`` as JSON to stdout."""
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def output_error(code: str, message: str, exit_code: int = EXIT_FAILURE) -> NoReturn:
    """Write an error object to stderr and exit."""
    typer.echo(json.dumps({"code": code, "message": message}, ensure_ascii=False), err=True)
    raise typer.Exit(exit_code)


def run(coro: Coroutine) -> Any:
    """Run ``coro``; typed errors become an error object and a failing exit."""
    try:
        return asyncio.run(coro)
    except OliBoxError as e:
        output_error(e.code, e.message)


def _parse_fields(fields: List[str]) -> dict[str, str]:
    parsed = {}
    for item in fields:
        name, sep, value = item.partition("=")
        if not sep or not name:
            output_error("INVALID_FIELD", f"Expected NAME=VALUE, got '{item}'", EXIT_USAGE)
        parsed[name.strip()] = value
    return parsed


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Log level (default: OLI_LOG_LEVEL or INFO)",
    ),
    log_file: Optional[str] = typer.Option(
        None,
        "--log-file",
        help="Also append JSON logs to this file",
    ),
) -> None:
    configure_logging(log_file=log_file, log_level=log_level)


@app.command("version")
def version_cmd() -> None:
    """Show the console version."""
    output({"version": __version__})


@app.command("status")
def status_cmd() -> None:
    """Show device DID, payment address and active use case."""

    async def _status():
        api = get_api_client()
        coordinator = IdentityBootstrapCoordinator(api)
        await coordinator.initialize()
        use_case = await UseCaseService(api).active()
        return {**coordinator.snapshot(), "use_case": use_case}

    output(run(_status()))


# =============================================================================
# did
# =============================================================================


@did_app.command("create")
def did_create_cmd() -> None:
    """Create the device DID. Waits for ledger confirmation."""

    async def _create():
        coordinator = IdentityBootstrapCoordinator(get_api_client())
        await coordinator.initialize()
        return await coordinator.create_device_did()

    output({"did": run(_create())})


@did_app.command("reset")
def did_reset_cmd(
    yes: bool = typer.Option(
        False,
        "--yes",
        help="Confirm destroying the device identity and its claims",
    ),
) -> None:
    """Destroy the device identity and everything bound to it."""
    if not yes:
        output_error("CONFIRMATION_REQUIRED", "Pass --yes to reset the device identity", EXIT_USAGE)

    async def _reset():
        return await IdentityBootstrapCoordinator(get_api_client()).reset()

    output({"reset": run(_reset())})


# =============================================================================
# claim
# =============================================================================


@claim_app.command("show")
def claim_show_cmd(
    mode: Optional[ClaimMode] = typer.Option(None, "--mode", "-m", help="Claim mode"),
) -> None:
    """Show the stored device claim contents."""
    contents = run(get_api_client().get_claim(mode))
    output({"contents": contents})


@claim_app.command("submit")
def claim_submit_cmd(
    ctype: str = typer.Option(..., "--ctype", "-c", help="CType id (kilt:ctype:0x...)"),
    field: List[str] = typer.Option(..., "--field", "-f", help="Claim field as NAME=VALUE"),
    mode: Optional[ClaimMode] = typer.Option(None, "--mode", "-m", help="Claim mode"),
) -> None:
    """Build a device claim and register it with the attester.

    Examples:
        oli-box claim submit -c kilt:ctype:0x... -f Bruttoleistung=9,8 -f 'Art der Anlage=PV'
    """
    raw_fields = _parse_fields(field)

    async def _submit():
        api = get_api_client()
        coordinator = IdentityBootstrapCoordinator(api)
        await coordinator.initialize()
        owner = coordinator.require_device_did()
        claim = await IssuanceClient(api).request_device_attestation(
            ctype, raw_fields, owner, mode
        )
        return claim.to_json()

    output({"claim": run(_submit())})


# =============================================================================
# attestation
# =============================================================================


@attestation_app.command("status")
def attestation_status_cmd(
    ctype: Optional[List[str]] = typer.Option(
        None,
        "--ctype",
        "-c",
        help="CType id; all registered CTypes when omitted",
    ),
    tie_break: TieBreak = typer.Option(
        TieBreak(ATTESTATION_TIE_BREAK),
        "--tie-break",
        help="Record selection when several approved attestations match",
    ),
) -> None:
    """Show the attestation status of one or more CTypes."""
    schema_ids = ctype or get_ctype_registry().ids
    tracker = AttestationTracker(get_api_client(), tie_break=tie_break)
    results = run(tracker.poll(schema_ids))
    output([r.to_dict() for r in results.values()])


@attestation_app.command("watch")
def attestation_watch_cmd(
    ctype: str = typer.Option(..., "--ctype", "-c", help="CType id"),
    interval: float = typer.Option(
        POLL_INTERVAL_SECONDS,
        "--interval",
        "-i",
        help="Seconds between polls",
    ),
) -> None:
    """Poll until the CType is attested or revoked."""
    tracker = AttestationTracker(get_api_client(), interval=interval)
    try:
        result = run(tracker.wait_until_decided(ctype))
    except KeyboardInterrupt:
        output_error("INTERRUPTED", "Stopped watching", EXIT_FAILURE)
    output(result.to_dict())


# =============================================================================
# use-case
# =============================================================================


@use_case_app.command("show")
def use_case_show_cmd() -> None:
    """Show the active use case."""
    output({"use_case": run(UseCaseService(get_api_client()).active())})


@use_case_app.command("list")
def use_case_list_cmd() -> None:
    """List the known use cases."""
    output([
        {"name": u.name, "did": u.did, "url": u.url}
        for u in UseCaseService(get_api_client()).known()
    ])


@use_case_app.command("register")
def use_case_register_cmd(
    did: str = typer.Argument(..., help="DID of a known use case"),
    no_deregister: bool = typer.Option(
        False,
        "--no-deregister",
        help="Keep the conflict token (demonstration; the use case rejects it)",
    ),
    add: bool = typer.Option(
        False,
        "--add",
        "-a",
        help="Add the DID to the known use cases before registering",
    ),
    name: Optional[str] = typer.Option(
        None,
        "--name",
        help="Display name for an added use case",
    ),
    url: str = typer.Option(
        "",
        "--url",
        help="Service URL for an added use case",
    ),
) -> None:
    """Register the device with a known use case.

    Example:
        oli-box use-case register did:web:example.com
        oli-box use-case register did:web:x --add --name "My use case"
    """
    service = UseCaseService(get_api_client())
    if add:
        service.add_known(did, name=name, url=url)
    result = run(service.register(did, update_conflict_token=not no_deregister))
    output({"registered": did, "result": result})


@use_case_app.command("deregister")
def use_case_deregister_cmd() -> None:
    """Leave the active use case."""
    result = run(UseCaseService(get_api_client()).deregister())
    output({"deregistered": True, "result": result})


if __name__ == "__main__":
    app()
