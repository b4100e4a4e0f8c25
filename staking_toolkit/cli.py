#!/usr/bin/env python3
"""
Unified CLI for the Staking Toolkit.

Examples:
  - Wallets
    staking connectors
    staking connect --connector Injected
    staking connect                      # resume a stored session
    staking disconnect

  - Gas
    staking gas-info
    staking gas-info --source node --chain-id 1

  - Stake
    staking encode --owner 0x... --allocation 12:1000 --allocation 0x2a:250.5
    staking stake --connector Injected --allocation 12:1000 --yes
"""

import argparse
import asyncio
from typing import List, Optional

from rich.prompt import Confirm
from rich.table import Table

from staking_toolkit.commands.helpers import handle_command_error
from staking_toolkit.commands.validation import (
    parse_allocation,
    validate_chain_id,
    validate_eth_address,
)
from staking_toolkit.connectors import (
    ConnectionController,
    ConnectionState,
    ConnectorKind,
    ConnectorRegistry,
)
from staking_toolkit.shared import registry
from staking_toolkit.shared.constants import GlobalConstants, SubmissionConstants
from staking_toolkit.shared.exceptions import ConnectorException
from staking_toolkit.shared.services.gas_oracle import (
    GAS_STATION_SPEEDS,
    GasOracle,
    GasStationOracle,
    NodeGasOracle,
)
from staking_toolkit.shared.services.http_client import aclose_async_client
from staking_toolkit.shared.services.web3_service import Web3Service
from staking_toolkit.staking import (
    StakeBatchBuilder,
    StakeSubmissionOrchestrator,
    SubmissionSnapshot,
    SubmissionState,
)
from staking_toolkit.utils.formatters import (
    connection_table,
    console,
    format_address,
    format_duration_ms,
    format_eth,
    format_gwei,
    format_pool_id,
    format_zrx,
    save_json_output,
)


async def _connect(
    controller: ConnectionController, kind: Optional[ConnectorKind]
) -> ConnectionState:
    """Resume a stored session, then activate the requested connector."""
    await controller.try_eager_connect()
    if kind is not None:
        await controller.activate(kind)
    return controller.state


def _raise_for_connection(state: ConnectionState) -> None:
    if state.last_error is not None:
        raise ConnectorException(state.last_error.message)
    if not state.is_active:
        raise ValueError(
            "No wallet connected. Pass --connector to choose one."
        )


def _build_gas_oracle(
    source: str, speed: str, web3_service: Optional[Web3Service]
) -> GasOracle:
    if source == "node":
        if web3_service is None:
            raise ValueError("The node gas source needs a connected provider")
        return NodeGasOracle(web3_service)
    return GasStationOracle(speed=speed)


def cmd_connectors(args: argparse.Namespace) -> None:
    async def run():
        connectors = ConnectorRegistry.default()
        table = Table(title="Wallet Connectors")
        table.add_column("Connector", style="cyan")
        table.add_column("Authorized")
        for kind, connector in connectors.items():
            authorized = await connector.is_authorized()
            table.add_row(
                kind.value,
                "[green]yes[/green]" if authorized else "[dim]no[/dim]",
            )
        console.print(table)

    asyncio.run(run())


def cmd_connect(args: argparse.Namespace) -> None:
    async def run():
        kind = ConnectorKind.parse(args.connector) if args.connector else None
        controller = ConnectionController(ConnectorRegistry.default())
        state = await _connect(controller, kind)
        console.print(connection_table(state))
        _raise_for_connection(state)

        info = await controller.fetch_account_info()
        console.print(f"ETH balance:   {format_eth(info['eth_balance'])}")
        console.print(f"ZRX balance:   {format_zrx(info['zrx_balance'])}")
        console.print(f"ZRX allowance: {format_zrx(info['zrx_allowance'])}")

        if args.json:
            save_json_output(
                dict(info), args.output or f"account_{info['address']}.json"
            )

    asyncio.run(run())


def cmd_disconnect(args: argparse.Namespace) -> None:
    async def run():
        controller = ConnectionController(ConnectorRegistry.default())
        state = await _connect(controller, None)
        if not state.is_active:
            console.print("No stored wallet session")
            return
        name = state.active_connector.value
        await controller.deactivate()
        console.print(f"Disconnected {name}")

    asyncio.run(run())


def cmd_gas_info(args: argparse.Namespace) -> None:
    async def run():
        web3_service = None
        if args.source == "node":
            validate_chain_id(args.chain_id)
            web3_service = Web3Service.get_instance(args.chain_id)
        oracle = _build_gas_oracle(args.source, args.speed, web3_service)
        try:
            gas_info = await oracle.get_gas_info()
        finally:
            await aclose_async_client()

        console.print(f"Gas price:      {format_gwei(gas_info.gas_price_in_wei)}")
        console.print(
            f"Estimated time: {format_duration_ms(gas_info.estimated_time_ms)}"
        )

    asyncio.run(run())


def cmd_encode(args: argparse.Namespace) -> None:
    owner = validate_eth_address(args.owner, "owner")
    validate_chain_id(args.chain_id)
    allocations = [parse_allocation(a) for a in args.allocation]

    builder = StakeBatchBuilder()
    calls = builder.build(allocations, owner)
    decoded = builder.decode(calls)
    proxy = registry.get_staking_proxy_address(args.chain_id)
    calldata = builder.encode_batch_execute(calls)

    console.print(
        f"[bold]Stake {format_zrx(decoded.total_stake_base_units)} "
        f"from {format_address(owner)}[/bold]"
    )
    for move in decoded.moves:
        console.print(
            f"  - pool {format_pool_id(move.pool_id)}: "
            f"{format_zrx(move.amount_base_units)}"
        )
    console.print(f"Staking proxy: {proxy}")

    output = {
        "chain_id": args.chain_id,
        "owner": owner,
        "to": proxy,
        "calls": ["0x" + call.hex() for call in calls],
        "data": "0x" + calldata.hex(),
    }
    if args.output:
        save_json_output(output, args.output)
    else:
        console.print(f"Calldata: [green]{output['data']}[/green]")


def _print_snapshot(snapshot: SubmissionSnapshot) -> None:
    state = snapshot.state
    if state == SubmissionState.WAITING_FOR_SIGNATURE:
        console.print("Waiting for signature in your wallet...")
    elif state == SubmissionState.WAITING_FOR_TRANSACTION:
        console.print(
            f"Transaction {snapshot.transaction_hash} sent, "
            f"{format_duration_ms(snapshot.estimated_time_ms)} to confirm"
        )
    elif state == SubmissionState.SUCCESS:
        console.print(
            f"[green]Stake confirmed[/green] in block "
            f"{snapshot.result.receipt.get('blockNumber')}"
        )
    elif state == SubmissionState.FAILED:
        console.print(
            f"[red]Stake failed ({snapshot.error_kind.value}):[/red] "
            f"{snapshot.error}"
        )


def cmd_stake(args: argparse.Namespace) -> None:
    allocations = [parse_allocation(a) for a in args.allocation]

    async def run():
        kind = ConnectorKind.parse(args.connector) if args.connector else None
        controller = ConnectionController(ConnectorRegistry.default())
        state = await _connect(controller, kind)
        _raise_for_connection(state)
        console.print(connection_table(state))

        builder = StakeBatchBuilder()
        decoded = builder.decode(builder.build(allocations, state.account))
        console.print(
            f"Staking {format_zrx(decoded.total_stake_base_units)} "
            f"across {len(decoded.moves)} pool(s)"
        )
        if not args.yes and not Confirm.ask("Submit stake transaction?"):
            console.print("Aborted")
            return

        oracle = _build_gas_oracle(
            args.gas_source, args.speed, controller.session.web3_service
        )
        orchestrator = StakeSubmissionOrchestrator(
            controller,
            oracle,
            builder=builder,
            on_change=_print_snapshot,
            signature_timeout=args.signature_timeout,
            confirmation_timeout=args.confirmation_timeout,
        )
        try:
            task = orchestrator.submit(allocations)
            if task is not None:
                await task
        finally:
            await aclose_async_client()

        outcome = orchestrator.outcome()
        if args.output and outcome.success:
            result = outcome.data
            save_json_output(
                {
                    "transaction_hash": result.transaction_hash,
                    "receipt": result.receipt,
                },
                args.output,
            )
        outcome.unwrap()

    asyncio.run(run())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staking",
        description="Unified CLI for the Staking Toolkit",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    connector_choices = [kind.value for kind in ConnectorKind]
    speed_choices = sorted(GAS_STATION_SPEEDS)

    # connectors
    p_list = sub.add_parser(
        "connectors", help="List wallet connectors and their authorization"
    )
    p_list.set_defaults(func=cmd_connectors)

    # connect
    p_connect = sub.add_parser(
        "connect", help="Connect a wallet and show its balances"
    )
    p_connect.add_argument(
        "--connector",
        type=str,
        choices=connector_choices,
        help="Connector to activate (default: resume a stored session)",
    )
    p_connect.add_argument("--json", action="store_true", help="Output JSON")
    p_connect.add_argument("--output", type=str, help="Output filename")
    p_connect.set_defaults(func=cmd_connect)

    # disconnect
    p_disconnect = sub.add_parser(
        "disconnect", help="Forget the stored wallet session"
    )
    p_disconnect.set_defaults(func=cmd_disconnect)

    # gas-info
    p_gas = sub.add_parser("gas-info", help="Show the current gas price")
    p_gas.add_argument(
        "--source", type=str, choices=["station", "node"], default="station"
    )
    p_gas.add_argument(
        "--speed",
        type=str,
        choices=speed_choices,
        default=SubmissionConstants.GAS_SPEED,
    )
    p_gas.add_argument(
        "--chain-id", type=int, default=GlobalConstants.DEFAULT_NETWORK_ID
    )
    p_gas.set_defaults(func=cmd_gas_info)

    # encode
    p_encode = sub.add_parser(
        "encode", help="Encode a stake batch without sending it"
    )
    p_encode.add_argument("--owner", type=str, required=True)
    p_encode.add_argument(
        "--allocation",
        type=str,
        action="append",
        required=True,
        help="POOL_ID:AMOUNT, repeatable",
    )
    p_encode.add_argument(
        "--chain-id", type=int, default=GlobalConstants.DEFAULT_NETWORK_ID
    )
    p_encode.add_argument("--output", type=str, help="Output filename")
    p_encode.set_defaults(func=cmd_encode)

    # stake
    p_stake = sub.add_parser(
        "stake", help="Stake ZRX and delegate it to pools"
    )
    p_stake.add_argument("--connector", type=str, choices=connector_choices)
    p_stake.add_argument(
        "--allocation",
        type=str,
        action="append",
        required=True,
        help="POOL_ID:AMOUNT, repeatable",
    )
    p_stake.add_argument(
        "--gas-source",
        type=str,
        choices=["station", "node"],
        default="station",
    )
    p_stake.add_argument(
        "--speed",
        type=str,
        choices=speed_choices,
        default=SubmissionConstants.GAS_SPEED,
    )
    p_stake.add_argument(
        "--signature-timeout",
        type=float,
        default=SubmissionConstants.SIGNATURE_TIMEOUT,
    )
    p_stake.add_argument(
        "--confirmation-timeout",
        type=float,
        default=SubmissionConstants.CONFIRMATION_TIMEOUT,
    )
    p_stake.add_argument(
        "--yes", action="store_true", help="Skip the confirmation prompt"
    )
    p_stake.add_argument("--output", type=str, help="Output filename")
    p_stake.set_defaults(func=cmd_stake)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.func(args)
    except Exception as e:
        handle_command_error(e)


if __name__ == "__main__":
    main()
