"""Shared formatting and file utilities for commands."""

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.table import Table

from staking_toolkit.connectors.models import ConnectionState
from staking_toolkit.shared.constants import GlobalConstants, StakingConstants
from staking_toolkit.utils.blockchain import from_base_unit_amount

# Shared console instance
console = Console()


def format_address(address: Optional[str], length: int = 10) -> str:
    """
    Format an Ethereum address to show first and last characters.

    Args:
        address: Ethereum address
        length: Addresses up to this length are shown in full

    Returns:
        Formatted address like "0x1234...5678"
    """
    if not address:
        return "N/A"
    if len(address) <= length:
        return address
    return f"{address[:6]}...{address[-4:]}"


def format_pool_id(pool_id: str) -> str:
    """Show a padded pool id as its decimal number."""
    return str(int(pool_id, 16))


def format_zrx(
    amount_base_units: int,
    decimals: int = StakingConstants.DECIMAL_PLACES_ZRX,
) -> str:
    value = from_base_unit_amount(amount_base_units, decimals)
    return f"{value:,f} ZRX"


def format_eth(amount_wei: int) -> str:
    value = from_base_unit_amount(amount_wei, 18)
    return f"{value:,f} ETH"


def format_gwei(amount_wei: int) -> str:
    value = (Decimal(amount_wei) / Decimal(10**9)).normalize()
    return f"{value:f} gwei"


def format_duration_ms(duration_ms: Optional[int]) -> str:
    """Format a millisecond estimate as '~2 min' / '~45 s'."""
    if duration_ms is None:
        return "unknown"
    seconds = duration_ms // 1000
    if seconds >= 60:
        return f"~{round(seconds / 60)} min"
    return f"~{seconds} s"


def connection_table(state: ConnectionState) -> Table:
    """Render a ConnectionState as a two-column table."""
    table = Table(title="Wallet Connection", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row(
        "Connector",
        state.active_connector.value if state.active_connector else "None",
    )
    table.add_row("Account", state.account or "N/A")
    network = (
        f"{GlobalConstants.get_network_name(state.network_id)} ({state.network_id})"
        if state.network_id is not None
        else "N/A"
    )
    table.add_row("Network", network)
    if state.last_error is not None:
        table.add_row(
            "Last error",
            f"[red]{state.last_error.kind.value}[/red]: {state.last_error.message}",
        )
    return table


def save_json_output(
    data: Dict[str, Any],
    filename: str,
    output_dir: str = "output",
    print_path: bool = True,
) -> str:
    """
    Save data to a JSON file with automatic directory creation.

    Args:
        data: Data to save
        filename: Output filename (can include subdirectories)
        output_dir: Base output directory (default: 'output')
        print_path: Whether to print the saved file path

    Returns:
        Full path to saved file
    """
    filepath = Path(output_dir) / filename
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w") as f:
        json.dump(data, f, indent=2, default=str)

    if print_path:
        console.print(f"[cyan]Data saved to:[/cyan] {filepath}")

    return str(filepath)
