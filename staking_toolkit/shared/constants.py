"""All constants for the project"""

import os

from dotenv import load_dotenv

load_dotenv()


class GlobalConstants:
    """Global class constants for the project"""

    NETWORK_NAMES = {
        1: "mainnet",
        3: "ropsten",
        4: "rinkeby",
        42: "kovan",
        1337: "ganache",
    }

    SUPPORTED_CHAIN_IDS = tuple(NETWORK_NAMES.keys())

    DEFAULT_NETWORK_ID = int(os.getenv("STAKING_DEFAULT_NETWORK_ID", "1"))

    CHAIN_ID_TO_RPC = {
        1: os.getenv("ETHEREUM_MAINNET_RPC_URL") or None,
        3: os.getenv("ROPSTEN_RPC_URL") or None,
        4: os.getenv("RINKEBY_RPC_URL") or None,
        42: os.getenv("KOVAN_RPC_URL") or None,
        1337: os.getenv("GANACHE_RPC_URL") or "http://127.0.0.1:8545",
    }

    @staticmethod
    def get_rpc_url(chain_id: int) -> str:
        """Get RPC URL for specified chain"""
        chain_id = int(chain_id)
        if chain_id not in GlobalConstants.CHAIN_ID_TO_RPC:
            raise ValueError(f"Chain ID {chain_id} not supported")

        rpc_url = GlobalConstants.CHAIN_ID_TO_RPC[chain_id]
        if not rpc_url:
            raise ValueError(f"RPC URL not set for chain {chain_id}")

        return rpc_url

    @staticmethod
    def get_network_name(chain_id: int) -> str:
        return GlobalConstants.NETWORK_NAMES.get(int(chain_id), f"chain-{chain_id}")


class StakingConstants:
    """Constants for the 0x staking contracts"""

    DECIMAL_PLACES_ZRX = 18

    # Sentinel pool id for stake that is deposited but not delegated
    NIL_POOL_ID = "0x" + "00" * 32

    CONTRACT_ADDRESSES_URL = os.getenv(
        "CONTRACT_ADDRESSES_URL",
        "https://raw.githubusercontent.com/0xProject/protocol/development/packages/contract-addresses/addresses.json",
    )

    # Used when the published address book cannot be fetched
    FALLBACK_CONTRACT_ADDRESSES = {
        1: {
            "zrxToken": "0xe41d2489571d322189246dafa5ebde1f4699f498",
            "stakingProxy": "0xa26e80e7dea86279c6d778d702cc413e6cffa777",
            "zrxVault": "0xba7f8b5fb1b19c1211c5d49550fcd149177a5eaf",
            "erc20Proxy": "0x95e6f48254609a6ee006f7d493c8e5fb97094cef",
        },
    }


class ConnectorConstants:
    """Configuration for the wallet connectors"""

    # Desktop signers such as Frame expose the injected provider over HTTP
    INJECTED_PROVIDER_URL = os.getenv(
        "STAKING_INJECTED_PROVIDER", "http://127.0.0.1:1248"
    )

    WALLETCONNECT_BRIDGE_URL = os.getenv(
        "WALLETCONNECT_BRIDGE_URL", "https://bridge.walletconnect.org"
    )

    WALLETLINK_URL = os.getenv("WALLETLINK_URL", "https://www.walletlink.org")
    WALLETLINK_APP_NAME = os.getenv("WALLETLINK_APP_NAME", "0x Staking")

    POLL_INTERVAL = float(os.getenv("STAKING_PROVIDER_POLL_INTERVAL", "12"))

    SESSION_DIR = os.getenv("STAKING_SESSION_DIR", ".sessions")
    SESSION_TTL = int(os.getenv("STAKING_SESSION_TTL", str(7 * 24 * 3600)))

    # EIP-1193 "User Rejected Request"
    USER_REJECTED_CODE = 4001


class SubmissionConstants:
    """Configuration for stake submission"""

    SIGNATURE_TIMEOUT = float(os.getenv("STAKING_SIGNATURE_TIMEOUT", "300"))
    CONFIRMATION_TIMEOUT = float(
        os.getenv("STAKING_CONFIRMATION_TIMEOUT", "600")
    )
    RECEIPT_POLL_LATENCY = float(os.getenv("STAKING_RECEIPT_POLL_LATENCY", "2"))

    GAS_INFO_URL = os.getenv(
        "GAS_INFO_URL", "https://ethgasstation.info/json/ethgasAPI.json"
    )
    GAS_SPEED = os.getenv("GAS_SPEED", "fast")

    # Reported by the node oracle, which has no wait estimate of its own
    DEFAULT_ESTIMATED_TIME_MS = int(
        os.getenv("STAKING_DEFAULT_ESTIMATED_TIME_MS", "60000")
    )
