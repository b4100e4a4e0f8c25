"""
Type definitions for stake batches and their submission.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple, Union

from staking_toolkit.connectors.models import ErrorKind

# =============================================================================
# ENUMS
# =============================================================================


class StakeStatus(IntEnum):
    """IStructs.StakeStatus on the staking contract."""

    UNDELEGATED = 0
    DELEGATED = 1


class SubmissionState(Enum):
    """Lifecycle of one stake submission attempt."""

    IDLE = "idle"
    WAITING_FOR_SIGNATURE = "waiting_for_signature"
    WAITING_FOR_TRANSACTION = "waiting_for_transaction"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_pending(self) -> bool:
        return self in (
            SubmissionState.WAITING_FOR_SIGNATURE,
            SubmissionState.WAITING_FOR_TRANSACTION,
        )

    @property
    def is_terminal(self) -> bool:
        return self in (SubmissionState.SUCCESS, SubmissionState.FAILED)


# =============================================================================
# DATACLASSES
# =============================================================================


@dataclass(frozen=True)
class StakeAllocation:
    """Amount of ZRX (human units) to delegate to one pool."""

    pool_id: Union[str, int]
    zrx_amount: Union[Decimal, str, int]


@dataclass(frozen=True)
class StakeInfo:
    """IStructs.StakeInfo: a stake status and the pool it refers to."""

    status: StakeStatus
    pool_id: str  # 0x-prefixed bytes32

    def as_abi_tuple(self) -> Tuple[int, bytes]:
        return (int(self.status), bytes.fromhex(self.pool_id[2:]))


@dataclass(frozen=True)
class NormalizedAllocation:
    pool_id: str  # 0x-prefixed bytes32
    amount_base_units: int


@dataclass(frozen=True)
class DecodedBatch:
    """Contents of a stake batch recovered from its encoded calls."""

    total_stake_base_units: int
    moves: List[NormalizedAllocation] = field(default_factory=list)


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of a confirmed stake transaction."""

    transaction_hash: str
    receipt: Dict[str, Any]
    estimated_time_ms: Optional[int] = None


@dataclass(frozen=True)
class SubmissionSnapshot:
    """State published to observers on each submission transition."""

    state: SubmissionState
    transaction_hash: Optional[str] = None
    estimated_time_ms: Optional[int] = None
    result: Optional[SubmissionResult] = None
    error: Optional[Exception] = None
    error_kind: Optional[ErrorKind] = None
