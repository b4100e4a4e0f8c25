"""
Encode a set of stake allocations as one batched staking transaction.

The batch deposits the total amount with stake(), which credits the owner's
undelegated balance, then moves each allocation from the undelegated pool
to its target pool. The contract rejects a moveStake larger than the
undelegated balance, so stake() always comes first.
"""

from typing import List, Optional, Sequence

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, is_address

from staking_toolkit.shared.constants import StakingConstants
from staking_toolkit.shared.exceptions import InvalidInputException
from staking_toolkit.staking.models import (
    DecodedBatch,
    NormalizedAllocation,
    StakeAllocation,
    StakeInfo,
    StakeStatus,
)
from staking_toolkit.utils.blockchain import (
    UINT256_MAX,
    to_base_unit_amount,
    to_padded_hex,
)

STAKE_SIGNATURE = "stake(uint256)"
MOVE_STAKE_SIGNATURE = "moveStake((uint8,bytes32),(uint8,bytes32),uint256)"
BATCH_EXECUTE_SIGNATURE = "batchExecute(bytes[])"

STAKE_SELECTOR = function_signature_to_4byte_selector(STAKE_SIGNATURE)
MOVE_STAKE_SELECTOR = function_signature_to_4byte_selector(MOVE_STAKE_SIGNATURE)
BATCH_EXECUTE_SELECTOR = function_signature_to_4byte_selector(
    BATCH_EXECUTE_SIGNATURE
)

_STAKE_INFO_TYPE = "(uint8,bytes32)"

UNDELEGATED_STAKE = StakeInfo(
    status=StakeStatus.UNDELEGATED, pool_id=StakingConstants.NIL_POOL_ID
)


class StakeBatchBuilder:
    """Builds the ordered call list for a deposit-and-delegate batch."""

    def __init__(self, decimals: int = StakingConstants.DECIMAL_PLACES_ZRX):
        self.decimals = decimals

    def normalize(
        self, allocations: Sequence[StakeAllocation]
    ) -> List[NormalizedAllocation]:
        """
        Validate allocations and convert them to on-chain units.

        Raises:
            InvalidInputException: empty input, a bad pool id, or an amount
                that is non-positive, finer than the token's decimals or
                larger than uint256
        """
        if not allocations:
            raise InvalidInputException("At least one stake allocation is required")

        normalized = []
        for index, allocation in enumerate(allocations):
            try:
                pool_id = to_padded_hex(allocation.pool_id)
            except ValueError as e:
                raise InvalidInputException(
                    f"Allocation {index}: invalid pool id: {e}"
                )
            try:
                amount = to_base_unit_amount(allocation.zrx_amount, self.decimals)
            except ValueError as e:
                raise InvalidInputException(f"Allocation {index}: {e}")
            if amount <= 0:
                raise InvalidInputException(
                    f"Allocation {index}: amount must be positive, "
                    f"got {allocation.zrx_amount}"
                )
            normalized.append(NormalizedAllocation(pool_id, amount))
        return normalized

    def build(
        self,
        allocations: Sequence[StakeAllocation],
        owner_address: Optional[str],
    ) -> List[bytes]:
        """
        Encode stake(total) followed by one moveStake per allocation.

        Move calls keep the input order. Nothing is encoded unless every
        input is valid.
        """
        if not owner_address:
            raise InvalidInputException("No wallet connected: owner address is required")
        if not is_address(owner_address):
            raise InvalidInputException(f"Invalid owner address: {owner_address}")

        normalized = self.normalize(allocations)
        total_stake = sum(a.amount_base_units for a in normalized)
        if total_stake > UINT256_MAX:
            raise InvalidInputException(
                f"Total stake of {len(normalized)} allocations does not fit "
                f"in uint256"
            )

        calls = [self.encode_stake(total_stake)]
        for allocation in normalized:
            calls.append(
                self.encode_move_stake(
                    UNDELEGATED_STAKE,
                    StakeInfo(StakeStatus.DELEGATED, allocation.pool_id),
                    allocation.amount_base_units,
                )
            )
        return calls

    @staticmethod
    def encode_stake(amount: int) -> bytes:
        return STAKE_SELECTOR + encode(["uint256"], [amount])

    @staticmethod
    def encode_move_stake(
        from_info: StakeInfo, to_info: StakeInfo, amount: int
    ) -> bytes:
        return MOVE_STAKE_SELECTOR + encode(
            [_STAKE_INFO_TYPE, _STAKE_INFO_TYPE, "uint256"],
            [from_info.as_abi_tuple(), to_info.as_abi_tuple(), amount],
        )

    @staticmethod
    def encode_batch_execute(calls: Sequence[bytes]) -> bytes:
        """Calldata for StakingProxy.batchExecute(calls)."""
        return BATCH_EXECUTE_SELECTOR + encode(["bytes[]"], [list(calls)])

    @staticmethod
    def decode(calls: Sequence[bytes]) -> DecodedBatch:
        """Recover the stake total and pool moves from a built batch."""
        if not calls or calls[0][:4] != STAKE_SELECTOR:
            raise ValueError("Batch must start with a stake() call")

        (total,) = decode(["uint256"], calls[0][4:])
        moves = []
        for call in calls[1:]:
            if call[:4] != MOVE_STAKE_SELECTOR:
                raise ValueError("Expected a moveStake() call")
            from_info, to_info, amount = decode(
                [_STAKE_INFO_TYPE, _STAKE_INFO_TYPE, "uint256"], call[4:]
            )
            if from_info[0] != StakeStatus.UNDELEGATED:
                raise ValueError("moveStake() does not start from undelegated stake")
            moves.append(
                NormalizedAllocation("0x" + to_info[1].hex(), amount)
            )
        return DecodedBatch(total_stake_base_units=total, moves=moves)

    @staticmethod
    def decode_batch_execute(calldata: bytes) -> List[bytes]:
        if calldata[:4] != BATCH_EXECUTE_SELECTOR:
            raise ValueError("Not a batchExecute() call")
        (calls,) = decode(["bytes[]"], calldata[4:])
        return list(calls)
