"""
Stake submission lifecycle.

A submission builds the batch, prices it with the gas oracle, asks the
connected wallet to sign batchExecute() on the staking proxy and follows the
transaction until it is mined. Progress is exposed through read accessors
and an optional on_change callback that receives a SubmissionSnapshot for
every state transition.
"""

import asyncio
import functools
from typing import Callable, List, Optional, Sequence

from web3.exceptions import TimeExhausted

from staking_toolkit.connectors.classifier import (
    classify_connector_error,
    is_connector_error,
)
from staking_toolkit.connectors.controller import ConnectionController
from staking_toolkit.connectors.models import ErrorKind
from staking_toolkit.shared import registry as contract_registry
from staking_toolkit.shared.constants import SubmissionConstants
from staking_toolkit.shared.exceptions import (
    InvalidInputException,
    SubmissionFailedException,
    SubmissionTimeoutException,
)
from staking_toolkit.shared.logging import get_logger
from staking_toolkit.shared.results import ErrorSeverity, Result
from staking_toolkit.shared.services.gas_oracle import GasOracle
from staking_toolkit.staking.batch_builder import StakeBatchBuilder
from staking_toolkit.staking.models import (
    StakeAllocation,
    SubmissionResult,
    SubmissionSnapshot,
    SubmissionState,
)

_logger = get_logger(__name__)

SnapshotListener = Callable[[SubmissionSnapshot], None]


class StakeSubmissionOrchestrator:
    """Drives one stake transaction at a time from signature to receipt."""

    def __init__(
        self,
        controller: ConnectionController,
        gas_oracle: GasOracle,
        builder: Optional[StakeBatchBuilder] = None,
        address_resolver: Callable[
            [int], str
        ] = contract_registry.get_staking_proxy_address,
        classifier: Callable[[Exception], ErrorKind] = classify_connector_error,
        on_change: Optional[SnapshotListener] = None,
        signature_timeout: float = SubmissionConstants.SIGNATURE_TIMEOUT,
        confirmation_timeout: float = SubmissionConstants.CONFIRMATION_TIMEOUT,
        poll_latency: float = SubmissionConstants.RECEIPT_POLL_LATENCY,
    ):
        self._controller = controller
        self._gas_oracle = gas_oracle
        self._builder = builder or StakeBatchBuilder()
        self._resolve_proxy = address_resolver
        self._classify = classifier
        self._on_change = on_change
        self.signature_timeout = signature_timeout
        self.confirmation_timeout = confirmation_timeout
        self.poll_latency = poll_latency

        self._snapshot = SubmissionSnapshot(state=SubmissionState.IDLE)
        self._pending: List[StakeAllocation] = []
        self._task: Optional[asyncio.Task] = None
        self._orphaned_send: Optional[asyncio.Future] = None

    # -------------------------------------------------------------------------
    # Read accessors
    # -------------------------------------------------------------------------

    @property
    def snapshot(self) -> SubmissionSnapshot:
        return self._snapshot

    @property
    def state(self) -> SubmissionState:
        return self._snapshot.state

    @property
    def result(self) -> Optional[SubmissionResult]:
        return self._snapshot.result

    @property
    def error(self) -> Optional[Exception]:
        return self._snapshot.error

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self._snapshot.error_kind

    @property
    def estimated_time_ms(self) -> Optional[int]:
        return self._snapshot.estimated_time_ms

    @property
    def transaction_hash(self) -> Optional[str]:
        return self._snapshot.transaction_hash

    @property
    def pending_allocations(self) -> List[StakeAllocation]:
        return list(self._pending)

    def _publish(self, snapshot: SubmissionSnapshot) -> None:
        self._snapshot = snapshot
        if self._on_change is not None:
            self._on_change(snapshot)

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------

    def submit(
        self, allocations: Sequence[StakeAllocation]
    ) -> Optional[asyncio.Task]:
        """
        Start a submission in the background.

        Returns the task driving it, or None when a submission is already
        pending, a timed-out signature request is still open in the wallet,
        or there is nothing to stake. The task never raises.
        """
        if self.state.is_pending:
            _logger.debug(f"Ignoring submit, submission is {self.state.value}")
            return None
        if self.signature_request_open:
            _logger.debug("Ignoring submit, previous signature request is still open")
            return None
        if not allocations:
            _logger.debug("Ignoring submit without allocations")
            return None

        self._pending = list(allocations)
        self._publish(SubmissionSnapshot(state=SubmissionState.WAITING_FOR_SIGNATURE))
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._pending)
        )
        return self._task

    @property
    def signature_request_open(self) -> bool:
        """True while a timed-out send has not been resolved by the wallet."""
        return self._orphaned_send is not None

    async def _run(self, allocations: List[StakeAllocation]) -> None:
        try:
            session = self._controller.session
            owner = session.account if session is not None else None
            calls = self._builder.build(allocations, owner)

            gas_info = await self._gas_oracle.get_gas_info()
            loop = asyncio.get_running_loop()
            proxy_address = await loop.run_in_executor(
                None, self._resolve_proxy, session.chain_id
            )
            _logger.info(
                f"Submitting stake of {len(allocations)} pool(s) to "
                f"{proxy_address} at {gas_info.gas_price_in_wei} wei gas price"
            )

            tx_hash = await self._send(session, proxy_address, calls, gas_info)
        except asyncio.CancelledError:
            self._fail(SubmissionFailedException("Submission was cancelled"), None)
            raise
        except Exception as error:
            self._fail(error, None)
            return

        await self._track(session, tx_hash, gas_info)

    async def _track(self, session, tx_hash: str, gas_info) -> None:
        try:
            self._publish(
                SubmissionSnapshot(
                    state=SubmissionState.WAITING_FOR_TRANSACTION,
                    transaction_hash=tx_hash,
                    estimated_time_ms=gas_info.estimated_time_ms,
                )
            )
            _logger.info(
                f"Stake transaction {tx_hash} broadcast, estimated "
                f"{gas_info.estimated_time_ms} ms"
            )

            receipt = await self._wait_for_receipt(session, tx_hash)
            if receipt.get("status") == 0:
                raise SubmissionFailedException(
                    f"Transaction {tx_hash} reverted", transaction_hash=tx_hash
                )

            result = SubmissionResult(
                transaction_hash=tx_hash,
                receipt=dict(receipt),
                estimated_time_ms=gas_info.estimated_time_ms,
            )
            self._publish(
                SubmissionSnapshot(
                    state=SubmissionState.SUCCESS,
                    transaction_hash=tx_hash,
                    estimated_time_ms=gas_info.estimated_time_ms,
                    result=result,
                )
            )
            _logger.info(f"Stake transaction {tx_hash} confirmed")
        except asyncio.CancelledError:
            self._fail(
                SubmissionFailedException("Submission was cancelled", tx_hash),
                tx_hash,
            )
            raise
        except Exception as error:
            self._fail(error, tx_hash)

    async def _send(self, session, proxy_address, calls, gas_info) -> str:
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(
            None,
            session.web3_service.send_batch_execute,
            proxy_address,
            calls,
            session.account,
            gas_info.gas_price_in_wei,
        )
        try:
            # The worker thread cannot be interrupted; shield keeps the future
            # alive so a late broadcast is still observed.
            return await asyncio.wait_for(
                asyncio.shield(future), timeout=self.signature_timeout
            )
        except asyncio.TimeoutError:
            self._orphan(future, session, gas_info)
            raise SubmissionTimeoutException(
                f"No signature received within {self.signature_timeout}s"
            )
        except asyncio.CancelledError:
            self._orphan(future, session, gas_info)
            raise
        except Exception as error:
            connector = self._controller.connectors.get(session.kind)
            translated = connector.translate_error(error)
            if translated is error:
                raise
            raise translated from error

    def _orphan(self, future: asyncio.Future, session, gas_info) -> None:
        self._orphaned_send = future
        future.add_done_callback(
            functools.partial(self._on_late_send, session, gas_info)
        )

    def _on_late_send(self, session, gas_info, future: asyncio.Future) -> None:
        self._orphaned_send = None
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            _logger.info(f"Timed-out signature request ended without a send: {error}")
            return

        tx_hash = future.result()
        _logger.warning(
            f"Stake transaction {tx_hash} was broadcast after the signature "
            f"timeout, following it"
        )
        self._task = asyncio.get_running_loop().create_task(
            self._track(session, tx_hash, gas_info)
        )

    async def _wait_for_receipt(self, session, tx_hash: str):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None,
                session.web3_service.wait_for_receipt,
                tx_hash,
                self.confirmation_timeout,
                self.poll_latency,
            )
        except TimeExhausted:
            raise SubmissionTimeoutException(
                f"Transaction {tx_hash} not mined within "
                f"{self.confirmation_timeout}s",
                transaction_hash=tx_hash,
            )

    def _error_kind(self, error: Exception) -> ErrorKind:
        if is_connector_error(error):
            return self._classify(error)
        if isinstance(error, InvalidInputException):
            return ErrorKind.INVALID_INPUT
        return ErrorKind.SUBMISSION_FAILED

    def _fail(self, error: Exception, tx_hash: Optional[str]) -> None:
        kind = self._error_kind(error)
        _logger.error(f"Stake submission failed ({kind.value}): {error}")
        self._publish(
            SubmissionSnapshot(
                state=SubmissionState.FAILED,
                transaction_hash=tx_hash,
                estimated_time_ms=self._snapshot.estimated_time_ms,
                error=error,
                error_kind=kind,
            )
        )

    def outcome(self) -> Result[SubmissionResult]:
        """Terminal state of the last submission as a Result."""
        state = self.state
        if state == SubmissionState.SUCCESS:
            return Result.ok(self.result)
        if state == SubmissionState.FAILED:
            return Result.fail_with_message(
                source="stake_submission",
                message=str(self.error),
                context={
                    "error_kind": self.error_kind.value,
                    "transaction_hash": self.transaction_hash,
                },
                exception=self.error,
            )
        return Result.fail_with_message(
            source="stake_submission",
            message=f"Submission is {state.value}",
            severity=ErrorSeverity.WARNING,
        )
