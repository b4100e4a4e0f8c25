"""Stake batch encoding and submission."""

from .batch_builder import StakeBatchBuilder
from .models import (
    DecodedBatch,
    NormalizedAllocation,
    StakeAllocation,
    StakeInfo,
    StakeStatus,
    SubmissionResult,
    SubmissionSnapshot,
    SubmissionState,
)
from .orchestrator import StakeSubmissionOrchestrator

__all__ = [
    "DecodedBatch",
    "NormalizedAllocation",
    "StakeAllocation",
    "StakeBatchBuilder",
    "StakeInfo",
    "StakeStatus",
    "StakeSubmissionOrchestrator",
    "SubmissionResult",
    "SubmissionSnapshot",
    "SubmissionState",
]
