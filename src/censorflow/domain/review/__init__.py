"""Review orchestration: the client, provider pipeline, grouped submission and polling."""

from __future__ import annotations

from .batch import (
    BatchItem,
    BatchItemResult,
    SubmitBatchInput,
    SubmitBatchResult,
    submit_batch,
)
from .client import ModerationClient, compute_hash
from .fields import (
    BlockAction,
    FieldInput,
    FieldResult,
    SubmitFieldsInput,
    SubmitFieldsResult,
    apply_block_action,
    submit_fields,
)
from .locate import LocateResult, extract_keywords, locate
from .options import (
    ClientOptions,
    MergePolicy,
    PipelineConfig,
    QueryInput,
    QueryResult,
    SubmitInput,
    SubmitResult,
    TriggerRule,
)
from .pipeline import (
    PipelineExecutor,
    PipelineResult,
    merge_decisions,
    outcome_from_results,
    translate_results,
)
from .poller import Poller, PollerConfig

__all__ = [
    "BatchItem",
    "BatchItemResult",
    "BlockAction",
    "ClientOptions",
    "FieldInput",
    "FieldResult",
    "LocateResult",
    "MergePolicy",
    "ModerationClient",
    "PipelineConfig",
    "PipelineExecutor",
    "PipelineResult",
    "Poller",
    "PollerConfig",
    "QueryInput",
    "QueryResult",
    "SubmitBatchInput",
    "SubmitBatchResult",
    "SubmitFieldsInput",
    "SubmitFieldsResult",
    "SubmitInput",
    "SubmitResult",
    "TriggerRule",
    "apply_block_action",
    "compute_hash",
    "extract_keywords",
    "locate",
    "merge_decisions",
    "outcome_from_results",
    "submit_batch",
    "submit_fields",
    "translate_results",
]
