"""Public interface for the ``txn_pipeline`` package.

This module exposes the pipeline entry points and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .cascade import Capabilities, CategorizationCascade
from .config import CascadeThresholds, CloudConfig, DedupConfig, PipelineConfig
from .dedup import RedeliveryGuard, compute_fingerprint, is_windowed_duplicate
from .detect import parse_statement, select_variant
from .exceptions import (
    ConfigurationError,
    PasswordRequiredError,
    StatementReadError,
    TxnPipelineError,
    UnknownFormatError,
)
from .models import (
    Categorization,
    CategorizedTransaction,
    Category,
    CategorySource,
    Direction,
    ExtractedTransaction,
    ImportSummary,
    NotificationOutcome,
    NotificationStatus,
    RawUnit,
    StatementResult,
)
from .pipeline import TransactionPipeline
from .store import InMemoryTransactionStore, SqlTransactionStore, TransactionStore

__all__ = [
    # Entry points
    "TransactionPipeline",
    "parse_statement",
    "select_variant",
    "compute_fingerprint",
    "is_windowed_duplicate",
    "RedeliveryGuard",
    "CategorizationCascade",
    "Capabilities",
    # Stores
    "TransactionStore",
    "InMemoryTransactionStore",
    "SqlTransactionStore",
    # Config
    "PipelineConfig",
    "DedupConfig",
    "CascadeThresholds",
    "CloudConfig",
    # Models / types
    "RawUnit",
    "ExtractedTransaction",
    "Categorization",
    "CategorizedTransaction",
    "StatementResult",
    "ImportSummary",
    "NotificationOutcome",
    "NotificationStatus",
    "Direction",
    "Category",
    "CategorySource",
    # Errors
    "TxnPipelineError",
    "UnknownFormatError",
    "StatementReadError",
    "PasswordRequiredError",
    "ConfigurationError",
]
