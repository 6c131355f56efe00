"""
Reconcile module for Shapeshifter.

This module provides the reconciliation core:
- Decision model (reject, isSubset, isSuperset, map, migrate)
- Allow-list guard for Decisions
- ReconciliationEngine write and read paths

Invariants:
    - Decisions are computed per call, never cached
    - No store mutation happens before the allow-list guard passes

How to change safely:
    - New Decision variants need engine dispatch and decider support
"""

from .decision import (
    Decision,
    DecisionType,
    MapDecision,
    MigrateDecision,
    QueryDecision,
    RejectDecision,
    SubsetDecision,
    SupersetDecision,
    check_allowed,
    decision_json_schema,
    parse_allowed_operations,
    parse_decision,
    parse_query_decision,
)
from .engine import (
    ReconciledDocuments,
    ReconciliationEngine,
    WriteResult,
    drop_introduced_nulls,
    merge_reserved,
    project,
)

__all__ = [
    # Decisions
    "Decision",
    "QueryDecision",
    "DecisionType",
    "RejectDecision",
    "SubsetDecision",
    "SupersetDecision",
    "MapDecision",
    "MigrateDecision",
    "parse_decision",
    "parse_query_decision",
    "parse_allowed_operations",
    "decision_json_schema",
    "check_allowed",
    # Engine
    "ReconciliationEngine",
    "WriteResult",
    "ReconciledDocuments",
    "merge_reserved",
    "drop_introduced_nulls",
    "project",
]
