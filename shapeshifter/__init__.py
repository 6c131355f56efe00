"""
Shapeshifter - schema-flexible document store.

Collections accept documents of any shape. Every write and shaped query
is reconciled against the collection's current schema, inferred fresh
from the stored documents:
- Compatible shapes (subset, superset, equal) are written as-is
- Divergent shapes are resolved by a decision oracle into a mapping,
  a migration of existing documents, or a rejection

Architecture:
    ┌─────────────┐     ┌──────────────┐     ┌──────────────────────┐
    │   Client    │────▶│   FastAPI    │────▶│      Database        │
    │ (HTTP/CLI)  │     │   Adapter    │     │  (exposed surface)   │
    └─────────────┘     └──────────────┘     └──────────┬───────────┘
                                                        │
                        ┌───────────────────────────────┼──────────────┐
                        ▼                               ▼              ▼
               ┌─────────────────┐            ┌──────────────┐  ┌────────────┐
               │ Reconciliation  │───────────▶│   Decider    │  │   Query    │
               │     Engine      │            │   (oracle)   │  │   Engine   │
               └────────┬────────┘            └──────────────┘  └────────────┘
                        │
          ┌─────────────┼──────────────┬────────────────┐
          ▼             ▼              ▼                ▼
     ┌─────────┐  ┌───────────┐  ┌───────────┐   ┌─────────────┐
     │ Schema  │  │ Relation  │  │ Transform │   │  Document   │
     │Inferer  │  │ Checker   │  │ Executor  │   │   Store     │
     └─────────┘  └───────────┘  └───────────┘   └─────────────┘

Invariants:
    - Schemas are derived from documents on every call, never stored
    - Every document carries a unique string _id
    - A rejected or failed operation never partially mutates a collection
    - The core never embeds oracle prompts or model choices

How to change safely:
    - Keep the Decision wire format stable (type, message, program, newSchema)
    - New store or oracle backends implement the protocols in store/base.py
      and decider/base.py
"""

from ._version import __version__

__all__ = ["__version__"]
