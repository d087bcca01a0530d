"""
Costing Kernel

Domain records, typed errors, structured logging and persistence base for
production costing and attendance reconciliation:
- Frozen domain records with Decimal money
- Injected clock for deterministic as-of dates
- Typed exception hierarchy with machine-readable codes
- SQLAlchemy ORM models for the relational store
"""

__version__ = "0.1.0"
