"""
Library Circulation Package.

Circulation engine for a multi-branch library: book inventory, patron
checkout limits, checkout/return transactions, per-title reservation
waitlists with availability notification, and cross-branch transfer.

Key Components:
- models: Pydantic models for books, patrons and circulation records
- core: the circulation state machine (branch inventory, waitlists, registry)
- config: Configuration management with pydantic-settings
- demo: a scripted walk through the main flows
"""

__version__ = "0.1.0"

from .core import BranchInventory, LibraryRegistry

__all__ = [
    "BranchInventory",
    "LibraryRegistry",
    "__version__",
]
