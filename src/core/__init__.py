"""
Core domain models, fixed-point primitives, and error taxonomy.

This module contains the foundational building blocks that are independent
of the host ledger (storage, signatures, asset movements).
"""
