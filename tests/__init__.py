"""
Test suite for basket-ledger

Contains:
- tests/unit/          : Unit tests for fixed point, domain models, contracts,
                         accounting engine, in-memory ledger and dispatcher
"""
