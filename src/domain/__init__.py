"""Domain models and the lot-matching engine for the crypto taxes report.

Everything in this package lives in memory for one run: transactions are
immutable pydantic models, credits and matches are mutable dataclasses owned
by a single ``Book``.
"""

__all__ = [
    "book",
    "credit_pool",
    "precision",
    "tax_records",
    "transaction",
]
