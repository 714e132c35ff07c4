# Overview: Transaction helpers shared by every ledger service.

"""
Ledger atomicity rules (authoritative)

- Every multi-step mutation runs inside run_atomically(): one DB transaction,
  committed only if every step succeeded.
- Any exception (validation, state, integrity, optimistic version clash)
  rolls the whole transaction back. Nothing is retried automatically; the
  caller resubmits explicitly.
- Numeric state (stock, paid amounts, remaining balances) is re-read inside
  the transaction through lock_for_update() before bounds are validated.
"""

from __future__ import annotations

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_atomically(func):
    """
    Execute `func` as a single all-or-nothing transaction.

    Returns whatever `func` returns after a successful commit. On failure the
    session is rolled back and the original exception propagates unchanged.
    """
    try:
        result = func()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return result
