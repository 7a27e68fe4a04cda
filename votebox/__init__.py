"""
Votebox - Durable Proposal and Voting Registry
==============================================

A small record store for proposals with:
- Restart-safe persistence (atomic files or SQLite)
- One vote per caller, owner-only edits and closing
- Append-only audit log of every change
"""

__version__ = "0.1.0"
