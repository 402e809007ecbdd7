"""
Ledger Sync - Source Package

Ingests transaction signals from bank APIs, device SMS and device
notifications, normalizes them into one transaction model, drops
duplicates, and reconciles local balances against bank balances.

DESIGN PRINCIPLES:
1. Untrusted text in → structured candidate out, or nothing
2. Never persist a zero or unreliable amount
3. One real-world transaction → one stored transaction
4. Warnings annotate, they never block
5. Storage and UI are collaborators behind narrow interfaces
"""

__version__ = "1.0.0"
__author__ = "Ledger Sync Team"
