"""
Stock Consensus - multi-source stock data reconciliation and opinion consensus.

Merges partial, possibly conflicting records from several unreliable information
sources into one canonical record, and reduces three independent agent opinions
about it into a single Buy/Sell/Hold decision.
"""

__version__ = "0.1.0"
