"""
Candy Machine Mint Tracker

Pulls a candy machine's transaction history for a time window and
attributes each mint to a known bot address:
- Signature collection (paginated, newest first)
- Batched transaction resolution
- Bot attribution by address table lookup
- CSV report and console summary
"""

__version__ = "1.0.0"
