"""
Company Arena API Service.

A voting-based company leaderboard. Clients fetch a pair of companies,
vote for one, and the pair's Elo-like ratings are updated atomically.

The service allows users to:
- Fetch two random companies to compare
- Vote for the better one (rate limited per device or IP)
- Browse the leaderboard and overall vote statistics
"""

__version__ = "0.1.0"
