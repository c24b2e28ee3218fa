"""Multi-chain wallet balance diffs over a lookback window of blocks or slots."""

__version__ = "0.1.0"
