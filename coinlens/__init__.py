"""CoinLens: technical indicators and scoring for a crypto watchlist."""

__version__ = "0.1.0"
