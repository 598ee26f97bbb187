"""Cross-venue hedging bot for 15-minute BTC up/down prediction markets."""

__version__ = "0.1.0"
