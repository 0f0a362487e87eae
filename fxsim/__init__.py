"""Synthetic EURUSD market feed and position risk engine."""
