"""Relay between an order backend and a BTCPay Server store."""

__version__ = "0.1.0"
