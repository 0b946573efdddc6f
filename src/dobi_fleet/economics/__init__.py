"""Deposit economics."""

from dobi_fleet.economics.engine import EconomicsEngine, quantize_amount, split_deposit

__all__ = ["EconomicsEngine", "quantize_amount", "split_deposit"]
