"""Alternative-data models, monetary parsing and reference data."""

from .money import parse_money

__all__ = ["parse_money"]
