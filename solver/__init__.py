"""Weighted tile packing engine."""
