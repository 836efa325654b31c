"""Deterministic falling-block puzzle engine with headless soak and replay runners."""

__version__ = "0.1.0"
