"""Snapshot serialisation, snapshot naming, transform checks and health tracking for LMDB synchronisation."""

__version__ = "0.1.0"