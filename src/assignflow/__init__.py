"""assignflow: assigner/receiver task lifecycle engine."""

__version__ = "0.1.0"
