"""Client-side orchestration of the insurance issuance journey."""

__version__ = "0.1.0"
