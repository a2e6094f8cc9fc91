"""Cross-client dependency inventory for Ethereum node software."""

__version__ = "0.1.0"
