"""Bassball game backend: RPC provider failover and game-economy managers."""

__version__ = "1.0.0"
