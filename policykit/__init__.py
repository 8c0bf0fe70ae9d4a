"""Access control models, policy rule management and a thread-safe policy enforcer."""

__version__ = "0.1.0"