"""Core provider-agnostic building blocks for the SuperModel SDK.

This package contains logic shared by every layer:
- cancellation: Cooperative cancellation tokens and cancellable iteration
- usage: Token estimation and per-turn cost calculation
"""

__all__ = []
