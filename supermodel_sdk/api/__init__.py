"""
Public API Layer

This layer contains the public-facing API of the SuperModel SDK.
All user-facing classes and functions should be exposed through this layer.
"""

from .client import ChatOutcome, SupermodelClient

__all__ = ["SupermodelClient", "ChatOutcome"]
