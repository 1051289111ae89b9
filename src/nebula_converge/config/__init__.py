"""Configuration management."""
from .settings import EndpointConfig, ProfileInventory

__all__ = ["EndpointConfig", "ProfileInventory"]
