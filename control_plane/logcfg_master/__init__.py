"""Logging configuration controller package."""
from .config import MasterConfig, load_config
from .server import LoggingController

__all__ = ["LoggingController", "MasterConfig", "load_config"]
