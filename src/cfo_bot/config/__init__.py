"""Configuration module for the CFO bot."""

from cfo_bot.config.entities import Entity, get_entities
from cfo_bot.config.logging import configure_logging
from cfo_bot.config.settings import FlatSettings, get_settings

__all__ = ["Entity", "FlatSettings", "get_entities", "get_settings", "configure_logging"]
