"""
Configuration system for the layout engine.

Provides structured configuration using dataclasses with clear defaults,
type safety, and backward compatibility with dict-based configs.
"""

from dataclasses import dataclass, field
from typing import Dict, Any
import logging

from processors.layout_config import LayoutConfig, filter_known_keys

__all__ = ["EngineConfig", "LayoutConfig"]

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """
    Central configuration for LayoutEngine initialization.

    Example:
        >>> config = EngineConfig(max_workers=8)
        >>> with LayoutEngine(config) as engine:
        ...     layout = engine.analyze(document)
    """

    layout: LayoutConfig = field(default_factory=LayoutConfig)

    # Worker pool
    max_workers: int = 4

    # Resource limits for a whole batch
    timeout_seconds: int = 300
    max_memory_mb: int = 1000

    # Logging
    log_level: str = "INFO"

    def validate(self) -> bool:
        """
        Validate configuration values.

        Returns:
            True if all values are valid, False otherwise
        """
        if self.max_workers < 1:
            logger.error("max_workers must be at least 1")
            return False

        if self.timeout_seconds <= 0:
            logger.error("timeout_seconds must be positive")
            return False

        if self.max_memory_mb < 1:
            logger.error("max_memory_mb must be at least 1 MB")
            return False

        return self.layout.validate()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to dictionary.

        Useful for serialization, logging, and debugging.
        """
        return {
            'layout': self.layout.to_dict(),
            'max_workers': self.max_workers,
            'timeout_seconds': self.timeout_seconds,
            'max_memory_mb': self.max_memory_mb,
            'log_level': self.log_level,
        }

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'EngineConfig':
        """
        Create EngineConfig from dictionary.

        A nested 'layout' mapping is converted with LayoutConfig.from_dict.
        Unknown keys are ignored with a warning.
        """
        filtered_config = filter_known_keys(cls, config)
        layout = filtered_config.get('layout')
        if isinstance(layout, dict):
            filtered_config['layout'] = LayoutConfig.from_dict(layout)
        return cls(**filtered_config)

    @classmethod
    def default(cls) -> 'EngineConfig':
        """Create configuration with default values."""
        return cls()

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"EngineConfig("
            f"workers={self.max_workers}, "
            f"timeout={self.timeout_seconds}s, "
            f"memory={self.max_memory_mb}MB, "
            f"granularity={self.layout.line_granularity})"
        )
