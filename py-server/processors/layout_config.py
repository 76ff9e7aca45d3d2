"""
Detector options for line, column and paragraph inference.

Provides structured configuration using dataclasses with clear defaults,
type safety, and backward compatibility with dict-based configs.
"""

from dataclasses import dataclass, fields
from typing import Optional, Dict, Any
import logging
import math

from utils.validation import LayoutValidationError

logger = logging.getLogger(__name__)

LINE_GRANULARITIES = ("token", "text")

NUMERIC_OPTIONS = (
    'alignment_tolerance',
    'horizontal_slack_factor',
    'gutter_min_fraction',
    'gutter_width_factor',
    'paragraph_spacing_factor',
    'quantization_fraction',
    'profile_resolution',
)

# Option names as they appear in external (camelCase) configuration payloads
LAYOUT_OPTION_ALIASES = {
    'alignmentTolerance': 'alignment_tolerance',
    'horizontalSlackFactor': 'horizontal_slack_factor',
    'gutterMinFraction': 'gutter_min_fraction',
    'gutterWidthFactor': 'gutter_width_factor',
    'paragraphSpacingFactor': 'paragraph_spacing_factor',
    'quantizationFraction': 'quantization_fraction',
    'profileResolution': 'profile_resolution',
    'lineGranularity': 'line_granularity',
}


def filter_known_keys(cls, config: Dict[str, Any], aliases: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Map aliases to field names and drop unknown keys with a warning"""
    valid_keys = {f.name for f in fields(cls)}
    aliases = aliases or {}

    filtered_config = {}
    for key, value in config.items():
        name = aliases.get(key, key)
        if name in valid_keys:
            filtered_config[name] = value
        else:
            logger.warning(f"Unknown config key '{key}' will be ignored")
    return filtered_config


@dataclass
class LayoutConfig:
    """
    Options recognized by the line, column and paragraph detectors.

    Tolerances and resolutions are fractions of the page's median element
    height, so the same configuration adapts to any font size.

    Example:
        >>> config = LayoutConfig(gutter_width_factor=4.0)
        >>> lines = detect_lines(block, config)
    """

    # Two edges are aligned when they differ by at most this × median height
    alignment_tolerance: float = 0.2

    # Horizontal gap allowed inside a line, as a multiple of the spacing mode
    horizontal_slack_factor: float = 1.0

    # Column gutters
    gutter_min_fraction: float = 0.6  # share of the text rows a gutter stays empty in
    gutter_width_factor: float = 3.0  # gutter width > horizontal spacing mode × factor

    # Paragraph gap > line spacing mode × factor
    paragraph_spacing_factor: float = 1.5

    # Histogram bucket width for spacing modes, × median height
    quantization_fraction: float = 0.25

    # Bin size (page units) of the column occupancy grid
    profile_resolution: float = 1.0

    # Group "token" or "text" elements into lines
    line_granularity: str = "token"

    def validate(self) -> bool:
        """
        Validate configuration values.

        Returns:
            True if all values are valid, False otherwise
        """
        for name in NUMERIC_OPTIONS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                logger.error(f"{name} must be a finite number, got {value!r}")
                return False

        valid = True

        if self.alignment_tolerance < 0:
            logger.error("alignment_tolerance must be non-negative")
            valid = False

        for name in ('horizontal_slack_factor', 'gutter_width_factor', 'paragraph_spacing_factor'):
            if getattr(self, name) <= 0:
                logger.error(f"{name} must be positive")
                valid = False

        if not (0.0 < self.gutter_min_fraction <= 1.0):
            logger.error("gutter_min_fraction must be within (0, 1]")
            valid = False

        if self.quantization_fraction <= 0:
            logger.error("quantization_fraction must be positive")
            valid = False

        if self.profile_resolution <= 0:
            logger.error("profile_resolution must be positive")
            valid = False

        if self.line_granularity not in LINE_GRANULARITIES:
            logger.error(f"line_granularity must be one of {LINE_GRANULARITIES}")
            valid = False

        return valid

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'alignment_tolerance': self.alignment_tolerance,
            'horizontal_slack_factor': self.horizontal_slack_factor,
            'gutter_min_fraction': self.gutter_min_fraction,
            'gutter_width_factor': self.gutter_width_factor,
            'paragraph_spacing_factor': self.paragraph_spacing_factor,
            'quantization_fraction': self.quantization_fraction,
            'profile_resolution': self.profile_resolution,
            'line_granularity': self.line_granularity,
        }

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'LayoutConfig':
        """
        Create LayoutConfig from dictionary.

        Accepts both snake_case field names and their camelCase aliases.
        Unknown keys are ignored with a warning; numeric strings are converted.

        Raises:
            LayoutValidationError: If a numeric option is not a number
        """
        options = filter_known_keys(cls, config, LAYOUT_OPTION_ALIASES)
        for name in NUMERIC_OPTIONS:
            if name not in options or isinstance(options[name], bool):
                continue
            try:
                options[name] = float(options[name])
            except (TypeError, ValueError):
                raise LayoutValidationError(f"{name} must be a number, got {options[name]!r}")
        return cls(**options)

    @classmethod
    def default(cls) -> 'LayoutConfig':
        """Create configuration with default values."""
        return cls()


def resolve_layout_config(config: Optional[LayoutConfig] = None) -> LayoutConfig:
    """
    Return a usable LayoutConfig for a detector call.

    Args:
        config: Caller supplied options, a plain dict of options, or None for defaults

    Raises:
        LayoutValidationError: If any option is out of range
    """
    if config is None:
        return LayoutConfig.default()
    if isinstance(config, dict):
        config = LayoutConfig.from_dict(config)
    if not config.validate():
        raise LayoutValidationError(f"Invalid layout configuration: {config.to_dict()}")
    return config
