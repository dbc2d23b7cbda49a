"""
Queue Presets
=============

Pre-configured queue settings for popular LLM and API services.

These presets are based on documented request-per-minute limits and common
usage patterns. Always verify current limits with your specific API tier
and provider.

Usage:
    ```python
    from throttled_queue import ThrottledQueue, Presets

    # Unpack a preset dict
    queue = ThrottledQueue(**Presets.OPENAI_TIER1)

    # Or use the typed config
    queue = Presets.CONFIGS["anthropic_tier1"].create_queue()
    ```

Node Usage:
    ```python
    class MyNode(ThrottledBatchNode):
        max_per_interval = Presets.SCRAPING_POLITE["max_per_interval"]
        interval = Presets.SCRAPING_POLITE["interval"]
    ```
"""

from dataclasses import dataclass
from typing import Any, Dict

from .throttler import ThrottledQueue
from .units import minutes, seconds


@dataclass(frozen=True)
class QueueConfig:
    """
    Immutable queue configuration.

    Attributes:
        max_per_interval: Maximum admissions per window
        interval: Window length in milliseconds
        evenly_spaced: Spread admissions evenly across the window
        description: Human-readable description of this preset
    """
    max_per_interval: int
    interval: float
    evenly_spaced: bool = False
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to kwargs dict for queue initialization."""
        result: Dict[str, Any] = {
            "max_per_interval": self.max_per_interval,
            "interval": self.interval,
        }
        if self.evenly_spaced:
            result["evenly_spaced"] = True
        return result

    def create_queue(self, **overrides: Any) -> ThrottledQueue:
        """Build a new ThrottledQueue from this config (kwargs override fields)."""
        return ThrottledQueue(**{**self.to_dict(), **overrides})


def _per_minute(count: int, evenly_spaced: bool = False) -> Dict[str, Any]:
    preset: Dict[str, Any] = {"max_per_interval": count, "interval": minutes(1)}
    if evenly_spaced:
        preset["evenly_spaced"] = True
    return preset


class Presets:
    """
    Collection of queue presets for popular services.

    Each preset is available as both a dict (for **kwargs) and
    a QueueConfig object (for programmatic access).

    Example:
        ```python
        # Using dict unpacking
        queue = ThrottledQueue(**Presets.OPENAI_TIER1)

        # Using config object
        config = Presets.CONFIGS["openai_tier1"]
        print(f"Limit: {config.max_per_interval} per {config.interval}ms")
        queue = config.create_queue()
        ```

    Note:
        Rate limits vary by account tier, model, and time. These presets
        represent typical starting points - adjust based on your actual limits.
    """

    # =========================================================================
    # OpenAI API Rate Limits
    # https://platform.openai.com/docs/guides/rate-limits
    # =========================================================================

    OPENAI_FREE = _per_minute(3)
    OPENAI_TIER1 = _per_minute(60)
    OPENAI_TIER2 = _per_minute(500)
    OPENAI_TIER3 = _per_minute(5000)
    OPENAI_TIER4 = _per_minute(10000)
    OPENAI_TIER5 = _per_minute(30000)

    # =========================================================================
    # Anthropic Claude API Rate Limits
    # https://docs.anthropic.com/claude/reference/rate-limits
    # =========================================================================

    ANTHROPIC_FREE = _per_minute(5)
    ANTHROPIC_BUILD_TIER1 = _per_minute(50)
    ANTHROPIC_BUILD_TIER2 = _per_minute(1000)
    ANTHROPIC_BUILD_TIER3 = _per_minute(2000)
    ANTHROPIC_BUILD_TIER4 = _per_minute(4000)

    # Convenience aliases
    ANTHROPIC_STANDARD = ANTHROPIC_BUILD_TIER1
    ANTHROPIC_SCALE = ANTHROPIC_BUILD_TIER3

    # =========================================================================
    # Google AI (Gemini) Rate Limits
    # =========================================================================

    GOOGLE_FREE = _per_minute(15)
    GOOGLE_PAY_AS_YOU_GO = _per_minute(1000)

    # =========================================================================
    # Generic Presets
    # Use these when you don't know the exact limits
    # =========================================================================

    CONSERVATIVE = _per_minute(20)
    MODERATE = _per_minute(60)
    AGGRESSIVE = _per_minute(200)

    UNLIMITED = {
        "max_per_interval": float("inf"),
        "interval": 0,
    }

    # =========================================================================
    # Web Scraping Presets (be respectful to servers)
    # Evenly spaced so requests never arrive in bursts.
    # =========================================================================

    SCRAPING_POLITE = _per_minute(10, evenly_spaced=True)
    SCRAPING_MODERATE = _per_minute(30, evenly_spaced=True)
    SCRAPING_AGGRESSIVE = {
        "max_per_interval": 1,
        "interval": seconds(0.5),
    }

    # =========================================================================
    # Typed Configuration Objects
    # =========================================================================

    CONFIGS: Dict[str, QueueConfig] = {
        # OpenAI
        "openai_free": QueueConfig(3, minutes(1), description="OpenAI Free Tier"),
        "openai_tier1": QueueConfig(60, minutes(1), description="OpenAI Tier 1"),
        "openai_tier2": QueueConfig(500, minutes(1), description="OpenAI Tier 2"),
        "openai_tier3": QueueConfig(5000, minutes(1), description="OpenAI Tier 3"),
        "openai_tier4": QueueConfig(10000, minutes(1), description="OpenAI Tier 4"),
        "openai_tier5": QueueConfig(30000, minutes(1), description="OpenAI Tier 5"),

        # Anthropic
        "anthropic_free": QueueConfig(5, minutes(1), description="Anthropic Free Tier"),
        "anthropic_tier1": QueueConfig(50, minutes(1), description="Anthropic Build Tier 1"),
        "anthropic_tier2": QueueConfig(1000, minutes(1), description="Anthropic Build Tier 2"),
        "anthropic_tier3": QueueConfig(2000, minutes(1), description="Anthropic Build Tier 3"),
        "anthropic_tier4": QueueConfig(4000, minutes(1), description="Anthropic Build Tier 4"),

        # Google
        "google_free": QueueConfig(15, minutes(1), description="Google AI Free"),
        "google_paid": QueueConfig(1000, minutes(1), description="Google AI Pay-as-you-go"),

        # Generic
        "conservative": QueueConfig(20, minutes(1), description="Conservative - safe default"),
        "moderate": QueueConfig(60, minutes(1), description="Moderate - balanced"),
        "aggressive": QueueConfig(200, minutes(1), description="Aggressive - high throughput"),

        # Scraping
        "scraping_polite": QueueConfig(
            10, minutes(1), evenly_spaced=True, description="Polite scraping - 1 request per 6s"
        ),
        "scraping_moderate": QueueConfig(
            30, minutes(1), evenly_spaced=True, description="Moderate scraping - 1 request per 2s"
        ),
    }

    @classmethod
    def get(cls, name: str) -> Dict[str, Any]:
        """
        Get a preset by name (case-insensitive).

        Args:
            name: Preset name (e.g., "openai_tier1", "ANTHROPIC_STANDARD")

        Returns:
            Dict of ThrottledQueue keyword arguments

        Raises:
            KeyError: If preset name is not found
        """
        # Try as attribute first
        name_upper = name.upper()
        preset = getattr(cls, name_upper, None)
        if isinstance(preset, dict) and name_upper != "CONFIGS":
            return dict(preset)

        # Try in CONFIGS dict
        name_lower = name.lower()
        if name_lower in cls.CONFIGS:
            return cls.CONFIGS[name_lower].to_dict()

        raise KeyError(
            f"Unknown preset: {name}. "
            f"Available: {list(cls.CONFIGS.keys())}"
        )

    @classmethod
    def list_presets(cls) -> Dict[str, str]:
        """
        List all available presets with descriptions.

        Returns:
            Dict mapping preset names to descriptions
        """
        return {name: config.description for name, config in cls.CONFIGS.items()}
