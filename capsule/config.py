"""Time capsule viewer configuration -- validation thresholds and runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from capsule.lib.archive.structure import RequirementsPolicy


@dataclass
class ValidationConfig:
    """Thresholds applied while validating a capsule."""

    min_tags: int = field(
        default_factory=lambda: int(os.environ.get("CAPSULE_MIN_TAGS", "5"))
    )
    min_news: int = field(
        default_factory=lambda: int(os.environ.get("CAPSULE_MIN_NEWS", "5"))
    )
    min_media: int = field(
        default_factory=lambda: int(os.environ.get("CAPSULE_MIN_MEDIA", "5"))
    )
    min_personal: int = field(
        default_factory=lambda: int(os.environ.get("CAPSULE_MIN_PERSONAL", "2"))
    )
    personal_explanation_words: int = field(
        default_factory=lambda: int(os.environ.get("CAPSULE_PERSONAL_WORDS", "100"))
    )
    meme_explanation_words: int = field(
        default_factory=lambda: int(os.environ.get("CAPSULE_MEME_WORDS", "50"))
    )

    def policy(self) -> RequirementsPolicy:
        """Build the aggregate requirements policy from these thresholds."""
        return RequirementsPolicy(
            min_news=self.min_news,
            min_media=self.min_media,
            min_personal=self.min_personal,
            min_tags_per_item=self.min_tags,
        )


@dataclass
class CapsuleConfig:
    """Top-level configuration for the time capsule viewer."""

    validation: ValidationConfig = field(default_factory=ValidationConfig)
    manifest_name: str = field(
        default_factory=lambda: os.environ.get("CAPSULE_MANIFEST_NAME", "manifest.txt")
    )
    max_upload_bytes: int = field(
        default_factory=lambda: int(
            os.environ.get("CAPSULE_MAX_UPLOAD_BYTES", str(100 * 1024 * 1024))
        )
    )
    max_sessions: int = field(
        default_factory=lambda: int(os.environ.get("CAPSULE_MAX_SESSIONS", "8"))
    )
    log_level: str = field(
        default_factory=lambda: os.environ.get("CAPSULE_LOG_LEVEL", "INFO")
    )


# Singleton for convenience
_config: CapsuleConfig | None = None


def get_config() -> CapsuleConfig:
    """Get or create the global configuration."""
    global _config
    if _config is None:
        _config = CapsuleConfig()
    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
