"""Version staging and publication."""

from plugin_registry.versions.builder import PendingVersionBuilder, StageResult, slugify
from plugin_registry.versions.duplicates import DuplicateDetector
from plugin_registry.versions.pipeline import PublicationPipeline, PublishedVersion, PublishResult
from plugin_registry.versions.state import TERMINAL_STATES, VALID_TRANSITIONS, PublishState, PublishStateMachine

__all__ = [
    "DuplicateDetector",
    "PendingVersionBuilder",
    "PublicationPipeline",
    "PublishResult",
    "PublishState",
    "PublishStateMachine",
    "PublishedVersion",
    "StageResult",
    "TERMINAL_STATES",
    "VALID_TRANSITIONS",
    "slugify",
]
