#!/usr/bin/env python3
"""
DeepDive Topic Podcast Agent.

Turns a short free-text topic into a narrated, single-host podcast episode
or a multi-episode series, after a brief clarification dialogue.

Key Features:
- Bounded clarification dialogue with quick-reply suggestions
- Series planning with user approval and feedback-driven plan revision
- Research -> script -> narration pipeline with ordered progress events
- Cooperative cancellation and single-attempt failure semantics
- Dry-run mode with canned responses for offline use

Architecture:
- ConversationEngine: Turn-based dialogue state machine
- GenerationPipeline: Sequential stage composition for episodes and series
- TopicPodcastConfig: Configuration dataclass for all settings
- State models: Pydantic models for messages, plans, params and artifacts

Usage:
    from deepdive.agents.topic_podcast import (
        ConversationEngine,
        GenerationPipeline,
        TopicPodcastConfig,
    )

    config   = TopicPodcastConfig( dry_run=True )
    pipeline = GenerationPipeline( config=config )
    engine   = ConversationEngine( ScriptedDialogueBackend(), plan_regenerator=pipeline, config=config )

    state  = engine.start( "History of Jazz" )
    state  = await engine.begin( state )
    ...
    result = await pipeline.generate( engine.approve( state ) )
"""

__version__ = "0.1.0"

from .config import TopicPodcastConfig, NARRATION_VOICES, VOICE_DESCRIPTIONS
from .errors import (
    DeepDiveError,
    ConfigurationError,
    StageRequestError,
    StageTimeoutError,
    ReplyParseError,
    PlanParseError,
    ConversationTurnError,
    ConversationBusyError,
    InvalidPhaseError,
)
from .state import (
    ConversationPhase,
    ConversationState,
    ConversationContext,
    ChatMessage,
    EpisodePlanEntry,
    GenerationParams,
    GenerationProgress,
    GenerationResult,
    PipelineState,
    Podcast,
    ProgressStage,
    Series,
)

from .conversation import ConversationEngine, get_generation_params
from .pipeline import GenerationPipeline
from .progress import ProgressChannel
from .api_client import TopicPodcastAPIClient, AnthropicDialogueBackend
from .tts_client import OpenAINarrationBackend, ElevenLabsNarrationBackend, create_narration_backend
from .mock_clients import MockTopicPodcastAPIClient, MockNarrationBackend, ScriptedDialogueBackend
from .playback import VoicePreview, estimate_sentence_timings

__all__ = [
    # Version
    "__version__",
    # Config
    "TopicPodcastConfig",
    "NARRATION_VOICES",
    "VOICE_DESCRIPTIONS",
    # Errors
    "DeepDiveError",
    "ConfigurationError",
    "StageRequestError",
    "StageTimeoutError",
    "ReplyParseError",
    "PlanParseError",
    "ConversationTurnError",
    "ConversationBusyError",
    "InvalidPhaseError",
    # State
    "ConversationPhase",
    "ConversationState",
    "ConversationContext",
    "ChatMessage",
    "EpisodePlanEntry",
    "GenerationParams",
    "GenerationProgress",
    "GenerationResult",
    "PipelineState",
    "Podcast",
    "ProgressStage",
    "Series",
    # Engine and pipeline
    "ConversationEngine",
    "get_generation_params",
    "GenerationPipeline",
    "ProgressChannel",
    # Backends
    "TopicPodcastAPIClient",
    "AnthropicDialogueBackend",
    "OpenAINarrationBackend",
    "ElevenLabsNarrationBackend",
    "create_narration_backend",
    "MockTopicPodcastAPIClient",
    "MockNarrationBackend",
    "ScriptedDialogueBackend",
    # Playback
    "VoicePreview",
    "estimate_sentence_timings",
]
