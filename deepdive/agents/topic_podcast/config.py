#!/usr/bin/env python3
"""
Configuration for the DeepDive Topic Podcast Agent.

Design decisions:
- Sonnet for dialogue, research, scripting and planning (fast, structured JSON)
- OpenAI speech for narration by default, ElevenLabs as an alternative backend
- Bounded clarification dialogue (max turns) so a misbehaving backend can't loop forever
- Duration estimated from word count, since synthesis doesn't report it
"""

import os
from dataclasses import dataclass, field
from typing import Literal, Optional


# =============================================================================
# Narration Voices
# =============================================================================

NARRATION_VOICES = ( "onyx", "alloy", "echo", "fable", "nova", "shimmer" )

VOICE_DESCRIPTIONS = {
    "onyx"    : "Deep and authoritative",
    "alloy"   : "Balanced and neutral",
    "echo"    : "Warm and measured",
    "fable"   : "Expressive storyteller",
    "nova"    : "Bright and energetic",
    "shimmer" : "Soft and clear",
}

VOICE_PREVIEW_TEXTS = {
    "onyx"    : "Welcome to Deep Dive. Today we explore the fascinating world of ideas that shape our future.",
    "alloy"   : "Hello and welcome. Let's take a closer look at something truly remarkable.",
    "echo"    : "Good to have you here. Settle in, because this story has a few surprises.",
    "fable"   : "Once upon a time, a simple question led to an extraordinary discovery.",
    "nova"    : "Hey there! Ready to learn something amazing? Let's jump right in.",
    "shimmer" : "Take a breath, get comfortable, and let's explore this together.",
}

# ElevenLabs voice IDs used when narration_backend == "elevenlabs"
# Keys are the same voice names so the rest of the system stays backend-agnostic
ELEVENLABS_VOICE_IDS = {
    "onyx"    : "VR6AewLTigWG4xSOukaG",
    "alloy"   : "EXAVITQu4vr4xnSDxMaL",
    "echo"    : "Aa6nEBJJMKJwJkCx8VU2",
    "fable"   : "kcQkGnn0HAT2JRDQ4Ljp",
    "nova"    : "21m00Tcm4TlvDq8ikWAM",
    "shimmer" : "AZnzlk1XvdvUeBnXmlld",
}


# =============================================================================
# Series Cover Palette
# =============================================================================

COVER_PALETTE = (
    "#6C5CE7",
    "#00B894",
    "#0984E3",
    "#E17055",
    "#FDCB6E",
    "#E84393",
    "#00CEC9",
    "#D63031",
)


# =============================================================================
# Tone → Style Mapping
# =============================================================================

TONE_STYLES = {
    "conversational" : "conversational",
    "educational"    : "educational",
    "storytelling"   : "storytelling",
}

DEFAULT_DEPTH = "standard"
DEFAULT_TONE  = "conversational"


def _default_output_dir() -> str:
    import deepdive.utils.util as du
    return os.path.join( du.get_project_root(), "io", "podcasts" )


@dataclass
class TopicPodcastConfig:
    """
    Configuration for topic podcast generation.

    Requires:
        - All numeric limits are positive
        - default_voice is one of NARRATION_VOICES

    Ensures:
        - Provides complete configuration for dialogue, stages and pipeline
        - Validates ranges on construction
    """

    # Text generation
    text_model              : str   = "claude-sonnet-4-20250514"
    max_tokens_dialogue     : int   = 1024
    max_tokens_research     : int   = 1500
    max_tokens_script       : int   = 1500
    max_tokens_planning     : int   = 2000
    temperature             : float = 0.7
    request_timeout_seconds : float = 60.0

    # Narration
    narration_backend : Literal[ "openai", "elevenlabs" ] = "openai"
    narration_model   : str = "tts-1-hd"
    narration_format  : str = "mp3"
    default_voice     : str = "onyx"

    # Conversation
    max_clarification_turns : int = 5

    # Pipeline
    words_per_minute        : int   = 150
    analysis_settle_seconds : float = 0.3
    min_sources             : int   = 3
    max_sources             : int   = 5
    min_episodes            : int   = 3
    max_episodes            : int   = 5
    cover_palette           : tuple = COVER_PALETTE

    # Output
    output_dir : str = field( default_factory=_default_output_dir )

    # Offline mode
    dry_run            : bool  = False
    mock_delay_seconds : float = 0.8

    def __post_init__( self ):
        """Validate parameter ranges."""
        assert self.max_clarification_turns >= 1, "max_clarification_turns must be >= 1"
        assert self.words_per_minute > 0, "words_per_minute must be positive"
        assert 1 <= self.min_sources <= self.max_sources, "min_sources must be 1..max_sources"
        assert 1 <= self.min_episodes <= self.max_episodes, "min_episodes must be 1..max_episodes"
        assert 0.0 <= self.temperature <= 1.0, "temperature must be 0.0-1.0"
        assert self.analysis_settle_seconds >= 0.0, "analysis_settle_seconds must be >= 0"
        assert self.default_voice in NARRATION_VOICES, f"default_voice must be one of {NARRATION_VOICES}"
        assert len( self.cover_palette ) > 0, "cover_palette must not be empty"

    def resolve_voice( self, voice: Optional[ str ] ) -> str:
        """
        Return a known voice name, falling back to the default voice.

        Args:
            voice: Requested voice name (may be None or unknown)

        Returns:
            str: A member of NARRATION_VOICES
        """
        if voice and voice.lower() in NARRATION_VOICES:
            return voice.lower()
        return self.default_voice


def quick_smoke_test():
    """Quick smoke test for TopicPodcastConfig."""
    import deepdive.utils.util as du

    du.print_banner( "TopicPodcastConfig Smoke Test", prepend_nl=True )

    try:
        config = TopicPodcastConfig()
        assert config.narration_model == "tts-1-hd"
        assert config.words_per_minute == 150
        print( f"✓ Defaults OK (model={config.text_model}, voice={config.default_voice})" )

        assert config.resolve_voice( "NOVA" ) == "nova"
        assert config.resolve_voice( "robot" ) == "onyx"
        print( "✓ resolve_voice falls back to default" )

        try:
            TopicPodcastConfig( max_clarification_turns=0 )
            raise RuntimeError( "expected assertion" )
        except AssertionError:
            print( "✓ Range validation rejects max_clarification_turns=0" )

        print( "\n✓ Config smoke test completed successfully" )

    except Exception as e:
        print( f"\n✗ Smoke test failed: {e}" )
        import traceback
        traceback.print_exc()


if __name__ == "__main__":
    quick_smoke_test()
