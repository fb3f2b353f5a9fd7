#!/usr/bin/env python3
"""
State Schemas for the DeepDive Topic Podcast Agent.

Uses Pydantic for every record that crosses a component boundary.
Frozen models are used for values that must not change once created
(messages, plan entries, progress events, generation params, artifacts).
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


def generate_id( prefix: str ) -> str:
    """Return a generation-time unique id such as 'podcast-1a2b3c4d'."""
    return f"{prefix}-{uuid.uuid4().hex[ :8 ]}"


# =============================================================================
# Enums
# =============================================================================

class ConversationPhase( str, Enum ):
    """
    Phases of the clarification dialogue.

    CLARIFYING is initial, APPROVAL holds a series plan awaiting the user,
    PLANNING is transient while a plan is regenerated, READY is terminal.
    """
    CLARIFYING = "clarifying"
    PLANNING   = "planning"
    APPROVAL   = "approval"
    READY      = "ready"


class MessageRole( str, Enum ):
    USER      = "user"
    ASSISTANT = "assistant"
    SYSTEM    = "system"


class ProgressStage( str, Enum ):
    """
    Stages reported on the progress channel.

    CANCELLED and FAILED are terminal alternatives to DONE.
    """
    PLANNING       = "planning"
    SEARCHING      = "searching"
    ANALYZING      = "analyzing"
    GENERATING     = "generating"
    CREATING_AUDIO = "creating_audio"
    DONE           = "done"
    CANCELLED      = "cancelled"
    FAILED         = "failed"

    @property
    def is_terminal( self ) -> bool:
        return self in ( ProgressStage.DONE, ProgressStage.CANCELLED, ProgressStage.FAILED )


class PipelineState( Enum ):
    """Outcome of one generation attempt. Failures are raised, not returned."""
    COMPLETED = "completed"
    CANCELLED = "cancelled"


Specificity = Literal[ "specific", "broad", "general" ]
Depth       = Literal[ "quick", "standard", "deep" ]
Format      = Literal[ "single", "series" ]
Tone        = Literal[ "conversational", "educational", "storytelling" ]


# =============================================================================
# Conversation Models
# =============================================================================

class EpisodePlanEntry( BaseModel ):
    """One planned episode of a series."""

    model_config = ConfigDict( frozen=True )

    episode_number : int = Field( ge=1, description="1-based, contiguous within a plan" )
    title          : str = Field( min_length=1 )
    focus          : str = Field( min_length=1, description="One-sentence focus of the episode" )
    key_points     : tuple[ str, ... ] = Field( min_length=3, max_length=3 )


EpisodePlan = tuple[ EpisodePlanEntry, ... ]


class ChatMessage( BaseModel ):
    """
    A single transcript message. Immutable once created.
    """

    model_config = ConfigDict( frozen=True )

    id            : str         = Field( default_factory=lambda: generate_id( "msg" ) )
    role          : MessageRole
    text          : str
    timestamp     : datetime    = Field( default_factory=datetime.now )
    quick_replies : tuple[ str, ... ] = ()
    episode_plan  : Optional[ EpisodePlan ] = None
    asks          : Optional[ str ] = Field( default=None, description="Preference an assistant question is about" )


class ConversationContext( BaseModel ):
    """
    Accumulated clarification state.

    Only ConversationEngine produces new instances; the pipeline never sees it.
    """

    original_topic : str
    refined_topic  : Optional[ str ]         = None
    specificity    : Optional[ Specificity ] = None
    depth          : Optional[ Depth ]       = None
    format         : Optional[ Format ]      = None
    tone           : Optional[ Tone ]        = None
    voice          : str                     = "onyx"
    episode_plan   : Optional[ EpisodePlan ] = None
    question_count : int                     = Field( default=0, ge=0 )


class ConversationState( BaseModel ):
    """Phase, transcript and context of one generation attempt's dialogue."""

    phase                : ConversationPhase = ConversationPhase.CLARIFYING
    messages             : list[ ChatMessage ] = Field( default_factory=list )
    context              : ConversationContext
    is_awaiting_response : bool = False

    @property
    def last_message( self ) -> Optional[ ChatMessage ]:
        return self.messages[ -1 ] if self.messages else None


# =============================================================================
# Pipeline Models
# =============================================================================

class GenerationProgress( BaseModel ):
    """A single progress event payload."""

    model_config = ConfigDict( frozen=True )

    stage          : ProgressStage
    message        : str
    progress       : float         = Field( ge=0.0, le=1.0 )
    episode_number : Optional[ int ] = None
    total_episodes : Optional[ int ] = None


class GenerationParams( BaseModel ):
    """
    Frozen handoff from ConversationEngine to GenerationPipeline.
    """

    model_config = ConfigDict( frozen=True )

    topic            : str = Field( min_length=1 )
    is_series        : bool
    depth            : Depth = "standard"
    tone             : Tone  = "conversational"
    style            : str   = "conversational"
    voice            : str   = "onyx"
    episode_plan     : Optional[ EpisodePlan ] = None
    approved_outline : Optional[ EpisodePlan ] = None


class ResearchResult( BaseModel ):
    model_config = ConfigDict( frozen=True )

    notes   : str
    sources : tuple[ str, ... ] = Field( min_length=1 )


class NarrationResult( BaseModel ):
    model_config = ConfigDict( frozen=True )

    audio_uri        : str
    duration_seconds : int = Field( ge=0 )


class SeriesOutline( BaseModel ):
    """Planned structure of a series: title, description and 3-5 episodes."""

    model_config = ConfigDict( frozen=True )

    title       : str
    description : str
    episodes    : EpisodePlan = Field( min_length=1 )


class Podcast( BaseModel ):
    """
    A completed content artifact: a single episode or one episode of a series.

    This is exactly the record the persistence collaborator stores.
    """

    model_config = ConfigDict( frozen=True )

    id             : str
    topic          : str
    script         : str
    audio_uri      : str
    duration       : int
    created_at     : datetime = Field( default_factory=datetime.now )
    sources        : tuple[ str, ... ] = ()
    category       : Optional[ str ] = None
    is_favorite    : bool = False
    voice_used     : str
    depth          : Depth = "standard"
    tone           : Tone  = "conversational"
    style          : str   = "conversational"
    series_id      : Optional[ str ] = None
    episode_number : Optional[ int ] = None
    episode_title  : Optional[ str ] = None


class Series( BaseModel ):
    """A multi-episode series record."""

    model_config = ConfigDict( frozen=True )

    id             : str
    topic          : str
    title          : str
    description    : str
    episode_count  : int = Field( ge=1 )
    total_duration : int = Field( ge=0 )
    cover_color    : str
    is_favorite    : bool = False
    created_at     : datetime = Field( default_factory=datetime.now )


class GenerationResult( BaseModel ):
    """
    Outcome of GenerationPipeline.generate().

    COMPLETED carries either podcast (single) or series + episodes.
    CANCELLED carries no artifact at all.
    """

    model_config = ConfigDict( frozen=True )

    state    : PipelineState
    podcast  : Optional[ Podcast ] = None
    series   : Optional[ Series ]  = None
    episodes : tuple[ Podcast, ... ] = ()

    def is_cancelled( self ) -> bool:
        return self.state == PipelineState.CANCELLED

    @classmethod
    def cancelled( cls ) -> "GenerationResult":
        return cls( state=PipelineState.CANCELLED )


def quick_smoke_test():
    """Quick smoke test for state models."""
    import deepdive.utils.util as du

    du.print_banner( "Topic Podcast State Smoke Test", prepend_nl=True )

    try:
        entry = EpisodePlanEntry(
            episode_number = 1,
            title          = "Origins",
            focus          = "Where it all began.",
            key_points     = ( "a", "b", "c" ),
        )
        print( f"✓ EpisodePlanEntry created: {entry.title}" )

        message = ChatMessage( role=MessageRole.ASSISTANT, text="Hello", episode_plan=( entry, ) )
        assert message.id.startswith( "msg-" )
        print( f"✓ ChatMessage created: {message.id}" )

        params = GenerationParams( topic="Jazz", is_series=True, approved_outline=( entry, ) )
        assert params.depth == "standard"
        print( "✓ GenerationParams defaults applied" )

        assert GenerationResult.cancelled().is_cancelled()
        print( "✓ GenerationResult.cancelled works" )

        print( "\n✓ State smoke test completed successfully" )

    except Exception as e:
        print( f"\n✗ Smoke test failed: {e}" )
        import traceback
        traceback.print_exc()


if __name__ == "__main__":
    quick_smoke_test()
