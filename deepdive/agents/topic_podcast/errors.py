#!/usr/bin/env python3
"""
Exception taxonomy for the DeepDive Topic Podcast Agent.

Every error raised past a component boundary carries a short, human-readable
message drawn from ERROR_MESSAGES so the UI never shows a raw stack or code.

Classes:
    - ConfigurationError: Required credential/config is missing
    - StageRequestError: Backend call failed (stage identified)
    - StageTimeoutError: Backend call timed out (a StageRequestError)
    - ReplyParseError / PlanParseError: Backend payload had the wrong shape
    - ConversationTurnError: A dialogue turn failed, context untouched
    - ConversationBusyError: A turn was submitted while one is in flight
    - InvalidPhaseError: Action not legal in the current dialogue phase
"""

from typing import Optional


ERROR_MESSAGES = {
    "configuration" : "This feature isn't set up yet. Please add the required API key and try again.",
    "request"       : "We couldn't reach the {stage} service. Please try again.",
    "timeout"       : "The {stage} service took too long to respond. Please try again.",
    "parse"         : "We received an unexpected response from the {stage} service. Please try again.",
    "conversation"  : "Sorry, I couldn't process that reply. Please send it again.",
    "busy"          : "Please wait for the current reply before sending another message.",
    "phase"         : "That action isn't available right now.",
    "unexpected"    : "Something went wrong while creating your podcast. Please try again.",
}

STAGE_LABELS = {
    "dialogue"  : "conversation",
    "research"  : "research",
    "script"    : "script writing",
    "narration" : "narration",
    "planning"  : "series planning",
}


class DeepDiveError( Exception ):
    """
    Base class for all DeepDive errors.

    Requires:
        - kind is a key of ERROR_MESSAGES

    Ensures:
        - user_message is a catalog message with the stage label filled in
        - str( error ) is the technical detail for logs
    """

    kind = "request"

    def __init__( self, detail: str = "", stage: Optional[ str ] = None ):
        self.detail = detail
        self.stage  = stage
        super().__init__( detail or self.user_message )

    @property
    def user_message( self ) -> str:
        label = STAGE_LABELS.get( self.stage or "", self.stage or "generation" )
        return ERROR_MESSAGES[ self.kind ].format( stage=label )


class ConfigurationError( DeepDiveError ):
    """Required backend credential or configuration is missing."""
    kind = "configuration"


class StageRequestError( DeepDiveError ):
    """Network/HTTP-level failure from a stage backend."""
    kind = "request"


class StageTimeoutError( StageRequestError ):
    """A stage backend did not respond in time."""
    kind = "timeout"


class ReplyParseError( DeepDiveError ):
    """Backend responded but the payload did not match the expected structure."""
    kind = "parse"


class PlanParseError( ReplyParseError ):
    """An episode plan could not be parsed. Never downgraded to an empty plan."""

    def __init__( self, detail: str = "", stage: Optional[ str ] = "planning" ):
        super().__init__( detail, stage )


class ConversationTurnError( DeepDiveError ):
    """A clarification turn failed; the conversation state is unchanged."""
    kind = "conversation"

    def __init__( self, detail: str = "", stage: Optional[ str ] = "dialogue", cause: Optional[ Exception ] = None ):
        super().__init__( detail, stage )
        self.cause = cause


class ConversationBusyError( DeepDiveError ):
    """A turn was submitted while the engine is awaiting a response."""
    kind = "busy"

    def __init__( self, detail: str = "", stage: Optional[ str ] = "dialogue" ):
        super().__init__( detail, stage )


class InvalidPhaseError( DeepDiveError ):
    """The requested action is not legal in the current phase."""
    kind = "phase"

    def __init__( self, detail: str = "", stage: Optional[ str ] = "dialogue" ):
        super().__init__( detail, stage )
