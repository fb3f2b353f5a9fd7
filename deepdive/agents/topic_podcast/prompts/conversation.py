#!/usr/bin/env python3
"""
Clarification Dialogue Prompts for the DeepDive Topic Podcast Agent.

Contains the dialogue system prompt and the validated-parse boundary for
dialogue replies. Every backend reply passes through parse_dialogue_reply()
and comes out as either a ParsedReply or a FallbackReply; nothing unchecked
travels past this module.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional, Union

from ..state import ConversationContext, EpisodePlan
from .series_planning import parse_episode_plan, strip_code_fences

logger = logging.getLogger( __name__ )


FALLBACK_CONTENT       = "I'm having trouble processing that. Could you tell me more about what you'd like?"
FALLBACK_QUICK_REPLIES = ( "Continue", "Start over" )
ASKABLE_FIELDS         = ( "format", "depth", "tone" )
MAX_QUICK_REPLIES      = 4


# =============================================================================
# System Prompt
# =============================================================================

DIALOGUE_SYSTEM_PROMPT = """You are a helpful podcast creation assistant. You're having a short conversation to understand what kind of podcast the user wants.

Current context:
- Original topic: "{original_topic}"
- Questions asked so far: {question_count} of at most {max_turns}
- Specificity preference: {specificity}
- Depth preference: {depth}
- Format preference: {format}
- Tone preference: {tone}

Rules:
1. Ask only 2-4 clarifying questions total, one at a time
2. Questions should be simple and conversational
3. Always provide 2-3 quick reply suggestions in your response
4. If the topic is broad, ask if they want a specific focus or a general overview
5. After gathering enough info, either:
   - For broad topics: propose a series with 3-5 episodes
   - For specific topics: confirm you're ready to generate

OUTPUT FORMAT:
Respond with a single JSON object and nothing else:
{{
    "content": "Your message here",
    "quickReplies": ["Option 1", "Option 2", "Option 3"],
    "asks": "format" | "depth" | "tone" | null,
    "episodePlan": null or [{{"number": 1, "title": "...", "focus": "...", "keyPoints": ["...", "...", "..."]}}],
    "isReady": false,
    "isSeries": false
}}

"asks" names the preference your question is about, or null if you are not asking about one."""


def get_dialogue_system_prompt( context: ConversationContext, max_turns: int ) -> str:
    """
    Build the dialogue system prompt for the current context.

    Requires:
        - context.original_topic is non-empty
        - max_turns >= 1

    Ensures:
        - Unknown preferences are rendered as "unknown"

    Args:
        context: Current conversation context
        max_turns: Maximum number of clarification turns

    Returns:
        str: Complete system prompt
    """
    return DIALOGUE_SYSTEM_PROMPT.format(
        original_topic = context.original_topic,
        question_count = context.question_count,
        max_turns      = max_turns,
        specificity    = context.specificity or "unknown",
        depth          = context.depth or "unknown",
        format         = context.format or "unknown",
        tone           = context.tone or "unknown",
    )


# =============================================================================
# Reply Parse Boundary
# =============================================================================

@dataclass( frozen=True )
class ParsedReply:
    """A dialogue reply that matched the expected structure."""

    content       : str
    quick_replies : tuple = ()
    episode_plan  : Optional[ EpisodePlan ] = None
    is_ready      : bool = False
    is_series     : bool = False
    asks          : Optional[ str ] = None

    @property
    def is_fallback( self ) -> bool:
        return False


@dataclass( frozen=True )
class FallbackReply:
    """Safe default used when the backend reply could not be parsed."""

    reason        : str = ""
    content       : str = FALLBACK_CONTENT
    quick_replies : tuple = FALLBACK_QUICK_REPLIES
    episode_plan  : Optional[ EpisodePlan ] = None
    is_ready      : bool = False
    is_series     : bool = False
    asks          : Optional[ str ] = None

    @property
    def is_fallback( self ) -> bool:
        return True


DialogueReply = Union[ ParsedReply, FallbackReply ]


def parse_dialogue_reply( response_content: str, min_episodes: int = 3, max_episodes: int = 5 ) -> DialogueReply:
    """
    Parse a raw dialogue reply.

    Requires:
        - response_content is a string (may be malformed)

    Ensures:
        - Returns FallbackReply for non-JSON or missing content
        - Returns ParsedReply with normalized fields otherwise
        - Raises PlanParseError if a plan is present but malformed

    Args:
        response_content: Raw backend response text
        min_episodes: Minimum plan length accepted
        max_episodes: Plan entries beyond this are dropped

    Returns:
        DialogueReply: ParsedReply or FallbackReply
    """
    content = strip_code_fences( response_content )

    try:
        parsed = json.loads( content )
    except json.JSONDecodeError as e:
        logger.warning( f"Dialogue reply was not JSON, using fallback: {e}" )
        return FallbackReply( reason=f"invalid JSON: {e}" )

    if not isinstance( parsed, dict ):
        logger.warning( "Dialogue reply was not a JSON object, using fallback" )
        return FallbackReply( reason="reply is not an object" )

    text = parsed.get( "content" )
    if not isinstance( text, str ) or not text.strip():
        logger.warning( "Dialogue reply had no content, using fallback" )
        return FallbackReply( reason="missing content" )

    quick_replies = parsed.get( "quickReplies" ) or []
    if not isinstance( quick_replies, list ):
        quick_replies = []
    quick_replies = tuple( reply.strip() for reply in quick_replies if isinstance( reply, str ) and reply.strip() )

    plan = None
    if parsed.get( "episodePlan" ) is not None:
        plan = parse_episode_plan( parsed[ "episodePlan" ], min_episodes=min_episodes, max_episodes=max_episodes )

    asks = parsed.get( "asks" )
    if asks not in ASKABLE_FIELDS:
        asks = None

    return ParsedReply(
        content       = text.strip(),
        quick_replies = quick_replies[ :MAX_QUICK_REPLIES ],
        episode_plan  = plan,
        is_ready      = parsed.get( "isReady" ) is True,
        is_series     = parsed.get( "isSeries" ) is True,
        asks          = asks,
    )


def quick_smoke_test():
    """Quick smoke test for dialogue prompt helpers."""
    import deepdive.utils.util as du

    du.print_banner( "Dialogue Prompts Smoke Test", prepend_nl=True )

    try:
        prompt = get_dialogue_system_prompt( ConversationContext( original_topic="Jazz" ), max_turns=5 )
        assert '"Jazz"' in prompt and "unknown" in prompt
        print( "✓ System prompt rendered" )

        reply = parse_dialogue_reply( '{"content": "Single or series?", "quickReplies": ["Single", "Series"], "asks": "format"}' )
        assert not reply.is_fallback and reply.asks == "format"
        print( "✓ Well-formed reply parsed" )

        reply = parse_dialogue_reply( "Sure! Let's talk about jazz." )
        assert reply.is_fallback and reply.quick_replies == FALLBACK_QUICK_REPLIES
        print( "✓ Malformed reply falls back" )

        print( "\n✓ Dialogue prompts smoke test completed successfully" )

    except Exception as e:
        print( f"\n✗ Smoke test failed: {e}" )
        import traceback
        traceback.print_exc()


if __name__ == "__main__":
    quick_smoke_test()
