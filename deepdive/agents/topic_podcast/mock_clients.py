#!/usr/bin/env python3
"""
Mock clients for dry-run mode of the Topic Podcast Agent.

Provides canned responses that simulate API calls without making real requests.
Used when dry_run=True to exercise the full dialogue and pipeline offline.

Usage:
    from .mock_clients import MockTopicPodcastAPIClient, MockNarrationBackend, ScriptedDialogueBackend

    if config.dry_run:
        api_client = MockTopicPodcastAPIClient( debug=True )
        narration  = MockNarrationBackend( debug=True )
        dialogue   = ScriptedDialogueBackend()
"""

import asyncio
import json
from typing import Optional

from .prompts.conversation import ParsedReply
from .prompts.series_planning import describe_series
from .state import ChatMessage, ConversationContext, EpisodePlan, EpisodePlanEntry


# =============================================================================
# Canned Dialogue
# =============================================================================

MOCK_FOLLOW_UP_RESPONSES = {
    0 : {
        "content"       : "I'd love to help you explore this topic! What format works best for you?\n\n"
                          "Would you like a single focused episode, or a multi-part series that covers different aspects?",
        "quick_replies" : ( "Single episode", "Multi-part series", "I'm not sure yet" ),
        "asks"          : "format",
    },
    1 : {
        "content"       : "Got it! And how much time do you have? Would you prefer:\n\n"
                          "A quick 5-minute summary, a standard 10-15 minute episode, or a comprehensive deep-dive that really explores the nuances?",
        "quick_replies" : ( "Quick summary (5 min)", "Standard episode (10-15 min)", "Deep dive (20+ min)" ),
        "asks"          : "depth",
    },
    2 : {
        "content"       : "One more thing - what style would work best for you?\n\n"
                          "Would you like it conversational and casual, more educational and structured, or narrative storytelling style?",
        "quick_replies" : ( "Conversational", "Educational", "Storytelling" ),
        "asks"          : "tone",
    },
}

MOCK_SERIES_PLAN = [
    {
        "number"    : 1,
        "title"     : "Origins and Early Beginnings",
        "focus"     : "The historical context and foundational events that sparked this topic",
        "keyPoints" : [ "Historical background", "Key figures", "Initial developments" ],
    },
    {
        "number"    : 2,
        "title"     : "The Golden Age",
        "focus"     : "The peak period of development and major achievements",
        "keyPoints" : [ "Major milestones", "Influential works", "Cultural impact" ],
    },
    {
        "number"    : 3,
        "title"     : "Challenges and Controversies",
        "focus"     : "The obstacles, debates, and turning points",
        "keyPoints" : [ "Key conflicts", "Different perspectives", "Pivotal moments" ],
    },
    {
        "number"    : 4,
        "title"     : "Modern Legacy and Impact",
        "focus"     : "How this topic continues to influence our world today",
        "keyPoints" : [ "Contemporary relevance", "Lasting effects", "Future outlook" ],
    },
]

MOCK_SOURCES = [
    "Academic research publications and peer-reviewed journals",
    "Industry expert interviews and analysis",
    "Government statistical databases",
    "Historical archives and documentation",
    "Scientific research institutions",
]

MOCK_SCRIPT = """Welcome back to Deep Dive, where we explore the fascinating corners of our world... Today, we're diving into this topic, something you've probably wondered about at some point.

You know, it's remarkable how much there is to discover when we really look closely. The research here is genuinely surprising... Studies keep turning up patterns that most people never even consider, and the closer you look, the more interesting it gets.

Here's what I find most interesting... When experts first started examining this area, they expected to find one simple answer. Reality turned out to be far more complex. The data tells a story that challenges a lot of our everyday assumptions.

Let me break this down for you... First, there's the fundamental idea that forms the foundation. Everything else rests on it, so it's worth getting right. Then, we have the secondary elements that build upon that base, the details that make each case a little different. And finally, there are the emerging trends that are reshaping how we think about all of this right now.

Think of it like a city at night seen from an airplane. From far away you see a glow. Fly a little lower and you notice the highways, then the neighborhoods, and finally the individual lights in individual windows. Each level of detail changes the picture without making the earlier view wrong.

What really stands out to me is how interconnected everything is. One small change can ripple outward in ways nobody anticipated. It's a reminder that our world operates as a system, not as a collection of isolated parts... and that curiosity is the best tool we have for understanding it.

So what does this mean for you? Well, the next time you encounter this topic, you'll see it through a completely different lens. You'll notice the foundations, the details, and the trends, and you'll ask better questions about each of them. And that's what I love about learning... it quietly transforms how we experience everyday life.

That's all for today's episode. Keep exploring, keep questioning, and I'll see you in the next Deep Dive."""

MOCK_AUDIO_BYTES = b"ID3" + b"\x00" * 1024


def build_mock_plan( topic: str, suffix: str = "" ) -> EpisodePlan:
    """Build the canned 4-episode plan with titles prefixed by the topic."""
    return tuple(
        EpisodePlanEntry(
            episode_number = entry[ "number" ],
            title          = f"{topic}: {entry[ 'title' ]}{suffix}",
            focus          = entry[ "focus" ],
            key_points     = tuple( entry[ "keyPoints" ] ),
        )
        for entry in MOCK_SERIES_PLAN
    )


def _mock_plan_json( topic: str, suffix: str = "" ) -> str:
    episodes = [
        {
            "number"    : entry[ "number" ],
            "title"     : f"{topic}: {entry[ 'title' ]}{suffix}",
            "focus"     : entry[ "focus" ],
            "keyPoints" : entry[ "keyPoints" ],
        }
        for entry in MOCK_SERIES_PLAN
    ]
    return json.dumps( {
        "title"       : topic,
        "description" : describe_series( topic, len( episodes ) ),
        "episodes"    : episodes,
    } )


# =============================================================================
# Mock API Client
# =============================================================================

class MockTopicPodcastAPIClient:
    """
    Mock API client that returns canned responses without calling Claude.

    Simulates the TopicPodcastAPIClient stage-call interface.

    Requires:
        - None (no API key needed)

    Ensures:
        - Returns structurally valid responses for every stage
        - Simulates latency of delay_seconds per call
        - Records every call as ( method, argument ) in self.calls
    """

    def __init__( self, config = None, delay_seconds: float = 0.8, debug: bool = False, verbose: bool = False ):
        self.config        = config
        self.delay_seconds = delay_seconds
        self.debug         = debug
        self.verbose       = verbose
        self.calls         : list[ tuple[ str, str ] ] = []

    @property
    def call_count( self ) -> int:
        return len( self.calls )

    async def _simulate( self, method: str, argument: str ) -> None:
        self.calls.append( ( method, argument ) )
        if self.debug:
            print( f"[MockTopicPodcastAPIClient] {method}( {argument[ :60 ]!r} )" )
        if self.delay_seconds:
            await asyncio.sleep( self.delay_seconds )

    async def research( self, query: str ) -> str:
        await self._simulate( "research", query )
        sources = "\n".join( f"- {source}" for source in MOCK_SOURCES )
        return (
            f'Research notes on "{query}": This is a comprehensive overview of the topic covering key facts, '
            f"statistics, recent developments, and expert perspectives.\n\nSources:\n{sources}"
        )

    async def write_script( self, prompt: str ) -> str:
        await self._simulate( "write_script", prompt )
        return MOCK_SCRIPT

    async def plan_series( self, topic: str ) -> str:
        await self._simulate( "plan_series", topic )
        return _mock_plan_json( topic )

    async def revise_plan( self, topic: str, feedback: str, current_plan: Optional[ EpisodePlan ] = None ) -> str:
        await self._simulate( "revise_plan", feedback )
        return _mock_plan_json( topic, suffix=" (Updated)" )


# =============================================================================
# Mock Narration
# =============================================================================

class MockNarrationBackend:
    """
    Mock narration backend returning placeholder mp3 bytes.

    Ensures:
        - Never requires credentials
        - Records each ( text, voice ) call in self.calls
    """

    file_extension = "mp3"

    def __init__( self, delay_seconds: float = 1.0, debug: bool = False ):
        self.delay_seconds = delay_seconds
        self.debug         = debug
        self.calls         : list[ tuple[ str, str ] ] = []

    async def synthesize( self, text: str, voice: str ) -> bytes:
        self.calls.append( ( text, voice ) )
        if self.debug:
            print( f"[MockNarrationBackend] Synthesizing {len( text.split() )} words with voice '{voice}'" )
        if self.delay_seconds:
            await asyncio.sleep( self.delay_seconds )
        return MOCK_AUDIO_BYTES


# =============================================================================
# Scripted Dialogue
# =============================================================================

class ScriptedDialogueBackend:
    """
    Deterministic dialogue backend keyed by turn index.

    Turns 0-2 ask about format, depth and tone. The following turn proposes
    the canned series plan if the user leaned towards a series, otherwise
    signals readiness for a single episode.
    """

    def __init__( self, delay_seconds: float = 1.0, debug: bool = False ):
        self.delay_seconds = delay_seconds
        self.debug         = debug
        self.call_count    = 0

    async def complete(
        self,
        transcript          : list[ ChatMessage ],
        system_instructions : str,
        context             : Optional[ ConversationContext ] = None
    ) -> ParsedReply:
        self.call_count += 1
        if self.delay_seconds:
            await asyncio.sleep( self.delay_seconds )

        turn = context.question_count if context is not None else len( transcript ) // 2
        if self.debug:
            print( f"[ScriptedDialogueBackend] Turn {turn}" )

        if turn in MOCK_FOLLOW_UP_RESPONSES:
            response = MOCK_FOLLOW_UP_RESPONSES[ turn ]
            return ParsedReply(
                content       = response[ "content" ],
                quick_replies = response[ "quick_replies" ],
                asks          = response[ "asks" ],
            )

        topic = context.original_topic if context is not None else transcript[ 0 ].text

        if context is not None and ( context.format == "series" or context.specificity == "broad" ):
            return ParsedReply(
                content       = f'Based on our conversation, I think a multi-episode series would work perfectly for "{topic}". '
                                f"Here's my proposed episode plan:",
                quick_replies = ( "Approve plan", "Modify plan", "Make it a single episode" ),
                episode_plan  = build_mock_plan( topic ),
                is_series     = True,
            )

        depth = ( context.depth if context is not None else None ) or "standard"
        tone  = ( context.tone if context is not None else None ) or "conversational"
        return ParsedReply(
            content       = f'Perfect! I have everything I need. I\'ll create a {depth} {tone} episode about "{topic}".\n\n'
                            f"Ready to generate your podcast?",
            quick_replies = ( "Generate podcast", "Let me adjust something" ),
            is_ready      = True,
        )
