#!/usr/bin/env python3
"""
Series Planning Prompts for the DeepDive Topic Podcast Agent.

Contains prompts for planning a multi-episode series and for revising a
plan from user feedback, plus the strict plan parsers. Unlike dialogue
replies, an unparseable plan is a hard failure: it raises PlanParseError
and never becomes an empty plan.
"""

import json
from typing import Any, Optional

from pydantic import ValidationError

from ..errors import PlanParseError
from ..state import EpisodePlan, EpisodePlanEntry, SeriesOutline


# =============================================================================
# System Prompts
# =============================================================================

SERIES_PLANNING_SYSTEM_PROMPT = """You are a podcast series producer planning a short audio series for curious listeners.

Your task is to break a topic into {min_episodes}-{max_episodes} episodes that each stand on their own
while building a coherent arc from start to finish.

For each episode provide:
- number (1-based, in listening order)
- title (engaging and specific)
- focus (one sentence describing what this episode covers)
- keyPoints (exactly 3 main topics to cover)

OUTPUT FORMAT:
Respond with a single JSON object and nothing else:
{{
    "title": "Series title",
    "description": "One or two sentences describing the series",
    "episodes": [
        {{"number": 1, "title": "...", "focus": "...", "keyPoints": ["...", "...", "..."]}}
    ]
}}"""


# =============================================================================
# Prompt Templates
# =============================================================================

def get_series_planning_system_prompt( min_episodes: int = 3, max_episodes: int = 5 ) -> str:
    return SERIES_PLANNING_SYSTEM_PROMPT.format( min_episodes=min_episodes, max_episodes=max_episodes )


def get_series_planning_prompt( topic: str ) -> str:
    """
    Generate the user prompt for initial series planning.

    Args:
        topic: The series topic

    Returns:
        str: Complete prompt
    """
    return f"""Plan a podcast series about: "{topic}"

Cover the topic from its foundations to its present-day relevance, avoiding overlap between episodes."""


def get_plan_revision_prompt( topic: str, feedback: str, current_plan: Optional[ EpisodePlan ] = None ) -> str:
    """
    Generate the prompt for revising a plan from free-text feedback.

    Requires:
        - feedback is a non-empty string

    Ensures:
        - Includes the current plan when one is given so the revision is grounded

    Args:
        topic: The series topic
        feedback: User's requested changes
        current_plan: The plan being revised (optional)

    Returns:
        str: Complete prompt
    """
    current_section = ""
    if current_plan:
        lines = [ f"{entry.episode_number}. {entry.title} - {entry.focus}" for entry in current_plan ]
        current_section = "\nCurrent plan:\n" + "\n".join( lines ) + "\n"

    return f"""Create a revised episode plan for a podcast series about "{topic}".
{current_section}
User feedback: "{feedback}"

Apply the feedback while keeping the same JSON structure."""


# =============================================================================
# Response Parsing
# =============================================================================

def strip_code_fences( response_content: str ) -> str:
    """Remove a surrounding markdown code block, if any."""
    content = response_content.strip()
    if content.startswith( "```json" ):
        content = content[ 7: ]
    if content.startswith( "```" ):
        content = content[ 3: ]
    if content.endswith( "```" ):
        content = content[ :-3 ]
    return content.strip()


def _parse_entry( raw: Any, position: int ) -> EpisodePlanEntry:
    if not isinstance( raw, dict ):
        raise PlanParseError( f"Episode {position} is not an object" )

    title = raw.get( "title" )
    focus = raw.get( "focus" )
    if not isinstance( title, str ) or not title.strip():
        raise PlanParseError( f"Episode {position} has no title" )
    if not isinstance( focus, str ) or not focus.strip():
        raise PlanParseError( f"Episode {position} has no focus" )

    key_points = raw.get( "keyPoints", raw.get( "key_points" ) )
    if not isinstance( key_points, list ):
        raise PlanParseError( f"Episode {position} has no key points" )
    key_points = [ point.strip() for point in key_points if isinstance( point, str ) and point.strip() ]
    if len( key_points ) < 3:
        raise PlanParseError( f"Episode {position} has {len( key_points )} key points, expected 3" )

    try:
        return EpisodePlanEntry(
            episode_number = position,
            title          = title.strip(),
            focus          = focus.strip(),
            key_points     = tuple( key_points[ :3 ] ),
        )
    except ValidationError as e:
        raise PlanParseError( f"Episode {position} is invalid: {e}" ) from e


def parse_episode_plan( raw: Any, min_episodes: int = 3, max_episodes: int = 5 ) -> EpisodePlan:
    """
    Strictly parse a decoded episode plan.

    Requires:
        - raw is a list of episode objects, or an object with an "episodes" list

    Ensures:
        - Returns min_episodes..max_episodes entries numbered 1..N in order
        - Extra entries beyond max_episodes are dropped
        - Raises PlanParseError on any structural problem

    Args:
        raw: Decoded JSON value
        min_episodes: Minimum accepted plan length
        max_episodes: Maximum plan length kept

    Returns:
        EpisodePlan: Tuple of validated entries
    """
    if isinstance( raw, dict ):
        raw = raw.get( "episodes" )

    if not isinstance( raw, list ):
        raise PlanParseError( "Episode plan is not a list" )

    if len( raw ) < min_episodes:
        raise PlanParseError( f"Episode plan has {len( raw )} episodes, expected at least {min_episodes}" )

    return tuple( _parse_entry( item, position ) for position, item in enumerate( raw[ :max_episodes ], start=1 ) )


def parse_series_outline(
    response_content : str,
    topic            : str,
    min_episodes     : int = 3,
    max_episodes     : int = 5
) -> SeriesOutline:
    """
    Parse a planning response into a SeriesOutline.

    Accepts either the full object (title, description, episodes) or a bare
    episode array; missing title/description are derived from the topic.

    Raises:
        PlanParseError: If the response is not JSON or the plan is malformed
    """
    try:
        parsed = json.loads( strip_code_fences( response_content ) )
    except json.JSONDecodeError as e:
        raise PlanParseError( f"Planning response was not JSON: {e}" ) from e

    episodes = parse_episode_plan( parsed, min_episodes=min_episodes, max_episodes=max_episodes )

    title       = topic
    description = None
    if isinstance( parsed, dict ):
        if isinstance( parsed.get( "title" ), str ) and parsed[ "title" ].strip():
            title = parsed[ "title" ].strip()
        if isinstance( parsed.get( "description" ), str ) and parsed[ "description" ].strip():
            description = parsed[ "description" ].strip()

    return SeriesOutline(
        title       = title,
        description = description or describe_series( topic, len( episodes ) ),
        episodes    = episodes,
    )


def describe_series( topic: str, episode_count: int ) -> str:
    return f"A {episode_count}-part series exploring {topic}."


def outline_from_plan( topic: str, plan: EpisodePlan ) -> SeriesOutline:
    """
    Build a SeriesOutline directly from an approved plan, no planning call.

    Ensures:
        - Episodes keep their order and are renumbered 1..N
    """
    episodes = tuple(
        entry.model_copy( update={ "episode_number": position } )
        for position, entry in enumerate( plan, start=1 )
    )
    return SeriesOutline(
        title       = topic,
        description = describe_series( topic, len( episodes ) ),
        episodes    = episodes,
    )


def quick_smoke_test():
    """Quick smoke test for series planning prompt helpers."""
    import deepdive.utils.util as du

    du.print_banner( "Series Planning Prompts Smoke Test", prepend_nl=True )

    try:
        raw = [
            { "number": 7, "title": f"Part {i}", "focus": "Focus.", "keyPoints": [ "a", "b", "c", "d" ] }
            for i in range( 6 )
        ]
        plan = parse_episode_plan( raw )
        assert [ entry.episode_number for entry in plan ] == [ 1, 2, 3, 4, 5 ]
        assert all( len( entry.key_points ) == 3 for entry in plan )
        print( "✓ Plan renumbered and truncated" )

        try:
            parse_episode_plan( raw[ :2 ] )
            raise RuntimeError( "expected PlanParseError" )
        except PlanParseError:
            print( "✓ Short plan rejected" )

        outline = parse_series_outline( json.dumps( { "episodes": raw[ :3 ] } ), topic="Jazz" )
        assert outline.title == "Jazz"
        print( f"✓ Outline parsed: {outline.description}" )

        print( "\n✓ Series planning prompts smoke test completed successfully" )

    except Exception as e:
        print( f"\n✗ Smoke test failed: {e}" )
        import traceback
        traceback.print_exc()


if __name__ == "__main__":
    quick_smoke_test()
