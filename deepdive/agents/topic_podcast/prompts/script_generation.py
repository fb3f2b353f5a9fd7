#!/usr/bin/env python3
"""
Script Generation Prompts for the DeepDive Topic Podcast Agent.

Contains the single-host "Deep Dive" narration prompt, episode-aware prompt
templates for series, and script post-processing (cleaning and duration
estimation). The narration backend receives plain spoken text only.
"""

import re
from typing import Optional

from ..state import EpisodePlanEntry


# =============================================================================
# System Prompts
# =============================================================================

SCRIPT_GENERATION_SYSTEM_PROMPT = """You are a charismatic podcast host known for making complex topics accessible and entertaining. You have a warm style that makes listeners feel like they're chatting with a knowledgeable friend.

Your podcast "Deep Dive" is known for:
- Breaking down complicated subjects into digestible insights
- Using relatable analogies and examples
- Engaging storytelling that keeps listeners hooked
- Natural speech patterns with thoughtful pauses

Create a podcast script that:
- Opens with a hook that grabs attention
- Flows naturally as spoken content (not written text)
- Is 300-450 words (approximately 2-3 minutes when read aloud)
- Uses "..." for natural pauses and emphasis
- Includes specific facts and insights from the research
- Ends with a memorable takeaway or thought-provoking question

IMPORTANT: Write ONLY the spoken content. No speaker labels, timestamps, directions, or [brackets]. Just the words the host would say."""


DEPTH_GUIDANCE = {
    "quick"    : "Keep it tight: one central idea, the single most surprising fact, and a crisp takeaway.",
    "standard" : "Balance breadth and detail: a clear overview, two or three well-chosen facts, and one vivid example.",
    "deep"     : "Go deep: unpack the nuances, contrast perspectives, and explain the why behind each fact.",
}

TONE_GUIDANCE = {
    "conversational" : "Sound casual and friendly, as if explaining this to a curious friend over coffee.",
    "educational"    : "Be structured and clear, signposting each idea like a great teacher would.",
    "storytelling"   : "Tell it as a narrative, with characters, tension, and a satisfying arc.",
}


# =============================================================================
# Prompt Templates
# =============================================================================

def get_script_generation_prompt(
    topic          : str,
    research_notes : str,
    depth          : str = "standard",
    tone           : str = "conversational",
    episode        : Optional[ EpisodePlanEntry ] = None,
    total_episodes : Optional[ int ] = None
) -> str:
    """
    Generate the user prompt for script writing.

    Requires:
        - topic and research_notes are non-empty strings
        - If episode is given, total_episodes is its series length

    Ensures:
        - Includes depth and tone guidance (defaults for unknown values)
        - Includes episode title, focus and key points for series episodes

    Args:
        topic: Podcast or series topic
        research_notes: Prose notes from the research stage
        depth: quick | standard | deep
        tone: conversational | educational | storytelling
        episode: Planned episode for series generation
        total_episodes: Number of episodes in the series

    Returns:
        str: Complete prompt
    """
    episode_section = ""
    if episode is not None:
        points = "\n".join( f"- {point}" for point in episode.key_points )
        episode_section = f"""
This is episode {episode.episode_number} of {total_episodes or episode.episode_number} in a series about "{topic}".
Episode title: {episode.title}
Episode focus: {episode.focus}
Cover these key points:
{points}
"""

    subject = episode.title if episode is not None else topic

    return f"""Create an engaging podcast episode about: "{subject}"
{episode_section}
Style:
- {DEPTH_GUIDANCE.get( depth, DEPTH_GUIDANCE[ "standard" ] )}
- {TONE_GUIDANCE.get( tone, TONE_GUIDANCE[ "conversational" ] )}

Use this research to inform your content:
{research_notes}

Transform this research into a captivating podcast episode."""


# =============================================================================
# Post-processing
# =============================================================================

BRACKETED_DIRECTION = re.compile( r"\[.*?\]" )
PAUSE_DIRECTION     = re.compile( r"\(.*?pause.*?\)", re.IGNORECASE )
SPEAKER_LABEL       = re.compile( r"HOST:|SPEAKER:|NARRATOR:", re.IGNORECASE )


def clean_script( script: str ) -> str:
    """
    Strip stage directions and speaker labels from generated narration.

    Ensures:
        - No [bracketed] directions remain
        - Parenthesised pauses become "..."
        - HOST:/SPEAKER:/NARRATOR: labels are removed

    Args:
        script: Raw script text from the backend

    Returns:
        str: Plain narration text
    """
    clean = BRACKETED_DIRECTION.sub( "", script )
    clean = PAUSE_DIRECTION.sub( "...", clean )
    clean = SPEAKER_LABEL.sub( "", clean )
    clean = re.sub( r"[ \t]+", " ", clean )
    clean = re.sub( r" *\n *", "\n", clean )
    return clean.strip()


def count_words( text: str ) -> int:
    return len( text.split() )


def estimate_duration_seconds( script: str, words_per_minute: int = 150 ) -> int:
    """Estimated spoken duration: round( words / wpm * 60 )."""
    return round( count_words( script ) / words_per_minute * 60 )


def quick_smoke_test():
    """Quick smoke test for script generation helpers."""
    import deepdive.utils.util as du

    du.print_banner( "Script Generation Prompts Smoke Test", prepend_nl=True )

    try:
        prompt = get_script_generation_prompt( "Black holes", "Notes about event horizons.", depth="quick", tone="storytelling" )
        assert "Black holes" in prompt and "event horizons" in prompt
        print( "✓ Script prompt rendered" )

        cleaned = clean_script( "HOST: Welcome back. [music swells] Let's begin (long pause) now." )
        assert cleaned == "Welcome back. Let's begin ... now."
        print( f"✓ Cleaned script: {cleaned!r}" )

        assert estimate_duration_seconds( "word " * 300 ) == 120
        print( "✓ 300 words at 150 wpm is 120 seconds" )

        print( "\n✓ Script generation prompts smoke test completed successfully" )

    except Exception as e:
        print( f"\n✗ Smoke test failed: {e}" )
        import traceback
        traceback.print_exc()


if __name__ == "__main__":
    quick_smoke_test()
