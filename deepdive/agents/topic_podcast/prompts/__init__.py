"""
Prompt templates and response parsers for the Topic Podcast Agent.
"""

from .conversation import (
    DIALOGUE_SYSTEM_PROMPT,
    FALLBACK_QUICK_REPLIES,
    FallbackReply,
    ParsedReply,
    get_dialogue_system_prompt,
    parse_dialogue_reply,
)
from .research import (
    RESEARCH_SYSTEM_PROMPT,
    extract_sources,
    get_research_prompt,
)
from .script_generation import (
    SCRIPT_GENERATION_SYSTEM_PROMPT,
    clean_script,
    count_words,
    estimate_duration_seconds,
    get_script_generation_prompt,
)
from .series_planning import (
    get_plan_revision_prompt,
    get_series_planning_prompt,
    get_series_planning_system_prompt,
    outline_from_plan,
    parse_episode_plan,
    parse_series_outline,
)

__all__ = [
    "DIALOGUE_SYSTEM_PROMPT",
    "FALLBACK_QUICK_REPLIES",
    "FallbackReply",
    "ParsedReply",
    "get_dialogue_system_prompt",
    "parse_dialogue_reply",
    "RESEARCH_SYSTEM_PROMPT",
    "extract_sources",
    "get_research_prompt",
    "SCRIPT_GENERATION_SYSTEM_PROMPT",
    "clean_script",
    "count_words",
    "estimate_duration_seconds",
    "get_script_generation_prompt",
    "get_plan_revision_prompt",
    "get_series_planning_prompt",
    "get_series_planning_system_prompt",
    "outline_from_plan",
    "parse_episode_plan",
    "parse_series_outline",
]
