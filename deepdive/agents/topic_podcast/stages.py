#!/usr/bin/env python3
"""
Pipeline stages for the DeepDive Topic Podcast Agent.

Each stage is a stateless request/response boundary over one external
service (or its offline mock):
- ResearchStage: topic -> notes + 3-5 source citations
- ScriptStage: topic/outline + notes -> plain narration text
- NarrationStage: narration text + voice -> audio file + estimated duration
- SeriesPlanner: topic -> SeriesOutline, plus feedback-driven regeneration
"""

import asyncio
import logging
import os
from typing import Optional

from .config import TopicPodcastConfig
from .errors import ReplyParseError, StageRequestError
from .prompts import (
    clean_script,
    count_words,
    estimate_duration_seconds,
    extract_sources,
    get_script_generation_prompt,
    outline_from_plan,
    parse_series_outline,
)
from .state import EpisodePlan, EpisodePlanEntry, NarrationResult, ResearchResult, SeriesOutline

logger = logging.getLogger( __name__ )

SCRIPT_MIN_WORDS = 300
SCRIPT_MAX_WORDS = 450


class ResearchStage:
    """
    Research a topic (or "topic - focus" query).

    Ensures:
        - Returns non-empty notes and min_sources..max_sources citations
    """

    name = "research"

    def __init__( self, client, config: Optional[ TopicPodcastConfig ] = None, debug: bool = False ):
        self.client = client
        self.config = config or TopicPodcastConfig()
        self.debug  = debug

    async def run( self, query: str ) -> ResearchResult:
        if not query or not query.strip():
            raise ValueError( "Research query must be a non-empty string" )

        notes = ( await self.client.research( query ) ).strip()
        if not notes:
            raise ReplyParseError( "Research response was empty", stage=self.name )

        sources = extract_sources( notes, query, self.config.min_sources, self.config.max_sources )

        if self.debug:
            print( f"[ResearchStage] {len( notes )} chars of notes, {len( sources )} sources for '{query}'" )

        return ResearchResult( notes=notes, sources=sources )


class ScriptStage:
    """
    Write the narration script for a topic or a planned series episode.

    Ensures:
        - Returned text has no bracketed directions or speaker labels
        - Raises ReplyParseError if nothing speakable is left after cleaning
    """

    name = "script"

    def __init__( self, client, config: Optional[ TopicPodcastConfig ] = None, debug: bool = False ):
        self.client = client
        self.config = config or TopicPodcastConfig()
        self.debug  = debug

    async def run(
        self,
        topic          : str,
        notes          : str,
        depth          : str = "standard",
        tone           : str = "conversational",
        episode        : Optional[ EpisodePlanEntry ] = None,
        total_episodes : Optional[ int ] = None
    ) -> str:
        prompt = get_script_generation_prompt(
            topic          = topic,
            research_notes = notes,
            depth          = depth,
            tone           = tone,
            episode        = episode,
            total_episodes = total_episodes,
        )
        script = clean_script( await self.client.write_script( prompt ) )

        if not script:
            raise ReplyParseError( "Script response was empty after cleaning", stage=self.name )

        words = count_words( script )
        if not SCRIPT_MIN_WORDS <= words <= SCRIPT_MAX_WORDS:
            logger.warning( f"Script length {words} words is outside the {SCRIPT_MIN_WORDS}-{SCRIPT_MAX_WORDS} target" )

        if self.debug:
            print( f"[ScriptStage] {words} words" )

        return script


class NarrationStage:
    """
    Synthesize narration and store it under config.output_dir.

    Requires:
        - backend exposes synthesize( text, voice ) -> bytes and file_extension

    Ensures:
        - Audio is written to <output_dir>/<generation_id>.<ext>
        - duration_seconds = round( words / words_per_minute * 60 )
        - Backend configuration errors propagate unchanged
    """

    name = "narration"

    def __init__( self, backend, config: Optional[ TopicPodcastConfig ] = None, debug: bool = False ):
        self.backend = backend
        self.config  = config or TopicPodcastConfig()
        self.debug   = debug

    async def run( self, script: str, voice: str, generation_id: str ) -> NarrationResult:
        audio = await self.backend.synthesize( script, voice )

        extension = getattr( self.backend, "file_extension", self.config.narration_format )
        path      = os.path.join( self.config.output_dir, f"{generation_id}.{extension}" )

        def write_file():
            os.makedirs( self.config.output_dir, exist_ok=True )
            with open( path, "wb" ) as f:
                f.write( audio )

        try:
            await asyncio.to_thread( write_file )
        except OSError as e:
            logger.error( f"Could not write narration audio to {path}: {e}" )
            raise StageRequestError( f"could not write audio file: {e}", stage=self.name ) from e

        duration = estimate_duration_seconds( script, self.config.words_per_minute )

        if self.debug:
            print( f"[NarrationStage] Wrote {len( audio ):,} bytes to {path} (~{duration}s)" )

        return NarrationResult( audio_uri=path, duration_seconds=duration )


class SeriesPlanner:
    """
    Plan a series, or regenerate a plan from user feedback.

    Ensures:
        - Every outline has min_episodes..max_episodes episodes numbered 1..N
        - Unparseable plans raise PlanParseError, never an empty outline
    """

    name = "planning"

    def __init__( self, client, config: Optional[ TopicPodcastConfig ] = None, debug: bool = False ):
        self.client = client
        self.config = config or TopicPodcastConfig()
        self.debug  = debug

    def _parse( self, raw: str, topic: str ) -> SeriesOutline:
        outline = parse_series_outline( raw, topic, self.config.min_episodes, self.config.max_episodes )
        if self.debug:
            print( f"[SeriesPlanner] '{outline.title}' with {len( outline.episodes )} episodes" )
        return outline

    async def plan( self, topic: str ) -> SeriesOutline:
        return self._parse( await self.client.plan_series( topic ), topic )

    async def regenerate( self, topic: str, feedback: str, current_plan: Optional[ EpisodePlan ] = None ) -> SeriesOutline:
        if not feedback or not feedback.strip():
            raise ValueError( "Plan feedback must be a non-empty string" )
        return self._parse( await self.client.revise_plan( topic, feedback, current_plan ), topic )

    def from_approved( self, topic: str, plan: EpisodePlan ) -> SeriesOutline:
        return outline_from_plan( topic, plan )
