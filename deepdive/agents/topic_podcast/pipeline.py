#!/usr/bin/env python3
"""
Generation Pipeline for the DeepDive Topic Podcast Agent.

Composes ResearchStage -> ScriptStage -> NarrationStage into one episode,
or SeriesPlanner + a per-episode loop into a series. Strictly sequential:
one stage call in flight at a time, series episodes one after another.

Progress is reported on a ProgressChannel:
- single episode: searching 0.1, analyzing 0.3, generating 0.45,
  creating_audio 0.7, done 1.0
- series: planning 0.05, then for episode i of N a window starting at
  base = 0.1 + (i - 1) / N * 0.85 with research, script and audio at
  base, base + 0.35w and base + 0.7w (w = 0.85 / N), then done 1.0

Failure and cancellation:
- Any stage error aborts the attempt, emits one 'failed' event and is
  re-raised. There are no automatic retries; retry means calling
  generate() again with the same params.
- stop() is honoured before each stage and its progress event. An in-flight call finishes,
  no further stage starts, and generate() returns a CANCELLED result
  with no partial artifact.
"""

import asyncio
import logging
import random
from typing import Optional

from .api_client import AnthropicDialogueBackend, TopicPodcastAPIClient
from .config import TopicPodcastConfig
from .errors import DeepDiveError, ERROR_MESSAGES
from .mock_clients import MockNarrationBackend, MockTopicPodcastAPIClient, ScriptedDialogueBackend
from .progress import ProgressCallback, ProgressChannel
from .stages import NarrationStage, ResearchStage, ScriptStage, SeriesPlanner
from .state import (
    EpisodePlan,
    EpisodePlanEntry,
    GenerationParams,
    GenerationResult,
    PipelineState,
    Podcast,
    ProgressStage,
    Series,
    generate_id,
)
from .tts_client import create_narration_backend

logger = logging.getLogger( __name__ )


SINGLE_EPISODE_MARKS = {
    ProgressStage.SEARCHING      : 0.1,
    ProgressStage.ANALYZING      : 0.3,
    ProgressStage.GENERATING     : 0.45,
    ProgressStage.CREATING_AUDIO : 0.7,
}

PLANNING_MARK       = 0.05
SERIES_WINDOW_START = 0.1
SERIES_WINDOW_SPAN  = 0.85


def series_episode_marks( episode_number: int, total_episodes: int ) -> dict:
    """
    Progress fractions for one episode of a series.

    Requires:
        - 1 <= episode_number <= total_episodes

    Returns:
        dict: ProgressStage -> fraction for searching, generating and creating_audio
    """
    width = SERIES_WINDOW_SPAN / total_episodes
    base  = SERIES_WINDOW_START + ( episode_number - 1 ) * width
    return {
        ProgressStage.SEARCHING      : base,
        ProgressStage.GENERATING     : base + 0.35 * width,
        ProgressStage.CREATING_AUDIO : base + 0.7 * width,
    }


class GenerationPipeline:
    """
    Research -> script -> narration pipeline for single episodes and series.

    Requires:
        - At most one generate() call in flight per instance

    Ensures:
        - Progress is non-decreasing and ends in exactly one terminal event
        - Never mutates the GenerationParams it is given
        - Returns artifacts without persisting them
    """

    def __init__(
        self,
        config            : Optional[ TopicPodcastConfig ] = None,
        api_client        = None,
        narration_backend = None,
        progress          : Optional[ ProgressChannel ] = None,
        rng               : Optional[ random.Random ] = None,
        debug             : bool = False,
        verbose           : bool = False
    ):
        """
        Initialize the pipeline.

        Args:
            config: Topic podcast configuration (uses defaults if None)
            api_client: Text-generation client (created lazily from config if None)
            narration_backend: Narration backend (created lazily from config if None)
            progress: Progress channel (a private one is created if None)
            rng: Random source for cover colors
            debug: Enable debug output
            verbose: Enable verbose output
        """
        self.config   = config or TopicPodcastConfig()
        self.progress = progress or ProgressChannel( debug=verbose )
        self.debug    = debug
        self.verbose  = verbose

        self._api_client        = api_client
        self._narration_backend = narration_backend
        self._dialogue_backend  = None
        self._rng               = rng or random.Random()

        self._stop_requested = False
        self.current_stage   : Optional[ ProgressStage ] = None

        self._research_stage  : Optional[ ResearchStage ]  = None
        self._script_stage    : Optional[ ScriptStage ]    = None
        self._narration_stage : Optional[ NarrationStage ] = None
        self._series_planner  : Optional[ SeriesPlanner ]  = None

    # =========================================================================
    # Lazy Clients and Stages
    # =========================================================================

    @property
    def api_client( self ):
        """Lazy initialization of the text-generation client."""
        if self._api_client is None:
            if self.config.dry_run:
                self._api_client = MockTopicPodcastAPIClient(
                    config        = self.config,
                    delay_seconds = self.config.mock_delay_seconds,
                    debug         = self.debug,
                )
            else:
                self._api_client = TopicPodcastAPIClient( config=self.config, debug=self.debug, verbose=self.verbose )
        return self._api_client

    @property
    def narration_backend( self ):
        """Lazy initialization of the narration backend."""
        if self._narration_backend is None:
            if self.config.dry_run:
                self._narration_backend = MockNarrationBackend( delay_seconds=self.config.mock_delay_seconds, debug=self.debug )
            else:
                self._narration_backend = create_narration_backend( self.config, debug=self.debug, verbose=self.verbose )
        return self._narration_backend

    @property
    def dialogue_backend( self ):
        """Lazy initialization of the clarification-dialogue backend."""
        if self._dialogue_backend is None:
            if self.config.dry_run:
                self._dialogue_backend = ScriptedDialogueBackend( delay_seconds=self.config.mock_delay_seconds, debug=self.debug )
            else:
                self._dialogue_backend = AnthropicDialogueBackend( self.api_client, self.config )
        return self._dialogue_backend

    @property
    def research_stage( self ) -> ResearchStage:
        if self._research_stage is None:
            self._research_stage = ResearchStage( self.api_client, self.config, debug=self.debug )
        return self._research_stage

    @property
    def script_stage( self ) -> ScriptStage:
        if self._script_stage is None:
            self._script_stage = ScriptStage( self.api_client, self.config, debug=self.debug )
        return self._script_stage

    @property
    def narration_stage( self ) -> NarrationStage:
        if self._narration_stage is None:
            self._narration_stage = NarrationStage( self.narration_backend, self.config, debug=self.debug )
        return self._narration_stage

    @property
    def series_planner( self ) -> SeriesPlanner:
        if self._series_planner is None:
            self._series_planner = SeriesPlanner( self.api_client, self.config, debug=self.debug )
        return self._series_planner

    # =========================================================================
    # Public API
    # =========================================================================

    async def generate( self, params: GenerationParams, on_progress: Optional[ ProgressCallback ] = None ) -> GenerationResult:
        """
        Run one generation attempt.

        Requires:
            - params comes from a completed conversation

        Ensures:
            - Returns COMPLETED with podcast (single) or series + episodes
            - Returns CANCELLED with no artifact if stop() was observed
            - Raises the stage error after emitting one 'failed' event

        Args:
            params: Frozen generation parameters
            on_progress: Optional subscriber for this attempt only

        Returns:
            GenerationResult: Outcome of the attempt
        """
        self._stop_requested = False
        self.progress.begin()
        unsubscribe = self.progress.subscribe( on_progress ) if on_progress else None

        if self.debug:
            kind = "series" if params.is_series else "single episode"
            print( f"[GenerationPipeline] Generating {kind} about '{params.topic}' (voice={params.voice})" )

        try:
            if params.is_series:
                return await self._generate_series( params )
            return await self._generate_single( params )

        except DeepDiveError as e:
            logger.error( f"Generation failed at {e.stage or 'unknown'} stage: {e}" )
            self._emit( ProgressStage.FAILED, e.user_message, self.progress.last_progress )
            raise
        except Exception as e:
            logger.error( f"Generation failed: {e}" )
            self._emit( ProgressStage.FAILED, ERROR_MESSAGES[ "unexpected" ], self.progress.last_progress )
            raise
        finally:
            if unsubscribe is not None:
                unsubscribe()

    def stop( self ) -> None:
        """Request cancellation; honoured before the next stage call."""
        self._stop_requested = True
        if self.debug:
            print( "[GenerationPipeline] Stop requested" )

    async def regenerate_plan( self, topic: str, feedback: str, current_plan: Optional[ EpisodePlan ] = None ) -> EpisodePlan:
        """
        Produce a replacement episode plan from user feedback.

        Ensures:
            - Returns a complete plan of the same shape as a planned outline
            - Raises PlanParseError rather than returning an empty plan
        """
        outline = await self.series_planner.regenerate( topic, feedback, current_plan )
        return outline.episodes

    def get_state( self ) -> dict:
        """Get current pipeline state for status queries."""
        return {
            "stage"          : self.current_stage.value if self.current_stage else None,
            "progress"       : self.progress.last_progress,
            "stop_requested" : self._stop_requested,
            "dry_run"        : self.config.dry_run,
        }

    # =========================================================================
    # Private Methods
    # =========================================================================

    def _check_stop( self ) -> bool:
        """Check if stop was requested."""
        return self._stop_requested

    def _handle_stop( self ) -> GenerationResult:
        """Emit the terminal cancelled event and return the cancelled outcome."""
        logger.info( "Generation cancelled by request" )
        self._emit( ProgressStage.CANCELLED, "Generation cancelled", self.progress.last_progress )
        return GenerationResult.cancelled()

    def _emit( self, stage: ProgressStage, message: str, progress: float, episode_number: Optional[ int ] = None, total_episodes: Optional[ int ] = None ):
        self.current_stage = stage
        self.progress.emit( stage, message, progress, episode_number=episode_number, total_episodes=total_episodes )

    async def _produce_episode(
        self,
        params         : GenerationParams,
        generation_id  : str,
        query          : str,
        marks          : dict,
        episode        : Optional[ EpisodePlanEntry ] = None,
        total_episodes : Optional[ int ] = None,
        series_id      : Optional[ str ] = None
    ) -> Optional[ Podcast ]:
        """
        Research, script and narrate one unit of work.

        Returns:
            Podcast or None: The artifact, or None if stop was observed
        """
        number = episode.episode_number if episode else None
        prefix = f"Episode {number}/{total_episodes}: " if episode else ""

        if self._check_stop(): return None
        self._emit( ProgressStage.SEARCHING, f"{prefix}Researching your topic...", marks[ ProgressStage.SEARCHING ], number, total_episodes )
        research = await self.research_stage.run( query )

        if ProgressStage.ANALYZING in marks:
            self._emit( ProgressStage.ANALYZING, f"{prefix}Analyzing research findings...", marks[ ProgressStage.ANALYZING ], number, total_episodes )
            if self.config.analysis_settle_seconds:
                await asyncio.sleep( self.config.analysis_settle_seconds )

        if self._check_stop(): return None
        self._emit( ProgressStage.GENERATING, f"{prefix}Writing the script...", marks[ ProgressStage.GENERATING ], number, total_episodes )
        script = await self.script_stage.run(
            topic          = params.topic,
            notes          = research.notes,
            depth          = params.depth,
            tone           = params.tone,
            episode        = episode,
            total_episodes = total_episodes,
        )

        if self._check_stop(): return None
        self._emit( ProgressStage.CREATING_AUDIO, f"{prefix}Creating audio...", marks[ ProgressStage.CREATING_AUDIO ], number, total_episodes )
        narration = await self.narration_stage.run( script, params.voice, generation_id )

        return Podcast(
            id             = generation_id,
            topic          = episode.title if episode else params.topic,
            script         = script,
            audio_uri      = narration.audio_uri,
            duration       = narration.duration_seconds,
            sources        = research.sources,
            voice_used     = params.voice,
            depth          = params.depth,
            tone           = params.tone,
            style          = params.style,
            series_id      = series_id,
            episode_number = number,
            episode_title  = episode.title if episode else None,
        )

    async def _generate_single( self, params: GenerationParams ) -> GenerationResult:
        podcast = await self._produce_episode(
            params        = params,
            generation_id = generate_id( "podcast" ),
            query         = params.topic,
            marks         = SINGLE_EPISODE_MARKS,
        )
        if podcast is None:
            return self._handle_stop()

        self._emit( ProgressStage.DONE, "Your podcast is ready!", 1.0 )
        return GenerationResult( state=PipelineState.COMPLETED, podcast=podcast )

    async def _generate_series( self, params: GenerationParams ) -> GenerationResult:
        series_id = generate_id( "series" )

        if params.approved_outline:
            self._emit( ProgressStage.PLANNING, "Using your approved episode plan...", PLANNING_MARK )
            outline = self.series_planner.from_approved( params.topic, params.approved_outline )
        else:
            if self._check_stop(): return self._handle_stop()
            self._emit( ProgressStage.PLANNING, "Planning your series...", PLANNING_MARK )
            outline = await self.series_planner.plan( params.topic )

        total_episodes = len( outline.episodes )
        episodes       = []
        total_duration = 0

        for entry in outline.episodes:
            podcast = await self._produce_episode(
                params         = params,
                generation_id  = f"{series_id}-ep{entry.episode_number}",
                query          = f"{params.topic} - {entry.focus}",
                marks          = series_episode_marks( entry.episode_number, total_episodes ),
                episode        = entry,
                total_episodes = total_episodes,
                series_id      = series_id,
            )
            if podcast is None:
                return self._handle_stop()

            episodes.append( podcast )
            total_duration += podcast.duration

        series = Series(
            id             = series_id,
            topic          = params.topic,
            title          = outline.title,
            description    = outline.description,
            episode_count  = total_episodes,
            total_duration = total_duration,
            cover_color    = self._rng.choice( self.config.cover_palette ),
        )

        self._emit( ProgressStage.DONE, f"Your {total_episodes}-episode series is ready!", 1.0, total_episodes=total_episodes )
        return GenerationResult( state=PipelineState.COMPLETED, series=series, episodes=tuple( episodes ) )


def quick_smoke_test():
    """Quick smoke test for GenerationPipeline in dry-run mode."""
    import tempfile
    import deepdive.utils.util as du

    du.print_banner( "GenerationPipeline Smoke Test", prepend_nl=True )

    try:
        with tempfile.TemporaryDirectory() as output_dir:
            config = TopicPodcastConfig(
                dry_run                 = True,
                mock_delay_seconds      = 0,
                analysis_settle_seconds = 0,
                output_dir              = output_dir,
            )
            pipeline = GenerationPipeline( config=config, debug=True )

            result = asyncio.run( pipeline.generate( GenerationParams( topic="Quantum computing", is_series=False ) ) )
            assert result.podcast is not None
            print( f"✓ Single episode: {result.podcast.id} ({result.podcast.duration}s)" )

            result = asyncio.run( pipeline.generate( GenerationParams( topic="History of Jazz", is_series=True ) ) )
            assert result.series.episode_count == len( result.episodes )
            print( f"✓ Series: {result.series.id} with {result.series.episode_count} episodes" )

        print( "\n✓ GenerationPipeline smoke test completed successfully" )

    except Exception as e:
        print( f"\n✗ Smoke test failed: {e}" )
        import traceback
        traceback.print_exc()


if __name__ == "__main__":
    quick_smoke_test()
