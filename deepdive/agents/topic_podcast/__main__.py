#!/usr/bin/env python3
"""
Entry point for the DeepDive Topic Podcast Agent.

Run with: python -m deepdive.agents.topic_podcast

Usage:
    # Talk through a topic, then generate the podcast
    python -m deepdive.agents.topic_podcast --topic "History of Jazz"

    # Offline run with canned responses, answering every question automatically
    python -m deepdive.agents.topic_podcast --topic "Quantum computing" --dry-run --auto-approve

    # Run all module smoke tests
    python -m deepdive.agents.topic_podcast --smoke-test
"""

import argparse
import asyncio
import logging
import signal
import sys

APPROVE_REPLIES = ( "approve", "approve plan", "yes" )
SINGLE_REPLIES  = ( "single", "make it a single episode" )
RESTART_REPLIES = ( "start over", "restart" )


def run_all_smoke_tests():
    """Run smoke tests for all topic podcast modules."""
    import deepdive.utils.util as du

    du.print_banner( "Topic Podcast - Full Smoke Test Suite", prepend_nl=True )

    modules = [
        ( "config", "deepdive.agents.topic_podcast.config" ),
        ( "state", "deepdive.agents.topic_podcast.state" ),
        ( "progress", "deepdive.agents.topic_podcast.progress" ),
        ( "classifier", "deepdive.agents.topic_podcast.classifier" ),
        ( "prompts.conversation", "deepdive.agents.topic_podcast.prompts.conversation" ),
        ( "prompts.research", "deepdive.agents.topic_podcast.prompts.research" ),
        ( "prompts.script_generation", "deepdive.agents.topic_podcast.prompts.script_generation" ),
        ( "prompts.series_planning", "deepdive.agents.topic_podcast.prompts.series_planning" ),
        ( "api_client", "deepdive.agents.topic_podcast.api_client" ),
        ( "tts_client", "deepdive.agents.topic_podcast.tts_client" ),
        ( "conversation", "deepdive.agents.topic_podcast.conversation" ),
        ( "pipeline", "deepdive.agents.topic_podcast.pipeline" ),
    ]

    results = []

    for name, module_path in modules:
        try:
            print( f"\n{'='*60}" )
            print( f"Running: {name}" )
            print( '='*60 )

            module = __import__( module_path, fromlist=[ "quick_smoke_test" ] )
            module.quick_smoke_test()
            results.append( ( name, "PASSED", None ) )

        except Exception as e:
            results.append( ( name, "FAILED", str( e ) ) )

    # Summary table
    print( f"\n{'='*60}" )
    print( "SMOKE TEST SUMMARY" )
    print( '='*60 )

    passed = sum( 1 for _, status, _ in results if status == "PASSED" )
    failed = sum( 1 for _, status, _ in results if status == "FAILED" )

    for name, status, error in results:
        status_icon = "✓" if status == "PASSED" else "✗"
        print( f"  {status_icon} {name}: {status}" )
        if error:
            print( f"      Error: {error[:60]}" )

    print( f"\nTotal: {passed} passed, {failed} failed out of {len( results )} modules" )

    return failed == 0


def print_progress( event ) -> None:
    """Progress subscriber that prints one line per event."""
    episode = f" [{event.episode_number}/{event.total_episodes}]" if event.episode_number else ""
    print( f"  {event.progress * 100:5.1f}% {event.stage.value:<15}{episode} {event.message}" )


def print_assistant_message( message ) -> None:
    print( f"\nDeep Dive: {message.text}" )

    if message.episode_plan:
        for entry in message.episode_plan:
            print( f"  {entry.episode_number}. {entry.title}" )
            print( f"     {entry.focus}" )
            for point in entry.key_points:
                print( f"       - {point}" )

    if message.quick_replies:
        print( f"  [{' | '.join( message.quick_replies )}]" )


async def read_reply( message, auto_approve: bool ) -> str:
    """Next user reply: the first quick reply when auto-approving, otherwise stdin."""
    if auto_approve and message.quick_replies:
        reply = message.quick_replies[ 0 ]
        print( f"> {reply}" )
        return reply

    return ( await asyncio.to_thread( input, "> " ) ).strip()


async def run_conversation( engine, state, auto_approve: bool ):
    """
    Drive the clarification dialogue in the terminal.

    Returns:
        GenerationParams or None: Handoff parameters, or None if the user quit
    """
    from .errors import DeepDiveError
    from .state import ConversationPhase

    state = await engine.begin( state )

    while True:
        message = state.last_message
        print_assistant_message( message )

        if state.phase == ConversationPhase.READY:
            return engine.get_params( state )

        reply = await read_reply( message, auto_approve )
        if not reply:
            continue
        if reply.lower() in ( "quit", "exit" ):
            return None

        try:
            if reply.lower() in RESTART_REPLIES:
                state = await engine.begin( engine.restart( state ) )
                continue

            if state.phase == ConversationPhase.APPROVAL:
                if reply.lower() in APPROVE_REPLIES:
                    return engine.approve( state )
                if reply.lower() in SINGLE_REPLIES:
                    return engine.switch_to_single( state )

                feedback = reply
                if reply.lower() == "modify plan":
                    print( "\nWhat would you like to change?" )
                    feedback = ( await asyncio.to_thread( input, "> " ) ).strip()
                    if not feedback:
                        continue
                state = await engine.modify_plan( state, feedback )
                continue

            state = await engine.respond( state, reply )

        except DeepDiveError as e:
            print( f"\n⚠ {e.user_message}" )


async def generate_with_interrupt( pipeline, params ):
    """
    Run the pipeline with Ctrl-C mapped to a cooperative stop.

    Ensures:
        - SIGINT during generation calls pipeline.stop(), so the run ends
          with a CANCELLED result instead of tearing down the event loop
        - The handler is removed once generation finishes
    """
    loop = asyncio.get_running_loop()

    def stop_handler():
        print( "\n⚠ Stopping after the current stage..." )
        pipeline.stop()

    # Register signal handler (Unix only)
    try:
        loop.add_signal_handler( signal.SIGINT, stop_handler )
        handler_installed = True
    except NotImplementedError:
        handler_installed = False

    try:
        return await pipeline.generate( params, on_progress=print_progress )
    finally:
        if handler_installed:
            loop.remove_signal_handler( signal.SIGINT )


def report_cost( pipeline ):
    """Cost summary for runs that used the Claude API, None for offline runs."""
    cost_estimate = getattr( pipeline.api_client, "cost_estimate", None )
    if cost_estimate is None:
        return None
    return cost_estimate.get_summary()


async def run_topic_podcast( args ):
    """Run the conversation, then the generation pipeline."""
    from .config import TopicPodcastConfig
    from .conversation import ConversationEngine
    from .errors import DeepDiveError
    from .pipeline import GenerationPipeline
    import deepdive.utils.util as du

    du.print_banner( "DeepDive Topic Podcast", prepend_nl=True )

    config_kwargs = {
        "dry_run"                 : args.dry_run,
        "max_clarification_turns" : args.max_turns,
    }
    if args.output_dir:
        config_kwargs[ "output_dir" ] = args.output_dir
    config = TopicPodcastConfig( **config_kwargs )

    if config.dry_run:
        print( "[DRY RUN MODE - canned responses, no API calls]" )

    topic = args.topic
    if not topic:
        topic = ( await asyncio.to_thread( input, "What would you like to learn about? " ) ).strip()

    try:
        pipeline = GenerationPipeline( config=config, debug=args.debug, verbose=args.verbose )

        engine = ConversationEngine(
            dialogue_backend = pipeline.dialogue_backend,
            plan_regenerator = pipeline,
            config           = config,
            debug            = args.debug,
            verbose          = args.verbose,
        )

        state  = engine.start( topic, voice=args.voice )
        params = await run_conversation( engine, state, args.auto_approve )
        if params is None:
            print( "\nGoodbye." )
            return 0

        if params.is_series:
            kind = f"{len( params.approved_outline )}-episode series" if params.approved_outline else "series"
        else:
            kind = "single episode"
        print( f"\nGenerating a {params.depth} {params.tone} {kind} about \"{params.topic}\" (voice: {params.voice})\n" )

        result = await generate_with_interrupt( pipeline, params )

        cost_summary = report_cost( pipeline )
        if cost_summary:
            print( f"\n  {cost_summary}" )

        if result.is_cancelled():
            print( "\n⚠ Podcast generation was cancelled." )
            return 1

        if result.podcast is not None:
            podcast = result.podcast
            print( "\n✓ Podcast ready!" )
            print( f"  Audio: {podcast.audio_uri}" )
            print( f"  Duration: ~{podcast.duration // 60}m {podcast.duration % 60}s" )
            print( f"  Sources: {len( podcast.sources )}" )
        else:
            series = result.series
            print( f"\n✓ Series ready: {series.title}" )
            print( f"  {series.description}" )
            for episode in result.episodes:
                print( f"  {episode.episode_number}. {episode.episode_title} ({episode.duration}s) -> {episode.audio_uri}" )
            print( f"  Total duration: ~{series.total_duration // 60} minutes" )

        return 0

    except DeepDiveError as e:
        print( f"\n✗ {e.user_message}" )
        if args.debug:
            import traceback
            traceback.print_exc()
        return 1

    except Exception as e:
        print( f"\n✗ Podcast generation failed: {e}" )
        if args.debug:
            import traceback
            traceback.print_exc()
        return 1


def main():
    """Main entry point."""
    from .config import NARRATION_VOICES

    parser = argparse.ArgumentParser(
        description = "DeepDive Topic Podcast Agent - Turn a topic into a narrated podcast",
        formatter_class = argparse.RawDescriptionHelpFormatter,
        epilog = """
Examples:
  # Talk through a topic, then generate
  python -m deepdive.agents.topic_podcast --topic "History of Jazz"

  # Offline run, answering every question with the first suggestion
  python -m deepdive.agents.topic_podcast --topic "Quantum computing" --dry-run --auto-approve

  # Run all smoke tests
  python -m deepdive.agents.topic_podcast --smoke-test

During approval, reply "approve", "single", or describe the changes you want.
Reply "start over" at any time to restart, or "quit" to exit.
"""
    )

    parser.add_argument(
        "--topic", "-t",
        help = "Topic to create a podcast about (prompted for if omitted)"
    )

    parser.add_argument(
        "--voice",
        choices = NARRATION_VOICES,
        default = None,
        help    = "Narration voice (default: onyx)"
    )

    parser.add_argument(
        "--dry-run",
        action = "store_true",
        help = "Use canned responses instead of making API calls"
    )

    parser.add_argument(
        "--max-turns",
        type    = int,
        default = 5,
        help    = "Maximum clarification turns before generation (default: 5)"
    )

    parser.add_argument(
        "--output-dir", "-o",
        default = None,
        help    = "Directory for generated audio (default: <project root>/io/podcasts)"
    )

    parser.add_argument(
        "--auto-approve",
        action = "store_true",
        help = "Answer every question with its first quick reply"
    )

    parser.add_argument(
        "--smoke-test",
        action = "store_true",
        help = "Run all module smoke tests"
    )

    parser.add_argument(
        "--debug", "-d",
        action = "store_true",
        help = "Enable debug output"
    )

    parser.add_argument(
        "--verbose", "-v",
        action = "store_true",
        help = "Enable verbose output"
    )

    args = parser.parse_args()

    if args.debug:
        logging.basicConfig( level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s: %(message)s" )

    # Run smoke tests if requested
    if args.smoke_test:
        success = run_all_smoke_tests()
        sys.exit( 0 if success else 1 )

    if args.max_turns < 1:
        parser.error( "--max-turns must be at least 1" )

    try:
        exit_code = asyncio.run( run_topic_podcast( args ) )
    except KeyboardInterrupt:
        print( "\n\n⚠ Interrupted by user." )
        exit_code = 1
    sys.exit( exit_code )


if __name__ == "__main__":
    main()
