#!/usr/bin/env python3
"""
Unit tests for the progress channel, sentence timing and voice previews.

Run with: pytest -v deepdive/agents/topic_podcast/tests/test_playback.py
"""

import asyncio
import os

import pytest

from deepdive.agents.topic_podcast.config import TopicPodcastConfig, VOICE_PREVIEW_TEXTS
from deepdive.agents.topic_podcast.mock_clients import MockNarrationBackend
from deepdive.agents.topic_podcast.playback import (
    VoicePreview,
    estimate_sentence_timings,
    sentence_index_at,
    split_sentences,
)
from deepdive.agents.topic_podcast.progress import ProgressChannel
from deepdive.agents.topic_podcast.state import ProgressStage


class TestProgressChannel:
    """Tests for ordered, monotonic progress delivery."""

    def test_regression_held_at_high_water_mark( self ):
        """Test that a lower fraction is raised to the previous maximum."""
        channel  = ProgressChannel()
        received = []
        channel.subscribe( received.append )

        channel.begin()
        channel.emit( ProgressStage.SEARCHING, "Researching", 0.3 )
        channel.emit( ProgressStage.ANALYZING, "Analyzing", 0.2 )

        assert [ event.progress for event in received ] == [ 0.3, 0.3 ]
        assert channel.last_progress == 0.3

    def test_events_after_terminal_dropped( self ):
        """Test that exactly one terminal event is delivered."""
        channel  = ProgressChannel()
        received = []
        channel.subscribe( received.append )

        channel.begin()
        channel.emit( ProgressStage.DONE, "Done", 1.0 )
        assert channel.emit( ProgressStage.FAILED, "late", 1.0 ) is None

        assert [ event.stage for event in received ] == [ ProgressStage.DONE ]
        assert channel.is_terminated

    def test_failing_subscriber_isolated( self ):
        """Test that one broken subscriber doesn't starve the others."""
        channel  = ProgressChannel()
        received = []

        def broken( event ):
            raise RuntimeError( "boom" )

        channel.subscribe( broken )
        channel.subscribe( received.append )

        channel.begin()
        event = channel.emit( ProgressStage.SEARCHING, "Researching", 0.1 )

        assert received == [ event ]

    def test_unsubscribe_and_begin_reset( self ):
        """Test unsubscribe handles and per-run reset."""
        channel  = ProgressChannel()
        received = []
        unsubscribe = channel.subscribe( received.append )

        channel.begin()
        channel.emit( ProgressStage.CANCELLED, "Stopped", 0.45 )
        unsubscribe()

        channel.begin()
        assert channel.last_progress == 0.0
        assert not channel.is_terminated
        assert channel.history == []

        channel.emit( ProgressStage.SEARCHING, "Again", 0.1 )
        assert len( received ) == 1
        assert len( channel.history ) == 1


class TestSentenceTiming:
    """Tests for word-proportional sentence timing."""

    SCRIPT = "Jazz began in New Orleans. It spread fast! Why did it matter so much to so many people?"

    def test_split_sentences_keeps_trailing_text( self ):
        """Test that text after the last terminator is its own sentence."""
        assert split_sentences( "One. Two! And three" ) == [ "One.", "Two!", "And three" ]
        assert split_sentences( "   " ) == []

    def test_contiguous_and_complete( self ):
        """Test that timings start at zero, touch, and end at the duration."""
        timings = estimate_sentence_timings( self.SCRIPT, 36.0 )

        assert len( timings ) == 3
        assert timings[ 0 ].start_time == 0.0
        for previous, current in zip( timings, timings[ 1: ] ):
            assert current.start_time == previous.end_time
        assert timings[ -1 ].end_time == pytest.approx( 36.0 )

    def test_proportional_to_word_count( self ):
        """Test that spans follow word counts (5, 3 and 10 words)."""
        timings = estimate_sentence_timings( self.SCRIPT, 36.0 )
        spans   = [ timing.end_time - timing.start_time for timing in timings ]
        assert spans == pytest.approx( [ 10.0, 6.0, 20.0 ] )

    def test_unknown_duration_uses_speaking_rate( self ):
        """Test the words-per-minute fallback when duration is not known."""
        script  = "word " * 149 + "word."
        timings = estimate_sentence_timings( script, 0 )
        assert timings[ -1 ].end_time == pytest.approx( 60.0 )

        timings = estimate_sentence_timings( script, -1, words_per_minute=300 )
        assert timings[ -1 ].end_time == pytest.approx( 30.0 )

    def test_empty_script( self ):
        """Test that an empty script has no timings."""
        assert estimate_sentence_timings( "", 10.0 ) == []

    def test_sentence_index_at( self ):
        """Test position lookup including clamping."""
        timings = estimate_sentence_timings( self.SCRIPT, 36.0 )
        assert sentence_index_at( timings, 0.0 ) == 0
        assert sentence_index_at( timings, 12.0 ) == 1
        assert sentence_index_at( timings, 16.0 ) == 2
        assert sentence_index_at( timings, 99.0 ) == 2
        assert sentence_index_at( [], 5.0 ) == -1


class TestVoicePreview:
    """Tests for the scoped voice preview handle."""

    def make_preview( self, tmp_path, voice: str = "nova" ):
        backend = MockNarrationBackend( delay_seconds=0 )
        played  = []
        stopped = []
        preview = VoicePreview(
            backend,
            voice,
            config  = TopicPodcastConfig( output_dir=str( tmp_path ) ),
            player  = played.append,
            stopper = lambda: stopped.append( True ),
        )
        return preview, backend, played, stopped

    def test_acquire_and_release( self, tmp_path ):
        """Test temp file lifecycle and player/stopper calls."""
        preview, backend, played, stopped = self.make_preview( tmp_path )

        async def run():
            await preview.acquire()
            path = preview.path
            assert preview.is_active
            assert os.path.exists( path )
            assert path.endswith( ".mp3" )
            assert played == [ path ]

            await preview.release()
            return path

        path = asyncio.run( run() )

        assert not preview.is_active
        assert not os.path.exists( path )
        assert stopped == [ True ]
        assert backend.calls == [ ( VOICE_PREVIEW_TEXTS[ "nova" ], "nova" ) ]

    def test_context_manager( self, tmp_path ):
        """Test that leaving the scope releases the preview."""
        preview, _, _, stopped = self.make_preview( tmp_path )

        async def run():
            async with preview as handle:
                assert handle.is_active
                return handle.path

        path = asyncio.run( run() )
        assert not os.path.exists( path )
        assert stopped == [ True ]

    def test_switch_releases_previous( self, tmp_path ):
        """Test that switching voices never holds two files."""
        preview, backend, played, _ = self.make_preview( tmp_path )

        async def run():
            await preview.acquire()
            first = preview.path
            await preview.switch( "fable" )
            second = preview.path
            await preview.release()
            return first, second

        first, second = asyncio.run( run() )

        assert not os.path.exists( first )
        assert not os.path.exists( second )
        assert [ voice for _, voice in backend.calls ] == [ "nova", "fable" ]
        assert played == [ first, second ]

    def test_unknown_voice_and_idempotence( self, tmp_path ):
        """Test default voice fallback and repeated acquire/release."""
        preview, backend, _, stopped = self.make_preview( tmp_path, voice="robot" )
        assert preview.voice == "onyx"

        async def run():
            await preview.acquire()
            await preview.acquire()
            await preview.release()
            await preview.release()

        asyncio.run( run() )
        assert len( backend.calls ) == 1
        assert stopped == [ True ]
