#!/usr/bin/env python3
"""
Unit tests for the command-line helpers in __main__.

Run with: pytest -v deepdive/agents/topic_podcast/tests/test_cli.py
"""

import asyncio
import signal
import sys

import pytest

from deepdive.agents.topic_podcast.__main__ import generate_with_interrupt, report_cost
from deepdive.agents.topic_podcast.api_client import TopicPodcastAPIClient
from deepdive.agents.topic_podcast.config import TopicPodcastConfig
from deepdive.agents.topic_podcast.mock_clients import build_mock_plan
from deepdive.agents.topic_podcast.pipeline import GenerationPipeline
from deepdive.agents.topic_podcast.state import GenerationParams, PipelineState


def make_dry_run_pipeline( tmp_path ) -> GenerationPipeline:
    config = TopicPodcastConfig(
        output_dir              = str( tmp_path ),
        dry_run                 = True,
        mock_delay_seconds      = 0,
        analysis_settle_seconds = 0,
    )
    return GenerationPipeline( config=config )


class TestInterruptHandling:
    """Tests for Ctrl-C during generation."""

    @pytest.mark.skipif( sys.platform == "win32", reason="loop signal handlers are Unix-only" )
    def test_interrupt_cancels_series( self, tmp_path ):
        """Test that SIGINT mid-series stops cooperatively with a cancelled result."""
        pipeline  = make_dry_run_pipeline( tmp_path )
        narration = pipeline.narration_backend
        synthesize = narration.synthesize

        async def synthesize_then_interrupt( text, voice ):
            audio = await synthesize( text, voice )
            if len( narration.calls ) == 1:
                signal.raise_signal( signal.SIGINT )
            return audio

        narration.synthesize = synthesize_then_interrupt
        params = GenerationParams( topic="History of Jazz", is_series=True, approved_outline=build_mock_plan( "History of Jazz" ) )

        result = asyncio.run( generate_with_interrupt( pipeline, params ) )

        assert result.is_cancelled()
        assert len( narration.calls ) < 4
        assert pipeline.progress.history[ -1 ].stage.value == "cancelled"

    def test_uninterrupted_run_completes( self, tmp_path ):
        """Test that the wrapper returns the normal result without a signal."""
        pipeline = make_dry_run_pipeline( tmp_path )
        result   = asyncio.run( generate_with_interrupt( pipeline, GenerationParams( topic="Quantum computing", is_series=False ) ) )
        assert result.state == PipelineState.COMPLETED


class TestCostReport:
    """Tests for the end-of-run cost summary."""

    def test_offline_run_has_no_cost( self, tmp_path ):
        """Test that the mock client reports nothing."""
        assert report_cost( make_dry_run_pipeline( tmp_path ) ) is None

    def test_api_run_reports_usage( self, tmp_path ):
        """Test that Claude usage is summarized."""
        config = TopicPodcastConfig( output_dir=str( tmp_path ) )
        client = TopicPodcastAPIClient( config=config, api_key="test-key" )
        client.cost_estimate.add_usage( "claude-test", 2000, 1000 )

        summary = report_cost( GenerationPipeline( config=config, api_client=client ) )

        assert "API Calls: 1" in summary
        assert "2,000 in, 1,000 out" in summary
        assert "$0.0210" in summary

    def test_pricing_by_model_family( self ):
        """Test that Haiku usage is priced below the Sonnet default."""
        client = TopicPodcastAPIClient( config=TopicPodcastConfig(), api_key="test-key" )
        client.cost_estimate.add_usage( "claude-3-5-haiku-latest", 1_000_000, 0 )
        assert client.cost_estimate.estimated_cost_usd == pytest.approx( 0.8 )
