#!/usr/bin/env python3
"""
Unit tests for the text-generation and narration clients.

No network access: SDK calls are replaced with AsyncMock objects and SDK
exceptions are raised directly to check translation into DeepDive errors.

Run with: pytest -v deepdive/agents/topic_podcast/tests/test_clients.py
"""

import asyncio
import io
import wave
from unittest.mock import AsyncMock, Mock, patch

import anthropic
import httpx
import openai
import pytest

from deepdive.agents.topic_podcast.api_client import (
    TopicPodcastAPIClient,
    render_transcript,
    resolve_api_key,
)
from deepdive.agents.topic_podcast.config import TopicPodcastConfig
from deepdive.agents.topic_podcast.errors import (
    ConfigurationError,
    StageRequestError,
    StageTimeoutError,
)
from deepdive.agents.topic_podcast.mock_clients import build_mock_plan
from deepdive.agents.topic_podcast.state import ChatMessage, MessageRole
from deepdive.agents.topic_podcast.tts_client import (
    ElevenLabsNarrationBackend,
    OpenAINarrationBackend,
    create_narration_backend,
    split_for_synthesis,
)

ANTHROPIC_REQUEST = httpx.Request( "POST", "https://api.anthropic.com/v1/messages" )
OPENAI_REQUEST    = httpx.Request( "POST", "https://api.openai.com/v1/audio/speech" )


def make_message( text: str ):
    """Stand-in for an Anthropic Message response."""
    return Mock(
        content     = [ Mock( type="text", text=text ) ],
        model       = "claude-test",
        usage       = Mock( input_tokens=120, output_tokens=40 ),
        stop_reason = "end_turn",
    )


def isolate_keys( monkeypatch, tmp_path ):
    for name in ( "ANTHROPIC_API_KEY", "OPENAI_API_KEY", "ELEVENLABS_API_KEY" ):
        monkeypatch.delenv( name, raising=False )
    monkeypatch.setenv( "DEEPDIVE_ROOT", str( tmp_path ) )


class TestKeyResolution:
    """Tests for API key lookup order."""

    def test_parameter_wins( self, monkeypatch, tmp_path ):
        """Test that an explicit key beats the environment."""
        isolate_keys( monkeypatch, tmp_path )
        monkeypatch.setenv( "ANTHROPIC_API_KEY", "from-env" )
        assert resolve_api_key( "explicit", "ANTHROPIC_API_KEY", "anthropic-api-key" ) == ( "explicit", "parameter" )

    def test_environment_then_file( self, monkeypatch, tmp_path ):
        """Test the environment first, then the local key file."""
        isolate_keys( monkeypatch, tmp_path )
        key_dir = tmp_path / "conf" / "keys"
        key_dir.mkdir( parents=True )
        ( key_dir / "anthropic-api-key" ).write_text( "from-file\n" )

        assert resolve_api_key( None, "ANTHROPIC_API_KEY", "anthropic-api-key" ) == ( "from-file", "local file" )

        monkeypatch.setenv( "ANTHROPIC_API_KEY", "from-env" )
        assert resolve_api_key( None, "ANTHROPIC_API_KEY", "anthropic-api-key" ) == ( "from-env", "environment" )

    def test_missing_text_key_fails_at_construction( self, monkeypatch, tmp_path ):
        """Test that the text client refuses to start without a key."""
        isolate_keys( monkeypatch, tmp_path )
        with pytest.raises( ConfigurationError ) as excinfo:
            TopicPodcastAPIClient( config=TopicPodcastConfig( output_dir=str( tmp_path ) ) )
        assert "API key" in excinfo.value.user_message


class TestRenderTranscript:
    """Tests for transcript -> Anthropic messages conversion."""

    def test_roles_merge_and_plans( self ):
        """Test system skipping, same-role merging and plan rendering."""
        plan = build_mock_plan( "Jazz" )
        transcript = [
            ChatMessage( role=MessageRole.SYSTEM, text="ignored" ),
            ChatMessage( role=MessageRole.USER, text="Jazz" ),
            ChatMessage( role=MessageRole.USER, text="Mostly bebop" ),
            ChatMessage( role=MessageRole.ASSISTANT, text="Here's a plan:", episode_plan=plan ),
        ]
        messages = render_transcript( transcript )

        assert [ message[ "role" ] for message in messages ] == [ "user", "assistant" ]
        assert messages[ 0 ][ "content" ] == "Jazz\n\nMostly bebop"
        assert "1. Jazz: Origins and Early Beginnings" in messages[ 1 ][ "content" ]

    def test_first_message_is_user( self ):
        """Test that a transcript opening with the assistant gets a user opener."""
        messages = render_transcript( [ ChatMessage( role=MessageRole.ASSISTANT, text="Hi!" ) ] )
        assert messages[ 0 ][ "role" ] == "user"
        assert messages[ 1 ][ "content" ] == "Hi!"


class TestTopicPodcastAPIClient:
    """Tests for the Anthropic client and its error translation."""

    def make_client( self, tmp_path ) -> TopicPodcastAPIClient:
        return TopicPodcastAPIClient( config=TopicPodcastConfig( output_dir=str( tmp_path ) ), api_key="test-key" )

    def test_dialogue_call( self, tmp_path ):
        """Test that a dialogue turn sends the system prompt and transcript."""
        client = self.make_client( tmp_path )
        create = AsyncMock( return_value=make_message( '{"content": "Single or series?"}' ) )

        with patch.object( client._client.messages, "create", create ):
            text = asyncio.run( client.complete_dialogue( [ ChatMessage( role=MessageRole.USER, text="Jazz" ) ], "SYSTEM" ) )

        assert text == '{"content": "Single or series?"}'
        kwargs = create.call_args.kwargs
        assert kwargs[ "system" ] == "SYSTEM"
        assert kwargs[ "messages" ] == [ { "role": "user", "content": "Jazz" } ]
        assert kwargs[ "max_tokens" ] == 1024
        assert client.cost_estimate.total_api_calls == 1

    def test_research_uses_lower_temperature( self, tmp_path ):
        """Test research call parameters."""
        client = self.make_client( tmp_path )
        create = AsyncMock( return_value=make_message( "Notes" ) )

        with patch.object( client._client.messages, "create", create ):
            assert asyncio.run( client.research( "Jazz" ) ) == "Notes"

        assert create.call_args.kwargs[ "temperature" ] == 0.5
        assert '"Jazz"' in create.call_args.kwargs[ "messages" ][ 0 ][ "content" ]

    def test_timeout_translated( self, tmp_path ):
        """Test SDK timeout -> StageTimeoutError with the stage named."""
        client = self.make_client( tmp_path )
        create = AsyncMock( side_effect=anthropic.APITimeoutError( request=ANTHROPIC_REQUEST ) )

        with patch.object( client._client.messages, "create", create ):
            with pytest.raises( StageTimeoutError ) as excinfo:
                asyncio.run( client.research( "Jazz" ) )

        assert excinfo.value.stage == "research"
        assert "research service took too long" in excinfo.value.user_message

    def test_connection_error_translated( self, tmp_path ):
        """Test SDK connection failure -> StageRequestError, not a timeout."""
        client = self.make_client( tmp_path )
        create = AsyncMock( side_effect=anthropic.APIConnectionError( request=ANTHROPIC_REQUEST ) )

        with patch.object( client._client.messages, "create", create ):
            with pytest.raises( StageRequestError ) as excinfo:
                asyncio.run( client.write_script( "Write it" ) )

        assert not isinstance( excinfo.value, StageTimeoutError )
        assert excinfo.value.stage == "script"
        assert create.await_count == 1


class TestOpenAINarrationBackend:
    """Tests for the default narration backend."""

    def make_backend( self, tmp_path, content: bytes = b"mp3" ) -> OpenAINarrationBackend:
        backend = OpenAINarrationBackend( config=TopicPodcastConfig( output_dir=str( tmp_path ) ), api_key="test-key" )
        backend._client = Mock()
        backend._client.audio.speech.create = AsyncMock( return_value=Mock( content=content ) )
        return backend

    def test_missing_key_fails_on_synthesize( self, monkeypatch, tmp_path ):
        """Test that construction succeeds and the first call reports configuration."""
        isolate_keys( monkeypatch, tmp_path )
        backend = OpenAINarrationBackend( config=TopicPodcastConfig( output_dir=str( tmp_path ) ) )
        with pytest.raises( ConfigurationError ) as excinfo:
            asyncio.run( backend.synthesize( "Hello", "onyx" ) )
        assert excinfo.value.stage == "narration"

    def test_synthesize( self, tmp_path ):
        """Test request parameters for a short script."""
        backend = self.make_backend( tmp_path )
        assert asyncio.run( backend.synthesize( "Hello there.", "nova" ) ) == b"mp3"

        kwargs = backend._client.audio.speech.create.call_args.kwargs
        assert kwargs[ "model" ] == "tts-1-hd"
        assert kwargs[ "voice" ] == "nova"
        assert kwargs[ "response_format" ] == "mp3"

    def test_long_script_chunked( self, tmp_path ):
        """Test that text over the input limit is synthesized in chunks."""
        backend = self.make_backend( tmp_path, content=b"ab" )
        script  = "This sentence is about forty characters. " * 150
        audio   = asyncio.run( backend.synthesize( script, "onyx" ) )

        calls = backend._client.audio.speech.create.await_count
        assert calls == 2
        assert audio == b"ab" * calls

    def test_timeout_translated( self, tmp_path ):
        """Test SDK timeout -> StageTimeoutError."""
        backend = self.make_backend( tmp_path )
        backend._client.audio.speech.create = AsyncMock( side_effect=openai.APITimeoutError( request=OPENAI_REQUEST ) )
        with pytest.raises( StageTimeoutError ):
            asyncio.run( backend.synthesize( "Hello", "onyx" ) )


class TestElevenLabsNarrationBackend:
    """Tests for the ElevenLabs backend without opening a socket."""

    def test_missing_key( self, monkeypatch, tmp_path ):
        """Test ConfigurationError when no ElevenLabs key is available."""
        isolate_keys( monkeypatch, tmp_path )
        backend = ElevenLabsNarrationBackend( config=TopicPodcastConfig( output_dir=str( tmp_path ) ) )
        with pytest.raises( ConfigurationError ):
            asyncio.run( backend.synthesize( "Hello", "onyx" ) )

    def test_pcm_wrapped_as_wav( self, tmp_path ):
        """Test that collected PCM is returned as a 24 kHz mono WAV file."""
        backend = ElevenLabsNarrationBackend( config=TopicPodcastConfig( output_dir=str( tmp_path ) ), api_key="test-key" )
        backend._generate_via_websocket = AsyncMock( return_value=b"\x00\x01" * 2400 )

        audio = asyncio.run( backend.synthesize( "Hello", "nova" ) )

        with wave.open( io.BytesIO( audio ), "rb" ) as wav_file:
            assert wav_file.getframerate() == 24000
            assert wav_file.getnchannels() == 1
            assert wav_file.getnframes() == 2400

        voice_id = backend._generate_via_websocket.call_args.args[ 1 ]
        assert voice_id == "21m00Tcm4TlvDq8ikWAM"

    def test_connection_failure_translated( self, tmp_path ):
        """Test socket errors -> StageRequestError."""
        backend = ElevenLabsNarrationBackend( config=TopicPodcastConfig( output_dir=str( tmp_path ) ), api_key="test-key" )
        backend._generate_via_websocket = AsyncMock( side_effect=ConnectionRefusedError( "refused" ) )
        with pytest.raises( StageRequestError ):
            asyncio.run( backend.synthesize( "Hello", "onyx" ) )

    def test_timeout_translated( self, tmp_path ):
        """Test that a stalled stream becomes StageTimeoutError."""
        config  = TopicPodcastConfig( output_dir=str( tmp_path ), request_timeout_seconds=0.01 )
        backend = ElevenLabsNarrationBackend( config=config, api_key="test-key" )

        async def stalled( text, voice_id, api_key ):
            await asyncio.sleep( 1 )
            return b""

        backend._generate_via_websocket = stalled
        with pytest.raises( StageTimeoutError ):
            asyncio.run( backend.synthesize( "Hello", "onyx" ) )

    def test_factory_selects_backend( self, tmp_path ):
        """Test narration backend selection from config."""
        assert isinstance( create_narration_backend( TopicPodcastConfig( output_dir=str( tmp_path ) ) ), OpenAINarrationBackend )
        config = TopicPodcastConfig( output_dir=str( tmp_path ), narration_backend="elevenlabs" )
        backend = create_narration_backend( config )
        assert isinstance( backend, ElevenLabsNarrationBackend )
        assert backend.file_extension == "wav"


class TestSplitForSynthesis:
    """Tests for sentence-aligned chunking."""

    def test_short_text_single_chunk( self ):
        """Test that text under the limit is returned whole."""
        assert split_for_synthesis( "  One. Two.  " ) == [ "One. Two." ]

    def test_chunks_respect_limit_and_order( self ):
        """Test chunk length and word order."""
        text   = " ".join( f"Sentence number {n} is here." for n in range( 200 ) )
        chunks = split_for_synthesis( text, max_chars=500 )
        assert all( len( chunk ) <= 500 for chunk in chunks )
        assert " ".join( chunks ).split() == text.split()
        assert all( chunk.endswith( "." ) for chunk in chunks )

    def test_oversized_sentence_hard_split( self ):
        """Test that a sentence longer than the limit is cut."""
        chunks = split_for_synthesis( "x" * 25, max_chars=10 )
        assert all( len( chunk ) <= 10 for chunk in chunks )
        assert "".join( chunks ) == "x" * 25
