#!/usr/bin/env python3
"""
Narration clients for the DeepDive Topic Podcast Agent.

Two narration backends share one interface, synthesize( text, voice ) -> bytes:
- OpenAINarrationBackend: OpenAI speech API (tts-1-hd, mp3), the default
- ElevenLabsNarrationBackend: ElevenLabs WebSocket streaming (PCM wrapped as WAV)

Credentials are resolved lazily on the first synthesize() call, so a missing
narration key only surfaces at the narration stage, as a ConfigurationError.
Errors are distinguishable: ConfigurationError (not configured),
StageRequestError (request failed), StageTimeoutError (timeout).
"""

import asyncio
import base64
import io
import json
import logging
import re
import wave
from typing import Optional

import openai
import websockets
from websockets.exceptions import WebSocketException
from openai import AsyncOpenAI

from .api_client import resolve_api_key
from .config import ELEVENLABS_VOICE_IDS, TopicPodcastConfig
from .errors import ConfigurationError, StageRequestError, StageTimeoutError

logger = logging.getLogger( __name__ )

# OpenAI speech input limit, in characters
MAX_INPUT_CHARS = 4096


def split_for_synthesis( text: str, max_chars: int = MAX_INPUT_CHARS ) -> list[ str ]:
    """
    Split text into chunks no longer than max_chars, on sentence boundaries where possible.

    Ensures:
        - Joining the chunks with spaces reproduces the text's words in order
        - Returns [ text ] when it already fits
    """
    text = text.strip()
    if len( text ) <= max_chars:
        return [ text ]

    chunks  = []
    current = ""
    for sentence in re.split( r"(?<=[.!?…])\s+", text ):
        while len( sentence ) > max_chars:
            if current:
                chunks.append( current )
                current = ""
            chunks.append( sentence[ :max_chars ] )
            sentence = sentence[ max_chars: ]

        candidate = f"{current} {sentence}".strip()
        if len( candidate ) > max_chars:
            chunks.append( current )
            current = sentence
        else:
            current = candidate

    if current:
        chunks.append( current )

    return chunks


class OpenAINarrationBackend:
    """
    OpenAI speech narration backend.

    Requires:
        - OPENAI_API_KEY environment variable, conf/keys/openai-api-key file,
          or api_key parameter (checked lazily)

    Ensures:
        - Returns mp3 bytes for the full text
        - Long text is synthesized in sentence-aligned chunks and concatenated
    """

    ENV_VAR_NAME   = "OPENAI_API_KEY"
    KEY_FILE_NAME  = "openai-api-key"
    file_extension = "mp3"

    def __init__(
        self,
        config  : Optional[ TopicPodcastConfig ] = None,
        api_key : Optional[ str ] = None,
        debug   : bool = False,
        verbose : bool = False
    ):
        self.config   = config or TopicPodcastConfig()
        self.debug    = debug
        self.verbose  = verbose
        self._api_key = api_key
        self._client  : Optional[ AsyncOpenAI ] = None

        self.file_extension = self.config.narration_format

    def _get_client( self ) -> AsyncOpenAI:
        if self._client is None:
            api_key, source = resolve_api_key( self._api_key, self.ENV_VAR_NAME, self.KEY_FILE_NAME, debug=self.debug )
            if not api_key:
                raise ConfigurationError( "OpenAI API key is not configured", stage="narration" )

            if self.debug: print( f"[OpenAINarrationBackend] API key source: {source}" )

            self._client = AsyncOpenAI(
                api_key     = api_key,
                timeout     = self.config.request_timeout_seconds,
                max_retries = 0,
            )
        return self._client

    async def synthesize( self, text: str, voice: str ) -> bytes:
        """
        Synthesize narration audio.

        Args:
            text: Plain narration text
            voice: OpenAI voice name

        Returns:
            bytes: Encoded audio in config.narration_format
        """
        client = self._get_client()
        chunks = split_for_synthesis( text )

        audio = bytearray()
        for index, chunk in enumerate( chunks ):
            if self.verbose:
                print( f"[OpenAINarrationBackend] Synthesizing chunk {index + 1}/{len( chunks )} ({len( chunk )} chars)" )
            try:
                response = await client.audio.speech.create(
                    model           = self.config.narration_model,
                    voice           = voice,
                    input           = chunk,
                    response_format = self.config.narration_format,
                )
            except openai.APITimeoutError as e:
                logger.error( f"Narration request timed out: {e}" )
                raise StageTimeoutError( "narration request timed out", stage="narration" ) from e
            except openai.APIError as e:
                logger.error( f"Narration request failed: {e}" )
                raise StageRequestError( f"narration request failed: {e}", stage="narration" ) from e

            audio.extend( response.content )

        return bytes( audio )


class ElevenLabsNarrationBackend:
    """
    ElevenLabs WebSocket narration backend.

    Connects to the ElevenLabs streaming API, collects PCM 24000Hz audio
    and wraps it in a WAV container.

    Requires:
        - ELEVENLABS_API_KEY environment variable, conf/keys/elevenlabs-api-key file,
          or api_key parameter (checked lazily)
    """

    ENV_VAR_NAME   = "ELEVENLABS_API_KEY"
    KEY_FILE_NAME  = "elevenlabs-api-key"
    SAMPLE_RATE    = 24000
    file_extension = "wav"

    # ElevenLabs WebSocket URL template
    WS_URL_TEMPLATE = (
        "wss://api.elevenlabs.io/v1/text-to-speech/{voice_id}/stream-input"
        "?model_id={model_id}&output_format=pcm_24000"
    )

    def __init__(
        self,
        config   : Optional[ TopicPodcastConfig ] = None,
        api_key  : Optional[ str ] = None,
        model_id : str = "eleven_turbo_v2_5",
        debug    : bool = False,
        verbose  : bool = False
    ):
        self.config   = config or TopicPodcastConfig()
        self.model_id = model_id
        self.debug    = debug
        self.verbose  = verbose
        self._api_key = api_key

    def _require_api_key( self ) -> str:
        if not self._api_key:
            self._api_key, source = resolve_api_key( None, self.ENV_VAR_NAME, self.KEY_FILE_NAME, debug=self.debug )
            if not self._api_key:
                raise ConfigurationError( "ElevenLabs API key is not configured", stage="narration" )
            if self.debug: print( f"[ElevenLabsNarrationBackend] API key source: {source}" )
        return self._api_key

    async def synthesize( self, text: str, voice: str ) -> bytes:
        """
        Synthesize narration audio as WAV bytes.

        Args:
            text: Plain narration text
            voice: Voice name (mapped through ELEVENLABS_VOICE_IDS)

        Returns:
            bytes: WAV file contents
        """
        api_key  = self._require_api_key()
        voice_id = ELEVENLABS_VOICE_IDS.get( voice, ELEVENLABS_VOICE_IDS[ self.config.default_voice ] )

        try:
            pcm_audio = await asyncio.wait_for(
                self._generate_via_websocket( text, voice_id, api_key ),
                timeout = self.config.request_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error( "Narration request timed out" )
            raise StageTimeoutError( "narration request timed out", stage="narration" ) from e
        except ( WebSocketException, OSError ) as e:
            logger.error( f"Narration request failed: {e}" )
            raise StageRequestError( f"narration request failed: {e}", stage="narration" ) from e

        return self._pcm_to_wav( pcm_audio )

    async def _generate_via_websocket( self, text: str, voice_id: str, api_key: str ) -> bytes:
        ws_url = self.WS_URL_TEMPLATE.format( voice_id=voice_id, model_id=self.model_id )

        async with websockets.connect( ws_url, additional_headers={ "xi-api-key": api_key } ) as ws:

            config_msg = {
                "text"           : " ",  # Initial space to start stream
                "voice_settings" : {
                    "stability"         : 0.65,
                    "similarity_boost"  : 0.75,
                    "style"             : 0.35,
                    "use_speaker_boost" : True,
                },
            }
            await ws.send( json.dumps( config_msg ) )
            await ws.send( json.dumps( { "text": text, "try_trigger_generation": True } ) )

            # End-of-stream marker
            await ws.send( json.dumps( { "text": "" } ) )

            audio_chunks = []
            async for message in ws:
                try:
                    data = json.loads( message )
                except json.JSONDecodeError:
                    logger.warning( "Non-JSON message from ElevenLabs" )
                    continue

                if data.get( "audio" ):
                    audio_chunks.append( base64.b64decode( data[ "audio" ] ) )
                elif data.get( "isFinal" ):
                    break
                elif data.get( "error" ):
                    raise StageRequestError( f"ElevenLabs error: {data.get( 'error' )}", stage="narration" )

            if self.debug:
                print( f"[ElevenLabsNarrationBackend] Collected {len( audio_chunks )} audio chunk(s)" )

            return b"".join( audio_chunks )

    def _pcm_to_wav( self, pcm_audio: bytes ) -> bytes:
        buffer = io.BytesIO()
        with wave.open( buffer, "wb" ) as wav_file:
            wav_file.setnchannels( 1 )
            wav_file.setsampwidth( 2 )
            wav_file.setframerate( self.SAMPLE_RATE )
            wav_file.writeframes( pcm_audio )
        return buffer.getvalue()


def create_narration_backend( config: TopicPodcastConfig, debug: bool = False, verbose: bool = False ):
    """Build the narration backend named by config.narration_backend."""
    if config.narration_backend == "elevenlabs":
        return ElevenLabsNarrationBackend( config=config, debug=debug, verbose=verbose )
    return OpenAINarrationBackend( config=config, debug=debug, verbose=verbose )


def quick_smoke_test():
    """Quick smoke test for narration helpers (no network)."""
    import deepdive.utils.util as du

    du.print_banner( "Narration Client Smoke Test", prepend_nl=True )

    try:
        chunks = split_for_synthesis( "One. Two! Three?" * 400, max_chars=500 )
        assert all( len( chunk ) <= 500 for chunk in chunks )
        print( f"✓ split_for_synthesis produced {len( chunks )} chunks" )

        backend = ElevenLabsNarrationBackend( api_key="test" )
        wav = backend._pcm_to_wav( b"\x00\x00" * 240 )
        assert wav[ :4 ] == b"RIFF"
        print( "✓ PCM wrapped as WAV" )

        print( "\n✓ Narration client smoke test completed successfully" )

    except Exception as e:
        print( f"\n✗ Smoke test failed: {e}" )
        import traceback
        traceback.print_exc()


if __name__ == "__main__":
    quick_smoke_test()
