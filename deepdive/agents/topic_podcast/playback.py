#!/usr/bin/env python3
"""
Playback helpers for the DeepDive Topic Podcast Agent.

- VoicePreview: a scoped handle for previewing a narration voice. The
  preview audio exists only between acquire() and release(); there is no
  process-wide "current sound".
- estimate_sentence_timings(): sentence-level timing for transcript sync.
  The synthesis backend reports no timing, so each sentence gets a share of
  the total duration proportional to its word count.
"""

import asyncio
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from typing import Callable, Optional

from .config import VOICE_PREVIEW_TEXTS, TopicPodcastConfig
from .prompts import count_words, estimate_duration_seconds

logger = logging.getLogger( __name__ )

SENTENCE_PATTERN = re.compile( r"[^.!?…]+[.!?…]+" )


# =============================================================================
# Sentence Timing
# =============================================================================

@dataclass( frozen=True )
class SentenceTiming:
    text       : str
    start_time : float
    end_time   : float


def split_sentences( script: str ) -> list[ str ]:
    """Split narration into sentences; trailing text without punctuation is kept."""
    sentences = []
    last_end  = 0
    for match in SENTENCE_PATTERN.finditer( script ):
        sentences.append( match.group( 0 ).strip() )
        last_end = match.end()

    remainder = script[ last_end: ].strip()
    if re.search( r"\w", remainder ):
        sentences.append( remainder )

    return [ sentence for sentence in sentences if re.search( r"\w", sentence ) ]


def estimate_sentence_timings( script: str, total_duration: float, words_per_minute: int = 150 ) -> list[ SentenceTiming ]:
    """
    Estimate start/end times for each sentence of a script.

    Requires:
        - total_duration is the audio length in seconds (<= 0 means unknown)

    Ensures:
        - Timings are contiguous, start at 0 and end at the total duration
        - Each sentence's span is proportional to its word count
        - Unknown duration falls back to the words-per-minute estimate

    Args:
        script: Narration text
        total_duration: Audio duration in seconds
        words_per_minute: Pace used when the duration is unknown

    Returns:
        list: SentenceTiming per sentence, in order
    """
    sentences = split_sentences( script )
    if not sentences:
        return []

    if total_duration <= 0:
        total_duration = max( estimate_duration_seconds( script, words_per_minute ), 1 )

    counts      = [ max( count_words( sentence ), 1 ) for sentence in sentences ]
    total_words = sum( counts )

    timings = []
    elapsed = 0
    current = 0.0
    for sentence, words in zip( sentences, counts ):
        elapsed += words
        end = total_duration * elapsed / total_words
        timings.append( SentenceTiming( text=sentence, start_time=current, end_time=end ) )
        current = end

    return timings


def sentence_index_at( timings: list[ SentenceTiming ], position: float ) -> int:
    """
    Index of the sentence being spoken at a playback position.

    Returns:
        int: Sentence index, clamped to the last sentence; -1 if there are none
    """
    for index, timing in enumerate( timings ):
        if position < timing.end_time:
            return index
    return len( timings ) - 1


# =============================================================================
# Voice Preview
# =============================================================================

class VoicePreview:
    """
    Scoped voice-preview handle.

    Usage:
        async with VoicePreview( narration_backend, "nova", player=play ) as preview:
            ...  # preview.path holds the preview audio while in scope

    Requires:
        - backend exposes async synthesize( text, voice ) -> bytes

    Ensures:
        - acquire() synthesizes the voice's preview text into a temp file
        - release() stops playback and deletes the file
        - At most one preview file is held per handle
    """

    def __init__(
        self,
        backend,
        voice   : str,
        config  : Optional[ TopicPodcastConfig ] = None,
        player  : Optional[ Callable[ [ str ], None ] ] = None,
        stopper : Optional[ Callable[ [], None ] ] = None,
        debug   : bool = False
    ):
        self.backend = backend
        self.config  = config or TopicPodcastConfig()
        self.voice   = self.config.resolve_voice( voice )
        self.player  = player
        self.stopper = stopper
        self.debug   = debug
        self.path    : Optional[ str ] = None

    @property
    def is_active( self ) -> bool:
        return self.path is not None

    async def acquire( self ) -> "VoicePreview":
        if self.is_active:
            return self

        text  = VOICE_PREVIEW_TEXTS[ self.voice ]
        audio = await self.backend.synthesize( text, self.voice )
        extension = getattr( self.backend, "file_extension", self.config.narration_format )

        def write_file() -> str:
            fd, path = tempfile.mkstemp( prefix=f"preview-{self.voice}-", suffix=f".{extension}" )
            with os.fdopen( fd, "wb" ) as f:
                f.write( audio )
            return path

        self.path = await asyncio.to_thread( write_file )

        if self.debug:
            print( f"[VoicePreview] Acquired '{self.voice}' preview at {self.path}" )

        if self.player is not None:
            self.player( self.path )

        return self

    async def release( self ) -> None:
        if not self.is_active:
            return

        if self.stopper is not None:
            self.stopper()

        path, self.path = self.path, None
        try:
            await asyncio.to_thread( os.remove, path )
        except FileNotFoundError:
            logger.warning( f"Preview file already removed: {path}" )

        if self.debug:
            print( f"[VoicePreview] Released '{self.voice}' preview" )

    async def switch( self, voice: str ) -> "VoicePreview":
        """Release the current preview, then acquire one for another voice."""
        await self.release()
        self.voice = self.config.resolve_voice( voice )
        return await self.acquire()

    async def __aenter__( self ) -> "VoicePreview":
        return await self.acquire()

    async def __aexit__( self, exc_type, exc, tb ) -> None:
        await self.release()
