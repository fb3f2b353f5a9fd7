#!/usr/bin/env python3
"""
Progress channel for the DeepDive Topic Podcast Agent.

A synchronous observer: emit() calls every subscriber in subscription order
before returning, so event order always matches stage order.

Per run the channel guarantees:
- progress fractions never decrease
- exactly one terminal event (done, cancelled or failed)
"""

import logging
from typing import Callable, Optional

from .state import GenerationProgress, ProgressStage

logger = logging.getLogger( __name__ )

ProgressCallback = Callable[ [ GenerationProgress ], None ]


class ProgressChannel:
    """
    Ordered, synchronous fan-out of GenerationProgress events.

    Requires:
        - begin() is called at the start of each run

    Ensures:
        - Subscribers receive events in emission order
        - A regressing fraction is raised to the previous high-water mark
        - Events after the terminal event are dropped
        - A failing subscriber never breaks the run or other subscribers
    """

    def __init__( self, debug: bool = False ):
        self.debug        = debug
        self._subscribers : list[ ProgressCallback ] = []
        self._last        = 0.0
        self._terminated  = False
        self.history      : list[ GenerationProgress ] = []

    def subscribe( self, callback: ProgressCallback ) -> Callable[ [], None ]:
        """
        Register a subscriber.

        Returns:
            Callable: Zero-argument function that unsubscribes this callback
        """
        self._subscribers.append( callback )
        return lambda: self.unsubscribe( callback )

    def unsubscribe( self, callback: ProgressCallback ) -> None:
        if callback in self._subscribers:
            self._subscribers.remove( callback )

    def begin( self ) -> None:
        """Reset per-run bookkeeping."""
        self._last       = 0.0
        self._terminated = False
        self.history     = []

    @property
    def last_progress( self ) -> float:
        return self._last

    @property
    def is_terminated( self ) -> bool:
        return self._terminated

    def emit(
        self,
        stage          : ProgressStage,
        message        : str,
        progress       : float,
        episode_number : Optional[ int ] = None,
        total_episodes : Optional[ int ] = None,
    ) -> Optional[ GenerationProgress ]:
        """
        Build an event and deliver it to every subscriber.

        Returns:
            GenerationProgress or None: The delivered event, or None if dropped
        """
        if self._terminated:
            logger.warning( f"Dropping '{stage.value}' event emitted after terminal event" )
            return None

        if progress < self._last:
            logger.warning( f"Progress regression {progress:.3f} < {self._last:.3f}; holding at high-water mark" )
            progress = self._last

        if stage.is_terminal:
            self._terminated = True

        event = GenerationProgress(
            stage          = stage,
            message        = message,
            progress       = min( progress, 1.0 ),
            episode_number = episode_number,
            total_episodes = total_episodes,
        )
        self._last = event.progress
        self.history.append( event )

        if self.debug:
            print( f"[ProgressChannel] {event.progress:.2f} {stage.value}: {message}" )

        for callback in list( self._subscribers ):
            try:
                callback( event )
            except Exception as e:
                logger.warning( f"Progress subscriber failed: {e}" )

        return event


def quick_smoke_test():
    """Quick smoke test for ProgressChannel."""
    import deepdive.utils.util as du

    du.print_banner( "ProgressChannel Smoke Test", prepend_nl=True )

    try:
        channel  = ProgressChannel( debug=True )
        received = []
        unsubscribe = channel.subscribe( received.append )

        channel.begin()
        channel.emit( ProgressStage.SEARCHING, "Researching...", 0.1 )
        channel.emit( ProgressStage.ANALYZING, "Analyzing...", 0.05 )
        assert received[ -1 ].progress == 0.1
        print( "✓ Regressing fraction held at high-water mark" )

        channel.emit( ProgressStage.DONE, "Done", 1.0 )
        assert channel.emit( ProgressStage.SEARCHING, "late", 1.0 ) is None
        print( "✓ Events after terminal are dropped" )

        unsubscribe()
        channel.begin()
        channel.emit( ProgressStage.SEARCHING, "again", 0.1 )
        assert len( received ) == 3
        print( "✓ Unsubscribe works" )

        print( "\n✓ ProgressChannel smoke test completed successfully" )

    except Exception as e:
        print( f"\n✗ Smoke test failed: {e}" )
        import traceback
        traceback.print_exc()


if __name__ == "__main__":
    quick_smoke_test()
