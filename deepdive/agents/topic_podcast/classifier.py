#!/usr/bin/env python3
"""
Keyword classifier for free-text clarification replies.

Maps a user's reply onto preference fields by first-match-wins search over
fixed, ordered keyword tables. Keywords match at the start of a word, so
"story" matches "storytelling" but not "history". Unrecognized input never raises.

Per-field defaults, applied only when the assistant's question asked about
that field and no keyword matched:
    format -> specificity "general", format "single"
    depth  -> "standard"
    tone   -> "conversational"

The classifier is pluggable: ConversationEngine accepts any callable with
the signature ( reply_text, asks ) -> dict of context field updates.
"""

import re
from typing import Callable, Optional

from .config import DEFAULT_DEPTH, DEFAULT_TONE

ReplyClassifier = Callable[ [ str, Optional[ str ] ], dict ]


# Ordered ( updates, keywords ) rules. First match wins.
FORMAT_RULES = (
    ( { "format": "single", "specificity": "specific" }, ( "single", "one episode", "focused" ) ),
    ( { "format": "series", "specificity": "broad" },    ( "multi", "series", "multiple" ) ),
)

# "standard" precedes "quick" so "10-15 min" is not caught by "5 min"
DEPTH_RULES = (
    ( { "depth": "standard" }, ( "standard", "10-15", "medium" ) ),
    ( { "depth": "quick" },    ( "quick", "5 min", "summary", "short" ) ),
    ( { "depth": "deep" },     ( "deep", "20", "comprehensive" ) ),
)

TONE_RULES = (
    ( { "tone": "conversational" }, ( "conversational", "casual" ) ),
    ( { "tone": "educational" },    ( "educational", "structured" ) ),
    ( { "tone": "storytelling" },   ( "story", "narrative" ) ),
)

FIELD_DEFAULTS = {
    "format" : { "format": "single", "specificity": "general" },
    "depth"  : { "depth": DEFAULT_DEPTH },
    "tone"   : { "tone": DEFAULT_TONE },
}


class KeywordClassifier:
    """
    Rule-table reply classifier.

    Requires:
        - Each rule table is an ordered sequence of ( updates, keywords )

    Ensures:
        - Returns only fields that matched, plus the asked field's default
        - Never raises on any string input
    """

    def __init__(
        self,
        format_rules = FORMAT_RULES,
        depth_rules  = DEPTH_RULES,
        tone_rules   = TONE_RULES,
        defaults     = FIELD_DEFAULTS
    ):
        self.rules = {
            "format" : format_rules,
            "depth"  : depth_rules,
            "tone"   : tone_rules,
        }
        self.defaults = defaults

    @staticmethod
    def _first_match( text: str, rules ) -> Optional[ dict ]:
        for updates, keywords in rules:
            if any( re.search( r"\b" + re.escape( keyword ), text ) for keyword in keywords ):
                return dict( updates )
        return None

    def __call__( self, reply_text: str, asks: Optional[ str ] = None ) -> dict:
        """
        Classify a reply.

        Args:
            reply_text: The user's raw reply
            asks: Field the preceding question was about (format | depth | tone | None)

        Returns:
            dict: Context field updates
        """
        text    = ( reply_text or "" ).lower()
        updates = {}

        for field, rules in self.rules.items():
            matched = self._first_match( text, rules )
            if matched is not None:
                updates.update( matched )
            elif field == asks:
                updates.update( self.defaults[ field ] )

        return updates


classify_reply = KeywordClassifier()


def quick_smoke_test():
    """Quick smoke test for the keyword classifier."""
    import deepdive.utils.util as du

    du.print_banner( "KeywordClassifier Smoke Test", prepend_nl=True )

    try:
        assert classify_reply( "Multi-part series", "format" ) == { "format": "series", "specificity": "broad" }
        print( "✓ Series reply classified" )

        assert classify_reply( "Standard episode (10-15 min)", "depth" ) == { "depth": "standard" }
        print( "✓ '10-15 min' is standard, not quick" )

        assert classify_reply( "I'm not sure yet", "format" ) == { "format": "single", "specificity": "general" }
        print( "✓ Unrecognized reply takes the asked field's default" )

        assert classify_reply( "The history of it all", None ) == {}
        print( "✓ 'history' does not match 'story'" )

        print( "\n✓ KeywordClassifier smoke test completed successfully" )

    except Exception as e:
        print( f"\n✗ Smoke test failed: {e}" )
        import traceback
        traceback.print_exc()


if __name__ == "__main__":
    quick_smoke_test()
