#!/usr/bin/env python3
"""
Unit tests for topic podcast prompt helpers, parsers and the reply classifier.

Run with: pytest -v deepdive/agents/topic_podcast/tests/test_prompts.py
"""

import json

import pytest

from deepdive.agents.topic_podcast.classifier import KeywordClassifier, classify_reply
from deepdive.agents.topic_podcast.errors import PlanParseError
from deepdive.agents.topic_podcast.prompts import (
    clean_script,
    estimate_duration_seconds,
    extract_sources,
    get_dialogue_system_prompt,
    get_script_generation_prompt,
    parse_dialogue_reply,
    parse_episode_plan,
    parse_series_outline,
)
from deepdive.agents.topic_podcast.prompts.conversation import FALLBACK_QUICK_REPLIES
from deepdive.agents.topic_podcast.state import ConversationContext, EpisodePlanEntry


def make_episode( number: int, key_points: int = 3 ) -> dict:
    return {
        "number"    : number,
        "title"     : f"Episode {number}",
        "focus"     : f"Focus of episode {number}",
        "keyPoints" : [ f"Point {i}" for i in range( 1, key_points + 1 ) ],
    }


class TestDialogueReplyParsing:
    """Tests for the dialogue reply parse boundary."""

    def test_well_formed_reply( self ):
        """Test a reply with content, quick replies and an asks hint."""
        raw = json.dumps( {
            "content"      : "Single episode or a series?",
            "quickReplies" : [ "Single episode", "Multi-part series" ],
            "asks"         : "format",
            "episodePlan"  : None,
            "isReady"      : False,
        } )
        reply = parse_dialogue_reply( raw )
        assert not reply.is_fallback
        assert reply.content == "Single episode or a series?"
        assert reply.quick_replies == ( "Single episode", "Multi-part series" )
        assert reply.asks == "format"
        assert reply.episode_plan is None
        assert reply.is_ready is False

    def test_prose_reply_falls_back( self ):
        """Test that a non-JSON reply becomes the fallback reply."""
        reply = parse_dialogue_reply( "Great question! Let's talk about jazz." )
        assert reply.is_fallback
        assert reply.quick_replies == FALLBACK_QUICK_REPLIES
        assert reply.episode_plan is None
        assert reply.is_ready is False

    def test_missing_content_falls_back( self ):
        """Test that an object without content becomes the fallback reply."""
        assert parse_dialogue_reply( '{"quickReplies": ["A"]}' ).is_fallback
        assert parse_dialogue_reply( '["not", "an", "object"]' ).is_fallback

    def test_code_fences_are_stripped( self ):
        """Test that a fenced JSON reply is parsed."""
        raw = '```json\n{"content": "Ready?", "isReady": true}\n```'
        reply = parse_dialogue_reply( raw )
        assert not reply.is_fallback
        assert reply.is_ready is True

    def test_quick_replies_capped_and_unknown_asks_dropped( self ):
        """Test quick reply cap and asks normalization."""
        raw = json.dumps( {
            "content"      : "Pick one",
            "quickReplies" : [ "a", "b", "c", "d", "e", 7, "  " ],
            "asks"         : "voice",
        } )
        reply = parse_dialogue_reply( raw )
        assert reply.quick_replies == ( "a", "b", "c", "d" )
        assert reply.asks is None

    def test_embedded_plan_is_parsed( self ):
        """Test a reply carrying a four-episode plan."""
        raw = json.dumps( {
            "content"     : "Here's the plan",
            "episodePlan" : [ make_episode( n ) for n in range( 1, 5 ) ],
            "isSeries"    : True,
        } )
        reply = parse_dialogue_reply( raw )
        assert len( reply.episode_plan ) == 4
        assert all( isinstance( entry, EpisodePlanEntry ) for entry in reply.episode_plan )
        assert reply.is_series is True

    def test_malformed_embedded_plan_raises( self ):
        """Test that a bad plan is an error rather than an empty plan."""
        raw = json.dumps( {
            "content"     : "Here's the plan",
            "episodePlan" : [ make_episode( 1 ), make_episode( 2 ) ],
        } )
        with pytest.raises( PlanParseError ):
            parse_dialogue_reply( raw )


class TestEpisodePlanParsing:
    """Tests for strict episode plan parsing."""

    def test_too_many_episodes_are_truncated( self ):
        """Test that plans longer than the maximum keep the first five."""
        plan = parse_episode_plan( [ make_episode( n ) for n in range( 1, 8 ) ] )
        assert len( plan ) == 5
        assert plan[ -1 ].title == "Episode 5"

    def test_episodes_are_renumbered( self ):
        """Test that episode numbers are 1..N in order regardless of input."""
        episodes = [ make_episode( n ) for n in ( 7, 3, 9 ) ]
        plan = parse_episode_plan( episodes )
        assert [ entry.episode_number for entry in plan ] == [ 1, 2, 3 ]
        assert [ entry.title for entry in plan ] == [ "Episode 7", "Episode 3", "Episode 9" ]

    def test_key_points_exactly_three( self ):
        """Test that extra key points are dropped and missing ones are an error."""
        plan = parse_episode_plan( [ make_episode( n, key_points=5 ) for n in range( 1, 4 ) ] )
        assert all( len( entry.key_points ) == 3 for entry in plan )

        with pytest.raises( PlanParseError ):
            parse_episode_plan( [ make_episode( 1 ), make_episode( 2, key_points=2 ), make_episode( 3 ) ] )

    def test_missing_title_raises( self ):
        """Test that an entry without a title is rejected."""
        episodes = [ make_episode( n ) for n in range( 1, 4 ) ]
        del episodes[ 1 ][ "title" ]
        with pytest.raises( PlanParseError ):
            parse_episode_plan( episodes )

    def test_series_outline_from_object( self ):
        """Test a planning response with title and description."""
        raw = json.dumps( {
            "title"       : "Jazz Through the Ages",
            "description" : "From New Orleans to now.",
            "episodes"    : [ make_episode( n ) for n in range( 1, 4 ) ],
        } )
        outline = parse_series_outline( raw, "History of Jazz" )
        assert outline.title == "Jazz Through the Ages"
        assert outline.description == "From New Orleans to now."
        assert len( outline.episodes ) == 3

    def test_series_outline_from_bare_list( self ):
        """Test that a bare episode array gets a derived title and description."""
        raw = json.dumps( [ make_episode( n ) for n in range( 1, 5 ) ] )
        outline = parse_series_outline( raw, "History of Jazz" )
        assert outline.title == "History of Jazz"
        assert outline.description == "A 4-part series exploring History of Jazz."

    def test_series_outline_not_json( self ):
        """Test that a prose planning response is an error."""
        with pytest.raises( PlanParseError ):
            parse_series_outline( "Episode one: the origins...", "History of Jazz" )


class TestSourceExtraction:
    """Tests for source citation extraction."""

    def test_sources_section_extracted( self ):
        """Test items split across lines, commas and semicolons."""
        notes = (
            "Overview of the topic.\n\n"
            "Sources:\n- Journal of Jazz Studies archives\n"
            "- Smithsonian jazz oral histories, Library of Congress recordings; Downbeat magazine interviews"
        )
        sources = extract_sources( notes, "Jazz" )
        assert sources == (
            "Journal of Jazz Studies archives",
            "Smithsonian jazz oral histories",
            "Library of Congress recordings",
            "Downbeat magazine interviews",
        )

    def test_short_and_long_items_dropped( self ):
        """Test the 10-100 character bounds."""
        notes = "References: NASA, " + "x" * 120 + ", NASA planetary science reports"
        sources = extract_sources( notes, "Mars" )
        assert sources[ 0 ] == "NASA planetary science reports"
        assert "NASA" not in sources

    def test_padded_to_minimum_and_capped_at_maximum( self ):
        """Test padding with placeholders and the five-source cap."""
        assert len( extract_sources( "No list here.", "Mars" ) ) == 3
        assert "Research databases and academic publications on Mars" in extract_sources( "No list here.", "Mars" )

        many = "Sources:\n" + "\n".join( f"- Long enough source number {n}" for n in range( 1, 9 ) )
        assert len( extract_sources( many, "Mars" ) ) == 5


class TestScriptHelpers:
    """Tests for script prompt and post-processing helpers."""

    def test_clean_script( self ):
        """Test removal of directions and speaker labels."""
        raw = "HOST: Welcome to Deep Dive! [intro music]\n\nNARRATOR: Today (short pause) we explore jazz."
        assert clean_script( raw ) == "Welcome to Deep Dive!\n\nToday ... we explore jazz."

    def test_duration_estimate( self ):
        """Test round( words / wpm * 60 )."""
        assert estimate_duration_seconds( "word " * 375 ) == 150
        assert estimate_duration_seconds( "word " * 100, words_per_minute=200 ) == 30
        assert estimate_duration_seconds( "" ) == 0

    def test_episode_prompt_includes_plan_entry( self ):
        """Test that series episode prompts carry title, focus and key points."""
        entry = EpisodePlanEntry(
            episode_number = 2,
            title          = "The Swing Era",
            focus          = "Big bands take over the dance halls",
            key_points     = ( "Count Basie", "Benny Goodman", "Dance culture" ),
        )
        prompt = get_script_generation_prompt( "History of Jazz", "notes", episode=entry, total_episodes=4 )
        assert "episode 2 of 4" in prompt
        assert "The Swing Era" in prompt
        assert "- Benny Goodman" in prompt

    def test_dialogue_prompt_renders_context( self ):
        """Test that unknown preferences render as 'unknown'."""
        context = ConversationContext( original_topic="Jazz", depth="deep", question_count=2 )
        prompt = get_dialogue_system_prompt( context, max_turns=5 )
        assert "Depth preference: deep" in prompt
        assert "Tone preference: unknown" in prompt
        assert "2 of at most 5" in prompt


class TestReplyClassifier:
    """Tests for the keyword reply classifier."""

    def test_format_replies( self ):
        """Test single and series classification."""
        assert classify_reply( "Single episode", "format" ) == { "format": "single", "specificity": "specific" }
        assert classify_reply( "Multi-part series", "format" ) == { "format": "series", "specificity": "broad" }

    def test_depth_replies( self ):
        """Test quick, standard and deep classification."""
        assert classify_reply( "Quick summary (5 min)", "depth" ) == { "depth": "quick" }
        assert classify_reply( "Standard episode (10-15 min)", "depth" ) == { "depth": "standard" }
        assert classify_reply( "Deep dive (20+ min)", "depth" ) == { "depth": "deep" }

    def test_tone_replies( self ):
        """Test tone classification."""
        assert classify_reply( "Conversational", "tone" ) == { "tone": "conversational" }
        assert classify_reply( "Educational", "tone" ) == { "tone": "educational" }
        assert classify_reply( "Storytelling", "tone" ) == { "tone": "storytelling" }

    def test_unrecognized_reply_uses_asked_default( self ):
        """Test conservative defaults for the asked field only."""
        assert classify_reply( "I'm not sure yet", "format" ) == { "format": "single", "specificity": "general" }
        assert classify_reply( "whatever you think", "depth" ) == { "depth": "standard" }
        assert classify_reply( "hmm", "tone" ) == { "tone": "conversational" }
        assert classify_reply( "hmm", None ) == {}

    def test_word_start_matching( self ):
        """Test that 'history' does not trigger the storytelling rule."""
        assert classify_reply( "Mostly the history, please", "tone" ) == { "tone": "conversational" }

    def test_custom_rules( self ):
        """Test that the classifier accepts replacement rule tables."""
        classifier = KeywordClassifier( tone_rules=( ( { "tone": "educational" }, ( "lecture", ) ), ) )
        assert classifier( "Like a lecture", "tone" ) == { "tone": "educational" }
