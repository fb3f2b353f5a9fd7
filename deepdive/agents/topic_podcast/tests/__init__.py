#!/usr/bin/env python3
"""
Tests for the DeepDive Topic Podcast Agent.

Test structure:
- test_prompts.py - Reply/plan parsing, source extraction, script cleaning, classifier
- test_conversation.py - ConversationEngine phases, turn bounds and failure semantics
- test_pipeline.py - GenerationPipeline progress, series, cancellation and failures
- test_clients.py - API client error translation and narration backend configuration
- test_playback.py - Progress channel, sentence timing and voice preview lifecycle
- test_cli.py - Ctrl-C cancellation and the end-of-run cost summary

Run tests:
    pytest deepdive/agents/topic_podcast/tests/
"""
