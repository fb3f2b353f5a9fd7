#!/usr/bin/env python3
"""
Claude API Client for the DeepDive Topic Podcast Agent.

Provides an async wrapper for the Claude API used by every text stage:
- Clarification dialogue turns
- Topic research
- Narration script writing
- Series planning and plan revision

SDK errors are translated at this boundary into the DeepDive taxonomy
(StageTimeoutError / StageRequestError) with the failing stage named.
No retries happen here: failures surface to the caller, which offers retry.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

import anthropic
from anthropic import AsyncAnthropic

from .config import TopicPodcastConfig
from .errors import ConfigurationError, StageRequestError, StageTimeoutError
from .prompts import (
    RESEARCH_SYSTEM_PROMPT,
    SCRIPT_GENERATION_SYSTEM_PROMPT,
    get_plan_revision_prompt,
    get_research_prompt,
    get_series_planning_prompt,
    get_series_planning_system_prompt,
    parse_dialogue_reply,
)
from .prompts.conversation import DialogueReply
from .state import ChatMessage, ConversationContext, EpisodePlan, MessageRole

logger = logging.getLogger( __name__ )


# =============================================================================
# API Key Configuration
# =============================================================================
# Priority order for key retrieval:
#   1. Explicit api_key parameter (highest priority)
#   2. Environment variable ANTHROPIC_API_KEY
#   3. Local file via du.get_api_key() (development)
# =============================================================================

ENV_VAR_NAME  = "ANTHROPIC_API_KEY"
KEY_FILE_NAME = "anthropic-api-key"


def resolve_api_key( api_key: Optional[ str ], env_var_name: str, key_file_name: str, debug: bool = False ) -> tuple[ Optional[ str ], str ]:
    """
    Resolve an API key from parameter, environment, or local key file.

    Returns:
        tuple: (api_key or None, source description)
    """
    if api_key:
        return api_key, "parameter"

    api_key = os.environ.get( env_var_name )
    if api_key:
        return api_key, "environment"

    import deepdive.utils.util as du
    try:
        api_key = du.get_api_key( key_file_name )
    except OSError as e:
        if debug: print( f"[resolve_api_key] Could not read local key file: {e}" )
        api_key = None

    return api_key, "local file" if api_key else "missing"


@dataclass
class APIResponse:
    """
    Structured response from an API call.
    """
    content       : str
    model         : str
    input_tokens  : int
    output_tokens : int
    stop_reason   : str
    raw_response  : Any = None


# Approximate USD per million tokens ( input, output ), by model family
MODEL_PRICING = {
    "haiku"  : ( 0.8, 4.0 ),
    "sonnet" : ( 3.0, 15.0 ),
    "opus"   : ( 15.0, 75.0 ),
}


@dataclass
class CostEstimate:
    """
    Running token and cost totals across every stage call of a run.

    Unknown model ids are priced as Sonnet.
    """
    total_input_tokens  : int   = 0
    total_output_tokens : int   = 0
    total_api_calls     : int   = 0
    estimated_cost_usd  : float = 0.0

    def add_usage( self, model: str, input_tokens: int, output_tokens: int ) -> None:
        input_price, output_price = next(
            ( prices for family, prices in MODEL_PRICING.items() if family in model ),
            MODEL_PRICING[ "sonnet" ]
        )

        self.total_api_calls     += 1
        self.total_input_tokens  += input_tokens
        self.total_output_tokens += output_tokens
        self.estimated_cost_usd  += ( input_tokens * input_price + output_tokens * output_price ) / 1_000_000

    def get_summary( self ) -> str:
        """Get human-readable cost summary."""
        return (
            f"API Calls: {self.total_api_calls} | "
            f"Tokens: {self.total_input_tokens:,} in, {self.total_output_tokens:,} out | "
            f"Est. Cost: ${self.estimated_cost_usd:.4f}"
        )


def render_transcript( transcript: list[ ChatMessage ] ) -> list[ dict ]:
    """
    Convert a transcript into Anthropic message dicts.

    Ensures:
        - System messages are skipped (instructions go in the system prompt)
        - Consecutive same-role messages are merged
        - Embedded episode plans are rendered as text
        - The first message has role "user"
    """
    messages = []
    for message in transcript:
        if message.role == MessageRole.SYSTEM:
            continue

        text = message.text
        if message.episode_plan:
            lines = [ f"{entry.episode_number}. {entry.title}: {entry.focus}" for entry in message.episode_plan ]
            text = text + "\n\n" + "\n".join( lines )

        role = message.role.value
        if messages and messages[ -1 ][ "role" ] == role:
            messages[ -1 ][ "content" ] += "\n\n" + text
        else:
            messages.append( { "role": role, "content": text } )

    if messages and messages[ 0 ][ "role" ] != "user":
        messages.insert( 0, { "role": "user", "content": "(conversation start)" } )

    return messages


class TopicPodcastAPIClient:
    """
    Async Anthropic API client for all text stages.

    Requires:
        - One of the following API key sources:
          1. api_key parameter (explicit)
          2. ANTHROPIC_API_KEY environment variable
          3. conf/keys/anthropic-api-key file

    Ensures:
        - Raises ConfigurationError at construction if no key is found
        - Raises StageTimeoutError / StageRequestError on call failure
        - Integrated cost tracking
    """

    def __init__(
        self,
        config  : Optional[ TopicPodcastConfig ] = None,
        api_key : Optional[ str ] = None,
        debug   : bool = False,
        verbose : bool = False
    ):
        """
        Initialize the API client.

        Args:
            config: Topic podcast configuration (uses defaults if None)
            api_key: Anthropic API key (uses env var/file if None)
            debug: Enable debug output
            verbose: Enable verbose output
        """
        self.config  = config or TopicPodcastConfig()
        self.debug   = debug
        self.verbose = verbose

        self.api_key, self.key_source = resolve_api_key( api_key, ENV_VAR_NAME, KEY_FILE_NAME, debug=debug )

        if not self.api_key:
            raise ConfigurationError(
                f"Anthropic API key not found. Either:\n"
                f"  1. Pass api_key parameter\n"
                f"  2. Set {ENV_VAR_NAME} environment variable\n"
                f"  3. Create conf/keys/{KEY_FILE_NAME} file"
            )

        self._client = AsyncAnthropic(
            api_key     = self.api_key,
            timeout     = self.config.request_timeout_seconds,
            max_retries = 0,
        )

        self.cost_estimate = CostEstimate()

        if self.debug:
            print( f"[TopicPodcastAPIClient] API key source: {self.key_source}" )
            print( f"[TopicPodcastAPIClient] Text model: {self.config.text_model}" )

    async def complete(
        self,
        system_prompt : str,
        messages      : list[ dict ],
        stage         : str,
        max_tokens    : int = 1024,
        temperature   : Optional[ float ] = None
    ) -> APIResponse:
        """
        Make one Messages API call.

        Requires:
            - messages is a non-empty list starting with a user message

        Ensures:
            - Returns APIResponse with concatenated text content
            - Raises StageTimeoutError on timeout, StageRequestError on other API errors

        Args:
            system_prompt: System instructions
            messages: Anthropic message dicts
            stage: Stage name used in error reporting
            max_tokens: Maximum output tokens
            temperature: Sampling temperature (config default if None)

        Returns:
            APIResponse: Response content and usage
        """
        if self.verbose:
            print( f"[TopicPodcastAPIClient] {stage}: {len( messages )} message(s), max_tokens={max_tokens}" )

        try:
            response = await self._client.messages.create(
                model       = self.config.text_model,
                max_tokens  = max_tokens,
                temperature = self.config.temperature if temperature is None else temperature,
                system      = system_prompt,
                messages    = messages,
            )
        except anthropic.APITimeoutError as e:
            logger.error( f"{stage} request timed out: {e}" )
            raise StageTimeoutError( f"{stage} request timed out", stage=stage ) from e
        except anthropic.APIError as e:
            logger.error( f"{stage} request failed: {e}" )
            raise StageRequestError( f"{stage} request failed: {e}", stage=stage ) from e

        content = "".join( block.text for block in response.content if getattr( block, "type", "" ) == "text" )

        self.cost_estimate.add_usage(
            response.model,
            response.usage.input_tokens,
            response.usage.output_tokens,
        )

        if self.debug:
            print( f"[TopicPodcastAPIClient] {stage}: {response.usage.output_tokens} tokens out ({response.stop_reason})" )

        return APIResponse(
            content       = content,
            model         = response.model,
            input_tokens  = response.usage.input_tokens,
            output_tokens = response.usage.output_tokens,
            stop_reason   = response.stop_reason or "",
            raw_response  = response,
        )

    # =========================================================================
    # Stage Calls
    # =========================================================================

    async def complete_dialogue( self, transcript: list[ ChatMessage ], system_instructions: str ) -> str:
        response = await self.complete(
            system_prompt = system_instructions,
            messages      = render_transcript( transcript ),
            stage         = "dialogue",
            max_tokens    = self.config.max_tokens_dialogue,
        )
        return response.content

    async def research( self, query: str ) -> str:
        response = await self.complete(
            system_prompt = RESEARCH_SYSTEM_PROMPT,
            messages      = [ { "role": "user", "content": get_research_prompt( query ) } ],
            stage         = "research",
            max_tokens    = self.config.max_tokens_research,
            temperature   = 0.5,
        )
        return response.content

    async def write_script( self, prompt: str ) -> str:
        response = await self.complete(
            system_prompt = SCRIPT_GENERATION_SYSTEM_PROMPT,
            messages      = [ { "role": "user", "content": prompt } ],
            stage         = "script",
            max_tokens    = self.config.max_tokens_script,
        )
        return response.content

    async def plan_series( self, topic: str ) -> str:
        response = await self.complete(
            system_prompt = get_series_planning_system_prompt( self.config.min_episodes, self.config.max_episodes ),
            messages      = [ { "role": "user", "content": get_series_planning_prompt( topic ) } ],
            stage         = "planning",
            max_tokens    = self.config.max_tokens_planning,
        )
        return response.content

    async def revise_plan( self, topic: str, feedback: str, current_plan: Optional[ EpisodePlan ] = None ) -> str:
        response = await self.complete(
            system_prompt = get_series_planning_system_prompt( self.config.min_episodes, self.config.max_episodes ),
            messages      = [ { "role": "user", "content": get_plan_revision_prompt( topic, feedback, current_plan ) } ],
            stage         = "planning",
            max_tokens    = self.config.max_tokens_planning,
        )
        return response.content


class AnthropicDialogueBackend:
    """
    Text-generation backend for clarification turns.

    Wraps TopicPodcastAPIClient and passes every reply through the
    validated-parse boundary, so callers only ever see a DialogueReply.
    """

    def __init__( self, client: TopicPodcastAPIClient, config: Optional[ TopicPodcastConfig ] = None ):
        self.client = client
        self.config = config or client.config

    async def complete(
        self,
        transcript          : list[ ChatMessage ],
        system_instructions : str,
        context             : Optional[ ConversationContext ] = None
    ) -> DialogueReply:
        raw = await self.client.complete_dialogue( transcript, system_instructions )
        return parse_dialogue_reply( raw, min_episodes=self.config.min_episodes, max_episodes=self.config.max_episodes )


def quick_smoke_test():
    """Quick smoke test for TopicPodcastAPIClient helpers (no network)."""
    import deepdive.utils.util as du

    du.print_banner( "TopicPodcastAPIClient Smoke Test", prepend_nl=True )

    try:
        transcript = [
            ChatMessage( role=MessageRole.USER, text="Jazz" ),
            ChatMessage( role=MessageRole.SYSTEM, text="ignored" ),
            ChatMessage( role=MessageRole.USER, text="Series please" ),
            ChatMessage( role=MessageRole.ASSISTANT, text="Great" ),
        ]
        messages = render_transcript( transcript )
        assert len( messages ) == 2 and "Series please" in messages[ 0 ][ "content" ]
        print( "✓ render_transcript merges and skips system messages" )

        cost = CostEstimate()
        cost.add_usage( "claude-sonnet", 1000, 500 )
        print( f"✓ CostEstimate: {cost.get_summary()}" )

        print( "\n✓ API client smoke test completed successfully" )

    except Exception as e:
        print( f"\n✗ Smoke test failed: {e}" )
        import traceback
        traceback.print_exc()


if __name__ == "__main__":
    quick_smoke_test()
