#!/usr/bin/env python3
"""
Conversation Engine for the DeepDive Topic Podcast Agent.

A turn-based dialogue state machine that clarifies what the user wants
before any content is generated:

    clarifying --(plan in reply)--> approval --approve--> handoff (series)
        |                             |  ^
        |                             |  +--modify (plan replaced atomically)
        |                             +--switch_to_single--> handoff (single)
        +--(ready in reply, or max turns reached)--> ready --> handoff (single)

The engine never retries a failed turn. A failed turn leaves the state
exactly as it was (apart from clearing is_awaiting_response) and raises
ConversationTurnError so the user can re-send it.

All changes to a ConversationState are committed in a single synchronous
block after every await has completed, so no caller can observe a
half-applied turn or a mixed old/new plan.
"""

import asyncio
import logging
from typing import Optional

from pydantic import ValidationError

import deepdive.utils.util as du

from .classifier import ReplyClassifier, classify_reply
from .config import DEFAULT_DEPTH, DEFAULT_TONE, TONE_STYLES, TopicPodcastConfig
from .errors import (
    ConversationBusyError,
    ConversationTurnError,
    DeepDiveError,
    InvalidPhaseError,
)
from .prompts import get_dialogue_system_prompt
from .prompts.conversation import DialogueReply
from .state import (
    ChatMessage,
    ConversationContext,
    ConversationPhase,
    ConversationState,
    EpisodePlan,
    GenerationParams,
    MessageRole,
)

logger = logging.getLogger( __name__ )


def get_generation_params( context: ConversationContext ) -> GenerationParams:
    """
    Derive the frozen pipeline handoff from a conversation context.

    Ensures:
        - is_series is True exactly when context.format == "series"
        - depth/tone fall back to "standard"/"conversational"
        - approved_outline mirrors the episode plan (None without a plan)

    Args:
        context: Context from a ready or approved conversation

    Returns:
        GenerationParams: Immutable parameters for GenerationPipeline
    """
    tone = context.tone or DEFAULT_TONE
    return GenerationParams(
        topic            = context.refined_topic or context.original_topic,
        is_series        = context.format == "series",
        depth            = context.depth or DEFAULT_DEPTH,
        tone             = tone,
        style            = TONE_STYLES.get( tone, DEFAULT_TONE ),
        voice            = context.voice,
        episode_plan     = context.episode_plan,
        approved_outline = context.episode_plan,
    )


class ConversationEngine:
    """
    Clarification dialogue state machine.

    Requires:
        - dialogue_backend exposes
          async complete( transcript, system_instructions, context ) -> DialogueReply
        - plan_regenerator (for modify_plan) exposes
          async regenerate_plan( topic, feedback, current_plan ) -> EpisodePlan

    Ensures:
        - question_count grows by exactly one per completed clarification turn
        - question_count never exceeds config.max_clarification_turns
        - Overlapping turns raise ConversationBusyError
        - Actions in the wrong phase raise InvalidPhaseError
    """

    def __init__(
        self,
        dialogue_backend,
        plan_regenerator = None,
        config           : Optional[ TopicPodcastConfig ] = None,
        classifier       : ReplyClassifier = classify_reply,
        debug            : bool = False,
        verbose          : bool = False
    ):
        self.dialogue_backend = dialogue_backend
        self.plan_regenerator = plan_regenerator
        self.config           = config or TopicPodcastConfig()
        self.classifier       = classifier
        self.debug            = debug
        self.verbose          = verbose

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start( self, topic: str, voice: Optional[ str ] = None ) -> ConversationState:
        """
        Create a fresh conversation for a topic.

        Requires:
            - topic is a non-empty string

        Ensures:
            - Phase is clarifying, question_count is 0
            - Transcript holds the topic as the first user message
        """
        topic = ( topic or "" ).strip()
        if not topic:
            raise ValueError( "Topic must be a non-empty string" )

        context = ConversationContext(
            original_topic = topic,
            refined_topic  = topic,
            voice          = self.config.resolve_voice( voice ),
        )
        state = ConversationState(
            phase    = ConversationPhase.CLARIFYING,
            messages = [ ChatMessage( role=MessageRole.USER, text=topic ) ],
            context  = context,
        )

        if self.debug:
            print( f"[ConversationEngine] Started conversation about '{du.truncate_string( topic )}' (voice={context.voice})" )

        return state

    def restart( self, state: ConversationState ) -> ConversationState:
        """Discard a conversation and start over with the same topic and voice."""
        return self.start( state.context.original_topic, state.context.voice )

    async def begin( self, state: ConversationState ) -> ConversationState:
        """
        Fetch the assistant's first question for a freshly started conversation.
        """
        self._require_phase( state, ConversationPhase.CLARIFYING )
        if state.messages and state.messages[ -1 ].role != MessageRole.USER:
            raise InvalidPhaseError( "Conversation has already begun" )

        return await self._run_turn( state, user_message=None )

    async def respond( self, state: ConversationState, text: str ) -> ConversationState:
        """
        Submit a user reply during clarification.

        Requires:
            - state.phase is clarifying
            - state.is_awaiting_response is False
            - text is non-empty

        Ensures:
            - On success, transcript gains the user message and one assistant reply
            - On failure, state is unchanged and ConversationTurnError is raised
        """
        self._require_phase( state, ConversationPhase.CLARIFYING )

        text = ( text or "" ).strip()
        if not text:
            raise ValueError( "Reply must be a non-empty string" )

        return await self._run_turn( state, user_message=ChatMessage( role=MessageRole.USER, text=text ) )

    # =========================================================================
    # Approval Actions
    # =========================================================================

    async def modify_plan( self, state: ConversationState, feedback: str ) -> ConversationState:
        """
        Regenerate the episode plan from free-text feedback.

        Requires:
            - state.phase is approval
            - a plan regenerator was supplied

        Ensures:
            - On success, the plan is replaced as a whole and phase stays approval
            - On failure or cancellation, the previous plan is untouched and the error propagates
        """
        self._require_phase( state, ConversationPhase.APPROVAL )
        self._require_idle( state )

        feedback = ( feedback or "" ).strip()
        if not feedback:
            raise ValueError( "Feedback must be a non-empty string" )
        if self.plan_regenerator is None:
            raise InvalidPhaseError( "No plan regenerator configured" )

        context = state.context
        state.is_awaiting_response = True
        state.phase                = ConversationPhase.PLANNING
        try:
            new_plan: EpisodePlan = await self.plan_regenerator.regenerate_plan(
                context.original_topic, feedback, context.episode_plan
            )
        except Exception:
            logger.error( "Plan regeneration failed; keeping the existing plan" )
            raise
        finally:
            state.phase                = ConversationPhase.APPROVAL
            state.is_awaiting_response = False

        user_message = ChatMessage( role=MessageRole.USER, text=feedback )
        plan_message = ChatMessage(
            role          = MessageRole.ASSISTANT,
            text          = "I've updated the episode plan based on your feedback:",
            quick_replies = ( "Approve plan", "Modify plan", "Make it a single episode" ),
            episode_plan  = new_plan,
        )

        # Commit
        state.messages             = state.messages + [ user_message, plan_message ]
        state.context              = context.model_copy( update={ "episode_plan": new_plan, "format": "series" } )
        state.phase                = ConversationPhase.APPROVAL
        state.is_awaiting_response = False

        if self.debug:
            print( f"[ConversationEngine] Plan regenerated with {len( new_plan )} episodes" )

        return state

    def approve( self, state: ConversationState ) -> GenerationParams:
        """Approve the current plan and hand off a series generation."""
        self._require_phase( state, ConversationPhase.APPROVAL )
        self._require_idle( state )
        if not state.context.episode_plan:
            raise InvalidPhaseError( "There is no episode plan to approve" )

        return get_generation_params( state.context.model_copy( update={ "format": "series" } ) )

    def switch_to_single( self, state: ConversationState ) -> GenerationParams:
        """Discard the plan and hand off a single-episode generation."""
        self._require_phase( state, ConversationPhase.APPROVAL )
        self._require_idle( state )

        return get_generation_params(
            state.context.model_copy( update={ "format": "single", "episode_plan": None } )
        )

    def get_params( self, state: ConversationState ) -> GenerationParams:
        """Hand off a single-episode generation from a ready conversation."""
        self._require_phase( state, ConversationPhase.READY )
        return get_generation_params( state.context )

    # =========================================================================
    # Turn Processing
    # =========================================================================

    async def _run_turn( self, state: ConversationState, user_message: Optional[ ChatMessage ] ) -> ConversationState:
        self._require_idle( state )
        state.is_awaiting_response = True

        try:
            context    = state.context
            transcript = list( state.messages )

            if user_message is not None:
                context = self._classify( user_message.text, self._last_asked( state ), context )
                transcript.append( user_message )

            if context.question_count >= self.config.max_clarification_turns:
                logger.info( f"Reached {context.question_count} clarification turns; forcing ready" )
                phase, context, reply_message = self._force_ready( context )
            else:
                reply = await self._request_reply( transcript, context )
                phase, context, reply_message = self._apply_reply( reply, context )

        except DeepDiveError as e:
            state.is_awaiting_response = False
            if isinstance( e, ConversationTurnError ):
                raise
            raise ConversationTurnError( str( e ), cause=e ) from e
        except Exception as e:
            state.is_awaiting_response = False
            logger.error( f"Dialogue turn failed: {e}" )
            raise ConversationTurnError( f"dialogue turn failed: {e}", cause=e ) from e
        except asyncio.CancelledError:
            state.is_awaiting_response = False
            logger.warning( "Dialogue turn cancelled; it can be sent again" )
            raise

        # Commit
        state.messages             = transcript + [ reply_message ]
        state.context              = context
        state.phase                = phase
        state.is_awaiting_response = False

        if self.debug:
            print( f"[ConversationEngine] Turn {context.question_count}: phase={phase.value}" )

        return state

    async def _request_reply( self, transcript: list[ ChatMessage ], context: ConversationContext ) -> DialogueReply:
        instructions = get_dialogue_system_prompt( context, self.config.max_clarification_turns )
        reply = await self.dialogue_backend.complete( transcript, instructions, context )

        if reply.is_fallback:
            logger.warning( f"Using fallback dialogue reply: {reply.reason}" )
        elif self.verbose:
            print( f"[ConversationEngine] Reply asks={reply.asks} ready={reply.is_ready} plan={reply.episode_plan is not None}" )

        return reply

    def _apply_reply( self, reply: DialogueReply, context: ConversationContext ):
        """
        Map a reply to ( phase, context, assistant message ).

        A plan takes precedence over a readiness flag.
        """
        context = context.model_copy( update={ "question_count": context.question_count + 1 } )

        if reply.episode_plan:
            context = context.model_copy( update={ "episode_plan": reply.episode_plan, "format": "series" } )
            phase   = ConversationPhase.APPROVAL
        elif reply.is_ready:
            context = context.model_copy( update={ "format": "single", "episode_plan": None } )
            phase   = ConversationPhase.READY
        else:
            phase   = ConversationPhase.CLARIFYING

        message = ChatMessage(
            role          = MessageRole.ASSISTANT,
            text          = reply.content,
            quick_replies = reply.quick_replies,
            episode_plan  = reply.episode_plan,
            asks          = reply.asks,
        )
        return phase, context, message

    def _force_ready( self, context: ConversationContext ):
        context = context.model_copy( update={ "format": "single", "episode_plan": None } )
        depth   = context.depth or DEFAULT_DEPTH
        tone    = context.tone or DEFAULT_TONE
        message = ChatMessage(
            role          = MessageRole.ASSISTANT,
            text          = f"I have enough to get started. I'll create a {depth} {tone} episode about "
                            f"\"{context.original_topic}\".\n\nReady to generate your podcast?",
            quick_replies = ( "Generate podcast", ),
        )
        return ConversationPhase.READY, context, message

    def _classify( self, text: str, asks: Optional[ str ], context: ConversationContext ) -> ConversationContext:
        updates = self.classifier( text, asks ) or {}
        if not updates:
            return context

        try:
            return ConversationContext.model_validate( { **context.model_dump(), **updates } )
        except ValidationError as e:
            logger.warning( f"Ignoring invalid classifier output {updates}: {e}" )
            return context

    @staticmethod
    def _last_asked( state: ConversationState ) -> Optional[ str ]:
        for message in reversed( state.messages ):
            if message.role == MessageRole.ASSISTANT:
                return message.asks
        return None

    @staticmethod
    def _require_phase( state: ConversationState, phase: ConversationPhase ) -> None:
        if state.phase != phase:
            raise InvalidPhaseError( f"Expected phase '{phase.value}', conversation is in '{state.phase.value}'" )

    @staticmethod
    def _require_idle( state: ConversationState ) -> None:
        if state.is_awaiting_response:
            raise ConversationBusyError( "A turn is already in flight" )


def quick_smoke_test():
    """Quick smoke test for ConversationEngine using the scripted backend."""
    from .mock_clients import ScriptedDialogueBackend

    du.print_banner( "ConversationEngine Smoke Test", prepend_nl=True )

    try:
        engine = ConversationEngine( ScriptedDialogueBackend( delay_seconds=0 ), debug=True )

        async def run():
            state = engine.start( "Quantum computing" )
            state = await engine.begin( state )
            for reply in ( "Single episode", "Standard episode (10-15 min)", "Conversational" ):
                state = await engine.respond( state, reply )
            return state

        state = asyncio.run( run() )
        assert state.phase == ConversationPhase.READY
        params = engine.get_params( state )
        assert not params.is_series and params.depth == "standard"
        print( f"✓ Reached ready after {state.context.question_count} turns" )

        print( "\n✓ ConversationEngine smoke test completed successfully" )

    except Exception as e:
        print( f"\n✗ Smoke test failed: {e}" )
        import traceback
        traceback.print_exc()


if __name__ == "__main__":
    quick_smoke_test()
