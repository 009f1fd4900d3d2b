"""
Persona Actors — The Critic and the Defender.

WHAT THIS DOES:
Each persona is a chat model with a fixed role prompt. On every turn it:
1. Retrieves evidence from the uploaded document for its instruction
2. Builds a prompt with the instruction, the conversation so far, and the evidence
3. Asks the model for its argument

WHY TWO PERSONAS:
- The Critic hunts for flaws, unsupported assumptions, and omissions
- The Defender argues for the document using the same evidence
Strong, asymmetric role prompts keep the two voices from converging into
the same bland summary.

RETRIES:
The OpenAI client is built with max_retries=0. A 429 becomes
RateLimitedError and ends the run; retrying is the caller's decision.

USAGE:
    critic, defender = create_personas(knowledge_base)
    text = await critic.respond(instruction, prior_context)
"""

import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from arena.config import Settings, get_settings
from arena.services.debate.errors import RateLimitedError
from arena.services.debate.models import NO_PRIOR_TURNS, Speaker
from arena.services.debate.protocols import BaseActor, BaseRetriever

logger = logging.getLogger(__name__)

DEFENDER_SYSTEM_PROMPT = " ".join([
    'You are "The Defender" in a formal AI debate.',
    "Your job is to rigorously defend the document and highlight its strengths.",
    "Use retrieved evidence to justify claims with explicit facts, details, and logical support.",
    "Do not invent citations. If evidence is weak, acknowledge uncertainty and still construct the strongest fair defense.",
])

CRITIC_SYSTEM_PROMPT = " ".join([
    'You are "The Critic" in a formal AI debate.',
    "Your job is to aggressively but professionally challenge the document.",
    "Identify logical flaws, ethical concerns, unsupported assumptions, and missing details.",
    "Base critiques on retrieved evidence and clearly explain why each issue matters.",
    "Do not fabricate facts. If evidence is limited, state that limitation while still pressing the strongest critique.",
])

NO_EVIDENCE = "No document evidence retrieved for this turn."


def format_evidence(snippets: list) -> str:
    """
    Format retrieved snippets into a readable evidence block.

    Each snippet is formatted as:
    Evidence 1 (chunk 7):
    <chunk text>
    """
    if not snippets:
        return NO_EVIDENCE

    blocks = []
    for i, snippet in enumerate(snippets, 1):
        chunk_label = getattr(snippet, "chunk_index", i - 1)
        text = getattr(snippet, "text", snippet)
        blocks.append(f"Evidence {i} (chunk {chunk_label}):\n{text}")
    return "\n\n".join(blocks)


def build_user_prompt(topic: str, prior_context: str, evidence: str) -> str:
    return "\n".join([
        "Debate Topic/Question:",
        topic,
        "",
        "Conversation Context (if any):",
        prior_context,
        "",
        "Retrieved Evidence from the document:",
        evidence,
        "",
        "Instructions:",
        "- Build your argument using only supported claims from retrieved evidence.",
        "- Quote or closely reference exact facts whenever possible.",
        "- Keep tone professional and analytical.",
    ])


class PersonaActor(BaseActor):
    """
    A role-prompted chat model grounded in retrieved evidence.

    Critic and Defender are both PersonaActors; only the system prompt
    differs.
    """

    def __init__(
        self,
        role: Speaker,
        system_prompt: str,
        retriever: BaseRetriever,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ):
        """
        Initialize a persona.

        Args:
            role: Speaker this persona plays (for logging)
            system_prompt: Persona instructions
            retriever: Shared evidence source
            client: OpenAI client (default built from settings, no retries)
        """
        settings = get_settings()
        self.role = role
        self.system_prompt = system_prompt
        self.retriever = retriever
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key or None, max_retries=0)
        self.model = model or settings.chat_model
        self.temperature = settings.chat_temperature if temperature is None else temperature

    async def respond(self, topic: str, prior_context: str = NO_PRIOR_TURNS) -> str:
        """
        Generate this persona's next argument.

        Returns:
            The model's reply (empty string if the model returned no content)

        Raises:
            ValueError: blank topic
            RateLimitedError: the chat or embedding quota is exhausted
        """
        if not isinstance(topic, str) or not topic.strip():
            raise ValueError("A non-empty debate topic is required for agent response.")

        snippets = await self.retriever.retrieve(topic)
        evidence = format_evidence(snippets)
        logger.info(f"{self.role.value} retrieved {len(snippets)} evidence snippets")

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": build_user_prompt(topic.strip(), prior_context, evidence)},
                ],
                temperature=self.temperature,
            )
        except openai.RateLimitError as e:
            raise RateLimitedError("Chat rate limit reached during debate turn.") from e

        content = response.choices[0].message.content or ""
        return content.strip()


def create_personas(
    retriever: BaseRetriever,
    settings: Optional[Settings] = None,
    client: Optional[AsyncOpenAI] = None,
) -> tuple[PersonaActor, PersonaActor]:
    """
    Build the Critic and Defender over one shared retriever and client.

    Returns:
        (critic, defender)
    """
    settings = settings or get_settings()
    client = client or AsyncOpenAI(api_key=settings.openai_api_key or None, max_retries=0)

    critic = PersonaActor(
        Speaker.CRITIC,
        CRITIC_SYSTEM_PROMPT,
        retriever,
        client=client,
        model=settings.chat_model,
        temperature=settings.chat_temperature,
    )
    defender = PersonaActor(
        Speaker.DEFENDER,
        DEFENDER_SYSTEM_PROMPT,
        retriever,
        client=client,
        model=settings.chat_model,
        temperature=settings.chat_temperature,
    )
    return critic, defender
