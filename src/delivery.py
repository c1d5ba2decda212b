from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Literal, Protocol, Sequence

from backends.errors import GenerationFailed
from chunking import EMPTY_DOCUMENT_NOTICE, PackOptions, pack
from formatting import format_response
from generation_types import GenerationRequest
from input_guard import (
    INJECTION_REJECTION,
    SCOPE_REJECTION,
    has_authorized_scope_evidence,
    has_prompt_injection,
    sanitize_user_input,
    validate_user_input,
)
from registry import DEFAULT_REGISTRY, ContentKindRegistry

logger = logging.getLogger(__name__)

DeliveryStatus = Literal["delivered", "rejected", "busy"]

AI_BUSY_MESSAGE = "\n\n".join(
    [
        "## AI Busy Right Now",
        "- The AI provider hit a temporary rate limit (429 Resource Exhausted).",
        "- Please retry in 30-60 seconds.",
        "- Tip: use a lighter model (for example `gemini-2.5-flash`) or lower request volume.",
    ]
)


class Transport(Protocol):
    def send_primary(self, text: str) -> None:
        ...

    def send_followup(self, text: str) -> None:
        ...


class TextProducer(Protocol):
    def produce(self, kind: str, topic: str) -> str:
        ...


@dataclass(frozen=True)
class DeliveryConfig:
    max_prompt_chars: int = 1200
    long_reply_threshold: int = 1700
    max_chunks: int = 3
    echo_user_input: bool = True
    # Kinds that refuse to run without lab/CTF/permission wording in the request.
    scoped_kinds: tuple[str, ...] = ("red-team-brief",)
    required_input: bool = True

    def validate(self) -> None:
        if self.max_prompt_chars <= 0:
            raise ValueError("max_prompt_chars must be positive")
        if self.long_reply_threshold <= 0:
            raise ValueError("long_reply_threshold must be positive")
        if self.max_chunks < 1:
            raise ValueError("max_chunks must be >= 1")


@dataclass(frozen=True)
class DeliveryOutcome:
    status: DeliveryStatus
    chunks: List[str] = field(default_factory=list)

    @property
    def delivered(self) -> bool:
        return self.status == "delivered"


def deliver_chunks(transport: Transport, chunks: Sequence[str]) -> List[str]:
    """Send the first chunk as the primary reply and the rest as ordered follow-ups."""
    sent = list(chunks) or [EMPTY_DOCUMENT_NOTICE]
    transport.send_primary(sent[0])
    for chunk in sent[1:]:
        transport.send_followup(chunk)
    logger.info(f"[Deliver] Sent {len(sent)} message(s)")
    return sent


class ContentRequestRunner:
    """Guard the request, generate, format, pack and deliver one reply."""

    def __init__(
        self,
        orchestrator: TextProducer,
        registry: ContentKindRegistry | None = None,
        config: DeliveryConfig | None = None,
        add_page_banner: bool = True,
    ) -> None:
        self._orchestrator = orchestrator
        self._registry = registry or DEFAULT_REGISTRY
        self._config = config or DeliveryConfig()
        self._config.validate()
        self._add_page_banner = add_page_banner

    def run(self, request: GenerationRequest, transport: Transport) -> DeliveryOutcome:
        kind = request.content_kind
        topic = sanitize_user_input(request.user_topic, max_chars=self._config.max_prompt_chars)

        rejection = self._rejection(kind, topic)
        if rejection:
            logger.info(f"[Deliver] [{kind}] Request rejected: {rejection}")
            return DeliveryOutcome("rejected", deliver_chunks(transport, [rejection]))

        try:
            document = self._orchestrator.produce(kind, topic)
        except GenerationFailed as exc:
            if not exc.rate_limited:
                raise
            chunks = pack(AI_BUSY_MESSAGE, self._pack_options(min_chunks=1, max_chunks=2))
            logger.warning(f"[Deliver] [{kind}] Served with rate-limit fallback")
            return DeliveryOutcome("busy", deliver_chunks(transport, chunks))

        reply = self.compose_reply(kind, topic, document)
        min_chunks = 2 if len(reply) > self._config.long_reply_threshold else 1
        spec = self._registry.get(kind)
        options = self._pack_options(
            min_chunks=min_chunks,
            max_chunks=self._config.max_chunks,
            preserve_sections=spec.section_layout is not None,
        )
        chunks = pack(reply, options, layout=spec.section_layout)
        sent = deliver_chunks(transport, chunks)
        logger.info(f"[Deliver] [{kind}] Completed with {len(sent)} chunk(s)")
        return DeliveryOutcome("delivered", sent)

    def compose_reply(self, kind: str, topic: str, document: str) -> str:
        parts = []
        if self._config.echo_user_input and topic:
            parts.append(f"**User Input:** {topic}")
        parts.append(format_response(kind, document))
        return "\n\n".join(part.strip() for part in parts if part and part.strip())

    def _rejection(self, kind: str, topic: str) -> str | None:
        check = validate_user_input(topic, required=self._config.required_input)
        if not check.valid:
            return check.reason
        if has_prompt_injection(topic):
            return INJECTION_REJECTION
        if kind in self._config.scoped_kinds and not has_authorized_scope_evidence(topic):
            return SCOPE_REJECTION
        return None

    def _pack_options(self, min_chunks: int, max_chunks: int, preserve_sections: bool = False) -> PackOptions:
        return PackOptions(
            min_chunks=min_chunks,
            max_chunks=max(max_chunks, min_chunks),
            preserve_sections=preserve_sections,
            add_page_banner=self._add_page_banner,
        )


__all__ = [
    "AI_BUSY_MESSAGE",
    "Transport",
    "TextProducer",
    "DeliveryConfig",
    "DeliveryOutcome",
    "deliver_chunks",
    "ContentRequestRunner",
]
