"""Chat, expand and summarize requests grounded in the Story Bible."""

from typing import AsyncIterator, Optional

from ..config import Settings, get_settings
from ..api.errors import AssistantBusyError, EmptyInputError
from ..models import Category
from ..models.project import Project
from ..prompts import get_prompt_loader
from ..utils.logging import get_logger
from .context import ContextAssembler


class WritingAssistant:
    """
    Orchestrate AI requests for one open project.

    Input is validated before any network call. Only one request may stream
    at a time; starting another raises AssistantBusyError. Chunks are passed
    through in the order the gateway delivers them.
    """

    def __init__(self, client, project: Project, settings: Optional[Settings] = None):
        """
        Initialize writing assistant.

        Args:
            client: Text generation gateway (OpenRouterClient or compatible)
            project: Project providing the Story Bible and chapters
            settings: Optional settings (uses cached global settings if not provided)
        """
        self.client = client
        self.project = project
        self.settings = settings or get_settings()
        self.context = ContextAssembler(project)
        self._in_flight = False

    @property
    def busy(self) -> bool:
        return self._in_flight

    def build_context(self) -> str:
        """Story Bible with the configured chapter summary window."""
        return self.context.build(max_history_chapters=self.settings.max_history_chapters)

    async def chat(self, message: str) -> AsyncIterator[str]:
        """
        Stream a reply to a chat message.

        Raises:
            EmptyInputError: If the message is blank
        """
        message = message.strip() if isinstance(message, str) else ""
        if not message:
            raise EmptyInputError("Please enter a message.")

        stream = self._stream("assistant/chat", 'chat', message=message)
        try:
            async for chunk in stream:
                yield chunk
        finally:
            await stream.aclose()

    async def expand(self, selection: str, instruction: Optional[str] = None) -> AsyncIterator[str]:
        """
        Stream an expanded version of the selected text.

        Raises:
            EmptyInputError: If the selection is blank
        """
        if not selection or not selection.strip():
            raise EmptyInputError("Select some text to expand first.")

        stream = self._stream(
            "assistant/expand",
            'expand',
            selection=selection.strip(),
            instruction=(instruction or "").strip()
        )
        try:
            async for chunk in stream:
                yield chunk
        finally:
            await stream.aclose()

    async def _stream(self, prompt_name: str, request_type: str, **variables) -> AsyncIterator[str]:
        if self._in_flight:
            raise AssistantBusyError("Another request is still in progress.")

        logger = get_logger("assistant")
        loader = get_prompt_loader()

        self._in_flight = True
        try:
            prompts = loader.render(prompt_name, **variables)
            system_context = self._system_instruction(prompts['system'])
            temperature = loader.get_temperature(
                prompt_name,
                default=self.settings.get_temperature(request_type)
            )

            logger.info(
                f"Starting {request_type} request "
                f"(context: {len(system_context or '')} chars)"
            )

            chunk_count = 0
            async for chunk in self.client.stream_text(
                prompts['user'],
                system_context=system_context,
                temperature=temperature,
                max_tokens=self.settings.get_max_tokens(request_type)
            ):
                chunk_count += 1
                yield chunk

            logger.info(f"Finished {request_type} request after {chunk_count} chunk(s)")
        finally:
            self._in_flight = False

    def _system_instruction(self, template_system: str) -> Optional[str]:
        parts = [part for part in (template_system, self.build_context()) if part]
        return "\n\n".join(parts) if parts else None

    async def summarize_chapter(self, node_id: str) -> str:
        """
        Summarize a chapter and cache the result on its node.

        Args:
            node_id: Content node id

        Returns:
            The stored summary

        Raises:
            EmptyInputError: If the chapter is unknown or has no text
        """
        text = self.project.read_content(Category.CONTENT, node_id)
        if not text.strip():
            raise EmptyInputError("This chapter has no text to summarize.")

        if self._in_flight:
            raise AssistantBusyError("Another request is still in progress.")

        self._in_flight = True
        try:
            summary = (await self.client.summarize(text)).strip()
        finally:
            self._in_flight = False

        self.project.set_summary(Category.CONTENT, node_id, summary)
        get_logger("assistant").info(f"Stored summary for chapter {node_id} ({len(summary)} chars)")
        return summary
