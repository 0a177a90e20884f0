"""Interactive chat REPL using prompt_toolkit."""
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from prompt_toolkit.styles import Style
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from ..api import OpenRouterClient, AssistantError
from ..config.constants import USER_CONFIG_DIR
from ..generation import WritingAssistant
from ..session import ProjectSession
from ..utils.logging import get_logger


class ChatSession:
    """Interactive chat with the assistant about the open project."""

    def __init__(self, session: ProjectSession, console: Optional[Console] = None):
        """
        Initialize chat session.

        Args:
            session: Session with an open project
            console: Optional Rich console for output
        """
        self.session = session
        self.console = console or Console()
        self.logger = get_logger("chat")
        self.running = False
        self.commands = {
            'help': self.show_help,
            'context': self.show_context,
            'exit': self.stop,
            'quit': self.stop,
        }

    def _create_prompt_session(self) -> PromptSession:
        history_file = USER_CONFIG_DIR / 'history'
        history_file.parent.mkdir(parents=True, exist_ok=True)

        style = Style.from_dict({'prompt': 'ansicyan bold'})
        return PromptSession(
            history=FileHistory(str(history_file)),
            style=style,
            multiline=False,
            enable_history_search=True
        )

    async def run(self):
        """Run the REPL until /exit or EOF."""
        prompt_session = self._create_prompt_session()
        project = self.session.project

        self.console.print(Panel(
            f"Chatting about [bold]{escape(project.title)}[/bold]\n"
            "[dim]/context shows the Story Bible, /exit leaves[/dim]",
            border_style="cyan"
        ))

        self.running = True
        async with OpenRouterClient(settings=self.session.settings) as client:
            assistant = WritingAssistant(client, project, settings=self.session.settings)

            while self.running:
                try:
                    user_input = await prompt_session.prompt_async(HTML('<prompt>></prompt> '))
                except KeyboardInterrupt:
                    continue
                except EOFError:
                    self.logger.info("EOFError - exiting")
                    break

                user_input = user_input.strip()
                if not user_input:
                    continue

                if user_input.startswith('/'):
                    self._run_command(user_input[1:])
                    continue

                await self._reply(assistant, user_input)

    async def _reply(self, assistant: WritingAssistant, message: str):
        try:
            async for chunk in assistant.chat(message):
                self.console.print(chunk, end="", highlight=False, markup=False)
            self.console.print()
        except AssistantError as e:
            self.console.print(f"\n[bold red]Error:[/bold red] {escape(str(e))}")
        except KeyboardInterrupt:
            self.console.print("\n[yellow]Interrupted[/yellow]")

    def _run_command(self, line: str):
        name = line.split(maxsplit=1)[0].lower() if line.strip() else 'help'
        handler = self.commands.get(name)
        if handler is None:
            self.console.print(f"[red]Unknown command: /{escape(name)}[/red]")
            return
        handler()

    def show_help(self):
        self.console.print("[cyan]/context[/cyan]  show the Story Bible sent with each message")
        self.console.print("[cyan]/exit[/cyan]     leave the chat")

    def show_context(self):
        context = self.session.build_context()
        if not context:
            self.console.print("[dim]No active settings or chapter summaries.[/dim]")
            return
        self.console.print(Panel(escape(context), title="Story Bible", border_style="dim"))

    def stop(self):
        self.running = False
