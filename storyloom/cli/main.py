"""Main CLI entry point using Typer."""
import sys
import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from ..api import OpenRouterClient, AssistantError
from ..config import get_settings
from ..config.constants import USER_CONFIG_FILE
from ..generation import WritingAssistant
from ..models import Category, Node
from ..models.project import Project
from ..session import ProjectSession


app = typer.Typer(
    name="storyloom",
    help="Storyloom - project tree and Story Bible for AI-assisted writing",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)

console = Console()

ProjectOption = typer.Option(
    None,
    "--project", "-p",
    help="Project directory (defaults to the last opened project)"
)


def _fail(message: str) -> None:
    console.print(f"[red]Error: {escape(message)}[/red]")
    raise typer.Exit(1)


def _open_session(project: Optional[Path]) -> ProjectSession:
    """Open the requested project, or reopen the last one."""
    session = ProjectSession(settings=get_settings())
    if project is not None:
        session.open(project)
    elif session.reopen_last() is None:
        _fail("No project open. Run 'storyloom init <path>' first or pass --project.")
    return session


def _resolve_id(
    project: Project,
    category: Category,
    node_ref: str,
    allow_missing: bool = False
) -> str:
    """Accept a full node id or a unique id prefix; allow_missing passes unknown refs through."""
    if project.find(category, node_ref) is not None:
        return node_ref
    matches = [node.id for node in project.walk(category) if node.id.startswith(node_ref)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        if allow_missing:
            return node_ref
        _fail(f"No {category.value} document with id {node_ref}")
    _fail(f"Id prefix {node_ref} is ambiguous ({len(matches)} matches)")


def _add_branch(tree: Tree, nodes: List[Node], category: Category) -> None:
    for node in nodes:
        label = f"{escape(node.display_title)} [dim]{node.id[:8]}[/dim]"
        if category is Category.SETTINGS and node.is_active:
            label += " [green]● active[/green]"
        if category is Category.CONTENT and node.summary:
            label += " [cyan]≡ summary[/cyan]"
        branch = tree.add(label)
        if node.children:
            _add_branch(branch, node.children, category)


@app.command(help="Create or open a project directory")
def init(
    path: Path = typer.Argument(..., help="Project directory"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Project title")
):
    """Initialize a project and make it the current one."""
    session = ProjectSession(settings=get_settings())
    project = session.open(path)
    if title and title.strip():
        project.manifest.title = title.strip()
        project.save()
    console.print(f"[green]✓ Opened project:[/green] [bold]{escape(project.title)}[/bold]")
    console.print(f"[dim]Location: {project.path}[/dim]")


@app.command(help="Show the document tree")
def tree(
    category: Optional[Category] = typer.Argument(None, help="Only show this category"),
    project: Optional[Path] = ProjectOption
):
    """Print one or all category forests."""
    session = _open_session(project)
    root = Tree(f"[bold]{escape(session.project.title)}[/bold]")
    for cat in ([category] if category else list(Category)):
        branch = root.add(f"[bold magenta]{cat.value}[/bold magenta]")
        _add_branch(branch, session.outline(cat), cat)
    console.print(root)


@app.command(help="Create a document")
def new(
    category: Category = typer.Argument(..., help="outlines, content or settings"),
    title: str = typer.Argument(..., help="Document title"),
    parent: Optional[str] = typer.Option(
        None, "--parent",
        help="Parent id or unique prefix; an unknown parent creates a top-level document"
    ),
    project: Optional[Path] = ProjectOption
):
    """Create a document, optionally under a parent."""
    session = _open_session(project)
    parent_id = _resolve_id(session.project, category, parent, allow_missing=True) if parent else None
    found_parent = parent_id is not None and session.project.find(category, parent_id) is not None
    node = session.create(category, title, parent_id)
    if parent_id and not found_parent:
        console.print(f"[yellow]Parent {escape(parent_id)} not found, created at top level[/yellow]")
    console.print(f"[green]✓ Created[/green] {escape(node.title)} [dim]{node.id}[/dim]")


@app.command(help="Rename a document")
def rename(
    category: Category = typer.Argument(...),
    node_id: str = typer.Argument(..., help="Document id or unique prefix"),
    title: str = typer.Argument(..., help="New title"),
    project: Optional[Path] = ProjectOption
):
    session = _open_session(project)
    node_id = _resolve_id(session.project, category, node_id)
    session.rename(category, node_id, title)
    console.print(f"[green]✓ Renamed to[/green] {escape(session.project.find(category, node_id).title)}")


@app.command(help="Delete a document and everything below it")
def delete(
    category: Category = typer.Argument(...),
    node_id: str = typer.Argument(..., help="Document id or unique prefix"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    project: Optional[Path] = ProjectOption
):
    session = _open_session(project)
    node_id = _resolve_id(session.project, category, node_id)
    count = len(session.project.descendant_ids(category, node_id))
    if not yes:
        typer.confirm(f"Delete {count} document(s)? This cannot be undone", abort=True)
    session.delete(category, node_id)
    console.print(f"[green]✓ Deleted {count} document(s)[/green]")


@app.command(help="Reorder siblings: listed ids move to the front in the given order")
def reorder(
    category: Category = typer.Argument(...),
    node_ids: List[str] = typer.Argument(..., help="Ids (or unique prefixes) in the new order"),
    parent: Optional[str] = typer.Option(None, "--parent", help="Parent id; omit to reorder roots"),
    project: Optional[Path] = ProjectOption
):
    session = _open_session(project)
    parent_id = _resolve_id(session.project, category, parent) if parent else None
    ids = [_resolve_id(session.project, category, ref) for ref in node_ids]
    if not session.reorder(category, parent_id, ids):
        _fail(f"Parent {parent} not found")
    console.print("[green]✓ Reordered[/green]")


@app.command(help="Include a settings document in the Story Bible (or exclude with --off)")
def activate(
    node_id: str = typer.Argument(..., help="Settings document id or unique prefix"),
    off: bool = typer.Option(False, "--off", help="Exclude instead of include"),
    project: Optional[Path] = ProjectOption
):
    session = _open_session(project)
    node_id = _resolve_id(session.project, Category.SETTINGS, node_id)
    session.set_active(node_id, not off)
    state = "excluded from" if off else "included in"
    console.print(f"[green]✓ Document {state} the Story Bible[/green]")


@app.command(help="Print a document's text")
def show(
    category: Category = typer.Argument(...),
    node_id: str = typer.Argument(..., help="Document id or unique prefix"),
    project: Optional[Path] = ProjectOption
):
    session = _open_session(project)
    node_id = _resolve_id(session.project, category, node_id)
    console.print(session.read_content(category, node_id), markup=False, highlight=False)


@app.command(help="Replace a document's text from a file, or stdin with '-'")
def write(
    category: Category = typer.Argument(...),
    node_id: str = typer.Argument(..., help="Document id or unique prefix"),
    source: str = typer.Argument(..., help="Source file path or '-' for stdin"),
    project: Optional[Path] = ProjectOption
):
    session = _open_session(project)
    node_id = _resolve_id(session.project, category, node_id)
    text = sys.stdin.read() if source == '-' else Path(source).read_text(encoding='utf-8')
    session.save_content(category, node_id, text)
    console.print(f"[green]✓ Saved {len(text)} characters[/green]")


@app.command(help="Print the Story Bible sent to the assistant")
def context(
    window: Optional[int] = typer.Option(
        None, "--window", "-w", min=0,
        help="Number of recent chapter summaries (defaults to settings)"
    ),
    project: Optional[Path] = ProjectOption
):
    session = _open_session(project)
    text = session.build_context(max_history_chapters=window)
    if not text:
        console.print("[dim]No active settings or chapter summaries - no context is sent.[/dim]")
        return
    console.print(text, markup=False, highlight=False)


@app.command(help="Export a category to one markdown file")
def export(
    category: Category = typer.Argument(...),
    target: Path = typer.Argument(..., help="Output file (overwritten)"),
    project: Optional[Path] = ProjectOption
):
    session = _open_session(project)
    path = session.export_category(category, target)
    console.print(f"[green]✓ Exported {category.value} to[/green] {path}")


@app.command(help="Summarize a chapter and keep the summary for the context window")
def summarize(
    node_id: str = typer.Argument(..., help="Content document id or unique prefix"),
    project: Optional[Path] = ProjectOption
):
    session = _open_session(project)
    node_id = _resolve_id(session.project, Category.CONTENT, node_id)

    async def _run() -> str:
        async with OpenRouterClient(settings=session.settings) as client:
            assistant = WritingAssistant(client, session.project, settings=session.settings)
            return await assistant.summarize_chapter(node_id)

    try:
        summary = asyncio.run(_run())
    except AssistantError as e:
        _fail(str(e))
    console.print(summary, markup=False, highlight=False)


@app.command(help="Expand a passage into fuller prose, streamed")
def expand(
    text: str = typer.Argument(..., help="Passage to expand, or '-' for stdin"),
    instruction: Optional[str] = typer.Option(None, "--instruction", "-i", help="Extra direction"),
    project: Optional[Path] = ProjectOption
):
    session = _open_session(project)
    selection = sys.stdin.read() if text == '-' else text

    async def _run():
        async with OpenRouterClient(settings=session.settings) as client:
            assistant = WritingAssistant(client, session.project, settings=session.settings)
            async for chunk in assistant.expand(selection, instruction):
                console.print(chunk, end="", markup=False, highlight=False)
        console.print()

    try:
        asyncio.run(_run())
    except AssistantError as e:
        _fail(str(e))


@app.command(help="Chat with the assistant about the project")
def chat(project: Optional[Path] = ProjectOption):
    from .interactive import ChatSession

    session = _open_session(project)
    try:
        asyncio.run(ChatSession(session, console=console).run())
    except AssistantError as e:
        _fail(str(e))


@app.command(help="Show or change user settings")
def config(
    api_key: Optional[str] = typer.Option(None, "--api-key", help="OpenRouter API key"),
    model: Optional[str] = typer.Option(None, "--model", help="Default model"),
    proxy: Optional[str] = typer.Option(None, "--proxy", help="Proxy URL ('' to clear)"),
    window: Optional[int] = typer.Option(None, "--window", min=0, help="Chapter summary window"),
):
    """Persist settings to ~/.storyloom/config.yaml."""
    settings = get_settings()
    changed = False

    if model:
        settings.default_model = model
        changed = True
    if proxy is not None:
        settings.proxy_url = proxy.strip() or None
        changed = True
    if window is not None:
        settings.max_history_chapters = window
        changed = True

    if changed:
        settings.save_config_file(USER_CONFIG_FILE)
    if api_key:
        _store_api_key(api_key.strip())
        changed = True

    console.print(f"[bold]Model:[/bold] {settings.active_model}")
    console.print(f"[bold]Proxy:[/bold] {settings.proxy_url or 'not set'}")
    console.print(f"[bold]Summary window:[/bold] {settings.max_history_chapters} chapter(s)")
    console.print(f"[bold]Last project:[/bold] {settings.last_opened_project or 'not set'}")
    if changed:
        console.print(f"[dim]Saved to {USER_CONFIG_FILE}[/dim]")


def _store_api_key(api_key: str) -> None:
    """Keep the API key in the .env file rather than the YAML config."""
    from dotenv import set_key

    env_file = Path('.env')
    env_file.touch(exist_ok=True)
    set_key(str(env_file), 'OPENROUTER_API_KEY', api_key)
    get_settings().openrouter_api_key = api_key


def main():
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
