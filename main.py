#!/usr/bin/env python3
"""PRD Interview Assistant CLI - interactive requirements interview in the terminal.

Usage:
    # Interview with the default template
    python main.py

    # Pick a template and give the interviewer some background
    python main.py --template feature-brief.json --context ./notes.md

    # Use another provider or model
    python main.py --provider openai --model gpt-4o

In the interview, type your answers. Commands:
    /preview          show the sections gathered so far
    /generate [path]  write the PRD (Markdown) and finish the session
    /retry            re-send the last message after a failed turn
    /quit             leave without generating
"""

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
    from rich.markdown import Markdown
    from rich.panel import Panel
    from rich.progress import Progress, SpinnerColumn, TextColumn
    from rich.table import Table
except ImportError:
    print("Missing dependencies. Run: pip install click rich")
    sys.exit(1)

from config import settings
from contracts import DocumentPreview, TurnResult
from orchestrator import (
    ConversationError,
    InterviewService,
    UpstreamChatFailure,
    get_conversation_manager,
)
from providers import list_providers as get_available_providers
from templates import get_template_loader


console = Console()
logger = logging.getLogger("prd_assistant")

QUIT_COMMANDS = ("/quit", "/exit")


def setup_logging(verbose: bool) -> None:
    """Route library logs through rich; chatty SDK loggers stay at WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
    )
    for noisy in ("httpx", "httpcore", "anthropic", "openai", "LiteLLM"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def read_context(context: Optional[str]) -> Optional[str]:
    """Project context from a file, or the literal text if no such file exists."""
    if not context:
        return None
    path = Path(context)
    if path.is_file():
        return path.read_text(encoding="utf-8", errors="replace")
    return context


class TurnRunner:
    """Runs each turn on one event loop kept for the whole CLI session.

    The async SDK clients are bound to the loop they were first used on.
    Ctrl-C cancels the running turn, which aborts the provider request.
    """

    def __init__(self):
        self.loop = asyncio.new_event_loop()

    def run(self, description: str, coroutine):
        task = self.loop.create_task(coroutine)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task(description, total=None)
            try:
                return self.loop.run_until_complete(task)
            except KeyboardInterrupt:
                task.cancel()
                try:
                    self.loop.run_until_complete(task)
                except asyncio.CancelledError:
                    logger.debug("Turn task cancelled")
                raise

    def close(self) -> None:
        self.loop.close()


def show_reply(text: str) -> None:
    console.print()
    console.print(Panel(Markdown(text or "_(empty reply)_"), title="Interviewer", border_style="blue"))


def show_status(result: TurnResult) -> None:
    status = f"[dim]Phase:[/dim] {result.phase.value}  [dim]Completion:[/dim] {result.completion:.1f}%"
    if result.missing_sections:
        status += f"  [dim]Missing:[/dim] {', '.join(result.missing_sections)}"
    console.print(status)
    if result.is_complete:
        console.print("[green]The interview looks complete. Type /generate to write the PRD.[/green]")


def show_preview(preview: DocumentPreview) -> None:
    table = Table(title=f"PRD preview ({preview.completeness_score:.1f}% complete)", show_lines=True)
    table.add_column("Section", style="bold", no_wrap=True)
    table.add_column("Content")
    for title, content in preview.sections.items():
        table.add_row(title, content)
    console.print(table)
    if preview.missing_sections:
        console.print(f"[yellow]Missing required:[/yellow] {', '.join(preview.missing_sections)}")


def default_output_path(title: str) -> Path:
    slug = "".join(c if c.isalnum() else "-" for c in title.lower()).strip("-") or "prd"
    while "--" in slug:
        slug = slug.replace("--", "-")
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return Path("outputs") / f"{slug[:60]}_{timestamp}.md"


def generate(runner: TurnRunner, service: InterviewService, session_id: str, target: Optional[str]) -> bool:
    """Generate and save the PRD. Returns True when the session is finished."""
    document = runner.run("Writing PRD...", service.generate_document(session_id))
    path = Path(target) if target else default_output_path(document.title)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(document.markdown, encoding="utf-8")

    console.print(f"\n[green]PRD written:[/green] {path}")
    console.print(f"[dim]Title:[/dim] {document.title}")
    console.print(f"[dim]Completeness:[/dim] {document.completeness_score:.1f}%")
    if document.gaps:
        console.print(f"\n[yellow]Gaps ({len(document.gaps)}):[/yellow]")
        for gap in document.gaps:
            console.print(f"  - {gap}")
    return True


def handle_input(runner: TurnRunner, service: InterviewService, session_id: str, line: str) -> bool:
    """Process one line of user input. Returns True when the interview should end."""
    command, _, argument = line.partition(" ")
    command = command.lower()

    if command in QUIT_COMMANDS:
        return True
    if command == "/preview":
        show_preview(service.preview(session_id))
        return False
    if command == "/generate":
        return generate(runner, service, session_id, argument.strip() or None)
    if command == "/retry":
        result = runner.run("Retrying...", service.retry(session_id))
    else:
        result = runner.run("Thinking...", service.chat(session_id, line))
    show_reply(result.reply)
    show_status(result)
    return False


def interview_loop(runner: TurnRunner, service: InterviewService, session_id: str) -> None:
    while True:
        try:
            line = console.input("\n[bold cyan]You[/bold cyan]: ").strip()
        except (EOFError, KeyboardInterrupt):
            console.print()
            return
        if not line:
            continue

        try:
            if handle_input(runner, service, session_id, line):
                return
        except KeyboardInterrupt:
            console.print("[yellow]Turn cancelled. Your message was kept; type /retry to resend it.[/yellow]")
        except UpstreamChatFailure as e:
            console.print(f"[red]Provider error ({e.status_code}):[/red] {e}")
            if e.response_body:
                logger.debug("Provider response body: %s", e.response_body)
            console.print("[dim]Type /retry to try again.[/dim]")
        except ConversationError as e:
            console.print(f"[red]Error ({e.status_code}):[/red] {e}")
            if e.status_code in (404, 410):
                return
        except ValueError as e:
            console.print(f"[red]Error:[/red] {e}")
        except OSError as e:
            console.print(f"[red]Could not write file:[/red] {e}")


@click.command()
@click.option(
    "--template", "-t",
    default=None,
    help=f"Template file name in the template directory (default: {settings.default_template})"
)
@click.option(
    "--context", "-c",
    default=None,
    help="Project background: path to a file or literal text"
)
@click.option(
    "--provider", "-p",
    type=click.Choice(["anthropic", "openai", "deepseek", "litellm"]),
    default=None,
    help=f"LLM provider (default: {settings.default_provider})"
)
@click.option(
    "--model", "-m",
    default=None,
    help="Model name (e.g., claude-sonnet-4-20250514, gpt-4o, gemini/gemini-2.0-flash)"
)
@click.option(
    "--list-templates",
    is_flag=True,
    help="List available templates and exit"
)
@click.option(
    "--list-providers",
    is_flag=True,
    help="List available providers and exit"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Verbose output"
)
def main(
    template: Optional[str],
    context: Optional[str],
    provider: Optional[str],
    model: Optional[str],
    list_templates: bool,
    list_providers: bool,
    verbose: bool,
):
    """PRD Interview Assistant: an AI interviewer that turns a conversation into a PRD."""
    setup_logging(verbose)

    if list_providers:
        console.print("[bold]Available LLM Providers:[/bold]\n")
        for name, available in get_available_providers().items():
            status = "[green]✓ Ready[/green]" if available else "[red]✗ No API key[/red]"
            console.print(f"  {name:12} {status}")
        console.print("\n[dim]Set API keys via environment variables:[/dim]")
        console.print("  ANTHROPIC_API_KEY, OPENAI_API_KEY, DEEPSEEK_API_KEY")
        return

    if list_templates:
        console.print(f"[bold]Templates in[/bold] {settings.template_dir}:\n")
        for name in get_template_loader().list_templates():
            console.print(f"  {name}")
        return

    console.print(Panel.fit(
        "[bold blue]PRD Interview Assistant[/bold blue]\n"
        "[dim]/preview  /generate [path]  /retry  /quit[/dim]",
        border_style="blue"
    ))

    if provider or model:
        console.print(f"\n[dim]Provider:[/dim] {provider or 'auto-detect'}")
        if model:
            console.print(f"[dim]Model:[/dim] {model}")

    runner = TurnRunner()
    try:
        with get_conversation_manager() as manager:
            service = InterviewService(manager=manager, provider_name=provider, model=model)
            started = runner.run(
                "Starting interview...",
                service.start(template_name=template, project_context=read_context(context)),
            )
            console.print(f"[dim]Session:[/dim] {started.session_id}  [dim]Phase:[/dim] {started.phase.value}")
            show_reply(started.welcome_message)
            interview_loop(runner, service, started.session_id)
    except ConversationError as e:
        console.print(f"[red]Error ({e.status_code}):[/red] {e}")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(130)
    finally:
        runner.close()


if __name__ == "__main__":
    main()
