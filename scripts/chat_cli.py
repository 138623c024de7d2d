#!/usr/bin/env python3
"""Interactive chat CLI for the personal assistant service."""

import os
import sys

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt

from assistant.clients.google import REFRESH_TOKEN_COOKIE
from assistant.models.chat import Message
from assistant.presentation import TranscriptBuilder, parse_sse_lines, render_invocation


class ChatCLI:
    """Interactive chat interface for the personal assistant service."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.history: list[Message] = []
        self.console = Console()

        cookies = {}
        refresh_token = os.getenv("GOOGLE_REFRESH_TOKEN")
        if refresh_token:
            cookies[REFRESH_TOKEN_COOKIE] = refresh_token
        self.client = httpx.Client(timeout=httpx.Timeout(60.0, read=None), cookies=cookies)

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]🗂️  Personal Assistant - Interactive Chat[/bold blue]\n"
                "Type your messages to chat with the assistant.\n"
                "Commands: /help, /clear, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print(f"[red]❌ Cannot connect to the service at {self.base_url}.[/red]")
            return

        self.console.print("[green]✅ Connected to personal assistant service[/green]\n")
        if REFRESH_TOKEN_COOKIE not in self.client.cookies:
            self.console.print("[yellow]GOOGLE_REFRESH_TOKEN is not set; Google tools will report an error.[/yellow]")

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")

                if user_input.lower() in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif user_input.lower() == "/help":
                    self._show_help()
                    continue
                elif user_input.lower() == "/clear":
                    self.history = []
                    self.console.print("[yellow]🔄 Conversation cleared[/yellow]")
                    continue
                elif user_input.strip() == "":
                    continue

                self._send_message(user_input)

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]👋 Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the service."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _send_message(self, text: str) -> None:
        """Send the full history plus the new message and render the streamed turn."""
        message = Message(role="user", content=text)
        payload = {"messages": [m.model_dump(mode="json", by_alias=True) for m in [*self.history, message]]}
        transcript = TranscriptBuilder()

        try:
            with self.client.stream("POST", f"{self.base_url}/chat", json=payload) as response:
                if response.status_code != 200:
                    response.read()
                    self.console.print(f"[red]❌ API Error: {response.status_code} - {response.text}[/red]")
                    return

                self.console.print("[bold green]🤖 Assistant[/bold green]")
                for event in parse_sse_lines(response.iter_lines()):
                    transcript.feed(event)
                    if event.type == "text-delta":
                        self.console.print(event.text_delta, end="", markup=False, highlight=False)
                    elif event.type == "tool-call":
                        self.console.print()
                        self.console.print(render_invocation(transcript.invocations[event.tool_call_id]))
                    elif event.type == "tool-result":
                        self.console.print(render_invocation(transcript.invocations[event.tool_call_id]))
                    elif event.type == "error":
                        self.console.print(f"\n[red]❌ {event.message}[/red]")

        except httpx.HTTPError as e:
            self.console.print(f"[red]❌ Connection error: {e}[/red]")
            return

        self.console.print()
        if transcript.finish is not None and transcript.finish.finish_reason == "max-steps":
            self.console.print("[dim]Stopped after the maximum number of steps.[/dim]")

        # A failed turn leaves the history as it was
        if transcript.finish is not None and transcript.finish.finish_reason in ("stop", "max-steps"):
            self.history.extend([message, *transcript.messages])
            final = transcript.messages[-1].content if transcript.messages else ""
            if final:
                self.console.print(Panel(Markdown(final), border_style="green", padding=(0, 1)))

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /clear - Clear the conversation and start over
• /quit or /exit - Exit the chat

[bold]Things to try:[/bold]
1. "Summarize my last 5 emails"
2. "When am I free this week?"
3. "Book a meeting with Alex (alex@example.com) tomorrow at 2pm"
4. "Add 'buy milk' to my tasks"
5. "Find a quiet cafe near me"

[bold]Setup:[/bold]
• Export GOOGLE_REFRESH_TOKEN to let the assistant act on your Google account
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]❓ Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

    chat = ChatCLI(base_url)
    chat.start()


if __name__ == "__main__":
    main()
