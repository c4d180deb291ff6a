"""Command line entry point.

Commands:
    historybite serve   Run the API server with uvicorn
    historybite show    Fetch the current story and render it in the terminal
"""

from __future__ import annotations

import argparse
import json
import logging
import re
import sys
import time
from datetime import datetime
from typing import Any, Sequence

import httpx
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from historybite.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

BOLD_PATTERN = re.compile(r"\*\*(.*?)\*\*")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def default_result_url(settings: Settings) -> str:
    """URL of the result endpoint for the locally configured server."""
    return f"http://{settings.host}:{settings.port}{settings.normalized_base_path}/api/result"


def fetch_result(url: str, timeout: float = 90.0) -> dict[str, Any]:
    """GET the result endpoint and decode its JSON body.

    Raises:
        httpx.HTTPError: On network failure or an error status
    """
    response = httpx.get(url, timeout=timeout, headers={"Cache-Control": "no-cache"})
    response.raise_for_status()
    return response.json()


def format_paragraph(paragraph: str) -> Text:
    """Render a paragraph, turning ``**bold**`` spans into bold text."""
    text = Text(style="white")
    position = 0
    for match in BOLD_PATTERN.finditer(paragraph):
        text.append(paragraph[position : match.start()])
        text.append(match.group(1), style="bold")
        position = match.end()
    text.append(paragraph[position:])
    return text


def _coerce_story(payload: Any) -> dict[str, Any] | None:
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError:
            return None
    if isinstance(payload, dict) and payload.get("name") and payload.get("content"):
        return payload
    return None


def render_result(data: dict[str, Any], console: Console) -> None:
    """Print an API snapshot: error, processing state, story, or plain text."""
    if data.get("error"):
        console.print(Text("Error: ", style="bold red") + Text(str(data["error"])))
        return

    if data.get("isProcessing"):
        console.print(Text("Story is being generated...", style="blue"))
        return

    story = _coerce_story(data.get("response"))
    if story is None:
        console.print(Text(str(data.get("response") or ""), style="white"))
        return

    console.rule(style="cyan")
    console.print(Text(str(story["name"]), style="bold cyan"))
    if story.get("title"):
        console.print(Text(f"   {story['title']}", style="italic yellow"))
    console.rule(style="cyan")
    console.print()

    for paragraph in re.split(r"\n\s*\n", str(story["content"])):
        if paragraph.strip():
            console.print(format_paragraph(paragraph.strip()))
            console.print()

    if story.get("shareableQuote"):
        console.print(
            Panel(Text(f'"{story["shareableQuote"]}"', style="italic magenta"), border_style="magenta")
        )

    if data.get("lastModified"):
        try:
            updated = datetime.fromisoformat(str(data["lastModified"]).replace("Z", "+00:00"))
        except ValueError:
            updated = None
        if updated is not None:
            local = updated.astimezone().strftime("%Y-%m-%d %H:%M:%S %Z")
            console.print(Text(f"\nLast Updated: {local}", style="blue"))

    console.rule(style="cyan")


def show(url: str, console: Console, timeout: float = 90.0) -> int:
    """Fetch and render once; returns a process exit code."""
    try:
        data = fetch_result(url, timeout=timeout)
    except httpx.HTTPStatusError as e:
        console.print(Text("Failed to fetch story: ", style="bold red") + Text(str(e)))
        console.print(Text(f"Response status: {e.response.status_code}", style="bold red"))
        return 1
    except httpx.HTTPError as e:
        console.print(Text("Failed to fetch story: ", style="bold red") + Text(str(e)))
        return 1
    render_result(data, console)
    return 0


def _run_serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
    uvicorn.run(
        "historybite.api.main:create_app",
        factory=True,
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        proxy_headers=True,
        server_header=False,
        # nginx on the same host is the only trusted proxy
        forwarded_allow_ips="127.0.0.1",
        log_level=settings.log_level.lower(),
    )
    return 0


def _run_show(args: argparse.Namespace, settings: Settings) -> int:
    console = Console()
    url = args.url or default_result_url(settings)
    if not args.watch:
        return show(url, console, timeout=args.timeout)

    console.print(Text("Watching for changes... (Press Ctrl+C to exit)\n", style="blue"))
    try:
        while True:
            console.clear()
            show(url, console, timeout=args.timeout)
            time.sleep(args.interval)
    except KeyboardInterrupt:
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="historybite", description=__doc__.splitlines()[0])
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default=None, help="Bind address (default from settings)")
    serve.add_argument("--port", type=int, default=None, help="Port (default from settings)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve.set_defaults(handler=_run_serve)

    show_parser = subparsers.add_parser("show", help="Render the current story in the terminal")
    show_parser.add_argument("--url", default=None, help="Result endpoint URL")
    show_parser.add_argument("-w", "--watch", action="store_true", help="Refresh periodically")
    show_parser.add_argument("--interval", type=float, default=5.0, help="Watch interval in seconds")
    show_parser.add_argument("--timeout", type=float, default=90.0, help="Request timeout in seconds")
    show_parser.set_defaults(handler=_run_show)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Console script entry point."""
    args = build_parser().parse_args(argv)
    return args.handler(args, get_settings())


if __name__ == "__main__":
    sys.exit(main())
