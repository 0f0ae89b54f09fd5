from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from reqbind.config import get_settings
from reqbind.demo.app import build_dispatcher, build_registry
from reqbind.domain.models import RequestDescriptor
from reqbind.logs import configure_logging

app = typer.Typer(no_args_is_help=True, add_completion=False)

console = Console()

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(None, help="Logging level (default: REQBIND_LOG_LEVEL or INFO)"),
) -> None:
    level = (log_level or get_settings().log_level).upper()
    if level not in _LOG_LEVELS:
        raise typer.BadParameter(f"Unknown log level: {level} (expected one of {', '.join(_LOG_LEVELS)})")
    configure_logging(level)


def _split_pairs(items: List[str], sep: str, what: str) -> list[tuple[str, str]]:
    out = []
    for item in items:
        if sep not in item:
            raise typer.BadParameter(f"{what} must look like name{sep}value: {item!r}")
        k, v = item.split(sep, 1)
        out.append((k.strip(), v if sep == "=" else v.strip()))
    return out


@app.command()
def routes(
    format: str = typer.Option("table", help="Output format: table|json"),
    path_contains: Optional[str] = typer.Option(None, help="Substring match on the route path"),
) -> None:
    """List the demo application's handler table."""
    handlers = [h for h in build_registry() if not path_contains or path_contains in h.template.raw]
    handlers.sort(key=lambda h: (h.template.raw, h.methods))

    if format.lower() == "json":
        payload = [
            {
                "methods": list(h.methods),
                "path": h.template.raw,
                "handler": h.name,
                "returns": h.returns.kind.value,
                "consumes": list(h.consumes),
                "produces": list(h.produces),
                "parameters": [
                    {"name": p.name, "kind": p.kind.value, "source": p.source.value, "key": p.lookup}
                    for p in h.parameters
                ],
            }
            for h in handlers
        ]
        console.print(json.dumps(payload, indent=2), markup=False, highlight=False, soft_wrap=True)
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("PATH")
    table.add_column("HANDLER")
    table.add_column("PARAMS")
    table.add_column("RETURNS", no_wrap=True)

    for h in handlers:
        conditions = [*h.params, *h.headers, *(f"consumes={c}" for c in h.consumes), *(f"produces={p}" for p in h.produces)]
        path = h.template.raw + (f" [dim]({', '.join(conditions)})[/dim]" if conditions else "")
        table.add_row(
            ",".join(h.methods) or "*",
            path,
            h.name,
            ", ".join(f"{p.name}:{p.source.value}" for p in h.parameters),
            h.returns.kind.value,
        )

    console.print(f"[bold]Routes:[/bold] {len(handlers)}")
    console.print(table)


@app.command()
def call(
    method: str = typer.Argument(..., help="HTTP method (GET/POST/PUT/PATCH/DELETE)"),
    url: str = typer.Argument(..., help="Path with optional query string, e.g. '/request-param-v2?username=kim&age=20'"),
    query: List[str] = typer.Option([], "--query", "-q", help="Extra query parameter name=value (repeatable)"),
    header: List[str] = typer.Option([], "--header", "-H", help="Request header 'Name: value' (repeatable)"),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="Request body; prefix with @ to read a file"),
    content_type: Optional[str] = typer.Option(None, help="Content-Type of the request body"),
    format: str = typer.Option("text", help="Output format: text|json"),
) -> None:
    """Dispatch one request to the demo application and print the response."""
    if method.upper() not in ("GET", "POST", "PUT", "PATCH", "DELETE"):
        raise typer.BadParameter(f"Unsupported method: {method}")

    body: Optional[bytes] = None
    if data is not None:
        if data.startswith("@"):
            p = Path(data[1:]).expanduser()
            if not p.is_file():
                raise typer.BadParameter(f"Body file does not exist: {p}")
            body = p.read_bytes()
        else:
            body = data.encode("utf-8")

    headers = dict(_split_pairs(header, ":", "header"))
    if content_type:
        headers["Content-Type"] = content_type

    request = RequestDescriptor.from_url(method, url, headers=headers, body=body)
    for k, v in _split_pairs(query, "=", "query"):
        request.query.setdefault(k, []).append(v)

    response = build_dispatcher().dispatch(request)

    if format.lower() == "json":
        console.print(
            json.dumps(
                {
                    "status": response.status,
                    "headers": response.headers,
                    "body": response.text(),
                    "view": response.view_name,
                },
                indent=2,
            ),
            markup=False,
            highlight=False,
            soft_wrap=True,
        )
        raise typer.Exit(code=0 if response.status < 400 else 1)

    color = "green" if response.status < 400 else "red"
    console.print(f"[bold {color}]{response.status}[/bold {color}]")
    for k, v in response.headers.items():
        console.print(f"{k}: {v}", markup=False, highlight=False, soft_wrap=True)
    if response.view_name:
        console.print(f"[dim]view: {response.view_name}[/dim]")
    console.print("")
    console.print(response.text(), markup=False, highlight=False, soft_wrap=True)

    if response.status >= 400:
        raise typer.Exit(code=1)


@app.command()
def ping() -> None:
    console.print("pong")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
