from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import typer
from platformdirs import user_data_dir
from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .app_context import AppContext
from .config.loader import APP_NAME, load_assistant_config
from .events.store import EventStore
from .runner import RouteOutcome, route_input
from .session.store import SessionStore

app = typer.Typer(add_completion=False, help="pyassist: local personal-assistant agent with deterministic tool routing.")
console = Console()


def _default_cwd() -> Path:
    return Path.cwd()


def _resolve_cwd(cwd: Path | None) -> Path:
    cwd = cwd or _default_cwd()
    cwd = Path(str(cwd)).expanduser()
    if not cwd.is_absolute():
        cwd = (Path.cwd() / cwd).resolve()
    else:
        cwd = cwd.resolve()
    if cwd.exists() and not cwd.is_dir():
        raise typer.BadParameter(f"--cwd must be a directory, got file: {cwd}")
    if not cwd.exists():
        cwd.mkdir(parents=True, exist_ok=True)
    return cwd


def _data_root(cwd: Path, behavior_config: Path | None, data_dir: Path | None) -> Path:
    cfg = load_assistant_config(cwd=cwd, explicit_path=behavior_config)
    return Path(data_dir or cfg.data_dir or user_data_dir(APP_NAME)).expanduser()


def _build_context(
    *,
    cwd: Path | None,
    session: str | None,
    provider: str | None,
    config: Path | None,
    model: str | None = None,
    agent: str | None,
    behavior_config: Path | None,
    permissions: Path | None,
    data_dir: Path | None,
    trace: bool,
    stream: bool = False,
) -> AppContext:
    try:
        return AppContext.from_env(
            cwd=_resolve_cwd(cwd),
            session_id=session,
            provider=provider,
            model=model,
            agent_name=agent,
            behavior_config=behavior_config,
            permissions_path=permissions,
            data_dir=data_dir,
            trace=trace,
            stream=stream,
            config_path=config,
        )
    except (RuntimeError, ValueError, OSError) as e:
        console.print(f"[red]Error[/red]: {e}")
        raise typer.Exit(code=2)


def _print_header(ctx: AppContext) -> None:
    table = Table.grid(padding=(0, 2))
    table.add_row("[bold green]cwd[/bold green]", f"[bright_cyan]{ctx.cwd}[/bright_cyan]")
    table.add_row("[bold green]session[/bold green]", f"[bright_cyan]{ctx.session.session_id}[/bright_cyan]")
    table.add_row("[bold green]agent[/bold green]", f"[bright_cyan]{ctx.agent.name}[/bright_cyan]")
    model = getattr(ctx.provider, "model", None) if ctx.provider else None
    table.add_row("[bold green]model[/bold green]", f"[bright_cyan]{model or '(none)'}[/bright_cyan]")
    table.add_row(
        "[bold green]behavior_config[/bold green]",
        f"[bright_cyan]{ctx.config.loaded_from or '(none)'}[/bright_cyan]",
    )
    table.add_row(
        "[bold green]permissions[/bold green]",
        f"[bright_cyan]{ctx.executor.context.permissions_path or '(deny all)'}[/bright_cyan]",
    )
    console.print(
        Align.center(
            Panel(
                table,
                title="[bold magenta]pyassist[/bold magenta]",
                border_style="bright_blue",
            )
        )
    )


def _print_outcome(out: RouteOutcome, *, as_json: bool = False) -> None:
    if as_json:
        console.print_json(json.dumps(out.to_dict(), ensure_ascii=False, default=str))
        return
    if out.kind == "tool" and out.result is not None and out.tool_call is not None:
        if out.reply:
            console.print(f"[dim]{out.reply}[/dim]")
        res = out.result
        console.print(
            Panel.fit(
                json.dumps(res.result if res.ok else res.error.to_dict(), ensure_ascii=False, indent=2, default=str)[:4000],  # type: ignore[union-attr]
                title=f"{out.tool_call.tool_name} ({'ok' if res.ok else res.error.code.value})",  # type: ignore[union-attr]
                border_style="green" if res.ok else "red",
            )
        )
    elif out.kind == "reply":
        console.print(out.reply or "")
    elif out.kind == "needs_model":
        console.print(f"[yellow]{out.reply}[/yellow]")
    else:
        console.print(f"[red]{out.reply}[/red]")


@app.command()
def run(
    prompt: str = typer.Option(..., "--prompt", "-p", help="User input to route once."),
    provider: str = typer.Option(None, "--provider", help="Provider name registered in YAML. Defaults to ASSISTANT_* env vars."),
    model: str = typer.Option(None, "--model", help="Model name; overrides the provider and agent model."),
    config: Path = typer.Option(None, "--config", help="YAML provider config path (default: ./pyassist.yaml)."),
    cwd: Path = typer.Option(None, "--cwd", help="Working directory (project root). Defaults to current directory."),
    session: str = typer.Option(None, "--session", help="Session id to append to (default creates new)."),
    agent: str = typer.Option(None, "--agent", help="Agent profile (supervisor/coder/organizer/assistant/system or custom)."),
    behavior_config: Path = typer.Option(None, "--config-json", help="Optional behavior JSON (pyassist.json) path."),
    permissions: Path = typer.Option(None, "--permissions", help="Permissions JSON path."),
    data_dir: Path = typer.Option(None, "--data-dir", help="Where tasks, memory, sessions and events are stored."),
    trace: bool = typer.Option(False, "--trace", help="Print LLM input/output and tool traces."),
    stream: bool = typer.Option(False, "--stream", help="Stream prose replies while generating."),
    as_json: bool = typer.Option(False, "--json", help="Print the routing outcome as JSON."),
):
    """Route one input: deterministic dispatch, then the model."""
    ctx = _build_context(
        cwd=cwd,
        session=session,
        provider=provider,
        config=config,
        model=model,
        agent=agent,
        behavior_config=behavior_config,
        permissions=permissions,
        data_dir=data_dir,
        trace=trace,
        stream=stream,
    )
    if not as_json:
        _print_header(ctx)
        console.print(f"\n[bold]You:[/bold] {prompt}\n")
    out = route_input(ctx, prompt)
    _print_outcome(out, as_json=as_json)
    if out.kind == "error" or (out.result is not None and not out.result.ok):
        raise typer.Exit(code=1)


@app.command()
def repl(
    provider: str = typer.Option(None, "--provider", help="Provider name registered in YAML. Defaults to ASSISTANT_* env vars."),
    model: str = typer.Option(None, "--model", help="Model name; overrides the provider and agent model."),
    config: Path = typer.Option(None, "--config", help="YAML provider config path (default: ./pyassist.yaml)."),
    cwd: Path = typer.Option(None, "--cwd", help="Working directory (project root). Defaults to current directory."),
    session: str = typer.Option(None, "--session", help="Session id to append to (default creates new)."),
    agent: str = typer.Option(None, "--agent", help="Agent profile (supervisor/coder/organizer/assistant/system or custom)."),
    behavior_config: Path = typer.Option(None, "--config-json", help="Optional behavior JSON (pyassist.json) path."),
    permissions: Path = typer.Option(None, "--permissions", help="Permissions JSON path."),
    data_dir: Path = typer.Option(None, "--data-dir", help="Where tasks, memory, sessions and events are stored."),
    trace: bool = typer.Option(False, "--trace", help="Print LLM input/output and tool traces."),
    stream: bool = typer.Option(False, "--stream", help="Stream prose replies while generating."),
):
    """Interactive loop. Type /agent NAME to switch agents, exit to leave."""
    ctx = _build_context(
        cwd=cwd,
        session=session,
        provider=provider,
        config=config,
        model=model,
        agent=agent,
        behavior_config=behavior_config,
        permissions=permissions,
        data_dir=data_dir,
        trace=trace,
        stream=stream,
    )
    _print_header(ctx)

    while True:
        try:
            user = typer.prompt("You")
        except (EOFError, KeyboardInterrupt, typer.Abort):
            break
        text = user.strip()
        if text.lower() in {"exit", "quit"}:
            break
        if text.startswith("/agent"):
            name = text[len("/agent"):].strip()
            if name:
                ctx.agent = ctx.agents.get(name)
            console.print(f"[dim]agent: {ctx.agent.name} (available: {', '.join(ctx.agents.names())})[/dim]")
            continue
        out = route_input(ctx, text)
        console.print()
        _print_outcome(out)
        console.print()


@app.command("exec")
def exec_tool(
    call: str = typer.Argument(..., help='Tool call JSON, e.g. \'{"tool_name": "list_files", "args": {}}\'.'),
    cwd: Path = typer.Option(None, "--cwd", help="Working directory (project root). Defaults to current directory."),
    session: str = typer.Option(None, "--session", help="Session id used for the event log."),
    behavior_config: Path = typer.Option(None, "--config-json", help="Optional behavior JSON (pyassist.json) path."),
    permissions: Path = typer.Option(None, "--permissions", help="Permissions JSON path."),
    data_dir: Path = typer.Option(None, "--data-dir", help="Where tasks, memory, sessions and events are stored."),
):
    """Execute one tool call directly (no model, no dispatcher)."""
    try:
        obj = json.loads(call)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"invalid JSON: {e}")
    ctx = _build_context(
        cwd=cwd,
        session=session,
        provider=None,
        config=None,
        agent=None,
        behavior_config=behavior_config,
        permissions=permissions,
        data_dir=data_dir,
        trace=False,
    )
    res = ctx.executor.execute(obj)
    console.print_json(json.dumps(res.to_dict(), ensure_ascii=False, default=str))
    if not res.ok:
        raise typer.Exit(code=1)


@app.command()
def tools(
    all_tools: bool = typer.Option(False, "--all", help="Include stub tools."),
    agent: str = typer.Option(None, "--agent", help="Only tools available to this agent."),
    cwd: Path = typer.Option(None, "--cwd", help="Working directory (project root). Defaults to current directory."),
    behavior_config: Path = typer.Option(None, "--config-json", help="Optional behavior JSON (pyassist.json) path."),
):
    """List registered tools."""
    from .agents.registry import AgentRegistry
    from .tools.builtin import build_registry

    registry = build_registry()
    profile = None
    if agent:
        cfg = load_assistant_config(cwd=_resolve_cwd(cwd), explicit_path=behavior_config)
        profile = AgentRegistry.from_defaults(cfg).get(agent)

    table = Table(title="Tools" if profile is None else f"Tools ({profile.name})")
    table.add_column("name", style="bold", no_wrap=True)
    table.add_column("status")
    table.add_column("mutating")
    table.add_column("required")
    table.add_column("description")
    for spec in registry.list_specs(include_stubs=all_tools):
        if profile is not None and not profile.allows(spec.name):
            continue
        table.add_row(
            spec.name,
            spec.status,
            "yes" if spec.mutating else "",
            ", ".join(spec.required),
            spec.description,
        )
    console.print(table)


@app.command()
def replay(
    session: str = typer.Option(..., "--session", help="Session id to replay."),
    tail: int = typer.Option(50, "--tail", help="Show last N messages."),
    cwd: Path = typer.Option(None, "--cwd", help="Working directory (project root)."),
    behavior_config: Path = typer.Option(None, "--config-json", help="Optional behavior JSON (pyassist.json) path."),
    data_dir: Path = typer.Option(None, "--data-dir", help="Where sessions are stored."),
):
    """Replay recent conversation messages from a saved session."""
    root = _data_root(_resolve_cwd(cwd), behavior_config, data_dir)
    store = SessionStore.open(session_id=session, root=root)
    msgs = store.messages
    msgs = msgs[-tail:] if tail and tail > 0 else msgs
    console.print(Panel.fit(f"session: {store.session_id}\nfile: {store.path}", title="Replay"))
    for m in msgs:
        title = f"tool ({m.name})" if m.role == "tool" else m.role
        console.print(Panel(m.content or "", title=title))


@app.command()
def events(
    session: str = typer.Option(..., "--session", help="Session id to inspect events."),
    tail: int = typer.Option(200, "--tail", help="Show last N events."),
    cwd: Path = typer.Option(None, "--cwd", help="Working directory (project root)."),
    behavior_config: Path = typer.Option(None, "--config-json", help="Optional behavior JSON (pyassist.json) path."),
    data_dir: Path = typer.Option(None, "--data-dir", help="Where events are stored."),
):
    """Show recent structured events (dispatch, LLM calls, tool calls) recorded for a session."""
    es = EventStore.open(session, root=_data_root(_resolve_cwd(cwd), behavior_config, data_dir))
    evs = list(es.iter_events())
    evs = evs[-tail:] if tail and tail > 0 else evs

    console.print(Panel.fit(f"session: {session}\nfile: {es.path}\nevents: {len(evs)}", title="Events"))
    for e in evs:
        ts = datetime.fromtimestamp(e.ts).strftime("%Y-%m-%d %H:%M:%S")
        console.print(Panel.fit(json.dumps(e.data, ensure_ascii=False, indent=2)[:4000], title=f"{ts}  {e.type}"))


@app.command()
def stats(
    session: str = typer.Option(..., "--session", help="Session id to summarize."),
    cwd: Path = typer.Option(None, "--cwd", help="Working directory (project root)."),
    behavior_config: Path = typer.Option(None, "--config-json", help="Optional behavior JSON (pyassist.json) path."),
    data_dir: Path = typer.Option(None, "--data-dir", help="Where events are stored."),
):
    """Show a compact observability summary for a session (routing, latency, errors, tool usage)."""
    es = EventStore.open(session, root=_data_root(_resolve_cwd(cwd), behavior_config, data_dir))
    evs = list(es.iter_events())

    decisions = [e for e in evs if e.type == "dispatch.decision"]
    llm_req = [e for e in evs if e.type == "llm.request"]
    llm_res = [e for e in evs if e.type == "llm.response"]
    llm_err = [e for e in evs if e.type == "llm.error"]
    llm_retry = [e for e in evs if e.type == "llm.retry"]
    tool_call = [e for e in evs if e.type == "tool.call"]
    tool_res = [e for e in evs if e.type == "tool.result"]
    tool_den = [e for e in evs if e.type == "tool.denied"]

    def _avg_ms(items):
        vals = []
        for e in items:
            ms = (e.data or {}).get("elapsed_ms")
            if isinstance(ms, (int, float)) and ms >= 0:
                vals.append(float(ms))
        return (sum(vals) / len(vals)) if vals else None

    actions: dict[str, int] = {}
    for e in decisions:
        a = (e.data or {}).get("action")
        if a:
            actions[a] = actions.get(a, 0) + 1

    freq: dict[str, int] = {}
    errors: dict[str, int] = {}
    for e in tool_call:
        t = (e.data or {}).get("tool")
        if t:
            freq[t] = freq.get(t, 0) + 1
    for e in tool_res:
        code = (e.data or {}).get("error_code")
        if code:
            errors[code] = errors.get(code, 0) + 1
    top_tools = sorted(freq.items(), key=lambda x: x[1], reverse=True)[:12]

    llm_avg = _avg_ms(llm_res)
    tool_avg = _avg_ms(tool_res)

    lines = []
    lines.append(f"session: {session}")
    lines.append(f"events_file: {es.path}")
    if actions:
        lines.append("dispatch: " + "  ".join(f"{k}={v}" for k, v in sorted(actions.items())))
    lines.append(
        f"llm_requests: {len(llm_req)}  llm_responses: {len(llm_res)}  "
        f"llm_errors: {len(llm_err)}  llm_retries: {len(llm_retry)}"
    )
    if llm_avg is not None:
        lines.append(f"llm_avg_latency_ms: {llm_avg:.1f}")
    lines.append(f"tool_calls: {len(tool_call)}  tool_results: {len(tool_res)}  tool_denied: {len(tool_den)}")
    if tool_avg is not None:
        lines.append(f"tool_avg_latency_ms: {tool_avg:.1f}")
    if errors:
        lines.append("tool_errors: " + "  ".join(f"{k}={v}" for k, v in sorted(errors.items())))
    if top_tools:
        lines.append("top_tools:")
        for name, c in top_tools:
            lines.append(f"  - {name}: {c}")

    console.print(Panel.fit("\n".join(lines), title="Stats"))


if __name__ == "__main__":
    app()
