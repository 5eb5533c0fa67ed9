"""Main entry point - operator console for running strategy worlds."""

from __future__ import annotations
import sys
import json
import logging
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from thefuzz import fuzz

from strategy_turns.config import Settings, get_settings
from strategy_turns.systems.store import StrategyStore
from strategy_turns.systems.turn_coordinator import TurnCoordinator
from strategy_turns.tools.registry import ToolRegistry, build_registry
from strategy_turns.tools.formatter import ToolResponse
from strategy_turns.llm.openrouter import OpenRouterClient
from strategy_turns.agents.nation_agent import NationAgent


console = Console()
logger = logging.getLogger("strategy-turns")

SAVE_VERSION = 1
HISTORY_DIR = Path.home() / ".strategy_turns"


def setup_logging(level: str) -> None:
    handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(level)
    logger.propagate = False


class StrategySession:
    """One store, its coordinator and tools, plus the world currently in focus."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.store = StrategyStore()
        self.coordinator = TurnCoordinator(self.store, event_sample_size=settings.event_sample_size)
        self.registry: ToolRegistry = build_registry(self.coordinator, self.store, settings.action_threshold)
        self.world_id: Optional[str] = None
        self.llm: Optional[OpenRouterClient] = None
        self._save_dir = settings.save_dir
        self._save_dir.mkdir(parents=True, exist_ok=True)

    def call(self, tool: str, action: str, params: dict[str, Any]) -> ToolResponse:
        args = dict(params)
        args["action"] = action
        if self.world_id and "worldId" not in args:
            args["worldId"] = self.world_id
        return self.registry.execute(tool, **args)

    def save(self, filename: str = "quicksave") -> Path:
        save_data = {
            "version": SAVE_VERSION,
            "world_id": self.world_id,
            "store": self.store.export(),
        }
        filepath = self._save_dir / f"{filename}.json"
        with open(filepath, "w") as f:
            json.dump(save_data, f, indent=2, default=str)
        logger.info("Saved to %s", filepath)
        return filepath

    def load(self, filename: str = "quicksave") -> bool:
        filepath = self._save_dir / f"{filename}.json"
        if not filepath.exists():
            console.print(f"[red]Save file not found: {filepath}[/red]")
            return False

        with open(filepath, "r") as f:
            save_data = json.load(f)

        if save_data.get("version") != SAVE_VERSION:
            console.print(f"[red]Unsupported save version: {save_data.get('version')}[/red]")
            return False

        self.store.import_data(save_data["store"])
        self.world_id = save_data.get("world_id")
        logger.info("Loaded %s", filepath)
        return True

    def list_saves(self) -> list[str]:
        return [f.stem for f in self._save_dir.glob("*.json")]

    def fuzzy_match_nation(self, query: str, threshold: int = 70) -> Optional[str]:
        """Find a nation in the current world whose name fuzzy-matches the query."""
        if not self.world_id:
            return None

        best_match = None
        best_score = 0
        for nation in self.store.nations_in_world(self.world_id):
            if query == nation.id:
                return nation.id
            score = fuzz.ratio(query.lower(), nation.name.lower())
            if score > best_score and score >= threshold:
                best_score = score
                best_match = nation.id
        return best_match

    def agent_for(self, nation_id: str) -> NationAgent:
        if self.llm is None:
            self.llm = OpenRouterClient(api_key=self.settings.openrouter_api_key, model=self.settings.agent_model)
        return NationAgent(nation_id, self.world_id, self.llm, self.registry)


def print_response(response: ToolResponse) -> None:
    text = response.text.split("\n<!-- ")[0]
    console.print(Panel(
        Markdown(text.strip()),
        border_style="red" if response.is_error else "cyan",
    ))


def print_help() -> None:
    table = Table(title="Commands", show_header=True, header_style="bold magenta")
    table.add_column("Command", style="cyan")
    table.add_column("Description")

    commands = [
        ("world <id>", "Focus a world (used as the default worldId)"),
        ("turn <action> [json]", "Call turn_manage, e.g. turn mark_ready {\"nationId\": \"ab12cd34\"}"),
        ("strategy <action> [json]", "Call strategy_manage, e.g. strategy list_nations"),
        ("status", "Turn status of the focused world"),
        ("nations / regions", "Tables of the focused world"),
        ("events [n]", "Show recent events (default: 10)"),
        ("play [nation]", "Let the LLM agents play the current turn (all nations, or one)"),
        ("save [name]", "Save all worlds (default: quicksave)"),
        ("load [name]", "Load a save (default: quicksave)"),
        ("saves", "List available saves"),
        ("help", "Show this help"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        table.add_row(cmd, desc)
    console.print(table)


def parse_params(raw: str) -> Optional[dict[str, Any]]:
    if not raw.strip():
        return {}
    try:
        params = json.loads(raw)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON: {e}[/red]")
        return None
    if not isinstance(params, dict):
        console.print("[red]Parameters must be a JSON object[/red]")
        return None
    return params


def handle_tool(session: StrategySession, tool: str, rest: str) -> None:
    action, _, raw = rest.strip().partition(" ")
    if not action:
        console.print(f"[red]Usage: {tool.split('_')[0]} <action> [json][/red]")
        return
    params = parse_params(raw)
    if params is None:
        return
    print_response(session.call(tool, action, params))


def handle_nations(session: StrategySession) -> None:
    if not session.world_id:
        console.print("[dim]No world in focus. Use 'world <id>'[/dim]")
        return
    table = Table(title=f"Nations of {session.world_id}")
    for col in ("ID", "Name", "Leader", "Ideology", "Food", "Metal", "Oil", "Intent"):
        table.add_column(col)
    for n in session.store.nations_in_world(session.world_id):
        r = n.resources
        table.add_row(n.id, n.name, n.leader, n.ideology.value, str(r.food), str(r.metal), str(r.oil), n.public_intent or "")
    console.print(table)


def handle_regions(session: StrategySession) -> None:
    if not session.world_id:
        console.print("[dim]No world in focus. Use 'world <id>'[/dim]")
        return
    table = Table(title=f"Regions of {session.world_id}")
    for col in ("ID", "Name", "Type", "Owner", "Control"):
        table.add_column(col)
    for r in session.store.regions_in_world(session.world_id):
        owner = session.store.get_nation(r.owner_nation_id) if r.owner_nation_id else None
        table.add_row(r.id, r.name, r.type.value, owner.name if owner else "[dim]unclaimed[/dim]", str(r.control_level))
    console.print(table)


def handle_events(session: StrategySession, parts: list[str]) -> None:
    count = 10
    if len(parts) > 1:
        try:
            count = int(parts[1])
        except ValueError:
            pass
    if not session.world_id:
        return
    events = session.store.events_for_world(session.world_id)
    if not events:
        console.print("[dim]No events recorded.[/dim]")
        return
    for event in events[-count:]:
        console.print(f"  • {event.summary()}")


def handle_play(session: StrategySession, parts: list[str]) -> None:
    if not session.world_id:
        console.print("[dim]No world in focus. Use 'world <id>'[/dim]")
        return

    if len(parts) > 1:
        nation_id = session.fuzzy_match_nation(" ".join(parts[1:]))
        if nation_id is None:
            console.print(f"[red]Unknown nation: {' '.join(parts[1:])}[/red]")
            return
        nation_ids = [nation_id]
    else:
        nation_ids = [n.id for n in session.store.nations_in_world(session.world_id)]

    try:
        agents = [session.agent_for(nid) for nid in nation_ids]
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        console.print("[yellow]Set OPENROUTER_API_KEY in your .env file[/yellow]")
        return

    for agent in agents:
        console.print(f"\n[dim]{agent.nation_id} is planning...[/dim]")
        result = agent.play_turn()
        if result.get("error"):
            console.print(f"[red]{result['error']}[/red]")
            continue
        if result.get("response"):
            console.print(Panel(result["response"], title=result["nation"], border_style="blue"))
        for tc in result["toolCalls"]:
            data = tc["result"]
            summary = data.get("message") or ", ".join(data.get("processedActions", [])) or data.get("actionType")
            console.print(f"  • {tc['tool']}: {summary}")
        ready = result["ready"]
        if ready.get("allReady"):
            console.print(f"[green]Turn {ready['turnResolved']} resolved. Now on turn {ready['nextTurn']}.[/green]")
        elif ready.get("error"):
            console.print(f"[red]{ready.get('message')}[/red]")


def main():
    """Main entry point."""
    settings = get_settings()
    setup_logging(settings.log_level)

    console.print(Panel(
        "[bold magenta]Strategy Turns[/bold magenta]\n"
        "[dim]Multi-nation turn coordination console[/dim]",
        border_style="magenta",
    ))

    HISTORY_DIR.mkdir(exist_ok=True)
    prompt = PromptSession(
        history=FileHistory(str(HISTORY_DIR / "command_history")),
        auto_suggest=AutoSuggestFromHistory(),
    )
    session = StrategySession(settings)

    if len(sys.argv) > 2 and sys.argv[1] == "load":
        if not session.load(sys.argv[2]):
            sys.exit(1)

    console.print("[dim]Type 'help' for commands[/dim]")

    while True:
        try:
            label = session.world_id or "no world"
            command = prompt.prompt(f"[{label}] > ")
            if not command.strip():
                continue

            parts = command.strip().split()
            cmd = parts[0].lower()
            rest = command.strip()[len(parts[0]):]

            if cmd in ("quit", "exit"):
                console.print("[dim]Goodbye.[/dim]")
                break

            elif cmd == "help":
                print_help()

            elif cmd == "world":
                if len(parts) < 2:
                    console.print(f"[dim]Current world: {session.world_id or 'none'}[/dim]")
                    continue
                session.world_id = parts[1]
                print_response(session.call("turn_manage", "init", {}))

            elif cmd == "turn":
                handle_tool(session, "turn_manage", rest)

            elif cmd == "strategy":
                handle_tool(session, "strategy_manage", rest)

            elif cmd == "status":
                print_response(session.call("turn_manage", "get_status", {}))

            elif cmd == "nations":
                handle_nations(session)

            elif cmd == "regions":
                handle_regions(session)

            elif cmd == "events":
                handle_events(session, parts)

            elif cmd == "play":
                handle_play(session, parts)

            elif cmd == "save":
                name = parts[1] if len(parts) > 1 else "quicksave"
                console.print(f"[green]Saved to {session.save(name)}[/green]")

            elif cmd == "load":
                name = parts[1] if len(parts) > 1 else "quicksave"
                if session.load(name):
                    console.print(f"[green]Loaded {name}[/green]")

            elif cmd == "saves":
                saves = session.list_saves()
                if saves:
                    console.print("[bold]Available saves:[/bold]")
                    for s in saves:
                        console.print(f"  • {s}")
                else:
                    console.print("[dim]No saves found[/dim]")

            else:
                console.print(f"[red]Unknown command: {cmd}[/red] [dim](type 'help')[/dim]")

        except KeyboardInterrupt:
            console.print("\n[dim]Type 'quit' to exit[/dim]")

        except EOFError:
            break

        except Exception as e:
            logger.exception("Command failed")
            console.print(f"[red]Error: {e}[/red]")

    if session.llm is not None:
        session.llm.close()


if __name__ == "__main__":
    main()
