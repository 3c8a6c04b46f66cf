# codegen/ui_display.py
from rich.panel import Panel
from rich.table import Table

from codegen.app_state import AppState
from codegen.config_utils import AGENT_ROLES, SUPPORTED_SET_PARAMS, get_config_value
from codegen.pipeline import PipelineReport
from codegen.tool_defs import FIELD_CONTENT, FIELD_FILE_PATH


def display_welcome_panel(app_state: AppState):
    """Displays the welcome panel."""
    overrides = app_state.RUNTIME_OVERRIDES
    agent_lines = "\n".join(
        f"     {role.capitalize():<12}[dim]{get_config_value(f'provider_{role}', overrides)}/"
        f"{get_config_value(f'model_{role}', overrides)}[/dim]"
        for role in AGENT_ROLES
    )
    instructions = f"""  📁 [bold bright_blue]Project root: [/bold bright_blue][bold green]{app_state.root}[/bold green]

  🧠 [bold bright_blue]Agents[/bold bright_blue] (transport: [dim]{get_config_value('transport', overrides)}[/dim])
{agent_lines}

  📄 [bold bright_blue]Included files:[/bold bright_blue] {len(app_state.included_files)}   🗒  [bold bright_blue]Memory files:[/bold bright_blue] {len(app_state.memory_files)}

  ❓ [bold bright_blue]/help[/bold bright_blue] - Commands and workflow.

  👥 [bold white]/add the code the model should see, then describe the task.[/bold white]"""

    app_state.console.print(Panel(
        instructions,
        border_style="blue",
        padding=(1, 2),
        title="[bold blue]🎯 AI Codegen[/bold blue]",
        title_align="left"
    ))
    app_state.console.print()


def display_config_table(app_state: AppState):
    table = Table(title="Effective configuration", title_justify="left")
    table.add_column("Parameter", style="bright_cyan", no_wrap=True)
    table.add_column("Value")
    table.add_column("Source", style="dim")
    for name in SUPPORTED_SET_PARAMS:
        source = "runtime" if name in app_state.RUNTIME_OVERRIDES else ""
        table.add_row(name, str(get_config_value(name, app_state.RUNTIME_OVERRIDES, app_state.console)), source)
    app_state.console.print(table)


def display_included_files(app_state: AppState):
    if not app_state.included_files:
        app_state.console.print("[dim]No files included. Use /add <path>.[/dim]")
        return
    table = Table(title="Project snapshot", title_justify="left")
    table.add_column("File", style="bright_cyan")
    table.add_column("Chars", justify="right")
    for entry in app_state.included_files:
        table.add_row(entry[FIELD_FILE_PATH], str(len(entry[FIELD_CONTENT])))
    app_state.console.print(table)


def display_report(report: PipelineReport, console_obj):
    """Summarizes one pipeline run."""
    table = Table(title="Code generation report", title_justify="left")
    table.add_column("File")
    table.add_column("Task")
    table.add_column("Result")
    for item in report.work_items:
        written_path = report.written.get(item.file_path)
        if written_path is None:
            status = "[bold red]✗ not written[/bold red]"
        elif written_path != item.file_path:
            status = f"[bold blue]✓ written[/bold blue] [dim]as {written_path}[/dim]"
        else:
            status = "[bold blue]✓ written[/bold blue]"
        table.add_row(item.file_path, item.kind.name.capitalize(), status)
    if report.work_items:
        console_obj.print(table)
    for reason in report.failures:
        console_obj.print(f"[red]  • {reason}[/red]")
    if report.aborted:
        console_obj.print("[bold red]Run aborted.[/bold red]")
    elif report.stopped:
        console_obj.print("[yellow]Run stopped before every file task was processed.[/yellow]")
    elif report.work_items and not report.failures:
        console_obj.print(f"[bold blue]✓[/bold blue] {len(report.committed)} file(s) written.")
