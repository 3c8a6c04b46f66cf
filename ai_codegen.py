#!/usr/bin/env python3
"""
AI Codegen: turns a plain-language task into files on disk.

The task is split into single-file tasks by a model, every file is written in
full by a model through a tool call, modified files are merged with their
existing content, and every overwritten file is backed up first.
"""
import argparse
import asyncio
import logging
import sys
from typing import Optional

import litellm

from codegen.app_state import AppState
from codegen.command_handlers import dispatch_command
from codegen.config_utils import load_configuration as load_app_configuration, update_runtime_override
from codegen.data_models import FileArtifact
from codegen.file_context_utils import include_path, load_memory_files, snapshot_path, upsert_included_file
from codegen.pipeline import CodeGenerationPipeline, PipelineReport
from codegen.prompts import load_prompt_file
from codegen.ui_display import display_report, display_welcome_panel

__version__ = "0.3.0"

# Suppress LiteLLM debug info
litellm.suppress_debug_info = True
logging.getLogger("litellm").setLevel(logging.WARNING)


def run_task(task: str, app_state: AppState, noconfirm: bool = False) -> Optional[PipelineReport]:
    """Runs one task through the pipeline. Returns None when it never started."""
    console = app_state.console
    if not app_state.included_files:
        console.print("[yellow]Warning: No files included (/add). The model will only be able to create new files.[/yellow]")

    if not noconfirm:
        confirmation = app_state.prompt_session.prompt("Proceed? [Y/n]: ", default="y").strip().lower()
        if confirmation not in ["y", "yes", ""]:
            console.print("[yellow]ℹ️ Task cancelled by user.[/yellow]")
            return None

    system_prompt_text = ""
    if app_state.system_prompt_path:
        try:
            system_prompt_text = load_prompt_file(app_state.system_prompt_path)
        except OSError as e:
            console.print(f"[bold red]✗[/bold red] Could not read system prompt '{app_state.system_prompt_path}': {e}")
            return None
    memory_text = load_memory_files(app_state.memory_files, console)

    pipeline = CodeGenerationPipeline.from_config(
        console, app_state.root, app_state.RUNTIME_OVERRIDES, debug=app_state.DEBUG_LLM_INTERACTIONS
    )

    def refresh_snapshot(artifact: FileArtifact):
        # Later tasks in this session see the code as it is now on disk.
        path = snapshot_path(str(app_state.root / artifact.file_path), app_state.root)
        upsert_included_file(app_state.included_files, path, artifact.content)

    try:
        report = asyncio.run(pipeline.run(
            task,
            app_state.included_files,
            system_prompt_text=system_prompt_text,
            memory_text=memory_text,
            on_commit=refresh_snapshot,
        ))
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Interrupted. Files already written stay on disk; backups are in the backup folder.[/bold yellow]")
        return None

    display_report(report, console)
    return report


def main():
    parser = argparse.ArgumentParser(
        description="AI Codegen: multi-provider code generation from a plain-language task.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--task', type=str, help='Run this task once and exit instead of starting the interactive prompt.')
    parser.add_argument('--include', metavar='PATH', action='append', default=[], help='File or folder to include in the project snapshot (repeatable).')
    parser.add_argument('--memory', metavar='PATH', action='append', default=[], help='Memory file appended to every system prompt (repeatable).')
    parser.add_argument('--system-prompt', metavar='FILE', type=str, help='Custom system prompt for the code-writing agent.')
    parser.add_argument('--provider', type=str, help="Provider for every agent: openai, anthropic, gemini or groq.")
    parser.add_argument('--model', type=str, help='Model for every agent.')
    parser.add_argument('--root', metavar='DIR', type=str, default=None, help='Project root; generated paths are relative to it (default: current directory).')
    parser.add_argument('--config', metavar='FILE', type=str, default='config.toml', help='Path to config.toml.')
    parser.add_argument('--noconfirm', action='store_true', help='Skip the confirmation prompt before running a task.')
    parser.add_argument('--debug', action='store_true', help='Dump every request and raw reply to stderr.')
    args = parser.parse_args()

    app_state = AppState(root=args.root)

    # Load .env, config.toml
    load_app_configuration(app_state.console, config_path=args.config)

    if args.provider:
        update_runtime_override("provider", args.provider, app_state.RUNTIME_OVERRIDES, app_state.console)
    if args.model:
        update_runtime_override("model", args.model, app_state.RUNTIME_OVERRIDES, app_state.console)
    if args.debug:
        app_state.DEBUG_LLM_INTERACTIONS = True
    app_state.system_prompt_path = args.system_prompt
    for path in args.include:
        include_path(path, app_state.included_files, app_state.console, app_state.root)
    app_state.memory_files.extend(args.memory)

    if args.task:
        report = run_task(args.task, app_state, noconfirm=args.noconfirm)
        sys.exit(0 if report is not None and report.succeeded else 1)

    display_welcome_panel(app_state)

    while True:
        try:
            user_input = app_state.prompt_session.prompt(f"🔵 [{len(app_state.included_files)} files] Task> ").strip()
        except (EOFError, KeyboardInterrupt):
            app_state.console.print("\n[bold yellow]👋 Exiting gracefully...[/bold yellow]")
            sys.exit(0)

        if not user_input:
            continue

        if user_input.lower() in ["exit", "quit", "/exit", "/quit"]:
            app_state.console.print("[bold bright_blue]👋 Goodbye! Happy coding![/bold bright_blue]")
            sys.exit(0)

        if dispatch_command(user_input, app_state):
            continue

        # If input started with '/' but was not handled by any command, it's an unknown command
        if user_input.startswith("/"):
            app_state.console.print(f"[yellow]Unknown command: '{user_input.split()[0]}'. Type '/help' for a list of commands.[/yellow]")
            continue

        run_task(user_input, app_state, noconfirm=args.noconfirm)


if __name__ == "__main__":
    main()
