# codegen/command_handlers.py
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from codegen.app_state import AppState

# Import individual command handlers
from codegen.commands.add_command import try_handle_add_command
from codegen.commands.memory_command import try_handle_memory_command
from codegen.commands.show_command import try_handle_show_command
from codegen.commands.set_command import try_handle_set_command
from codegen.commands.help_command import try_handle_help_command
from codegen.commands.debug_command import try_handle_debug_command

MAIN_LOOP_COMMAND_HANDLERS = [
    try_handle_add_command,
    try_handle_memory_command,
    try_handle_show_command,
    try_handle_set_command,
    try_handle_help_command,
    try_handle_debug_command,
]


def dispatch_command(user_input: str, app_state: 'AppState') -> bool:
    """Returns True when one of the slash commands handled the input."""
    for handler_func in MAIN_LOOP_COMMAND_HANDLERS:
        if handler_func(user_input, app_state):
            return True
    return False
