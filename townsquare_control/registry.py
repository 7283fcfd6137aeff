"""
CommandRegistry - Explicit command registration pattern

Bounded Context: Admin command registration and validation
Responsibilities:
  - Register commands with handlers
  - Validate command existence before execution
  - Provide introspection (available_commands, get_help)

Threading: Thread-safe (uses lock for write operations)
"""

from typing import Any, Callable, Dict, Optional, Set
import threading


class CommandNotAvailableError(Exception):
    """Raised when attempting to execute an unregistered command"""
    pass


class CommandRegistry:
    """
    Registry for admin commands with explicit registration.

    Handlers receive the full command payload (dict) and may return a value,
    which execute() passes back to the caller.

    Example:
        registry = CommandRegistry()
        registry.register('create_room', service.handle_create_room, "Create a room")

        try:
            registry.execute('create_room', {'command': 'create_room', 'friendly_name': 'Lobby'})
        except CommandNotAvailableError as e:
            print(f"Command not available: {e}")
    """

    def __init__(self):
        self._commands: Dict[str, Callable[[dict], Any]] = {}
        self._descriptions: Dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, command: str, handler: Callable[[dict], Any], description: str) -> None:
        """
        Register a command with its handler function.

        Raises:
            ValueError: If command already registered
        """
        with self._lock:
            if command in self._commands:
                raise ValueError(f"Command '{command}' already registered")

            self._commands[command] = handler
            self._descriptions[command] = description

    def unregister(self, command: str) -> None:
        """Remove a command. No-op if it is not registered."""
        with self._lock:
            self._commands.pop(command, None)
            self._descriptions.pop(command, None)

    def execute(self, command: str, command_data: Optional[dict] = None) -> Any:
        """
        Execute a registered command.

        Args:
            command: Command name to execute
            command_data: Full command payload (defaults to {'command': command})

        Returns:
            Whatever the handler returns

        Raises:
            CommandNotAvailableError: If command not registered
        """
        handler = self._commands.get(command)
        if handler is None:
            raise CommandNotAvailableError(
                f"Command '{command}' not available. "
                f"Available commands: {', '.join(sorted(self.available_commands))}"
            )

        return handler(command_data if command_data is not None else {'command': command})

    def is_available(self, command: str) -> bool:
        return command in self._commands

    @property
    def available_commands(self) -> Set[str]:
        """Snapshot of registered command names."""
        return set(self._commands.keys())

    def get_help(self) -> Dict[str, str]:
        """Snapshot of {command: description}."""
        return dict(self._descriptions)

    def count(self) -> int:
        return len(self._commands)
