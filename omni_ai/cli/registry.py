"""
Command registry.

Collects the top-level commands defined in ``omni_ai.cli.commands`` and
resolves names and aliases to command instances.
"""

import importlib
import inspect
import logging

from .base import Command

logger = logging.getLogger(__name__)

COMMANDS_PACKAGE = "omni_ai.cli.commands"
COMMAND_MODULES = ("chat", "sessions", "replay")


class CommandRegistry:
    """Name/alias lookup table for CLI commands."""

    def __init__(self) -> None:
        self._by_name: dict[str, Command] = {}
        self._commands: list[Command] = []

    def register(self, command: Command) -> None:
        """Register a command instance under its name and aliases."""
        if not isinstance(command, Command):
            raise TypeError(f"Expected Command instance, got {type(command)}")
        taken = [name for name in command.names if name in self._by_name]
        if taken:
            raise ValueError(f"Command '{taken[0]}' is already registered")

        for name in command.names:
            self._by_name[name] = command
        self._commands.append(command)

    def _discover_module(self, module_name: str) -> None:
        module = importlib.import_module(module_name)
        for _name, cls in inspect.getmembers(module, inspect.isclass):
            # Subcommands are mounted by their group, not here
            if (
                issubclass(cls, Command)
                and cls.__module__ == module.__name__
                and cls.top_level
                and not inspect.isabstract(cls)
                and cls.name not in self._by_name
            ):
                logger.debug("Registering command %s from %s", cls.name, module_name)
                self.register(cls())

    def discover(self, package: str = COMMANDS_PACKAGE) -> None:
        """Register every top-level command in the known command modules (idempotent)."""
        for module in COMMAND_MODULES:
            self._discover_module(f"{package}.{module}")

    def get(self, name: str) -> Command:
        """
        Resolve a name or alias.

        Raises:
            KeyError: If no command answers to ``name``
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"Command '{name}' not found") from None

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    @property
    def commands(self) -> list[Command]:
        """Registered commands in registration order."""
        return list(self._commands)


registry = CommandRegistry()
