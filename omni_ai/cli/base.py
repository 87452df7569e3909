"""
Command interfaces for the omni-ai CLI.

Each command mounts its own argparse subparser and returns a process exit code.
Groups (``sessions``) hold a fixed set of subcommands behind one name.
"""

from abc import ABC, abstractmethod
from argparse import ArgumentParser, Namespace
from typing import TYPE_CHECKING, ClassVar, Optional

if TYPE_CHECKING:
    from ..chat import ChatSession


class Command(ABC):
    """A CLI verb such as ``chat`` or ``replay``."""

    name: str = ""
    aliases: ClassVar[list[str]] = []
    description: str = ""

    # Offline commands (replay, sessions) run without an API key
    requires_client: bool = True

    # Only top-level commands are mounted directly on the root parser
    top_level: ClassVar[bool] = False

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        if cls.__module__ == __name__:
            return
        for attr in ("name", "description"):
            if not getattr(cls, attr):
                raise ValueError(f"Command class {cls.__name__} must define a '{attr}' attribute")

    @property
    def names(self) -> list[str]:
        """Primary name followed by aliases."""
        return [self.name, *self.aliases]

    @abstractmethod
    def add_arguments(self, parser: ArgumentParser) -> None:
        """Declare this command's arguments on its subparser."""

    @abstractmethod
    def execute(self, args: Namespace, chat: Optional["ChatSession"] = None) -> int:
        """
        Run the command.

        Args:
            args: Parsed arguments
            chat: ChatSession bound to the agent runtime, or None when no API key is set

        Returns:
            Exit code (0 on success)
        """


class CommandGroup(Command):
    """A named set of subcommands, e.g. ``sessions list|show|delete``."""

    top_level: ClassVar[bool] = True
    subcommand_classes: ClassVar[tuple[type[Command], ...]] = ()

    def __init__(self) -> None:
        self.subcommands = [command_cls() for command_cls in self.subcommand_classes]

    @property
    def _dest(self) -> str:
        return f"{self.name}_command"

    def add_arguments(self, parser: ArgumentParser) -> None:
        subparsers = parser.add_subparsers(dest=self._dest, help=f"{self.name} commands")
        for command in self.subcommands:
            subparser = subparsers.add_parser(
                command.name, aliases=command.aliases, help=command.description
            )
            command.add_arguments(subparser)

    def execute(self, args: Namespace, chat: Optional["ChatSession"] = None) -> int:
        chosen = getattr(args, self._dest, None)
        available = ", ".join(command.name for command in self.subcommands)
        if not chosen:
            print(f"❌ No subcommand specified for '{self.name}' (choose from: {available})")
            return 1

        for command in self.subcommands:
            if chosen in command.names:
                return command.execute(args, chat)

        print(f"❌ Unknown subcommand '{chosen}' for '{self.name}' (choose from: {available})")
        return 1
