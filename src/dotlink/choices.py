"""Interactive consent: the prompt loop and per-run remembered answers."""

from __future__ import annotations

from enum import Enum
from typing import Callable

from rich.console import Console

from .models import Reason


class Choice(str, Enum):
    YES = "yes"
    NO = "no"
    YES_ALL = "yes_all"
    NO_ALL = "no_all"
    INFO = "info"
    QUIT = "quit"


class ChoiceState(str, Enum):
    UNSET = "unset"
    ALWAYS = "always"
    NEVER = "never"


_YES_NO = {"y": Choice.YES, "yes": Choice.YES, "n": Choice.NO, "no": Choice.NO}
_ALL = {"ya": Choice.YES_ALL, "yesall": Choice.YES_ALL, "na": Choice.NO_ALL, "noall": Choice.NO_ALL}
_EXTRA = {"i": Choice.INFO, "info": Choice.INFO, "q": Choice.QUIT, "quit": Choice.QUIT, "cancel": Choice.QUIT}


class PromptOptions(Enum):
    """Sets of answers a prompt accepts."""

    YES_NO = "[Y]es/[N]o"
    YES_NO_ALL = "[Y]es/[N]o/[Y]es[A]ll/[N]o[A]ll"
    ALL = "[Y]es/[N]o/[Y]es[A]ll/[N]o[A]ll/[I]nfo/[Q]uit"

    @property
    def help(self) -> str:
        return self.value

    def parse(self, answer: str) -> Choice | None:
        table = dict(_YES_NO)
        if self is not PromptOptions.YES_NO:
            table.update(_ALL)
        if self is PromptOptions.ALL:
            table.update(_EXTRA)
        return table.get(answer)

    @property
    def on_end_of_input(self) -> Choice:
        return Choice.QUIT if self is PromptOptions.ALL else Choice.NO


class ChoiceMemory:
    """Remembers "always" and "never" answers per forceable reason for one run.

    ``keep_going`` records that the user chose to continue past every
    remaining error.
    """

    def __init__(self) -> None:
        self.keep_going = False
        self._states: dict[Reason, ChoiceState] = {
            reason: ChoiceState.UNSET for reason in Reason if reason.forceable
        }

    def get(self, reason: Reason) -> ChoiceState:
        return self._states.get(reason, ChoiceState.UNSET)

    def set(self, reason: Reason, state: ChoiceState) -> None:
        if reason not in self._states:
            raise ValueError(f"Cannot remember a choice for '{reason.value}'")
        self._states[reason] = state

    def set_always(self, reason: Reason) -> None:
        self.set(reason, ChoiceState.ALWAYS)

    def set_never(self, reason: Reason) -> None:
        self.set(reason, ChoiceState.NEVER)

    def unset(self, reason: Reason) -> None:
        self.set(reason, ChoiceState.UNSET)


class Prompter:
    """Blocking read, validate and retry loop on the terminal."""

    def __init__(self, console: Console | None = None, reader: Callable[[str], str] | None = None) -> None:
        self.console = console or Console()
        self._reader = reader or (lambda prompt: self.console.input(prompt, markup=False))

    def ask(self, message: str, options: PromptOptions, info: str | None = None) -> Choice:
        prompt = f"{message}\n{options.help}: "
        while True:
            try:
                answer = self._reader(prompt)
            except EOFError:
                return options.on_end_of_input

            choice = options.parse(answer.strip().lower())
            if choice is Choice.INFO:
                self.console.print(info or "No further information available.", markup=False)
                continue
            if choice is None:
                self.console.print(f"Invalid input. Please choose from {options.help}.", markup=False)
                continue
            return choice
