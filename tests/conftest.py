from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from laptop_installer.lib.command import CmdResult


class CommandRecorder:
    """Stand-in for run_cmd that records argv instead of executing."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.inputs: List[Optional[str]] = []
        self._responses: List[Tuple[Tuple[str, ...], CmdResult]] = []

    def respond(self, prefix: Sequence[str], *, stdout: str = "", returncode: int = 0, stderr: str = "") -> None:
        self._responses.append((tuple(prefix), CmdResult(list(prefix), returncode, stdout, stderr)))

    def __call__(self, argv, *, check=True, env=None, cwd=None, input_text=None, dry_run=False):
        argv = list(argv)
        self.calls.append(argv)
        self.inputs.append(input_text)
        for prefix, result in self._responses:
            if tuple(argv[: len(prefix)]) == prefix:
                return CmdResult(argv, result.returncode, result.stdout, result.stderr)
        return CmdResult(argv, 0, "", "")

    def commands(self, name: str) -> List[List[str]]:
        return [c for c in self.calls if c and c[0] == name]

    def index_of(self, predicate: Callable[[List[str]], bool]) -> int:
        return next(i for i, c in enumerate(self.calls) if predicate(c))


@pytest.fixture
def recorder() -> CommandRecorder:
    return CommandRecorder()


@pytest.fixture
def answers() -> Callable[[Sequence[str]], Callable[[str], str]]:
    """Build a prompt function that replays scripted answers in order."""

    def make(values: Sequence[str]) -> Callable[[str], str]:
        it = iter(values)
        asked: Dict[str, int] = {}

        def ask(prompt: str) -> str:
            asked[prompt] = asked.get(prompt, 0) + 1
            return next(it)

        ask.asked = asked  # type: ignore[attr-defined]
        return ask

    return make
