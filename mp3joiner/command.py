"""Structured ffmpeg command lines.

Options are declared where they belong (global, per input, per output) and
rendered in the order ffmpeg expects, so a command only ever contains the
flags that were asked for.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

OptionValue = Union[str, int, float, None]


def _render_options(options: List[Tuple[str, OptionValue]]) -> List[str]:
    args = []
    for name, value in options:
        args.append(f"-{name}")
        if value is not None:
            args.append(_render_value(value))
    return args


def _render_value(value: OptionValue) -> str:
    if isinstance(value, float):
        # ffmpeg accepts plain decimal seconds; avoid exponent notation
        return f"{value:.6f}".rstrip("0").rstrip(".") or "0"
    return str(value)


@dataclass
class CommandInput:
    """One ``-i`` input together with the options that precede it."""
    path: Path
    options: List[Tuple[str, OptionValue]] = field(default_factory=list)

    def to_args(self) -> List[str]:
        return _render_options(self.options) + ["-i", str(self.path)]


class FFmpegCommand:
    """Builder for a single ffmpeg invocation.

    Example:
        >>> command = FFmpegCommand()
        >>> command.add_input("a.mp3", ss=1.5, t=2.0)
        0
        >>> command.set_output("out.mp3", codec="copy")
        >>> command.to_args()
        ['ffmpeg', '-hide_banner', '-ss', '1.5', '-t', '2', '-i', 'a.mp3', '-codec', 'copy', '-y', 'out.mp3']
    """

    def __init__(self, binary: str = "ffmpeg", global_options: Optional[List[Tuple[str, OptionValue]]] = None):
        self.binary = binary
        if global_options is None:
            global_options = [("hide_banner", None)]
        self.global_options: List[Tuple[str, OptionValue]] = list(global_options)
        self.inputs: List[CommandInput] = []
        self.filter_graph: Optional[str] = None
        self.maps: List[str] = []
        self.output_options: List[Tuple[str, OptionValue]] = []
        self.output_path: Optional[Path] = None
        self.overwrite = True

    def add_input(self, path: Union[str, Path], **options: OptionValue) -> int:
        """Append an input and return its ffmpeg input index."""
        self.inputs.append(CommandInput(Path(path), list(options.items())))
        return len(self.inputs) - 1

    def set_filter_complex(self, graph: str) -> None:
        self.filter_graph = graph

    def add_map(self, specifier: Union[str, int]) -> None:
        self.maps.append(str(specifier))

    def add_output_option(self, name: str, value: OptionValue = None) -> None:
        """Add an output option; ``name`` may contain ``:`` (e.g. ``b:a``)."""
        self.output_options.append((name, value))

    def set_output(self, path: Union[str, Path], overwrite: bool = True, **options: OptionValue) -> None:
        self.output_path = Path(path)
        self.overwrite = overwrite
        for name, value in options.items():
            self.add_output_option(name, value)

    def to_args(self) -> List[str]:
        """Render the argument vector passed to ``subprocess.run``."""
        if not self.inputs:
            raise ValueError("ffmpeg command needs at least one input")
        if self.output_path is None:
            raise ValueError("ffmpeg command needs an output path")

        args = [self.binary]
        args.extend(_render_options(self.global_options))
        for command_input in self.inputs:
            args.extend(command_input.to_args())
        if self.filter_graph:
            args.extend(["-filter_complex", self.filter_graph])
        for specifier in self.maps:
            args.extend(["-map", specifier])
        args.extend(_render_options(self.output_options))
        args.append("-y" if self.overwrite else "-n")
        args.append(str(self.output_path))
        return args

    def __str__(self) -> str:
        return " ".join(self.to_args())
