"""Configuration management for Diff Grep."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .settings import DEFAULT_ROOT_BRANCHES


class ColorMode(str, Enum):
    """When to colorize output."""

    ALWAYS = "always"
    AUTO = "auto"
    NEVER = "never"


@dataclass(frozen=True)
class DiffOptions:
    """Options handed to the diff producer."""

    include_untracked: bool = True
    recurse_untracked_dirs: bool = True
    include_unmodified: bool = True
    ignore_filemode: bool = True
    ignore_whitespace: bool = True
    context_lines: int = 0

    def __post_init__(self) -> None:
        if self.context_lines < 0:
            raise ValueError("context_lines cannot be negative")


@dataclass(frozen=True)
class GrepConfig:
    """Configuration for a single search run."""

    # Required parameters
    pattern: str

    # Base selection (mutually exclusive, checked by the resolver)
    parent_branch: Optional[str] = None
    base_ref: Optional[str] = None

    # Output options
    color_mode: ColorMode = ColorMode.AUTO
    ignore_case: bool = False

    # Repository options
    repo_path: str = "."
    root_branches: Tuple[str, ...] = DEFAULT_ROOT_BRANCHES
    include_workdir: bool = True

    diff_options: DiffOptions = field(default_factory=DiffOptions)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.root_branches:
            raise ValueError("root_branches cannot be empty")
        if not isinstance(self.color_mode, ColorMode):
            object.__setattr__(self, "color_mode", ColorMode(self.color_mode))

    def to_log_dict(self) -> Dict[str, Any]:
        """Summarize the config for debug logging."""
        return {
            "pattern": self.pattern,
            "parent_branch": self.parent_branch,
            "base_ref": self.base_ref,
            "color_mode": self.color_mode.value,
            "repo_path": self.repo_path,
            "root_branches": list(self.root_branches),
            "include_workdir": self.include_workdir,
        }
