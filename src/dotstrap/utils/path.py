import os
from pathlib import Path
from string import Template
from typing import Mapping, Optional


def home_relative(path: Path, home: Optional[Path] = None) -> Path:
    """Path relative to home, or the absolute path without its anchor."""
    if not home:
        home = Path.home()
    if path.is_absolute():
        try:
            return path.relative_to(home)
        except ValueError:
            # Outside home: keep every component except '/'
            return Path(*path.parts[1:])
    return path


def display_path(path: Path, home: Optional[Path] = None) -> str:
    """Short form of a path for log lines, using '~' for home."""
    try:
        return str(Path('~') / path.relative_to(home or Path.home()))
    except ValueError:
        return str(path)


def expand_text(value: str, variables: Mapping[str, str], home: Optional[Path] = None) -> str:
    """Expand ${VAR} references and a leading '~' in a manifest string."""
    text = Template(value).safe_substitute(variables)
    if text == '~' or text.startswith('~' + os.sep):
        text = str(home or Path.home()) + text[1:]
    return text


def expand_path(value: str, variables: Mapping[str, str], home: Optional[Path] = None) -> Path:
    return Path(expand_text(value, variables, home))
