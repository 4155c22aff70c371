# config.py

import os
import sys
from dataclasses import dataclass, field, fields
from typing import Any, List

import yaml

#: Placeholder in ``engine_path`` replaced by the application directory.
APP_PLACEHOLDER = "%APP%"


def _home() -> str:
    return os.path.expanduser("~")


@dataclass
class Settings:
    """Application settings created once at startup.

    The same instance is handed to the engine session and the session
    controller; nothing reads settings from global state.

    Attributes
    ----------
    engine_path:
        Executable of the reasoning engine. ``%APP%`` expands to the directory
        holding the running application.
    engine_args:
        Extra command line arguments passed to the engine.
    diff_small_value:
        Sent as the ``diff-small-value`` option before a query when ``> 0``.
    diff_check_period:
        Sent as the ``diff-check-period`` option before a query when ``> 0``.
    open_path:
        Directory last used to open a network file.
    save_path:
        Last path a network was saved to.
    log_level:
        Name of the root logging level.
    log_file:
        Optional file receiving log output instead of stderr.
    """

    engine_path: str = "bayes-cmd"
    engine_args: List[str] = field(default_factory=list)
    diff_small_value: float = 0.0
    diff_check_period: int = 0
    open_path: str = field(default_factory=_home)
    save_path: str = field(default_factory=_home)
    log_level: str = "INFO"
    log_file: str | None = None

    @staticmethod
    def app_dir() -> str:
        """Return the directory of the running application."""
        return os.path.dirname(os.path.abspath(sys.argv[0] or os.curdir))

    def expanded_engine_path(self) -> str:
        return self.engine_path.replace(APP_PLACEHOLDER, self.app_dir())

    def engine_command(self) -> List[str]:
        """Return the argv used to launch the engine."""
        return [self.expanded_engine_path(), *self.engine_args]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Build settings from ``data`` ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        settings = cls(**values)
        settings.diff_small_value = float(settings.diff_small_value)
        settings.diff_check_period = int(settings.diff_check_period)
        settings.engine_args = [str(a) for a in settings.engine_args]
        return settings

    @classmethod
    def load_from_file(cls, path: str) -> "Settings":
        """Load settings from a YAML or JSON file.

        Only keys that match a field are used. A relative ``engine_path`` that
        contains a directory component is resolved against the directory of
        ``path``.
        """
        if not os.path.exists(path):
            raise FileNotFoundError(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: settings must be a mapping")
        engine_path = data.get("engine_path")
        if (
            isinstance(engine_path, str)
            and os.sep in engine_path
            and not os.path.isabs(engine_path)
            and not engine_path.startswith(APP_PLACEHOLDER)
        ):
            base_dir = os.path.dirname(os.path.abspath(path))
            data["engine_path"] = os.path.join(base_dir, engine_path)
        return cls.from_dict(data)
