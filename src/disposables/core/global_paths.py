"""Per-user directory paths for disposables.

Follows the platform conventions exposed by ``platformdirs``. Directories are
created on demand by the code that writes into them.
"""

from pathlib import Path
from platformdirs import user_config_dir, user_data_dir

APP_NAME = "disposables"


class GlobalPath:
    """Global path management for disposables directories."""

    @classmethod
    def data(cls) -> str:
        """Application data directory."""
        return user_data_dir(APP_NAME)

    @classmethod
    def log(cls) -> str:
        """Log file directory."""
        return str(Path(cls.data()) / "log")

    @classmethod
    def config(cls) -> str:
        """Configuration directory."""
        return user_config_dir(APP_NAME)
