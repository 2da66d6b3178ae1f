# placefilter/configs/config.py
import yaml
from pathlib import Path
from functools import lru_cache


class Config:
    """
    Bundled resource locations for the visibility engine.
    """

    # 1. Setup Base Paths
    # This points to placefilter/configs/
    CONFIG_DIR = Path(__file__).parent.resolve()
    # This points to the placefilter package
    PACKAGE_ROOT = CONFIG_DIR.parent

    # 2. Define File Paths
    REMOTE_DEFAULTS_PATH = CONFIG_DIR / "remote_config_defaults.yaml"
    TAXONOMY_DATA_PATH = PACKAGE_ROOT / "assets" / "yelp_categories_v3.json"

    @classmethod
    @lru_cache
    def load_remote_defaults(cls) -> dict:
        """Loads the bundled YAML defaults for remote-config keys."""
        return cls.read_remote_defaults(cls.REMOTE_DEFAULTS_PATH)

    @staticmethod
    def read_remote_defaults(path: Path) -> dict:
        """Reads a remote-config defaults file. Missing file is an error."""
        if not path.exists():
            raise FileNotFoundError(f"Missing config at {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Remote config defaults at {path} must be a mapping")
        return data

    @classmethod
    def get_taxonomy_path(cls) -> Path:
        """Returns the absolute path to the bundled taxonomy JSON."""
        return cls.TAXONOMY_DATA_PATH
