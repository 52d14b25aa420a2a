# smart_collections/services/config_service.py
"""
Application-wide settings for the smart collection engine.

AppConfig is created once per process and:
1. Reads `config.yaml` (or the file named by SMART_COLLECTIONS_CONFIG), falling
   back to DEFAULT_CONFIG when there is none.
2. Applies overrides from the environment and an optional `.env` file.
3. Configures the root logger to write to a log file and to stderr, leaving
   stdout to the command-line JSON output.

Every module imports the same `config` instance from here.
"""
import yaml
import os
import logging
import sys
from pathlib import Path
import dotenv
import threading
from typing import Any, Dict, Optional

# Used when no config.yaml can be found, so the engine still runs with the
# documented policy defaults.
DEFAULT_CONFIG: Dict[str, Any] = {
    'suggestions': {
        'min_date_group_size': 2,
        'min_filename_group_size': 3,
        'min_camera_group_size': 5,
        'max_suggestions': 10,
        'preview_count': 4,
        'dedup_policy': 'overlap',
        'overlap_threshold': 0.5,
    },
    'store': {
        'path': 'data/galleries.db',
        'timeout_seconds': 10,
    },
    'logging': {
        'level': 'INFO',
        'to_file': True,
        'directory': 'logs',
        'filename': 'smart_collections.log',
    },
}


class AppConfig:
    _instance: Optional['AppConfig'] = None
    _loaded: bool = False
    _lock: threading.Lock = threading.Lock()

    def __new__(cls, *args, **kwargs) -> 'AppConfig':
        if cls._instance is None:
            with cls._lock:
                # Re-checked under the lock; another thread may have won.
                if cls._instance is None:
                    cls._instance = super(AppConfig, cls).__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        # __init__ runs on every AppConfig() call; loading is guarded by the
        # `_loaded` flag and the thread lock.
        if not self._loaded:
            with self._lock:
                if not self._loaded:
                    # .env may set SMART_COLLECTIONS_CONFIG, so it is read before the YAML.
                    dotenv.load_dotenv()
                    self.project_root = Path(__file__).resolve().parents[2]

                    self._load_yaml_config()
                    self._load_env_vars()
                    self._setup_logging()

                    self._loaded = True
                    logging.info(f"Smart collections configuration loaded from {self.config_path}")

    def _load_yaml_config(self) -> None:
        """Loads the main config.yaml file, falling back to built-in defaults."""
        config_path = Path(os.getenv("SMART_COLLECTIONS_CONFIG") or self.project_root / 'config.yaml')
        self.config_path = config_path
        try:
            with open(config_path, 'r') as f:
                self.yaml = yaml.safe_load(f) or {}
        except FileNotFoundError:
            print(f"WARNING: Configuration file not found at {config_path}, using defaults.", file=sys.stderr)
            self.yaml = DEFAULT_CONFIG
        except yaml.YAMLError as e:
            # A config file that exists but cannot be parsed is a fatal error.
            print(f"FATAL: {config_path} is not valid YAML: {e}", file=sys.stderr)
            sys.exit(1)

    def _load_env_vars(self) -> None:
        """Loads optional overrides from the environment."""
        self.store_path_override = os.getenv("SMART_COLLECTIONS_DB")
        self.log_level_override = os.getenv("SMART_COLLECTIONS_LOG_LEVEL")

    @property
    def store_path(self) -> Path:
        path = Path(self.store_path_override or self.get('store.path', DEFAULT_CONFIG['store']['path']))
        return path if path.is_absolute() else self.project_root / path

    def _setup_logging(self) -> None:
        """Configures the root logger for consistent logging across the app."""
        log_config = self.get('logging', {}) or {}
        log_level_str = (self.log_level_override or log_config.get('level', 'INFO')).upper()
        log_level = getattr(logging, log_level_str, logging.INFO)

        # Someone else (pytest, a host app) owns the handlers; only adjust the level.
        root_logger = logging.getLogger()
        if root_logger.handlers:
            root_logger.setLevel(log_level)
            return

        handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
        if log_config.get('to_file', True):
            log_dir = self.project_root / log_config.get('directory', 'logs')
            log_dir.mkdir(exist_ok=True)
            handlers.insert(0, logging.FileHandler(log_dir / log_config.get('filename', 'smart_collections.log')))

        # Module loggers propagate to the root.
        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - [%(levelname)s] - %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
            handlers=handlers,
            force=True
        )

    def get(self, key_path: str, default: Any = None) -> Any:
        """Looks up a dotted key such as 'suggestions.max_suggestions', returning `default` if any level is missing."""
        value = self.yaml
        try:
            for key in key_path.split('.'):
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

# Module-level instance shared by the whole package.
config = AppConfig()
