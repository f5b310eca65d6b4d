from pathlib import Path
from pydantic import BaseModel
import os
from erpia_core import __version__
# Optionally load a config.env file so local deployments can keep overrides
# out of the process environment.
try:
    from dotenv import load_dotenv
    cfg_override = os.getenv('ERPIA_CONFIG_FILE')
    candidates = []
    if cfg_override:
        candidates.append(Path(cfg_override))
    candidates.append(Path.cwd() / 'config.env')
    candidates.append(Path.cwd() / 'backend' / 'config.env')

    for p in candidates:
        try:
            if p and p.exists():
                load_dotenv(str(p))
                break
        except Exception:
            continue
except Exception:
    pass

"""Central configuration.

All writable state lives below one application folder:

  <folder>/Plugins   installed plugins (one sub-folder per plugin)
  <folder>/Dinamic   generated dynamic namespace (rebuilt on deploy)
  <folder>/MyFiles   database, file cache and lock files

Env vars:
  ERPIA_FOLDER         application folder (created)
  ERPIA_CORE_DIR       built-in application tree deployed under the plugins
  ERPIA_DB_PATH        explicit path to the SQLite db file
  ERPIA_DATABASE_URL   full SQLAlchemy url (overrides ERPIA_DB_PATH)
  ERPIA_CORE_VERSION   override reported core version
"""

_diagnostics: list[str] = []


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str) -> list[str]:
    raw = os.getenv(name) or ''
    return [item.strip() for item in raw.split(',') if item.strip()]


env_folder = os.getenv('ERPIA_FOLDER')
folder = Path(env_folder) if env_folder else Path.cwd() / 'data'
try:
    folder.mkdir(parents=True, exist_ok=True)
    _diagnostics.append(f"selected_folder={folder}")
except Exception as e:  # pragma: no cover
    _diagnostics.append(f"folder_failed path={folder} err={e}")

env_core_dir = os.getenv('ERPIA_CORE_DIR')
core_dir = Path(env_core_dir) if env_core_dir else Path(__file__).resolve().parent.parent / 'app'

db_path = os.getenv('ERPIA_DB_PATH')
if db_path:
    db_path = Path(db_path)
else:
    db_path = folder / 'MyFiles' / 'erpia.db'
try:
    db_path.parent.mkdir(parents=True, exist_ok=True)
except Exception as e:  # pragma: no cover
    _diagnostics.append(f"db_dir_failed path={db_path.parent} err={e}")


class Settings(BaseModel):
    app_name: str = 'ERPIA'
    database_url: str = os.getenv('ERPIA_DATABASE_URL') or f'sqlite:///{db_path}'
    api_v1_prefix: str = '/api/v1'
    version: str = __version__
    core_version: str = os.getenv('ERPIA_CORE_VERSION', __version__)
    folder: Path = folder
    core_dir: Path = core_dir
    db_file: Path = db_path
    debug: bool = _env_flag('ERPIA_DEBUG')
    # Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = os.getenv('ERPIA_LOG_LEVEL', 'INFO')
    hidden_plugins: list[str] = _env_list('ERPIA_HIDDEN_PLUGINS')
    disable_add_plugins: bool = _env_flag('ERPIA_DISABLE_ADD_PLUGINS')
    disable_deploy_actions: bool = _env_flag('ERPIA_DISABLE_DEPLOY_ACTIONS')
    beta_updates: bool = _env_flag('ERPIA_BETA_UPDATES')
    forja_builds_url: str = os.getenv('ERPIA_FORJA_BUILDS_URL', 'https://erpia.com/DownloadBuild')
    forja_plugins_url: str = os.getenv('ERPIA_FORJA_PLUGINS_URL', 'https://erpia.com/PluginInfoList')
    cache_ttl: int = int(os.getenv('ERPIA_CACHE_TTL', '3600'))
    api_key: str | None = os.getenv('ERPIA_API_KEY')
    diagnostics: list[str] | None = _diagnostics

    @property
    def plugins_dir(self) -> Path:
        return self.folder / 'Plugins'

    @property
    def dinamic_dir(self) -> Path:
        return self.folder / 'Dinamic'

    @property
    def myfiles_dir(self) -> Path:
        return self.folder / 'MyFiles'

    @property
    def cache_dir(self) -> Path:
        return self.myfiles_dir / 'Tmp' / 'FileCache'

    @property
    def lock_dir(self) -> Path:
        return self.myfiles_dir / 'Tmp' / 'Locks'

settings = Settings()
