"""Configuration management for appctl."""

import tomllib
from pathlib import Path

import tomli_w
from pydantic import BaseModel, Field, ValidationError

from .constants import DEFAULT_CONFIG_FILE, RESTART_DELAY, SETTLE_DELAY


class ConfigError(Exception):
    """Error loading or validating configuration."""


class ProjectConfig(BaseModel):
    """Project-level configuration."""

    name: str = "unnamed-project"


class ServerConfig(BaseModel):
    """The application server, recognised by interpreter and entry-point script."""

    name: str = "server"
    interpreter: str = "python"
    entry_point: str = "app/main.py"
    args: list[str] = Field(default_factory=list)
    cwd: str = "."
    env: dict[str, str] = Field(
        default_factory=lambda: {"PYTHONIOENCODING": "utf-8", "PYTHONUTF8": "1"},
        description="Environment overrides for the spawned server",
    )


class ToolConfig(BaseModel):
    """An auxiliary helper process, recognised by its listening port."""

    name: str
    command: str = Field(description="Launch command (e.g., 'redis-server --port 6379')")
    port: int = Field(gt=0, lt=65536)
    cwd: str = "."
    env: dict[str, str] = Field(default_factory=dict)


class SupervisorConfig(BaseModel):
    """Settle delays used by start/stop/restart."""

    settle_delay: float = Field(default=SETTLE_DELAY, ge=0)
    restart_delay: float = Field(default=RESTART_DELAY, ge=0)


class PathsConfig(BaseModel):
    """Locations of logs and the build lock file."""

    log_dir: str = "logs"
    lock_file: str = ".appctl/build.lock"


class RemediationConfig(BaseModel):
    """Pinned force-reinstall of one dependency after backend install."""

    installer: str = "poetry run pip install --force-reinstall"
    package: str
    version: str

    def command(self) -> str:
        """Full remediation command line."""
        return f"{self.installer} {self.package}=={self.version}"


class BuildConfig(BaseModel):
    """Build pipeline configuration."""

    required_tools: list[str] = Field(default=["poetry", "pnpm"])
    backend_dir: str = "."
    backend_steps: list[str] = Field(default=["poetry install"])
    remediation: RemediationConfig | None = None
    frontend_dir: str = "frontend"
    frontend_steps: list[str] = Field(default=["pnpm install", "pnpm run build"])
    frontend_output: str = "frontend/dist"
    destination: str = "static"
    step_timeout: int | None = Field(
        default=None, description="Per-step timeout in seconds; None waits indefinitely"
    )


class AppctlConfig(BaseModel):
    """Root configuration for appctl."""

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    tools: list[ToolConfig] = Field(default_factory=list)
    supervisor: SupervisorConfig = Field(default_factory=SupervisorConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)

    # Directory that relative paths resolve against; set by load_config
    project_root: Path = Field(default_factory=Path.cwd, exclude=True)

    def resolve(self, path: str) -> Path:
        """Resolve a configured path against the project root."""
        p = Path(path).expanduser()
        if p.is_absolute():
            return p
        return (self.project_root / p).resolve()

    @property
    def log_dir(self) -> Path:
        return self.resolve(self.paths.log_dir)

    @property
    def lock_path(self) -> Path:
        return self.resolve(self.paths.lock_file)


def load_config(config_path: Path | None = None) -> AppctlConfig:
    """Load config from a TOML file.

    Args:
        config_path: Path to config file (defaults to ./appctl.toml)

    Returns:
        Loaded configuration, or defaults if the file doesn't exist

    Raises:
        ConfigError: If the file cannot be parsed or fails validation
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILE
    root = config_path.resolve().parent

    if not config_path.exists():
        return AppctlConfig(project_root=root)

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read {config_path}: {e}") from e

    try:
        config = AppctlConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {config_path}: {e}") from e
    config.project_root = root
    return config


def write_config_template(config_path: Path) -> Path:
    """Write default config template.

    Args:
        config_path: File to write (parent directories are created)

    Returns:
        Path to the written config file
    """
    config_path.parent.mkdir(parents=True, exist_ok=True)
    template = {
        "project": {"name": "your-project"},
        "server": {
            "name": "server",
            "interpreter": "python",
            "entry_point": "app/main.py",
            "args": [],
            "cwd": ".",
            "env": {"PYTHONIOENCODING": "utf-8", "PYTHONUTF8": "1"},
        },
        # Helper processes are considered running when their port has a listener
        "tools": [
            {"name": "redis", "command": "redis-server --port 6379", "port": 6379, "cwd": "."},
        ],
        "supervisor": {"settle_delay": SETTLE_DELAY, "restart_delay": RESTART_DELAY},
        "paths": {"log_dir": "logs", "lock_file": ".appctl/build.lock"},
        "build": {
            "required_tools": ["poetry", "pnpm"],
            "backend_dir": ".",
            "backend_steps": ["poetry install"],
            "frontend_dir": "frontend",
            "frontend_steps": ["pnpm install", "pnpm run build"],
            "frontend_output": "frontend/dist",
            "destination": "static",
        },
    }
    with open(config_path, "wb") as f:
        tomli_w.dump(template, f)
    return config_path


# Config file selected by the CLI --config option (set by cli.py main callback)
_config_path: Path | None = None


def set_config_path(path: Path | None) -> None:
    """Set the config file used by commands."""
    global _config_path
    _config_path = path


def get_config_path() -> Path:
    """Config file selected on the command line, or ./appctl.toml."""
    return _config_path if _config_path is not None else Path.cwd() / DEFAULT_CONFIG_FILE
