"""Configuration loading: TOML file + environment variable overlay."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[no-redef]


DEFAULT_CONFIG_DIR = Path.home() / ".config" / "agentsidecar"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"


def _default_socket_path() -> str:
    """Return a per-process socket path under XDG_RUNTIME_DIR or /tmp."""
    runtime = os.environ.get("XDG_RUNTIME_DIR")
    if runtime:
        return str(Path(runtime) / f"agentsidecar-{os.getpid()}.sock")
    return f"/tmp/agentsidecar-{os.getuid()}-{os.getpid()}.sock"


DEFAULT_CONFIG_TOML = """\
[server]
# socket_path defaults to XDG_RUNTIME_DIR or /tmp, one socket per process
request_timeout = 30.0

[claude]
# cli_path = "/path/to/claude"
setting_sources = ["user", "project", "local"]
include_partial_messages = true

[codex]
command = "codex"
sandbox_mode = "danger-full-access"
approval_policy = "never"
network_access = true
web_search = true
"""


@dataclass
class ServerConfig:
    socket_path: str = ""
    request_timeout: float = 30.0

    @property
    def resolved_socket_path(self) -> str:
        return self.socket_path or _default_socket_path()


@dataclass
class ClaudeConfig:
    cli_path: str = ""
    setting_sources: list[str] = field(default_factory=lambda: ["user", "project", "local"])
    include_partial_messages: bool = True


@dataclass
class CodexConfig:
    command: str = "codex"
    sandbox_mode: str = "danger-full-access"
    approval_policy: str = "never"
    network_access: bool = True
    web_search: bool = True


@dataclass
class SidecarConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)
    codex: CodexConfig = field(default_factory=CodexConfig)
    config_path: Path = DEFAULT_CONFIG_PATH


def _env_overlay(config: SidecarConfig) -> None:
    """Override config values with environment variables where applicable."""
    if socket := os.environ.get("AGENTSIDECAR_SOCKET"):
        config.server.socket_path = socket
    if timeout := os.environ.get("AGENTSIDECAR_REQUEST_TIMEOUT"):
        try:
            config.server.request_timeout = float(timeout)
        except ValueError:
            raise ValueError(
                f"AGENTSIDECAR_REQUEST_TIMEOUT must be a number, got {timeout!r}"
            ) from None
    if cli := os.environ.get("AGENTSIDECAR_CLAUDE_CLI"):
        config.claude.cli_path = cli
    if command := os.environ.get("AGENTSIDECAR_CODEX_COMMAND"):
        config.codex.command = command


def load_config(config_path: Path | None = None) -> SidecarConfig:
    """Load configuration from TOML file with env var overlay."""
    path = config_path or DEFAULT_CONFIG_PATH

    if path.exists():
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    else:
        raw = tomllib.loads(DEFAULT_CONFIG_TOML)

    server_raw = raw.get("server", {})
    claude_raw = raw.get("claude", {})
    codex_raw = raw.get("codex", {})

    config = SidecarConfig(
        server=ServerConfig(
            socket_path=server_raw.get("socket_path", ""),
            request_timeout=float(server_raw.get("request_timeout", 30.0)),
        ),
        claude=ClaudeConfig(
            cli_path=claude_raw.get("cli_path", ""),
            setting_sources=list(claude_raw.get("setting_sources", ["user", "project", "local"])),
            include_partial_messages=claude_raw.get("include_partial_messages", True),
        ),
        codex=CodexConfig(
            command=codex_raw.get("command", "codex"),
            sandbox_mode=codex_raw.get("sandbox_mode", "danger-full-access"),
            approval_policy=codex_raw.get("approval_policy", "never"),
            network_access=codex_raw.get("network_access", True),
            web_search=codex_raw.get("web_search", True),
        ),
        config_path=path,
    )

    _env_overlay(config)
    return config


def init_config(config_path: Path | None = None) -> Path:
    """Create default config file."""
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG_TOML)
    return path
