"""Configuration loader for devsetup.

This module centralises the logic for reading configuration values from
multiple sources, in increasing precedence:

1. Built-in defaults.
2. ``~/.config/devsetup/config.yml`` (or an override path).
3. Environment variables prefixed with ``DEVSETUP_``.
4. Explicit overrides supplied programmatically (reserved for CLI flags).

Environment keys use double underscores to express nesting, e.g.::

    export DEVSETUP_SHELL__ZSH_THEME=agnoster
    export DEVSETUP_PACKAGES__CLI_TOOLS__FEDORA="[zsh, fzf]"

Values are coerced via PyYAML's ``safe_load`` so that booleans, numbers and
flow-style lists are parsed naturally. The resulting configuration is exposed
as immutable ``dataclasses``.
"""
from __future__ import annotations

import os
from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import cast

try:  # PyYAML is a runtime dependency (declared in pyproject.toml).
    import yaml
except Exception as exc:  # pragma: no cover - import failure covered in tests
    raise RuntimeError(
        "PyYAML is required to load devsetup configuration. Install with "
        "`pip install devsetup` or ensure PyYAML>=6.0 is available."
    ) from exc


ENV_PREFIX = "DEVSETUP_"
CONFIG_ENV_VAR = f"{ENV_PREFIX}CONFIG_FILE"
RESERVED_ENV_KEYS = {CONFIG_ENV_VAR}

FAMILY_KEYS = ("macos", "fedora", "ubuntu", "windows")


class ConfigError(RuntimeError):
    """Raised when configuration parsing fails."""


@dataclass(frozen=True)
class PackagesConfig:
    """Package lists installed by the package steps, keyed by platform family."""

    dev_tools: Mapping[str, tuple[str, ...]]
    cli_tools: Mapping[str, tuple[str, ...]]

    def for_family(self, group: str, family: str) -> tuple[str, ...]:
        """Return the package list *group* for *family* (empty when unknown)."""
        table = self.dev_tools if group == "dev_tools" else self.cli_tools
        return tuple(table.get(family, ()))

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "dev_tools": {key: list(value) for key, value in self.dev_tools.items()},
            "cli_tools": {key: list(value) for key, value in self.cli_tools.items()},
        }


@dataclass(frozen=True)
class UrlsConfig:
    """Remote locations used by fetch-and-run bootstrap steps."""

    homebrew_install: str
    ohmyzsh_install: str
    rustup_install: str
    uv_install: str
    tmux_conf: str
    go_version: str
    go_download: str
    zsh_plugins: Mapping[str, str]

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "homebrew_install": self.homebrew_install,
            "ohmyzsh_install": self.ohmyzsh_install,
            "rustup_install": self.rustup_install,
            "uv_install": self.uv_install,
            "tmux_conf": self.tmux_conf,
            "go_version": self.go_version,
            "go_download": self.go_download,
            "zsh_plugins": dict(self.zsh_plugins),
        }


@dataclass(frozen=True)
class ShellConfig:
    """Shell framework and prompt preferences."""

    zsh_theme: str = "robbyrussell"
    editor: str = "vim"
    posh_theme: str = "devsetup"
    nerd_font: str = "Meslo"
    terminal_font_face: str = "MesloLGM Nerd Font"

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "zsh_theme": self.zsh_theme,
            "editor": self.editor,
            "posh_theme": self.posh_theme,
            "nerd_font": self.nerd_font,
            "terminal_font_face": self.terminal_font_face,
        }


@dataclass(frozen=True)
class AppConfig:
    """Resolved configuration values for devsetup."""

    config_file: Path
    home: Path
    skip_file: Path
    logs_dir: Path
    templates_dir: Path | None
    ssh_key_path: Path
    dry_run: bool
    packages: PackagesConfig
    urls: UrlsConfig
    shell: ShellConfig

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable representation of the config."""
        return {
            "config_file": str(self.config_file),
            "home": str(self.home),
            "skip_file": str(self.skip_file),
            "logs_dir": str(self.logs_dir),
            "templates_dir": str(self.templates_dir) if self.templates_dir else None,
            "ssh_key_path": str(self.ssh_key_path),
            "dry_run": self.dry_run,
            "packages": self.packages.to_dict(),
            "urls": self.urls.to_dict(),
            "shell": self.shell.to_dict(),
        }


DEFAULTS: dict[str, object] = {
    "config_file": "~/.config/devsetup/config.yml",
    "home": "~",
    "skip_file": None,  # derived from home when absent
    "logs_dir": "~/.local/state/devsetup",
    "templates_dir": None,
    "ssh_key_path": None,  # derived from home when absent
    "dry_run": False,
    "packages": {
        "dev_tools": {
            "macos": [
                "git", "curl", "wget", "vim", "htop", "tmux", "unzip",
                "gnu-tar", "gawk", "coreutils", "findutils", "gnu-sed",
            ],
            "fedora": [
                "gcc", "gcc-c++", "make", "automake", "autoconf", "libtool",
                "pkgconfig", "git", "curl", "wget", "vim", "htop", "tmux",
                "unzip", "tar", "gawk",
            ],
            "ubuntu": [
                "build-essential", "automake", "autoconf", "libtool", "pkg-config",
                "git", "curl", "wget", "vim", "htop", "tmux", "unzip", "tar", "gawk",
            ],
            "windows": [
                "Git.Git", "Microsoft.PowerShell", "Microsoft.WindowsTerminal",
                "vim.vim", "7zip.7zip",
            ],
        },
        "cli_tools": {
            "macos": ["fzf", "ripgrep", "bat", "fd"],
            "fedora": ["zsh", "fzf", "ripgrep", "bat", "util-linux-user"],
            "ubuntu": ["zsh", "fzf", "ripgrep", "bat", "fd-find"],
            "windows": [
                "junegunn.fzf", "BurntSushi.ripgrep.MSVC", "sharkdp.bat", "sharkdp.fd",
            ],
        },
    },
    "urls": {
        "homebrew_install": "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh",
        "ohmyzsh_install": (
            "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
        ),
        "rustup_install": "https://sh.rustup.rs",
        "uv_install": "https://astral.sh/uv/install.sh",
        "tmux_conf": (
            "https://raw.githubusercontent.com/marcoshack/install/refs/heads/main/config/tmux.conf"
        ),
        "go_version": "https://go.dev/VERSION?m=text",
        "go_download": "https://go.dev/dl/{version}.{os}-{arch}.tar.gz",
        "zsh_plugins": {
            "zsh-autosuggestions": "https://github.com/zsh-users/zsh-autosuggestions",
            "zsh-syntax-highlighting": "https://github.com/zsh-users/zsh-syntax-highlighting.git",
        },
    },
    "shell": {
        "zsh_theme": "robbyrussell",
        "editor": "vim",
        "posh_theme": "devsetup",
        "nerd_font": "Meslo",
        "terminal_font_face": "MesloLGM Nerd Font",
    },
}

ALLOWED_TOP_LEVEL_KEYS = set(DEFAULTS.keys())
ALLOWED_PACKAGE_GROUPS = {"dev_tools", "cli_tools"}
ALLOWED_URL_KEYS = {
    "homebrew_install",
    "ohmyzsh_install",
    "rustup_install",
    "uv_install",
    "tmux_conf",
    "go_version",
    "go_download",
    "zsh_plugins",
}
ALLOWED_SHELL_KEYS = {"zsh_theme", "editor", "posh_theme", "nerd_font", "terminal_font_face"}


def load_config(
    config_file: str | os.PathLike[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, object] | None = None,
) -> AppConfig:
    """Load and merge configuration sources into an :class:`AppConfig`."""
    merged: dict[str, object] = _deep_copy(DEFAULTS)
    resolved_env = dict(os.environ if env is None else env)

    config_default = _expect_str(merged["config_file"], "config_file")
    config_path = _determine_config_path(config_default, config_file, resolved_env)

    file_values = _load_yaml_file(config_path)
    if file_values:
        _deep_merge(merged, file_values)

    env_values = _build_env_overrides(resolved_env)
    if env_values:
        _deep_merge(merged, env_values)

    if overrides:
        _deep_merge(merged, dict(overrides))

    merged["config_file"] = str(config_path)

    _validate_structure(merged)

    return _build_app_config(merged)


def _determine_config_path(
    default_path: str,
    cli_override: str | os.PathLike[str] | None,
    env: Mapping[str, str],
) -> Path:
    if cli_override:
        return Path(cli_override).expanduser()
    if CONFIG_ENV_VAR in env:
        return Path(env[CONFIG_ENV_VAR]).expanduser()
    return Path(default_path).expanduser()


def _load_yaml_file(path: Path) -> dict[str, object]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - PyYAML owns detailed error
        raise ConfigError(f"Failed to parse config file {path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level.")
    return _as_dict(data, f"file:{path}")


def _validate_structure(raw: Mapping[str, object]) -> None:
    unknown_keys = set(raw.keys()) - ALLOWED_TOP_LEVEL_KEYS
    if unknown_keys:
        joined = ", ".join(sorted(unknown_keys))
        raise ConfigError(f"Unknown configuration keys: {joined}.")

    packages = raw.get("packages")
    if packages is not None:
        packages_map = _as_dict(packages, "packages")
        unknown = set(packages_map.keys()) - ALLOWED_PACKAGE_GROUPS
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ConfigError(f"Unknown packages configuration keys: {joined}.")
        for group, table in packages_map.items():
            table_map = _as_dict(table, f"packages.{group}")
            unknown_families = set(table_map.keys()) - set(FAMILY_KEYS)
            if unknown_families:
                joined = ", ".join(sorted(unknown_families))
                raise ConfigError(f"Unknown platform families in packages.{group}: {joined}.")
            for family, entries in table_map.items():
                _as_str_tuple(entries, f"packages.{group}.{family}")

    urls = raw.get("urls")
    if urls is not None:
        urls_map = _as_dict(urls, "urls")
        unknown = set(urls_map.keys()) - ALLOWED_URL_KEYS
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ConfigError(f"Unknown urls configuration keys: {joined}.")
        go_download = urls_map.get("go_download")
        if go_download is not None and "{version}" not in str(go_download):
            raise ConfigError("urls.go_download must contain a '{version}' placeholder.")

    shell = raw.get("shell")
    if shell is not None:
        shell_map = _as_dict(shell, "shell")
        unknown = set(shell_map.keys()) - ALLOWED_SHELL_KEYS
        if unknown:
            joined = ", ".join(sorted(unknown))
            raise ConfigError(f"Unknown shell configuration keys: {joined}.")


def _build_app_config(raw: Mapping[str, object]) -> AppConfig:
    config_file = _to_path(raw.get("config_file"))
    home = _to_path(raw.get("home"))

    skip_file_value = raw.get("skip_file")
    skip_file = _to_path(skip_file_value) if skip_file_value else home / ".install.conf"

    ssh_key_value = raw.get("ssh_key_path")
    ssh_key_path = _to_path(ssh_key_value) if ssh_key_value else home / ".ssh" / "id_ed25519"

    templates_value = raw.get("templates_dir")
    templates_dir = _to_path(templates_value) if templates_value else None

    dry_run_value = raw.get("dry_run", False)
    if not isinstance(dry_run_value, bool):
        raise ConfigError(f"Expected dry_run to be a boolean. Got {dry_run_value!r}.")

    packages_mapping = _as_dict(raw.get("packages"), "packages")
    packages = PackagesConfig(
        dev_tools=_family_table(packages_mapping.get("dev_tools"), "packages.dev_tools"),
        cli_tools=_family_table(packages_mapping.get("cli_tools"), "packages.cli_tools"),
    )

    urls_mapping = _as_dict(raw.get("urls"), "urls")
    plugins_mapping = _as_dict(urls_mapping.get("zsh_plugins"), "urls.zsh_plugins")
    urls = UrlsConfig(
        homebrew_install=str(urls_mapping.get("homebrew_install", "")),
        ohmyzsh_install=str(urls_mapping.get("ohmyzsh_install", "")),
        rustup_install=str(urls_mapping.get("rustup_install", "")),
        uv_install=str(urls_mapping.get("uv_install", "")),
        tmux_conf=str(urls_mapping.get("tmux_conf", "")),
        go_version=str(urls_mapping.get("go_version", "")),
        go_download=str(urls_mapping.get("go_download", "")),
        zsh_plugins={str(name): str(url) for name, url in plugins_mapping.items()},
    )

    shell_mapping = _as_dict(raw.get("shell"), "shell")
    default_shell = ShellConfig()
    shell = ShellConfig(
        zsh_theme=str(shell_mapping.get("zsh_theme", default_shell.zsh_theme)),
        editor=str(shell_mapping.get("editor", default_shell.editor)),
        posh_theme=str(shell_mapping.get("posh_theme", default_shell.posh_theme)),
        nerd_font=str(shell_mapping.get("nerd_font", default_shell.nerd_font)),
        terminal_font_face=str(
            shell_mapping.get("terminal_font_face", default_shell.terminal_font_face)
        ),
    )

    return AppConfig(
        config_file=config_file,
        home=home,
        skip_file=skip_file,
        logs_dir=_to_path(raw.get("logs_dir")),
        templates_dir=templates_dir,
        ssh_key_path=ssh_key_path,
        dry_run=dry_run_value,
        packages=packages,
        urls=urls,
        shell=shell,
    )


def _family_table(value: object | None, label: str) -> dict[str, tuple[str, ...]]:
    mapping = _as_dict(value, label)
    return {
        family: _as_str_tuple(entries, f"{label}.{family}")
        for family, entries in mapping.items()
    }


def _build_env_overrides(env: Mapping[str, str]) -> dict[str, object]:
    overrides: dict[str, object] = {}
    for key, value in env.items():
        if key in RESERVED_ENV_KEYS:
            continue
        if not key.startswith(ENV_PREFIX):
            continue
        suffix = key[len(ENV_PREFIX) :]
        path_segments = [segment.lower() for segment in suffix.split("__") if segment]
        if not path_segments:
            continue
        _assign_nested(overrides, path_segments, _coerce_value(value))
    return overrides


def _assign_nested(tree: MutableMapping[str, object], path: list[str], value: object) -> None:
    current: MutableMapping[str, object] = tree
    for segment in path[:-1]:
        existing = current.get(segment)
        if existing is None:
            new_child: MutableMapping[str, object] = {}
            current[segment] = new_child
            current = new_child
            continue
        if isinstance(existing, MutableMapping):
            current = cast(MutableMapping[str, object], existing)
            continue
        raise ConfigError(
            "Environment overrides conflict with existing scalar value at "
            f"{'.'.join(path)}"
        )
    current[path[-1]] = value


def _deep_merge(target: MutableMapping[str, object], overrides: Mapping[str, object]) -> None:
    for key, value in overrides.items():
        existing = target.get(key)
        if isinstance(existing, MutableMapping) and isinstance(value, Mapping):
            _deep_merge(existing, _as_dict(value, f"merge.{key}"))
            continue
        target[key] = value


def _deep_copy(source: Mapping[str, object]) -> dict[str, object]:
    result: dict[str, object] = {}
    for key, value in source.items():
        if isinstance(value, Mapping):
            result[key] = _deep_copy(_as_dict(value, f"copy.{key}"))
        elif isinstance(value, list):
            result[key] = list(value)
        else:
            result[key] = value
    return result


def _as_sequence(value: object, label: str) -> Sequence[object]:
    if isinstance(value, (str, bytes)):
        raise ConfigError(f"Expected {label} to be a sequence. Got {type(value).__name__}.")
    if not isinstance(value, Sequence):
        raise ConfigError(f"Expected {label} to be a sequence. Got {type(value).__name__}.")
    return value


def _as_str_tuple(value: object | None, label: str) -> tuple[str, ...]:
    if value is None:
        return ()
    items: list[str] = []
    for index, entry in enumerate(_as_sequence(value, label)):
        if not isinstance(entry, str) or not entry.strip():
            raise ConfigError(f"{label}[{index}] must be a non-empty string.")
        items.append(entry.strip())
    return tuple(items)


def _coerce_value(raw: str) -> object:
    raw = raw.strip()
    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError:  # pragma: no cover - treat as string if parsing fails
        return raw
    return parsed


def _to_path(value: object) -> Path:
    if value is None:
        raise ConfigError("Expected a filesystem path, received None.")
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise ConfigError(f"Cannot convert value {value!r} to Path.")


def _expect_str(value: object, key: str) -> str:
    if isinstance(value, str):
        return value
    raise ConfigError(f"Expected {key} to resolve to a string. Got {value!r}.")


def _as_dict(value: object | None, label: str) -> dict[str, object]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Expected {label} to be a mapping. Got {type(value).__name__}.")
    result: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise ConfigError(f"Mapping {label} must use string keys. Got {key!r}.")
        result[key] = item
    return result


__all__ = [
    "AppConfig",
    "ConfigError",
    "FAMILY_KEYS",
    "PackagesConfig",
    "ShellConfig",
    "UrlsConfig",
    "load_config",
]
