"""Windows prompt, font and terminal settings steps."""
from __future__ import annotations

import json
from collections.abc import MutableMapping
from pathlib import Path

import yaml

from ..steps import OptionalActionError, ProvisionContext, StepDeclined
from .base import fatal_errors, install_packages, optional_errors, read_text_or_empty
from .shell import MANAGED_MARKER

OH_MY_POSH_PACKAGE = "JanDeDobbeleer.OhMyPosh"

PROFILE_TEMPLATE = "powershell_profile.ps1.j2"

TERMINAL_PACKAGE_DIR = "Microsoft.WindowsTerminal_8wekyb3d8bbwe"


def posh_theme_document() -> dict[str, object]:
    """Return the Oh My Posh prompt definition written by devsetup."""
    return {
        "$schema": (
            "https://raw.githubusercontent.com/JanDeDobbeleer/oh-my-posh/main/themes/schema.json"
        ),
        "version": 2,
        "final_space": True,
        "blocks": [
            {
                "type": "prompt",
                "alignment": "left",
                "segments": [
                    {
                        "type": "path",
                        "style": "plain",
                        "foreground": "cyan",
                        "template": "{{ .Path }} ",
                        "properties": {"style": "folder"},
                    },
                    {
                        "type": "git",
                        "style": "plain",
                        "foreground": "magenta",
                        "template": "{{ .HEAD }} ",
                        "properties": {"fetch_status": True},
                    },
                    {
                        "type": "text",
                        "style": "plain",
                        "foreground": "green",
                        "template": "❯",
                    },
                ],
            }
        ],
    }


def posh_theme_path(context: ProvisionContext) -> Path:
    """Return where the prompt theme is stored."""
    return context.home / ".config" / "oh-my-posh" / f"{context.config.shell.posh_theme}.omp.yaml"


def write_posh_theme(context: ProvisionContext) -> bool:
    """Write the theme document, asking before replacing a different one."""
    target = posh_theme_path(context)
    content = yaml.safe_dump(posh_theme_document(), sort_keys=False, allow_unicode=True)
    existing = read_text_or_empty(target)
    if existing == content:
        context.printer.info(f"✓ Oh My Posh theme already up to date at {target}")
        return False
    if existing and not context.confirm(
        f"Do you want to replace the Oh My Posh theme at {target}?", default=False
    ):
        context.printer.info("Keeping existing Oh My Posh theme")
        return False
    if context.dry_run:
        context.printer.info(f"dry-run: would write {target}")
        return True
    with fatal_errors(f"Writing {target}"):
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    context.printer.info(f"✓ Oh My Posh theme written to {target}")
    return True


def install_nerd_font(context: ProvisionContext) -> None:
    """Install the configured Nerd Font through ``oh-my-posh font install``."""
    font = context.config.shell.nerd_font
    if context.runner.which("oh-my-posh") is None:
        raise OptionalActionError("oh-my-posh is not on PATH; cannot install fonts")
    context.printer.info(f"Installing {font} Nerd Font...")
    context.runner.run(["oh-my-posh", "font", "install", font, "--user"])


def terminal_settings_path(context: ProvisionContext) -> Path:
    """Return the Windows Terminal ``settings.json`` location."""
    local = context.env.get("LOCALAPPDATA")
    base = Path(local) if local else context.home / "AppData" / "Local"
    return base / "Packages" / TERMINAL_PACKAGE_DIR / "LocalState" / "settings.json"


def strip_comment_lines(text: str) -> tuple[str, bool]:
    """Drop whole-line ``//`` comments that Windows Terminal accepts in ``settings.json``."""
    kept = [line for line in text.splitlines() if not line.lstrip().startswith("//")]
    return "\n".join(kept), len(kept) != len(text.splitlines())


def set_default_font_face(settings: MutableMapping[str, object], face: str) -> bool:
    """Set ``profiles.defaults.font.face`` in *settings*; return ``True`` if changed."""
    profiles = settings.setdefault("profiles", {})
    if not isinstance(profiles, MutableMapping):
        raise OptionalActionError("Windows Terminal 'profiles' uses the legacy list format")
    defaults = profiles.setdefault("defaults", {})
    if not isinstance(defaults, MutableMapping):
        raise OptionalActionError("Windows Terminal 'profiles.defaults' is not an object")
    font = defaults.setdefault("font", {})
    if not isinstance(font, MutableMapping):
        raise OptionalActionError("Windows Terminal 'profiles.defaults.font' is not an object")
    if font.get("face") == face:
        return False
    font["face"] = face
    return True


def configure_terminal_font(context: ProvisionContext) -> bool:
    """Point Windows Terminal's default profile at the Nerd Font."""
    path = terminal_settings_path(context)
    face = context.config.shell.terminal_font_face
    try:
        text, had_comments = strip_comment_lines(path.read_text(encoding="utf-8"))
        settings = json.loads(text)
    except FileNotFoundError as exc:
        raise OptionalActionError(f"Windows Terminal settings not found at {path}") from exc
    except json.JSONDecodeError as exc:
        raise OptionalActionError(
            f"Cannot parse {path} (only whole-line // comments are supported): {exc}"
        ) from exc
    if not isinstance(settings, MutableMapping):
        raise OptionalActionError(f"Unexpected document in {path}")
    if not set_default_font_face(settings, face):
        context.printer.info(f"✓ Windows Terminal already uses {face}")
        return False
    if context.dry_run:
        context.printer.info(f"dry-run: would set font face {face} in {path}")
        return True
    if had_comments:
        context.printer.warn(f"Comment lines in {path} are not kept when it is rewritten")
    path.write_text(json.dumps(settings, indent=4) + "\n", encoding="utf-8")
    context.printer.info(f"✓ Windows Terminal font set to {face}")
    return True


def configure_oh_my_posh(context: ProvisionContext) -> None:
    """Install Oh My Posh, write its theme, then the optional font tweaks."""
    if context.runner.which("oh-my-posh") is None:
        context.printer.info("Installing Oh My Posh...")
        install_packages(context, (OH_MY_POSH_PACKAGE,))
    write_posh_theme(context)
    with optional_errors(context, "Nerd Font installation"):
        install_nerd_font(context)
    with optional_errors(context, "Windows Terminal font"):
        configure_terminal_font(context)


def powershell_profile_path(context: ProvisionContext) -> Path:
    """Return ``$PROFILE`` for PowerShell 7, falling back to the default location."""
    for shell in ("pwsh", "powershell"):
        if context.runner.which(shell) is None:
            continue
        reported = context.runner.output([shell, "-NoProfile", "-Command", "$PROFILE"])
        if reported:
            return Path(reported)
    return context.home / "Documents" / "PowerShell" / "Microsoft.PowerShell_profile.ps1"


def configure_powershell_profile(context: ProvisionContext) -> None:
    """Render the PowerShell profile, asking before replacing a hand-written one."""
    printer = context.printer
    target = powershell_profile_path(context)
    existing = read_text_or_empty(target)
    if existing and MANAGED_MARKER not in existing:
        printer.warn(f"PowerShell profile already exists at {target}")
        if not context.confirm("Do you want to replace your PowerShell profile?", default=False):
            raise StepDeclined("Keeping existing PowerShell profile")
    if context.dry_run:
        printer.info(f"dry-run: would render {target}")
        return
    variables = {
        "theme_path": str(posh_theme_path(context)),
        "editor": context.config.shell.editor,
    }
    with fatal_errors(f"Writing {target}"):
        changed = context.templates.render_to_path(PROFILE_TEMPLATE, target, variables)
    if changed:
        printer.info(f"✓ PowerShell profile written to {target}")
    else:
        printer.info("✓ PowerShell profile already up to date")


def configure_prompt(context: ProvisionContext) -> None:
    """Set up Oh My Posh, then the PowerShell profile that loads it."""
    configure_oh_my_posh(context)
    configure_powershell_profile(context)


__all__ = [
    "configure_oh_my_posh",
    "configure_powershell_profile",
    "configure_prompt",
    "configure_terminal_font",
    "install_nerd_font",
    "posh_theme_document",
    "posh_theme_path",
    "powershell_profile_path",
    "set_default_font_face",
    "strip_comment_lines",
    "terminal_settings_path",
    "write_posh_theme",
]
