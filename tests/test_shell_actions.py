"""Zsh, Oh My Zsh, login shell and tmux step tests."""
from __future__ import annotations

import pytest
from conftest import FakeDownloader, FakeRunner

from devsetup.actions import (
    change_default_shell,
    configure_tmux,
    configure_zshrc,
    install_oh_my_zsh,
)
from devsetup.actions.shell import zshrc_context
from devsetup.platform_probe import Family
from devsetup.steps import FatalActionError, StepDeclined, StepOutcome

OMZ_URL = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
TMUX_URL = (
    "https://raw.githubusercontent.com/marcoshack/install/refs/heads/main/config/tmux.conf"
)


def test_oh_my_zsh_fresh_install_clones_plugins(make_context) -> None:
    """The installer runs unattended and missing plugins are cloned."""
    runner = FakeRunner()
    context = make_context(runner=runner, downloader=FakeDownloader({OMZ_URL: "echo omz"}))

    assert install_oh_my_zsh(context) is None

    (installer,) = [call for call in runner.calls if call[:2] == ["sh", "-c"]]
    assert installer == ["sh", "-c", "echo omz", "sh"]
    plugins_dir = context.home / ".oh-my-zsh" / "custom" / "plugins"
    assert [
        "git", "clone", "--depth", "1",
        "https://github.com/zsh-users/zsh-autosuggestions",
        str(plugins_dir / "zsh-autosuggestions"),
    ] in runner.calls
    assert runner.ran(
        "git clone --depth 1 https://github.com/zsh-users/zsh-syntax-highlighting.git"
    )


def test_oh_my_zsh_kept_by_default_but_plugins_checked(make_context) -> None:
    """Declining a reinstall still installs missing plugins."""
    runner = FakeRunner()
    downloader = FakeDownloader()
    context = make_context(runner=runner, downloader=downloader, answers=[""])
    plugins_dir = context.home / ".oh-my-zsh" / "custom" / "plugins"
    (plugins_dir / "zsh-autosuggestions").mkdir(parents=True)

    assert install_oh_my_zsh(context) is StepOutcome.DECLINED

    assert downloader.requested == []
    clones = [call for call in runner.calls if call[:2] == ["git", "clone"]]
    assert len(clones) == 1
    assert clones[0][-1] == str(plugins_dir / "zsh-syntax-highlighting")


def test_configure_zshrc_backs_up_unmanaged_file(make_context) -> None:
    """A hand-written .zshrc is saved once before the managed one is written."""
    context = make_context(Family.UBUNTU)
    target = context.home / ".zshrc"
    target.write_text("# my own zshrc\n")

    configure_zshrc(context)

    backup = context.home / ".zshrc.pre-devsetup"
    assert backup.read_text() == "# my own zshrc\n"
    rendered = target.read_text()
    assert "Managed by devsetup" in rendered
    assert "alias find='fdfind'" in rendered
    assert "✓ .zshrc configured" in context.printer.output()

    configure_zshrc(context)

    assert backup.read_text() == "# my own zshrc\n"
    assert "✓ .zshrc already up to date" in context.printer.output()


def test_zshrc_context_per_family(make_context) -> None:
    """Template variables follow the host family."""
    fedora = zshrc_context(make_context(Family.FEDORA))
    mac = zshrc_context(make_context(Family.MACOS))

    assert fedora["plugins"] == [
        "git", "golang", "fzf", "zsh-autosuggestions", "zsh-syntax-highlighting",
    ]
    assert fedora["cargo_env"] is False
    assert fedora["brew_prefix"] is None
    assert mac["brew_prefix"] is not None
    assert mac["fzf_source"] == "~/.fzf.zsh"


def test_change_default_shell(make_context) -> None:
    """chsh is invoked for the current user when zsh is not the login shell."""
    runner = FakeRunner(
        available={"zsh"},
        env={"PATH": "/usr/bin", "SHELL": "/bin/bash", "USER": "dev"},
    )
    context = make_context(runner=runner)

    change_default_shell(context)

    assert runner.calls == [["sudo", "chsh", "-s", "/usr/bin/zsh", "dev"]]
    assert context.env["SHELL"] == "/usr/bin/zsh"


def test_change_default_shell_noop_when_already_zsh(make_context) -> None:
    """Nothing runs when zsh is already the login shell."""
    runner = FakeRunner(available={"zsh"}, env={"PATH": "/usr/bin", "SHELL": "/usr/bin/zsh"})
    context = make_context(runner=runner)

    change_default_shell(context)

    assert runner.calls == []
    assert "Default shell is already zsh" in context.printer.output()


def test_change_default_shell_requires_zsh(make_context) -> None:
    """Missing zsh is a fatal error."""
    with pytest.raises(FatalActionError, match="zsh is not installed"):
        change_default_shell(make_context(runner=FakeRunner()))


def test_tmux_config_declined_by_default(make_context) -> None:
    """The shared tmux.conf is only installed on request."""
    downloader = FakeDownloader({TMUX_URL: "set -g mouse on\n"})
    context = make_context(downloader=downloader, answers=[""])

    with pytest.raises(StepDeclined, match="Skipping tmux configuration"):
        configure_tmux(context)
    assert not (context.home / ".tmux.conf").exists()


def test_tmux_config_downloaded_when_accepted(make_context) -> None:
    """Accepting downloads the file into the home directory."""
    downloader = FakeDownloader({TMUX_URL: "set -g mouse on\n"})
    context = make_context(downloader=downloader, answers=["y"])

    configure_tmux(context)

    assert (context.home / ".tmux.conf").read_text() == "set -g mouse on\n"
