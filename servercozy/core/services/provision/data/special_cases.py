"""
L0 Data — Fallback chains for tools that need more than one attempt.

Each chain is an ordered list of steps.  The first step that leaves a
usable binary on the system wins.  Step kinds:

    repository               install a family-specific package name
    third_party_repository   register an extra repository, then install
    binary_download          fetch a pre-built binary for this architecture
                             (optionally limited to the listed ``families``)
    toolchain_build          build with an alternate toolchain (cargo)

``"_default"`` keys apply to every family not listed explicitly.
Pure data, no logic.
"""

from __future__ import annotations

from typing import NamedTuple


SPECIAL_CASE_CHAINS: dict[str, dict] = {

    "fd-find": {
        "canonical": "fd",
        "steps": [
            {
                "kind": "repository",
                "packages": {
                    "debian": ["fd-find"],
                    "redhat": ["fd-find", "fd"],
                    "alpine": ["fd"],
                    "arch": ["fd"],
                    "macos": ["fd"],
                    "bsd": ["fd-find"],
                    "_default": ["fd-find", "fd"],
                },
                "binaries": ["fd", "fdfind", "fd-find"],
            },
            {
                "kind": "toolchain_build",
                "toolchain": "cargo",
                "args": ["install", "fd-find"],
                "binaries": ["fd"],
            },
        ],
    },

    "eza": {
        "canonical": "eza",
        "steps": [
            {
                "kind": "repository",
                "packages": {
                    "redhat": ["eza"],
                    "alpine": ["eza"],
                    "arch": ["eza"],
                    "macos": ["eza"],
                    "bsd": ["eza"],
                },
                "binaries": ["eza"],
            },
            {
                "kind": "third_party_repository",
                "families": ["debian"],
                "prerequisites": ["gpg"],
                "key_url": "https://raw.githubusercontent.com/eza-community/eza/main/deb.asc",
                "keyring": "/etc/apt/keyrings/gierens.gpg",
                "list_file": "/etc/apt/sources.list.d/gierens.list",
                "source_line": (
                    "deb [signed-by=/etc/apt/keyrings/gierens.gpg] "
                    "http://deb.gierens.de stable main"
                ),
                "package": "eza",
                "binaries": ["eza"],
            },
            {
                "kind": "binary_download",
                # Release assets are Linux builds only
                "families": ["debian", "redhat", "alpine", "arch", "unknown"],
                "url": "https://github.com/eza-community/eza/releases/latest/download/eza_{target}.tar.gz",
                "targets": {
                    "amd64": "x86_64-unknown-linux-gnu",
                    "arm64": "aarch64-unknown-linux-gnu",
                },
                "archive": "tar.gz",
                "member": "eza",
                "binary": "eza",
            },
            {
                "kind": "toolchain_build",
                "toolchain": "cargo",
                "args": ["install", "eza"],
                "binaries": ["eza"],
            },
        ],
    },

    "bat": {
        "canonical": "bat",
        "steps": [
            {
                "kind": "repository",
                "packages": {
                    "debian": ["bat"],
                    "_default": ["bat"],
                },
                # Debian ships the binary as batcat
                "binaries": ["bat", "batcat"],
            },
            {
                "kind": "toolchain_build",
                "toolchain": "cargo",
                "args": ["install", "--locked", "bat"],
                "binaries": ["bat"],
            },
        ],
    },

    "pfetch": {
        "canonical": "pfetch",
        "steps": [
            {
                "kind": "binary_download",
                "url": "https://github.com/dylanaraps/pfetch/archive/master.zip",
                "targets": None,
                "archive": "zip",
                "member": "pfetch-master/pfetch",
                "binary": "pfetch",
            },
        ],
    },
}


class UserMethod(NamedTuple):
    """A per-user install path that needs no privilege."""

    toolchain: str          # binary that must be on PATH
    argv: tuple[str, ...]   # ``{prefix}`` expands to ~/.local
    bin_dir: str            # where the result lands, relative to $HOME


# Fixed allow-list.  Tools absent here have no user-level method.
USER_LEVEL_METHODS: dict[str, tuple[UserMethod, ...]] = {
    "tldr": (
        UserMethod("npm", ("npm", "install", "-g", "--prefix", "{prefix}", "tldr"), ".local/bin"),
        UserMethod("pip3", ("pip3", "install", "--user", "tldr"), ".local/bin"),
        UserMethod("pip", ("pip", "install", "--user", "tldr"), ".local/bin"),
    ),
    "bat": (UserMethod("cargo", ("cargo", "install", "--locked", "bat"), ".cargo/bin"),),
    "fd-find": (UserMethod("cargo", ("cargo", "install", "fd-find"), ".cargo/bin"),),
    "ripgrep": (UserMethod("cargo", ("cargo", "install", "ripgrep"), ".cargo/bin"),),
    "eza": (UserMethod("cargo", ("cargo", "install", "eza"), ".cargo/bin"),),
    "zoxide": (UserMethod("cargo", ("cargo", "install", "--locked", "zoxide"), ".cargo/bin"),),
}

# Installer that bootstraps cargo into ~/.cargo when the operator allows it
RUSTUP_INSTALL_URL = "https://sh.rustup.rs"

USER_TOOLCHAINS: tuple[str, ...] = ("npm", "cargo", "pip3", "pip")
