"""
L0 Data — Curated tool catalog.

Three ordered tiers.  Pure data, no logic beyond lookup.

``command`` is the binary probed for presence when it differs from the
canonical name; ``packages`` overrides the package name per manager.
"""

from __future__ import annotations

from servercozy.core.models.tool import Tier, ToolDescriptor


def _tool(name: str, description: str, tier: Tier, **kwargs) -> ToolDescriptor:
    return ToolDescriptor(
        canonical_name=name,
        display_description=description,
        tier=tier,
        **kwargs,
    )


ESSENTIAL_TOOLS: tuple[ToolDescriptor, ...] = (
    _tool("git", "Version control system", Tier.ESSENTIAL),
    _tool("curl", "Command line tool for transferring data with URL syntax", Tier.ESSENTIAL),
    _tool("wget", "Network utility to retrieve files from the web", Tier.ESSENTIAL),
    _tool("htop", "Interactive process viewer", Tier.ESSENTIAL),
    _tool("tree", "Directory listing in tree format", Tier.ESSENTIAL),
    _tool("unzip", "List, test and extract compressed files in a ZIP archive", Tier.ESSENTIAL),
    _tool("vim", "Highly configurable text editor", Tier.ESSENTIAL),
    _tool("tmux", "Terminal multiplexer", Tier.ESSENTIAL),
)

RECOMMENDED_TOOLS: tuple[ToolDescriptor, ...] = (
    _tool("eza", "Modern replacement for ls (successor to exa)", Tier.RECOMMENDED),
    _tool("bat", "Cat clone with syntax highlighting", Tier.RECOMMENDED),
    _tool("ncdu", "Disk usage analyzer with ncurses interface", Tier.RECOMMENDED),
    _tool("tldr", "Simplified man pages", Tier.RECOMMENDED),
    _tool("jq", "Lightweight and flexible command-line JSON processor", Tier.RECOMMENDED),
    _tool("fzf", "Command-line fuzzy finder", Tier.RECOMMENDED),
    _tool("pfetch", "Simple system information tool", Tier.RECOMMENDED),
)

ADVANCED_TOOLS: tuple[ToolDescriptor, ...] = (
    _tool("ripgrep", "Line-oriented search tool (rg)", Tier.ADVANCED, command="rg"),
    _tool(
        "fd-find",
        "Simple, fast, and user-friendly alternative to find (fd)",
        Tier.ADVANCED,
        command="fd",
        packages={"apk": "fd", "pacman": "fd", "brew": "fd", "pkg": "fd"},
    ),
    _tool("neofetch", "Command-line system information tool", Tier.ADVANCED),
    _tool("micro", "Modern and intuitive terminal-based text editor", Tier.ADVANCED),
    _tool("zoxide", "Smarter cd command (z)", Tier.ADVANCED),
    _tool(
        "btop",
        "Resource monitor that shows usage and stats for CPU, memory, network and storage",
        Tier.ADVANCED,
    ),
)

TOOL_TIERS: dict[Tier, tuple[ToolDescriptor, ...]] = {
    Tier.ESSENTIAL: ESSENTIAL_TOOLS,
    Tier.RECOMMENDED: RECOMMENDED_TOOLS,
    Tier.ADVANCED: ADVANCED_TOOLS,
}

ALL_TOOLS: tuple[ToolDescriptor, ...] = ESSENTIAL_TOOLS + RECOMMENDED_TOOLS + ADVANCED_TOOLS

TIER_TITLES: dict[Tier, str] = {
    Tier.ESSENTIAL: "Essential Tools",
    Tier.RECOMMENDED: "Recommended Tools",
    Tier.ADVANCED: "Advanced Tools",
}
