"""
RunOptions — every toggle of a provisioning run.

Values come from (lowest to highest precedence): model defaults, the
optional YAML config file, CLI flags.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from servercozy.core.models.tool import Tier


class RunOptions(BaseModel):
    """Validated run options.  Unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")

    # ── Tool tiers ──────────────────────────────────────────────
    install_essential: bool = True
    install_recommended: bool = True
    install_advanced: bool = False

    # ── Interaction ─────────────────────────────────────────────
    interactive: bool = True
    use_dialog: bool = True
    user_only: bool = False
    skip_update: bool = False

    # ── Extras ──────────────────────────────────────────────────
    install_nerd_font: bool = True
    configure_prompt: bool = True
    configure_aliases: bool = True
    configure_vim: bool = True

    # Build a missing toolchain (cargo) to install a tool from source.
    # Still requires operator confirmation at run time.
    allow_toolchain_bootstrap: bool = False
    # Replace earlier servercozy blocks in dotfiles instead of appending.
    replace_existing_blocks: bool = True

    def tier_enabled(self, tier: Tier) -> bool:
        return {
            Tier.ESSENTIAL: self.install_essential,
            Tier.RECOMMENDED: self.install_recommended,
            Tier.ADVANCED: self.install_advanced,
        }[tier]

    def essential_only(self) -> RunOptions:
        return self.model_copy(update={
            "install_essential": True,
            "install_recommended": False,
            "install_advanced": False,
        })
