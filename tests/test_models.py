"""
Tests for the domain models and the tool catalogue.
"""

import pytest
from pydantic import ValidationError

from servercozy.core.models import (
    InstallationOutcome,
    OutcomeStatus,
    PrivilegeContext,
    RunOptions,
    RunSummary,
    Tier,
    ToolDescriptor,
)
from servercozy.core.services.provision.data.tools import ALL_TOOLS, TOOL_TIERS
from tests.provision.fakes import get_tool


class TestCatalogue:
    def test_tier_sizes(self):
        assert [len(TOOL_TIERS[t]) for t in Tier] == [8, 7, 6]

    def test_essential_order(self):
        names = [t.canonical_name for t in TOOL_TIERS[Tier.ESSENTIAL]]
        assert names == ["git", "curl", "wget", "htop", "tree", "unzip", "vim", "tmux"]

    def test_names_unique(self):
        names = [t.canonical_name for t in ALL_TOOLS]
        assert len(names) == len(set(names))

    def test_tier_field_matches_group(self):
        for tier, tools in TOOL_TIERS.items():
            assert all(t.tier == tier for t in tools)

    def test_binary_and_package_names(self):
        fd = get_tool("fd-find")
        assert fd.binary == "fd"
        assert fd.package_for("apt") == "fd-find"
        assert fd.package_for("pacman") == "fd"
        assert get_tool("ripgrep").binary == "rg"
        assert get_tool("git").binary == "git"

    def test_descriptors_are_frozen(self):
        with pytest.raises(ValidationError):
            get_tool("git").canonical_name = "hg"


class TestPrivilegeContext:
    def test_wrap(self):
        assert PrivilegeContext.elevated("doas").wrap(["apk", "add", "jq"]) == ["doas", "apk", "add", "jq"]
        assert PrivilegeContext.root().wrap(["apk", "update"]) == ["apk", "update"]
        assert PrivilegeContext.user_scope().wrap(["apk", "update"]) is None

    def test_labels(self):
        assert PrivilegeContext.elevated("sudo").label == "Available (sudo)"
        assert PrivilegeContext.user_scope().label == "Not Available (user-only mode)"


class TestRunOptions:
    def test_default_tiers(self):
        options = RunOptions()
        assert options.tier_enabled(Tier.ESSENTIAL)
        assert options.tier_enabled(Tier.RECOMMENDED)
        assert not options.tier_enabled(Tier.ADVANCED)

    def test_essential_only(self):
        options = RunOptions(install_advanced=True).essential_only()
        assert [options.tier_enabled(t) for t in Tier] == [True, False, False]

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError):
            RunOptions(install_everything=True)


class TestRunSummary:
    def test_record_keeps_order_and_replaces(self):
        summary = RunSummary()
        summary.record(InstallationOutcome.failure("git", "boom"))
        summary.record(InstallationOutcome.installed("curl", "package_manager"))
        summary.record(InstallationOutcome.already_installed("git"))

        assert [o.tool for o in summary.outcomes] == ["git", "curl"]
        assert summary.outcome_for("git").status == OutcomeStatus.ALREADY_INSTALLED

    def test_counts(self):
        summary = RunSummary()
        summary.record(InstallationOutcome.installed("a", "repository"))
        summary.record(InstallationOutcome.already_installed("b"))
        summary.record(InstallationOutcome.skipped("c", "no user-level method"))
        summary.record(InstallationOutcome.failure("d", "absent"))

        assert (summary.installed, summary.already_installed, summary.skipped, summary.failed) == (1, 1, 1, 1)
        assert summary.available_tools == {"a", "b"}

    def test_to_dict(self):
        summary = RunSummary(elapsed_seconds=12.345)
        summary.record(InstallationOutcome.installed("jq", "package_manager"))
        data = summary.to_dict()
        assert data["elapsed_seconds"] == 12.3
        assert data["outcomes"][0] == {
            "tool": "jq",
            "status": "installed",
            "reason": "",
            "method": "package_manager",
            "metadata": {},
        }


class TestOutcome:
    def test_ok_and_failed(self):
        assert InstallationOutcome.installed("x", "binary_download").ok
        assert not InstallationOutcome.skipped("x", "why").ok
        assert InstallationOutcome.failure("x", "why").failed

    def test_descriptor_defaults(self):
        tool = ToolDescriptor(canonical_name="jq")
        assert tool.tier == Tier.ESSENTIAL
        assert tool.binary == "jq"
