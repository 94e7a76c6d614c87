"""Tests for installation kind auto-detection."""

import pytest

from pathresolution.detection import detect_installation_kind
from pathresolution.models import InstallationKind


class TestDetectInstallationKind:
    """Filesystem evidence to layout convention."""

    def test_standard(self, site):
        """A manifest with default layout is standard."""
        root = site(dirs=["vendor", "public/typo3conf"], files={"composer.json": {"name": "acme/site"}})
        assert detect_installation_kind(root) is InstallationKind.STANDARD

    @pytest.mark.parametrize("manifest", [
        {"config": {"vendor-dir": "libs"}},
        {"extra": {"typo3/cms": {"web-dir": "htdocs"}}},
    ])
    def test_custom_from_manifest_overrides(self, site, manifest):
        """Non-default vendor-dir or web-dir makes the layout custom."""
        root = site(files={"composer.json": manifest})
        assert detect_installation_kind(root) is InstallationKind.CUSTOM

    def test_default_values_are_not_custom(self, site):
        """Spelling out the default directories does not make the layout custom."""
        root = site(
            dirs=["vendor"],
            files={"composer.json": {"config": {"vendor-dir": "vendor/"}, "extra": {"typo3/cms": {"web-dir": "public"}}}},
        )
        assert detect_installation_kind(root) is InstallationKind.STANDARD

    def test_custom_from_web_typo3conf(self, site):
        """A typo3conf under a non-default web root makes the layout custom."""
        root = site(dirs=["web/typo3conf"], files={"composer.json": {}})
        assert detect_installation_kind(root) is InstallationKind.CUSTOM

    def test_containerized(self, site):
        """app/public with app/vendor is containerized even with a manifest."""
        root = site(dirs=["app/public", "app/vendor"], files={"composer.json": {}})
        assert detect_installation_kind(root) is InstallationKind.CONTAINERIZED

    @pytest.mark.parametrize("marker", ["typo3_src", "typo3/sysext", "typo3conf"])
    def test_legacy(self, site, marker):
        """Any legacy marker without a manifest means legacy."""
        root = site(dirs=[marker])
        assert detect_installation_kind(root) is InstallationKind.LEGACY

    def test_generic(self, site):
        """A root with no markers is generic."""
        assert detect_installation_kind(site(dirs=["htdocs"])) is InstallationKind.GENERIC

    def test_unreadable_manifest_still_counts_as_managed(self, site):
        """A broken manifest still marks the root as manifest managed."""
        root = site(dirs=["vendor"], files={"composer.json": "not json"})
        assert detect_installation_kind(root) is InstallationKind.STANDARD
