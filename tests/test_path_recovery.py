"""Tests for the error recovery manager."""

import os

from constants import Constants
from pathresolution.errors import ErrorKind
from pathresolution.models import (
    ExtensionIdentifier,
    InstallationKind,
    PathKind,
    ResolutionConfiguration,
    ResolutionRequest,
    StrategyFailure,
)
from pathresolution.recovery import (
    RECOVERY_IDENTIFIER,
    ErrorRecoveryManager,
    configuration_suggestions,
    conventions_for,
)


def _request(root, kind, installation=InstallationKind.STANDARD, key=None):
    extension = ExtensionIdentifier(key) if key else None
    return ResolutionRequest(kind, root, installation, extension=extension)


class TestConventions:
    """Convention tables."""

    def test_containerized_vendor_tries_app_first(self):
        """Container layouts try app/vendor before vendor."""
        request = _request("/site", PathKind.VENDOR_DIRECTORY, InstallationKind.CONTAINERIZED)
        assert conventions_for(request) == [os.path.join("app", "vendor"), "vendor"]

    def test_web_root_falls_back_to_root(self):
        """The installation root is the last web root convention."""
        request = _request("/site", PathKind.WEB_ROOT)
        assert conventions_for(request) == ["public", "."]

    def test_extension_conventions_use_key(self):
        """Extension conventions are built from the extension key."""
        request = _request("/site", PathKind.EXTENSION_DIRECTORY, key="news")
        conventions = conventions_for(request)
        assert os.path.join("typo3conf", "ext", "news") in conventions
        assert os.path.join("htdocs", "typo3conf", "ext", "news") in conventions
        assert os.path.join("public_html", "typo3conf", "ext", "news") in conventions

    def test_public_html_platform_config_convention(self):
        """Test that hand-rolled public_html trees are among the platform-config conventions."""
        request = _request("/site", PathKind.PLATFORM_CONFIG_DIRECTORY)
        assert conventions_for(request)[-1] == os.path.join("public_html", "typo3conf")

    def test_lock_file_convention_uses_constant(self):
        """Test that the lock file fallback is the configured lock file name."""
        request = _request("/site", PathKind.DEPENDENCY_MANIFEST_LOCK_FILE)
        assert conventions_for(request)[-1] == Constants.LOCK_FILE


class TestRecover:
    """Partial results and exhaustion."""

    def test_hit_is_partial_with_convention_recorded(self, site):
        """A convention hit yields a partial response naming the convention."""
        root = site(dirs=["public", "web"])
        request = _request(root, PathKind.WEB_ROOT, InstallationKind.CUSTOM)
        failures = [StrategyFailure("manifest_web_dir", ErrorKind.CONFIGURATION_ERROR, "no manifest")]

        response = ErrorRecoveryManager().recover(request, ["/x"], failures)

        assert response.is_partial
        assert response.resolved_path == os.path.join(root, "web")
        assert response.metadata.strategy == RECOVERY_IDENTIFIER
        assert response.metadata.fallback_reason == "convention:web"
        assert response.alternatives == (os.path.join(root, "public"), root)
        assert response.metadata.attempted_paths[0] == "/x"
        assert response.metadata.failures == tuple(failures)
        assert response.warnings

    def test_exhaustion_aggregates_attempts_and_reasons(self, site):
        """Exhaustion reports every attempted path and strategy failure."""
        root = site()
        request = _request(root, PathKind.EXTENSION_DIRECTORY, key="news")
        failures = [
            StrategyFailure("composer_extension", ErrorKind.CONFIGURATION_ERROR, "Manifest not found"),
            StrategyFailure("legacy_extension", ErrorKind.CANDIDATE_NOT_FOUND, "missing"),
        ]

        response = ErrorRecoveryManager().recover(request, ["/strategy/path"], failures)

        assert response.is_error
        assert response.resolved_path is None
        assert response.error_kind is ErrorKind.RECOVERY_EXHAUSTED
        assert "/strategy/path" in response.metadata.attempted_paths
        assert os.path.join(root, "typo3conf", "ext", "news") in response.metadata.attempted_paths
        assert any("composer_extension: Manifest not found" == e for e in response.errors)
        assert response.metadata.failures[-1].kind is ErrorKind.RECOVERY_EXHAUSTED

    def test_files_must_be_files(self, site):
        """A directory named like the lock file does not satisfy recovery."""
        root = site(dirs=["composer.lock"])
        request = _request(root, PathKind.DEPENDENCY_MANIFEST_LOCK_FILE)

        assert ErrorRecoveryManager().recover(request).is_error

    def test_public_html_extension_is_recovered(self, site):
        """Test that an extension under public_html/typo3conf/ext yields a partial result."""
        root = site(dirs=["public_html/typo3conf/ext/news"])
        request = _request(root, PathKind.EXTENSION_DIRECTORY, InstallationKind.GENERIC, key="news")

        response = ErrorRecoveryManager().recover(request)

        assert response.is_partial
        assert response.resolved_path == os.path.join(root, "public_html", "typo3conf", "ext", "news")


class TestConfigurationSuggestions:
    """Hints attached to exhausted requests."""

    def test_exhaustion_carries_suggestions_as_warnings(self, site):
        """Test that an exhausted extension request suggests overrides and search directories."""
        root = site()
        request = _request(root, PathKind.EXTENSION_DIRECTORY, key="news")

        response = ErrorRecoveryManager().recover(request)

        assert response.error_kind is ErrorKind.RECOVERY_EXHAUSTED
        assert any("custom_paths" in w for w in response.warnings)
        assert any("search_directories" in w for w in response.warnings)

    def test_configured_request_gets_no_generic_hints(self, site):
        """Test that hints already satisfied by the configuration are left out."""
        root = site()
        configuration = ResolutionConfiguration(
            custom_paths={"web-dir": "www"}, search_directories=["packages"]
        )
        request = ResolutionRequest(
            PathKind.EXTENSION_DIRECTORY, root, InstallationKind.STANDARD, configuration,
            ExtensionIdentifier("news"),
        )

        assert configuration_suggestions(request) == []

    def test_custom_layout_hint(self, site):
        """Test that custom layouts are reminded to check their manifest directories."""
        request = _request(site(), PathKind.VENDOR_DIRECTORY, InstallationKind.CUSTOM)

        assert any("vendor-dir and web-dir" in s for s in configuration_suggestions(request))

    def test_hand_rolled_web_roots_are_detected(self, site):
        """Test that typo3conf under app, htdocs or public_html is reported."""
        root = site(dirs=["htdocs/typo3conf", "public_html/typo3conf"])
        request = _request(root, PathKind.EXTENSION_DIRECTORY, InstallationKind.GENERIC, key="news")

        hints = [s for s in configuration_suggestions(request) if s.startswith("Found")]

        assert len(hints) == 2
        assert "web-dir to 'htdocs'" in hints[0]
        assert "'public_html/typo3conf/ext' to search_directories" in hints[1]

    def test_non_extension_hint_omits_search_directories(self, site):
        """Test that search_directories is only suggested for extension requests."""
        root = site(dirs=["app/typo3conf"])
        request = _request(root, PathKind.PLATFORM_CONFIG_DIRECTORY, InstallationKind.GENERIC)

        suggestions = configuration_suggestions(request)

        assert not any("search_directories" in s for s in suggestions)
        assert any("web-dir to 'app'" in s for s in suggestions)
