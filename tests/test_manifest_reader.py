"""Tests for the dependency-manifest reader."""

import pytest

from common.manifest_reader import (
    ManifestError,
    find_manifest,
    get_config_value,
    get_extra_value,
    read_manifest,
)


class TestReadManifest:
    """Loading composer.json."""

    def test_reads_object(self, site):
        """A JSON object manifest is returned as a dict."""
        root = site(files={"composer.json": {"name": "acme/site", "config": {"vendor-dir": "libs"}}})

        path = find_manifest(root)
        manifest = read_manifest(path)

        assert manifest["name"] == "acme/site"
        assert get_config_value(manifest, "vendor-dir") == "libs"

    def test_missing_manifest(self, site):
        """A missing manifest is not found and reading it raises."""
        root = site()

        assert find_manifest(root) is None
        with pytest.raises(ManifestError) as exc_info:
            read_manifest(root + "/composer.json")
        assert exc_info.value.reason == "Manifest not found"

    def test_invalid_json(self, site):
        """Malformed JSON raises ManifestError."""
        root = site(files={"composer.json": "{broken"})

        with pytest.raises(ManifestError) as exc_info:
            read_manifest(find_manifest(root))
        assert "Invalid JSON" in str(exc_info.value)

    def test_non_object_document(self, site):
        """A top-level array raises ManifestError."""
        root = site(files={"composer.json": ["not", "an", "object"]})

        with pytest.raises(ManifestError):
            read_manifest(find_manifest(root))

    def test_directory_named_like_manifest_is_ignored(self, site):
        """A directory with the manifest's name is not a manifest."""
        root = site(dirs=["composer.json"])
        assert find_manifest(root) is None


class TestAccessors:
    """config/extra lookups tolerate odd shapes."""

    def test_extra_value(self):
        """Nested extra values are looked up by namespace and key."""
        manifest = {"extra": {"typo3/cms": {"web-dir": "htdocs"}}}
        assert get_extra_value(manifest, "typo3/cms", "web-dir") == "htdocs"
        assert get_extra_value(manifest, "typo3/cms", "missing") is None
        assert get_extra_value(manifest, "other", "web-dir") is None

    def test_wrong_types_yield_none(self):
        """Non-mapping config or extra sections yield None."""
        assert get_config_value({"config": ["x"]}, "vendor-dir") is None
        assert get_extra_value({"extra": "x"}, "typo3/cms", "web-dir") is None
        assert get_extra_value({"extra": {"typo3/cms": 3}}, "typo3/cms", "web-dir") is None
