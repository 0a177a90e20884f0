"""Unit tests for manifest persistence."""
import json

import pytest

from storyloom.models import Node, ProjectManifest
from storyloom.storage import ManifestStore, ManifestError


@pytest.fixture
def store(test_project_dir):
    return ManifestStore(test_project_dir)


def sample_manifest():
    manifest = ProjectManifest(title="Saga")
    manifest.files.content.append(Node(
        id="ch1", filename="ch1.md", title="Chapter 1", summary="Hero leaves home.",
        children=[Node(id="sc1", filename="sc1.md", title="Scene")]
    ))
    manifest.files.settings.append(Node(id="w", filename="w.md", title="World", is_active=True))
    return manifest


class TestManifestStore:
    """Test reading and writing project.json."""

    def test_save_writes_on_disk_shape(self, store):
        store.save(sample_manifest())

        text = store.manifest_file.read_text(encoding='utf-8')
        assert text.endswith("\n")
        data = json.loads(text)
        assert data["title"] == "Saga"
        assert data["files"]["settings"][0]["isActive"] is True
        assert "is_active" not in data["files"]["settings"][0]
        assert "summary" not in data["files"]["settings"][0]
        assert "children" not in data["files"]["content"][0]["children"][0]

    def test_round_trip(self, store):
        manifest = sample_manifest()
        store.save(manifest)

        assert store.read() == manifest

    def test_no_temp_file_left(self, store):
        store.save(sample_manifest())
        assert [p.name for p in store.project_path.iterdir()] == ["project.json"]

    def test_save_keeps_unicode(self, store):
        store.save(ProjectManifest(title="Der Zauberberg – Band 1"))
        assert "Der Zauberberg – Band 1" in store.manifest_file.read_text(encoding='utf-8')

    def test_read_missing_raises(self, store):
        with pytest.raises(ManifestError):
            store.read()

    @pytest.mark.parametrize("raw", [
        "{broken",
        "[]",
        '{"title": "x", "files": {"content": [{"title": "no id"}]}}',
    ])
    def test_read_malformed_raises(self, store, raw):
        store.manifest_file.write_text(raw, encoding='utf-8')
        with pytest.raises(ManifestError):
            store.read()

    def test_read_undecodable_raises(self, store):
        store.manifest_file.write_bytes(b'{"title": "\xff"}')
        with pytest.raises(ManifestError, match="Cannot read"):
            store.read()

    def test_load_undecodable_returns_default(self, store):
        store.manifest_file.write_bytes(b'{"title": "\xff"}')
        assert store.load() == ProjectManifest()

    def test_load_missing_returns_default(self, store):
        manifest = store.load()
        assert manifest == ProjectManifest()
        assert not store.exists

    def test_load_corrupt_returns_default(self, store):
        store.manifest_file.write_text("not json at all", encoding='utf-8')
        assert store.load() == ProjectManifest()

    def test_missing_category_keys_default_to_empty(self, store):
        store.manifest_file.write_text('{"title": "Partial", "files": {"content": []}}', encoding='utf-8')

        manifest = store.read()

        assert manifest.title == "Partial"
        assert manifest.files.outlines == []
        assert manifest.files.settings == []
