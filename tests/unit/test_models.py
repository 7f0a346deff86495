"""Tests for row models and version selectors."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from ampvault.models import (
    LATEST,
    ArtifactVersion,
    Item,
    ItemKind,
    Latest,
    Project,
    VersionNumber,
    VersionSelector,
    parse_version_selector,
)


class TestSelectors:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("latest", LATEST),
            ("LATEST", LATEST),
            ("3", VersionNumber(number=3)),
            ("v12", VersionNumber(number=12)),
            (" V2 ", VersionNumber(number=2)),
        ],
    )
    def test_parse(self, text: str, expected):
        assert parse_version_selector(text) == expected

    @pytest.mark.parametrize("text", ["0", "v0", "-1", "newest", "", "1.5"])
    def test_parse_rejects(self, text: str):
        with pytest.raises(ValueError):
            parse_version_selector(text)

    def test_number_must_be_positive(self):
        with pytest.raises(ValidationError):
            VersionNumber(number=0)

    def test_discriminated_union(self):
        adapter = TypeAdapter(VersionSelector)
        assert isinstance(adapter.validate_python({"kind": "latest"}), Latest)
        assert adapter.validate_python({"kind": "number", "number": 4}) == VersionNumber(number=4)

    def test_str(self):
        assert str(LATEST) == "latest"
        assert str(VersionNumber(number=7)) == "v7"


class TestRecords:
    def test_models_are_frozen(self):
        project = Project(id="proj_00000001", name="Demo")
        with pytest.raises(ValidationError):
            project.name = "Other"

    def test_item_defaults(self):
        item = Item(id="itm_1", project_id="proj_1", name="a", slug="a", created_by="t")
        assert item.kind is ItemKind.FILE
        assert item.parent_id is None
        assert item.is_deleted is False

    def test_version_bounds(self):
        base = dict(id="arv_1", item_id="itm_1", sha256="0" * 64, rel_path="p", created_by="t")
        with pytest.raises(ValidationError):
            ArtifactVersion(version=0, size_bytes=1, **base)
        with pytest.raises(ValidationError):
            ArtifactVersion(version=1, size_bytes=-1, **base)
        assert ArtifactVersion(version=1, size_bytes=0, **base).size_bytes == 0
