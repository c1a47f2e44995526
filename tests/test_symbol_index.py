"""Tests for symbol index construction from jar archives."""

import pytest

from idempiere_codegen.symbol_index import (
    SymbolIndex,
    SymbolIndexError,
    build_symbol_index,
    class_name_from_entry,
)
from tests.conftest import make_jar, make_jar_with_undecodable_name, make_p2_repository


class TestClassNameFromEntry:
    def test_top_level_class(self):
        assert class_name_from_entry("org/compiere/model/MOrder.class") == "org.compiere.model.MOrder"

    def test_inner_class_collapses_to_outer(self):
        assert class_name_from_entry("org/compiere/model/MOrder$Line.class") == "org.compiere.model.MOrder"
        assert class_name_from_entry("org/compiere/model/MOrder$1.class") == "org.compiere.model.MOrder"

    def test_descriptors_skipped(self):
        assert class_name_from_entry("module-info.class") is None
        assert class_name_from_entry("META-INF/versions/11/module-info.class") is None
        assert class_name_from_entry("org/compiere/model/package-info.class") is None

    def test_non_class_entries_skipped(self):
        assert class_name_from_entry("META-INF/MANIFEST.MF") is None
        assert class_name_from_entry("org/compiere/") is None

    def test_default_package_class(self):
        assert class_name_from_entry("Main.class") == "Main"


class TestBuildSymbolIndex:
    def test_indexes_classes_and_packages(self, p2_repo):
        index = build_symbol_index(p2_repo)
        assert index.has_class("org.compiere.model.MOrder")
        assert index.has_class("org.adempiere.base.IColumnCallout")
        assert index.has_package("org.compiere.process")
        assert not index.has_class("org.compiere.model.MOrder$1")
        assert not index.has_package("org.compiere")

    def test_scans_root_without_plugins_dir(self, tmp_path):
        make_jar(tmp_path / "lib" / "a.jar", ["com/acme/Widget.class"])
        index = build_symbol_index(tmp_path)
        assert index.has_class("com.acme.Widget")
        assert len(index) == 1

    def test_plugins_dir_preferred(self, tmp_path):
        make_p2_repository(tmp_path, {"core.jar": ["org/compiere/util/Env.class"]})
        make_jar(tmp_path / "other" / "ignored.jar", ["com/acme/Hidden.class"])
        index = build_symbol_index(tmp_path)
        assert index.has_class("org.compiere.util.Env")
        assert not index.has_class("com.acme.Hidden")

    def test_deterministic(self, p2_repo):
        first = build_symbol_index(p2_repo)
        second = build_symbol_index(p2_repo)
        assert first == second
        assert first.classes == second.classes
        assert first.packages == second.packages

    def test_empty_root(self, tmp_path):
        index = build_symbol_index(tmp_path)
        assert index == SymbolIndex(frozenset(), frozenset())

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(SymbolIndexError):
            build_symbol_index(tmp_path / "missing")

    def test_corrupt_archive_aborts(self, tmp_path):
        import zipfile

        make_p2_repository(tmp_path, {"good.jar": ["org/compiere/util/Env.class"]})
        (tmp_path / "plugins" / "broken.jar").write_bytes(b"not a zip")
        with pytest.raises(zipfile.BadZipFile):
            build_symbol_index(tmp_path)

    def test_undecodable_entry_name_aborts(self, tmp_path):
        make_p2_repository(tmp_path, {"good.jar": ["org/compiere/util/Env.class"]})
        make_jar_with_undecodable_name(tmp_path / "plugins" / "bad.jar")
        with pytest.raises(ValueError):
            build_symbol_index(tmp_path)
