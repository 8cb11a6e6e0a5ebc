"""
Structure lint tests: package layout and import boundaries.
"""

from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
PACKAGE = PROJECT_ROOT / "blogcms"


class TestProjectStructure:
    def test_core_directories_exist(self) -> None:
        assert (PACKAGE / "core" / "ports").is_dir()
        assert (PACKAGE / "core" / "services").is_dir()
        assert (PACKAGE / "adapters").is_dir()
        assert (PACKAGE / "app_shell").is_dir()

    def test_posts_component_layout(self) -> None:
        component = PACKAGE / "components" / "posts"
        for name in ("__init__.py", "_impl.py", "component.py", "models.py", "ports.py"):
            assert (component / name).is_file(), name
        assert (component / "tests").is_dir()

    def test_tests_structure_exists(self) -> None:
        for name in ("unit", "integration", "regression"):
            assert (PROJECT_ROOT / "tests" / name).is_dir()

    def test_rules_file_exists(self) -> None:
        assert (PROJECT_ROOT / "rules.yaml").is_file()


class TestImportBoundaries:
    def test_core_does_not_import_adapters(self) -> None:
        for path in (PACKAGE / "core").rglob("*.py"):
            text = path.read_text()
            assert "blogcms.adapters" not in text, path
            assert "blogcms.components" not in text, path

    def test_firestore_confined_to_its_adapter(self) -> None:
        allowed = PACKAGE / "adapters" / "firestore_store.py"
        for path in PACKAGE.rglob("*.py"):
            if path == allowed or "tests" in path.parts:
                continue
            assert "google.cloud" not in path.read_text(), path
