"""Tests for the function migration orchestrator."""

import json
import threading

import pytest

from supamigrate.models.function import TriggerKind
from supamigrate.models.migration import MigrationConfig, UnitStatus
from supamigrate.orchestrator import FunctionMigrationOrchestrator
from supamigrate.services import templates
from supamigrate.services.code_generator import CodeGenerator
from supamigrate.extractors.directory_extractor import DirectoryExtractor, is_source_file

from .conftest import DOCUMENT_TRIGGER_SOURCE, TINY_BODY_SOURCE


# --- Fixtures ---

@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "supabase" / "functions"


def run_migration(source_dir, output_dir, **kwargs):
    config = MigrationConfig(source_dir=str(source_dir), output_dir=str(output_dir))
    return FunctionMigrationOrchestrator(config, **kwargs).run()


class ExplodingGenerator(CodeGenerator):
    """Fails for one function name."""

    def generate(self, record):
        if record.name == "getProfile":
            raise RuntimeError("template exploded")
        return super().generate(record)


class UnwritableManifestGenerator(CodeGenerator):
    """Produces a manifest that cannot be serialized for one function."""

    def generate(self, record):
        unit = super().generate(record)
        if record.name == "helloWorld":
            unit.manifest["imports"]["broken"] = object()
        return unit


# --- Successful runs ---

class TestDirectoryMigration:
    def test_http_and_callable(self, functions_dir, output_dir):
        report = run_migration(functions_dir, output_dir)
        assert report.total == 2
        assert report.migrated_count == 2
        assert report.failed_count == 0
        assert not report.fatal

        for name in ("helloWorld", "getProfile"):
            assert (output_dir / name / "index.ts").is_file()
            manifest = json.loads((output_dir / name / "deno.json").read_text())
            assert "supabase" in manifest["imports"]
            assert not (output_dir / name / "trigger.sql").exists()

        code = (output_dir / "helloWorld" / "index.ts").read_text()
        assert "supabaseClient.from('greetings')" in code

    def test_report_written(self, functions_dir, output_dir):
        report = run_migration(functions_dir, output_dir)
        assert report.report_path == str(output_dir / "migration_report.json")
        saved = json.loads((output_dir / "migration_report.json").read_text())
        assert saved["migrated_count"] == 2
        assert [u["name"] for u in saved["units"]] == ["helloWorld", "getProfile"]

    def test_trivial_body_yields_nothing(self, tmp_path, output_dir):
        source = tmp_path / "functions"
        source.mkdir()
        (source / "index.js").write_text(TINY_BODY_SOURCE)
        report = run_migration(source, output_dir)
        assert report.total == 0
        assert report.migrated_count == 0
        assert not report.fatal

    def test_document_trigger_gets_sql(self, tmp_path, output_dir):
        source = tmp_path / "functions"
        source.mkdir()
        (source / "orders.ts").write_text(DOCUMENT_TRIGGER_SOURCE)
        run_migration(source, output_dir)
        sql = (output_dir / "onOrderCreated" / "trigger.sql").read_text()
        assert "AFTER INSERT ON public.orders" in sql

    def test_dependency_folders_ignored(self, functions_dir, output_dir):
        vendor = functions_dir / "node_modules" / "lib"
        vendor.mkdir(parents=True)
        (vendor / "index.js").write_text(DOCUMENT_TRIGGER_SOURCE)
        (functions_dir / "types.d.ts").write_text(DOCUMENT_TRIGGER_SOURCE)
        report = run_migration(functions_dir, output_dir)
        assert report.total == 2


# --- Outcome accounting ---

class TestOutcomes:
    def test_every_function_lands_in_one_bucket(self, functions_dir, output_dir):
        generator = ExplodingGenerator(template_map={
            TriggerKind.CALLABLE: templates.CALLABLE_TEMPLATE,
        })
        config = MigrationConfig(source_dir=str(functions_dir), output_dir=str(output_dir))
        orchestrator = FunctionMigrationOrchestrator(config, generator=generator)
        report = orchestrator.run()
        assert [f.name for f in orchestrator.failures] == ["getProfile"]
        assert not (output_dir / "getProfile").exists()
        assert report.total == 2
        assert report.migrated_count + report.failed_count + report.skipped_count == report.total
        assert report.skipped == ["helloWorld"]
        failed = [u for u in report.units if u.status == UnitStatus.FAILED]
        assert failed[0].name == "getProfile"
        assert "template exploded" in failed[0].error_message
        assert not report.succeeded

    def test_duplicate_names_collapse(self, functions_dir, output_dir):
        (functions_dir / "src" / "later.js").write_text(
            "exports.helloWorld = functions.https.onRequest((req, res) => {\n"
            "  res.send('the later definition');\n});\n"
        )
        report = run_migration(functions_dir, output_dir)
        assert report.total == 2
        assert any("Duplicate function name helloWorld" in w for w in report.warnings)
        code = (output_dir / "helloWorld" / "index.ts").read_text()
        assert "the later definition" in code

    def test_cancelled_before_generation(self, functions_dir, output_dir):
        event = threading.Event()
        event.set()
        report = run_migration(functions_dir, output_dir, cancel_event=event)
        assert report.cancelled
        assert report.migrated_count == 0


class TestUnitWrites:
    def test_failed_write_leaves_no_files(self, functions_dir, output_dir):
        config = MigrationConfig(source_dir=str(functions_dir), output_dir=str(output_dir))
        report = FunctionMigrationOrchestrator(config, generator=UnwritableManifestGenerator()).run()

        assert report.failed_count == 1
        assert report.migrated_count == 1
        assert not (output_dir / "helloWorld").exists()
        assert (output_dir / "getProfile" / "index.ts").is_file()
        assert sorted(p.name for p in output_dir.iterdir()) == ["getProfile", "migration_report.json"]

    def test_previous_unit_replaced_whole(self, functions_dir, output_dir):
        stale = output_dir / "helloWorld"
        (stale / "deno.json").mkdir(parents=True)
        (stale / "trigger.sql").write_text("-- from an older run")

        report = run_migration(functions_dir, output_dir)

        assert report.failed_count == 0
        assert (stale / "deno.json").is_file()
        assert (stale / "index.ts").is_file()
        assert not (stale / "trigger.sql").exists()


# --- Configuration errors ---

class TestFatalConfiguration:
    def test_no_source(self, output_dir):
        report = FunctionMigrationOrchestrator(MigrationConfig(output_dir=str(output_dir))).run()
        assert report.fatal
        assert report.total == 0
        assert (output_dir / "migration_report.json").is_file()

    def test_both_sources(self, functions_dir, output_dir):
        config = MigrationConfig(
            source_dir=str(functions_dir),
            firebase_project="demo",
            output_dir=str(output_dir),
        )
        report = FunctionMigrationOrchestrator(config).run()
        assert report.fatal
        assert "only one" in report.errors[0]

    def test_missing_directory(self, tmp_path, output_dir):
        report = run_migration(tmp_path / "nope", output_dir)
        assert report.fatal
        assert "not found" in report.errors[0]


class TestSourceFileFilter:
    @pytest.mark.parametrize("name,expected", [
        ("index.js", True),
        ("handler.ts", True),
        ("module.mjs", True),
        ("types.d.ts", False),
        ("bundle.min.js", False),
        ("package.json", False),
        ("README.md", False),
    ])
    def test_is_source_file(self, name, expected):
        assert is_source_file(name) is expected

    def test_unreadable_file_is_a_warning(self, functions_dir):
        (functions_dir / "broken.js").write_bytes(b"\xff\xfe\x00 not utf-8")
        result = DirectoryExtractor(str(functions_dir)).extract()
        assert len(result.records) == 2
        assert any("broken.js" in w for w in result.warnings)
