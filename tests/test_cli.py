"""Tests for the ddl2data command line."""

import json

import pytest
from click.testing import CliRunner

from conftest import AUTHORS_BOOKS_DDL, scripted_agent
from ddl2data.cli.cli_main import cli
from ddl2data.cli.handlers.generation_handler import GenerationHandler, parse_row_overrides
from ddl2data.jobs.store import JsonDatasetStore


@pytest.fixture
def ddl_file(tmp_path):
    path = tmp_path / "schema.sql"
    path.write_text(AUTHORS_BOOKS_DDL)
    return path


def test_parse_writes_schema(config, ddl_file, tmp_path):
    output = tmp_path / "schema.json"
    result = CliRunner().invoke(cli, ["parse", str(ddl_file), "--no-ai", "-o", str(output)])

    assert result.exit_code == 0, result.output
    assert "authors -> books" in result.output
    schema = json.loads(output.read_text())
    assert schema["tables"]["books"]["foreignKeys"][0]["referenceTable"] == "authors"


def test_parse_without_tables_fails(config, tmp_path):
    path = tmp_path / "empty.sql"
    path.write_text("SELECT 1;")
    result = CliRunner().invoke(cli, ["parse", str(path), "--no-ai"])

    assert result.exit_code != 0
    assert "no-blocks" in result.output


def test_generate_deterministic(config, ddl_file, tmp_path):
    out_dir = tmp_path / "out"
    args = ["generate", str(ddl_file), "--no-ai", "--seed", "1", "-n", "3", "--rows", "books=5", "-o", str(out_dir)]
    result = CliRunner().invoke(cli, args)

    assert result.exit_code == 0, result.output
    dataset = json.loads((out_dir / "dataset.json").read_text())
    report = json.loads((out_dir / "report.json").read_text())
    assert len(dataset["authors"]) == 3
    assert len(dataset["books"]) == 5
    assert report["validation"]["passed"] is True
    assert "data" not in report

    again = tmp_path / "again"
    CliRunner().invoke(cli, args[:-1] + [str(again)])
    assert json.loads((again / "dataset.json").read_text()) == dataset


def test_generate_bad_rows_option(config, ddl_file, tmp_path):
    result = CliRunner().invoke(
        cli, ["generate", str(ddl_file), "--no-ai", "--rows", "books", "-o", str(tmp_path)]
    )

    assert result.exit_code != 0
    assert "TABLE=N" in result.output


def test_validate_exit_codes(config, ddl_file, tmp_path):
    schema_path = tmp_path / "schema.json"
    runner = CliRunner()
    runner.invoke(cli, ["parse", str(ddl_file), "--no-ai", "-o", str(schema_path)])

    good = tmp_path / "good.json"
    good.write_text(json.dumps({"data": {"authors": [{"id": 1, "name": "A"}], "books": [{"id": 1, "author_id": 1}]}}))
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"authors": [{"id": 1, "name": None}], "books": [{"id": 1, "author_id": 2}]}))
    report_path = tmp_path / "report.json"

    ok = runner.invoke(cli, ["validate", str(schema_path), str(good), "-o", str(report_path)])
    failed = runner.invoke(cli, ["validate", str(schema_path), str(bad)])

    assert ok.exit_code == 0, ok.output
    assert json.loads(report_path.read_text())["passed"] is True
    assert failed.exit_code == 1
    assert "FK violation books.author_id" in failed.output


def test_parse_row_overrides():
    assert parse_row_overrides(("users=5", " orders =7")) == {"users": 5, "orders": 7}
    with pytest.raises(ValueError):
        parse_row_overrides(("=3",))


def test_modify_updates_stored_dataset(config, authors_books_schema, tmp_path, monkeypatch):
    config.set("storage.output_dir", str(tmp_path / "datasets"))
    store = JsonDatasetStore(tmp_path / "datasets")
    dataset_id = store.save(
        "library",
        authors_books_schema,
        {"authors": [{"id": 1, "name": "A"}], "books": [{"id": 1, "author_id": 1}]},
    )
    books = [{"id": 1, "author_id": 1}, {"id": 2, "author_id": 1}]
    monkeypatch.setattr(
        GenerationHandler,
        "build_agent",
        lambda self, use_ai, provider=None, model=None: scripted_agent(json.dumps(books)),
    )

    result = CliRunner().invoke(
        cli, ["modify", dataset_id, "Add a second book", "--table", "books"]
    )

    assert result.exit_code == 0, result.output
    assert "books: 1 -> 2" in result.output
    assert store.load(dataset_id)["data"]["books"] == books


def test_modify_without_agent_fails(config, monkeypatch):
    monkeypatch.setattr(
        GenerationHandler, "build_agent", lambda self, use_ai, provider=None, model=None: None
    )

    result = CliRunner().invoke(cli, ["modify", "library-1", "Anything"])

    assert result.exit_code != 0
    assert "needs an LLM agent" in result.output
