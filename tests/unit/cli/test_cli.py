"""Tests for the tagquery command line interface."""

import json
import sys
from pathlib import Path

import pytest
from loguru import logger

from tagquery.cli.main import create_parser, main
from tests.fakes.movies import MOVIES

SCHEMA_YAML = """\
fields:
  - {path: title, weight: 100}
  - {path: info.directors, weight: 50}
  - {name: mainGenre, weight: 5, from: info.genres.0}
tags:
  is: {type: one_of, path: info.genres}
  after: {type: after, path: year}
  before: {type: before, path: year}
  stars: {type: rating, path: info.rating, min: 1, max: 10}
"""


def run(*argv: str) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(list(argv))
    return exc_info.value.code


@pytest.fixture(autouse=True)
def restore_logging():
    """Reset the loguru sinks replaced by the CLI."""
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def env(monkeypatch, tmp_path: Path) -> Path:
    """Point the CLI at a temporary database and schema."""
    schema = tmp_path / "schema.yaml"
    schema.write_text(SCHEMA_YAML)
    monkeypatch.setenv("TAGQUERY_DB_PATH", str(tmp_path / "cli.db"))
    monkeypatch.setenv("TAGQUERY_COLLECTION", "movies")
    monkeypatch.setenv("TAGQUERY_SCHEMA", str(schema))
    monkeypatch.delenv("TAGQUERY_SEARCH_METHOD", raising=False)
    return tmp_path


@pytest.fixture
def loaded(env: Path, capsys) -> Path:
    """Load the sample movies through the CLI."""
    data = env / "movies.json"
    data.write_text(json.dumps(MOVIES))
    assert run("load", str(data)) == 0
    capsys.readouterr()
    return env


class TestParser:
    """Tests for argument parsing."""

    def test_search_defaults(self):
        """search should leave the limit unset and skip nothing."""
        args = create_parser().parse_args(["search", "gatsby"])

        assert args.limit is None
        assert args.skip == 0
        assert args.count is False

    def test_no_command_prints_help(self, env, capsys):
        """Running without a command should print help and succeed."""
        assert run() == 0
        assert "usage: tagquery" in capsys.readouterr().out


class TestCommands:
    """End-to-end tests for each command."""

    def test_load(self, env, capsys):
        """load should report how many documents were inserted."""
        data = env / "movies.json"
        data.write_text(json.dumps(MOVIES))

        assert run("load", str(data)) == 0
        assert "Loaded 5 documents into 'movies'" in capsys.readouterr().out

    def test_search(self, loaded, capsys):
        """search should print matching documents as JSON."""
        assert run("search", "luhrmann after:2000") == 0

        results = json.loads(capsys.readouterr().out)
        assert [r["title"] for r in results] == ["Moulin Rouge!", "The Great Gatsby"]

    def test_search_count(self, loaded, capsys):
        """--count should print only the number of matches."""
        assert run("search", "--count", "luhrmann") == 0
        assert capsys.readouterr().out.strip() == "3"

    def test_search_default_limit(self, env, capsys):
        """Without --limit at most ten rows should be printed."""
        data = env / "many.json"
        data.write_text(json.dumps([{"title": f"Ballroom {n}"} for n in range(15)]))
        assert run("load", str(data)) == 0
        capsys.readouterr()

        assert run("search", "ballroom") == 0
        assert len(json.loads(capsys.readouterr().out)) == 10

        assert run("search", "--limit", "12", "ballroom") == 0
        assert len(json.loads(capsys.readouterr().out)) == 12

    def test_search_count_ignores_limit(self, env, capsys):
        """--count should count every match, beyond the row limit."""
        data = env / "many.json"
        data.write_text(json.dumps([{"title": f"Ballroom {n}"} for n in range(15)]))
        assert run("load", str(data)) == 0
        capsys.readouterr()

        assert run("search", "--count", "") == 0
        assert capsys.readouterr().out.strip() == "15"

        assert run("search", "--count", "--limit", "3", "ballroom") == 0
        assert capsys.readouterr().out.strip() == "15"

    def test_search_other_method(self, loaded, capsys):
        """--method should search with the non-default method's index."""
        assert run("search", "--method", "$search", "gatsbi") == 0

        results = json.loads(capsys.readouterr().out)
        assert [r["title"] for r in results] == ["The Great Gatsby"]

    def test_search_match(self, loaded, capsys):
        """--match should add a filter."""
        assert run("search", "--count", "--match", '{"year": 1992}', "luhrmann") == 0
        assert capsys.readouterr().out.strip() == "1"

    def test_search_no_results(self, loaded, capsys):
        """An empty result should say so."""
        assert run("search", "zzzzzz") == 0
        assert "No results found" in capsys.readouterr().out

    def test_parse(self, env, capsys):
        """parse should show fuzzy text, tags and stages."""
        assert run("parse", "foo stars:3-5") == 0

        out = capsys.readouterr().out
        assert "Fuzzy: foo" in out
        assert '"stars": "3-5"' in out
        assert '"$lt": 6' in out

    def test_index_spec(self, env, capsys):
        """index-spec should print the index definition for a method."""
        assert run("index-spec", "--method", "$search") == 0

        command = json.loads(capsys.readouterr().out)
        assert command["createSearchIndexes"] == "movies"

    def test_reindex(self, loaded, capsys):
        """reindex should report updated documents."""
        assert run("reindex", "-p", "2") == 0
        assert "Reindexed 5 of 5 documents" in capsys.readouterr().out


class TestErrors:
    """Tests for error reporting."""

    def test_missing_schema(self, env, monkeypatch, capsys):
        """Commands needing a schema should fail cleanly without one."""
        monkeypatch.delenv("TAGQUERY_SCHEMA")

        assert run("search", "gatsby") == 1
        assert "Error: No search schema" in capsys.readouterr().err

    def test_invalid_match(self, loaded, capsys):
        """Malformed --match JSON should fail cleanly."""
        assert run("search", "--match", "{nope", "gatsby") == 1
        assert "Error: --match is not valid JSON" in capsys.readouterr().err

    def test_missing_file(self, env, capsys):
        """Loading a missing file should fail cleanly."""
        assert run("load", str(env / "missing.json")) == 1
        assert "Error:" in capsys.readouterr().err
