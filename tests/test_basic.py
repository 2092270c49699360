"""Basic tests for ddl2data."""

import asyncio

import pytest

from ddl2data import AIOrchestrator, GenerationOptions, SchemaParser, validate_dataset


def test_authors_books_end_to_end(config, authors_books_ddl):
    """Deterministic generation of the authors/books schema."""
    schema = asyncio.run(SchemaParser(config=config).parse(authors_books_ddl))
    result = asyncio.run(
        AIOrchestrator(config=config).generate(schema, GenerationOptions(seed=1, numRecords=3))
    )

    assert result.meta["order"] == ["authors", "books"]
    assert [row["id"] for row in result.data["authors"]] == [1, 2, 3]
    assert len(result.data["books"]) == 3
    assert {row["author_id"] for row in result.data["books"]} <= {1, 2, 3}
    assert all(row["name"] is not None for row in result.data["authors"])

    summary = validate_dataset(schema, result.data).summary
    assert summary == {"pkDuplicates": 0, "fkViolations": 0, "notNullViolations": 0}


def test_version():
    """Test version is set."""
    from ddl2data import __version__

    assert __version__ == "0.1.0"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
