"""Unit tests for deterministic fallback SQL."""

from __future__ import annotations

import re

import pytest

from nlq.pipeline.fallback import EMPTY_CATALOG_SQL, FallbackGenerator

FALLBACK_SHAPE = re.compile(r'SELECT \* FROM "?.+"? LIMIT \d+')


@pytest.fixture
def generator() -> FallbackGenerator:
    return FallbackGenerator(default_limit=100)


class TestFallbackGenerator:
    """FallbackGenerator.generate."""

    def test_first_n_employees(self, generator):
        sql = generator.generate("show first 5 employees", ["employees", "departments"])
        assert sql == 'SELECT * FROM "employees" LIMIT 5'

    def test_matches_table_mentioned_in_question(self, generator):
        sql = generator.generate("How many DEPARTMENTS are there?", ["employees", "departments"])
        assert sql == 'SELECT * FROM "departments" LIMIT 100'

    def test_first_catalog_match_wins(self, generator):
        sql = generator.generate("jobs and job_history", ["job_history", "jobs"])
        assert sql == 'SELECT * FROM "job_history" LIMIT 100'

    def test_defaults_to_first_table(self, generator):
        sql = generator.generate("what's going on?", ["countries", "regions"])
        assert sql == 'SELECT * FROM "countries" LIMIT 100'

    def test_empty_catalog(self, generator):
        assert generator.generate("anything", []) == EMPTY_CATALOG_SQL

    def test_limit_hint_is_case_insensitive(self, generator):
        sql = generator.generate("FIRST   12 regions", ["regions"])
        assert sql == 'SELECT * FROM "regions" LIMIT 12'

    def test_only_three_digit_hint(self, generator):
        sql = generator.generate("first 1234 regions", ["regions"])
        assert sql == 'SELECT * FROM "regions" LIMIT 123'

    def test_quotes_are_escaped(self, generator):
        sql = generator.generate("first 2", ['odd"name'])
        assert sql == 'SELECT * FROM "odd""name" LIMIT 2'

    @pytest.mark.parametrize(
        "question",
        ["", "list everything", "first 3 employees", "departments please", "first 999"],
    )
    def test_output_shape(self, generator, question):
        sql = generator.generate(question, ["employees", "departments"])
        assert sql
        assert FALLBACK_SHAPE.fullmatch(sql)
