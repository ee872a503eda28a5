from __future__ import annotations

from crew_ledger.database.bootstrap import SCHEMA_PATH, _strip_create_db_and_use, iter_sql_statements


def test_statements_split_outside_quotes_only():
    sql = "INSERT INTO t VALUES ('a;b');\nCREATE TABLE x (id INT);\n  \nSELECT \"c;d\""

    assert list(iter_sql_statements(sql)) == [
        "INSERT INTO t VALUES ('a;b')",
        "CREATE TABLE x (id INT)",
        'SELECT "c;d"',
    ]


def test_create_database_and_use_lines_are_dropped():
    sql = "CREATE DATABASE IF NOT EXISTS foo;\nUSE foo;\nCREATE TABLE x (id INT);"

    assert list(iter_sql_statements(_strip_create_db_and_use(sql))) == ["CREATE TABLE x (id INT)"]


def test_bundled_schema_defines_ledger_tables():
    statements = list(iter_sql_statements(SCHEMA_PATH.read_text(encoding="utf-8")))
    joined = "\n".join(statements)

    for table in ("employees", "time_entries", "change_history", "sync_queue", "sync_meta"):
        assert f"CREATE TABLE IF NOT EXISTS {table}" in joined
