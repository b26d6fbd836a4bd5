"""Unit tests for statements module."""

from schemacheck.diffing import ColumnDescriptor, ComparisonResult, DifferentColumn, IndexDescriptor, MissingColumn
from schemacheck.statements import (
    add_column_statement,
    corrective_statements,
    create_index_statement,
    create_table_statement,
    modify_column_statement,
    render_sql_script,
)


class FakeReference:
    def __init__(self, ddl: dict) -> None:
        self.ddl = ddl
        self.requested = []

    def get_create_statement(self, table: str) -> str:
        self.requested.append(table)
        return self.ddl[table]


class TestColumnStatements:
    """Tests for ADD/MODIFY COLUMN generation."""

    def test_add_column_not_null_with_default(self) -> None:
        """Test NOT NULL and DEFAULT are appended in order."""
        column = ColumnDescriptor(name="age", type="int", nullable="NO", default="0", extra="")
        assert add_column_statement("users", column) == "ALTER TABLE `users` ADD COLUMN `age` int NOT NULL DEFAULT 0;"

    def test_add_nullable_column_without_default(self) -> None:
        """Test a nullable column without default has no modifiers."""
        column = ColumnDescriptor(name="bio", type="text", nullable="YES")
        assert add_column_statement("users", column) == "ALTER TABLE `users` ADD COLUMN `bio` text;"

    def test_extra_and_expression_default_are_verbatim(self) -> None:
        """Test defaults and EXTRA are copied exactly as the catalog reports them."""
        column = ColumnDescriptor(
            name="updated_at",
            type="timestamp",
            nullable="NO",
            default="CURRENT_TIMESTAMP",
            extra="DEFAULT_GENERATED on update CURRENT_TIMESTAMP",
        )
        assert add_column_statement("t", column) == (
            "ALTER TABLE `t` ADD COLUMN `updated_at` timestamp NOT NULL DEFAULT CURRENT_TIMESTAMP "
            "DEFAULT_GENERATED on update CURRENT_TIMESTAMP;"
        )

    def test_empty_string_default_is_emitted(self) -> None:
        """Test an empty-string default is still emitted as a DEFAULT clause."""
        column = ColumnDescriptor(name="code", type="varchar(5)", nullable="NO", default="")
        assert add_column_statement("t", column) == "ALTER TABLE `t` ADD COLUMN `code` varchar(5) NOT NULL DEFAULT ;"

    def test_modify_column(self) -> None:
        """Test MODIFY COLUMN restores the reference definition."""
        column = ColumnDescriptor(name="id", type="bigint", nullable="NO", extra="auto_increment")
        assert modify_column_statement("orders", column) == (
            "ALTER TABLE `orders` MODIFY COLUMN `id` bigint NOT NULL auto_increment;"
        )


class TestIndexStatements:
    """Tests for CREATE INDEX generation."""

    def test_unique_composite_index(self) -> None:
        """Test UNIQUE and multiple key parts in key order."""
        index = IndexDescriptor(name="uq_ab", table="t", columns=("a", "b"), unique=True)
        assert create_index_statement(index) == "CREATE UNIQUE INDEX `uq_ab` ON `t` (`a`, `b`);"

    def test_plain_index(self) -> None:
        """Test a single-column non-unique index."""
        index = IndexDescriptor(name="ix_user", table="orders", columns=("user_id",))
        assert create_index_statement(index) == "CREATE INDEX `ix_user` ON `orders` (`user_id`);"

    def test_functional_key_part_is_parenthesized_not_quoted(self) -> None:
        """Test that expression key parts are emitted as (expr), not as identifiers."""
        index = IndexDescriptor(
            name="ix_email",
            table="users",
            columns=("tenant_id", "lower(`email`)"),
            expression_parts=(1,),
        )
        assert create_index_statement(index) == (
            "CREATE INDEX `ix_email` ON `users` (`tenant_id`, (lower(`email`)));"
        )


class TestCreateTableStatement:
    """Tests for create_table_statement function."""

    def test_appends_semicolon_once(self) -> None:
        """Test the reference DDL ends with exactly one semicolon."""
        assert create_table_statement("CREATE TABLE `a` (`id` int)") == "CREATE TABLE `a` (`id` int);"
        assert create_table_statement("CREATE TABLE `a` (`id` int);\n") == "CREATE TABLE `a` (`id` int);"


class TestCorrectiveStatements:
    """Tests for corrective_statements and render_sql_script."""

    def test_in_sync_result_has_no_sections(self) -> None:
        """Test no sections and no DDL lookups for an in-sync result."""
        reference = FakeReference({})
        assert corrective_statements(ComparisonResult(), reference) == []
        assert reference.requested == []

    def test_sections_in_order(self) -> None:
        """Test sections follow tables, columns, modified columns, indexes."""
        age = ColumnDescriptor(name="age", type="int", nullable="NO", default="0")
        email = ColumnDescriptor(name="email", type="varchar(255)", nullable="NO")
        result = ComparisonResult(
            missing_tables=["orders"],
            missing_columns=[MissingColumn("users", age)],
            different_columns=[DifferentColumn("users", email, ("type: 'varchar(100)' → 'varchar(255)'",))],
            missing_indexes=[IndexDescriptor(name="ix_age", table="users", columns=("age",))],
        )
        reference = FakeReference({"orders": "CREATE TABLE `orders` (`id` int)"})
        sections = corrective_statements(result, reference)

        assert reference.requested == ["orders"]
        assert [s.title for s in sections] == [
            "Missing Tables",
            "Missing Columns",
            "Modified Columns (review carefully before running)",
            "Missing Indexes",
        ]
        assert sections[0].statements == ["CREATE TABLE `orders` (`id` int);"]
        assert sections[2].statements[0].startswith("-- Column email in table users: type:")
        assert sections[2].statements[0].endswith("ALTER TABLE `users` MODIFY COLUMN `email` varchar(255) NOT NULL;")

        script = render_sql_script(sections)
        assert script.index("-- Missing Tables --") < script.index("-- Missing Columns --")
        assert "ALTER TABLE `users` ADD COLUMN `age` int NOT NULL DEFAULT 0;\n" in script
        assert "CREATE INDEX `ix_age` ON `users` (`age`);\n" in script

    def test_render_empty_script(self) -> None:
        """Test an empty section list renders as an empty script."""
        assert render_sql_script([]) == ""
