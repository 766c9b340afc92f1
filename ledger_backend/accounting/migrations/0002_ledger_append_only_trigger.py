"""
Reject UPDATE and DELETE on the ledger table at the database level.

The model and queryset already refuse writes; this closes raw SQL and
other clients too. PostgreSQL only: other backends keep the ORM guards.
TRUNCATE is not a row-level event and stays available to test teardown.
"""
from django.db import migrations

LEDGER_TABLE = "accounting_ledgerentry"

CREATE_STATEMENTS = [
    f"""
    CREATE OR REPLACE FUNCTION accounting_ledger_append_only() RETURNS trigger AS $$
    BEGIN
        RAISE EXCEPTION USING
            ERRCODE = 'restrict_violation',
            MESSAGE = 'ledger rows are append-only: ' || TG_OP || ' on {LEDGER_TABLE}';
    END;
    $$ LANGUAGE plpgsql
    """,
    f"DROP TRIGGER IF EXISTS ledger_append_only ON {LEDGER_TABLE}",
    f"""
    CREATE TRIGGER ledger_append_only
        BEFORE UPDATE OR DELETE ON {LEDGER_TABLE}
        FOR EACH ROW EXECUTE FUNCTION accounting_ledger_append_only()
    """,
]

DROP_STATEMENTS = [
    f"DROP TRIGGER IF EXISTS ledger_append_only ON {LEDGER_TABLE}",
    "DROP FUNCTION IF EXISTS accounting_ledger_append_only()",
]


def _run(schema_editor, statements) -> None:
    if schema_editor.connection.vendor != "postgresql":
        return
    for statement in statements:
        schema_editor.execute(statement, params=None)


def _install(apps, schema_editor):
    _run(schema_editor, CREATE_STATEMENTS)


def _uninstall(apps, schema_editor):
    _run(schema_editor, DROP_STATEMENTS)


class Migration(migrations.Migration):

    dependencies = [
        ("accounting", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(_install, _uninstall),
    ]
