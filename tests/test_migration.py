"""
The initial alembic revision creates the same schema the models declare.
"""
import importlib.util
from pathlib import Path

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

import digital_forms.models  # noqa: F401
from digital_forms.database import Base

VERSIONS_DIR = Path(__file__).resolve().parent.parent / "alembic" / "versions"


def _load_revision(name: str):
    spec = importlib.util.spec_from_file_location(name, VERSIONS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestInitialMigration:

    def test_upgrade_matches_models(self, tmp_path):
        revision = _load_revision("3f9c2b7d1e04_initial_schema")
        engine = sa.create_engine(f"sqlite:///{tmp_path / 'migration.db'}")

        with engine.begin() as conn:
            ctx = MigrationContext.configure(conn)
            with Operations.context(ctx):
                revision.upgrade()

            inspector = sa.inspect(conn)
            assert set(inspector.get_table_names()) == set(Base.metadata.tables)

            for table_name, table in Base.metadata.tables.items():
                migrated = {c["name"] for c in inspector.get_columns(table_name)}
                assert migrated == set(table.columns.keys()), table_name

            link_indexes = {i["name"]: i for i in inspector.get_indexes("form_links")}
            assert link_indexes["ix_form_links_link_code"]["unique"]

        engine.dispose()

    def test_downgrade_drops_everything(self, tmp_path):
        revision = _load_revision("3f9c2b7d1e04_initial_schema")
        engine = sa.create_engine(f"sqlite:///{tmp_path / 'migration.db'}")

        with engine.begin() as conn:
            ctx = MigrationContext.configure(conn)
            with Operations.context(ctx):
                revision.upgrade()
                revision.downgrade()

            assert sa.inspect(conn).get_table_names() == []

        engine.dispose()
