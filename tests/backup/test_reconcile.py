"""Tests for post-restore schema reconciliation."""

import pytest

from kopfolio.backup.reconcile import (
    FONT_DEFAULTS,
    SETTINGS_PATCHES,
    ColumnPatch,
    SchemaReconciler,
)
from tests.utils import InMemoryRecordStore


@pytest.mark.asyncio
async def test_adds_missing_columns(store):
    reconciler = SchemaReconciler(store)

    added = await reconciler.reconcile()

    assert added == [patch.name for patch in SETTINGS_PATCHES]
    for patch in SETTINGS_PATCHES:
        assert patch.column in store.tables["settings"]


@pytest.mark.asyncio
async def test_second_run_changes_nothing(store):
    """Reconciling an already reconciled schema adds no columns."""
    reconciler = SchemaReconciler(store)
    await reconciler.reconcile()
    columns = list(store.tables["settings"])

    added = await reconciler.reconcile()

    assert added == []
    assert store.tables["settings"] == columns


@pytest.mark.asyncio
async def test_existing_columns_are_not_backfilled():
    store = InMemoryRecordStore(tables={"settings": ["id", "logo_size"]})
    reconciler = SchemaReconciler(
        store,
        patches=[
            ColumnPatch(
                "settings", "logo_size", "INTEGER DEFAULT 60",
                backfill="UPDATE settings SET logo_size = 60 WHERE id = 1",
            ),
        ],
        defaults=[],
    )

    added = await reconciler.reconcile()

    assert added == []
    assert store.statements == []


@pytest.mark.asyncio
async def test_backfill_runs_for_new_columns():
    store = InMemoryRecordStore(tables={"settings": ["id"]})
    reconciler = SchemaReconciler(store, defaults=[])

    await reconciler.reconcile()

    assert "UPDATE settings SET logo_size = 60 WHERE id = 1" in store.statements
    assert not any("favicon" in statement for statement in store.statements)


@pytest.mark.asyncio
async def test_missing_table_is_skipped():
    store = InMemoryRecordStore(tables={"pages": ["id"]})
    reconciler = SchemaReconciler(store)

    added = await reconciler.reconcile()

    assert added == []
    assert "settings" not in store.tables


@pytest.mark.asyncio
async def test_font_defaults_replace_placeholders(store):
    reconciler = SchemaReconciler(store, patches=[])

    await reconciler.reconcile()

    # Only the font column exists in the seeded settings table
    assert store.statements == [
        "UPDATE settings SET font = :value WHERE font IS NULL OR font = :placeholder_1"
    ]
    assert [d.column for d in FONT_DEFAULTS] == ["font", "subtitle_font", "footer_font"]
