"""Additive schema patches applied after a restore.

Archives made by older releases lack columns that newer code reads. Every
patch here only adds what is missing, so running the reconciler again on the
same database changes nothing.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .._utils import logger
from .records import RecordStore


@dataclass(frozen=True)
class ColumnPatch:
    """Add ``table.column`` with ``ddl`` if absent, then run ``backfill`` once."""
    table: str
    column: str
    ddl: str
    backfill: Optional[str] = None

    @property
    def name(self) -> str:
        return f"{self.table}.{self.column}"


@dataclass(frozen=True)
class ValueDefault:
    """Replace placeholder values of an existing column with ``value``."""
    table: str
    column: str
    value: str
    replaces: Tuple[Optional[str], ...] = (None,)


SETTINGS_PATCHES: Tuple[ColumnPatch, ...] = (
    ColumnPatch(
        "settings", "logo_size", "INTEGER DEFAULT 60",
        backfill="UPDATE settings SET logo_size = 60 WHERE id = 1",
    ),
    ColumnPatch(
        "settings", "logo_enabled", "BOOLEAN DEFAULT TRUE",
        backfill="UPDATE settings SET logo_enabled = TRUE WHERE id = 1",
    ),
    ColumnPatch(
        "settings", "background_opacity", "NUMERIC DEFAULT 1",
        backfill="UPDATE settings SET background_opacity = 1 WHERE id = 1",
    ),
    ColumnPatch("settings", "background_color", "VARCHAR(50) DEFAULT NULL"),
    ColumnPatch(
        "settings", "use_dynamic_background_color", "BOOLEAN DEFAULT FALSE",
        backfill="UPDATE settings SET use_dynamic_background_color = FALSE WHERE id = 1",
    ),
    ColumnPatch("settings", "favicon", "TEXT"),
    ColumnPatch("settings", "sidebar_pattern", "VARCHAR(255) DEFAULT 'none'"),
)

FONT_DEFAULTS: Tuple[ValueDefault, ...] = tuple(
    ValueDefault("settings", column, "Arial", replaces=(None, "system-ui"))
    for column in ("font", "subtitle_font", "footer_font")
)


class SchemaReconciler:
    """Bring a freshly restored schema up to what the running code expects."""

    def __init__(
        self,
        store: RecordStore,
        patches: Sequence[ColumnPatch] = SETTINGS_PATCHES,
        defaults: Sequence[ValueDefault] = FONT_DEFAULTS,
    ):
        self.store = store
        self.patches = list(patches)
        self.defaults = list(defaults)

    async def reconcile(self) -> List[str]:
        """Apply missing patches and value defaults.

        Returns:
            Names (``table.column``) of the columns that were added
        """
        added = []

        for patch in self.patches:
            if not await self.store.table_exists(patch.table):
                logger.warning(f"Skipping {patch.name}: table {patch.table} does not exist")
                continue
            if await self.store.column_exists(patch.table, patch.column):
                continue

            await self.store.add_column(patch.table, patch.column, patch.ddl)
            if patch.backfill:
                await self.store.execute(patch.backfill)
            added.append(patch.name)
            logger.info(f"Added missing column {patch.name}")

        for default in self.defaults:
            if not await self.store.column_exists(default.table, default.column):
                continue
            await self._apply_default(default)

        logger.info(f"Schema reconciled ({len(added)} columns added)")
        return added

    async def _apply_default(self, default: ValueDefault) -> int:
        conditions = []
        params = {"value": default.value}

        for index, placeholder in enumerate(default.replaces):
            if placeholder is None:
                conditions.append(f"{default.column} IS NULL")
            else:
                key = f"placeholder_{index}"
                conditions.append(f"{default.column} = :{key}")
                params[key] = placeholder

        statement = (
            f"UPDATE {default.table} SET {default.column} = :value "
            f"WHERE {' OR '.join(conditions)}"
        )
        return await self.store.execute(statement, params)
