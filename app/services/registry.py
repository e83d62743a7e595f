"""Table registry: the fixed set of physical tables"""

from typing import Callable, Dict, Iterable, List, Optional, Any

import structlog
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.errors import ConflictError, NotFoundError, ValidationError
from app.models.table import Table

logger = structlog.get_logger()

UPDATABLE_FIELDS = ("capacity", "is_active", "notes")


def default_capacity_plan(table_number: int) -> int:
    """Tables 1-10 seat four, the rest seat six"""
    return 4 if table_number <= 10 else 6


class TableRegistry:
    """Lookup and administration of physical tables"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_table(self, table_number: int) -> Table:
        table = await self.db.get(Table, table_number)
        if table is None:
            raise NotFoundError(
                f"Table {table_number} not found",
                code="TABLE_NOT_FOUND",
                details={"table_number": table_number},
            )
        return table

    async def get_tables(self, table_numbers: Iterable[int]) -> Dict[int, Table]:
        """Fetch several tables at once, keyed by number; unknown numbers are omitted"""
        numbers = list(table_numbers)
        if not numbers:
            return {}
        result = await self.db.execute(
            select(Table).where(Table.table_number.in_(numbers))
        )
        return {table.table_number: table for table in result.scalars().all()}

    async def list_tables(self, active_only: bool = False) -> List[Table]:
        query = select(Table).order_by(Table.table_number)
        if active_only:
            query = query.where(Table.is_active == True)  # noqa: E712
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_active_tables(self) -> List[Table]:
        return await self.list_tables(active_only=True)

    async def count(self) -> int:
        result = await self.db.execute(select(func.count(Table.table_number)))
        return result.scalar() or 0

    def _validate_number(self, table_number: Any) -> None:
        if (
            not isinstance(table_number, int)
            or isinstance(table_number, bool)
            or not settings.table_min_number <= table_number <= settings.table_max_number
        ):
            raise ValidationError(
                f"Table number must be between {settings.table_min_number} "
                f"and {settings.table_max_number}",
                code="INVALID_TABLE_NUMBER",
            )

    def _validate_capacity(self, capacity: Any) -> None:
        if (
            not isinstance(capacity, int)
            or isinstance(capacity, bool)
            or not settings.table_min_capacity <= capacity <= settings.table_max_capacity
        ):
            raise ValidationError(
                f"Table capacity must be between {settings.table_min_capacity} "
                f"and {settings.table_max_capacity}",
                code="INVALID_CAPACITY",
            )

    def _validate_notes(self, notes: Optional[str]) -> None:
        if notes is not None and len(notes) > settings.table_notes_max_length:
            raise ValidationError(
                f"Notes cannot exceed {settings.table_notes_max_length} characters",
                code="NOTES_TOO_LONG",
            )

    async def create_table(
        self,
        table_number: int,
        capacity: int = 4,
        notes: Optional[str] = None,
        is_active: bool = True,
    ) -> Table:
        """Provision a single table (flushed, not committed)"""
        self._validate_number(table_number)
        self._validate_capacity(capacity)
        self._validate_notes(notes)

        if await self.db.get(Table, table_number) is not None:
            raise ConflictError(
                f"Table {table_number} already exists",
                code="TABLE_EXISTS",
                details={"table_number": table_number},
            )

        table = Table(
            table_number=table_number,
            capacity=capacity,
            notes=notes,
            is_active=is_active,
        )
        self.db.add(table)
        await self.db.flush()

        logger.info("Table created", table_number=table_number, capacity=capacity)
        return table

    async def update_table(self, table_number: int, fields: Dict[str, Any]) -> Table:
        """
        Apply a partial update to a table (flushed, not committed).

        Args:
            table_number: Table to update
            fields: Any of capacity, is_active, notes. A table_number equal to
                the current one is accepted and ignored.

        Raises:
            NotFoundError: unknown table
            ValidationError: out-of-range values or an attempt to renumber
        """
        table = await self.get_table(table_number)

        if "table_number" in fields and fields["table_number"] != table_number:
            self._validate_number(fields["table_number"])
            raise ValidationError(
                "Table number cannot be changed",
                code="TABLE_NUMBER_IMMUTABLE",
            )

        unknown = set(fields) - set(UPDATABLE_FIELDS) - {"table_number"}
        if unknown:
            raise ValidationError(
                f"Unknown table fields: {', '.join(sorted(unknown))}",
                code="UNKNOWN_FIELDS",
            )

        if "capacity" in fields:
            self._validate_capacity(fields["capacity"])
        if "notes" in fields:
            self._validate_notes(fields["notes"])
        if "is_active" in fields and not isinstance(fields["is_active"], bool):
            raise ValidationError("is_active must be a boolean", code="INVALID_ACTIVE_FLAG")

        for field in UPDATABLE_FIELDS:
            if field in fields:
                setattr(table, field, fields[field])

        await self.db.flush()

        logger.info("Table updated", table_number=table_number, fields=sorted(fields))
        return table

    async def initialize(
        self,
        count: Optional[int] = None,
        capacity_plan: Optional[Callable[[int], int]] = None,
    ) -> int:
        """
        Populate the fixed set of tables.

        A no-op when any table already exists, so repeated calls never create
        duplicates.

        Returns:
            Number of tables created
        """
        if await self.count() > 0:
            logger.info("Table registry already initialized")
            return 0

        count = count if count is not None else settings.table_count
        capacity_plan = capacity_plan or default_capacity_plan

        for number in range(settings.table_min_number, settings.table_min_number + count):
            self._validate_number(number)
            capacity = capacity_plan(number)
            self._validate_capacity(capacity)
            self.db.add(Table(table_number=number, capacity=capacity, is_active=True))

        await self.db.flush()

        logger.info("Table registry initialized", tables=count)
        return count
