"""Generic entity repository.

This module implements the composition-based repository every entity
repository is built from. ``BaseRepository[Model]`` owns:

- FILTERING: predicates from :mod:`inkwell.repositories.query`, always ANDed
  with the not-deleted predicate unless ``include_deleted=True``
- PAGINATION: one statement returns the page slice and the total via a
  ``count(*) OVER ()`` window column
- RELATION EXPANSION: relationships declared on the model, loaded on request
  (eager join in simple mode, outer join + contains_eager when paginating;
  self-referential relations load with a follow-up SELECT in both modes)
- CRUD & SOFT DELETE: single-row updates and soft deletes only touch live rows
- TRACING: @trace_database decorators integrate with OpenTelemetry

The repository never commits. It flushes so ids and defaults are populated;
the request-scoped session (``get_db``) or ``session_scope()`` owns the
transaction. Every operation accepts ``session=`` to run inside a caller's
session instead of the bound one.

Usage Example:
    repo = BaseRepository(session, Post, default_joins=[Join("author", ["email"])])
    post = await repo.create(slug="hello", content="...", author_id=user.id)
    page = await repo.find_all(
        {"status": PostStatus.PUBLISHED},
        include_deleted=False,
        pagination=PaginationQuery(page=2, limit=10),
        options=ListOptions(search_fields=["content", "slug"], relation=Relation.default()),
    )

Absence is returned as ``None``. Storage errors are logged and re-raised
unchanged.
"""

import uuid
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union

from sqlalchemy import Select, delete, func, inspect, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import (
    DeclarativeBase,
    RelationshipProperty,
    aliased,
    contains_eager,
    joinedload,
    load_only,
    selectinload,
)
from sqlalchemy.orm.strategy_options import _AbstractLoad

from inkwell.core.logging import get_logger
from inkwell.core.tracing import trace_database
from inkwell.models.base import utcnow
from inkwell.repositories.pagination import (
    UNCATEGORIZED,
    GroupedCount,
    Join,
    ListOptions,
    PaginatedResult,
    PaginationMeta,
    PaginationQuery,
    Relation,
    TotalCount,
)
from inkwell.repositories.query import (
    Eq,
    FilterInput,
    Predicate,
    build_filter,
    column_resolver,
    lower,
)

ModelType = TypeVar("ModelType", bound=DeclarativeBase)

EntityId = Union[uuid.UUID, str]

logger = get_logger(__name__)


def as_uuid(entity_id: EntityId) -> uuid.UUID:
    return entity_id if isinstance(entity_id, uuid.UUID) else uuid.UUID(str(entity_id))


class BaseRepository(Generic[ModelType]):
    """Generic repository providing reads, writes and soft delete for one model.

    Entity repositories compose it (``self._base_repo = BaseRepository(...)``)
    and delegate to it, adding their own query methods on top.

    Args:
        session: AsyncSession used when an operation gets no ``session=``
        model: SQLAlchemy model class (must use the ``Entity`` mixins)
        default_joins: Relations expanded by ``Relation.default()``
    """

    def __init__(
        self,
        session: AsyncSession,
        model: type[ModelType],
        default_joins: Sequence[Join] = (),
    ) -> None:
        self._session = session
        self._model = model
        self._default_joins = tuple(default_joins)
        self._logger = get_logger(f"{__name__}.{model.__name__}Repository")

    @property
    def model(self) -> type[ModelType]:
        return self._model

    @property
    def default_joins(self) -> tuple[Join, ...]:
        return self._default_joins

    # ========================================================================
    # INTERNAL HELPERS
    # ========================================================================

    def _db(self, session: Optional[AsyncSession]) -> AsyncSession:
        return session if session is not None else self._session

    def _relationship(self, path: str) -> Any:
        relationships = inspect(self._model).relationships
        if path not in relationships:
            raise ValueError(f"{self._model.__name__} has no relationship named {path!r}")
        return getattr(self._model, path)

    def _target(self, path: str) -> type[Any]:
        prop: RelationshipProperty[Any] = inspect(self._model).relationships[path]
        return prop.mapper.class_

    def _condition(
        self,
        filters: FilterInput,
        include_deleted: bool,
        aliases: Optional[Mapping[str, Any]] = None,
        **builder_kwargs: Any,
    ) -> Any:
        predicate = build_filter(filters, include_deleted=include_deleted, **builder_kwargs)
        return lower(predicate, column_resolver(self._model, aliases))

    def _is_self_join(self, join: Join) -> bool:
        return self._target(join.path) is self._model

    def _eager_options(self, joins: Sequence[Join]) -> list[_AbstractLoad]:
        """Eager loader per relation, restricted to the declared fields.

        Self-referential relations (a comment's parent) use selectinload. A
        row that is both a result and another result's relation is then built
        once, as a result, with its own relations filled.
        """
        loaders: list[_AbstractLoad] = []
        for join in joins:
            strategy = selectinload if self._is_self_join(join) else joinedload
            loader = strategy(self._relationship(join.path))
            if join.fields:
                target = self._target(join.path)
                loader = loader.load_only(*(getattr(target, name) for name in join.fields))
            loaders.append(loader)
        return loaders

    def _outer_joins(
        self, stmt: Select[Any], joins: Sequence[Join], eager: bool
    ) -> tuple[Select[Any], dict[str, Any]]:
        """Outer-join each relation through an alias; missing relations stay None."""
        aliases: dict[str, Any] = {}
        for join in joins:
            relationship = self._relationship(join.path)
            alias = aliased(self._target(join.path), name=f"{join.path}_join")
            stmt = stmt.outerjoin(alias, relationship.of_type(alias))
            if eager and self._is_self_join(join):
                # Joined for filtering and sorting only
                stmt = stmt.options(*self._eager_options([join]))
            elif eager:
                loader = contains_eager(relationship.of_type(alias))
                if join.fields:
                    loader = loader.load_only(*(getattr(alias, name) for name in join.fields))
                stmt = stmt.options(loader)
            aliases[join.path] = alias
        return stmt, aliases

    def _projection(self, fields: Optional[Sequence[str]]) -> list[_AbstractLoad]:
        if not fields:
            return []
        return [load_only(*(getattr(self._model, name) for name in fields))]

    def _forget_relations(self, db: AsyncSession, joins: Sequence[Join]) -> None:
        """Drop relation values cached on instances already in the session.

        A joined read only fills attributes that are not loaded yet, so a
        relation left as None by an earlier read would otherwise stick.
        """
        if not joins:
            return
        paths = [join.path for join in joins]
        for instance in list(db.sync_session.identity_map.values()):
            if isinstance(instance, self._model):
                db.expire(instance, paths)

    def _first_match_id(self, predicate: Predicate) -> Any:
        """Scalar subquery selecting the id of the first row matching ``predicate``.

        Runs against an alias so it does not correlate with an enclosing
        UPDATE/DELETE on the same table.
        """
        inner = aliased(self._model)
        return (
            select(inner.id)
            .where(lower(predicate, column_resolver(inner)))
            .limit(1)
            .scalar_subquery()
        )

    def _log_failure(self, action: str, error: SQLAlchemyError) -> None:
        self._logger.error(
            f"Failed to {action}",
            model=self._model.__name__,
            error=str(error),
            error_type=type(error).__name__,
        )

    # ========================================================================
    # CREATE OPERATIONS
    # ========================================================================

    @trace_database()
    async def create(
        self, data: Mapping[str, Any], *, session: Optional[AsyncSession] = None
    ) -> ModelType:
        """Insert one entity and return it with generated fields populated.

        Args:
            data: Column values for the new entity
            session: Session override

        Returns:
            The flushed entity

        Raises:
            SQLAlchemyError: Constraint violations and other storage errors, unchanged
        """
        db = self._db(session)
        try:
            self._logger.debug("Creating entity", model=self._model.__name__)
            entity = self._model(**data)
            db.add(entity)
            await db.flush()
            await db.refresh(entity)
            self._logger.info(
                "Entity created",
                model=self._model.__name__,
                entity_id=str(getattr(entity, "id", None)),
            )
            return entity
        except SQLAlchemyError as e:
            self._log_failure("create entity", e)
            raise

    @trace_database()
    async def create_many(
        self, records: Sequence[Mapping[str, Any]], *, session: Optional[AsyncSession] = None
    ) -> list[ModelType]:
        """Insert records in order, stopping at the first failure.

        Each record is flushed inside its own SAVEPOINT. When one fails its
        savepoint is rolled back and the error propagates; records inserted
        before it remain part of the caller's transaction.

        Args:
            records: Column values per entity, inserted in sequence order
            session: Session override

        Returns:
            Inserted entities, in input order
        """
        db = self._db(session)
        created: list[ModelType] = []
        try:
            for data in records:
                async with db.begin_nested():
                    entity = self._model(**data)
                    db.add(entity)
                    await db.flush()
                created.append(entity)
            self._logger.info("Entities created", model=self._model.__name__, count=len(created))
            return created
        except SQLAlchemyError as e:
            self._logger.error(
                "Ordered insert stopped",
                model=self._model.__name__,
                inserted=len(created),
                failed_index=len(created),
                error=str(e),
            )
            raise

    # ========================================================================
    # READ OPERATIONS
    # ========================================================================

    @trace_database()
    async def find_all(
        self,
        filters: FilterInput = None,
        *,
        include_deleted: bool,
        pagination: Optional[PaginationQuery] = None,
        options: Optional[ListOptions] = None,
        session: Optional[AsyncSession] = None,
    ) -> Union[list[ModelType], PaginatedResult[ModelType]]:
        """List entities, paginated when any pagination field is set.

        Simple mode applies the filter, optional projection (``options.select``),
        ordering (``options.order``) and relation expansion and returns a list.

        Paginated mode additionally applies ``search_key`` over
        ``options.search_fields``, sorts by the allow-listed ``sort_by`` (or
        ``options.default_sort_field``) with ``id`` as tiebreak, and returns a
        :class:`PaginatedResult` whose total is counted after filtering and
        before paging.

        Args:
            filters: Mapping or predicate
            include_deleted: Include soft-deleted rows
            pagination: Pagination request
            options: Search, sort, relation and projection settings
            session: Session override

        Returns:
            A list (simple mode) or a PaginatedResult (paginated mode)
        """
        options = options or ListOptions()
        if pagination is not None and pagination.is_requested():
            return await self._find_page(filters, include_deleted, pagination, options, self._db(session))

        db = self._db(session)
        try:
            self._logger.debug("Listing entities", model=self._model.__name__)
            condition = self._condition(
                filters,
                include_deleted,
                date_field=options.date_field,
                search_criteria=options.search_criteria,
            )
            joins = options.relation.resolve(self._default_joins)
            stmt = select(self._model).where(condition)
            stmt = stmt.options(*self._projection(options.select))
            stmt = stmt.options(*self._eager_options(joins))
            if options.order:
                resolve = column_resolver(self._model)
                for field, direction in options.order.items():
                    col = resolve(field)
                    stmt = stmt.order_by(col.asc() if direction == "asc" else col.desc())
            self._forget_relations(db, joins)
            result = await db.execute(stmt)
            items = list(result.scalars().all())
            self._logger.debug("Entities listed", model=self._model.__name__, count=len(items))
            return items
        except SQLAlchemyError as e:
            self._log_failure("list entities", e)
            raise

    async def _find_page(
        self,
        filters: FilterInput,
        include_deleted: bool,
        pagination: PaginationQuery,
        options: ListOptions,
        db: AsyncSession,
    ) -> PaginatedResult[ModelType]:
        page = pagination.resolved_page
        limit = pagination.resolved_limit
        joins = options.relation.resolve(self._default_joins)
        try:
            total_col = func.count().over().label("total_count")
            stmt, aliases = self._outer_joins(select(self._model, total_col), joins, eager=True)
            condition = self._condition(
                filters,
                include_deleted,
                aliases,
                date_field=options.date_field,
                search_key=pagination.search_key,
                search_fields=options.search_fields,
                search_criteria=options.search_criteria,
            )
            sort_col = column_resolver(self._model, aliases)(
                options.resolve_sort_field(pagination.sort_by)
            )
            if pagination.resolved_sort_order == "asc":
                ordering = (sort_col.asc(), self._model.id.asc())
            else:
                ordering = (sort_col.desc(), self._model.id.desc())

            stmt = (
                stmt.where(condition)
                .options(*self._projection(options.select))
                .order_by(*ordering)
                .offset(pagination.skip)
                .limit(limit)
            )
            self._forget_relations(db, joins)
            self._logger.debug(
                "Listing page",
                model=self._model.__name__,
                page=page,
                limit=limit,
                search_key=pagination.search_key,
            )
            rows = (await db.execute(stmt)).all()
            data = [row[0] for row in rows]

            if rows:
                total = rows[0].total_count
            else:
                # Past the last page the window has no rows to report on
                count_stmt, _ = self._outer_joins(
                    select(func.count(self._model.id)), joins, eager=False
                )
                total = (await db.execute(count_stmt.where(condition))).scalar_one()

            meta = PaginationMeta.build(page=page, limit=limit, total=total)
            self._logger.debug(
                "Page listed",
                model=self._model.__name__,
                returned=len(data),
                total=total,
            )
            return PaginatedResult(data=data, pagination=meta)
        except SQLAlchemyError as e:
            self._log_failure("list page", e)
            raise

    @trace_database()
    async def find_one(
        self,
        filters: FilterInput,
        *,
        include_deleted: bool,
        relation: Relation = Relation.none(),
        select_fields: Optional[Sequence[str]] = None,
        session: Optional[AsyncSession] = None,
    ) -> Optional[ModelType]:
        """Return the first entity matching ``filters``, or None."""
        db = self._db(session)
        try:
            joins = relation.resolve(self._default_joins)
            condition = self._condition(filters, include_deleted)
            stmt = (
                select(self._model)
                .where(condition)
                .options(*self._projection(select_fields))
                .options(*self._eager_options(joins))
                .limit(1)
            )
            self._forget_relations(db, joins)
            result = await db.execute(stmt)
            entity = result.scalars().first()
            if entity is None:
                self._logger.debug("Entity not found", model=self._model.__name__)
            return entity
        except SQLAlchemyError as e:
            self._log_failure("find entity", e)
            raise

    async def find_one_by_id(
        self,
        entity_id: EntityId,
        *,
        include_deleted: bool,
        relation: Relation = Relation.none(),
        select_fields: Optional[Sequence[str]] = None,
        session: Optional[AsyncSession] = None,
    ) -> Optional[ModelType]:
        """Return the entity with ``entity_id``, or None."""
        return await self.find_one(
            Eq("id", as_uuid(entity_id)),
            include_deleted=include_deleted,
            relation=relation,
            select_fields=select_fields,
            session=session,
        )

    @trace_database()
    async def count(
        self,
        filters: FilterInput = None,
        *,
        include_deleted: bool,
        session: Optional[AsyncSession] = None,
    ) -> int:
        """Count entities matching ``filters``."""
        db = self._db(session)
        try:
            stmt = (
                select(func.count())
                .select_from(self._model)
                .where(self._condition(filters, include_deleted))
            )
            total = (await db.execute(stmt)).scalar_one()
            self._logger.debug("Entities counted", model=self._model.__name__, total=total)
            return int(total)
        except SQLAlchemyError as e:
            self._log_failure("count entities", e)
            raise

    @trace_database()
    async def exists(
        self,
        filters: FilterInput,
        *,
        include_deleted: bool,
        session: Optional[AsyncSession] = None,
    ) -> bool:
        db = self._db(session)
        try:
            stmt = select(self._model.id).where(self._condition(filters, include_deleted)).limit(1)
            return (await db.execute(stmt)).first() is not None
        except SQLAlchemyError as e:
            self._log_failure("check entity existence", e)
            raise

    @trace_database()
    async def get_grouped_counts(
        self,
        group_field: Optional[str] = None,
        extra_filter: FilterInput = None,
        *,
        include_deleted: bool,
        session: Optional[AsyncSession] = None,
    ) -> Union[TotalCount, list[GroupedCount]]:
        """Count entities, optionally per distinct value of ``group_field``.

        Without a group field a single :class:`TotalCount` comes back. With
        one, a :class:`GroupedCount` per value sorted by count descending;
        NULL values are reported as ``"uncategorized"``.
        """
        db = self._db(session)
        try:
            condition = self._condition(extra_filter, include_deleted)
            if group_field is None:
                stmt = select(func.count()).select_from(self._model).where(condition)
                return TotalCount(total_count=int((await db.execute(stmt)).scalar_one()))

            col = column_resolver(self._model)(group_field)
            count_col = func.count().label("count")
            stmt = (
                select(col, count_col)
                .select_from(self._model)
                .where(condition)
                .group_by(col)
                .order_by(count_col.desc())
            )
            groups = []
            for value, count in (await db.execute(stmt)).all():
                if value is None:
                    value = UNCATEGORIZED
                elif isinstance(value, Enum):
                    value = value.value
                groups.append(GroupedCount(value=value, count=int(count)))
            return groups
        except SQLAlchemyError as e:
            self._log_failure("count entity groups", e)
            raise

    # ========================================================================
    # UPDATE OPERATIONS
    # ========================================================================

    async def _update_first(
        self,
        filters: FilterInput,
        values: Mapping[str, Any],
        db: AsyncSession,
    ) -> Optional[ModelType]:
        """UPDATE the first live row matching ``filters`` and return it."""
        predicate = build_filter(filters, include_deleted=False)
        stmt = (
            update(self._model)
            .where(self._model.id == self._first_match_id(predicate))
            .where(self._model.deleted.is_(False))
            .values(**values)
            .returning(self._model)
        )
        result = await db.execute(
            stmt,
            execution_options={"synchronize_session": False, "populate_existing": True},
        )
        return result.scalars().first()

    @trace_database()
    async def update_one(
        self,
        filters: FilterInput,
        values: Mapping[str, Any],
        *,
        session: Optional[AsyncSession] = None,
    ) -> Optional[ModelType]:
        """Update the first live entity matching ``filters``.

        ``updated_at`` is always stamped. Values may be SQL expressions, e.g.
        ``{"view_count": Post.view_count + 1}`` for an atomic increment.

        Returns:
            The entity after the update, or None when nothing live matched
        """
        db = self._db(session)
        try:
            entity = await self._update_first(filters, {**values, "updated_at": utcnow()}, db)
            if entity is None:
                self._logger.debug("No entity to update", model=self._model.__name__)
            else:
                self._logger.info(
                    "Entity updated",
                    model=self._model.__name__,
                    entity_id=str(entity.id),
                    fields=sorted(values),
                )
            return entity
        except SQLAlchemyError as e:
            self._log_failure("update entity", e)
            raise

    async def update_one_by_id(
        self,
        entity_id: EntityId,
        values: Mapping[str, Any],
        *,
        session: Optional[AsyncSession] = None,
    ) -> Optional[ModelType]:
        return await self.update_one(Eq("id", as_uuid(entity_id)), values, session=session)

    @trace_database()
    async def update_many(
        self,
        filters: FilterInput,
        values: Mapping[str, Any],
        *,
        include_deleted: bool,
        session: Optional[AsyncSession] = None,
    ) -> int:
        """Update every entity matching ``filters``; returns the affected count."""
        db = self._db(session)
        try:
            stmt = (
                update(self._model)
                .where(self._condition(filters, include_deleted))
                .values(**values, updated_at=utcnow())
                .returning(self._model.id)
            )
            result = await db.execute(stmt, execution_options={"synchronize_session": "fetch"})
            affected = len(result.all())
            self._logger.info("Entities updated", model=self._model.__name__, count=affected)
            return affected
        except SQLAlchemyError as e:
            self._log_failure("update entities", e)
            raise

    # ========================================================================
    # DELETE OPERATIONS
    # ========================================================================

    @trace_database()
    async def soft_delete(
        self,
        filters: FilterInput,
        *,
        deleted_by: Optional[EntityId] = None,
        session: Optional[AsyncSession] = None,
    ) -> Optional[ModelType]:
        """Mark the first live entity matching ``filters`` as deleted.

        Already-deleted rows are not touched, so a second call returns None.
        """
        db = self._db(session)
        now = utcnow()
        values: dict[str, Any] = {"deleted": True, "deleted_at": now, "updated_at": now}
        if deleted_by is not None:
            values["deleted_by"] = as_uuid(deleted_by)
        try:
            entity = await self._update_first(filters, values, db)
            if entity is not None:
                self._logger.info(
                    "Entity soft-deleted",
                    model=self._model.__name__,
                    entity_id=str(entity.id),
                )
            return entity
        except SQLAlchemyError as e:
            self._log_failure("soft delete entity", e)
            raise

    async def soft_delete_by_id(
        self,
        entity_id: EntityId,
        *,
        deleted_by: Optional[EntityId] = None,
        session: Optional[AsyncSession] = None,
    ) -> Optional[ModelType]:
        return await self.soft_delete(
            Eq("id", as_uuid(entity_id)), deleted_by=deleted_by, session=session
        )

    @trace_database()
    async def delete(
        self, filters: FilterInput, *, session: Optional[AsyncSession] = None
    ) -> bool:
        """Physically remove the first entity matching ``filters``.

        The filter is applied as given; soft-deleted rows are eligible.

        Returns:
            True if a row was removed
        """
        db = self._db(session)
        try:
            predicate = build_filter(filters, include_deleted=True)
            stmt = (
                delete(self._model)
                .where(self._model.id == self._first_match_id(predicate))
                .returning(self._model.id)
            )
            result = await db.execute(stmt, execution_options={"synchronize_session": "fetch"})
            removed = result.first() is not None
            self._logger.info("Entity deleted", model=self._model.__name__, removed=removed)
            return removed
        except SQLAlchemyError as e:
            self._log_failure("delete entity", e)
            raise

    async def delete_one_by_id(
        self, entity_id: EntityId, *, session: Optional[AsyncSession] = None
    ) -> bool:
        return await self.delete(Eq("id", as_uuid(entity_id)), session=session)

    @trace_database()
    async def delete_many(
        self, filters: FilterInput, *, session: Optional[AsyncSession] = None
    ) -> int:
        """Physically remove every entity matching ``filters``; returns the count."""
        db = self._db(session)
        try:
            stmt = (
                delete(self._model)
                .where(self._condition(filters, include_deleted=True))
                .returning(self._model.id)
            )
            result = await db.execute(stmt, execution_options={"synchronize_session": "fetch"})
            removed = len(result.all())
            self._logger.info("Entities deleted", model=self._model.__name__, count=removed)
            return removed
        except SQLAlchemyError as e:
            self._log_failure("delete entities", e)
            raise
