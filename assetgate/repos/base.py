from typing import Generic, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from assetgate.models import Base

Model = TypeVar("Model", bound=Base)
CreateSchema = TypeVar("CreateSchema", bound=BaseModel)
UpdateSchema = TypeVar("UpdateSchema", bound=BaseModel)


class BaseRepository(Generic[Model, CreateSchema, UpdateSchema]):
    def __init__(
        self,
        session: AsyncSession,
        model: Type[Model],
    ):
        """
        Initialize the repository with a session and model.

        Args:
            session (AsyncSession): The database session.
            model (Type[Model]): The model class.
        """
        self.session = session
        self.model = model

    def _column(self, column_name: str):
        """
        Resolve a mapped column by attribute name.

        Raises:
            ValueError: If the column doesn't exist on the model.
        """
        column = self.model.__mapper__.columns.get(column_name)
        if column is None:
            raise ValueError(
                f"Column '{column_name}' does not exist on model {self.model.__name__}"
            )

        return getattr(self.model, column_name)

    def savepoint(self) -> AsyncSessionTransaction:
        """
        Open a SAVEPOINT on the session, for use as ``async with repo.savepoint():``.

        A database error inside the block rolls back only that block, so the session
        stays usable for the rest of the request.
        """
        return self.session.begin_nested()

    async def create_one(
        self, schema: CreateSchema, exclude_none: bool = True, auto_commit: bool = True
    ) -> Model:
        """
        Create a new object in the database.

        Args:
            schema (CreateSchema): The data to create the object.
            exclude_none (bool): Whether to exclude None values from the creation.
            auto_commit (bool): Whether to commit the transaction. Pass False when
                the service coordinates a multi-step transaction.

        Returns:
            created_object (Model): The created object.
        """
        stmt = (
            insert(self.model)
            .values(**schema.model_dump(exclude_none=exclude_none))
            .returning(self.model)
        )
        result = await self.session.execute(stmt)
        if auto_commit:
            await self.session.commit()

        return result.scalar_one()

    async def get_by_id(self, obj_id: int, id_column_name: str = "id") -> Model | None:
        """
        Retrieve an object by its ID.

        Args:
            obj_id (int): The ID of the object to retrieve.
            id_column_name (str): The name of the ID column in the model.

        Returns:
            Model | None: The retrieved object or None if not found.
        """
        stmt = select(self.model).where(self._column(id_column_name) == obj_id)
        result = await self.session.execute(stmt)

        return result.scalar_one_or_none()

    async def update_by_id(
        self,
        obj_id: int,
        schema: UpdateSchema,
        id_column_name: str = "id",
        exclude_none: bool = True,
        auto_commit: bool = True,
    ) -> Model | None:
        """
        Update an object by its ID.

        Args:
            obj_id (int): The ID of the object to update.
            schema (UpdateSchema): The data to update the object.
            id_column_name (str): The name of the ID column in the model.
            exclude_none (bool): Whether to exclude None values from the update.
            auto_commit (bool): Whether to commit the transaction.

        Returns:
            updated_object (Model | None): The updated object or None if not found.
        """
        values = schema.model_dump(exclude_none=exclude_none)
        if not values:
            return await self.get_by_id(obj_id, id_column_name)

        stmt = (
            update(self.model)
            .where(self._column(id_column_name) == obj_id)
            .values(**values)
            .returning(self.model)
        )
        result = await self.session.execute(stmt)
        if auto_commit:
            await self.session.commit()

        return result.scalar_one_or_none()

    async def delete_by_id(
        self,
        obj_id: int,
        id_column_name: str = "id",
        auto_commit: bool = True,
    ) -> bool:
        """
        Delete an object by its ID.

        Returns:
            is_deleted (bool): True if the object was deleted, False otherwise.
        """
        stmt = delete(self.model).where(self._column(id_column_name) == obj_id)
        result = await self.session.execute(stmt)
        if auto_commit:
            await self.session.commit()

        return result.rowcount > 0
