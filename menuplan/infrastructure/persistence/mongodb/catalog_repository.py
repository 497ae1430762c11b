"""MongoDB catalog repository.

Read-only access to the ``programs`` and ``menus`` collections, which are
maintained by the reference-data service.
"""

from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from menuplan.domain.planning.enums import MealType
from menuplan.domain.planning.models import Menu, Program
from menuplan.domain.shared.value_objects import MenuId, ProgramId
from menuplan.infrastructure.persistence.mongodb.base import MongoBaseRepository, to_bson


class MongoMenuCollection(MongoBaseRepository[Menu]):
    """Menu document mapping (collection: menus)."""

    @property
    def collection_name(self) -> str:
        return "menus"

    def to_document(self, entity: Menu) -> Dict[str, Any]:
        doc = to_bson(entity)
        doc["menu_id"] = doc.pop("id")
        return doc

    def from_document(self, doc: Dict[str, Any]) -> Menu:
        data = self._strip_id(doc)
        data["id"] = data.pop("menu_id")
        return Menu.model_validate(data)


class MongoProgramCollection(MongoBaseRepository[Program]):
    """Program document mapping (collection: programs)."""

    @property
    def collection_name(self) -> str:
        return "programs"

    def to_document(self, entity: Program) -> Dict[str, Any]:
        doc = to_bson(entity)
        doc["program_id"] = doc.pop("id")
        return doc

    def from_document(self, doc: Dict[str, Any]) -> Program:
        data = self._strip_id(doc)
        data["id"] = data.pop("program_id")
        return Program.model_validate(data)


class MongoCatalogRepository:
    """MongoDB implementation of ICatalogRepository."""

    def __init__(self, db: AsyncIOMotorDatabase[Any]) -> None:
        self._programs = MongoProgramCollection(db)
        self._menus = MongoMenuCollection(db)

    async def get_program(self, program_id: ProgramId) -> Optional[Program]:
        doc = await self._programs._find_one({"program_id": program_id.value})
        return self._programs.from_document(doc) if doc is not None else None

    async def get_menu(self, menu_id: MenuId) -> Optional[Menu]:
        doc = await self._menus._find_one({"menu_id": menu_id.value})
        return self._menus.from_document(doc) if doc is not None else None

    async def list_menus(
        self, program_id: ProgramId, meal_type: Optional[MealType] = None
    ) -> List[Menu]:
        query: Dict[str, Any] = {"program_id": program_id.value}
        if meal_type is not None:
            query["meal_type"] = {"$in": [meal_type.value, None]}
        docs = await self._menus._find_many(query, sort=[("menu_id", 1)])
        return [self._menus.from_document(doc) for doc in docs]
