"""In-memory catalog (programs and menus).

Read-only from the planning side; ``add_program``/``add_menu`` exist to
seed tests and local runs.
"""

from typing import Dict, Iterable, List, Optional

from menuplan.domain.planning.enums import MealType
from menuplan.domain.planning.models import Menu, Program
from menuplan.domain.shared.value_objects import MenuId, ProgramId


class InMemoryCatalogRepository:
    """
    In-memory implementation of ICatalogRepository port.

    Example:
        >>> catalog = InMemoryCatalogRepository(programs=[program], menus=[menu])
        >>> await catalog.get_menu(menu.id)
    """

    def __init__(
        self,
        programs: Iterable[Program] = (),
        menus: Iterable[Menu] = (),
    ) -> None:
        # Reference models are frozen, no copies needed
        self._programs: Dict[str, Program] = {str(p.id): p for p in programs}
        self._menus: Dict[str, Menu] = {str(m.id): m for m in menus}

    def add_program(self, program: Program) -> None:
        self._programs[str(program.id)] = program

    def add_menu(self, menu: Menu) -> None:
        self._menus[str(menu.id)] = menu

    async def get_program(self, program_id: ProgramId) -> Optional[Program]:
        return self._programs.get(str(program_id))

    async def get_menu(self, menu_id: MenuId) -> Optional[Menu]:
        return self._menus.get(str(menu_id))

    async def list_menus(
        self, program_id: ProgramId, meal_type: Optional[MealType] = None
    ) -> List[Menu]:
        menus = [
            m
            for m in self._menus.values()
            if m.program_id == program_id
            and (meal_type is None or m.meal_type is None or m.meal_type == meal_type)
        ]
        return sorted(menus, key=lambda m: str(m.id))
