"""
Máquina de estados genérica basada en una tabla de transiciones

Uso:
    po_machine = StateMachine("orden de compra", {
        PurchaseOrderStatus.DRAFT: {PurchaseOrderStatus.SENT, PurchaseOrderStatus.CANCELLED},
        ...
    })
    po_machine.transition(order, PurchaseOrderStatus.SENT)

La transición sólo cambia el atributo ``status`` del objeto; el commit lo
hace el servicio dentro de su propia transacción.
"""
import enum
import logging
from typing import Dict, Iterable, List, Set

from app.common.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)


def _state_name(state) -> str:
    return state.value if isinstance(state, enum.Enum) else str(state)


class StateMachine:

    def __init__(self, entity: str, transitions: Dict[object, Iterable[object]]):
        self.entity = entity
        self._transitions: Dict[object, Set[object]] = {
            source: set(targets) for source, targets in transitions.items()
        }

    def allowed(self, from_state) -> List[object]:
        return sorted(self._transitions.get(from_state, set()), key=_state_name)

    def can_transition(self, from_state, to_state) -> bool:
        return to_state in self._transitions.get(from_state, set())

    def ensure(self, from_state, to_state) -> None:
        if not self.can_transition(from_state, to_state):
            allowed = ", ".join(_state_name(s) for s in self.allowed(from_state)) or "ninguna"
            raise InvalidTransitionError(
                self.entity,
                _state_name(from_state),
                _state_name(to_state),
                f"No se puede pasar {self.entity} de '{_state_name(from_state)}' a "
                f"'{_state_name(to_state)}'. Transiciones permitidas: {allowed}",
            )

    def transition(self, obj, to_state) -> None:
        from_state = obj.status
        self.ensure(from_state, to_state)
        obj.status = to_state
        logger.debug(f"{self.entity} {getattr(obj, 'id', '')}: {_state_name(from_state)} -> {_state_name(to_state)}")
