# taskgraph/graph.py
"""
In-memory хранилище графа: узлы, предикаты, значения.

Каждый узел хранит словарь predicate -> упорядоченный список значений без дублей.
Значения: строки (литералы) или id других узлов (рёбра).
Один RLock на весь граф: все изменения и чтения сериализуются через него.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional

from taskgraph.core.exceptions import UnknownPropertyError

logger = logging.getLogger("TaskGraph.Store")


class GraphStore:
    def __init__(self, allowed_predicates: Optional[Iterable[str]] = None):
        self._nodes: Dict[str, Dict[str, List[str]]] = {}
        self._allowed = frozenset(allowed_predicates) if allowed_predicates is not None else None
        self.lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator["GraphStore"]:
        with self.lock:
            yield self

    def _check_predicate(self, predicate: str) -> None:
        if self._allowed is not None and predicate not in self._allowed:
            raise UnknownPropertyError(f"Unknown property '{predicate}'")

    # ---- узлы ----

    def add_node(self, node_id: str) -> None:
        self._nodes.setdefault(node_id, {})

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def nodes(self) -> List[str]:
        return list(self._nodes)

    def remove_node(self, node_id: str) -> None:
        """
        Удаляет узел целиком: его собственные данные и все входящие ссылки.
        """
        self._nodes.pop(node_id, None)
        for props in self._nodes.values():
            for values in props.values():
                if node_id in values:
                    values[:] = [v for v in values if v != node_id]

    # ---- запись ----

    def add(self, subject: str, predicate: str, obj: str) -> bool:
        """
        Добавляет значение в многозначный предикат. Повторное значение молча игнорируется.
        """
        self._check_predicate(predicate)
        values = self._nodes.setdefault(subject, {}).setdefault(predicate, [])
        if obj in values:
            return False
        values.append(obj)
        return True

    def set(self, subject: str, predicate: str, obj: Optional[str]) -> None:
        """
        Функциональный предикат: remove-existing-then-insert. None просто очищает.
        """
        self._check_predicate(predicate)
        props = self._nodes.setdefault(subject, {})
        props.pop(predicate, None)
        if obj is not None:
            props[predicate] = [obj]

    def remove(self, subject: str, predicate: Optional[str] = None, obj: Optional[str] = None) -> None:
        props = self._nodes.get(subject)
        if props is None:
            return
        if predicate is None:
            props.clear()
            return
        if obj is None:
            props.pop(predicate, None)
            return
        values = props.get(predicate)
        if values and obj in values:
            values.remove(obj)

    # ---- чтение ----

    def value(self, subject: str, predicate: str) -> Optional[str]:
        values = self._nodes.get(subject, {}).get(predicate)
        return values[0] if values else None

    def objects(self, subject: str, predicate: str) -> List[str]:
        return list(self._nodes.get(subject, {}).get(predicate, []))

    def subjects(self, predicate: str, obj: Optional[str] = None) -> List[str]:
        result = []
        for node_id, props in self._nodes.items():
            values = props.get(predicate)
            if not values:
                continue
            if obj is None or obj in values:
                result.append(node_id)
        return result

    def contains(self, subject: str, predicate: str, obj: Optional[str] = None) -> bool:
        values = self._nodes.get(subject, {}).get(predicate)
        if not values:
            return False
        return obj is None or obj in values

    def __len__(self) -> int:
        return len(self._nodes)
