# src/infra/upsert.py
"""
Построитель атомарного upsert для PostgreSQL.

Один оператор INSERT ... ON CONFLICT ... DO UPDATE ... RETURNING.
Каждое поле может играть ровно одну роль:

- set_on_insert - записывается только при создании строки;
- set           - записывается и при создании, и при обновлении;
- increment     - при создании получает шаг, при обновлении увеличивается на шаг.

Попытка назначить полю вторую роль (например, задать начальное значение
счётчику и одновременно увеличивать его) отклоняется ValueError при
построении, до обращения к БД. Поля, не упомянутые в операторе, получают
DEFAULT таблицы при вставке и не трогаются при обновлении.
"""

from __future__ import annotations

import re
from typing import Any, Iterable

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


class SqlNow:
    """Текущее время сервера БД (now()), одно значение на весь оператор."""

    def __repr__(self) -> str:
        return "NOW"


NOW = SqlNow()


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Недопустимое имя колонки: {name!r}")
    return name


class Upsert:
    """Описание одного атомарного upsert по ключу."""

    SET_ON_INSERT = "set_on_insert"
    SET = "set"
    INCREMENT = "increment"

    def __init__(
        self,
        table: str,
        key: str,
        key_value: Any,
        *,
        columns: Iterable[str],
    ) -> None:
        """
        Args:
            table: Имя таблицы
            key: Колонка с ограничением уникальности (цель ON CONFLICT)
            key_value: Значение ключа
            columns: Колонки, которые разрешено трогать
        """
        self.table = _check_identifier(table)
        self.key = _check_identifier(key)
        self.key_value = key_value
        self._columns = frozenset(_check_identifier(c) for c in columns)
        self._roles: dict[str, str] = {}

        self.on_insert: dict[str, Any] = {}
        self.assignments: dict[str, Any] = {}
        self.increments: dict[str, int] = {}
        self.returning_columns: tuple[str, ...] = ("*",)

    # === РЕГИСТРАЦИЯ ПОЛЕЙ ===

    def _claim(self, field: str, role: str) -> None:
        if field == self.key:
            raise ValueError(f"Ключ {field!r} задаётся только через key_value")
        if field not in self._columns:
            raise ValueError(f"Колонка {field!r} не разрешена для {self.table}")
        current = self._roles.get(field)
        if current is not None:
            raise ValueError(
                f"Поле {field!r} уже используется как {current}, нельзя добавить {role}"
            )
        self._roles[field] = role

    def set_on_insert(self, field: str, value: Any) -> "Upsert":
        """Значение только для новой строки."""
        self._claim(field, self.SET_ON_INSERT)
        self.on_insert[field] = value
        return self

    def set(self, field: str, value: Any) -> "Upsert":
        """Значение для новой и для существующей строки."""
        self._claim(field, self.SET)
        self.assignments[field] = value
        return self

    def increment(self, field: str, by: int = 1) -> "Upsert":
        """Новая строка получает by, существующая увеличивается на by."""
        if isinstance(by, bool) or not isinstance(by, int) or by < 1:
            raise ValueError(f"Шаг инкремента должен быть положительным целым, получено {by!r}")
        self._claim(field, self.INCREMENT)
        self.increments[field] = by
        return self

    def returning(self, *fields: str) -> "Upsert":
        """Колонки в RETURNING (по умолчанию все)."""
        self.returning_columns = tuple(_check_identifier(f) for f in fields) or ("*",)
        return self

    def role_of(self, field: str) -> str | None:
        """Роль поля в операторе (None, если поле не упомянуто)."""
        return self._roles.get(field)

    # === КОМПИЛЯЦИЯ ===

    def compile(self) -> tuple[str, list[Any]]:
        """
        Собирает SQL и список параметров для asyncpg ($1, $2, ...).

        Returns:
            (query, args)
        """
        if not self.assignments and not self.increments:
            raise ValueError("Upsert без обновляемых полей не вернёт строку при конфликте")

        columns: list[str] = [self.key]
        values: list[str] = []
        args: list[Any] = []

        def bind(value: Any) -> str:
            if isinstance(value, SqlNow):
                return "now()"
            args.append(value)
            return f"${len(args)}"

        values.append(bind(self.key_value))
        for field, value in self.on_insert.items():
            columns.append(field)
            values.append(bind(value))
        for field, value in self.assignments.items():
            columns.append(field)
            values.append(bind(value))
        for field, by in self.increments.items():
            columns.append(field)
            values.append(bind(by))

        updates = [f"{field} = EXCLUDED.{field}" for field in self.assignments]
        updates += [
            f"{field} = {self.table}.{field} + EXCLUDED.{field}"
            for field in self.increments
        ]

        query = (
            f"INSERT INTO {self.table} ({', '.join(columns)})\n"
            f"VALUES ({', '.join(values)})\n"
            f"ON CONFLICT ({self.key}) DO UPDATE SET\n    "
            + ",\n    ".join(updates)
            + f"\nRETURNING {', '.join(self.returning_columns)}"
        )
        return query, args
