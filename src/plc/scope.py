"""Lexical binding tables shared by the analyzer and the interpreter.

The analyzer stores static types in ``Variable.type`` and leaves ``value``
unset; the interpreter stores runtime objects in ``Variable.value``.
Functions are keyed by ``(name, arity)`` so a name may be overloaded on
argument count.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable


@dataclass
class Variable:
    name: str
    type: Any
    constant: bool
    value: Any = None


@dataclass
class Function:
    name: str
    arity: int
    parameter_types: list[Any]
    return_type: Any
    invoke: Callable[[list[Any]], Any] = field(repr=False)


class Scope:
    def __init__(self, parent: Scope | None = None):
        self.parent: Scope | None = parent
        self.variables: dict[str, Variable] = {}
        self.functions: dict[tuple[str, int], Function] = {}

    def child(self) -> Scope:
        return Scope(self)

    def defines_variable(self, name: str) -> bool:
        """Is name bound in this scope itself (ignoring parents)?"""
        return name in self.variables

    def defines_function(self, name: str, arity: int) -> bool:
        return (name, arity) in self.functions

    def define_variable(
        self, name: str, type_: Any, constant: bool = False, value: Any = None
    ) -> Variable:
        variable = Variable(name, type_, constant, value)
        self.variables[name] = variable
        return variable

    def define_function(
        self,
        name: str,
        parameter_types: list[Any],
        return_type: Any,
        invoke: Callable[[list[Any]], Any],
    ) -> Function:
        function = Function(
            name, len(parameter_types), list(parameter_types), return_type, invoke
        )
        self.functions[(name, function.arity)] = function
        return function

    def lookup_variable(self, name: str) -> Variable | None:
        scope: Scope | None = self
        while scope is not None:
            if name in scope.variables:
                return scope.variables[name]
            scope = scope.parent
        return None

    def lookup_function(self, name: str, arity: int) -> Function | None:
        scope: Scope | None = self
        while scope is not None:
            key = (name, arity)
            if key in scope.functions:
                return scope.functions[key]
            scope = scope.parent
        return None
