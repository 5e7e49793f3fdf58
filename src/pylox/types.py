from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from lark import Tree
from typing_extensions import TypeAlias, TypeGuard

# ---------- Value Model ----------

@dataclass(frozen=True)
class LoxNil:
    def __repr__(self) -> str:
        return "nil"

@dataclass(frozen=True)
class LoxNumber:
    value: float
    def __repr__(self) -> str:
        v = self.value
        return str(int(v)) if v.is_integer() else str(v)

@dataclass(frozen=True)
class LoxString:
    value: str
    def __repr__(self) -> str:
        return f'"{self.value}"'

@dataclass(frozen=True)
class LoxBool:
    value: bool
    def __repr__(self) -> str:
        return "true" if self.value else "false"

NativeFn = Callable[[List['LoxValue']], 'LoxValue']

@dataclass(frozen=True, eq=False)
class NativeFunction:
    """Host-provided callable with a fixed arity."""
    name: str
    arity: int
    fn: NativeFn
    def __repr__(self) -> str:
        return "<native fn>"

@dataclass(frozen=True, eq=False)
class LoxFunction:
    """User-declared function.

    `body` is the declaration's block node, shared by every call. `globals`
    is the environment calls are parented to; there is no closure capture.
    """
    name: str
    params: Tuple[str, ...]
    body: Tree
    globals: 'GlobalEnvironment' = field(repr=False)

    @property
    def arity(self) -> int:
        return len(self.params)

    def __repr__(self) -> str:
        return f"<fn {self.name}>"

LoxCallable: TypeAlias = NativeFunction | LoxFunction

LoxValue: TypeAlias = (
    LoxNil
    | LoxNumber
    | LoxString
    | LoxBool
    | NativeFunction
    | LoxFunction
)

NIL = LoxNil()
TRUE = LoxBool(True)
FALSE = LoxBool(False)

def is_callable(value: LoxValue) -> TypeGuard[LoxCallable]:
    return isinstance(value, (NativeFunction, LoxFunction))

# ---------- Statement completions ----------

class Completion:
    """Outcome of executing one statement."""
    __slots__ = ()

@dataclass(frozen=True)
class NormalCompletion(Completion):
    def __repr__(self) -> str:
        return "normal"

@dataclass(frozen=True)
class ReturnCompletion(Completion):
    value: LoxValue

NORMAL = NormalCompletion()

# ---------- Environments ----------

class Environment:
    __slots__ = ("values", "parent")

    def __init__(self, parent: Optional[Environment]):
        self.values: Dict[str, LoxValue] = {}
        self.parent = parent

    def define(self, name: str, val: LoxValue) -> None:
        self.values[name] = val

    def get(self, name: str) -> LoxValue:
        env: Optional[Environment] = self

        while env is not None:
            if name in env.values:
                return env.values[name]
            env = env.parent

        raise LoxUndefinedVariable(name)

    def assign(self, name: str, val: LoxValue) -> None:
        env: Optional[Environment] = self

        while env is not None:
            if name in env.values:
                env.values[name] = val
                return
            env = env.parent

        raise LoxUndefinedVariable(name)

    def contains(self, name: str) -> bool:
        """True if `name` is bound in this frame (parents are not consulted)."""
        return name in self.values

    def root(self) -> GlobalEnvironment:
        env = self

        while env.parent is not None:
            env = env.parent

        if not isinstance(env, GlobalEnvironment):
            raise LoxRuntimeError("Environment chain does not end at the globals.")
        return env

    def __repr__(self) -> str:
        names = ", ".join(self.values)
        suffix = " -> ..." if self.parent is not None else ""
        return f"<{type(self).__name__} {{{names}}}{suffix}>"

class GlobalEnvironment(Environment):
    """Root of every environment chain.

    Holds the registered natives and the call-depth bookkeeping used by the
    recursion guard.
    """
    __slots__ = ("call_depth", "max_call_depth")

    def __init__(self, max_call_depth: Optional[int] = None):
        super().__init__(parent=None)
        self.call_depth = 0

        if max_call_depth is None:
            from .utils import configured_max_call_depth
            max_call_depth = configured_max_call_depth()
        self.max_call_depth = max_call_depth

        from .runtime import init_stdlib
        init_stdlib()

        for name, native in Builtins.natives.items():
            self.values[name] = native

# ---------- Exceptions ----------

class LoxRuntimeError(Exception):
    kind: str = "RuntimeError"
    lox_meta: Optional[object]

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.lox_meta = None
        self.lox_py_trace = None

    @property
    def line(self) -> Optional[int]:
        return getattr(self.lox_meta, "line", None)

    @property
    def column(self) -> Optional[int]:
        return getattr(self.lox_meta, "column", None)

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        msg = super().__str__()

        line = self.line
        col = self.column

        if line is None:
            return msg

        if col is None:
            return f"{msg} (line {line})"

        return f"{msg} (line {line}, col {col})"

class LoxUndefinedVariable(LoxRuntimeError):
    kind = "UndefinedVariable"

    def __init__(self, name: str):
        super().__init__(f"Undefined variable '{name}'.")
        self.name = name

class LoxTypeError(LoxRuntimeError):
    kind = "TypeMismatch"

class LoxDivisionByZero(LoxRuntimeError):
    kind = "DivisionByZero"

    def __init__(self, message: str = "Division by zero."):
        super().__init__(message)

class LoxNotCallable(LoxRuntimeError):
    kind = "NotCallable"

    def __init__(self, message: str = "Can only call functions and classes."):
        super().__init__(message)

class LoxArityError(LoxRuntimeError):
    kind = "ArityMismatch"

    def __init__(self, expected: int, got: int):
        super().__init__(f"Expected {expected} arguments but got {got}.")
        self.expected = expected
        self.got = got

class LoxUnsupported(LoxRuntimeError):
    kind = "Unsupported"

class LoxStackOverflow(LoxRuntimeError):
    kind = "StackOverflow"

    def __init__(self, message: str = "Stack overflow."):
        super().__init__(message)

# ---------- Native registry ----------

class Builtins:
    natives: Dict[str, NativeFunction] = {}
