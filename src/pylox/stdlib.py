"""Built-in native functions registered into every global environment."""

from __future__ import annotations

import time
from typing import List

from .runtime import register_native, LoxNumber, LoxValue

@register_native("clock", arity=0)
def std_clock(_args: List[LoxValue]) -> LoxNumber:
    """Whole seconds since the Unix epoch."""
    return LoxNumber(float(int(time.time())))
