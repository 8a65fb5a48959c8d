"""Error taxonomy and recovery context for the core inflation pipeline."""

import time
import traceback
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

# Longest string kept for a captured local variable
MAX_VALUE_LENGTH = 500


class CoreInflationError(Exception):
    """Base class for pipeline errors."""


class MissingDataError(CoreInflationError):
    """
    A required input (level, weight or lag base) is missing.

    Row-level occurrences are resolved by excluding the row; the error is
    raised only when a whole input is unusable (e.g. a required column is
    absent or nothing survives the build).
    """


class NonFiniteValueError(MissingDataError):
    """A change could not be computed from a zero or negative base level."""


class DegenerateDistributionError(CoreInflationError):
    """A period's weighted distribution is empty."""

    def __init__(self, message: str, date: Optional[Any] = None):
        super().__init__(message)
        self.date = date


class UndeterminedFactorError(CoreInflationError):
    """Too few complete-case components or dates to extract a common factor."""


def describe_value(value: Any) -> str:
    """Short printable form of a local variable; frames and arrays by shape."""
    if isinstance(value, pd.DataFrame):
        return f"DataFrame({value.shape[0]}x{value.shape[1]}, columns={list(value.columns)[:10]})"
    if isinstance(value, pd.Series):
        return f"Series({len(value)}, name={value.name!r})"
    if isinstance(value, np.ndarray):
        return f"ndarray(shape={value.shape}, dtype={value.dtype})"
    text = str(value)
    if len(text) > MAX_VALUE_LENGTH:
        text = text[:MAX_VALUE_LENGTH] + "..."
    return text


@dataclass
class RecoveryContext:
    """
    What is known about a failed measure: the exception, where it was
    raised, and the local variables of that frame.
    """
    run_id: str
    measure: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    exception_type: str = ""
    exception_message: str = ""
    raised_in: str = ""
    stack_trace: str = ""
    local_variables: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_exception(
        cls,
        run_id: str,
        exc: BaseException,
        measure: Optional[str] = None,
    ) -> "RecoveryContext":
        """Capture an exception and the locals of the innermost frame it passed through."""
        tb = exc.__traceback__
        local_variables: Dict[str, str] = {}
        raised_in = ""
        if tb is not None:
            while tb.tb_next is not None:
                tb = tb.tb_next
            code = tb.tb_frame.f_code
            raised_in = f"{code.co_filename}:{tb.tb_lineno} in {code.co_name}"
            local_variables = {
                name: describe_value(value)
                for name, value in tb.tb_frame.f_locals.items()
                if not name.startswith("__")
            }

        return cls(
            run_id=run_id,
            measure=measure,
            exception_type=type(exc).__name__,
            exception_message=str(exc),
            raised_in=raised_in,
            stack_trace="".join(traceback.format_tb(exc.__traceback__)),
            local_variables=local_variables,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
