from .print_job import (  # noqa: F401
    BillSnapshot,
    PrintMode,
    PrintRequest,
    PrintResult,
    PrintTarget,
    WeightReading,
)

__all__ = [
    "BillSnapshot",
    "PrintMode",
    "PrintRequest",
    "PrintResult",
    "PrintTarget",
    "WeightReading",
]
