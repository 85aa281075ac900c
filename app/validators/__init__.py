"""
app/validators package marker.
"""

from app.validators.row_coercer import (
    INVALID_NUMBER,
    ParsedNumber,
    RowCoercer,
    parse_float_or_sentinel,
    parse_int_or_sentinel,
)

__all__ = [
    "INVALID_NUMBER",
    "ParsedNumber",
    "RowCoercer",
    "parse_float_or_sentinel",
    "parse_int_or_sentinel",
]
