"""Core SQL utilities package."""

from .identifier import (
    is_valid_identifier,
    qualify_table,
    quote_identifier,
    validate_identifier,
)
from .operators import (
    WHERE_OPERATORS,
    normalize_direction,
    parse_where_operator,
    validate_conjunction,
)
from .parameters import (
    ParamType,
    build_indexed_params,
    claim_parameter_name,
    find_placeholders,
    infer_parameter_type,
    parameter_name,
    reconcile_parameters,
)

__all__ = [
    "validate_identifier",
    "is_valid_identifier",
    "quote_identifier",
    "qualify_table",
    "WHERE_OPERATORS",
    "parse_where_operator",
    "validate_conjunction",
    "normalize_direction",
    "ParamType",
    "infer_parameter_type",
    "find_placeholders",
    "reconcile_parameters",
    "parameter_name",
    "claim_parameter_name",
    "build_indexed_params",
]
