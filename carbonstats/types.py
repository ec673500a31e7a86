"""Request and response types for the Carbon Billing REST API."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping

METHOD_ONE = "method1"
ARG_ONE = "arg1"
METHOD_TWO = "method2"
ARG_TWO = "arg2"
METHOD_THREE = "method3"
ARG_THREE = "arg3"
FIELDS = "fields"

METHOD_GET_DETAILS = "get_details"

OBJ_FILTER = "objects.filter"
OBJ_ALL = "objects.all"
OBJ_GET = "objects.get"

MODEL_ABONENTS = "Abonents"
MODEL_FINANCE_OPERATION = "FinanceOperations"
MODEL_VOIP_COUNTERS = "VoipCounters"

# Field names are sent already quoted.
FIELD_NAME = '"name"'
FIELD_EMAIL = '"email"'
FIELD_CONTRACT_NUMBER = '"contract_number"'
FIELD_OPERATOR_ID = '"operator_id"'
FIELD_PARENT_ID = '"parent_id"'
FIELD_OP_SUMMA = '"op_summa"'
FIELD_NUMBER = '"number"'
FIELD_PRICE = '"price"'
FIELD_VOLUME = '"vv"'
FIELD_MONTH = '"month_number"'
FIELD_YEAR = '"year_number"'
FIELD_OUTGOING_TRAFFIC = '"v_out"'
FIELD_AMOUNT = '"summa"'


@dataclass
class RequestParams:
    """Methods, their arguments and the selected fields of one API call."""

    method1: str
    arg1: dict[str, Any] = field(default_factory=dict)
    method2: str = ""
    arg2: dict[str, Any] = field(default_factory=dict)
    method3: str = ""
    arg3: dict[str, Any] = field(default_factory=dict)
    fields: list[str] | None = None


def _get(data: Mapping[str, Any], key: str, expected: type, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise ValueError(f"field {key!r} has the wrong type")
    return value


@dataclass
class ResultRequest:
    """One object returned by the API."""

    pk: int = 0
    model: str = ""
    fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> ResultRequest:
        """Build a result from a decoded JSON object."""
        if not isinstance(data, Mapping):
            raise ValueError("result item must be a JSON object")
        return cls(
            pk=_get(data, "pk", int, 0),
            model=_get(data, "model", str, ""),
            fields=dict(_get(data, "fields", dict, {})),
        )


@dataclass
class ApiResponse:
    """A response carrying a list of results and a list of errors."""

    call: str = ""
    result: list[ResultRequest] = field(default_factory=list)
    error: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> ApiResponse:
        """Build a response from a decoded JSON object."""
        if not isinstance(data, Mapping):
            raise ValueError("response must be a JSON object")
        errors = _get(data, "error", list, [])
        if not all(isinstance(item, str) for item in errors):
            raise ValueError("error entries must be strings")
        return cls(
            call=_get(data, "call", str, ""),
            result=[ResultRequest.from_dict(item) for item in _get(data, "result", list, [])],
            error=list(errors),
        )


def parse_response(body: bytes | str) -> ApiResponse:
    """Decode a JSON response body; raises ValueError when it is malformed."""
    data = json.loads(body)
    return ApiResponse() if data is None else ApiResponse.from_dict(data)


@dataclass(frozen=True)
class AbonentInfo:
    """A subscriber of the billing system."""

    pk: int
    name: str
    contract_number: str
    email: str
    operator_id: int
    parent_id: int


@dataclass
class DocumentInfo:
    """A billing document with its number and total amount."""

    number: str
    amount: Decimal


@dataclass
class MinutesInfo:
    """Outgoing telephony traffic and its cost for a period."""

    count: Decimal = field(default_factory=Decimal)
    amount: Decimal = field(default_factory=Decimal)