"""Client for the Carbon Billing REST API and the monthly cost report."""

from __future__ import annotations

import json
import logging
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from typing import Any, Mapping
from urllib.parse import urlencode

import requests

from .config import CarbonConfig
from .types import (
    ARG_ONE,
    ARG_THREE,
    ARG_TWO,
    FIELD_AMOUNT,
    FIELD_CONTRACT_NUMBER,
    FIELD_EMAIL,
    FIELD_MONTH,
    FIELD_NAME,
    FIELD_NUMBER,
    FIELD_OP_SUMMA,
    FIELD_OPERATOR_ID,
    FIELD_OUTGOING_TRAFFIC,
    FIELD_PARENT_ID,
    FIELD_PRICE,
    FIELD_VOLUME,
    FIELD_YEAR,
    FIELDS,
    METHOD_GET_DETAILS,
    METHOD_ONE,
    METHOD_THREE,
    METHOD_TWO,
    MODEL_ABONENTS,
    MODEL_FINANCE_OPERATION,
    MODEL_VOIP_COUNTERS,
    OBJ_FILTER,
    OBJ_GET,
    AbonentInfo,
    ApiResponse,
    DocumentInfo,
    MinutesInfo,
    RequestParams,
    parse_response,
)

REQUEST_TIMEOUT = 10.0
NO_DOCUMENT = "Нет документа за данный период"

_LOGGER_NAME = "carbonstats"
_CENT = Decimal("0.01")
_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class CarbonBillingError(Exception):
    """Raised when a request to the billing server fails."""


class _ApiReportedError(CarbonBillingError):
    """The server answered with an error message of its own."""


def previous_month_end(today: date) -> date:
    """Return the last day of the month before ``today``."""
    return today - timedelta(days=today.day)


def _escape_json(text: str) -> str:
    return "".join(_JSON_ESCAPES.get(char, char) for char in text)


def _add_args(form: dict[str, str], args: Mapping[str, Any], key: str) -> None:
    if not args:
        return
    try:
        encoded = json.dumps(
            dict(args),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as exc:
        raise CarbonBillingError(f"cannot encode {key}: {exc}") from exc
    form[key] = _escape_json(encoded)


def build_form_data(params: RequestParams) -> dict[str, str]:
    """Build the form fields of one API call."""
    form = {METHOD_ONE: params.method1}
    _add_args(form, params.arg1, ARG_ONE)
    if params.method2:
        form[METHOD_TWO] = params.method2
        _add_args(form, params.arg2, ARG_TWO)
    if params.method3:
        form[METHOD_THREE] = params.method3
        _add_args(form, params.arg3, ARG_THREE)
    if params.fields is not None:
        form[FIELDS] = "[" + ",".join(params.fields) + "]"
    return form


def _encode_form(form: Mapping[str, str]) -> bytes:
    return urlencode(sorted(form.items())).encode("ascii")


def _round2(value: Decimal) -> Decimal:
    context = Context(prec=max(28, value.adjusted() + 4))
    return value.quantize(_CENT, rounding=ROUND_HALF_UP, context=context)


def _format_decimal(value: Decimal) -> str:
    if value == 0:
        return "0"
    context = Context(prec=max(28, len(value.as_tuple().digits)))
    return format(value.normalize(context), "f")


def _str_field(fields: Mapping[str, Any], name: str) -> str:
    value = fields.get(name)
    if not isinstance(value, str):
        raise CarbonBillingError(f"field {name!r} must be a string, got {value!r}")
    return value


def _number_field(fields: Mapping[str, Any], name: str) -> int | float:
    value = fields.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CarbonBillingError(f"field {name!r} must be a number, got {value!r}")
    return value


def _decimal_from_number(fields: Mapping[str, Any], name: str) -> Decimal:
    value = _number_field(fields, name)
    return Decimal(repr(value)) if isinstance(value, float) else Decimal(value)


def _decimal_from_string(fields: Mapping[str, Any], name: str) -> Decimal:
    text = _str_field(fields, name)
    try:
        value = Decimal(text)
    except InvalidOperation:
        return Decimal(0)
    return value if value.is_finite() else Decimal(0)


class CarbonBilling:
    """Queries the billing server and compares document and traffic costs."""

    def __init__(
        self,
        config: CarbonConfig,
        logger: logging.Logger | None = None,
        session: requests.Session | None = None,
        today: date | None = None,
    ) -> None:
        self.server_address = f"{config.host}:{config.port}"
        self._log = logger if logger is not None else logging.getLogger(_LOGGER_NAME)
        self._session = session if session is not None else requests.Session()
        self.past_date = previous_month_end(today if today is not None else date.today())
        try:
            self.abonents: list[AbonentInfo] = self.get_abonents_list(config.parents)
        except CarbonBillingError as exc:
            raise CarbonBillingError("Failed to create abonents list") from exc

    def run(self) -> Decimal:
        """Print the document, minutes and additional costs of the third abonent."""
        if len(self.abonents) < 3:
            raise CarbonBillingError("the abonents list holds fewer than three entries")
        abonent = self.abonents[2]

        doc_info = self.get_abonent_document(abonent)
        try:
            min_info = self.get_minutes_for_past_period(
                self.past_date.month, self.past_date.year, abonent.pk
            )
        except CarbonBillingError:
            min_info = MinutesInfo()
        additional = self.calculate_additional_cost(doc_info, min_info)

        print("Сумма УПД: ", _format_decimal(doc_info.amount))
        print("Сумма за минуты: ", _format_decimal(min_info.amount))
        print("Additional Cost Additional:", _format_decimal(additional))
        return additional

    def calculate_additional_cost(self, doc_info: DocumentInfo, min_info: MinutesInfo) -> Decimal:
        """Return the part of the document amount not covered by the minutes."""
        return doc_info.amount - min_info.amount

    def get_minutes_for_past_period(self, month: int, year: int, client_pk: int) -> MinutesInfo:
        """Return outgoing traffic and its cost for one month.

        Transport and decoding failures yield zero values; an error reported
        by the server raises CarbonBillingError.
        """
        params = RequestParams(
            method1=OBJ_FILTER,
            arg1={"abonent_id": client_pk, "month_number": month, "year_number": year},
            fields=[FIELD_MONTH, FIELD_YEAR, FIELD_AMOUNT, FIELD_OUTGOING_TRAFFIC],
        )
        try:
            response = self._query(MODEL_VOIP_COUNTERS, params)
        except _ApiReportedError:
            raise
        except CarbonBillingError:
            return MinutesInfo()

        if not response.result:
            self._log.debug("There are no elements in the response")
            return MinutesInfo()

        count = Decimal(0)
        amount = Decimal(0)
        for item in response.result:
            amount += _decimal_from_string(item.fields, "summa")
            count += _decimal_from_string(item.fields, "v_out")
        return MinutesInfo(count=_round2(count), amount=_round2(amount))

    def get_abonent_document(self, abonent: AbonentInfo) -> DocumentInfo:
        """Return the billing document of ``abonent`` for the past period."""
        params = RequestParams(
            method1=OBJ_FILTER,
            arg1={
                "abonent": abonent.pk,
                "op_type": 1,
                "period_end_date": self.past_date.isoformat(),
            },
            fields=[FIELD_OP_SUMMA, FIELD_NUMBER],
        )
        response = self._query(MODEL_FINANCE_OPERATION, params)

        if not response.result:
            self._log.debug("There are no elements in the response")
            return DocumentInfo(number=NO_DOCUMENT, amount=Decimal(0))

        document = response.result[0]
        try:
            amount = self.get_document_amount(document.pk, abonent.pk)
        except CarbonBillingError as exc:
            self._log.error("Error getting document amount", extra={"fields": {"error": str(exc)}})
            raise
        return DocumentInfo(number=_str_field(document.fields, "number"), amount=amount)

    def get_document_amount(self, operation_pk: int, client_pk: int) -> Decimal:
        """Return the sum of price times volume over the document's lines."""
        params = RequestParams(
            method1=OBJ_GET,
            arg1={
                "abonent": client_pk,
                "op_type": 1,
                "period_end_date": self.past_date.isoformat(),
                "op_id": operation_pk,
            },
            method2=METHOD_GET_DETAILS,
            fields=[FIELD_VOLUME, FIELD_PRICE],
        )
        response = self._query(MODEL_FINANCE_OPERATION, params)

        if not response.result:
            self._log.debug("There are no elements in the response")
            return Decimal(0)

        total = Decimal(0)
        for operation in response.result:
            price = _decimal_from_number(operation.fields, "price")
            volume = _decimal_from_number(operation.fields, "vv")
            total += price * volume
        return _round2(total)

    def get_abonents_list(self, parents: list[str]) -> list[AbonentInfo]:
        """Return the abonents whose parent is one of ``parents``."""
        params = RequestParams(
            method1=OBJ_FILTER,
            arg1={"parent__range": list(parents)},
            fields=[
                FIELD_NAME,
                FIELD_EMAIL,
                FIELD_OPERATOR_ID,
                FIELD_PARENT_ID,
                FIELD_CONTRACT_NUMBER,
            ],
        )
        response = self._query(MODEL_ABONENTS, params)
        return [
            AbonentInfo(
                pk=item.pk,
                name=_str_field(item.fields, "name"),
                contract_number=_str_field(item.fields, "contract_number"),
                email=_str_field(item.fields, "email"),
                operator_id=int(_number_field(item.fields, "operator_id")),
                parent_id=int(_number_field(item.fields, "parent_id")),
            )
            for item in response.result
        ]

    def call_api(self, model: str, params: bytes | str) -> bytes:
        """POST a form-encoded body to ``model`` and return the raw response body."""
        url = f"http://{self.server_address}/rest_api/v2/{model}/"
        try:
            response = self._session.post(
                url,
                data=params,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=REQUEST_TIMEOUT,
                verify=False,
            )
            body = response.content
        except requests.RequestException as exc:
            raise CarbonBillingError(f"request to {url} failed: {exc}") from exc

        self._log.debug(
            "Response from Carbon Billing",
            extra={"fields": {"ResponseBody": body.decode("utf-8", errors="replace")}},
        )
        return body

    def print_abonents_list(self) -> None:
        """Print every abonent on its own line."""
        for item in self.abonents:
            print(
                f"{{{item.pk} {item.name} {item.contract_number} "
                f"{item.email} {item.operator_id} {item.parent_id}}}"
            )

    def _query(self, model: str, params: RequestParams) -> ApiResponse:
        try:
            form = build_form_data(params)
        except CarbonBillingError as exc:
            self._log.error("Error creating formData", extra={"fields": {"error": str(exc)}})
            raise
        try:
            body = self.call_api(model, _encode_form(form))
        except CarbonBillingError as exc:
            self._log.error(
                "Error sent request to CarbonBilling", extra={"fields": {"error": str(exc)}}
            )
            raise
        try:
            response = parse_response(body)
        except ValueError as exc:
            self._log.error("Error unmarshalling response", extra={"fields": {"error": str(exc)}})
            raise CarbonBillingError(f"malformed response: {exc}") from exc
        if response.error:
            last = response.error[-1]
            self._log.error("Error in the CarbonBilling response ", extra={"fields": {"Error": last}})
            raise _ApiReportedError(last)
        return response