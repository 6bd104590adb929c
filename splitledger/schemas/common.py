import decimal
from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import PlainSerializer

from splitledger.utils.money import format_money, format_timestamp

# Wire formats: money as "12.34", timestamps as ISO-8601 with offset
Money = Annotated[decimal.Decimal, PlainSerializer(format_money, return_type=str)]
Timestamp = Annotated[datetime, PlainSerializer(format_timestamp, return_type=str)]


def make_success_response(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data, "error": None}


def make_error_response(code: str, message: str, details: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    return {
        "success": False,
        "data": None,
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        },
    }
