"""
Decoders turning raw JSON-RPC replies into typed OpenOTP entities.

Every decoder is independent and free of side effects: a failure is reported
by raising DecodeError (whole reply unusable) or, for the license, by
returning field-level DecodeErrors alongside the decoded entity.
"""

import time
from datetime import datetime
from typing import List, Tuple

from pydantic import ValidationError

from contracts.openotp import LicenseDetails, LicensePayload, ServerStatus
from contracts.rpc import RPCResponse
from core.errors import DecodeError

LICENSE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def decode_active_users(reply: RPCResponse) -> int:
    """
    Decode the Count_Activated_Users result, a bare JSON integer.

    Raises:
        DecodeError: kind malformed_integer when the result is not an integer.
    """
    value = reply.result
    # bool is an int subclass but true/false is not a user count
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(
            DecodeError.MALFORMED_INTEGER,
            f"Unable to determine Activated Users: expected integer, got {value!r}",
        )
    return value


def parse_license_date(value: str) -> float:
    """
    Convert a license validity date to epoch seconds.

    Args:
        value (str): Date in "YYYY-MM-DD HH:MM:SS" form, local time.

    Returns:
        float: Seconds since the epoch.

    Raises:
        DecodeError: kind malformed_date when the string does not parse.
    """
    try:
        parsed = datetime.strptime(value, LICENSE_DATE_FORMAT)
    except (TypeError, ValueError) as e:
        raise DecodeError(
            DecodeError.MALFORMED_DATE, f"Unable to parse license date {value!r}: {e}"
        ) from e
    return time.mktime(parsed.timetuple())


def decode_license_details(reply: RPCResponse) -> Tuple[LicenseDetails, List[DecodeError]]:
    """
    Decode the Get_License_Details result.

    The object is decoded eagerly; maximum_users and the two validity dates
    then convert independently so a bad field never discards the others.

    Returns:
        Tuple[LicenseDetails, List[DecodeError]]: The license and one error
        per field that failed to convert.

    Raises:
        DecodeError: kind malformed_object when the result is not a license object.
    """
    if not isinstance(reply.result, dict):
        raise DecodeError(
            DecodeError.MALFORMED_OBJECT,
            f"Unable to decode license details: expected object, got {type(reply.result).__name__}",
        )
    try:
        payload = LicensePayload.model_validate(reply.result)
    except ValidationError as e:
        raise DecodeError(
            DecodeError.MALFORMED_OBJECT, f"Unable to decode license details: {e}"
        ) from e

    details = LicenseDetails(
        customer_id=payload.customer_id,
        instance_id=payload.instance_id,
        error_message=payload.error_message,
    )
    errors = []
    raw_max = payload.products.OpenOTP.maximum_users
    try:
        details.max_users = float(raw_max)
    except ValueError:
        errors.append(
            DecodeError(
                DecodeError.MALFORMED_NUMBER,
                f"Unable to parse license maximum users {raw_max!r}",
            )
        )
    for field in ("valid_from", "valid_to"):
        try:
            setattr(details, field, parse_license_date(getattr(payload, field)))
        except DecodeError as e:
            errors.append(e)
    return details, errors


def decode_server_status(reply: RPCResponse) -> ServerStatus:
    """
    Decode the Server_status result.

    Raises:
        DecodeError: kind malformed_object on any structural mismatch.
    """
    try:
        return ServerStatus.model_validate(reply.result)
    except ValidationError as e:
        raise DecodeError(
            DecodeError.MALFORMED_OBJECT, f"Unable to decode server status: {e}"
        ) from e
