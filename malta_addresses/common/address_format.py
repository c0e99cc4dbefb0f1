"""Formatted address strings used as geocoding lookup keys."""

from __future__ import annotations

from malta_addresses.common.models import Address

ADDRESS_DELIMITER = ", "


def format_address_key(address: Address) -> str:
    parts = [
        address.house_name,
        address.house_no or address.house_alpha,
        address.street,
        address.locality,
        address.country,
    ]
    return ADDRESS_DELIMITER.join(str(part) for part in parts if part not in (None, ""))
