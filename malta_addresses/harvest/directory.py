"""MaltaPost address directory client."""

from __future__ import annotations

from typing import Any

from malta_addresses.common.http import HttpClient
from malta_addresses.common.models import Address, Street, Town


def _items(payload: Any) -> list[dict]:
    return list(payload or [])


class DirectoryClient:
    def __init__(self, client: HttpClient, base_url: str) -> None:
        self.client = client
        self.base_url = base_url

    def _url(self, operation: str) -> str:
        return f"{self.base_url}{operation}"

    def list_towns(self) -> list[Town]:
        payload = self.client.fetch(self._url("GetAllTowns"))
        return [Town.from_payload(item) for item in _items(payload)]

    def list_streets(self, town_id: Any) -> list[Street]:
        payload = self.client.fetch(self._url("GetAllStreets"), {"townId": town_id})
        return [Street.from_payload(item) for item in _items(payload)]

    def list_addresses(self, street_id: Any) -> list[Address]:
        payload = self.client.fetch(self._url("GetAddresses"), {"streetId": street_id})
        return [Address.from_payload(item) for item in _items(payload)]
