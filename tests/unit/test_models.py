from malta_addresses.common.address_format import format_address_key
from malta_addresses.common.models import Address, AggregatedRecord, GeocodeResult, Street, Town


def _address(**overrides):
    payload = {
        "id": 100,
        "houseNo": "5",
        "street": "Main",
        "postCode": "X1",
        "locality": "A",
        "country": "M",
    }
    payload.update(overrides)
    return Address.from_payload(payload)


def test_town_and_street_from_payload():
    assert Town.from_payload({"id": 1, "name": "Valletta"}) == Town(id=1, name="Valletta")
    assert Street.from_payload({"id": 10, "name": "Triq ir-Repubblika"}).name == "Triq ir-Repubblika"


def test_address_from_payload_maps_camel_case_and_keeps_upstream_values():
    address = _address(houseName="Ta' Xbiex", houseAlpha="", flatNo="3", street="")
    assert address.house_name == "Ta' Xbiex"
    assert address.house_no == "5"
    assert address.house_alpha == ""
    assert address.street == ""
    assert address.flat_no == "3"
    assert address.post_code == "X1"


def test_format_address_key_uses_number_before_alpha():
    assert format_address_key(_address()) == "5, Main, A, M"
    assert format_address_key(_address(houseNo=None, houseAlpha="B")) == "B, Main, A, M"
    assert format_address_key(_address(houseNo="7", houseAlpha="B")) == "7, Main, A, M"


def test_format_address_key_skips_empty_parts():
    address = _address(houseName="Villa Rosa", houseNo=None, locality="", country=None)
    assert format_address_key(address) == "Villa Rosa, Main"


def test_format_address_key_ignores_flat_and_postcode():
    assert format_address_key(_address(flatNo="2", postCode="Y9")) == format_address_key(_address())


def test_aggregated_record_to_dict_keeps_every_field():
    record = AggregatedRecord(address=_address(), geocode=GeocodeResult())
    assert record.id == 100
    assert record.to_dict() == {
        "id": 100,
        "houseName": None,
        "houseAlpha": None,
        "houseNo": "5",
        "flatNo": None,
        "street": "Main",
        "postCode": "X1",
        "locality": "A",
        "country": "M",
        "latitude": None,
        "longitude": None,
    }


def test_geocode_result_has_coordinates():
    assert GeocodeResult(latitude=35.9, longitude=14.5).has_coordinates
    assert not GeocodeResult().has_coordinates


def test_missing_keys_become_none_but_blank_strings_survive_to_dict():
    address = Address.from_payload({"id": 7, "street": "", "postCode": "", "locality": "Mosta", "country": "Malta"})
    row = AggregatedRecord(address=address, geocode=GeocodeResult()).to_dict()

    assert row["street"] == ""
    assert row["postCode"] == ""
    assert row["houseName"] is None
    assert row["flatNo"] is None
    assert format_address_key(address) == "Mosta, Malta"
