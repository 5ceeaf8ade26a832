"""End-to-end tests against a real Salesforce org.

Skipped unless SF_CLIENT_ID, SF_CLIENT_SECRET, SF_USERNAME and SF_PASSWORD
are set (a .env file in the working directory is honoured).
"""

import time

import pytest
from record_stubs import ContactStub, ContactStubWithFields, RecordStub, WrongRecordStub

from sfclient.client import SalesforceClient
from sfclient.exceptions import FieldConversionError, SalesforceError, SalesforceException

pytestmark = pytest.mark.functional


def _unique_name() -> str:
    return f"Name {time.time_ns()}"


class TestAuthenticate:
    @pytest.mark.parametrize(
        "overrides, expected",
        [
            ({"username": "invalid user name"}, SalesforceError.AUTHENTICATION_FAILURE),
            ({"password": "invalid password"}, SalesforceError.INVALID_PASSWORD),
            ({"client_id": "Invalid client id"}, SalesforceError.INVALID_CLIENT),
            ({"client_secret": "invalid client secret"}, SalesforceError.INVALID_CLIENT),
        ],
    )
    def test_invalid_credentials(self, sf_config, flow_for, overrides, expected):
        client = SalesforceClient(api_version=sf_config.api_version)

        with pytest.raises(SalesforceException) as exc_info:
            client.authenticate(flow_for(**overrides))

        assert exc_info.value.error is expected
        assert client.is_authenticated is False

    def test_valid_credentials(self, live_client):
        assert live_client.is_authenticated is True


class TestQuery:
    def test_invalid_query(self, live_client, sf_config):
        with pytest.raises(SalesforceException):
            live_client.query(f"SELECT id, name, FROM {sf_config.object_name}", RecordStub)

    def test_valid_query(self, live_client):
        actual = live_client.query("SELECT id, name FROM Account", RecordStub)

        assert actual is not None
        if actual:
            assert actual[0].Id
            assert actual[0].Name

        actual = live_client.query(
            "SELECT id, name FROM Account WHERE LastModifiedDate = 2013-12-01T12:00:00+00:00",
            RecordStub,
        )
        assert actual is not None

    def test_datetime_literal_with_special_chars(self, live_client):
        actual = live_client.query(
            "SELECT id, name, description FROM Account "
            "WHERE LastModifiedDate >= 2013-12-01T12:00:00+00:00",
            RecordStub,
        )

        assert actual is not None

    def test_fields_are_not_bound(self, live_client, new_contact):
        new_contact(FirstName=_unique_name(), LastName="Last name")
        soql = "SELECT Id, Name, Email FROM Contact LIMIT 1 OFFSET 0"

        (with_fields,) = live_client.query(soql, ContactStubWithFields)
        (with_props,) = live_client.query(soql, ContactStub)

        assert not with_fields.Id
        assert not with_fields.Name
        assert with_props.Id
        assert with_props.Name

    def test_wrong_property_types(self, live_client):
        if not live_client.query("SELECT Id FROM Account LIMIT 1"):
            pytest.skip("org has no Account records")

        with pytest.raises(FieldConversionError):
            live_client.query("SELECT IsDeleted FROM Account", WrongRecordStub)

    def test_query_batch(self, live_client):
        total = 0

        def count(batch):
            nonlocal total
            total += len(batch)

        actual = live_client.query_batch(
            "SELECT id, name, description FROM Account", count, RecordStub
        )

        assert total != 0
        assert total == len(actual)


class TestFindById:
    def test_not_existing_id(self, live_client):
        assert live_client.find_by_id("Contact", "003i000000K2BP0AAM", RecordStub) is None

    def test_valid_id(self, live_client, new_contact):
        record = {"FirstName": _unique_name(), "LastName": "Last name"}
        record_id = new_contact(**record)

        actual = live_client.find_by_id("Contact", record_id, ContactStub)

        assert actual is not None
        assert actual.FirstName == record["FirstName"]
        assert actual.LastName == record["LastName"]


class TestReadMetadata:
    def test_valid_object_name(self, live_client):
        assert live_client.read_metadata("Account")

    def test_unknown_object_name(self, live_client):
        with pytest.raises(SalesforceException) as exc_info:
            live_client.read_metadata("NoSuchObject__c")

        assert exc_info.value.error is SalesforceError.NOT_FOUND


class TestCreate:
    def test_valid_record(self, new_contact):
        record_id = new_contact(FirstName=_unique_name(), LastName="Last name")

        assert record_id.strip()

    def test_unknown_field(self, live_client):
        with pytest.raises(SalesforceException) as exc_info:
            live_client.create("Contact", {"FirstName1": _unique_name(), "LastName": "Last name"})

        assert exc_info.value.error is SalesforceError.INVALID_FIELD
        assert exc_info.value.message == "No such column 'FirstName1' on sobject of type Contact"


class TestUpdate:
    def test_invalid_id(self, live_client, sf_config):
        with pytest.raises(SalesforceException) as exc_info:
            live_client.update(sf_config.object_name, "INVALID ID", {"Name": "TEST"})

        assert exc_info.value.error is SalesforceError.NOT_FOUND

    def test_valid_record_with_mapping(self, live_client):
        actual = live_client.query("SELECT id, name, description FROM Account", RecordStub)
        if not actual:
            pytest.skip("org has no Account records")

        assert live_client.update(
            "Account", actual[0].Id, {"Description": f"{time.ctime()} UPDATED"}
        )

    def test_valid_record_with_class(self, live_client):
        actual = live_client.query("SELECT id, name, description FROM Account", RecordStub)
        if not actual:
            pytest.skip("org has no Account records")
        record = RecordStub()
        record.Name = actual[0].Name
        record.Description = f"{time.ctime()} UPDATED"

        assert live_client.update("Account", actual[0].Id, record)

    def test_write_protected_field(self, live_client):
        actual = live_client.query("SELECT id, name, description FROM Account", RecordStub)
        if not actual:
            pytest.skip("org has no Account records")
        record = WrongRecordStub()
        record.Name = actual[0].Name
        record.Description = f"{time.ctime()} UPDATED"

        with pytest.raises(SalesforceException) as exc_info:
            live_client.update("Account", actual[0].Id, record)

        assert exc_info.value.error is SalesforceError.INVALID_FIELD_FOR_INSERT_UPDATE


class TestDelete:
    def test_malformed_id(self, live_client):
        with pytest.raises(SalesforceException) as exc_info:
            live_client.delete("Contact", "003i000000K27rxAAC")

        assert exc_info.value.error is SalesforceError.ENTITY_IS_DELETED

    def test_already_deleted(self, live_client, new_contact):
        record_id = new_contact(FirstName=_unique_name(), LastName="Last name")

        assert live_client.delete("Contact", record_id) is True
        with pytest.raises(SalesforceException) as exc_info:
            live_client.delete("Contact", record_id)

        assert exc_info.value.error is SalesforceError.ENTITY_IS_DELETED

    def test_existing_id(self, live_client, new_contact):
        record_id = new_contact(FirstName=_unique_name(), LastName="Last name")

        assert live_client.delete("Contact", record_id) is True
