"""
Tests for submission payload schemas.
"""
import pydantic
import pytest

from skillconnect.bulk.requests import (
    DEFAULT_EXPORT_FIELDS,
    BulkEmailParameters,
    BulkUpdateParameters,
    ExportParameters,
    ImportParameters,
)

USER_ID = "65a1b2c3d4e5f6a7b8c9d0e1"


def test_import_accepts_csv_upload():
    params = ImportParameters.model_validate(
        {"fileName": "users.csv", "content": b"firstName,lastName,email\n", "contentType": "text/csv"}
    )
    assert params.stored() == {"fileName": "users.csv", "size": 25}


@pytest.mark.parametrize(
    "payload",
    [
        {"fileName": "users.xlsx", "content": b"x", "contentType": "text/csv"},
        {"fileName": "users.csv", "content": b"x", "contentType": "image/png"},
        {"fileName": "users.csv", "content": b""},
    ],
)
def test_import_rejects_non_csv_or_empty(payload):
    with pytest.raises(pydantic.ValidationError):
        ImportParameters.model_validate(payload)


def test_export_defaults_fields():
    params = ExportParameters.model_validate({})
    assert params.export_fields() == DEFAULT_EXPORT_FIELDS
    assert params.export_fields() is not DEFAULT_EXPORT_FIELDS


def test_export_rejects_unknown_fields_and_filters():
    with pytest.raises(pydantic.ValidationError):
        ExportParameters.model_validate({"fields": ["email", "passwordHash"]})
    with pytest.raises(pydantic.ValidationError):
        ExportParameters.model_validate({"filters": {"password": "x"}})


def test_bulk_update_shape():
    params = BulkUpdateParameters.model_validate(
        {"userIds": [USER_ID], "updates": {"status": "suspended", "suspensionReason": "spam"}}
    )
    assert params.updates.suspension_reason == "spam"
    assert params.stored() == {"userIds": [USER_ID], "updates": {"status": "suspended", "suspensionReason": "spam"}}


@pytest.mark.parametrize(
    "payload",
    [
        {"userIds": [], "updates": {"status": "active"}},
        {"userIds": ["nope"], "updates": {"status": "active"}},
        {"userIds": [USER_ID], "updates": {"roles": ["admin"]}},
        {"userIds": [USER_ID], "updates": {"status": "pending"}},
        {"userIds": [USER_ID], "updates": {"status": "active"}, "extra": 1},
    ],
)
def test_bulk_update_rejects_invalid_payloads(payload):
    with pytest.raises(pydantic.ValidationError):
        BulkUpdateParameters.model_validate(payload)


def test_bulk_email_requires_recipients_subject_message():
    with pytest.raises(pydantic.ValidationError):
        BulkEmailParameters.model_validate({"recipients": [], "subject": "Hi", "message": "Body"})
    with pytest.raises(pydantic.ValidationError):
        BulkEmailParameters.model_validate({"recipients": [USER_ID], "subject": "", "message": "Body"})
    params = BulkEmailParameters.model_validate({"recipients": [USER_ID], "subject": "Hi", "message": "Body"})
    assert params.template is None
