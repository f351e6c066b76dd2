"""Tests for ARM error payload models."""

import pytest

from arm_client_core.errors.models import ErrorDetail


@pytest.mark.unit
def test_parse_arm_error_envelope():
    """Test parsing the standard {"error": {...}} envelope."""
    detail = ErrorDetail.from_dict(
        {
            "error": {
                "code": "ResourceNotFound",
                "message": "The Resource 'Microsoft.ElasticSan/elasticSans/san1' was not found.",
                "target": "san1",
            }
        }
    )

    assert detail is not None
    assert detail.code == "ResourceNotFound"
    assert detail.message.startswith("The Resource")
    assert detail.target == "san1"
    assert detail.details == []
    assert detail.inner_error is None


@pytest.mark.unit
def test_parse_bare_error_object():
    """Test parsing an error object without an envelope."""
    detail = ErrorDetail.from_dict({"code": "Conflict", "message": "busy"})

    assert detail is not None
    assert detail.code == "Conflict"
    assert detail.message == "busy"


@pytest.mark.unit
def test_parse_odata_error():
    """Data-plane odata errors carry the message under message.value."""
    detail = ErrorDetail.from_dict(
        {"odata.error": {"code": "PoolNotFound", "message": {"lang": "en-US", "value": "The specified pool does not exist."}}}
    )

    assert detail is not None
    assert detail.code == "PoolNotFound"
    assert detail.message == "The specified pool does not exist."


@pytest.mark.unit
def test_parse_nested_details_and_inner_error():
    """Details and innererror are parsed recursively."""
    detail = ErrorDetail.from_dict(
        {
            "error": {
                "code": "DeploymentFailed",
                "message": "At least one resource deployment operation failed.",
                "innererror": {"code": "QuotaExceeded"},
                "details": [
                    {
                        "code": "BadRequest",
                        "message": "invalid sku",
                        "details": [{"code": "SkuNotSupported", "message": "Premium_LRS"}],
                    },
                    {"code": "Conflict", "message": "busy"},
                ],
                "additionalInfo": [{"type": "PolicyViolation", "info": {}}],
            }
        }
    )

    assert detail.code_chain() == ["DeploymentFailed", "QuotaExceeded", "BadRequest", "SkuNotSupported", "Conflict"]
    assert detail.details[0].details[0].message == "Premium_LRS"
    assert detail.additional_info == [{"type": "PolicyViolation", "info": {}}]


@pytest.mark.unit
@pytest.mark.parametrize("payload", [None, [], "oops", 42, {"status": "Failed"}, {"error": "text"}])
def test_non_error_payloads_return_none(payload):
    """Payloads that are not error objects are rejected."""
    assert ErrorDetail.from_dict(payload) is None


@pytest.mark.unit
def test_to_exception_message_flattens_tree():
    detail = ErrorDetail(
        code="BadRequest",
        message="invalid request",
        target="properties.sku",
        details=[ErrorDetail(code="SkuNotSupported", message="Premium_LRS")],
    )

    message = detail.to_exception_message()

    assert message.splitlines() == [
        "BadRequest: invalid request",
        "Target: properties.sku",
        "  SkuNotSupported: Premium_LRS",
    ]


@pytest.mark.unit
def test_to_exception_message_empty():
    assert ErrorDetail().to_exception_message() == "Unknown service error"


@pytest.mark.unit
def test_to_dict_round_trips_shape():
    """to_dict reproduces the wire shape for logging."""
    payload = {
        "code": "BadRequest",
        "message": "invalid sku",
        "target": "sku",
        "details": [{"code": "Inner", "message": "detail"}],
    }

    assert ErrorDetail.from_dict({"error": payload}).to_dict() == payload
