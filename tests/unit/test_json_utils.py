"""
Tests for the JSON encoder used by the queue log handler.
"""

import json
import uuid
from datetime import datetime, timezone

import pytest

from ekklesia_core.constants import TransferScope, UserRole
from ekklesia_core.schemas.transfer_schema import TransferResult
from ekklesia_core.utils.json_utils import dumps


def test_encodes_dates_enums_and_ids():
    ident = uuid.UUID("12345678-1234-5678-1234-567812345678")
    payload = {
        "at": datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        "role": UserRole.SUPER_ADMIN,
        "id": ident,
    }

    decoded = json.loads(dumps(payload))

    assert decoded == {
        "at": "2024-01-01T12:00:00+00:00",
        "role": "SUPER_ADMIN",
        "id": "12345678-1234-5678-1234-567812345678",
    }


def test_encodes_read_models():
    result = TransferResult(
        from_tenant_id="a", to_tenant_id="b", moved=3, scope=TransferScope.ALL
    )

    assert json.loads(dumps({"result": result}))["result"]["moved"] == 3


def test_unknown_types_still_fail():
    with pytest.raises(TypeError):
        dumps({"value": object()})
