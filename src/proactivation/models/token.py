"""Activation token records and their key layout in the key-value store."""

import json
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from proactivation.services.errors import CorruptRecord

TOKEN_BYTES = 24
SUBSCRIBED_VALUE = "true"


class TokenOrigin(str, Enum):
    """How an activation token was created."""

    WEBHOOK = "webhook"
    RESEND = "resend"
    DIRECT_VERIFY = "direct-verify"

    @property
    def sends_email(self) -> bool:
        """Whether the token only becomes reachable through an emailed link."""
        return self is not TokenOrigin.DIRECT_VERIFY


def token_key(token: str) -> str:
    return f"token:{token}"


def entitlement_key(token: str) -> str:
    return f"user:{token}:isSubscribed"


def last_validated_key(token: str) -> str:
    return f"user:{token}:lastValidated"


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(datetime.now(UTC).timestamp() * 1000)


class TokenRecord(BaseModel):
    """Stored activation token, immutable once written.

    The ``used`` flag is kept for compatibility with records written by older
    deployments. Redemption never reads or changes it, so one activation link
    keeps working on every device it is opened on.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    email: str = Field(min_length=1)
    used: bool = False
    subscription_id: str | None = Field(default=None, alias="subscriptionId")
    customer_id: str | None = Field(default=None, alias="customerId")
    origin: TokenOrigin = TokenOrigin.WEBHOOK
    timestamp: int | None = None

    @model_validator(mode="before")
    @classmethod
    def _legacy_origin(cls, data: Any) -> Any:
        # Older records carried boolean flags instead of an origin tag
        if isinstance(data, dict) and "origin" not in data:
            if data.get("directActivation"):
                data = {**data, "origin": TokenOrigin.DIRECT_VERIFY}
            elif data.get("resent"):
                data = {**data, "origin": TokenOrigin.RESEND}
        return data

    @property
    def created_at(self) -> datetime | None:
        if self.timestamp is None:
            return None
        return datetime.fromtimestamp(self.timestamp / 1000, tz=UTC)

    def to_storage(self) -> str:
        """Serialize using the camelCase field names kept in the store."""
        return self.model_dump_json(by_alias=True)


def decode_token_record(raw: str | bytes | dict | None) -> TokenRecord:
    """Normalize a stored token value into a TokenRecord.

    The store hands back either an already-decoded mapping or the JSON text,
    depending on how the value was written. Both are accepted here so the
    ambiguity stops at this boundary.

    Raises:
        CorruptRecord: If the value is not a JSON object or lacks an email
    """
    data: Any = raw
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CorruptRecord() from e
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise CorruptRecord() from e
    if not isinstance(data, dict):
        raise CorruptRecord()

    try:
        return TokenRecord.model_validate(data)
    except ValidationError as e:
        raise CorruptRecord() from e
