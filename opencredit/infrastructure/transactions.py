"""Transaction input parsing: raw records -> immutable Transaction values"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from opencredit.domain.exceptions import InvalidTransactionDataError
from opencredit.domain.models import Direction, Transaction, TransactionStatus


class TransactionRecord(BaseModel):
    """Wire shape of one transaction as supplied by the collection platform"""

    model_config = ConfigDict(extra="ignore", frozen=True)

    timestamp: datetime
    amount: Decimal = Field(..., ge=0)
    direction: Direction
    status: TransactionStatus
    counterparty_id: Optional[str] = None
    category: str = ""
    transaction_id: str = ""

    @field_validator("amount", mode="before")
    @classmethod
    def amount_from_float(cls, value: Any) -> Any:
        # JSON numbers arrive as floats; str() keeps 100.10 from becoming 100.0999...
        if isinstance(value, float):
            return str(value)
        return value

    @field_validator("direction", "status", mode="before")
    @classmethod
    def upper_enum(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("counterparty_id", mode="before")
    @classmethod
    def blank_counterparty_is_none(cls, value: Any) -> Any:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    def to_domain(self) -> Transaction:
        return Transaction(
            timestamp=self.timestamp,
            amount=self.amount,
            direction=self.direction,
            status=self.status,
            counterparty_id=self.counterparty_id,
            category=self.category,
            transaction_id=self.transaction_id,
        )


def parse_transactions(records: Iterable[Mapping[str, Any]]) -> List[Transaction]:
    """
    Validate raw transaction records.

    Raises:
        InvalidTransactionDataError: First record that fails validation,
            identified by position and transaction id when present
    """
    transactions = []
    for index, record in enumerate(records):
        try:
            transactions.append(TransactionRecord.model_validate(record).to_domain())
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "record"
            txn_id = record.get("transaction_id") if isinstance(record, Mapping) else None
            label = f"record {index}" + (f" ({txn_id})" if txn_id else "")
            raise InvalidTransactionDataError(f"Invalid transaction {label}: {field}: {first['msg']}") from e
    return transactions
