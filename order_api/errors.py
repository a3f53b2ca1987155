from typing import List, Sequence

from pydantic import ValidationError as PydanticValidationError


class ValidationError(Exception):
    """Caller input rejected before any state change. Carries one message per violation."""

    def __init__(self, messages: Sequence[str]):
        self.messages: List[str] = list(messages)
        super().__init__("; ".join(self.messages))


class InvalidStatusError(ValidationError):
    def __init__(self, status, valid_statuses: Sequence[str]):
        self.status = status
        self.valid_statuses: List[str] = list(valid_statuses)
        super().__init__([f"Invalid status {status!r}, expected one of: {', '.join(self.valid_statuses)}"])


class NotFoundError(Exception):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


def format_errors(errors) -> List[str]:
    """Turn pydantic error dicts into ``field.path: message`` strings."""
    messages = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    return messages


def from_pydantic(exc: PydanticValidationError) -> ValidationError:
    return ValidationError(format_errors(exc.errors()))
