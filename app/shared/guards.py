"""Guard helpers that raise typed application errors."""

from typing import TypeVar

from app.exceptions.base import BadRequestError, BaseAppException, NotFoundError

T = TypeVar("T")


def ensure(condition: bool, message: str, error: type[BaseAppException] = BadRequestError) -> None:
    """Raise ``error(message)`` unless ``condition`` holds."""
    if not condition:
        raise error(message)


def ensure_found(entity: T | None, message: str) -> T:
    """Return ``entity`` or raise NotFoundError when it is missing."""
    if entity is None:
        raise NotFoundError(message)
    return entity


def ensure_absent(
    entity: object | None, message: str, error: type[BaseAppException]
) -> None:
    """Raise ``error(message)`` when ``entity`` exists."""
    if entity is not None:
        raise error(message)
