from __future__ import annotations

from dataclasses import dataclass
from typing import TypeGuard

CONTAINER_PREFIX = "container."
_CALL_MARKER = "()"


@dataclass(frozen=True, slots=True)
class ReferenceSegment:
    """One attribute step of a cross-reference path."""

    name: str
    """Provider or attribute name looked up at this step."""
    call: bool = False
    """Whether the looked up object is called and replaced by its result."""

    def __str__(self) -> str:
        return f"{self.name}{_CALL_MARKER if self.call else ''}"


@dataclass(frozen=True, slots=True)
class Reference:
    """A parsed ``container.<path>`` expression."""

    segments: tuple[ReferenceSegment, ...]

    @property
    def path(self) -> str:
        return ".".join(str(segment) for segment in self.segments)

    def __str__(self) -> str:
        return f"{CONTAINER_PREFIX}{self.path}"


def is_reference(value: object) -> TypeGuard[str]:
    """Return true when ``value`` is a string starting with ``container.``.

    Args:
        value: Schema value being checked.

    """
    return isinstance(value, str) and value.startswith(CONTAINER_PREFIX)


def parse_reference(expression: str) -> Reference:
    """Parse a cross-reference expression into segments.

    Each dot-separated segment is an identifier, optionally followed by an
    empty call marker ``()``.

    Args:
        expression: Reference string such as ``"container.services.db()"``.

    Examples:
        .. code-block:: python

            parse_reference("container.services.db()")
            # Reference(segments=(ReferenceSegment("services"),
            #                     ReferenceSegment("db", call=True)))

    Raises:
        ValueError: If the prefix is missing, a segment is empty or is not an
            identifier, or a call marker carries arguments.

    """
    if not is_reference(expression):
        msg = f"Reference {expression!r} must start with {CONTAINER_PREFIX!r}."
        raise ValueError(msg)

    segments: list[ReferenceSegment] = []
    for raw_segment in expression[len(CONTAINER_PREFIX) :].split("."):
        name = raw_segment
        call = False
        open_index = raw_segment.find("(")
        if open_index != -1:
            if raw_segment[open_index:] != _CALL_MARKER:
                msg = (
                    f"Reference {expression!r} has an invalid call marker in segment "
                    f"{raw_segment!r}; only '()' is supported."
                )
                raise ValueError(msg)
            name = raw_segment[:open_index]
            call = True
        if not name.isidentifier():
            msg = f"Reference {expression!r} has an invalid segment {raw_segment!r}."
            raise ValueError(msg)
        segments.append(ReferenceSegment(name=name, call=call))

    return Reference(segments=tuple(segments))


__all__ = [
    "CONTAINER_PREFIX",
    "Reference",
    "ReferenceSegment",
    "is_reference",
    "parse_reference",
]
