"""
Identifier resolution.

Three identifier shapes reach the core:
- participant ids are the raw study-assigned id (e.g. `U1234567890`)
- study and researcher ids are packed: url-safe base64 of `"<Kind>:<admin_id>"`

`resolve_identifier()` branches on the shape and nothing else; ownership
and authorization are checked before the core is called.
"""

import base64
import binascii
import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

from errors import UnresolvedScope


class ScopeKind(str, Enum):
    Participant = "Participant"
    Study = "Study"
    Researcher = "Researcher"


PACKED_KINDS = {ScopeKind.Study.value, ScopeKind.Researcher.value}

_PARTICIPANT_ID = re.compile(r"^[A-Za-z0-9_.\-]+$")


@dataclass(frozen=True)
class ResolvedId:
    """`value` is the study id for participants and the admin id otherwise."""

    kind: ScopeKind
    value: Union[str, int]


def pack_identifier(kind: ScopeKind, admin_id: int) -> str:
    if kind.value not in PACKED_KINDS:
        raise ValueError(f"{kind.value} identifiers are not packed")
    raw = f"{kind.value}:{admin_id}".encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _unpack(identifier: str):
    padded = identifier + "=" * (-len(identifier) % 4)
    try:
        text = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        return None
    kind, sep, rest = text.partition(":")
    if not sep or not kind.isalpha():
        return None
    return kind, rest


def resolve_identifier(identifier: str) -> ResolvedId:
    """Classify `identifier` as a participant, study or researcher id.

    Raises `UnresolvedScope` for anything else, including packed ids of
    other entity kinds.
    """

    if not identifier or not identifier.strip():
        raise UnresolvedScope("Empty identifier")

    unpacked = _unpack(identifier)
    if unpacked is not None:
        kind, rest = unpacked
        if kind not in PACKED_KINDS:
            raise UnresolvedScope(f"Identifier of kind {kind!r} is not a sensor event scope")
        try:
            admin_id = int(rest)
        except ValueError:
            raise UnresolvedScope(f"Malformed {kind} identifier") from None
        return ResolvedId(ScopeKind(kind), admin_id)

    if _PARTICIPANT_ID.match(identifier):
        return ResolvedId(ScopeKind.Participant, identifier)
    raise UnresolvedScope(f"Unrecognized identifier {identifier!r}")


def participant_study_id(identifier: str) -> str:
    """Resolve `identifier` and require it to be a participant id."""

    resolved = resolve_identifier(identifier)
    if resolved.kind is not ScopeKind.Participant:
        raise UnresolvedScope(f"Expected a participant identifier, got a {resolved.kind.value} identifier")
    return resolved.value
