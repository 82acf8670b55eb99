"""Version model for Maven artifact versions.

Two concrete representations are provided:

* ``VersionNumber`` for the common ``major[.minor[.revision]][(.|-)qualifier]``
  shape, ordered numerically with a qualifier ladder.
* ``VersionGeneric`` for anything else, ordered with the token rules used by
  Maven's generic version scheme.

``parse_version`` picks the right one for a string.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

SNAPSHOT_QUALIFIER = "SNAPSHOT"

# Generic version token kinds. A kind is numeric when bit 1 is clear.
KIND_MAX = 8
KIND_BIGINT = 5
KIND_INT = 4
KIND_STRING = 3
KIND_QUALIFIER = 2
KIND_MIN = 0

# Ranks for well-known qualifiers inside generic versions.
GENERIC_QUALIFIERS = {
    "alpha": -5,
    "beta": -4,
    "milestone": -3,
    "cr": -2,
    "rc": -2,
    "snapshot": -1,
    "ga": 0,
    "final": 0,
    "release": 0,
    "": 0,
    "sp": 1,
}

GENERIC_SHORTHANDS = {
    "a": "alpha",
    "b": "beta",
    "m": "milestone",
}

# Qualifier ladder for numeric versions, lowest first.
RANK_ALPHA = 1
RANK_BETA = 2
RANK_MILESTONE = 3
RANK_RC = 4
RANK_UNRECOGNIZED = 5
RANK_SNAPSHOT = 6
RANK_RELEASE = 7
RANK_NUMERIC = 8
RANK_SP = 9

QUALIFIER_RANKS = {
    "alpha": RANK_ALPHA,
    "beta": RANK_BETA,
    "milestone": RANK_MILESTONE,
    "rc": RANK_RC,
    "cr": RANK_RC,
    "snapshot": RANK_SNAPSHOT,
    "release": RANK_RELEASE,
    "final": RANK_RELEASE,
    "ga": RANK_RELEASE,
    "sp": RANK_SP,
}

RELEASE_SYNONYMS = ("release", "final", "ga")

VERSION_PATTERN = re.compile(
    r"^(?P<major>\d+)"
    r"(?:\.(?P<minor>0|[1-9]\d*)(?:\.(?P<revision>0|[1-9]\d*))?)?"
    r"(?:(?P<separator>[.\-])(?P<qualifier>.*[^.\-]))??$",
    re.ASCII,
)

QUALIFIER_TOKEN_PATTERN = re.compile(r"^([a-z]+)(\d*)")


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


class Version(ABC):
    """Common interface of all version representations.

    Comparison operators delegate to ``compare_to`` so numeric and generic
    versions can be mixed freely.
    """

    qualifier: str = ""

    @abstractmethod
    def with_qualifier(self, qualifier: Optional[str]) -> 'Version':
        """Return a copy of this version carrying another qualifier."""

    @abstractmethod
    def is_snapshot(self) -> bool:
        """Whether this version denotes a mutable development build."""

    @abstractmethod
    def compare_to(self, other: 'Version') -> int:
        """Return a negative, zero or positive number like a comparator."""

    def __lt__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare_to(other) < 0

    def __le__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare_to(other) <= 0

    def __gt__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare_to(other) > 0

    def __ge__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare_to(other) >= 0


class _Item:
    """One token of a generic version."""

    __slots__ = ("kind", "value")

    def __init__(self, kind: int, value=None):
        self.kind = kind
        self.value = value

    def is_number(self) -> bool:
        return (self.kind & KIND_QUALIFIER) == 0

    def compare_to(self, that: Optional['_Item']) -> int:
        if that is None:
            # Compare against the implicit padding item.
            if self.kind == KIND_MIN:
                return -1
            if self.kind in (KIND_MAX, KIND_BIGINT, KIND_STRING):
                return 1
            return _sign(self.value)

        rel = self.kind - that.kind
        if rel != 0:
            return _sign(rel)
        if self.kind in (KIND_MAX, KIND_MIN):
            return 0
        if self.kind == KIND_STRING:
            return (self.value > that.value) - (self.value < that.value)
        return _sign(self.value - that.value)

    def __eq__(self, other):
        if not isinstance(other, _Item):
            return NotImplemented
        return self.compare_to(other) == 0

    def __hash__(self):
        return hash((self.kind, self.value))

    def __repr__(self):
        return f"_Item({self.kind}, {self.value!r})"


def _string_item(token: str, last: bool, followed_by_digit: bool) -> _Item:
    lower = token.lower()
    if last and lower == "min":
        return _Item(KIND_MIN, "min")
    if last and lower == "max":
        return _Item(KIND_MAX, "max")
    if followed_by_digit and len(lower) == 1 and lower in GENERIC_SHORTHANDS:
        lower = GENERIC_SHORTHANDS[lower]
    if lower in GENERIC_QUALIFIERS:
        return _Item(KIND_QUALIFIER, GENERIC_QUALIFIERS[lower])
    return _Item(KIND_STRING, lower)


def _tokenize(version: str) -> List[_Item]:
    """Split a version string on separators and digit/letter transitions."""
    if not version:
        version = "0"
    items = []
    length = len(version)
    index = 0
    while index < length:
        # state: -2 nothing seen, -1 letters, 0 only zeros, 1 significant digits
        state = -2
        start = index
        end = length
        followed_by_digit = False
        while index < length:
            char = version[index]
            if char in ".-_":
                end = index
                index += 1
                break
            if "0" <= char <= "9":
                if state == -1:
                    end = index
                    followed_by_digit = True
                    break
                if state == 0:
                    # strip leading zero
                    start += 1
                state = 1 if (state > 0 or char != "0") else 0
            else:
                if state >= 0:
                    end = index
                    break
                state = -1
            index += 1

        if end - start > 0:
            token = version[start:end]
            number = state >= 0
        else:
            token = "0"
            number = True

        if number:
            value = int(token)
            items.append(_Item(KIND_BIGINT if len(token) > 9 else KIND_INT, value))
        else:
            items.append(_string_item(token, index >= length, followed_by_digit))
    return _trim_padding(items)


def _trim_padding(items: List[_Item]) -> List[_Item]:
    """Drop trailing zero-like items of each numeric or textual run."""
    number = None
    end = len(items) - 1
    for i in range(end, 0, -1):
        item = items[i]
        if item.is_number() != number:
            end = i
            number = item.is_number()
        if (end == i
                and (i == len(items) - 1 or items[i - 1].is_number() == item.is_number())
                and item.compare_to(None) == 0):
            del items[i]
            end -= 1
    return items


def _compare_padding(items: List[_Item], index: int, number: Optional[bool]) -> int:
    rel = 0
    for item in items[index:]:
        if number is not None and number != item.is_number():
            continue
        rel = item.compare_to(None)
        if rel != 0:
            break
    return rel


class VersionGeneric(Version):
    """Arbitrary version string ordered with generic token rules."""

    def __init__(self, version: Optional[str] = None):
        self._version = version or ""
        self._items = _tokenize(self._version)

    def with_qualifier(self, qualifier: Optional[str]) -> 'VersionGeneric':
        return VersionGeneric(self._version)

    def is_snapshot(self) -> bool:
        return False

    def compare_to(self, other: Version) -> int:
        if isinstance(other, VersionGeneric):
            those = other._items
        else:
            those = VersionGeneric(str(other))._items
        these = self._items

        number = True
        index = 0
        while True:
            if index >= len(these) and index >= len(those):
                return 0
            if index >= len(these):
                return -_compare_padding(those, index, None)
            if index >= len(those):
                return _compare_padding(these, index, None)

            this_item = these[index]
            that_item = those[index]
            if this_item.is_number() != that_item.is_number():
                if index == 0:
                    return this_item.compare_to(that_item)
                if number == this_item.is_number():
                    return _compare_padding(these, index, number)
                return -_compare_padding(those, index, number)

            rel = this_item.compare_to(that_item)
            if rel != 0:
                return rel
            number = this_item.is_number()
            index += 1

    def __eq__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare_to(other) == 0

    def __hash__(self):
        return hash(tuple(self._items))

    def __str__(self):
        return self._version

    def __repr__(self):
        return f"VersionGeneric({self._version!r})"


def qualifier_rank(qualifier: Optional[str]) -> int:
    """Position of a qualifier on the ladder used by ``VersionNumber``."""
    if not qualifier:
        return RANK_RELEASE
    lower = qualifier.lower()
    if lower[0].isdigit():
        return RANK_NUMERIC
    match = QUALIFIER_TOKEN_PATTERN.match(lower)
    if not match:
        return RANK_UNRECOGNIZED
    token, digits = match.groups()
    if token in QUALIFIER_RANKS:
        return QUALIFIER_RANKS[token]
    if digits and token in GENERIC_SHORTHANDS:
        return QUALIFIER_RANKS[GENERIC_SHORTHANDS[token]]
    return RANK_UNRECOGNIZED


@dataclass(frozen=True, eq=False)
class VersionNumber(Version):
    """Numeric version with optional minor, revision and qualifier.

    An absent minor or revision renders differently from an explicit zero
    but orders the same.
    """

    major: Optional[int] = 0
    minor: Optional[int] = None
    revision: Optional[int] = None
    qualifier: str = ""
    separator: str = "-"

    def __post_init__(self):
        if self.qualifier is None:
            object.__setattr__(self, "qualifier", "")
        if not self.separator:
            object.__setattr__(self, "separator", "-")

    @classmethod
    def parse(cls, version: Optional[str]) -> 'VersionNumber':
        """Parse a version string, returning ``UNKNOWN`` when it doesn't fit."""
        if not version:
            return UNKNOWN
        match = VERSION_PATTERN.match(version)
        if not match:
            return UNKNOWN

        def to_int(group):
            value = match.group(group)
            return int(value) if value is not None else None

        return cls(
            major=to_int("major"),
            minor=to_int("minor"),
            revision=to_int("revision"),
            qualifier=match.group("qualifier") or "",
            separator=match.group("separator") or "-",
        )

    def base_version(self) -> 'VersionNumber':
        return VersionNumber(self.major_int, self.minor_int, self.revision_int)

    def with_qualifier(self, qualifier: Optional[str]) -> 'VersionNumber':
        return VersionNumber(self.major, self.minor, self.revision, qualifier or "", self.separator)

    @property
    def major_int(self) -> int:
        return self.major or 0

    @property
    def minor_int(self) -> int:
        return self.minor or 0

    @property
    def revision_int(self) -> int:
        return self.revision or 0

    @property
    def qualifier_lower(self) -> str:
        return self.qualifier.lower()

    def is_snapshot(self) -> bool:
        return SNAPSHOT_QUALIFIER in self.qualifier.upper()

    def _comparable_qualifier(self) -> str:
        if self.qualifier_lower in RELEASE_SYNONYMS:
            return ""
        return self.qualifier

    def compare_to(self, other: Version) -> int:
        if not isinstance(other, VersionNumber):
            return VersionGeneric(str(self)).compare_to(other)

        for mine, theirs in ((self.major_int, other.major_int),
                             (self.minor_int, other.minor_int),
                             (self.revision_int, other.revision_int)):
            if mine != theirs:
                return -1 if mine < theirs else 1

        rank = qualifier_rank(self.qualifier)
        other_rank = qualifier_rank(other.qualifier)
        if rank != other_rank:
            return -1 if rank < other_rank else 1

        mine_qualifier = self._comparable_qualifier()
        theirs_qualifier = other._comparable_qualifier()
        if mine_qualifier.lower() == theirs_qualifier.lower():
            return 0
        if rank == RANK_UNRECOGNIZED:
            return -1 if mine_qualifier.lower() < theirs_qualifier.lower() else 1
        return _sign(VersionGeneric(mine_qualifier).compare_to(VersionGeneric(theirs_qualifier)))

    def __eq__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare_to(other) == 0

    def __hash__(self):
        rank = qualifier_rank(self.qualifier)
        if rank == RANK_UNRECOGNIZED:
            qualifier_hash = hash(self.qualifier_lower)
        else:
            qualifier_hash = hash(VersionGeneric(self._comparable_qualifier()))
        return hash((
            self.major_int,
            self.minor_int,
            self.revision_int,
            rank,
            qualifier_hash,
        ))

    def __str__(self):
        text = str(self.major_int)
        if self.minor is not None or self.revision is not None:
            text += f".{self.minor_int}"
        if self.revision is not None:
            text += f".{self.revision_int}"
        if self.qualifier:
            text += f"{self.separator}{self.qualifier}"
        return text


UNKNOWN = VersionNumber(0, 0, 0, "")


def parse_version(version: Optional[str]) -> Version:
    """Parse any version string.

    Args:
        version: Raw version text, possibly empty.

    Returns:
        A ``VersionNumber`` when the text has the numeric shape, ``UNKNOWN``
        for empty input and a ``VersionGeneric`` otherwise.
    """
    if not version:
        return UNKNOWN
    number = VersionNumber.parse(version)
    if number is UNKNOWN:
        return VersionGeneric(version)
    return number
