"""Ordering and stability checks for PEP 440-style version strings."""

from __future__ import annotations

import re
from dataclasses import dataclass
from itertools import zip_longest

# A subset of PEP 440: optional epoch, release segments, optional pre-release,
# post and dev parts, and a local part that is ignored.
_PEP440_RE = re.compile(
    r"v?(?:(\d+)!)?"
    r"(\d+(?:\.\d+)*)"
    r"(?:[-_.]?(a|b|c|rc|alpha|beta|pre|preview)[-_.]?(\d*))?"
    r"(?:[-_.]?(post)[-_.]?(\d*))?"
    r"(?:[-_.]?(dev)[-_.]?(\d*))?"
    r"(?:\+[a-z0-9.]+)?",
    re.ASCII,
)

_INTEGER_RE = re.compile(r"[+-]?\d+", re.ASCII)

_PRE_KIND_RANK = {
    "a": 0,
    "alpha": 0,
    "b": 1,
    "beta": 1,
    "c": 2,
    "rc": 2,
    "pre": 2,
    "preview": 2,
}


@dataclass(frozen=True)
class _Parsed:
    epoch: int
    release: tuple[int, ...]
    # -1: dev-only release (sorts before any pre-release), 0: has pre, 1: no pre
    pre_sent: int
    pre_kind: int
    pre_num: int
    # -1: no post, 0: has post
    post_sent: int
    post_num: int
    # 0: has dev, 1: no dev
    dev_sent: int
    dev_num: int

    def tail(self) -> tuple[int, ...]:
        return (
            self.pre_sent,
            self.pre_kind,
            self.pre_num,
            self.post_sent,
            self.post_num,
            self.dev_sent,
            self.dev_num,
        )


def _number(text: str | None) -> int:
    return int(text) if text else 0


def _parse(version: str) -> _Parsed | None:
    match = _PEP440_RE.fullmatch(version.strip().lower())
    if match is None:
        return None
    epoch, release, pre, pre_num, post, post_num, dev, dev_num = match.groups()

    if pre is None and post is None and dev is not None:
        pre_sent, pre_kind, pre_value = -1, 0, 0
    elif pre is None:
        pre_sent, pre_kind, pre_value = 1, 0, 0
    else:
        pre_sent, pre_kind, pre_value = 0, _PRE_KIND_RANK[pre], _number(pre_num)

    return _Parsed(
        epoch=_number(epoch),
        release=tuple(int(part) for part in release.split(".")),
        pre_sent=pre_sent,
        pre_kind=pre_kind,
        pre_num=pre_value,
        post_sent=0 if post is not None else -1,
        post_num=_number(post_num) if post is not None else 0,
        dev_sent=0 if dev is not None else 1,
        dev_num=_number(dev_num) if dev is not None else 0,
    )


def _cmp(a: int, b: int) -> int:
    return (a > b) - (a < b)


def _cmp_padded(a: tuple[int, ...] | list[int], b: tuple[int, ...] | list[int]) -> int:
    for left, right in zip_longest(a, b, fillvalue=0):
        result = _cmp(left, right)
        if result:
            return result
    return 0


def _naive_parts(version: str) -> list[int]:
    return [
        int(part) if _INTEGER_RE.fullmatch(part) else 0
        for part in version.strip().split(".")
    ]


def is_stable(version: str) -> bool:
    """Return True unless the version is a pre-release or a dev release.

    Post-releases count as stable; strings that do not parse are treated as stable.
    """
    parsed = _parse(version)
    if parsed is None:
        return True
    return parsed.pre_sent == 1 and parsed.dev_sent == 1


def compare(a: str, b: str) -> int:
    """Compare two versions: -1 if a < b, 0 if equal, 1 if a > b."""
    pa, pb = _parse(a), _parse(b)
    if pa is None or pb is None:
        return _cmp_padded(_naive_parts(a), _naive_parts(b))
    return (
        _cmp(pa.epoch, pb.epoch)
        or _cmp_padded(pa.release, pb.release)
        or _cmp_padded(pa.tail(), pb.tail())
    )